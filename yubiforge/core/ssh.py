"""Hardware-resident SSH key generation.

``ssh-keygen`` creates a discoverable ``ed25519-sk`` key on the token with
user verification required, bound to a fixed application string. The key
handle and the ``.pub`` file land in the user's SSH directory; only the
``.pub`` line is read back.
"""

from __future__ import annotations

import getpass
import logging
import socket
from pathlib import Path

from pydantic import BaseModel, ConfigDict

from yubiforge.core.gate import PreconditionGate
from yubiforge.core.reporter import Reporter
from yubiforge.core.runner import CommandRunner
from yubiforge.errors import ExternalToolFailure
from yubiforge.models.artifacts import KeyArtifact, Workflow, is_well_formed_ssh_public_key

logger = logging.getLogger(__name__)


class SshKeyOptions(BaseModel):
    """Flags handed to ``ssh-keygen``."""

    model_config = ConfigDict(frozen=True)

    key_type: str = "ed25519-sk"
    application: str = "ssh:github"
    comment: str
    resident: bool = True
    verify_required: bool = True

    def keygen_args(self, path: Path) -> list[str]:
        args = ["-t", self.key_type, "-f", str(path)]
        if self.resident:
            args += ["-O", "resident"]
        args += ["-O", f"application={self.application}"]
        if self.verify_required:
            args += ["-O", "verify-required"]
        args += ["-C", self.comment]
        return args


def default_comment(prefix: str) -> str:
    """``<prefix>-<user>@<host>``, e.g. ``github-ada@laptop``."""
    return f"{prefix}-{getpass.getuser()}@{socket.gethostname()}"


def public_key_path(path: Path) -> Path:
    return path.with_name(path.name + ".pub")


class SshProvisioner:
    """Creates the hardware-backed key pair and loads it into ssh-agent."""

    def __init__(
        self,
        runner: CommandRunner,
        gate: PreconditionGate,
        reporter: Reporter,
        *,
        keygen: str = "ssh-keygen",
    ) -> None:
        self._runner = runner
        self._gate = gate
        self._reporter = reporter
        self._keygen = keygen

    def generate_ssh_key(self, path: Path, options: SshKeyOptions) -> KeyArtifact:
        """Generate the key at *path*; the user touches the token meanwhile.

        An existing key at *path* is only replaced after confirmation;
        declining raises ``UserAbortedError`` with both files untouched.
        """
        pub_path = public_key_path(path)
        if path.exists() or pub_path.exists():
            self._reporter.warn(f"Key file already exists at {path}.")
            self._gate.require(
                "Do you want to overwrite it?",
                "Key generation aborted.",
                hint=f"Move {path} out of the way or confirm the overwrite.",
            )
            path.unlink(missing_ok=True)
            pub_path.unlink(missing_ok=True)
            logger.info("removed existing key pair at %s", path)

        path.parent.mkdir(mode=0o700, parents=True, exist_ok=True)
        self._reporter.info("When prompted, touch your flashing YubiKey.")
        self._runner.run([self._keygen, *options.keygen_args(path)], interactive=True)

        if not pub_path.exists():
            raise ExternalToolFailure(
                f"ssh-keygen reported success but {pub_path} was not written.",
                command=[self._keygen],
            )
        public_key = pub_path.read_text(encoding="utf-8").strip()
        if not is_well_formed_ssh_public_key(public_key):
            raise ExternalToolFailure(
                f"{pub_path} does not hold a single well-formed public key line.",
                command=[self._keygen],
            )

        self._reporter.success(f"SSH key generated successfully at {path}")
        return KeyArtifact(
            workflow=Workflow.SSH,
            public_key=public_key,
            private_key_path=path,
            public_key_path=pub_path,
            comment=options.comment,
        )

    def add_to_agent(self, artifact: KeyArtifact, ssh_add: str | None) -> bool:
        """Load the key into the running ssh-agent, if there is one.

        Returns whether the key was added. A missing agent or a failing
        ``ssh-add`` only produces a warning.
        """
        if ssh_add is None:
            self._reporter.warn("ssh-add not found; skipping ssh-agent setup.")
            return False
        if not self._runner.environ.get("SSH_AUTH_SOCK"):
            self._reporter.warn(
                f"No ssh-agent is running. Add the key later with: ssh-add {artifact.private_key_path}"
            )
            return False
        try:
            self._runner.run([ssh_add, str(artifact.private_key_path)], interactive=True)
        except ExternalToolFailure as exc:
            self._reporter.warn(f"Could not add the key to ssh-agent: {exc}")
            return False
        self._reporter.success("Key added to the SSH agent.")
        return True
