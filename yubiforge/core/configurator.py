"""Local integration of a freshly provisioned credential.

SSH: a ``Host`` stanza giving the new key exclusive use for the remote
host. GPG: git's signing key and auto-sign settings. Both then display the
public artifact for the user to upload; nothing is sent anywhere.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping

from yubiforge.config import YubiforgeConfig
from yubiforge.core.gate import PreconditionGate
from yubiforge.core.git_config import GitConfigStore
from yubiforge.core.gpg import GpgProvisioner
from yubiforge.core.reporter import Reporter
from yubiforge.core.runner import CommandRunner
from yubiforge.core.ssh_config import SshConfigFile, StanzaOutcome, render_host_stanza
from yubiforge.errors import ExternalToolFailure
from yubiforge.models.artifacts import ConfigMutation, KeyArtifact, Workflow
from yubiforge.models.platform import ToolAvailability

logger = logging.getLogger(__name__)

# ``ssh -T git@github.com`` exits 1 after a successful authentication
# because GitHub grants no shell.
AUTHENTICATED_EXIT_CODES = frozenset({0, 1})


class IntegrationConfigurator:
    """Writes SSH or git configuration for an artifact and shows its public part."""

    def __init__(
        self,
        runner: CommandRunner,
        reporter: Reporter,
        config: YubiforgeConfig,
        tools: Mapping[str, ToolAvailability],
    ) -> None:
        self._runner = runner
        self._reporter = reporter
        self._config = config
        self._tools = tools
        self.public_export: str | None = None

    def _tool(self, name: str) -> str:
        avail = self._tools.get(name)
        if avail is not None and avail.found:
            return avail.resolved_path
        return name

    def configure_local_integration(self, artifact: KeyArtifact) -> list[ConfigMutation]:
        """Persist configuration for *artifact* and display its public key.

        The armored GPG export is kept in ``public_export``.
        """
        if artifact.workflow == Workflow.SSH:
            mutations = [self._configure_ssh(artifact)]
            self._reporter.show_public_artifact(
                "Your new SSH public key", artifact.public_key, self._config.ssh_keys_url
            )
        else:
            mutations = self._configure_git(artifact)
            armored = GpgProvisioner(
                self._runner, self._reporter, self._config, gpg=self._tool("gpg")
            ).export_public_key(artifact.key_id or "")
            self.public_export = armored
            self._reporter.show_public_artifact(
                "Your GPG public key", armored, self._config.gpg_keys_url
            )
        return mutations

    def _configure_ssh(self, artifact: KeyArtifact) -> ConfigMutation:
        host = self._config.remote_host
        assert artifact.private_key_path is not None
        ssh_config = SshConfigFile(self._config.ssh_config_path)
        self._reporter.info(f"Updating SSH config at {ssh_config.path}...")

        outcome = ssh_config.ensure_host_stanza(host, artifact.private_key_path)
        text = "\n".join(render_host_stanza(host, artifact.private_key_path))
        if outcome == StanzaOutcome.CONFLICT:
            self._reporter.warn(
                f"{ssh_config.path} already has its own 'Host {host}' stanza; "
                f"point its IdentityFile at {artifact.private_key_path} yourself."
            )
        elif outcome == StanzaOutcome.UNCHANGED:
            self._reporter.success(f"SSH config already uses the key for {host}.")
        else:
            self._reporter.success(f"SSH config updated to use the new key for {host}.")
        return ConfigMutation(
            target=str(ssh_config.path),
            text=text,
            applied=outcome in (StanzaOutcome.APPENDED, StanzaOutcome.REPLACED),
        )

    def _configure_git(self, artifact: KeyArtifact) -> list[ConfigMutation]:
        self._reporter.info("Configuring Git for GPG signing...")
        store = GitConfigStore(self._runner, git=self._tool("git"))
        mutations = [
            store.set("user.signingkey", artifact.key_id or ""),
            store.set("commit.gpgsign", "true"),
        ]
        gpg = self._tools.get("gpg")
        if gpg is not None and gpg.found:
            mutations.append(store.set("gpg.program", gpg.resolved_path))
        self._reporter.success(
            f"Git configured to use GPG key {artifact.key_id} for signing."
        )
        return mutations

    def test_connection(self, gate: PreconditionGate) -> bool | None:
        """Offer an ``ssh -T`` round trip to the remote host.

        Returns ``None`` when the user skips it. A failed test is reported,
        not raised: the configuration is already in place.
        """
        host = self._config.remote_host
        if not gate.confirm(f"Do you want to test the connection to {host} now?"):
            return None
        self._reporter.info("Attempting to authenticate. Touch your YubiKey when it flashes.")
        try:
            result = self._runner.run(
                [self._tool("ssh"), "-T", f"{self._config.remote_user}@{host}"],
                interactive=True,
                check=False,
            )
        except ExternalToolFailure as exc:
            logger.warning("connection test could not run: %s", exc)
            self._reporter.warn(f"Skipped the connection test: {exc}")
            return False
        if result.returncode in AUTHENTICATED_EXIT_CODES:
            self._reporter.success(f"Authenticated to {host}.")
            return True
        self._reporter.warn(
            f"Authentication to {host} failed (exit {result.returncode}). "
            "Has the public key been added to your account yet?"
        )
        return False
