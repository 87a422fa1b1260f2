"""Credential and configuration artifacts produced by a provisioning run.

Only public material is ever modelled here. Private keys stay in the custody
of ``ssh-keygen``/``gpg`` and the hardware token.
"""

from __future__ import annotations

import re
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, model_validator


class Workflow(str, Enum):
    """Which credential a run provisions."""

    SSH = "ssh"
    GPG = "gpg"


# "algorithm-id base64-material comment" on a single line.
SSH_PUBLIC_KEY_RE = re.compile(
    r"^(?P<algorithm>[A-Za-z0-9@.\-]+) "
    r"(?P<material>[A-Za-z0-9+/]+={0,2}) "
    r"(?P<comment>\S.*)$"
)


def is_well_formed_ssh_public_key(text: str) -> bool:
    """Whether *text* is exactly one OpenSSH public key line with a comment."""
    stripped = text.rstrip("\n")
    if "\n" in stripped:
        return False
    return SSH_PUBLIC_KEY_RE.match(stripped) is not None


class Identity(BaseModel):
    """Name and email the GPG user ID is built from."""

    model_config = ConfigDict(frozen=True)

    name: str
    email: str

    @property
    def user_id(self) -> str:
        return f"{self.name} <{self.email}>"


class KeyArtifact(BaseModel):
    """A generated credential.

    SSH artifacts carry the key file paths and the ``.pub`` line; GPG
    artifacts carry the long key ID and the armored public export once the
    configurator has produced it.
    """

    model_config = ConfigDict(frozen=True)

    workflow: Workflow
    public_key: str = ""
    private_key_path: Path | None = None  # the file handle, never its contents
    public_key_path: Path | None = None
    key_id: str | None = None
    fingerprint: str | None = None
    comment: str = ""

    @model_validator(mode="after")
    def _check_shape(self) -> KeyArtifact:
        if self.workflow == Workflow.SSH:
            if self.private_key_path is None:
                raise ValueError("SSH artifact requires private_key_path")
            if self.public_key and not is_well_formed_ssh_public_key(self.public_key):
                raise ValueError("SSH public key is not a single well-formed line")
        elif not self.key_id:
            raise ValueError("GPG artifact requires key_id")
        return self


class ConfigMutation(BaseModel):
    """A block written to a configuration file or setting.

    ``applied`` is False when an equivalent block was already in place and
    nothing was written.
    """

    model_config = ConfigDict(frozen=True)

    target: str  # file path, or "git:<key>" for git settings
    text: str
    applied: bool = True
