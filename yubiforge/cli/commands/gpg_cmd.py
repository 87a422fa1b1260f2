"""``yubiforge gpg`` — GPG commit signing with the key on the YubiKey.

Generates an OpenPGP key, moves it onto the YubiKey, configures git to sign
every commit with it and prints the armored public key.
"""

from __future__ import annotations

from yubiforge.cli.commands._workflow import run_workflow
from yubiforge.models.artifacts import Workflow


def gpg_cmd() -> None:
    """Set up YubiKey GPG commit signing."""
    run_workflow(Workflow.GPG)
