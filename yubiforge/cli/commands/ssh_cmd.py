"""``yubiforge ssh`` — hardware-backed SSH key for the remote host.

Generates a resident ``ed25519-sk`` key on the YubiKey, adds it to the SSH
agent and config, and prints the public key to paste into the account's
SSH key settings.
"""

from __future__ import annotations

from yubiforge.cli.commands._workflow import run_workflow
from yubiforge.models.artifacts import Workflow


def ssh_cmd() -> None:
    """Set up YubiKey SSH authentication."""
    run_workflow(Workflow.SSH)
