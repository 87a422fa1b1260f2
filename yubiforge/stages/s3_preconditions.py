"""Stage 3 — Precondition Gate.

Interactive confirmations before anything irreversible happens to the
token. A refusal stops the run with ``UserAbortedError``.

SSH: the FIDO2 PIN must already be set (``verify-required`` keys need it).
GPG: a token must be present; existing OpenPGP keys on it, and the key
about to overwrite them, each need consent. The user's name and email are
collected here as well.
"""

from __future__ import annotations

from yubiforge.core.gate import is_email
from yubiforge.core.gpg import GpgProvisioner
from yubiforge.models.artifacts import Identity, Workflow
from yubiforge.models.context import ProvisionContext
from yubiforge.stages.base import BaseStage


class PreconditionGateStage(BaseStage):
    """Stage 3: user confirmations and token presence."""

    requires = ("platform", "tools")

    @property
    def stage_id(self) -> str:
        return "s3_preconditions"

    @property
    def display_name(self) -> str:
        return "Precondition Gate"

    def execute(self, context: ProvisionContext) -> ProvisionContext:
        if context.workflow == Workflow.SSH:
            return self._ssh(context)
        return self._gpg(context)

    def _ssh(self, context: ProvisionContext) -> ProvisionContext:
        self.reporter.info("Your YubiKey needs a FIDO2 PIN to create a security key.")
        self.reporter.warn("If you have not set a PIN yet, you must do so now.")
        self.reporter.info("You can set one by running: ykman fido access change-pin")
        self.services.gate.require(
            "Have you set a FIDO2 PIN on your YubiKey?",
            "PIN setup aborted. Please set a PIN and re-run.",
            hint="Set a PIN with `ykman fido access change-pin`.",
        )
        return context.evolve(key_path=self.config.ssh_key_path)

    def _gpg(self, context: ProvisionContext) -> ProvisionContext:
        gate = self.services.gate
        gpg = context.tools["gpg"].resolved_path or "gpg"
        card = GpgProvisioner(
            self.services.runner, self.reporter, self.config, gpg=gpg
        ).probe_token()
        self.reporter.success(
            f"YubiKey detected (serial {card.serial})." if card.serial else "YubiKey detected."
        )

        if card.has_keys:
            self.reporter.warn("The YubiKey's OpenPGP applet already holds keys.")
            gate.require(
                "Replace the keys currently stored on the YubiKey?",
                "GPG setup aborted; the YubiKey was left untouched.",
            )

        self.reporter.info("A new GPG key will be generated and moved onto your YubiKey.")
        self.reporter.warn("This will overwrite any existing GPG key on the device.")
        gate.require("Do you want to continue?", "GPG setup aborted.")

        name = gate.ask("Enter your full name")
        email = gate.ask(
            "Enter your email address",
            validator=is_email,
            invalid_message="Please enter an address like you@example.com.",
        )
        return context.evolve(card=card, identity=Identity(name=name, email=email))
