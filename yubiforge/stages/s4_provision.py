"""Stage 4 — Credential Provisioning.

SSH: generates the resident key on the token and loads it into ssh-agent.
GPG: generates the key locally, moves its three roles onto the token and
sets the signature touch policy.
"""

from __future__ import annotations

from yubiforge.core.gpg import GpgProvisioner
from yubiforge.core.ssh import SshKeyOptions, SshProvisioner, default_comment
from yubiforge.models.artifacts import Workflow
from yubiforge.models.context import ProvisionContext
from yubiforge.stages.base import BaseStage


class CredentialProvisionStage(BaseStage):
    """Stage 4: creates the credential through ssh-keygen or gpg."""

    requires = ("platform", "tools")

    @property
    def stage_id(self) -> str:
        return "s4_provision"

    @property
    def display_name(self) -> str:
        return "Credential Provisioning"

    def _tool(self, context: ProvisionContext, name: str) -> str | None:
        avail = context.tools.get(name)
        return avail.resolved_path if avail is not None and avail.found else None

    def execute(self, context: ProvisionContext) -> ProvisionContext:
        if context.workflow == Workflow.SSH:
            return self._ssh(context)
        return self._gpg(context)

    def _ssh(self, context: ProvisionContext) -> ProvisionContext:
        self.reporter.info("Generating a new hardware-backed SSH key...")
        provisioner = SshProvisioner(
            self.services.runner,
            self.services.gate,
            self.reporter,
            keygen=self._tool(context, "ssh-keygen") or "ssh-keygen",
        )
        options = SshKeyOptions(
            application=self.config.ssh_application,
            comment=default_comment(self.config.remote_host.split(".")[0]),
        )
        artifact = provisioner.generate_ssh_key(
            context.key_path or self.config.ssh_key_path, options
        )
        provisioner.add_to_agent(artifact, self._tool(context, "ssh-add"))
        return context.evolve(artifact=artifact)

    def _gpg(self, context: ProvisionContext) -> ProvisionContext:
        assert context.identity is not None
        provisioner = GpgProvisioner(
            self.services.runner,
            self.reporter,
            self.config,
            gpg=self._tool(context, "gpg") or "gpg",
        )
        artifact = provisioner.generate_gpg_key(context.identity.name, context.identity.email)
        self.reporter.success(f"GPG key generated with ID: {artifact.key_id}")

        provisioner.move_to_card(artifact)

        ykman = self._tool(context, "ykman")
        if ykman is None:
            self.reporter.warn(
                "ykman not found; skipping the signature touch policy. "
                "Set it later with: ykman openpgp keys set-touch sig on"
            )
        else:
            provisioner.set_touch_policy(ykman, self.config.signature_touch_policy)
        return context.evolve(artifact=artifact)
