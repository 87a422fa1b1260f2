"""Stage 5 — Integration Configuration.

Persists SSH or git configuration for the new credential, shows the public
artifact for manual upload and, for SSH, offers a connection test.
"""

from __future__ import annotations

from yubiforge.core.configurator import IntegrationConfigurator
from yubiforge.models.artifacts import Workflow
from yubiforge.models.context import ProvisionContext
from yubiforge.stages.base import BaseStage


class IntegrationStage(BaseStage):
    """Stage 5: local configuration and public key display."""

    requires = ("tools", "artifact")

    @property
    def stage_id(self) -> str:
        return "s5_integration"

    @property
    def display_name(self) -> str:
        return "Integration Configuration"

    def execute(self, context: ProvisionContext) -> ProvisionContext:
        assert context.artifact is not None
        configurator = IntegrationConfigurator(
            self.services.runner, self.reporter, self.config, context.tools
        )
        mutations = configurator.configure_local_integration(context.artifact)
        artifact = context.artifact
        if configurator.public_export is not None:
            artifact = artifact.model_copy(update={"public_key": configurator.public_export})
        if context.workflow == Workflow.SSH:
            configurator.test_connection(self.services.gate)
        return context.evolve(artifact=artifact, mutations=[*context.mutations, *mutations])
