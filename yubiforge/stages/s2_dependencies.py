"""Stage 2 — Dependency Resolution.

Checks for the workflow's external tools, installs missing ones through
the platform's package manager and re-verifies them. For the GPG workflow
on macOS it also points gpg-agent at ``pinentry-mac`` so PIN prompts get a
native dialog.
"""

from __future__ import annotations

import logging

from yubiforge.core.agent_config import GpgAgentConfig
from yubiforge.core.dependencies import DependencyResolver
from yubiforge.errors import ExternalToolFailure
from yubiforge.models.artifacts import ConfigMutation, Workflow
from yubiforge.models.context import ProvisionContext
from yubiforge.models.platform import PlatformFamily, ToolAvailability
from yubiforge.stages.base import BaseStage

logger = logging.getLogger(__name__)


class DependencyResolutionStage(BaseStage):
    """Stage 2: makes every required tool available."""

    requires = ("platform",)

    @property
    def stage_id(self) -> str:
        return "s2_dependencies"

    @property
    def display_name(self) -> str:
        return "Dependency Resolution"

    def resolver(self, context: ProvisionContext) -> DependencyResolver:
        assert context.platform is not None
        return DependencyResolver(self.services.runner, context.platform, context.workflow)

    def execute(self, context: ProvisionContext) -> ProvisionContext:
        self.reporter.info("Checking for required dependencies...")
        resolver = self.resolver(context)

        tools: dict[str, ToolAvailability] = {}
        for req in resolver.requirements:
            avail = resolver.ensure(req.name)
            tools[req.name] = avail
            if avail.installed:
                self.reporter.success(f"{req.name} installed.")
            elif avail.found:
                self.reporter.success(f"{req.name} is available.")

        mutations = list(context.mutations)
        if context.workflow == Workflow.GPG:
            mutations.extend(self._configure_agent(context, resolver, tools))

        return context.evolve(tools=tools, mutations=mutations)

    def _configure_agent(
        self,
        context: ProvisionContext,
        resolver: DependencyResolver,
        tools: dict[str, ToolAvailability],
    ) -> list[ConfigMutation]:
        mutations: list[ConfigMutation] = []
        changed = bool(resolver.installed_packages)

        assert context.platform is not None
        if context.platform.family == PlatformFamily.MACOS:
            pinentry = resolver.brew_prefix() / "bin" / "pinentry-mac"
            if pinentry.exists():
                mutation = GpgAgentConfig(self.config.gpg_agent_conf_path).ensure_directive(
                    "pinentry-program", str(pinentry)
                )
                mutations.append(mutation)
                changed = changed or mutation.applied
            else:
                self.reporter.warn(
                    "pinentry-mac not found; PIN prompts will use gpg's default pinentry."
                )

        connect = tools.get("gpg-connect-agent")
        if changed and connect is not None and connect.found:
            try:
                self.services.runner.run([connect.resolved_path, "reloadagent", "/bye"])
            except ExternalToolFailure as exc:
                self.reporter.warn(f"Could not reload gpg-agent: {exc}")
            else:
                logger.info("gpg-agent reloaded")
        return mutations
