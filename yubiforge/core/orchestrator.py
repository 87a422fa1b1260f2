"""Provisioning orchestrator — runs the five stages of a workflow in order.

Control flows strictly top-to-bottom: a stage starts only after its
predecessor PASSED, and the first failure marks the stage FAILED, blocks
every later stage and re-raises. Side effects of stages that already
passed are not rolled back; every write they make is idempotent, so a
rerun after remediation is safe.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone

from rich.table import Table

from yubiforge.config import YubiforgeConfig
from yubiforge.core.gate import PreconditionGate
from yubiforge.core.prerequisite_graph import PrerequisiteGraph
from yubiforge.core.reporter import Reporter
from yubiforge.core.runner import CommandRunner
from yubiforge.core.stage_machine import StageMachine
from yubiforge.errors import ProvisioningError
from yubiforge.models.artifacts import Workflow
from yubiforge.models.context import ProvisionContext
from yubiforge.models.stages import DEFAULT_STAGE_DEFINITIONS, StageState, StageTransition
from yubiforge.stages import BaseStage, StageServices, get_stage

logger = logging.getLogger(__name__)


class Orchestrator:
    """Runs one provisioning workflow.

    Parameters
    ----------
    workflow:
        ``Workflow.SSH`` or ``Workflow.GPG``.
    config:
        Runtime configuration. Uses environment-driven defaults if omitted.
    runner, gate, reporter:
        Collaborators shared by all stages; real terminal-backed ones are
        created when omitted.
    run_id:
        Explicit run identifier, generated otherwise.
    """

    def __init__(
        self,
        workflow: Workflow,
        *,
        config: YubiforgeConfig | None = None,
        runner: CommandRunner | None = None,
        gate: PreconditionGate | None = None,
        reporter: Reporter | None = None,
        run_id: str | None = None,
    ) -> None:
        self.workflow = workflow
        self.reporter = reporter or Reporter()
        self.services = StageServices(
            config=config or YubiforgeConfig(),
            runner=runner or CommandRunner(),
            gate=gate or PreconditionGate(self.reporter.console),
            reporter=self.reporter,
        )
        self.graph = PrerequisiteGraph(DEFAULT_STAGE_DEFINITIONS)
        self.stage_machine = StageMachine(self.graph)

        ts = datetime.now(timezone.utc).strftime("%Y%m%d-%H%M%S")
        self.run_id = run_id or f"yf-{workflow.value}-{ts}-{uuid.uuid4().hex[:3]}"
        self.context: ProvisionContext | None = None

    @property
    def stages(self) -> list[BaseStage]:
        return [get_stage(sid, self.services) for sid in self.graph.stage_ids]

    def run(self) -> ProvisionContext:
        """Execute every stage in order and return the final context.

        Raises the first ``ProvisioningError`` a stage produces.
        """
        context = ProvisionContext(run_id=self.run_id, workflow=self.workflow)
        self.stage_machine.initialize_run(self.run_id)
        logger.info("run %s started (%s workflow)", self.run_id, self.workflow.value)

        for stage in self.stages:
            self.stage_machine.transition(self.run_id, stage.stage_id, StageState.RUNNING)
            try:
                context = stage.run_stage(context)
            except ProvisioningError as exc:
                self.stage_machine.transition(
                    self.run_id, stage.stage_id, StageState.FAILED, detail=str(exc)
                )
                self.context = context
                raise
            self.stage_machine.transition(self.run_id, stage.stage_id, StageState.PASSED)
            self.context = context

        logger.info("run %s completed", self.run_id)
        return context

    # ------------------------------------------------------------------
    # Query methods
    # ------------------------------------------------------------------

    def get_states(self) -> dict[str, StageState]:
        return self.stage_machine.get_all_states(self.run_id)

    def get_transitions(self) -> list[StageTransition]:
        return self.stage_machine.get_transitions(self.run_id)

    def summary_table(self) -> Table:
        return self.reporter.summary_table(
            DEFAULT_STAGE_DEFINITIONS, self.get_states(), self.get_transitions()
        )
