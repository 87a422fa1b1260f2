"""Abstract base stage with an enforced lifecycle.

Every concrete stage inherits from BaseStage and implements only
``execute()``. The ``run_stage()`` wrapper is **not overridable** — it
enforces the canonical lifecycle ordering:

    validate_prerequisites -> execute -> record

Provisioning errors raised by ``execute()`` propagate unchanged so the CLI
can report the specific condition; anything else is wrapped in
``StageExecutionError``.
"""

from __future__ import annotations

import abc
import logging
from typing import ClassVar, final

from yubiforge.config import YubiforgeConfig
from yubiforge.core.gate import PreconditionGate
from yubiforge.core.reporter import Reporter
from yubiforge.core.runner import CommandRunner
from yubiforge.errors import ProvisioningError, StageExecutionError
from yubiforge.models.context import ProvisionContext

logger = logging.getLogger(__name__)


class StagePrerequisiteError(ProvisioningError):
    """Raised when the context lacks what a stage needs from earlier stages."""

    hint = "An earlier stage did not produce its result; re-run from the start."


class StageServices:
    """Collaborators shared by every stage of a run."""

    def __init__(
        self,
        config: YubiforgeConfig,
        runner: CommandRunner,
        gate: PreconditionGate,
        reporter: Reporter,
    ) -> None:
        self.config = config
        self.runner = runner
        self.gate = gate
        self.reporter = reporter


class BaseStage(abc.ABC):
    """Abstract base for all provisioning stages.

    Subclasses **must** implement:
        * ``stage_id``   — unique identifier (e.g. ``"s1_platform"``).
        * ``display_name`` — human-readable name for the run summary.
        * ``execute(context)`` — the stage's core logic.

    Subclasses **may** set ``requires`` to the context fields that earlier
    stages must have filled in.

    Subclasses **must not** override ``run_stage()``.
    """

    requires: ClassVar[tuple[str, ...]] = ()

    def __init__(self, services: StageServices) -> None:
        self.services = services

    @property
    def config(self) -> YubiforgeConfig:
        return self.services.config

    @property
    def reporter(self) -> Reporter:
        return self.services.reporter

    @property
    @abc.abstractmethod
    def stage_id(self) -> str:
        """Unique stage identifier (e.g. ``'s1_platform'``)."""
        ...

    @property
    @abc.abstractmethod
    def display_name(self) -> str:
        ...

    @abc.abstractmethod
    def execute(self, context: ProvisionContext) -> ProvisionContext:
        """Run the stage and return the evolved context."""
        ...

    # ------------------------------------------------------------------
    # Lifecycle — NOT overridable
    # ------------------------------------------------------------------

    @final
    def run_stage(self, context: ProvisionContext) -> ProvisionContext:
        """Execute the full stage lifecycle.  **Do not override.**"""
        self.validate_prerequisites(context)
        logger.info("%s [%s] started (run %s)", self.display_name, self.stage_id, context.run_id)

        try:
            result = self.execute(context)
        except ProvisioningError as exc:
            logger.error("%s [%s] failed: %s", self.display_name, self.stage_id, exc)
            raise
        except Exception as exc:
            logger.exception("%s [%s] crashed", self.display_name, self.stage_id)
            raise StageExecutionError(
                f"Stage {self.stage_id} failed: {exc}"
            ) from exc

        if result.run_id != context.run_id or result.workflow != context.workflow:
            raise StageExecutionError(
                f"Stage {self.stage_id} returned a context for another run"
            )
        logger.info("%s [%s] passed", self.display_name, self.stage_id)
        return result

    @final
    def validate_prerequisites(self, context: ProvisionContext) -> None:
        """Ensure the fields listed in ``requires`` are set."""
        missing = [name for name in self.requires if getattr(context, name) in (None, {}, [])]
        if missing:
            raise StagePrerequisiteError(
                f"Cannot run {self.stage_id}: context is missing {', '.join(missing)}"
            )

    def __repr__(self) -> str:
        return f"<{type(self).__name__} stage_id={self.stage_id!r}>"
