"""Deterministic stage state machine.

Enforces:
- Valid state transitions only (VALID_TRANSITIONS table)
- Prerequisites checked before RUNNING
- Cascade blocking on failure
- Every transition recorded for the run summary
"""

from __future__ import annotations

import logging

from yubiforge.core.prerequisite_graph import PrerequisiteGraph, PrerequisiteNotMetError
from yubiforge.models.stages import (
    VALID_TRANSITIONS,
    StageState,
    StageTransition,
)

logger = logging.getLogger(__name__)


class InvalidTransitionError(RuntimeError):
    """Raised when a requested state transition is not valid."""


class StageMachine:
    """In-memory stage states of provisioning runs.

    Parameters
    ----------
    graph:
        The prerequisite graph for dependency checking.
    """

    def __init__(self, graph: PrerequisiteGraph) -> None:
        self._graph = graph
        # run_id -> {stage_id -> StageState}
        self._states: dict[str, dict[str, StageState]] = {}
        self._transitions: dict[str, list[StageTransition]] = {}

    def initialize_run(self, run_id: str) -> dict[str, StageState]:
        """Initialize all stages to NOT_STARTED for a new run."""
        states = {sid: StageState.NOT_STARTED for sid in self._graph.stage_ids}
        self._states[run_id] = states
        self._transitions[run_id] = []
        return dict(states)

    def _run_states(self, run_id: str) -> dict[str, StageState]:
        try:
            return self._states[run_id]
        except KeyError:
            raise KeyError(f"Unknown run {run_id!r}; call initialize_run first") from None

    def get_all_states(self, run_id: str) -> dict[str, StageState]:
        """Return a snapshot of all stage states for a run."""
        return dict(self._run_states(run_id))

    def get_transitions(self, run_id: str) -> list[StageTransition]:
        return list(self._transitions.get(run_id, []))

    def transition(
        self,
        run_id: str,
        stage_id: str,
        target_state: StageState,
        *,
        detail: str | None = None,
    ) -> StageTransition:
        """Move a stage to *target_state* and record it.

        Validates:
        1. The transition is allowed by VALID_TRANSITIONS.
        2. If target is RUNNING, prerequisites are met.
        3. If transition is to FAILED, dependents are blocked.
        """
        states = self._run_states(run_id)
        current = states.get(stage_id, StageState.NOT_STARTED)

        allowed = VALID_TRANSITIONS.get(current, set())
        if target_state not in allowed:
            raise InvalidTransitionError(
                f"Cannot transition {stage_id} from {current.value} to {target_state.value}. "
                f"Allowed: {sorted(s.value for s in allowed)}"
            )

        if target_state == StageState.RUNNING:
            if not self._graph.are_prerequisites_met(stage_id, states):
                reasons = self._graph.get_blocking_reasons(stage_id, states)
                raise PrerequisiteNotMetError(
                    f"Cannot start {stage_id}: prerequisites not met. "
                    f"Blocked by: {'; '.join(reasons)}"
                )

        record = StageTransition(
            run_id=run_id,
            stage_id=stage_id,
            from_state=current,
            to_state=target_state,
            detail=detail,
        )
        states[stage_id] = target_state
        self._transitions[run_id].append(record)
        logger.debug("%s %s: %s->%s", run_id, stage_id, current.value, target_state.value)

        if target_state == StageState.FAILED:
            for blocked_id in self._graph.cascade_block(stage_id, states):
                self._transitions[run_id].append(
                    StageTransition(
                        run_id=run_id,
                        stage_id=blocked_id,
                        from_state=StageState.NOT_STARTED,
                        to_state=StageState.BLOCKED,
                        detail=f"blocked by {stage_id}",
                    )
                )

        return record
