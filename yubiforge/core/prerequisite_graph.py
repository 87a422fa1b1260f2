"""Stage prerequisite DAG with cascade blocking.

The graph enforces:
- No stage runs unless all prerequisites are PASSED.
- When a stage fails, all transitive dependents are BLOCKED.
"""

from __future__ import annotations

from collections import deque

from yubiforge.models.stages import StageDefinition, StageState


class PrerequisiteNotMetError(RuntimeError):
    """Raised when a stage cannot run because prerequisites are not met."""


class CyclicDependencyError(ValueError):
    """Raised when the prerequisite graph contains a cycle."""


class PrerequisiteGraph:
    """Directed acyclic graph of stage prerequisites."""

    def __init__(self, stage_definitions: list[StageDefinition]) -> None:
        self._stages: dict[str, StageDefinition] = {
            sd.stage_id: sd for sd in stage_definitions
        }
        # Forward edges: stage_id -> list of prerequisite stage_ids
        self._prerequisites: dict[str, list[str]] = {
            sd.stage_id: list(sd.prerequisites) for sd in stage_definitions
        }
        # Reverse edges: stage_id -> list of stages that depend on it
        self._dependents: dict[str, list[str]] = {
            sd.stage_id: [] for sd in stage_definitions
        }
        for sd in stage_definitions:
            for prereq in sd.prerequisites:
                if prereq in self._dependents:
                    self._dependents[prereq].append(sd.stage_id)

        self._order = self._topological_order()

    def _topological_order(self) -> list[str]:
        """Kahn's algorithm, ties broken by ordinal."""
        in_degree = {sid: len(prereqs) for sid, prereqs in self._prerequisites.items()}
        queue = deque(
            sorted(
                (sid for sid, deg in in_degree.items() if deg == 0),
                key=lambda s: self._stages[s].ordinal,
            )
        )
        result: list[str] = []
        while queue:
            node = queue.popleft()
            result.append(node)
            for dep in sorted(
                self._dependents.get(node, []),
                key=lambda s: self._stages[s].ordinal,
            ):
                in_degree[dep] -= 1
                if in_degree[dep] == 0:
                    queue.append(dep)

        if len(result) != len(self._stages):
            raise CyclicDependencyError(
                f"Prerequisite graph has a cycle. "
                f"Visited {len(result)}/{len(self._stages)} stages."
            )
        return result

    @property
    def stage_ids(self) -> list[str]:
        """All stage_ids in execution order."""
        return list(self._order)

    def get_dependents(self, stage_id: str) -> list[str]:
        """Return all transitive dependent stage_ids (BFS)."""
        result = []
        queue = deque(self._dependents.get(stage_id, []))
        visited: set[str] = set()
        while queue:
            node = queue.popleft()
            if node in visited:
                continue
            visited.add(node)
            result.append(node)
            queue.extend(self._dependents.get(node, []))
        return result

    def are_prerequisites_met(
        self, stage_id: str, states: dict[str, StageState]
    ) -> bool:
        return all(
            states.get(prereq) == StageState.PASSED
            for prereq in self._prerequisites.get(stage_id, [])
        )

    def get_blocking_reasons(
        self, stage_id: str, states: dict[str, StageState]
    ) -> list[str]:
        """Return human-readable reasons why a stage cannot start."""
        reasons = []
        for prereq in self._prerequisites.get(stage_id, []):
            state = states.get(prereq, StageState.NOT_STARTED)
            if state != StageState.PASSED:
                name = self._stages[prereq].display_name if prereq in self._stages else prereq
                reasons.append(f"{name} ({prereq}) is {state.value}")
        return reasons

    def cascade_block(
        self, failed_stage_id: str, states: dict[str, StageState]
    ) -> list[str]:
        """Block every not-yet-started transitive dependent of a failed stage.

        Returns the newly blocked stage_ids.
        """
        blocked: list[str] = []
        for stage_id in self.get_dependents(failed_stage_id):
            if states.get(stage_id, StageState.NOT_STARTED) == StageState.NOT_STARTED:
                states[stage_id] = StageState.BLOCKED
                blocked.append(stage_id)
        return blocked
