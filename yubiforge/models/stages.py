"""Stage state machine models — strictly sequential provisioning stages."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class StageState(str, Enum):
    """State of a single provisioning stage within one run."""

    NOT_STARTED = "not_started"
    RUNNING = "running"
    BLOCKED = "blocked"
    FAILED = "failed"
    PASSED = "passed"


# Valid state transitions — enforced structurally by StageMachine.
# A run is never retried in place: FAILED, PASSED and BLOCKED are terminal.
VALID_TRANSITIONS: dict[StageState, set[StageState]] = {
    StageState.NOT_STARTED: {StageState.RUNNING, StageState.BLOCKED},
    StageState.RUNNING: {StageState.PASSED, StageState.FAILED},
    StageState.BLOCKED: set(),
    StageState.FAILED: set(),
    StageState.PASSED: set(),
}


class StageDefinition(BaseModel):
    """Defines a provisioning stage and the stage it must follow.

    A stage cannot enter RUNNING unless every prerequisite is PASSED.
    """

    model_config = ConfigDict(frozen=True)

    stage_id: str
    display_name: str
    ordinal: int
    prerequisites: list[str] = []


class StageTransition(BaseModel):
    """Records a single state transition for the run summary."""

    model_config = ConfigDict(frozen=True)

    run_id: str
    stage_id: str
    from_state: StageState
    to_state: StageState
    detail: str | None = None  # error message on FAILED, upstream on BLOCKED
    timestamp_utc: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )


DEFAULT_STAGE_DEFINITIONS: list[StageDefinition] = [
    StageDefinition(
        stage_id="s1_platform",
        display_name="Platform Detection",
        ordinal=1,
        prerequisites=[],
    ),
    StageDefinition(
        stage_id="s2_dependencies",
        display_name="Dependency Resolution",
        ordinal=2,
        prerequisites=["s1_platform"],
    ),
    StageDefinition(
        stage_id="s3_preconditions",
        display_name="Precondition Gate",
        ordinal=3,
        prerequisites=["s2_dependencies"],
    ),
    StageDefinition(
        stage_id="s4_provision",
        display_name="Credential Provisioning",
        ordinal=4,
        prerequisites=["s3_preconditions"],
    ),
    StageDefinition(
        stage_id="s5_integration",
        display_name="Integration Configuration",
        ordinal=5,
        prerequisites=["s4_provision"],
    ),
]
