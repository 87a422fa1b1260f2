"""yubiforge data models — all Pydantic v2, all frozen (immutable)."""

from yubiforge.models.artifacts import (
    ConfigMutation,
    Identity,
    KeyArtifact,
    Workflow,
    is_well_formed_ssh_public_key,
)
from yubiforge.models.context import ProvisionContext
from yubiforge.models.gpg import CardStatus, SecretKeyEntry
from yubiforge.models.platform import PlatformFamily, PlatformInfo, ToolAvailability
from yubiforge.models.stages import (
    DEFAULT_STAGE_DEFINITIONS,
    VALID_TRANSITIONS,
    StageDefinition,
    StageState,
    StageTransition,
)

__all__ = [
    # platform
    "PlatformFamily",
    "PlatformInfo",
    "ToolAvailability",
    # artifacts
    "Workflow",
    "Identity",
    "KeyArtifact",
    "ConfigMutation",
    "is_well_formed_ssh_public_key",
    # gpg
    "SecretKeyEntry",
    "CardStatus",
    # context
    "ProvisionContext",
    # stages
    "StageState",
    "StageDefinition",
    "StageTransition",
    "VALID_TRANSITIONS",
    "DEFAULT_STAGE_DEFINITIONS",
]
