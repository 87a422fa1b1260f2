"""Provisioning stages — registry mapping stage_id to stage class.

Usage::

    from yubiforge.stages import STAGE_ORDER, get_stage

    for stage_id in STAGE_ORDER:
        context = get_stage(stage_id, services).run_stage(context)
"""

from __future__ import annotations

from yubiforge.stages.base import BaseStage, StagePrerequisiteError, StageServices
from yubiforge.stages.s1_platform import PlatformDetectionStage
from yubiforge.stages.s2_dependencies import DependencyResolutionStage
from yubiforge.stages.s3_preconditions import PreconditionGateStage
from yubiforge.stages.s4_provision import CredentialProvisionStage
from yubiforge.stages.s5_integration import IntegrationStage

STAGE_REGISTRY: dict[str, type[BaseStage]] = {
    "s1_platform": PlatformDetectionStage,
    "s2_dependencies": DependencyResolutionStage,
    "s3_preconditions": PreconditionGateStage,
    "s4_provision": CredentialProvisionStage,
    "s5_integration": IntegrationStage,
}

STAGE_ORDER: list[str] = [
    "s1_platform",
    "s2_dependencies",
    "s3_preconditions",
    "s4_provision",
    "s5_integration",
]


def get_stage(stage_id: str, services: StageServices) -> BaseStage:
    """Instantiate and return a stage by its ``stage_id``.

    Raises ``KeyError`` if the stage_id is not registered.
    """
    try:
        cls = STAGE_REGISTRY[stage_id]
    except KeyError:
        raise KeyError(
            f"Unknown stage_id {stage_id!r}. "
            f"Registered stages: {sorted(STAGE_REGISTRY.keys())}"
        ) from None
    return cls(services)


__all__ = [
    # Base
    "BaseStage",
    "StageServices",
    "StagePrerequisiteError",
    # Registry
    "STAGE_REGISTRY",
    "STAGE_ORDER",
    "get_stage",
    # Concrete stages
    "PlatformDetectionStage",
    "DependencyResolutionStage",
    "PreconditionGateStage",
    "CredentialProvisionStage",
    "IntegrationStage",
]
