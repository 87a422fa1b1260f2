"""Run context threaded through every provisioning stage."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from yubiforge.models.artifacts import ConfigMutation, Identity, KeyArtifact, Workflow
from yubiforge.models.gpg import CardStatus
from yubiforge.models.platform import PlatformInfo, ToolAvailability


class ProvisionContext(BaseModel):
    """Immutable state of one run.

    Each stage receives the context produced by its predecessor and returns
    a new one via :meth:`evolve`; nothing is shared through globals.
    """

    model_config = ConfigDict(frozen=True)

    run_id: str = Field(default_factory=lambda: f"yf-{uuid.uuid4().hex[:12]}")
    workflow: Workflow
    platform: PlatformInfo | None = None
    tools: dict[str, ToolAvailability] = {}
    key_path: Path | None = None
    identity: Identity | None = None
    card: CardStatus | None = None
    artifact: KeyArtifact | None = None
    mutations: list[ConfigMutation] = []
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )

    def evolve(self, **changes: Any) -> ProvisionContext:
        """Return a copy with *changes* applied, re-validated."""
        data = self.model_dump()
        data.update(changes)
        return ProvisionContext.model_validate(data)
