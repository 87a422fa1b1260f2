"""Host platform and external tool availability models."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict


class PlatformFamily(str, Enum):
    """Host OS family, as far as package management is concerned."""

    MACOS = "macos"
    LINUX_DEBIAN = "linux_debian"
    LINUX_FEDORA = "linux_fedora"
    LINUX_OTHER = "linux_other"  # Linux without a known distribution marker


class PlatformInfo(BaseModel):
    """Detected host platform. Computed once per run, read-only afterwards."""

    model_config = ConfigDict(frozen=True)

    family: PlatformFamily
    kernel: str  # raw ``uname -s`` value, e.g. "Darwin" or "Linux"

    @property
    def is_linux(self) -> bool:
        return self.family in (
            PlatformFamily.LINUX_DEBIAN,
            PlatformFamily.LINUX_FEDORA,
            PlatformFamily.LINUX_OTHER,
        )


class ToolAvailability(BaseModel):
    """Presence of a required external binary on PATH."""

    model_config = ConfigDict(frozen=True)

    name: str
    found: bool
    resolved_path: str = ""
    installed: bool = False  # True when this run had to install it
