"""Stage 1 — Platform Detection."""

from __future__ import annotations

from yubiforge.core.platform import PlatformDetector
from yubiforge.models.context import ProvisionContext
from yubiforge.models.platform import PlatformFamily
from yubiforge.stages.base import BaseStage

_FAMILY_NAMES: dict[PlatformFamily, str] = {
    PlatformFamily.MACOS: "macOS",
    PlatformFamily.LINUX_DEBIAN: "Linux (Debian/Ubuntu)",
    PlatformFamily.LINUX_FEDORA: "Linux (Fedora)",
    PlatformFamily.LINUX_OTHER: "Linux",
}


class PlatformDetectionStage(BaseStage):
    """Stage 1: identifies the host OS family or stops the run."""

    @property
    def stage_id(self) -> str:
        return "s1_platform"

    @property
    def display_name(self) -> str:
        return "Platform Detection"

    def detector(self) -> PlatformDetector:
        return PlatformDetector(self.config.release_marker_dir)

    def execute(self, context: ProvisionContext) -> ProvisionContext:
        self.reporter.info("Detecting operating system...")
        info = self.detector().detect()
        self.reporter.success(f"Detected OS: {_FAMILY_NAMES.get(info.family, info.kernel)}")
        return context.evolve(platform=info)
