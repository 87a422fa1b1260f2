"""Host OS family detection."""

from __future__ import annotations

import logging
import platform
from collections.abc import Callable
from pathlib import Path

from yubiforge.errors import UnsupportedPlatformError
from yubiforge.models.platform import PlatformFamily, PlatformInfo

logger = logging.getLogger(__name__)

DEBIAN_MARKER = "debian_version"
FEDORA_MARKER = "fedora-release"


class PlatformDetector:
    """Maps the kernel name (``uname -s``) to a known platform family.

    Parameters
    ----------
    marker_dir:
        Directory holding the distribution marker files, ``/etc`` on a
        real host.
    system:
        Callable returning the kernel name; ``platform.system`` by default.
    """

    def __init__(
        self,
        marker_dir: Path = Path("/etc"),
        system: Callable[[], str] | None = None,
    ) -> None:
        self._marker_dir = marker_dir
        self._system = system or platform.system

    def detect(self) -> PlatformInfo:
        """Return the host's ``PlatformInfo``.

        Raises ``UnsupportedPlatformError`` for anything that is neither a
        ``Linux*`` nor a ``Darwin*`` kernel.
        """
        kernel = self._system() or ""
        if kernel.startswith("Darwin"):
            family = PlatformFamily.MACOS
        elif kernel.startswith("Linux"):
            family = self._linux_family()
        else:
            raise UnsupportedPlatformError(
                f"Unsupported operating system {kernel or 'unknown'!r}. "
                "yubiforge runs on macOS and Linux."
            )

        info = PlatformInfo(family=family, kernel=kernel)
        logger.info("platform: kernel=%s family=%s", kernel, family.value)
        return info

    def _linux_family(self) -> PlatformFamily:
        if (self._marker_dir / DEBIAN_MARKER).is_file():
            return PlatformFamily.LINUX_DEBIAN
        if (self._marker_dir / FEDORA_MARKER).is_file():
            return PlatformFamily.LINUX_FEDORA
        return PlatformFamily.LINUX_OTHER
