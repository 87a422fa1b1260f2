"""Idempotent ``Host`` stanza management for the OpenSSH client config.

Stanzas written by yubiforge start with a marker comment so that a rerun
can recognise, keep or replace them. Stanzas carrying the marker of the
original shell setup script count as managed too, which collapses the
duplicates that script used to append on every run.
"""

from __future__ import annotations

import logging
from enum import Enum
from pathlib import Path

logger = logging.getLogger(__name__)

MARKER_TEMPLATE = "# YubiKey SSH configuration for {host} (managed by yubiforge)"
LEGACY_MARKERS = ("# YubiKey SSH configuration for GitHub (added by script)",)


class StanzaOutcome(str, Enum):
    """What :meth:`SshConfigFile.ensure_host_stanza` did."""

    APPENDED = "appended"
    REPLACED = "replaced"
    UNCHANGED = "unchanged"
    CONFLICT = "conflict"  # an unmanaged stanza already covers the host


def render_host_stanza(host: str, identity_file: Path) -> list[str]:
    return [
        MARKER_TEMPLATE.format(host=host),
        f"Host {host}",
        f"  IdentityFile {identity_file}",
        "  IdentitiesOnly yes",
    ]


def _is_host_line(line: str, host: str | None = None) -> bool:
    tokens = line.strip().split()
    if not tokens or tokens[0].lower() != "host":
        return False
    return host is None or host.lower() in (t.lower() for t in tokens[1:])


class SshConfigFile:
    """The user's ``~/.ssh/config``."""

    def __init__(self, path: Path) -> None:
        self.path = path

    def _lines(self) -> list[str]:
        if not self.path.exists():
            return []
        return self.path.read_text(encoding="utf-8").splitlines()

    def _is_marker(self, line: str, host: str) -> bool:
        stripped = line.strip()
        return stripped == MARKER_TEMPLATE.format(host=host) or (
            stripped in LEGACY_MARKERS and host.lower() == "github.com"
        )

    def _managed_blocks(self, lines: list[str], host: str) -> list[tuple[int, int]]:
        """``(start, end)`` slices of every managed stanza for *host*."""
        blocks: list[tuple[int, int]] = []
        i = 0
        while i < len(lines):
            if not self._is_marker(lines[i], host):
                i += 1
                continue
            end = i + 1
            if end < len(lines) and _is_host_line(lines[end]):
                end += 1
            while end < len(lines) and lines[end][:1] in (" ", "\t") and lines[end].strip():
                end += 1
            blocks.append((i, end))
            i = end
        return blocks

    def count_host_stanzas(self, host: str) -> int:
        """Number of ``Host`` lines naming *host*."""
        return sum(1 for line in self._lines() if _is_host_line(line, host))

    def ensure_host_stanza(self, host: str, identity_file: Path) -> StanzaOutcome:
        """Leave exactly one managed stanza for *host* pointing at *identity_file*."""
        lines = self._lines()
        stanza = render_host_stanza(host, identity_file)
        blocks = self._managed_blocks(lines, host)

        if blocks:
            first_start, first_end = blocks[0]
            if len(blocks) == 1 and lines[first_start:first_end] == stanza:
                logger.info("%s already has the stanza for %s", self.path, host)
                return StanzaOutcome.UNCHANGED
            for start, end in reversed(blocks[1:]):
                del lines[start:end]
                # drop the blank separator line the old append left behind
                if start > 0 and start - 1 < len(lines) and not lines[start - 1].strip():
                    del lines[start - 1]
            lines[first_start:first_end] = stanza
            self._write(lines)
            logger.info("replaced stanza for %s in %s", host, self.path)
            return StanzaOutcome.REPLACED

        if any(_is_host_line(line, host) for line in lines):
            logger.warning("unmanaged Host stanza for %s in %s left as is", host, self.path)
            return StanzaOutcome.CONFLICT

        if lines and lines[-1].strip():
            lines.append("")
        lines.extend(stanza)
        self._write(lines)
        logger.info("appended stanza for %s to %s", host, self.path)
        return StanzaOutcome.APPENDED

    def _write(self, lines: list[str]) -> None:
        self.path.parent.mkdir(mode=0o700, parents=True, exist_ok=True)
        self.path.write_text("\n".join(lines) + "\n", encoding="utf-8")
        self.path.chmod(0o600)
