"""Idempotent edits of ``gpg-agent.conf``.

Directive policy: the file is created (truncated) on first write; after
that an identical directive is left alone, a directive with the same name
but another value is replaced in place, and a new one is appended. Running
the setup any number of times leaves exactly one line per directive.
"""

from __future__ import annotations

import logging
from pathlib import Path

from yubiforge.models.artifacts import ConfigMutation

logger = logging.getLogger(__name__)


class GpgAgentConfig:
    """A gpg-agent configuration file of ``name value`` lines."""

    def __init__(self, path: Path) -> None:
        self.path = path

    def get_directive(self, name: str) -> str | None:
        """Value of the first *name* directive, or ``None``."""
        if not self.path.exists():
            return None
        for line in self.path.read_text(encoding="utf-8").splitlines():
            parts = line.split(None, 1)
            if parts and parts[0] == name:
                return parts[1].strip() if len(parts) > 1 else ""
        return None

    def ensure_directive(self, name: str, value: str) -> ConfigMutation:
        """Make ``name value`` the single *name* directive in the file."""
        directive = f"{name} {value}"

        if not self.path.exists():
            self.path.parent.mkdir(mode=0o700, parents=True, exist_ok=True)
            self.path.write_text(directive + "\n", encoding="utf-8")
            logger.info("created %s with %s", self.path, name)
            return ConfigMutation(target=str(self.path), text=directive)

        lines = self.path.read_text(encoding="utf-8").splitlines()
        kept: list[str] = []
        placed = False
        changed = False
        for line in lines:
            parts = line.split(None, 1)
            if not parts or parts[0] != name:
                kept.append(line)
                continue
            if placed:
                changed = True  # drop duplicates left by earlier appends
                continue
            placed = True
            if len(parts) < 2 or parts[1].strip() != value:
                changed = True
                kept.append(directive)
            else:
                kept.append(line)

        if not placed:
            kept.append(directive)
            changed = True

        if not changed:
            logger.info("%s already has %s", self.path, directive)
            return ConfigMutation(target=str(self.path), text=directive, applied=False)

        self.path.write_text("\n".join(kept) + "\n", encoding="utf-8")
        logger.info("updated %s directive in %s", name, self.path)
        return ConfigMutation(target=str(self.path), text=directive)
