"""Key-value access to git's global configuration."""

from __future__ import annotations

import logging

from yubiforge.core.runner import CommandRunner
from yubiforge.models.artifacts import ConfigMutation

logger = logging.getLogger(__name__)


class GitConfigStore:
    """``git config --global`` as a store. ``set`` is last-writer-wins."""

    def __init__(self, runner: CommandRunner, *, git: str = "git") -> None:
        self._runner = runner
        self._git = git

    def get(self, key: str) -> str | None:
        result = self._runner.run([self._git, "config", "--global", "--get", key], check=False)
        if not result.ok:
            return None
        return result.stdout.strip()

    def set(self, key: str, value: str) -> ConfigMutation:
        previous = self.get(key)
        self._runner.run([self._git, "config", "--global", key, value])
        if previous is not None and previous != value:
            logger.info("git %s: %s -> %s", key, previous, value)
        return ConfigMutation(
            target=f"git:{key}", text=value, applied=previous != value
        )
