"""Synchronous execution of external tools.

Every call to ``ssh-keygen``, ``gpg``, ``git``, package managers and
friends goes through :class:`CommandRunner`, so stages never touch
``subprocess`` directly and tests can substitute a scripted double.

Secrets are only ever written to a child's stdin. Argument lists are safe
to log.
"""

from __future__ import annotations

import logging
import os
import shlex
import shutil
import subprocess
from collections.abc import Mapping, Sequence

from pydantic import BaseModel, ConfigDict

from yubiforge.errors import ExternalToolFailure

logger = logging.getLogger(__name__)


class CommandResult(BaseModel):
    """Outcome of one finished external command."""

    model_config = ConfigDict(frozen=True)

    args: list[str]
    returncode: int
    stdout: str = ""  # empty for interactive commands
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0


def format_command(args: Sequence[str]) -> str:
    """Shell-quoted rendering of *args* for log lines and error messages."""
    return " ".join(shlex.quote(a) for a in args)


class CommandRunner:
    """Runs external tools one at a time, blocking until each exits.

    Parameters
    ----------
    env:
        Extra environment variables merged over ``os.environ`` for every
        child process.
    """

    def __init__(self, env: Mapping[str, str] | None = None) -> None:
        self._env = dict(env or {})

    @property
    def environ(self) -> dict[str, str]:
        merged = dict(os.environ)
        merged.update(self._env)
        return merged

    def which(self, name: str) -> str | None:
        """Path lookup for a binary, ``None`` when absent."""
        return shutil.which(name, path=self.environ.get("PATH"))

    def run(
        self,
        args: Sequence[str],
        *,
        input_text: str | None = None,
        interactive: bool = False,
        check: bool = True,
    ) -> CommandResult:
        """Run *args* to completion.

        Interactive commands inherit the terminal so that touch, PIN and
        sudo prompts reach the user; their output is not captured.
        Captured commands get *input_text* on stdin.

        Raises ``ExternalToolFailure`` when the binary cannot be started, or
        when it exits non-zero and *check* is set.
        """
        argv = [str(a) for a in args]
        logger.debug("exec: %s", format_command(argv))
        try:
            if interactive:
                completed = subprocess.run(argv, env=self.environ, check=False)
                stdout, stderr = "", ""
            else:
                completed = subprocess.run(
                    argv,
                    input=input_text,
                    capture_output=True,
                    text=True,
                    env=self.environ,
                    check=False,
                )
                stdout, stderr = completed.stdout, completed.stderr
        except OSError as exc:
            raise ExternalToolFailure(
                f"Could not start {argv[0]}: {exc}",
                command=argv,
                hint=f"Make sure {argv[0]} is installed and on PATH.",
            ) from exc

        result = CommandResult(
            args=argv,
            returncode=completed.returncode,
            stdout=stdout,
            stderr=stderr,
        )
        logger.debug("exit %d: %s", result.returncode, argv[0])
        if check and not result.ok:
            raise ExternalToolFailure(
                f"{format_command(argv)} exited with status {result.returncode}",
                command=argv,
                returncode=result.returncode,
                stderr=stderr.strip(),
            )
        return result

    def spawn(self, args: Sequence[str]) -> subprocess.Popen[str]:
        """Start *args* with line-buffered pipes on stdin and stdout.

        stderr stays on the terminal so the tool's own messages remain
        visible. Used by the scripted dialogue in ``yubiforge.core.expect``.
        """
        argv = [str(a) for a in args]
        logger.debug("spawn: %s", format_command(argv))
        try:
            return subprocess.Popen(
                argv,
                stdin=subprocess.PIPE,
                stdout=subprocess.PIPE,
                text=True,
                bufsize=1,
                env=self.environ,
            )
        except OSError as exc:
            raise ExternalToolFailure(
                f"Could not start {argv[0]}: {exc}",
                command=argv,
            ) from exc
