"""Interactive confirmation gates in front of destructive actions.

A refusal is never a silent skip: :meth:`PreconditionGate.require` turns it
into ``UserAbortedError`` and the whole run stops.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable

from rich.console import Console
from rich.markup import escape

from yubiforge.errors import UserAbortedError

logger = logging.getLogger(__name__)

YES_PATTERN = re.compile(r"^y(es)?$", re.IGNORECASE)
EMAIL_PATTERN = re.compile(r"^[^@\s<>]+@[^@\s<>]+\.[^@\s<>]+$")

MAX_ASK_ATTEMPTS = 3


def is_yes(answer: str) -> bool:
    """``y`` or ``yes`` in any case, surrounding whitespace ignored."""
    return YES_PATTERN.match(answer.strip()) is not None


def is_email(answer: str) -> bool:
    return EMAIL_PATTERN.match(answer.strip()) is not None


class PreconditionGate:
    """Blocks on one line of terminal input per question.

    Parameters
    ----------
    console:
        Rich Console used for prompting.
    input_func:
        Replacement for ``console.input``; receives the prompt text and
        returns the raw answer.
    """

    def __init__(
        self,
        console: Console | None = None,
        input_func: Callable[[str], str] | None = None,
    ) -> None:
        self._console = console or Console()
        self._input = input_func or self._console.input

    def _read(self, prompt: str) -> str | None:
        try:
            return self._input(prompt)
        except EOFError:
            return None

    def confirm(self, prompt: str) -> bool:
        """Ask a yes/no question; anything but yes (including EOF) is no."""
        answer = self._read(f"[bold]{escape(prompt)}[/bold] (y/N): ")
        accepted = answer is not None and is_yes(answer)
        logger.info("gate %r -> %s", prompt, "accepted" if accepted else "refused")
        return accepted

    def require(self, prompt: str, reason: str, *, hint: str | None = None) -> None:
        """Like :meth:`confirm`, but a refusal raises ``UserAbortedError``."""
        if not self.confirm(prompt):
            raise UserAbortedError(reason, hint=hint)

    def ask(
        self,
        prompt: str,
        *,
        validator: Callable[[str], bool] | None = None,
        invalid_message: str = "Invalid answer.",
    ) -> str:
        """Read a non-empty free-text answer.

        Re-asks a few times on empty or invalid answers, then aborts.
        """
        for _ in range(MAX_ASK_ATTEMPTS):
            answer = self._read(f"[bold]{escape(prompt)}[/bold]: ")
            if answer is None:
                break
            answer = answer.strip()
            if answer and (validator is None or validator(answer)):
                return answer
            self._console.print(f"[yellow]{escape(invalid_message)}[/yellow]")
        raise UserAbortedError(f"No valid answer given for {prompt!r}.")
