"""Scripted dialogues with gpg's interactive editors.

``gpg --edit-key`` and ``gpg --card-edit`` are driven over their machine
interface (``--command-fd 0 --status-fd 1``): gpg announces every question
as a status line such as ``[GNUPG:] GET_LINE keyedit.prompt`` and waits for
one line on stdin. A :class:`DialogueScript` is the ordered list of
questions we expect and the answer to each one.

Any question that does not match the next expected step stops the dialogue
and kills gpg before anything else is sent. ``GET_HIDDEN`` (a PIN or
passphrase requested on the command channel) always stops it: PINs are
entered by the user through pinentry, never by us.
"""

from __future__ import annotations

import logging
import re
from collections import deque
from collections.abc import Sequence

from pydantic import BaseModel, ConfigDict

from yubiforge.core.runner import CommandRunner, format_command
from yubiforge.errors import ExternalToolFailure, PromptMismatchError

logger = logging.getLogger(__name__)

STATUS_PREFIX = "[GNUPG:] "
QUESTION_KEYWORDS = frozenset({"GET_LINE", "GET_BOOL", "GET_HIDDEN"})
FAILURE_KEYWORDS = frozenset({"SC_OP_FAILURE", "KEY_NOT_CREATED"})


class PromptStep(BaseModel):
    """Expected question (regex over gpg's prompt keyword) and our answer."""

    model_config = ConfigDict(frozen=True)

    prompt: str
    response: str
    optional: bool = False  # skipped when gpg does not ask it

    def matches(self, keyword: str) -> bool:
        return re.fullmatch(self.prompt, keyword) is not None


class DialogueScript(BaseModel):
    """Ordered questions and answers for one editor session."""

    model_config = ConfigDict(frozen=True)

    name: str
    steps: list[PromptStep]


def parse_status_line(line: str) -> tuple[str, str] | None:
    """Split ``[GNUPG:] KEYWORD args`` into ``(KEYWORD, args)``."""
    if not line.startswith(STATUS_PREFIX):
        return None
    keyword, _, rest = line[len(STATUS_PREFIX):].strip().partition(" ")
    return keyword, rest.strip()


def run_dialogue(
    runner: CommandRunner, args: Sequence[str], script: DialogueScript
) -> list[tuple[str, str]]:
    """Run *args* and answer its questions according to *script*.

    Returns the transcript of ``(prompt, response)`` pairs that were sent.
    Raises ``PromptMismatchError`` on an unexpected or hidden question, or
    when gpg exits before the script is complete; ``ExternalToolFailure``
    when gpg reports a card failure or exits non-zero.
    """
    argv = [str(a) for a in args]
    pending = deque(script.steps)
    transcript: list[tuple[str, str]] = []
    proc = runner.spawn(argv)

    def _abort(exc: ExternalToolFailure) -> ExternalToolFailure:
        proc.kill()
        proc.wait()
        logger.error("%s aborted: %s", script.name, exc)
        return exc

    try:
        assert proc.stdout is not None and proc.stdin is not None
        for raw in proc.stdout:
            parsed = parse_status_line(raw.rstrip("\n"))
            if parsed is None:
                continue
            keyword, prompt = parsed

            if keyword in FAILURE_KEYWORDS:
                raise _abort(ExternalToolFailure(
                    f"{script.name}: gpg reported {keyword} {prompt}".strip(),
                    command=argv,
                    hint="Check the PIN and that the token stayed connected.",
                ))
            if keyword not in QUESTION_KEYWORDS:
                continue
            if keyword == "GET_HIDDEN":
                raise _abort(PromptMismatchError(
                    f"{script.name}: gpg asked for a secret ({prompt}) on the "
                    "command channel",
                    command=argv,
                ))

            while pending and pending[0].optional and not pending[0].matches(prompt):
                pending.popleft()
            if not pending or not pending[0].matches(prompt):
                expected = pending[0].prompt if pending else "end of dialogue"
                raise _abort(PromptMismatchError(
                    f"{script.name}: unexpected prompt {prompt!r} "
                    f"(expected {expected!r})",
                    command=argv,
                ))

            step = pending.popleft()
            logger.debug("%s: %s -> %r", script.name, prompt, step.response)
            proc.stdin.write(step.response + "\n")
            proc.stdin.flush()
            transcript.append((prompt, step.response))

        proc.stdin.close()
        returncode = proc.wait()
    finally:
        if proc.poll() is None:
            proc.kill()
            proc.wait()

    unanswered = [s for s in pending if not s.optional]
    if unanswered:
        raise PromptMismatchError(
            f"{script.name}: gpg finished before {unanswered[0].prompt!r} was asked",
            command=argv,
            returncode=returncode,
        )
    if returncode != 0:
        raise ExternalToolFailure(
            f"{format_command(argv)} exited with status {returncode}",
            command=argv,
            returncode=returncode,
        )
    return transcript
