"""Tests for interactive confirmation gates."""

from __future__ import annotations

import pytest

from yubiforge.core.gate import MAX_ASK_ATTEMPTS, PreconditionGate, is_email, is_yes
from yubiforge.errors import UserAbortedError


@pytest.mark.parametrize("answer", ["y", "Y", "yes", "YES", "Yes", " y ", "yEs"])
def test_is_yes_accepts(answer: str):
    assert is_yes(answer)


@pytest.mark.parametrize("answer", ["", "n", "no", "yeah", "ye", "sure", "y e s", "1"])
def test_is_yes_rejects(answer: str):
    assert not is_yes(answer)


def test_is_email():
    assert is_email("ada@example.com")
    assert not is_email("ada")
    assert not is_email("ada@example")
    assert not is_email("Ada <ada@example.com>")


class TestConfirm:
    def test_yes(self, gate: PreconditionGate, answers):
        answers.extend(["yes"])
        assert gate.confirm("Proceed?")
        assert "Proceed?" in answers.prompts[0]
        assert "(y/N)" in answers.prompts[0]

    def test_anything_else_is_no(self, gate: PreconditionGate, answers):
        answers.extend(["yep"])
        assert not gate.confirm("Proceed?")

    def test_eof_is_no(self, gate: PreconditionGate):
        assert not gate.confirm("Proceed?")


class TestRequire:
    def test_accepted(self, gate: PreconditionGate, answers):
        answers.extend(["y"])
        gate.require("Proceed?", "aborted")

    def test_refusal_raises(self, gate: PreconditionGate, answers):
        answers.extend(["n"])
        with pytest.raises(UserAbortedError, match="aborted") as exc_info:
            gate.require("Proceed?", "aborted", hint="do the thing")
        assert exc_info.value.hint == "do the thing"


class TestAsk:
    def test_returns_stripped_answer(self, gate: PreconditionGate, answers):
        answers.extend(["  Ada Lovelace "])
        assert gate.ask("Name") == "Ada Lovelace"

    def test_reasks_on_invalid(self, gate: PreconditionGate, answers, output):
        answers.extend(["", "nope", "ada@example.com"])
        assert gate.ask("Email", validator=is_email, invalid_message="Bad email") == (
            "ada@example.com"
        )
        assert len(answers.prompts) == 3
        assert "Bad email" in output()

    def test_gives_up(self, gate: PreconditionGate, answers):
        answers.extend(["x"] * MAX_ASK_ATTEMPTS)
        with pytest.raises(UserAbortedError):
            gate.ask("Email", validator=is_email)

    def test_eof_aborts(self, gate: PreconditionGate):
        with pytest.raises(UserAbortedError):
            gate.ask("Name")
