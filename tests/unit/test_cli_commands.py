"""Unit tests for the CLI — Typer command registration and exit codes."""

from __future__ import annotations

import pytest
from typer.testing import CliRunner

from yubiforge.cli.app import app
from yubiforge.cli.commands import _workflow
from yubiforge.errors import NoTokenDetectedError
from yubiforge.models.artifacts import Workflow

runner = CliRunner()


class _FakeOrchestrator:
    """Stands in for Orchestrator inside the workflow driver."""

    outcome: BaseException | None = None
    workflows: list[Workflow] = []

    def __init__(self, workflow: Workflow, *, reporter, **kwargs) -> None:
        self.workflow = workflow
        self.reporter = reporter
        _FakeOrchestrator.workflows.append(workflow)

    def run(self) -> None:
        if self.outcome is not None:
            raise self.outcome

    def summary_table(self) -> str:
        return "stage summary"


@pytest.fixture
def fake_orchestrator(monkeypatch: pytest.MonkeyPatch) -> type[_FakeOrchestrator]:
    monkeypatch.setattr(_FakeOrchestrator, "outcome", None)
    monkeypatch.setattr(_FakeOrchestrator, "workflows", [])
    monkeypatch.setattr(_workflow, "Orchestrator", _FakeOrchestrator)
    return _FakeOrchestrator


class TestCliApp:
    def test_no_args_shows_help(self):
        result = runner.invoke(app, [])
        # Typer's no_args_is_help may exit with 0 or 2 depending on version
        assert result.exit_code in (0, 2)
        assert "Usage" in result.output or "usage" in result.output.lower()

    def test_help_lists_workflows(self):
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        assert "ssh" in result.output
        assert "gpg" in result.output

    @pytest.mark.parametrize("command", ["ssh", "gpg"])
    def test_command_help(self, command: str):
        result = runner.invoke(app, [command, "--help"])
        assert result.exit_code == 0

    def test_commands_take_no_options(self):
        result = runner.invoke(app, ["ssh", "--host", "gitlab.com"])
        assert result.exit_code == 2


class TestWorkflowExitCodes:
    def test_ssh_success(self, fake_orchestrator):
        result = runner.invoke(app, ["ssh"])
        assert result.exit_code == 0
        assert fake_orchestrator.workflows == [Workflow.SSH]
        assert "YubiKey SSH setup complete!" in result.output

    def test_gpg_success(self, fake_orchestrator):
        result = runner.invoke(app, ["gpg"])
        assert result.exit_code == 0
        assert fake_orchestrator.workflows == [Workflow.GPG]
        assert "YubiKey GPG setup complete!" in result.output

    def test_provisioning_error_exits_1_with_hint(self, fake_orchestrator):
        fake_orchestrator.outcome = NoTokenDetectedError("No YubiKey detected.")
        result = runner.invoke(app, ["gpg"])
        assert result.exit_code == 1
        assert "No YubiKey detected." in result.output
        assert "pcscd" in result.output
        assert "stage summary" in result.output

    def test_interrupt_exits_1(self, fake_orchestrator):
        fake_orchestrator.outcome = KeyboardInterrupt()
        result = runner.invoke(app, ["ssh"])
        assert result.exit_code == 1
        assert "Interrupted" in result.output
