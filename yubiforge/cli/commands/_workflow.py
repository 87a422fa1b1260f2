"""Shared driver for the workflow commands.

Runs the orchestrator, prints the stage summary and maps every fatal
condition to exit status 1 with the error and its remediation hint.
"""

from __future__ import annotations

import typer
from rich.console import Console

from yubiforge.core.orchestrator import Orchestrator
from yubiforge.core.reporter import Reporter
from yubiforge.errors import ProvisioningError
from yubiforge.models.artifacts import Workflow

console = Console()

_DONE_MESSAGES: dict[Workflow, str] = {
    Workflow.SSH: "YubiKey SSH setup complete!",
    Workflow.GPG: "YubiKey GPG setup complete!",
}


def run_workflow(workflow: Workflow) -> None:
    """Run *workflow* end to end; raises ``typer.Exit(1)`` on failure."""
    reporter = Reporter(console)
    orchestrator = Orchestrator(workflow, reporter=reporter)

    try:
        orchestrator.run()
    except ProvisioningError as exc:
        reporter.fail(str(exc), exc.hint)
        console.print(orchestrator.summary_table())
        raise typer.Exit(code=1) from exc
    except KeyboardInterrupt:
        console.print()
        reporter.fail("Interrupted; re-run once you are ready.")
        raise typer.Exit(code=1) from None

    console.print(orchestrator.summary_table())
    reporter.success(_DONE_MESSAGES[workflow])
