"""User-facing progress output on a Rich console.

Color scheme
------------
- blue    : INFO
- green   : SUCCESS / PASSED
- yellow  : WARNING / RUNNING
- red     : ERROR / FAILED / BLOCKED
"""

from __future__ import annotations

from collections.abc import Sequence

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from yubiforge.models.stages import StageDefinition, StageState, StageTransition

_STATE_ICONS: dict[StageState, str] = {
    StageState.PASSED: "[green]PASSED[/green]",
    StageState.FAILED: "[bold red]FAILED[/bold red]",
    StageState.RUNNING: "[yellow]RUNNING[/yellow]",
    StageState.NOT_STARTED: "[dim]NOT STARTED[/dim]",
    StageState.BLOCKED: "[bold red]BLOCKED[/bold red]",
}


class Reporter:
    """Tagged status lines, public key panels and the run summary.

    Parameters
    ----------
    console:
        Rich Console instance. A new one is created if not provided.
    """

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()

    def info(self, message: str) -> None:
        self.console.print(f"[bold blue]INFO[/bold blue]     {escape(message)}")

    def success(self, message: str) -> None:
        self.console.print(f"[bold green]SUCCESS[/bold green]  {escape(message)}")

    def warn(self, message: str) -> None:
        self.console.print(f"[bold yellow]WARNING[/bold yellow]  {escape(message)}")

    def fail(self, message: str, hint: str = "") -> None:
        self.console.print(f"[bold red]ERROR[/bold red]    {escape(message)}")
        if hint:
            self.console.print(f"         [dim]{escape(hint)}[/dim]")

    def show_public_artifact(self, title: str, text: str, upload_url: str) -> None:
        """Print public key material for manual upload."""
        self.console.print()
        self.console.print(
            Panel(
                escape(text.strip()),
                title=f"[bold]{escape(title)}[/bold]",
                border_style="yellow",
                padding=(1, 2),
            )
        )
        self.success("Copy the entire key above and add it to your account:")
        self.console.print(f"  [link={upload_url}]{escape(upload_url)}[/link]")
        self.console.print()

    def summary_table(
        self,
        definitions: Sequence[StageDefinition],
        states: dict[str, StageState],
        transitions: Sequence[StageTransition] = (),
    ) -> Table:
        """Build a table of final stage states, with failure details."""
        details: dict[str, str] = {
            t.stage_id: t.detail for t in transitions if t.detail
        }
        table = Table(title="Provisioning Stages", show_lines=False)
        table.add_column("#", justify="right", style="dim")
        table.add_column("Stage", style="cyan")
        table.add_column("State", justify="center")
        table.add_column("Detail")
        for sd in definitions:
            state = states.get(sd.stage_id, StageState.NOT_STARTED)
            table.add_row(
                str(sd.ordinal),
                sd.display_name,
                _STATE_ICONS[state],
                escape(details.get(sd.stage_id, "")),
            )
        return table
