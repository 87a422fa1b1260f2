"""Main Typer application — imports and registers all CLI commands.

Entry point: ``yubiforge`` (configured via pyproject.toml scripts).
"""

from __future__ import annotations

import logging

import typer
from rich.console import Console
from rich.logging import RichHandler

from yubiforge.cli.commands.gpg_cmd import gpg_cmd
from yubiforge.cli.commands.ssh_cmd import ssh_cmd
from yubiforge.config import config

app = typer.Typer(
    name="yubiforge",
    help="yubiforge: set up a YubiKey for SSH authentication and GPG commit signing.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
)

app.command(name="ssh", help="Create a hardware-backed SSH key and configure SSH.")(ssh_cmd)
app.command(name="gpg", help="Move a new GPG key onto the YubiKey and sign commits with it.")(gpg_cmd)


def configure_logging(level: str) -> None:
    """Diagnostics go to stderr through Rich; progress output stays on stdout."""
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )


@app.callback()
def main_callback() -> None:
    configure_logging(config.log_level)


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
