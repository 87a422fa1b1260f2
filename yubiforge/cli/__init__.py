"""yubiforge CLI — Typer-based command-line interface.

Provides the ``yubiforge`` command with one subcommand per workflow
(``ssh``, ``gpg``). Neither takes options: every decision is made
interactively or probed from the environment.

All output uses Rich for formatted terminal display.
"""
