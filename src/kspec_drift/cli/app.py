"""Root Typer application, mounts sub-commands."""

from __future__ import annotations

import logging

import typer
from rich.console import Console
from rich.logging import RichHandler

app = typer.Typer(
    name="kspec-drift",
    help="kspec-drift - Detect and remediate Kubernetes compliance drift.",
    no_args_is_help=True,
)


@app.callback()
def root(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True, show_path=verbose)],
    )
    # The kubernetes client logs every request at DEBUG
    logging.getLogger("urllib3").setLevel(logging.WARNING)


def _register_commands() -> None:
    from kspec_drift.cli.commands.detect_cmd import app as detect_app
    from kspec_drift.cli.commands.remediate_cmd import app as remediate_app
    from kspec_drift.cli.commands.watch_cmd import app as watch_app
    from kspec_drift.cli.commands.history_cmd import app as history_app

    app.add_typer(detect_app, name="detect", help="Detect configuration drift")
    app.add_typer(remediate_app, name="remediate", help="Remediate detected drift")
    app.add_typer(watch_app, name="watch", help="Monitor drift continuously")
    app.add_typer(history_app, name="history", help="Show drift history")


_register_commands()


def main() -> None:
    app()
