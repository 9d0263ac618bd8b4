"""kspec-drift history - Show recorded drift events and statistics."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer

from kspec_drift.cli.common import fail, parse_duration
from kspec_drift.cli.options import OutputOption
from kspec_drift.config.settings import settings
from kspec_drift.core.storage import FileStorage
from kspec_drift.exceptions import ConfigurationError
from kspec_drift.models.drift import utcnow
from kspec_drift.output.formatters import output_history

app = typer.Typer()


@app.callback(invoke_without_command=True)
def history(
    output: str = OutputOption,
    since: Optional[str] = typer.Option(None, "--since", help="Only events newer than this, e.g. 24h"),
    history_file: Optional[Path] = typer.Option(None, "--history-file", help="History file (default: state dir)"),
    clear: bool = typer.Option(False, "--clear", help="Delete all recorded history"),
) -> None:
    """Display historical drift events and statistics."""
    store = FileStorage(history_file or settings.history_file)
    if clear:
        store.clear()
        typer.echo("Drift history cleared.")
        return

    try:
        cutoff = utcnow() - parse_duration(since) if since else None
        result = store.get_history(cutoff)
    except (ConfigurationError, ValueError) as e:
        fail(f"Failed to read drift history: {e}")
    output_history(result, output)
