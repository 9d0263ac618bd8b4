"""kspec-drift watch - Monitor drift continuously."""

from __future__ import annotations

import logging
import signal
import threading
from pathlib import Path
from typing import Optional

import typer

from kspec_drift.cli.common import fail, load_inputs, parse_duration
from kspec_drift.cli.options import (
    ChecksOption,
    ContextOption,
    KubeconfigOption,
    PoliciesOption,
    SpecOption,
    TypesOption,
)
from kspec_drift.config.settings import settings
from kspec_drift.core.monitor import Monitor, MonitorConfig
from kspec_drift.core.storage import StorageConfig
from kspec_drift.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

app = typer.Typer()


@app.callback(invoke_without_command=True)
def watch(
    spec: Path = SpecOption,
    policies: Optional[Path] = PoliciesOption,
    kubeconfig: Optional[str] = KubeconfigOption,
    context: Optional[str] = ContextOption,
    types: Optional[list[str]] = TypesOption,
    checks: Optional[list[str]] = ChecksOption,
    interval: Optional[str] = typer.Option(None, "--interval", "-i", help="Polling interval, e.g. 5m"),
    auto_remediate: bool = typer.Option(False, "--auto-remediate", help="Remediate drift after each detection"),
    remediate_types: Optional[list[str]] = typer.Option(
        None, "--remediate-type", help="Drift types to auto-remediate (default: policy)",
    ),
    history_file: Optional[Path] = typer.Option(None, "--history-file", help="History file (default: state dir)"),
    retention: Optional[str] = typer.Option(None, "--retention", help="Drop history older than this, e.g. 30d"),
) -> None:
    """Detect drift on a fixed schedule until interrupted."""
    try:
        cluster_spec, k8s, source, check_list = load_inputs(spec, policies, kubeconfig, context, checks)
        config = MonitorConfig(
            interval=parse_duration(interval).total_seconds() if interval else settings.monitor_interval,
            enabled_types=types or [],
            auto_remediate=auto_remediate,
            remediate_types=remediate_types or [],
            storage=StorageConfig(
                type="file",
                path=str(history_file or settings.history_file),
                retention=parse_duration(retention) if retention else None,
            ),
        )
        monitor = Monitor.from_config(k8s, source, check_list, config)
    except ConfigurationError as e:
        fail(f"Invalid monitor configuration: {e}")

    stop = threading.Event()

    def _handle_signal(signum, frame) -> None:
        logger.info("Received signal %d, stopping after the current cycle", signum)
        stop.set()

    signal.signal(signal.SIGINT, _handle_signal)
    signal.signal(signal.SIGTERM, _handle_signal)

    monitor.start(cluster_spec, stop_event=stop)
