"""Application configuration and defaults."""

from __future__ import annotations

import os
import platform
from dataclasses import dataclass, field
from pathlib import Path


def _default_state_dir() -> Path:
    """Return the default state directory for the current platform.

    KSPEC_DRIFT_STATE_DIR wins, then the platform's data home.
    """
    state_dir = os.environ.get("KSPEC_DRIFT_STATE_DIR", "")
    if state_dir:
        return Path(state_dir)
    if platform.system() == "Windows":
        appdata = os.environ.get("APPDATA", "")
        if appdata:
            return Path(appdata) / "kspec-drift"
        return Path.home() / "AppData" / "Roaming" / "kspec-drift"
    xdg = os.environ.get("XDG_STATE_HOME", "")
    if xdg:
        return Path(xdg) / "kspec-drift"
    return Path.home() / ".local" / "state" / "kspec-drift"


def _default_history_file() -> Path:
    history = os.environ.get("KSPEC_DRIFT_HISTORY_FILE", "")
    if history:
        return Path(history)
    return _default_state_dir() / "history.json"


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name, "")
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _default_policy_kinds() -> list[tuple[str, str]]:
    return [("kyverno.io/v1", "ClusterPolicy")]


@dataclass
class Settings:
    history_file: Path = field(default_factory=_default_history_file)
    # seconds
    monitor_interval: float = field(default_factory=lambda: _env_float("KSPEC_DRIFT_INTERVAL", 300.0))
    request_timeout: float = field(default_factory=lambda: _env_float("KSPEC_DRIFT_REQUEST_TIMEOUT", 30.0))
    ownership_annotation: str = field(
        default_factory=lambda: os.environ.get("KSPEC_DRIFT_OWNERSHIP_ANNOTATION", "kspec.dev/generated"),
    )
    ownership_value: str = "true"
    # (apiVersion, kind) pairs always listed during policy drift detection
    policy_kinds: list[tuple[str, str]] = field(default_factory=_default_policy_kinds)
    default_output: str = field(default_factory=lambda: os.environ.get("KSPEC_DRIFT_OUTPUT", "") or "table")


# Global singleton
settings = Settings()
