"""Compliance check result models."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any

from kspec_drift.models import Severity


class CheckStatus(enum.Enum):
    PASS = "pass"
    FAIL = "fail"
    WARN = "warn"
    SKIP = "skip"


@dataclass
class CheckResult:
    name: str
    status: CheckStatus
    message: str = ""
    severity: Severity | None = None
    evidence: dict[str, Any] = field(default_factory=dict)
    remediation: str = ""
