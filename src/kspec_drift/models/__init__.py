"""Data models for kspec-drift."""

from __future__ import annotations

import enum
from dataclasses import dataclass


class Severity(enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]

    @classmethod
    def from_str(cls, s: str | None, default: Severity | None = None) -> Severity | None:
        for member in cls:
            if member.value == s:
                return member
        return default


_SEVERITY_RANK = {
    Severity.LOW: 1,
    Severity.MEDIUM: 2,
    Severity.HIGH: 3,
    Severity.CRITICAL: 4,
}


@dataclass
class SpecInfo:
    name: str = ""
    version: str = ""

    @classmethod
    def from_dict(cls, d: dict) -> SpecInfo:
        if not d:
            return cls()
        return cls(name=d.get("name", ""), version=d.get("version", ""))
