"""Kubernetes version comparison utilities."""

from __future__ import annotations

from packaging.version import InvalidVersion, Version


def parse_version(v: str) -> Version | None:
    """Parse a Kubernetes version string, returning None on failure.

    Accepts a leading ``v`` and drops vendor suffixes such as ``-eks-4f4795d``.
    """
    if not v:
        return None
    raw = v.strip()
    if raw.startswith("v"):
        raw = raw[1:]
    try:
        return Version(raw)
    except InvalidVersion:
        pass
    try:
        return Version(raw.split("-", 1)[0])
    except InvalidVersion:
        return None


def in_range(current: str, minimum: str, maximum: str) -> bool | None:
    """Return whether ``current`` lies within [minimum, maximum].

    Empty bounds are open. Returns None if any given version is unparseable.
    """
    cur = parse_version(current)
    if cur is None:
        return None
    if minimum:
        low = parse_version(minimum)
        if low is None:
            return None
        if cur < low:
            return False
    if maximum:
        high = parse_version(maximum)
        if high is None:
            return None
        if cur > high:
            return False
    return True


def same_version(a: str, b: str) -> bool:
    va = parse_version(a)
    vb = parse_version(b)
    if va is None or vb is None:
        return False
    return va == vb
