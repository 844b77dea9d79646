"""Constraint parsing utilities for version resolution."""

from typing import Optional

import semantic_version

from .models import ResolutionMode, VersionSpec


def is_exact_version(s: Optional[str]) -> bool:
    """Return True if ``s`` is a complete semantic version (no range operators).

    Pure syntactic check used to skip catalog lookups.
    """
    if not s:
        return False
    return semantic_version.validate(s.strip())


def normalize_version(s: str) -> str:
    """Strip whitespace and a leading ``v`` from an exact version string."""
    s = s.strip()
    if s[:1] in ("v", "V") and is_exact_version(s[1:]):
        return s[1:]
    return s


def parse_constraint(raw: Optional[str]) -> Optional[VersionSpec]:
    """Classify a raw constraint; ``None`` means resolve to the latest version."""
    if raw is None:
        return None
    spec = raw.strip()
    if spec == '' or spec.lower() == 'latest':
        return None
    spec = normalize_version(spec)
    if is_exact_version(spec):
        return VersionSpec(raw=spec, mode=ResolutionMode.EXACT)
    return VersionSpec(raw=spec, mode=ResolutionMode.RANGE)
