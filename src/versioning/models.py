"""Data models for version constraints and resolution."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class ResolutionMode(Enum):
    """Resolution strategy derived from the constraint."""
    EXACT = "exact"
    RANGE = "range"
    LATEST = "latest"


@dataclass(frozen=True)
class VersionSpec:
    """Normalized representation of a version constraint."""
    raw: str
    mode: ResolutionMode


@dataclass(frozen=True)
class ResolutionResult:
    """Resolution outcome to feed downstream logging and manifests."""
    artifact: str
    requested_spec: Optional[str]
    resolved_version: str
    resolution_mode: ResolutionMode
    candidate_count: int
