"""Version resolver using semantic versioning (npm range grammar)."""

import logging
from typing import Iterable, List, Optional, Sequence

import semantic_version

from common.logging_utils import extra_context, is_debug_enabled
from errors import InvalidConstraint, NoMatchingVersion
from .models import ResolutionMode, ResolutionResult
from .parser import parse_constraint

logger = logging.getLogger(__name__)


def _sort_key(ver: semantic_version.Version):
    # Precedence ignores build metadata; the build tuple breaks ties so the
    # result never depends on catalog order.
    return (ver.precedence_key, ver.build)


def parse_versions(candidates: Iterable[str]) -> List[semantic_version.Version]:
    """Parse candidate strings, skipping anything that is not valid semver."""
    parsed = []
    for v in candidates:
        try:
            parsed.append(semantic_version.Version(v))
        except (ValueError, TypeError):
            if is_debug_enabled(logger):
                logger.debug(
                    "Skipping non-semver candidate",
                    extra=extra_context(
                        event="parse",
                        component="resolver",
                        action="parse_versions",
                        outcome="invalid",
                        candidate=str(v)
                    )
                )
    return parsed


def max_version(candidates: Iterable[semantic_version.Version]) -> Optional[semantic_version.Version]:
    """Return the highest version under semver precedence, or None if empty."""
    ordered = sorted(candidates, key=_sort_key)
    return ordered[-1] if ordered else None


def compile_range(spec_str: str):
    """Compile a range expression, preferring the npm grammar.

    Raises:
        InvalidConstraint: if neither the npm nor the simple grammar accepts it.
    """
    try:
        return semantic_version.NpmSpec(spec_str)
    except ValueError:
        # Comma-separated comparator lists (">=1.0.0,<2.0.0") are SimpleSpec-only.
        try:
            return semantic_version.SimpleSpec(spec_str)
        except ValueError as e:
            raise InvalidConstraint(spec_str, f"invalid version constraint {spec_str!r}: {e}") from e


class VersionResolver:
    """Select exactly one version from a candidate set for a constraint.

    Pure and deterministic: the same constraint and candidate set always give
    the same answer, whatever order the catalog listed the candidates in.
    """

    def resolve(self, constraint: Optional[str], candidates: Sequence[str]) -> str:
        """Return the version ``constraint`` resolves to among ``candidates``.

        Raises:
            InvalidConstraint: the constraint does not parse.
            NoMatchingVersion: no candidate satisfies the constraint.
        """
        return self.resolve_result("", constraint, candidates).resolved_version

    def resolve_result(
        self, artifact: str, constraint: Optional[str], candidates: Sequence[str]
    ) -> ResolutionResult:
        """Like ``resolve`` but returns the full ``ResolutionResult``."""
        spec = parse_constraint(constraint)
        if spec is None:
            resolved = self._pick_latest(candidates)
            mode = ResolutionMode.LATEST
        elif spec.mode == ResolutionMode.EXACT:
            resolved = self._pick_exact(spec.raw, candidates)
            mode = spec.mode
        else:
            resolved = self._pick_range(spec.raw, candidates)
            mode = spec.mode

        if is_debug_enabled(logger):
            logger.debug(
                "Resolved version",
                extra=extra_context(
                    event="decision",
                    component="resolver",
                    action="resolve",
                    artifact=artifact or None,
                    requested_spec=constraint,
                    resolved_version=resolved,
                    resolution_mode=mode.value,
                    candidate_count=len(candidates)
                )
            )
        return ResolutionResult(
            artifact=artifact,
            requested_spec=constraint,
            resolved_version=resolved,
            resolution_mode=mode,
            candidate_count=len(candidates),
        )

    def _pick_latest(self, candidates: Sequence[str]) -> str:
        """Pick the highest version from candidates."""
        best = max_version(parse_versions(candidates))
        if best is None:
            raise NoMatchingVersion("", "no valid semantic versions available")
        return str(best)

    def _pick_exact(self, version: str, candidates: Sequence[str]) -> str:
        """Check if exact version exists in candidates."""
        if version in candidates:
            return version
        raise NoMatchingVersion(version, f"version {version!r} not found")

    def _pick_range(self, spec_str: str, candidates: Sequence[str]) -> str:
        """Apply semver range and pick highest matching version."""
        spec = compile_range(spec_str)
        matching = [ver for ver in parse_versions(candidates) if spec.match(ver)]
        best = max_version(matching)
        if best is None:
            raise NoMatchingVersion(spec_str, f"no versions match {spec_str!r}")
        return str(best)
