"""Pin RubyGems and Bundler versions inside a freshly installed Ruby.

Which versions to pin depends on the Ruby release line. The policy is an
ordered rule table matched by range containment on the release part of the
resolved version; the first matching rule wins.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

import semantic_version

from buildctx import BuildContext, Layer
from errors import FilesystemError, InvalidConstraint

logger = logging.getLogger(__name__)

BUNDLER1_VERSION = "1.17.3"
BUNDLER2_VERSION = "2.1.4"


@dataclass(frozen=True)
class GemPinPolicy:
    """Versions to pin for one Ruby release line."""

    rubygems_version: str
    install_bundler1: bool
    bundler1_version: str = BUNDLER1_VERSION
    bundler2_version: str = BUNDLER2_VERSION


@dataclass(frozen=True)
class PinRule:
    """A version range and the policy applied to Ruby versions inside it."""

    range_expr: str
    policy: GemPinPolicy

    def matches(self, version: semantic_version.Version) -> bool:
        return semantic_version.SimpleSpec(self.range_expr).match(version)


PIN_RULES: Tuple[PinRule, ...] = (
    # Older 2.x Ruby versions have been using RubyGems 3.1.2 on GAE/GCF.
    PinRule(">=2.0.0,<3.0.0", GemPinPolicy("3.1.2", install_bundler1=True)),
    # Ruby 3.0 has been using 3.2.26 on GAE/GCF.
    PinRule(">=3.0.0,<3.1.0", GemPinPolicy("3.2.26", install_bundler1=True)),
)
DEFAULT_POLICY = GemPinPolicy("3.3.15", install_bundler1=False)


def select_policy(version: str, rules: Sequence[PinRule] = PIN_RULES) -> GemPinPolicy:
    """Return the pinning policy for Ruby ``version``.

    Pre-release and build suffixes are ignored, so ``3.0.0-preview1`` is on
    the 3.0 line.
    """
    try:
        release = semantic_version.Version.coerce(version).truncate("patch")
    except ValueError as exc:
        raise InvalidConstraint(version, f"invalid Ruby version {version!r}: {exc}") from exc
    for rule in rules:
        if rule.matches(release):
            return rule.policy
    return DEFAULT_POLICY


def pin_commands(gem_path: Path, policy: GemPinPolicy) -> List[List[str]]:
    """The two gem commands that apply ``policy``: update RubyGems, install Bundler."""
    install = [str(gem_path), "install", "--no-document", f"bundler:{policy.bundler2_version}"]
    if policy.install_bundler1:
        install.append(f"bundler:{policy.bundler1_version}")
    return [
        [str(gem_path), "update", "--no-document", "--system", policy.rubygems_version],
        install,
    ]


def pin_gem_and_bundler_version(
    ctx: BuildContext,
    version: str,
    layer: Layer,
    policy: Optional[GemPinPolicy] = None,
) -> GemPinPolicy:
    """Pin RubyGems and Bundler for the Ruby installed in ``layer``.

    Raises:
        CommandFailed: if either gem command fails.
    """
    policy = policy or select_policy(version)
    ruby_bin = layer.path / "bin"
    update_cmd, install_cmd = pin_commands(ruby_bin / "gem", policy)

    ctx.logf("Installing RubyGems %s", policy.rubygems_version)
    ctx.exec(update_cmd)

    # Remove any bundler shipped with the Ruby installation.
    for name in ("bundle", "bundler"):
        try:
            (ruby_bin / name).unlink(missing_ok=True)
        except OSError as exc:
            raise FilesystemError(f"removing out-of-box bundler: {exc}") from exc

    if policy.install_bundler1:
        ctx.logf("Installing bundler %s and %s", policy.bundler1_version, policy.bundler2_version)
    else:
        ctx.logf("Installing bundler %s", policy.bundler2_version)
    ctx.exec(install_cmd)
    return policy


def ruby_post_install(ctx: BuildContext, layer: Layer, version: str) -> None:
    """Post-install hook form of ``pin_gem_and_bundler_version``."""
    pin_gem_and_bundler_version(ctx, version, layer)
