"""Decide whether a layer's existing contents match a resolved version and platform."""
from __future__ import annotations

from typing import Mapping, Optional

from buildctx import BuildContext, Layer
from constants import Constants


def is_valid(metadata: Optional[Mapping[str, str]], resolved_version: str, platform: str) -> bool:
    """True iff the stored version and stack both equal the requested ones.

    A missing key, or missing metadata altogether, is a miss.
    """
    if not metadata:
        return False
    version = metadata.get(Constants.VERSION_KEY)
    stack = metadata.get(Constants.STACK_KEY)
    if version is None or stack is None:
        return False
    return version == resolved_version and stack == platform


def is_cached(ctx: BuildContext, layer: Layer, resolved_version: str) -> bool:
    """Check the layer's stored metadata against ``resolved_version`` on the current stack."""
    return is_valid(ctx.layer_metadata(layer), resolved_version, ctx.stack_id)


def update(ctx: BuildContext, layer: Layer, resolved_version: str, platform: str) -> None:
    """Record ``(resolved_version, platform)`` for the layer in one write.

    Call only after the layer contents have been installed successfully.
    """
    ctx.set_metadata(layer, {
        Constants.VERSION_KEY: resolved_version,
        Constants.STACK_KEY: platform,
    })
