"""Artifact layouts and the single dispatch point that unpacks them."""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Union

from common import fetch
from errors import InternalError


@dataclass(frozen=True)
class TarballStripped:
    """A .tar.gz whose entries lose ``strip_components`` leading path segments."""

    strip_components: int = 0


@dataclass(frozen=True)
class ZipFlattened:
    """A zip whose payload sits under ``inner_dir`` and is hoisted one level."""

    inner_dir: str


@dataclass(frozen=True)
class SingleBinary:
    """One executable file written to ``relative_path`` inside the layer."""

    relative_path: str
    mode: int = 0o755


ArtifactKind = Union[TarballStripped, ZipFlattened, SingleBinary]


def unpack(kind: ArtifactKind, url: str, dest_dir: Path) -> None:
    """Fetch ``url`` and lay it out in ``dest_dir`` according to ``kind``."""
    dest_dir = Path(dest_dir)
    if isinstance(kind, TarballStripped):
        fetch.fetch_archive(url, dest_dir, kind.strip_components)
    elif isinstance(kind, ZipFlattened):
        fetch.fetch_zip_and_flatten(url, dest_dir, kind.inner_dir)
    elif isinstance(kind, SingleBinary):
        fetch.fetch_binary(url, dest_dir / kind.relative_path, kind.mode)
    else:
        raise InternalError(f"unknown artifact kind {kind!r}")
