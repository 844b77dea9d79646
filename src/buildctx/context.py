"""Filesystem-backed build context.

Provides what the installers need from the surrounding build: layer
directories and their metadata, cache hit/miss bookkeeping, the build
manifest, process execution and the environment handed to later steps.
"""
from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Sequence

from common.subprocess_utils import run_command
from constants import Constants
from errors import FilesystemError
from .layer import BomEntry, Layer, LayerMetadataStore

logger = logging.getLogger(__name__)


class BuildContext:
    """State shared by the install steps of one build."""

    def __init__(
        self,
        layers_dir: Path,
        app_root: Path = Path("."),
        stack_id: Optional[str] = None,
        env: Optional[Mapping[str, str]] = None,
    ):
        self.layers_dir = Path(layers_dir)
        self.app_root = Path(app_root)
        self.env: Dict[str, str] = dict(os.environ if env is None else env)
        self._stack_id = stack_id or self.env.get(Constants.ENV_STACK_ID) or Constants.DEFAULT_STACK
        self._store = LayerMetadataStore(self.layers_dir)
        self.cache_stats: Dict[str, str] = {}
        self.bom: List[BomEntry] = []

    @property
    def stack_id(self) -> str:
        return self._stack_id

    def layer(self, name: str, *, cache: bool = True, launch: bool = False, build: bool = True) -> Layer:
        """Return the layer ``name``, creating its directory if needed."""
        path = self.layers_dir / name
        try:
            path.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise FilesystemError(f"creating layer {name!r}: {exc}") from exc
        return Layer(name=name, path=path, cache=cache, launch=launch, build=build)

    def layer_metadata(self, layer: Layer) -> Dict[str, str]:
        return self._store.load(layer.name)

    def get_metadata(self, layer: Layer, key: str) -> str:
        """Return one metadata value, or "" when unset."""
        return self._store.load(layer.name).get(key, "")

    def set_metadata(self, layer: Layer, values: Mapping[str, str]) -> None:
        """Merge ``values`` into the layer metadata in a single atomic write."""
        merged = self._store.load(layer.name)
        merged.update({str(k): str(v) for k, v in values.items()})
        self._store.save(layer.name, merged)

    def clear_layer(self, layer: Layer) -> None:
        """Remove everything in the layer directory, leaving it empty.

        Clearing an empty or missing directory is not an error.
        """
        try:
            if layer.path.exists():
                shutil.rmtree(layer.path)
            layer.path.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise FilesystemError(f"clearing layer {layer.name!r}: {exc}") from exc

    @staticmethod
    def is_populated(layer: Layer) -> bool:
        return layer.path.is_dir() and any(layer.path.iterdir())

    def cache_hit(self, name: str) -> None:
        self.cache_stats[name] = "hit"

    def cache_miss(self, name: str) -> None:
        self.cache_stats[name] = "miss"

    def add_bom_entry(self, entry: BomEntry) -> None:
        self.bom.append(entry)

    def exec(self, command: Sequence[str], cwd: Optional[Path] = None):
        """Run ``command`` with the build environment; raises ``CommandFailed``."""
        return run_command(command, cwd=cwd or self.app_root, env=self.env)

    def prepend_path(self, directory: Path) -> str:
        """Put ``directory`` first on this context's PATH and return the new value."""
        current = self.env.get("PATH", "")
        self.env["PATH"] = f"{directory}{os.pathsep}{current}" if current else str(directory)
        return self.env["PATH"]

    def logf(self, msg: str, *args) -> None:
        logger.info(msg, *args)

    def warnf(self, msg: str, *args) -> None:
        logger.warning(msg, *args)
