"""Layers and their persisted metadata."""
from __future__ import annotations

import json
import logging
import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping

from errors import FilesystemError, InternalError

logger = logging.getLogger(__name__)


@dataclass
class Layer:
    """An installation directory owned by one build step."""

    name: str
    path: Path
    cache: bool = True
    launch: bool = False
    build: bool = True


@dataclass(frozen=True)
class BomEntry:
    """A build-manifest record for one resolved artifact."""

    name: str
    metadata: Dict[str, Any] = field(default_factory=dict)
    launch: bool = False
    build: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "metadata": dict(self.metadata),
            "launch": self.launch,
            "build": self.build,
        }


class LayerMetadataStore:
    """Key/value metadata kept beside each layer as ``<layers_dir>/<name>.json``.

    The file lives outside the layer directory so clearing a layer does not
    touch it. Writes replace the whole file atomically.
    """

    def __init__(self, layers_dir: Path):
        self.layers_dir = Path(layers_dir)

    def path_for(self, name: str) -> Path:
        return self.layers_dir / f"{name}.json"

    def load(self, name: str) -> Dict[str, str]:
        path = self.path_for(name)
        if not path.is_file():
            return {}
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise InternalError(f"layer metadata {path} is not valid JSON: {exc}") from exc
        except OSError as exc:
            raise FilesystemError(f"reading layer metadata {path}: {exc}") from exc
        metadata = data.get("metadata") if isinstance(data, dict) else None
        if not isinstance(metadata, dict):
            return {}
        return {str(k): str(v) for k, v in metadata.items()}

    def save(self, name: str, values: Mapping[str, str]) -> None:
        """Replace the stored metadata for ``name`` with ``values``."""
        path = self.path_for(name)
        payload = json.dumps({"metadata": dict(values)}, indent=2, sort_keys=True)
        try:
            self.layers_dir.mkdir(parents=True, exist_ok=True)
            fd, tmp = tempfile.mkstemp(prefix=f".{name}.", suffix=".json", dir=self.layers_dir)
        except OSError as exc:
            raise FilesystemError(f"writing layer metadata {path}: {exc}") from exc
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(payload)
            os.replace(tmp, path)
        except OSError as exc:
            raise FilesystemError(f"writing layer metadata {path}: {exc}") from exc
        finally:
            Path(tmp).unlink(missing_ok=True)
