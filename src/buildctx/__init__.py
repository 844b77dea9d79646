"""Build context: layers, layer metadata, build manifest and environment."""

from .context import BuildContext
from .layer import BomEntry, Layer, LayerMetadataStore

__all__ = [
    "BomEntry",
    "BuildContext",
    "Layer",
    "LayerMetadataStore",
]
