"""Resolve, cache-check, fetch and record runtime installations.

An install call moves through ``Resolving -> CacheCheck`` and then either
stops on a hit, or continues ``Clearing -> Fetching -> PostInstall ->
MetadataWrite``. Metadata is written only after the layer contents are fully
in place, and a failure after clearing leaves the layer empty with its
metadata untouched.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from buildctx import BomEntry, BuildContext, Layer
from common.logging_utils import extra_context, is_debug_enabled
from constants import Constants, Runtimes
from errors import (
    CatalogUnavailable,
    InstallError,
    InvalidConstraint,
    NoMatchingVersion,
)
from versioning.catalog import DartCatalog, RuntimeCatalog
from versioning.models import ResolutionMode
from versioning.parser import normalize_version, parse_constraint
from versioning.resolver import VersionResolver
from . import cache_gate
from .artifacts import ArtifactKind, TarballStripped, ZipFlattened, unpack
from .platforms import PlatformTable

logger = logging.getLogger(__name__)

PostInstallHook = Callable[[BuildContext, Layer, str], None]

DART = "dart"


class InstallState(Enum):
    """Steps of a single install call."""
    RESOLVING = "resolving"
    CACHE_CHECK = "cache_check"
    HIT = "hit"
    CLEARING = "clearing"
    FETCHING = "fetching"
    POST_INSTALL = "post_install"
    METADATA_WRITE = "metadata_write"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True)
class InstallResult:
    """What an install produced, for the caller to apply and report."""

    runtime: str
    version: str
    cache_hit: bool
    layer_path: Path
    path_prepend: Path
    bom_entry: BomEntry

    def to_dict(self) -> Dict[str, Any]:
        return {
            "runtime": self.runtime,
            "version": self.version,
            "cache_hit": self.cache_hit,
            "layer": str(self.layer_path),
            "path_prepend": str(self.path_prepend),
        }


def runtime_tarball_url(base_url: str, os_family: str, runtime: str, version: str) -> str:
    """URL of a runtime tarball; ``+`` in the version is not URL-safe and becomes ``_``."""
    return f"{base_url.rstrip('/')}/{os_family}/{runtime}/{runtime}-{version.replace('+', '_')}.tar.gz"


def dart_sdk_url(archive_url: str, version: str) -> str:
    return f"{archive_url.rstrip('/')}/channels/stable/release/{version}/sdk/dartsdk-linux-x64-release.zip"


def strip_components_for(runtime: str) -> int:
    """OpenJDK tarballs wrap their payload in one top-level directory."""
    return 1 if runtime == Runtimes.OPENJDK.value else 0


def _trace(state: InstallState, name: str, **fields: Any) -> None:
    if is_debug_enabled(logger):
        logger.debug(
            "Install state",
            extra=extra_context(
                event="state",
                component="installer",
                action=name,
                state=state.value,
                **fields
            )
        )


class RuntimeInstaller:
    """Installs catalog-published runtimes into layers with caching."""

    def __init__(
        self,
        ctx: BuildContext,
        platforms: Optional[PlatformTable] = None,
        catalog: Optional[RuntimeCatalog] = None,
        resolver: Optional[VersionResolver] = None,
        dart_catalog: Optional[DartCatalog] = None,
        base_url: str = "",
    ):
        self.ctx = ctx
        self.platforms = platforms or PlatformTable()
        self.catalog = catalog or RuntimeCatalog()
        self.resolver = resolver or VersionResolver()
        self.dart_catalog = dart_catalog or DartCatalog()
        self.base_url = base_url or Constants.RUNTIME_BASE_URL

    def os_family(self) -> str:
        return self.platforms.os_for_stack(self.ctx.stack_id)

    def resolve_version(self, runtime: str, constraint: Optional[str], os_family: str) -> str:
        """Return the newest published version of ``runtime`` satisfying ``constraint``.

        An exact version is returned as given, without querying the catalog.
        """
        name = self.platforms.display_name(runtime)
        if constraint and self.catalog.is_exact_version(normalize_version(constraint)):
            return normalize_version(constraint)
        try:
            versions = self.catalog.list_versions(runtime, os_family)
        except CatalogUnavailable as exc:
            raise CatalogUnavailable(f"fetching {name} versions for {os_family}: {exc.message}") from exc
        try:
            return self.resolver.resolve(constraint, versions)
        except InvalidConstraint as exc:
            raise InvalidConstraint(exc.constraint, f"invalid {name} version specified: {exc.message}") from exc
        except NoMatchingVersion as exc:
            raise NoMatchingVersion(exc.constraint, f"invalid {name} version specified: {exc.message}") from exc

    def install_tarball_if_not_cached(
        self,
        runtime: str,
        constraint: Optional[str],
        layer: Layer,
        post_install: Optional[PostInstallHook] = None,
    ) -> InstallResult:
        """Install a runtime tarball into ``layer`` unless a valid cached copy is there."""
        _trace(InstallState.RESOLVING, runtime, requested_spec=constraint)
        os_family = self.os_family()
        version = self.resolve_version(runtime, constraint, os_family)
        return self.install_artifact(
            name=runtime,
            version=version,
            layer=layer,
            kind=TarballStripped(strip_components_for(runtime)),
            url=runtime_tarball_url(self.base_url, os_family, runtime, version),
            post_install=post_install,
            os_family=os_family,
        )

    def install_dart_sdk(self, constraint: Optional[str], layer: Layer) -> InstallResult:
        """Install the Dart SDK zip, hoisting its ``dart-sdk`` directory into the layer."""
        _trace(InstallState.RESOLVING, DART, requested_spec=constraint)
        spec = parse_constraint(constraint)
        if spec is None:
            version = self.dart_catalog.latest_version()
        elif spec.mode == ResolutionMode.EXACT:
            version = spec.raw
        else:
            raise InvalidConstraint(
                spec.raw,
                f"invalid Dart SDK version specified: {spec.raw!r} is not an exact version",
            )
        return self.install_artifact(
            name=DART,
            version=version,
            layer=layer,
            kind=ZipFlattened(Constants.DART_SDK_DIR),
            url=dart_sdk_url(Constants.DART_ARCHIVE_URL, version),
        )

    def install_artifact(
        self,
        *,
        name: str,
        version: str,
        layer: Layer,
        kind: ArtifactKind,
        url: str,
        post_install: Optional[PostInstallHook] = None,
        os_family: Optional[str] = None,
    ) -> InstallResult:
        """Install an already resolved ``version`` of ``name`` into ``layer``."""
        ctx = self.ctx
        display = self.platforms.display_name(name)
        stack_id = ctx.stack_id
        bom_entry = BomEntry(
            name=name,
            metadata={"version": version},
            launch=layer.launch,
            build=layer.build,
        )
        ctx.add_bom_entry(bom_entry)

        def result(cache_hit: bool) -> InstallResult:
            return InstallResult(
                runtime=name,
                version=version,
                cache_hit=cache_hit,
                layer_path=layer.path,
                path_prepend=layer.path / "bin",
                bom_entry=bom_entry,
            )

        _trace(InstallState.CACHE_CHECK, name, resolved_version=version, stack=stack_id)
        if layer.cache:
            if cache_gate.is_cached(ctx, layer, version) and ctx.is_populated(layer):
                ctx.cache_hit(name)
                ctx.logf("%s v%s cache hit, skipping installation.", display, version)
                _trace(InstallState.HIT, name, resolved_version=version)
                return result(True)
            ctx.cache_miss(name)

        _trace(InstallState.CLEARING, name)
        ctx.clear_layer(layer)
        ctx.logf("Installing %s v%s.", display, version)

        try:
            _trace(InstallState.FETCHING, name, kind=type(kind).__name__)
            unpack(kind, url, layer.path)
        except InstallError:
            _trace(InstallState.FAILED, name)
            ctx.warnf(
                "Failed to download %s version %s os %s. You can specify the version by setting the %s environment variable",
                display,
                version,
                os_family or stack_id,
                Constants.ENV_RUNTIME_VERSION,
            )
            ctx.clear_layer(layer)
            raise

        if post_install is not None:
            _trace(InstallState.POST_INSTALL, name)
            try:
                post_install(ctx, layer, version)
            except InstallError:
                _trace(InstallState.FAILED, name)
                ctx.clear_layer(layer)
                raise

        _trace(InstallState.METADATA_WRITE, name)
        cache_gate.update(ctx, layer, version, stack_id)
        _trace(InstallState.DONE, name)
        return result(False)
