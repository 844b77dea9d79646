"""Yarn detection and installation.

Yarn's packaging changed at 2.0.0: 1.x ships as a tarball wrapped in one
top-level directory, 2.x and later as a single ``yarn.js`` executable. The
layout is chosen from the resolved version, never from the caller.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Tuple

import semantic_version
import yaml

from buildctx import BuildContext, Layer
from constants import Constants
from errors import InternalError, InvalidConstraint, NoMatchingVersion
from versioning.catalog import NpmRegistryCatalog
from versioning.resolver import VersionResolver
from .artifacts import ArtifactKind, SingleBinary, TarballStripped
from .manifest import requested_engine_version
from .runtime import InstallResult, RuntimeInstaller

logger = logging.getLogger(__name__)

YARN = "yarn"
VERSION2 = semantic_version.Version("2.0.0")


def detect_yarn_version(
    app_root: Path,
    catalog: Optional[NpmRegistryCatalog] = None,
    resolver: Optional[VersionResolver] = None,
) -> str:
    """Return the Yarn version to install for the project at ``app_root``.

    Uses ``engines.yarn`` from package.json resolved against every version
    published to the npm registry, or the registry's latest release when the
    project does not declare one.
    """
    catalog = catalog or NpmRegistryCatalog()
    requested = requested_engine_version(app_root, YARN)
    if not requested:
        return catalog.latest_version(YARN)

    versions = catalog.list_versions(YARN)
    try:
        return (resolver or VersionResolver()).resolve(requested, versions)
    except InvalidConstraint as exc:
        raise InvalidConstraint(requested, f"finding Yarn version that matched {requested!r}: {exc.message}") from exc
    except NoMatchingVersion as exc:
        raise NoMatchingVersion(requested, f"finding Yarn version that matched {requested!r}: {exc.message}") from exc


def yarn_artifact(version: str) -> Tuple[ArtifactKind, str]:
    """Return the artifact layout and download URL for Yarn ``version``."""
    try:
        parsed = semantic_version.Version(version)
    except ValueError as exc:
        raise InvalidConstraint(version, f"parsing yarn version {version!r}: {exc}") from exc
    if parsed < VERSION2:
        return TarballStripped(strip_components=1), Constants.YARN1_TARBALL_URL.format(version=version)
    return SingleBinary("bin/yarn", mode=0o755), Constants.YARN2_BINARY_URL.format(version=version)


def install_yarn_layer(
    ctx: BuildContext,
    layer: Layer,
    installer: Optional[RuntimeInstaller] = None,
    catalog: Optional[NpmRegistryCatalog] = None,
) -> InstallResult:
    """Install Yarn into ``layer`` unless a cached copy of the detected version is there.

    The returned result carries the ``bin`` directory the caller must put
    first on PATH so this Yarn wins over anything in the base image.
    """
    version = detect_yarn_version(ctx.app_root, catalog)
    kind, url = yarn_artifact(version)
    installer = installer or RuntimeInstaller(ctx)
    return installer.install_artifact(name=YARN, version=version, layer=layer, kind=kind, url=url)


def is_yarn2(app_root: Path) -> bool:
    """Detect whether the project's yarn.lock was generated by Yarn 2 or later."""
    path = Path(app_root) / Constants.YARN_LOCK_FILE
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise InternalError(f"reading {Constants.YARN_LOCK_FILE}: {exc}") from exc
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError:
        # Yarn 1 lockfiles are not necessarily valid YAML.
        return False
    if not isinstance(data, dict):
        return False
    metadata = data.get("__metadata")
    return isinstance(metadata, dict) and bool(metadata.get("version"))


def has_yarn_workspace_plugin(ctx: BuildContext) -> bool:
    """True if Yarn's workspace-tools plugin is installed in the project."""
    res = ctx.exec([YARN, "plugin", "runtime"])
    return "plugin-workspace-tools" in (res.stdout or "")
