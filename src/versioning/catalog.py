"""Version catalogs: where the candidate versions for an artifact come from.

Catalog results are never cached; each call goes to the network so that a
resolution always sees the currently published set.
"""

import logging
import urllib.parse
from typing import Any, List

from common.fetch import fetch_json
from common.logging_utils import extra_context, is_debug_enabled, safe_url
from constants import Constants
from errors import ArchiveCorrupt, CatalogUnavailable, FetchFailed
from .parser import is_exact_version

logger = logging.getLogger(__name__)

__all__ = [
    "RuntimeCatalog",
    "NpmRegistryCatalog",
    "DartCatalog",
]


def _query(url: str, what: str) -> Any:
    try:
        data = fetch_json(url)
    except (FetchFailed, ArchiveCorrupt) as exc:
        raise CatalogUnavailable(f"fetching {what} from {safe_url(url)}: {exc}") from exc
    if is_debug_enabled(logger):
        logger.debug(
            "Catalog query ok",
            extra=extra_context(
                event="catalog_query",
                component="catalog",
                action="fetch",
                target=safe_url(url)
            )
        )
    return data


def _string_list(data: Any, url: str, what: str) -> List[str]:
    if not isinstance(data, list) or not all(isinstance(v, str) for v in data):
        raise CatalogUnavailable(f"{what} at {safe_url(url)} is not a list of version strings")
    return list(data)


class RuntimeCatalog:
    """Catalog served as ``<base>/<os>/<artifact>/version.json``."""

    def __init__(self, base_url: str = ""):
        self.base_url = (base_url or Constants.RUNTIME_BASE_URL).rstrip("/")

    def versions_url(self, artifact_name: str, os_family: str) -> str:
        return f"{self.base_url}/{os_family}/{artifact_name}/version.json"

    def list_versions(self, artifact_name: str, os_family: str) -> List[str]:
        """Return every published version of ``artifact_name`` for ``os_family``.

        Raises:
            CatalogUnavailable: on network, HTTP, or parse failure.
        """
        url = self.versions_url(artifact_name, os_family)
        what = f"{artifact_name} versions for {os_family}"
        return _string_list(_query(url, what), url, what)

    @staticmethod
    def is_exact_version(s: str) -> bool:
        """True when ``s`` is already a full version and needs no catalog lookup."""
        return is_exact_version(s)


class NpmRegistryCatalog:
    """Catalog backed by an npm registry packument."""

    def __init__(self, registry_url: str = ""):
        self.registry_url = (registry_url or Constants.NPM_REGISTRY_URL).rstrip("/")

    def _packument(self, package: str) -> dict:
        url = f"{self.registry_url}/{urllib.parse.quote(package, safe='@')}"
        data = _query(url, f"{package} packument")
        if not isinstance(data, dict):
            raise CatalogUnavailable(f"{package} packument at {safe_url(url)} is not an object")
        return data

    def list_versions(self, package: str) -> List[str]:
        """Fetch version candidates from the registry packument."""
        versions = self._packument(package).get("versions") or {}
        if not isinstance(versions, dict):
            raise CatalogUnavailable(f"{package} packument has no versions map")
        return list(versions.keys())

    def latest_version(self, package: str) -> str:
        """Return the ``latest`` dist-tag of ``package``."""
        latest = (self._packument(package).get("dist-tags") or {}).get("latest")
        if not isinstance(latest, str) or not latest:
            raise CatalogUnavailable(f"{package} packument has no 'latest' dist-tag")
        return latest


class DartCatalog:
    """Dart SDK stable channel; only knows the latest release."""

    def __init__(self, archive_url: str = ""):
        self.archive_url = (archive_url or Constants.DART_ARCHIVE_URL).rstrip("/")

    def latest_version(self) -> str:
        url = f"{self.archive_url}/channels/stable/release/latest/VERSION"
        data = _query(url, "latest Dart SDK version")
        version = data.get("version") if isinstance(data, dict) else None
        if not isinstance(version, str) or not version:
            raise CatalogUnavailable(f"{safe_url(url)} has no 'version' field")
        return version
