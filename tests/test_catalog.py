"""Tests for the version catalogs."""

from unittest.mock import patch

import pytest

from errors import ArchiveCorrupt, CatalogUnavailable, FetchFailed
from versioning.catalog import DartCatalog, NpmRegistryCatalog, RuntimeCatalog


class TestRuntimeCatalog:
    """Catalog at <base>/<os>/<runtime>/version.json."""

    @patch("versioning.catalog.fetch_json")
    def test_list_versions(self, mock_fetch):
        mock_fetch.return_value = ["16.4.0", "16.3.0"]
        catalog = RuntimeCatalog()

        assert catalog.list_versions("nodejs", "ubuntu2204") == ["16.4.0", "16.3.0"]
        mock_fetch.assert_called_once_with("https://dl.google.com/runtimes/ubuntu2204/nodejs/version.json")

    def test_custom_base_url(self):
        catalog = RuntimeCatalog("https://mirror.example.com/runtimes/")
        assert catalog.versions_url("php", "ubuntu1804") == (
            "https://mirror.example.com/runtimes/ubuntu1804/php/version.json"
        )

    @patch("versioning.catalog.fetch_json")
    def test_network_failure(self, mock_fetch):
        mock_fetch.side_effect = FetchFailed("u", "GET u returned HTTP 503", status_code=503)
        with pytest.raises(CatalogUnavailable):
            RuntimeCatalog().list_versions("nodejs", "ubuntu2204")

    @patch("versioning.catalog.fetch_json")
    def test_unparseable_document(self, mock_fetch):
        mock_fetch.side_effect = ArchiveCorrupt("not JSON")
        with pytest.raises(CatalogUnavailable):
            RuntimeCatalog().list_versions("nodejs", "ubuntu2204")

    @patch("versioning.catalog.fetch_json")
    def test_wrong_shape(self, mock_fetch):
        mock_fetch.return_value = {"versions": ["1.0.0"]}
        with pytest.raises(CatalogUnavailable):
            RuntimeCatalog().list_versions("nodejs", "ubuntu2204")

    @patch("versioning.catalog.fetch_json")
    def test_is_exact_version_needs_no_network(self, mock_fetch):
        assert RuntimeCatalog.is_exact_version("3.9.1")
        assert RuntimeCatalog().is_exact_version("11.0.1+13")
        assert not RuntimeCatalog.is_exact_version("3.9")
        mock_fetch.assert_not_called()


class TestNpmRegistryCatalog:
    """Catalog backed by the npm registry packument."""

    PACKUMENT = {
        "dist-tags": {"latest": "1.22.19"},
        "versions": {"1.22.19": {}, "1.22.0": {}, "0.27.5": {}},
    }

    @patch("versioning.catalog.fetch_json")
    def test_list_versions(self, mock_fetch):
        mock_fetch.return_value = self.PACKUMENT
        versions = NpmRegistryCatalog().list_versions("yarn")

        assert sorted(versions) == ["0.27.5", "1.22.0", "1.22.19"]
        mock_fetch.assert_called_once_with("https://registry.npmjs.org/yarn")

    @patch("versioning.catalog.fetch_json")
    def test_latest_version(self, mock_fetch):
        mock_fetch.return_value = self.PACKUMENT
        assert NpmRegistryCatalog().latest_version("yarn") == "1.22.19"

    @patch("versioning.catalog.fetch_json")
    def test_missing_latest_tag(self, mock_fetch):
        mock_fetch.return_value = {"versions": {}}
        with pytest.raises(CatalogUnavailable):
            NpmRegistryCatalog().latest_version("yarn")


class TestDartCatalog:
    """Latest stable Dart SDK."""

    @patch("versioning.catalog.fetch_json")
    def test_latest_version(self, mock_fetch):
        mock_fetch.return_value = {"version": "3.1.0", "revision": "abc"}
        assert DartCatalog().latest_version() == "3.1.0"
        mock_fetch.assert_called_once_with(
            "https://storage.googleapis.com/dart-archive/channels/stable/release/latest/VERSION"
        )

    @patch("versioning.catalog.fetch_json")
    def test_missing_version_field(self, mock_fetch):
        mock_fetch.return_value = {"revision": "abc"}
        with pytest.raises(CatalogUnavailable):
            DartCatalog().latest_version()
