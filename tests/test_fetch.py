"""Tests for archive and binary fetching."""

import os
import stat
from unittest.mock import patch

import pytest

from common.fetch import (
    fetch_archive,
    fetch_binary,
    fetch_json,
    fetch_zip_and_flatten,
    flatten_directory,
)
from conftest import make_tarball, make_zip, serve_bytes
from errors import ArchiveCorrupt, FetchFailed, FilesystemError


class TestFetchArchive:
    """Tarball download and extraction."""

    def test_extracts_without_stripping(self, tmp_path):
        payload = make_tarball({"bin/node": b"#!node", "lib/x.js": b"x"}, dirs=["bin", "lib"])
        with patch("common.fetch.download", side_effect=serve_bytes(payload)):
            fetch_archive("https://example.com/node.tar.gz", tmp_path)

        assert (tmp_path / "bin" / "node").read_bytes() == b"#!node"
        assert (tmp_path / "lib" / "x.js").exists()

    def test_strip_one_component(self, tmp_path):
        payload = make_tarball(
            {"jdk-17.0.2/bin/java": b"java", "jdk-17.0.2/release": b"17"},
            dirs=["jdk-17.0.2", "jdk-17.0.2/bin"],
        )
        with patch("common.fetch.download", side_effect=serve_bytes(payload)):
            fetch_archive("https://example.com/openjdk.tar.gz", tmp_path, strip_components=1)

        assert (tmp_path / "bin" / "java").read_bytes() == b"java"
        assert (tmp_path / "release").exists()
        assert not (tmp_path / "jdk-17.0.2").exists()

    def test_corrupt_archive(self, tmp_path):
        with patch("common.fetch.download", side_effect=serve_bytes(b"not a tarball")):
            with pytest.raises(ArchiveCorrupt):
                fetch_archive("https://example.com/bad.tar.gz", tmp_path)

    def test_rejects_escaping_members(self, tmp_path):
        payload = make_tarball({"../evil": b"x"})
        with patch("common.fetch.download", side_effect=serve_bytes(payload)):
            with pytest.raises(ArchiveCorrupt):
                fetch_archive("https://example.com/evil.tar.gz", tmp_path / "layer")
        assert not (tmp_path / "evil").exists()

    def test_download_failure_propagates(self, tmp_path):
        with patch("common.fetch.download", side_effect=FetchFailed("u", "HTTP 404", 404)):
            with pytest.raises(FetchFailed):
                fetch_archive("https://example.com/missing.tar.gz", tmp_path)
        assert list(tmp_path.iterdir()) == []


class TestFetchZipAndFlatten:
    """Zip download with the payload hoisted out of its wrapper directory."""

    def test_flattens_inner_directory(self, tmp_path):
        payload = make_zip({"dart-sdk/bin/dart": b"dart", "dart-sdk/lib/core.dart": b"core"})
        with patch("common.fetch.download", side_effect=serve_bytes(payload)):
            fetch_zip_and_flatten("https://example.com/sdk.zip", tmp_path, "dart-sdk")

        assert sorted(p.name for p in tmp_path.iterdir()) == ["bin", "lib"]
        assert (tmp_path / "bin" / "dart").read_bytes() == b"dart"
        assert os.stat(tmp_path / "bin" / "dart").st_mode & stat.S_IXUSR

    def test_missing_inner_directory(self, tmp_path):
        payload = make_zip({"other/bin/dart": b"dart"})
        with patch("common.fetch.download", side_effect=serve_bytes(payload)):
            with pytest.raises(ArchiveCorrupt):
                fetch_zip_and_flatten("https://example.com/sdk.zip", tmp_path, "dart-sdk")

    def test_corrupt_zip(self, tmp_path):
        with patch("common.fetch.download", side_effect=serve_bytes(b"PK garbage")):
            with pytest.raises(ArchiveCorrupt):
                fetch_zip_and_flatten("https://example.com/sdk.zip", tmp_path, "dart-sdk")

    def test_flatten_handles_child_named_like_parent(self, tmp_path):
        (tmp_path / "dart-sdk" / "dart-sdk").mkdir(parents=True)
        (tmp_path / "dart-sdk" / "version").write_text("3.1.0")

        flatten_directory(tmp_path, "dart-sdk")

        assert (tmp_path / "dart-sdk").is_dir()
        assert (tmp_path / "version").read_text() == "3.1.0"


class TestFetchBinary:
    """Single executable downloads."""

    def test_writes_executable(self, tmp_path):
        dest = tmp_path / "bin" / "yarn"
        with patch("common.fetch.download", side_effect=serve_bytes(b"#!/usr/bin/env node")):
            fetch_binary("https://example.com/yarn.js", dest, mode=0o755)

        assert dest.read_bytes() == b"#!/usr/bin/env node"
        assert stat.S_IMODE(os.stat(dest).st_mode) == 0o755
        assert [p.name for p in dest.parent.iterdir()] == ["yarn"]

    def test_failure_leaves_nothing_behind(self, tmp_path):
        dest = tmp_path / "bin" / "yarn"
        with patch("common.fetch.download", side_effect=FetchFailed("u", "timeout")):
            with pytest.raises(FetchFailed):
                fetch_binary("https://example.com/yarn.js", dest)

        assert list(dest.parent.iterdir()) == []


class TestFetchJson:
    """Small JSON documents."""

    @patch("common.fetch.get_json")
    def test_ok(self, mock_get_json):
        mock_get_json.return_value = (200, {}, {"version": "3.1.0"})
        assert fetch_json("https://example.com/VERSION") == {"version": "3.1.0"}

    @patch("common.fetch.get_json")
    def test_no_response(self, mock_get_json):
        mock_get_json.return_value = (0, {}, None)
        with pytest.raises(FetchFailed):
            fetch_json("https://example.com/VERSION")

    @patch("common.fetch.get_json")
    def test_http_error(self, mock_get_json):
        mock_get_json.return_value = (404, {}, None)
        with pytest.raises(FetchFailed) as excinfo:
            fetch_json("https://example.com/VERSION")
        assert excinfo.value.status_code == 404

    @patch("common.fetch.get_json")
    def test_not_json(self, mock_get_json):
        mock_get_json.return_value = (200, {}, None)
        with pytest.raises(ArchiveCorrupt):
            fetch_json("https://example.com/VERSION")


def test_strip_prefix_and_flatten_layouts(tmp_path):
    tar_dest = tmp_path / "tar"
    payload = make_tarball({"pkg/bin/tool": b"t", "pkg/README": b"r"})
    with patch("common.fetch.download", side_effect=serve_bytes(payload)):
        fetch_archive("https://example.com/pkg.tar.gz", tar_dest, strip_components=1)
    assert sorted(p.name for p in tar_dest.iterdir()) == ["README", "bin"]

    zip_dest = tmp_path / "zip"
    payload = make_zip({"sdk-root/bin/sdk": b"s", "sdk-root/lib/core": b"c"})
    with patch("common.fetch.download", side_effect=serve_bytes(payload)):
        fetch_zip_and_flatten("https://example.com/sdk.zip", zip_dest, "sdk-root")
    assert sorted(p.name for p in zip_dest.iterdir()) == ["bin", "lib"]
    assert not (zip_dest / "sdk-root").exists()


def _disk_full(url, out):
    out.write(b"partial")
    raise OSError(28, "No space left on device")


@pytest.mark.parametrize(
    "fetch",
    [
        lambda dest: fetch_archive("https://example.com/node.tar.gz", dest),
        lambda dest: fetch_zip_and_flatten("https://example.com/sdk.zip", dest, "dart-sdk"),
        lambda dest: fetch_binary("https://example.com/yarn.js", dest / "bin" / "yarn"),
    ],
)
def test_local_write_failure_is_a_filesystem_error(tmp_path, fetch):
    with patch("common.fetch.download", side_effect=_disk_full):
        with pytest.raises(FilesystemError) as excinfo:
            fetch(tmp_path)
    assert "No space left on device" in excinfo.value.message


def test_extracts_without_extraction_filter(tmp_path):
    payload = make_tarball({"pkg/bin/tool": b"t"})
    with patch("common.fetch._EXTRACT_FILTER", {}), \
            patch("common.fetch.download", side_effect=serve_bytes(payload)):
        fetch_archive("https://example.com/pkg.tar.gz", tmp_path, strip_components=1)
    assert (tmp_path / "bin" / "tool").read_bytes() == b"t"
