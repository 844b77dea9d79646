"""Shared fixtures."""

import io
import tarfile
import zipfile

import pytest

from constants import Constants

_TUNABLE_ATTRS = (
    "RUNTIME_BASE_URL",
    "NPM_REGISTRY_URL",
    "DART_ARCHIVE_URL",
    "REQUEST_TIMEOUT",
    "HTTP_RETRY_MAX",
)


@pytest.fixture(autouse=True)
def restore_constants(monkeypatch):
    """Config tests write onto Constants; put the defaults back afterwards."""
    for attr in _TUNABLE_ATTRS:
        monkeypatch.setattr(Constants, attr, getattr(Constants, attr))


def make_tarball(files, dirs=()):
    """Build a .tar.gz in memory from {path: bytes}."""
    buf = io.BytesIO()
    with tarfile.open(fileobj=buf, mode="w:gz") as tar:
        for name in dirs:
            info = tarfile.TarInfo(name)
            info.type = tarfile.DIRTYPE
            info.mode = 0o755
            tar.addfile(info)
        for name, data in files.items():
            info = tarfile.TarInfo(name)
            info.size = len(data)
            info.mode = 0o755
            tar.addfile(info, io.BytesIO(data))
    return buf.getvalue()


def make_zip(files, mode=0o755):
    """Build a zip in memory from {path: bytes} with unix permission bits."""
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w") as zf:
        for name, data in files.items():
            info = zipfile.ZipInfo(name)
            info.external_attr = mode << 16
            zf.writestr(info, data)
    return buf.getvalue()


def serve_bytes(payload):
    """A stand-in for ``download`` that writes ``payload`` to the output file."""
    def _download(url, out):
        out.write(payload)
        return len(payload)
    return _download
