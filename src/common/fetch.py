"""Artifact fetch primitives: tarballs, zips, single binaries and JSON documents.

Every function downloads into a temporary file first and removes it when done,
whether or not the operation succeeded. Failures are reported as
``FetchFailed`` (network/HTTP), ``ArchiveCorrupt`` (decompression or parse) or
``FilesystemError`` (local write/rename).
"""
from __future__ import annotations

import logging
import os
import tarfile
import tempfile
import zipfile
import zlib
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator, List, Optional

from common.http_client import download, get_json
from common.logging_utils import extra_context, is_debug_enabled, safe_url
from errors import ArchiveCorrupt, FetchFailed, FilesystemError

logger = logging.getLogger(__name__)

_TAR_ERRORS = (tarfile.TarError, EOFError, zlib.error)

# Extraction filters shipped in 3.10.12 / 3.11.4; members are screened by
# _stripped_members either way.
_EXTRACT_FILTER = {"filter": "tar"} if hasattr(tarfile, "tar_filter") else {}


@contextmanager
def _downloaded(url: str, suffix: str) -> Iterator[Path]:
    """Download ``url`` into a temporary file and yield its path."""
    try:
        fd, name = tempfile.mkstemp(prefix="rtinstall-", suffix=suffix)
    except OSError as exc:
        raise FilesystemError(f"creating temporary file for {safe_url(url)}: {exc}") from exc
    path = Path(name)
    try:
        try:
            with os.fdopen(fd, "w+b") as out:
                download(url, out)
        except OSError as exc:
            raise FilesystemError(f"writing download of {safe_url(url)}: {exc}") from exc
        yield path
    finally:
        path.unlink(missing_ok=True)


def _strip_path(name: str, count: int) -> Optional[str]:
    """Drop ``count`` leading segments from an archive path; None when nothing is left."""
    parts = [p for p in name.split("/") if p not in ("", ".")]
    if len(parts) <= count:
        return None
    return "/".join(parts[count:])


def _stripped_members(tar: tarfile.TarFile, count: int) -> List[tarfile.TarInfo]:
    members = []
    for member in tar.getmembers():
        if member.name.startswith("/") or ".." in member.name.split("/"):
            raise ArchiveCorrupt(f"archive member {member.name!r} escapes the destination")
        if count:
            new_name = _strip_path(member.name, count)
            if new_name is None:
                continue
            member.name = new_name
            if member.islnk():
                link = _strip_path(member.linkname, count)
                if link is None:
                    continue
                member.linkname = link
        members.append(member)
    return members


def extract_tarball(archive: Path, dest_dir: Path, strip_components: int = 0) -> None:
    """Extract ``archive`` into ``dest_dir`` removing leading path segments."""
    try:
        with tarfile.open(archive, "r:*") as tar:
            members = _stripped_members(tar, strip_components)
            dest_dir.mkdir(parents=True, exist_ok=True)
            tar.extractall(dest_dir, members=members, **_EXTRACT_FILTER)
    except _TAR_ERRORS as exc:
        raise ArchiveCorrupt(f"extracting {archive.name}: {exc}") from exc
    except OSError as exc:
        raise FilesystemError(f"extracting {archive.name} into {dest_dir}: {exc}") from exc


def extract_zip(archive: Path, dest_dir: Path) -> None:
    """Extract ``archive`` into ``dest_dir`` keeping unix permission bits."""
    try:
        with zipfile.ZipFile(archive) as zf:
            dest_dir.mkdir(parents=True, exist_ok=True)
            for info in zf.infolist():
                extracted = zf.extract(info, dest_dir)
                mode = (info.external_attr >> 16) & 0o7777
                if mode:
                    os.chmod(extracted, mode)
    except (zipfile.BadZipFile, zipfile.LargeZipFile, zlib.error, EOFError) as exc:
        raise ArchiveCorrupt(f"extracting {archive.name}: {exc}") from exc
    except OSError as exc:
        raise FilesystemError(f"extracting {archive.name} into {dest_dir}: {exc}") from exc


def flatten_directory(dest_dir: Path, inner_dir: str) -> None:
    """Move every entry of ``dest_dir/inner_dir`` up one level and drop ``inner_dir``."""
    inner = dest_dir / inner_dir
    if not inner.is_dir():
        raise ArchiveCorrupt(f"expected directory {inner_dir!r} in extracted archive")
    # Rename first so an entry named like inner_dir can still move up.
    staging = dest_dir / f".{inner_dir}.flatten"
    try:
        inner.rename(staging)
        for entry in sorted(staging.iterdir()):
            entry.rename(dest_dir / entry.name)
        staging.rmdir()
    except OSError as exc:
        raise FilesystemError(f"flattening {inner} into {dest_dir}: {exc}") from exc


def fetch_archive(url: str, dest_dir: Path, strip_components: int = 0) -> None:
    """Download a compressed tarball and extract it into ``dest_dir``."""
    if is_debug_enabled(logger):
        logger.debug(
            "Fetching tarball",
            extra=extra_context(
                event="fetch",
                component="fetch",
                action="fetch_archive",
                target=safe_url(url),
                strip_components=strip_components
            )
        )
    with _downloaded(url, ".tar.gz") as archive:
        extract_tarball(archive, Path(dest_dir), strip_components)


def fetch_zip_and_flatten(url: str, dest_dir: Path, inner_dir: str) -> None:
    """Download a zip archive, extract it and hoist ``inner_dir`` contents into ``dest_dir``."""
    if is_debug_enabled(logger):
        logger.debug(
            "Fetching zip",
            extra=extra_context(
                event="fetch",
                component="fetch",
                action="fetch_zip_and_flatten",
                target=safe_url(url),
                inner_dir=inner_dir
            )
        )
    dest_dir = Path(dest_dir)
    with _downloaded(url, ".zip") as archive:
        extract_zip(archive, dest_dir)
    flatten_directory(dest_dir, inner_dir)


def fetch_binary(url: str, dest_path: Path, mode: int = 0o755) -> None:
    """Download a single file to ``dest_path`` and set its mode."""
    dest_path = Path(dest_path)
    try:
        dest_path.parent.mkdir(parents=True, exist_ok=True)
        fd, name = tempfile.mkstemp(prefix=f".{dest_path.name}.", dir=dest_path.parent)
    except OSError as exc:
        raise FilesystemError(f"creating directory {dest_path.parent}: {exc}") from exc
    tmp = Path(name)
    try:
        with os.fdopen(fd, "w+b") as out:
            download(url, out)
        os.chmod(tmp, mode)
        os.replace(tmp, dest_path)
    except OSError as exc:
        raise FilesystemError(f"writing {dest_path}: {exc}") from exc
    finally:
        tmp.unlink(missing_ok=True)


def fetch_json(url: str) -> Any:
    """Download and parse a small JSON document."""
    status_code, _, data = get_json(url)
    if status_code == 0:
        raise FetchFailed(url, f"GET {safe_url(url)} failed: no response")
    if status_code != 200:
        raise FetchFailed(url, f"GET {safe_url(url)} returned HTTP {status_code}", status_code=status_code)
    if data is None:
        raise ArchiveCorrupt(f"GET {safe_url(url)} did not return a JSON document")
    return data
