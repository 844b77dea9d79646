"""Error taxonomy for runtime resolution and installation.

User-facing errors (bad or unsatisfiable version constraints) are kept apart
from operational errors (network, archive, filesystem, subprocess) so callers
can render different guidance for each.
"""

from __future__ import annotations

from typing import Optional, Sequence

from constants import ExitCodes


class InstallError(Exception):
    """Base class for every failure surfaced by the installer."""

    exit_code = ExitCodes.FILE_ERROR

    def __init__(self, message: str, *, user_facing: bool = False):
        super().__init__(message)
        self.message = message
        self.user_facing = user_facing


class InvalidConstraint(InstallError):
    """The version constraint string does not parse."""

    exit_code = ExitCodes.USER_ERROR

    def __init__(self, constraint: str, message: Optional[str] = None):
        super().__init__(
            message or f"invalid version constraint {constraint!r}",
            user_facing=True,
        )
        self.constraint = constraint


class NoMatchingVersion(InstallError):
    """No published version satisfies a non-empty constraint."""

    exit_code = ExitCodes.USER_ERROR

    def __init__(self, constraint: str, message: Optional[str] = None):
        super().__init__(
            message or f"no published version matches {constraint!r}",
            user_facing=True,
        )
        self.constraint = constraint


class CatalogUnavailable(InstallError):
    """The version catalog could not be reached or returned garbage."""

    exit_code = ExitCodes.CONNECTION_ERROR


class FetchFailed(InstallError):
    """An artifact download failed at the network or HTTP level."""

    exit_code = ExitCodes.CONNECTION_ERROR

    def __init__(self, url: str, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.url = url
        self.status_code = status_code


class ArchiveCorrupt(InstallError):
    """A downloaded archive could not be decompressed or has an unexpected layout."""


class FilesystemError(InstallError):
    """A local write, rename or delete failed."""


class CommandFailed(InstallError):
    """An external command exited with a non-zero status."""

    def __init__(
        self,
        command: Sequence[str],
        returncode: int,
        stderr: Optional[str] = None,
    ):
        super().__init__(
            f"Command '{command[0]}' exited with status {returncode}. stderr: {stderr or '<none>'}"
        )
        self.command = tuple(command)
        self.returncode = returncode
        self.stderr = stderr


class InternalError(InstallError):
    """An invariant was violated (e.g. unexpected directory state)."""
