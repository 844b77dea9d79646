"""Lookup tables: stack id to OS family, runtime id to display name."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping

from constants import Constants, OsFamilies, Runtimes

logger = logging.getLogger(__name__)

DEFAULT_STACK_OS: Mapping[str, str] = MappingProxyType({
    "google": OsFamilies.UBUNTU_1804.value,
    "google.gae.18": OsFamilies.UBUNTU_1804.value,
    "google.22": OsFamilies.UBUNTU_2204.value,
    "google.gae.22": OsFamilies.UBUNTU_2204.value,
    "google.min.22": OsFamilies.UBUNTU_2204.value,
})

DEFAULT_DISPLAY_NAMES: Mapping[str, str] = MappingProxyType({
    Runtimes.NODEJS.value: "Node.js",
    Runtimes.PHP.value: "PHP Runtime",
    Runtimes.PYTHON.value: "Python",
    Runtimes.RUBY.value: "Ruby Runtime",
    Runtimes.NGINX.value: "Nginx Web Server",
    Runtimes.PID1.value: "Pid1",
    Runtimes.DOTNET_SDK.value: ".NET SDK",
    Runtimes.ASPNETCORE.value: "ASP.NET Core",
    Runtimes.OPENJDK.value: "OpenJDK",
    "dart": "Dart SDK",
    "yarn": "Yarn",
})


@dataclass(frozen=True)
class PlatformTable:
    """Immutable mapping used by the installers for OS and display-name lookups."""

    stack_os: Mapping[str, str] = field(default_factory=lambda: DEFAULT_STACK_OS)
    display_names: Mapping[str, str] = field(default_factory=lambda: DEFAULT_DISPLAY_NAMES)
    default_os: str = Constants.DEFAULT_OS_FAMILY

    def __post_init__(self) -> None:
        object.__setattr__(self, "stack_os", MappingProxyType(dict(self.stack_os)))
        object.__setattr__(self, "display_names", MappingProxyType(dict(self.display_names)))

    def os_for_stack(self, stack_id: str) -> str:
        """Return the OS family of ``stack_id``.

        Unknown stacks fall back to ``default_os`` with a warning instead of
        failing the install.
        """
        os_family = self.stack_os.get(stack_id)
        if os_family is None:
            logger.warning("unknown stack ID %r, falling back to %s", stack_id, self.default_os)
            return self.default_os
        return os_family

    def display_name(self, runtime: str) -> str:
        return self.display_names.get(runtime, runtime)
