"""Runtime installers: resolution, cache gating and artifact unpacking."""

from .artifacts import ArtifactKind, SingleBinary, TarballStripped, ZipFlattened, unpack
from .platforms import PlatformTable
from .runtime import InstallResult, InstallState, RuntimeInstaller
from .ruby import pin_gem_and_bundler_version, ruby_post_install
from .yarn import install_yarn_layer, is_yarn2

__all__ = [
    "ArtifactKind",
    "InstallResult",
    "InstallState",
    "PlatformTable",
    "RuntimeInstaller",
    "SingleBinary",
    "TarballStripped",
    "ZipFlattened",
    "install_yarn_layer",
    "is_yarn2",
    "pin_gem_and_bundler_version",
    "ruby_post_install",
    "unpack",
]
