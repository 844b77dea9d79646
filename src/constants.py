"""Constants used in the project."""

from enum import Enum


class ExitCodes(Enum):
    """Exit codes for the program.

    Args:
        Enum (int): Exit codes for the program.
    """

    SUCCESS = 0
    FILE_ERROR = 1
    CONNECTION_ERROR = 2
    USER_ERROR = 3


class Runtimes(Enum):
    """Runtimes that can be installed from the runtime tarball catalog.

    Args:
        Enum (string): Runtime identifiers as they appear in catalog URLs.
    """

    NODEJS = "nodejs"
    PHP = "php"
    PYTHON = "python"
    RUBY = "ruby"
    NGINX = "nginx"
    PID1 = "pid1"
    DOTNET_SDK = "dotnetsdk"
    ASPNETCORE = "aspnetcore"
    OPENJDK = "openjdk"


class OsFamilies(Enum):
    """Operating system families runtime artifacts are published for."""

    UBUNTU_1804 = "ubuntu1804"
    UBUNTU_2204 = "ubuntu2204"


class Constants:  # pylint: disable=too-few-public-methods
    """General constants used in the project.
    Data holder for configuration constants; not intended to provide behavior.
    """

    RUNTIME_BASE_URL = "https://dl.google.com/runtimes"
    NPM_REGISTRY_URL = "https://registry.npmjs.org"
    DART_ARCHIVE_URL = "https://storage.googleapis.com/dart-archive"
    YARN1_TARBALL_URL = "https://yarnpkg.com/downloads/{version}/yarn-v{version}.tar.gz"
    YARN2_BINARY_URL = "https://repo.yarnpkg.com/{version}/packages/yarnpkg-cli/bin/yarn.js"

    SUPPORTED_RUNTIMES = [r.value for r in Runtimes]
    DEFAULT_OS_FAMILY = OsFamilies.UBUNTU_1804.value
    DEFAULT_STACK = "google.22"

    # Layer metadata keys
    VERSION_KEY = "version"
    STACK_KEY = "stack"

    # Environment variables
    ENV_RUNTIME_VERSION = "GOOGLE_RUNTIME_VERSION"
    ENV_LOG_LEVEL = "RTINSTALL_LOG_LEVEL"
    ENV_STACK_ID = "CNB_STACK_ID"

    PACKAGE_JSON_FILE = "package.json"
    YARN_LOCK_FILE = "yarn.lock"
    DART_SDK_DIR = "dart-sdk"

    LOG_FORMAT = "[%(levelname)s] %(message)s"
    USER_AGENT = "GCPBuildpacks"
    REQUEST_TIMEOUT = 30  # Timeout in seconds for all HTTP requests
    DOWNLOAD_CHUNK_SIZE = 1024 * 64
    HTTP_RETRY_MAX = 3
    HTTP_RETRY_BASE_DELAY_SEC = 0.3
