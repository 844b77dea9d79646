"""Argument parsing functionality for rtinstall."""

import argparse

from constants import Constants


def _add_common(parser):
    parser.add_argument("--stack",
                        dest="STACK",
                        help="Stack ID of the build image (default: $CNB_STACK_ID or %s)" % Constants.DEFAULT_STACK,
                        action="store",
                        type=str)


def _add_layers(parser):
    parser.add_argument("--layers-dir",
                        dest="LAYERS_DIR",
                        help="Directory holding the layer directories and their metadata",
                        action="store",
                        type=str,
                        required=True)


def _add_version(parser):
    parser.add_argument("-v", "--version",
                        dest="VERSION",
                        help="Version constraint: exact version, semver range, or empty for latest "
                             "(default: $%s)" % Constants.ENV_RUNTIME_VERSION,
                        action="store",
                        type=str)


def build_parser():
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="rtinstall",
        description=(
            "rtinstall - resolve, cache and install language runtimes into build layers"
        ),
        add_help=True,
    )
    parser.add_argument("--loglevel",
                        dest="LOG_LEVEL",
                        help="Set the logging level",
                        action="store",
                        type=str,
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
                        default='INFO')
    parser.add_argument("--logfile",
                        dest="LOG_FILE",
                        help="Log output file",
                        action="store",
                        type=str)
    parser.add_argument("-c", "--config",
                        dest="CONFIG",
                        help="Path to configuration file (YAML, YML, or JSON)",
                        action="store",
                        type=str)
    parser.add_argument("--runtime-base-url",
                        dest="RUNTIME_BASE_URL",
                        help="Base URL of the runtime tarball catalog",
                        action="store",
                        type=str)
    parser.add_argument("--npm-registry-url",
                        dest="NPM_REGISTRY_URL",
                        help="Base URL of the npm registry used for Yarn",
                        action="store",
                        type=str)
    parser.add_argument("--request-timeout",
                        dest="REQUEST_TIMEOUT",
                        help="HTTP timeout in seconds",
                        action="store",
                        type=int)

    sub = parser.add_subparsers(dest="COMMAND", required=True)

    resolve = sub.add_parser("resolve", help="Print the version a constraint resolves to")
    resolve.add_argument("RUNTIME", choices=Constants.SUPPORTED_RUNTIMES)
    _add_version(resolve)
    _add_common(resolve)

    install = sub.add_parser("install", help="Install a runtime tarball into a layer")
    install.add_argument("RUNTIME", choices=Constants.SUPPORTED_RUNTIMES)
    _add_version(install)
    _add_layers(install)
    _add_common(install)
    install.add_argument("--no-cache",
                         dest="NO_CACHE",
                         help="Always reinstall, ignoring layer metadata",
                         action="store_true")
    install.add_argument("--pin-rubygems",
                         dest="PIN_RUBYGEMS",
                         help="Pin RubyGems and Bundler versions after installing Ruby",
                         action="store_true")

    dart = sub.add_parser("dart", help="Install the Dart SDK into a layer")
    _add_version(dart)
    _add_layers(dart)
    _add_common(dart)

    yarn = sub.add_parser("yarn", help="Install the Yarn version a project requests")
    yarn.add_argument("--app-root",
                      dest="APP_ROOT",
                      help="Project directory containing package.json",
                      action="store",
                      type=str,
                      default=".")
    _add_layers(yarn)
    _add_common(yarn)

    return parser


def parse_args(argv=None):
    """Parses the arguments passed to the program."""
    return build_parser().parse_args(argv)
