"""rtinstall - resolve, cache and install language runtimes into build layers.

    Returns:
        int: Exit code
"""
import json
import logging
import sys
from pathlib import Path

from args import parse_args
from buildctx import BuildContext
from cli_config import configure, requested_constraint
from common.logging_utils import configure_logging, extra_context, is_debug_enabled
from constants import Constants, ExitCodes, Runtimes
from errors import InstallError
from installer import RuntimeInstaller, install_yarn_layer, ruby_post_install

logger = logging.getLogger(__name__)


def _setup_logging(args):
    """Configure logging based on CLI arguments."""
    configure_logging(getattr(args, "LOG_LEVEL", None))

    log_file = getattr(args, "LOG_FILE", None)
    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s"))
        logging.getLogger().addHandler(file_handler)
        logger.info("Logging to file: %s", log_file)


def _context(args):
    return BuildContext(
        layers_dir=Path(getattr(args, "LAYERS_DIR", None) or "."),
        app_root=Path(getattr(args, "APP_ROOT", None) or "."),
        stack_id=getattr(args, "STACK", None),
    )


def _emit(payload):
    sys.stdout.write(json.dumps(payload, sort_keys=True) + "\n")


def _finish(ctx, result):
    """Apply the PATH change an install asks for and print its summary."""
    ctx.prepend_path(result.path_prepend)
    payload = result.to_dict()
    payload["cache"] = ctx.cache_stats.get(result.runtime, "disabled")
    payload["bom"] = [entry.to_dict() for entry in ctx.bom]
    _emit(payload)


def run_resolve(args):
    ctx = _context(args)
    installer = RuntimeInstaller(ctx)
    os_family = installer.os_family()
    constraint = requested_constraint(args.VERSION)
    version = installer.resolve_version(args.RUNTIME, constraint, os_family)
    _emit({"runtime": args.RUNTIME, "requested": constraint, "version": version, "os": os_family})


def run_install(args):
    ctx = _context(args)
    installer = RuntimeInstaller(ctx)
    layer = ctx.layer(args.RUNTIME, cache=not args.NO_CACHE, launch=True, build=True)
    post_install = None
    if args.PIN_RUBYGEMS:
        if args.RUNTIME != Runtimes.RUBY.value:
            raise InstallError("--pin-rubygems only applies to the ruby runtime", user_facing=True)
        post_install = ruby_post_install
    result = installer.install_tarball_if_not_cached(
        args.RUNTIME,
        requested_constraint(args.VERSION),
        layer,
        post_install=post_install,
    )
    _finish(ctx, result)


def run_dart(args):
    ctx = _context(args)
    layer = ctx.layer("dart", launch=False, build=True)
    result = RuntimeInstaller(ctx).install_dart_sdk(requested_constraint(args.VERSION), layer)
    _finish(ctx, result)


def run_yarn(args):
    ctx = _context(args)
    layer = ctx.layer("yarn", launch=False, build=True)
    result = install_yarn_layer(ctx, layer)
    _finish(ctx, result)


COMMANDS = {
    "resolve": run_resolve,
    "install": run_install,
    "dart": run_dart,
    "yarn": run_yarn,
}


def main(argv=None):
    """Main function of the program."""
    args = parse_args(argv)
    _setup_logging(args)
    configure(args)

    if is_debug_enabled(logger):
        logger.debug(
            "CLI start",
            extra=extra_context(event="function_entry", component="cli", action=args.COMMAND)
        )

    try:
        COMMANDS[args.COMMAND](args)
    except InstallError as exc:
        logger.error("%s", exc.message)
        if exc.user_facing:
            logger.error(
                "Check the requested version, or set %s to a published version.",
                Constants.ENV_RUNTIME_VERSION,
            )
        return ExitCodes.USER_ERROR.value if exc.user_facing else exc.exit_code.value
    return ExitCodes.SUCCESS.value


if __name__ == "__main__":
    sys.exit(main())
