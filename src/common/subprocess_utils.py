"""Thin wrapper around ``subprocess.run`` for auxiliary install commands."""
from __future__ import annotations

import logging
import subprocess
from pathlib import Path
from typing import Mapping, Optional, Sequence

from common.logging_utils import extra_context, is_debug_enabled, Timer
from errors import CommandFailed

logger = logging.getLogger(__name__)


def run_command(
    args: Sequence[str],
    *,
    cwd: Optional[Path] = None,
    env: Optional[Mapping[str, str]] = None,
    check: bool = True,
) -> subprocess.CompletedProcess:
    """Run ``args`` without a shell, capturing text output.

    Raises:
        CommandFailed: when the executable is missing, or exits non-zero and ``check`` is true.
    """
    if not args:
        raise ValueError("run_command requires at least one argument")
    with Timer() as t:
        try:
            completed = subprocess.run(
                list(args),
                cwd=str(cwd) if cwd is not None else None,
                env=dict(env) if env is not None else None,
                capture_output=True,
                text=True,
                check=False,
            )
        except OSError as exc:
            raise CommandFailed(args, 127, str(exc)) from exc
    if is_debug_enabled(logger):
        logger.debug(
            "Command finished",
            extra=extra_context(
                event="exec",
                component="subprocess",
                action=args[0],
                returncode=completed.returncode,
                duration_ms=t.duration_ms()
            )
        )
    if check and completed.returncode != 0:
        raise CommandFailed(args, completed.returncode, completed.stderr)
    return completed
