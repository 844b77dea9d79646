"""Configuration layering for runtime tunables (base URLs, timeouts, retries).

Precedence, lowest to highest: built-in ``Constants`` defaults, the YAML/JSON
config file, ``RTINSTALL_*`` environment variables, CLI flags.
"""

from __future__ import annotations

import json
import logging
import os
from typing import Any, Callable, Dict, Mapping, Optional, Tuple

import yaml

from constants import Constants

logger = logging.getLogger(__name__)

# config key -> (Constants attribute, env var, converter)
_TUNABLES: Dict[str, Tuple[str, str, Callable[[Any], Any]]] = {
    "runtime_base_url": ("RUNTIME_BASE_URL", "RTINSTALL_RUNTIME_BASE_URL", str),
    "npm_registry_url": ("NPM_REGISTRY_URL", "RTINSTALL_NPM_REGISTRY_URL", str),
    "dart_archive_url": ("DART_ARCHIVE_URL", "RTINSTALL_DART_ARCHIVE_URL", str),
    "request_timeout": ("REQUEST_TIMEOUT", "RTINSTALL_REQUEST_TIMEOUT", int),
    "http_retry_max": ("HTTP_RETRY_MAX", "RTINSTALL_HTTP_RETRY_MAX", int),
}


def load_config_file(config_path: Optional[str]) -> Dict[str, Any]:
    """Load tunables from a YAML or JSON file.

    A missing or unreadable file is reported and treated as empty.
    """
    if not config_path:
        return {}

    if not os.path.isfile(config_path):
        logger.warning("Config file not found: %s", config_path)
        return {}

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            if config_path.endswith(".json"):
                data = json.load(f)
            else:
                data = yaml.safe_load(f)
    except (OSError, ValueError, yaml.YAMLError) as e:
        logger.error("Failed to load config %s: %s", config_path, e)
        return {}
    if not isinstance(data, dict):
        return {}
    # Allow the tunables to sit under a top-level "rtinstall" section.
    section = data.get("rtinstall", data)
    return section if isinstance(section, dict) else {}


def _set(key: str, raw: Any, source: str) -> None:
    attr, _, convert = _TUNABLES[key]
    try:
        value = convert(raw)
    except (TypeError, ValueError):
        logger.warning("Ignoring invalid %s value for %s: %r", source, key, raw)
        return
    setattr(Constants, attr, value)


def apply_config(cfg: Mapping[str, Any]) -> None:
    """Apply config-file values onto ``Constants``; unknown keys are ignored."""
    for key, raw in cfg.items():
        if key in _TUNABLES and raw is not None:
            _set(key, raw, "config")


def apply_env_overrides(env: Optional[Mapping[str, str]] = None) -> None:
    """Apply ``RTINSTALL_*`` environment overrides onto ``Constants``."""
    env = os.environ if env is None else env
    for key, (_, env_var, _) in _TUNABLES.items():
        raw = env.get(env_var)
        if raw:
            _set(key, raw, env_var)


def apply_cli_overrides(args: Any) -> None:
    """Apply CLI overrides (highest precedence)."""
    for key in _TUNABLES:
        raw = getattr(args, key.upper(), None)
        if raw is not None:
            _set(key, raw, "CLI")


def configure(args: Any, env: Optional[Mapping[str, str]] = None) -> None:
    """Layer file, environment and CLI values onto ``Constants``."""
    apply_config(load_config_file(getattr(args, "CONFIG", None)))
    apply_env_overrides(env)
    apply_cli_overrides(args)


def requested_constraint(cli_value: Optional[str], env: Optional[Mapping[str, str]] = None) -> str:
    """The version constraint from the CLI, else ``GOOGLE_RUNTIME_VERSION``, else ""."""
    if cli_value is not None:
        return cli_value
    env = os.environ if env is None else env
    return env.get(Constants.ENV_RUNTIME_VERSION, "")
