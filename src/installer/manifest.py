"""Readers for project manifests that declare tool versions."""
from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Optional

from constants import Constants
from errors import InternalError


def read_package_json_if_exists(app_root: Path) -> Optional[Dict[str, Any]]:
    """Return the parsed package.json under ``app_root``, or None if absent."""
    path = Path(app_root) / Constants.PACKAGE_JSON_FILE
    if not path.is_file():
        return None
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise InternalError(f"parsing {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise InternalError(f"{path} does not contain a JSON object")
    return data


def requested_engine_version(app_root: Path, tool: str) -> str:
    """Return ``engines.<tool>`` from package.json; "" when not declared."""
    pjs = read_package_json_if_exists(app_root)
    if not pjs:
        return ""
    engines = pjs.get("engines")
    if not isinstance(engines, dict):
        return ""
    value = engines.get(tool)
    return value.strip() if isinstance(value, str) else ""
