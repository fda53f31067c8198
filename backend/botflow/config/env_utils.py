"""
Environment helpers for dataclass-based configs.

``read_env_defaults`` maps dataclass fields to environment variables
and coerces the raw strings to the field's declared type.
"""

from __future__ import annotations

import os
from dataclasses import Field
from logging import getLogger
from typing import Any, Dict

logger = getLogger(__name__)

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def _coerce(raw: str, type_hint: str) -> Any:
    """Convert an environment string to the annotated field type."""
    if type_hint == "bool":
        value = raw.strip().lower()
        if value in _TRUE_VALUES:
            return True
        if value in _FALSE_VALUES:
            return False
        raise ValueError(f"Not a boolean: {raw!r}")
    if type_hint == "int":
        return int(raw)
    if type_hint == "float":
        return float(raw)
    return raw


def read_env_defaults(
    env_map: Dict[str, str],
    fields: Dict[str, Field],
) -> Dict[str, Any]:
    """Collect constructor kwargs from environment variables.

    Only variables that are set (and parse cleanly) are returned, so the
    dataclass defaults apply to everything else.
    """
    defaults: Dict[str, Any] = {}
    for field_name, env_name in env_map.items():
        raw = os.environ.get(env_name)
        if raw is None or field_name not in fields:
            continue
        type_hint = fields[field_name].type
        if not isinstance(type_hint, str):
            type_hint = getattr(type_hint, "__name__", "str")
        try:
            defaults[field_name] = _coerce(raw, type_hint)
        except ValueError as e:
            logger.warning(f"Ignoring {env_name}={raw!r}: {e}")
    return defaults
