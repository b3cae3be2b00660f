"""
Conversions between configuration values and MediaLive API shapes.

Deeply nested settings (encoder settings, input settings) are accepted as
free-form snake_case mappings and converted key-by-key to the API's
PascalCase, e.g. `h264_settings` <-> `H264Settings`.
"""

import re
from typing import Any

_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])")


def pascal_case(key: str) -> str:
    return "".join(part[:1].upper() + part[1:] for part in key.split("_"))


def snake_case(key: str) -> str:
    return _BOUNDARY.sub("_", key).lower()


def expand_settings(value: Any) -> Any:
    """Convert a snake_case configuration tree to an API request tree."""
    if isinstance(value, dict):
        return {pascal_case(k): expand_settings(v) for k, v in value.items() if v is not None}
    if isinstance(value, (list, tuple)):
        return [expand_settings(v) for v in value]
    return value


def flatten_settings(value: Any) -> Any:
    """Convert an API response tree to a snake_case configuration tree."""
    if isinstance(value, dict):
        return {snake_case(k): flatten_settings(v) for k, v in value.items()}
    if isinstance(value, list):
        return [flatten_settings(v) for v in value]
    return value


def is_subset(configured: Any, remote: Any) -> bool:
    """
    True when every configured value appears in the remote tree.

    The API fills in defaults for settings the configuration left out, so
    a remote tree that merely adds keys is not drift.
    """
    if isinstance(configured, dict):
        if not isinstance(remote, dict):
            return False
        return all(key in remote and is_subset(value, remote[key]) for key, value in configured.items())
    if isinstance(configured, list):
        if not isinstance(remote, list) or len(configured) != len(remote):
            return False
        return all(is_subset(c, r) for c, r in zip(configured, remote))
    return configured == remote


def first_block(value: list | None) -> dict[str, Any] | None:
    """Return the single block of a max_items=1 list, or None."""
    if value and value[0]:
        return value[0]
    return None
