"""
Resource tagging.

Tagged resources declare `tags` (configured) and `tags_all` (configured
tags merged over the provider's default tags, as stored remotely).
"""

from typing import Any

from skyform.schema import TYPE_MAP, TYPE_STRING, Schema


def tags_schema() -> Schema:
    return Schema(type=TYPE_MAP, optional=True, elem=Schema(type=TYPE_STRING))


def tags_schema_computed() -> Schema:
    return Schema(type=TYPE_MAP, computed=True, elem=Schema(type=TYPE_STRING))


def merged_tags(d, meta) -> dict[str, str]:
    """Provider default tags overlaid with the resource's own tags."""
    return {**getattr(meta, "default_tags", {}), **(d.get("tags") or {})}


def set_tags_out(d, meta, remote: dict[str, str] | None) -> None:
    """
    Record remote tags in state.

    `tags_all` holds everything; `tags` drops default tags the resource
    did not set itself.
    """
    remote = dict(remote or {})
    defaults = getattr(meta, "default_tags", {})
    configured = d.get("tags") or {}
    d.set("tags_all", remote)
    d.set("tags", {
        key: value
        for key, value in remote.items()
        if key in configured or defaults.get(key) != value
    })


def diff_tags(old: dict[str, Any], new: dict[str, Any]) -> tuple[dict[str, Any], list[str]]:
    """Return (tags to create or overwrite, keys to remove)."""
    upsert = {key: value for key, value in new.items() if old.get(key) != value}
    removed = sorted(key for key in old if key not in new)
    return upsert, removed
