"""
ResourceData: the view a handler has of one resource instance.

It combines the desired configuration (when there is one) with the prior
state, and collects the values the handler writes back.
"""

import copy
from typing import Any

from skyform.errors import SchemaError
from skyform.schema import Resource, is_zero, normalize, zero_value


class ResourceData:
    """
    Desired configuration, prior state and new state of a resource.

    Example:
        d = ResourceData(resource, config={"bucket_name": "logs"})
        d.get("bucket_name")        # "logs"
        d.get_ok("prefix")          # ("", False)
        d.set_id("logs/")
        d.state()                   # {"id": "logs/", "bucket_name": "logs", ...}
    """

    def __init__(
        self,
        resource: Resource,
        config: dict[str, Any] | None = None,
        state: dict[str, Any] | None = None,
    ):
        self.resource = resource
        self._config = resource.apply_defaults(config) if config is not None else None
        self._state = dict(state or {})
        self._new: dict[str, Any] = {}
        self._id = self._state.get("id", "") or ""

    @property
    def id(self) -> str:
        return self._id

    def set_id(self, value: str) -> None:
        """Set the identifier; an empty string marks the resource as gone."""
        self._id = value or ""

    @property
    def is_new_resource(self) -> bool:
        return not self._state.get("id")

    def _attr(self, key: str):
        try:
            return self.resource.schema[key]
        except KeyError:
            raise SchemaError(f"invalid attribute name: {key}") from None

    def get(self, key: str) -> Any:
        """
        Return the current value of an attribute.

        Values written with `set` win, then the configuration, then (for
        computed attributes, or when there is no configuration) the prior
        state, then the zero value of the attribute's type.
        """
        attr = self._attr(key)
        if key in self._new:
            return copy.deepcopy(self._new[key])

        if self._config is not None:
            value = self._config.get(key)
            if value is not None:
                return _merge_computed(attr, copy.deepcopy(value), self._state.get(key))
            if not attr.computed:
                return zero_value(attr)

        value = self._state.get(key)
        if value is None:
            return zero_value(attr)
        return copy.deepcopy(value)

    def get_ok(self, key: str) -> tuple[Any, bool]:
        value = self.get(key)
        return value, not is_zero(self._attr(key), value)

    def get_change(self, key: str) -> tuple[Any, Any]:
        """Return the (prior, desired) values of an attribute."""
        attr = self._attr(key)
        old = self._state.get(key)
        if old is None:
            old = zero_value(attr)
        return copy.deepcopy(old), self.get(key)

    def has_change(self, key: str) -> bool:
        attr = self._attr(key)
        old, new = self.get_change(key)
        return normalize(attr, old) != normalize(attr, new)

    def has_changes(self, *keys: str) -> bool:
        return any(self.has_change(key) for key in keys)

    def has_changes_except(self, *keys: str) -> bool:
        return any(
            self.has_change(key)
            for key, attr in self.resource.schema.items()
            if key not in keys and not attr.computed_only
        )

    def set(self, key: str, value: Any) -> None:
        """Record a value read back from the remote API."""
        attr = self._attr(key)
        self._new[key] = zero_value(attr) if value is None else copy.deepcopy(value)

    def state(self) -> dict[str, Any] | None:
        """Render the resulting state, or None when the resource is gone."""
        if not self._id:
            return None
        result = {"id": self._id}
        for key in self.resource.schema:
            result[key] = self.get(key)
        return result

    def __repr__(self) -> str:
        return f"ResourceData(id={self._id!r})"


def _merge_computed(attr, value: Any, prior: Any) -> Any:
    """Fill unset optional+computed attributes of nested blocks from prior state."""
    if not attr.is_block or not isinstance(value, list) or not isinstance(prior, list):
        return value
    for index, item in enumerate(value):
        if not isinstance(item, dict) or index >= len(prior) or not isinstance(prior[index], dict):
            continue
        for key, nested in attr.elem.schema.items():
            if nested.computed and item.get(key) is None and key in prior[index]:
                item[key] = copy.deepcopy(prior[index][key])
            elif nested.is_block and key in item:
                item[key] = _merge_computed(nested, item[key], prior[index].get(key))
    return value
