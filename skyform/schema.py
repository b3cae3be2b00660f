"""
Schema declarations for resources and data sources.

A Resource is a mapping of attribute names to Schema entries plus the
handler functions that implement its lifecycle. The host uses the schema
to validate configuration, fill in defaults and decide whether a change
can be applied in place or needs a replacement.
"""

from dataclasses import dataclass, field
from typing import Any, Callable

TYPE_STRING = "string"
TYPE_INT = "int"
TYPE_FLOAT = "float"
TYPE_BOOL = "bool"
TYPE_LIST = "list"
TYPE_SET = "set"
TYPE_MAP = "map"

_PYTHON_TYPES = {
    TYPE_STRING: (str,),
    TYPE_INT: (int,),
    TYPE_FLOAT: (int, float),
    TYPE_BOOL: (bool,),
    TYPE_LIST: (list, tuple),
    TYPE_SET: (list, tuple, set, frozenset),
    TYPE_MAP: (dict,),
}

Validator = Callable[[Any, str], list[str]]
Handler = Callable[..., None]


@dataclass
class Schema:
    """
    Declaration of a single attribute.

    `elem` is either a nested Resource (a configuration block) or a Schema
    describing the element type of a list, set or map.
    """

    type: str
    required: bool = False
    optional: bool = False
    computed: bool = False
    force_new: bool = False
    sensitive: bool = False
    default: Any = None
    max_items: int = 0
    min_items: int = 0
    elem: "Resource | Schema | None" = None
    validate: Validator | None = None
    description: str = ""

    def __post_init__(self):
        if self.type not in _PYTHON_TYPES:
            raise ValueError(f"unknown schema type: {self.type}")
        if self.required and (self.optional or self.computed):
            raise ValueError("a required attribute cannot be optional or computed")
        if self.default is not None and self.required:
            raise ValueError("a required attribute cannot have a default")

    @property
    def is_block(self) -> bool:
        return isinstance(self.elem, Resource)

    @property
    def computed_only(self) -> bool:
        return self.computed and not (self.optional or self.required)


def zero_value(schema: Schema) -> Any:
    """Return the zero value for an attribute's type."""
    if schema.type == TYPE_STRING:
        return ""
    if schema.type == TYPE_INT:
        return 0
    if schema.type == TYPE_FLOAT:
        return 0.0
    if schema.type == TYPE_BOOL:
        return False
    if schema.type == TYPE_MAP:
        return {}
    return []


def is_zero(schema: Schema, value: Any) -> bool:
    return value is None or value == zero_value(schema)


@dataclass
class Resource:
    """
    A resource (or data source) type: its schema and lifecycle handlers.

    Handlers take `(d, meta)` where `d` is a ResourceData and `meta` the
    configured connection object. They raise on failure and clear the id
    of `d` when the remote object no longer exists.

    Example:
        def resource_widget() -> Resource:
            return Resource(
                schema={"name": Schema(type=TYPE_STRING, required=True)},
                create=widget_create,
                read=widget_read,
                delete=widget_delete,
            )
    """

    schema: dict[str, Schema] = field(default_factory=dict)
    create: Handler | None = None
    read: Handler | None = None
    update: Handler | None = None
    delete: Handler | None = None
    importable: bool = False
    timeouts: dict[str, int] = field(default_factory=dict)
    description: str = ""

    def timeout(self, operation: str, default: int = 1800) -> int:
        """Seconds allowed for `operation` (create, update, delete)."""
        return self.timeouts.get(operation, default)

    def validate(self, config: dict[str, Any], path: str = "") -> list[str]:
        """
        Validate a configuration mapping against this schema.

        Returns:
            A list of human readable problems, empty when the
            configuration is valid.
        """
        problems: list[str] = []

        for key in config:
            if key not in self.schema:
                problems.append(f"{path}{key}: unsupported argument")

        for key, attr in self.schema.items():
            name = f"{path}{key}"
            value = config.get(key)

            if value is None:
                if attr.required:
                    problems.append(f"{name}: required argument is missing")
                continue

            if attr.computed_only:
                problems.append(f"{name}: cannot be set, value is computed")
                continue

            problems.extend(_validate_value(attr, value, name))

        return problems

    def apply_defaults(self, config: dict[str, Any], fill_zero: bool = False) -> dict[str, Any]:
        """
        Return a copy of `config` with schema defaults filled in.

        Inside nested blocks (`fill_zero`) unset attributes without a
        default take their zero value, so a block compares equal to the
        fully populated block read back into state. Computed attributes
        stay unset and are merged from prior state instead.
        """
        result = dict(config)
        for key, attr in self.schema.items():
            value = result.get(key)
            if value is None:
                if attr.default is not None:
                    result[key] = attr.default
                elif fill_zero and not attr.computed:
                    result[key] = zero_value(attr)
                continue
            if attr.is_block:
                if attr.type == TYPE_MAP:
                    result[key] = attr.elem.apply_defaults(value, fill_zero=True)
                else:
                    result[key] = [attr.elem.apply_defaults(item or {}, fill_zero=True) for item in value]
        return result

    def force_new_changes(self, old: dict[str, Any], new: dict[str, Any]) -> list[str]:
        """
        Name the attributes whose change requires replacing the resource.

        Computed attributes absent from the new configuration keep their
        prior value and never force a replacement.
        """
        changed = []
        for key, attr in self.schema.items():
            if attr.computed_only:
                continue
            new_value = new.get(key)
            if new_value is None and attr.computed:
                continue
            if new_value is None:
                new_value = attr.default if attr.default is not None else zero_value(attr)
            old_value = old.get(key)
            if old_value is None:
                old_value = zero_value(attr)

            if attr.force_new and normalize(attr, old_value) != normalize(attr, new_value):
                changed.append(key)
            elif attr.is_block and not attr.force_new and isinstance(new_value, list):
                old_items = old_value if isinstance(old_value, list) else []
                for index, item in enumerate(new_value):
                    prior = old_items[index] if index < len(old_items) else {}
                    nested = attr.elem.force_new_changes(prior or {}, item or {})
                    changed.extend(f"{key}.{index}.{n}" for n in nested)
        return changed


def normalize(schema: Schema, value: Any) -> Any:
    """Normalize a value for comparison (sets compare unordered)."""
    if value is None:
        return zero_value(schema)
    if schema.type == TYPE_SET:
        return sorted((repr(v) for v in value))
    if schema.type == TYPE_LIST:
        return list(value)
    return value


def _validate_value(attr: Schema, value: Any, name: str) -> list[str]:
    problems: list[str] = []
    expected = _PYTHON_TYPES[attr.type]

    # bool is an int subclass; an int attribute must not accept True
    if attr.type in (TYPE_INT, TYPE_FLOAT) and isinstance(value, bool):
        return [f"{name}: expected {attr.type}, got bool"]
    if not isinstance(value, expected):
        return [f"{name}: expected {attr.type}, got {type(value).__name__}"]

    if attr.type in (TYPE_LIST, TYPE_SET):
        if attr.max_items and len(value) > attr.max_items:
            problems.append(f"{name}: at most {attr.max_items} item(s) allowed, got {len(value)}")
        if attr.min_items and len(value) < attr.min_items:
            problems.append(f"{name}: at least {attr.min_items} item(s) required, got {len(value)}")
        for index, item in enumerate(value):
            problems.extend(_validate_element(attr, item, f"{name}.{index}"))
    elif attr.type == TYPE_MAP:
        if isinstance(attr.elem, Resource):
            problems.extend(attr.elem.validate(value, path=f"{name}."))
        elif isinstance(attr.elem, Schema):
            for key, item in value.items():
                problems.extend(_validate_value(attr.elem, item, f"{name}.{key}"))

    if attr.validate is not None and not problems:
        problems.extend(attr.validate(value, name))

    return problems


def _validate_element(attr: Schema, item: Any, name: str) -> list[str]:
    if isinstance(attr.elem, Resource):
        if item is None:
            item = {}
        if not isinstance(item, dict):
            return [f"{name}: expected a block, got {type(item).__name__}"]
        return attr.elem.validate(item, path=f"{name}.")
    if isinstance(attr.elem, Schema):
        return _validate_value(attr.elem, item, name)
    return []
