"""
StateFile: JSON persistence of resource state between CLI runs.
"""

import json
from pathlib import Path
from typing import Any

STATE_VERSION = 1


class StateFile:
    """
    Resource state keyed by "type_name.name".

    Example:
        state = StateFile.load("skyform.state.json")
        state.put("aws_macie_s3_bucket_association", "logs", {...})
        state.save()
    """

    def __init__(self, path: str | Path, resources: dict[str, dict[str, Any]] | None = None):
        self.path = Path(path)
        self.resources = resources or {}

    @staticmethod
    def key(type_name: str, name: str) -> str:
        return f"{type_name}.{name}"

    @classmethod
    def load(cls, path: str | Path) -> "StateFile":
        path = Path(path)
        if not path.exists():
            return cls(path)

        with open(path) as f:
            data = json.load(f)

        version = data.get("version")
        if version != STATE_VERSION:
            raise ValueError(f"{path}: unsupported state version {version}")

        return cls(path, data.get("resources") or {})

    def save(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        with open(tmp, "w") as f:
            json.dump({"version": STATE_VERSION, "resources": self.resources}, f, indent=2, sort_keys=True)
        tmp.replace(self.path)

    def get(self, type_name: str, name: str) -> dict[str, Any] | None:
        return self.resources.get(self.key(type_name, name))

    def put(self, type_name: str, name: str, state: dict[str, Any] | None) -> None:
        """Record state; None removes the entry."""
        key = self.key(type_name, name)
        if state is None:
            self.resources.pop(key, None)
        else:
            self.resources[key] = state

    def entries(self) -> list[tuple[str, str, dict[str, Any]]]:
        """All (type_name, name, state) triples."""
        out = []
        for key, state in sorted(self.resources.items()):
            type_name, _, name = key.partition(".")
            out.append((type_name, name, state))
        return out
