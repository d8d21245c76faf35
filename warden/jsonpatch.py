"""JSON Patch (RFC 6902) generation from two JSON documents."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class PatchOperation:
    """A single JSON Patch operation."""

    operation: str
    path: str
    value: Any = None

    def to_dict(self) -> dict[str, Any]:
        """Return the operation in its wire form."""
        data: dict[str, Any] = {"op": self.operation, "path": self.path}
        if self.operation != "remove":
            data["value"] = self.value
        return data


def escape_pointer(token: str) -> str:
    """Escape one reference token of a JSON pointer."""
    return token.replace("~", "~0").replace("/", "~1")


def _same(a: Any, b: Any) -> bool:
    return type(a) is type(b) and a == b


def _diff(original: Any, modified: Any, path: str) -> list[PatchOperation]:
    if isinstance(original, dict) and isinstance(modified, dict):
        ops: list[PatchOperation] = []
        for key, new_value in modified.items():
            child = f"{path}/{escape_pointer(key)}"
            if key not in original:
                ops.append(PatchOperation("add", child, new_value))
            else:
                ops.extend(_diff(original[key], new_value, child))
        ops.extend(
            PatchOperation("remove", f"{path}/{escape_pointer(key)}")
            for key in original
            if key not in modified
        )
        return ops
    if _same(original, modified):
        return []
    return [PatchOperation("replace", path, modified)]


def create_patch(original: Any, modified: Any) -> list[PatchOperation]:
    """Return the operations that turn ``original`` into ``modified``."""
    return _diff(original, modified, "")