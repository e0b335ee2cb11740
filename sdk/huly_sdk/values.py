"""
Self-describing values for schema-free transaction payloads.

Transaction attribute and operation maps have no static shape, so every
value is carried as a tagged variant and encoded recursively.

Invariants:
    - bool is checked before int (bool is an int subclass in Python)
    - Map keys are always strings
    - Unsupported Python types are rejected, never coerced to null

Example:
    >>> v = Value.of({"title": "Spec", "tags": ["a", "b"], "parent": None})
    >>> v.kind
    <ValueKind.MAP: 'map'>
    >>> v.to_json()
    {'title': 'Spec', 'tags': ['a', 'b'], 'parent': None}
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping

from .errors import InvalidInputError


class ValueKind(Enum):
    """Supported value tags."""

    NULL = "null"
    BOOL = "bool"
    INT = "int"
    FLOAT = "float"
    STRING = "str"
    LIST = "list"
    MAP = "map"


@dataclass(frozen=True)
class Value:
    """A tagged payload value.

    Attributes:
        kind: Value tag
        data: Python payload; lists hold a tuple of Value, maps a tuple of
            (key, Value) pairs so the whole tree stays immutable
    """

    kind: ValueKind
    data: Any = None

    @classmethod
    def of(cls, obj: Any, path: str = "$") -> Value:
        """Encode a Python object.

        Args:
            obj: bool, int, float, str, None, list/tuple, dict or Value
            path: Location used in error messages

        Raises:
            InvalidInputError: If obj (or a nested item) has no encoding
        """
        if isinstance(obj, Value):
            return obj
        if obj is None:
            return cls(ValueKind.NULL)
        if isinstance(obj, bool):
            return cls(ValueKind.BOOL, obj)
        if isinstance(obj, int):
            return cls(ValueKind.INT, obj)
        if isinstance(obj, float):
            return cls(ValueKind.FLOAT, obj)
        if isinstance(obj, str):
            return cls(ValueKind.STRING, obj)
        if isinstance(obj, (list, tuple)):
            return cls(
                ValueKind.LIST,
                tuple(cls.of(item, f"{path}[{i}]") for i, item in enumerate(obj)),
            )
        if isinstance(obj, Mapping):
            items = []
            for key, item in obj.items():
                if not isinstance(key, str):
                    raise InvalidInputError(
                        f"Map key at {path} must be a string, got {type(key).__name__}",
                        field_name=path,
                    )
                items.append((key, cls.of(item, f"{path}.{key}")))
            return cls(ValueKind.MAP, tuple(items))

        raise InvalidInputError(
            f"Unsupported value type {type(obj).__name__} at {path}",
            field_name=path,
        )

    @classmethod
    def from_json(cls, obj: Any) -> Value:
        """Decode a value parsed by ``json.loads``."""
        return cls.of(obj)

    def to_json(self) -> Any:
        """Convert back to plain JSON-compatible Python."""
        if self.kind == ValueKind.LIST:
            return [item.to_json() for item in self.data]
        if self.kind == ValueKind.MAP:
            return {key: item.to_json() for key, item in self.data}
        return self.data


def encode_map(values: Mapping[str, Any]) -> tuple[tuple[str, Value], ...]:
    """Encode a top-level attribute/operation map."""
    encoded = Value.of(dict(values))
    return encoded.data


def decode_map(items: tuple[tuple[str, Value], ...]) -> dict[str, Any]:
    """Inverse of encode_map."""
    return {key: value.to_json() for key, value in items}
