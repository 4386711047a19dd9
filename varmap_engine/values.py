"""
VarValue - tagged union for variable default values.

A default is one of five kinds: number, string, array, matrix or table.
Consumers switch on ``kind`` and every switch ends in an explicit failure
for unhandled kinds, so adding a kind breaks loudly instead of silently.

Example:
    >>> VarValue.from_python([[1, 2], [3, 4]]).kind
    <VarType.MATRIX: 'matrix'>
    >>> VarValue.number(0.8).to_python()
    0.8
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from numbers import Real
from typing import Any, Mapping, Sequence, Tuple, Union


class VarType(str, Enum):
    """Kinds a VarValue can hold."""
    NUMBER = "number"
    STRING = "string"
    ARRAY = "array"
    MATRIX = "matrix"
    TABLE = "table"


Payload = Union[
    float,
    str,
    Tuple[float, ...],
    Tuple[Tuple[float, ...], ...],
    Tuple[Tuple[str, "VarValue"], ...],
]


def _is_number(value: Any) -> bool:
    return isinstance(value, Real)


@dataclass(frozen=True)
class VarValue:
    """Immutable tagged value.

    Tables are stored as key-sorted ``(key, VarValue)`` pairs so two equal
    tables compare and hash equal regardless of insertion order.
    """

    kind: VarType
    payload: Payload

    @classmethod
    def number(cls, value: float) -> "VarValue":
        return cls(VarType.NUMBER, float(value))

    @classmethod
    def string(cls, value: str) -> "VarValue":
        return cls(VarType.STRING, str(value))

    @classmethod
    def array(cls, values: Sequence[float]) -> "VarValue":
        return cls(VarType.ARRAY, tuple(float(v) for v in values))

    @classmethod
    def matrix(cls, rows: Sequence[Sequence[float]]) -> "VarValue":
        return cls(VarType.MATRIX, tuple(tuple(float(v) for v in row) for row in rows))

    @classmethod
    def table(cls, entries: Mapping[str, "VarValue"]) -> "VarValue":
        return cls(VarType.TABLE, tuple(sorted(entries.items())))

    @classmethod
    def from_python(cls, value: Any) -> "VarValue":
        """Convert plain YAML/Python data into a VarValue.

        Raises:
            TypeError: If the value has no VarValue representation.
        """
        if isinstance(value, VarValue):
            return value
        if isinstance(value, str):
            return cls.string(value)
        if _is_number(value):
            return cls.number(value)
        if isinstance(value, Mapping):
            return cls.table({str(k): cls.from_python(v) for k, v in value.items()})
        if isinstance(value, (list, tuple)):
            if all(_is_number(v) for v in value):
                return cls.array(value)
            if all(isinstance(row, (list, tuple)) and all(_is_number(v) for v in row) for row in value):
                return cls.matrix(value)
        raise TypeError(f"Cannot convert {type(value).__name__} to VarValue: {value!r}")

    def to_python(self) -> Any:
        """Return the plain Python equivalent handed to equation callables."""
        if self.kind is VarType.NUMBER:
            return self.payload
        if self.kind is VarType.STRING:
            return self.payload
        if self.kind is VarType.ARRAY:
            return list(self.payload)
        if self.kind is VarType.MATRIX:
            return [list(row) for row in self.payload]
        if self.kind is VarType.TABLE:
            return {key: value.to_python() for key, value in self.payload}
        raise ValueError(f"Unhandled VarType: {self.kind}")

    def render(self) -> str:
        """Stable textual form used by the exporter."""
        if self.kind is VarType.NUMBER:
            return repr(self.payload)
        if self.kind is VarType.STRING:
            return f"'{self.payload}'"
        if self.kind is VarType.ARRAY:
            return "[" + ", ".join(repr(v) for v in self.payload) + "]"
        if self.kind is VarType.MATRIX:
            return "[" + ", ".join(
                "[" + ", ".join(repr(v) for v in row) + "]" for row in self.payload
            ) + "]"
        if self.kind is VarType.TABLE:
            return "{" + ", ".join(f"'{key}': {value.render()}" for key, value in self.payload) + "}"
        raise ValueError(f"Unhandled VarType: {self.kind}")

    def __str__(self) -> str:
        return self.render()
