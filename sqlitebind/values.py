from __future__ import annotations

import dataclasses
import enum
from typing import Any

from .exceptions import BindError, UnsupportedTypeError

INT64_MIN = -9223372036854775808
INT64_MAX = 9223372036854775807


class ValueKind(enum.IntEnum):
    NULL = 0
    INTEGER = 1
    REAL = 2
    TEXT = 3
    BLOB = 4
    # Not an engine type: stored and read back as INTEGER 0/1.
    BOOLEAN = 5


@dataclasses.dataclass(frozen=True)
class Value:
    """A single bindable or retrievable SQL datum."""

    kind: ValueKind
    data: Any = None

    @classmethod
    def null(cls) -> Value:
        return cls(ValueKind.NULL)

    @classmethod
    def integer(cls, value: int) -> Value:
        if not isinstance(value, int):
            raise UnsupportedTypeError(value)
        value = int(value)
        if value < INT64_MIN or value > INT64_MAX:
            raise BindError(f"integer {value} does not fit in a signed 64-bit column")
        return cls(ValueKind.INTEGER, value)

    @classmethod
    def real(cls, value: float) -> Value:
        if not isinstance(value, (int, float)):
            raise UnsupportedTypeError(value)
        return cls(ValueKind.REAL, float(value))

    @classmethod
    def text(cls, value: str) -> Value:
        if not isinstance(value, str):
            raise UnsupportedTypeError(value)
        return cls(ValueKind.TEXT, value)

    @classmethod
    def blob(cls, value) -> Value:
        if not isinstance(value, (bytes, bytearray, memoryview)):
            raise UnsupportedTypeError(value)
        return cls(ValueKind.BLOB, bytes(value))

    @classmethod
    def boolean(cls, value: bool) -> Value:
        # plain ints are accepted, nonzero is true
        if not isinstance(value, int):
            raise UnsupportedTypeError(value)
        return cls(ValueKind.BOOLEAN, bool(value))

    @classmethod
    def from_python(cls, obj) -> Value:
        if isinstance(obj, Value):
            return obj
        if obj is None:
            return cls.null()
        # bool before int: bool is an int subclass
        if isinstance(obj, bool):
            return cls.boolean(obj)
        if isinstance(obj, int):
            return cls.integer(obj)
        if isinstance(obj, float):
            return cls.real(obj)
        if isinstance(obj, str):
            return cls.text(obj)
        if isinstance(obj, (bytes, bytearray, memoryview)):
            return cls.blob(obj)
        raise UnsupportedTypeError(obj)

    def to_python(self):
        return self.data

    @property
    def is_null(self) -> bool:
        return self.kind is ValueKind.NULL
