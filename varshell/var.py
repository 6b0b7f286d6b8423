"""Typed variables whose values are read live from a source callable."""

from __future__ import annotations

import math
import struct
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable


class VarType(Enum):
    """Kinds of value a variable can hold, labelled as they are shown to users."""

    BOOL = "bool"
    CHAR = "char"
    INT8 = "int8"
    INT16 = "int16"
    INT32 = "int32"
    INT64 = "int64"
    UINT8 = "uint8"
    UINT16 = "uint16"
    UINT32 = "uint32"
    UINT64 = "uint64"
    FLOAT = "float"
    DOUBLE = "double"
    BOOL_ARR = "bool[]"
    CHAR_ARR = "char[]"
    INT8_ARR = "int8[]"
    INT16_ARR = "int16[]"
    INT32_ARR = "int32[]"
    INT64_ARR = "int64[]"
    UINT8_ARR = "uint8[]"
    UINT16_ARR = "uint16[]"
    UINT32_ARR = "uint32[]"
    UINT64_ARR = "uint64[]"
    FLOAT_ARR = "float[]"
    DOUBLE_ARR = "double[]"

    @classmethod
    def from_label(cls, label: str) -> VarType:
        """Return the type whose label is ``label``; raise ValueError if none is."""
        try:
            return cls(label)
        except ValueError:
            raise ValueError(f"unknown variable type: {label!r}") from None

    @property
    def label(self) -> str:
        return self.value

    @property
    def is_array(self) -> bool:
        return self.value.endswith("[]")

    @property
    def element(self) -> VarType:
        """The scalar type of one element (the type itself for scalars)."""
        return VarType(self.value.removesuffix("[]"))

    def __str__(self) -> str:
        return self.value


_INTEGER_LAYOUT = {
    VarType.INT8: (8, True),
    VarType.INT16: (16, True),
    VarType.INT32: (32, True),
    VarType.INT64: (64, True),
    VarType.UINT8: (8, False),
    VarType.UINT16: (16, False),
    VarType.UINT32: (32, False),
    VarType.UINT64: (64, False),
}


def _wrap_integer(value: Any, bits: int, signed: bool) -> int:
    number = int(value) & ((1 << bits) - 1)
    if signed and number >= 1 << (bits - 1):
        number -= 1 << bits
    return number


def _single_precision(value: Any) -> float:
    number = float(value)
    try:
        return struct.unpack("f", struct.pack("f", number))[0]
    except OverflowError:
        return math.copysign(math.inf, number)


def _char(value: Any) -> str:
    if isinstance(value, (bytes, bytearray)):
        if len(value) != 1:
            raise ValueError(f"a char holds exactly one byte, got {value!r}")
        return chr(value[0])
    if isinstance(value, str):
        if len(value) != 1:
            raise ValueError(f"a char holds exactly one character, got {value!r}")
        return value
    return chr(_wrap_integer(value, 8, False))


def _format_scalar(kind: VarType, value: Any) -> str:
    if kind is VarType.BOOL:
        return "true" if value else "false"
    if kind is VarType.CHAR:
        return _char(value)
    if kind in _INTEGER_LAYOUT:
        bits, signed = _INTEGER_LAYOUT[kind]
        return str(_wrap_integer(value, bits, signed))
    if kind is VarType.FLOAT:
        return f"{_single_precision(value):f}"
    if kind is VarType.DOUBLE:
        return f"{float(value):f}"
    raise ValueError(f"not a scalar type: {kind}")


@dataclass
class Var:
    """A named variable whose current value comes from ``source`` on each read."""

    name: str
    var_type: VarType
    source: Callable[[], Any]
    is_persistent: bool = False

    def read(self) -> Any:
        """Return the current value; arrays come back as a list."""
        value = self.source()
        if self.var_type.is_array:
            return list(value)
        return value

    @property
    def arr_length(self) -> int:
        """Number of elements for arrays, 0 for single values."""
        return len(self.read()) if self.var_type.is_array else 0

    def format_value(self) -> str:
        """Render the current value as text."""
        value = self.read()
        if not self.var_type.is_array:
            return _format_scalar(self.var_type, value)
        element = self.var_type.element
        if element is VarType.CHAR:
            parts = (f"'{_char(item)}'" for item in value)
        else:
            parts = (_format_scalar(element, item) for item in value)
        return "[" + ", ".join(parts) + "]"

    def to_json(self) -> str:
        """Describe the variable and its current value as a JSON object."""
        persistent = "true" if self.is_persistent else "false"
        return (
            f'{{"name": "{self.name}", "type": "{self.var_type.label}", '
            f'"is_persistent": {persistent}, "value": {self.format_value()}}}'
        )