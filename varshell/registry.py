"""A bounded registry of variables kept sorted by name."""

from __future__ import annotations

from bisect import bisect_left
from collections.abc import Iterator
from os import PathLike
from typing import Any, Callable

from varshell.var import Var, VarType


class RegistryFullError(Exception):
    """Raised when a variable is registered in a registry that is at capacity."""


class VarRegistry:
    """Variables ordered by name, looked up by binary search."""

    def __init__(
        self,
        save_path: str | PathLike[str] | None = None,
        capacity: int = 100,
    ) -> None:
        if capacity < 0:
            raise ValueError(f"capacity must not be negative, got {capacity}")
        self.save_path = save_path
        self.capacity = capacity
        self._entries: list[Var] = []
        self._names: list[str] = []

    def register(
        self,
        name: str,
        var_type: VarType | str,
        source: Callable[[], Any],
        is_persistent: bool = False,
    ) -> Var:
        """Add a variable in name order and return it."""
        if len(self._entries) >= self.capacity:
            raise RegistryFullError(
                f"registry is full ({self.capacity} entries); cannot add {name!r}"
            )
        if isinstance(var_type, str):
            var_type = VarType.from_label(var_type)
        if not callable(source):
            raise TypeError(f"source for {name!r} must be callable")
        var = Var(name, var_type, source, is_persistent)
        position = bisect_left(self._names, name)
        self._names.insert(position, name)
        self._entries.insert(position, var)
        return var

    def get(self, name: str) -> Var | None:
        """Return the variable called ``name``, or None if there is none."""
        position = bisect_left(self._names, name)
        if position < len(self._names) and self._names[position] == name:
            return self._entries[position]
        return None

    def entry(self, index: int) -> Var:
        """Return the variable at ``index`` in name order."""
        if not 0 <= index < len(self._entries):
            raise IndexError(f"registry index out of range: {index}")
        return self._entries[index]

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[Var]:
        return iter(list(self._entries))