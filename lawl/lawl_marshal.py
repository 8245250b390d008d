from __future__ import annotations

import collections.abc
import dataclasses
import enum
from typing import Any, Callable

from lupa import LuaRuntime, lua_type

from lawl.lawl_datatypes import DynamicValue, MarshalError


class Marshaller:
    """Converts host values into dynamic values and then into Lua values.

    `visit` is the serialization step: it walks an arbitrary host value and
    produces a plain DynamicValue (None/bool/number/str/list/dict).
    `to_lua` builds the matching Lua values inside one runtime, and
    `from_lua` brings Lua tables back as plain Python data.
    """

    def visit(self, value: Any) -> DynamicValue:
        return self._visit(value, set())

    def _visit(self, value: Any, active: set) -> DynamicValue:
        match value:
            case None | bool() | int() | float() | str():
                return value
            case bytes() | bytearray():
                try:
                    return bytes(value).decode("utf-8")
                except UnicodeDecodeError as e:
                    raise MarshalError(f"bytes value is not valid UTF-8: {e}") from e
            case enum.Enum():
                return self._visit(value.value, active)

        # Containers on the current path; shared (non-cyclic) references are fine.
        if id(value) in active:
            raise MarshalError(f"{type(value).__name__} value contains itself")
        active.add(id(value))
        try:
            match value:
                case collections.abc.Mapping():
                    return {str(k): self._visit(v, active) for k, v in value.items()}
                case list() | tuple() | collections.abc.Sequence() | set() | frozenset():
                    return [self._visit(v, active) for v in value]
            if dataclasses.is_dataclass(value) and not isinstance(value, type):
                return {f.name: self._visit(getattr(value, f.name), active) for f in dataclasses.fields(value)}
        finally:
            active.discard(id(value))
        raise MarshalError(f"cannot convert {type(value).__name__} to a script value")

    def to_lua(self, lua: LuaRuntime, value: Any) -> Any:
        """Marshal a host value into `lua`. Callables become Lua functions."""
        if callable(value) and not isinstance(value, type) and lua_type(value) is None:
            return self._wrap_callable(lua, value)
        return self._build(lua, self.visit(value))

    def _build(self, lua: LuaRuntime, value: DynamicValue) -> Any:
        match value:
            case dict():
                return lua.table_from({k: self._build(lua, v) for k, v in value.items()})
            case list():
                return lua.table_from([self._build(lua, v) for v in value])
            case _:
                return value

    def _wrap_callable(self, lua: LuaRuntime, func: Callable) -> Callable:
        def call_from_lua(*args):
            result = func(*[self.from_lua(a) for a in args])
            return self.to_lua(lua, result)
        call_from_lua.__name__ = getattr(func, "__name__", "call_from_lua")
        return call_from_lua

    def from_lua(self, value: Any) -> Any:
        if lua_type(value) != "table":
            return value
        items = dict(value.items())
        # A table keyed exactly 1..n is a sequence.
        if items and all(type(k) is int for k in items) and sorted(items) == list(range(1, len(items) + 1)):
            return [self.from_lua(items[i]) for i in range(1, len(items) + 1)]
        return {k: self.from_lua(v) for k, v in items.items()}


__all__ = ["Marshaller"]
