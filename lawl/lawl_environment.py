import collections.abc
import logging
import os
from typing import Any, Dict, Iterable, List, Optional, Tuple

from lawl.lawl_datatypes import ValueCell, ValueDocumentError
from lawl.lawl_file import load_values
from lawl.lawl_serialize import deserialize

logger = logging.getLogger(__name__)

# Helpers loaded into every render. Each one works on the global `data`.
PRELUDE: Tuple[str, ...] = (
    "function show(v) if (v or '') == '' then data = '' end end",
    "function hide(v) if (v or '') ~= '' then data = '' end end",
    "function maybe(v, o) return v or o end",
    "function format(...) data = string.format(data, ...) end",
    # A field missing from an item substitutes the empty string.
    "function each(items) "
    "local template = data; local out = {} "
    "for _, item in ipairs(items) do "
    "out[#out + 1] = (template:gsub('%$([a-zA-Z_]+)', function(name) "
    "local v = item[name]; if v == nil then return '' end; return tostring(v) end)) "
    "end "
    "data = table.concat(out) "
    "end",
)


class Environment:
    """Named values shared by every render, plus the prelude sources.

    Each value sits in its own ValueCell so concurrent renders only contend
    on one value at a time. The key set itself is not locked: insert/remove
    while renders are running needs external synchronization.
    """

    def __init__(self, prelude: Optional[Iterable[str]] = None):
        self.values: Dict[str, ValueCell] = {}
        self.functions: List[str] = list(PRELUDE if prelude is None else prelude)

    def insert(self, key: Any, value: Any) -> None:
        name = str(key)
        self.values[name] = ValueCell(value)
        logger.debug("environment insert %r", name)

    def remove(self, key: Any) -> None:
        if self.values.pop(str(key), None) is not None:
            logger.debug("environment remove %r", str(key))

    def update(self, values: collections.abc.Mapping) -> None:
        for key, value in values.items():
            self.insert(key, value)

    def load(self, document, *, fmt: Optional[str] = None, content_type: Optional[str] = None) -> None:
        """Insert every top-level key of a JSON/YAML/TOML/XML values document."""
        self._load_mapping(deserialize(document, fmt=fmt, content_type=content_type), "<document>")

    def load_file(self, path: str | os.PathLike) -> None:
        self._load_mapping(load_values(path), os.fspath(path))

    def _load_mapping(self, values: Any, origin: str) -> None:
        if values is None:
            return
        if not isinstance(values, collections.abc.Mapping):
            raise ValueDocumentError(
                f"values document {origin} must be a mapping at the top level, not {type(values).__name__}")
        self.update(values)

    def items(self) -> List[Tuple[str, ValueCell]]:
        """A snapshot of the current entries."""
        return list(self.values.items())

    def keys(self) -> List[str]:
        return list(self.values.keys())

    def __contains__(self, key: Any) -> bool:
        return str(key) in self.values

    def __len__(self) -> int:
        return len(self.values)

    def __repr__(self) -> str:
        return f"Environment(keys={sorted(self.values)!r})"
