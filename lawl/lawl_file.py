from __future__ import annotations
import os
from typing import Any
from lawl.lawl_datatypes import EncodingError, ValueDocumentError
from lawl.lawl_serialize import deserialize

_VALUE_FORMATS = {
    ".json": "json",
    ".yaml": "yaml",
    ".yml": "yaml",
    ".toml": "toml",
    ".xml": "xml",
}


def read_template(path: str | os.PathLike, encoding: str = "utf-8") -> str:
    with open(path, "rb") as f:
        raw = f.read()
    try:
        return raw.decode(encoding)
    except UnicodeDecodeError as e:
        raise EncodingError(f"template {os.fspath(path)!r} is not valid {encoding}: {e}") from e


def load_values(path: str | os.PathLike) -> Any:
    """Read a values document, choosing the format from the file extension."""
    ext = os.path.splitext(os.fspath(path))[1].lower()
    fmt = _VALUE_FORMATS.get(ext)
    if fmt is None:
        raise ValueDocumentError(f"unsupported values file extension {ext!r}: {os.fspath(path)}")
    with open(path, "rb") as f:
        data = f.read()
    return deserialize(data, fmt=fmt)
