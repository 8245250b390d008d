from __future__ import annotations

import collections.abc
import json
import re
import tomllib
from typing import Any, Optional

import xmltodict
import yaml

from lawl.lawl_datatypes import ValueDocumentError


# --------------------------
# Helpers
# --------------------------

def _norm_text(data: bytes | bytearray | str, *, encoding: Optional[str] = None) -> str:
    if isinstance(data, (bytes, bytearray)):
        enc = encoding or 'utf-8'
        try:
            return bytes(data).decode(enc)
        except (UnicodeDecodeError, LookupError) as e:
            raise ValueDocumentError(f"values document is not valid {enc} text: {e}") from e
    if isinstance(data, str):
        return data
    return str(data)


def _encoding_from_content_type(content_type: Optional[str]) -> Optional[str]:
    if not content_type:
        return None
    m = re.search(r'charset\s*=\s*([^\s;]+)', content_type, re.IGNORECASE)
    if m:
        return m.group(1).strip('"').strip("'")
    return None


def _to_builtin(obj: Any) -> Any:
    # xmltodict returns nested dicts with OrderedDict in older releases
    if isinstance(obj, list):
        return [_to_builtin(x) for x in obj]
    if isinstance(obj, collections.abc.Mapping):
        return {k: _to_builtin(v) for k, v in obj.items()}
    return obj


def detect_format(content_type: Optional[str] = None, data_hint: Optional[str] = None) -> Optional[str]:
    """
    Returns a canonical format name among: 'json', 'yaml', 'toml', 'xml'.
    Uses Content-Type first; falls back to simple data sniffing if provided.
    """
    ct = (content_type or "").lower()
    if 'json' in ct:
        return 'json'
    if 'yaml' in ct:
        return 'yaml'
    if 'toml' in ct:
        return 'toml'
    if 'xml' in ct:
        return 'xml'

    if data_hint is not None:
        s = data_hint.lstrip()
        if s.startswith('{') or s.startswith('['):
            return 'json'
        if s.startswith('<'):
            return 'xml'
    return None


# --------------------------
# Public API
# --------------------------

def deserialize(data: bytes | bytearray | str,
                *,
                content_type: Optional[str] = None,
                fmt: Optional[str] = None) -> Any:
    """
    Convert a values document (bytes/string) to plain Python structures.
    Supported fmt: 'json', 'yaml', 'toml', 'xml'.
    If fmt is None, uses content_type, then sniffing, then YAML (a JSON superset).
    """
    enc = _encoding_from_content_type(content_type)
    text = _norm_text(data, encoding=enc)
    f = (fmt or detect_format(content_type, text) or 'yaml').lower()
    try:
        match f:
            case 'json':
                return json.loads(text)
            case 'yaml' | 'yml':
                return yaml.safe_load(text)
            case 'toml':
                return tomllib.loads(text)
            case 'xml':
                return _to_builtin(xmltodict.parse(text))
    except (ValueError, yaml.YAMLError, xmltodict.expat.ExpatError) as e:
        raise ValueDocumentError(f"invalid {f} values document: {e}") from e
    raise ValueDocumentError(f"Unsupported values document format: {fmt!r}")


__all__ = [
    "deserialize",
    "detect_format",
]
