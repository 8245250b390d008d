"""
Defines the core data types and errors for the LAWL template runtime.
"""

import threading
from typing import Any, Dict, List, Optional, Union

# =================================================================
# Dynamic values
# =================================================================

# The closed set of values that can cross into a render context.
DynamicValue = Union[None, bool, int, float, str, List['DynamicValue'], Dict[str, 'DynamicValue']]

Location = Dict[str, int]


class ValueCell:
    """A host value stored in the environment, guarded by its own lock.

    Renders hold the lock only while converting the value, never across a
    whole render.
    """
    __slots__ = ("value", "lock")

    def __init__(self, value: Any):
        self.value = value
        self.lock = threading.Lock()

    def __repr__(self) -> str:
        return f"ValueCell({self.value!r})"


# =================================================================
# Errors
# =================================================================

class LawlError(Exception):
    """Base class for every error raised by this package."""


class RenderError(LawlError):
    """A render call failed; no output is produced for it."""
    kind = "RenderError"

    def __init__(self, message: str, *, code: Optional[str] = None, location: Optional[Location] = None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.location = location

    def __str__(self) -> str:
        msg = f"{self.kind}: {self.message}"
        if self.code is not None:
            msg += f"\nIn <lua code={self.code!r}>"
        return msg


class ScriptError(RenderError):
    kind = "ScriptError"


class EncodingError(RenderError):
    kind = "EncodingError"


class MarshalError(RenderError, TypeError):
    """An environment value has no script representation."""
    kind = "MarshalError"

    def __init__(self, message: str, *, key: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.key = key


class ValueDocumentError(LawlError, ValueError):
    """A values document could not be parsed or is not a mapping."""
