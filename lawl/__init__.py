from lawl.lawl_datatypes import (
    EncodingError, LawlError, MarshalError, RenderError, ScriptError, ValueDocumentError
)
from lawl.lawl_environment import PRELUDE, Environment
from lawl.lawl_marshal import Marshaller
from lawl.lawl_runtime import Lawl, Renderer, RenderResult

__all__ = [
    "Lawl",
    "Renderer",
    "RenderResult",
    "Environment",
    "PRELUDE",
    "Marshaller",
    "LawlError",
    "RenderError",
    "ScriptError",
    "EncodingError",
    "MarshalError",
    "ValueDocumentError",
]
