"""
Builds the per-render Lua context and runs slot scripts inside it.
"""
import logging
from typing import Any, Dict, List, Optional

from lupa import LuaError, LuaRuntime

from lawl.lawl_datatypes import EncodingError, MarshalError, RenderError, ScriptError
from lawl.lawl_environment import Environment
from lawl.lawl_marshal import Marshaller

logger = logging.getLogger(__name__)

DATA = "data"

# Routes Lua's print into the render's side effects instead of stdout.
_CAPTURE_PRINT = """
function(emit)
  print = function(...)
    local parts = {}
    for i = 1, select('#', ...) do
      parts[i] = tostring((select(i, ...)))
    end
    emit(table.concat(parts, '\\t'))
  end
end
"""


class ScriptContext:
    """One isolated Lua interpreter, built fresh for a single render call."""

    def __init__(self, environment: Environment, marshaller: Optional[Marshaller] = None,
                 side_effects: Optional[List[Dict]] = None):
        self.marshaller = marshaller or Marshaller()
        self.side_effects: List[Dict] = side_effects if side_effects is not None else []
        self.lua = LuaRuntime(unpack_returned_tuples=True, register_eval=False, register_builtins=False)
        self.globals = self.lua.globals()

        for source in environment.functions:
            self._execute(source)
        self.lua.eval(_CAPTURE_PRINT)(self._emit_stdout)

        # Bound after the prelude so host values shadow helpers of the same name.
        for key, cell in environment.items():
            with cell.lock:
                try:
                    value = self.marshaller.to_lua(self.lua, cell.value)
                except MarshalError as e:
                    e.key = key
                    e.message = f"value {key!r}: {e.message}"
                    raise
            self.globals[key] = value

    def _emit_stdout(self, message):
        self.side_effects.append({'topics': ['stdout'], 'message': message})

    def _execute(self, code: str) -> None:
        try:
            self.lua.execute(code)
        except RenderError:
            raise
        except LuaError as e:
            raise ScriptError(str(e), code=code) from e
        except UnicodeDecodeError as e:
            raise EncodingError(f"script produced invalid UTF-8: {e}", code=code) from e
        except Exception as e:
            # Raised by a host callable invoked from the script.
            raise ScriptError(f"{type(e).__name__}: {e}", code=code) from e

    def run_slot(self, code: str, content: str) -> str:
        """Bind `content` as `data`, run `code`, and return the new `data`."""
        self.globals[DATA] = content
        logger.debug("running slot script %r", code)
        self._execute(code)
        return self.read_data(code)

    def read_data(self, code: Optional[str] = None) -> str:
        try:
            value = self.globals[DATA]
        except UnicodeDecodeError as e:
            raise EncodingError(f"'{DATA}' is not valid UTF-8: {e}", code=code) from e
        match value:
            case str():
                return value
            case bool() | None:
                pass
            case int() | float():
                return self.globals.tostring(value)
        raise ScriptError(f"'{DATA}' must be a string or number after the script, got {self.type_name(value)}",
                          code=code)

    def type_name(self, value: Any) -> str:
        return self.globals.type(value)
