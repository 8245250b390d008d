import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Optional

from lawl.lawl_context import ScriptContext
from lawl.lawl_datatypes import EncodingError, Location, RenderError
from lawl.lawl_environment import Environment
from lawl.lawl_file import read_template
from lawl.lawl_marshal import Marshaller
from lawl.lawl_splicer import TAG, Slot, TagInterceptor

logger = logging.getLogger(__name__)


# ===================================================================
# 1. Render Results
# ===================================================================

@dataclass
class RenderResult:
    """The outcome of `Lawl.handle_template`.

    On failure `error_location` points at the open tag of the slot whose
    script failed, or is None when the failure is not tied to a slot
    (prelude, marshalling, undecodable template).
    """
    status: Literal['success', 'error']
    value: Optional[str] = None
    error_message: Optional[str] = None
    error_location: Optional[Location] = None
    side_effects: List[Dict] = field(default_factory=list)

    def format_error(self) -> str:
        if self.status != 'error':
            return ""
        msg = str(self.error_message or "Unknown error")
        loc = self.error_location
        if not loc:
            return msg
        return f"<{TAG}> at line {loc['line']}, col {loc['col']}: {msg}"


def tag_excerpt(template: str, location: Location, radius: int = 1) -> str:
    """Template lines around a slot's open tag, with the tag underlined."""
    lines = template.splitlines()
    line, col = location['line'], location['col']
    if line < 1 or line > len(lines):
        return ""
    first = max(1, line - radius)
    last = min(len(lines), line + radius)
    width = len(str(last))
    out = []
    for n in range(first, last + 1):
        text = lines[n - 1]
        out.append(f"{n:>{width}} | {text}")
        if n == line:
            close = text.find(">", col - 1)
            span = (close + 1 if close >= 0 else len(text)) - (col - 1)
            out.append(f"{' ' * width} | {' ' * (col - 1)}^{'~' * max(span - 1, 0)}")
    return "\n".join(out)


# ===================================================================
# 2. Rendering
# ===================================================================

def _as_text(template: Any) -> str:
    if isinstance(template, (bytes, bytearray)):
        try:
            return bytes(template).decode("utf-8")
        except UnicodeDecodeError as e:
            raise EncodingError(f"template is not valid UTF-8: {e}") from e
    return str(template)


class Renderer:
    """Renders one template against an environment.

    A fresh ScriptContext is built for every call, so nothing a script does
    survives into the next render.
    """

    def __init__(self, environment: Environment, marshaller: Optional[Marshaller] = None):
        self.environment = environment
        self.marshaller = marshaller or Marshaller()

    def render(self, template: Any, side_effects: Optional[List[Dict]] = None) -> str:
        text = _as_text(template)
        context = ScriptContext(self.environment, self.marshaller, side_effects)

        def run_slot(slot: Slot, content: str) -> str:
            return context.run_slot(slot.code, content)

        logger.debug("rendering template (%d chars, %d values)", len(text), len(self.environment))
        output = TagInterceptor(text, run_slot).rewrite()
        logger.debug("rendered template (%d chars)", len(output))
        return output


class Lawl:
    """Template engine: an environment of named values plus a renderer."""

    def __init__(self, environment: Optional[Environment] = None):
        self.environment = environment if environment is not None else Environment()
        self.renderer = Renderer(self.environment)

    def render(self, template: Any) -> str:
        """Render `template`, raising a RenderError on the first failure."""
        return self.renderer.render(template)

    def render_file(self, path: str | os.PathLike) -> str:
        return self.render(read_template(path))

    def handle_template(self, template: Any) -> RenderResult:
        """Render `template` and report the outcome instead of raising."""
        side_effects: List[Dict] = []
        text = None
        try:
            text = _as_text(template)
            value = self.renderer.render(text, side_effects)
        except RenderError as e:
            msg = str(e)
            loc = e.location
            if loc is not None and text is not None:
                excerpt = tag_excerpt(text, loc)
                if excerpt:
                    msg = f"{msg}\n{excerpt}"
            side_effects.append({'topics': ['stderr'], 'message': msg})
            logger.debug("render failed: %s", e)
            return RenderResult(
                status='error',
                error_message=msg,
                error_location=loc,
                side_effects=side_effects,
            )
        return RenderResult(status='success', value=value, side_effects=side_effects)

    def insert(self, key: Any, value: Any) -> None:
        self.environment.insert(key, value)

    def remove(self, key: Any) -> None:
        self.environment.remove(key)

    def load(self, document, *, fmt: Optional[str] = None, content_type: Optional[str] = None) -> None:
        self.environment.load(document, fmt=fmt, content_type=content_type)

    def load_file(self, path: str | os.PathLike) -> None:
        self.environment.load_file(path)
