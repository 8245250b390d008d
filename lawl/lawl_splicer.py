"""
Streams a template through the HTML tokenizer and splices `<lua>` slots.

Everything outside the reserved element is copied from the template by
offset, so it reaches the output exactly as written. Each open slot gets its
own capture buffer; when its close tag arrives the buffer becomes `data`,
the slot's `code` runs, and the resulting `data` is appended to the
enclosing buffer. Inner slots therefore resolve before outer ones, and an
outer slot sees the inner results in its content.
"""
import logging
import re
from dataclasses import dataclass, field
from html.parser import HTMLParser
from typing import Callable, List, Optional

from lawl.lawl_datatypes import Location, RenderError

logger = logging.getLogger(__name__)

TAG = "lua"
CODE_ATTRIBUTE = "code"

# Elements whose content the HTML5 tokenizer reads as text up to their own
# end tag (raw text and RCDATA). A `<lua>` inside them is not a slot.
TEXT_CONTENT_ELEMENTS = ("script", "style", "xmp", "iframe", "noembed", "noframes", "title", "textarea")
# Everything after `<plaintext>` is text; it has no end tag.
PLAINTEXT = "plaintext"

_TAG_NAME = re.compile(r"<[^\s/>]+")
_ATTRIBUTE = re.compile(r"""[\s/]*([^\s/>=][^\s/>=]*)(?:\s*=\s*(?:'([^']*)'|"([^"]*)"|([^\s>]*)))?""")


@dataclass
class Slot:
    tag_start: int              # where the open tag begins
    start: int                  # just after the open tag
    code: str = ""
    end: Optional[int] = None   # where the close tag begins
    parts: List[str] = field(default_factory=list)

    @property
    def content(self) -> str:
        return "".join(self.parts)


SlotRunner = Callable[[Slot, str], str]


def location_of(template: str, offset: int) -> Location:
    line = template.count("\n", 0, offset) + 1
    col = offset - (template.rfind("\n", 0, offset) + 1) + 1
    return {'line': line, 'col': col}


def raw_attribute(tag_text: str, name: str) -> Optional[str]:
    """The value of attribute `name` exactly as written in `tag_text`.

    Character references are left alone, and the first occurrence of a
    repeated attribute wins.
    """
    m = _TAG_NAME.match(tag_text)
    pos = m.end() if m else 0
    while True:
        m = _ATTRIBUTE.match(tag_text, pos)
        if not m or m.end() == pos:
            return None
        if m.group(1).lower() == name:
            for value in m.group(2, 3, 4):
                if value is not None:
                    return value
            return ""
        pos = m.end()


class TagInterceptor(HTMLParser):
    """Rewrites one template; create a new interceptor per render."""

    CDATA_CONTENT_ELEMENTS = TEXT_CONTENT_ELEMENTS

    def __init__(self, template: str, run_slot: SlotRunner):
        super().__init__(convert_charrefs=False)
        self.template = template
        self.run_slot = run_slot
        self.output: List[str] = []
        self.stack: List[Slot] = []
        self.cursor = 0
        self._fed = 0
        self._opened = False
        self._closed = False
        self._plaintext = False

    # --- tokenizer hooks ---

    def _base(self) -> int:
        # self.rawdata is always the unconsumed suffix of what was fed.
        return self._fed - len(self.rawdata)

    def parse_starttag(self, i):
        base = self._base()
        self._opened = False
        k = super().parse_starttag(i)
        if k >= 0 and self._opened and not self._plaintext:
            self._open(base + i, base + k)
        self._opened = False
        return k

    def parse_endtag(self, i):
        base = self._base()
        self._closed = False
        k = super().parse_endtag(i)
        if k >= 0 and self._closed and not self._plaintext:
            self._close(base + i, base + k)
        self._closed = False
        return k

    def handle_starttag(self, tag, attrs):
        if tag == TAG:
            self._opened = True
        elif tag == PLAINTEXT:
            self._plaintext = True

    def handle_startendtag(self, tag, attrs):
        # `<lua/>` is not a void element; it still opens a slot.
        self.handle_starttag(tag, attrs)

    def handle_endtag(self, tag):
        if tag == TAG:
            self._closed = True

    # --- splice protocol ---

    def _top(self) -> List[str]:
        return self.stack[-1].parts if self.stack else self.output

    def _flush(self, upto: int) -> None:
        if upto > self.cursor:
            self._top().append(self.template[self.cursor:upto])
        self.cursor = max(self.cursor, upto)

    def _open(self, tag_start: int, tag_end: int) -> None:
        self._flush(tag_start)
        code = raw_attribute(self.template[tag_start:tag_end], CODE_ATTRIBUTE) or ""
        self.stack.append(Slot(tag_start=tag_start, start=tag_end, code=code))
        self.cursor = tag_end

    def _close(self, tag_start: int, tag_end: int) -> None:
        if not self.stack:
            logger.warning("stray </%s> at %s passed through", TAG, location_of(self.template, tag_start))
            return
        self._flush(tag_start)
        slot = self.stack.pop()
        slot.end = tag_start
        try:
            result = self.run_slot(slot, slot.content)
        except RenderError as e:
            if e.location is None:
                e.location = location_of(self.template, slot.tag_start)
            if e.code is None:
                e.code = slot.code
            raise
        self._top().append(result)
        self.cursor = tag_end

    def rewrite(self) -> str:
        """Run the whole template through the tokenizer and return the output."""
        self._fed = len(self.template)
        self.feed(self.template)
        self.close()
        end = len(self.template)
        if self.stack:
            # A slot never closed is dropped with its content; its code never runs.
            logger.warning("unclosed <%s> at %s dropped", TAG, location_of(self.template, self.stack[0].tag_start))
            self.stack.clear()
            self.cursor = end
        self._flush(end)
        return "".join(self.output)
