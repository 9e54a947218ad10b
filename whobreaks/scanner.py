"""Comment and string stripping for JS/TS sources.

The stripped text has exactly the same length as the input and keeps every
newline in place, so a match offset found in the stripped text indexes the
same character (and line) in the original.  Comment text and literal bodies
are blanked with spaces; string literals keep their quote characters so
extraction patterns can still find them and read the specifier back from the
original source.
"""

from __future__ import annotations

from typing import List

NORMAL = "normal"
LINE_COMMENT = "line-comment"
BLOCK_COMMENT = "block-comment"
STRING = "string"
TEMPLATE = "template"


class SourceScanner:
    """Single left-to-right pass over one source text.

    Instantiate one per text; all scan position lives on the instance.
    """

    def __init__(self, source: str, keep_strings: bool = False) -> None:
        self.source = source
        self.keep_strings = keep_strings
        self._out: List[str] = []
        self._state = NORMAL
        self._quote = ""

    def _blank(self, ch: str) -> None:
        self._out.append("\n" if ch == "\n" else " ")

    def strip(self) -> str:
        src = self.source
        n = len(src)
        i = 0
        while i < n:
            c = src[i]
            nxt = src[i + 1] if i + 1 < n else ""
            state = self._state

            if state == NORMAL:
                if c == "/" and nxt == "/":
                    self._state = LINE_COMMENT
                    self._out.append("  ")
                    i += 2
                    continue
                if c == "/" and nxt == "*":
                    self._state = BLOCK_COMMENT
                    self._out.append("  ")
                    i += 2
                    continue
                if c in ("'", '"'):
                    self._state = STRING
                    self._quote = c
                    self._out.append(c)
                elif c == "`":
                    self._state = TEMPLATE
                    self._out.append(" ")
                else:
                    self._out.append(c)
                i += 1

            elif state == LINE_COMMENT:
                if c == "\n":
                    self._state = NORMAL
                self._blank(c)
                i += 1

            elif state == BLOCK_COMMENT:
                if c == "*" and nxt == "/":
                    self._state = NORMAL
                    self._out.append("  ")
                    i += 2
                    continue
                self._blank(c)
                i += 1

            elif state == STRING:
                if c == "\\" and nxt:
                    self._emit_body(c)
                    self._emit_body(nxt)
                    i += 2
                    continue
                if c == self._quote:
                    self._state = NORMAL
                    self._out.append(c)
                elif c == "\n":
                    # Unterminated literal ends at the line break
                    self._state = NORMAL
                    self._out.append(c)
                else:
                    self._emit_body(c)
                i += 1

            else:  # TEMPLATE
                if c == "\\" and nxt:
                    self._blank(c)
                    self._blank(nxt)
                    i += 2
                    continue
                if c == "`":
                    self._state = NORMAL
                self._blank(c)
                i += 1

        return "".join(self._out)

    def _emit_body(self, ch: str) -> None:
        if self.keep_strings:
            self._out.append(ch)
        else:
            self._blank(ch)


def strip_source(source: str, keep_strings: bool = False) -> str:
    """Return *source* with comments and literal bodies blanked."""
    return SourceScanner(source, keep_strings=keep_strings).strip()


def line_at(source: str, index: int) -> int:
    """1-based line number of character *index* in *source*."""
    return source.count("\n", 0, index) + 1
