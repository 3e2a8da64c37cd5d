"""
Parser for the argument list inside a tag.

The grammar is a loose cousin of JavaScript literals:

    args   := [pair (',' pair)* [',']]
    pair   := key ('=' | ':') value
    value  := string | array | object | bare
    array  := '[' [value (',' value)* [',']] ']'
    object := '{' [pair (',' pair)* [',']] '}'

Strings take single or double quotes with backslash escapes. Keys are bare
words or strings. A bare value runs up to the next ',', bracket or quote and
is kept as a string (`auth`, `application/json`, `id:number`, `true`).
Bare values end at a newline.
"""
from __future__ import annotations

from typing import Any

from promizer.errors import ParseError

_BARE_STOP = set(",[]{}'\"\n")
_ESCAPES = {"n": "\n", "t": "\t", "r": "\r", "\\": "\\", "'": "'", '"': '"', "/": "/"}


def parse_args(text: str) -> dict[str, Any]:
    """Parse tag argument text into an ordered mapping. Raises ParseError."""
    return ArgumentParser(text).parse()


class ArgumentParser:
    """
    Recursive-descent parser over the raw argument text.

    Usage:
        args = ArgumentParser("type='GET', body=['id:number']").parse()
    """

    def __init__(self, text: str):
        self.text = text
        self.pos = 0

    def _current(self) -> str | None:
        if self.pos >= len(self.text):
            return None
        return self.text[self.pos]

    def _skip_ws(self) -> None:
        while self.pos < len(self.text) and self.text[self.pos].isspace():
            self.pos += 1

    def _error(self, message: str, offset: int | None = None) -> ParseError:
        return ParseError(message, self.pos if offset is None else offset)

    def parse(self) -> dict[str, Any]:
        out = self._pairs(closer=None)
        self._skip_ws()
        if self._current() is not None:
            raise self._error(f"unexpected {self._current()!r}")
        return out

    def _pairs(self, closer: str | None) -> dict[str, Any]:
        """Read `key=value` pairs until `closer` (or end of text at top level)."""
        out: dict[str, Any] = {}
        opened_at = self.pos - 1
        while True:
            self._skip_ws()
            ch = self._current()
            if ch is None:
                if closer is None:
                    return out
                raise self._error("unterminated object", opened_at)
            if ch == closer:
                self.pos += 1
                return out
            if ch in "]})":
                raise self._error(f"unexpected {ch!r}")

            key = self._key()
            self._skip_ws()
            if self._current() not in ("=", ":"):
                raise self._error(f"expected '=' or ':' after key {key!r}")
            self.pos += 1
            out[key] = self._value()

            self._skip_ws()
            ch = self._current()
            if ch == ",":
                self.pos += 1
            elif ch is not None and ch != closer:
                raise self._error(f"expected ',' after value of {key!r}")

    def _items(self) -> list[Any]:
        out: list[Any] = []
        opened_at = self.pos - 1
        while True:
            self._skip_ws()
            ch = self._current()
            if ch is None:
                raise self._error("unterminated array", opened_at)
            if ch == "]":
                self.pos += 1
                return out
            out.append(self._value())
            self._skip_ws()
            ch = self._current()
            if ch == ",":
                self.pos += 1
            elif ch is None:
                raise self._error("unterminated array", opened_at)
            elif ch != "]":
                raise self._error("expected ',' or ']' in array")

    def _key(self) -> str:
        ch = self._current()
        if ch in ("'", '"'):
            return self._string()
        start = self.pos
        while self.pos < len(self.text):
            c = self.text[self.pos]
            if c.isalnum() or c in "_$-.@":
                self.pos += 1
            else:
                break
        if self.pos == start:
            raise self._error(f"expected a key, found {ch!r}")
        return self.text[start:self.pos]

    def _value(self) -> Any:
        self._skip_ws()
        ch = self._current()
        if ch is None:
            raise self._error("expected a value")
        if ch in ("'", '"'):
            return self._string()
        if ch == "[":
            self.pos += 1
            return self._items()
        if ch == "{":
            self.pos += 1
            return self._pairs(closer="}")
        return self._bare()

    def _string(self) -> str:
        quote = self.text[self.pos]
        start = self.pos
        self.pos += 1
        chars: list[str] = []
        while self.pos < len(self.text):
            ch = self.text[self.pos]
            self.pos += 1
            if ch == quote:
                return "".join(chars)
            if ch == "\\" and self.pos < len(self.text):
                nxt = self.text[self.pos]
                self.pos += 1
                chars.append(_ESCAPES.get(nxt, "\\" + nxt))
            else:
                chars.append(ch)
        raise self._error("unterminated string", start)

    def _bare(self) -> str:
        start = self.pos
        while self.pos < len(self.text) and self.text[self.pos] not in _BARE_STOP:
            self.pos += 1
        word = self.text[start:self.pos].strip()
        if not word:
            raise self._error(f"expected a value, found {self._current()!r}", start)
        return word
