from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterator, Optional, Union

from promizer.errors import ScanError

DEFAULT_MARKER = "promizer"

_IDENT = r"[A-Za-z_$][\w$]*"

# Declarations a tag can bind to. Matched against a stripped line.
_DECL_RES = (
    # function name(  /  export default async function* name(
    re.compile(rf"^(?:export\s+(?:default\s+)?)?(?:async\s+)?function\s*\*?\s*(?P<name>{_IDENT})\s*\("),
    # const name = (req, res) =>  /  let name = async function
    re.compile(
        rf"^(?:export\s+)?(?:const|let|var)\s+(?P<name>{_IDENT})\s*(?::[^=]+)?="
        rf"\s*(?:async\s+)?(?:function\b|\(|{_IDENT}\s*=>)"
    ),
    # exports.name = function / module.exports.name = (req, res) =>
    re.compile(
        rf"^(?:module\.)?exports\.(?P<name>{_IDENT})\s*="
        rf"\s*(?:async\s+)?(?:function\b|\(|{_IDENT}\s*=>)"
    ),
    # class method shorthand: async name(req, res) {
    re.compile(
        rf"^(?:(?:public|private|protected|static|async)\s+)*(?P<name>{_IDENT})"
        r"\s*\([^)]*\)\s*(?::[^{]+)?\{"
    ),
)

_NOT_HANDLERS = {"if", "for", "while", "switch", "catch", "function", "return", "with"}


@dataclass(frozen=True)
class RawTag:
    text: str
    start_line: int
    end_line: int
    handler_name: Optional[str] = None
    handler_line: Optional[int] = None
    closed: bool = True


def marker_regex(marker: str = DEFAULT_MARKER) -> re.Pattern[str]:
    # used with .search so a tag may trail code: `foo(); //promizer(...)`
    return re.compile(rf"(?:^|[\s;{{}})])//\s*{re.escape(marker)}\b(?P<rest>.*)$")


def declared_name(line: str) -> Optional[str]:
    """Return the handler name declared on `line`, if any."""
    s = line.strip()
    for rx in _DECL_RES:
        m = rx.match(s)
        if m and m.group("name") not in _NOT_HANDLERS:
            return m.group("name")
    return None


def scan_annotations(source: str, marker: str = DEFAULT_MARKER) -> Iterator[Union[RawTag, ScanError]]:
    """
    Yield every tag in `source` in line order.

    Each tag is bound to the first following line that is code rather than
    blank, comment or another tag. A marker that is bare or followed by
    `key=value` text instead of `(` yields a ScanError in its place; a comment
    that only mentions the marker in prose is skipped. Scanning always
    continues.
    """
    lines = source.splitlines()
    marker_re = marker_regex(marker)

    found: list[tuple[int, Union[ScanError, tuple[str, int, bool]]]] = []
    tag_lines: set[int] = set()

    i = 0
    while i < len(lines):
        m = marker_re.search(lines[i])
        if m is None:
            i += 1
            continue

        rest = m.group("rest")
        if not rest.lstrip().startswith("("):
            if rest.strip() and "=" not in rest:
                # prose that mentions the marker, e.g. "// promizer tags below"
                i += 1
                continue
            found.append((i, ScanError(f"'{marker}' marker is not followed by '('", line=i + 1)))
            i += 1
            continue

        col = len(lines[i]) - len(rest) + rest.index("(") + 1
        text, end, closed = _collect(lines, i, col, marker_re)
        found.append((i, (text, end, closed)))
        tag_lines.update(range(i, end + 1))
        i = end + 1

    for start, item in found:
        if isinstance(item, ScanError):
            yield item
            continue
        text, end, closed = item
        handler, handler_idx = _find_handler(lines, end + 1, tag_lines)
        yield RawTag(
            text=text,
            start_line=start + 1,
            end_line=end + 1,
            handler_name=handler,
            handler_line=handler_idx + 1 if handler_idx is not None else None,
            closed=closed,
        )


def _collect(lines: list[str], start: int, col: int, marker_re: re.Pattern[str]) -> tuple[str, int, bool]:
    """
    Gather the argument text from `col` on line `start` up to the balancing ')'.

    Returns (text, last line index, closed). Quotes never span lines. An
    unbalanced tag stops before the next marker or declaration line.
    """
    depth = 1
    buf: list[str] = []
    j = start
    chunk = lines[start][col:]

    while True:
        quote: Optional[str] = None
        escaped = False
        for k, ch in enumerate(chunk):
            if quote:
                if escaped:
                    escaped = False
                elif ch == "\\":
                    escaped = True
                elif ch == quote:
                    quote = None
            elif ch in ("'", '"'):
                quote = ch
            elif ch == "(":
                depth += 1
            elif ch == ")":
                depth -= 1
                if depth == 0:
                    buf.append(chunk[:k])
                    return "".join(buf), j, True
        buf.append(chunk)

        nxt = j + 1
        if nxt >= len(lines):
            return "".join(buf), j, False
        line = lines[nxt]
        if marker_re.search(line) or declared_name(line):
            return "".join(buf), j, False

        stripped = line.lstrip()
        chunk = stripped[2:] if stripped.startswith("//") else line
        buf.append("\n")
        j = nxt


def _find_handler(lines: list[str], start: int, tag_lines: set[int]) -> tuple[Optional[str], Optional[int]]:
    in_block = False
    for j in range(start, len(lines)):
        if j in tag_lines:
            continue
        s = lines[j].strip()
        if not s:
            continue
        if in_block:
            if "*/" in s:
                in_block = False
            continue
        if s.startswith("/*"):
            in_block = "*/" not in s[2:]
            continue
        if s.startswith("//") or s.startswith("*"):
            continue

        name = declared_name(s)
        if name is None:
            return None, None
        return name, j
    return None, None
