"""Line-level helpers for CommonMark fenced code and block quote markers."""

from __future__ import annotations

from dataclasses import dataclass

MAX_FENCE_INDENT = 3


@dataclass(frozen=True)
class Fence:
    char: str
    length: int
    info: str
    indent: int


def split_indent(line: str) -> tuple[int, str]:
    text = line.rstrip("\r\n")
    body = text.lstrip(" ")
    return len(text) - len(body), body


def opening_fence(line: str) -> Fence | None:
    """Parse a fence opener, or return None if *line* is not one."""
    indent, body = split_indent(line)
    if indent > MAX_FENCE_INDENT or body[:3] not in ("```", "~~~"):
        return None
    char = body[0]
    length = len(body) - len(body.lstrip(char))
    info = body[length:]
    if char == "`" and "`" in info:
        return None
    return Fence(char, length, info, indent)


def is_closing_fence(line: str, fence: Fence) -> bool:
    indent, body = split_indent(line)
    if indent > MAX_FENCE_INDENT:
        return False
    body = body.rstrip()
    return len(body) >= fence.length and body == fence.char * len(body)


def dedent(line: str, width: int) -> str:
    """Drop up to *width* leading spaces."""
    body = line.lstrip(" ")
    return line[min(width, len(line) - len(body)):]


def _strip_quote_marker(line: str) -> str | None:
    body = line.lstrip(" ")
    if len(line) - len(body) > MAX_FENCE_INDENT or not body.startswith(">"):
        return None
    body = body[1:]
    return body[1:] if body.startswith(" ") else body


def quote_prefix(line: str) -> tuple[int, int]:
    """Return (block quote depth, length of the ``>`` markers) for *line*."""
    depth, rest = 0, line
    while True:
        inner = _strip_quote_marker(rest)
        if inner is None:
            return depth, len(line) - len(rest)
        depth += 1
        rest = inner


def strip_quotes(line: str, depth: int) -> str | None:
    """Remove *depth* quote markers; None if the line leaves the quote."""
    for _ in range(depth):
        stripped = _strip_quote_marker(line)
        if stripped is None:
            return None
        line = stripped
    return line
