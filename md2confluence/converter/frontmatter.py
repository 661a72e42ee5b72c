"""Front matter stripping and page title discovery."""

from __future__ import annotations

import logging
import re

import yaml

from md2confluence.converter.fences import Fence, is_closing_fence, opening_fence

logger = logging.getLogger(__name__)

_FRONTMATTER_RE = re.compile(r"\A---\r?\n(?:(.*?)\r?\n)?---[ \t]*(?:\r?\n|\Z)", re.DOTALL)
_TITLE_LINE_RE = re.compile(r"^title:[ \t]*([\"']?)(.+?)\1[ \t]*$", re.MULTILINE)
_H1_RE = re.compile(r"^#[ \t]+(.+?)[ \t]*$")
_CLOSING_HASHES_RE = re.compile(r"[ \t]+#+$")


def remove_front_matter(markdown: str) -> str:
    """Remove a leading ``---`` delimited block, delimiters included."""
    return _FRONTMATTER_RE.sub("", markdown, count=1)


def extract_title(markdown: str, fallback: str = "Untitled") -> str:
    """Return the front matter ``title``, else the first H1, else *fallback*."""
    match = _FRONTMATTER_RE.match(markdown)
    if match and match.group(1):
        title = _front_matter_title(match.group(1))
        if title:
            return title

    heading = _first_h1(remove_front_matter(markdown))
    if heading:
        return heading

    return fallback


def _front_matter_title(block: str) -> str | None:
    try:
        meta = yaml.safe_load(block)
    except yaml.YAMLError:
        logger.debug("front matter is not valid YAML, scanning for title line")
        line = _TITLE_LINE_RE.search(block)
        return line.group(2).strip() if line else None

    if not isinstance(meta, dict):
        return None
    value = meta.get("title")
    if value is None or isinstance(value, (dict, list)):
        return None
    return str(value).strip() or None


def _first_h1(markdown: str) -> str | None:
    """First ``# heading`` line, ignoring lines inside fenced code."""
    fence: Fence | None = None
    for line in markdown.splitlines():
        if fence is not None:
            if is_closing_fence(line, fence):
                fence = None
            continue
        fence = opening_fence(line)
        if fence is not None:
            continue
        match = _H1_RE.match(line)
        if match:
            text = _CLOSING_HASHES_RE.sub("", match.group(1)).strip()
            if text:
                return text
    return None
