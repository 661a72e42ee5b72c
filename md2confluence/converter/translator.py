"""Markdown → Confluence storage format, rendered with markdown-it-py.

The dialect-specific pieces are render rules attached to a translator's own
MarkdownIt instance, so two translators never share parser state.
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from typing import Any

from markdown_it import MarkdownIt
from markdown_it.common.utils import escapeHtml, unescapeAll
from markdown_it.token import Token
from mdit_py_plugins.tasklists import tasklists_plugin

from md2confluence.converter.diagrams import is_attachment_name

DEFAULT_CODE_LANGUAGE = "text"

_CDATA_RE = re.compile(r"(<!\[CDATA\[.*?\]\]>)", re.DOTALL)
# Whitespace between two tags that spans a line break is layout, not content.
_INTER_TAG_BREAK_RE = re.compile(r">[ \t]*\r?\n\s*<")
_CHECKBOX_CLASS = "task-list-item-checkbox"


def _cdata(text: str) -> str:
    """Wrap text in CDATA, splitting any embedded terminator."""
    return "<![CDATA[" + text.replace("]]>", "]]]]><![CDATA[>") + "]]>"


def code_macro(code: str, language: str | None) -> str:
    lang = escapeHtml(language or DEFAULT_CODE_LANGUAGE)
    return (
        '<ac:structured-macro ac:name="code">'
        f'<ac:parameter ac:name="language">{lang}</ac:parameter>'
        '<ac:parameter ac:name="collapse">false</ac:parameter>'
        f"<ac:plain-text-body>{_cdata(code)}</ac:plain-text-body>"
        "</ac:structured-macro>\n"
    )


def collapse_tag_whitespace(markup: str) -> str:
    """Drop line-spanning whitespace between adjacent tags, outside CDATA."""
    parts = _CDATA_RE.split(markup)
    return "".join(
        part if part.startswith("<![CDATA[") else _INTER_TAG_BREAK_RE.sub("><", part)
        for part in parts
    )


# ---------------------------------------------------------------------------
# Render rules (bound to the renderer by MarkdownIt.add_render_rule)
# ---------------------------------------------------------------------------


def _render_fence(
    self: Any, tokens: Sequence[Token], idx: int, options: Any, env: Any
) -> str:
    token = tokens[idx]
    info = unescapeAll(token.info).strip() if token.info else ""
    language = info.split(maxsplit=1)[0] if info else None
    return code_macro(token.content.removesuffix("\n"), language)


def _render_code_block(
    self: Any, tokens: Sequence[Token], idx: int, options: Any, env: Any
) -> str:
    return code_macro(tokens[idx].content.removesuffix("\n"), None)


def _render_image(
    self: Any, tokens: Sequence[Token], idx: int, options: Any, env: Any
) -> str:
    src = str(tokens[idx].attrGet("src") or "")
    if is_attachment_name(src):
        return f'<ac:image><ri:attachment ri:filename="{escapeHtml(src)}"/></ac:image>'
    return f'<ac:image><ri:url ri:value="{escapeHtml(src)}"/></ac:image>'


def _render_link_open(
    self: Any, tokens: Sequence[Token], idx: int, options: Any, env: Any
) -> str:
    href = str(tokens[idx].attrGet("href") or "")
    return f'<a href="{escapeHtml(href)}">'


def _render_softbreak(
    self: Any, tokens: Sequence[Token], idx: int, options: Any, env: Any
) -> str:
    return " "


def _render_html_inline(
    self: Any, tokens: Sequence[Token], idx: int, options: Any, env: Any
) -> str:
    content = tokens[idx].content
    # Storage format is XHTML; the task-list plugin emits an unclosed <input>.
    is_checkbox = content.startswith("<input") and _CHECKBOX_CLASS in content
    if is_checkbox and not content.endswith("/>"):
        return content[:-1].rstrip() + " />"
    return content


class MarkupTranslator:
    """Serializes Markdown into Confluence storage-format markup."""

    def __init__(self) -> None:
        md = MarkdownIt("commonmark", {"breaks": False})
        md.enable(["table", "strikethrough"])
        md.use(tasklists_plugin)
        md.add_render_rule("fence", _render_fence)
        md.add_render_rule("code_block", _render_code_block)
        md.add_render_rule("image", _render_image)
        md.add_render_rule("link_open", _render_link_open)
        md.add_render_rule("softbreak", _render_softbreak)
        md.add_render_rule("html_inline", _render_html_inline)
        self._md = md

    def translate(self, document: str) -> str:
        return collapse_tag_whitespace(self._md.render(document))


def translate(document: str) -> str:
    return MarkupTranslator().translate(document)
