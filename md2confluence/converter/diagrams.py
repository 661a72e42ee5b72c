"""Mermaid block extraction and rendering via kroki.io."""

from __future__ import annotations

import asyncio
import hashlib
import logging
import re
from dataclasses import dataclass

import httpx

from md2confluence.config.models import RendererSettings
from md2confluence.converter.fences import (
    dedent,
    is_closing_fence,
    opening_fence,
    quote_prefix,
    strip_quotes,
)
from md2confluence.converter.models import Artifact, ExtractionResult, RenderFailure

logger = logging.getLogger(__name__)

DIAGRAM_MARKER = "mermaid"
ARTIFACT_PREFIX = "mermaid"
ARTIFACT_EXTENSION = "png"
KROKI_ENDPOINT = "https://kroki.io/mermaid/png"
PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"

# Names produced by artifact_filename(); the translator keys attachment images on this.
ATTACHMENT_NAME_RE = re.compile(
    rf"{ARTIFACT_PREFIX}-[0-9a-f]{{12}}\.{ARTIFACT_EXTENSION}"
)


class RenderError(Exception):
    """Raised when the rendering service answers with something unusable."""


@dataclass(frozen=True)
class DiagramBlock:
    """A fenced mermaid block located in the source document.

    ``start`` is the first fence character (after any indentation or quote
    markers); ``end`` is the end of the closing fence line, terminator excluded.
    """

    start: int
    end: int
    source: str

    @property
    def filename(self) -> str:
        return artifact_filename(self.source)


def artifact_filename(source: str) -> str:
    """mermaid-<first 12 hex chars of md5(source)>.png"""
    digest = hashlib.md5(source.encode("utf-8"), usedforsecurity=False).hexdigest()
    return f"{ARTIFACT_PREFIX}-{digest[:12]}.{ARTIFACT_EXTENSION}"


def is_attachment_name(target: str) -> bool:
    return ATTACHMENT_NAME_RE.fullmatch(target) is not None


# ---------------------------------------------------------------------------
# Fence scanning
# ---------------------------------------------------------------------------


def find_diagram_blocks(document: str) -> list[DiagramBlock]:
    """Locate every fenced mermaid block, left to right, without overlap.

    Non-mermaid fences are consumed whole so their contents are never
    scanned. A fence may sit in a list item (indented up to three spaces)
    or a block quote; the span then starts at the fence itself, and content
    lines lose the quote markers and up to the fence's own indentation.
    An unterminated fence yields no block.
    """
    lines = document.splitlines(keepends=True)
    line_starts = [0]
    for line in lines:
        line_starts.append(line_starts[-1] + len(line))

    blocks: list[DiagramBlock] = []
    i = 0
    while i < len(lines):
        depth, prefix = quote_prefix(lines[i])
        fence = opening_fence(lines[i][prefix:])
        if fence is None:
            i += 1
            continue

        content: list[str] = []
        closed = False
        j = i + 1
        while j < len(lines):
            rest = strip_quotes(lines[j], depth)
            if rest is None:
                # the enclosing quote ended first
                break
            if is_closing_fence(rest, fence):
                closed = True
                break
            content.append(dedent(rest, fence.indent))
            j += 1

        if not closed:
            if depth == 0:
                break
            i = j
            continue

        if fence.char == "`" and fence.info.rstrip() == DIAGRAM_MARKER:
            blocks.append(
                DiagramBlock(
                    start=line_starts[i] + prefix + fence.indent,
                    end=line_starts[j] + len(lines[j].rstrip("\r\n")),
                    source="".join(content).strip(),
                )
            )
        i = j + 1

    return blocks


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------


class KrokiRenderer:
    """Renders Mermaid source to PNG through the kroki.io HTTP API."""

    endpoint = KROKI_ENDPOINT

    def __init__(
        self,
        settings: RendererSettings | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.settings = settings or RendererSettings()
        self._transport = transport

    def open_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.settings.timeout, transport=self._transport)

    async def render(self, client: httpx.AsyncClient, source: str) -> bytes:
        logger.debug("POST %s (%d bytes of mermaid)", self.endpoint, len(source))
        resp = await client.post(
            self.endpoint,
            content=source.encode("utf-8"),
            headers={"Content-Type": "text/plain"},
        )
        resp.raise_for_status()
        if not resp.content:
            raise RenderError("empty response body")
        if not resp.content.startswith(PNG_SIGNATURE):
            content_type = resp.headers.get("content-type", "unknown")
            raise RenderError(f"response is not a PNG image (content-type: {content_type})")
        return resp.content


class DiagramExtractor:
    """Swaps mermaid blocks for attachment image references.

    Each block is rendered exactly once. A block whose render fails is left
    in the document as-is and reported in ``ExtractionResult.failures``.
    """

    def __init__(self, renderer: KrokiRenderer | None = None) -> None:
        self.renderer = renderer or KrokiRenderer()

    async def extract(self, document: str) -> ExtractionResult:
        blocks = find_diagram_blocks(document)
        if not blocks:
            return ExtractionResult(document=document)

        semaphore = asyncio.Semaphore(self.renderer.settings.max_concurrency)

        async with self.renderer.open_client() as client:

            async def _bounded(block: DiagramBlock) -> bytes | RenderFailure:
                async with semaphore:
                    return await self._render_block(client, block)

            outcomes = await asyncio.gather(*(_bounded(b) for b in blocks))

        return _rebuild(document, blocks, outcomes)

    async def _render_block(
        self, client: httpx.AsyncClient, block: DiagramBlock
    ) -> bytes | RenderFailure:
        try:
            return await self.renderer.render(client, block.source)
        except httpx.HTTPStatusError as exc:
            reason = f"kroki returned HTTP {exc.response.status_code}"
        except (httpx.HTTPError, RenderError) as exc:
            reason = f"{type(exc).__name__}: {exc}"
        logger.warning("Failed to render Mermaid diagram %s: %s", block.filename, reason)
        return RenderFailure(filename=block.filename, reason=reason)


def _rebuild(
    document: str,
    blocks: list[DiagramBlock],
    outcomes: list[bytes | RenderFailure],
) -> ExtractionResult:
    pieces: list[str] = []
    artifacts: list[Artifact] = []
    failures: list[RenderFailure] = []
    emitted: set[str] = set()
    cursor = 0

    for block, outcome in zip(blocks, outcomes):
        pieces.append(document[cursor:block.start])
        cursor = block.end

        if isinstance(outcome, RenderFailure):
            failures.append(outcome)
            pieces.append(document[block.start:block.end])
            continue

        filename = block.filename
        pieces.append(f"![mermaid diagram]({filename})")
        if filename not in emitted:
            emitted.add(filename)
            artifacts.append(Artifact(filename=filename, data=outcome))

    pieces.append(document[cursor:])
    return ExtractionResult(document="".join(pieces), artifacts=artifacts, failures=failures)
