"""PagePublisher — converts Markdown and writes it, plus its diagrams, to a page."""

from __future__ import annotations

import logging

from md2confluence.config.models import Md2ConfluenceConfig
from md2confluence.confluence.client import ConfluenceClient
from md2confluence.confluence.models import PageInfo, PageRef, PublishReport
from md2confluence.confluence.urls import parse_page_ref
from md2confluence.converter import (
    ConversionResult,
    DiagramExtractor,
    KrokiRenderer,
    MarkdownConverter,
    extract_title,
    remove_front_matter,
)

logger = logging.getLogger(__name__)


class PagePublisher:
    def __init__(
        self,
        client: ConfluenceClient,
        config: Md2ConfluenceConfig | None = None,
        converter: MarkdownConverter | None = None,
    ) -> None:
        self.client = client
        self.config = config or Md2ConfluenceConfig()
        self.converter = converter or MarkdownConverter(
            DiagramExtractor(KrokiRenderer(self.config.renderer))
        )

    async def create(
        self,
        markdown: str,
        space_key: str,
        title: str | None = None,
        parent_id: str | None = None,
    ) -> PublishReport:
        """Create a new page, then attach the rendered diagrams in order."""
        resolved_title = title or extract_title(markdown, self.config.publish.default_title)
        result = await self._convert(markdown)

        page = await self.client.create_page(space_key, resolved_title, result.markup, parent_id)
        return await self._attach(page, result, existing=set())

    async def update(
        self,
        page: str | PageRef,
        markdown: str,
        title: str | None = None,
    ) -> PublishReport:
        """Replace a page's body; keeps the current title unless one is given."""
        ref = page if isinstance(page, PageRef) else parse_page_ref(page)
        current = await self.client.get_page(ref.page_id)
        result = await self._convert(markdown)

        existing: set[str] = set()
        if self.config.publish.skip_existing_attachments and result.artifacts:
            existing = set(await self.client.list_attachments(ref.page_id))

        updated = await self.client.update_page(
            ref.page_id, title or current.title, result.markup, current.version + 1
        )
        return await self._attach(updated, result, existing=existing)

    async def _convert(self, markdown: str) -> ConversionResult:
        if self.config.publish.strip_front_matter:
            markdown = remove_front_matter(markdown)
        result = await self.converter.convert(markdown)
        for failure in result.failures:
            logger.warning("diagram %s left as source: %s", failure.filename, failure.reason)
        return result

    async def _attach(
        self, page: PageInfo, result: ConversionResult, existing: set[str]
    ) -> PublishReport:
        report = PublishReport(page=page, failures=result.failures)
        for artifact in result.artifacts:
            if artifact.filename in existing:
                logger.debug("attachment %s already on page %s", artifact.filename, page.id)
                report.attachments_skipped.append(artifact.filename)
                continue
            await self.client.upload_attachment(page.id, artifact.filename, artifact.data)
            report.attachments_uploaded.append(artifact.filename)
        return report
