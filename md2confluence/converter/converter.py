"""Markdown → Confluence conversion pipeline: render diagrams, then translate."""

from __future__ import annotations

import logging

from md2confluence.converter.diagrams import DiagramExtractor
from md2confluence.converter.models import ConversionResult
from md2confluence.converter.translator import MarkupTranslator

logger = logging.getLogger(__name__)


class MarkdownConverter:
    """Runs a DiagramExtractor and a MarkupTranslator back to back.

    The translator only ever sees the extractor's rewritten document and
    never touches the network.
    """

    def __init__(
        self,
        extractor: DiagramExtractor | None = None,
        translator: MarkupTranslator | None = None,
    ) -> None:
        self.extractor = extractor or DiagramExtractor()
        self.translator = translator or MarkupTranslator()

    async def convert(self, markdown: str) -> ConversionResult:
        extracted = await self.extractor.extract(markdown)
        markup = self.translator.translate(extracted.document)
        logger.debug(
            "converted %d chars of markdown (%d attachments, %d failed diagrams)",
            len(markdown),
            len(extracted.artifacts),
            len(extracted.failures),
        )
        return ConversionResult(
            markup=markup,
            artifacts=extracted.artifacts,
            failures=extracted.failures,
        )


async def convert_markdown(markdown: str) -> ConversionResult:
    """Convert with default settings."""
    return await MarkdownConverter().convert(markdown)
