"""Markdown conversion subsystem — mermaid rendering plus storage-format translation."""

from md2confluence.converter.converter import MarkdownConverter, convert_markdown
from md2confluence.converter.diagrams import (
    DiagramBlock,
    DiagramExtractor,
    KrokiRenderer,
    RenderError,
    artifact_filename,
    find_diagram_blocks,
)
from md2confluence.converter.frontmatter import extract_title, remove_front_matter
from md2confluence.converter.models import (
    Artifact,
    ConversionResult,
    ExtractionResult,
    RenderFailure,
)
from md2confluence.converter.translator import MarkupTranslator, translate

__all__ = [
    "Artifact",
    "ConversionResult",
    "DiagramBlock",
    "DiagramExtractor",
    "ExtractionResult",
    "KrokiRenderer",
    "MarkdownConverter",
    "MarkupTranslator",
    "RenderError",
    "RenderFailure",
    "artifact_filename",
    "convert_markdown",
    "extract_title",
    "find_diagram_blocks",
    "remove_front_matter",
    "translate",
]
