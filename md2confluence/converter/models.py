"""Pydantic models for the conversion subsystem."""

from __future__ import annotations

from pydantic import BaseModel, Field


class Artifact(BaseModel):
    """A rendered diagram, uploaded as a page attachment."""

    filename: str = Field(description="Content-addressed name, e.g. mermaid-0123456789ab.png")
    data: bytes


class RenderFailure(BaseModel):
    """A diagram block that could not be rendered and was left as source."""

    filename: str
    reason: str


class ExtractionResult(BaseModel):
    """Markdown with rendered diagram blocks swapped for image references."""

    document: str
    artifacts: list[Artifact] = Field(default_factory=list)
    failures: list[RenderFailure] = Field(default_factory=list)


class ConversionResult(BaseModel):
    """Storage-format markup plus the attachments it references."""

    markup: str
    artifacts: list[Artifact] = Field(default_factory=list)
    failures: list[RenderFailure] = Field(default_factory=list)
