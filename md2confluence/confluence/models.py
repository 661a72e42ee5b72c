"""Pydantic models for the Confluence REST API."""

from __future__ import annotations

from pydantic import BaseModel, Field

from md2confluence.converter.models import RenderFailure


class ConfluenceError(Exception):
    """Wraps a failed Confluence API call with context."""

    def __init__(
        self,
        operation: str,
        detail: str,
        status_code: int | None = None,
    ) -> None:
        self.operation = operation
        self.detail = detail
        self.status_code = status_code
        status = f" ({status_code})" if status_code is not None else ""
        super().__init__(f"Confluence {operation} failed{status}: {detail}")


class PageInfo(BaseModel):
    """A page as returned by create/update/get."""

    id: str
    title: str = ""
    version: int
    url: str = ""


class SpaceInfo(BaseModel):
    key: str
    name: str
    type: str = "global"


class PageSearchHit(BaseModel):
    id: str
    title: str
    space_key: str = "unknown"
    url: str = ""


class CurrentUser(BaseModel):
    account_id: str
    email: str | None = None
    display_name: str = ""


class PageRef(BaseModel):
    """A page identified by id, optionally with the space it lives in."""

    page_id: str = Field(pattern=r"^\d+$")
    space_key: str | None = None


class PublishReport(BaseModel):
    """Outcome of publishing one Markdown document."""

    page: PageInfo
    attachments_uploaded: list[str] = Field(default_factory=list)
    attachments_skipped: list[str] = Field(default_factory=list)
    failures: list[RenderFailure] = Field(default_factory=list)
