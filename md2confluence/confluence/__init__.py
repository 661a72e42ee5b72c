"""Confluence integration: REST client, page references, and publishing."""

from md2confluence.confluence.client import ConfluenceClient, create_client
from md2confluence.confluence.models import (
    ConfluenceError,
    CurrentUser,
    PageInfo,
    PageRef,
    PageSearchHit,
    PublishReport,
    SpaceInfo,
)
from md2confluence.confluence.publisher import PagePublisher
from md2confluence.confluence.urls import parse_page_ref

__all__ = [
    "ConfluenceClient",
    "ConfluenceError",
    "CurrentUser",
    "PageInfo",
    "PagePublisher",
    "PageRef",
    "PageSearchHit",
    "PublishReport",
    "SpaceInfo",
    "create_client",
    "parse_page_ref",
]
