"""Page reference parsing for ids and Confluence page URLs."""

from __future__ import annotations

import re
from urllib.parse import parse_qs, urlparse

from md2confluence.confluence.models import PageRef

_PAGE_ID_RE = re.compile(r"^\d+$")
# /wiki/spaces/<KEY>/pages/<id>[/<slug>] and /spaces/<KEY>/pages/edit-v2/<id>
_SPACE_PAGE_PATH_RE = re.compile(r"/spaces/([^/]+)/pages/(?:edit-v2/)?(\d+)(?:/|$)")
_DISPLAY_PATH_RE = re.compile(r"/display/([^/]+)/")


def parse_page_ref(value: str) -> PageRef:
    """Resolve a page id or page URL into a PageRef.

    Raises ValueError if no page id can be found.
    """
    value = value.strip()
    if _PAGE_ID_RE.match(value):
        return PageRef(page_id=value)

    parsed = urlparse(value)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValueError(f"Invalid page reference {value!r}: expected a page id or URL")

    match = _SPACE_PAGE_PATH_RE.search(parsed.path)
    if match:
        return PageRef(page_id=match.group(2), space_key=match.group(1))

    page_ids = parse_qs(parsed.query).get("pageId", [])
    if page_ids and _PAGE_ID_RE.match(page_ids[0]):
        display = _DISPLAY_PATH_RE.search(parsed.path)
        space_key = parse_qs(parsed.query).get("spaceKey", [None])[0]
        return PageRef(
            page_id=page_ids[0],
            space_key=space_key or (display.group(1) if display else None),
        )

    raise ValueError(f"No page id found in URL {value!r}")
