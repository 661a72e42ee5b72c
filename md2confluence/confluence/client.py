"""Confluence REST API client using httpx."""

from __future__ import annotations

import asyncio
import logging
import os
from typing import Any, Literal

import httpx

from md2confluence.config.models import ConfluenceSettings
from md2confluence.confluence.models import (
    ConfluenceError,
    CurrentUser,
    PageInfo,
    PageSearchHit,
    SpaceInfo,
)

logger = logging.getLogger(__name__)

SpaceType = Literal["global", "personal", "all"]


def _cql_quote(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"')


class ConfluenceClient:
    """Thin async wrapper over ``<base>/rest/api`` with basic auth.

    Every call opens its own httpx.AsyncClient; no session state is kept.
    """

    def __init__(
        self,
        base_url: str,
        email: str,
        token: str,
        *,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._auth = httpx.BasicAuth(email, token)
        self._timeout = timeout
        self._transport = transport

    def _open(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            auth=self._auth,
            timeout=self._timeout,
            transport=self._transport,
            headers={"Accept": "application/json"},
        )

    def _page_url(self, data: dict[str, Any]) -> str:
        webui = data.get("_links", {}).get("webui", "")
        return f"{self.base_url}{webui}" if webui else ""

    def _page_info(self, data: dict[str, Any]) -> PageInfo:
        return PageInfo(
            id=str(data["id"]),
            title=data.get("title", ""),
            version=data["version"]["number"],
            url=self._page_url(data),
        )

    async def _request(
        self, operation: str, method: str, path: str, **kwargs: Any
    ) -> dict[str, Any]:
        url = f"{self.base_url}/rest/api{path}"
        logger.debug("%s %s", method, url)
        try:
            async with self._open() as client:
                resp = await client.request(method, url, **kwargs)
        except httpx.HTTPError as exc:
            raise ConfluenceError(operation, str(exc)) from exc

        if resp.is_error:
            raise ConfluenceError(operation, resp.text, resp.status_code)
        try:
            return resp.json()
        except ValueError as exc:
            raise ConfluenceError(operation, "response is not JSON", resp.status_code) from exc

    # ------------------------------------------------------------------
    # Pages
    # ------------------------------------------------------------------

    async def create_page(
        self,
        space_key: str,
        title: str,
        body: str,
        parent_id: str | None = None,
    ) -> PageInfo:
        payload: dict[str, Any] = {
            "type": "page",
            "title": title,
            "space": {"key": space_key},
            "body": {"storage": {"value": body, "representation": "storage"}},
        }
        if parent_id:
            payload["ancestors"] = [{"id": parent_id}]

        data = await self._request("create_page", "POST", "/content", json=payload)
        page = self._page_info(data)
        logger.info("created page %s %r in space %s", page.id, title, space_key)
        return page

    async def update_page(self, page_id: str, title: str, body: str, version: int) -> PageInfo:
        payload = {
            "type": "page",
            "title": title,
            "version": {"number": version},
            "body": {"storage": {"value": body, "representation": "storage"}},
        }
        data = await self._request("update_page", "PUT", f"/content/{page_id}", json=payload)
        page = self._page_info(data)
        logger.info("updated page %s to version %d", page.id, page.version)
        return page

    async def get_page(self, page_id: str) -> PageInfo:
        data = await self._request(
            "get_page", "GET", f"/content/{page_id}", params={"expand": "version"}
        )
        return self._page_info(data)

    # ------------------------------------------------------------------
    # Attachments
    # ------------------------------------------------------------------

    async def upload_attachment(self, page_id: str, filename: str, data: bytes) -> None:
        await self._request(
            "upload_attachment",
            "POST",
            f"/content/{page_id}/child/attachment",
            headers={"X-Atlassian-Token": "nocheck"},
            files={"file": (filename, data, "image/png")},
        )
        logger.info("uploaded %s to page %s (%d bytes)", filename, page_id, len(data))

    async def list_attachments(self, page_id: str, limit: int = 200) -> list[str]:
        """Filenames of the attachments already on a page.

        Pages through the results while the response carries a ``next`` link.
        """
        names: list[str] = []
        start = 0
        while True:
            data = await self._request(
                "list_attachments",
                "GET",
                f"/content/{page_id}/child/attachment",
                params={"limit": limit, "start": start},
            )
            results = data.get("results", [])
            names.extend(r["title"] for r in results if "title" in r)
            if not results or not data.get("_links", {}).get("next"):
                return names
            start += len(results)

    # ------------------------------------------------------------------
    # Spaces, users, search
    # ------------------------------------------------------------------

    async def list_spaces(self, limit: int = 25, space_type: SpaceType = "all") -> list[SpaceInfo]:
        if space_type == "all":
            global_spaces, personal_spaces = await asyncio.gather(
                self._list_spaces(limit, "global"),
                self._list_spaces(limit, "personal"),
            )
            combined = global_spaces + personal_spaces
            return sorted(combined, key=lambda s: s.name.casefold())[:limit]
        return await self._list_spaces(limit, space_type)

    async def _list_spaces(self, limit: int, space_type: str) -> list[SpaceInfo]:
        data = await self._request(
            "list_spaces", "GET", "/space", params={"limit": limit, "type": space_type}
        )
        return [
            SpaceInfo(key=s["key"], name=s.get("name", s["key"]), type=s.get("type", space_type))
            for s in data.get("results", [])
        ]

    async def get_current_user(self) -> CurrentUser:
        data = await self._request("get_current_user", "GET", "/user/current")
        return CurrentUser(
            account_id=data["accountId"],
            email=data.get("email"),
            display_name=data.get("displayName", ""),
        )

    async def get_personal_space_key(self) -> str:
        user = await self.get_current_user()
        return f"~{user.account_id}"

    async def search_pages(
        self, query: str, space_key: str | None = None, limit: int = 10
    ) -> list[PageSearchHit]:
        cql = f'type=page AND text~"{_cql_quote(query)}"'
        if space_key:
            cql += f' AND space="{_cql_quote(space_key)}"'

        data = await self._request(
            "search_pages", "GET", "/content/search", params={"cql": cql, "limit": limit}
        )
        return [
            PageSearchHit(
                id=str(r["id"]),
                title=r.get("title", ""),
                space_key=(r.get("space") or {}).get("key", "unknown"),
                url=self._page_url(r),
            )
            for r in data.get("results", [])
        ]


def create_client(
    settings: ConfluenceSettings,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> ConfluenceClient:
    """Create a client from config, reading the site and credentials from env vars."""
    url = settings.url or os.environ.get(settings.url_env, "")
    email = os.environ.get(settings.email_env, "")
    token = os.environ.get(settings.token_env, "")

    missing = [
        name
        for name, value in (
            (settings.url_env, url),
            (settings.email_env, email),
            (settings.token_env, token),
        )
        if not value
    ]
    if missing:
        raise ValueError(
            f"Missing Confluence settings: set environment variable(s) {', '.join(missing)}"
        )
    return ConfluenceClient(url, email, token, timeout=settings.timeout, transport=transport)
