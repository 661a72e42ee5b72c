"""Shared test fixtures for md2confluence."""

import httpx
import pytest

from md2confluence.config.models import Md2ConfluenceConfig, RendererSettings
from md2confluence.confluence.client import ConfluenceClient
from md2confluence.converter import DiagramExtractor, KrokiRenderer, MarkdownConverter

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 16

MERMAID_DOC = """\
# Architecture

Intro paragraph.

```mermaid
flowchart LR
A-->B
```

Trailing text.
"""


class KrokiStub:
    """Records render requests and answers them with a canned response."""

    def __init__(self, status_code: int = 200, content: bytes = PNG_BYTES):
        self.status_code = status_code
        self.content = content
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.status_code, content=self.content)

    @property
    def sources(self) -> list[str]:
        return [r.content.decode("utf-8") for r in self.requests]

    def renderer(self, max_concurrency: int = 4) -> KrokiRenderer:
        return KrokiRenderer(
            RendererSettings(max_concurrency=max_concurrency),
            transport=httpx.MockTransport(self),
        )


@pytest.fixture
def kroki():
    return KrokiStub()


@pytest.fixture
def failing_kroki():
    return KrokiStub(status_code=500, content=b"Syntax error in graph")


@pytest.fixture
def converter(kroki):
    return MarkdownConverter(DiagramExtractor(kroki.renderer()))


@pytest.fixture
def sample_config():
    return Md2ConfluenceConfig()


@pytest.fixture
def page_json():
    def _make(page_id="123", title="Doc", version=1):
        return {
            "id": page_id,
            "title": title,
            "version": {"number": version},
            "_links": {"webui": f"/spaces/DOC/pages/{page_id}"},
        }

    return _make


@pytest.fixture
def confluence_factory():
    """Build a ConfluenceClient whose HTTP traffic goes to *handler*."""

    def _make(handler):
        return ConfluenceClient(
            "https://acme.atlassian.net/wiki/",
            "dev@acme.io",
            "secret-token",
            transport=httpx.MockTransport(handler),
        )

    return _make


@pytest.fixture
def kroki_factory():
    return KrokiStub


@pytest.fixture
def png_bytes():
    return PNG_BYTES


@pytest.fixture
def mermaid_doc():
    return MERMAID_DOC
