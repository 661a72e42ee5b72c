from typing import Literal

from pydantic import BaseModel, Field


class ConfluenceSettings(BaseModel):
    url: str | None = None
    url_env: str = "CONFLUENCE_URL"
    email_env: str = "CONFLUENCE_EMAIL"
    token_env: str = "CONFLUENCE_TOKEN"
    timeout: float = Field(default=30.0, gt=0)


class RendererSettings(BaseModel):
    timeout: float = Field(default=30.0, gt=0)
    max_concurrency: int = Field(default=4, gt=0)


class PublishSettings(BaseModel):
    strip_front_matter: bool = True
    default_title: str = "Untitled"
    skip_existing_attachments: bool = True


class Md2ConfluenceConfig(BaseModel):
    confluence: ConfluenceSettings = Field(default_factory=ConfluenceSettings)
    renderer: RendererSettings = Field(default_factory=RendererSettings)
    publish: PublishSettings = Field(default_factory=PublishSettings)
    log_level: Literal["debug", "info", "warn", "error"] = "info"
