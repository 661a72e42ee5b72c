from .loader import load_config
from .models import (
    ConfluenceSettings,
    Md2ConfluenceConfig,
    PublishSettings,
    RendererSettings,
)

__all__ = [
    "ConfluenceSettings",
    "Md2ConfluenceConfig",
    "PublishSettings",
    "RendererSettings",
    "load_config",
]
