"""Config file discovery and parsing for md2confluence."""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from .models import Md2ConfluenceConfig

logger = logging.getLogger(__name__)

PROJECT_CONFIG = "md2confluence.yaml"
_ENV_REF_RE = re.compile(r"\$\{(\w+)\}")


def _search_paths(cli_path: str | None) -> list[Path]:
    """An explicit path is the only candidate and must exist."""
    if cli_path:
        path = Path(cli_path)
        if not path.is_file():
            raise ValueError(f"Config file not found: {path}")
        return [path]
    return [Path(PROJECT_CONFIG), Path.home() / ".md2confluence" / "config.yaml"]


def _read_mapping(path: Path) -> dict[str, Any] | None:
    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in {path}: {e}") from e
    if raw is None:
        return None
    if not isinstance(raw, dict):
        raise ValueError(
            f"Invalid config in {path}: top level must be a mapping, got {type(raw).__name__}"
        )
    return raw


def load_config(cli_path: str | None = None) -> Md2ConfluenceConfig:
    """Load settings from ``--config``, ``./md2confluence.yaml`` or
    ``~/.md2confluence/config.yaml``, first match wins.

    Empty files count as absent. Falls back to defaults when nothing is found.
    Raises ValueError for a missing explicit path, unparsable YAML, or values
    that fail validation.
    """
    for path in _search_paths(cli_path):
        if not path.is_file():
            continue
        raw = _read_mapping(path)
        if raw is None:
            logger.debug("config %s is empty, skipping", path)
            continue
        logger.debug("loading config from %s", path)
        try:
            return Md2ConfluenceConfig.model_validate(_expand_env_vars(raw))
        except ValidationError as e:
            raise ValueError(f"Invalid config in {path}: {e}") from e

    return Md2ConfluenceConfig()


def _expand_env_vars(obj: Any) -> Any:
    """Substitute ``${VAR}`` in every string value; unset variables become ''."""
    if isinstance(obj, str):
        return _ENV_REF_RE.sub(lambda m: os.environ.get(m.group(1), ""), obj)
    if isinstance(obj, dict):
        return {k: _expand_env_vars(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_expand_env_vars(v) for v in obj]
    return obj


# Default YAML template for `md2confluence config init`
DEFAULT_CONFIG_TEMPLATE = """\
# md2confluence.yaml

# Confluence site. Credentials are always read from the environment.
confluence:
  # url: "https://your-domain.atlassian.net/wiki"
  url_env: "CONFLUENCE_URL"
  email_env: "CONFLUENCE_EMAIL"
  token_env: "CONFLUENCE_TOKEN"   # https://id.atlassian.com/manage/api-tokens
  timeout: 30

# Mermaid rendering (kroki.io)
renderer:
  timeout: 30
  max_concurrency: 4

# Page publishing
publish:
  strip_front_matter: true
  default_title: "Untitled"
  skip_existing_attachments: true  # content-addressed names, no re-upload

# Logging
log_level: "info"              # debug | info | warn | error
"""
