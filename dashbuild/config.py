"""Runtime configuration.

Values come from environment variables with sensible defaults. File-name
conventions for generated projects live here too so writers and tests agree.
"""

import logging
import os
from typing import Optional

QUARTO_BIN = os.environ.get("DASHBUILD_QUARTO_BIN", "quarto")
LOG_LEVEL = os.environ.get("DASHBUILD_LOG_LEVEL", "INFO").upper()
STRICT_DEFAULT = os.environ.get("DASHBUILD_STRICT", "false").lower() in (
    "1",
    "true",
    "yes",
)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

TAB_PATH_SEPARATOR = "/"

DEFAULT_OUTPUT_DIR = "dashboard"
DEFAULT_PUBLISH_DIR = "docs"
DATA_DIR = "data"
ASSETS_DIR = "assets"
FILTER_SCRIPTS_DIR = "assets/filters"
RUNTIME_SCRIPT_NAME = "dashbuild_filters.js"
MANIFEST_FILENAME = ".dashbuild_manifest.json"
SITE_CONFIG_FILENAME = "_quarto.yml"
LANDING_PAGE_FILENAME = "index.qmd"

VEGA_EMBED_URL = os.environ.get(
    "DASHBUILD_VEGA_EMBED_URL", "https://cdn.jsdelivr.net/npm/vega-embed@6/+esm"
)


def log_level() -> str:
    """Level from ``DASHBUILD_LOG_LEVEL``, read at call time."""
    return os.environ.get("DASHBUILD_LOG_LEVEL", LOG_LEVEL).upper()


def configure_logging(level: Optional[str] = None) -> None:
    """Configure root logging for command-line use.

    Args:
        level: Level name; ``DASHBUILD_LOG_LEVEL`` when omitted.
    """
    level = (level or log_level()).upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format=LOG_FORMAT,
    )
