"""
Memorial Preview - panel-based preview renderer for memorial compositions
Lays out photos, tribute typography and custom text on a fractional grid
"""

import os
from pathlib import Path

from dotenv import load_dotenv
from loguru import logger

from .config import AppConfig, get_config, load_template
from .errors import PreviewError
from .layouts import LayoutCatalog
from .renderer import PreviewRenderer, PreviewSnapshot, SurfaceHandle

__version__ = "0.1.0"

__all__ = [
    "AppConfig",
    "LayoutCatalog",
    "PreviewError",
    "PreviewRenderer",
    "PreviewSnapshot",
    "SurfaceHandle",
    "get_config",
    "load_template",
    "setup",
    "setup_logging",
]


def setup(environment: str = None) -> AppConfig:
    """Load .env and configuration, then configure logging"""

    # Load environment variables
    load_dotenv()
    if environment:
        os.environ['MEMORIAL_PREVIEW_ENV'] = environment

    config = get_config()
    setup_logging(config)

    logger.info(f"Memorial preview {__version__} configured for {config.ENVIRONMENT}")
    return config


def setup_logging(config: AppConfig) -> None:
    """Configure loguru logging"""
    if not config.LOG_FILE:
        return

    # Ensure logs directory exists
    Path(config.LOG_FILE).parent.mkdir(parents=True, exist_ok=True)

    logger.add(
        config.LOG_FILE,
        rotation="1 day",
        retention="30 days",
        level=config.LOG_LEVEL,
        format="{time:YYYY-MM-DD HH:mm:ss} | {level} | {name}:{function}:{line} | {message}"
    )
