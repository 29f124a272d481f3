"""
Structured logging configuration.
JSON logs in production, human-readable in development.
"""

from __future__ import annotations

import logging
import sys

import json_log_formatter

from region_geo.config import get_settings


def setup_logging() -> None:
    """Configure logging based on environment."""
    settings = get_settings()
    level = getattr(logging, settings.log_level.upper(), logging.INFO)

    if settings.env == "production":
        # JSON structured logging for production (parseable by log aggregators)
        formatter = json_log_formatter.JSONFormatter()
        # stdout carries the CLI summary
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(formatter)

        root = logging.getLogger()
        root.setLevel(level)
        root.handlers = [handler]
    else:
        _setup_basic_logging(level)


def _setup_basic_logging(level: int) -> None:
    """Human-readable logging for development."""
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)-8s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[logging.StreamHandler(sys.stderr)],
    )
