#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Logging configuration shared by the API server and the CLI.

Library modules only call ``logging.getLogger(__name__)``; the entry points
call ``setup_logging`` once.
"""

import logging
import sys
from typing import Optional

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

_configured = False


def setup_logging(level: Optional[str] = None) -> logging.Logger:
    """Configure the root logger (stdout) at ``level`` (defaults to settings.log_level)."""
    global _configured

    if level is None:
        from config.settings import settings
        level = settings.log_level

    log_level = getattr(logging, str(level).upper(), logging.INFO)
    root = logging.getLogger()
    root.setLevel(log_level)

    if not _configured:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(handler)
        _configured = True

    # Pillow logs every plugin it probes at DEBUG
    logging.getLogger("PIL").setLevel(max(log_level, logging.INFO))
    return logging.getLogger("stepdoc")


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
