"""
risqlab: Logging Setup

Batch stages report through log lines and a final run summary, so every
module logs under the ``risqlab`` namespace to the console and to one log
file. Timestamps are rendered in UTC to line up with the ``timestamp``
columns of the store.

Key responsibilities:
- Attach console and file handlers once per process, from ``LOG_LEVEL``
  and ``LOG_FILE``
- Keep per-request chatter of the HTTP stack out of INFO runs
- Provide module loggers under ``risqlab.*``

External dependencies:
- logging: Python standard library logging framework

Database tables accessed:
- None (logging only)

Thread safety: Thread-safe (logging module is process-global and
thread-safe under normal usage)

Author: risqlab Team
Created: 2025-11-24
Last Modified: 2025-12-02
Status: Development
Version: v0.1.1
"""

# ============================================================================
# Imports
# ============================================================================

from __future__ import annotations

import logging
import sys
import time
from pathlib import Path
from typing import List, Optional

from risqlab.core.config import LoggingConfig, RisqlabConfig, get_config

# ============================================================================
# Constants
# ============================================================================

ROOT_NAMESPACE = "risqlab"

LOG_FORMAT = "%(asctime)sZ - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# requests logs every connection through urllib3.
NOISY_LOGGERS = ("urllib3",)

# ============================================================================
# Public API
# ============================================================================


def build_formatter() -> logging.Formatter:
    """Return the shared formatter with UTC timestamps."""

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)
    formatter.converter = time.gmtime
    return formatter


def build_handlers(settings: LoggingConfig) -> List[logging.Handler]:
    """Return the console and file handlers for ``settings``.

    The parent directory of the log file is created if needed.
    """

    formatter = build_formatter()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)

    log_path = Path(settings.file)
    log_path.parent.mkdir(parents=True, exist_ok=True)
    file_handler = logging.FileHandler(log_path)
    file_handler.setFormatter(formatter)

    return [console_handler, file_handler]


def setup_logging(config: Optional[RisqlabConfig] = None) -> None:
    """Configure application-wide logging.

    Idempotent: when the root logger already has handlers nothing is
    changed.

    Args:
        config: Optional configuration object. If omitted, the cached
            configuration will be loaded via :func:`get_config`.
    """

    if config is None:
        config = get_config()

    root_logger = logging.getLogger()
    if root_logger.handlers:
        return

    settings = config.logging
    log_level = getattr(logging, settings.level.upper(), logging.INFO)

    root_logger.setLevel(log_level)
    for handler in build_handlers(settings):
        root_logger.addHandler(handler)

    logging.getLogger(ROOT_NAMESPACE).setLevel(log_level)
    if log_level > logging.DEBUG:
        for name in NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Return a logger under the ``risqlab`` namespace.

    Args:
        name: Module-level ``__name__`` (already namespaced) or a short
            descriptive name such as ``"scripts.backfill"``.
    """

    setup_logging()
    if name == ROOT_NAMESPACE or name.startswith(f"{ROOT_NAMESPACE}."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_NAMESPACE}.{name}")


__all__ = ["setup_logging", "get_logger", "build_formatter", "build_handlers"]
