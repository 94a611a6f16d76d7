"""Logger factory for fbads modules.

Every module obtains its logger through `get_logger`, which attaches one
`[fbads]`-prefixed stream handler per logger name and applies the level
from `FBADS_LOG_LEVEL` (see `fbads.config.log_level_name()`). Records do
not propagate, so host applications only see fbads output on stderr.
"""
from __future__ import annotations

import logging
import threading
from typing import Optional

from fbads import config as app_config

_LOCK = threading.Lock()
_PRIMARY: Optional[logging.Logger] = None
_FORMAT = "[fbads] %(asctime)s %(levelname)s %(name)s %(message)s"


def get_logger(name: str = "fbads") -> logging.Logger:
    global _PRIMARY
    if name == "fbads" and _PRIMARY is not None:
        return _PRIMARY
    with _LOCK:
        if name == "fbads" and _PRIMARY is not None:
            return _PRIMARY
        logger = logging.getLogger(name)
        level_name = app_config.log_level_name()
        level = getattr(logging, level_name, logging.INFO)
        logger.setLevel(level)
        if not any(isinstance(h, logging.StreamHandler) for h in logger.handlers):
            handler = logging.StreamHandler()
            handler.setFormatter(logging.Formatter(_FORMAT))
            logger.addHandler(handler)
        logger.propagate = False
        if name == "fbads":
            _PRIMARY = logger
        return logger


__all__ = ["get_logger"]
