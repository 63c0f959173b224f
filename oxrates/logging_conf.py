from __future__ import annotations

import logging
import sys
from typing import TextIO

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

# request lines from these carry the full URL, app_id included
QUIET_LOGGERS = ("httpx", "httpcore")


def setup_logging(level: str = "INFO", stream: TextIO | None = None) -> None:
    resolved = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=resolved,
        stream=stream or sys.stdout,
        format=LOG_FORMAT,
    )
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(resolved, logging.WARNING))
