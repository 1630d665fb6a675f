from __future__ import annotations

import logging
import os
from logging.handlers import RotatingFileHandler

from RXMATCH.server.utils.constants import LOGS_PATH

LOGGER_NAME = "RXMATCH"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_FILENAME = "rxmatch.log"


# -----------------------------------------------------------------------------
def build_logger(name: str = LOGGER_NAME) -> logging.Logger:
    instance = logging.getLogger(name)
    if instance.handlers:
        return instance
    level_name = os.getenv("RXMATCH_LOG_LEVEL", "INFO").upper()
    instance.setLevel(getattr(logging, level_name, logging.INFO))
    formatter = logging.Formatter(LOG_FORMAT)

    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(formatter)
    instance.addHandler(stream_handler)

    try:
        os.makedirs(LOGS_PATH, exist_ok=True)
        file_handler = RotatingFileHandler(
            os.path.join(LOGS_PATH, LOG_FILENAME),
            maxBytes=5 * 1024 * 1024,
            backupCount=3,
            encoding="utf-8",
        )
    except OSError as exc:
        instance.warning("File logging disabled: %s", exc)
    else:
        file_handler.setFormatter(formatter)
        instance.addHandler(file_handler)

    instance.propagate = False
    return instance


logger = build_logger()
