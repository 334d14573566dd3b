# loadtest/core/logging.py
from __future__ import annotations

import json
import logging
import os
from pathlib import Path

from loadtest.core.config import Settings

LOGGER_NAME = "loadtest"


def setup_logging(settings: Settings) -> logging.Logger:
    settings.logs_path().mkdir(parents=True, exist_ok=True)
    Path(settings.abs_log_path()).parent.mkdir(parents=True, exist_ok=True)

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.INFO)

    # one handler per log file
    path = os.path.abspath(settings.abs_log_path())
    if not any(isinstance(h, logging.FileHandler) and h.baseFilename == path for h in logger.handlers):
        fh = logging.FileHandler(path, encoding="utf-8")
        fh.setLevel(logging.INFO)
        logger.addHandler(fh)

    return logger


def get_logger() -> logging.Logger:
    return logging.getLogger(LOGGER_NAME)


def json_log(logger: logging.Logger, record: dict):
    logger.info(json.dumps(record, ensure_ascii=False))
