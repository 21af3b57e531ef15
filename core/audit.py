"""
Logger factory and structured event logging.

Every logger writes one JSON object per line to its own rotating file.
"""
import datetime
import json
import logging
import os
from logging.handlers import RotatingFileHandler

from config.settings import LOG_MAX_BYTES, LOG_BACKUP_COUNT


def now_iso() -> str:
    return datetime.datetime.now(datetime.timezone.utc).isoformat(timespec="seconds")


def make_logger(name: str, path: str) -> logging.Logger:
    logger = logging.getLogger(name)
    if logger.handlers:
        return logger   # already configured
    os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
    logger.setLevel(logging.INFO)
    h = RotatingFileHandler(path, maxBytes=LOG_MAX_BYTES, backupCount=LOG_BACKUP_COUNT)
    h.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(h)
    return logger


def log_event(logger: logging.Logger, event_type: str, **fields) -> dict:
    entry = {"timestamp": now_iso(), "event_type": event_type, **fields}
    logger.info(json.dumps(entry))
    return entry
