"""
Structured logging for kbsync.

Every module logs through a child of the "kbsync" logger. Records are written
as JSON lines; context passed as ``extra={'details': {...}}`` is kept, and the
client id, filename and job id found there are lifted to the top level so a
sync can be followed per client and artifact.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

ROOT_LOGGER = "kbsync"
CONTEXT_KEYS = ("client_id", "filename", "job_id")


class JsonFormatter(logging.Formatter):
    def format(self, record):
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        details = getattr(record, "details", None)
        if isinstance(details, dict):
            entry.update({key: details[key] for key in CONTEXT_KEYS if key in details})
        if details is not None:
            entry["details"] = details
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False, default=str)


class LoggingManager:
    """
    Owns the handlers of the "kbsync" logger.

    The first logger requested configures console output at INFO; the CLI
    reconfigures level and file output from the command line or the sync
    configuration.
    """
    _configured = False

    @classmethod
    def configure(cls, log_level: str = "INFO", log_file: Optional[str] = None) -> logging.Logger:
        level = log_level.upper()
        logger = logging.getLogger(ROOT_LOGGER)
        logger.setLevel(level)
        logger.propagate = False
        logger.handlers.clear()

        handlers = [logging.StreamHandler(sys.stdout)]
        if log_file:
            Path(log_file).parent.mkdir(parents=True, exist_ok=True)
            handlers.append(logging.FileHandler(log_file, encoding="utf-8"))
        for handler in handlers:
            handler.setLevel(level)
            handler.setFormatter(JsonFormatter())
            logger.addHandler(handler)

        cls._configured = True
        return logger

    @classmethod
    def reset(cls):
        """Remove the handlers; the next get_logger call configures defaults again."""
        logger = logging.getLogger(ROOT_LOGGER)
        for handler in list(logger.handlers):
            logger.removeHandler(handler)
            handler.close()
        cls._configured = False

    @classmethod
    def get_logger(cls, name: str) -> logging.Logger:
        if not cls._configured:
            cls.configure()
        return logging.getLogger(name)


def get_logger(name: str) -> logging.Logger:
    return LoggingManager.get_logger(name)
