# util/logger.py
import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from typing import Optional
from config.settings import settings

logging.captureWarnings(True)


class ColoredFormatter(logging.Formatter):
    COLORS = {
        "DEBUG": "\033[37m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[41m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        # Colorize a copy of the levelname; the file handler sees it plain
        if getattr(record, "_colorize", False):
            lvl = record.levelname
            record = logging.makeLogRecord(record.__dict__)
            record.levelname = f"{self.COLORS.get(lvl, self.RESET)}{lvl}{self.RESET}"
        return super().format(record)


def init_logger(level_name: Optional[str] = None) -> logging.Logger:
    """
    Idempotent logger init:
    - Always logs to stderr, so answers printed on stdout stay clean.
    - Writes to <LOG_DIR>/<LOG_FILE_NAME> only when settings.LOG_TO_FILE is True.
    - Rotates file logs by size (maxBytes/backupCount in settings).
    - Respects `level_name`, falling back to settings.LOG_LEVEL.
    """
    root = logging.getLogger()
    if getattr(root, "_docqa_inited", False):
        return logging.getLogger(settings.LOGGER_NAME)

    level_name = level_name or settings.LOG_LEVEL or "INFO"
    level = getattr(logging, level_name.upper(), logging.INFO)
    root.setLevel(level)

    for h in list(root.handlers):
        root.removeHandler(h)

    text_fmt = "%(asctime)s %(levelname)s %(name)s - %(message)s"
    date_fmt = "%Y-%m-%dT%H:%M:%S%z"
    plain = logging.Formatter(text_fmt, datefmt=date_fmt)
    colored = ColoredFormatter(text_fmt, datefmt=date_fmt)

    ch = logging.StreamHandler(sys.stderr)
    ch.setLevel(level)
    ch.setFormatter(colored if sys.stderr.isatty() else plain)

    old_emit = ch.emit

    def emit_with_flag(record: logging.LogRecord):
        record._colorize = True  # type: ignore[attr-defined]
        return old_emit(record)

    ch.emit = emit_with_flag  # type: ignore[assignment]
    root.addHandler(ch)

    if settings.LOG_TO_FILE:
        os.makedirs(settings.LOG_DIR, exist_ok=True)
        fh = RotatingFileHandler(
            os.path.join(settings.LOG_DIR, settings.LOG_FILE_NAME),
            maxBytes=settings.LOG_MAX_BYTES,
            backupCount=settings.LOG_BACKUP_COUNT,
            encoding="utf-8",
        )
        fh.setLevel(level)
        fh.setFormatter(plain)
        root.addHandler(fh)

    # Quiet noisy libs
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("sentence_transformers").setLevel(logging.WARNING)

    root._docqa_inited = True  # type: ignore[attr-defined]
    logger = logging.getLogger(settings.LOGGER_NAME)
    logger.debug("Logger initialized", extra={"component": "bootstrap"})
    return logger
