from __future__ import annotations

import logging
import logging.handlers
import sys
from pathlib import Path

FILE_FORMAT = "%(asctime)s %(levelname)-8s %(name)s [%(filename)s:%(lineno)d] %(message)s"
FILE_DATEFMT = "%Y-%m-%d %H:%M:%S"
FILE_MAX_BYTES = 5 * 1024 * 1024
FILE_BACKUPS = 5

# third-party loggers that only matter when something breaks
QUIET_LOGGERS = ("uvicorn.access", "httpx", "httpcore", "slowapi")


class _LevelColors(logging.Formatter):
    PALETTE = {
        logging.DEBUG: "\033[90m",
        logging.INFO: "\033[94m",
        logging.WARNING: "\033[93m",
        logging.ERROR: "\033[91m",
        logging.CRITICAL: "\033[95m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        # color a copy; the same record still goes to the file handler
        tinted = logging.makeLogRecord(record.__dict__)
        color = self.PALETTE.get(record.levelno, "")
        tinted.levelname = f"{color}{record.levelname:<7}{self.RESET}"
        return super().format(tinted)


class _DropPolling(logging.Filter):
    """The quiz page polls its state endpoint; those access lines are pure noise."""

    NOISE = (
        "GET /api/interview/quiz HTTP",
        "GET /favicon.ico",
    )

    def filter(self, record: logging.LogRecord) -> bool:
        msg = record.getMessage()
        return not any(n in msg for n in self.NOISE)


def _level(name: str, fallback: int) -> int:
    return getattr(logging, (name or "").upper(), fallback)


def _console_handler(level: str) -> logging.Handler:
    h = logging.StreamHandler(sys.stdout)
    h.setLevel(_level(level, logging.INFO))
    h.setFormatter(_LevelColors("%(levelname)s %(name)s: %(message)s"))
    h.addFilter(_DropPolling())
    return h


def _file_handler(path: Path, level: str) -> logging.Handler:
    h = logging.handlers.RotatingFileHandler(
        filename=str(path),
        maxBytes=FILE_MAX_BYTES,
        backupCount=FILE_BACKUPS,
        encoding="utf-8",
    )
    h.setLevel(_level(level, logging.DEBUG))
    h.setFormatter(logging.Formatter(FILE_FORMAT, datefmt=FILE_DATEFMT))
    return h


def setup_logging(
    *,
    log_dir: str = "logs",
    log_file: str = "mockprep.log",
    console_level: str = "INFO",
    file_level: str = "DEBUG",
) -> None:
    """Route everything through the root logger: colored console plus a rotating file."""
    log_path = Path(log_dir) / log_file
    log_path.parent.mkdir(parents=True, exist_ok=True)

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    for h in list(root.handlers):
        root.removeHandler(h)

    root.addHandler(_console_handler(console_level))
    root.addHandler(_file_handler(log_path, file_level))

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    root.debug("Logging initialized. log_path=%s", log_path.resolve())
