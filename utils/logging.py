"""
Structured JSON logging.

Every record goes through a queue so Discord and aiohttp callbacks never block
on disk I/O. A background listener writes JSON lines to the console, to a
daily-rotated ``logs/bot.log`` and, for errors only, to
``logs/errors/errors.jsonl``.
"""

import atexit
import json
import logging
import logging.handlers
import queue
from pathlib import Path

from config.config_loader import ConfigLoader

DEFAULT_LOG_FILE = "logs/bot.log"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
RETENTION_DAYS = 30

# Copied from ``extra=`` into the JSON line when present.
EXTRA_FIELDS = (
    "user_id",
    "guild_id",
    "channel_id",
    "command_name",
    "ticket_status",
    "ticket_type",
    "role_id",
    "timer_kind",
)

_listener: logging.handlers.QueueListener | None = None


class JsonLineFormatter(logging.Formatter):
    """One JSON object per record, non-ASCII kept readable."""

    def format(self, record: logging.LogRecord) -> str:
        line = {
            "time": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "module": record.name,
            "funcName": record.funcName,
            "lineno": record.lineno,
            "message": record.getMessage(),
        }
        line.update(
            {field: getattr(record, field) for field in EXTRA_FIELDS if hasattr(record, field)}
        )
        if record.exc_info:
            line["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(line, ensure_ascii=False, default=str)


def _daily_file_handler(path: Path, level: int) -> logging.Handler:
    handler = logging.handlers.TimedRotatingFileHandler(
        filename=str(path),
        when="midnight",
        backupCount=RETENTION_DAYS,
        utc=True,
        encoding="utf-8",
    )
    handler.suffix = "%Y-%m-%d"
    handler.setLevel(level)
    return handler


def _rotated_error_name(default_name: str) -> str:
    # errors.jsonl.2024-01-31 -> errors_2024-01-31.jsonl
    base, date_part = default_name.rsplit(".", 1)
    return str(Path(base).with_name(f"errors_{date_part}.jsonl"))


def _build_handlers(log_file: Path, level: int) -> list[logging.Handler]:
    errors_dir = log_file.parent / "errors"
    errors_dir.mkdir(parents=True, exist_ok=True)

    main_file = _daily_file_handler(log_file, level)

    error_file = _daily_file_handler(errors_dir / "errors.jsonl", logging.ERROR)
    error_file.namer = _rotated_error_name  # type: ignore[assignment]

    console = logging.StreamHandler()
    console.setLevel(level)

    formatter = JsonLineFormatter(datefmt=DATE_FORMAT)
    handlers: list[logging.Handler] = [main_file, console, error_file]
    for handler in handlers:
        handler.setFormatter(formatter)
    return handlers


def _stop_listener() -> None:
    global _listener
    if _listener is not None:
        _listener.stop()
        _listener = None


def setup_logging(log_file: str = DEFAULT_LOG_FILE) -> None:
    """
    Route the root logger through a queue to the JSON handlers.

    Level and file come from the ``logging`` section of config.yaml. Safe to
    call again: the previous listener is stopped first.
    """
    global _listener

    logging_cfg = ConfigLoader.load_config().get("logging") or {}
    level = getattr(logging, str(logging_cfg.get("level", "INFO")).upper(), logging.INFO)
    path = Path(logging_cfg.get("file") or log_file)

    root = logging.getLogger()
    root.setLevel(level)
    for handler in list(root.handlers):
        root.removeHandler(handler)
    _stop_listener()

    log_queue: queue.Queue[logging.LogRecord] = queue.Queue(maxsize=1000)
    queue_handler = logging.handlers.QueueHandler(log_queue)
    queue_handler.setLevel(level)
    root.addHandler(queue_handler)

    _listener = logging.handlers.QueueListener(
        log_queue, *_build_handlers(path, level), respect_handler_level=True
    )
    _listener.start()

    logging.getLogger("discord").setLevel(logging.WARNING)
    logging.getLogger("aiohttp.access").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """
    Convenience method for retrieving a logger
    """
    return logging.getLogger(name)


atexit.register(_stop_listener)

# Setup logging when the module is imported
setup_logging()
