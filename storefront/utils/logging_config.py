# logging_config.py
import json
import logging
import logging.handlers
import os
from datetime import datetime
from pathlib import Path
from typing import Any, cast


class CustomJsonFormatter(logging.Formatter):
    """JSON formatter used by the file handlers"""

    def format(self, record: logging.LogRecord) -> str:
        log_record = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if hasattr(record, "extra"):
            log_record.update(record.extra)  # type: ignore

        if record.exc_info:
            log_record["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_record, default=str)


class StructuredLoggerProtocol(logging.Logger):
    """Logger carrying a with_context helper"""

    def with_context(self, **context: Any) -> logging.LoggerAdapter: ...


HANDLER_PREFIX = "storefront."


def setup_logging(
    log_dir: str = "logs", console_level: int = logging.INFO
) -> list[logging.Handler]:
    """Install storefront's console and JSON file handlers on the root logger.

    Handlers from an earlier call are replaced, so running the CLI twice in one
    process does not duplicate output. Returns the handlers installed.
    """
    Path(log_dir).mkdir(parents=True, exist_ok=True)

    console_handler = logging.StreamHandler()
    console_handler.set_name(f"{HANDLER_PREFIX}console")
    console_handler.setLevel(console_level)
    console_handler.setFormatter(
        logging.Formatter("[%(asctime)s %(levelname)s]: %(message)s", datefmt="%x %X")
    )

    # storefront.log, rotated nightly
    file_handler = logging.handlers.TimedRotatingFileHandler(
        filename=os.path.join(log_dir, "storefront.log"),
        when="midnight",
        backupCount=14,
    )
    file_handler.set_name(f"{HANDLER_PREFIX}file")
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(CustomJsonFormatter())

    # ERROR and above, e.g. dead-lettered notification jobs
    error_handler = logging.handlers.RotatingFileHandler(
        filename=os.path.join(log_dir, "error.log"),
        maxBytes=10_485_760,  # 10MB
        backupCount=5,
    )
    error_handler.set_name(f"{HANDLER_PREFIX}errors")
    error_handler.setLevel(logging.ERROR)
    error_handler.setFormatter(CustomJsonFormatter())

    root_logger = logging.getLogger()
    previous = [
        h for h in root_logger.handlers if (h.get_name() or "").startswith(HANDLER_PREFIX)
    ]
    for old in previous:
        root_logger.removeHandler(old)
        old.close()

    installed: list[logging.Handler] = [console_handler, file_handler, error_handler]
    root_logger.setLevel(logging.DEBUG)
    for handler in installed:
        root_logger.addHandler(handler)

    for noisy in ("aiohttp", "asyncio", "aiosqlite", "databases"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    return installed


def get_logger(name: str) -> logging.Logger:
    """Get a logger with a `with_context` method for structured logging."""
    logger = logging.getLogger(name)

    def with_context(**context: Any) -> logging.LoggerAdapter:
        return logging.LoggerAdapter(logger, {"extra": context})

    logger.with_context = with_context  # type: ignore[attr-defined]

    return cast(StructuredLoggerProtocol, logger)
