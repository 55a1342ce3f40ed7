"""
Structured Logging Configuration: JSON lines in production, colored console otherwise.

Services log with `extra={"woo_order_id": ...}` (or `woo_customer_id`, `job`,
`request_id`, `duration_ms`); both formatters surface those fields so a sync
run or a single order can be followed through the log.

Usage:
    from pos_backend.utils.structured_logging import configure_logging
    configure_logging()  # Call once at startup
"""
import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict

from pos_backend.utils.config import settings

CONTEXT_FIELDS = ("woo_order_id", "woo_customer_id", "job", "request_id", "duration_ms")
MAX_CONSOLE_MESSAGE = 1000
QUIET_LOGGERS = ("httpx", "httpcore", "apscheduler", "uvicorn.access")


def record_context(record: logging.LogRecord) -> Dict[str, Any]:
    return {field: getattr(record, field) for field in CONTEXT_FIELDS if hasattr(record, field)}


class JSONFormatter(logging.Formatter):
    """One JSON object per line, for the log shipper."""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "service": settings.APP_NAME,
            "env": settings.ENVIRONMENT,
            "logger": record.name,
            "message": record.getMessage(),
            "location": f"{record.module}.{record.funcName}:{record.lineno}",
            **record_context(record),
        }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


class ColoredFormatter(logging.Formatter):
    """Human-readable console lines; context fields trail the message."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, "")
        clock = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")

        # Raw WooCommerce/Baserow bodies can be huge
        msg = record.getMessage()
        if len(msg) > MAX_CONSOLE_MESSAGE:
            msg = msg[:MAX_CONSOLE_MESSAGE - 3] + "..."

        context = " ".join(f"{k}={v}" for k, v in record_context(record).items())
        if context:
            msg = f"{msg} [{context}]"

        line = f"{color}[{clock}] {record.levelname:8} {record.name:28} | {msg}{self.RESET}"
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


def configure_logging():
    """Install a single stdout handler on the root logger."""
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))
    root_logger.handlers = []

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter() if settings.is_production else ColoredFormatter())
    root_logger.addHandler(handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    root_logger.info(f"Logging configured: env={settings.ENVIRONMENT}, level={settings.LOG_LEVEL}")
