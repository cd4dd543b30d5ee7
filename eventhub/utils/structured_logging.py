"""
Structured Logging

Provides JSON-formatted logging for observability. Every record emitted while
a command is being handled carries that command's id.
"""

import json
import logging
import uuid
from contextvars import ContextVar
from datetime import datetime, timezone

# Context variable for the command being handled (task-local)
command_id_var: ContextVar[str] = ContextVar("command_id", default="")


class CommandIdFilter(logging.Filter):
    """Logging filter to add the command ID to log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.command_id = command_id_var.get("")
        return True


class StructuredFormatter(logging.Formatter):
    """
    JSON formatter for structured logging.

    Outputs logs in a format suitable for log aggregation systems
    like ELK Stack, Loki, or CloudWatch.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "command_id": getattr(record, "command_id", ""),
        }

        # Add exception info if present
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        # Add extra fields from record
        for key in ["connection_id", "ops", "code", "user", "status_code", "duration_ms"]:
            if hasattr(record, key):
                log_data[key] = getattr(record, key)

        return json.dumps(log_data, default=str)


def new_command_id() -> str:
    """Generate a command id and bind it to the current context."""
    command_id = str(uuid.uuid4())
    command_id_var.set(command_id)
    return command_id


def setup_structured_logging(
    log_level: str = "INFO",
    json_format: bool = True,
    log_file: str | None = None,
) -> None:
    """
    Configure structured logging for the application.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        json_format: Use JSON formatter (True for production)
        log_file: Optional file path for log output
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, log_level.upper()))
    root_logger.handlers.clear()

    handler = logging.FileHandler(log_file) if log_file else logging.StreamHandler()

    if json_format:
        handler.setFormatter(StructuredFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - [%(command_id)s] %(message)s"))

    handler.addFilter(CommandIdFilter())
    root_logger.addHandler(handler)

    loggers_config = {
        "eventhub": log_level,
        "eventhub.commands": log_level,
        "uvicorn": "WARNING",
        "uvicorn.access": "WARNING",
        "sqlalchemy.engine": "WARNING",
    }

    for logger_name, level in loggers_config.items():
        logging.getLogger(logger_name).setLevel(getattr(logging, level.upper()))
