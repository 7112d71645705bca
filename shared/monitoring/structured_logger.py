"""
Structured Logging Module

Provides JSON-based structured logging with request tracing context.
"""

import logging
import sys
import traceback
from datetime import datetime, timezone
from typing import Dict, Any, Optional
from contextvars import ContextVar
from pathlib import Path
import os

from pythonjsonlogger import jsonlogger


# Context variables for request tracing
request_id_var: ContextVar[Optional[str]] = ContextVar('request_id', default=None)
user_id_var: ContextVar[Optional[str]] = ContextVar('user_id', default=None)


class ContextFilter(logging.Filter):
    """Filter that adds contextual information to log records"""

    def filter(self, record: logging.LogRecord) -> bool:
        """Add context variables to the log record"""
        record.request_id = request_id_var.get()
        record.user_id = user_id_var.get()
        record.service_name = os.getenv('SERVICE_NAME', 'unknown')
        record.environment = os.getenv('ENVIRONMENT', 'development')
        return True


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """JSON formatter that adds level, location and tracing fields"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]):
        super().add_fields(log_record, record, message_dict)

        log_record['timestamp'] = datetime.now(timezone.utc).isoformat()
        log_record['level'] = record.levelname
        log_record['logger'] = record.name
        log_record['file'] = f"{record.filename}:{record.lineno}"

        for field in ('request_id', 'user_id'):
            value = getattr(record, field, None)
            if value:
                log_record[field] = value

        if hasattr(record, 'service_name'):
            log_record['service_name'] = record.service_name

        if record.exc_info:
            log_record['exception'] = {
                'type': record.exc_info[0].__name__,
                'message': str(record.exc_info[1]),
                'traceback': traceback.format_exception(*record.exc_info)
            }


class StructuredLogger:
    """
    Structured logger with JSON output and contextual information

    Usage:
        logger = StructuredLogger.get_logger("watchlist_manager")
        logger.info("Watch added", extra={"user_id": 7, "title": "Main_Page"})
    """

    _loggers: Dict[str, logging.Logger] = {}

    @classmethod
    def get_logger(
        cls,
        name: str,
        level: int = logging.INFO,
        log_file: Optional[Path] = None,
        json_format: bool = True
    ) -> logging.Logger:
        """
        Get or create a structured logger

        Args:
            name: Logger name (typically service name)
            level: Logging level (default: INFO)
            log_file: Optional file path for file logging
            json_format: Use JSON format (default: True)

        Returns:
            Configured logger instance
        """
        if name in cls._loggers:
            return cls._loggers[name]

        logger = logging.getLogger(name)
        logger.setLevel(level)
        logger.handlers = []

        # Filters on handlers also see records propagated from child loggers
        context_filter = ContextFilter()

        if json_format:
            formatter = CustomJsonFormatter(
                '%(timestamp)s %(level)s %(service_name)s %(logger)s %(message)s'
            )
        else:
            formatter = logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
                datefmt='%Y-%m-%d %H:%M:%S'
            )

        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(level)
        console_handler.addFilter(context_filter)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

        if log_file:
            log_file.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(log_file)
            file_handler.setLevel(level)
            file_handler.addFilter(context_filter)
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)

        cls._loggers[name] = logger
        return logger

    @classmethod
    def set_context(
        cls,
        request_id: Optional[str] = None,
        user_id: Optional[str] = None
    ):
        """Set context variables for request tracing"""
        if request_id:
            request_id_var.set(request_id)
        if user_id:
            user_id_var.set(user_id)

    @classmethod
    def clear_context(cls):
        """Clear context variables"""
        request_id_var.set(None)
        user_id_var.set(None)


def get_logger(
    name: str,
    level: int = logging.INFO,
    log_file: Optional[Path] = None,
    json_format: bool = True
) -> logging.Logger:
    """Convenience wrapper around StructuredLogger.get_logger"""
    return StructuredLogger.get_logger(name, level, log_file, json_format)


def setup_service_logger(
    service_name: str,
    level: str = "INFO",
    log_file: Optional[str] = None,
    json_format: bool = True,
    logger_name: Optional[str] = None
) -> logging.Logger:
    """
    Set up logger for a service with standard configuration

    Args:
        service_name: Name of the service
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional log file path
        json_format: Use JSON format
        logger_name: Logger to configure (default: service_name). Pass a
            package name so module loggers of that package propagate into it.

    Returns:
        Configured logger
    """
    os.environ['SERVICE_NAME'] = service_name
    log_level = getattr(logging, level.upper(), logging.INFO)
    path = Path(log_file) if log_file else None
    return get_logger(logger_name or service_name, log_level, path, json_format)


def log_business_event(logger: logging.Logger, event_type: str, **kwargs):
    """Log business events"""
    logger.info(
        f"Business Event: {event_type}",
        extra={
            "event_type": event_type,
            "metric_type": "business_event",
            **kwargs
        }
    )


def log_error(logger: logging.Logger, error: Exception, context: Dict[str, Any] = None):
    """Log errors with full context"""
    extra = {
        "error_type": type(error).__name__,
        "error_message": str(error),
        "metric_type": "error"
    }

    if context:
        extra.update(context)

    logger.error(
        f"Error occurred: {str(error)}",
        exc_info=True,
        extra=extra
    )
