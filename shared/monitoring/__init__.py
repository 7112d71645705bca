"""
Monitoring Module

Structured logging with request tracing for the watchlist service.
"""

from .structured_logger import (
    StructuredLogger,
    get_logger,
    setup_service_logger,
    log_business_event,
    log_error,
)

__all__ = [
    "StructuredLogger",
    "get_logger",
    "setup_service_logger",
    "log_business_event",
    "log_error",
]
