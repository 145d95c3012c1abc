"""Process logging setup, request-scoped log fields and public API instrumentation."""

from .config import HostLogFormatter, configure_logging, get_logger
from .context import current_fields, scoped_fields
from .public_api import (
    ApiCall,
    ApiObserver,
    ApiOutcome,
    LoggingObserver,
    MetricsObserver,
    public_api_instrumented,
)

__all__ = [
    "ApiCall",
    "ApiObserver",
    "ApiOutcome",
    "HostLogFormatter",
    "LoggingObserver",
    "MetricsObserver",
    "configure_logging",
    "current_fields",
    "get_logger",
    "public_api_instrumented",
    "scoped_fields",
]
