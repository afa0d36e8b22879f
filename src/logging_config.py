"""
Keno Catalog Proxy Logging Configuration Module.

Structured JSON logging for the proxy, with helpers for the events worth
tracking: upstream calls and request outcomes.
"""

import logging
import sys
from contextlib import contextmanager
from enum import Enum
from typing import Any, Optional

import structlog


class LogContext(str, Enum):
    """Standard log contexts for proxy operations."""

    REQUEST = "request"
    EXTERNAL_API = "external_api"
    CONFIGURATION = "configuration"


def setup_logging(
    level: str = "INFO",
    use_structured: bool = True,
    service_name: str = "keno-catalog-proxy",
    version: str = "1.0.0",
) -> Any:
    """
    Setup logging for the proxy.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        use_structured: Use structlog JSON output instead of plain logging
        service_name: Name of the service for log identification
        version: Version of the service

    Returns:
        Configured logger instance
    """
    if use_structured:
        return _setup_structured_logging(level, service_name, version)
    return _setup_standard_logging(level, service_name)


def _setup_structured_logging(level: str, service_name: str, version: str):
    """Setup structured logging with structlog."""
    # stderr, so the stdio transport's stdout stays pure JSON-RPC
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            _add_service_info(service_name, version),
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, level.upper())
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )

    # Module loggers use the standard library; route them to stderr too
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        stream=sys.stderr,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    return structlog.get_logger()


def _setup_standard_logging(level: str, service_name: str) -> logging.Logger:
    """Setup standard Python logging with JSON-like format."""
    logger = logging.getLogger(service_name)

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stderr)
        formatter = logging.Formatter(
            '{"timestamp": "%(asctime)s", "level": "%(levelname)s", '
            '"service": "' + service_name + '", "message": "%(message)s", '
            '"module": "%(name)s", "function": "%(funcName)s", "line": %(lineno)d}'
        )
        handler.setFormatter(formatter)
        logger.addHandler(handler)
        logger.setLevel(getattr(logging, level.upper()))

    return logger


def _add_service_info(service_name: str, version: str):
    """Add service information to structured logs."""

    def processor(logger, method_name, event_dict):
        event_dict["service"] = service_name
        event_dict["version"] = version
        return event_dict

    return processor


class ProxyLogger:
    """
    Logger wrapper for proxy events.

    Works over a structlog bound logger (key/value events) or a standard
    library logger (key=value pairs appended to the message).
    """

    def __init__(self, logger: Any, context: Optional[LogContext] = None):
        self.logger = logger
        self.context = context

    def upstream_call(
        self, method: str, duration_ms: float, status_code: int, **kwargs
    ) -> None:
        """Log one call to the Keno API."""
        self._log(
            "info",
            "External API call",
            context=LogContext.EXTERNAL_API,
            api_name="keno",
            method=method,
            duration_ms=duration_ms,
            status_code=status_code,
            **kwargs,
        )

    def request_completed(
        self, operation: str, duration_ms: float, data_source: str, **kwargs
    ) -> None:
        """Log a successfully served request."""
        self._log(
            "info",
            "Request completed",
            context=LogContext.REQUEST,
            operation=operation,
            duration_ms=duration_ms,
            data_source=data_source,
            success=True,
            **kwargs,
        )

    def request_failed(
        self, operation: str, error: str, duration_ms: float, **kwargs
    ) -> None:
        """Log a request that ended in an error response."""
        self._log(
            "error",
            "Request failed",
            context=LogContext.REQUEST,
            operation=operation,
            error=error,
            duration_ms=duration_ms,
            success=False,
            **kwargs,
        )

    def config_status(self, **kwargs) -> None:
        """Log the configuration state at startup."""
        self._log(
            "info",
            "Configuration loaded",
            context=LogContext.CONFIGURATION,
            **kwargs,
        )

    def _log(self, level: str, message: str, **kwargs) -> None:
        """Internal logging method."""
        if isinstance(self.logger, logging.Logger):
            extra_info = " ".join(f"{k}={v}" for k, v in kwargs.items())
            full_message = f"{message} {extra_info}" if extra_info else message
            getattr(self.logger, level)(full_message)
        else:
            getattr(self.logger, level)(message, **kwargs)


@contextmanager
def log_context(**context_vars):
    """
    Context manager for adding structured context to logs.

    Args:
        **context_vars: Context variables to add to all logs in this context
    """
    with structlog.contextvars.bound_contextvars(**context_vars):
        yield


def get_proxy_logger(
    service_name: str = "keno-catalog-proxy",
    level: str = "INFO",
    version: str = "1.0.0",
    context: Optional[LogContext] = None,
    use_structured: bool = True,
) -> ProxyLogger:
    """
    Get a configured ProxyLogger instance.

    Args:
        service_name: Name of the service
        level: Log level
        version: Service version
        context: Default context for this logger
        use_structured: Use structlog JSON output

    Returns:
        Configured ProxyLogger instance
    """
    base_logger = setup_logging(
        level=level,
        use_structured=use_structured,
        service_name=service_name,
        version=version,
    )
    return ProxyLogger(base_logger, context)


def setup_proxy_logging(config, version: str = "1.0.0") -> ProxyLogger:
    """
    Setup logging from a configuration object.

    Args:
        config: Configuration object with log_level and server_name

    Returns:
        Configured ProxyLogger instance
    """
    return get_proxy_logger(
        service_name=config.server_name,
        level=config.log_level,
        version=version,
    )
