"""
Structured logging utilities for the homelab installer.

This module provides structured logging with run tracking, operation timing
and contextual information about the service being installed.
"""

import inspect
import json
import logging
import time
import uuid
from datetime import datetime, timezone
from typing import Dict, Any, Optional
from contextvars import ContextVar
from functools import wraps

from ..config import get_settings


# Attributes every LogRecord carries; anything else came in through ``extra``
_RESERVED_ATTRS = frozenset([
    'name', 'msg', 'args', 'levelname', 'levelno', 'pathname', 'filename',
    'module', 'lineno', 'funcName', 'created', 'msecs', 'relativeCreated',
    'thread', 'threadName', 'processName', 'process', 'getMessage', 'exc_info',
    'exc_text', 'stack_info', 'taskName', 'message', 'asctime'
])


class LogContext:
    """Context manager that times an operation and logs its outcome."""

    def __init__(self, operation: str, **kwargs):
        self.operation = operation
        self.context = kwargs
        self.start_time = None
        self.run_id = kwargs.pop('run_id', None) or get_run_context().get('run_id') or str(uuid.uuid4())[:8]

    def __enter__(self):
        self.start_time = time.time()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        duration_ms = (time.time() - self.start_time) * 1000

        if exc_type is None:
            self.log_success(duration_ms)
        else:
            self.log_error(exc_val, duration_ms)

    @property
    def logger(self) -> logging.Logger:
        return get_logger(self.context.get('logger_name', __name__))

    def log_success(self, duration_ms: float):
        """Log successful operation completion."""
        self.logger.info(
            f"Operation completed: {self.operation}",
            extra={
                'operation': self.operation,
                'run_id': self.run_id,
                'duration_ms': round(duration_ms, 2),
                'status': 'success',
                **self.context
            }
        )

    def log_error(self, error: BaseException, duration_ms: float):
        """Log operation failure."""
        self.logger.error(
            f"Operation failed: {self.operation} - {error}",
            extra={
                'operation': self.operation,
                'run_id': self.run_id,
                'duration_ms': round(duration_ms, 2),
                'status': 'error',
                'error_type': type(error).__name__,
                'error_message': str(error),
                **self.context
            }
        )


# Context variable holding per-run tracking information
run_context: ContextVar[Optional[Dict[str, Any]]] = ContextVar('run_context', default=None)


class StructuredFormatter(logging.Formatter):
    """Formatter emitting one JSON object per log record."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'module': record.module,
            'function': record.funcName,
            'line': record.lineno
        }

        context = get_run_context()
        if context:
            log_entry['run_context'] = context

        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS and key not in log_entry:
                log_entry[key] = value

        if record.exc_info:
            log_entry['exception'] = {
                'type': record.exc_info[0].__name__ if record.exc_info[0] else None,
                'message': str(record.exc_info[1]) if record.exc_info[1] else None,
                'traceback': self.formatException(record.exc_info)
            }

        return json.dumps(log_entry, default=str, ensure_ascii=False)


class RunTrackingFilter(logging.Filter):
    """Filter copying the current run context onto each log record."""

    def filter(self, record: logging.LogRecord) -> bool:
        for key, value in get_run_context().items():
            if not hasattr(record, key):
                setattr(record, key, value)
        return True


def setup_logging(
    log_level: str = None,
    structured: bool = None,
    enable_run_tracking: bool = True
) -> None:
    """
    Set up application logging configuration.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        structured: Whether to use structured JSON logging
        enable_run_tracking: Whether to attach run context to every record
    """
    settings = get_settings()

    if log_level is None:
        log_level = settings.monitoring.log_level.value
    if structured is None:
        structured = settings.monitoring.structured

    level = getattr(logging, log_level.upper())

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)

    if structured:
        formatter = StructuredFormatter()
    else:
        formatter = logging.Formatter(settings.monitoring.log_format)
    console_handler.setFormatter(formatter)

    if enable_run_tracking:
        console_handler.addFilter(RunTrackingFilter())

    root_logger.addHandler(console_handler)

    configure_logger_levels(debug=settings.debug or level == logging.DEBUG)


def configure_logger_levels(debug: bool = False):
    """Configure specific logger levels to reduce noise."""
    logging.getLogger('urllib3').setLevel(logging.WARNING)
    logging.getLogger('docker').setLevel(logging.WARNING)
    logging.getLogger('asyncio').setLevel(logging.WARNING)

    logging.getLogger('homelab').setLevel(logging.DEBUG if debug else logging.INFO)


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance with the specified name.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured logger instance
    """
    return logging.getLogger(name)


def set_run_context(**kwargs):
    """Add key-value pairs to the current run context."""
    current_context = dict(get_run_context())
    current_context.update(kwargs)
    run_context.set(current_context)


def clear_run_context():
    """Clear the current run context."""
    run_context.set(None)


def get_run_context() -> Dict[str, Any]:
    """Get the current run context."""
    return run_context.get() or {}


def log_performance(operation: str, **context):
    """
    Decorator for logging operation performance.

    Args:
        operation: Operation name for logging
        **context: Additional context for logging
    """
    def decorator(func):
        @wraps(func)
        async def async_wrapper(*args, **kwargs):
            with LogContext(operation, **context):
                return await func(*args, **kwargs)

        @wraps(func)
        def sync_wrapper(*args, **kwargs):
            with LogContext(operation, **context):
                return func(*args, **kwargs)

        if inspect.iscoroutinefunction(func):
            return async_wrapper
        return sync_wrapper

    return decorator


def log_service_operation(
    service: str,
    operation: str,
    success: bool,
    duration_ms: float,
    error: str = None,
    **context
):
    """
    Log a service lifecycle operation with its duration.

    Args:
        service: Service name
        operation: Operation name
        success: Whether operation succeeded
        duration_ms: Operation duration in milliseconds
        error: Error message if operation failed
        **context: Additional context
    """
    logger = get_logger(f'homelab.services.{service}')

    log_data = {
        'service': service,
        'operation': operation,
        'success': success,
        'duration_ms': round(duration_ms, 2),
        'error': error,
        **context
    }

    if success:
        logger.info(f"Service operation completed: {service}.{operation}", extra=log_data)
    else:
        logger.error(f"Service operation failed: {service}.{operation} - {error}", extra=log_data)
