"""Structured logging utilities with per-operation context."""

import functools
import logging
import threading
import time
import uuid
from typing import Any, Callable, Dict, Optional

from billing_engine.exceptions import BillingEngineError

# Thread-local storage for log context
_thread_local = threading.local()


def generate_correlation_id() -> str:
    """Generate a short id that ties together the log lines of one operation."""
    return uuid.uuid4().hex[:12]


def get_log_context() -> Dict[str, Any]:
    """Return a copy of the fields currently attached to log records."""
    return dict(getattr(_thread_local, "context", {}))


def get_correlation_id() -> Optional[str]:
    return get_log_context().get("correlation_id")


class LogContext:
    """
    Context manager for adding structured fields to log records.

    Fields are kept in thread-local storage and copied onto every record by
    _ContextFilter. Nested contexts add to the outer one and restore it on
    exit.

    Example:
        with LogContext(project_id="p-1", user_id="u-1"):
            logger.info("Applying adjustment")
            # Record carries project_id and user_id
    """

    def __init__(self, **fields):
        self.fields = {k: v for k, v in fields.items() if v is not None}
        self.previous_context: Optional[Dict[str, Any]] = None

    def __enter__(self):
        if not hasattr(_thread_local, "context"):
            _thread_local.context = {}

        self.previous_context = _thread_local.context.copy()
        _thread_local.context.update(self.fields)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        _thread_local.context = self.previous_context or {}


class _ContextFilter(logging.Filter):
    """Logging filter that copies context fields onto log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        for key, value in getattr(_thread_local, "context", {}).items():
            setattr(record, key, value)
        return True


def log_function_call(
    func: Optional[Callable] = None, *, include_args: bool = False, level: str = "DEBUG"
) -> Callable:
    """
    Decorator to log entry, exit and duration of an engine operation.

    A correlation id is attached to the log context for the duration of the
    call unless one is already set. Engine errors are logged as warnings
    without a traceback; anything else is logged as an error with one. The
    exception is always re-raised.

    Args:
        func: Function to decorate (when used without arguments)
        include_args: Whether to include call arguments in the entry line
        level: Log level for entry and exit lines

    Example:
        @log_function_call
        def get_project_billing_view(self, start_date, end_date):
            ...

        @log_function_call(include_args=True, level="INFO")
        def apply_billing_adjustment(self, user_id, project_id, ...):
            ...
    """

    def decorator(f: Callable) -> Callable:
        @functools.wraps(f)
        def wrapper(*args, **kwargs):
            logger = logging.getLogger(f.__module__)
            log_level = getattr(logging, level.upper())
            correlation_id = get_correlation_id() or generate_correlation_id()

            with LogContext(operation=f.__name__, correlation_id=correlation_id):
                if include_args:
                    # Skip self for bound methods
                    shown = args[1:] if args and hasattr(args[0], f.__name__) else args
                    signature = ", ".join(
                        [repr(a) for a in shown] + [f"{k}={v!r}" for k, v in kwargs.items()]
                    )
                    logger.log(log_level, f"Entering {f.__name__}({signature})")
                else:
                    logger.log(log_level, f"Entering {f.__name__}")

                started = time.perf_counter()
                try:
                    result = f(*args, **kwargs)
                except BillingEngineError as e:
                    logger.warning(f"{f.__name__} failed: [{e.code}] {e.message}")
                    raise
                except Exception as e:
                    logger.error(
                        f"Exception in {f.__name__}: {type(e).__name__}: {e}",
                        exc_info=True,
                    )
                    raise

                elapsed_ms = (time.perf_counter() - started) * 1000
                logger.log(log_level, f"Exiting {f.__name__} ({elapsed_ms:.1f} ms)")
                return result

        return wrapper

    if func is None:
        return decorator
    return decorator(func)
