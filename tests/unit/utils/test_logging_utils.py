"""
Unit tests for structured logging utilities.
"""

import logging
import re

import pytest

from billing_engine.exceptions import NotFoundError
from billing_engine.utils.logging_utils import (
    LogContext,
    _ContextFilter,
    generate_correlation_id,
    get_correlation_id,
    get_log_context,
    log_function_call,
)


class TestCorrelationId:
    """Test correlation id generation."""

    def test_format(self):
        """Test that ids are 12 lowercase hex characters."""
        assert re.fullmatch(r"[0-9a-f]{12}", generate_correlation_id())

    def test_unique(self):
        """Test that consecutive ids differ."""
        assert generate_correlation_id() != generate_correlation_id()

    def test_no_id_outside_context(self):
        """Test that no id is set by default."""
        assert get_correlation_id() is None


class TestLogContext:
    """Test the thread-local log context."""

    def test_fields_added_and_removed(self):
        """Test that fields only exist inside the block."""
        with LogContext(project_id="p-1"):
            assert get_log_context() == {"project_id": "p-1"}

        assert get_log_context() == {}

    def test_none_values_dropped(self):
        """Test that None fields are not attached."""
        with LogContext(project_id="p-1", user_id=None):
            assert "user_id" not in get_log_context()

    def test_nesting(self):
        """Test that inner contexts extend and then restore the outer one."""
        with LogContext(project_id="p-1", operation="outer"):
            with LogContext(user_id="u-1", operation="inner"):
                assert get_log_context() == {
                    "project_id": "p-1",
                    "user_id": "u-1",
                    "operation": "inner",
                }
            assert get_log_context() == {"project_id": "p-1", "operation": "outer"}

    def test_restored_after_exception(self):
        """Test that the context is restored when the block raises."""
        with pytest.raises(RuntimeError):
            with LogContext(project_id="p-1"):
                raise RuntimeError("boom")

        assert get_log_context() == {}

    def test_filter_copies_fields(self):
        """Test that _ContextFilter sets context fields on records."""
        record = logging.LogRecord("test", logging.INFO, __file__, 1, "msg", None, None)

        with LogContext(correlation_id="abc123", user_id="u-1"):
            assert _ContextFilter().filter(record) is True

        assert record.correlation_id == "abc123"
        assert record.user_id == "u-1"


class Service:
    """Small class with decorated methods."""

    @log_function_call
    def compute(self, value):
        return value * 2

    @log_function_call(include_args=True, level="INFO")
    def describe(self, project_id, month=None):
        return get_log_context()

    @log_function_call
    def missing(self):
        raise NotFoundError("Project p-9 not found")

    @log_function_call
    def broken(self):
        raise RuntimeError("unexpected")


class TestLogFunctionCall:
    """Test the logging decorator."""

    def test_entry_and_exit(self, caplog):
        """Test that entry and exit are logged at DEBUG."""
        with caplog.at_level(logging.DEBUG):
            assert Service().compute(4) == 8

        messages = [r.getMessage() for r in caplog.records]
        assert messages[0] == "Entering compute"
        assert messages[1].startswith("Exiting compute (")
        assert all(r.levelno == logging.DEBUG for r in caplog.records)

    def test_arguments_included(self, caplog):
        """Test the argument list without self."""
        with caplog.at_level(logging.INFO):
            Service().describe("p-1", month="2024-06")

        assert caplog.records[0].getMessage() == "Entering describe('p-1', month='2024-06')"
        assert caplog.records[0].levelno == logging.INFO

    def test_context_during_call(self):
        """Test the operation name and correlation id inside the call."""
        context = Service().describe("p-1")

        assert context["operation"] == "describe"
        assert re.fullmatch(r"[0-9a-f]{12}", context["correlation_id"])
        assert get_log_context() == {}

    def test_existing_correlation_id_kept(self):
        """Test that an outer correlation id is reused."""
        with LogContext(correlation_id="outer-id"):
            context = Service().describe("p-1")

        assert context["correlation_id"] == "outer-id"

    def test_engine_error_logged_as_warning(self, caplog):
        """Test engine errors are logged without a traceback and re-raised."""
        with caplog.at_level(logging.DEBUG):
            with pytest.raises(NotFoundError):
                Service().missing()

        warning = [r for r in caplog.records if r.levelno == logging.WARNING][0]
        assert warning.getMessage() == "missing failed: [NOT_FOUND] Project p-9 not found"
        assert warning.exc_info is None

    def test_unexpected_error_logged_with_traceback(self, caplog):
        """Test other exceptions are logged as errors and re-raised."""
        with caplog.at_level(logging.DEBUG):
            with pytest.raises(RuntimeError, match="unexpected"):
                Service().broken()

        error = [r for r in caplog.records if r.levelno == logging.ERROR][0]
        assert "RuntimeError: unexpected" in error.getMessage()
        assert error.exc_info is not None

    def test_preserves_metadata(self):
        """Test that functools.wraps keeps the function name."""
        assert Service.compute.__name__ == "compute"
