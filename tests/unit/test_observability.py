"""Unit tests for request context scoping and the traced decorator."""

import pytest

from bqdriver.logging.filters import request_id_var, user_id_var
from bqdriver.observability import (
    ExecutionRequestContext,
    execution_request_scope,
    resolve_request_context,
)
from bqdriver.operations import TruncateTable
from bqdriver.utils import traced


class TestResolveRequestContext:
    """Test normalization of inbound request context."""

    def test_none_generates_request_id(self):
        """Test a fresh context."""
        ctx = resolve_request_context(None)

        assert ctx.request_id
        assert ctx.telemetry_fields() == {"request_id": ctx.request_id}

    def test_string_is_request_id(self):
        """Test a bare request id."""
        assert resolve_request_context("req-1").request_id == "req-1"

    def test_mapping(self):
        """Test mapping keys and stringified attributes."""
        ctx = resolve_request_context({"request_id": "req-2", "user_id": "u", "attributes": {"batch": 3}})

        assert ctx.telemetry_fields() == {"request_id": "req-2", "user_id": "u", "ctx.batch": "3"}

    def test_existing_context_is_kept(self):
        """Test passthrough of ready contexts."""
        ctx = ExecutionRequestContext(request_id="req-3")

        assert resolve_request_context(ctx) is ctx
        assert ctx.telemetry_fields() == {"request_id": "req-3"}

    def test_unsupported_type(self):
        """Test rejection of other context types."""
        with pytest.raises(TypeError):
            resolve_request_context(42)


class TestExecutionRequestScope:
    """Test logging context around one command."""

    def test_request_context_is_set_and_cleared(self):
        """Test context variables inside and after the scope."""
        ctx = resolve_request_context({"request_id": "req-4", "user_id": "u-1"})

        with execution_request_scope(ctx, operation="bqdriver.test"):
            assert request_id_var.get() == "req-4"
            assert user_id_var.get() == "u-1"

        assert request_id_var.get() is None
        assert user_id_var.get() is None

    def test_errors_propagate_and_clear_context(self):
        """Test that failures are re-raised."""
        ctx = resolve_request_context("req-5")

        with pytest.raises(ValueError):
            with execution_request_scope(ctx):
                raise ValueError("boom")

        assert request_id_var.get() is None


class TestTraced:
    """Test the span decorator with the no-op tracer provider."""

    def test_return_value_and_errors_pass_through(self):
        """Test that tracing never changes the call result."""
        @traced("bqdriver.test.call", attribute_getter=lambda value: {"value": value})
        def call(value):
            if value < 0:
                raise ValueError("negative")
            return value * 2

        assert call(2) == 4
        with pytest.raises(ValueError):
            call(-1)
        assert call.__name__ == "call"


class TestOperationTelemetry:
    """Test telemetry fields of statements."""

    def test_fields(self):
        """Test operation fields plus logging context."""
        operation = TruncateTable(schema_name="s", object_name="t", logging_context={"phase": "load"})

        assert operation.telemetry_fields() == {
            "operation.type": "TRUNCATE",
            "operation.schema": "s",
            "operation.object": "t",
            "operation.ctx.phase": "load",
        }
