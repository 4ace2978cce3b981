"""Per-request context stored in contextvars.

Values set here are picked up by the logging processors, so every log line
emitted while handling a request carries the request id and the caller's
identity name without threading them through function arguments.
"""

from contextvars import ContextVar
from typing import Any
from uuid import uuid4


request_id_var: ContextVar[str] = ContextVar("request_id", default="")
caller_name_var: ContextVar[str | None] = ContextVar("caller_name", default=None)
trace_id_var: ContextVar[str | None] = ContextVar("trace_id", default=None)
correlation_id_var: ContextVar[str | None] = ContextVar("correlation_id", default=None)


def get_request_id() -> str:
    """Get the current request ID."""
    return request_id_var.get()


def set_request_id(request_id: str | None = None) -> str:
    """Set the request ID, generating one when none was supplied.

    Returns:
        The request ID that was set.
    """
    rid = request_id or str(uuid4())
    request_id_var.set(rid)
    return rid


def get_caller_name() -> str | None:
    """Get the identity name of the current caller."""
    return caller_name_var.get()


def set_caller_name(name: str | None) -> None:
    """Set the identity name of the current caller (None for anonymous)."""
    caller_name_var.set(name or None)


def get_trace_id() -> str | None:
    return trace_id_var.get()


def set_trace_id(trace_id: str | None) -> None:
    trace_id_var.set(trace_id)


def get_correlation_id() -> str | None:
    return correlation_id_var.get()


def set_correlation_id(correlation_id: str | None) -> None:
    correlation_id_var.set(correlation_id)


def get_context() -> dict[str, Any]:
    """Return the non-empty context values for log enrichment."""
    context: dict[str, Any] = {}
    if request_id := request_id_var.get():
        context["request_id"] = request_id
    if caller := caller_name_var.get():
        context["caller"] = caller
    if trace_id := trace_id_var.get():
        context["trace_id"] = trace_id
    if correlation_id := correlation_id_var.get():
        context["correlation_id"] = correlation_id
    return context


def clear_context() -> None:
    """Reset every context variable at the end of a request."""
    request_id_var.set("")
    caller_name_var.set(None)
    trace_id_var.set(None)
    correlation_id_var.set(None)
