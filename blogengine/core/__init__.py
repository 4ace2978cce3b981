# Core infrastructure
from blogengine.core.context import (
    clear_context,
    get_caller_name,
    get_context,
    get_correlation_id,
    get_request_id,
    get_trace_id,
    set_caller_name,
    set_correlation_id,
    set_request_id,
    set_trace_id,
)
from blogengine.core.logging import configure_structlog, get_logger
from blogengine.core.middleware import RequestContextMiddleware


__all__ = [
    "RequestContextMiddleware",
    "clear_context",
    "configure_structlog",
    "get_caller_name",
    "get_context",
    "get_correlation_id",
    "get_logger",
    "get_request_id",
    "get_trace_id",
    "set_caller_name",
    "set_correlation_id",
    "set_request_id",
    "set_trace_id",
]
