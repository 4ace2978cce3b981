"""Tests for request context, log processors and client address resolution."""

from collections.abc import Iterator

import pytest
from starlette.requests import Request

from blogengine.core.context import (
    clear_context,
    get_context,
    get_request_id,
    set_caller_name,
    set_request_id,
    set_trace_id,
)
from blogengine.core.logging import (
    add_app_info_processor,
    add_context_processor,
    mask_sensitive_data,
)
from blogengine.core.middleware import resolve_client_ip


@pytest.fixture(autouse=True)
def _clean_context() -> Iterator[None]:
    clear_context()
    yield
    clear_context()


def _request(headers: dict[str, str], client: tuple[str, int] | None = ("10.1.1.1", 5000)) -> Request:
    scope = {
        "type": "http",
        "method": "GET",
        "path": "/",
        "headers": [(k.lower().encode(), v.encode()) for k, v in headers.items()],
        "client": client,
    }
    return Request(scope)


class TestContext:
    """Tests for contextvars helpers."""

    def test_set_request_id_generates_one(self) -> None:
        request_id = set_request_id()
        assert request_id
        assert get_request_id() == request_id

    def test_set_request_id_keeps_given(self) -> None:
        assert set_request_id("req-1") == "req-1"

    def test_get_context_skips_empty_values(self) -> None:
        assert get_context() == {}

        set_request_id("req-1")
        set_caller_name("alice")
        set_trace_id("trace-9")

        assert get_context() == {
            "request_id": "req-1",
            "caller": "alice",
            "trace_id": "trace-9",
        }

    def test_clear_context(self) -> None:
        set_request_id("req-1")
        set_caller_name("alice")
        clear_context()
        assert get_context() == {}


class TestProcessors:
    """Tests for structlog processors."""

    def test_context_processor_does_not_override(self) -> None:
        set_request_id("req-1")
        set_caller_name("alice")

        event = add_context_processor(None, "info", {"event": "x", "caller": "bob"})

        assert event["request_id"] == "req-1"
        assert event["caller"] == "bob"

    def test_app_info_processor(self) -> None:
        processor = add_app_info_processor("blogengine", "testing")
        event = processor(None, "info", {"event": "x"})
        assert event["app"] == "blogengine"
        assert event["environment"] == "testing"

    def test_mask_sensitive_data(self) -> None:
        event = mask_sensitive_data(
            None,
            "info",
            {
                "event": "x",
                "access_token": "abcdefghij",
                "password": "abc",
                "headers": {"Authorization": "Bearer secret-value"},
                "author": "Bob",
            },
        )
        assert event["access_token"] == "ab******ij"
        assert event["password"] == "***"
        assert event["headers"]["Authorization"].startswith("Be")
        assert "secret-value" not in event["headers"]["Authorization"]
        assert event["author"] == "Bob"


class TestResolveClientIp:
    """Tests for resolve_client_ip."""

    def test_forwarded_for_first_hop(self) -> None:
        request = _request(
            {"X-Forwarded-For": "192.0.2.1, 10.0.0.1", "X-Real-IP": "192.0.2.2"}
        )
        assert resolve_client_ip(request) == "192.0.2.1"

    def test_real_ip(self) -> None:
        assert resolve_client_ip(_request({"X-Real-IP": "192.0.2.2"})) == "192.0.2.2"

    def test_socket_peer(self) -> None:
        assert resolve_client_ip(_request({})) == "10.1.1.1"

    def test_no_address(self) -> None:
        assert resolve_client_ip(_request({}, client=None)) is None
