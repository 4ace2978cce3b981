"""Tests for the comment API endpoints."""

from collections.abc import Callable
from types import SimpleNamespace
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from blogengine.comments.dependencies import handle_comment_error
from blogengine.comments.service import (
    CommentError,
    InvalidCommentTypeError,
    InvalidFilterError,
    InvalidPagingError,
    InvalidWebsiteError,
)


HeadersFactory = Callable[..., dict[str, str]]


def _assert_error_body(response, status_code: int) -> None:
    data = response.json()
    assert data["error"] is True
    assert data["status_code"] == status_code
    assert data["message"]
    assert data["request_id"] == response.headers["X-Request-ID"]


class TestListEndpoint:
    """Tests for GET /v1/comments."""

    def test_anonymous_gets_empty_list(self, client: TestClient) -> None:
        response = client.get("/v1/comments")
        assert response.status_code == 200
        assert response.json() == []

    def test_editor_lists_pending(
        self, client: TestClient, auth_headers: HeadersFactory, blog: SimpleNamespace
    ) -> None:
        response = client.get(
            "/v1/comments",
            params={"type": "pending"},
            headers=auth_headers("editor", "editor"),
        )
        assert response.status_code == 200
        ids = {item["id"] for item in response.json()}
        assert ids == {
            str(blog.pending.id),
            str(blog.second_pending.id),
            str(blog.draft_pending.id),
        }

    def test_paging_and_filter(
        self, client: TestClient, auth_headers: HeadersFactory
    ) -> None:
        headers = auth_headers("editor", "editor")

        everything = client.get("/v1/comments", params={"take": 0}, headers=headers)
        assert len(everything.json()) == 9

        page = client.get(
            "/v1/comments", params={"take": 2, "skip": 1}, headers=headers
        )
        assert [i["id"] for i in page.json()] == [
            i["id"] for i in everything.json()[1:3]
        ]

        filtered = client.get(
            "/v1/comments",
            params={"filter": 'Author == "Bob"', "order": "Author asc"},
            headers=headers,
        )
        assert [i["author"] for i in filtered.json()] == ["Bob"]

    def test_item_shape(
        self, client: TestClient, auth_headers: HeadersFactory, blog: SimpleNamespace
    ) -> None:
        response = client.get(
            "/v1/comments",
            params={"filter": 'Author == "Bob"'},
            headers=auth_headers("alice", "author"),
        )
        item = response.json()[0]
        assert item["post_id"] == str(blog.hello.id)
        assert item["post_title"] == "Hello"
        assert item["relative_link"] == f"/post/hello#id_{blog.approved.id}"
        assert item["is_approved"] is True
        assert item["is_pending"] is False
        assert item["has_children"] is False

    def test_invalid_filter(self, client: TestClient, auth_headers: HeadersFactory) -> None:
        response = client.get(
            "/v1/comments",
            params={"filter": "Author =="},
            headers=auth_headers("editor", "editor"),
        )
        assert response.status_code == 400
        _assert_error_body(response, 400)

    def test_negative_take_rejected(self, client: TestClient) -> None:
        response = client.get("/v1/comments", params={"take": -1})
        assert response.status_code == 422

    def test_rightless_role_forbidden(
        self, client: TestClient, auth_headers: HeadersFactory
    ) -> None:
        response = client.get("/v1/comments", headers=auth_headers("x", "suspended"))
        assert response.status_code == 403
        _assert_error_body(response, 403)

    def test_invalid_token_runs_as_anonymous(self, client: TestClient) -> None:
        response = client.get(
            "/v1/comments", headers={"Authorization": "Bearer not-a-token"}
        )
        assert response.status_code == 200
        assert response.json() == []


class TestGetEndpoint:
    """Tests for GET /v1/comments/{id}."""

    def test_found(self, client: TestClient, blog: SimpleNamespace) -> None:
        response = client.get(f"/v1/comments/{blog.deleted.id}")
        assert response.status_code == 200
        assert response.json()["is_deleted"] is True

    def test_not_found(self, client: TestClient) -> None:
        response = client.get(f"/v1/comments/{uuid4()}")
        assert response.status_code == 404
        _assert_error_body(response, 404)


class TestCreateEndpoint:
    """Tests for POST /v1/comments."""

    def test_create(self, client: TestClient, blog: SimpleNamespace) -> None:
        response = client.post(
            "/v1/comments",
            json={
                "post_id": str(blog.hello.id),
                "author": "Visitor",
                "content": "<i>nice</i>",
            },
            headers={"X-Forwarded-For": "192.0.2.10, 10.0.0.1"},
        )
        assert response.status_code == 201
        data = response.json()
        assert data["content"] == "&lt;i&gt;nice&lt;/i&gt;"
        assert data["ip"] == "192.0.2.10"
        assert data["is_pending"] is True
        assert blog.hello.all_comments[-1].id.hex == data["id"].replace("-", "")

    def test_create_on_missing_post(self, client: TestClient) -> None:
        response = client.post(
            "/v1/comments", json={"post_id": str(uuid4()), "content": "hi"}
        )
        assert response.status_code == 400
        _assert_error_body(response, 400)

    def test_blank_content_rejected(
        self, client: TestClient, blog: SimpleNamespace
    ) -> None:
        response = client.post(
            "/v1/comments", json={"post_id": str(blog.hello.id), "content": "   "}
        )
        assert response.status_code == 422
        assert response.json()["details"]


class TestUpdateEndpoint:
    """Tests for PUT /v1/comments/{id}."""

    def test_approve(
        self, client: TestClient, auth_headers: HeadersFactory, blog: SimpleNamespace
    ) -> None:
        response = client.put(
            f"/v1/comments/{blog.pending.id}",
            params={"action": "approve"},
            json={"id": str(blog.pending.id)},
            headers=auth_headers("editor", "editor"),
        )
        assert response.status_code == 200
        assert response.json()["success"] is True
        assert blog.pending.is_approved is True

    def test_path_id_wins(
        self, client: TestClient, auth_headers: HeadersFactory, blog: SimpleNamespace
    ) -> None:
        response = client.put(
            f"/v1/comments/{blog.pending.id}",
            params={"action": "unapprove"},
            json={"id": str(uuid4())},
            headers=auth_headers("editor", "editor"),
        )
        assert response.status_code == 200
        assert blog.pending.is_spam is True

    def test_full_update_invalid_website(
        self, client: TestClient, auth_headers: HeadersFactory, blog: SimpleNamespace
    ) -> None:
        response = client.put(
            f"/v1/comments/{blog.pending.id}",
            json={"id": str(blog.pending.id), "content": "x", "website": "nope"},
            headers=auth_headers("editor", "editor"),
        )
        assert response.status_code == 400

    def test_forbidden_for_author(
        self, client: TestClient, auth_headers: HeadersFactory, blog: SimpleNamespace
    ) -> None:
        response = client.put(
            f"/v1/comments/{blog.pending.id}",
            params={"action": "approve"},
            json={"id": str(blog.pending.id)},
            headers=auth_headers("alice", "author"),
        )
        assert response.status_code == 403
        assert blog.pending.is_approved is False

    def test_not_found(self, client: TestClient, auth_headers: HeadersFactory) -> None:
        comment_id = uuid4()
        response = client.put(
            f"/v1/comments/{comment_id}",
            params={"action": "approve"},
            json={"id": str(comment_id)},
            headers=auth_headers("editor", "editor"),
        )
        assert response.status_code == 404


class TestDeleteEndpoints:
    """Tests for DELETE /v1/comments/{id} and /v1/comments/purge/{type}."""

    def test_delete(
        self, client: TestClient, auth_headers: HeadersFactory, blog: SimpleNamespace
    ) -> None:
        response = client.delete(
            f"/v1/comments/{blog.spam.id}", headers=auth_headers("editor", "editor")
        )
        assert response.status_code == 200
        assert blog.spam.is_deleted is True

    def test_delete_forbidden_for_anonymous(
        self, client: TestClient, blog: SimpleNamespace
    ) -> None:
        response = client.delete(f"/v1/comments/{blog.spam.id}")
        assert response.status_code == 403
        assert blog.spam.is_deleted is False

    def test_delete_not_found(
        self, client: TestClient, auth_headers: HeadersFactory
    ) -> None:
        response = client.delete(
            f"/v1/comments/{uuid4()}", headers=auth_headers("editor", "editor")
        )
        assert response.status_code == 404

    def test_purge_spam(
        self, client: TestClient, auth_headers: HeadersFactory, blog: SimpleNamespace
    ) -> None:
        response = client.delete(
            "/v1/comments/purge/spam", headers=auth_headers("root", "admin")
        )
        assert response.status_code == 200
        assert blog.spam.is_deleted is True
        assert blog.second_spam.is_deleted is True
        assert blog.draft_spam.is_deleted is False

    def test_purge_rejects_other_types(
        self, client: TestClient, auth_headers: HeadersFactory
    ) -> None:
        response = client.delete(
            "/v1/comments/purge/approved", headers=auth_headers("editor", "editor")
        )
        assert response.status_code == 400
        _assert_error_body(response, 400)


class TestErrorMapping:
    """Tests for handle_comment_error."""

    @pytest.mark.parametrize(
        "error,status_code",
        [
            (InvalidCommentTypeError("approved"), 400),
            (InvalidFilterError("bad"), 400),
            (InvalidPagingError(-1, 0), 400),
            (InvalidWebsiteError("nope"), 400),
            (CommentError("boom"), 500),
            (CommentError("gone", "comment_not_found"), 500),
        ],
    )
    def test_status_codes(self, error: CommentError, status_code: int) -> None:
        """Only codes the service raises are mapped; the rest are server errors."""
        exc = handle_comment_error(error)
        assert exc.status_code == status_code
        assert exc.detail == error.message
