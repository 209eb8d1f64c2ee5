"""Unit tests for graph/client.py: authenticated HTTP calls."""

import json
from io import BytesIO
from unittest.mock import MagicMock, patch
from urllib.error import HTTPError, URLError

import pytest

from employee_assets.graph.client import (
    GraphApiError,
    GraphClient,
    GraphTransportError,
    relative_path,
)
from employee_assets.graph.session import AuthError, Session

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _make_client(token: str | None = "fake-token-abc") -> GraphClient:
    return GraphClient(Session(access_token=token))


def _mock_response(body: bytes) -> MagicMock:
    mock_response = MagicMock()
    mock_response.read.return_value = body
    mock_response.__enter__ = lambda s: s
    mock_response.__exit__ = MagicMock(return_value=False)
    return mock_response


def _http_error(code: int, body: bytes) -> HTTPError:
    return HTTPError(
        url="https://graph.microsoft.com/v1.0/path",
        code=code,
        msg="error",
        hdrs=MagicMock(),  # type: ignore[arg-type]
        fp=BytesIO(body),
    )


# ---------------------------------------------------------------------------
# get() tests
# ---------------------------------------------------------------------------


class TestGraphClientGet:
    def test_get_constructs_correct_url_and_headers(self) -> None:
        client = _make_client()
        response_data = {"value": [{"id": "list-1"}]}

        with patch("employee_assets.graph.client.urllib_request.urlopen") as mock_urlopen:
            mock_urlopen.return_value = _mock_response(json.dumps(response_data).encode())
            result = client.get("/sites/site-1/lists")

        assert result == response_data
        req = mock_urlopen.call_args[0][0]
        assert req.full_url == "https://graph.microsoft.com/v1.0/sites/site-1/lists"
        assert req.get_method() == "GET"
        assert req.get_header("Authorization") == "Bearer fake-token-abc"
        assert req.get_header("Accept") == "application/json"
        assert req.data is None

    def test_get_raises_auth_error_when_not_signed_in(self) -> None:
        client = _make_client(token=None)

        with (
            patch("employee_assets.graph.client.urllib_request.urlopen") as mock_urlopen,
            pytest.raises(AuthError, match="Not authenticated"),
        ):
            client.get("/me")

        mock_urlopen.assert_not_called()

    def test_get_raises_graph_api_error_with_body_text(self) -> None:
        client = _make_client()
        error_body = json.dumps({"error": {"message": "Item not found"}}).encode()

        with (
            patch(
                "employee_assets.graph.client.urllib_request.urlopen",
                side_effect=_http_error(404, error_body),
            ),
            pytest.raises(GraphApiError) as exc_info,
        ):
            client.get("/sites/s/lists/l/items/9")

        assert exc_info.value.status_code == 404
        assert "Item not found" in exc_info.value.message

    def test_token_read_at_call_time(self) -> None:
        session = Session()
        client = GraphClient(session)
        session.access_token = "late-token"

        with patch("employee_assets.graph.client.urllib_request.urlopen") as mock_urlopen:
            mock_urlopen.return_value = _mock_response(b"{}")
            client.get("/me")

        assert mock_urlopen.call_args[0][0].get_header("Authorization") == "Bearer late-token"

    def test_connection_failure_raises_transport_error(self) -> None:
        client = _make_client()

        with (
            patch(
                "employee_assets.graph.client.urllib_request.urlopen",
                side_effect=URLError("connection reset"),
            ),
            pytest.raises(GraphTransportError, match="connection reset") as exc_info,
        ):
            client.get("/me")

        assert isinstance(exc_info.value, GraphApiError)
        assert exc_info.value.status_code == 0

    def test_non_json_body_raises_transport_error(self) -> None:
        client = _make_client()

        with (
            patch("employee_assets.graph.client.urllib_request.urlopen") as mock_urlopen,
            pytest.raises(GraphTransportError, match="Invalid JSON"),
        ):
            mock_urlopen.return_value = _mock_response(b"<html>gateway</html>")
            client.get("/me")


# ---------------------------------------------------------------------------
# post() / patch() / delete() tests
# ---------------------------------------------------------------------------


class TestGraphClientWrites:
    def test_post_sends_json_body(self) -> None:
        client = _make_client()

        with patch("employee_assets.graph.client.urllib_request.urlopen") as mock_urlopen:
            mock_urlopen.return_value = _mock_response(b'{"id": "7"}')
            result = client.post("/sites/s/lists/l/items", {"fields": {"Title": "Laptop-01"}})

        assert result == {"id": "7"}
        req = mock_urlopen.call_args[0][0]
        assert req.get_method() == "POST"
        assert req.get_header("Content-type") == "application/json"
        assert json.loads(req.data) == {"fields": {"Title": "Laptop-01"}}

    def test_patch_sends_json_body(self) -> None:
        client = _make_client()

        with patch("employee_assets.graph.client.urllib_request.urlopen") as mock_urlopen:
            mock_urlopen.return_value = _mock_response(b'{"Status": "Active"}')
            client.patch("/sites/s/lists/l/items/7/fields", {"Status": "Active"})

        req = mock_urlopen.call_args[0][0]
        assert req.get_method() == "PATCH"
        assert json.loads(req.data) == {"Status": "Active"}

    def test_delete_accepts_empty_response(self) -> None:
        client = _make_client()

        with patch("employee_assets.graph.client.urllib_request.urlopen") as mock_urlopen:
            mock_urlopen.return_value = _mock_response(b"")
            assert client.delete("/sites/s/lists/l/items/7") is None

        assert mock_urlopen.call_args[0][0].get_method() == "DELETE"

    def test_delete_raises_graph_api_error_on_404(self) -> None:
        client = _make_client()

        with (
            patch(
                "employee_assets.graph.client.urllib_request.urlopen",
                side_effect=_http_error(404, b"itemNotFound"),
            ),
            pytest.raises(GraphApiError) as exc_info,
        ):
            client.delete("/sites/s/lists/l/items/7")

        assert exc_info.value.status_code == 404
        assert exc_info.value.message == "itemNotFound"


# ---------------------------------------------------------------------------
# Helper and error tests
# ---------------------------------------------------------------------------


class TestRelativePath:
    def test_strips_graph_base_url(self) -> None:
        url = "https://graph.microsoft.com/v1.0/users?$skiptoken=abc"
        assert relative_path(url) == "/users?$skiptoken=abc"

    def test_rejects_url_outside_graph(self) -> None:
        with pytest.raises(ValueError, match="not a Graph API"):
            relative_path("https://example.com/x")

    def test_rejects_other_graph_version(self) -> None:
        with pytest.raises(ValueError):
            relative_path("https://graph.microsoft.com/v1.0beta/users")


class TestGraphApiError:
    def test_status_code_and_message_stored(self) -> None:
        err = GraphApiError(403, "Access denied")
        assert err.status_code == 403
        assert err.message == "Access denied"
        assert "403" in str(err)
