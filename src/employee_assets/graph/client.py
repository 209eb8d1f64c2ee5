"""Microsoft Graph API client bound to a signed-in Session."""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any
from urllib import request as urllib_request
from urllib.error import HTTPError, URLError

from employee_assets.graph.session import AuthError

if TYPE_CHECKING:
    from employee_assets.graph.session import Session

logger = logging.getLogger(__name__)

GRAPH_BASE_URL = "https://graph.microsoft.com/v1.0"


class GraphApiError(Exception):
    """Raised when the Graph API returns a non-2xx response."""

    def __init__(self, status_code: int, message: str) -> None:
        super().__init__(f"Graph API error {status_code}: {message}")
        self.status_code = status_code
        self.message = message


class GraphTransportError(GraphApiError):
    """Raised when no usable response arrived (connection failure or bad JSON)."""

    def __init__(self, message: str) -> None:
        super().__init__(0, message)


def relative_path(full_url: str) -> str:
    """Convert a full Graph API URL (e.g. an @odata.nextLink) to a client path.

    Raises:
        ValueError: If the URL does not point at GRAPH_BASE_URL.
    """
    if not full_url.startswith(f"{GRAPH_BASE_URL}/"):
        raise ValueError(f"URL is not a Graph API v1.0 URL: {full_url}")
    return full_url[len(GRAPH_BASE_URL) :]


class GraphClient:
    """Authenticated client for Microsoft Graph API."""

    def __init__(self, session: Session) -> None:
        """Initialise the client.

        Args:
            session: Session whose access token authorizes every request.
        """
        self._session = session

    def _token(self) -> str:
        token = self._session.access_token
        if not token:
            raise AuthError("Not authenticated. Call authenticate() first.")
        return token

    def _request(self, method: str, path: str, body: dict[str, Any] | None = None) -> Any:
        """Send one request and decode the JSON response.

        Args:
            method: HTTP method.
            path: URL path relative to GRAPH_BASE_URL (must start with '/').
            body: Optional JSON body.

        Returns:
            Parsed JSON response, or an empty dict when the body is empty.

        Raises:
            AuthError: If the session has no access token.
            GraphApiError: If the API returns a non-2xx status code.
            GraphTransportError: If the connection fails or the body is not JSON.
        """
        headers = {
            "Authorization": f"Bearer {self._token()}",
            "Accept": "application/json",
        }
        data = None
        if body is not None:
            headers["Content-Type"] = "application/json"
            data = json.dumps(body).encode("utf-8")

        req = urllib_request.Request(
            f"{GRAPH_BASE_URL}{path}", data=data, headers=headers, method=method
        )
        try:
            with urllib_request.urlopen(req) as resp:
                raw = resp.read()
        except HTTPError as exc:
            text = exc.read().decode("utf-8", errors="replace")
            logger.warning(
                "[_request] Graph request failed; method:%s;path:%s;status:%d",
                method,
                path,
                exc.code,
            )
            raise GraphApiError(exc.code, text) from exc
        except URLError as exc:
            logger.warning(
                "[_request] Graph unreachable; method:%s;path:%s;reason:%s",
                method,
                path,
                exc.reason,
            )
            raise GraphTransportError(f"Connection failed: {exc.reason}") from exc

        if not raw:
            return {}
        try:
            return json.loads(raw)
        except ValueError as exc:
            logger.warning("[_request] invalid JSON response; method:%s;path:%s", method, path)
            raise GraphTransportError(f"Invalid JSON response: {exc}") from exc

    def get(self, path: str) -> dict[str, Any]:
        """Perform an authenticated GET request to the Graph API."""
        return self._request("GET", path)  # type: ignore[no-any-return]

    def post(self, path: str, body: dict[str, Any]) -> dict[str, Any]:
        """Perform an authenticated POST request with a JSON body."""
        return self._request("POST", path, body)  # type: ignore[no-any-return]

    def patch(self, path: str, body: dict[str, Any]) -> dict[str, Any]:
        """Perform an authenticated PATCH request with a JSON body."""
        return self._request("PATCH", path, body)  # type: ignore[no-any-return]

    def delete(self, path: str) -> None:
        """Perform an authenticated DELETE request."""
        self._request("DELETE", path)
