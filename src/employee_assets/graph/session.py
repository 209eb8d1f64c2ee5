"""Session state and interactive sign-in (authorization code + PKCE) via MSAL."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any
from urllib.parse import urlsplit

import msal

from employee_assets.config import CLIENT_ID_PLACEHOLDER, TENANT_ID_PLACEHOLDER

if TYPE_CHECKING:
    from employee_assets.config import AppConfig

logger = logging.getLogger(__name__)

AUTHORITY_BASE_URL = "https://login.microsoftonline.com"
GRAPH_SCOPES = [
    "https://graph.microsoft.com/Sites.ReadWrite.All",
    "https://graph.microsoft.com/User.Read",
]

# Redirect schemes issued by development tooling; their path suffix changes per run.
DEV_REDIRECT_SCHEMES = frozenset({"exp", "exps"})

# Receives (auth_uri, redirect_uri); returns the redirect's query parameters,
# or None if the user cancelled.
AuthorizationPrompt = Callable[[str, str], dict[str, str] | None]


class ConfigurationError(Exception):
    """Raised when the client or tenant ID is missing or still a placeholder."""


class AuthError(Exception):
    """Raised when sign-in fails or a call is made without an access token."""


@dataclass
class Session:
    """Per-session state shared by every component talking to Graph.

    Attributes:
        access_token: Bearer token, or None when signed out.
        site_id: Resolved SharePoint site ID, memoized.
        list_ids: Lower-cased list name to list ID.
    """

    access_token: str | None = None
    site_id: str | None = None
    list_ids: dict[str, str] = field(default_factory=dict)

    @property
    def is_authenticated(self) -> bool:
        return bool(self.access_token)

    def invalidate_caches(self) -> None:
        """Forget the resolved site ID and all list IDs."""
        self.site_id = None
        self.list_ids.clear()


def normalize_redirect_uri(uri: str) -> str:
    """Reduce a development-tool redirect URI to its stable base.

    Dev tooling appends a path such as ``/--/auth`` to a per-run
    ``exp://<ip>:<port>`` URI; only ``scheme://host:port/`` is registered
    with the identity provider. Other URIs are returned unchanged.

    Args:
        uri: Redirect URI computed for the current runtime.

    Returns:
        The URI to send to the identity provider.
    """
    parts = urlsplit(uri)
    if parts.scheme in DEV_REDIRECT_SCHEMES and parts.netloc:
        return f"{parts.scheme}://{parts.netloc}/"
    return uri


def _describe_error(params: dict[str, Any]) -> str:
    message = str(params.get("error") or "Unknown error")
    description = str(params.get("error_description") or "")
    return f"{message} - {description}" if description else message


def _is_redirect_mismatch(params: dict[str, Any]) -> bool:
    text = f"{params.get('error') or ''} {params.get('error_description') or ''}"
    return "redirect" in text.lower()


def _redirect_mismatch_message(redirect_uri: str, details: str) -> str:
    return (
        "Redirect URI mismatch!\n\n"
        f"The redirect URI used: {redirect_uri}\n\n"
        "Add this exact URI to the app registration:\n"
        "1. Azure Portal -> App registrations -> your app -> Authentication\n"
        "2. Under 'Platform configurations', add 'Mobile and desktop applications'\n"
        f"3. Add this exact redirect URI: {redirect_uri}\n"
        "4. Save and try again.\n\n"
        f"Error details: {details}"
    )


class SessionManager:
    """Owns the access token lifecycle for one Session."""

    def __init__(
        self,
        client_id: str,
        tenant_id: str,
        redirect_uri: str,
        prompt: AuthorizationPrompt,
        session: Session | None = None,
    ) -> None:
        """Initialise the session manager.

        Args:
            client_id: Entra ID application (client) ID.
            tenant_id: Entra ID directory (tenant) ID.
            redirect_uri: Redirect URI for the current runtime; normalized
                before use.
            prompt: Interactive step that sends the user to the
                authorization URL and returns the redirect's query parameters.
            session: Session to populate; a fresh one is created if omitted.
        """
        self._client_id = client_id
        self._tenant_id = tenant_id
        self._redirect_uri = normalize_redirect_uri(redirect_uri)
        self._prompt = prompt
        self.session = session if session is not None else Session()

    @property
    def redirect_uri(self) -> str:
        return self._redirect_uri

    def _check_configuration(self) -> None:
        if not self._client_id or self._client_id == CLIENT_ID_PLACEHOLDER:
            raise ConfigurationError(
                "Client ID not configured. Set EA_CLIENT_ID to your Entra application (client) ID."
            )
        if not self._tenant_id or self._tenant_id == TENANT_ID_PLACEHOLDER:
            raise ConfigurationError(
                "Tenant ID not configured. Set EA_TENANT_ID to your Entra directory (tenant) ID."
            )

    def _auth_error(self, params: dict[str, Any], prefix: str) -> AuthError:
        details = _describe_error(params)
        if _is_redirect_mismatch(params):
            return AuthError(_redirect_mismatch_message(self._redirect_uri, details))
        return AuthError(f"{prefix}: {details}")

    def authenticate(self) -> str:
        """Run the interactive authorization code + PKCE flow.

        Returns:
            The new access token.

        Raises:
            ConfigurationError: If the client or tenant ID is unusable.
            AuthError: If the flow is cancelled, the provider reports an
                error, or no code or token is obtained.
        """
        self._check_configuration()
        logger.info(
            "[authenticate] starting interactive sign-in; redirect_uri:%s", self._redirect_uri
        )

        app = msal.PublicClientApplication(
            client_id=self._client_id,
            authority=f"{AUTHORITY_BASE_URL}/{self._tenant_id}",
        )
        # MSAL generates the PKCE verifier/challenge pair and the state value.
        flow = app.initiate_auth_code_flow(scopes=GRAPH_SCOPES, redirect_uri=self._redirect_uri)

        params = self._prompt(flow["auth_uri"], self._redirect_uri)
        if params is None:
            raise AuthError("Authentication cancelled by user")
        if params.get("error"):
            logger.error("[authenticate] provider returned an error; error:%s", params["error"])
            raise self._auth_error(params, "Authentication error")
        if not params.get("code"):
            raise AuthError("Authorization code not received")

        try:
            result: dict[str, Any] = app.acquire_token_by_auth_code_flow(flow, params) or {}
        except ValueError as exc:
            raise AuthError(f"Authentication failed: {exc}") from exc

        if "access_token" not in result:
            if result.get("error"):
                logger.error("[authenticate] token exchange failed; error:%s", result["error"])
                raise self._auth_error(result, "Token exchange failed")
            raise AuthError("Access token not received from token exchange")

        self.session.access_token = str(result["access_token"])
        self.session.invalidate_caches()
        logger.info("[authenticate] sign-in complete")
        return self.session.access_token

    def get_access_token(self) -> str | None:
        return self.session.access_token

    def set_access_token(self, token: str | None) -> None:
        """Replace the access token; an empty token signs the session out.

        Signing out also drops the cached site and list IDs.
        """
        if token:
            self.session.access_token = token
            return
        self.session.access_token = None
        self.session.invalidate_caches()
        logger.info("[set_access_token] signed out")


def session_manager_from_config(
    config: AppConfig,
    prompt: AuthorizationPrompt,
    session: Session | None = None,
) -> SessionManager:
    """Construct a SessionManager from application configuration.

    Args:
        config: Application configuration instance.
        prompt: Interactive authorization step.
        session: Optional existing Session to populate.

    Returns:
        Configured SessionManager instance.
    """
    return SessionManager(
        client_id=config.client_id,
        tenant_id=config.tenant_id,
        redirect_uri=config.redirect_uri,
        prompt=prompt,
        session=session,
    )
