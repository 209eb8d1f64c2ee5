"""Application configuration loaded from environment variables."""

import os
import re
from dataclasses import dataclass

# Values shipped in the sample configuration; never valid at runtime.
CLIENT_ID_PLACEHOLDER = "YOUR_CLIENT_ID_HERE"
TENANT_ID_PLACEHOLDER = "YOUR_TENANT_ID_HERE"

GUID_PATTERN = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$", re.IGNORECASE
)
URL_PATTERN = re.compile(r"^https?://.+")


@dataclass(frozen=True)
class AppConfig:
    """Centralized application configuration.

    Required fields have no defaults and will cause a KeyError at startup
    if the corresponding environment variable is missing. Domain constants
    have sensible defaults but can be overridden via environment variables.
    """

    # Required, no defaults: fail at startup if missing
    site_url: str
    client_id: str
    tenant_id: str

    # Domain constants, overridable via env
    default_list_name: str = "Assets"
    redirect_uri: str = "http://localhost:8400/"
    max_pages: int = 50


@dataclass(frozen=True)
class ConfigProblem:
    """A single finding reported by validate_config().

    Attributes:
        field: Name of the AppConfig field the finding is about.
        message: Human-readable description of the problem.
        is_error: False for warnings that do not make the config invalid.
    """

    field: str
    message: str
    is_error: bool = True


def load_config() -> AppConfig:
    """Construct an AppConfig from environment variables.

    Required environment variables:
        EA_SITE_URL: SharePoint site URL (e.g. https://contoso.sharepoint.com/sites/assets).
        EA_CLIENT_ID: Entra ID application (client) ID.
        EA_TENANT_ID: Entra ID directory (tenant) ID.

    Optional environment variables (with defaults):
        EA_DEFAULT_LIST_NAME: List shown when none is named (default: Assets).
        EA_REDIRECT_URI: OAuth redirect URI registered for the app
            (default: http://localhost:8400/).
        EA_MAX_PAGES: Max pages followed by any paginated listing (default: 50).

    Returns:
        Configured AppConfig instance.
    """
    return AppConfig(
        site_url=os.environ["EA_SITE_URL"],
        client_id=os.environ["EA_CLIENT_ID"],
        tenant_id=os.environ["EA_TENANT_ID"],
        default_list_name=os.environ.get("EA_DEFAULT_LIST_NAME", "Assets"),
        redirect_uri=os.environ.get("EA_REDIRECT_URI", "http://localhost:8400/"),
        max_pages=int(os.environ.get("EA_MAX_PAGES", "50")),
    )


def _check_identifier(field: str, label: str, value: str, placeholder: str) -> ConfigProblem | None:
    if not value:
        return ConfigProblem(field, f"{label} is missing")
    if value == placeholder:
        return ConfigProblem(field, f"{label} is still set to placeholder value")
    if not GUID_PATTERN.match(value):
        return ConfigProblem(
            field,
            f"{label} is not in valid GUID format: {value}"
            " (expected xxxxxxxx-xxxx-xxxx-xxxx-xxxxxxxxxxxx)",
        )
    return None


def validate_config(config: AppConfig) -> list[ConfigProblem]:
    """Check an AppConfig for missing, placeholder or malformed values.

    Args:
        config: Configuration to check.

    Returns:
        All problems found, errors and warnings alike. The configuration is
        valid when none of the returned problems has ``is_error`` set.
    """
    problems: list[ConfigProblem] = []

    if not config.site_url:
        problems.append(ConfigProblem("site_url", "Site URL is missing"))
    elif not URL_PATTERN.match(config.site_url):
        problems.append(
            ConfigProblem("site_url", f"Site URL is not a valid URL: {config.site_url}")
        )

    for problem in (
        _check_identifier("client_id", "Client ID", config.client_id, CLIENT_ID_PLACEHOLDER),
        _check_identifier("tenant_id", "Tenant ID", config.tenant_id, TENANT_ID_PLACEHOLDER),
    ):
        if problem is not None:
            problems.append(problem)

    if not config.default_list_name:
        problems.append(
            ConfigProblem("default_list_name", "Default list name is not set", is_error=False)
        )

    return problems
