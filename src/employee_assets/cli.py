"""Command line entry point: config validation, sign-in and list access."""

from __future__ import annotations

import json
import logging
import sys
import webbrowser
from dataclasses import asdict
from urllib.parse import parse_qs, urlsplit

import click

from employee_assets.config import load_config, validate_config
from employee_assets.graph.client import GraphApiError
from employee_assets.graph.locator import NotFoundError
from employee_assets.graph.session import AuthError, ConfigurationError
from employee_assets.orchestration.service import RemoteResourceService, service_from_config

logger = logging.getLogger(__name__)


def browser_prompt(auth_uri: str, redirect_uri: str) -> dict[str, str] | None:
    """Open the sign-in page and read back the URL the browser was sent to.

    Returns:
        Query parameters of the redirect, or None if the user entered nothing.
    """
    click.echo(f"Opening browser for sign-in. Redirect URI: {redirect_uri}")
    if not webbrowser.open(auth_uri):
        click.echo(f"Open this URL to sign in:\n{auth_uri}")
    answer = click.prompt(
        "Paste the full URL you were redirected to (empty to cancel)",
        default="",
        show_default=False,
    ).strip()
    if not answer:
        return None
    query = parse_qs(urlsplit(answer).query)
    return {key: values[0] for key, values in query.items()}


def _signed_in_service() -> RemoteResourceService:
    try:
        service = service_from_config(load_config(), browser_prompt)
        service.authenticate()
    except KeyError as exc:
        raise click.ClickException(f"Missing environment variable {exc}") from exc
    except (ConfigurationError, AuthError) as exc:
        raise click.ClickException(str(exc)) from exc
    return service


@click.group(name="employee-assets", help="Employee Assets SharePoint list client")
@click.option("--verbose", is_flag=True, help="Enable debug logging.")
def main(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )


@main.command(name="validate-config", help="Validate configuration; exit 1 when invalid")
def validate_config_command() -> None:
    try:
        config = load_config()
    except KeyError as exc:
        click.echo(f"ERROR: missing environment variable {exc}", err=True)
        sys.exit(1)

    problems = validate_config(config)
    reported = {p.field for p in problems}
    for problem in problems:
        label = "ERROR" if problem.is_error else "WARNING"
        click.echo(f"{label}: {problem.message}", err=True)
    for name in ("site_url", "client_id", "tenant_id", "default_list_name"):
        if name not in reported:
            click.echo(f"OK: {name} = {getattr(config, name)}")

    if any(p.is_error for p in problems):
        click.echo("Configuration validation failed.", err=True)
        sys.exit(1)
    click.echo("Configuration is valid.")


@main.command(help="Sign in and show the current user and admin status")
def whoami() -> None:
    service = _signed_in_service()
    try:
        status = service.get_current_user_with_admin_status()
    except GraphApiError as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(json.dumps(asdict(status), indent=2))


@main.command(name="list", help="Sign in and print every record of a list as JSON")
@click.argument("name", required=False)
def list_records(name: str | None) -> None:
    service = _signed_in_service()
    list_name = name or load_config().default_list_name
    try:
        records = service.get_records(list_name)
    except (GraphApiError, NotFoundError) as exc:
        raise click.ClickException(str(exc)) from exc
    logger.info("[list_records] printing records; list:%s;count:%d", list_name, len(records))
    click.echo(json.dumps(records, indent=2, default=str))


if __name__ == "__main__":
    main()
