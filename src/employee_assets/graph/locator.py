"""SharePoint site and list ID resolution with per-session memoization."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any
from urllib.parse import quote, urlparse

from employee_assets.graph.models import FIELD_DISPLAY_NAME, FIELD_ID, FIELD_NAME, ODATA_VALUE

if TYPE_CHECKING:
    from employee_assets.graph.client import GraphClient
    from employee_assets.graph.session import Session

logger = logging.getLogger(__name__)


class NotFoundError(Exception):
    """Raised when a site or list cannot be resolved."""


def site_path(site_url: str) -> str:
    """Build the Graph site key ``hostname:/server/relative/path`` for a site URL."""
    parsed = urlparse(site_url)
    parts = [p for p in parsed.path.split("/") if p]
    path = parsed.hostname or ""
    if parts:
        path += ":/" + "/".join(parts)
    return path


class ResourceLocator:
    """Maps a site URL and list names to Graph IDs, caching them in the Session."""

    def __init__(self, graph_client: GraphClient, session: Session, site_url: str) -> None:
        """Initialise the locator.

        Args:
            graph_client: Authenticated GraphClient instance.
            session: Session holding the site and list ID caches.
            site_url: SharePoint site URL (e.g. https://contoso.sharepoint.com/sites/assets).
        """
        self._graph = graph_client
        self._session = session
        self._site_url = site_url

    def resolve_container(self) -> str:
        """Return the Graph site ID for the configured site URL.

        Raises:
            NotFoundError: If the site response carries no ID.
        """
        if self._session.site_id:
            return self._session.site_id

        encoded = quote(site_path(self._site_url), safe="")
        data = self._graph.get(f"/sites/{encoded}")
        if not data.get(FIELD_ID):
            raise NotFoundError(f"Site ID not found in response for {self._site_url}")

        self._session.site_id = str(data[FIELD_ID])
        logger.info("[resolve_container] resolved site; site_id:%s", self._session.site_id)
        return self._session.site_id

    def list_resources(self) -> list[dict[str, Any]]:
        """Return metadata for every list in the site."""
        site_id = self.resolve_container()
        response = self._graph.get(f"/sites/{site_id}/lists")
        return list(response.get(ODATA_VALUE, []))

    def resolve_resource(self, name: str) -> str:
        """Return the list ID for a list name, matched case-insensitively.

        Both the list's display name and its machine name are compared.

        Raises:
            NotFoundError: If no list matches; the message names every
                available list.
        """
        key = name.lower()
        cached = self._session.list_ids.get(key)
        if cached:
            return cached

        lists = self.list_resources()
        for entry in lists:
            display_name = str(entry.get(FIELD_DISPLAY_NAME) or "")
            machine_name = str(entry.get(FIELD_NAME) or "")
            if key in (display_name.lower(), machine_name.lower()):
                list_id = str(entry[FIELD_ID])
                self._session.list_ids[key] = list_id
                logger.info("[resolve_resource] resolved list; name:%s;list_id:%s", name, list_id)
                return list_id

        available = ", ".join(
            str(entry.get(FIELD_DISPLAY_NAME) or entry.get(FIELD_NAME)) for entry in lists
        )
        raise NotFoundError(f'List "{name}" not found.\nAvailable lists: {available or "none"}')

    def get_resource(self, name: str) -> dict[str, Any]:
        """Return the list metadata for a list name."""
        list_id = self.resolve_resource(name)
        site_id = self.resolve_container()
        return self._graph.get(f"/sites/{site_id}/lists/{list_id}")

    def items_path(self, name: str) -> str:
        """Return the ``/sites/<site>/lists/<list>/items`` path for a list name."""
        list_id = self.resolve_resource(name)
        site_id = self.resolve_container()
        return f"/sites/{site_id}/lists/{list_id}/items"
