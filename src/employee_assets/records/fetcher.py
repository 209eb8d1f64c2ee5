"""Record fetcher: reads every item of a list as flattened records."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

from employee_assets.graph.client import relative_path
from employee_assets.graph.models import (
    FIELD_FIELDS,
    FIELD_ID,
    ODATA_NEXT_LINK,
    ODATA_VALUE,
    RECORD_ID,
    Record,
)

if TYPE_CHECKING:
    from employee_assets.graph.client import GraphClient
    from employee_assets.graph.locator import ResourceLocator
    from employee_assets.records.resolver import ReferenceResolver

logger = logging.getLogger(__name__)

DEFAULT_MAX_PAGES = 50


def flatten_item(raw: dict[str, Any]) -> Record:
    """Merge a list item's ``fields`` container into one record keyed by ``Id``."""
    fields = raw.get(FIELD_FIELDS) or {}
    return {RECORD_ID: raw.get(FIELD_ID), **fields}


class RecordFetcher:
    """Fetches and normalizes all items of a SharePoint list."""

    def __init__(
        self,
        graph_client: GraphClient,
        locator: ResourceLocator,
        resolver: ReferenceResolver,
        max_pages: int = DEFAULT_MAX_PAGES,
    ) -> None:
        """Initialise the fetcher.

        Args:
            graph_client: Authenticated GraphClient instance.
            locator: ResourceLocator for list and site IDs.
            resolver: ReferenceResolver applied to lists with lookup columns.
            max_pages: Max @odata.nextLink pages followed per fetch.
        """
        self._graph = graph_client
        self._locator = locator
        self._resolver = resolver
        self._max_pages = max_pages

    def fetch_all(
        self,
        resource_name: str,
        related_records: Sequence[Record] | None = None,
    ) -> list[Record]:
        """Return every item of a list, flattened, with lookup columns resolved.

        Follows @odata.nextLink pagination, stopping after ``max_pages``
        pages. The whole list is materialized before lookups are resolved.

        Args:
            resource_name: Display or machine name of the list.
            related_records: Already-fetched records of the list referenced
                by this list's lookup column (used before any Graph lookup).

        Returns:
            The flattened records; empty if the list has no items.
        """
        next_path: str | None = f"{self._locator.items_path(resource_name)}?$expand=fields"
        records: list[Record] = []
        pages = 0

        while next_path is not None:
            response = self._graph.get(next_path)
            records.extend(flatten_item(raw) for raw in response.get(ODATA_VALUE, []))
            pages += 1

            next_link = response.get(ODATA_NEXT_LINK)
            if next_link and pages >= self._max_pages:
                logger.warning(
                    "[fetch_all] page limit reached; list:%s;pages:%d;records:%d",
                    resource_name,
                    pages,
                    len(records),
                )
                break
            next_path = relative_path(next_link) if next_link else None

        logger.info("[fetch_all] fetched list; list:%s;records:%d", resource_name, len(records))
        if records:
            self._resolver.resolve_references(resource_name, records, related_records)
        return records
