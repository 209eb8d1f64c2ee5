"""Single-item create, update and delete operations on SharePoint lists."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from employee_assets.graph.models import FIELD_FIELDS, FIELD_ID

if TYPE_CHECKING:
    from employee_assets.graph.client import GraphClient
    from employee_assets.graph.locator import ResourceLocator

logger = logging.getLogger(__name__)

ItemId = int | str


class RecordMutations:
    """Writes to list items by ID; transport errors propagate unchanged."""

    def __init__(self, graph_client: GraphClient, locator: ResourceLocator) -> None:
        self._graph = graph_client
        self._locator = locator

    def insert_record(self, resource_name: str, fields: dict[str, Any]) -> dict[str, Any]:
        """Create a list item.

        Args:
            resource_name: Display or machine name of the list.
            fields: Column values for the new item.

        Returns:
            ``{"d": item}`` where ``item`` is the created item as returned by
            Graph (including its server-assigned ``id``) with ``fields``
            always present.
        """
        path = self._locator.items_path(resource_name)
        response = self._graph.post(path, {FIELD_FIELDS: fields})
        logger.info(
            "[insert_record] created item; list:%s;item_id:%s",
            resource_name,
            response.get(FIELD_ID),
        )
        return {"d": {**response, FIELD_FIELDS: response.get(FIELD_FIELDS) or {}}}

    def update_record(
        self, resource_name: str, item_id: ItemId, fields: dict[str, Any]
    ) -> dict[str, Any]:
        """Patch only the supplied columns of a list item.

        Returns:
            The item's field set after the update.
        """
        path = f"{self._locator.items_path(resource_name)}/{item_id}/fields"
        result = self._graph.patch(path, fields)
        logger.info(
            "[update_record] updated item; list:%s;item_id:%s;fields:%s",
            resource_name,
            item_id,
            ",".join(fields),
        )
        return result

    def delete_record(self, resource_name: str, item_id: ItemId) -> None:
        """Delete a list item. A missing item surfaces as a GraphApiError (404)."""
        self._graph.delete(f"{self._locator.items_path(resource_name)}/{item_id}")
        logger.info("[delete_record] deleted item; list:%s;item_id:%s", resource_name, item_id)
