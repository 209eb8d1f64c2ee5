"""Remote resource service: one signed-in session over the SharePoint lists."""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

from employee_assets.directory.users import DirectoryService
from employee_assets.graph.client import GraphClient
from employee_assets.graph.locator import ResourceLocator
from employee_assets.graph.session import Session, SessionManager, session_manager_from_config
from employee_assets.records.fetcher import RecordFetcher
from employee_assets.records.mutations import ItemId, RecordMutations
from employee_assets.records.resolver import default_resolver

if TYPE_CHECKING:
    from employee_assets.config import AppConfig
    from employee_assets.graph.models import (
        AdminStatus,
        AdminUser,
        CurrentUserStatus,
        Record,
        UserProfile,
    )
    from employee_assets.graph.session import AuthorizationPrompt


class RemoteResourceService:
    """Entry point consumed by the UI layer.

    Every component shares the same Session; authentication must succeed
    before any other call.
    """

    def __init__(
        self,
        session_manager: SessionManager,
        locator: ResourceLocator,
        fetcher: RecordFetcher,
        mutations: RecordMutations,
        directory: DirectoryService,
    ) -> None:
        self._auth = session_manager
        self._locator = locator
        self._fetcher = fetcher
        self._mutations = mutations
        self._directory = directory

    @property
    def session(self) -> Session:
        return self._auth.session

    def authenticate(self) -> str:
        return self._auth.authenticate()

    def logout(self) -> None:
        self._auth.set_access_token("")

    def get_access_token(self) -> str | None:
        return self._auth.get_access_token()

    def set_access_token(self, token: str) -> None:
        self._auth.set_access_token(token)

    def get_lists(self) -> list[dict[str, Any]]:
        return self._locator.list_resources()

    def get_list(self, list_name: str) -> dict[str, Any]:
        return self._locator.get_resource(list_name)

    def get_records(
        self, list_name: str, related_records: Sequence[Record] | None = None
    ) -> list[Record]:
        return self._fetcher.fetch_all(list_name, related_records)

    def insert_record(self, list_name: str, fields: dict[str, Any]) -> dict[str, Any]:
        return self._mutations.insert_record(list_name, fields)

    def update_record(
        self, list_name: str, item_id: ItemId, fields: dict[str, Any]
    ) -> dict[str, Any]:
        return self._mutations.update_record(list_name, item_id, fields)

    def delete_record(self, list_name: str, item_id: ItemId) -> None:
        self._mutations.delete_record(list_name, item_id)

    def get_current_user(self) -> UserProfile:
        return self._directory.get_current_user()

    def is_current_user_admin(self) -> AdminStatus:
        return self._directory.is_current_user_admin()

    def get_all_users(self) -> list[UserProfile]:
        return self._directory.get_all_users()

    def get_admin_users(self) -> list[AdminUser]:
        return self._directory.get_admin_users()

    def get_current_user_with_admin_status(self) -> CurrentUserStatus:
        return self._directory.get_current_user_with_admin_status()


def service_from_config(config: AppConfig, prompt: AuthorizationPrompt) -> RemoteResourceService:
    """Construct a RemoteResourceService from application configuration.

    Creates one Session and wires the session manager, Graph client,
    locator, fetcher, resolver, mutations and directory around it.

    Args:
        config: Application configuration instance.
        prompt: Interactive authorization step used by authenticate().

    Returns:
        Configured RemoteResourceService instance.
    """
    session = Session()
    session_manager = session_manager_from_config(config, prompt, session)
    client = GraphClient(session)
    locator = ResourceLocator(client, session, config.site_url)
    fetcher = RecordFetcher(
        graph_client=client,
        locator=locator,
        resolver=default_resolver(client, locator),
        max_pages=config.max_pages,
    )
    return RemoteResourceService(
        session_manager=session_manager,
        locator=locator,
        fetcher=fetcher,
        mutations=RecordMutations(client, locator),
        directory=DirectoryService(client, max_pages=config.max_pages),
    )
