"""Unit tests for directory/users.py: profile, admin roles and user listing."""

from unittest.mock import MagicMock
from urllib.error import URLError

import pytest

from employee_assets.directory.users import GLOBAL_ADMIN_ROLE_TEMPLATE_ID, DirectoryService
from employee_assets.graph.client import GraphApiError
from employee_assets.graph.session import AuthError

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

_NEXT = "https://graph.microsoft.com/v1.0/users?$skiptoken="


def _make_service(max_pages: int = 50) -> tuple[DirectoryService, MagicMock]:
    mock_graph = MagicMock()
    return DirectoryService(mock_graph, max_pages=max_pages), mock_graph


def _users_page(page: int, size: int, has_next: bool) -> dict:  # type: ignore[type-arg]
    body: dict = {  # type: ignore[type-arg]
        "value": [
            {"id": f"u{page}-{i}", "displayName": f"User {i}", "userPrincipalName": f"u{i}@x"}
            for i in range(size)
        ]
    }
    if has_next:
        body["@odata.nextLink"] = f"{_NEXT}{page + 1}"
    return body


# ---------------------------------------------------------------------------
# get_current_user tests
# ---------------------------------------------------------------------------


class TestGetCurrentUser:
    def test_maps_me_response(self) -> None:
        service, mock_graph = _make_service()
        mock_graph.get.return_value = {
            "id": "me-1",
            "displayName": "Jane Doe",
            "userPrincipalName": "jane@contoso.com",
            "mail": None,
        }

        user = service.get_current_user()

        mock_graph.get.assert_called_once_with("/me")
        assert user.display_name == "Jane Doe"
        assert user.mail == "jane@contoso.com"

    def test_errors_propagate(self) -> None:
        service, mock_graph = _make_service()
        mock_graph.get.side_effect = AuthError("Not authenticated. Call authenticate() first.")
        with pytest.raises(AuthError):
            service.get_current_user()


# ---------------------------------------------------------------------------
# is_current_user_admin tests
# ---------------------------------------------------------------------------


class TestIsCurrentUserAdmin:
    def test_detects_admin_directory_roles(self) -> None:
        service, mock_graph = _make_service()
        mock_graph.get.return_value = {
            "value": [
                {"@odata.type": "#microsoft.graph.group", "displayName": "Staff"},
                {
                    "@odata.type": "#microsoft.graph.directoryRole",
                    "roleTemplateId": GLOBAL_ADMIN_ROLE_TEMPLATE_ID,
                    "displayName": "Global Administrator",
                },
                {
                    "@odata.type": "#microsoft.graph.directoryRole",
                    "roleTemplateId": "88d8e3e3-8f55-4a1e-953a-9b9898b8876b",
                    "displayName": "Directory Readers",
                },
            ]
        }

        status = service.is_current_user_admin()

        mock_graph.get.assert_called_once_with("/me/memberOf")
        assert status.is_admin is True
        assert status.roles == ["Global Administrator"]

    def test_non_admin(self) -> None:
        service, mock_graph = _make_service()
        mock_graph.get.return_value = {"value": []}
        status = service.is_current_user_admin()
        assert status.is_admin is False
        assert status.roles == []

    def test_graph_error_downgrades_to_not_admin(self) -> None:
        service, mock_graph = _make_service()
        mock_graph.get.side_effect = GraphApiError(403, "Forbidden")
        status = service.is_current_user_admin()
        assert status.is_admin is False

    def test_connection_error_downgrades_to_not_admin(self) -> None:
        service, mock_graph = _make_service()
        mock_graph.get.side_effect = URLError("connection reset")
        status = service.is_current_user_admin()
        assert status.is_admin is False
        assert status.roles == []

    def test_auth_error_propagates(self) -> None:
        service, mock_graph = _make_service()
        mock_graph.get.side_effect = AuthError("Not authenticated. Call authenticate() first.")
        with pytest.raises(AuthError):
            service.is_current_user_admin()


# ---------------------------------------------------------------------------
# get_all_users tests
# ---------------------------------------------------------------------------


class TestGetAllUsers:
    def test_follows_three_pages(self) -> None:
        service, mock_graph = _make_service()
        mock_graph.get.side_effect = [
            _users_page(0, 999, True),
            _users_page(1, 999, True),
            _users_page(2, 999, False),
        ]

        users = service.get_all_users()

        assert len(users) == 2997
        assert mock_graph.get.call_count == 3
        first_path = mock_graph.get.call_args_list[0].args[0]
        assert first_path.startswith("/users?$select=id,displayName")
        assert first_path.endswith("&$top=999")
        assert mock_graph.get.call_args_list[1].args[0] == "/users?$skiptoken=1"

    def test_stops_after_page_cap(self) -> None:
        service, mock_graph = _make_service()
        pages = [_users_page(i, 2, i < 50) for i in range(51)]
        mock_graph.get.side_effect = pages

        users = service.get_all_users()

        assert mock_graph.get.call_count == 50
        assert len(users) == 100

    def test_graph_error_returns_empty_list(self) -> None:
        service, mock_graph = _make_service()
        mock_graph.get.side_effect = [
            _users_page(0, 3, True),
            GraphApiError(403, "Insufficient privileges"),
        ]
        assert service.get_all_users() == []

    def test_connection_error_returns_empty_list(self) -> None:
        service, mock_graph = _make_service()
        mock_graph.get.side_effect = URLError("connection reset")
        assert service.get_all_users() == []

    def test_foreign_next_link_returns_empty_list(self) -> None:
        service, mock_graph = _make_service()
        mock_graph.get.return_value = {
            "value": [],
            "@odata.nextLink": "https://example.com/users?$skiptoken=1",
        }
        assert service.get_all_users() == []
        assert mock_graph.get.call_count == 1


# ---------------------------------------------------------------------------
# get_admin_users tests
# ---------------------------------------------------------------------------


class TestGetAdminUsers:
    def test_lists_global_admin_user_members(self) -> None:
        service, mock_graph = _make_service()
        mock_graph.get.side_effect = [
            {"value": [{"id": "role-1", "roleTemplateId": GLOBAL_ADMIN_ROLE_TEMPLATE_ID}]},
            {
                "value": [
                    {
                        "@odata.type": "#microsoft.graph.user",
                        "id": "u1",
                        "displayName": "Admin One",
                        "userPrincipalName": "admin@x",
                    },
                    {"@odata.type": "#microsoft.graph.servicePrincipal", "id": "sp1"},
                ]
            },
        ]

        admins = service.get_admin_users()

        assert mock_graph.get.call_args_list[1].args[0] == "/directoryRoles/role-1/members"
        assert len(admins) == 1
        assert admins[0].mail == "admin@x"
        assert admins[0].roles == ["Global Administrator"]

    def test_no_global_admin_role(self) -> None:
        service, mock_graph = _make_service()
        mock_graph.get.return_value = {"value": []}
        assert service.get_admin_users() == []

    def test_graph_error_returns_empty_list(self) -> None:
        service, mock_graph = _make_service()
        mock_graph.get.side_effect = GraphApiError(403, "Forbidden")
        assert service.get_admin_users() == []

    def test_invalid_json_returns_empty_list(self) -> None:
        service, mock_graph = _make_service()
        mock_graph.get.side_effect = ValueError("Expecting value")
        assert service.get_admin_users() == []


# ---------------------------------------------------------------------------
# get_current_user_with_admin_status tests
# ---------------------------------------------------------------------------


class TestCurrentUserWithAdminStatus:
    def test_joins_profile_and_admin_status(self) -> None:
        service, mock_graph = _make_service()

        def _get(path: str) -> dict:  # type: ignore[type-arg]
            if path == "/me":
                return {"id": "me-1", "displayName": "Jane Doe", "userPrincipalName": "j@x"}
            return {
                "value": [
                    {
                        "@odata.type": "#microsoft.graph.directoryRole",
                        "roleTemplateId": GLOBAL_ADMIN_ROLE_TEMPLATE_ID,
                        "displayName": "Global Administrator",
                    }
                ]
            }

        mock_graph.get.side_effect = _get

        status = service.get_current_user_with_admin_status()

        assert status.user.display_name == "Jane Doe"
        assert status.is_admin is True
        assert status.roles == ["Global Administrator"]

    def test_profile_error_propagates(self) -> None:
        service, mock_graph = _make_service()

        def _get(path: str) -> dict:  # type: ignore[type-arg]
            if path == "/me":
                raise GraphApiError(401, "InvalidAuthenticationToken")
            return {"value": []}

        mock_graph.get.side_effect = _get

        with pytest.raises(GraphApiError):
            service.get_current_user_with_admin_status()
