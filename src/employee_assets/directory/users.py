"""Directory lookups: signed-in user, admin roles and organization users."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import TYPE_CHECKING

from employee_assets.graph.client import relative_path
from employee_assets.graph.models import (
    FIELD_DISPLAY_NAME,
    FIELD_ID,
    FIELD_MAIL,
    FIELD_ROLE_TEMPLATE_ID,
    FIELD_USER_PRINCIPAL_NAME,
    ODATA_NEXT_LINK,
    ODATA_TYPE,
    ODATA_TYPE_DIRECTORY_ROLE,
    ODATA_TYPE_USER,
    ODATA_VALUE,
    AdminStatus,
    AdminUser,
    CurrentUserStatus,
    UserProfile,
)
from employee_assets.graph.session import AuthError

if TYPE_CHECKING:
    from employee_assets.graph.client import GraphClient

logger = logging.getLogger(__name__)

GLOBAL_ADMIN_ROLE_TEMPLATE_ID = "62e90394-69f5-4237-9190-012177145e10"

# Directory role template IDs that count as administrator.
ADMIN_ROLE_TEMPLATE_IDS = frozenset(
    {
        GLOBAL_ADMIN_ROLE_TEMPLATE_ID,  # Global Administrator
        "f28a1f50-f6e7-4571-818b-6a12f2af6b6c",  # SharePoint Administrator
        "b0f54661-2d74-4c50-afa3-1ec803f12efe",  # Exchange Administrator
        "29232cdf-9323-42fd-ade2-1d097af3e4de",  # User Administrator
    }
)

USERS_PAGE_SIZE = 999
USERS_SELECT = "id,displayName,userPrincipalName,mail,jobTitle,officeLocation,department"
DEFAULT_MAX_PAGES = 50


class DirectoryService:
    """Reads users and directory roles for the signed-in tenant.

    The admin and user listing calls are best effort: any failure (most
    often a 403 for missing Directory.Read permissions, but also connection
    errors) is logged and reported as "not admin" or an empty list.
    """

    def __init__(self, graph_client: GraphClient, max_pages: int = DEFAULT_MAX_PAGES) -> None:
        """Initialise the directory service.

        Args:
            graph_client: Authenticated GraphClient instance.
            max_pages: Max @odata.nextLink pages followed by get_all_users().
        """
        self._graph = graph_client
        self._max_pages = max_pages

    def get_current_user(self) -> UserProfile:
        """Return the signed-in user's profile from /me."""
        return UserProfile.from_graph(self._graph.get("/me"))

    def is_current_user_admin(self) -> AdminStatus:
        """Check the signed-in user's directory role memberships."""
        try:
            response = self._graph.get("/me/memberOf")
        except AuthError:
            raise
        except Exception as exc:
            logger.warning("[is_current_user_admin] role lookup failed; error:%s", exc)
            return AdminStatus(is_admin=False)

        roles = [
            entry.get(FIELD_DISPLAY_NAME) or "Unknown Role"
            for entry in response.get(ODATA_VALUE, [])
            if entry.get(ODATA_TYPE) == ODATA_TYPE_DIRECTORY_ROLE
            and entry.get(FIELD_ROLE_TEMPLATE_ID) in ADMIN_ROLE_TEMPLATE_IDS
        ]
        return AdminStatus(is_admin=bool(roles), roles=roles)

    def get_all_users(self) -> list[UserProfile]:
        """List every user in the organization.

        Follows @odata.nextLink pagination and stops after ``max_pages``
        pages even if more are available.

        Returns:
            All users fetched, or an empty list if Graph refuses the call.
        """
        users: list[UserProfile] = []
        next_path: str | None = f"/users?$select={USERS_SELECT}&$top={USERS_PAGE_SIZE}"
        pages = 0
        try:
            while next_path is not None:
                response = self._graph.get(next_path)
                users.extend(UserProfile.from_graph(raw) for raw in response.get(ODATA_VALUE, []))
                pages += 1
                next_link = response.get(ODATA_NEXT_LINK)
                if next_link and pages >= self._max_pages:
                    logger.warning(
                        "[get_all_users] page limit reached; pages:%d;users:%d", pages, len(users)
                    )
                    break
                next_path = relative_path(next_link) if next_link else None
        except AuthError:
            raise
        except Exception as exc:
            logger.warning("[get_all_users] user listing failed; error:%s", exc)
            return []
        return users

    def get_admin_users(self) -> list[AdminUser]:
        """List the members of the Global Administrator role."""
        try:
            roles = self._graph.get("/directoryRoles").get(ODATA_VALUE, [])
            global_admin = next(
                (
                    r
                    for r in roles
                    if r.get(FIELD_ROLE_TEMPLATE_ID) == GLOBAL_ADMIN_ROLE_TEMPLATE_ID
                ),
                None,
            )
            if global_admin is None:
                return []
            members = self._graph.get(f"/directoryRoles/{global_admin[FIELD_ID]}/members")
        except AuthError:
            raise
        except Exception as exc:
            logger.warning("[get_admin_users] admin listing failed; error:%s", exc)
            return []

        admins: list[AdminUser] = []
        for member in members.get(ODATA_VALUE, []):
            if member.get(ODATA_TYPE) != ODATA_TYPE_USER:
                continue
            upn = member.get(FIELD_USER_PRINCIPAL_NAME) or ""
            admins.append(
                AdminUser(
                    id=member.get(FIELD_ID, ""),
                    display_name=member.get(FIELD_DISPLAY_NAME) or "",
                    user_principal_name=upn,
                    mail=member.get(FIELD_MAIL) or upn,
                    roles=["Global Administrator"],
                )
            )
        return admins

    def get_current_user_with_admin_status(self) -> CurrentUserStatus:
        """Fetch the profile and admin status concurrently and join them."""
        with ThreadPoolExecutor(max_workers=2) as pool:
            user_future = pool.submit(self.get_current_user)
            admin_future = pool.submit(self.is_current_user_admin)
            user = user_future.result()
            status = admin_future.result()
        return CurrentUserStatus(user=user, is_admin=status.is_admin, roles=status.roles)
