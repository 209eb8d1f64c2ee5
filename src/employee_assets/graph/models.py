"""Microsoft Graph JSON field names and directory data models."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

# Graph API JSON field names
FIELD_ID = "id"
FIELD_NAME = "name"
FIELD_DISPLAY_NAME = "displayName"
FIELD_FIELDS = "fields"
FIELD_USER_PRINCIPAL_NAME = "userPrincipalName"
FIELD_MAIL = "mail"
FIELD_JOB_TITLE = "jobTitle"
FIELD_OFFICE_LOCATION = "officeLocation"
FIELD_DEPARTMENT = "department"
FIELD_ROLE_TEMPLATE_ID = "roleTemplateId"

# Key under which flattened list records carry the list item id
RECORD_ID = "Id"

# OData response keys
ODATA_NEXT_LINK = "@odata.nextLink"
ODATA_TYPE = "@odata.type"
ODATA_VALUE = "value"

# OData entity types
ODATA_TYPE_DIRECTORY_ROLE = "#microsoft.graph.directoryRole"
ODATA_TYPE_USER = "#microsoft.graph.user"

# Flattened list item: field name -> value; always carries RECORD_ID.
Record = dict[str, Any]


@dataclass
class UserProfile:
    """A directory user as returned by /me or /users."""

    id: str
    display_name: str
    user_principal_name: str
    mail: str
    job_title: str | None = None
    office_location: str | None = None
    department: str | None = None

    @classmethod
    def from_graph(cls, raw: dict[str, Any]) -> UserProfile:
        """Map a raw Graph user dict; mail falls back to the UPN."""
        upn = raw.get(FIELD_USER_PRINCIPAL_NAME) or ""
        return cls(
            id=raw.get(FIELD_ID, ""),
            display_name=raw.get(FIELD_DISPLAY_NAME) or "",
            user_principal_name=upn,
            mail=raw.get(FIELD_MAIL) or upn,
            job_title=raw.get(FIELD_JOB_TITLE),
            office_location=raw.get(FIELD_OFFICE_LOCATION),
            department=raw.get(FIELD_DEPARTMENT),
        )


@dataclass
class AdminStatus:
    """Whether the signed-in user holds an administrator directory role."""

    is_admin: bool
    roles: list[str] = field(default_factory=list)


@dataclass
class AdminUser:
    """A member of an administrator directory role."""

    id: str
    display_name: str
    user_principal_name: str
    mail: str
    roles: list[str] = field(default_factory=list)


@dataclass
class CurrentUserStatus:
    """The signed-in user's profile joined with their admin status."""

    user: UserProfile
    is_admin: bool
    roles: list[str] = field(default_factory=list)
