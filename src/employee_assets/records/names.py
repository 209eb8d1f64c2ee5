"""Display-name heuristics for loosely typed SharePoint list items.

The lists these records come from have no fixed schema, so names are
guessed from field names and values. This is best effort: the scan can
pick the wrong field when a list carries other free-text columns.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from typing import Any

from employee_assets.config import GUID_PATTERN

# Employee codes (e.g. "HPH 0142") look like text but are never names.
EMPLOYEE_CODE_PATTERN = re.compile(r"^HPH\s?\d+")

# Choice values and list chrome that show up in string columns.
SENTINEL_VALUES = frozenset(
    {"Assigned", "Available", "Item", "ContentType", "Edit", "Attachments"}
)

# Substrings of column names that never hold a person's name.
NON_NAME_FIELD_PARTS = (
    "cardstatus",
    "contenttype",
    "accesscardno",
    "assets",
    "empid",
    "emp_id",
    "employeeid",
    "lookupid",
    "id",
    "odata",
    "author",
    "editor",
)

# Column spellings used for the employee code across lists.
EMPLOYEE_CODE_FIELDS = ("EmpID", "EmpId", "EmpID0", "field_1")

_DIGITS = re.compile(r"^\d+$")
_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}")
_LETTERS_AND_SPACES = re.compile(r"^[A-Za-z\s]+$")
_LETTERS_SPACES_DOTS = re.compile(r"^[A-Za-z\s.]+$")


def is_guid(value: str) -> bool:
    return bool(GUID_PATTERN.match(value))


def first_name_value(mapping: Mapping[str, Any], keys: Iterable[str]) -> str | None:
    """Return the first non-empty string value found under any of ``keys``."""
    for key in keys:
        value = mapping.get(key)
        if isinstance(value, str) and value.strip():
            return value
    return None


def _looks_like_person_name(value: str) -> bool:
    if _LETTERS_AND_SPACES.match(value) and len(value) > 5:
        return True
    return " " in value and len(value) > 8 and bool(_LETTERS_SPACES_DOTS.match(value))


def extract_person_name(
    fields: Mapping[str, Any],
    code_pattern: re.Pattern[str] = EMPLOYEE_CODE_PATTERN,
) -> str | None:
    """Guess the person's name held by a list item's fields.

    Order of preference: ``Title``; an ``Employee`` person column (mapping
    with ``displayName``, or plain text); then the first string column
    whose name and value pass the non-name filters and whose value looks
    like a personal name.

    Args:
        fields: Flattened fields of the list item.
        code_pattern: Pattern matching employee codes, which are skipped.

    Returns:
        The guessed name, or None.
    """
    code = next((fields[f] for f in EMPLOYEE_CODE_FIELDS if fields.get(f)), None)

    def rejected(value: str) -> bool:
        return bool(code_pattern.match(value)) or value == code or value in SENTINEL_VALUES

    title = fields.get("Title")
    if title is not None:
        text = str(title)
        if text.strip() and not rejected(text):
            return text

    employee = fields.get("Employee")
    if isinstance(employee, Mapping) and employee.get("displayName"):
        return str(employee["displayName"])
    if isinstance(employee, str) and employee.strip() and not rejected(employee):
        return employee

    for field_name, value in fields.items():
        if not isinstance(value, str) or not value.strip():
            continue
        lowered = field_name.lower()
        if any(part in lowered for part in NON_NAME_FIELD_PARTS):
            continue
        if rejected(value):
            continue
        if _DIGITS.match(value) or len(value) < 3 or _ISO_DATE.match(value):
            continue
        if _looks_like_person_name(value):
            return value

    return None
