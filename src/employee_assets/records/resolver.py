"""Lookup column resolution: turns lookup IDs into display names.

Each list kind that carries a lookup column gets a LookupRule describing
its column names. Names are found by an ordered chain of strategies,
first success wins: data inlined in the fetched records, then a
caller-supplied list of related records, then one Graph request per ID.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Protocol

from employee_assets.graph.client import GraphApiError
from employee_assets.graph.locator import NotFoundError
from employee_assets.graph.models import (
    FIELD_DISPLAY_NAME,
    FIELD_FIELDS,
    FIELD_MAIL,
    FIELD_USER_PRINCIPAL_NAME,
    RECORD_ID,
    Record,
)
from employee_assets.graph.session import AuthError
from employee_assets.records.names import (
    EMPLOYEE_CODE_PATTERN,
    extract_person_name,
    first_name_value,
    is_guid,
)

if TYPE_CHECKING:
    from employee_assets.graph.client import GraphClient
    from employee_assets.graph.locator import ResourceLocator

logger = logging.getLogger(__name__)

LookupId = int | str


class IdKind(Enum):
    """Shape of the IDs a lookup column stores."""

    LIST_ITEM = "list_item"  # positive integer SharePoint item ID
    DIRECTORY_USER = "directory_user"  # Entra user object ID (GUID)


@dataclass(frozen=True)
class LookupRule:
    """Column conventions for one list's lookup column.

    Attributes:
        resource_name: List the rule applies to.
        source_field: Column holding the lookup value (inline mapping or text).
        lookup_id_field: Column holding the raw lookup ID.
        target_field: Column receiving the resolved name; ``<target>Name``
            receives it as well.
        inline_name_keys: Keys tried, in order, on an inline lookup mapping.
        id_kind: Shape of the IDs in ``lookup_id_field``.
        cache_name_keys: Keys tried on a related record; when empty the
            person-name heuristic is used instead.
        remote_resources: Lists searched, in order, for a list item ID.
        embedded_marker_field: Column marking a remote item whose own
            ``source_field`` holds the name (e.g. an access card row).
        rejects_codes: Whether inline names matching the employee code
            pattern are discarded.
    """

    resource_name: str
    source_field: str
    lookup_id_field: str
    target_field: str
    inline_name_keys: tuple[str, ...]
    id_kind: IdKind
    cache_name_keys: tuple[str, ...] = ()
    remote_resources: tuple[str, ...] = ()
    embedded_marker_field: str | None = None
    rejects_codes: bool = False

    @property
    def name_field(self) -> str:
        return f"{self.target_field}Name"

    def normalize_id(self, raw: Any) -> LookupId | None:
        """Return the lookup ID in canonical form, or None if unusable."""
        if raw is None:
            return None
        if self.id_kind is IdKind.DIRECTORY_USER:
            return str(raw)
        try:
            value = int(raw)
        except (TypeError, ValueError):
            return None
        return value if value > 0 else None


EMPLOYEE_RULE = LookupRule(
    resource_name="Access Cards",
    source_field="Employee",
    lookup_id_field="EmployeeLookupId",
    target_field="Employee",
    inline_name_keys=("displayName", "LookupValue", "Title", "email"),
    id_kind=IdKind.LIST_ITEM,
    remote_resources=("Employees", "Access Cards"),
    embedded_marker_field="AccessCardNo",
    rejects_codes=True,
)

ASSIGNEE_RULE = LookupRule(
    resource_name="Assets",
    source_field="field_2",
    lookup_id_field="field_2LookupId",
    target_field="Assignee",
    inline_name_keys=("displayName", "Title", "userPrincipalName", "email"),
    id_kind=IdKind.DIRECTORY_USER,
    cache_name_keys=("Employee", "EmployeeName", "Title", "displayName"),
)

DEFAULT_LOOKUP_RULES: tuple[LookupRule, ...] = (EMPLOYEE_RULE, ASSIGNEE_RULE)


def fallback_name(lookup_id: LookupId) -> str:
    """Placeholder shown when no name could be resolved."""
    return f"[ID: {lookup_id}]"


def _as_list_item_id(lookup_id: LookupId) -> int | None:
    try:
        value = int(lookup_id)
    except (TypeError, ValueError):
        return None
    return value if value > 0 else None


def _inline_name(
    rule: LookupRule, value: Mapping[str, Any], code_pattern: re.Pattern[str]
) -> str | None:
    name = first_name_value(value, rule.inline_name_keys)
    if name is None or (rule.rejects_codes and code_pattern.match(name)):
        return None
    return name


class ResolutionStrategy(Protocol):
    """One step in the name resolution chain."""

    def resolve(
        self,
        rule: LookupRule,
        lookup_id: LookupId,
        records: Sequence[Record],
        related: Sequence[Record] | None,
    ) -> str | None: ...


class InlineStrategy:
    """Uses a lookup mapping already expanded into a fetched record."""

    def __init__(self, code_pattern: re.Pattern[str] = EMPLOYEE_CODE_PATTERN) -> None:
        self._code_pattern = code_pattern

    def resolve(
        self,
        rule: LookupRule,
        lookup_id: LookupId,
        records: Sequence[Record],
        related: Sequence[Record] | None,
    ) -> str | None:
        for record in records:
            if rule.normalize_id(record.get(rule.lookup_id_field)) != lookup_id:
                continue
            value = record.get(rule.source_field)
            if isinstance(value, Mapping):
                name = _inline_name(rule, value, self._code_pattern)
                if name:
                    return name
        return None


class CacheStrategy:
    """Matches the ID against related records the caller already holds."""

    def __init__(self, code_pattern: re.Pattern[str] = EMPLOYEE_CODE_PATTERN) -> None:
        self._code_pattern = code_pattern

    def resolve(
        self,
        rule: LookupRule,
        lookup_id: LookupId,
        records: Sequence[Record],
        related: Sequence[Record] | None,
    ) -> str | None:
        if not related:
            return None
        item_id = _as_list_item_id(lookup_id)
        if item_id is None:
            return None

        for candidate in related:
            if _as_list_item_id(candidate.get(RECORD_ID)) != item_id:
                continue
            if rule.cache_name_keys:
                return first_name_value(candidate, rule.cache_name_keys)
            return extract_person_name(candidate, self._code_pattern)
        return None


class RemoteStrategy:
    """Fetches the referenced list item or directory user from Graph."""

    def __init__(
        self,
        graph_client: GraphClient,
        locator: ResourceLocator,
        code_pattern: re.Pattern[str] = EMPLOYEE_CODE_PATTERN,
    ) -> None:
        self._graph = graph_client
        self._locator = locator
        self._code_pattern = code_pattern

    def resolve(
        self,
        rule: LookupRule,
        lookup_id: LookupId,
        records: Sequence[Record],
        related: Sequence[Record] | None,
    ) -> str | None:
        if rule.id_kind is IdKind.DIRECTORY_USER:
            return self._resolve_user(str(lookup_id))
        item_id = _as_list_item_id(lookup_id)
        if item_id is None:
            return None
        return self._resolve_list_item(rule, item_id)

    def _resolve_user(self, user_id: str) -> str | None:
        if not is_guid(user_id):
            return None
        user = self._graph.get(f"/users/{user_id}")
        return first_name_value(
            user, (FIELD_DISPLAY_NAME, FIELD_USER_PRINCIPAL_NAME, FIELD_MAIL)
        )

    def _fetch_item(self, rule: LookupRule, item_id: int) -> dict[str, Any] | None:
        """Try each remote list in turn; the first item found wins."""
        for resource_name in rule.remote_resources:
            try:
                path = self._locator.items_path(resource_name)
                return self._graph.get(f"{path}/{item_id}?$expand=fields")
            except (GraphApiError, NotFoundError) as exc:
                logger.info(
                    "[_fetch_item] lookup item not in list; list:%s;item_id:%d;reason:%s",
                    resource_name,
                    item_id,
                    exc,
                )
        return None

    def _resolve_list_item(self, rule: LookupRule, item_id: int) -> str | None:
        item = self._fetch_item(rule, item_id)
        if item is None:
            return None
        fields = item.get(FIELD_FIELDS) or {}

        if rule.embedded_marker_field and fields.get(rule.embedded_marker_field):
            embedded = fields.get(rule.source_field)
            if isinstance(embedded, Mapping) and embedded.get(FIELD_DISPLAY_NAME):
                return str(embedded[FIELD_DISPLAY_NAME])
            if isinstance(embedded, str) and not self._code_pattern.match(embedded):
                return embedded

        return extract_person_name(fields, self._code_pattern)


class ReferenceResolver:
    """Resolves lookup columns in fetched records, in place."""

    def __init__(
        self,
        strategies: Sequence[ResolutionStrategy],
        rules: Sequence[LookupRule] = DEFAULT_LOOKUP_RULES,
        code_pattern: re.Pattern[str] = EMPLOYEE_CODE_PATTERN,
    ) -> None:
        """Initialise the resolver.

        Args:
            strategies: Resolution chain, tried in order for each ID.
            rules: Lookup rules, matched to lists by name (case-insensitive).
            code_pattern: Pattern for employee codes that are never shown as names.
        """
        self._strategies = list(strategies)
        self._rules = {rule.resource_name.lower(): rule for rule in rules}
        self._code_pattern = code_pattern

    def rule_for(self, resource_name: str) -> LookupRule | None:
        return self._rules.get(resource_name.lower())

    def resolve_references(
        self,
        resource_name: str,
        records: list[Record],
        related: Sequence[Record] | None = None,
    ) -> None:
        """Resolve the lookup column of ``resource_name`` records, if it has one."""
        rule = self.rule_for(resource_name)
        if rule is None or not records:
            return
        self.resolve(rule, records, related)

    def resolve(
        self,
        rule: LookupRule,
        records: list[Record],
        related: Sequence[Record] | None = None,
    ) -> None:
        """Write resolved names into ``records`` according to ``rule``.

        When the first record already carries an expanded lookup mapping,
        names are taken from the mappings alone and records without a usable
        name get the fallback placeholder. Otherwise each distinct lookup ID
        goes through the strategy chain; any failure for one ID is logged and
        that ID's records get the fallback placeholder.

        Args:
            rule: Column conventions for the records' list.
            records: Flattened records, mutated in place.
            related: Optional already-fetched records of the referenced list.
        """
        if not records:
            return

        if isinstance(records[0].get(rule.source_field), Mapping):
            self._apply_inline(rule, records)
            return

        lookup_ids: list[LookupId] = []
        for record in records:
            lookup_id = rule.normalize_id(record.get(rule.lookup_id_field))
            if lookup_id is not None and lookup_id not in lookup_ids:
                lookup_ids.append(lookup_id)
        if not lookup_ids:
            return

        names: dict[LookupId, str] = {}
        for lookup_id in lookup_ids:
            name = self._run_chain(rule, lookup_id, records, related)
            if name:
                names[lookup_id] = name

        logger.info(
            "[resolve] resolved lookups; list:%s;ids:%d;resolved:%d",
            rule.resource_name,
            len(lookup_ids),
            len(names),
        )

        for record in records:
            lookup_id = rule.normalize_id(record.get(rule.lookup_id_field))
            if lookup_id is None:
                continue
            name = names.get(lookup_id)
            if name:
                record[rule.target_field] = name
                record[rule.name_field] = name
            else:
                record[rule.target_field] = fallback_name(lookup_id)

    def _apply_inline(self, rule: LookupRule, records: list[Record]) -> None:
        for record in records:
            value = record.get(rule.source_field)
            name = None
            if isinstance(value, Mapping):
                name = _inline_name(rule, value, self._code_pattern)
            if name:
                record[rule.target_field] = name
                record[rule.name_field] = name
                continue
            lookup_id = rule.normalize_id(record.get(rule.lookup_id_field))
            if lookup_id is not None:
                record[rule.target_field] = fallback_name(lookup_id)

    def _run_chain(
        self,
        rule: LookupRule,
        lookup_id: LookupId,
        records: Sequence[Record],
        related: Sequence[Record] | None,
    ) -> str | None:
        for strategy in self._strategies:
            try:
                name = strategy.resolve(rule, lookup_id, records, related)
            except AuthError:
                raise
            except Exception as exc:
                logger.warning(
                    "[_run_chain] lookup resolution failed; list:%s;id:%s;strategy:%s;error:%s",
                    rule.resource_name,
                    lookup_id,
                    type(strategy).__name__,
                    exc,
                )
                continue
            if name:
                return name
        return None


def default_resolver(graph_client: GraphClient, locator: ResourceLocator) -> ReferenceResolver:
    """Construct a ReferenceResolver with the inline, cache and remote chain."""
    return ReferenceResolver(
        strategies=[
            InlineStrategy(),
            CacheStrategy(),
            RemoteStrategy(graph_client, locator),
        ]
    )
