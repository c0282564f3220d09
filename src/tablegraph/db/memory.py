import logging
import re
from dataclasses import dataclass, field
from typing import Any

from tablegraph.config import MAX_ENGINE_INDEXES, Settings
from tablegraph.core.keys import build_item
from tablegraph.models import ParsedModel, QueryParams

logger = logging.getLogger(__name__)

_EQUALS = re.compile(r"^\s*([\w#.-]+)\s*=\s*(:\w+)\s*$")
_BEGINS_WITH = re.compile(r"^\s*begins_with\(\s*([\w#.-]+)\s*,\s*(:\w+)\s*\)\s*$")
_AND = re.compile(r"\s+AND\s+", re.IGNORECASE)


@dataclass(frozen=True)
class InMemoryCondition:
    attribute: str
    operator: str
    value: Any

    def matches(self, item: dict[str, Any]) -> bool:
        actual = item.get(self.attribute)
        if actual is None:
            return False
        if self.operator == "begins_with":
            return str(actual).startswith(str(self.value))
        return actual == self.value


@dataclass(frozen=True)
class InMemoryCall:
    operation: str
    table: str
    payload: Any = None


@dataclass
class InMemoryTable:
    name: str
    items: list[dict[str, Any]] = field(default_factory=list)


def parse_condition(expression: str, values: dict[str, Any]) -> list[InMemoryCondition]:
    """Parse ``a = :v`` and ``begins_with(a, :v)`` clauses joined by ``AND``."""
    conditions: list[InMemoryCondition] = []
    for clause in _AND.split(expression.strip()):
        match = _EQUALS.match(clause)
        operator = "="
        if match is None:
            match = _BEGINS_WITH.match(clause)
            operator = "begins_with"
        if match is None:
            raise ValueError(f"Unsupported condition: {clause!r}")
        attribute, placeholder = match.groups()
        if placeholder not in values:
            raise ValueError(f"Missing value for {placeholder} in condition {expression!r}")
        conditions.append(InMemoryCondition(attribute=attribute, operator=operator, value=values[placeholder]))
    return conditions


class InMemoryQueryExecutor:
    """Query executor over plain dict rows, recording every call."""

    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings or Settings()
        self.tables: dict[str, InMemoryTable] = {}
        self.calls: list[InMemoryCall] = []
        self._index_sort_keys = {
            self.settings.index_name(n): self.settings.index_sk_name(n) for n in range(1, MAX_ENGINE_INDEXES + 1)
        }

    def table(self, name: str | None = None) -> InMemoryTable:
        name = name or self.settings.table_name
        if name not in self.tables:
            self.tables[name] = InMemoryTable(name=name)
        return self.tables[name]

    def put_item(self, item: dict[str, Any], table: str | None = None) -> None:
        """Insert or replace a row by its main-table key."""
        rows = self.table(table).items
        key = self._key_of(item)
        for idx, existing in enumerate(rows):
            if self._key_of(existing) == key:
                rows[idx] = dict(item)
                return
        rows.append(dict(item))

    def put_entity(self, model: ParsedModel, data: dict[str, Any], table: str | None = None) -> dict[str, Any]:
        item = build_item(model, data, self.settings)
        self.put_item(item, table)
        return item

    def calls_for(self, operation: str) -> list[InMemoryCall]:
        return [call for call in self.calls if call.operation == operation]

    def reset_calls(self) -> None:
        self.calls.clear()

    async def point_get(self, table: str, key: dict[str, str]) -> dict[str, Any] | None:
        self.calls.append(InMemoryCall("point_get", table, dict(key)))
        return self._find(table, key)

    async def range_query(self, table: str, params: QueryParams) -> list[dict[str, Any]]:
        self.calls.append(InMemoryCall("range_query", table, params))
        conditions = parse_condition(params.key_condition, params.key_values)
        if params.filter_expression:
            conditions += parse_condition(params.filter_expression, params.filter_values or {})

        rows = [dict(item) for item in self.table(table).items if all(c.matches(item) for c in conditions)]
        sort_key = self._index_sort_keys.get(params.index_name or "", self.settings.sort_key_name)
        rows.sort(key=lambda item: str(item.get(sort_key, "")), reverse=not params.scan_forward)
        if params.limit is not None:
            rows = rows[: params.limit]
        logger.debug("Range query on %s matched %d row(s)", params.index_name or table, len(rows))
        return rows

    async def batch_get(self, table: str, keys: list[dict[str, str]]) -> list[dict[str, Any]]:
        self.calls.append(InMemoryCall("batch_get", table, [dict(k) for k in keys]))
        found = (self._find(table, key) for key in keys)
        return [item for item in found if item is not None]

    def _key_of(self, item: dict[str, Any]) -> tuple[Any, Any]:
        return item.get(self.settings.partition_key_name), item.get(self.settings.sort_key_name)

    def _find(self, table: str, key: dict[str, str]) -> dict[str, Any] | None:
        for item in self.table(table).items:
            if all(item.get(name) == value for name, value in key.items()):
                return dict(item)
        return None
