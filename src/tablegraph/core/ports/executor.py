from typing import Any, Protocol

from tablegraph.models import QueryParams


class QueryExecutor(Protocol):
    async def point_get(self, table: str, key: dict[str, str]) -> dict[str, Any] | None: ...

    async def range_query(self, table: str, params: QueryParams) -> list[dict[str, Any]]: ...

    async def batch_get(self, table: str, keys: list[dict[str, str]]) -> list[dict[str, Any]]: ...
