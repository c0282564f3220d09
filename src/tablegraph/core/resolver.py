"""Resolve one named relationship of one instance against the compiled design."""

from __future__ import annotations

import logging
from typing import Any

from tablegraph.core.keys import entity_key, split_key_id, to_instance
from tablegraph.core.ports.executor import QueryExecutor
from tablegraph.models import ParsedModel, QueryParams, Registry, Relationship, ResolvedRelationship

logger = logging.getLogger(__name__)

RelatedData = dict[str, Any] | list[dict[str, Any]]


class RelationshipCache:
    """Request-scoped store of already resolved relationship data.

    Create one per logical request; it is not meant to be shared between
    concurrent top-level calls.
    """

    def __init__(self) -> None:
        self._entries: dict[str, RelatedData] = {}

    @staticmethod
    def cache_key(model_name: str, instance_id: Any, relationship_name: str) -> str:
        return f"{model_name}:{instance_id}:{relationship_name}"

    def get(self, key: str) -> RelatedData | None:
        return self._entries.get(key)

    def set(self, key: str, data: RelatedData) -> None:
        self._entries[key] = data

    def has(self, key: str) -> bool:
        return key in self._entries

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


def children_query(registry: Registry, model: ParsedModel, related: ParsedModel, instance_id: Any) -> QueryParams:
    """Range query for rows of ``related`` stored in the partition of ``model``."""
    settings = registry.settings
    d = settings.key_delimiter
    return QueryParams(
        key_condition=f"{settings.partition_key_name} = :pk AND begins_with({settings.sort_key_name}, :sk)",
        key_values={":pk": f"{model.entity_type}{d}{instance_id}", ":sk": f"{related.entity_type}{d}"},
    )


def _count(data: RelatedData | None) -> int | None:
    return len(data) if isinstance(data, list) else None


async def _fetch(
    registry: Registry,
    model: ParsedModel,
    rel: Relationship,
    related: ParsedModel,
    instance: dict[str, Any],
    executor: QueryExecutor,
) -> tuple[bool, RelatedData | None]:
    """Dispatch the storage operation for one relationship; returns ``(loaded, data)``."""
    settings = registry.settings
    table = settings.table_name
    instance_id = instance.get(rel.local_key)

    if rel.kind in ("hasOne", "hasMany"):
        params = children_query(registry, model, related, instance_id)
        if rel.kind == "hasOne":
            params.limit = 1
        logger.debug("Querying %s children of %s %s", related.name, model.name, instance_id)
        items = await executor.range_query(table, params)
        rows = [to_instance(item, settings) for item in items]
        if rel.kind == "hasOne":
            return True, rows[0] if rows else None
        return True, rows

    if rel.kind == "belongsTo":
        foreign_key_value = instance.get(rel.foreign_key)
        if not foreign_key_value:
            return False, None
        logger.debug("Fetching %s %s for %s %s", related.name, foreign_key_value, model.name, instance_id)
        item = await executor.point_get(table, entity_key(related.entity_type, foreign_key_value, settings))
        return True, to_instance(item, settings) if item else None

    # belongsToMany: pivot rows through the assigned index, then one batch lookup
    if rel.gsi_index is None:
        return False, None
    pivot_params = QueryParams(
        index_name=settings.index_name(rel.gsi_index),
        key_condition=f"{settings.index_pk_name(rel.gsi_index)} = :pk",
        key_values={":pk": f"{model.entity_type}{settings.key_delimiter}{instance_id}"},
    )
    logger.debug("Querying %s pivot rows of %s %s", rel.pivot_entity, model.name, instance_id)
    pivots = await executor.range_query(table, pivot_params)
    related_prefix = f"{related.entity_type}{settings.key_delimiter}"
    related_ids: list[str] = []
    for pivot in pivots:
        sort_key = str(pivot.get(settings.sort_key_name, ""))
        # overloaded index: rows of other patterns share the partition value
        if not sort_key.startswith(related_prefix):
            continue
        related_id = split_key_id(sort_key, settings.key_delimiter)
        if related_id and related_id not in related_ids:
            related_ids.append(related_id)
    if not related_ids:
        return True, []
    items = await executor.batch_get(table, [entity_key(related.entity_type, rid, settings) for rid in related_ids])
    return True, [to_instance(item, settings) for item in items]


async def resolve_relationship(
    model: ParsedModel,
    instance: dict[str, Any],
    relationship_name: str,
    registry: Registry,
    executor: QueryExecutor,
    cache: RelationshipCache | None = None,
) -> ResolvedRelationship:
    """Resolve ``relationship_name`` for ``instance``, consulting ``cache`` first.

    Unknown relationships or related models come back with ``loaded=False``
    instead of raising. Executor errors propagate.
    """
    rel = model.relationship(relationship_name)
    if rel is None:
        return ResolvedRelationship(name=relationship_name, loaded=False)

    related = registry.models.get(rel.related_model)
    if related is None or rel.dangling:
        return ResolvedRelationship(name=relationship_name, kind=rel.kind, loaded=False)

    key = RelationshipCache.cache_key(model.name, instance.get(model.primary_key), relationship_name)
    if cache is not None and cache.has(key):
        cached = cache.get(key)
        return ResolvedRelationship(
            name=relationship_name, kind=rel.kind, data=cached, loaded=True, count=_count(cached)
        )

    loaded, data = await _fetch(registry, model, rel, related, instance, executor)

    # A legitimately empty result is not cached, so it cannot pass for a hit.
    if cache is not None and data is not None:
        cache.set(key, data)

    return ResolvedRelationship(name=relationship_name, kind=rel.kind, data=data, loaded=loaded, count=_count(data))


async def relationship_count(
    model: ParsedModel,
    instance: dict[str, Any],
    relationship_name: str,
    registry: Registry,
    executor: QueryExecutor,
) -> int:
    rel = model.relationship(relationship_name)
    if rel is None or rel.kind not in ("hasOne", "hasMany"):
        return 0
    related = registry.models.get(rel.related_model)
    if related is None:
        return 0
    params = children_query(registry, model, related, instance.get(rel.local_key))
    items = await executor.range_query(registry.settings.table_name, params)
    return len(items)


async def has_relationship(
    model: ParsedModel,
    instance: dict[str, Any],
    relationship_name: str,
    registry: Registry,
    executor: QueryExecutor,
) -> bool:
    return await relationship_count(model, instance, relationship_name, registry, executor) > 0
