"""Eager loading of (nested) relationships for one or many instances."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable, Sequence
from typing import Any

from tablegraph.core.keys import entity_key, split_key_id, to_instance
from tablegraph.core.ports.executor import QueryExecutor
from tablegraph.core.resolver import RelationshipCache, children_query, resolve_relationship
from tablegraph.models import EagerLoadSpec, ParsedModel, Registry, Relationship

logger = logging.getLogger(__name__)


def parse_eager_specs(paths: Iterable[str]) -> list[EagerLoadSpec]:
    """Turn dotted paths like ``"Post.Comment"`` into a spec tree, merging shared prefixes."""
    roots: list[EagerLoadSpec] = []
    for path in paths:
        level = roots
        for part in (p.strip() for p in path.split(".")):
            if not part:
                continue
            spec = next((s for s in level if s.relationship == part), None)
            if spec is None:
                spec = EagerLoadSpec(relationship=part)
                level.append(spec)
            level = spec.nested
    return roots


async def eager_load(
    model: ParsedModel,
    instance: dict[str, Any],
    specs: Sequence[EagerLoadSpec],
    registry: Registry,
    executor: QueryExecutor,
    cache: RelationshipCache | None = None,
) -> dict[str, Any]:
    """Return a copy of ``instance`` with every requested relationship merged in under its name."""
    cache = cache if cache is not None else RelationshipCache()
    result = dict(instance)
    for spec in specs:
        resolved = await resolve_relationship(model, instance, spec.relationship, registry, executor, cache)
        data = resolved.data
        if spec.nested and data is not None:
            related = registry.models[model.relationship(spec.relationship).related_model]
            if isinstance(data, list):
                data = await eager_load_many(related, data, spec.nested, registry, executor, cache)
            else:
                data = await eager_load(related, data, spec.nested, registry, executor, cache)
        result[spec.relationship] = data
    return result


async def eager_load_many(
    model: ParsedModel,
    instances: Sequence[dict[str, Any]],
    specs: Sequence[EagerLoadSpec],
    registry: Registry,
    executor: QueryExecutor,
    cache: RelationshipCache | None = None,
) -> list[dict[str, Any]]:
    """Eager load ``specs`` for sibling instances.

    A prefetch pass fills ``cache`` first so the per-instance resolution that
    follows is mostly cache hits.
    """
    if not instances:
        return []
    cache = cache if cache is not None else RelationshipCache()
    for spec in specs:
        rel = model.relationship(spec.relationship)
        if rel is None or rel.dangling or rel.related_model not in registry.models:
            continue
        if rel.kind == "belongsTo":
            await _prefetch_belongs_to(model, rel, instances, registry, executor, cache)
        elif rel.kind == "hasMany":
            await _prefetch_has_many(model, rel, instances, registry, executor, cache)

    return list(
        await asyncio.gather(
            *(eager_load(model, instance, specs, registry, executor, cache) for instance in instances)
        )
    )


def _pending(
    model: ParsedModel, rel: Relationship, instances: Sequence[dict[str, Any]], cache: RelationshipCache
) -> list[tuple[str, dict[str, Any]]]:
    pending = []
    for instance in instances:
        key = RelationshipCache.cache_key(model.name, instance.get(model.primary_key), rel.name)
        if not cache.has(key):
            pending.append((key, instance))
    return pending


async def _prefetch_belongs_to(
    model: ParsedModel,
    rel: Relationship,
    instances: Sequence[dict[str, Any]],
    registry: Registry,
    executor: QueryExecutor,
    cache: RelationshipCache,
) -> None:
    settings = registry.settings
    related = registry.models[rel.related_model]
    pending = [(key, inst) for key, inst in _pending(model, rel, instances, cache) if inst.get(rel.foreign_key)]
    parent_ids = list(dict.fromkeys(str(inst[rel.foreign_key]) for _, inst in pending))
    if not parent_ids:
        return

    logger.debug("Prefetching %d %s parent(s) for %d %s(s)", len(parent_ids), related.name, len(pending), model.name)
    items = await executor.batch_get(
        settings.table_name, [entity_key(related.entity_type, pid, settings) for pid in parent_ids]
    )
    parents = {
        split_key_id(str(item.get(settings.partition_key_name, "")), settings.key_delimiter): to_instance(item, settings)
        for item in items
    }
    for key, instance in pending:
        parent = parents.get(str(instance[rel.foreign_key]))
        if parent is not None:
            cache.set(key, parent)


async def _prefetch_has_many(
    model: ParsedModel,
    rel: Relationship,
    instances: Sequence[dict[str, Any]],
    registry: Registry,
    executor: QueryExecutor,
    cache: RelationshipCache,
) -> None:
    settings = registry.settings
    related = registry.models[rel.related_model]
    pending = _pending(model, rel, instances, cache)
    if not pending:
        return

    logger.debug("Prefetching %s children for %d %s(s)", related.name, len(pending), model.name)
    results = await asyncio.gather(
        *(
            executor.range_query(
                settings.table_name, children_query(registry, model, related, instance.get(rel.local_key))
            )
            for _, instance in pending
        )
    )
    for (key, _), items in zip(pending, results):
        cache.set(key, [to_instance(item, settings) for item in items])
