"""Secondary index assignment with index overloading."""

import logging

from tablegraph.config import Settings
from tablegraph.models import (
    IndexAccessPattern,
    IndexDefinition,
    IndexKeyTemplate,
    IndexOptimization,
    IndexUsage,
    LoadEstimate,
    ParsedModel,
    Registry,
    RelationshipKind,
)

logger = logging.getLogger(__name__)

MAX_PATTERNS_PER_INDEX = 5
_ASSIGNMENT_ORDER: tuple[RelationshipKind, ...] = ("belongsTo", "belongsToMany")

_DESCRIPTIONS: dict[RelationshipKind, str] = {
    "belongsTo": "Get all {model}s belonging to a {related}",
    "belongsToMany": "Get all {model}s associated with a {related} (many-to-many)",
}


def estimate_load(pattern_count: int) -> LoadEstimate:
    if pattern_count > 3:
        return "high"
    if pattern_count > 1:
        return "medium"
    return "low"


def find_consolidatable_index(pattern: IndexAccessPattern, slots: dict[int, list[IndexAccessPattern]]) -> int | None:
    """Return an occupied slot that ``pattern`` can share, if any.

    A slot is shareable while it has room, none of its patterns uses the same
    partition-key prefix, and none of them belongs to the same model (a row
    carries a single key pair per index).
    """
    for slot, attached in sorted(slots.items()):
        if not attached or len(attached) >= MAX_PATTERNS_PER_INDEX:
            continue
        if any(p.type == "unique_attribute" for p in attached):
            continue
        if any(p.prefix == pattern.prefix or p.model_name == pattern.model_name for p in attached):
            continue
        return slot
    return None


def _next_free_index(slots: dict[int, list[IndexAccessPattern]], max_index_count: int) -> int | None:
    for slot in range(1, max_index_count + 1):
        if slot not in slots:
            return slot
    return None


def _attach(model: ParsedModel, slot: int, template: IndexKeyTemplate) -> None:
    model.key_pattern.indexes.setdefault(slot, template)


def _warn(registry: Registry, message: str) -> None:
    registry.warnings.append(message)
    logger.warning(message)


def assign_indexes(registry: Registry) -> None:
    """Assign index slots to relationships, then to unique attributes.

    Runs once per compilation in declaration order. Anything that does not
    fit in ``max_index_count`` slots stays unassigned and gets a warning.
    """
    settings = registry.settings
    max_indexes = settings.max_index_count
    slots: dict[int, list[IndexAccessPattern]] = {}

    for kind in _ASSIGNMENT_ORDER:
        for model in registry.models.values():
            for rel in model.relationships:
                if rel.kind != kind or rel.dangling or not rel.requires_index or rel.index_key is None:
                    continue
                pattern = IndexAccessPattern(
                    model_name=model.name,
                    source=f"{kind}({rel.related_model})",
                    type="relationship",
                    pk_pattern=rel.index_key.pk,
                    sk_pattern=rel.index_key.sk,
                    description=_DESCRIPTIONS[kind].format(model=model.name, related=rel.related_model),
                )
                slot = find_consolidatable_index(pattern, slots)
                if slot is None:
                    slot = _next_free_index(slots, max_indexes)
                if slot is None:
                    _warn(
                        registry,
                        f"Cannot assign index for {model.name}.{kind}({rel.related_model}) - "
                        f"exceeded max index count of {max_indexes}",
                    )
                    continue
                slots.setdefault(slot, []).append(pattern)
                rel.gsi_index = slot
                registry.index_assignments[f"{model.name}:{rel.name}"] = slot
                _attach(model, slot, rel.index_key)

    # Unique lookups always get a dedicated slot.
    delimiter = settings.key_delimiter
    for model in registry.models.values():
        for attr in model.attributes:
            if not attr.unique:
                continue
            slot = _next_free_index(slots, max_indexes)
            if slot is None:
                _warn(
                    registry,
                    f"Cannot assign index for unique attribute {model.name}.{attr.name} - "
                    f"exceeded max index count of {max_indexes}",
                )
                continue
            template = IndexKeyTemplate(
                pk=f"{attr.name.upper()}{delimiter}{{{attr.name}}}",
                sk=f"{model.entity_type}{delimiter}{{{model.primary_key}}}",
            )
            slots[slot] = [
                IndexAccessPattern(
                    model_name=model.name,
                    source=f"unique:{attr.name}",
                    type="unique_attribute",
                    pk_pattern=template.pk,
                    sk_pattern=template.sk,
                    description=f"Get {model.name} by unique {attr.name}",
                )
            ]
            registry.index_assignments[f"{model.name}:unique:{attr.name}"] = slot
            _attach(model, slot, template)

    registry.index_definitions = []
    registry.index_usages = []
    for slot, patterns in sorted(slots.items()):
        registry.index_definitions.append(
            IndexDefinition(
                name=settings.index_name(slot),
                partition_key=settings.index_pk_name(slot),
                sort_key=settings.index_sk_name(slot),
            )
        )
        registry.index_usages.append(
            IndexUsage(
                index=slot,
                name=settings.index_name(slot),
                access_patterns=patterns,
                overloaded=len(patterns) > 1,
                estimated_load=estimate_load(len(patterns)),
            )
        )


def suggest_index_optimizations(usages: list[IndexUsage], settings: Settings) -> list[IndexOptimization]:
    optimizations: list[IndexOptimization] = []

    single = [u for u in usages if len(u.access_patterns) == 1]
    if len(single) >= 2:
        optimizations.append(
            IndexOptimization(
                type="consolidate",
                description=(
                    f"Indexes {', '.join(u.name for u in single)} each have only one access pattern "
                    "and could potentially be consolidated"
                ),
                affected_indexes=[u.index for u in single],
                benefit="Reduce index count and associated costs",
            )
        )

    for usage in usages:
        if len(usage.access_patterns) > MAX_PATTERNS_PER_INDEX:
            optimizations.append(
                IndexOptimization(
                    type="split",
                    description=(
                        f"{usage.name} has {len(usage.access_patterns)} access patterns "
                        "which may cause hot partition issues"
                    ),
                    affected_indexes=[usage.index],
                    benefit="Reduce risk of throttling and improve query performance",
                )
            )

    high = [u for u in usages if u.estimated_load == "high"]
    free = settings.max_index_count - len(usages)
    if free > 0 and high:
        optimizations.append(
            IndexOptimization(
                type="split",
                description=f"You have {free} unused index slots. Consider splitting high-load indexes.",
                affected_indexes=[u.index for u in high],
                benefit="Better load distribution and query performance",
            )
        )

    return optimizations
