from __future__ import annotations

from pydantic import BaseModel, Field

from tablegraph.models import AccessPattern, ParsedModel, Registry, Relationship


class AccessPatternMatrixRow(BaseModel):
    entity: str
    get_by_id: bool = True
    list_all: bool = True
    query_by_parent: list[str] = Field(default_factory=list)
    query_children: list[str] = Field(default_factory=list)
    unique_lookups: list[str] = Field(default_factory=list)
    efficient_patterns: int = 0
    inefficient_patterns: int = 0


class AccessPatternReport(BaseModel):
    patterns: list[AccessPattern]
    matrix: list[AccessPatternMatrixRow]
    missing_patterns: list[str]
    suggestions: list[str]


def _scan_filter(registry: Registry, model: ParsedModel, extra: str = "") -> str:
    condition = f"Scan with filter: {registry.settings.entity_type_attribute} = '{model.name}'"
    return f"{condition} AND {extra}" if extra else condition


def _relationship_pattern(registry: Registry, model: ParsedModel, rel: Relationship) -> AccessPattern | None:
    settings = registry.settings
    d = settings.key_delimiter
    related = registry.models[rel.related_model]
    pk, sk = settings.partition_key_name, settings.sort_key_name

    if rel.kind in ("hasMany", "hasOne"):
        plural = "s" if rel.kind == "hasMany" else ""
        return AccessPattern(
            name=f"Get {rel.related_model}{plural} for {model.name}",
            description=f"Query {'all ' if plural else 'the '}{rel.related_model} item{plural} of a {model.name}",
            entity_type=related.entity_type,
            operation="query",
            index="main",
            key_condition=f"{pk} = {model.entity_type}{d}{{{model.primary_key}}} AND {sk} begins_with {related.entity_type}{d}",
            example_pk=f"{model.entity_type}{d}123",
            example_sk=f"{related.entity_type}{d}",
            efficient=True,
            category="relationship_parent_to_child",
        )

    if rel.kind == "belongsTo":
        if rel.gsi_index is None:
            return AccessPattern(
                name=f"Get {model.name}s by {rel.related_model} (scan)",
                description=f"Scan for {model.name} items belonging to a {rel.related_model}; no index assigned",
                entity_type=model.entity_type,
                operation="scan",
                index="scan",
                key_condition=_scan_filter(registry, model, f"{rel.foreign_key} = {{{rel.foreign_key}}}"),
                example_pk="N/A (full table scan)",
                efficient=False,
                category="relationship_child_to_parent",
            )
        return AccessPattern(
            name=f"Get {model.name}s by {rel.related_model}",
            description=f"Query all {model.name} items belonging to a {rel.related_model}",
            entity_type=model.entity_type,
            operation="query",
            index=settings.index_name(rel.gsi_index),
            key_condition=f"{settings.index_pk_name(rel.gsi_index)} = {related.entity_type}{d}{{{related.primary_key}}}",
            example_pk=f"{related.entity_type}{d}456",
            efficient=True,
            category="relationship_child_to_parent",
        )

    # belongsToMany
    if rel.gsi_index is None:
        return AccessPattern(
            name=f"Get {rel.related_model}s for {model.name} (many-to-many, scan)",
            description=f"Scan pivot rows linking a {model.name} to {rel.related_model} items; no index assigned",
            entity_type=related.entity_type,
            operation="scan",
            index="scan",
            key_condition=f"Scan with filter: {settings.entity_type_attribute} = '{rel.pivot_entity}'",
            example_pk="N/A (full table scan)",
            efficient=False,
            category="collection",
        )
    return AccessPattern(
        name=f"Get {rel.related_model}s for {model.name} (many-to-many)",
        description=f"Query all {rel.related_model} items associated with a {model.name}",
        entity_type=related.entity_type,
        operation="query",
        index=settings.index_name(rel.gsi_index),
        key_condition=f"{settings.index_pk_name(rel.gsi_index)} = {model.entity_type}{d}{{{model.primary_key}}}",
        example_pk=f"{model.entity_type}{d}123",
        efficient=True,
        category="collection",
    )


def _model_patterns(registry: Registry, model: ParsedModel) -> list[AccessPattern]:
    settings = registry.settings
    d = settings.key_delimiter
    pk, sk = settings.partition_key_name, settings.sort_key_name
    et = model.entity_type

    patterns = [
        AccessPattern(
            name=f"Get {model.name} by ID",
            description=f"Retrieve a single {model.name} by its primary key",
            entity_type=et,
            operation="get",
            index="main",
            key_condition=f"{pk} = {et}{d}{{{model.primary_key}}} AND {sk} = {et}{d}{{{model.primary_key}}}",
            example_pk=f"{et}{d}123",
            example_sk=f"{et}{d}123",
            efficient=True,
            category="entity_by_id",
        ),
        AccessPattern(
            name=f"List all {model.name}s",
            description=f"Retrieve all {model.name} entities (requires scan with filter)",
            entity_type=et,
            operation="scan",
            index="scan",
            key_condition=_scan_filter(registry, model),
            example_pk="N/A (full table scan)",
            efficient=False,
            category="entity_list",
        ),
    ]

    for rel in model.relationships:
        if rel.dangling or rel.related_model not in registry.models:
            continue
        pattern = _relationship_pattern(registry, model, rel)
        if pattern is not None:
            patterns.append(pattern)

    for attr in model.attributes:
        if not attr.unique:
            continue
        slot = registry.index_assignments.get(f"{model.name}:unique:{attr.name}")
        if slot is None:
            patterns.append(
                AccessPattern(
                    name=f"Get {model.name} by {attr.name} (scan)",
                    description=f"Scan for a {model.name} by unique {attr.name}; no index assigned",
                    entity_type=et,
                    operation="scan",
                    index="scan",
                    key_condition=_scan_filter(registry, model, f"{attr.name} = {{{attr.name}}}"),
                    example_pk="N/A (full table scan)",
                    efficient=False,
                    category="unique_lookup",
                )
            )
            continue
        patterns.append(
            AccessPattern(
                name=f"Get {model.name} by {attr.name}",
                description=f"Retrieve a {model.name} by unique {attr.name}",
                entity_type=et,
                operation="query",
                index=settings.index_name(slot),
                key_condition=f"{settings.index_pk_name(slot)} = {attr.name.upper()}{d}{{{attr.name}}}",
                example_pk=f"{attr.name.upper()}{d}example@email.com",
                efficient=True,
                category="unique_lookup",
            )
        )

    if model.has_soft_deletes:
        patterns.append(
            AccessPattern(
                name=f"Get active {model.name}s",
                description=f"Query all non-deleted {model.name} entities",
                entity_type=et,
                operation="scan",
                index="scan",
                key_condition=_scan_filter(registry, model, "attribute_not_exists(deletedAt)"),
                example_pk="N/A (filtered scan)",
                efficient=False,
                category="status_filter",
            )
        )

    return patterns


def generate_access_patterns(registry: Registry) -> None:
    """Fill each model's catalogue and the registry-wide pattern list."""
    registry.access_patterns = []
    for model in registry.models.values():
        model.access_patterns = _model_patterns(registry, model)
        registry.access_patterns.extend(model.access_patterns)


def build_access_pattern_report(registry: Registry) -> AccessPatternReport:
    matrix: list[AccessPatternMatrixRow] = []
    missing: list[str] = []
    suggestions: list[str] = []

    for model in registry.models.values():
        row = AccessPatternMatrixRow(entity=model.name)
        for pattern in model.access_patterns:
            if pattern.efficient:
                row.efficient_patterns += 1
            else:
                row.inefficient_patterns += 1

        for rel in model.relationships:
            if rel.dangling:
                continue
            if rel.kind in ("hasMany", "hasOne"):
                row.query_children.append(rel.related_model)
            elif rel.gsi_index is not None:
                if rel.kind == "belongsTo":
                    row.query_by_parent.append(rel.related_model)
            else:
                missing.append(f"{model.name}.{rel.kind}({rel.related_model}) - No index assigned for reverse lookup")

        for attr in model.attributes:
            if not attr.unique:
                continue
            if f"{model.name}:unique:{attr.name}" in registry.index_assignments:
                row.unique_lookups.append(attr.name)
            else:
                missing.append(f"{model.name}.{attr.name} (unique) - No index assigned for unique lookup")

        if model.has_soft_deletes:
            suggestions.append(
                f"Consider adding a sparse index for {model.name} soft delete filtering to improve query performance"
            )
        matrix.append(row)

    if missing:
        suggestions.append(
            f"{len(missing)} access patterns lack efficient index support. Consider increasing max_index_count."
        )
    inefficient = sum(row.inefficient_patterns for row in matrix)
    if inefficient:
        suggestions.append(f"{inefficient} patterns require table scans. Review access patterns and consider adding indexes.")

    return AccessPatternReport(
        patterns=list(registry.access_patterns),
        matrix=matrix,
        missing_patterns=missing,
        suggestions=suggestions,
    )
