import logging

from tablegraph.models import (
    RELATIONSHIP_KINDS,
    EntityDeclaration,
    IndexKeyTemplate,
    ParsedModel,
    Registry,
    Relationship,
    RelationshipKind,
)

logger = logging.getLogger(__name__)

# hasMany children live in the parent's partition and are found by sort-key
# prefix; every other kind needs a reverse lookup.
REQUIRES_INDEX: dict[RelationshipKind, bool] = {
    "hasOne": True,
    "hasMany": False,
    "belongsTo": True,
    "belongsToMany": True,
}

# hasOne is read from the owner's partition like hasMany, so only these kinds
# carry an index key template into slot assignment.
INDEXED_KINDS: frozenset[RelationshipKind] = frozenset({"belongsTo", "belongsToMany"})


def pivot_entity_name(model_name: str, related_name: str) -> str:
    return "".join(sorted([model_name, related_name]))


def default_foreign_key(kind: RelationshipKind, model_name: str, related_name: str) -> str:
    owner = model_name if kind in ("hasOne", "hasMany") else related_name
    return f"{owner.lower()}Id"


def parse_relationships(declaration: EntityDeclaration) -> list[Relationship]:
    relationships: list[Relationship] = []
    for kind in RELATIONSHIP_KINDS:
        for stub in declaration.stubs(kind):
            relationships.append(
                Relationship(
                    name=stub.name or stub.model,
                    kind=kind,
                    related_model=stub.model,
                    foreign_key=stub.foreign_key or default_foreign_key(kind, declaration.name, stub.model),
                    local_key=stub.local_key or declaration.primary_key,
                    pivot_entity=pivot_entity_name(declaration.name, stub.model) if kind == "belongsToMany" else None,
                    requires_index=REQUIRES_INDEX[kind],
                )
            )
    return relationships


def index_key_for(model: ParsedModel, relationship: Relationship, related: ParsedModel, delimiter: str) -> IndexKeyTemplate:
    return IndexKeyTemplate(
        pk=f"{related.entity_type}{delimiter}{{{relationship.foreign_key}}}",
        sk=f"{model.entity_type}{delimiter}{{{model.primary_key}}}",
    )


def derive_relationships(registry: Registry) -> None:
    """Check relationship targets and attach index key templates.

    Relationships pointing at an unknown model are kept for introspection but
    marked dangling, which excludes them from index assignment and from the
    access pattern catalogue.
    """
    delimiter = registry.settings.key_delimiter
    for model in registry.models.values():
        for relationship in model.relationships:
            related = registry.models.get(relationship.related_model)
            if related is None:
                relationship.dangling = True
                warning = (
                    f"Model {model.name} references unknown model {relationship.related_model} "
                    f"in {relationship.kind} relationship"
                )
                registry.warnings.append(warning)
                logger.warning(warning)
                continue
            if relationship.requires_index and relationship.kind in INDEXED_KINDS:
                relationship.index_key = index_key_for(model, relationship, related, delimiter)
