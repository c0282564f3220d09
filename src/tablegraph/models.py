from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from tablegraph.config import Settings

RelationshipKind = Literal["hasOne", "hasMany", "belongsTo", "belongsToMany"]
StorageType = Literal["string", "number", "boolean", "list", "map", "string_set", "binary"]
Operation = Literal["get", "query", "scan"]
PatternCategory = Literal[
    "entity_by_id",
    "entity_list",
    "relationship_parent_to_child",
    "relationship_child_to_parent",
    "unique_lookup",
    "status_filter",
    "collection",
]
LoadEstimate = Literal["low", "medium", "high"]

RELATIONSHIP_KINDS: tuple[RelationshipKind, ...] = ("hasOne", "hasMany", "belongsTo", "belongsToMany")


# ---------------------------------------------------------------------------
# Declarations (external input, camelCase keys)
# ---------------------------------------------------------------------------


class _Declaration(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True, extra="ignore")


class ValidationRule(_Declaration):
    rule: str
    message: str | None = None


class AttributeDeclaration(_Declaration):
    required: bool = False
    nullable: bool = True
    unique: bool = False
    fillable: bool = True
    hidden: bool = False
    cast: str | None = None
    validation: str | ValidationRule | list[str | ValidationRule] | None = None
    default: Any = None


class RelationshipStub(_Declaration):
    model: str
    name: str | None = None
    foreign_key: str | None = None
    local_key: str | None = None


class Traits(_Declaration):
    use_timestamps: bool = False
    use_soft_deletes: bool = False
    use_uuid: bool = False
    use_ttl: bool = False
    use_versioning: bool = False


class EntityDeclaration(_Declaration):
    name: str = Field(min_length=1)
    primary_key: str = "id"
    attributes: dict[str, AttributeDeclaration] = Field(default_factory=dict)
    has_one: list[RelationshipStub] = Field(default_factory=list)
    has_many: list[RelationshipStub] = Field(default_factory=list)
    belongs_to: list[RelationshipStub] = Field(default_factory=list)
    belongs_to_many: list[RelationshipStub] = Field(default_factory=list)
    traits: Traits = Field(default_factory=Traits)

    @field_validator("attributes", mode="before")
    @classmethod
    def _coerce_attribute_shorthand(cls, value: Any) -> Any:
        if not isinstance(value, dict):
            return value
        return {name: (spec if isinstance(spec, (dict, AttributeDeclaration)) else {}) for name, spec in value.items()}

    @field_validator("has_one", "has_many", "belongs_to", "belongs_to_many", mode="before")
    @classmethod
    def _coerce_stub_shorthand(cls, value: Any) -> Any:
        if not isinstance(value, list):
            return value
        return [{"model": stub} if isinstance(stub, str) else stub for stub in value]

    def stubs(self, kind: RelationshipKind) -> list[RelationshipStub]:
        return {
            "hasOne": self.has_one,
            "hasMany": self.has_many,
            "belongsTo": self.belongs_to,
            "belongsToMany": self.belongs_to_many,
        }[kind]


# ---------------------------------------------------------------------------
# Compiled design
# ---------------------------------------------------------------------------


class ParsedAttribute(BaseModel):
    name: str
    storage_type: StorageType
    required: bool = False
    nullable: bool = True
    unique: bool = False
    fillable: bool = True
    hidden: bool = False
    cast: str | None = None
    default: Any = None
    validation_rules: list[str] | None = None


class IndexKeyTemplate(BaseModel):
    pk: str
    sk: str


class KeyPattern(BaseModel):
    pk: str
    sk: str
    indexes: dict[int, IndexKeyTemplate] = Field(default_factory=dict)


class Relationship(BaseModel):
    name: str
    kind: RelationshipKind
    related_model: str
    foreign_key: str
    local_key: str
    pivot_entity: str | None = None
    requires_index: bool
    index_key: IndexKeyTemplate | None = None
    gsi_index: int | None = None
    dangling: bool = False


class AccessPattern(BaseModel):
    name: str
    description: str
    entity_type: str
    operation: Operation
    index: str
    key_condition: str
    example_pk: str
    example_sk: str | None = None
    efficient: bool
    category: PatternCategory


class ParsedModel(BaseModel):
    name: str
    entity_type: str
    primary_key: str
    attributes: list[ParsedAttribute] = Field(default_factory=list)
    relationships: list[Relationship] = Field(default_factory=list)
    key_pattern: KeyPattern
    access_patterns: list[AccessPattern] = Field(default_factory=list)
    has_timestamps: bool = False
    has_soft_deletes: bool = False
    has_uuid: bool = False
    has_ttl: bool = False
    has_versioning: bool = False

    def relationship(self, name: str) -> Relationship | None:
        for rel in self.relationships:
            if rel.name == name:
                return rel
        return None

    def attribute(self, name: str) -> ParsedAttribute | None:
        for attr in self.attributes:
            if attr.name == name:
                return attr
        return None


class IndexAccessPattern(BaseModel):
    model_config = ConfigDict(protected_namespaces=())

    model_name: str
    source: str
    type: Literal["relationship", "unique_attribute"]
    pk_pattern: str
    sk_pattern: str
    description: str

    @property
    def prefix(self) -> str:
        return self.pk_pattern.split("{", 1)[0]


class IndexDefinition(BaseModel):
    name: str
    partition_key: str
    sort_key: str | None = None
    projection: str = "ALL"


class IndexUsage(BaseModel):
    index: int
    name: str
    access_patterns: list[IndexAccessPattern]
    overloaded: bool
    estimated_load: LoadEstimate


class IndexOptimization(BaseModel):
    type: Literal["consolidate", "split"]
    description: str
    affected_indexes: list[int]
    benefit: str


class Registry(BaseModel):
    """Compiled single-table design. Plain data, rebuilt on every compilation."""

    settings: Settings = Field(default_factory=Settings)
    models: dict[str, ParsedModel] = Field(default_factory=dict)
    access_patterns: list[AccessPattern] = Field(default_factory=list)
    index_assignments: dict[str, int] = Field(default_factory=dict)
    index_definitions: list[IndexDefinition] = Field(default_factory=list)
    index_usages: list[IndexUsage] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)

    def get_model(self, name: str) -> ParsedModel | None:
        return self.models.get(name)


# ---------------------------------------------------------------------------
# Runtime
# ---------------------------------------------------------------------------


class QueryParams(BaseModel):
    index_name: str | None = None
    key_condition: str
    key_values: dict[str, str]
    limit: int | None = None
    filter_expression: str | None = None
    filter_values: dict[str, Any] | None = None
    scan_forward: bool = True


class EagerLoadSpec(BaseModel):
    relationship: str
    nested: list["EagerLoadSpec"] = Field(default_factory=list)


EagerLoadSpec.model_rebuild()  # necessary for recursive types


class ResolvedRelationship(BaseModel):
    name: str
    kind: RelationshipKind | None = None
    data: dict[str, Any] | list[dict[str, Any]] | None = None
    loaded: bool
    count: int | None = None
