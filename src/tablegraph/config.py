import os
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator

MAX_ENGINE_INDEXES = 20
_OVERRIDABLE_INDEXES = range(1, 6)
_ENV_PREFIX = "TABLEGRAPH_"


class IndexKeyNames(BaseModel):
    pk: str
    sk: str


class Settings(BaseModel):
    """Single-table design settings shared by the compiler and the resolver."""

    table_name: str = "main"
    key_delimiter: str = Field(default="#", min_length=1)
    partition_key_name: str = "pk"
    sort_key_name: str = "sk"
    entity_type_attribute: str = "_et"
    max_index_count: int = Field(default=5, ge=1, le=MAX_ENGINE_INDEXES)
    index_key_names: dict[int, IndexKeyNames] = Field(default_factory=dict)
    models_path: Path | None = None
    registry_ttl_seconds: float = Field(default=60.0, gt=0)

    @field_validator("index_key_names")
    @classmethod
    def _only_first_five_overridable(cls, value: dict[int, IndexKeyNames]) -> dict[int, IndexKeyNames]:
        unknown = sorted(n for n in value if n not in _OVERRIDABLE_INDEXES)
        if unknown:
            raise ValueError(f"Index key name overrides are only supported for indexes 1-5, got {unknown}")
        return value

    @classmethod
    def from_env(cls, **overrides: Any) -> "Settings":
        values: dict[str, Any] = {}
        for field in (
            "table_name",
            "key_delimiter",
            "partition_key_name",
            "sort_key_name",
            "entity_type_attribute",
            "max_index_count",
            "models_path",
            "registry_ttl_seconds",
        ):
            raw = os.getenv(f"{_ENV_PREFIX}{field.upper()}")
            if raw is not None and raw.strip() != "":
                values[field] = raw.strip()
        for n in _OVERRIDABLE_INDEXES:
            pk = os.getenv(f"{_ENV_PREFIX}GSI{n}_PK_NAME")
            sk = os.getenv(f"{_ENV_PREFIX}GSI{n}_SK_NAME")
            if pk or sk:
                values.setdefault("index_key_names", {})[n] = {"pk": pk or f"gsi{n}pk", "sk": sk or f"gsi{n}sk"}
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls.model_validate(values)

    def index_name(self, index: int) -> str:
        return f"GSI{index}"

    def index_pk_name(self, index: int) -> str:
        override = self.index_key_names.get(index)
        return override.pk if override else f"gsi{index}pk"

    def index_sk_name(self, index: int) -> str:
        override = self.index_key_names.get(index)
        return override.sk if override else f"gsi{index}sk"

    def internal_attributes(self) -> set[str]:
        """Attribute names that carry key material rather than entity data."""
        names = {self.partition_key_name, self.sort_key_name, self.entity_type_attribute}
        for n in range(1, self.max_index_count + 1):
            names.add(self.index_pk_name(n))
            names.add(self.index_sk_name(n))
        return names
