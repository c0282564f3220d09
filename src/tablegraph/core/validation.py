from collections import Counter
from collections.abc import Iterable

from tablegraph.config import MAX_ENGINE_INDEXES
from tablegraph.core.keys import template_prefix
from tablegraph.models import IndexDefinition, ParsedModel, Registry


def _duplicates(values: list[str]) -> list[str]:
    return [value for value, count in Counter(values).items() if count > 1]


def validate_index_design(definitions: list[IndexDefinition], ceiling: int = MAX_ENGINE_INDEXES) -> list[str]:
    """Check compiled index definitions against the storage engine limits.

    Returns a list of errors; empty means the design is valid.
    """
    errors: list[str] = []

    if len(definitions) > ceiling:
        errors.append(f"Too many indexes: {len(definitions)} (max {ceiling})")

    duplicate_names = _duplicates([d.name for d in definitions])
    if duplicate_names:
        errors.append(f"Duplicate index names: {', '.join(duplicate_names)}")

    duplicate_pairs = _duplicates([f"{d.partition_key}:{d.sort_key}" for d in definitions])
    if duplicate_pairs:
        errors.append(f"Duplicate partition/sort key pairs across indexes: {', '.join(duplicate_pairs)}")

    return errors


def validate_key_patterns(models: Iterable[ParsedModel]) -> list[str]:
    errors: list[str] = []
    owners: dict[str, str] = {}
    for model in models:
        prefix = template_prefix(model.key_pattern.pk)
        existing = owners.setdefault(prefix, model.name)
        if existing != model.name:
            errors.append(f"Partition key conflict: {model.name} and {existing} both use prefix \"{prefix}\"")
    return errors


def validate_registry(registry: Registry) -> list[str]:
    return validate_index_design(registry.index_definitions) + validate_key_patterns(registry.models.values())
