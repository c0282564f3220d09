import re
from typing import Any

from tablegraph.config import Settings
from tablegraph.models import KeyPattern, ParsedModel

_PLACEHOLDER = re.compile(r"\{([^}]+)\}")


def to_entity_type(model_name: str) -> str:
    return model_name.upper()


def entity_prefix(model_name: str, delimiter: str = "#") -> str:
    return f"{to_entity_type(model_name)}{delimiter}"


def template_prefix(template: str) -> str:
    """Literal text before the first placeholder, e.g. ``USER#`` for ``USER#{userId}``."""
    return template.split("{", 1)[0]


def resolve_template(template: str, values: dict[str, Any]) -> str:
    return _PLACEHOLDER.sub(lambda m: str(values.get(m.group(1), m.group(1))), template)


def example_value(template: str, example: str) -> str:
    return _PLACEHOLDER.sub(example, template)


def entity_key(entity_type: str, entity_id: Any, settings: Settings) -> dict[str, str]:
    """Main-table key of a base entity row (partition key equals sort key)."""
    value = f"{entity_type}{settings.key_delimiter}{entity_id}"
    return {settings.partition_key_name: value, settings.sort_key_name: value}


def split_key_id(key_value: str, delimiter: str) -> str:
    _, _, entity_id = key_value.partition(delimiter)
    return entity_id


def placeholders(template: str) -> list[str]:
    return _PLACEHOLDER.findall(template)


def resolve_key_pattern(pattern: KeyPattern, values: dict[str, Any], settings: Settings) -> dict[str, str]:
    """Resolve the main and index keys of a row.

    Index key pairs whose placeholders are not all present in ``values`` are
    left out, so the row stays out of that (sparse) index.
    """
    resolved = {
        settings.partition_key_name: resolve_template(pattern.pk, values),
        settings.sort_key_name: resolve_template(pattern.sk, values),
    }
    for index, template in sorted(pattern.indexes.items()):
        needed = placeholders(template.pk) + placeholders(template.sk)
        if any(values.get(name) is None for name in needed):
            continue
        resolved[settings.index_pk_name(index)] = resolve_template(template.pk, values)
        resolved[settings.index_sk_name(index)] = resolve_template(template.sk, values)
    return resolved


def build_item(model: ParsedModel, data: dict[str, Any], settings: Settings) -> dict[str, Any]:
    """Lay out an entity instance as a single-table row."""
    item: dict[str, Any] = resolve_key_pattern(model.key_pattern, data, settings)
    item[settings.entity_type_attribute] = model.name
    for name, value in data.items():
        if value is None or name in item:
            continue
        item[name] = value
    return item


def to_instance(item: dict[str, Any], settings: Settings) -> dict[str, Any]:
    internal = settings.internal_attributes()
    return {k: v for k, v in item.items() if k not in internal}
