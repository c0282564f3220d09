import json
from typing import Any

from tablegraph.models import StorageType

_CAST_STORAGE_TYPES: dict[str, StorageType] = {
    "integer": "number",
    "int": "number",
    "float": "number",
    "double": "number",
    "number": "number",
    "decimal": "number",
    "boolean": "boolean",
    "bool": "boolean",
    "array": "list",
    "list": "list",
    "object": "map",
    "json": "map",
    "map": "map",
    "set": "string_set",
    "binary": "binary",
}

_VALIDATION_HINTS: tuple[tuple[tuple[str, ...], StorageType], ...] = (
    (("integer", "numeric"), "number"),
    (("boolean",), "boolean"),
    (("array",), "list"),
)


def _validation_text(validation: Any) -> str:
    if validation is None:
        return ""
    if isinstance(validation, str):
        return validation
    if hasattr(validation, "model_dump"):
        validation = validation.model_dump()
    elif isinstance(validation, list):
        validation = [v.model_dump() if hasattr(v, "model_dump") else v for v in validation]
    return json.dumps(validation, default=str)


def infer_storage_type(cast: str | None = None, validation: Any = None) -> StorageType:
    """Map an attribute's cast or validation hint onto a storage primitive.

    An explicit cast always wins; unknown casts are stored as strings. Without
    a cast the validation text is scanned for type-like rule names.
    """
    if cast:
        return _CAST_STORAGE_TYPES.get(cast.strip().lower(), "string")

    text = _validation_text(validation)
    for needles, storage_type in _VALIDATION_HINTS:
        if any(needle in text for needle in needles):
            return storage_type
    return "string"


def parse_validation_rules(validation: Any) -> list[str] | None:
    if not validation:
        return None
    if isinstance(validation, str):
        return validation.split("|")
    if isinstance(validation, list):
        return [v if isinstance(v, str) else v.rule for v in validation]
    rule = getattr(validation, "rule", None)
    return [rule] if rule is not None else None
