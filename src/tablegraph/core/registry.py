"""Turn entity declarations into parsed models and a registry skeleton."""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from tablegraph.config import Settings
from tablegraph.core.inference import infer_storage_type, parse_validation_rules
from tablegraph.core.keys import to_entity_type
from tablegraph.core.relationships import parse_relationships
from tablegraph.errors import DeclarationError
from tablegraph.models import EntityDeclaration, KeyPattern, ParsedAttribute, ParsedModel, Registry

logger = logging.getLogger(__name__)

_SKIPPED_FILE_NAMES = frozenset({"index.json"})


def decode_declaration(raw: Any, source: str = "<inline>") -> EntityDeclaration:
    if isinstance(raw, EntityDeclaration):
        return raw
    if not isinstance(raw, Mapping):
        raise DeclarationError(source, f"expected an object, got {type(raw).__name__}")
    try:
        return EntityDeclaration.model_validate(dict(raw))
    except ValidationError as exc:
        raise DeclarationError(source, str(exc)) from exc


def is_declaration_file(path: Path) -> bool:
    return path.suffix == ".json" and path.name not in _SKIPPED_FILE_NAMES and not path.name.startswith("_")


def discover_declaration_files(models_path: Path) -> list[Path]:
    return sorted(p for p in models_path.iterdir() if p.is_file() and is_declaration_file(p))


def load_declaration_file(path: Path) -> list[EntityDeclaration]:
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise DeclarationError(str(path), str(exc)) from exc
    items = payload if isinstance(payload, list) else [payload]
    return [decode_declaration(item, str(path)) for item in items]


def load_declarations(models_path: Path) -> tuple[list[EntityDeclaration], list[str]]:
    """Read every declaration file below ``models_path``.

    Never raises: a missing directory or a broken file becomes a warning.
    """
    warnings: list[str] = []
    if not models_path.is_dir():
        warnings.append(f"Models directory not found: {models_path}")
        return [], warnings

    try:
        files = discover_declaration_files(models_path)
    except OSError as exc:
        warnings.append(f"Models directory could not be read: {models_path} ({exc})")
        return [], warnings

    declarations: list[EntityDeclaration] = []
    for path in files:
        try:
            declarations.extend(load_declaration_file(path))
        except DeclarationError as exc:
            warnings.append(str(exc))
    return declarations, warnings


def parse_attributes(declaration: EntityDeclaration) -> list[ParsedAttribute]:
    attributes = [
        ParsedAttribute(
            name=name,
            storage_type=infer_storage_type(spec.cast, spec.validation),
            required=spec.required,
            nullable=spec.nullable,
            unique=spec.unique,
            fillable=spec.fillable,
            hidden=spec.hidden,
            cast=spec.cast,
            default=spec.default,
            validation_rules=parse_validation_rules(spec.validation),
        )
        for name, spec in declaration.attributes.items()
    ]
    existing = {attr.name for attr in attributes}

    traits = declaration.traits
    synthetic: list[ParsedAttribute] = []
    if traits.use_timestamps:
        for name in ("createdAt", "updatedAt"):
            synthetic.append(
                ParsedAttribute(
                    name=name, storage_type="string", required=True, nullable=False, fillable=False, cast="datetime"
                )
            )
    if traits.use_soft_deletes:
        synthetic.append(
            ParsedAttribute(name="deletedAt", storage_type="string", nullable=True, fillable=False, cast="datetime")
        )
    attributes.extend(attr for attr in synthetic if attr.name not in existing)
    return attributes


def parse_model(declaration: EntityDeclaration, settings: Settings) -> ParsedModel:
    entity_type = to_entity_type(declaration.name)
    key_template = f"{entity_type}{settings.key_delimiter}{{{declaration.primary_key}}}"
    traits = declaration.traits
    return ParsedModel(
        name=declaration.name,
        entity_type=entity_type,
        primary_key=declaration.primary_key,
        attributes=parse_attributes(declaration),
        relationships=parse_relationships(declaration),
        key_pattern=KeyPattern(pk=key_template, sk=key_template),
        has_timestamps=traits.use_timestamps,
        has_soft_deletes=traits.use_soft_deletes,
        has_uuid=traits.use_uuid,
        has_ttl=traits.use_ttl,
        has_versioning=traits.use_versioning,
    )


def build_models(declarations: Iterable[Any], settings: Settings) -> Registry:
    """Parse declarations into a registry without index assignments."""
    registry = Registry(settings=settings)
    seen_entity_types: dict[str, str] = {}

    for position, raw in enumerate(declarations):
        try:
            declaration = decode_declaration(raw, f"<declaration {position}>")
        except DeclarationError as exc:
            registry.warnings.append(str(exc))
            logger.warning("%s", exc)
            continue

        entity_type = to_entity_type(declaration.name)
        if entity_type in seen_entity_types:
            warning = (
                f"Model {declaration.name} duplicates entity type {entity_type} "
                f"already declared by {seen_entity_types[entity_type]}; skipped"
            )
            registry.warnings.append(warning)
            logger.warning(warning)
            continue

        seen_entity_types[entity_type] = declaration.name
        registry.models[declaration.name] = parse_model(declaration, settings)

    return registry
