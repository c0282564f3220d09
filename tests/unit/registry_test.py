"""Tests for declaration decoding, discovery and model parsing."""

import json
from pathlib import Path
from typing import Any

import pytest

from tablegraph.config import Settings
from tablegraph.core.registry import (
    build_models,
    decode_declaration,
    discover_declaration_files,
    load_declarations,
    parse_model,
)
from tablegraph.errors import DeclarationError


class TestDecodeDeclaration:
    def test_camel_case_keys(self) -> None:
        declaration = decode_declaration(
            {
                "name": "Post",
                "primaryKey": "postId",
                "belongsTo": [{"model": "User", "foreignKey": "authorId", "name": "author"}],
                "traits": {"useSoftDeletes": True},
            }
        )
        assert declaration.primary_key == "postId"
        assert declaration.belongs_to[0].foreign_key == "authorId"
        assert declaration.belongs_to[0].name == "author"
        assert declaration.traits.use_soft_deletes is True

    def test_string_stub_and_attribute_shorthand(self) -> None:
        declaration = decode_declaration({"name": "Post", "attributes": {"title": True}, "hasMany": ["Comment"]})
        assert declaration.has_many[0].model == "Comment"
        assert declaration.attributes["title"].nullable is True

    def test_non_mapping_raises(self) -> None:
        with pytest.raises(DeclarationError, match="expected an object"):
            decode_declaration(["User"], "users.json")

    def test_missing_name_raises(self) -> None:
        with pytest.raises(DeclarationError) as exc_info:
            decode_declaration({"attributes": {}}, "broken.json")
        assert str(exc_info.value).startswith("Failed to parse model broken.json:")
        assert exc_info.value.source == "broken.json"


class TestParseModel:
    def test_entity_type_and_key_pattern(self, settings: Settings) -> None:
        model = parse_model(decode_declaration({"name": "User"}), settings)
        assert model.entity_type == "USER"
        assert model.key_pattern.pk == "USER#{id}"
        assert model.key_pattern.sk == "USER#{id}"
        assert model.key_pattern.indexes == {}

    def test_custom_delimiter(self) -> None:
        model = parse_model(decode_declaration({"name": "User"}), Settings(key_delimiter="|"))
        assert model.key_pattern.pk == "USER|{id}"

    def test_timestamp_and_soft_delete_attributes(self, settings: Settings) -> None:
        model = parse_model(
            decode_declaration({"name": "Post", "traits": {"useTimestamps": True, "useSoftDeletes": True}}),
            settings,
        )
        assert [a.name for a in model.attributes] == ["createdAt", "updatedAt", "deletedAt"]
        assert model.attribute("deletedAt").nullable is True
        assert model.attribute("createdAt").cast == "datetime"
        assert model.has_timestamps and model.has_soft_deletes

    def test_declared_timestamp_is_not_duplicated(self, settings: Settings) -> None:
        model = parse_model(
            decode_declaration(
                {"name": "Post", "attributes": {"createdAt": {"cast": "integer"}}, "traits": {"useTimestamps": True}}
            ),
            settings,
        )
        names = [a.name for a in model.attributes]
        assert names.count("createdAt") == 1
        assert model.attribute("createdAt").storage_type == "number"

    def test_attribute_flags_and_rules(self, settings: Settings) -> None:
        model = parse_model(
            decode_declaration({"name": "User", "attributes": {"email": {"unique": True, "validation": "required|email"}}}),
            settings,
        )
        email = model.attribute("email")
        assert email.unique is True
        assert email.storage_type == "string"
        assert email.validation_rules == ["required", "email"]


class TestBuildModels:
    def test_bad_declaration_becomes_warning(self, settings: Settings) -> None:
        registry = build_models([{"name": "User"}, "nonsense", {"name": "Post"}], settings)
        assert list(registry.models) == ["User", "Post"]
        assert len(registry.warnings) == 1
        assert registry.warnings[0].startswith("Failed to parse model <declaration 1>")

    def test_duplicate_entity_type_is_skipped(self, settings: Settings) -> None:
        registry = build_models([{"name": "User"}, {"name": "user"}], settings)
        assert list(registry.models) == ["User"]
        assert "duplicates entity type USER" in registry.warnings[0]

    def test_settings_are_attached(self) -> None:
        custom = Settings(max_index_count=3)
        assert build_models([], custom).settings.max_index_count == 3


class TestDiscovery:
    @staticmethod
    def _write(directory: Path, name: str, payload: Any) -> None:
        (directory / name).write_text(json.dumps(payload), encoding="utf-8")

    def test_missing_directory(self, tmp_path: Path) -> None:
        missing = tmp_path / "nope"
        declarations, warnings = load_declarations(missing)
        assert declarations == []
        assert warnings == [f"Models directory not found: {missing}"]

    def test_skips_index_and_private_files(self, tmp_path: Path) -> None:
        self._write(tmp_path, "user.json", {"name": "User"})
        self._write(tmp_path, "index.json", {"name": "Index"})
        self._write(tmp_path, "_draft.json", {"name": "Draft"})
        (tmp_path / "notes.txt").write_text("ignored", encoding="utf-8")
        assert [p.name for p in discover_declaration_files(tmp_path)] == ["user.json"]

    def test_sorted_by_file_name_and_lists_allowed(self, tmp_path: Path) -> None:
        self._write(tmp_path, "b.json", [{"name": "Post"}, {"name": "Comment"}])
        self._write(tmp_path, "a.json", {"name": "User"})
        declarations, warnings = load_declarations(tmp_path)
        assert [d.name for d in declarations] == ["User", "Post", "Comment"]
        assert warnings == []

    def test_broken_file_is_reported_and_others_load(self, tmp_path: Path) -> None:
        self._write(tmp_path, "user.json", {"name": "User"})
        (tmp_path / "broken.json").write_text("{not json", encoding="utf-8")
        declarations, warnings = load_declarations(tmp_path)
        assert [d.name for d in declarations] == ["User"]
        assert len(warnings) == 1
        assert "broken.json" in warnings[0]
