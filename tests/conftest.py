"""Shared fixtures and helpers for tests."""

import json
from pathlib import Path
from typing import Any

import pytest

from tablegraph.config import Settings
from tablegraph.core.compiler import compile_registry
from tablegraph.db import InMemoryQueryExecutor
from tablegraph.models import Registry

_REPO_ROOT = Path(__file__).parent.parent


# ---------------------------------------------------------------------------
# Auto-marker: tag tests as "unit" or "integration" based on directory
# ---------------------------------------------------------------------------


def pytest_collection_modifyitems(items: list[pytest.Item]) -> None:
    for item in items:
        test_path = Path(str(item.fspath))
        rel = test_path.relative_to(_REPO_ROOT / "tests")
        parts = rel.parts
        if parts and parts[0] == "integration":
            item.add_marker(pytest.mark.integration)
        else:
            item.add_marker(pytest.mark.unit)


# ---------------------------------------------------------------------------
# Shared unit-test fixtures
# ---------------------------------------------------------------------------


def blog_declarations() -> list[dict[str, Any]]:
    """User / Post / Comment / Role / Profile declarations used across tests."""
    return [
        {
            "name": "User",
            "attributes": {
                "name": {"required": True},
                "email": {"unique": True, "validation": "required|email"},
                "age": {"validation": "integer|min:0"},
            },
            "hasMany": ["Post"],
            "hasOne": ["Profile"],
            "belongsToMany": ["Role"],
            "traits": {"useTimestamps": True},
        },
        {
            "name": "Post",
            "attributes": {"title": {"required": True}, "userId": {"required": True}},
            "belongsTo": ["User"],
            "hasMany": ["Comment"],
            "traits": {"useSoftDeletes": True},
        },
        {
            "name": "Comment",
            "attributes": {"body": True, "postId": True},
            "belongsTo": ["Post"],
        },
        {
            "name": "Role",
            "attributes": {"label": True},
            "belongsToMany": ["User"],
        },
        {
            "name": "Profile",
            "attributes": {"bio": True, "userId": True},
            "belongsTo": ["User"],
        },
    ]


@pytest.fixture
def settings() -> Settings:
    return Settings()


@pytest.fixture
def declarations() -> list[dict[str, Any]]:
    return blog_declarations()


@pytest.fixture
def registry(declarations: list[dict[str, Any]], settings: Settings) -> Registry:
    return compile_registry(declarations, settings)


@pytest.fixture
def in_memory_executor(settings: Settings) -> InMemoryQueryExecutor:
    return InMemoryQueryExecutor(settings)


@pytest.fixture
def models_dir(tmp_path: Path, declarations: list[dict[str, Any]]) -> Path:
    """Write each declaration to its own JSON file."""
    directory = tmp_path / "models"
    directory.mkdir()
    for declaration in declarations:
        (directory / f"{declaration['name'].lower()}.json").write_text(json.dumps(declaration), encoding="utf-8")
    return directory


def seed_blog(executor: InMemoryQueryExecutor, registry: Registry) -> None:
    """Store users, posts, comments, a profile and role pivots in the single-table layout."""
    models = registry.models
    for user in (
        {"id": "u1", "name": "Ada", "email": "ada@example.com"},
        {"id": "u2", "name": "Grace", "email": "grace@example.com"},
    ):
        executor.put_entity(models["User"], user)

    for post in (
        {"id": "p1", "userId": "u1", "title": "First"},
        {"id": "p2", "userId": "u1", "title": "Second"},
        {"id": "p3", "userId": "u2", "title": "Third"},
    ):
        executor.put_entity(models["Post"], post)
        executor.put_item({"pk": f"USER#{post['userId']}", "sk": f"POST#{post['id']}", "_et": "Post", **post})

    for comment in (
        {"id": "c1", "postId": "p1", "body": "Nice"},
        {"id": "c2", "postId": "p1", "body": "Agreed"},
        {"id": "c3", "postId": "p3", "body": "Hm"},
    ):
        executor.put_entity(models["Comment"], comment)
        executor.put_item({"pk": f"POST#{comment['postId']}", "sk": f"COMMENT#{comment['id']}", "_et": "Comment", **comment})

    executor.put_item({"pk": "USER#u1", "sk": "PROFILE#pr1", "_et": "Profile", "id": "pr1", "userId": "u1", "bio": "Math"})

    for role in ({"id": "r1", "label": "admin"}, {"id": "r2", "label": "editor"}):
        executor.put_entity(models["Role"], role)
        executor.put_item(
            {"pk": "USER#u1", "sk": f"ROLE#{role['id']}", "gsi1pk": "USER#u1", "gsi1sk": f"ROLE#{role['id']}", "_et": "RoleUser"}
        )

    executor.reset_calls()


@pytest.fixture
def seeded_executor(in_memory_executor: InMemoryQueryExecutor, registry: Registry) -> InMemoryQueryExecutor:
    seed_blog(in_memory_executor, registry)
    return in_memory_executor
