"""Tests for settings defaults, validation and environment loading."""

import pytest
from pydantic import ValidationError

from tablegraph.config import IndexKeyNames, Settings


def test_defaults() -> None:
    settings = Settings()
    assert settings.table_name == "main"
    assert settings.key_delimiter == "#"
    assert settings.max_index_count == 5
    assert settings.registry_ttl_seconds == 60.0
    assert settings.index_name(3) == "GSI3"
    assert settings.index_pk_name(3) == "gsi3pk"
    assert settings.index_sk_name(3) == "gsi3sk"


def test_index_key_name_overrides() -> None:
    settings = Settings(index_key_names={1: IndexKeyNames(pk="byParentPk", sk="byParentSk")})
    assert settings.index_pk_name(1) == "byParentPk"
    assert settings.index_sk_name(1) == "byParentSk"
    assert settings.index_pk_name(2) == "gsi2pk"
    assert {"byParentPk", "byParentSk", "pk", "sk", "_et"} <= settings.internal_attributes()


def test_overrides_limited_to_first_five_indexes() -> None:
    with pytest.raises(ValidationError):
        Settings(index_key_names={6: IndexKeyNames(pk="a", sk="b")})


@pytest.mark.parametrize("count", [0, 21])
def test_max_index_count_bounds(count: int) -> None:
    with pytest.raises(ValidationError):
        Settings(max_index_count=count)


def test_empty_delimiter_rejected() -> None:
    with pytest.raises(ValidationError):
        Settings(key_delimiter="")


def test_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TABLEGRAPH_TABLE_NAME", "app")
    monkeypatch.setenv("TABLEGRAPH_MAX_INDEX_COUNT", "8")
    monkeypatch.setenv("TABLEGRAPH_GSI2_PK_NAME", "lookupPk")
    settings = Settings.from_env()
    assert settings.table_name == "app"
    assert settings.max_index_count == 8
    assert settings.index_pk_name(2) == "lookupPk"
    assert settings.index_sk_name(2) == "gsi2sk"


def test_from_env_overrides_win(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TABLEGRAPH_MAX_INDEX_COUNT", "8")
    assert Settings.from_env(max_index_count=2, key_delimiter=None).max_index_count == 2


def test_from_env_invalid_value_fails_fast(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TABLEGRAPH_MAX_INDEX_COUNT", "lots")
    with pytest.raises(ValidationError):
        Settings.from_env()
