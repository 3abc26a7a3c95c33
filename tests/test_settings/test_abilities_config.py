"""Tests for settings, the gate YAML config and ResolverConfig."""

from __future__ import annotations

from pathlib import Path

import pytest

from resource_abilities.abilities.resolver import ResolverConfig
from resource_abilities.abilities.serializers import AbilitySerializer, GrantedAbilitiesSerializer
from resource_abilities.security.config import AbilitiesConfigError, load_abilities_config
from resource_abilities.settings import Settings


def test_load_abilities_config(tmp_path: Path):
    path = tmp_path / "abilities.yaml"
    path.write_text(
        "abilities:\n"
        "  gates:\n"
        "    publish-posts:\n"
        "      roles: [editor, admin]\n"
        "    read-news:\n"
        "      guest: true\n",
        encoding="utf-8",
    )

    config = load_abilities_config(path)

    assert list(config.gates) == ["publish-posts", "read-news"]
    assert config.gates["publish-posts"].roles == ["editor", "admin"]
    assert config.gates["read-news"].guest is True
    assert config.gates["read-news"].roles == []


def test_load_abilities_config_requires_top_level_key(tmp_path: Path):
    path = tmp_path / "abilities.yaml"
    path.write_text("gates: {}\n", encoding="utf-8")

    with pytest.raises(AbilitiesConfigError, match="abilities"):
        load_abilities_config(path)


def test_empty_abilities_section(tmp_path: Path):
    path = tmp_path / "abilities.yaml"
    path.write_text("abilities:\n", encoding="utf-8")

    assert load_abilities_config(path).gates == {}


def test_bundled_config_loads():
    config = load_abilities_config(Settings().resolved_abilities_config_path())
    assert "publish-posts" in config.gates


def test_settings_defaults(monkeypatch):
    monkeypatch.delenv("APP_ABILITY_SERIALIZER", raising=False)
    monkeypatch.delenv("APP_UNAUTHENTICATED_ABILITIES", raising=False)

    settings = Settings()

    assert settings.ability_serializer is AbilitySerializer
    assert settings.unauthenticated_abilities == "deny"


def test_resolver_config_from_env(monkeypatch):
    monkeypatch.setenv(
        "APP_ABILITY_SERIALIZER",
        "resource_abilities.abilities.serializers:GrantedAbilitiesSerializer",
    )
    monkeypatch.setenv("APP_UNAUTHENTICATED_ABILITIES", "raise")

    config = ResolverConfig.from_settings(Settings())

    assert isinstance(config.serializer, GrantedAbilitiesSerializer)
    assert config.unauthenticated == "raise"


def test_invalid_unauthenticated_policy(monkeypatch):
    monkeypatch.setenv("APP_UNAUTHENTICATED_ABILITIES", "maybe")

    with pytest.raises(ValueError):
        Settings()
