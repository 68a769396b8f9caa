"""Tests for config/user_config.py: persisted hide settings."""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from hidehelper.config.user_config import (
    SETTINGS_HEADER,
    AppliedSetting,
    HideSettings,
    MemorySettingsStore,
    YamlSettingsStore,
    load_hide_settings,
    write_hide_settings,
)
from hidehelper.core.errors import ConfigError, ErrorCode


class TestHideSettings:
    """Settings model."""

    def test_given_owner_override_when_resolving_then_override_used(self) -> None:
        settings = HideSettings(hide_last_n=10, floors={"alice": 3})

        assert settings.effective_floor("alice") == 3
        assert settings.effective_floor("bob") == 10
        assert settings.effective_floor() == 10

    def test_given_negative_floor_when_validated_then_rejected(self) -> None:
        with pytest.raises(ValidationError, match="floor for 'alice'"):
            HideSettings(floors={"alice": -1})

    def test_given_negative_applied_value_when_validated_then_rejected(self) -> None:
        with pytest.raises(ValidationError):
            AppliedSetting(value=-2)


class TestMemorySettingsStore:
    """In-memory store."""

    def test_given_loaded_settings_when_mutated_then_store_unchanged(self) -> None:
        store = MemorySettingsStore(HideSettings(hide_last_n=4))

        loaded = store.load()
        loaded.hide_last_n = 9

        assert store.load().hide_last_n == 4
        assert store.saves == 0

    def test_given_save_when_called_then_counted(self) -> None:
        store = MemorySettingsStore()

        store.save(HideSettings(hide_last_n=2))

        assert store.load().hide_last_n == 2
        assert store.saves == 1


class TestYamlSettings:
    """YAML persistence."""

    def test_given_missing_file_when_loaded_then_defaults(self, tmp_path: Path) -> None:
        assert load_hide_settings(tmp_path / "settings.yaml") == HideSettings()

    def test_given_written_settings_when_loaded_then_equal(self, tmp_path: Path) -> None:
        path = tmp_path / "nested" / "settings.yaml"
        settings = HideSettings(
            hide_last_n=5,
            floors={"group-1": 2},
            last_applied=AppliedSetting(value=5),
        )

        write_hide_settings(path, settings)

        assert path.read_text().startswith(SETTINGS_HEADER)
        assert load_hide_settings(path) == settings

    def test_given_invalid_yaml_when_loaded_then_parse_error(self, tmp_path: Path) -> None:
        path = tmp_path / "settings.yaml"
        path.write_text("floors: {unclosed")

        with pytest.raises(ConfigError) as exc_info:
            load_hide_settings(path)

        assert exc_info.value.code == ErrorCode.CONFIG_PARSE_ERROR

    def test_given_invalid_value_when_loaded_then_invalid_value(self, tmp_path: Path) -> None:
        path = tmp_path / "settings.yaml"
        path.write_text("hide_last_n: -3\n")

        with pytest.raises(ConfigError) as exc_info:
            load_hide_settings(path)

        assert exc_info.value.code == ErrorCode.CONFIG_INVALID_VALUE
        assert exc_info.value.details["field"] == "hide_last_n"

    def test_given_yaml_store_when_saved_then_file_backed(self, tmp_path: Path) -> None:
        store = YamlSettingsStore(tmp_path / "settings.yaml")

        store.save(HideSettings(hide_last_n=8))

        assert YamlSettingsStore(tmp_path / "settings.yaml").load().hide_last_n == 8
