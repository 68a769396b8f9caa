"""Config module exports."""

from hidehelper.config.loader import HideHelperSettings, load_config
from hidehelper.config.models import (
    HideConfig,
    HideHelperConfig,
    IndexConfig,
    LoggingConfig,
)
from hidehelper.config.user_config import (
    AppliedSetting,
    HideSettings,
    MemorySettingsStore,
    SettingsStore,
    YamlSettingsStore,
)

__all__ = [
    "load_config",
    "HideHelperConfig",
    "HideHelperSettings",
    "HideConfig",
    "IndexConfig",
    "LoggingConfig",
    "AppliedSetting",
    "HideSettings",
    "SettingsStore",
    "MemorySettingsStore",
    "YamlSettingsStore",
]
