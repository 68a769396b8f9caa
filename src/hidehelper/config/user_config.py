"""Persisted hide settings.

These are the settings the host UI edits (how many trailing messages stay
visible, per character/group overrides) plus the record of what was last
applied. They live in a small YAML file, separate from the tool config,
because they change while a chat is open.
"""

from pathlib import Path
from typing import Literal, Protocol

import structlog
import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from hidehelper.core.errors import ConfigError

log = structlog.get_logger()

SETTINGS_HEADER = """\
# hide-helper settings
# Written by hide-helper whenever a hide setting is changed or applied.

"""


class AppliedSetting(BaseModel):
    """What the last successful apply did, so it can be replayed."""

    type: Literal["lastN"] = "lastN"
    value: int = Field(ge=0)


class HideSettings(BaseModel):
    """User-facing hide settings."""

    hide_last_n: int = Field(
        default=0,
        description="Keep only the last N messages visible. 0 unhides everything.",
    )
    floors: dict[str, int] = Field(
        default_factory=dict,
        description="Per chat owner (character or group id) override of hide_last_n.",
    )
    last_applied: AppliedSetting | None = None

    @field_validator("hide_last_n")
    @classmethod
    def validate_hide_last_n(cls, v: int) -> int:
        if v < 0:
            raise ValueError(f"hide_last_n must be >= 0, got {v}")
        return v

    @field_validator("floors")
    @classmethod
    def validate_floors(cls, v: dict[str, int]) -> dict[str, int]:
        for owner, floor in v.items():
            if floor < 0:
                raise ValueError(f"floor for {owner!r} must be >= 0, got {floor}")
        return v

    def effective_floor(self, owner: str | None = None) -> int:
        """Hide floor for ``owner``, falling back to the global setting."""
        if owner is not None and owner in self.floors:
            return self.floors[owner]
        return self.hide_last_n


class SettingsStore(Protocol):
    """Load/save hooks for hide settings."""

    def load(self) -> HideSettings: ...

    def save(self, settings: HideSettings) -> None: ...


class MemorySettingsStore:
    """Keeps settings in memory. Used by tests and one-shot CLI runs."""

    def __init__(self, settings: HideSettings | None = None) -> None:
        self._settings = settings or HideSettings()
        self.saves = 0

    def load(self) -> HideSettings:
        return self._settings.model_copy(deep=True)

    def save(self, settings: HideSettings) -> None:
        self._settings = settings.model_copy(deep=True)
        self.saves += 1


class YamlSettingsStore:
    """Persists settings to a YAML file."""

    def __init__(self, path: Path) -> None:
        self.path = path

    def load(self) -> HideSettings:
        return load_hide_settings(self.path)

    def save(self, settings: HideSettings) -> None:
        write_hide_settings(self.path, settings)


def write_hide_settings(path: Path, settings: HideSettings) -> None:
    """Write settings with a header comment."""
    data = settings.model_dump(mode="json")
    content = SETTINGS_HEADER + yaml.dump(data, default_flow_style=False, sort_keys=False)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)
    log.debug("hide_settings_saved", path=str(path))


def load_hide_settings(path: Path) -> HideSettings:
    """Load settings from YAML. A missing file yields defaults."""
    if not path.exists():
        return HideSettings()
    try:
        with path.open() as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError.parse_error(str(path), str(e)) from e
    try:
        return HideSettings.model_validate(data)
    except ValidationError as e:
        err = e.errors()[0]
        field = ".".join(str(loc) for loc in err["loc"])
        raise ConfigError.invalid_value(field, err.get("input"), err["msg"]) from e
