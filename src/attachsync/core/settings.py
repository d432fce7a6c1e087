"""Settings - persisted per-vault configuration for attachsync.

Settings are stored as YAML at the vault root and exposed as frozen pydantic
models. Every mutation goes through ``SettingsStore.update`` which validates
the new snapshot and writes it to disk immediately.

The loader accepts both snake_case keys and the camelCase keys written by
the Obsidian plugin this tool mirrors, so an existing ``data.json`` payload
can be dropped in unchanged.
"""

import json
import logging
from pathlib import Path
from typing import Any
from uuid import uuid4

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from attachsync.core.config import SETTINGS_FILENAME
from attachsync.core.errors import SettingsError
from attachsync.core.types import LocationMode, ScopeMode

logger = logging.getLogger(__name__)

DEFAULT_NAME_PATTERN = "${filename} ${original}"
DEFAULT_PATH_PATTERN = "./attachments"


def _new_rule_id() -> str:
    return uuid4().hex[:12]


class Rule(BaseModel):
    """Naming and placement policy for a set of file extensions."""

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    id: str = Field(default_factory=_new_rule_id)
    label: str = "New Rule"
    extensions: tuple[str, ...] = ()
    name_pattern: str = Field(default=DEFAULT_NAME_PATTERN, alias="namePattern")
    path_pattern: str = Field(default=DEFAULT_PATH_PATTERN, alias="pathPattern")
    location_mode: LocationMode = Field(
        default=LocationMode.PATTERN, alias="locationMode"
    )

    @field_validator("extensions", mode="before")
    @classmethod
    def _clean_extensions(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = value.split(",")
        if not isinstance(value, (list, tuple, set)):
            return value
        cleaned = []
        for ext in value:
            ext = str(ext).strip().lstrip(".")
            if ext:
                cleaned.append(ext)
        return tuple(cleaned)

    @field_validator("location_mode", mode="before")
    @classmethod
    def _default_location_mode(cls, value: Any) -> Any:
        # Older settings files carry no (or an empty) locationMode
        return value or LocationMode.PATTERN

    def matches(self, extension: str) -> bool:
        """True if this rule lists ``extension`` (case-insensitive)."""
        lowered = extension.lower()
        return any(ext.lower() == lowered for ext in self.extensions)


class Limits(BaseModel):
    """Retry bounds for collision resolution and cache polling."""

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    collision_max_attempts: int = Field(
        default=500, ge=1, alias="collisionMaxAttempts"
    )
    cache_max_retries: int = Field(default=10, ge=0, alias="cacheMaxRetries")
    cache_retry_delay_ms: int = Field(default=100, ge=0, alias="cacheRetryDelayMs")


DEFAULT_RULES = (
    Rule(
        id="default-image",
        label="Images",
        extensions=("png", "jpg", "jpeg", "gif", "webp", "svg", "bmp"),
        name_pattern=DEFAULT_NAME_PATTERN,
        path_pattern="./assets",
        location_mode=LocationMode.PATTERN,
    ),
    Rule(
        id="default-pdf",
        label="PDFs",
        extensions=("pdf",),
        name_pattern=DEFAULT_NAME_PATTERN,
        path_pattern="Documents/Attachments",
        location_mode=LocationMode.PATTERN,
    ),
)


class Settings(BaseModel):
    """Typed configuration loaded from the settings file.

    All fields are optional; anything missing takes its default. Unknown
    keys are ignored so newer settings files still load.
    """

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    scope_mode: ScopeMode = Field(default=ScopeMode.VAULT, alias="scopeMode")
    watched_paths: tuple[str, ...] = Field(
        default=("Projects/Active",), alias="watchedPaths"
    )
    rules: tuple[Rule, ...] = DEFAULT_RULES
    default_name_pattern: str = Field(
        default=DEFAULT_NAME_PATTERN, alias="defaultNamePattern"
    )
    default_path_pattern: str = Field(
        default=DEFAULT_PATH_PATTERN, alias="defaultPathPattern"
    )
    enable_auto_rename: bool = Field(default=True, alias="enableAutoRename")
    debounce_delay_ms: int = Field(default=2000, ge=0, alias="debounceDelay")
    limits: Limits = Field(default_factory=Limits)

    @field_validator("watched_paths", mode="before")
    @classmethod
    def _clean_watched_paths(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = value.splitlines()
        if not isinstance(value, (list, tuple)):
            return value
        return tuple(str(p).strip() for p in value if str(p).strip())

    def rule_by_id(self, rule_id: str) -> Rule | None:
        return next((r for r in self.rules if r.id == rule_id), None)

    def to_data(self) -> dict[str, Any]:
        """Plain-data form used for persistence."""
        return self.model_dump(mode="json")


class SettingsStore:
    """Loads and saves ``Settings`` for one vault.

    Example:
        store = SettingsStore("~/notes")
        settings = store.load()
        store.update(enable_auto_rename=False)
    """

    def __init__(self, vault_root: Path | str, filename: str | None = None):
        """Initialize the store.

        Args:
            vault_root: Vault root directory
            filename: Settings file name or path relative to the vault root
        """
        self.root = Path(vault_root).expanduser().resolve()
        self.path = self.root / (filename or SETTINGS_FILENAME)
        self._settings: Settings | None = None

    @property
    def settings(self) -> Settings:
        """Current snapshot, loading it on first access."""
        if self._settings is None:
            return self.load()
        return self._settings

    @property
    def exists(self) -> bool:
        return self.path.exists()

    def load(self) -> Settings:
        """Read the settings file, merging defaults for missing fields.

        Returns:
            Settings snapshot. Defaults when the file does not exist or is empty.

        Raises:
            SettingsError: If the file is not valid YAML/JSON or fails validation.
        """
        if not self.path.exists():
            logger.debug(f"No settings file at {self.path}, using defaults")
            self._settings = Settings()
            return self._settings

        try:
            text = self.path.read_text(encoding="utf-8")
        except OSError as e:
            raise SettingsError(f"Failed to read {self.path}: {e}") from e

        try:
            if self.path.suffix == ".json":
                raw = json.loads(text) if text.strip() else None
            else:
                raw = yaml.safe_load(text)
        except (yaml.YAMLError, json.JSONDecodeError) as e:
            logger.error(f"Invalid settings file {self.path}: {e}")
            raise SettingsError(f"Invalid settings file {self.path}: {e}") from e

        if raw is None:
            self._settings = Settings()
            return self._settings

        if not isinstance(raw, dict):
            raise SettingsError(
                f"{self.path.name} must be a mapping, got {type(raw).__name__}"
            )

        try:
            self._settings = Settings.model_validate(raw)
        except ValidationError as e:
            raise SettingsError(f"Invalid settings in {self.path}: {e}") from e

        logger.debug(
            f"Settings loaded: scope={self._settings.scope_mode}, "
            f"rules={len(self._settings.rules)}, "
            f"auto_rename={self._settings.enable_auto_rename}"
        )
        return self._settings

    def save(self) -> None:
        """Write the current snapshot to disk."""
        data = self.settings.to_data()
        self.path.parent.mkdir(parents=True, exist_ok=True)
        if self.path.suffix == ".json":
            text = json.dumps(data, indent=2, ensure_ascii=False)
        else:
            text = yaml.safe_dump(data, sort_keys=False, allow_unicode=True)
        self.path.write_text(text, encoding="utf-8")
        logger.debug(f"Settings saved to {self.path}")

    def update(self, **changes: Any) -> Settings:
        """Apply field changes, validate, persist and return the new snapshot.

        Raises:
            SettingsError: If the resulting settings are invalid.
        """
        data = self.settings.model_dump()
        data.update(changes)
        try:
            self._settings = Settings.model_validate(data)
        except ValidationError as e:
            raise SettingsError(f"Invalid settings change: {e}") from e
        self.save()
        return self._settings

    def add_rule(self, rule: Rule) -> Settings:
        return self.update(rules=(*self.settings.rules, rule))

    def remove_rule(self, rule_id: str) -> Settings:
        """Remove a rule by id.

        Raises:
            SettingsError: If no rule has that id.
        """
        remaining = tuple(r for r in self.settings.rules if r.id != rule_id)
        if len(remaining) == len(self.settings.rules):
            raise SettingsError(f"No rule with id {rule_id!r}")
        return self.update(rules=remaining)

    def __repr__(self) -> str:
        return f"SettingsStore({self.path})"
