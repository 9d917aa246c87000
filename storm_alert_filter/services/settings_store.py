"""
Alert settings store.

Holds the user's alert preferences, restores them from validated storage
at start-up and persists them after every partial update. The in-memory
value is authoritative: a failed write is reported but never rolled back.
"""

import json
from collections.abc import Iterable, Mapping
from dataclasses import replace
from typing import Any, Callable, Optional

from ..interfaces import IStateStorage
from ..models.alert import AlertCategory, AlertSeverity
from ..models.settings import (
    DEFAULT_ALERT_SETTINGS,
    DEFAULT_RADIUS_MILES,
    MAX_RADIUS_MILES,
    MIN_RADIUS_MILES,
    AlertSettings,
)
from ..schemas import StoredAlertSettings
from ..utils.error_handling import (
    ErrorSeverity,
    InputRejection,
    StorageError,
    ValidationError,
    get_error_tracker,
)
from ..utils.logging import get_logger
from ..utils.validation import (
    sanitize_number,
    validate,
    validate_and_sanitize_stored_data,
)

logger = get_logger("settings.store")

SETTINGS_STORAGE_KEY = "storm_alert_filter_alert_settings"


class SettingsStore:
    """Owns the current AlertSettings and their persisted copy."""

    UPDATABLE_FIELDS = (
        "radius",
        "enabled_categories",
        "enable_sound",
        "enable_push",
        "severity_threshold",
    )

    def __init__(
        self,
        storage: IStateStorage,
        error_callback: Optional[Callable[[str], None]] = None,
    ):
        """
        Initialize the settings store.

        Args:
            storage: Persistence backend
            error_callback: Receives a user-facing message when saving fails
        """
        self.storage = storage
        self.error_callback = error_callback
        self._settings = self._load_settings()

        logger.info(
            "Settings loaded",
            extra={"settings": self._settings.to_storage_dict()},
        )

    def _load_settings(self) -> AlertSettings:
        stored = validate_and_sanitize_stored_data(
            self.storage, SETTINGS_STORAGE_KEY, StoredAlertSettings, None
        )
        if stored is None:
            return DEFAULT_ALERT_SETTINGS

        defaults = DEFAULT_ALERT_SETTINGS
        categories = defaults.enabled_categories
        if stored.enabled_categories is not None:
            # Ordered list on disk, deduplicated into a set on load
            categories = frozenset(
                AlertCategory(name) for name in dict.fromkeys(stored.enabled_categories)
            )

        return AlertSettings(
            radius=defaults.radius if stored.radius is None else stored.radius,
            enabled_categories=categories,
            enable_sound=(
                defaults.enable_sound
                if stored.enable_sound is None
                else stored.enable_sound
            ),
            enable_push=(
                defaults.enable_push if stored.enable_push is None else stored.enable_push
            ),
            severity_threshold=(
                defaults.severity_threshold
                if stored.severity_threshold is None
                else AlertSeverity(stored.severity_threshold)
            ),
        )

    def get(self) -> AlertSettings:
        """Return the current settings."""
        return self._settings

    def update(self, partial: Mapping) -> AlertSettings:
        """
        Merge a partial settings mapping into the current settings.

        Malformed entries are dropped with a warning; the remaining changes
        are applied and persisted.

        Args:
            partial: Mapping of field name to new value

        Returns:
            The settings after the merge
        """
        if not isinstance(partial, Mapping):
            logger.warning(
                "Ignoring settings update that is not a mapping",
                extra={"type": type(partial).__name__},
            )
            return self._settings

        changes = {}
        for name, value in partial.items():
            try:
                changes[name] = self._coerce_field(name, value)
            except InputRejection as e:
                logger.warning(
                    f"Ignoring settings change: {e}", extra={"field": str(name)}
                )

        if not changes:
            return self._settings

        self._settings = replace(self._settings, **changes)
        logger.info("Settings updated", extra={"changed": sorted(changes)})

        self._persist(self._settings)
        return self._settings

    def _coerce_field(self, name: Any, value: Any) -> Any:
        if name not in self.UPDATABLE_FIELDS:
            raise InputRejection(f"unknown setting {name!r}")

        if name == "radius":
            return sanitize_number(
                value, DEFAULT_RADIUS_MILES, MIN_RADIUS_MILES, MAX_RADIUS_MILES
            )

        if name in ("enable_sound", "enable_push"):
            if not isinstance(value, bool):
                raise InputRejection(f"{name} must be a boolean")
            return value

        if name == "severity_threshold":
            try:
                return AlertSeverity(value)
            except ValueError:
                raise InputRejection(f"unknown severity {value!r}") from None

        if isinstance(value, (str, bytes)) or not isinstance(value, Iterable):
            raise InputRejection("enabled_categories must be a collection")

        try:
            return frozenset(AlertCategory(item) for item in value)
        except ValueError:
            raise InputRejection(f"unknown category in {value!r}") from None

    def _persist(self, settings: AlertSettings) -> None:
        payload = settings.to_storage_dict()
        try:
            validate(payload, StoredAlertSettings)
            self.storage.set_item(SETTINGS_STORAGE_KEY, json.dumps(payload))
        except (ValidationError, StorageError) as e:
            get_error_tracker().record_error(
                component="settings.store",
                category=e.category,
                severity=ErrorSeverity.MEDIUM,
                message=f"Failed to save alert settings: {e}",
                exception=e,
            )
            if self.error_callback is not None:
                self.error_callback("Failed to save alert settings")
