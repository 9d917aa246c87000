"""
Dismissal and notification tracking.

Both trackers hold bounded, insertion-ordered sets of alert ids and persist
them so that dismissals and one-time notifications survive restarts.
"""

import json
from typing import Any, Dict, FrozenSet, List

from ..interfaces import IStateStorage
from ..models.alert import MAX_ALERT_ID_LENGTH
from ..schemas import StoredDismissedAlerts, StoredNotifiedIndex
from ..utils.error_handling import (
    ErrorSeverity,
    InputRejection,
    StorageError,
    get_error_tracker,
)
from ..utils.logging import get_logger
from ..utils.validation import validate_and_sanitize_stored_data

logger = get_logger("alert.tracker")

DISMISSED_STORAGE_KEY = "storm_alert_filter_dismissed_alerts"
NOTIFIED_INDEX_KEY = "storm_alert_filter_notified_index"
NOTIFIED_FLAG_TEMPLATE = "alert_{alert_id}_notified"

MAX_TRACKED_IDS = 1000
RETAINED_ON_OVERFLOW = 900


def check_alert_id(alert_id: Any) -> str:
    """
    Ensure alert_id is a usable identifier.

    Raises:
        InputRejection: If alert_id is not a non-empty string of at most
            MAX_ALERT_ID_LENGTH characters
    """
    if not isinstance(alert_id, str):
        raise InputRejection(f"alert id must be a string, got {type(alert_id).__name__}")

    if not alert_id.strip():
        raise InputRejection("alert id cannot be empty")

    if len(alert_id) > MAX_ALERT_ID_LENGTH:
        raise InputRejection(
            f"alert id too long ({len(alert_id)} > {MAX_ALERT_ID_LENGTH} characters)"
        )

    return alert_id


def _record_storage_failure(message: str, error: StorageError) -> None:
    get_error_tracker().record_error(
        component="alert.tracker",
        category=error.category,
        severity=ErrorSeverity.LOW,
        message=message,
        exception=error,
    )


class DismissedAlertTracker:
    """Alert ids the user has dismissed, oldest first."""

    def __init__(self, storage: IStateStorage):
        """
        Initialize the tracker from persisted state.

        Args:
            storage: Persistence backend
        """
        self.storage = storage
        stored = validate_and_sanitize_stored_data(
            storage, DISMISSED_STORAGE_KEY, StoredDismissedAlerts, None
        )
        # dict keys keep insertion order and drop duplicates
        self._dismissed: Dict[str, None] = (
            dict.fromkeys(stored.root) if stored is not None else {}
        )

        logger.debug(f"Loaded {len(self._dismissed)} dismissed alerts")

    def dismiss(self, alert_id: Any) -> bool:
        """
        Dismiss an alert.

        Invalid ids are ignored with a warning.

        Returns:
            True if alert_id is dismissed after the call
        """
        try:
            check_alert_id(alert_id)
        except InputRejection as e:
            logger.warning(f"Ignoring dismissal: {e}")
            return False

        if alert_id in self._dismissed:
            return True

        self._dismissed[alert_id] = None
        if len(self._dismissed) > MAX_TRACKED_IDS:
            evicted = len(self._dismissed) - RETAINED_ON_OVERFLOW
            self._dismissed = dict.fromkeys(list(self._dismissed)[-RETAINED_ON_OVERFLOW:])
            logger.info(f"Evicted {evicted} oldest dismissed alerts")

        self._save()
        return True

    def is_dismissed(self, alert_id: str) -> bool:
        return alert_id in self._dismissed

    def clear(self) -> None:
        """Forget every dismissal and delete the persisted list."""
        self._dismissed = {}
        try:
            self.storage.remove_item(DISMISSED_STORAGE_KEY)
        except StorageError as e:
            _record_storage_failure("Failed to clear dismissed alerts", e)

    @property
    def dismissed_ids(self) -> FrozenSet[str]:
        return frozenset(self._dismissed)

    def ordered_ids(self) -> List[str]:
        return list(self._dismissed)

    def __contains__(self, alert_id: object) -> bool:
        return alert_id in self._dismissed

    def __len__(self) -> int:
        return len(self._dismissed)

    def _save(self) -> None:
        try:
            self.storage.set_item(DISMISSED_STORAGE_KEY, json.dumps(list(self._dismissed)))
        except StorageError as e:
            _record_storage_failure("Failed to save dismissed alerts", e)


class NotificationTracker:
    """
    One persisted flag per alert id that has already been announced.

    An insertion-ordered index bounds the number of flags; on overflow the
    oldest flags are deleted, keeping the newest RETAINED_ON_OVERFLOW.
    """

    def __init__(self, storage: IStateStorage):
        self.storage = storage
        stored = validate_and_sanitize_stored_data(
            storage, NOTIFIED_INDEX_KEY, StoredNotifiedIndex, None
        )
        self._index: Dict[str, None] = (
            dict.fromkeys(stored.root) if stored is not None else {}
        )

    @staticmethod
    def flag_key(alert_id: str) -> str:
        return NOTIFIED_FLAG_TEMPLATE.format(alert_id=alert_id)

    def has_notified(self, alert_id: str) -> bool:
        """Check whether the notification for alert_id already fired."""
        try:
            return self.storage.get_item(self.flag_key(alert_id)) is not None
        except StorageError as e:
            _record_storage_failure(f"Failed to read notified flag for {alert_id}", e)
            return False

    def mark_notified(self, alert_id: str) -> None:
        """Persist the notified flag for alert_id."""
        try:
            self.storage.set_item(self.flag_key(alert_id), "true")
        except StorageError as e:
            _record_storage_failure(f"Failed to mark {alert_id} as notified", e)
            return

        self._index.pop(alert_id, None)
        self._index[alert_id] = None

        if len(self._index) > MAX_TRACKED_IDS:
            ordered = list(self._index)
            for evicted_id in ordered[:-RETAINED_ON_OVERFLOW]:
                self._remove_flag(evicted_id)
            self._index = dict.fromkeys(ordered[-RETAINED_ON_OVERFLOW:])

        self._save_index()

    def clear(self) -> None:
        """Delete every notified flag and the index."""
        for alert_id in list(self._index):
            self._remove_flag(alert_id)
        self._index = {}
        try:
            self.storage.remove_item(NOTIFIED_INDEX_KEY)
        except StorageError as e:
            _record_storage_failure("Failed to clear notified index", e)

    def __len__(self) -> int:
        return len(self._index)

    def _remove_flag(self, alert_id: str) -> None:
        try:
            self.storage.remove_item(self.flag_key(alert_id))
        except StorageError as e:
            _record_storage_failure(f"Failed to remove notified flag for {alert_id}", e)

    def _save_index(self) -> None:
        try:
            self.storage.set_item(NOTIFIED_INDEX_KEY, json.dumps(list(self._index)))
        except StorageError as e:
            _record_storage_failure("Failed to save notified index", e)
