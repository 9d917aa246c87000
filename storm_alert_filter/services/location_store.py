"""
Last-known location persistence.
"""

import json
import time
from typing import Callable, Optional

from ..interfaces import IStateStorage
from ..models.location import MAX_LOCATION_AGE_SECONDS, LocationData
from ..schemas import StoredLocation
from ..utils.error_handling import StorageError
from ..utils.logging import get_logger
from ..utils.validation import validate_and_sanitize_stored_data

logger = get_logger("location.store")

LOCATION_STORAGE_KEY = "storm_alert_filter_location"


class LocationStore:
    """Saves the most recent location fix and restores it while fresh."""

    def __init__(
        self,
        storage: IStateStorage,
        max_age: float = MAX_LOCATION_AGE_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        self.storage = storage
        self.max_age = max_age
        self._clock = clock

    def save(self, location: LocationData) -> bool:
        """
        Persist location.

        Returns:
            True if the location was written
        """
        location.validate()

        payload = {
            "latitude": location.latitude,
            "longitude": location.longitude,
            "timestamp": location.timestamp,
        }
        if location.accuracy is not None:
            payload["accuracy"] = location.accuracy

        try:
            self.storage.set_item(LOCATION_STORAGE_KEY, json.dumps(payload))
        except StorageError as e:
            logger.error("Failed to save location", extra={"error": str(e)})
            return False

        return True

    def load(self) -> Optional[LocationData]:
        """Return the stored location, or None if absent, invalid or stale."""
        stored = validate_and_sanitize_stored_data(
            self.storage, LOCATION_STORAGE_KEY, StoredLocation, None
        )
        if stored is None:
            return None

        location = LocationData(
            latitude=stored.latitude,
            longitude=stored.longitude,
            timestamp=stored.timestamp,
            accuracy=stored.accuracy,
        )

        if location.is_stale(now=self._clock(), max_age=self.max_age):
            logger.info(
                "Stored location is stale, ignoring",
                extra={"age_seconds": round(location.age_seconds(self._clock()))},
            )
            return None

        return location
