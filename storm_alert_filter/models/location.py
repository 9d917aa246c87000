"""
Location data models.
"""

import time
from dataclasses import dataclass
from typing import Optional

# Locations older than this are considered stale
MAX_LOCATION_AGE_SECONDS = 60 * 60


@dataclass(frozen=True)
class LocationData:
    """A point fix used to query alerts; timestamp is epoch seconds."""

    latitude: float
    longitude: float
    timestamp: float
    accuracy: Optional[float] = None

    def validate(self) -> bool:
        """Validate location data."""
        if not -90 <= self.latitude <= 90:
            raise ValueError("Latitude must be between -90 and 90")

        if not -180 <= self.longitude <= 180:
            raise ValueError("Longitude must be between -180 and 180")

        if self.accuracy is not None and self.accuracy <= 0:
            raise ValueError("Accuracy must be positive")

        if self.timestamp <= 0:
            raise ValueError("Timestamp must be positive")

        return True

    def age_seconds(self, now: Optional[float] = None) -> float:
        return (now if now is not None else time.time()) - self.timestamp

    def is_stale(
        self, now: Optional[float] = None, max_age: float = MAX_LOCATION_AGE_SECONDS
    ) -> bool:
        """Check whether the fix is older than max_age seconds."""
        return self.age_seconds(now) > max_age

    def same_point(self, other: Optional["LocationData"]) -> bool:
        """Compare the query point, ignoring accuracy and timestamp."""
        if other is None:
            return False
        return (
            round(self.latitude, 4) == round(other.latitude, 4)
            and round(self.longitude, 4) == round(other.longitude, 4)
        )


def format_coordinate(value: float, axis: str) -> str:
    """Format a coordinate with a hemisphere suffix, e.g. ``40.000000° N``."""
    if axis == "lat":
        direction = "N" if value >= 0 else "S"
    else:
        direction = "E" if value >= 0 else "W"
    return f"{abs(value):.6f}° {direction}"


def describe_accuracy(accuracy: Optional[float]) -> str:
    if not accuracy:
        return "Unknown"

    meters = round(accuracy)
    if accuracy < 100:
        return f"{meters}m (Excellent)"
    if accuracy < 500:
        return f"{meters}m (Good)"
    if accuracy < 1000:
        return f"{meters}m (Fair)"
    return f"{meters}m (Poor)"


def describe_age(timestamp: float, now: Optional[float] = None) -> str:
    """Describe how long ago timestamp was in words."""
    age_minutes = int(((now if now is not None else time.time()) - timestamp) // 60)

    if age_minutes < 1:
        return "Just now"
    if age_minutes < 60:
        return f"{age_minutes} minute{'s' if age_minutes > 1 else ''} ago"

    age_hours = age_minutes // 60
    return f"{age_hours} hour{'s' if age_hours > 1 else ''} ago"
