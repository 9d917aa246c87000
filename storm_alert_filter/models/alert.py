"""
Weather alert data models for the Storm Alert Filter system.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Tuple

from dateutil import parser as date_parser


class AlertSeverity(Enum):
    """Alert severity levels, ordered minor < moderate < severe < extreme."""

    MINOR = "minor"
    MODERATE = "moderate"
    SEVERE = "severe"
    EXTREME = "extreme"

    @property
    def rank(self) -> int:
        return SEVERITY_RANKS[self]


SEVERITY_RANKS = {
    AlertSeverity.MINOR: 1,
    AlertSeverity.MODERATE: 2,
    AlertSeverity.SEVERE: 3,
    AlertSeverity.EXTREME: 4,
}

CRITICAL_SEVERITIES = frozenset({AlertSeverity.SEVERE, AlertSeverity.EXTREME})


def severity_rank(severity: AlertSeverity) -> int:
    """Return the position of severity in the total order (1-4)."""
    return SEVERITY_RANKS[severity]


class AlertUrgency(Enum):
    """Alert urgency levels."""

    IMMEDIATE = "immediate"
    EXPECTED = "expected"
    FUTURE = "future"
    PAST = "past"


class AlertCertainty(Enum):
    """Alert certainty levels."""

    OBSERVED = "observed"
    LIKELY = "likely"
    POSSIBLE = "possible"
    UNLIKELY = "unlikely"
    UNKNOWN = "unknown"


class AlertCategory(Enum):
    """Hazard categories users can enable or disable."""

    TORNADO = "tornado"
    SEVERE_THUNDERSTORM = "severe_thunderstorm"
    FLASH_FLOOD = "flash_flood"
    WINTER_STORM = "winter_storm"
    OTHER = "other"


class AlertSource(Enum):
    """Upstream authorities an alert can originate from."""

    NWS = "nws"
    OPENWEATHER = "openweather"
    ACCUWEATHER = "accuweather"


# Field length caps applied by the source adapters
MAX_ALERT_ID_LENGTH = 100
MAX_TITLE_LENGTH = 200
MAX_EVENT_LENGTH = 200
MAX_DESCRIPTION_LENGTH = 5000
MAX_INSTRUCTION_LENGTH = 2000
MAX_AREA_LENGTH = 200
MAX_AREAS = 20


@dataclass(frozen=True)
class Coordinates:
    """Query location an alert was fetched for."""

    latitude: float
    longitude: float


@dataclass(frozen=True)
class Alert:
    """Normalized severe-weather alert."""

    id: str
    title: str
    description: str
    severity: AlertSeverity
    urgency: AlertUrgency
    certainty: AlertCertainty
    category: AlertCategory
    areas: Tuple[str, ...]
    effective: str
    source: AlertSource
    event: str = ""
    expires: Optional[str] = None
    onset: Optional[str] = None
    instruction: Optional[str] = None
    coordinates: Optional[Coordinates] = None

    @property
    def is_critical(self) -> bool:
        """Severe and extreme alerts are critical."""
        return self.severity in CRITICAL_SEVERITIES

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        """
        Check whether the alert's expiry time has passed.

        Alerts without a parseable expiry never expire.
        """
        if not self.expires:
            return False

        try:
            expires_at = date_parser.isoparse(self.expires)
        except (ValueError, OverflowError):
            return False

        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)

        now = now or datetime.now(timezone.utc)
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)

        return expires_at < now

    def validate(self) -> bool:
        """Validate alert data."""
        if not isinstance(self.id, str) or not self.id.strip():
            raise ValueError("Alert ID cannot be empty")

        if len(self.id) > MAX_ALERT_ID_LENGTH:
            raise ValueError(
                f"Alert ID too long (max {MAX_ALERT_ID_LENGTH} characters)"
            )

        if len(self.title) > MAX_TITLE_LENGTH:
            raise ValueError(f"Alert title too long (max {MAX_TITLE_LENGTH} characters)")

        if len(self.description) > MAX_DESCRIPTION_LENGTH:
            raise ValueError(
                f"Alert description too long (max {MAX_DESCRIPTION_LENGTH} characters)"
            )

        if self.instruction is not None and len(self.instruction) > MAX_INSTRUCTION_LENGTH:
            raise ValueError(
                f"Alert instruction too long (max {MAX_INSTRUCTION_LENGTH} characters)"
            )

        if not self.effective:
            raise ValueError("Alert effective time cannot be empty")

        if len(self.areas) > MAX_AREAS:
            raise ValueError(f"Too many alert areas (max {MAX_AREAS})")

        if any(not area for area in self.areas):
            raise ValueError("Alert areas cannot contain empty entries")

        for field_name, enum_type in (
            ("severity", AlertSeverity),
            ("urgency", AlertUrgency),
            ("certainty", AlertCertainty),
            ("category", AlertCategory),
            ("source", AlertSource),
        ):
            if not isinstance(getattr(self, field_name), enum_type):
                raise ValueError(f"{field_name} must be a {enum_type.__name__} enum")

        if self.coordinates is not None:
            if not -90 <= self.coordinates.latitude <= 90:
                raise ValueError("Latitude must be between -90 and 90")
            if not -180 <= self.coordinates.longitude <= 180:
                raise ValueError("Longitude must be between -180 and 180")

        return True
