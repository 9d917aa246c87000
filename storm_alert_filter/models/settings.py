"""
User alert preference models.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Iterable, List

from .alert import AlertCategory, AlertSeverity

MIN_RADIUS_MILES = 1
MAX_RADIUS_MILES = 1000
DEFAULT_RADIUS_MILES = 25

DEFAULT_ENABLED_CATEGORIES = frozenset(
    {
        AlertCategory.TORNADO,
        AlertCategory.SEVERE_THUNDERSTORM,
        AlertCategory.FLASH_FLOOD,
    }
)


def ordered_categories(categories: Iterable[AlertCategory]) -> List[AlertCategory]:
    """Return categories in declaration order, without duplicates."""
    members = set(categories)
    return [category for category in AlertCategory if category in members]


@dataclass(frozen=True)
class AlertSettings:
    """User preferences driving alert filtering and notification."""

    radius: float = DEFAULT_RADIUS_MILES
    enabled_categories: FrozenSet[AlertCategory] = field(
        default=DEFAULT_ENABLED_CATEGORIES
    )
    enable_sound: bool = True
    enable_push: bool = True
    severity_threshold: AlertSeverity = AlertSeverity.MODERATE

    def validate(self) -> bool:
        """Validate alert settings."""
        if isinstance(self.radius, bool) or not isinstance(self.radius, (int, float)):
            raise ValueError("radius must be a number")

        if not (MIN_RADIUS_MILES <= self.radius <= MAX_RADIUS_MILES):
            raise ValueError(
                f"radius must be between {MIN_RADIUS_MILES} and {MAX_RADIUS_MILES} miles"
            )

        if not isinstance(self.enabled_categories, frozenset):
            raise ValueError("enabled_categories must be a frozenset")

        for category in self.enabled_categories:
            if not isinstance(category, AlertCategory):
                raise ValueError("enabled_categories must contain AlertCategory members")

        if not isinstance(self.enable_sound, bool):
            raise ValueError("enable_sound must be a boolean")

        if not isinstance(self.enable_push, bool):
            raise ValueError("enable_push must be a boolean")

        if not isinstance(self.severity_threshold, AlertSeverity):
            raise ValueError("severity_threshold must be an AlertSeverity enum")

        return True

    def to_storage_dict(self) -> Dict[str, Any]:
        """Serialize for persistence; the category set becomes an ordered list."""
        return {
            "radius": self.radius,
            "enabled_categories": [
                category.value for category in ordered_categories(self.enabled_categories)
            ],
            "enable_sound": self.enable_sound,
            "enable_push": self.enable_push,
            "severity_threshold": self.severity_threshold.value,
        }


DEFAULT_ALERT_SETTINGS = AlertSettings()
