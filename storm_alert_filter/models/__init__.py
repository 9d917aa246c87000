"""
Data models for the Storm Alert Filter system.

This module contains all data classes and type definitions used throughout
the application for representing alerts, user settings, locations,
observations and configuration.
"""

from .alert import (
    Alert,
    AlertCategory,
    AlertCertainty,
    AlertSeverity,
    AlertSource,
    AlertUrgency,
    Coordinates,
    severity_rank,
)
from .conditions import WeatherConditions
from .config import (
    Configuration,
    LocationConfig,
    NotificationConfig,
    NWSConfig,
    PollingConfig,
    RateLimitConfig,
)
from .location import LocationData
from .notification import ToastNotification
from .settings import DEFAULT_ALERT_SETTINGS, AlertSettings

__all__ = [
    "Alert",
    "AlertCategory",
    "AlertCertainty",
    "AlertSeverity",
    "AlertSource",
    "AlertUrgency",
    "Coordinates",
    "severity_rank",
    "WeatherConditions",
    "Configuration",
    "LocationConfig",
    "NotificationConfig",
    "NWSConfig",
    "PollingConfig",
    "RateLimitConfig",
    "LocationData",
    "ToastNotification",
    "AlertSettings",
    "DEFAULT_ALERT_SETTINGS",
]
