"""
Service layer for the Storm Alert Filter system.

This module contains the stateful services: persisted settings, dismissal
and notification tracking, the last known location and the alert pipeline
that ties them together.
"""

from .alert_pipeline import AlertPipeline, PipelineState
from .alert_tracker import DismissedAlertTracker, NotificationTracker
from .config_manager import ConfigurationManager
from .location_store import LocationStore
from .settings_store import SettingsStore
from .state_storage import FileStateStorage, InMemoryStateStorage

__all__ = [
    "AlertPipeline",
    "PipelineState",
    "ConfigurationManager",
    "DismissedAlertTracker",
    "NotificationTracker",
    "LocationStore",
    "SettingsStore",
    "FileStateStorage",
    "InMemoryStateStorage",
]
