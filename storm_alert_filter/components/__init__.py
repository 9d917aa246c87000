"""
Core components for the Storm Alert Filter system.

This module contains the components that fetch alerts from the National
Weather Service, filter them and announce critical ones.
"""

from .alert_filter import AlertFilterEngine
from .alert_notifier import (
    AlertNotifier,
    BellSoundPlayer,
    CommandSoundPlayer,
    LoggingToastSink,
    SilentSoundPlayer,
)
from .nws_client import NWSWeatherService

__all__ = [
    "NWSWeatherService",
    "AlertFilterEngine",
    "AlertNotifier",
    "BellSoundPlayer",
    "CommandSoundPlayer",
    "SilentSoundPlayer",
    "LoggingToastSink",
]
