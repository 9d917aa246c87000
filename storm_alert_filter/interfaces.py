"""
Protocol interfaces for the Storm Alert Filter system.

This module defines the protocol interfaces that establish system
boundaries and enable dependency injection throughout the application.
"""

from typing import TYPE_CHECKING, Iterable, List, Optional, Protocol

from .models.alert import Alert
from .models.conditions import WeatherConditions
from .models.location import LocationData
from .models.notification import ToastNotification

if TYPE_CHECKING:
    from .models.config import Configuration


class IStateStorage(Protocol):
    """Protocol for string key/value persistence."""

    def get_item(self, key: str) -> Optional[str]:
        """Return the stored value for key, or None if absent."""
        ...

    def set_item(self, key: str, value: str) -> None:
        """Store value under key."""
        ...

    def remove_item(self, key: str) -> None:
        """Delete key; missing keys are ignored."""
        ...

    def keys(self) -> List[str]:
        """List stored keys."""
        ...


class IAlertSource(Protocol):
    """Protocol for upstream weather alert providers."""

    async def get_active_alerts(self, location: LocationData) -> List[Alert]:
        """Fetch active alerts for a location; failures propagate."""
        ...

    async def get_current_conditions(
        self, location: LocationData
    ) -> Optional[WeatherConditions]:
        """Fetch the latest observation near a location, or None."""
        ...


class ISoundPlayer(Protocol):
    """Protocol for audible alert playback."""

    async def play(self) -> None:
        """Play the alert sound once."""
        ...


class IToastSink(Protocol):
    """Protocol for transient notification display."""

    def show(self, toast: ToastNotification) -> None:
        """Display a toast notification."""
        ...


class IAlertNotifier(Protocol):
    """Protocol for the critical alert side effect."""

    async def notify_critical(self, alerts: Iterable[Alert]) -> List[ToastNotification]:
        """Announce newly observed critical alerts."""
        ...

    def notify_error(self, title: str, description: str) -> None:
        """Surface a transient error to the user."""
        ...


class IConfigurationManager(Protocol):
    """Protocol for managing system configuration."""

    def load_config(self) -> "Configuration":
        """Load configuration from file."""
        ...

    def get_config(self) -> "Configuration":
        """Get current configuration, loading if necessary."""
        ...

    def reload_if_changed(self) -> bool:
        """Reload configuration if the file changed."""
        ...
