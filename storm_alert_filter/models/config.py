"""
Configuration models for the system.
"""

from dataclasses import dataclass, field
from typing import List, Optional
from urllib.parse import urlparse

SOUND_MODES = ["bell", "command", "none"]


@dataclass
class NWSConfig:
    """Connection settings for the National Weather Service API."""

    base_url: str = "https://api.weather.gov"
    user_agent: str = "StormAlertFilter/0.1 (alerts@example.com)"
    timeout: int = 30
    max_retries: int = 3

    def validate(self) -> bool:
        """Validate NWS configuration."""
        parsed_url = urlparse(self.base_url)
        if not parsed_url.scheme or not parsed_url.netloc:
            raise ValueError(f"Invalid NWS base URL format: {self.base_url}")

        if parsed_url.scheme not in ["http", "https"]:
            raise ValueError(f"NWS base URL must use HTTP or HTTPS: {self.base_url}")

        # api.weather.gov rejects requests without an identifying User-Agent
        if not self.user_agent or not self.user_agent.strip():
            raise ValueError("NWS user agent cannot be empty")

        if not isinstance(self.timeout, int) or self.timeout <= 0:
            raise ValueError("NWS timeout must be a positive integer")

        if not isinstance(self.max_retries, int) or self.max_retries < 0:
            raise ValueError("NWS max retries must be a non-negative integer")

        return True


@dataclass
class LocationConfig:
    """Fixed query location."""

    latitude: float
    longitude: float
    accuracy: Optional[float] = None

    def validate(self) -> bool:
        """Validate location configuration."""
        for name, value in (("latitude", self.latitude), ("longitude", self.longitude)):
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ValueError(f"Location {name} must be a number")

        if not -90 <= self.latitude <= 90:
            raise ValueError("Location latitude must be between -90 and 90")

        if not -180 <= self.longitude <= 180:
            raise ValueError("Location longitude must be between -180 and 180")

        if self.accuracy is not None and self.accuracy <= 0:
            raise ValueError("Location accuracy must be positive")

        return True


@dataclass
class RateLimitConfig:
    """Outbound request budget per operation and location."""

    max_requests: int = 50
    time_window: float = 60.0

    def validate(self) -> bool:
        """Validate rate limit configuration."""
        if not isinstance(self.max_requests, int) or self.max_requests <= 0:
            raise ValueError("Rate limit max requests must be a positive integer")

        if self.time_window <= 0:
            raise ValueError("Rate limit time window must be positive")

        return True


@dataclass
class PollingConfig:
    """Alert refresh cadence."""

    interval: int = 300
    stale_time: int = 120

    def validate(self) -> bool:
        """Validate polling configuration."""
        if not isinstance(self.interval, int) or self.interval <= 0:
            raise ValueError("Polling interval must be a positive integer")

        if self.interval < 60:
            raise ValueError("Polling interval must be at least 60 seconds")

        if not isinstance(self.stale_time, int) or self.stale_time < 0:
            raise ValueError("Stale time must be a non-negative integer")

        if self.stale_time > self.interval:
            raise ValueError("Stale time cannot exceed the polling interval")

        return True


@dataclass
class NotificationConfig:
    """How critical alerts are announced locally."""

    sound: str = "bell"
    sound_command: List[str] = field(default_factory=list)

    def validate(self) -> bool:
        """Validate notification configuration."""
        if self.sound not in SOUND_MODES:
            raise ValueError(f"Notification sound must be one of: {SOUND_MODES}")

        if self.sound == "command":
            if not self.sound_command:
                raise ValueError(
                    "Sound command required when notification sound is 'command'"
                )

            for part in self.sound_command:
                if not isinstance(part, str) or not part.strip():
                    raise ValueError("Sound command entries must be non-empty strings")

        return True


@dataclass
class Configuration:
    """System configuration."""

    nws: NWSConfig = field(default_factory=NWSConfig)
    location: Optional[LocationConfig] = None
    rate_limit: RateLimitConfig = field(default_factory=RateLimitConfig)
    polling: PollingConfig = field(default_factory=PollingConfig)
    notifications: NotificationConfig = field(default_factory=NotificationConfig)
    state_file: str = "data/state.json"
    log_dir: str = "logs"
    log_level: str = "INFO"

    def validate(self) -> bool:
        """Validate system configuration."""
        if not self.state_file or not self.state_file.strip():
            raise ValueError("State file path cannot be empty")

        if self.log_level.upper() not in [
            "DEBUG",
            "INFO",
            "WARNING",
            "ERROR",
            "CRITICAL",
        ]:
            raise ValueError(f"Invalid log level: {self.log_level}")

        self.nws.validate()
        self.rate_limit.validate()
        self.polling.validate()
        self.notifications.validate()
        if self.location is not None:
            self.location.validate()

        return True
