"""
Configuration management for the Storm Alert Filter.
"""

import json
import os
from typing import Any, Dict, Optional

import yaml

from ..models.config import (
    Configuration,
    LocationConfig,
    NotificationConfig,
    NWSConfig,
    PollingConfig,
    RateLimitConfig,
)


class ConfigurationManager:
    """Manages loading, validation, and reloading of system configuration."""

    def __init__(self, config_path: Optional[str] = None):
        """
        Initialize the configuration manager.

        Args:
            config_path: Path to the configuration file. If None, uses default paths.
        """
        self.config_path = config_path or self._find_config_file()
        self._config: Optional[Configuration] = None
        self._last_modified: Optional[float] = None

    def _find_config_file(self) -> str:
        """Find the configuration file in standard locations."""
        possible_paths = [
            "config/config.yaml",
            "config/config.yml",
            "config/config.json",
            "config.yaml",
            "config.yml",
            "config.json",
        ]

        for path in possible_paths:
            if os.path.exists(path):
                return path

        if os.path.exists("config/config.example.yaml"):
            raise ValueError(
                "No configuration file found. Please copy 'config/config.example.yaml' "
                "to 'config/config.yaml' and set your location."
            )

        raise ValueError(
            "No configuration file found. Please create a configuration file "
            "at one of these locations: " + ", ".join(possible_paths)
        )

    def _read_raw_config(self, config_path: str) -> Dict[str, Any]:
        with open(config_path, "r", encoding="utf-8") as f:
            if config_path.endswith(".json"):
                raw_config = json.load(f)
            else:
                raw_config = yaml.safe_load(f)

        if raw_config is None:
            return {}
        if not isinstance(raw_config, dict):
            raise ValueError("Configuration root must be a mapping")
        return raw_config

    def load_config(self) -> Configuration:
        """
        Load configuration from file.

        Returns:
            Configuration object with validated settings.

        Raises:
            ValueError: If configuration is invalid or file cannot be read.
            FileNotFoundError: If configuration file doesn't exist.
        """
        if not os.path.exists(self.config_path):
            raise FileNotFoundError(f"Configuration file not found: {self.config_path}")

        try:
            raw_config = self._read_raw_config(self.config_path)
            raw_config = self._expand_env_vars(raw_config)

            config = self._parse_config(raw_config)
            config.validate()

            self._config = config
            self._last_modified = os.path.getmtime(self.config_path)

            return config

        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in configuration file: {e}") from e
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in configuration file: {e}") from e
        except (OSError, ValueError, TypeError) as e:
            raise ValueError(f"Error loading configuration: {e}") from e

    def _expand_env_vars(self, obj: Any) -> Any:
        """Recursively expand ``${VAR_NAME}`` values from the environment."""
        if isinstance(obj, dict):
            return {key: self._expand_env_vars(value) for key, value in obj.items()}
        elif isinstance(obj, list):
            return [self._expand_env_vars(item) for item in obj]
        elif isinstance(obj, str):
            if obj.startswith("${") and obj.endswith("}"):
                var_name = obj[2:-1]
                env_value = os.getenv(var_name)
                if env_value is None:
                    raise ValueError(f"Environment variable '{var_name}' not found")
                return env_value
            return obj
        else:
            return obj

    @staticmethod
    def _section(raw_config: Dict[str, Any], name: str) -> Dict[str, Any]:
        section = raw_config.get(name) or {}
        if not isinstance(section, dict):
            raise ValueError(f"Configuration section '{name}' must be a mapping")
        return section

    def _parse_config(self, raw_config: Dict[str, Any]) -> Configuration:
        """Parse raw configuration dictionary into Configuration object."""
        defaults = Configuration()

        nws_data = self._section(raw_config, "nws")
        nws = NWSConfig(
            base_url=nws_data.get("base_url", defaults.nws.base_url),
            user_agent=nws_data.get("user_agent", defaults.nws.user_agent),
            timeout=nws_data.get("timeout", defaults.nws.timeout),
            max_retries=nws_data.get("max_retries", defaults.nws.max_retries),
        )

        location = None
        location_data = self._section(raw_config, "location")
        if location_data:
            try:
                location = LocationConfig(
                    latitude=location_data["latitude"],
                    longitude=location_data["longitude"],
                    accuracy=location_data.get("accuracy"),
                )
            except KeyError as e:
                raise ValueError(f"Missing required configuration key: location.{e.args[0]}") from e

        rate_data = self._section(raw_config, "rate_limit")
        rate_limit = RateLimitConfig(
            max_requests=rate_data.get("max_requests", defaults.rate_limit.max_requests),
            time_window=rate_data.get("time_window", defaults.rate_limit.time_window),
        )

        polling_data = self._section(raw_config, "polling")
        polling = PollingConfig(
            interval=polling_data.get("interval", defaults.polling.interval),
            stale_time=polling_data.get("stale_time", defaults.polling.stale_time),
        )

        notification_data = self._section(raw_config, "notifications")
        notifications = NotificationConfig(
            sound=notification_data.get("sound", defaults.notifications.sound),
            sound_command=list(notification_data.get("sound_command") or []),
        )

        storage_data = self._section(raw_config, "storage")
        logging_data = self._section(raw_config, "logging")

        return Configuration(
            nws=nws,
            location=location,
            rate_limit=rate_limit,
            polling=polling,
            notifications=notifications,
            state_file=storage_data.get("state_file", defaults.state_file),
            log_dir=logging_data.get("log_dir", defaults.log_dir),
            log_level=logging_data.get("log_level", defaults.log_level),
        )

    def get_config(self) -> Configuration:
        """
        Get current configuration, loading if necessary.

        Returns:
            Current configuration object.
        """
        if self._config is None:
            return self.load_config()
        return self._config

    def reload_if_changed(self) -> bool:
        """
        Reload configuration if file has been modified.

        Returns:
            True if configuration was reloaded, False otherwise.
        """
        if not os.path.exists(self.config_path):
            return False

        current_modified = os.path.getmtime(self.config_path)

        if self._last_modified is None or current_modified > self._last_modified:
            try:
                self.load_config()
                return True
            except ValueError:
                # Keep the current config
                return False

        return False

    def validate_config_file(self, config_path: str) -> bool:
        """
        Validate a configuration file without loading it.

        Args:
            config_path: Path to configuration file to validate.

        Returns:
            True if configuration is valid.

        Raises:
            ValueError: If configuration is invalid with detailed error message.
        """
        if not os.path.exists(config_path):
            raise ValueError(f"Configuration file not found: {config_path}")

        try:
            raw_config = self._read_raw_config(config_path)

            # Missing environment variables are not a validation failure
            try:
                raw_config = self._expand_env_vars(raw_config)
            except ValueError:
                pass

            config = self._parse_config(raw_config)
            config.validate()

            return True

        except (OSError, ValueError, TypeError, yaml.YAMLError) as e:
            raise ValueError(f"Configuration validation failed: {e}") from e

    def get_config_template(self) -> Dict[str, Any]:
        """
        Get a template configuration dictionary.

        Returns:
            Dictionary with example configuration structure.
        """
        return {
            "nws": {
                "base_url": "https://api.weather.gov",
                "user_agent": "${NWS_USER_AGENT}",
                "timeout": 30,
                "max_retries": 3,
            },
            "location": {"latitude": 35.4676, "longitude": -97.5164},
            "rate_limit": {"max_requests": 50, "time_window": 60},
            "polling": {"interval": 300, "stale_time": 120},
            "storage": {"state_file": "data/state.json"},
            "notifications": {"sound": "bell", "sound_command": []},
            "logging": {"log_dir": "logs", "log_level": "INFO"},
        }
