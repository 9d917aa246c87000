"""
Structured logging utilities for the Storm Alert Filter system.

This module configures the ``storm_alert_filter`` logger tree with console
and rotating file output, and hands out component loggers that emit
JSON-structured messages.
"""

import json
import logging
import logging.handlers
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

ROOT_LOGGER_NAME = "storm_alert_filter"

# Components that get their own log file in addition to the main log
COMPONENT_LOG_FILES = [
    "nws.client",
    "alert.pipeline",
    "alert.notifier",
    "settings.store",
    "alert.tracker",
    "orchestrator",
]


class ComponentLogger:
    """
    Structured logger for system components.

    Every message is serialized as a JSON document carrying the component
    name, a timestamp and any extra context.
    """

    def __init__(
        self, component_name: str, extra_context: Optional[Dict[str, Any]] = None
    ):
        """
        Initialize component logger.

        Args:
            component_name: Name of the component (e.g. 'nws.client')
            extra_context: Additional context to include in all log messages
        """
        self.component_name = component_name
        self.extra_context = extra_context or {}
        self.logger = logging.getLogger(f"{ROOT_LOGGER_NAME}.{component_name}")

    def _format_message(
        self, message: str, extra: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        log_data = {
            "timestamp": datetime.now().isoformat(),
            "component": self.component_name,
            "message": message,
            **self.extra_context,
        }

        if extra:
            log_data.update(extra)

        return log_data

    def _emit(
        self,
        level: int,
        message: str,
        extra: Optional[Dict[str, Any]] = None,
        exc_info: bool = False,
    ) -> None:
        log_data = self._format_message(message, extra)
        if exc_info:
            log_data["exception"] = True
        self.logger.log(level, json.dumps(log_data, default=str), exc_info=exc_info)

    def debug(self, message: str, extra: Optional[Dict[str, Any]] = None):
        """Log debug message."""
        self._emit(logging.DEBUG, message, extra)

    def info(self, message: str, extra: Optional[Dict[str, Any]] = None):
        """Log info message."""
        self._emit(logging.INFO, message, extra)

    def warning(self, message: str, extra: Optional[Dict[str, Any]] = None):
        """Log warning message."""
        self._emit(logging.WARNING, message, extra)

    def error(
        self,
        message: str,
        extra: Optional[Dict[str, Any]] = None,
        exc_info: bool = False,
    ):
        """Log error message."""
        self._emit(logging.ERROR, message, extra, exc_info)

    def critical(
        self,
        message: str,
        extra: Optional[Dict[str, Any]] = None,
        exc_info: bool = False,
    ):
        """Log critical message."""
        self._emit(logging.CRITICAL, message, extra, exc_info)


class LoggingManager:
    """
    Centralized logging configuration and management.

    Handles log file rotation, formatting, and component-specific loggers.
    """

    def __init__(
        self,
        log_dir: str = "logs",
        log_level: str = "INFO",
        log_to_files: bool = True,
    ):
        """
        Initialize logging manager.

        Args:
            log_dir: Directory for log files
            log_level: Default log level
            log_to_files: Whether rotating file handlers are attached
        """
        self.log_dir = Path(log_dir)
        self.log_level = getattr(logging, log_level.upper())
        self.log_to_files = log_to_files
        self.component_loggers: Dict[str, ComponentLogger] = {}

        if self.log_to_files:
            self.log_dir.mkdir(parents=True, exist_ok=True)

        self._setup_logging()

    def _setup_logging(self):
        """Setup logging configuration with structured output."""
        formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        )

        root_logger = logging.getLogger(ROOT_LOGGER_NAME)
        root_logger.setLevel(self.log_level)
        root_logger.handlers.clear()

        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(self.log_level)
        console_handler.setFormatter(formatter)
        root_logger.addHandler(console_handler)

        if not self.log_to_files:
            return

        main_handler = logging.handlers.RotatingFileHandler(
            self.log_dir / "storm_alert_filter.log",
            maxBytes=10 * 1024 * 1024,  # 10MB
            backupCount=5,
        )
        main_handler.setLevel(self.log_level)
        main_handler.setFormatter(formatter)
        root_logger.addHandler(main_handler)

        error_handler = logging.handlers.RotatingFileHandler(
            self.log_dir / "errors.log",
            maxBytes=5 * 1024 * 1024,  # 5MB
            backupCount=3,
        )
        error_handler.setLevel(logging.ERROR)
        error_handler.setFormatter(formatter)
        root_logger.addHandler(error_handler)

        self._setup_component_loggers()

    def _setup_component_loggers(self):
        """Setup component-specific log files."""
        for component in COMPONENT_LOG_FILES:
            component_logger = logging.getLogger(f"{ROOT_LOGGER_NAME}.{component}")
            component_logger.handlers.clear()

            component_handler = logging.handlers.RotatingFileHandler(
                self.log_dir / f"{component.replace('.', '_')}.log",
                maxBytes=5 * 1024 * 1024,  # 5MB
                backupCount=2,
            )
            component_handler.setLevel(self.log_level)
            component_handler.setFormatter(
                logging.Formatter("%(asctime)s - %(levelname)s - %(message)s")
            )
            component_logger.addHandler(component_handler)

    def get_component_logger(
        self, component_name: str, extra_context: Optional[Dict[str, Any]] = None
    ) -> ComponentLogger:
        """
        Get or create a component logger.

        Args:
            component_name: Name of the component
            extra_context: Additional context for all log messages

        Returns:
            ComponentLogger instance
        """
        cache_key = f"{component_name}_{hash(str(extra_context))}"

        if cache_key not in self.component_loggers:
            self.component_loggers[cache_key] = ComponentLogger(
                component_name, extra_context
            )

        return self.component_loggers[cache_key]

    def set_log_level(self, level: str):
        """Set log level for all loggers except the error log."""
        log_level = getattr(logging, level.upper())
        self.log_level = log_level

        root_logger = logging.getLogger(ROOT_LOGGER_NAME)
        root_logger.setLevel(log_level)

        for handler in root_logger.handlers:
            if "errors.log" in str(getattr(handler, "baseFilename", "")):
                continue
            handler.setLevel(log_level)

    def get_log_stats(self) -> Dict[str, Any]:
        """Get logging statistics."""
        stats = {
            "log_directory": str(self.log_dir),
            "log_level": logging.getLevelName(self.log_level),
            "component_loggers": len(self.component_loggers),
            "log_files": [],
        }

        if not self.log_to_files:
            return stats

        for log_file in self.log_dir.glob("*.log"):
            try:
                file_stats = log_file.stat()
            except OSError:
                continue
            stats["log_files"].append(
                {
                    "name": log_file.name,
                    "size_bytes": file_stats.st_size,
                    "modified": datetime.fromtimestamp(
                        file_stats.st_mtime
                    ).isoformat(),
                }
            )

        return stats


# Global logging manager instance
_logging_manager: Optional[LoggingManager] = None


def setup_logging(
    log_dir: str = "logs", log_level: str = "INFO", log_to_files: bool = True
) -> LoggingManager:
    """
    Setup global logging configuration.

    Args:
        log_dir: Directory for log files
        log_level: Default log level
        log_to_files: Whether rotating file handlers are attached

    Returns:
        LoggingManager instance
    """
    global _logging_manager
    _logging_manager = LoggingManager(log_dir, log_level, log_to_files)
    return _logging_manager


def get_logger(
    component_name: str, extra_context: Optional[Dict[str, Any]] = None
) -> ComponentLogger:
    """
    Get a component logger.

    Falls back to console-only logging when ``setup_logging`` has not run yet.
    """
    if _logging_manager is None:
        setup_logging(log_to_files=False)

    return _logging_manager.get_component_logger(component_name, extra_context)


def get_logging_stats() -> Dict[str, Any]:
    """Get logging statistics."""
    if _logging_manager is None:
        return {"error": "Logging not initialized"}

    return _logging_manager.get_log_stats()
