"""
Main application orchestrator for the Storm Alert Filter system.

This module wires the configured components together, runs the alert
polling loop, watches the configuration file for changes and shuts
everything down cleanly on a signal.
"""

import asyncio
import signal
import sys
import time
from datetime import datetime
from typing import Any, Dict, Optional

from .components.alert_notifier import (
    AlertNotifier,
    LoggingToastSink,
    create_sound_player,
)
from .components.nws_client import NWSWeatherService
from .interfaces import IConfigurationManager
from .models.config import Configuration
from .models.location import (
    LocationData,
    describe_accuracy,
    describe_age,
    format_coordinate,
)
from .services.alert_pipeline import AlertPipeline
from .services.alert_tracker import DismissedAlertTracker, NotificationTracker
from .services.config_manager import ConfigurationManager
from .services.location_store import LocationStore
from .services.settings_store import SettingsStore
from .services.state_storage import FileStateStorage
from .utils.error_handling import (
    ErrorCategory,
    ErrorSeverity,
    get_degradation_manager,
    get_error_tracker,
    with_error_handling,
)
from .utils.logging import LoggingManager, get_logger, setup_logging

CONFIG_CHECK_INTERVAL = 30


class ApplicationOrchestrator:
    """
    Coordinates the alert pipeline and its collaborators.

    Owns component lifecycle, configuration reloads and graceful shutdown.
    """

    def __init__(self, config_path: Optional[str] = None):
        """
        Initialize the application orchestrator.

        Args:
            config_path: Path to configuration file. If None, uses default paths.
        """
        self._logging_manager: LoggingManager = setup_logging(log_to_files=False)
        self.logger = get_logger("orchestrator")

        self.config_path = config_path
        self._running = False
        self._shutdown_event = asyncio.Event()

        self.error_tracker = get_error_tracker()
        self.degradation_manager = get_degradation_manager()

        self._config_manager: Optional[IConfigurationManager] = None
        self._config: Optional[Configuration] = None
        self._alert_source: Optional[NWSWeatherService] = None
        self._location_store: Optional[LocationStore] = None
        self._pipeline: Optional[AlertPipeline] = None
        self._startup_time: Optional[datetime] = None

        self._setup_signal_handlers()

    @property
    def pipeline(self) -> Optional[AlertPipeline]:
        return self._pipeline

    def _setup_signal_handlers(self) -> None:
        """Setup signal handlers for graceful shutdown."""
        signal.signal(signal.SIGINT, self._signal_handler)
        if sys.platform != "win32":
            signal.signal(signal.SIGTERM, self._signal_handler)
        else:
            signal.signal(signal.SIGBREAK, self._signal_handler)

    def _signal_handler(self, signum: int, frame) -> None:
        """Handle shutdown signals."""
        self.logger.info(
            "Received shutdown signal, initiating graceful shutdown",
            extra={"signal": signum},
        )
        asyncio.create_task(self.shutdown())

    @with_error_handling(
        component="orchestrator",
        category=ErrorCategory.SYSTEM,
        severity=ErrorSeverity.CRITICAL,
        fallback_value=False,
        suppress_exceptions=True,
    )
    async def initialize(self) -> bool:
        """
        Load configuration and build all components.

        Returns:
            True if initialization succeeded
        """
        self.logger.info("Initializing Storm Alert Filter")
        self._startup_time = datetime.now()

        try:
            self._config_manager = ConfigurationManager(self.config_path)
            self._config = self._config_manager.load_config()
        except (ValueError, FileNotFoundError) as e:
            self.logger.error(f"Failed to load configuration: {e}")
            return False

        self._logging_manager = setup_logging(
            log_dir=self._config.log_dir, log_level=self._config.log_level
        )
        self.logger = get_logger("orchestrator")

        self._build_components(self._config)

        location = self._resolve_location(self._config)
        if location is None:
            self.logger.warning(
                "No location configured and no recent stored location; "
                "polling will idle until one is set"
            )
        else:
            self._pipeline.set_location(location)

        self.logger.info("System initialization complete")
        return True

    def _build_components(self, config: Configuration) -> None:
        storage = FileStateStorage(config.state_file)

        notifier = AlertNotifier(
            sound_player=create_sound_player(config.notifications),
            toast_sink=LoggingToastSink(),
        )
        settings_store = SettingsStore(
            storage,
            error_callback=lambda message: notifier.notify_error("Error", message),
        )

        self._alert_source = NWSWeatherService.from_config(config.nws, config.rate_limit)
        self._location_store = LocationStore(storage)
        self._pipeline = AlertPipeline(
            alert_source=self._alert_source,
            settings_store=settings_store,
            dismissed_tracker=DismissedAlertTracker(storage),
            notification_tracker=NotificationTracker(storage),
            notifier=notifier,
            polling_interval=config.polling.interval,
            stale_time=config.polling.stale_time,
            on_settled=self._on_alerts_settled,
        )

    def _resolve_location(self, config: Configuration) -> Optional[LocationData]:
        """Prefer the configured location; fall back to the stored one."""
        if config.location is not None:
            location = LocationData(
                latitude=config.location.latitude,
                longitude=config.location.longitude,
                timestamp=time.time(),
                accuracy=config.location.accuracy,
            )
            self._location_store.save(location)
        else:
            location = self._location_store.load()

        if location is not None:
            self.logger.info(
                f"Monitoring alerts at {format_coordinate(location.latitude, 'lat')}, "
                f"{format_coordinate(location.longitude, 'lon')}",
                extra={
                    "accuracy": describe_accuracy(location.accuracy),
                    "fixed": describe_age(location.timestamp),
                },
            )

        return location

    def _on_alerts_settled(self, pipeline: AlertPipeline) -> None:
        alerts = pipeline.alerts
        critical_ids = {alert.id for alert in pipeline.critical_alerts}

        self.logger.info(
            f"{len(alerts)} alerts shown ({len(critical_ids)} critical) "
            f"of {len(pipeline.all_alerts)} active"
        )
        for alert in alerts:
            self.logger.info(
                alert.title,
                extra={
                    "id": alert.id,
                    "severity": alert.severity.value,
                    "category": alert.category.value,
                    "critical": alert.id in critical_ids,
                    "areas": list(alert.areas),
                    "expires": alert.expires,
                },
            )

    async def _log_current_conditions(self) -> None:
        location = self._pipeline.location
        if location is None:
            return

        conditions = await self._alert_source.get_current_conditions(location)
        if conditions is not None:
            self.logger.info(f"Current conditions: {conditions.summary()}")

    async def start(self) -> None:
        """Start polling and watch configuration until shutdown."""
        if self._running:
            self.logger.warning("System is already running")
            return

        try:
            self._running = True
            self.logger.info("Starting alert monitoring...")

            await self._log_current_conditions()
            await self._pipeline.start_polling()

            while self._running and not self._shutdown_event.is_set():
                try:
                    await asyncio.wait_for(
                        self._shutdown_event.wait(), timeout=CONFIG_CHECK_INTERVAL
                    )
                except asyncio.TimeoutError:
                    await self._check_config_reload()

        except Exception as e:
            self.logger.error(f"Fatal error in main loop: {e}", exc_info=True)
        finally:
            self._running = False

    async def _check_config_reload(self) -> None:
        """Check if configuration needs to be reloaded."""
        if not self._config_manager.reload_if_changed():
            return

        self.logger.info("Configuration reloaded")
        await self._update_components_config(self._config_manager.get_config())

    async def _update_components_config(self, new_config: Configuration) -> None:
        """Apply a reloaded configuration to running components."""
        if new_config.log_level != self._config.log_level:
            self._logging_manager.set_log_level(new_config.log_level)

        if new_config.polling != self._config.polling:
            self._pipeline.polling_interval = new_config.polling.interval
            self._pipeline.stale_time = new_config.polling.stale_time
            self.logger.info(
                "Polling settings updated",
                extra={
                    "interval": new_config.polling.interval,
                    "stale_time": new_config.polling.stale_time,
                },
            )

        if new_config.location != self._config.location and new_config.location:
            location = self._resolve_location(new_config)
            await self._pipeline.update_location(location)

        if (
            new_config.nws != self._config.nws
            or new_config.rate_limit != self._config.rate_limit
        ):
            self.logger.warning(
                "NWS and rate limit changes take effect after a restart"
            )

        self._config = new_config

    async def shutdown(self) -> None:
        """Gracefully shutdown the system."""
        if self._shutdown_event.is_set():
            return

        self.logger.info("Initiating graceful shutdown...")
        self._running = False
        self._shutdown_event.set()

        if self._pipeline:
            await self._pipeline.stop_polling()
            self.logger.info("Alert polling stopped", extra=self._pipeline.get_status())

        if self._alert_source:
            self._alert_source.close()

        uptime = datetime.now() - self._startup_time if self._startup_time else None
        self.logger.info(f"System shutdown complete. Uptime: {uptime}")

    def get_system_status(self) -> Dict[str, Any]:
        """Get current system status information."""
        return {
            "running": self._running,
            "startup_time": (
                self._startup_time.isoformat() if self._startup_time else None
            ),
            "uptime": (
                str(datetime.now() - self._startup_time)
                if self._startup_time
                else None
            ),
            "config_loaded": self._config is not None,
            "pipeline": self._pipeline.get_status() if self._pipeline else None,
            "degraded_components": self.degradation_manager.get_all_degraded(),
            "errors": self.error_tracker.get_error_stats(),
        }

    async def run(self) -> None:
        """Run the complete application lifecycle."""
        try:
            if not await self.initialize():
                self.logger.error("System initialization failed")
                return

            await self.start()

        except KeyboardInterrupt:
            self.logger.info("Received keyboard interrupt")
        finally:
            await self.shutdown()
