"""
Alert pipeline for the Storm Alert Filter system.

This module owns the fetch/poll lifecycle: it queries the alert source for
the current location, keeps the last good alert list, derives the filtered
and critical views from the current settings and dismissals, and fires the
critical-alert notification at most once per alert id.
"""

import asyncio
import inspect
import time
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional

from ..components.alert_filter import AlertFilterEngine
from ..interfaces import IAlertNotifier, IAlertSource
from ..models.alert import Alert
from ..models.location import MAX_LOCATION_AGE_SECONDS, LocationData
from ..models.settings import AlertSettings
from ..utils.error_handling import (
    AlertFilterError,
    ErrorCategory,
    ErrorSeverity,
    get_error_tracker,
)
from ..utils.logging import get_logger
from .alert_tracker import DismissedAlertTracker, NotificationTracker
from .settings_store import SettingsStore

logger = get_logger("alert.pipeline")

DEFAULT_POLLING_INTERVAL = 5 * 60
DEFAULT_STALE_TIME = 2 * 60


class PipelineState(Enum):
    """Fetch lifecycle states."""

    IDLE = "idle"
    FETCHING = "fetching"
    SETTLED = "settled"
    FAILED = "failed"


class AlertPipeline:
    """
    Polls the alert source and exposes filtered alert views.

    Fetches are tagged with increasing sequence numbers; a result that
    resolves after a newer one has been applied is discarded.
    """

    def __init__(
        self,
        alert_source: IAlertSource,
        settings_store: SettingsStore,
        dismissed_tracker: DismissedAlertTracker,
        notification_tracker: NotificationTracker,
        notifier: Optional[IAlertNotifier] = None,
        filter_engine: Optional[AlertFilterEngine] = None,
        polling_interval: float = DEFAULT_POLLING_INTERVAL,
        stale_time: float = DEFAULT_STALE_TIME,
        max_location_age: float = MAX_LOCATION_AGE_SECONDS,
        clock: Callable[[], float] = time.time,
        on_settled: Optional[Callable[["AlertPipeline"], Any]] = None,
    ):
        """
        Initialize the pipeline.

        Args:
            alert_source: Upstream provider
            settings_store: User preferences
            dismissed_tracker: Dismissed alert ids
            notification_tracker: Ids already announced
            notifier: Sound/toast side effect; None disables announcements
            filter_engine: Filter implementation
            polling_interval: Seconds between automatic fetches
            stale_time: Seconds a result counts as fresh for ensure_fresh()
            max_location_age: Locations older than this are rejected
            clock: Epoch seconds source
            on_settled: Called (sync or async) after each applied success
        """
        self.alert_source = alert_source
        self.settings_store = settings_store
        self.dismissed_tracker = dismissed_tracker
        self.notification_tracker = notification_tracker
        self.notifier = notifier
        self.filter_engine = filter_engine or AlertFilterEngine()
        self.polling_interval = polling_interval
        self.stale_time = stale_time
        self.max_location_age = max_location_age
        self.on_settled = on_settled
        self._clock = clock

        self._location: Optional[LocationData] = None
        self._data_location: Optional[LocationData] = None
        self._all_alerts: List[Alert] = []
        self._error: Optional[Exception] = None
        self._state = PipelineState.IDLE
        self._last_updated: Optional[float] = None

        self._in_flight = 0
        self._next_sequence = 0
        self._applied_sequence = 0

        self.is_polling = False
        self._poll_task: Optional[asyncio.Task] = None

    # Consumer views

    @property
    def settings(self) -> AlertSettings:
        return self.settings_store.get()

    @property
    def all_alerts(self) -> List[Alert]:
        """Unfiltered alerts from the last successful fetch."""
        return list(self._all_alerts)

    @property
    def alerts(self) -> List[Alert]:
        """Alerts passing the current settings and dismissals."""
        return self.filter_engine.apply_filters(
            self._all_alerts, self.settings, self.dismissed_tracker
        )

    @property
    def critical_alerts(self) -> List[Alert]:
        critical, _ = self.filter_engine.partition_critical(self.alerts)
        return critical

    @property
    def is_loading(self) -> bool:
        return self._in_flight > 0

    @property
    def error(self) -> Optional[Exception]:
        """Error from the last applied fetch, cleared by the next success."""
        return self._error

    @property
    def state(self) -> PipelineState:
        if self._in_flight:
            return PipelineState.FETCHING
        return self._state

    @property
    def location(self) -> Optional[LocationData]:
        return self._location

    @property
    def last_updated(self) -> Optional[float]:
        return self._last_updated

    # Mutations

    def update_settings(self, partial: Mapping) -> AlertSettings:
        return self.settings_store.update(partial)

    def dismiss_alert(self, alert_id: Any) -> bool:
        return self.dismissed_tracker.dismiss(alert_id)

    def clear_dismissed(self) -> None:
        self.dismissed_tracker.clear()

    def set_location(self, location: LocationData) -> bool:
        """
        Set the query location without fetching.

        Invalid or stale locations are ignored with a warning.

        Returns:
            True if the location was accepted
        """
        try:
            location.validate()
        except (AttributeError, TypeError, ValueError) as e:
            logger.warning(f"Ignoring invalid location: {e}")
            return False

        if location.is_stale(now=self._clock(), max_age=self.max_location_age):
            logger.warning(
                "Ignoring stale location",
                extra={"age_seconds": round(location.age_seconds(self._clock()))},
            )
            return False

        if not location.same_point(self._location):
            logger.info(
                "Query location changed",
                extra={
                    "latitude": round(location.latitude, 4),
                    "longitude": round(location.longitude, 4),
                },
            )

        self._location = location
        return True

    async def update_location(self, location: LocationData) -> bool:
        """Set the query location and fetch for it."""
        if not self.set_location(location):
            return False
        return await self._fetch()

    # Fetching

    async def tick(self) -> bool:
        """
        Run one poll cycle.

        Returns:
            True if a fetch ran and its result was applied successfully
        """
        if self._location is None:
            logger.debug("No location available, skipping poll")
            return False
        return await self._fetch()

    async def refetch(self) -> bool:
        """Manual refresh; always fetches when a location is set."""
        if self._location is None:
            logger.warning("Cannot refresh alerts without a location")
            return False
        return await self._fetch()

    async def ensure_fresh(self) -> bool:
        """Fetch only if there is no fresh result for the current location."""
        if self._location is None:
            return False

        if (
            self._last_updated is not None
            and self._location.same_point(self._data_location)
            and self._clock() - self._last_updated < self.stale_time
        ):
            logger.debug("Alert data is fresh, skipping fetch")
            return True

        return await self._fetch()

    async def _fetch(self) -> bool:
        location = self._location
        self._next_sequence += 1
        sequence = self._next_sequence
        self._in_flight += 1

        try:
            alerts = await self.alert_source.get_active_alerts(location)
        except Exception as e:
            return self._apply_failure(sequence, e)
        finally:
            self._in_flight -= 1

        if not self._apply_success(sequence, location, alerts):
            return False

        await self._notify_new_critical()
        await self._run_settled_callback()
        return True

    def _is_superseded(self, sequence: int) -> bool:
        if sequence < self._applied_sequence:
            logger.info(
                f"Discarding result of fetch #{sequence}, "
                f"fetch #{self._applied_sequence} already applied"
            )
            return True
        self._applied_sequence = sequence
        return False

    def _apply_success(
        self, sequence: int, location: LocationData, alerts: List[Alert]
    ) -> bool:
        if self._is_superseded(sequence):
            return False

        self._all_alerts = list(alerts)
        self._data_location = location
        self._error = None
        self._state = PipelineState.SETTLED
        self._last_updated = self._clock()

        logger.info(
            "Alerts updated",
            extra={"fetch": sequence, "total": len(self._all_alerts)},
        )
        return True

    def _apply_failure(self, sequence: int, error: Exception) -> bool:
        if self._is_superseded(sequence):
            return False

        # Previous alerts stay visible
        self._error = error
        self._state = PipelineState.FAILED

        category = (
            error.category
            if isinstance(error, AlertFilterError)
            else ErrorCategory.SYSTEM
        )
        get_error_tracker().record_error(
            component="alert.pipeline",
            category=category,
            severity=ErrorSeverity.HIGH,
            message=f"Alert fetch failed: {error}",
            exception=error,
            context={"fetch": sequence, "retained_alerts": len(self._all_alerts)},
        )
        return False

    async def _notify_new_critical(self) -> List[Alert]:
        if not self.settings.enable_sound:
            return []

        new_critical = [
            alert
            for alert in self.critical_alerts
            if not self.notification_tracker.has_notified(alert.id)
        ]
        if not new_critical:
            return []

        # Mark first so a failing side effect cannot cause a repeat
        for alert in new_critical:
            self.notification_tracker.mark_notified(alert.id)

        if self.notifier is not None:
            try:
                await self.notifier.notify_critical(new_critical)
            except Exception as e:
                logger.error(f"Critical alert notification failed: {e}", exc_info=True)

        return new_critical

    async def _run_settled_callback(self) -> None:
        if self.on_settled is None:
            return

        try:
            result = self.on_settled(self)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            logger.error(f"Settled callback failed: {e}", exc_info=True)

    # Polling

    async def start_polling(self) -> None:
        """Start the automatic refresh loop."""
        if self.is_polling:
            logger.warning("Alert polling is already running")
            return

        self.is_polling = True
        logger.info(f"Starting alert polling every {self.polling_interval}s")
        self._poll_task = asyncio.create_task(self._poll_loop())

    async def stop_polling(self) -> None:
        """Stop the automatic refresh loop."""
        if not self.is_polling:
            return

        self.is_polling = False
        logger.info("Stopping alert polling")

        if self._poll_task:
            self._poll_task.cancel()
            try:
                await self._poll_task
            except asyncio.CancelledError:
                pass
            self._poll_task = None

    async def _poll_loop(self) -> None:
        while self.is_polling:
            try:
                await self.tick()
            except Exception as e:
                logger.error(f"Error in polling loop: {e}", exc_info=True)

            await asyncio.sleep(self.polling_interval)

    def get_status(self) -> Dict[str, Any]:
        """Summarize pipeline state for logging and health checks."""
        return {
            "state": self.state.value,
            "is_loading": self.is_loading,
            "is_polling": self.is_polling,
            "error": str(self._error) if self._error else None,
            "all_alerts": len(self._all_alerts),
            "alerts": len(self.alerts),
            "critical_alerts": len(self.critical_alerts),
            "dismissed": len(self.dismissed_tracker),
            "last_updated": (
                datetime.fromtimestamp(self._last_updated).isoformat()
                if self._last_updated is not None
                else None
            ),
            "location": (
                {
                    "latitude": self._location.latitude,
                    "longitude": self._location.longitude,
                }
                if self._location
                else None
            ),
        }
