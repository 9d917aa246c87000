"""
Critical alert notification for the Storm Alert Filter system.

This module plays an audible cue and emits toast notifications when new
critical alerts arrive. Every side effect is best effort: failures are
recorded and logged but never propagate to the pipeline.
"""

import asyncio
import sys
from typing import Iterable, List, Optional, Sequence, TextIO

from ..interfaces import ISoundPlayer, IToastSink
from ..models.alert import Alert
from ..models.config import NotificationConfig
from ..models.notification import ToastNotification
from ..utils.error_handling import (
    ErrorCategory,
    ErrorSeverity,
    get_error_tracker,
    with_error_handling,
)
from ..utils.logging import get_logger

logger = get_logger("alert.notifier")

CRITICAL_TOAST_DURATION_MS = 10000
ERROR_TOAST_DURATION_MS = 5000
TOAST_DESCRIPTION_LENGTH = 100


class BellSoundPlayer:
    """Rings the terminal bell."""

    def __init__(self, stream: Optional[TextIO] = None):
        self.stream = stream or sys.stdout

    async def play(self) -> None:
        self.stream.write("\a")
        self.stream.flush()


class CommandSoundPlayer:
    """Runs an external command, e.g. ``["paplay", "alert.wav"]``."""

    def __init__(self, command: Sequence[str], timeout: float = 10.0):
        if not command:
            raise ValueError("Sound command cannot be empty")
        self.command = list(command)
        self.timeout = timeout

    async def play(self) -> None:
        process = await asyncio.create_subprocess_exec(
            *self.command,
            stdout=asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.DEVNULL,
        )
        try:
            return_code = await asyncio.wait_for(process.wait(), timeout=self.timeout)
        except asyncio.TimeoutError:
            process.kill()
            await process.wait()
            raise

        if return_code != 0:
            raise RuntimeError(
                f"Sound command {self.command[0]!r} exited with code {return_code}"
            )


class SilentSoundPlayer:
    """Sound disabled in configuration."""

    async def play(self) -> None:
        return None


class LoggingToastSink:
    """Writes toasts to the log; the default display in a headless process."""

    def show(self, toast: ToastNotification) -> None:
        log = logger.warning if toast.variant == "destructive" else logger.info
        log(
            f"{toast.title}: {toast.description}",
            extra={"variant": toast.variant, "duration_ms": toast.duration_ms},
        )


def create_sound_player(config: NotificationConfig) -> ISoundPlayer:
    """Build the sound player selected by configuration."""
    if config.sound == "command":
        return CommandSoundPlayer(config.sound_command)
    if config.sound == "none":
        return SilentSoundPlayer()
    return BellSoundPlayer()


def format_toast(alert: Alert) -> ToastNotification:
    """Build the toast announcing a critical alert."""
    return ToastNotification(
        title=f"🚨 {alert.title}",
        description=f"{alert.description[:TOAST_DESCRIPTION_LENGTH]}...",
        variant="destructive",
        duration_ms=CRITICAL_TOAST_DURATION_MS,
    )


class AlertNotifier:
    """Sound plus toast side effect for critical alerts."""

    def __init__(
        self,
        sound_player: Optional[ISoundPlayer] = None,
        toast_sink: Optional[IToastSink] = None,
    ):
        """
        Initialize notifier.

        Args:
            sound_player: Audible cue; the terminal bell by default
            toast_sink: Toast display; the log by default
        """
        self.sound_player = sound_player or BellSoundPlayer()
        self.toast_sink = toast_sink or LoggingToastSink()

    async def notify_critical(self, alerts: Iterable[Alert]) -> List[ToastNotification]:
        """
        Announce critical alerts: one sound, then one toast per alert.

        Returns:
            Toasts that were successfully shown
        """
        alerts = list(alerts)
        if not alerts:
            return []

        await self._play_sound()

        shown = []
        for alert in alerts:
            toast = format_toast(alert)
            if self._show(toast):
                shown.append(toast)

        logger.info(
            f"Announced {len(shown)} critical alerts",
            extra={"alert_ids": [alert.id for alert in alerts]},
        )
        return shown

    def notify_error(self, title: str, description: str) -> None:
        """Show a transient error toast."""
        self._show(
            ToastNotification(
                title=title,
                description=description,
                variant="destructive",
                duration_ms=ERROR_TOAST_DURATION_MS,
            )
        )

    @with_error_handling(
        component="alert.notifier",
        category=ErrorCategory.NOTIFICATION,
        severity=ErrorSeverity.LOW,
        suppress_exceptions=True,
    )
    async def _play_sound(self) -> None:
        await self.sound_player.play()

    def _show(self, toast: ToastNotification) -> bool:
        try:
            self.toast_sink.show(toast)
        except Exception as e:
            get_error_tracker().record_error(
                component="alert.notifier",
                category=ErrorCategory.NOTIFICATION,
                severity=ErrorSeverity.LOW,
                message=f"Failed to show toast: {e}",
                exception=e,
                context={"title": toast.title},
            )
            return False
        return True
