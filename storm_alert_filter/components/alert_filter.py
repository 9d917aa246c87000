"""Filter engine applying category, severity and dismissal filters to alerts."""

import logging
from typing import Container, Iterable, List, Tuple

from ..models.alert import Alert, severity_rank
from ..models.settings import AlertSettings

logger = logging.getLogger(__name__)


class AlertFilterEngine:
    """Applies the user's settings and dismissals to a raw alert list."""

    def passes_filters(
        self, alert: Alert, settings: AlertSettings, dismissed: Container[str]
    ) -> bool:
        """
        Check a single alert against the filters, in order.

        Args:
            alert: Alert to check
            settings: Settings snapshot to filter with
            dismissed: Ids the user has dismissed

        Returns:
            True if the alert should be shown
        """
        if alert.category not in settings.enabled_categories:
            logger.debug(
                f"Alert {alert.id} filtered out: category {alert.category.value} disabled"
            )
            return False

        if severity_rank(alert.severity) < severity_rank(settings.severity_threshold):
            logger.debug(
                f"Alert {alert.id} filtered out: severity {alert.severity.value} "
                f"below threshold {settings.severity_threshold.value}"
            )
            return False

        if alert.id in dismissed:
            logger.debug(f"Alert {alert.id} filtered out: dismissed")
            return False

        return True

    def apply_filters(
        self,
        alerts: Iterable[Alert],
        settings: AlertSettings,
        dismissed: Container[str],
    ) -> List[Alert]:
        """Return the alerts that pass every filter, preserving order."""
        alerts = list(alerts)
        filtered = [
            alert for alert in alerts if self.passes_filters(alert, settings, dismissed)
        ]

        logger.debug(f"{len(filtered)} of {len(alerts)} alerts passed filters")
        return filtered

    @staticmethod
    def partition_critical(alerts: Iterable[Alert]) -> Tuple[List[Alert], List[Alert]]:
        """Split alerts into (critical, remainder)."""
        critical: List[Alert] = []
        remainder: List[Alert] = []
        for alert in alerts:
            (critical if alert.is_critical else remainder).append(alert)
        return critical, remainder
