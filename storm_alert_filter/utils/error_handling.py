"""
Error handling utilities for the Storm Alert Filter system.

This module defines the exception taxonomy used across the alert pipeline,
error tracking for monitoring, a record-and-suppress decorator for
best-effort operations and graceful degradation bookkeeping.
"""

import functools
import inspect
import traceback
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from .logging import get_logger


class ErrorSeverity(Enum):
    """Error severity levels."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorCategory(Enum):
    """Error categories for classification."""

    NETWORK = "network"
    RATE_LIMIT = "rate_limit"
    DATA_VALIDATION = "data_validation"
    STORAGE = "storage"
    INPUT = "input"
    NOTIFICATION = "notification"
    CONFIGURATION = "configuration"
    EXTERNAL_SERVICE = "external_service"
    SYSTEM = "system"


class AlertFilterError(Exception):
    """Base class for all errors raised by the alert pipeline."""

    category = ErrorCategory.SYSTEM


class ValidationError(AlertFilterError):
    """Upstream payload or persisted blob failed its schema check."""

    category = ErrorCategory.DATA_VALIDATION

    def __init__(self, message: str, errors: Optional[List[Dict[str, Any]]] = None):
        super().__init__(message)
        self.errors = errors or []


class RateLimitError(AlertFilterError):
    """Local throttling denied an outbound request."""

    category = ErrorCategory.RATE_LIMIT

    def __init__(self, key: str):
        super().__init__(f"Rate limit exceeded for {key}")
        self.key = key


class TransportError(AlertFilterError):
    """Non-2xx HTTP status or network failure."""

    category = ErrorCategory.NETWORK

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class StorageError(AlertFilterError):
    """Read or write failure on the persistence layer."""

    category = ErrorCategory.STORAGE


class InputRejection(AlertFilterError):
    """Malformed caller argument; logged and ignored, never surfaced."""

    category = ErrorCategory.INPUT


@dataclass
class ErrorInfo:
    """Information about an error occurrence."""

    timestamp: datetime
    component: str
    category: ErrorCategory
    severity: ErrorSeverity
    message: str
    exception_type: str
    traceback: str
    context: Dict[str, Any]


class ErrorTracker:
    """
    Tracks errors and provides statistics for monitoring.
    """

    def __init__(self, max_errors: int = 1000):
        """
        Initialize error tracker.

        Args:
            max_errors: Maximum number of errors to keep in memory
        """
        self.max_errors = max_errors
        self.errors: List[ErrorInfo] = []
        self.error_counts: Dict[str, int] = {}
        self.component_errors: Dict[str, List[ErrorInfo]] = {}
        self.logger = get_logger("error_tracker")

    def record_error(
        self,
        component: str,
        category: ErrorCategory,
        severity: ErrorSeverity,
        message: str,
        exception: Optional[BaseException] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> ErrorInfo:
        """
        Record an error occurrence.

        Args:
            component: Component where error occurred
            category: Error category
            severity: Error severity
            message: Error message
            exception: Exception object if available
            context: Additional context information

        Returns:
            ErrorInfo object
        """
        error_info = ErrorInfo(
            timestamp=datetime.now(),
            component=component,
            category=category,
            severity=severity,
            message=message,
            exception_type=type(exception).__name__ if exception else "Unknown",
            traceback=(
                "".join(
                    traceback.format_exception(
                        type(exception), exception, exception.__traceback__
                    )
                )
                if exception
                else ""
            ),
            context=context or {},
        )

        self.errors.append(error_info)
        if len(self.errors) > self.max_errors:
            self.errors.pop(0)

        error_key = f"{component}.{category.value}.{severity.value}"
        self.error_counts[error_key] = self.error_counts.get(error_key, 0) + 1

        component_errors = self.component_errors.setdefault(component, [])
        component_errors.append(error_info)
        if len(component_errors) > 100:
            component_errors.pop(0)

        self.logger.error(
            f"Error recorded: {message}",
            extra={
                "component": component,
                "category": category.value,
                "severity": severity.value,
                "exception_type": error_info.exception_type,
                "context": context,
            },
        )

        return error_info

    def get_error_stats(self) -> Dict[str, Any]:
        """Get error statistics."""
        now = datetime.now()
        last_hour = now - timedelta(hours=1)
        last_day = now - timedelta(days=1)

        return {
            "total_errors": len(self.errors),
            "errors_last_hour": len([e for e in self.errors if e.timestamp >= last_hour]),
            "errors_last_day": len([e for e in self.errors if e.timestamp >= last_day]),
            "error_counts": self.error_counts.copy(),
            "component_error_counts": {
                component: len(errors)
                for component, errors in self.component_errors.items()
            },
            "category_breakdown": {
                category.value: len([e for e in self.errors if e.category == category])
                for category in ErrorCategory
            },
        }

    def get_component_errors(self, component: str, limit: int = 10) -> List[ErrorInfo]:
        """Get recent errors for a specific component."""
        return self.component_errors.get(component, [])[-limit:]

    def clear_old_errors(self, older_than_days: int = 7):
        """Clear errors older than specified days."""
        cutoff = datetime.now() - timedelta(days=older_than_days)

        self.errors = [e for e in self.errors if e.timestamp >= cutoff]
        for component in self.component_errors:
            self.component_errors[component] = [
                e for e in self.component_errors[component] if e.timestamp >= cutoff
            ]


# Global error tracker instance
_error_tracker: Optional[ErrorTracker] = None


def get_error_tracker() -> ErrorTracker:
    """Get global error tracker instance."""
    global _error_tracker
    if _error_tracker is None:
        _error_tracker = ErrorTracker()
    return _error_tracker


def with_error_handling(
    component: str,
    category: ErrorCategory,
    severity: ErrorSeverity = ErrorSeverity.MEDIUM,
    fallback_value: Any = None,
    suppress_exceptions: bool = False,
):
    """
    Decorator that records failures in the global error tracker.

    Args:
        component: Component name
        category: Error category
        severity: Error severity
        fallback_value: Value to return on failure when suppressing
        suppress_exceptions: Whether to suppress exceptions
    """

    def decorator(func: Callable) -> Callable:
        def handle(e: Exception):
            get_error_tracker().record_error(
                component=component,
                category=category,
                severity=severity,
                message=f"Error in {func.__name__}: {str(e)}",
                exception=e,
                context={"function": func.__name__},
            )

            if not suppress_exceptions:
                raise e

            get_logger(component).warning(
                f"Suppressing exception in {func.__name__}: {str(e)}"
            )
            return fallback_value

        @functools.wraps(func)
        async def async_wrapper(*args, **kwargs):
            try:
                return await func(*args, **kwargs)
            except Exception as e:
                return handle(e)

        @functools.wraps(func)
        def sync_wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except Exception as e:
                return handle(e)

        if inspect.iscoroutinefunction(func):
            return async_wrapper
        return sync_wrapper

    return decorator


class GracefulDegradation:
    """
    Manages graceful degradation of system functionality.

    Allows supplementary features to fail without taking the alert
    pipeline down with them.
    """

    def __init__(self):
        self.degraded_components: Dict[str, Dict[str, Any]] = {}
        self.logger = get_logger("graceful_degradation")

    def degrade_component(
        self,
        component: str,
        reason: str,
        fallback_behavior: str,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
    ):
        """
        Mark a component as degraded.

        Args:
            component: Component name
            reason: Reason for degradation
            fallback_behavior: Description of fallback behavior
            severity: Degradation severity
        """
        self.degraded_components[component] = {
            "reason": reason,
            "fallback_behavior": fallback_behavior,
            "severity": severity.value,
            "timestamp": datetime.now().isoformat(),
        }

        self.logger.warning(
            f"Component degraded: {component}",
            extra={
                "component": component,
                "reason": reason,
                "fallback_behavior": fallback_behavior,
                "severity": severity.value,
            },
        )

    def restore_component(self, component: str):
        """Restore a component from degraded state."""
        if component in self.degraded_components:
            del self.degraded_components[component]
            self.logger.info(f"Component restored: {component}")

    def is_degraded(self, component: str) -> bool:
        """Check if a component is in degraded state."""
        return component in self.degraded_components

    def get_degradation_info(self, component: str) -> Optional[Dict[str, Any]]:
        """Get degradation information for a component."""
        return self.degraded_components.get(component)

    def get_all_degraded(self) -> Dict[str, Dict[str, Any]]:
        """Get all degraded components."""
        return self.degraded_components.copy()


# Global graceful degradation manager
_degradation_manager: Optional[GracefulDegradation] = None


def get_degradation_manager() -> GracefulDegradation:
    """Get global graceful degradation manager."""
    global _degradation_manager
    if _degradation_manager is None:
        _degradation_manager = GracefulDegradation()
    return _degradation_manager
