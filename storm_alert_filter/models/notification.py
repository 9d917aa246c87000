"""
Notification models.
"""

from dataclasses import dataclass

TOAST_VARIANTS = ("default", "destructive")


@dataclass(frozen=True)
class ToastNotification:
    """Transient on-screen notification."""

    title: str
    description: str
    variant: str = "default"
    duration_ms: int = 5000

    def validate(self) -> bool:
        """Validate toast data."""
        if not isinstance(self.title, str) or not self.title.strip():
            raise ValueError("title cannot be empty")

        if len(self.title) > 250:
            raise ValueError("title too long (max 250 characters)")

        if not isinstance(self.description, str):
            raise ValueError("description must be a string")

        if self.variant not in TOAST_VARIANTS:
            raise ValueError(f"variant must be one of: {list(TOAST_VARIANTS)}")

        if self.duration_ms <= 0:
            raise ValueError("duration_ms must be positive")

        return True
