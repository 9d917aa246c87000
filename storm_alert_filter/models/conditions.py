"""
Current weather observation models.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class WeatherConditions:
    """Latest station observation in imperial units (pressure in hPa)."""

    temperature: float
    humidity: float
    wind_speed: float
    wind_direction: float
    pressure: float
    visibility: float
    conditions: str
    timestamp: float

    def summary(self) -> str:
        return (
            f"{self.conditions}, {self.temperature:.0f}°F, "
            f"humidity {self.humidity:.0f}%, wind {self.wind_speed:.0f} mph "
            f"from {self.wind_direction:.0f}°, {self.pressure:.0f} hPa, "
            f"visibility {self.visibility:.1f} mi"
        )
