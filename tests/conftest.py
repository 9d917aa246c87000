"""
Pytest configuration and shared fixtures.

This module provides common fixtures and configuration for all tests
in the Storm Alert Filter test suite.
"""

import tempfile
import time
from pathlib import Path

import pytest

from storm_alert_filter.models.alert import (
    Alert,
    AlertCategory,
    AlertCertainty,
    AlertSeverity,
    AlertSource,
    AlertUrgency,
)
from storm_alert_filter.models.location import LocationData
from storm_alert_filter.services.state_storage import InMemoryStateStorage
from storm_alert_filter.utils import error_handling


class FakeClock:
    """Manually advanced time source."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture(autouse=True)
def reset_error_globals(monkeypatch):
    """Give every test a fresh error tracker and degradation manager."""
    monkeypatch.setattr(error_handling, "_error_tracker", None)
    monkeypatch.setattr(error_handling, "_degradation_manager", None)


# Test data fixtures
@pytest.fixture
def make_alert():
    """Factory for Alert objects with sensible defaults."""

    def _make_alert(
        alert_id="A1",
        severity=AlertSeverity.EXTREME,
        category=AlertCategory.TORNADO,
        title="Tornado Warning issued for Test County",
        description="A confirmed tornado was located near Test Town.",
        **overrides,
    ) -> Alert:
        fields = {
            "id": alert_id,
            "title": title,
            "description": description,
            "severity": severity,
            "urgency": AlertUrgency.IMMEDIATE,
            "certainty": AlertCertainty.OBSERVED,
            "category": category,
            "areas": ("Test County",),
            "effective": "2024-05-01T10:00:00Z",
            "source": AlertSource.NWS,
            "event": "Tornado Warning",
        }
        fields.update(overrides)
        return Alert(**fields)

    return _make_alert


@pytest.fixture
def sample_alert(make_alert):
    """A critical tornado alert."""
    return make_alert()


@pytest.fixture
def a1_feature():
    """Minimal upstream feature for a tornado warning."""
    return {
        "id": "A1",
        "properties": {
            "event": "Tornado Warning",
            "severity": "Extreme",
            "effective": "2024-05-01T10:00:00Z",
        },
    }


@pytest.fixture
def nws_alert_feature():
    """A fully populated upstream alert feature."""
    return {
        "id": "https://api.weather.gov/alerts/urn:oid:2.49.0.1.840.0.abc123.001.1",
        "type": "Feature",
        "properties": {
            "event": "Flash Flood Warning",
            "headline": "Flash Flood Warning issued May 1 at 10:00AM CDT",
            "description": "Heavy rain is causing flash flooding.",
            "severity": "Severe",
            "urgency": "Immediate",
            "certainty": "Likely",
            "areaDesc": "Lincoln, NE; Keith, NE; ; Perkins, NE",
            "effective": "2024-05-01T10:00:00-05:00",
            "expires": "2024-05-01T16:00:00-05:00",
            "onset": "2024-05-01T10:05:00-05:00",
            "instruction": "Move to higher ground now.",
        },
    }


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def sample_location():
    """Query location used throughout the scenarios."""
    return LocationData(latitude=40.0, longitude=-100.0, timestamp=time.time())


@pytest.fixture
def memory_storage():
    return InMemoryStateStorage()


# Temporary directory fixtures
@pytest.fixture
def temp_dir():
    """Create a temporary directory for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


# Pytest configuration
def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "slow: mark test as slow running")
    config.addinivalue_line("markers", "integration: mark test as integration test")
    config.addinivalue_line("markers", "unit: mark test as unit test")


def pytest_collection_modifyitems(config, items):
    """Add the unit marker to every test not marked otherwise."""
    for item in items:
        if not any(
            marker.name in ["integration", "slow"] for marker in item.iter_markers()
        ):
            item.add_marker(pytest.mark.unit)
