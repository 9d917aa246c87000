"""
Unit tests for data models.
"""

from datetime import datetime, timezone

import pytest

from storm_alert_filter.models.alert import (
    MAX_AREAS,
    AlertCategory,
    AlertSeverity,
    Coordinates,
)
from storm_alert_filter.models.conditions import WeatherConditions
from storm_alert_filter.models.config import (
    Configuration,
    LocationConfig,
    NotificationConfig,
    NWSConfig,
    PollingConfig,
    RateLimitConfig,
)
from storm_alert_filter.models.location import (
    LocationData,
    describe_accuracy,
    describe_age,
    format_coordinate,
)
from storm_alert_filter.models.notification import ToastNotification
from storm_alert_filter.models.settings import (
    DEFAULT_ALERT_SETTINGS,
    AlertSettings,
    ordered_categories,
)


class TestAlert:
    """Test Alert model validation."""

    def test_valid_alert(self, sample_alert):
        assert sample_alert.validate() is True

    def test_critical_flag(self, make_alert):
        assert make_alert(severity=AlertSeverity.EXTREME).is_critical
        assert make_alert(severity=AlertSeverity.SEVERE).is_critical
        assert not make_alert(severity=AlertSeverity.MODERATE).is_critical
        assert not make_alert(severity=AlertSeverity.MINOR).is_critical

    @pytest.mark.parametrize(
        "overrides,message",
        [
            ({"alert_id": ""}, "ID cannot be empty"),
            ({"alert_id": "x" * 101}, "ID too long"),
            ({"title": "t" * 201}, "title too long"),
            ({"description": "d" * 5001}, "description too long"),
            ({"instruction": "i" * 2001}, "instruction too long"),
            ({"effective": ""}, "effective time"),
            ({"areas": tuple(f"A{i}" for i in range(MAX_AREAS + 1))}, "Too many"),
            ({"areas": ("Lincoln", "")}, "empty entries"),
            ({"severity": "extreme"}, "severity must be"),
            ({"coordinates": Coordinates(91.0, 0.0)}, "Latitude"),
            ({"coordinates": Coordinates(0.0, -181.0)}, "Longitude"),
        ],
    )
    def test_invalid_alert(self, make_alert, overrides, message):
        with pytest.raises(ValueError, match=message):
            make_alert(**overrides).validate()

    def test_is_expired(self, make_alert):
        now = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)

        assert make_alert(expires="2024-05-01T11:00:00Z").is_expired(now)
        assert not make_alert(expires="2024-05-01T08:00:00-05:00").is_expired(now)
        assert not make_alert(expires=None).is_expired(now)
        assert not make_alert(expires="next tuesday").is_expired(now)


class TestAlertSettings:
    """Test AlertSettings model validation."""

    def test_defaults(self):
        assert DEFAULT_ALERT_SETTINGS.validate() is True
        assert DEFAULT_ALERT_SETTINGS.radius == 25

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"radius": 0},
            {"radius": 1001},
            {"radius": True},
            {"enabled_categories": {AlertCategory.TORNADO}},
            {"enabled_categories": frozenset({"tornado"})},
            {"enable_sound": 1},
            {"enable_push": None},
            {"severity_threshold": "severe"},
        ],
    )
    def test_invalid_settings(self, kwargs):
        with pytest.raises(ValueError):
            AlertSettings(**kwargs).validate()

    def test_storage_dict_orders_categories(self):
        settings = AlertSettings(
            enabled_categories=frozenset(
                {AlertCategory.OTHER, AlertCategory.TORNADO, AlertCategory.FLASH_FLOOD}
            )
        )

        assert settings.to_storage_dict() == {
            "radius": 25,
            "enabled_categories": ["tornado", "flash_flood", "other"],
            "enable_sound": True,
            "enable_push": True,
            "severity_threshold": "moderate",
        }

    def test_ordered_categories_deduplicates(self):
        assert ordered_categories(
            [AlertCategory.WINTER_STORM, AlertCategory.TORNADO, AlertCategory.TORNADO]
        ) == [AlertCategory.TORNADO, AlertCategory.WINTER_STORM]


class TestLocationData:
    """Test LocationData model and formatting helpers."""

    def test_valid_location(self, sample_location):
        assert sample_location.validate() is True

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"latitude": -90.1},
            {"longitude": 180.5},
            {"accuracy": 0},
            {"timestamp": 0},
        ],
    )
    def test_invalid_location(self, kwargs):
        fields = {"latitude": 40.0, "longitude": -100.0, "timestamp": 1000.0}
        fields.update(kwargs)

        with pytest.raises(ValueError):
            LocationData(**fields).validate()

    def test_staleness_boundary(self):
        location = LocationData(40.0, -100.0, timestamp=1000.0)

        assert not location.is_stale(now=1000.0 + 3600)
        assert location.is_stale(now=1000.0 + 3601)

    def test_same_point_ignores_small_differences(self):
        first = LocationData(40.00001, -100.0, timestamp=1.0)
        second = LocationData(40.0, -100.00002, timestamp=2.0, accuracy=10.0)

        assert first.same_point(second)
        assert not first.same_point(LocationData(40.001, -100.0, timestamp=1.0))
        assert not first.same_point(None)

    def test_format_coordinate(self):
        assert format_coordinate(40.0, "lat") == "40.000000° N"
        assert format_coordinate(-33.8688, "lat") == "33.868800° S"
        assert format_coordinate(-100.0, "lon") == "100.000000° W"
        assert format_coordinate(151.2093, "lon") == "151.209300° E"

    @pytest.mark.parametrize(
        "accuracy,expected",
        [
            (None, "Unknown"),
            (12.4, "12m (Excellent)"),
            (250, "250m (Good)"),
            (750, "750m (Fair)"),
            (1500, "1500m (Poor)"),
        ],
    )
    def test_describe_accuracy(self, accuracy, expected):
        assert describe_accuracy(accuracy) == expected

    @pytest.mark.parametrize(
        "age_seconds,expected",
        [
            (30, "Just now"),
            (60, "1 minute ago"),
            (600, "10 minutes ago"),
            (3600, "1 hour ago"),
            (3 * 3600, "3 hours ago"),
        ],
    )
    def test_describe_age(self, age_seconds, expected):
        assert describe_age(1000.0, now=1000.0 + age_seconds) == expected


class TestWeatherConditions:
    """Test WeatherConditions formatting."""

    def test_summary(self):
        conditions = WeatherConditions(
            temperature=71.6,
            humidity=55,
            wind_speed=11.2,
            wind_direction=180,
            pressure=1013.2,
            visibility=10.0,
            conditions="Partly Cloudy",
            timestamp=1.0,
        )

        assert conditions.summary() == (
            "Partly Cloudy, 72°F, humidity 55%, wind 11 mph from 180°, "
            "1013 hPa, visibility 10.0 mi"
        )


class TestToastNotification:
    """Test ToastNotification validation."""

    def test_valid_toast(self):
        assert ToastNotification("Error", "Failed to save alert settings").validate()

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"title": ""},
            {"title": "t" * 251},
            {"variant": "success"},
            {"duration_ms": 0},
            {"description": None},
        ],
    )
    def test_invalid_toast(self, kwargs):
        fields = {"title": "Title", "description": "Body"}
        fields.update(kwargs)

        with pytest.raises(ValueError):
            ToastNotification(**fields).validate()


class TestConfiguration:
    """Test configuration model validation."""

    def test_default_configuration_is_valid(self):
        assert Configuration().validate() is True

    def test_nws_config_validation(self):
        assert NWSConfig().validate()

        with pytest.raises(ValueError, match="HTTP or HTTPS"):
            NWSConfig(base_url="ws://api.weather.gov").validate()
        with pytest.raises(ValueError, match="Invalid NWS base URL"):
            NWSConfig(base_url="api.weather.gov").validate()
        with pytest.raises(ValueError, match="max retries"):
            NWSConfig(max_retries=-1).validate()

    def test_location_config_validation(self):
        assert LocationConfig(35.4676, -97.5164).validate()

        with pytest.raises(ValueError, match="number"):
            LocationConfig(True, 0).validate()
        with pytest.raises(ValueError, match="accuracy"):
            LocationConfig(0, 0, accuracy=-5).validate()

    def test_rate_limit_config_validation(self):
        with pytest.raises(ValueError):
            RateLimitConfig(time_window=0).validate()

    def test_polling_config_validation(self):
        assert PollingConfig(interval=60, stale_time=60).validate()

        with pytest.raises(ValueError, match="at least 60"):
            PollingConfig(interval=59, stale_time=0).validate()

    def test_notification_config_validation(self):
        assert NotificationConfig(sound="command", sound_command=["aplay", "x.wav"]).validate()

        with pytest.raises(ValueError, match="non-empty strings"):
            NotificationConfig(sound="command", sound_command=["aplay", ""]).validate()

    def test_configuration_validates_sections(self):
        config = Configuration(location=LocationConfig(100, 0))

        with pytest.raises(ValueError, match="latitude"):
            config.validate()

        with pytest.raises(ValueError, match="log level"):
            Configuration(log_level="verbose").validate()
