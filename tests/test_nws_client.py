"""
Tests for the National Weather Service alert source.
"""

from unittest.mock import Mock

import pytest
import requests

from storm_alert_filter.components.nws_client import (
    NWSWeatherService,
    categorize_alert,
    map_certainty,
    map_severity,
    map_urgency,
    split_areas,
)
from storm_alert_filter.models.alert import (
    AlertCategory,
    AlertCertainty,
    AlertSeverity,
    AlertSource,
    AlertUrgency,
    Coordinates,
)
from storm_alert_filter.models.config import NWSConfig, RateLimitConfig
from storm_alert_filter.utils.error_handling import (
    RateLimitError,
    TransportError,
    ValidationError,
    get_degradation_manager,
    get_error_tracker,
)
from storm_alert_filter.utils.rate_limiter import SlidingWindowRateLimiter

BASE = "https://api.weather.gov"
ALERTS_URL = f"{BASE}/alerts/active?point=40.0,-100.0"
POINTS_URL = f"{BASE}/points/40.0,-100.0"
STATIONS_URL = f"{BASE}/gridpoints/GID/50,50/stations"
OBSERVATION_URL = f"{BASE}/stations/KLBF/observations/latest"


def make_response(status_code=200, json_data=None, invalid_json=False):
    response = Mock()
    response.status_code = status_code
    if invalid_json:
        response.json.side_effect = ValueError("Expecting value")
    else:
        response.json.return_value = json_data
    return response


def route(service, responses):
    """Answer session.get calls from a URL -> response mapping."""

    def _get(url, timeout=None):
        result = responses[url]
        if isinstance(result, Exception):
            raise result
        return result

    service.session.get = Mock(side_effect=_get)
    return service.session.get


@pytest.fixture
def service():
    return NWSWeatherService(base_url=BASE, user_agent="TestAgent/1.0 (test@example.com)")


@pytest.fixture
def observation_payload():
    return {
        "properties": {
            "temperature": {"unitCode": "wmoUnit:degC", "value": 20},
            "relativeHumidity": {"value": 65.5},
            "windSpeed": {"value": 10},
            "windDirection": {"value": 180},
            "barometricPressure": {"value": 101325},
            "visibility": {"value": 16093.44},
            "textDescription": "Clear",
        }
    }


@pytest.fixture
def conditions_responses(observation_payload):
    return {
        POINTS_URL: make_response(
            json_data={"properties": {"observationStations": STATIONS_URL}}
        ),
        STATIONS_URL: make_response(
            json_data={
                "features": [
                    {"properties": {"stationIdentifier": "KLBF"}},
                    {"properties": {"stationIdentifier": "KOGA"}},
                ]
            }
        ),
        OBSERVATION_URL: make_response(json_data=observation_payload),
    }


class TestMappingHelpers:
    """Test cases for upstream string mapping."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("Extreme", AlertSeverity.EXTREME),
            ("SEVERE", AlertSeverity.SEVERE),
            ("minor", AlertSeverity.MINOR),
            ("Unknown", AlertSeverity.MODERATE),
            (None, AlertSeverity.MODERATE),
        ],
    )
    def test_map_severity(self, value, expected):
        assert map_severity(value) is expected

    def test_map_urgency_and_certainty_defaults(self):
        assert map_urgency("Immediate") is AlertUrgency.IMMEDIATE
        assert map_urgency("Unknown") is AlertUrgency.FUTURE
        assert map_certainty("Likely") is AlertCertainty.LIKELY
        assert map_certainty("whatever") is AlertCertainty.UNKNOWN
        assert map_certainty(None) is AlertCertainty.UNKNOWN

    @pytest.mark.parametrize(
        "event,expected",
        [
            ("Tornado Warning", AlertCategory.TORNADO),
            ("Severe Thunderstorm Watch", AlertCategory.SEVERE_THUNDERSTORM),
            ("Severe Weather Statement", AlertCategory.SEVERE_THUNDERSTORM),
            ("Flash Flood Warning", AlertCategory.FLASH_FLOOD),
            ("Flood Advisory", AlertCategory.FLASH_FLOOD),
            ("Winter Storm Warning", AlertCategory.WINTER_STORM),
            ("Lake Effect Snow Warning", AlertCategory.WINTER_STORM),
            ("Ice Storm Warning", AlertCategory.WINTER_STORM),
            ("Heat Advisory", AlertCategory.OTHER),
            ("", AlertCategory.OTHER),
        ],
    )
    def test_categorize_alert(self, event, expected):
        assert categorize_alert(event) is expected

    def test_categorize_first_match_wins(self):
        """Tornado outranks thunderstorm, which outranks flood."""
        assert categorize_alert("Tornado and Flood Warning") is AlertCategory.TORNADO
        assert (
            categorize_alert("Severe Flood Statement")
            is AlertCategory.SEVERE_THUNDERSTORM
        )

    def test_split_areas(self):
        assert split_areas("Lincoln, NE; Keith, NE; ;  Perkins, NE ") == (
            "Lincoln, NE",
            "Keith, NE",
            "Perkins, NE",
        )
        assert split_areas(None) == ()
        assert split_areas("") == ()

    def test_split_areas_caps_entries(self):
        areas = split_areas("; ".join(f"County {i}" for i in range(30)))
        assert len(areas) == 20
        assert areas[-1] == "County 19"


class TestGetActiveAlerts:
    """Test cases for NWSWeatherService.get_active_alerts."""

    def test_session_headers(self, service):
        assert service.session.headers["User-Agent"] == "TestAgent/1.0 (test@example.com)"
        assert service.session.headers["Accept"] == "application/geo+json"

    @pytest.mark.asyncio
    async def test_tornado_scenario(self, service, sample_location, a1_feature):
        """A minimal extreme tornado feature maps onto a critical tornado alert."""
        get = route(service, {ALERTS_URL: make_response(json_data={"features": [a1_feature]})})

        alerts = await service.get_active_alerts(sample_location)

        get.assert_called_once_with(ALERTS_URL, timeout=30)
        assert len(alerts) == 1
        alert = alerts[0]
        assert alert.id == "A1"
        assert alert.category is AlertCategory.TORNADO
        assert alert.severity is AlertSeverity.EXTREME
        assert alert.urgency is AlertUrgency.FUTURE
        assert alert.certainty is AlertCertainty.UNKNOWN
        assert alert.title == "Tornado Warning"
        assert alert.description == ""
        assert alert.areas == ()
        assert alert.effective == "2024-05-01T10:00:00Z"
        assert alert.expires is None
        assert alert.source is AlertSource.NWS
        assert alert.coordinates == Coordinates(latitude=40.0, longitude=-100.0)
        assert alert.is_critical

    @pytest.mark.asyncio
    async def test_full_feature_mapping(self, service, sample_location, nws_alert_feature):
        route(
            service,
            {ALERTS_URL: make_response(json_data={"features": [nws_alert_feature]})},
        )

        alert = (await service.get_active_alerts(sample_location))[0]

        assert alert.id == "urn:oid:2.49.0.1.840.0.abc123.001.1"
        assert alert.title == "Flash Flood Warning issued May 1 at 10:00AM CDT"
        assert alert.event == "Flash Flood Warning"
        assert alert.category is AlertCategory.FLASH_FLOOD
        assert alert.severity is AlertSeverity.SEVERE
        assert alert.urgency is AlertUrgency.IMMEDIATE
        assert alert.certainty is AlertCertainty.LIKELY
        assert alert.areas == ("Lincoln, NE", "Keith, NE", "Perkins, NE")
        assert alert.expires == "2024-05-01T16:00:00-05:00"
        assert alert.onset == "2024-05-01T10:05:00-05:00"
        assert alert.instruction == "Move to higher ground now."

    @pytest.mark.asyncio
    async def test_text_fields_are_sanitized_and_capped(
        self, service, sample_location, a1_feature
    ):
        a1_feature["properties"]["headline"] = "<script>x()</script>" + "H" * 300
        a1_feature["properties"]["description"] = "Take cover onclick=now"
        route(service, {ALERTS_URL: make_response(json_data={"features": [a1_feature]})})

        alert = (await service.get_active_alerts(sample_location))[0]

        assert alert.title == "H" * 200
        assert alert.description == "Take cover now"

    @pytest.mark.asyncio
    async def test_missing_features_yields_empty_list(self, service, sample_location):
        route(service, {ALERTS_URL: make_response(json_data={})})

        assert await service.get_active_alerts(sample_location) == []

    @pytest.mark.asyncio
    async def test_http_error_raises_transport_error(self, service, sample_location):
        route(service, {ALERTS_URL: make_response(status_code=503)})

        with pytest.raises(TransportError) as exc_info:
            await service.get_active_alerts(sample_location)

        assert exc_info.value.status_code == 503

    @pytest.mark.asyncio
    async def test_network_error_raises_transport_error(self, service, sample_location):
        route(service, {ALERTS_URL: requests.exceptions.ConnectionError("refused")})

        with pytest.raises(TransportError) as exc_info:
            await service.get_active_alerts(sample_location)

        assert exc_info.value.status_code is None

    @pytest.mark.asyncio
    async def test_invalid_json_raises_validation_error(self, service, sample_location):
        route(service, {ALERTS_URL: make_response(invalid_json=True)})

        with pytest.raises(ValidationError):
            await service.get_active_alerts(sample_location)

    @pytest.mark.asyncio
    async def test_one_malformed_feature_fails_whole_fetch(
        self, service, sample_location, a1_feature
    ):
        bad_feature = {"id": "A2", "properties": {"event": "Tornado Warning"}}
        route(
            service,
            {
                ALERTS_URL: make_response(
                    json_data={"features": [a1_feature, bad_feature]}
                )
            },
        )

        with pytest.raises(ValidationError):
            await service.get_active_alerts(sample_location)

    @pytest.mark.asyncio
    async def test_over_long_id_fails_whole_fetch(
        self, service, sample_location, a1_feature
    ):
        long_ids = [f"{BASE}/alerts/urn:oid:{'x' * 100}{suffix}" for suffix in "12"]
        features = [dict(a1_feature, id=alert_id) for alert_id in long_ids]
        route(service, {ALERTS_URL: make_response(json_data={"features": features})})

        with pytest.raises(ValidationError):
            await service.get_active_alerts(sample_location)

    @pytest.mark.asyncio
    async def test_id_at_cap_is_kept_whole(self, service, sample_location, a1_feature):
        alert_id = "u" * 100
        feature = dict(a1_feature, id=f"{BASE}/alerts/{alert_id}")
        route(service, {ALERTS_URL: make_response(json_data={"features": [feature]})})

        alerts = await service.get_active_alerts(sample_location)

        assert [alert.id for alert in alerts] == [alert_id]

    @pytest.mark.asyncio
    async def test_rate_limit_denial_skips_request(self, sample_location, a1_feature):
        service = NWSWeatherService(
            base_url=BASE, rate_limiter=SlidingWindowRateLimiter(1, 60.0)
        )
        get = route(
            service, {ALERTS_URL: make_response(json_data={"features": [a1_feature]})}
        )

        await service.get_active_alerts(sample_location)
        with pytest.raises(RateLimitError) as exc_info:
            await service.get_active_alerts(sample_location)

        assert exc_info.value.key == "alerts:40.0,-100.0"
        assert get.call_count == 1

    def test_from_config(self):
        service = NWSWeatherService.from_config(
            NWSConfig(base_url="https://example.test/", user_agent="UA", timeout=5),
            RateLimitConfig(max_requests=7, time_window=30.0),
        )

        assert service.base_url == "https://example.test"
        assert service.timeout == 5
        assert service.rate_limiter.max_requests == 7
        assert service.rate_limiter.time_window == 30.0


class TestGetCurrentConditions:
    """Test cases for the three-step conditions lookup."""

    @pytest.mark.asyncio
    async def test_conditions_chain(self, service, sample_location, conditions_responses):
        get = route(service, conditions_responses)

        conditions = await service.get_current_conditions(sample_location)

        assert [c.args[0] for c in get.call_args_list] == [
            POINTS_URL,
            STATIONS_URL,
            OBSERVATION_URL,
        ]
        assert conditions.temperature == pytest.approx(68.0)
        assert conditions.humidity == pytest.approx(65.5)
        assert conditions.wind_speed == pytest.approx(22.37)
        assert conditions.wind_direction == pytest.approx(180)
        assert conditions.pressure == pytest.approx(1013.25)
        assert conditions.visibility == pytest.approx(10.0, abs=0.01)
        assert conditions.conditions == "Clear"

    @pytest.mark.asyncio
    async def test_null_and_out_of_range_values_fall_back(
        self, service, sample_location, conditions_responses, observation_payload
    ):
        props = observation_payload["properties"]
        props["temperature"] = {"value": None}
        props["relativeHumidity"] = {"value": 150}
        props["barometricPressure"] = {"value": 50000}
        del props["visibility"]
        props["textDescription"] = None
        route(service, conditions_responses)

        conditions = await service.get_current_conditions(sample_location)

        assert conditions.temperature == 0
        assert conditions.humidity == 0
        assert conditions.pressure == 0
        assert conditions.visibility == 0
        assert conditions.conditions == "Unknown"

    @pytest.mark.asyncio
    async def test_failure_returns_none_and_degrades(
        self, service, sample_location, conditions_responses
    ):
        conditions_responses[STATIONS_URL] = make_response(status_code=500)
        route(service, conditions_responses)

        assert await service.get_current_conditions(sample_location) is None
        assert get_degradation_manager().is_degraded("conditions")
        assert get_error_tracker().get_component_errors("nws.client")

    @pytest.mark.asyncio
    async def test_no_stations_returns_none(
        self, service, sample_location, conditions_responses
    ):
        conditions_responses[STATIONS_URL] = make_response(json_data={"features": []})
        get = route(service, conditions_responses)

        assert await service.get_current_conditions(sample_location) is None
        assert get.call_count == 2

    @pytest.mark.asyncio
    async def test_success_restores_degraded_conditions(
        self, service, sample_location, conditions_responses
    ):
        get_degradation_manager().degrade_component(
            "conditions", reason="earlier failure", fallback_behavior="none"
        )
        route(service, conditions_responses)

        assert await service.get_current_conditions(sample_location) is not None
        assert not get_degradation_manager().is_degraded("conditions")

    @pytest.mark.asyncio
    async def test_rate_limited_conditions_return_none(
        self, sample_location, conditions_responses
    ):
        service = NWSWeatherService(
            base_url=BASE, rate_limiter=SlidingWindowRateLimiter(1, 60.0)
        )
        get = route(service, conditions_responses)

        assert await service.get_current_conditions(sample_location) is not None
        assert await service.get_current_conditions(sample_location) is None
        assert get.call_count == 3
