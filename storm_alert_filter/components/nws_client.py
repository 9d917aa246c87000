"""
National Weather Service alert source.

This module fetches active alerts and current observations from
api.weather.gov, validates the payloads against their declared shapes and
maps them into the canonical Alert and WeatherConditions models.
"""

import asyncio
import functools
import logging
import time
from typing import Any, Callable, List, Optional, Tuple, Type, TypeVar
from urllib.parse import quote

import requests
from pydantic import BaseModel
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from ..models.alert import (
    MAX_ALERT_ID_LENGTH,
    MAX_AREA_LENGTH,
    MAX_AREAS,
    MAX_DESCRIPTION_LENGTH,
    MAX_EVENT_LENGTH,
    MAX_INSTRUCTION_LENGTH,
    MAX_TITLE_LENGTH,
    Alert,
    AlertCategory,
    AlertCertainty,
    AlertSeverity,
    AlertSource,
    AlertUrgency,
    Coordinates,
)
from ..models.conditions import WeatherConditions
from ..models.config import NWSConfig, RateLimitConfig
from ..models.location import LocationData
from ..schemas import (
    NWSAlertFeature,
    NWSAlertsResponse,
    NWSObservationProperties,
    NWSObservationResponse,
    NWSPointResponse,
    NWSQuantity,
    NWSStationsResponse,
)
from ..utils.error_handling import (
    ErrorCategory,
    ErrorSeverity,
    RateLimitError,
    TransportError,
    ValidationError,
    get_degradation_manager,
    with_error_handling,
)
from ..utils.rate_limiter import SlidingWindowRateLimiter, request_key
from ..utils.validation import sanitize_number, sanitize_string, validate

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

DEFAULT_BASE_URL = "https://api.weather.gov"
MAX_TIMESTAMP_LENGTH = 64
MAX_CONDITIONS_TEXT_LENGTH = 100

# First match wins, so the order matters
CATEGORY_KEYWORDS: List[Tuple[AlertCategory, Tuple[str, ...]]] = [
    (AlertCategory.TORNADO, ("tornado",)),
    (AlertCategory.SEVERE_THUNDERSTORM, ("thunderstorm", "severe")),
    (AlertCategory.FLASH_FLOOD, ("flood", "flash")),
    (AlertCategory.WINTER_STORM, ("winter", "snow", "ice")),
]


def _map_enum(value: Optional[str], enum_type, default):
    if not isinstance(value, str):
        return default
    try:
        return enum_type(value.strip().lower())
    except ValueError:
        return default


def map_severity(value: Optional[str]) -> AlertSeverity:
    """Map an upstream severity string; unrecognized values become moderate."""
    return _map_enum(value, AlertSeverity, AlertSeverity.MODERATE)


def map_urgency(value: Optional[str]) -> AlertUrgency:
    """Map an upstream urgency string; unrecognized values become future."""
    return _map_enum(value, AlertUrgency, AlertUrgency.FUTURE)


def map_certainty(value: Optional[str]) -> AlertCertainty:
    """Map an upstream certainty string; unrecognized values become unknown."""
    return _map_enum(value, AlertCertainty, AlertCertainty.UNKNOWN)


def categorize_alert(event: Optional[str]) -> AlertCategory:
    """Classify an upstream event name by keyword."""
    event_lower = (event or "").lower()

    for category, keywords in CATEGORY_KEYWORDS:
        if any(keyword in event_lower for keyword in keywords):
            return category

    return AlertCategory.OTHER


def split_areas(area_desc: Optional[str]) -> Tuple[str, ...]:
    """Split a ``;``-delimited area description into at most MAX_AREAS names."""
    if not area_desc:
        return ()

    areas = [sanitize_string(part, MAX_AREA_LENGTH) for part in area_desc.split(";")]
    return tuple(area for area in areas if area)[:MAX_AREAS]


def celsius_to_fahrenheit(celsius: float) -> float:
    return celsius * 9 / 5 + 32


def mps_to_mph(mps: float) -> float:
    return mps * 2.237


def meters_to_miles(meters: float) -> float:
    return meters * 0.000621371


def pascals_to_hectopascals(pascals: float) -> float:
    return pascals / 100


class NWSWeatherService:
    """Alert source backed by the National Weather Service API."""

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        user_agent: str = NWSConfig.user_agent,
        timeout: int = 30,
        max_retries: int = 3,
        rate_limiter: Optional[SlidingWindowRateLimiter] = None,
    ):
        """
        Initialize the NWS client.

        Args:
            base_url: API root, without trailing slash
            user_agent: Identifying User-Agent required by the NWS
            timeout: Request timeout in seconds
            max_retries: Transport-level retries for connection errors and 5xx
            rate_limiter: Shared limiter; a 50 requests / 60 s one by default
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.rate_limiter = rate_limiter or SlidingWindowRateLimiter(50, 60.0)
        self.degradation_manager = get_degradation_manager()

        self.session = requests.Session()
        retry_strategy = Retry(
            total=max_retries,
            backoff_factor=1,
            status_forcelist=[429, 500, 502, 503, 504],
            allowed_methods=["GET"],
            raise_on_status=False,
        )
        adapter = HTTPAdapter(max_retries=retry_strategy)
        self.session.mount("http://", adapter)
        self.session.mount("https://", adapter)
        self.session.headers.update(
            {"User-Agent": user_agent, "Accept": "application/geo+json"}
        )

    @classmethod
    def from_config(
        cls, nws_config: NWSConfig, rate_limit_config: RateLimitConfig
    ) -> "NWSWeatherService":
        return cls(
            base_url=nws_config.base_url,
            user_agent=nws_config.user_agent,
            timeout=nws_config.timeout,
            max_retries=nws_config.max_retries,
            rate_limiter=SlidingWindowRateLimiter(
                rate_limit_config.max_requests, rate_limit_config.time_window
            ),
        )

    def close(self) -> None:
        self.session.close()

    def _get_json(self, url: str) -> Any:
        """Blocking GET returning the decoded JSON body."""
        logger.debug(f"Fetching {url}")

        try:
            response = self.session.get(url, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            raise TransportError(f"Request to {url} failed: {e}") from e

        if not 200 <= response.status_code < 300:
            raise TransportError(
                f"NWS API error: {response.status_code}",
                status_code=response.status_code,
            )

        try:
            return response.json()
        except ValueError as e:
            raise ValidationError(f"Response from {url} is not valid JSON") from e

    async def _fetch(self, url: str, schema: Type[ModelT]) -> ModelT:
        # requests blocks, so run it in the default executor
        data = await asyncio.get_running_loop().run_in_executor(
            None, functools.partial(self._get_json, url)
        )
        return validate(data, schema)

    def _check_rate_limit(self, operation: str, latitude: float, longitude: float):
        key = request_key(operation, latitude, longitude)
        if not self.rate_limiter.can_make_request(key):
            raise RateLimitError(key)

    async def get_active_alerts(self, location: LocationData) -> List[Alert]:
        """
        Fetch active alerts for a location.

        The response is treated as a unit: any malformed feature fails the
        whole fetch.

        Raises:
            RateLimitError: If the local request budget is exhausted
            TransportError: On network failure or non-2xx status
            ValidationError: If the payload does not match its schema
        """
        latitude = round(location.latitude, 4)
        longitude = round(location.longitude, 4)
        self._check_rate_limit("alerts", latitude, longitude)

        response = await self._fetch(
            f"{self.base_url}/alerts/active?point={latitude},{longitude}",
            NWSAlertsResponse,
        )

        coordinates = Coordinates(
            latitude=sanitize_number(location.latitude, 0, -90, 90),
            longitude=sanitize_number(location.longitude, 0, -180, 180),
        )
        alerts = [
            self._map_feature(feature, coordinates)
            for feature in response.features or []
        ]

        logger.info(
            f"Fetched {len(alerts)} active alerts for {latitude},{longitude}"
        )
        return alerts

    def _normalize_id(self, raw_id: str) -> str:
        # Feature ids are URLs under {base}/alerts/; keep the urn part only
        prefix = f"{self.base_url}/alerts/"
        if raw_id.startswith(prefix):
            raw_id = raw_id[len(prefix):]
        alert_id = sanitize_string(raw_id, len(raw_id))
        if len(alert_id) > MAX_ALERT_ID_LENGTH:
            raise ValidationError(
                f"Alert id over {MAX_ALERT_ID_LENGTH} characters: {raw_id[:40]!r}"
            )
        return alert_id

    def _map_feature(self, feature: NWSAlertFeature, coordinates: Coordinates) -> Alert:
        props = feature.properties

        alert_id = self._normalize_id(feature.id)
        if not alert_id:
            raise ValidationError(f"Alert feature id {feature.id!r} is empty after sanitizing")

        effective = sanitize_string(props.effective, MAX_TIMESTAMP_LENGTH)
        if not effective:
            raise ValidationError(f"Alert {alert_id} has no usable effective time")

        event = sanitize_string(props.event, MAX_EVENT_LENGTH)

        alert = Alert(
            id=alert_id,
            title=sanitize_string(props.headline, MAX_TITLE_LENGTH)
            or event[:MAX_TITLE_LENGTH],
            description=sanitize_string(props.description, MAX_DESCRIPTION_LENGTH),
            severity=map_severity(props.severity),
            urgency=map_urgency(props.urgency),
            certainty=map_certainty(props.certainty),
            category=categorize_alert(props.event),
            areas=split_areas(props.area_desc),
            effective=effective,
            source=AlertSource.NWS,
            event=event,
            expires=sanitize_string(props.expires, MAX_TIMESTAMP_LENGTH) or None,
            onset=sanitize_string(props.onset, MAX_TIMESTAMP_LENGTH) or None,
            instruction=sanitize_string(props.instruction, MAX_INSTRUCTION_LENGTH)
            or None,
            coordinates=coordinates,
        )

        try:
            alert.validate()
        except ValueError as e:
            raise ValidationError(f"Alert {alert_id} is invalid: {e}") from e

        return alert

    async def get_current_conditions(
        self, location: LocationData
    ) -> Optional[WeatherConditions]:
        """
        Fetch the latest observation from the station nearest to location.

        Conditions are supplementary: any failure yields None.
        """
        conditions = await self._fetch_conditions(location)

        if conditions is None:
            self.degradation_manager.degrade_component(
                "conditions",
                reason="NWS observation lookup failed",
                fallback_behavior="Current conditions unavailable",
                severity=ErrorSeverity.LOW,
            )
        else:
            self.degradation_manager.restore_component("conditions")

        return conditions

    @with_error_handling(
        component="nws.client",
        category=ErrorCategory.EXTERNAL_SERVICE,
        severity=ErrorSeverity.LOW,
        fallback_value=None,
        suppress_exceptions=True,
    )
    async def _fetch_conditions(self, location: LocationData) -> WeatherConditions:
        latitude = round(location.latitude, 4)
        longitude = round(location.longitude, 4)
        self._check_rate_limit("conditions", latitude, longitude)

        point = await self._fetch(
            f"{self.base_url}/points/{latitude},{longitude}", NWSPointResponse
        )
        stations = await self._fetch(
            point.properties.observation_stations, NWSStationsResponse
        )

        if not stations.features:
            raise ValidationError("No weather stations found")

        station_id = stations.features[0].properties.station_identifier
        observation = await self._fetch(
            f"{self.base_url}/stations/{quote(station_id, safe='')}/observations/latest",
            NWSObservationResponse,
        )

        return self._map_observation(observation.properties)

    @staticmethod
    def _convert(
        quantity: Optional[NWSQuantity],
        min_value: float,
        max_value: float,
        converter: Optional[Callable[[float], float]] = None,
    ) -> float:
        value = quantity.value if quantity is not None else None
        if value is not None and converter is not None:
            value = converter(value)
        return sanitize_number(value, 0, min_value, max_value)

    def _map_observation(self, props: NWSObservationProperties) -> WeatherConditions:
        return WeatherConditions(
            temperature=self._convert(props.temperature, -100, 150, celsius_to_fahrenheit),
            humidity=self._convert(props.relative_humidity, 0, 100),
            wind_speed=self._convert(props.wind_speed, 0, 300, mps_to_mph),
            wind_direction=self._convert(props.wind_direction, 0, 360),
            pressure=self._convert(
                props.barometric_pressure, 800, 1200, pascals_to_hectopascals
            ),
            visibility=self._convert(props.visibility, 0, 100, meters_to_miles),
            conditions=sanitize_string(
                props.text_description, MAX_CONDITIONS_TEXT_LENGTH
            )
            or "Unknown",
            timestamp=time.time(),
        )
