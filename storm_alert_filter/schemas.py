"""
Declared shapes for external JSON.

These pydantic models describe the NWS API payloads the adapter consumes
and every blob the application persists. Scalars are strict: a number is
never accepted where a string is declared and vice versa.
"""

from typing import Annotated, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, RootModel, StrictBool, StrictStr

from .models.settings import MAX_RADIUS_MILES, MIN_RADIUS_MILES

NonEmptyStr = Annotated[StrictStr, Field(min_length=1)]
# Strict floats still accept ints
Number = Annotated[float, Field(strict=True, allow_inf_nan=False)]

CategoryName = Literal[
    "tornado", "severe_thunderstorm", "flash_flood", "winter_storm", "other"
]
SeverityName = Literal["minor", "moderate", "severe", "extreme"]

MAX_STORED_DISMISSED = 1000
MAX_STORED_NOTIFIED = 1000


class _UpstreamModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


# =============================================================================
# NWS ALERTS
# =============================================================================


class NWSAlertProperties(_UpstreamModel):
    """``properties`` block of an active alert feature."""

    event: NonEmptyStr
    effective: NonEmptyStr
    headline: Optional[StrictStr] = None
    description: Optional[StrictStr] = None
    severity: Optional[StrictStr] = None
    urgency: Optional[StrictStr] = None
    certainty: Optional[StrictStr] = None
    area_desc: Optional[StrictStr] = Field(default=None, alias="areaDesc")
    expires: Optional[StrictStr] = None
    onset: Optional[StrictStr] = None
    instruction: Optional[StrictStr] = None


class NWSAlertFeature(_UpstreamModel):
    id: NonEmptyStr
    properties: NWSAlertProperties


class NWSAlertsResponse(_UpstreamModel):
    """GeoJSON collection returned by ``/alerts/active``."""

    features: Optional[List[NWSAlertFeature]] = None


# =============================================================================
# NWS OBSERVATIONS
# =============================================================================


class NWSPointProperties(_UpstreamModel):
    observation_stations: NonEmptyStr = Field(alias="observationStations")


class NWSPointResponse(_UpstreamModel):
    """Grid point metadata returned by ``/points/{lat},{lon}``."""

    properties: NWSPointProperties


class NWSStationProperties(_UpstreamModel):
    station_identifier: NonEmptyStr = Field(alias="stationIdentifier")


class NWSStationFeature(_UpstreamModel):
    properties: NWSStationProperties


class NWSStationsResponse(_UpstreamModel):
    features: List[NWSStationFeature] = Field(default_factory=list)


class NWSQuantity(_UpstreamModel):
    """Numeric wrapper ``{"value": number | null}``."""

    value: Optional[Number] = None


class NWSObservationProperties(_UpstreamModel):
    temperature: Optional[NWSQuantity] = None
    relative_humidity: Optional[NWSQuantity] = Field(
        default=None, alias="relativeHumidity"
    )
    wind_speed: Optional[NWSQuantity] = Field(default=None, alias="windSpeed")
    wind_direction: Optional[NWSQuantity] = Field(default=None, alias="windDirection")
    barometric_pressure: Optional[NWSQuantity] = Field(
        default=None, alias="barometricPressure"
    )
    visibility: Optional[NWSQuantity] = None
    text_description: Optional[StrictStr] = Field(
        default=None, alias="textDescription"
    )


class NWSObservationResponse(_UpstreamModel):
    """Latest station observation."""

    properties: NWSObservationProperties


# =============================================================================
# PERSISTED STATE
# =============================================================================


class StoredLocation(BaseModel):
    """Last-known location; unknown keys are rejected."""

    model_config = ConfigDict(extra="forbid")

    latitude: Annotated[Number, Field(ge=-90, le=90)]
    longitude: Annotated[Number, Field(ge=-180, le=180)]
    accuracy: Optional[Annotated[Number, Field(gt=0)]] = None
    timestamp: Annotated[Number, Field(gt=0)]


class StoredAlertSettings(BaseModel):
    """Persisted alert settings; absent fields fall back to defaults."""

    model_config = ConfigDict(extra="ignore")

    radius: Optional[
        Annotated[Number, Field(ge=MIN_RADIUS_MILES, le=MAX_RADIUS_MILES)]
    ] = None
    enabled_categories: Optional[List[CategoryName]] = None
    enable_sound: Optional[StrictBool] = None
    enable_push: Optional[StrictBool] = None
    severity_threshold: Optional[SeverityName] = None


class StoredDismissedAlerts(
    RootModel[Annotated[List[NonEmptyStr], Field(max_length=MAX_STORED_DISMISSED)]]
):
    """Dismissed alert ids, oldest first."""


class StoredNotifiedIndex(
    RootModel[Annotated[List[NonEmptyStr], Field(max_length=MAX_STORED_NOTIFIED)]]
):
    """Ids holding a notified flag, oldest first."""
