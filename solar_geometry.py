"""Latitude/longitude estimation from a gnomon (stick-and-shadow) measurement."""
from __future__ import annotations

import math
from dataclasses import asdict, dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Any

import pyproj
from pysolar.solar import get_altitude, get_azimuth
from shapely.geometry import Point, mapping

GEOD = pyproj.Geod(ellps="WGS84")

# Mean obliquity used by the simple declination model
AXIAL_TILT_DEG = 23.44
# Day 81 is roughly the March equinox
EQUINOX_DAY = 81
DEGREES_PER_HOUR = 15.0
MAX_UTC_OFFSET_HOURS = 14.0


class InvalidObservationError(ValueError):
    """Raised when a measurement cannot produce a coordinate estimate."""


@dataclass(frozen=True)
class ShadowObservation:
    """A single solar-noon shadow measurement. Lengths share one unit."""

    stick_height: float
    shadow_length: float
    observed_on: date
    solar_noon: time
    utc_offset_hours: float


@dataclass(frozen=True)
class CoordinateEstimate:
    latitude_deg: float
    longitude_deg: float
    solar_elevation_deg: float
    solar_declination_deg: float
    day_of_year: int
    zero_shadow_day: bool

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


def day_of_year(d: date) -> int:
    return d.timetuple().tm_yday


def solar_declination(day: int) -> float:
    """Approximate solar declination in degrees for a day of the year."""
    return AXIAL_TILT_DEG * math.sin(math.radians((360.0 / 365.0) * (day - EQUINOX_DAY)))


def solar_elevation(stick_height: float, shadow_length: float) -> float:
    if shadow_length == 0:
        return 90.0
    return math.degrees(math.atan(stick_height / shadow_length))


def latitude_from_elevation(elevation_deg: float, declination_deg: float) -> float:
    """
    Invert noon elevation into latitude.

    The observer is assumed to be on the far side of the subsolar latitude
    (declination + zenith angle); when that overshoots a pole the other
    branch is used.
    """
    zenith = 90.0 - elevation_deg
    poleward = declination_deg + zenith
    if abs(poleward) <= 90.0:
        return poleward
    return declination_deg - zenith


def clock_hours(t: time) -> float:
    return t.hour + t.minute / 60.0 + t.second / 3600.0


def wrap_longitude(longitude_deg: float) -> float:
    """Wrap into [-180, 180)."""
    wrapped = ((longitude_deg + 180.0) % 360.0) - 180.0
    # float modulo of a tiny negative value can return 360.0
    if wrapped >= 180.0:
        wrapped -= 360.0
    return wrapped


def longitude_from_solar_noon(solar_noon: time, utc_offset_hours: float) -> float:
    local = clock_hours(solar_noon)
    longitude = (12.0 - local) * DEGREES_PER_HOUR + utc_offset_hours * DEGREES_PER_HOUR
    return wrap_longitude(longitude)


def parse_clock_time(value: str | None) -> time:
    """Parse HH:MM or HH:MM:SS."""
    raw = (value or "").strip()
    parts = raw.split(":")
    if len(parts) not in (2, 3):
        raise InvalidObservationError(f"Invalid time '{raw}', expected HH:MM")
    try:
        numbers = [int(p) for p in parts]
    except ValueError as exc:
        raise InvalidObservationError(f"Invalid time '{raw}', expected HH:MM") from exc
    try:
        return time(*numbers)
    except ValueError as exc:
        raise InvalidObservationError(f"Invalid time '{raw}': {exc}") from exc


def _as_finite(name: str, value: Any) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError) as exc:
        raise InvalidObservationError(f"{name} must be a number") from exc
    if not math.isfinite(number):
        raise InvalidObservationError(f"{name} must be a finite number")
    return number


def validate_observation(
    stick_height: Any,
    shadow_length: Any,
    observed_on: date | str | None,
    solar_noon: time | str | None,
    utc_offset_hours: Any,
) -> ShadowObservation:
    """Coerce raw form values into a ShadowObservation or raise InvalidObservationError."""
    height = _as_finite("stick height", stick_height)
    if height <= 0:
        raise InvalidObservationError("stick height must be greater than zero")

    shadow = _as_finite("shadow length", shadow_length)
    if shadow < 0:
        raise InvalidObservationError("shadow length cannot be negative")

    offset = _as_finite("UTC offset", utc_offset_hours)
    if abs(offset) > MAX_UTC_OFFSET_HOURS:
        raise InvalidObservationError(
            f"UTC offset must be between -{MAX_UTC_OFFSET_HOURS:g} and +{MAX_UTC_OFFSET_HOURS:g} hours"
        )

    if not observed_on:
        raise InvalidObservationError("date is required")
    if isinstance(observed_on, str):
        try:
            observed_on = date.fromisoformat(observed_on.strip())
        except ValueError as exc:
            raise InvalidObservationError(f"Invalid date '{observed_on}', expected YYYY-MM-DD") from exc

    if not solar_noon:
        raise InvalidObservationError("solar noon time is required")
    if isinstance(solar_noon, str):
        solar_noon = parse_clock_time(solar_noon)

    return ShadowObservation(
        stick_height=height,
        shadow_length=shadow,
        observed_on=observed_on,
        solar_noon=solar_noon,
        utc_offset_hours=offset,
    )


def estimate_coordinates(observation: ShadowObservation) -> CoordinateEstimate:
    day = day_of_year(observation.observed_on)
    declination = solar_declination(day)

    if observation.shadow_length == 0:
        # Sun directly overhead: the observer sits on the subsolar latitude.
        elevation = 90.0
        latitude = declination
        zero_shadow = True
    else:
        elevation = solar_elevation(observation.stick_height, observation.shadow_length)
        latitude = latitude_from_elevation(elevation, declination)
        zero_shadow = False

    longitude = longitude_from_solar_noon(observation.solar_noon, observation.utc_offset_hours)

    if math.isnan(latitude) or math.isnan(longitude):
        raise InvalidObservationError("Invalid calculation. Please check your inputs.")

    return CoordinateEstimate(
        latitude_deg=latitude,
        longitude_deg=longitude,
        solar_elevation_deg=elevation,
        solar_declination_deg=declination,
        day_of_year=day,
        zero_shadow_day=zero_shadow,
    )


def _to_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def local_datetime(d: date, t: time, utc_offset_hours: float) -> datetime:
    """Combine a local calendar date and clock time at a fixed UTC offset."""
    tz = timezone(timedelta(hours=utc_offset_hours))
    return datetime.combine(d, t, tzinfo=tz)


def get_sun_position(lat: float, lon: float, dt: datetime) -> tuple[float, float]:
    """Return (azimuth_deg, elevation_deg) for a WGS84 point and timestamp."""
    dt_utc = _to_utc(dt)
    elevation = float(get_altitude(lat, lon, dt_utc))
    azimuth = (float(get_azimuth(lat, lon, dt_utc)) + 360.0) % 360.0
    return azimuth, elevation


def predicted_shadow_length(stick_height: float, lat: float, lon: float, dt: datetime) -> float | None:
    """Shadow length the stick would cast at (lat, lon) and dt, or None with the sun down."""
    _, elevation = get_sun_position(lat, lon, dt)
    if elevation <= 0:
        return None
    tan_elev = math.tan(math.radians(elevation))
    if tan_elev <= 0:
        return None
    return stick_height / tan_elev


def distance_to_reference_km(estimate: CoordinateEstimate, lat: float, lon: float) -> float:
    """Geodesic WGS84 distance between the estimate and a known point."""
    _, _, meters = GEOD.inv(estimate.longitude_deg, estimate.latitude_deg, lon, lat)
    return abs(meters) / 1000.0


def estimate_to_geojson(estimate: CoordinateEstimate, location_name: str | None = None) -> dict[str, Any]:
    point = Point(estimate.longitude_deg, estimate.latitude_deg)
    properties = estimate.as_dict()
    if location_name is not None:
        properties["location_name"] = location_name
    return {
        "type": "Feature",
        "geometry": mapping(point),
        "properties": properties,
    }
