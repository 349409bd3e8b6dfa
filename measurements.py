"""Shadow-length time series: cleaning, ordering and solar-noon detection."""

from __future__ import annotations

import math
import pathlib
from collections.abc import Iterable
from dataclasses import dataclass

import numpy as np
import pandas as pd

from solar_geometry import InvalidObservationError, parse_clock_time


@dataclass(frozen=True)
class ShadowMeasurement:
    clock_time: str  # zero-padded HH:MM
    shadow_length: float

    @property
    def minutes(self) -> int:
        hours, minutes = self.clock_time.split(":")
        return int(hours) * 60 + int(minutes)


@dataclass(frozen=True)
class SolarNoonEstimate:
    clock_time: str
    shadow_length: float
    fitted: bool


def _as_float(value) -> float | None:
    if value is None:
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        cleaned = value.strip()
        if not cleaned:
            return None
        try:
            number = float(cleaned)
        except ValueError:
            return None
    else:
        return None
    if not math.isfinite(number):
        return None
    return number


def _row_values(row) -> tuple:
    if isinstance(row, ShadowMeasurement):
        return row.clock_time, row.shadow_length
    if isinstance(row, dict):
        return row.get("time"), row.get("shadow_length")
    if isinstance(row, (tuple, list)) and len(row) == 2:
        return row[0], row[1]
    return None, None


def clean_measurements(rows: Iterable) -> list[ShadowMeasurement]:
    """
    Keep rows that carry both a clock time and a numeric shadow length.

    Rows may be dicts with ``time``/``shadow_length`` keys, (time, length)
    pairs or ShadowMeasurement instances. Incomplete rows are dropped.
    """
    cleaned: list[ShadowMeasurement] = []
    for row in rows:
        raw_time, raw_shadow = _row_values(row)
        if not raw_time or not str(raw_time).strip():
            continue
        shadow = _as_float(raw_shadow)
        if shadow is None:
            continue
        try:
            parsed = parse_clock_time(str(raw_time))
        except InvalidObservationError:
            continue
        cleaned.append(ShadowMeasurement(clock_time=parsed.strftime("%H:%M"), shadow_length=shadow))
    return cleaned


def sort_by_time(measurements: Iterable[ShadowMeasurement]) -> list[ShadowMeasurement]:
    # Zero-padded HH:MM strings sort chronologically.
    return sorted(measurements, key=lambda m: m.clock_time)


def series_labels_and_values(measurements: Iterable) -> tuple[list[str], list[float]]:
    ordered = sort_by_time(clean_measurements(measurements))
    return [m.clock_time for m in ordered], [m.shadow_length for m in ordered]


def load_measurements_csv(path: str | pathlib.Path) -> list[ShadowMeasurement]:
    """Read a CSV with ``time`` and ``shadow_length`` columns."""
    frame = pd.read_csv(path, dtype={"time": str})
    missing = {"time", "shadow_length"} - set(frame.columns)
    if missing:
        raise InvalidObservationError(
            f"{path}: missing column(s) {', '.join(sorted(missing))}"
        )
    frame = frame.fillna({"time": ""})
    rows = [
        {"time": row.time, "shadow_length": row.shadow_length}
        for row in frame[["time", "shadow_length"]].itertuples(index=False)
    ]
    return sort_by_time(clean_measurements(rows))


def _format_minutes(total_minutes: float) -> str:
    rounded = int(round(total_minutes)) % (24 * 60)
    return f"{rounded // 60:02d}:{rounded % 60:02d}"


def estimate_solar_noon(measurements: Iterable[ShadowMeasurement]) -> SolarNoonEstimate:
    """
    Solar noon is when the shadow is shortest.

    With readings on both sides of the shortest one, a parabola through the
    neighbouring points refines the time and length; otherwise the raw
    minimum is returned.
    """
    ordered = sort_by_time(measurements)
    if not ordered:
        raise InvalidObservationError("at least one shadow measurement is required")

    lengths = np.array([m.shadow_length for m in ordered], dtype=float)
    minutes = np.array([m.minutes for m in ordered], dtype=float)
    idx = int(np.argmin(lengths))
    raw = SolarNoonEstimate(
        clock_time=ordered[idx].clock_time,
        shadow_length=float(lengths[idx]),
        fitted=False,
    )

    if idx == 0 or idx == len(ordered) - 1:
        return raw

    lo = max(0, idx - 2)
    hi = min(len(ordered), idx + 3)
    window_x = minutes[lo:hi]
    window_y = lengths[lo:hi]
    if len(np.unique(window_x)) < 3:
        return raw

    a, b, c = np.polyfit(window_x, window_y, 2)
    if a <= 0:
        return raw
    vertex = -b / (2.0 * a)
    if not (window_x[0] <= vertex <= window_x[-1]):
        return raw

    fitted_length = round(float(a * vertex * vertex + b * vertex + c), 4)
    # Only a measured zero may signal a Zero Shadow Day.
    if fitted_length <= 0.0:
        return raw
    return SolarNoonEstimate(
        clock_time=_format_minutes(vertex),
        shadow_length=fitted_length,
        fitted=True,
    )
