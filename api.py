"""FastAPI server for ShadowFix."""
import datetime as dt
import tempfile

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, Response
from pydantic import BaseModel, Field

from geocoding import get_location_name
from location_map import ReferencePoint, build_map_html
from measurements import clean_measurements, estimate_solar_noon, sort_by_time
from report import build_report, summarize
from solar_geometry import (
    InvalidObservationError,
    ShadowObservation,
    estimate_coordinates,
    estimate_to_geojson,
    validate_observation,
)

app = FastAPI(title="ShadowFix", version="0.1.0")
app.add_middleware(CORSMiddleware, allow_origins=["*"], allow_methods=["*"], allow_headers=["*"])


class ObservationBody(BaseModel):
    stick_height: float = Field(..., description="Gnomon height, same unit as shadow_length")
    shadow_length: float = Field(..., description="Shadow length at solar noon")
    date: dt.date
    solar_noon: str = Field(..., description="Local clock time of solar noon, HH:MM")
    utc_offset: float = Field(..., description="Hours east of UTC, e.g. 5.5 or -3")
    lookup: bool = Field(default=True, description="Resolve a place name via Nominatim")
    reference_lat: float | None = Field(default=None, ge=-90, le=90)
    reference_lon: float | None = Field(default=None, ge=-180, le=180)


class MeasurementRow(BaseModel):
    time: str
    shadow_length: float | str | None = None


class SeriesBody(BaseModel):
    rows: list[MeasurementRow] = Field(default_factory=list)


class ReportBody(ObservationBody):
    measurements: list[MeasurementRow] = Field(default_factory=list)


def _observation_from(body: ObservationBody) -> ShadowObservation:
    try:
        return validate_observation(
            body.stick_height,
            body.shadow_length,
            body.date,
            body.solar_noon,
            body.utc_offset,
        )
    except InvalidObservationError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc


def _reference_from(body: ObservationBody) -> ReferencePoint | None:
    if body.reference_lat is None or body.reference_lon is None:
        return None
    return ReferencePoint(body.reference_lat, body.reference_lon)


def _solve(body: ObservationBody):
    observation = _observation_from(body)
    try:
        estimate = estimate_coordinates(observation)
    except InvalidObservationError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    location_name = (
        get_location_name(estimate.latitude_deg, estimate.longitude_deg) if body.lookup else None
    )
    return observation, estimate, location_name


@app.get("/api/health")
def health():
    return {"status": "ok"}


@app.post("/api/coordinates")
def coordinates(body: ObservationBody):
    """Estimate latitude/longitude from a solar-noon shadow."""
    _, estimate, location_name = _solve(body)
    reference = _reference_from(body)
    return {
        "result": summarize(estimate, location_name, reference),
        "feature": estimate_to_geojson(estimate, location_name),
    }


@app.post("/api/measurements/series")
def measurement_series(body: SeriesBody):
    """Sorted chart series plus the solar noon read off the shortest shadow."""
    rows = sort_by_time(clean_measurements(row.model_dump() for row in body.rows))
    solar_noon = None
    if rows:
        noon = estimate_solar_noon(rows)
        solar_noon = {
            "time": noon.clock_time,
            "shadow_length": noon.shadow_length,
            "fitted": noon.fitted,
        }
    return {
        "labels": [m.clock_time for m in rows],
        "values": [m.shadow_length for m in rows],
        "count": len(rows),
        "solar_noon": solar_noon,
    }


@app.post("/api/map", response_class=HTMLResponse)
def map_page(body: ObservationBody):
    _, estimate, location_name = _solve(body)
    page = build_map_html(
        estimate,
        location_name or "Location lookup disabled",
        reference=_reference_from(body),
    )
    return HTMLResponse(content=page)


@app.post("/api/report")
def report_pdf(body: ReportBody):
    observation, estimate, location_name = _solve(body)
    measurements = sort_by_time(clean_measurements(row.model_dump() for row in body.measurements))
    with tempfile.TemporaryDirectory() as tmp:
        path = build_report(
            f"{tmp}/shadowfix_report.pdf",
            observation,
            estimate,
            location_name=location_name,
            measurements=measurements or None,
            reference=_reference_from(body),
        )
        content = path.read_bytes()
    return Response(
        content=content,
        media_type="application/pdf",
        headers={"Content-Disposition": 'attachment; filename="shadowfix_report.pdf"'},
    )
