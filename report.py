"""PDF and JSON report export for a shadow experiment."""
from __future__ import annotations

import pathlib
from datetime import datetime, timezone
from typing import Any

import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt
from matplotlib.backends.backend_pdf import PdfPages

from location_map import ReferencePoint, result_cards
from measurements import ShadowMeasurement
from shadow_chart import plot_shadow_series, predicted_series
from solar_geometry import CoordinateEstimate, ShadowObservation, distance_to_reference_km

PAGE_SIZE_IN = (8.27, 11.69)  # A4 portrait


def summarize(
    estimate: CoordinateEstimate,
    location_name: str | None = None,
    reference: ReferencePoint | None = None,
) -> dict[str, Any]:
    summary: dict[str, Any] = {
        "latitude_deg": round(estimate.latitude_deg, 4),
        "longitude_deg": round(estimate.longitude_deg, 4),
        "solar_elevation_deg": round(estimate.solar_elevation_deg, 2),
        "solar_declination_deg": round(estimate.solar_declination_deg, 2),
        "day_of_year": estimate.day_of_year,
        "zero_shadow_day": estimate.zero_shadow_day,
        "location_name": location_name,
    }
    if reference is not None:
        summary["reference"] = {
            "latitude_deg": reference.latitude_deg,
            "longitude_deg": reference.longitude_deg,
            "distance_km": round(
                distance_to_reference_km(estimate, reference.latitude_deg, reference.longitude_deg), 2
            ),
        }
    return summary


def _input_lines(observation: ShadowObservation) -> list[str]:
    offset = observation.utc_offset_hours
    return [
        f"Stick height: {observation.stick_height:g}",
        f"Shadow length at solar noon: {observation.shadow_length:g}",
        f"Date: {observation.observed_on.isoformat()}",
        f"Solar noon (local clock): {observation.solar_noon.strftime('%H:%M')}",
        f"UTC offset: {'+' if offset >= 0 else '-'}{abs(offset):g} h",
    ]


def _summary_page(
    observation: ShadowObservation,
    estimate: CoordinateEstimate,
    location_name: str | None,
    reference: ReferencePoint | None,
    generated_at: datetime,
):
    fig = plt.figure(figsize=PAGE_SIZE_IN)
    fig.text(0.08, 0.94, "ShadowFix report", fontsize=20, weight="bold")
    fig.text(0.08, 0.915, f"Generated {generated_at.strftime('%Y-%m-%d %H:%M UTC')}", fontsize=9, color="#555555")

    y = 0.87
    fig.text(0.08, y, "Measurement", fontsize=14, weight="bold")
    y -= 0.03
    for line in _input_lines(observation):
        fig.text(0.10, y, line, fontsize=11)
        y -= 0.025

    y -= 0.02
    fig.text(0.08, y, "Results", fontsize=14, weight="bold")
    y -= 0.03
    for card in result_cards(estimate, location_name):
        fig.text(0.10, y, card.title, fontsize=11, weight="bold", wrap=True)
        y -= 0.02
        fig.text(0.10, y, card.description, fontsize=9, color="#555555", wrap=True)
        y -= 0.03

    if reference is not None:
        distance_km = distance_to_reference_km(estimate, reference.latitude_deg, reference.longitude_deg)
        y -= 0.01
        fig.text(
            0.10,
            y,
            f"{reference.label}: {reference.latitude_deg:.4f}°, {reference.longitude_deg:.4f}° "
            f"(distance to estimate {distance_km:.1f} km)",
            fontsize=10,
        )
    return fig


def build_report(
    path: str | pathlib.Path,
    observation: ShadowObservation,
    estimate: CoordinateEstimate,
    location_name: str | None = None,
    measurements: list[ShadowMeasurement] | None = None,
    reference: ReferencePoint | None = None,
) -> pathlib.Path:
    """Write a multi-page PDF: results first, then the shadow chart if there is one."""
    out_path = pathlib.Path(path)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    generated_at = datetime.now(timezone.utc)

    with PdfPages(out_path) as pdf:
        page = _summary_page(observation, estimate, location_name, reference, generated_at)
        pdf.savefig(page)
        plt.close(page)

        if measurements:
            labels = sorted(m.clock_time for m in measurements)
            predicted = predicted_series(
                observation.stick_height,
                estimate.latitude_deg,
                estimate.longitude_deg,
                observation.observed_on,
                observation.utc_offset_hours,
                labels,
            )
            chart = plot_shadow_series(measurements, predicted=predicted, title="Shadow length over time")
            pdf.savefig(chart, facecolor=chart.get_facecolor())
            plt.close(chart)

        info = pdf.infodict()
        info["Title"] = "ShadowFix report"
        info["Subject"] = f"Estimated location {estimate.latitude_deg:.4f}, {estimate.longitude_deg:.4f}"
        info["CreationDate"] = generated_at

    return out_path
