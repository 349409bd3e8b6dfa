"""Estimate latitude/longitude from a stick-and-shadow experiment.

Writes an interactive OpenStreetMap page and, on request, a shadow chart,
a PDF report and a GeoJSON point.
"""
from __future__ import annotations

import argparse
import json
import logging
import pathlib
import webbrowser
from datetime import date

import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt

from app_config import get_app_config
from geocoding import get_location_name
from location_map import ReferencePoint, build_map_html, result_cards, write_map
from measurements import ShadowMeasurement, estimate_solar_noon, load_measurements_csv
from report import build_report, summarize
from shadow_chart import plot_shadow_series, predicted_series
from solar_geometry import (
    InvalidObservationError,
    ShadowObservation,
    estimate_coordinates,
    estimate_to_geojson,
    validate_observation,
)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="shadowfix",
        description="Estimate your latitude and longitude from a gnomon shadow at solar noon.",
    )
    parser.add_argument("--stick-height", type=float, required=True, help="Gnomon height (any unit).")
    parser.add_argument(
        "--shadow-length",
        type=float,
        default=None,
        help="Shadow length at solar noon, same unit as the stick. Use 0 on a Zero Shadow Day.",
    )
    parser.add_argument("--date", default=None, help="Observation date, YYYY-MM-DD. Default: today.")
    parser.add_argument("--solar-noon", default=None, help="Local clock time of the shortest shadow, HH:MM.")
    parser.add_argument(
        "--utc-offset",
        type=float,
        required=True,
        help="Hours east of UTC for the clock used, e.g. 5.5 or -4.",
    )
    parser.add_argument(
        "--measurements",
        default=None,
        help="CSV with 'time' and 'shadow_length' columns. Derives solar noon and the noon shadow.",
    )
    parser.add_argument("--reference-lat", type=float, default=None, help="Known latitude for comparison.")
    parser.add_argument("--reference-lon", type=float, default=None, help="Known longitude for comparison.")
    parser.add_argument(
        "--lookup",
        action=argparse.BooleanOptionalAction,
        default=True,
        help="Resolve a place name through Nominatim (default: true).",
    )
    parser.add_argument("--output-dir", default=None, help="Directory for generated files.")
    parser.add_argument("--chart", action="store_true", help="Save the shadow chart as PNG.")
    parser.add_argument("--pdf", action="store_true", help="Export a PDF report.")
    parser.add_argument("--geojson", action="store_true", help="Export the estimate as a GeoJSON feature.")
    parser.add_argument(
        "--open",
        action=argparse.BooleanOptionalAction,
        default=False,
        help="Open the generated map in your browser.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Log lookups and cache activity.")
    return parser


def _resolve_observation(
    args: argparse.Namespace,
    measurements: list[ShadowMeasurement],
) -> ShadowObservation:
    shadow_length = args.shadow_length
    solar_noon = args.solar_noon
    if measurements:
        noon = estimate_solar_noon(measurements)
        print(
            f"Solar noon from {len(measurements)} readings: {noon.clock_time} "
            f"(shortest shadow {noon.shadow_length:g}{', fitted' if noon.fitted else ''})"
        )
        if solar_noon is None:
            solar_noon = noon.clock_time
        if shadow_length is None:
            shadow_length = noon.shadow_length

    if shadow_length is None:
        raise InvalidObservationError("shadow length is required (or pass --measurements)")

    return validate_observation(
        args.stick_height,
        shadow_length,
        args.date or date.today().isoformat(),
        solar_noon,
        args.utc_offset,
    )


def _resolve_reference(args: argparse.Namespace) -> ReferencePoint | None:
    if args.reference_lat is None and args.reference_lon is None:
        return None
    if args.reference_lat is None or args.reference_lon is None:
        raise SystemExit("Pass both --reference-lat and --reference-lon.")
    return ReferencePoint(args.reference_lat, args.reference_lon)


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    measurements: list[ShadowMeasurement] = []
    try:
        if args.measurements:
            measurements = load_measurements_csv(args.measurements)
            if not measurements:
                raise SystemExit(f"No usable rows in {args.measurements}.")
        observation = _resolve_observation(args, measurements)
        estimate = estimate_coordinates(observation)
    except (ValueError, OSError) as exc:
        raise SystemExit(f"Please check your inputs: {exc}") from exc

    reference = _resolve_reference(args)
    if estimate.zero_shadow_day:
        print("It's Zero Shadow Day! Latitude ≈ Solar Declination.")

    if args.lookup:
        location_name = get_location_name(estimate.latitude_deg, estimate.longitude_deg)
    else:
        location_name = "Location lookup disabled"

    for card in result_cards(estimate, location_name):
        print(f"{card.title}  ({card.description})")
    if reference is not None:
        distance_km = summarize(estimate, location_name, reference)["reference"]["distance_km"]
        print(f"Distance to reference: {distance_km:.1f} km")

    output_dir = pathlib.Path(args.output_dir) if args.output_dir else get_app_config().output_dir
    map_path = write_map(
        output_dir / "shadowfix_map.html",
        build_map_html(estimate, location_name, reference=reference),
    )
    print(f"Saved map: {map_path}")

    if args.chart:
        if not measurements:
            print("Skipping chart: no --measurements given.")
        else:
            predicted = predicted_series(
                observation.stick_height,
                estimate.latitude_deg,
                estimate.longitude_deg,
                observation.observed_on,
                observation.utc_offset_hours,
                [m.clock_time for m in measurements],
            )
            chart_path = output_dir / "shadowfix_chart.png"
            fig = plot_shadow_series(measurements, path=chart_path, predicted=predicted)
            plt.close(fig)
            print(f"Saved chart: {chart_path}")

    if args.pdf:
        pdf_path = build_report(
            output_dir / "shadowfix_report.pdf",
            observation,
            estimate,
            location_name=location_name,
            measurements=measurements or None,
            reference=reference,
        )
        print(f"Saved report: {pdf_path}")

    if args.geojson:
        geojson_path = output_dir / "shadowfix_estimate.geojson"
        geojson_path.write_text(
            json.dumps(estimate_to_geojson(estimate, location_name), ensure_ascii=False, indent=2),
            encoding="utf-8",
        )
        print(f"Saved GeoJSON: {geojson_path}")

    if args.open:
        webbrowser.open(map_path.resolve().as_uri())
        print("Opened in browser.")


if __name__ == "__main__":
    main()
