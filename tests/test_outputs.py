import pathlib
import re
import tempfile
import unittest
from datetime import date, time

import matplotlib.pyplot as plt

from location_map import ReferencePoint, build_map_html, result_cards, write_map
from measurements import ShadowMeasurement
from report import build_report, summarize
from shadow_chart import plot_shadow_series, predicted_series
from solar_geometry import ShadowObservation, estimate_coordinates

OBSERVATION = ShadowObservation(
    stick_height=100.0,
    shadow_length=20.0,
    observed_on=date(2024, 4, 10),
    solar_noon=time(12, 31),
    utc_offset_hours=5.5,
)
SERIES = [
    ShadowMeasurement("10:30", 48.0),
    ShadowMeasurement("11:30", 27.0),
    ShadowMeasurement("12:30", 20.0),
    ShadowMeasurement("13:30", 28.0),
    ShadowMeasurement("14:30", 49.0),
]


def _page_count(pdf_bytes: bytes) -> int:
    return len(re.findall(rb"/Type\s*/Page\b", pdf_bytes))


class ResultCardTests(unittest.TestCase):
    def test_card_formatting(self):
        estimate = estimate_coordinates(OBSERVATION)
        cards = {card.key: card for card in result_cards(estimate, "Pune")}
        self.assertEqual(cards["zeroShadowDay"].title, "Zero Shadow Day: No")
        self.assertEqual(cards["latitude"].title, f"Latitude: {estimate.latitude_deg:.4f}°")
        self.assertEqual(cards["solarElevation"].title, f"Solar Elevation Angle: {estimate.solar_elevation_deg:.2f}°")
        self.assertEqual(cards["locationName"].title, "Location Name: Pune")

    def test_zero_shadow_day_cards(self):
        estimate = estimate_coordinates(
            ShadowObservation(1.0, 0.0, date(2024, 5, 16), time(12, 25), 5.5)
        )
        cards = {card.key: card for card in result_cards(estimate)}
        self.assertEqual(cards["zeroShadowDay"].title, "Zero Shadow Day: Yes")
        self.assertIn("Latitude ≈ Solar Declination", cards["latitude"].description)
        self.assertNotIn("locationName", cards)


class MapPageTests(unittest.TestCase):
    def test_page_contains_marker_and_results(self):
        estimate = estimate_coordinates(OBSERVATION)
        page = build_map_html(estimate, "Pune, Maharashtra, India")
        self.assertIn("leaflet.js", page)
        self.assertIn("Calculated Location: Pune, Maharashtra, India", page)
        self.assertIn(f"{estimate.longitude_deg:.4f}", page)
        self.assertIn("tile.openstreetmap.org", page)

    def test_location_name_is_escaped(self):
        estimate = estimate_coordinates(OBSERVATION)
        page = build_map_html(estimate, "<script>alert(1)</script>")
        self.assertNotIn("<script>alert(1)</script>", page)
        self.assertIn("&lt;script&gt;", page)

    def test_reference_marker_and_distance(self):
        estimate = estimate_coordinates(OBSERVATION)
        page = build_map_html(estimate, "Somewhere", reference=ReferencePoint(18.52, 73.86, "School yard"))
        self.assertIn("Distance to School yard", page)
        self.assertIn("#f59e0b", page)

    def test_write_map_creates_directories(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = write_map(pathlib.Path(tmp) / "nested" / "map.html", "<html></html>")
            self.assertTrue(path.exists())
            self.assertEqual(path.read_text(encoding="utf-8"), "<html></html>")


class ChartTests(unittest.TestCase):
    def test_plot_orders_points_by_time(self):
        shuffled = [SERIES[3], SERIES[0], SERIES[4], SERIES[1], SERIES[2]]
        fig = plot_shadow_series(shuffled)
        try:
            ax = fig.axes[0]
            line = ax.get_lines()[0]
            self.assertEqual(list(line.get_ydata()), [48.0, 27.0, 20.0, 28.0, 49.0])
            self.assertEqual([t.get_text() for t in ax.get_xticklabels()], [m.clock_time for m in SERIES])
            self.assertEqual(ax.get_xlabel(), "Time (hh:mm)")
            self.assertEqual(ax.get_ylabel(), "Shadow Length (cm)")
            self.assertEqual(ax.get_ylim()[0], 0)
        finally:
            plt.close(fig)

    def test_predicted_overlay_skips_gaps(self):
        fig = plot_shadow_series(SERIES, predicted=[50.0, None, 21.0, 29.0, None])
        try:
            overlay = fig.axes[0].get_lines()[1]
            self.assertEqual(list(overlay.get_xdata()), [0, 2, 3])
        finally:
            plt.close(fig)

    def test_predicted_length_mismatch(self):
        with self.assertRaises(ValueError):
            plot_shadow_series(SERIES, predicted=[1.0])

    def test_saves_png(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = pathlib.Path(tmp) / "chart.png"
            fig = plot_shadow_series(SERIES, path=path)
            plt.close(fig)
            self.assertTrue(path.read_bytes().startswith(b"\x89PNG"))

    def test_predicted_series_at_night_is_none(self):
        values = predicted_series(1.0, 18.5, 73.85, date(2024, 4, 10), 5.5, ["00:30", "12:30"])
        self.assertIsNone(values[0])
        self.assertIsNotNone(values[1])
        self.assertGreater(values[1], 0.0)


class ReportTests(unittest.TestCase):
    def test_summary_rounding_and_reference(self):
        estimate = estimate_coordinates(OBSERVATION)
        summary = summarize(estimate, "Pune", ReferencePoint(estimate.latitude_deg, estimate.longitude_deg))
        self.assertEqual(summary["latitude_deg"], round(estimate.latitude_deg, 4))
        self.assertEqual(summary["location_name"], "Pune")
        self.assertAlmostEqual(summary["reference"]["distance_km"], 0.0)

    def test_pdf_with_chart(self):
        estimate = estimate_coordinates(OBSERVATION)
        with tempfile.TemporaryDirectory() as tmp:
            path = build_report(
                pathlib.Path(tmp) / "out" / "report.pdf",
                OBSERVATION,
                estimate,
                location_name="Pune",
                measurements=SERIES,
                reference=ReferencePoint(18.52, 73.86),
            )
            content = path.read_bytes()
        self.assertTrue(content.startswith(b"%PDF"))
        self.assertEqual(_page_count(content), 2)

    def test_pdf_without_measurements(self):
        estimate = estimate_coordinates(OBSERVATION)
        with tempfile.TemporaryDirectory() as tmp:
            path = build_report(pathlib.Path(tmp) / "report.pdf", OBSERVATION, estimate)
            content = path.read_bytes()
        self.assertEqual(_page_count(content), 1)


if __name__ == "__main__":
    unittest.main()
