import unittest
from unittest.mock import patch

from fastapi.testclient import TestClient

import api

BODY = {
    "stick_height": 100,
    "shadow_length": 20,
    "date": "2024-04-10",
    "solar_noon": "12:31",
    "utc_offset": 5.5,
}


class ApiTests(unittest.TestCase):
    def setUp(self):
        self.client = TestClient(api.app)
        lookup = patch("api.get_location_name", return_value="Pune, Maharashtra, India")
        self.lookup = lookup.start()
        self.addCleanup(lookup.stop)

    def test_health(self):
        self.assertEqual(self.client.get("/api/health").json(), {"status": "ok"})

    def test_coordinates(self):
        response = self.client.post("/api/coordinates", json=BODY)
        self.assertEqual(response.status_code, 200)
        payload = response.json()
        result = payload["result"]
        self.assertEqual(result["location_name"], "Pune, Maharashtra, India")
        self.assertFalse(result["zero_shadow_day"])
        self.assertAlmostEqual(result["longitude_deg"], 74.75, places=4)
        self.assertEqual(payload["feature"]["geometry"]["type"], "Point")
        self.lookup.assert_called_once()

    def test_coordinates_without_lookup(self):
        response = self.client.post("/api/coordinates", json={**BODY, "lookup": False})
        self.assertEqual(response.status_code, 200)
        self.assertIsNone(response.json()["result"]["location_name"])
        self.lookup.assert_not_called()

    def test_coordinates_with_reference(self):
        response = self.client.post(
            "/api/coordinates", json={**BODY, "reference_lat": 18.52, "reference_lon": 73.86}
        )
        self.assertIn("distance_km", response.json()["result"]["reference"])

    def test_invalid_observation_is_422(self):
        for bad in ({"stick_height": 0}, {"shadow_length": -1}, {"solar_noon": "noon"}, {"utc_offset": 20}):
            with self.subTest(bad=bad):
                response = self.client.post("/api/coordinates", json={**BODY, **bad})
                self.assertEqual(response.status_code, 422)

    def test_missing_field_is_422(self):
        body = dict(BODY)
        del body["date"]
        self.assertEqual(self.client.post("/api/coordinates", json=body).status_code, 422)

    def test_measurement_series(self):
        response = self.client.post(
            "/api/measurements/series",
            json={
                "rows": [
                    {"time": "13:00", "shadow_length": 50},
                    {"time": "11:00", "shadow_length": 50},
                    {"time": "12:00", "shadow_length": 40},
                    {"time": "", "shadow_length": 10},
                    {"time": "12:30", "shadow_length": "oops"},
                ]
            },
        )
        payload = response.json()
        self.assertEqual(payload["labels"], ["11:00", "12:00", "13:00"])
        self.assertEqual(payload["values"], [50.0, 40.0, 50.0])
        self.assertEqual(payload["solar_noon"]["time"], "12:00")

    def test_empty_series(self):
        payload = self.client.post("/api/measurements/series", json={"rows": []}).json()
        self.assertEqual(payload["count"], 0)
        self.assertIsNone(payload["solar_noon"])

    def test_map_page(self):
        response = self.client.post("/api/map", json=BODY)
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.headers["content-type"].startswith("text/html"))
        self.assertIn("Calculated Location: Pune", response.text)

    def test_report_pdf(self):
        response = self.client.post(
            "/api/report",
            json={
                **BODY,
                "measurements": [
                    {"time": "11:30", "shadow_length": 27},
                    {"time": "12:30", "shadow_length": 20},
                    {"time": "13:30", "shadow_length": 28},
                ],
            },
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.headers["content-type"], "application/pdf")
        self.assertTrue(response.content.startswith(b"%PDF"))


if __name__ == "__main__":
    unittest.main()
