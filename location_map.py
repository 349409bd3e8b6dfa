"""Standalone OpenStreetMap page for an estimated location.

No extra Python packages are required. The output file uses Leaflet via CDN.
"""
from __future__ import annotations

import html
import json
import pathlib
from dataclasses import dataclass

from app_config import get_app_config
from solar_geometry import CoordinateEstimate, distance_to_reference_km


@dataclass(frozen=True)
class ResultCard:
    key: str
    title: str
    description: str


@dataclass(frozen=True)
class ReferencePoint:
    latitude_deg: float
    longitude_deg: float
    label: str = "Reference location"


def result_cards(estimate: CoordinateEstimate, location_name: str | None = None) -> list[ResultCard]:
    """Result entries shown next to the map and in the report."""
    zero = estimate.zero_shadow_day
    cards = [
        ResultCard(
            "zeroShadowDay",
            f"Zero Shadow Day: {'Yes' if zero else 'No'}",
            "Sun is directly overhead (shadow length = 0)" if zero else "Not a Zero Shadow Day",
        ),
        ResultCard(
            "solarElevation",
            f"Solar Elevation Angle: {estimate.solar_elevation_deg:.2f}°",
            "Solar elevation angle (height of sun above horizon)",
        ),
        ResultCard(
            "solarDeclination",
            f"Solar Declination: {estimate.solar_declination_deg:.2f}°",
            "Solar declination (sun's angular position north/south of celestial equator)",
        ),
        ResultCard(
            "latitude",
            f"Latitude: {estimate.latitude_deg:.4f}°",
            "Calculated from Zero Shadow Day (Latitude ≈ Solar Declination)"
            if zero
            else "Calculated geographical latitude",
        ),
        ResultCard(
            "longitude",
            f"Longitude: {estimate.longitude_deg:.4f}°",
            "Calculated geographical longitude (based on solar noon time)",
        ),
    ]
    if location_name is not None:
        cards.append(
            ResultCard(
                "locationName",
                f"Location Name: {location_name}",
                "Location name based on coordinates",
            )
        )
    return cards


def _cards_html(cards: list[ResultCard]) -> str:
    return "\n".join(
        f'      <div class="card" id="{card.key}">\n'
        f"        <strong>{html.escape(card.title)}</strong>\n"
        f'        <span class="result-description">{html.escape(card.description)}</span>\n'
        f"      </div>"
        for card in cards
    )


def build_map_html(
    estimate: CoordinateEstimate,
    location_name: str,
    reference: ReferencePoint | None = None,
) -> str:
    config = get_app_config()
    cards = result_cards(estimate, location_name)
    markers = [
        {
            "lat": estimate.latitude_deg,
            "lon": estimate.longitude_deg,
            "popup": f"Calculated Location: {html.escape(location_name)}",
            "color": "#60a5fa",
            "open": True,
        }
    ]
    if reference is not None:
        distance_km = distance_to_reference_km(estimate, reference.latitude_deg, reference.longitude_deg)
        markers.append(
            {
                "lat": reference.latitude_deg,
                "lon": reference.longitude_deg,
                "popup": f"{html.escape(reference.label)}<br>Distance to estimate: {distance_km:.1f} km",
                "color": "#f59e0b",
                "open": False,
            }
        )
        cards.append(
            ResultCard(
                "referenceDistance",
                f"Distance to {reference.label}: {distance_km:.1f} km",
                "Geodesic distance between the estimate and the known location",
            )
        )

    markers_json = json.dumps(markers, ensure_ascii=False)
    tile_url = json.dumps(config.tile_url)
    attribution = json.dumps(config.tile_attribution)
    return f"""<!doctype html>
<html lang="en">
<head>
  <meta charset="utf-8" />
  <meta name="viewport" content="width=device-width, initial-scale=1" />
  <title>ShadowFix: {estimate.latitude_deg:.4f}, {estimate.longitude_deg:.4f}</title>
  <link rel="stylesheet" href="https://unpkg.com/leaflet@1.9.4/dist/leaflet.css" />
  <style>
    html, body, #map {{ height: 100%; margin: 0; }}
    .panel {{
      position: absolute;
      top: 12px;
      right: 12px;
      z-index: 1000;
      background: rgba(26, 32, 44, 0.95);
      color: #e2e8f0;
      border: 1px solid #4a5568;
      border-radius: 10px;
      padding: 10px 12px;
      width: 300px;
      font: 13px/1.4 Roboto, -apple-system, BlinkMacSystemFont, Segoe UI, sans-serif;
      box-shadow: 0 4px 14px rgba(0,0,0,0.25);
    }}
    .panel h3 {{ margin: 0 0 6px; font-size: 14px; }}
    .card {{ margin: 8px 0; }}
    .card strong {{ display: block; }}
    .result-description {{ color: #a0aec0; font-size: 12px; }}
  </style>
</head>
<body>
  <div id="map"></div>
  <div class="panel">
    <h3>ShadowFix result</h3>
{_cards_html(cards)}
  </div>

  <script src="https://unpkg.com/leaflet@1.9.4/dist/leaflet.js"></script>
  <script>
    const markers = {markers_json};
    const map = L.map("map").setView([markers[0].lat, markers[0].lon], {config.map_zoom});
    L.tileLayer({tile_url}, {{
      maxZoom: 19,
      attribution: {attribution}
    }}).addTo(map);

    for (const m of markers) {{
      const marker = L.circleMarker([m.lat, m.lon], {{
        radius: 8,
        color: m.color,
        weight: 2,
        fillColor: m.color,
        fillOpacity: 0.85
      }}).addTo(map).bindPopup(m.popup);
      if (m.open) marker.openPopup();
    }}
  </script>
</body>
</html>
"""


def write_map(path: str | pathlib.Path, page: str) -> pathlib.Path:
    out_path = pathlib.Path(path)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_text(page, encoding="utf-8")
    return out_path
