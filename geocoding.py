"""Reverse geocoding through OSM Nominatim (free, no API key)."""
from __future__ import annotations

import hashlib
import json
import logging
import pathlib
from datetime import datetime, timezone
from functools import lru_cache

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from app_config import get_app_config

logger = logging.getLogger(__name__)

UNKNOWN_LOCATION = "Unknown location"
LOOKUP_FAILED = "Unable to fetch location name"

UTC = timezone.utc


def make_session(user_agent: str) -> requests.Session:
    s = requests.Session()
    s.headers.update({"User-Agent": user_agent})
    retry = Retry(
        total=3,
        backoff_factor=0.5,
        status_forcelist=[429, 500, 502, 503, 504],
        allowed_methods=["GET"],
        raise_on_status=False,
    )
    adapter = HTTPAdapter(max_retries=retry)
    s.mount("https://", adapter)
    s.mount("http://", adapter)
    return s


@lru_cache(maxsize=1)
def _session() -> requests.Session:
    return make_session(get_app_config().user_agent)


def _cache_key(lat: float, lon: float) -> str:
    # 4 decimal places is roughly an 11 m grid
    raw = f"{lat:.4f}|{lon:.4f}"
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()


def _cache_file(root: pathlib.Path, key: str) -> pathlib.Path:
    return root / f"{key}.json"


def read_cached_name(root: pathlib.Path, key: str, ttl_hours: float) -> str | None:
    path = _cache_file(root, key)
    if not path.exists():
        return None
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
        fetched_at = datetime.fromisoformat(payload["fetched_at"])
        if fetched_at.tzinfo is None:
            fetched_at = fetched_at.replace(tzinfo=UTC)
    except (OSError, ValueError, KeyError, TypeError):
        return None
    age_hours = (datetime.now(UTC) - fetched_at).total_seconds() / 3600.0
    if age_hours > ttl_hours:
        return None
    name = payload.get("display_name")
    return name if isinstance(name, str) and name else None


def write_cached_name(root: pathlib.Path, key: str, display_name: str) -> None:
    try:
        root.mkdir(parents=True, exist_ok=True)
        body = {"fetched_at": datetime.now(UTC).isoformat(), "display_name": display_name}
        _cache_file(root, key).write_text(json.dumps(body, ensure_ascii=False), encoding="utf-8")
    except OSError as exc:
        logger.warning("Could not write geocode cache: %s", exc)


def fetch_display_name(lat: float, lon: float) -> str | None:
    """Query Nominatim; return display_name or None. Network errors propagate."""
    config = get_app_config()
    params = {
        "format": "json",
        "lat": lat,
        "lon": lon,
        "zoom": 10,
        "addressdetails": 1,
    }
    r = _session().get(config.nominatim_url, params=params, timeout=config.request_timeout_s)
    r.raise_for_status()
    data = r.json()
    if isinstance(data, dict) and data.get("display_name"):
        return str(data["display_name"])
    return None


@lru_cache(maxsize=128)
def _lookup(lat_key: float, lon_key: float) -> str:
    config = get_app_config()
    root = config.geocode_cache_root
    key = _cache_key(lat_key, lon_key)

    cached = read_cached_name(root, key, config.cache_ttl_hours)
    if cached is not None:
        logger.debug("Geocode cache hit for %.4f, %.4f", lat_key, lon_key)
        return cached

    name = fetch_display_name(lat_key, lon_key)
    if name is None:
        return UNKNOWN_LOCATION
    write_cached_name(root, key, name)
    return name


def get_location_name(lat: float, lon: float) -> str:
    """Human-readable place name for a coordinate; never raises."""
    try:
        return _lookup(round(float(lat), 4), round(float(lon), 4))
    except (requests.RequestException, ValueError) as exc:
        logger.warning("Error fetching location name: %s", exc)
        return LOOKUP_FAILED
