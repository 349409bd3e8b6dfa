"""Runtime configuration for ShadowFix."""

from __future__ import annotations

import os
import pathlib
from collections.abc import Mapping
from dataclasses import dataclass
from functools import lru_cache


@dataclass(frozen=True)
class AppConfig:
    nominatim_url: str
    user_agent: str
    tile_url: str
    tile_attribution: str
    map_zoom: int
    request_timeout_s: float
    cache_dir: pathlib.Path
    cache_ttl_hours: float
    output_dir: pathlib.Path

    @property
    def geocode_cache_root(self) -> pathlib.Path:
        return self.cache_dir / "geocode"


DEFAULT_CONFIG = AppConfig(
    nominatim_url="https://nominatim.openstreetmap.org/reverse",
    user_agent="ShadowFix/0.1 (gnomon latitude/longitude estimator)",
    tile_url="https://{s}.tile.openstreetmap.org/{z}/{x}/{y}.png",
    tile_attribution='&copy; <a href="https://www.openstreetmap.org/copyright">OpenStreetMap</a> contributors',
    map_zoom=10,
    request_timeout_s=20.0,
    cache_dir=pathlib.Path(".cache/shadowfix_v1"),
    cache_ttl_hours=24.0 * 30,
    output_dir=pathlib.Path("output"),
)


def _env_str(env: Mapping[str, str], name: str, default: str) -> str:
    value = env.get(f"SHADOWFIX_{name}")
    if value is None or not value.strip():
        return default
    return value.strip()


def _env_float(env: Mapping[str, str], name: str, default: float) -> float:
    try:
        return float(_env_str(env, name, str(default)))
    except ValueError:
        return default


def load_app_config(environ: Mapping[str, str] | None = None) -> AppConfig:
    """Build a config from SHADOWFIX_* environment variables on top of the defaults."""
    env = os.environ if environ is None else environ
    base = DEFAULT_CONFIG
    zoom = int(_env_float(env, "MAP_ZOOM", base.map_zoom))
    return AppConfig(
        nominatim_url=_env_str(env, "NOMINATIM_URL", base.nominatim_url),
        user_agent=_env_str(env, "USER_AGENT", base.user_agent),
        tile_url=_env_str(env, "TILE_URL", base.tile_url),
        tile_attribution=base.tile_attribution,
        map_zoom=max(1, min(19, zoom)),
        request_timeout_s=_env_float(env, "REQUEST_TIMEOUT", base.request_timeout_s),
        cache_dir=pathlib.Path(_env_str(env, "CACHE_DIR", str(base.cache_dir))),
        cache_ttl_hours=_env_float(env, "CACHE_TTL_HOURS", base.cache_ttl_hours),
        output_dir=pathlib.Path(_env_str(env, "OUTPUT_DIR", str(base.output_dir))),
    )


@lru_cache(maxsize=1)
def get_app_config() -> AppConfig:
    return load_app_config()
