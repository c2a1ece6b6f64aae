"""Startup configuration for the Seattle crime dashboard.

Values come from the process environment (a ``.env`` file at the project root
is loaded first) and fall back to the defaults the dashboard was tuned with.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, NamedTuple, Optional

from dotenv import load_dotenv

from seattle_crime.utils.exceptions import ConfigError


ROOT = Path(__file__).resolve().parents[2]
ENV_PATH = ROOT / '.env'

# SPD Crime Data: 2008-Present (dataset ID tazs-3rd5), SODA2 endpoint
DEFAULT_API_BASE = 'https://data.seattle.gov/resource/tazs-3rd5.json'

# Socrata refuses a $limit above this per request
SOCRATA_MAX_PAGE_SIZE = 50_000


class BoundingBox(NamedTuple):
    min_lat: float
    max_lat: float
    min_lon: float
    max_lon: float


# Loose box around the city, used to reject junk coordinates
SEATTLE_BOUNDS = BoundingBox(min_lat=47.45, max_lat=47.75, min_lon=-122.45, max_lon=-122.20)
SEATTLE_CENTER = {"lat": 47.6062, "lon": -122.3321}


def _int_env(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or str(raw).strip() == '':
        return default
    try:
        value = int(str(raw).strip())
    except ValueError:
        raise ConfigError(f'{name} must be an integer, got {raw!r}')
    if value <= 0:
        raise ConfigError(f'{name} must be positive, got {value}')
    return value


@dataclass(frozen=True)
class DashboardSettings:
    api_base: str = DEFAULT_API_BASE
    app_token: str = ''
    page_size: int = 5000
    max_total_rows: int = 50_000
    lookback_days: int = 365
    map_max_points: int = 2000
    top_n_offenses: int = 12
    request_timeout: int = 60

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> 'DashboardSettings':
        """Build settings from ``env`` (defaults to ``os.environ``).

        Raises:
            ConfigError: a numeric variable is malformed, non-positive, or the
                page size exceeds what Socrata serves in one request.
        """
        env = os.environ if env is None else env
        settings = cls(
            api_base=(env.get('SEATTLE_CRIME_API_BASE') or DEFAULT_API_BASE).strip(),
            app_token=(env.get('SOCRATA_APP_TOKEN') or '').strip(),
            page_size=_int_env(env, 'SEATTLE_CRIME_PAGE_SIZE', cls.page_size),
            max_total_rows=_int_env(env, 'SEATTLE_CRIME_MAX_TOTAL_ROWS', cls.max_total_rows),
            lookback_days=_int_env(env, 'SEATTLE_CRIME_LOOKBACK_DAYS', cls.lookback_days),
            map_max_points=_int_env(env, 'SEATTLE_CRIME_MAP_MAX_POINTS', cls.map_max_points),
            top_n_offenses=_int_env(env, 'SEATTLE_CRIME_TOP_N', cls.top_n_offenses),
            request_timeout=_int_env(env, 'SEATTLE_CRIME_REQUEST_TIMEOUT', cls.request_timeout),
        )
        if settings.page_size > SOCRATA_MAX_PAGE_SIZE:
            raise ConfigError(
                f'SEATTLE_CRIME_PAGE_SIZE={settings.page_size} exceeds the Socrata limit of {SOCRATA_MAX_PAGE_SIZE}'
            )
        return settings


def load_settings() -> DashboardSettings:
    """Load ``.env`` (if present) and return the resulting settings."""
    load_dotenv(dotenv_path=ENV_PATH)
    return DashboardSettings.from_env()
