from __future__ import annotations

import re
from typing import Any, Dict, List, Optional, Sequence

import numpy as np
import pandas as pd

from seattle_crime.data.schema import SchemaKeys
from seattle_crime.settings import SEATTLE_BOUNDS, BoundingBox
from seattle_crime.utils.logger_config import setup_logger


logger = setup_logger(__name__)

UNKNOWN = 'Unknown'

# trailing 'Z' or +HH:MM / -HHMM
TZ_SUFFIX = re.compile(r'(?:Z|[+-]\d{2}:?\d{2})$')

INCIDENT_COLUMNS: List[str] = [
    'timestamp',
    'date',
    'precinct',
    'offense_group',
    'crime_against',
    'neighborhood',
    'latitude',
    'longitude',
    'has_valid_coordinate',
]

# incident column -> SchemaKeys attribute
CATEGORICAL_KEYS: Dict[str, str] = {
    'precinct': 'precinct_key',
    'offense_group': 'offense_group_key',
    'crime_against': 'crime_against_key',
    'neighborhood': 'neighborhood_key',
}


def empty_incidents() -> pd.DataFrame:
    return pd.DataFrame({
        'timestamp': pd.Series(dtype='datetime64[ns]'),
        'date': pd.Series(dtype=object),
        'precinct': pd.Series(dtype=object),
        'offense_group': pd.Series(dtype=object),
        'crime_against': pd.Series(dtype=object),
        'neighborhood': pd.Series(dtype=object),
        'latitude': pd.Series(dtype='float64'),
        'longitude': pd.Series(dtype='float64'),
        'has_valid_coordinate': pd.Series(dtype=bool),
    })


def within_bounds(lat, lon, bounds: BoundingBox = SEATTLE_BOUNDS):
    """Strictly inside the box. Works on scalars and on aligned Series (NaN -> False)."""
    return (
        (lat > bounds.min_lat) & (lat < bounds.max_lat)
        & (lon > bounds.min_lon) & (lon < bounds.max_lon)
    )


def _column(raw: pd.DataFrame, key: Optional[str]) -> pd.Series:
    if key and key in raw.columns:
        return raw[key]
    return pd.Series([None] * len(raw), index=raw.index, dtype=object)


def _parse_timestamps(values: pd.Series) -> pd.Series:
    """
    ISO 8601 strings to naive timestamps, NaT where unparseable

    Floating values (the dataset's usual form) are kept as they are. Values carrying
    a UTC offset are converted to UTC first, so one page may mix both forms.
    """
    text = values.map(lambda v: v.strip() if isinstance(v, str) else None)
    has_offset = text.map(lambda v: v is not None and TZ_SUFFIX.search(v) is not None).astype(bool)

    parsed = pd.Series(pd.NaT, index=values.index, dtype='datetime64[ns]')
    if (~has_offset).any():
        parsed[~has_offset] = pd.to_datetime(text[~has_offset], errors='coerce', format='ISO8601')
    if has_offset.any():
        aware = pd.to_datetime(text[has_offset], errors='coerce', format='ISO8601', utc=True)
        parsed[has_offset] = aware.dt.tz_convert(None)
    return parsed


def _parse_coordinate(values: pd.Series) -> pd.Series:
    numeric = pd.to_numeric(values, errors='coerce').astype('float64')
    return numeric.where(np.isfinite(numeric))


def _categorical(values: pd.Series) -> pd.Series:
    # missing, null and empty all collapse to the same group
    def clean(value: Any) -> str:
        if value is None or (isinstance(value, float) and np.isnan(value)):
            return UNKNOWN
        text = str(value)
        return text if text else UNKNOWN
    return values.map(clean).astype(object)


def normalize_records(
    rows: Sequence[Dict[str, Any]],
    keys: SchemaKeys,
    bounds: BoundingBox = SEATTLE_BOUNDS,
) -> pd.DataFrame:
    """
    Map raw provider records onto the incident frame

    Args:
    rows (list): Records as returned by the provider
    keys (SchemaKeys): Resolved column names
    bounds (BoundingBox): Box a coordinate must fall into to be mapped

    Returns:
    pd.DataFrame: One row per record with a parseable date, columns INCIDENT_COLUMNS.
    Records without a usable date are dropped, coordinates only decide map eligibility.
    """
    if not rows or not keys.date_key:
        return empty_incidents()

    raw = pd.DataFrame.from_records(list(rows))

    timestamps = _parse_timestamps(_column(raw, keys.date_key))
    latitude = _parse_coordinate(_column(raw, keys.lat_key))
    longitude = _parse_coordinate(_column(raw, keys.lon_key))

    incidents = pd.DataFrame({
        'timestamp': timestamps,
        'date': timestamps.dt.strftime('%Y-%m-%d'),
        **{col: _categorical(_column(raw, getattr(keys, attr))) for col, attr in CATEGORICAL_KEYS.items()},
        'latitude': latitude,
        'longitude': longitude,
        'has_valid_coordinate': within_bounds(latitude, longitude, bounds).astype(bool),
    })

    valid_dates = incidents['timestamp'].notna()
    dropped = int((~valid_dates).sum())
    if dropped:
        logger.debug(f'Dropped {dropped} records without a parseable {keys.date_key}')

    incidents = incidents[valid_dates].reset_index(drop=True)
    logger.info(f'Normalized {len(incidents):,} incidents ({int(incidents["has_valid_coordinate"].sum()):,} mappable)')
    return incidents[INCIDENT_COLUMNS]
