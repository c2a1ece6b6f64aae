"""Resolve the provider's column names from a single probe record.

The SPD dataset has renamed columns over time (e.g. ``offense_date`` became
``report_date_time``), so every semantic column is looked up against an
ordered list of candidates. Earlier candidates win when several exist.
"""

from __future__ import annotations

from dataclasses import astuple, dataclass, fields
from typing import Any, Iterable, List, Mapping, Optional

from seattle_crime.utils.exceptions import SchemaResolutionError


DATE_CANDIDATES = (
    'report_date_time',
    'offense_date',
    'offense_start_datetime',
    'reported_date_time',
    'report_datetime',
    'report_date',
)
PRECINCT_CANDIDATES = ('precinct', 'precinct_name')
OFFENSE_GROUP_CANDIDATES = (
    'nibrs_group_a_b',
    'offense_parent_group',
    'offense_group',
    'offense_category',
    'offense_parent_group_name',
)
CRIME_AGAINST_CANDIDATES = (
    'nibrs_crime_against_category',
    'crime_against_category',
    'crime_against',
)
LAT_CANDIDATES = ('latitude', 'lat')
LON_CANDIDATES = ('longitude', 'lon', 'long')
NEIGHBORHOOD_CANDIDATES = ('neighborhood', 'neighborhood_name', 'mcpp')


@dataclass(frozen=True)
class SchemaKeys:
    """Provider field names for each semantic column, ``None`` when unmatched."""

    date_key: Optional[str] = None
    precinct_key: Optional[str] = None
    offense_group_key: Optional[str] = None
    crime_against_key: Optional[str] = None
    lat_key: Optional[str] = None
    lon_key: Optional[str] = None
    neighborhood_key: Optional[str] = None

    def select_columns(self) -> List[str]:
        """Resolved column names in declaration order, for ``$select``."""
        return [key for key in astuple(self) if key]

    def as_dict(self) -> dict:
        return {f.name: getattr(self, f.name) for f in fields(self)}


def pick_first_existing_key(record: Mapping[str, Any], candidates: Iterable[str]) -> Optional[str]:
    # existence, not truthiness: an empty value still identifies the column
    for key in candidates:
        if key in record:
            return key
    return None


def resolve_schema(sample: Mapping[str, Any]) -> SchemaKeys:
    """Infer SchemaKeys from one sample record. Pure, never raises."""
    sample = sample or {}
    return SchemaKeys(
        date_key=pick_first_existing_key(sample, DATE_CANDIDATES),
        precinct_key=pick_first_existing_key(sample, PRECINCT_CANDIDATES),
        offense_group_key=pick_first_existing_key(sample, OFFENSE_GROUP_CANDIDATES),
        crime_against_key=pick_first_existing_key(sample, CRIME_AGAINST_CANDIDATES),
        lat_key=pick_first_existing_key(sample, LAT_CANDIDATES),
        lon_key=pick_first_existing_key(sample, LON_CANDIDATES),
        neighborhood_key=pick_first_existing_key(sample, NEIGHBORHOOD_CANDIDATES),
    )


def require_date_key(keys: SchemaKeys) -> str:
    if not keys.date_key:
        raise SchemaResolutionError("Could not infer the dataset's date/time field from the API response.")
    return keys.date_key
