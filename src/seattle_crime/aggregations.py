"""Filtering and the three chart summaries derived from the incident frame.

Everything here is a pure function of (incidents, FilterState); the app calls
``derive_view`` on every Streamlit rerun.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date
from typing import List, NamedTuple, Optional, Tuple

import pandas as pd

ALL = 'ALL'
TOP_N_OFFENSES = 12
MAP_MAX_POINTS = 2000


@dataclass(frozen=True)
class FilterState:
    start_date: date
    end_date: date
    precinct: str = ALL
    crime_against: str = ALL
    selected_offense_group: Optional[str] = None


@dataclass(frozen=True)
class TimeSeries:
    dates: Tuple[str, ...] = ()
    counts: Tuple[int, ...] = ()


@dataclass(frozen=True)
class OffenseRanking:
    labels: Tuple[str, ...] = ()
    counts: Tuple[int, ...] = ()


class MapPoint(NamedTuple):
    latitude: float
    longitude: float
    offense_group: str
    date: str
    precinct: str
    neighborhood: str


@dataclass(frozen=True)
class DerivedView:
    time_series: TimeSeries
    offense_ranking: OffenseRanking
    map_points: Tuple[MapPoint, ...]
    incident_count: int
    neighborhood_count: int


def apply_filters(incidents: pd.DataFrame, filters: FilterState) -> pd.DataFrame:
    """Date range, then precinct, crime against and the cross-chart selection (all ANDed)."""
    start, end = filters.start_date.isoformat(), filters.end_date.isoformat()
    mask = (incidents['date'] >= start) & (incidents['date'] <= end)
    if filters.precinct != ALL:
        mask &= incidents['precinct'] == filters.precinct
    if filters.crime_against != ALL:
        mask &= incidents['crime_against'] == filters.crime_against
    if filters.selected_offense_group is not None:
        mask &= incidents['offense_group'] == filters.selected_offense_group
    return incidents[mask]


def build_time_series(filtered: pd.DataFrame) -> TimeSeries:
    # YYYY-MM-DD sorts lexicographically in date order
    counts = filtered.groupby('date', sort=True).size()
    return TimeSeries(
        dates=tuple(str(d) for d in counts.index),
        counts=tuple(int(c) for c in counts.to_numpy()),
    )


def rank_offense_groups(filtered: pd.DataFrame, top_n: int = TOP_N_OFFENSES) -> OffenseRanking:
    """Most frequent offense groups; equal counts keep the order the groups first appear in."""
    counts = (
        filtered.groupby('offense_group', sort=False)
                .size()
                .sort_values(ascending=False, kind='stable')
                .head(top_n)
    )
    return OffenseRanking(
        labels=tuple(str(label) for label in counts.index),
        counts=tuple(int(c) for c in counts.to_numpy()),
    )


def sample_map_points(filtered: pd.DataFrame, max_points: int = MAP_MAX_POINTS) -> Tuple[MapPoint, ...]:
    """Mappable incidents, thinned to every k-th row (k = ceil(n / max_points)) above the cap."""
    points = filtered[filtered['has_valid_coordinate']]
    if len(points) > max_points:
        step = math.ceil(len(points) / max_points)
        points = points.iloc[::step]
    return tuple(
        MapPoint(float(lat), float(lon), group, day, precinct, hood)
        for lat, lon, group, day, precinct, hood in zip(
            points['latitude'],
            points['longitude'],
            points['offense_group'],
            points['date'],
            points['precinct'],
            points['neighborhood'],
        )
    )


def derive_view(
    incidents: pd.DataFrame,
    filters: FilterState,
    top_n: int = TOP_N_OFFENSES,
    max_points: int = MAP_MAX_POINTS,
) -> DerivedView:
    filtered = apply_filters(incidents, filters)
    return DerivedView(
        time_series=build_time_series(filtered),
        offense_ranking=rank_offense_groups(filtered, top_n),
        map_points=sample_map_points(filtered, max_points),
        incident_count=len(filtered),
        neighborhood_count=int(filtered['neighborhood'].nunique()),
    )


def filter_options(incidents: pd.DataFrame, column: str) -> List[str]:
    """Dropdown choices for ``column``: ALL first, then the loaded values sorted."""
    values = sorted(str(v) for v in incidents[column].dropna().unique() if str(v))
    return [ALL, *values]


def describe_filters(filters: FilterState) -> str:
    pieces = [f'Showing incidents from {filters.start_date.isoformat()} to {filters.end_date.isoformat()}.']
    if filters.precinct != ALL:
        pieces.append(f'Precinct: {filters.precinct}.')
    if filters.crime_against != ALL:
        pieces.append(f'Crime against: {filters.crime_against}.')
    if filters.selected_offense_group:
        pieces.append(f'Selected offense group: {filters.selected_offense_group}.')
    return ' '.join(pieces)
