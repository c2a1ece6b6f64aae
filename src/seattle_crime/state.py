"""Dashboard state as an immutable value plus the transitions that produce new ones.

Filters and the cross-chart selection change only through the functions below.
Loads are tagged with a generation number: a load result is applied only if no
newer load was started in the meantime.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, timedelta
from typing import Any, Mapping, Optional, Tuple

import pandas as pd

from seattle_crime.aggregations import FilterState
from seattle_crime.data.preprocessing import empty_incidents
from seattle_crime.data.schema import SchemaKeys
from seattle_crime.utils.logger_config import setup_logger


logger = setup_logger(__name__)

LOAD_HINT = 'Narrow the date range (the dataset is large), then reload.'


@dataclass(frozen=True)
class LoadMeta:
    loading: bool = False
    error: Optional[str] = None
    last_query: str = ''
    row_count: int = 0


@dataclass(frozen=True)
class AppState:
    filters: FilterState
    default_start: date
    default_end: date
    incidents: pd.DataFrame = field(default_factory=empty_incidents, compare=False, repr=False)
    schema: Optional[SchemaKeys] = None
    meta: LoadMeta = field(default_factory=LoadMeta)
    generation: int = 0

    @property
    def has_data(self) -> bool:
        return not self.incidents.empty


def default_window(today: date, lookback_days: int) -> Tuple[date, date]:
    return today - timedelta(days=lookback_days), today


def initial_state(today: date, lookback_days: int = 365) -> AppState:
    start, end = default_window(today, lookback_days)
    return AppState(filters=FilterState(start_date=start, end_date=end), default_start=start, default_end=end)


def set_filters(state: AppState, **changes: Any) -> AppState:
    """Replace any of start_date, end_date, precinct, crime_against. Selection has its own transitions."""
    if 'selected_offense_group' in changes:
        raise TypeError('use select()/clear_selection() to change the cross-chart selection')
    return replace(state, filters=replace(state.filters, **changes))


def select(state: AppState, group: str) -> AppState:
    return replace(state, filters=replace(state.filters, selected_offense_group=group))


def clear_selection(state: AppState) -> AppState:
    return replace(state, filters=replace(state.filters, selected_offense_group=None))


def reset_all(state: AppState) -> AppState:
    """Default date window, no precinct/category filter, no selection. Loaded data is kept."""
    return replace(state, filters=FilterState(start_date=state.default_start, end_date=state.default_end))


def begin_load(state: AppState) -> Tuple[AppState, int]:
    generation = state.generation + 1
    return replace(state, generation=generation, meta=replace(state.meta, loading=True, error=None)), generation


def finish_load(
    state: AppState,
    generation: int,
    incidents: pd.DataFrame,
    schema: SchemaKeys,
    last_query: str,
    row_count: int,
) -> AppState:
    """Swap in a freshly loaded incident set. The selection survives the reload."""
    if generation != state.generation:
        logger.warning(f'Discarding stale load {generation} (current is {state.generation})')
        return state
    return replace(
        state,
        incidents=incidents,
        schema=schema,
        meta=LoadMeta(loading=False, error=None, last_query=last_query, row_count=row_count),
    )


def fail_load(state: AppState, generation: int, message: str) -> AppState:
    """Record a failed load; whatever was loaded before stays in place."""
    if generation != state.generation:
        logger.warning(f'Ignoring failure of stale load {generation}: {message}')
        return state
    return replace(state, meta=replace(state.meta, loading=False, error=message))


def abandon_load(state: AppState) -> AppState:
    """Give up on an in-flight load that will never report back.

    The generation moves on, so a late result of the abandoned load is discarded.
    """
    if not state.meta.loading:
        return state
    logger.warning(f'Abandoning load {state.generation}')
    return replace(state, generation=state.generation + 1, meta=replace(state.meta, loading=False))


def group_from_chart_event(event: Any) -> Optional[str]:
    """Offense group clicked on the ranking chart, from a Streamlit plotly selection event.

    The ranking is a horizontal bar chart, so the label is the point's ``y``.
    """
    if event is None:
        return None
    selection = event.get('selection') if isinstance(event, Mapping) else getattr(event, 'selection', None)
    if not selection:
        return None
    points = selection.get('points') if isinstance(selection, Mapping) else getattr(selection, 'points', None)
    if not points:
        return None
    label = points[0].get('y')
    if label is None or str(label) == '':
        return None
    return str(label)


__all__ = [
    'AppState',
    'LOAD_HINT',
    'LoadMeta',
    'abandon_load',
    'begin_load',
    'clear_selection',
    'default_window',
    'fail_load',
    'finish_load',
    'group_from_chart_event',
    'initial_state',
    'reset_all',
    'select',
    'set_filters',
]
