from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Union

import pandas as pd

from seattle_crime.data.download_data import SeattleCrimeDatasetDownloader
from seattle_crime.data.preprocessing import normalize_records
from seattle_crime.data.schema import SchemaKeys, require_date_key, resolve_schema
from seattle_crime.state import AppState, begin_load, fail_load, finish_load
from seattle_crime.utils.exceptions import SeattleCrimeException
from seattle_crime.utils.logger_config import setup_logger


logger = setup_logger(__name__)


@dataclass(frozen=True)
class LoadResult:
    incidents: pd.DataFrame
    schema: SchemaKeys
    row_count: int
    last_query: str


@dataclass(frozen=True)
class LoadFailure:
    message: str


LoadOutcome = Union[LoadResult, LoadFailure]


def load_window(downloader: SeattleCrimeDatasetDownloader, start: date, end: date) -> LoadResult:
    """
    Probe, resolve the schema, fetch the window and normalize it.

    Raises:
    SchemaResolutionError: The probe record has no recognisable date column
    DatasetDownloadError: Any request failed
    """
    keys = resolve_schema(downloader.probe())
    logger.debug(f'Resolved schema: {keys.as_dict()}')
    require_date_key(keys)

    result = downloader.fetch_window(start, end, keys)
    incidents = normalize_records(result.rows, keys)
    return LoadResult(
        incidents=incidents,
        schema=keys,
        row_count=result.row_count,
        last_query=downloader.describe_query(start, end, result.row_count),
    )


def fetch_load(downloader: SeattleCrimeDatasetDownloader, generation: int, start: date, end: date) -> LoadOutcome:
    """Run load ``generation`` for the window. Failures come back as a LoadFailure, never raised."""
    logger.info(f'Load {generation}: fetching {start} to {end}')
    try:
        return load_window(downloader, start, end)
    except SeattleCrimeException as e:
        logger.error(f'Load {generation} failed: {str(e)}')
        return LoadFailure(str(e))


def apply_load(state: AppState, generation: int, outcome: LoadOutcome) -> AppState:
    """
    Apply a finished load to ``state``, which must be the current state, not the one the load began from.

    A newer ``begin_load`` in between makes ``generation`` stale and the outcome is dropped.
    """
    if isinstance(outcome, LoadFailure):
        return fail_load(state, generation, outcome.message)
    return finish_load(state, generation, outcome.incidents, outcome.schema, outcome.last_query, outcome.row_count)


def run_load(state: AppState, downloader: SeattleCrimeDatasetDownloader) -> AppState:
    """Begin, fetch and apply in one go, for callers with no concurrent loads (scripts, tests)."""
    state, generation = begin_load(state)
    outcome = fetch_load(downloader, generation, state.filters.start_date, state.filters.end_date)
    return apply_load(state, generation, outcome)
