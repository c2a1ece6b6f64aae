#!/usr/bin/env python3
"""Run one dashboard load outside Streamlit and print what it produced.

Usage:
    python scripts/smoke_summary.py [start YYYY-MM-DD] [end YYYY-MM-DD]

Defaults to the configured lookback window ending today.
"""
from pathlib import Path
from datetime import date
import sys

ROOT = Path(__file__).resolve().parents[1]
SRC_DIR = ROOT / 'src'
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from seattle_crime.aggregations import derive_view
from seattle_crime.data.download_data import SeattleCrimeDatasetDownloader
from seattle_crime.loader import run_load
from seattle_crime.settings import load_settings
from seattle_crime.state import LOAD_HINT, initial_state, set_filters
from seattle_crime.utils.exceptions import ConfigError


def main(argv):
    try:
        settings = load_settings()
    except ConfigError as e:
        print(f'Config error: {e}', file=sys.stderr)
        return 1

    state = initial_state(date.today(), settings.lookback_days)
    if len(argv) > 1:
        state = set_filters(state, start_date=date.fromisoformat(argv[1]))
    if len(argv) > 2:
        state = set_filters(state, end_date=date.fromisoformat(argv[2]))

    downloader = SeattleCrimeDatasetDownloader.from_settings(settings)
    try:
        state = run_load(state, downloader)
    finally:
        downloader.close()

    if state.meta.error:
        print(f'Error: {state.meta.error}', file=sys.stderr)
        print(f'Tip: {LOAD_HINT}', file=sys.stderr)
        return 1

    view = derive_view(state.incidents, state.filters, settings.top_n_offenses, settings.map_max_points)
    print(state.meta.last_query)
    print('Schema:', {k: v for k, v in state.schema.as_dict().items() if v})
    print(f'Incidents: {view.incident_count:,} | neighborhoods: {view.neighborhood_count:,} | '
          f'days: {len(view.time_series.dates):,} | map points: {len(view.map_points):,}')
    for label, count in zip(view.offense_ranking.labels, view.offense_ranking.counts):
        print(f'  {count:>7,}  {label}')
    return 0

if __name__ == '__main__':
    raise SystemExit(main(sys.argv))
