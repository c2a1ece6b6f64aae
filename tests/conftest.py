import sys
from pathlib import Path

import pandas as pd
import pytest

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / 'src'))

from seattle_crime.data.preprocessing import INCIDENT_COLUMNS


class FakeResponse:
    def __init__(self, payload=None, status_code=200, text=None):
        self.status_code = status_code
        self._payload = payload
        self.text = text if text is not None else ''

    @property
    def ok(self):
        return 200 <= self.status_code < 300

    def json(self):
        if self._payload is None:
            raise ValueError('No JSON object could be decoded')
        return self._payload


class FakeSession:
    """Stands in for requests.Session: answers the probe, then hands out queued pages."""

    def __init__(self, pages=(), probe_record=None):
        self.pages = list(pages)
        self.probe_record = probe_record
        self.calls = []
        self.headers = {}

    @property
    def page_calls(self):
        return [c for c in self.calls if '$where' in c]

    def get(self, url, params=None, timeout=None):
        params = dict(params or {})
        self.calls.append(params)
        if '$where' not in params:
            return FakeResponse([self.probe_record] if self.probe_record else [])
        if not self.pages:
            return FakeResponse([])
        page = self.pages.pop(0)
        if isinstance(page, Exception):
            raise page
        if isinstance(page, FakeResponse):
            return page
        return FakeResponse(page)

    def close(self):
        pass


def make_rows(n, start_index=0):
    return [
        {
            'report_date_time': f'2024-03-{1 + (i % 28):02d}T12:00:00.000',
            'precinct': 'NORTH',
            'nibrs_group_a_b': 'A',
            'latitude': '47.6',
            'longitude': '-122.33',
            'row': start_index + i,
        }
        for i in range(n)
    ]


def make_incidents(n, valid=True):
    """Incident frame of ``n`` mappable rows whose latitude encodes the row number."""
    return pd.DataFrame({
        'timestamp': pd.to_datetime(['2024-01-01 00:00:00'] * n),
        'date': ['2024-01-01'] * n,
        'precinct': ['NORTH'] * n,
        'offense_group': ['ASSAULT'] * n,
        'crime_against': ['PERSON'] * n,
        'neighborhood': ['BALLARD'] * n,
        'latitude': [47.5 + i * 1e-6 for i in range(n)],
        'longitude': [-122.3] * n,
        'has_valid_coordinate': [valid] * n,
    })[INCIDENT_COLUMNS]


@pytest.fixture
def raw_records():
    def record(ts, precinct, group, against, lat, lon, hood):
        return {
            'report_date_time': ts,
            'offense_date': ts,
            'precinct': precinct,
            'nibrs_group_a_b': group,
            'nibrs_crime_against_category': against,
            'latitude': lat,
            'longitude': lon,
            'neighborhood': hood,
        }

    return [
        record('2024-01-01T08:00:00.000', 'NORTH', 'ASSAULT', 'PERSON', '47.60', '-122.33', 'BALLARD'),
        record('2024-01-01T21:30:00.000', 'SOUTH', 'LARCENY-THEFT', 'PROPERTY', '47.55', '-122.30', 'BEACON HILL'),
        record('2024-01-02T10:00:00.000', 'NORTH', 'ASSAULT', 'PERSON', '47.0', '-122.3', 'BALLARD'),
        record('2024-01-03T12:00:00.000', 'EAST', 'BURGLARY', 'PROPERTY', None, None, 'CAPITOL HILL'),
        record('2024-01-03T13:00:00.000', 'WEST', 'LARCENY-THEFT', 'PROPERTY', 47.62, -122.35, 'QUEEN ANNE'),
        record('2024-01-05T00:00:00.000', 'NORTH', 'ASSAULT', 'PERSON', '47.70', '-122.34', 'GREENWOOD'),
        record('not a date', 'NORTH', 'ASSAULT', 'PERSON', '47.60', '-122.33', 'BALLARD'),
        {'precinct': 'NORTH', 'nibrs_group_a_b': 'ASSAULT'},
        record('2024-02-10T09:00:00.000', '', 'DRUG/NARCOTIC', 'SOCIETY', '47.61', '-122.32', ''),
    ]
