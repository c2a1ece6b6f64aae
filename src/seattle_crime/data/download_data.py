"""
Seattle Crime Dataset Downloader Module.

This module handles the download of crime data from Seattle's Open Data Portal using the SODA API.
Pages are requested strictly one after another: Socrata paging is offset based, so the
requests only line up when each one starts where the previous one ended and the result
is ordered on the date column.

Note:
    SODA (Socrata Open Data API) is the API framework used by many government open data portals,
    including Seattle's data portal. More information can be found at:
    https://dev.socrata.com/
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, List, Optional

import requests

from seattle_crime.data.schema import SchemaKeys, require_date_key
from seattle_crime.settings import DEFAULT_API_BASE
from seattle_crime.utils.exceptions import DatasetDownloadError
from seattle_crime.utils.logger_config import setup_logger


logger = setup_logger(__name__)

# Provider error bodies can be whole HTML pages
ERROR_BODY_LIMIT = 250


@dataclass(frozen=True)
class FetchResult:
    rows: List[Dict[str, Any]]
    row_count: int
    query: Dict[str, str]
    requests_made: int


class SeattleCrimeDatasetDownloader:
    """
    A class to handle the paginated download of the SPD Crime Dataset.

    Attributes:
        api_base (str): SODA resource endpoint (``.../resource/<id>.json``)
        page_size (int): Number of records to fetch per request
        max_total_rows (int): Upper bound on records fetched for one load
        timeout (int): Per-request timeout in seconds
        app_token (str): Optional Socrata app token, sent as ``X-App-Token``

    Example:
        >>> downloader = SeattleCrimeDatasetDownloader(page_size=5000, max_total_rows=50000)
        >>> keys = resolve_schema(downloader.probe())
        >>> result = downloader.fetch_window(date(2024, 1, 1), date(2024, 1, 31), keys)
    """

    def __init__(
        self,
        api_base: str = DEFAULT_API_BASE,
        page_size: int = 5000,
        max_total_rows: int = 50_000,
        timeout: int = 60,
        app_token: str = '',
        session: Optional[requests.Session] = None,
        ) -> None:
        self.api_base = api_base
        self.page_size = page_size
        self.max_total_rows = max_total_rows
        self.timeout = timeout
        self.session = session or requests.Session()
        if app_token:
            self.session.headers.update({'X-App-Token': app_token})

    @classmethod
    def from_settings(cls, settings, session: Optional[requests.Session] = None) -> 'SeattleCrimeDatasetDownloader':
        return cls(
            api_base=settings.api_base,
            page_size=settings.page_size,
            max_total_rows=settings.max_total_rows,
            timeout=settings.request_timeout,
            app_token=settings.app_token,
            session=session,
        )

    def _make_request(self, params: Dict[str, str]) -> List[Dict[str, Any]]:
        """
        Make one HTTP GET against the resource endpoint.

        Args:
            params (dict): SoQL query parameters ($select, $where, $limit, ...)

        Returns:
            list: The decoded JSON array of records

        Raises:
            DatasetDownloadError: network failure, non-2xx status or a body that isn't a JSON array.
                Not retried, the user re-triggers the load.
        """
        logger.debug(f'Requesting: {self.api_base} {params}')
        try:
            response = self.session.get(self.api_base, params=params, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            logger.error(f'Network error: {str(e)}')
            raise DatasetDownloadError(f'Socrata request failed: {str(e)}') from e

        if not response.ok:
            detail = (response.text or '')[:ERROR_BODY_LIMIT]
            logger.error(f'Request failed with status {response.status_code}: {detail}')
            raise DatasetDownloadError(
                f'Socrata request failed ({response.status_code}): {detail}',
                status_code=response.status_code,
                detail=detail,
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise DatasetDownloadError(f'Socrata returned a non-JSON body: {str(e)}') from e
        if not isinstance(payload, list):
            raise DatasetDownloadError(f'Socrata returned {type(payload).__name__}, expected a list of records')
        return payload

    def probe(self) -> Dict[str, Any]:
        """Fetch a single record, used only to infer the schema. ``{}`` when the dataset is empty."""
        rows = self._make_request({'$limit': '1'})
        return rows[0] if rows else {}

    @staticmethod
    def build_query(start: date, end: date, keys: SchemaKeys) -> Dict[str, str]:
        """
        Constructs the SODA range query for an inclusive date window

        Args:
            start (date): First day of the window (from 00:00:00.000)
            end (date): Last day of the window (until 23:59:59.999)
            keys (SchemaKeys): Resolved column names, the date key is mandatory

        Returns:
            dict: $select / $where / $order parameters
        """
        date_key = require_date_key(keys)
        start_iso = f'{start.isoformat()}T00:00:00.000'
        end_iso = f'{end.isoformat()}T23:59:59.999'
        return {
            '$select': ','.join(keys.select_columns()),
            '$where': f"{date_key} between '{start_iso}' and '{end_iso}'",
            '$order': f'{date_key} ASC',
        }

    def fetch_window(self, start: date, end: date, keys: SchemaKeys) -> FetchResult:
        """
        Download every record of the window, up to ``max_total_rows``.

        Stops on the first short page (end of data) or once the cap is reached.
        A failing page raises and the pages already fetched are dropped.
        """
        query = self.build_query(start, end, keys)
        rows: List[Dict[str, Any]] = []
        requests_made = 0

        while len(rows) < self.max_total_rows:
            limit = min(self.page_size, self.max_total_rows - len(rows))
            params = dict(query)
            params['$limit'] = str(limit)
            params['$offset'] = str(len(rows))

            page = self._make_request(params)
            requests_made += 1
            rows.extend(page)
            logger.debug(f'Page {requests_made}: {len(page)} rows (total {len(rows)})')

            if len(page) < limit:
                break
        else:
            logger.info(f'Reached the {self.max_total_rows:,} row cap for {start} to {end}')

        logger.info(f'Fetched {len(rows):,} rows for {start} to {end} in {requests_made} requests')
        return FetchResult(rows=rows, row_count=len(rows), query=query, requests_made=requests_made)

    def describe_query(self, start: date, end: date, row_count: int) -> str:
        return f'{self.api_base} (date range: {start.isoformat()}–{end.isoformat()}, fetched {row_count:,} rows)'

    def close(self) -> None:
        self.session.close()
