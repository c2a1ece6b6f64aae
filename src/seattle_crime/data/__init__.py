from .download_data import FetchResult, SeattleCrimeDatasetDownloader
from .preprocessing import INCIDENT_COLUMNS, UNKNOWN, normalize_records, within_bounds
from .schema import SchemaKeys, pick_first_existing_key, require_date_key, resolve_schema

__all__ = [
    "FetchResult",
    "INCIDENT_COLUMNS",
    "SchemaKeys",
    "SeattleCrimeDatasetDownloader",
    "UNKNOWN",
    "normalize_records",
    "pick_first_existing_key",
    "require_date_key",
    "resolve_schema",
    "within_bounds",
]
