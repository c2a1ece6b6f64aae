from .exceptions import (
    ConfigError,
    DatasetDownloadError,
    SchemaResolutionError,
    SeattleCrimeException,
)
from .logger_config import setup_logger

__all__ = [
    "ConfigError",
    "DatasetDownloadError",
    "SchemaResolutionError",
    "SeattleCrimeException",
    "setup_logger",
]
