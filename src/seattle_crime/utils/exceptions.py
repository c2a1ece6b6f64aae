from typing import Optional


class SeattleCrimeException(Exception):
    """Base Exception Class"""
    pass
class SchemaResolutionError(SeattleCrimeException):
    """Error class for when the dataset's date/time column can't be inferred from the probe record"""
    pass
class DatasetDownloadError(SeattleCrimeException):
    """Error class for when theres an issue in Downloading a page from the provider"""
    def __init__(self, message: str, status_code: Optional[int] = None, detail: str = '') -> None:
        super().__init__(message)
        self.status_code = status_code
        self.detail = detail
class ConfigError(SeattleCrimeException):
    """Config Error"""
    pass
