import logging

import pytest

from seattle_crime.settings import DEFAULT_API_BASE, SEATTLE_BOUNDS, DashboardSettings
from seattle_crime.utils.exceptions import ConfigError
from seattle_crime.utils.logger_config import setup_logger


class TestSettings:
    def test_defaults(self):
        settings = DashboardSettings.from_env({})
        assert settings.api_base == DEFAULT_API_BASE
        assert settings.page_size == 5000
        assert settings.max_total_rows == 50000
        assert settings.lookback_days == 365
        assert settings.map_max_points == 2000
        assert settings.top_n_offenses == 12
        assert settings.app_token == ''

    def test_overrides(self):
        settings = DashboardSettings.from_env({
            'SEATTLE_CRIME_PAGE_SIZE': '1000',
            'SEATTLE_CRIME_MAX_TOTAL_ROWS': ' 20000 ',
            'SOCRATA_APP_TOKEN': 'abc',
        })
        assert settings.page_size == 1000
        assert settings.max_total_rows == 20000
        assert settings.app_token == 'abc'

    @pytest.mark.parametrize('value', ['many', '0', '-5', '1.5'])
    def test_invalid_numbers(self, value):
        with pytest.raises(ConfigError):
            DashboardSettings.from_env({'SEATTLE_CRIME_MAX_TOTAL_ROWS': value})

    def test_page_size_above_socrata_limit(self):
        with pytest.raises(ConfigError, match='Socrata limit'):
            DashboardSettings.from_env({'SEATTLE_CRIME_PAGE_SIZE': '60000'})

    def test_bounds(self):
        assert SEATTLE_BOUNDS.min_lat < 47.6062 < SEATTLE_BOUNDS.max_lat
        assert SEATTLE_BOUNDS.min_lon < -122.3321 < SEATTLE_BOUNDS.max_lon


class TestLogger:
    def test_file_log_and_single_setup(self):
        logger = setup_logger('seattle_crime.tests.logger')
        handlers = list(logger.handlers)
        file_handlers = [h for h in handlers if isinstance(h, logging.FileHandler)]

        assert len(file_handlers) == 1
        assert file_handlers[0].baseFilename.endswith('.log')
        assert 'seattle_crime_' in file_handlers[0].baseFilename
        assert setup_logger('seattle_crime.tests.logger').handlers == handlers
