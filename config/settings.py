"""
P2P Order ETL - Settings Module
================================

Usage:
    from config.settings import Settings

    settings = Settings()
    settings.validate()
    engine = create_engine(settings.DATABASE_URL)
"""

import os
from pathlib import Path
from dotenv import load_dotenv


# Values copied straight from the .env template are treated as unset
PLACEHOLDER_MARKERS = ('AQUI_VA', 'your_', 'changeme')


class ConfigurationError(Exception):
    """Raised when required settings are missing or still placeholders."""


def _optional_float(name):
    value = os.getenv(name, '').strip()
    return float(value) if value else None


def _optional_int(name):
    value = os.getenv(name, '').strip()
    return int(value) if value else None


class Settings:
    def __init__(self, env_file=None):
        self.ENV = os.getenv('ETL_ENV', 'development')

        # Explicit file first, then config folder, then root
        if env_file is None:
            config_dir = Path(__file__).parent
            env_file = config_dir / f'.env.{self.ENV}'
            if not env_file.exists():
                env_file = config_dir.parent / '.env'
        if Path(env_file).exists():
            load_dotenv(env_file)

        # Binance C2C API
        self.BINANCE_API_KEY = os.getenv('BINANCE_API_KEY', '')
        self.BINANCE_API_SECRET = os.getenv('BINANCE_API_SECRET', '')
        self.BINANCE_API_URL = os.getenv('BINANCE_API_URL', 'https://api.binance.com')

        # Database
        self.DATABASE_URL = os.getenv('DATABASE_URL', '')

        # KYC workbook
        self.KYC_FILE_PATH = os.getenv('KYC_FILE_PATH', '')

        # Extraction
        self.REQUEST_DELAY_SECONDS = float(os.getenv('REQUEST_DELAY_SECONDS', 0.25))
        self.ORDER_PAGE_SIZE = int(os.getenv('ORDER_PAGE_SIZE', 20))
        self.HTTP_TIMEOUT = _optional_float('C2C_HTTP_TIMEOUT')
        self.MAX_PASSES = _optional_int('ETL_MAX_PASSES')

        # Logging
        self.LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')
        self.LOG_FILE = os.getenv('LOG_FILE', '')

    @property
    def is_production(self): return self.ENV == 'production'

    @property
    def is_test(self): return self.ENV == 'test'

    def missing_settings(self):
        """Names of required settings that are empty or still template values."""
        required = {
            'BINANCE_API_KEY': self.BINANCE_API_KEY,
            'BINANCE_API_SECRET': self.BINANCE_API_SECRET,
            'DATABASE_URL': self.DATABASE_URL,
        }
        missing = []
        for name, value in required.items():
            if not value or any(marker in value for marker in PLACEHOLDER_MARKERS):
                missing.append(name)
        return missing

    def validate(self):
        """
        Fail fast on unusable configuration.

        Raises:
            ConfigurationError: if any required setting is missing
        """
        missing = self.missing_settings()
        if missing:
            raise ConfigurationError(
                "Missing or placeholder settings: " + ", ".join(missing) +
                ". Check your .env file."
            )
        if self.REQUEST_DELAY_SECONDS < 0:
            raise ConfigurationError("REQUEST_DELAY_SECONDS must not be negative")
        if self.ORDER_PAGE_SIZE < 1:
            raise ConfigurationError("ORDER_PAGE_SIZE must be at least 1")
