"""Configuration module for the NOTAM engine."""
import os
from dotenv import load_dotenv

# Load environment variables
load_dotenv()


class Config:
    """Application configuration."""

    # Logging level
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')

    # Software Version
    VERSION = os.getenv('VERSION', 'v0.0.0')

    # FAA NOTAM API (client credentials go in headers)
    FAA_API_URL = os.getenv('FAA_API_URL', 'https://external-api.faa.gov/notamapi/v1/notams')
    FAA_CLIENT_ID = os.getenv('FAA_CLIENT_ID', '')
    FAA_CLIENT_SECRET = os.getenv('FAA_CLIENT_SECRET', '')
    FAA_PAGE_SIZE = int(os.getenv('FAA_PAGE_SIZE', '250'))

    # NAV CANADA fallback for Canadian aerodromes
    NAV_CANADA_API_URL = os.getenv('NAV_CANADA_API_URL', 'https://plan.navcanada.ca/weather/api/alpha/')

    # Airports to fetch (ICAO codes)
    AIRPORTS = [a.strip().upper() for a in os.getenv('AIRPORTS', 'KJFK,CYYZ').split(',') if a.strip()]

    REQUEST_TIMEOUT_SECONDS = float(os.getenv('REQUEST_TIMEOUT_SECONDS', '10'))

    # Pause between airports
    MIN_REQUEST_DELAY = float(os.getenv('MIN_REQUEST_DELAY', '2'))
    MAX_REQUEST_DELAY = float(os.getenv('MAX_REQUEST_DELAY', '5'))

    @classmethod
    def validate(cls):
        """Validate configuration needed for fetching."""
        if not cls.AIRPORTS:
            raise ValueError("AIRPORTS configuration is required")
        if not cls.FAA_API_URL:
            raise ValueError("FAA_API_URL configuration is required")
        if not cls.NAV_CANADA_API_URL:
            raise ValueError("NAV_CANADA_API_URL configuration is required")
        if cls.MIN_REQUEST_DELAY > cls.MAX_REQUEST_DELAY:
            raise ValueError("MIN_REQUEST_DELAY must not exceed MAX_REQUEST_DELAY")
        return True
