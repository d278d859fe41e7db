"""NOTAM source clients (FAA, NAV CANADA) producing input records for the parser."""
import json
import logging
import random
import time
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

import requests

from notam_engine.config import Config
from notam_engine.models.notam import Source

logger = logging.getLogger(__name__)

MISSING_TEXT = 'Full NOTAM text not available from source.'


def record_from_faa_item(item: Dict[str, Any]) -> Dict[str, Any]:
    """
    Map one FAA GeoJSON feature to an input record.

    The ICAO-formatted translation is preferred over the domestic text
    because it carries the B)/C) fields.
    """
    core_data = (item.get('properties') or {}).get('coreNOTAMData') or {}
    core = core_data.get('notam') or {}
    translations = core_data.get('notamTranslation') or []

    formatted_text = None
    if translations and isinstance(translations[0], dict):
        formatted_text = translations[0].get('formattedText')
    raw_text = formatted_text or core.get('text') or MISSING_TEXT

    external_id = core.get('id')
    if not external_id and core.get('number'):
        external_id = f"{core.get('number')}-{core.get('icaoLocation', '')}"

    return {
        'rawText': raw_text,
        'source': Source.FAA.value,
        'apiValidFrom': core.get('effectiveStart'),
        'apiValidTo': core.get('effectiveEnd'),
        'apiType': core.get('type'),
        'id': external_id,
        'number': core.get('number'),
    }


def record_from_nav_canada_item(item: Dict[str, Any]) -> Dict[str, Any]:
    """
    Map one NAV CANADA alpha item to an input record.

    The ``text`` field is usually a JSON document whose ``raw`` member
    holds the NOTAM with escaped newlines. A JSON string is taken as its
    decoded value, and any other text is taken as-is.
    """
    text = item.get('text')
    try:
        parsed_text = json.loads(text)
    except (TypeError, ValueError):
        parsed_text = None

    raw = parsed_text.get('raw') if isinstance(parsed_text, dict) else parsed_text
    if isinstance(raw, str) and raw:
        raw_text = raw.replace('\\n', '\n')
    elif isinstance(text, str) and text:
        logger.debug(f"No JSON raw text for NAV CANADA NOTAM {item.get('pk')}, using text as-is")
        raw_text = text
    else:
        logger.warning(f"No text for NAV CANADA NOTAM {item.get('pk')}")
        raw_text = MISSING_TEXT

    return {
        'rawText': raw_text,
        'source': Source.NAV_CANADA.value,
        'apiValidFrom': item.get('startValidity'),
        'apiValidTo': item.get('endValidity'),
        'apiType': None,
        'id': item.get('pk'),
    }


class BaseNotamClient(ABC):
    """
    Abstract base class for NOTAM source clients.
    Subclasses supply the request shape and the response mapping.
    """

    def __init__(self, session: Optional[requests.Session] = None):
        self.config = Config()
        self.session = session or requests.Session()
        self._setup_authentication()

    def _setup_authentication(self):
        """Setup authentication headers. Override in subclasses that need it."""

    @abstractmethod
    def _build_request(self, airport_code: str) -> tuple[str, dict, dict]:
        """
        Build the API request parameters.

        Returns:
            Tuple of (url, headers, params)
        """

    @abstractmethod
    def _parse_response(self, response_data: Any) -> List[Dict]:
        """Parse the API response into input records."""

    def fetch_notams_for_airport(self, airport_code: str) -> List[Dict]:
        """
        Fetch NOTAMs for a specific airport with error handling.

        Args:
            airport_code: ICAO airport code

        Returns:
            List of input records (empty on any failure)
        """
        try:
            url, headers, params = self._build_request(airport_code)
            response = self.session.get(
                url, params=params, headers=headers,
                timeout=self.config.REQUEST_TIMEOUT_SECONDS
            )
            response.raise_for_status()
            return self._parse_response(response.json())

        except requests.exceptions.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            if status == 429:
                logger.error(f"Rate limited for {airport_code}. Consider increasing delays.")
            else:
                logger.error(f"HTTP error fetching NOTAMs for {airport_code}: {e}")
            return []
        except requests.exceptions.RequestException as e:
            logger.error(f"Error fetching NOTAMs for {airport_code}: {e}")
            return []
        except ValueError as e:
            logger.error(f"Invalid response body for {airport_code}: {e}")
            return []

    def fetch_all_notams(self, airports: Optional[List[str]] = None) -> Dict[str, List[Dict]]:
        """
        Fetch NOTAMs for each airport, pausing between requests.

        Args:
            airports: ICAO codes; defaults to Config.AIRPORTS

        Returns:
            Input records keyed by airport code
        """
        airports = [a.strip().upper() for a in (airports or self.config.AIRPORTS) if a.strip()]
        total_airports = len(airports)
        results: Dict[str, List[Dict]] = {}

        logger.info(f"Fetching NOTAMs for {total_airports} airport(s)")

        for idx, airport_code in enumerate(airports, 1):
            logger.info(f"[{idx}/{total_airports}] Fetching NOTAMs for {airport_code}")
            records = self.fetch_notams_for_airport(airport_code)
            results[airport_code] = records

            if records:
                logger.info(f"  → Retrieved {len(records)} NOTAM(s)")
            else:
                logger.warning("  → No NOTAMs retrieved")

            if idx < total_airports:
                delay = random.uniform(
                    self.config.MIN_REQUEST_DELAY,
                    self.config.MAX_REQUEST_DELAY
                )
                logger.debug(f"  → Waiting {delay:.2f}s before next request")
                time.sleep(delay)

        return results


class NavCanadaNotamClient(BaseNotamClient):
    """NOTAM client for the public NAV CANADA alpha endpoint (no authentication)."""

    def _build_request(self, airport_code: str) -> tuple[str, dict, dict]:
        url = self.config.NAV_CANADA_API_URL
        headers = {"Accept": "application/json"}
        params = {"site": airport_code, "alpha": "notam"}
        return url, headers, params

    def _parse_response(self, response_data: Any) -> List[Dict]:
        if isinstance(response_data, dict):
            items = response_data.get('data') or []
        elif isinstance(response_data, list):
            items = response_data
        else:
            logger.warning(f"Unexpected response format: {type(response_data)}")
            return []
        return [record_from_nav_canada_item(item) for item in items if isinstance(item, dict)]


class FAANotamClient(BaseNotamClient):
    """
    NOTAM client for the FAA NOTAM API (client id/secret headers).
    Canadian aerodromes fall back to ``fallback`` when the FAA has nothing.
    """

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        fallback: Optional[BaseNotamClient] = None,
    ):
        self.fallback = fallback
        super().__init__(session)

    def _setup_authentication(self):
        """FAA credentials travel as plain headers."""
        if self.config.FAA_CLIENT_ID:
            self.session.headers.update({
                'client_id': self.config.FAA_CLIENT_ID,
                'client_secret': self.config.FAA_CLIENT_SECRET,
            })

    def _build_request(self, airport_code: str) -> tuple[str, dict, dict]:
        url = self.config.FAA_API_URL
        headers = {"Accept": "application/json"}
        params = {
            "icaoLocation": airport_code,
            "responseFormat": "geoJson",
            "pageSize": self.config.FAA_PAGE_SIZE,
        }
        return url, headers, params

    def _parse_response(self, response_data: Any) -> List[Dict]:
        if not isinstance(response_data, dict):
            logger.warning(f"Unexpected response format: {type(response_data)}")
            return []
        items = response_data.get('items') or []
        return [record_from_faa_item(item) for item in items if isinstance(item, dict)]

    def fetch_notams_for_airport(self, airport_code: str) -> List[Dict]:
        records = super().fetch_notams_for_airport(airport_code)
        if not records and self.fallback and airport_code.upper().startswith('C'):
            logger.info(f"FAA returned no NOTAMs for Canadian ICAO {airport_code}, trying NAV CANADA")
            records = self.fallback.fetch_notams_for_airport(airport_code)
        return records


def get_notam_client() -> BaseNotamClient:
    """
    Factory for the default client chain: FAA first, NAV CANADA for
    Canadian aerodromes the FAA returns nothing for.
    """
    return FAANotamClient(fallback=NavCanadaNotamClient())
