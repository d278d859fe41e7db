"""Date normalization for NOTAM validity fields.

Handles the three token shapes that show up in practice:

* ``PERM`` / ``PERMANENT``
* compact ``YYMMDDHHMM`` with an optional timezone suffix (``2501311200EST``)
* ISO-8601 as returned by the FAA and NAV CANADA APIs

Every failure comes back as ``None``; nothing in here raises for bad input.
"""
import re
import logging
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from notam_engine.models.notam import PERMANENT, Validity
from notam_engine.timezones import get_offset_minutes

logger = logging.getLogger(__name__)

FIELD_PREFIX_RE = re.compile(r'^[A-G]\)\s*')
COMPACT_RE = re.compile(r'^(\d{10})(\s*)([A-Z]{1,4})?$')
ISO_OFFSET_RE = re.compile(r'(Z|[+-]\d{2}:?\d{2})$')
ISO_OFFSET_NO_COLON_RE = re.compile(r'([+-]\d{2})(\d{2})$')
ISO_DATE_RE = re.compile(r'^\d{4}-\d{2}-\d{2}T')

# Two-digit years up to this value are 20xx, the rest 19xx
YEAR_PIVOT = 50

# Date-like token following a field marker inside raw ICAO text
_FIELD_TOKEN = (
    r'(PERM(?:ANENT)?'
    r'|\d{10}(?:[A-Z]{1,4}\b|\s+EST\b)?'
    r'|\d{4}-\d{2}-\d{2}T[0-9:.]+(?:Z|[+-]\d{2}:?\d{2})?)'
)


def normalize(token, notes: Optional[List[str]] = None, isolated: bool = False) -> Validity:
    """
    Normalize a raw date token to a UTC datetime or PERMANENT.

    Args:
        token: Raw token, e.g. "2501311200", "2501311200EST", "PERM",
            "2025-01-31T12:00:00Z". A leading field marker ("C) ") is ignored.
        notes: Optional list that receives data-quality notes
            (unknown timezone codes, estimated end times)
        isolated: The token is already-isolated field content, so any
            occurrence of PERM marks it permanent ("PERM EST")

    Returns:
        Timezone-aware UTC datetime, PERMANENT, or None if unparseable
    """
    if not token or not isinstance(token, str):
        return None

    cleaned = FIELD_PREFIX_RE.sub('', token.strip()).strip()
    upper = cleaned.upper()
    if not upper:
        return None

    if upper in ('PERM', 'PERMANENT'):
        return PERMANENT
    if isolated and 'PERM' in upper:
        return PERMANENT

    match = COMPACT_RE.match(upper)
    if match:
        return _parse_compact(match, token, notes)

    if ISO_DATE_RE.match(upper):
        return _parse_iso(cleaned)

    logger.warning(f"Unrecognized date format: '{token}'")
    return None


def _parse_compact(match, token: str, notes: Optional[List[str]]) -> Optional[datetime]:
    """Parse YYMMDDHHMM[TZ] into a UTC datetime."""
    digits, spacing, tz_code = match.groups()

    two_digit_year = int(digits[0:2])
    year = 2000 + two_digit_year if two_digit_year <= YEAR_PIVOT else 1900 + two_digit_year
    month = int(digits[2:4])
    day = int(digits[4:6])
    hour = int(digits[6:8])
    minute = int(digits[8:10])

    if not (1 <= month <= 12 and 1 <= day <= 31 and 0 <= hour <= 23 and 0 <= minute <= 59):
        logger.warning(
            f"Invalid date components: '{token}' -> {year}-{month}-{day} {hour}:{minute}"
        )
        return None

    try:
        naive_utc = datetime(year, month, day, hour, minute, tzinfo=timezone.utc)
    except ValueError as e:
        logger.warning(f"Could not parse date '{token}': {e}")
        return None

    # A detached EST after an ICAO time means "estimated", not Eastern time
    if spacing and tz_code == 'EST':
        _note(notes, f"estimated time in '{token.strip()}'")
        return naive_utc

    offset = get_offset_minutes(tz_code)
    if offset is None:
        logger.warning(f"Unknown timezone '{tz_code}' in '{token.strip()}', treating as UTC")
        _note(notes, f"unknown timezone '{tz_code}' in '{token.strip()}', assumed UTC")
        offset = 0

    return naive_utc - timedelta(minutes=offset)


def _parse_iso(value: str) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp, assuming UTC when no offset is given."""
    iso = value.strip()
    if not ISO_OFFSET_RE.search(iso.upper()):
        iso += 'Z'
    if iso[-1] in 'Zz':
        iso = iso[:-1] + '+00:00'
    iso = ISO_OFFSET_NO_COLON_RE.sub(r'\1:\2', iso)

    try:
        parsed = datetime.fromisoformat(iso)
    except ValueError:
        logger.warning(f"Invalid ISO date: '{value}'")
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def _note(notes: Optional[List[str]], message: str) -> None:
    if notes is not None and message not in notes:
        notes.append(message)


def extract_field_token(raw_text: Optional[str], tag: str) -> Optional[str]:
    """
    Pull the date token that follows ``tag)`` directly out of raw ICAO text.

    Works whether the fields sit on separate lines or share one line
    ("A) KJFK B) 2501010000 C) 2501312359").
    """
    if not raw_text:
        return None

    pattern = rf'(?:^|[\s(]){re.escape(tag)}\)\s*{_FIELD_TOKEN}'
    match = re.search(pattern, raw_text, re.MULTILINE | re.IGNORECASE)
    if not match:
        return None
    return match.group(1)


def resolve_validity(
    raw_text: Optional[str],
    tag: str,
    parsed_value: Optional[str] = None,
    api_value: Optional[str] = None,
    notes: Optional[List[str]] = None,
) -> Validity:
    """
    Resolve one validity bound through the fallback chain.

    1. token extracted directly from the raw ICAO text
    2. the structurally parsed field value
    3. the timestamp supplied by the upstream API

    The first stage that yields a value wins. Upstream APIs sometimes
    report no end date even though the text carries a valid C) line.
    """
    direct = normalize(extract_field_token(raw_text, tag), notes)
    if direct is not None:
        return direct

    structural = normalize(parsed_value, notes, isolated=True)
    if structural is not None:
        logger.debug(f"{tag}) resolved from parsed field '{parsed_value}'")
        return structural

    from_api = normalize(api_value, notes)
    if from_api is not None:
        logger.debug(f"{tag}) resolved from API value '{api_value}'")
    return from_api


def format_icao_date(value: Validity) -> str:
    """Render a validity bound as an ICAO YYMMDDHHMM token (PERM for permanent)."""
    if value is None:
        return ''
    if value is PERMANENT:
        return 'PERM'
    return value.astimezone(timezone.utc).strftime('%y%m%d%H%M')
