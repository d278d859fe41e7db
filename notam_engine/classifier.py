"""Keyword classification of NOTAM text."""
import re
import logging
from dataclasses import dataclass
from typing import Optional

from notam_engine.models.notam import Classification

logger = logging.getLogger(__name__)

# Display grouping depends on this order: first match wins
CLASSIFICATION_PRIORITY = (
    Classification.CANCELLED,
    Classification.NAVAID,
    Classification.SURFACE_CONDITION,
    Classification.FRICTION_INDEX,
    Classification.RUNWAY,
    Classification.TAXIWAY,
    Classification.FUEL,
    Classification.OTHER,
)

ILS_RE = re.compile(r'\b(?:ILS|LOCALIZER|GLIDESLOPE|GS|LOC)\b')
NAVAID_RE = re.compile(
    r'\b(?:VOR|DME|NDB|TACAN|RNAV|GPS|WAAS|PAPI|VASI|ALS|ALSF|MALSR|ODALS|RAIL|REIL|APPROACH|APP)\b'
)
RUNWAY_RE = re.compile(r'\b(?:RWY|RUNWAY)\b')
TAXIWAY_RE = re.compile(r'\b(?:TWY|TAXIWAY)\b')
FUEL_RE = re.compile(r'\bFUEL\b')
RSC_RE = re.compile(r'\bRSC\b')
CRFI_RE = re.compile(r'\bCRFI\b')
CANCELLED_RE = re.compile(r'\b(?:CANCELLED|CNL|NOTAMC)\b')
RUNWAY_DESIGNATOR_RE = re.compile(r'\bRWY\s*(\d{2,3}[LRC]?(?:/\d{2,3}[LRC]?)*)', re.IGNORECASE)

CANCELLATION_TYPE_CODES = {'C', 'NOTAMC', 'CANCEL', 'CANCELLED'}


@dataclass(frozen=True)
class NotamFlags:
    """Keyword flags found in one NOTAM's text."""
    is_ils: bool = False
    is_navaid: bool = False
    is_runway: bool = False
    is_taxiway: bool = False
    is_fuel: bool = False
    is_rsc: bool = False
    is_crfi: bool = False
    is_cancelled: bool = False


def build_combined_text(summary: Optional[str], raw_text: Optional[str]) -> str:
    """Uppercased summary + raw text; built once per record."""
    return f"{summary or ''} {raw_text or ''}".upper()


def get_flags(
    combined_text: str,
    api_type: Optional[str] = None,
    is_cancellation: bool = False,
) -> NotamFlags:
    """Evaluate every keyword flag against already-uppercased text."""
    text = combined_text or ''
    type_code = (api_type or '').strip().upper()

    return NotamFlags(
        is_ils=bool(ILS_RE.search(text)),
        is_navaid=bool(NAVAID_RE.search(text)),
        is_runway=bool(RUNWAY_RE.search(text)),
        is_taxiway=bool(TAXIWAY_RE.search(text)),
        is_fuel=bool(FUEL_RE.search(text)),
        is_rsc=bool(RSC_RE.search(text)),
        is_crfi=bool(CRFI_RE.search(text)),
        is_cancelled=(
            is_cancellation
            or type_code in CANCELLATION_TYPE_CODES
            or bool(CANCELLED_RE.search(text))
        ),
    )


def classify(
    combined_text: Optional[str],
    api_type: Optional[str] = None,
    is_cancellation: bool = False,
) -> Classification:
    """
    Assign one category to a NOTAM.

    Args:
        combined_text: Summary and raw text together (case does not matter)
        api_type: Upstream type code; "C" marks a cancellation
        is_cancellation: The extractor found a NOTAMC marker

    Returns:
        The highest-priority category whose flag is set
    """
    flags = get_flags((combined_text or '').upper(), api_type, is_cancellation)

    if flags.is_cancelled:
        return Classification.CANCELLED
    if flags.is_ils or flags.is_navaid:
        return Classification.NAVAID
    if flags.is_rsc:
        return Classification.SURFACE_CONDITION
    if flags.is_crfi:
        return Classification.FRICTION_INDEX
    if flags.is_runway:
        return Classification.RUNWAY
    if flags.is_taxiway:
        return Classification.TAXIWAY
    if flags.is_fuel:
        return Classification.FUEL
    return Classification.OTHER


def extract_runways(text: Optional[str]) -> str:
    """Unique runway designators ("04L/22R, 13") in order of appearance."""
    if not text:
        return ""
    runways = []
    for match in RUNWAY_DESIGNATOR_RE.finditer(text.upper()):
        if match.group(1) not in runways:
            runways.append(match.group(1))
    return ', '.join(runways)
