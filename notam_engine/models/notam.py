"""NOTAM domain model."""
from datetime import datetime, timezone
from typing import Optional, Dict, Any, Tuple, Union
from dataclasses import dataclass, field
from enum import Enum


class Permanent(Enum):
    """Sentinel for a validity end that never expires (C) PERM)."""
    PERMANENT = "PERMANENT"

    def __repr__(self) -> str:
        return "PERMANENT"


PERMANENT = Permanent.PERMANENT

# A resolved validity bound: UTC instant, PERMANENT, or unknown
Validity = Union[datetime, Permanent, None]


class Source(Enum):
    """Issuing system the raw text came from."""
    FAA = "FAA"
    NAV_CANADA = "NAV_CANADA"

    @property
    def label(self) -> str:
        """Display form used in output records."""
        return "NAV CANADA" if self is Source.NAV_CANADA else "FAA"

    @classmethod
    def from_value(cls, value: Union[str, "Source", None]) -> "Source":
        """
        Resolve a source identifier.

        Accepts the enum itself, "FAA", "NAV_CANADA" or the display
        form "NAV CANADA" in any casing.

        Raises:
            ValueError: for anything else
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            key = value.strip().upper().replace(' ', '_')
            if key == 'NAVCANADA':
                key = 'NAV_CANADA'
            for member in cls:
                if member.value == key:
                    return member
        raise ValueError(f"Unknown NOTAM source: {value!r}")


class Classification(Enum):
    """Display category of a NOTAM."""
    RUNWAY = "runway"
    TAXIWAY = "taxiway"
    SURFACE_CONDITION = "surface_condition"
    FRICTION_INDEX = "friction_index"
    NAVAID = "navaid"
    FUEL = "fuel"
    CANCELLED = "cancelled"
    OTHER = "other"

    @property
    def short_tag(self) -> str:
        return _SHORT_TAGS[self]

    @property
    def heading(self) -> str:
        return _HEADINGS[self]


_SHORT_TAGS = {
    Classification.RUNWAY: "rwy",
    Classification.TAXIWAY: "twy",
    Classification.SURFACE_CONDITION: "rsc",
    Classification.FRICTION_INDEX: "crfi",
    Classification.NAVAID: "ils",
    Classification.FUEL: "fuel",
    Classification.CANCELLED: "cancelled",
    Classification.OTHER: "other",
}

_HEADINGS = {
    Classification.RUNWAY: "RUNWAY",
    Classification.TAXIWAY: "TAXIWAY",
    Classification.SURFACE_CONDITION: "RUNWAY CONDITIONS",
    Classification.FRICTION_INDEX: "FRICTION INDEX",
    Classification.NAVAID: "ILS / NAV AID",
    Classification.FUEL: "FUEL SERVICES",
    Classification.CANCELLED: "CANCELLED",
    Classification.OTHER: "GENERAL",
}


class TimeStatus(Enum):
    """Where a NOTAM sits relative to a reference instant."""
    ACTIVE = "active"
    FUTURE = "future"
    EXPIRED = "expired"


@dataclass(frozen=True)
class RawNotam:
    """One item handed over by the fetch layer."""

    raw_text: str
    source: Source = Source.FAA
    api_valid_from: Optional[str] = None
    api_valid_to: Optional[str] = None
    api_type: Optional[str] = None
    external_id: Optional[str] = None
    api_number: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'RawNotam':
        """
        Build from an input record.

        Keys follow the fetch layer's naming: rawText, source,
        apiValidFrom, apiValidTo, apiType, id, number.
        """
        raw_text = data.get('rawText')
        if raw_text is None:
            raw_text = ''
        elif not isinstance(raw_text, str):
            raise ValueError(f"rawText must be a string, got {type(raw_text).__name__}")

        external_id = data.get('id')
        return cls(
            raw_text=raw_text,
            source=Source.from_value(data.get('source') or Source.FAA),
            api_valid_from=data.get('apiValidFrom'),
            api_valid_to=data.get('apiValidTo'),
            api_type=data.get('apiType'),
            external_id=str(external_id) if external_id not in (None, '') else None,
            api_number=data.get('number') or None,
        )


@dataclass(frozen=True)
class ParsedFields:
    """Raw ICAO fields pulled out of a NOTAM; nothing here is normalized."""

    notam_number: Optional[str] = None
    is_cancellation: bool = False
    cancels_notam: Optional[str] = None
    q_line: str = ''
    aerodrome: str = ''
    valid_from_raw: str = ''
    valid_to_raw: str = ''
    schedule: str = ''
    body: str = ''

    @property
    def fir(self) -> Optional[str]:
        """Routing/FIR prefix of the Q-line (text before the first '/')."""
        if not self.q_line:
            return None
        prefix = self.q_line.split('/', 1)[0].strip()
        return prefix or None

    @property
    def q_code(self) -> Optional[str]:
        """Second Q-line segment, e.g. QMRLC."""
        parts = self.q_line.split('/')
        if len(parts) < 2:
            return None
        code = parts[1].strip()
        return code or None

    @property
    def location(self) -> Optional[str]:
        """First aerodrome designator from A)."""
        if not self.aerodrome:
            return None
        return self.aerodrome.split()[0]


@dataclass(frozen=True)
class ParseFailure:
    """Returned by the extractor when no structured content was found."""

    reason: str
    raw_text: str = ''

    def __bool__(self) -> bool:
        return False


def format_validity(value: Validity) -> Optional[str]:
    """Render a validity bound the way output records carry it."""
    if value is None:
        return None
    if value is PERMANENT:
        return PERMANENT.value
    return value.astimezone(timezone.utc).strftime('%Y-%m-%dT%H:%M:%SZ')


@dataclass(frozen=True)
class NormalizedNotam:
    """Normalized NOTAM record with UTC validity and a display category."""

    id: str
    valid_from: Validity
    valid_to: Validity
    classification: Classification
    source: Source
    raw_text: str
    number: Optional[str] = None
    is_cancellation: bool = False
    cancels: Optional[str] = None
    fields: Optional[ParsedFields] = None
    quality_notes: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def aerodrome(self) -> Optional[str]:
        return self.fields.location if self.fields else None

    @property
    def body(self) -> str:
        """Free text for display; the whole raw text when extraction failed."""
        if self.fields and self.fields.body:
            return self.fields.body
        return self.raw_text

    @property
    def is_permanent(self) -> bool:
        return self.valid_to is PERMANENT

    @property
    def has_inverted_validity(self) -> bool:
        """True when a dated end falls before the start. Never corrected."""
        return (
            isinstance(self.valid_from, datetime)
            and isinstance(self.valid_to, datetime)
            and self.valid_to < self.valid_from
        )

    def time_status(self, now: Optional[datetime] = None) -> TimeStatus:
        """
        Compute the status against ``now`` (defaults to the current UTC time).

        A missing or unparseable start is assumed active. Nothing on the
        record changes; callers recompute this on every display.
        """
        if now is None:
            now = datetime.now(timezone.utc)

        if not isinstance(self.valid_from, datetime):
            return TimeStatus.ACTIVE
        if self.valid_from > now:
            return TimeStatus.FUTURE
        if isinstance(self.valid_to, datetime) and self.valid_to < now:
            return TimeStatus.EXPIRED
        return TimeStatus.ACTIVE

    def is_current(self, now: Optional[datetime] = None) -> bool:
        return self.time_status(now) is TimeStatus.ACTIVE

    def is_future(self, now: Optional[datetime] = None) -> bool:
        return self.time_status(now) is TimeStatus.FUTURE

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the output record shape consumed by display/caching layers."""
        return {
            'id': self.id,
            'number': self.number or 'N/A',
            'validFrom': format_validity(self.valid_from),
            'validTo': format_validity(self.valid_to),
            'classification': self.classification.value,
            'source': self.source.label,
            'isCancellation': self.is_cancellation,
            'cancels': self.cancels,
            'rawText': self.raw_text,
        }

    def __repr__(self) -> str:
        """Compact single-line representation."""
        flags = []
        if self.is_cancellation:
            flags.append("CNL")
        if self.is_permanent:
            flags.append("PERM")
        if self.has_inverted_validity:
            flags.append("DQ")

        flag_str = f" [{','.join(flags)}]" if flags else ""

        return (
            f"<NormalizedNotam {self.number or self.id} "
            f"{self.aerodrome or 'N/A'} "
            f"{self.classification.short_tag}{flag_str}>"
        )
