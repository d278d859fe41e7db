"""Field extraction for raw ICAO NOTAM text."""
import re
import html
import logging
from enum import Enum
from typing import Dict, List, Optional, Union

from notam_engine.models.notam import ParsedFields, ParseFailure

logger = logging.getLogger(__name__)

NOTAM_NUMBER_RE = re.compile(r'([A-Z]\d{4}/\d{2})')
CANCELLATION_RE = re.compile(r'NOTAMC\s+([A-Z0-9]+/[0-9]{2})')
FIELD_MARKER_RE = re.compile(r'^([A-G])\)\s*(.*)')
# Field marker starting anywhere on a line that has not reached the body yet
INLINE_MARKER_RE = re.compile(r"(?:^|(?<=\s))[A-G]\)")

BODY_TAGS = ('E', 'F', 'G')
HEADER_TAGS = ('Q', 'A', 'B', 'C', 'D')

_ESCAPES = (
    ('\\r\\n', '\n'),
    ('\\n', '\n'),
    ('\\r', '\n'),
    ('\\t', ' '),
    ('\\(', '('),
    ('\\)', ')'),
    ('\\"', '"'),
    ("\\'", "'"),
)


class ScanState(Enum):
    """States of the line scanner."""
    IDLE = "IDLE"          # nothing opened yet
    IN_FIELD = "IN_FIELD"  # collecting one of Q/A/B/C/D
    IN_BODY = "IN_BODY"    # everything from here on is body text


def clean_text(raw_text: str) -> str:
    """Unescape common escape sequences and normalize line endings."""
    text = raw_text
    for escaped, replacement in _ESCAPES:
        text = text.replace(escaped, replacement)
    text = text.replace('\r\n', '\n').replace('\r', '\n').replace('\t', ' ')
    return text.strip()


def split_lines(raw_text: str) -> List[str]:
    """Non-empty, trimmed lines of the cleaned text."""
    return [line.strip() for line in clean_text(raw_text).split('\n') if line.strip()]


class _FieldScanner:
    """
    Single pass over the NOTAM lines.

    Q/A/B/C/D wrap onto following lines until another marker shows up.
    Body mode starts at E) (or F)/G)), or, when the text has no E) at
    all, at the first unmarked line after C). Once in body mode every
    line is kept verbatim, including stray F)/G) markers.
    """

    def __init__(self, has_e_marker: bool):
        self.has_e_marker = has_e_marker
        self.state = ScanState.IDLE
        self.current_tag: Optional[str] = None
        self.seen_c = False
        self.buffers: Dict[str, List[str]] = {tag: [] for tag in HEADER_TAGS}
        self.body_lines: List[str] = []

    def feed(self, line: str) -> None:
        if self.state is ScanState.IN_BODY:
            self.body_lines.append(line)
            return

        segments = _split_inline_markers(line)
        for index, segment in enumerate(segments):
            self._feed_segment(segment)
            if self.state is ScanState.IN_BODY and index + 1 < len(segments):
                # Whatever follows the body start on this line belongs to the body
                rest = ' '.join(segments[index + 1:])
                self.body_lines[-1] = f"{self.body_lines[-1]} {rest}".strip()
                return

    def _feed_segment(self, segment: str) -> None:
        match = FIELD_MARKER_RE.match(segment)

        if match:
            tag, value = match.group(1), match.group(2).strip()
            if tag in BODY_TAGS:
                self._start_body(value if tag == 'E' else f"{tag}) {value}".strip())
                return
            self.state = ScanState.IN_FIELD
            self.current_tag = tag
            self.buffers[tag] = [value] if value else []
            if tag == 'C':
                self.seen_c = True
            return

        if not self.has_e_marker and self.seen_c:
            self._start_body(segment)
        elif self.state is ScanState.IN_FIELD:
            self.buffers[self.current_tag].append(segment)
        else:
            logger.debug(f"Ignoring unmarked line before any field: '{segment[:60]}'")

    def _start_body(self, first_line: str) -> None:
        self.state = ScanState.IN_BODY
        self.current_tag = None
        self.body_lines.append(first_line)

    def field(self, tag: str) -> str:
        return ' '.join(self.buffers[tag]).strip()

    def body(self) -> str:
        return '\n'.join(line for line in self.body_lines if line).strip()


def _split_inline_markers(line: str) -> List[str]:
    """Split "A) KJFK B) 2501010000" into one segment per field marker."""
    starts = [m.start() for m in INLINE_MARKER_RE.finditer(line)]
    if not starts or starts == [0]:
        return [line]
    if starts[0] != 0:
        starts.insert(0, 0)

    segments = []
    for begin, end in zip(starts, starts[1:] + [len(line)]):
        segment = line[begin:end].strip()
        if segment:
            segments.append(segment)
    return segments


def _has_e_marker(lines: List[str]) -> bool:
    return any(
        FIELD_MARKER_RE.match(segment) and segment.startswith('E)')
        for line in lines
        for segment in _split_inline_markers(line)
    )


def _strip_wrapper_paren(body: str, wrapped: bool) -> str:
    """Drop the trailing ')' of a "(... )" wrapper around the whole NOTAM."""
    if wrapped and body.endswith(')') and body.count(')') > body.count('('):
        return body[:-1].rstrip()
    return body


def _normalize_perm(value: str) -> str:
    if re.sub(r'\s+', '', value).upper().startswith('PERM'):
        return 'PERM'
    return value


def extract(raw_text: Optional[str]) -> Union[ParsedFields, ParseFailure]:
    """
    Split a raw NOTAM into its ICAO fields.

    Args:
        raw_text: Raw NOTAM text as delivered by the source

    Returns:
        ParsedFields, or ParseFailure when neither an aerodrome nor a body
        could be found
    """
    if not raw_text or not isinstance(raw_text, str):
        return ParseFailure(reason="empty input", raw_text=raw_text or '')

    lines = split_lines(raw_text)
    if not lines:
        return ParseFailure(reason="empty input", raw_text=raw_text)

    first_line = lines[0]

    # The number is whatever precedes NOTAMC, so "NOTAMC A1234/25" alone
    # does not read its own reference as the NOTAM number
    cancel_match = CANCELLATION_RE.search(first_line)
    number_zone = first_line[:cancel_match.start()] if cancel_match else first_line
    number_match = NOTAM_NUMBER_RE.search(number_zone)

    scan_lines = lines[1:] if (number_match or cancel_match) else lines
    scanner = _FieldScanner(has_e_marker=_has_e_marker(scan_lines))
    for line in scan_lines:
        scanner.feed(line)

    # Only text opened with "(" can carry the unmatched closing wrapper paren
    body = _strip_wrapper_paren(html.unescape(scanner.body()), first_line.startswith('('))

    fields = ParsedFields(
        notam_number=number_match.group(1) if number_match else None,
        is_cancellation=cancel_match is not None,
        cancels_notam=cancel_match.group(1) if cancel_match else None,
        q_line=scanner.field('Q'),
        aerodrome=scanner.field('A'),
        valid_from_raw=scanner.field('B'),
        valid_to_raw=_normalize_perm(scanner.field('C')),
        schedule=scanner.field('D'),
        body=body,
    )

    if not fields.aerodrome and not fields.body:
        logger.debug("No structured content found in NOTAM text")
        return ParseFailure(reason="no structured content found", raw_text=raw_text)

    return fields


def to_icao_text(fields: ParsedFields) -> str:
    """Rebuild ICAO field text from parsed fields; extract() reads it back unchanged."""
    lines = []

    header = fields.notam_number or ''
    if fields.is_cancellation and fields.cancels_notam:
        header = f"{header} NOTAMC {fields.cancels_notam}".strip()
    if header:
        lines.append(header)

    for tag, value in (
        ('Q', fields.q_line),
        ('A', fields.aerodrome),
        ('B', fields.valid_from_raw),
        ('C', fields.valid_to_raw),
        ('D', fields.schedule),
        ('E', fields.body),
    ):
        if value:
            lines.append(f"{tag}) {value}")

    return '\n'.join(lines)


def is_icao_format(text: Optional[str]) -> bool:
    """Check for the Q), A) and E) markers that identify ICAO-formatted text."""
    if not text:
        return False
    return all(re.search(rf'{tag}\)\s*', text) for tag in ('Q', 'A', 'E'))


def extract_body_text(raw_text: str) -> str:
    """Body (E) content) of an ICAO NOTAM, or the whole text when it cannot be parsed."""
    fields = extract(raw_text)
    if isinstance(fields, ParseFailure):
        return raw_text
    return fields.body
