"""Parser module: raw NOTAM records in, normalized NOTAMs out."""
import hashlib
import logging
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Union

from notam_engine.classifier import build_combined_text, classify
from notam_engine.dates import resolve_validity
from notam_engine.extractor import extract
from notam_engine.merger import drop_expired, merge
from notam_engine.models.notam import (
    NormalizedNotam,
    ParsedFields,
    ParseFailure,
    RawNotam,
)

logger = logging.getLogger(__name__)


def _stable_id(fields: Optional[ParsedFields], raw_text: str) -> str:
    """Content hash used when neither an external id nor a number exists."""
    basis = ''
    if fields:
        basis = fields.q_line or fields.body
    basis = basis or raw_text
    digest = hashlib.sha1(basis.encode('utf-8')).hexdigest()
    return f"notam-{digest[:12]}"


class NotamParser:
    """Turns raw NOTAM records into NormalizedNotam instances."""

    def parse_notam(self, notam_data: Union[Dict, RawNotam]) -> NormalizedNotam:
        """
        Parse and normalize one NOTAM.

        Args:
            notam_data: Input record (rawText, source, apiValidFrom,
                apiValidTo, apiType, id, number) or a RawNotam

        Returns:
            NormalizedNotam. Text without recognizable fields still yields a
            record, classified from the raw text alone.
        """
        raw = notam_data if isinstance(notam_data, RawNotam) else RawNotam.from_dict(notam_data)

        extracted = extract(raw.raw_text)
        fields = None if isinstance(extracted, ParseFailure) else extracted
        if fields is None:
            logger.debug(f"Structural parse failed ({extracted.reason}), keeping raw text as body")

        notes: List[str] = []
        valid_from = resolve_validity(
            raw.raw_text, 'B',
            parsed_value=fields.valid_from_raw if fields else None,
            api_value=raw.api_valid_from,
            notes=notes,
        )
        valid_to = resolve_validity(
            raw.raw_text, 'C',
            parsed_value=fields.valid_to_raw if fields else None,
            api_value=raw.api_valid_to,
            notes=notes,
        )

        if (
            isinstance(valid_from, datetime)
            and isinstance(valid_to, datetime)
            and valid_to < valid_from
        ):
            notes.append("validTo precedes validFrom")

        summary = fields.body if fields else ''
        is_cancellation = fields.is_cancellation if fields else False
        classification = classify(
            build_combined_text(summary, raw.raw_text),
            api_type=raw.api_type,
            is_cancellation=is_cancellation,
        )

        number = (fields.notam_number if fields else None) or raw.api_number
        notam_id = raw.external_id or number or _stable_id(fields, raw.raw_text)

        notam = NormalizedNotam(
            id=notam_id,
            number=number,
            valid_from=valid_from,
            valid_to=valid_to,
            classification=classification,
            source=raw.source,
            raw_text=raw.raw_text,
            is_cancellation=is_cancellation,
            cancels=fields.cancels_notam if fields else None,
            fields=fields,
            quality_notes=tuple(notes),
        )

        if notes:
            logger.info(f"Data quality notes for {notam_id}: {'; '.join(notes)}")
        return notam

    def parse_batch(self, records: Iterable[Union[Dict, RawNotam]]) -> List[NormalizedNotam]:
        """
        Parse every record, skipping (and logging) any that blow up.

        Returns:
            Normalized NOTAMs in input order
        """
        results = []
        for index, record in enumerate(records):
            try:
                results.append(self.parse_notam(record))
            except Exception as e:
                logger.error(f"Error processing NOTAM #{index}: {e}", exc_info=True)
        return results

    def process(
        self,
        records: Iterable[Union[Dict, RawNotam]],
        include_expired: bool = True,
        now: Optional[datetime] = None,
    ) -> List[NormalizedNotam]:
        """
        Full batch pipeline for one aerodrome/FIR: parse, merge, optionally drop expired.
        """
        notams = merge(self.parse_batch(records))
        if not include_expired:
            notams = drop_expired(notams, now)
        logger.info(f"Processed batch: {len(notams)} NOTAM(s) after merge")
        return notams
