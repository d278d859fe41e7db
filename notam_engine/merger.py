"""Batch merging of normalized NOTAMs: cancellations, expiry, ordering."""
import logging
from datetime import datetime, timezone
from typing import Iterable, List, Optional, Set

from notam_engine.models.notam import NormalizedNotam, PERMANENT

logger = logging.getLogger(__name__)


def cancelled_numbers(records: Iterable[NormalizedNotam]) -> Set[str]:
    """NOTAM numbers referenced by the cancellation records in a batch."""
    return {r.cancels for r in records if r.is_cancellation and r.cancels}


def _sort_key(record: NormalizedNotam):
    # Dated starts first (newest first), then unknown starts, then PERM
    if record.valid_from is PERMANENT:
        return (2, 0.0)
    if isinstance(record.valid_from, datetime):
        return (0, -record.valid_from.timestamp())
    return (1, 0.0)


def merge(records: Iterable[NormalizedNotam]) -> List[NormalizedNotam]:
    """
    Drop superseded NOTAMs and order the rest for display.

    A record is dropped when a cancellation in the same batch references
    its number. Cancellation records themselves always stay. The sort is
    stable, so equal start times keep their input order.

    Args:
        records: Normalized NOTAMs for one aerodrome or FIR

    Returns:
        New list, newest first
    """
    records = list(records)
    cancelled = cancelled_numbers(records)

    kept = []
    for record in records:
        if not record.is_cancellation and record.number and record.number in cancelled:
            logger.debug(f"Dropping {record.number}: cancelled in batch")
            continue
        kept.append(record)

    if len(kept) != len(records):
        logger.info(f"Removed {len(records) - len(kept)} cancelled NOTAM(s) from batch")

    return sorted(kept, key=_sort_key)


def drop_expired(
    records: Iterable[NormalizedNotam],
    now: Optional[datetime] = None,
) -> List[NormalizedNotam]:
    """
    Remove NOTAMs whose dated end is already past.

    Cancellations, permanent NOTAMs and NOTAMs without a usable end
    are kept.
    """
    if now is None:
        now = datetime.now(timezone.utc)

    kept = []
    for record in records:
        if (
            not record.is_cancellation
            and isinstance(record.valid_to, datetime)
            and record.valid_to < now
        ):
            logger.debug(f"Dropping expired NOTAM {record.number or record.id}")
            continue
        kept.append(record)
    return kept
