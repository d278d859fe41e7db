"""Unit tests for NOTAM parser."""
import hashlib
import logging

import pytest
from datetime import datetime, timezone

from notam_engine.models.notam import (
    Classification,
    PERMANENT,
    RawNotam,
    Source,
)
from notam_engine.parser import NotamParser


def utc(*args):
    return datetime(*args, tzinfo=timezone.utc)


class TestNotamParser:
    """Test cases for NotamParser class."""

    @pytest.fixture
    def parser(self):
        """Create parser instance."""
        return NotamParser()

    @pytest.fixture
    def cancellation_record(self):
        """FAA record for a NOTAMC with all fields on one line."""
        return {
            'rawText': (
                "A1235/25 NOTAMC A1234/25\n"
                "Q) KZNY/QMRLC/IV/M/A/000/999/4038N07347W005\n"
                "A) KJFK B) 2501010000 C) 2501312359 E) RWY 04L/22R CLSD"
            ),
            'source': 'FAA',
        }

    def test_parse_cancellation(self, parser, cancellation_record):
        """Cancellation with inline fields is fully normalized."""
        notam = parser.parse_notam(cancellation_record)

        assert notam.is_cancellation is True
        assert notam.cancels == "A1234/25"
        assert notam.number == "A1235/25"
        assert notam.id == "A1235/25"
        assert notam.valid_from == utc(2025, 1, 1, 0, 0)
        assert notam.valid_to == utc(2025, 1, 31, 23, 59)
        assert notam.classification == Classification.CANCELLED
        assert notam.aerodrome == "KJFK"
        assert notam.quality_notes == ()

    def test_output_record(self, parser, cancellation_record):
        """to_dict() carries the output record shape."""
        record = parser.parse_notam(cancellation_record).to_dict()

        assert record == {
            'id': "A1235/25",
            'number': "A1235/25",
            'validFrom': "2025-01-01T00:00:00Z",
            'validTo': "2025-01-31T23:59:00Z",
            'classification': "cancelled",
            'source': "FAA",
            'isCancellation': True,
            'cancels': "A1234/25",
            'rawText': cancellation_record['rawText'],
        }

    def test_impossible_end_date(self, parser):
        """30 February gives no end date instead of an error."""
        notam = parser.parse_notam({
            'rawText': "A0001/25 NOTAMN\nA) KJFK\nB) 2502011200\nC) 2502301200\nE) RWY 13/31 CLSD",
        })

        assert notam.valid_from == utc(2025, 2, 1, 12, 0)
        assert notam.valid_to is None
        assert notam.to_dict()['validTo'] is None

    def test_api_dates_used_when_text_has_none(self, parser):
        """Upstream timestamps fill missing B)/C)."""
        notam = parser.parse_notam({
            'rawText': "C0100/25 NOTAMN\nA) CYYZ\nE) TWY A CLSD",
            'source': 'NAV_CANADA',
            'apiValidFrom': "2025-03-01T00:00:00Z",
            'apiValidTo': "2025-03-02T06:00:00.000Z",
        })

        assert notam.valid_from == utc(2025, 3, 1, 0, 0)
        assert notam.valid_to == utc(2025, 3, 2, 6, 0)
        assert notam.source == Source.NAV_CANADA
        assert notam.to_dict()['source'] == "NAV CANADA"

    def test_text_dates_win_over_api(self, parser):
        """The API sometimes disagrees with the text; the text wins."""
        notam = parser.parse_notam({
            'rawText': "A0002/25 NOTAMN\nA) KBOS\nB) 2501010000\nC) 2501020000\nE) RWY 04R CLSD",
            'apiValidFrom': "2024-12-31T00:00:00Z",
            'apiValidTo': None,
        })

        assert notam.valid_from == utc(2025, 1, 1, 0, 0)
        assert notam.valid_to == utc(2025, 1, 2, 0, 0)

    def test_permanent_end(self, parser):
        """C) PERM becomes PERMANENT."""
        notam = parser.parse_notam({
            'rawText': "A0003/25 NOTAMN\nA) KBOS\nB) 2501010000\nC) PERM\nE) TWY K EDGE LGT U/S",
        })

        assert notam.valid_to is PERMANENT
        assert notam.is_permanent
        assert notam.to_dict()['validTo'] == "PERMANENT"

    def test_local_timezone_end(self, parser):
        """Eastern time suffix is converted to UTC."""
        notam = parser.parse_notam({
            'rawText': "A0004/25 NOTAMN\nA) KJFK\nB) 2501010000\nC) 2501312359EST\nE) RWY 04L CLSD",
        })

        assert notam.valid_to == utc(2025, 2, 1, 4, 59)

    def test_unstructured_text_still_yields_record(self, parser):
        """Free text is classified from the raw text and gets a content id."""
        raw = "RWY 04L/22R CLSD DUE TO WIP"
        notam = parser.parse_notam({'rawText': raw, 'apiValidFrom': "2025-01-01T00:00:00Z"})

        expected_id = "notam-" + hashlib.sha1(raw.encode('utf-8')).hexdigest()[:12]
        assert notam.fields is None
        assert notam.id == expected_id
        assert notam.number is None
        assert notam.to_dict()['number'] == "N/A"
        assert notam.body == raw
        assert notam.classification == Classification.RUNWAY
        assert notam.valid_from == utc(2025, 1, 1, 0, 0)
        assert notam.valid_to is None

    def test_stable_id_uses_q_line(self, parser):
        """Same Q-line, same id."""
        text = "Q) KZBW/QFAXX/IV/NBO/A/000/999/\nA) KBOS\nE) AD HR OF OPS CHANGED"
        first = parser.parse_notam({'rawText': text})
        second = parser.parse_notam({'rawText': text + " AGAIN"})

        assert first.id == second.id
        assert first.id.startswith("notam-")

    def test_external_id_wins(self, parser, cancellation_record):
        """An upstream id is kept as the record id."""
        cancellation_record['id'] = 12345
        notam = parser.parse_notam(cancellation_record)

        assert notam.id == "12345"
        assert notam.number == "A1235/25"

    def test_api_number_fallback(self, parser):
        """The upstream number is used when the text has none."""
        notam = parser.parse_notam({
            'rawText': "A) KORD\nE) FUEL NOT AVBL",
            'number': "A0100/25",
        })

        assert notam.number == "A0100/25"
        assert notam.id == "A0100/25"
        assert notam.classification == Classification.FUEL

    def test_api_cancellation_type(self, parser):
        """Type code C marks the record cancelled for display."""
        notam = parser.parse_notam({
            'rawText': "A0005/25 NOTAMN\nA) KORD\nE) TWY B CLSD",
            'apiType': "C",
        })

        assert notam.classification == Classification.CANCELLED
        assert notam.is_cancellation is False

    def test_inverted_validity_is_flagged_not_fixed(self, parser):
        """An end before the start is left alone and noted."""
        notam = parser.parse_notam({
            'rawText': "A0006/25 NOTAMN\nA) KJFK\nB) 2502010000\nC) 2501010000\nE) RWY 13/31 CLSD",
        })

        assert notam.valid_from == utc(2025, 2, 1, 0, 0)
        assert notam.valid_to == utc(2025, 1, 1, 0, 0)
        assert notam.has_inverted_validity
        assert "validTo precedes validFrom" in notam.quality_notes

    def test_unknown_timezone_note(self, parser):
        """Unknown suffixes are read as UTC with a note."""
        notam = parser.parse_notam({
            'rawText': "A0007/25 NOTAMN\nA) KJFK\nB) 2501010000\nC) 2501312359XYZ\nE) RWY 13/31 CLSD",
        })

        assert notam.valid_to == utc(2025, 1, 31, 23, 59)
        assert any("XYZ" in note for note in notam.quality_notes)

    def test_estimated_end_note(self, parser):
        """Detached EST marks an estimate, not Eastern time."""
        notam = parser.parse_notam({
            'rawText': "A0008/25 NOTAMN\nA) KJFK\nB) 2501010000\nC) 2501312359 EST\nE) CRANE",
        })

        assert notam.valid_to == utc(2025, 1, 31, 23, 59)
        assert any("estimated" in note for note in notam.quality_notes)

    def test_accepts_raw_notam(self, parser):
        """RawNotam instances are parsed directly."""
        notam = parser.parse_notam(RawNotam(
            raw_text="C0009/25 NOTAMN\nA) CYVR\nB) 2501010000\nC) 2501020000\nE) CRFI 08R .40",
            source=Source.NAV_CANADA,
        ))

        assert notam.classification == Classification.FRICTION_INDEX
        assert notam.source == Source.NAV_CANADA


class TestBatch:
    """Test cases for parse_batch() and process()."""

    @pytest.fixture
    def parser(self):
        return NotamParser()

    def test_bad_records_are_skipped(self, parser, caplog):
        """One broken record does not stop the batch."""
        records = [
            {'rawText': 123},
            {'rawText': "A0001/25 NOTAMN\nA) KJFK\nE) RWY CLSD", 'source': "BOGUS"},
            {'rawText': "A0002/25 NOTAMN\nA) KJFK\nE) TWY A CLSD"},
        ]

        with caplog.at_level(logging.ERROR):
            results = parser.parse_batch(records)

        assert [n.number for n in results] == ["A0002/25"]
        assert "Error processing NOTAM #0" in caplog.text
        assert "Error processing NOTAM #1" in caplog.text

    def test_process_merges_and_sorts(self, parser):
        """Cancelled NOTAM is removed and the rest sorted newest first."""
        records = [
            {'rawText': "A1234/25 NOTAMN\nA) KJFK\nB) 2501010000\nC) 2501312359\nE) RWY 04L/22R CLSD"},
            {'rawText': "A1300/25 NOTAMN\nA) KJFK\nB) 2503010000\nC) PERM\nE) TWY B CLSD"},
            {'rawText': (
                "A1235/25 NOTAMC A1234/25\n"
                "A) KJFK B) 2501150000 C) 2501312359 E) RWY 04L/22R CLSD"
            )},
        ]

        result = parser.process(records)

        assert [n.number for n in result] == ["A1300/25", "A1235/25"]

    def test_process_drops_expired_on_request(self, parser):
        """include_expired=False removes NOTAMs that ended before now."""
        records = [
            {'rawText': "A0001/25 NOTAMN\nA) KJFK\nB) 2501010000\nC) 2501020000\nE) RWY 04L CLSD"},
            {'rawText': "A0002/25 NOTAMN\nA) KJFK\nB) 2501010000\nC) PERM\nE) TWY A CLSD"},
        ]
        now = utc(2025, 6, 1, 0, 0)

        kept = parser.process(records, include_expired=False, now=now)
        everything = parser.process(records, include_expired=True, now=now)

        assert [n.number for n in kept] == ["A0002/25"]
        assert len(everything) == 2
