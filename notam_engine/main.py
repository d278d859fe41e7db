#!/usr/bin/env python3
"""Command line entry point: normalize NOTAM text from a file or fetch it live."""
import argparse
import json
import logging
import re
import sys
from typing import Dict, List, Optional, TextIO

from notam_engine.config import Config
from notam_engine.models.notam import Source
from notam_engine.notam_client import get_notam_client
from notam_engine.parser import NotamParser

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s.%(msecs)03d | %(levelname)-8s | %(name)-20s | %(filename)-15s | %(funcName)-15s | %(message)s"


def configure_logging(level: Optional[str] = None):
    """Configure root logging from the environment (LOG_LEVEL)."""
    log_level = level or Config.LOG_LEVEL
    logging.basicConfig(
        level=getattr(logging, log_level.upper(), logging.INFO),
        format=LOG_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stderr,
    )


def split_notam_blocks(text: str) -> List[str]:
    """Split a text dump into NOTAMs separated by blank lines."""
    return [block.strip() for block in re.split(r'\n\s*\n', text) if block.strip()]


def records_from_stream(stream: TextIO, source: Source) -> List[Dict]:
    return [
        {'rawText': block, 'source': source.value}
        for block in split_notam_blocks(stream.read())
    ]


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Normalize NOTAM text into JSON records')
    group = parser.add_mutually_exclusive_group(required=True)
    group.add_argument('--file', type=str, metavar='PATH',
                       help='File of raw NOTAMs separated by blank lines ("-" for stdin)')
    group.add_argument('--fetch', nargs='*', metavar='ICAO',
                       help='Fetch live NOTAMs for these airports (default: AIRPORTS from config)')
    parser.add_argument('--source', choices=[s.value for s in Source], default=Source.FAA.value,
                        help='Source tag for --file input (default: FAA)')
    parser.add_argument('--include-expired', action='store_true',
                        help='Keep NOTAMs whose end time has passed')
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = build_arg_parser().parse_args(argv)
    configure_logging()

    notam_parser = NotamParser()
    include_expired = args.include_expired

    if args.file is not None:
        source = Source.from_value(args.source)
        if args.file == '-':
            records = records_from_stream(sys.stdin, source)
        else:
            try:
                with open(args.file, 'r', encoding='utf-8') as f:
                    records = records_from_stream(f, source)
            except OSError as e:
                logger.error(f"Could not read {args.file}: {e}")
                return 1

        logger.info(f"Read {len(records)} NOTAM(s) from {args.file}")
        notams = notam_parser.process(records, include_expired=include_expired)
        output = [n.to_dict() for n in notams]
    else:
        try:
            Config.validate()
        except ValueError as e:
            logger.error(f"Invalid configuration: {e}")
            return 1

        airports = [a.strip().upper() for a in args.fetch if a.strip()] or Config.AIRPORTS
        client = get_notam_client()
        fetched = client.fetch_all_notams(airports)
        output = {
            airport: [n.to_dict() for n in notam_parser.process(records, include_expired=include_expired)]
            for airport, records in fetched.items()
        }

    json.dump(output, sys.stdout, indent=2)
    sys.stdout.write('\n')
    return 0


if __name__ == '__main__':
    sys.exit(main())
