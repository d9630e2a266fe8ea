#!/usr/bin/env python3
"""CLI interface for the extract module."""

import argparse
import json
import re
import sys
from datetime import date
from pathlib import Path

from common.logger import error, get_logger, setup_logging

from .discovery import SectionPatternLearner
from .engine import extract

logger = get_logger(__name__)

_DATE_IN_NAME = re.compile(r"\d{4}-\d{2}-\d{2}")


def _document_date(path: Path, explicit: str | None) -> str:
    if explicit:
        return explicit
    match = _DATE_IN_NAME.search(path.name)
    return match.group(0) if match else date.today().isoformat()


def cmd_document(args):
    """Extract one insight document and print the structured record as JSON.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code (0 for success, non-zero for errors)
    """
    if not args.file.is_file():
        error(f"{args.file} is not a file")
        return 1

    content = args.file.read_text(encoding="utf-8")
    record = extract(content, _document_date(args.file, args.date))
    print(json.dumps(record.model_dump(), indent=2, ensure_ascii=False))
    return 0


def cmd_discover(args):
    """Report section headers in a directory of documents that are not extracted yet."""
    if not args.directory.is_dir():
        error(f"{args.directory} is not a directory")
        return 1

    learner = SectionPatternLearner()
    files = sorted(args.directory.glob("*.md"))
    for path in files:
        learner.analyze(path.read_text(encoding="utf-8"), _document_date(path, None))

    found = learner.discoveries(min_occurrences=args.min_occurrences)
    logger.info(f"Scanned [bold]{len(files)}[/bold] documents, {len(found)} unrecognized section(s)")
    for section in found:
        print(f"{section.occurrences:4d}  {section.header}")
        for sample in section.samples:
            print(f"        - {sample}")
    return 0


def main():
    """Main entry point for the CLI."""
    setup_logging()
    parser = argparse.ArgumentParser(description="Extract structured data from insight documents")

    subparsers = parser.add_subparsers(dest="command", required=True)

    document_parser = subparsers.add_parser(
        "document", help="Extract one markdown document and print the result as JSON"
    )
    document_parser.add_argument("file", type=Path, help="Markdown file to extract")
    document_parser.add_argument(
        "--date",
        default=None,
        help="Date the document covers (default: from the file name, else today)",
    )
    document_parser.set_defaults(func=cmd_document)

    discover_parser = subparsers.add_parser(
        "discover", help="List unrecognized '##' sections across a directory of documents"
    )
    discover_parser.add_argument("directory", type=Path, help="Directory of .md documents")
    discover_parser.add_argument(
        "--min-occurrences",
        type=int,
        default=1,
        help="Only report sections seen at least this often (default: 1)",
    )
    discover_parser.set_defaults(func=cmd_discover)

    args = parser.parse_args()
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
