"""
Command line converter: BIC directory PDF to CSV.

Usage:
    bic-exporter -s ISOBIC.pdf -d ISOBIC.csv
    bic-exporter --strict --log-level DEBUG
"""

import argparse
import logging
import os
import sys
from typing import List, Optional

from rich.console import Console
from rich.logging import RichHandler

from bic_exporter import __version__
from bic_exporter.engine.config import EngineConfig
from bic_exporter.extractors.table_extractor import convert_to_csv
from bic_exporter.utils.validation import BicExporterError

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]
DEFAULT_LOG_LEVEL = "WARNING"


def _default_log_level() -> str:
    level = os.getenv("LOG_LEVEL", DEFAULT_LOG_LEVEL).upper()
    return level if level in LOG_LEVELS else DEFAULT_LOG_LEVEL


def create_parser() -> argparse.ArgumentParser:
    """Create argument parser for CLI."""
    parser = argparse.ArgumentParser(
        prog="bic-exporter",
        description="Convert BIC directory PDF to CSV format",
    )
    parser.add_argument(
        "-s", "--source",
        default="ISOBIC.pdf",
        help="Path to the source PDF file (default: ISOBIC.pdf)",
    )
    parser.add_argument(
        "-d", "--destination",
        default="ISOBIC.csv",
        help="Path to the destination CSV file (default: ISOBIC.csv)",
    )
    parser.add_argument(
        "--strict",
        action="store_true",
        help="Abort on the first malformed record instead of skipping it",
    )
    parser.add_argument(
        "--log-level",
        choices=LOG_LEVELS,
        default=_default_log_level(),
        help="Logging level for the extraction pipeline",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def _configure_logging(level: str, console: Console) -> None:
    handler = RichHandler(console=console, rich_tracebacks=True, show_time=False, show_path=False)
    logging.basicConfig(level=logging.WARNING, format="%(message)s", handlers=[handler])
    logging.getLogger("bic_exporter").setLevel(level)


def main(argv: Optional[List[str]] = None) -> int:
    args = create_parser().parse_args(argv)

    console = Console(soft_wrap=True, highlight=False)
    error_console = Console(stderr=True, soft_wrap=True)
    _configure_logging(args.log_level, error_console)

    config = EngineConfig(strict_mode=args.strict)

    console.print(f"Converting {args.source} to {args.destination}...", markup=False)
    try:
        row_count = convert_to_csv(args.source, args.destination, config)
    except BicExporterError as e:
        error_console.print(f"[bold red]Error:[/bold red] {e}")
        return 1

    console.print(f"Extracted {row_count} records to {args.destination}", markup=False)
    return 0


if __name__ == "__main__":
    sys.exit(main())
