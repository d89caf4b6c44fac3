#!/usr/bin/env python3
"""
polarmap - command line entry point

Computes a polar-angle map from one or more scans' coherence analyses and adds
it to the data type's map collection.

Usage:
    polarmap --data-type Original --scans 1 --range 0 360
    polarmap --data-type Original --scans 1 2 3 --interactive
    polarmap --config polarmap.json --data-type Original --scans 2 4

Angle ranges come from --range (once for all scans, or once per scan), from
--interactive prompting, or from the configuration file, in that order.
"""

import argparse
import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import List, Optional

from . import __version__
from .application.use_cases.polar_angle_mapping import PolarAngleMapping
from .config import AppConfig
from .domain.services.error_handler import ErrorHandlingService, PolarMapDomainError
from .infrastructure.console.prompt_resolver import ConsoleRangeResolver
from .infrastructure.storage.hdf5_repository import HDF5CoherenceRepository
from .logging_config import configure_logging

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="polarmap",
        description="Polar-angle maps from phase-encoded retinotopy scans",
    )
    parser.add_argument("--config", type=Path, help="JSON configuration file")
    parser.add_argument("--data-root", type=Path, help="Directory holding one folder per data type")
    parser.add_argument("--data-type", required=True, help="Data type holding the scans")
    parser.add_argument("--scans", type=int, nargs="*", default=None,
                        help="Scan numbers to map (all scans if omitted)")
    parser.add_argument("--range", dest="ranges", type=float, nargs=2, action="append",
                        metavar=("START", "END"),
                        help="Angles (deg) at phase 0 and 2pi; once for all scans or once per scan")
    parser.add_argument("--interactive", action="store_true",
                        help="Prompt for each scan's angle range")
    parser.add_argument("--map-name", help="Name stored with the map")
    parser.add_argument("--list-scans", action="store_true",
                        help="List scans with a coherence analysis and exit")
    parser.add_argument("-v", "--verbose", action="count", default=0,
                        help="-v for INFO, -vv for DEBUG logging")
    parser.add_argument("--version", action="version", version=f"polarmap {__version__}")
    return parser


def report_error(error: PolarMapDomainError) -> None:
    """Log the full error record and tell the operator what to do next."""
    service = ErrorHandlingService()
    logger.error("Mapping failed: %s", service.get_error_context(error.domain_error))

    print(f"Error: {error}", file=sys.stderr)
    if service.requires_user_intervention(error.domain_error):
        print("Fix the input or configuration named above and run again", file=sys.stderr)
    elif service.is_recoverable(error.domain_error):
        print("The operation may succeed if retried", file=sys.stderr)


def load_config(args: argparse.Namespace) -> AppConfig:
    config = AppConfig.from_file(str(args.config)) if args.config else AppConfig.default()
    if args.data_root is not None:
        config = replace(config, storage=replace(config.storage, data_root=args.data_root))
    return config


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point; returns the process exit code."""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = load_config(args)
    except PolarMapDomainError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1

    level = {0: config.logging.level, 1: "INFO"}.get(args.verbose, "DEBUG")
    configure_logging(level=level, log_file=config.logging.log_file)

    repository = HDF5CoherenceRepository(
        config.storage.data_root,
        coherence_file=config.storage.coherence_file,
        map_file=config.storage.map_file,
    )

    ranges = None
    if args.ranges:
        ranges = args.ranges[0] if len(args.ranges) == 1 else args.ranges

    resolver = ConsoleRangeResolver() if args.interactive else None

    try:
        mapping = PolarAngleMapping(repository, resolver=resolver, config=config.mapping)

        if args.list_scans:
            for scan in repository.list_scans(args.data_type):
                print(scan)
            return 0

        scans = args.scans if args.scans else repository.list_scans(args.data_type)
        if not scans:
            print(f"No coherence analyses found for data type '{args.data_type}'", file=sys.stderr)
            return 1

        record = mapping.run(args.data_type, scans, ranges=ranges, map_name=args.map_name)
    except PolarMapDomainError as e:
        report_error(e)
        return 1

    if record is None:
        print("Cancelled - no map stored")
        return 0

    print(f"Stored '{record.map_name}' as {record.data_type} scan {record.scan}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
