"""catalog_cli.py
Command-line entry point for catalog aggregation.

This module only handles CLI parsing and delegates all heavy lifting to
:pyfunc:`src.catalog.aggregator.run_aggregation` and
:pyfunc:`src.catalog.quality.coverage_report`.
"""

from __future__ import annotations

import argparse
import json
from pathlib import Path

from src.catalog.aggregator import collect_facets, run_aggregation
from src.catalog.quality import coverage_report
from src.common.log_setup import configure_logging
from src.common.settings import settings as common_settings


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Merge catalog, collection, award and availability data.",
    )
    parser.add_argument(
        "--output", type=Path, default=None, help="Merged data file (default: MERGED_FILE)"
    )
    parser.add_argument(
        "--quality", action="store_true", help="Print a per-collection coverage report"
    )
    parser.add_argument(
        "--facets", action="store_true", help="Print distinct filter values as JSON"
    )
    parser.add_argument(
        "--no-progress", action="store_true", help="Disable progress bars"
    )
    return parser.parse_args()


def main() -> None:  # noqa: D401
    """Parse CLI options and run the aggregation pass."""

    args = _parse_args()
    configure_logging(common_settings.log_level)

    entries = run_aggregation(args.output, progress=not args.no_progress)

    if args.quality:
        print(coverage_report(entries).to_string(index=False))
    if args.facets:
        print(json.dumps(collect_facets(entries), ensure_ascii=False, indent=2))


if __name__ == "__main__":
    main()
