"""
Fetch a fresh candidate snapshot and write the disposition CSV export.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from planet_patrol.candidates import CandidateSnapshotBuilder
from planet_patrol.config import get_settings
from planet_patrol.dependencies import get_candidate_state, get_document_store
from planet_patrol.dispositions import to_csv

logger = logging.getLogger(__name__)


def main() -> int:
    parser = argparse.ArgumentParser(description="Export candidate dispositions as CSV")
    parser.add_argument(
        "--all",
        action="store_true",
        help="Include candidates the designated reviewer has not answered",
    )
    parser.add_argument(
        "-r",
        "--reviewer",
        type=str,
        default=None,
        help="Reviewer key whose disposition fills the last two columns",
    )
    parser.add_argument(
        "-o",
        "--output",
        type=str,
        default=None,
        help="Output file (default: planet-patrol-dispositions[-all].csv)",
    )
    parser.add_argument(
        "--page-delay-seconds",
        type=float,
        default=None,
        help="Override the delay between document store pages",
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(name)s %(levelname)s %(asctime)s %(message)s",
        datefmt="%m/%d/%Y %I:%M:%S %p",
    )

    settings = get_settings()
    builder = CandidateSnapshotBuilder(
        get_document_store(),
        get_candidate_state(),
        partition=settings.candidate_partition,
        page_delay_seconds=(
            args.page_delay_seconds
            if args.page_delay_seconds is not None
            else settings.candidate_page_delay_seconds
        ),
    )
    try:
        snapshot = builder.sync()
    except Exception as exc:
        logger.exception("Fetching candidates failed: %s", exc)
        return 1

    reviewer_key = args.reviewer or settings.csv_reviewer_key
    output = Path(
        args.output
        or f"planet-patrol-dispositions{'-all' if args.all else ''}.csv"
    )
    output.write_text(
        to_csv(snapshot, include_all=args.all, reviewer_key=reviewer_key),
        encoding="utf-8",
    )
    logger.info("Wrote %d candidates to %s", len(snapshot), output)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
