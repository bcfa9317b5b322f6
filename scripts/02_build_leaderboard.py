#!/usr/bin/env python3
"""
02_build_leaderboard.py

Rank counties by the share of their eligible population with at least one
vaccine dose, and write the top-N leaderboard as CSV and chart.

Inputs:
- latest raw snapshot in data/raw/ (from 01_fetch_vaccination_data.py),
  or a fresh download with --fetch
- configs/params.yml

Outputs:
- reports/tables/leaderboard_YYYYMMDD.csv + leaderboard_latest.csv
- reports/figures/leaderboard_YYYYMMDD.png + leaderboard_latest.png
- data/processed/metadata/leaderboard_metadata.json

Usage:
  python scripts/02_build_leaderboard.py               # use latest snapshot
  python scripts/02_build_leaderboard.py --fetch       # download first
  python scripts/02_build_leaderboard.py --top-n 15
"""

import argparse
import dataclasses

from vax_leaderboard.config import load_config
from vax_leaderboard.fetch import latest_snapshot
from vax_leaderboard.logging_utils import get_logger
from vax_leaderboard.paths import PARAMS_FILE, RAW_DIR
from vax_leaderboard.pipeline import run

SCRIPT_NAME = "02_build_leaderboard"


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Build the county vaccination leaderboard")
    parser.add_argument("--config", default=str(PARAMS_FILE), help="Path to params.yml")
    parser.add_argument("--fetch", action="store_true", help="Download the source before ranking")
    parser.add_argument("--top-n", type=int, default=None, help="Override leaderboard.top_n")
    args = parser.parse_args()

    with get_logger(SCRIPT_NAME) as logger:
        logger.info(f"Starting {SCRIPT_NAME}.py")

        try:
            config = load_config(args.config)
            if args.top_n is not None:
                config = dataclasses.replace(config, top_n=args.top_n)

            content = None
            if not args.fetch:
                snapshot = latest_snapshot()
                if snapshot is None:
                    raise FileNotFoundError(
                        f"No raw snapshot in {RAW_DIR}; run 01_fetch_vaccination_data.py "
                        f"or pass --fetch"
                    )
                logger.log_inputs({"raw_snapshot": str(snapshot)})
                content = snapshot.read_bytes()

            outputs = run(config, logger, content=content)

        except Exception as e:
            logger.error(f"FAILED: {e}")
            raise

    print(f"\n✓ Leaderboard built (top_n={config.top_n})")
    for name, path in outputs.items():
        print(f"  {name:<13} {path}")


if __name__ == "__main__":
    main()
