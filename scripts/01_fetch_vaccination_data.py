#!/usr/bin/env python3
"""
01_fetch_vaccination_data.py

Download the county vaccination spreadsheet and keep a raw snapshot.

Outputs:
- data/raw/county_vaccine_data_YYYYMMDD.xlsx (raw snapshot)
- data/raw/_manifest.json (updated with provenance)

Usage:
  python scripts/01_fetch_vaccination_data.py
  python scripts/01_fetch_vaccination_data.py --config configs/params.yml
"""

import argparse

from vax_leaderboard.config import load_config
from vax_leaderboard.fetch import fetch_source, save_snapshot
from vax_leaderboard.hashing import hash_dict
from vax_leaderboard.logging_utils import get_logger
from vax_leaderboard.paths import PARAMS_FILE

SCRIPT_NAME = "01_fetch_vaccination_data"


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Fetch the county vaccination spreadsheet")
    parser.add_argument("--config", default=str(PARAMS_FILE), help="Path to params.yml")
    args = parser.parse_args()

    with get_logger(SCRIPT_NAME) as logger:
        logger.info(f"Starting {SCRIPT_NAME}.py")

        try:
            config = load_config(args.config)
            logger.log_config(config.to_dict(), hash_dict(config.to_dict()))
            logger.log_inputs({"source_url": config.source.url})

            content = fetch_source(
                config.source.url,
                logger,
                timeout=config.source.timeout,
                max_retries=config.source.max_retries,
                retry_delay=config.source.retry_delay,
            )
            snapshot_path = save_snapshot(content, config.source.url, logger)

            logger.log_outputs({"raw_snapshot": str(snapshot_path)})
            logger.log_metrics({"bytes": len(content)})
            logger.info(f"SUCCESS: Saved {len(content):,} bytes to {snapshot_path}")

        except Exception as e:
            logger.error(f"FAILED: {e}")
            raise


if __name__ == "__main__":
    main()
