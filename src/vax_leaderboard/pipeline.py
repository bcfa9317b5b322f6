"""
Leaderboard pipeline.

build_leaderboard is the pure core:
    raw records -> normalize -> filter -> derive ratio -> dense rank top-N

run wires the core to its collaborators (download, sheet parsing, CSV and
chart outputs). Everything that can fail on content is done in memory
first; outputs are only written once the leaderboard and chart exist, and each
write is atomic, so a failed run leaves the previous outputs untouched.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

import pandas as pd

from vax_leaderboard.config import LeaderboardConfig
from vax_leaderboard.fetch import fetch_source, save_snapshot
from vax_leaderboard.hashing import hash_bytes, hash_dict, hash_file, write_metadata_sidecar
from vax_leaderboard.io_utils import atomic_write_group, cleanup_temp_files
from vax_leaderboard.metrics import derive_uptake_ratio, summarize_uptake
from vax_leaderboard.normalize import excluded_entities, filter_entities, normalize_records
from vax_leaderboard.parse import parse_sheet
from vax_leaderboard.paths import FIGURES_DIR, METADATA_DIR, RAW_DIR, TABLES_DIR
from vax_leaderboard.ranking import rank_top_n
from vax_leaderboard.reporting import render_chart, render_csv


@dataclass
class LeaderboardResult:
    """Every intermediate stage of one leaderboard computation."""
    normalized: pd.DataFrame
    filtered: pd.DataFrame
    metrics: pd.DataFrame
    ranked: pd.DataFrame
    excluded: List[str] = field(default_factory=list)
    summary: Dict[str, Any] = field(default_factory=dict)


def build_leaderboard(
    raw: pd.DataFrame,
    config: LeaderboardConfig,
    logger=None,
) -> LeaderboardResult:
    """
    Compute the ranked leaderboard from raw records.

    Args:
        raw: Parsed sheet, one row per source row
        config: Validated configuration
        logger: Optional JSONLLogger for stage metrics

    Returns:
        LeaderboardResult with the ranked frame and intermediates
    """
    normalized = normalize_records(raw, config.columns)
    excluded = excluded_entities(normalized, config.exclusion_set)
    filtered = filter_entities(normalized, config.exclusion_set)
    metrics = derive_uptake_ratio(filtered, config.decimal_precision)
    ranked = rank_top_n(metrics, config.top_n)

    summary = summarize_uptake(metrics)
    summary.update({
        "rows_raw": int(len(raw)),
        "rows_excluded": int(len(normalized) - len(filtered)),
        "excluded_entities": excluded,
        "rows_ranked": int(len(ranked)),
        "top_n": config.top_n,
        "ties_over_top_n": int(max(0, len(ranked) - config.top_n)),
    })

    if logger is not None:
        logger.info(
            f"Normalized {len(normalized)} rows; excluded {summary['rows_excluded']} "
            f"aggregate rows; {summary['rows_rankable']} rankable"
        )
        if summary["rows_missing_ratio"]:
            logger.warning(
                f"{summary['rows_missing_ratio']} entities have no computable ratio "
                f"and were left out of the ranking",
                extra={"unrankable_entities": summary["unrankable_entities"]},
            )
        logger.log_metrics(summary)

    return LeaderboardResult(
        normalized=normalized,
        filtered=filtered,
        metrics=metrics,
        ranked=ranked,
        excluded=excluded,
        summary=summary,
    )


def run(
    config: LeaderboardConfig,
    logger,
    content: Optional[bytes] = None,
    tables_dir: Optional[Path] = None,
    figures_dir: Optional[Path] = None,
    metadata_dir: Optional[Path] = None,
    raw_dir: Optional[Path] = None,
    timestamp: Optional[datetime] = None,
) -> Dict[str, Path]:
    """
    Run the full pipeline and write the leaderboard outputs.

    Args:
        config: Validated configuration
        logger: JSONLLogger for the run
        content: Workbook bytes. If None, the source URL is fetched and a raw
            snapshot is saved first.
        tables_dir, figures_dir, metadata_dir, raw_dir: Output locations
            (default to the canonical project directories)
        timestamp: Run time used in dated filenames (default: now, UTC)

    Returns:
        Mapping of output name -> written path
    """
    tables_dir = Path(tables_dir) if tables_dir is not None else TABLES_DIR
    figures_dir = Path(figures_dir) if figures_dir is not None else FIGURES_DIR
    metadata_dir = Path(metadata_dir) if metadata_dir is not None else METADATA_DIR
    timestamp = timestamp or datetime.now(timezone.utc)

    config_dict = config.to_dict()
    logger.log_config(config_dict, hash_dict(config_dict))

    stem = config.outputs.stem
    removed = sum(
        cleanup_temp_files(directory, pattern=f".{stem}_*")
        for directory in (tables_dir, figures_dir, metadata_dir)
    )
    if removed:
        logger.warning(f"Removed {removed} temp files left by an interrupted run")

    source = {
        "url": config.source.url,
        "sheet_name": config.source.sheet_name,
    }

    if content is None:
        logger.log_inputs({"source_url": config.source.url})
        content = fetch_source(
            config.source.url,
            logger,
            timeout=config.source.timeout,
            max_retries=config.source.max_retries,
            retry_delay=config.source.retry_delay,
        )
        snapshot_path = save_snapshot(
            content, config.source.url, logger, raw_dir=raw_dir or RAW_DIR, timestamp=timestamp
        )
        source["snapshot"] = str(snapshot_path)

    source["sha256"] = hash_bytes(content)
    source["bytes"] = len(content)

    raw = parse_sheet(content, config.source.sheet_name, config.source.header_row)
    logger.info(f"Parsed sheet '{config.source.sheet_name}': {len(raw)} rows, {len(raw.columns)} columns")

    result = build_leaderboard(raw, config, logger)
    csv = render_csv(result.ranked)
    png = render_chart(
        result.ranked,
        title=config.outputs.chart_title,
        metric_label=config.outputs.metric_label,
        dpi=config.outputs.dpi,
    )

    # Nothing is written before this point
    date_tag = timestamp.strftime("%Y%m%d")
    outputs = {
        "csv": tables_dir / f"{stem}_{date_tag}.csv",
        "csv_latest": tables_dir / f"{stem}_latest.csv",
        "chart": figures_dir / f"{stem}_{date_tag}.png",
        "chart_latest": figures_dir / f"{stem}_latest.png",
    }

    # CSV and chart are replaced together so they always describe the same run
    atomic_write_group({
        outputs["csv"]: csv,
        outputs["csv_latest"]: csv,
        outputs["chart"]: png,
        outputs["chart_latest"]: png,
    })
    output_hashes = {name: hash_file(path) for name, path in outputs.items()}

    outputs["metadata"] = write_metadata_sidecar(
        stem,
        outputs={k: str(v) for k, v in outputs.items()},
        source=source,
        config=config_dict,
        run_id=logger.run_id,
        extra={**result.summary, "output_sha256": output_hashes},
        metadata_dir=metadata_dir,
    )

    logger.log_outputs({k: str(v) for k, v in outputs.items()})
    logger.info(f"Leaderboard written: {len(result.ranked)} entities (top_n={config.top_n})")

    return outputs
