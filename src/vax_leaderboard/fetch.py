"""
Download the county vaccination spreadsheet.

The source is a single .xlsx published on a fixed URL and replaced in place
when new data is released. Each download is kept as a dated raw snapshot
with its provenance recorded in data/raw/_manifest.json.
"""

import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

import requests

from vax_leaderboard.hashing import hash_bytes
from vax_leaderboard.io_utils import atomic_write_bytes, atomic_write_json, read_json
from vax_leaderboard.paths import RAW_DIR

SNAPSHOT_PREFIX = "county_vaccine_data"


class FetchError(RuntimeError):
    """Raised when the source file cannot be downloaded."""
    pass


def fetch_source(
    url: str,
    logger,
    timeout: float = 60.0,
    max_retries: int = 3,
    retry_delay: float = 5.0,
) -> bytes:
    """
    Fetch the source spreadsheet as bytes.

    Retries on any requests error (connection, timeout, HTTP status) up to
    `max_retries` times.

    Raises:
        FetchError: If all attempts fail or the response body is empty
    """
    attempt = 0
    while True:
        try:
            response = requests.get(url, timeout=timeout)
            response.raise_for_status()
            break

        except requests.exceptions.RequestException as e:
            if attempt < max_retries:
                attempt += 1
                logger.warning(
                    f"Request failed, retrying in {retry_delay}s "
                    f"(attempt {attempt}/{max_retries})... ({e})"
                )
                time.sleep(retry_delay)
                continue
            logger.error(f"Max retries exceeded: {e}")
            raise FetchError(f"Failed to fetch {url}: {e}") from e

    content = response.content
    if not content:
        raise FetchError(f"Empty response body from {url}")

    logger.info(f"Fetched {len(content):,} bytes from {url}")
    return content


def save_snapshot(
    content: bytes,
    url: str,
    logger,
    raw_dir: Optional[Path] = None,
    timestamp: Optional[datetime] = None,
) -> Path:
    """
    Write a raw snapshot of the download and append its provenance to the manifest.

    Returns:
        Path to the written snapshot
    """
    raw_dir = Path(raw_dir) if raw_dir is not None else RAW_DIR
    timestamp = timestamp or datetime.now(timezone.utc)

    filename = f"{SNAPSHOT_PREFIX}_{timestamp.strftime('%Y%m%d')}.xlsx"
    snapshot_path = raw_dir / filename
    atomic_write_bytes(content, snapshot_path)
    logger.info(f"Saved: {snapshot_path}")

    manifest_path = raw_dir / "_manifest.json"
    if manifest_path.exists():
        manifest = read_json(manifest_path)
    else:
        manifest = {"downloads": []}

    manifest["downloads"].append({
        "source_url": url,
        "download_timestamp": timestamp.isoformat(),
        "filename": filename,
        "file_path": str(snapshot_path),
        "sha256": hash_bytes(content),
        "bytes": len(content),
    })
    manifest["last_updated"] = timestamp.isoformat()

    atomic_write_json(manifest, manifest_path)
    logger.info(f"Updated manifest: {manifest_path}")

    return snapshot_path


def latest_snapshot(raw_dir: Optional[Path] = None) -> Optional[Path]:
    """Return the most recent raw snapshot, or None if nothing was fetched yet."""
    raw_dir = Path(raw_dir) if raw_dir is not None else RAW_DIR
    snapshots = sorted(raw_dir.glob(f"{SNAPSHOT_PREFIX}_*.xlsx"))
    return snapshots[-1] if snapshots else None
