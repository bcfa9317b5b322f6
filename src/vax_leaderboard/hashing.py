"""
Hashing utilities for provenance.

Each leaderboard run writes a metadata sidecar with:
- the source spreadsheet hash
- config digest
- code version (git commit if available)
- runtime library versions
- timestamp + run_id
"""

import hashlib
import json
import subprocess
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional, Union

from vax_leaderboard.io_utils import atomic_write_json, read_json
from vax_leaderboard.logging_utils import get_versions
from vax_leaderboard.paths import METADATA_DIR


# =============================================================================
# Content Hashing
# =============================================================================

def hash_file(path: Union[str, Path], algorithm: str = "sha256") -> str:
    """
    Compute hash of a file.

    Args:
        path: Path to file
        algorithm: Hash algorithm (default: sha256)

    Returns:
        Hex digest of file hash
    """
    path = Path(path)

    if not path.exists():
        raise FileNotFoundError(f"Cannot hash non-existent file: {path}")

    h = hashlib.new(algorithm)

    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(8192), b""):
            h.update(chunk)

    return h.hexdigest()


def hash_bytes(data: bytes, algorithm: str = "sha256") -> str:
    """Compute hash of an in-memory blob (e.g. a fresh download)."""
    h = hashlib.new(algorithm)
    h.update(data)
    return h.hexdigest()


def hash_string(s: str, algorithm: str = "sha256") -> str:
    """Compute hash of a string."""
    return hash_bytes(s.encode("utf-8"), algorithm)


def hash_dict(d: Dict[str, Any], algorithm: str = "sha256") -> str:
    """
    Compute hash of a dictionary (via JSON serialization).

    Keys are sorted so equal configs always produce the same digest.
    """
    s = json.dumps(d, sort_keys=True, default=str)
    return hash_string(s, algorithm)


# =============================================================================
# Git Version Info
# =============================================================================

def get_git_commit() -> Optional[str]:
    """
    Get current git commit hash.

    Returns:
        Commit hash or None if not in a git repo
    """
    try:
        result = subprocess.run(
            ["git", "rev-parse", "HEAD"],
            capture_output=True,
            text=True,
            timeout=5,
        )
        if result.returncode == 0:
            return result.stdout.strip()
    except (subprocess.TimeoutExpired, FileNotFoundError):
        pass
    return None


def get_git_dirty() -> Optional[bool]:
    """
    Check if git working directory has uncommitted changes.

    Returns:
        True if dirty, False if clean, None if not in git repo
    """
    try:
        result = subprocess.run(
            ["git", "status", "--porcelain"],
            capture_output=True,
            text=True,
            timeout=5,
        )
        if result.returncode == 0:
            return len(result.stdout.strip()) > 0
    except (subprocess.TimeoutExpired, FileNotFoundError):
        pass
    return None


def get_git_info() -> Dict[str, Any]:
    """Get git repository information (commit and dirty status)."""
    return {
        "commit": get_git_commit(),
        "dirty": get_git_dirty(),
    }


# =============================================================================
# Metadata Sidecar
# =============================================================================

def create_metadata_sidecar(
    outputs: Dict[str, str],
    source: Dict[str, Any],
    config: Dict[str, Any],
    run_id: str,
    extra: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """
    Create the metadata sidecar for a leaderboard run.

    Args:
        outputs: Mapping of output names to file paths
        source: Source description (url, sheet, sha256, byte size)
        config: Configuration used for this run
        run_id: Unique run identifier
        extra: Additional metadata to include (row counts, exclusions)

    Returns:
        Metadata dictionary
    """
    metadata = {
        "outputs": {name: str(path) for name, path in outputs.items()},
        "run_id": run_id,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "source": source,
        "config_digest": hash_dict(config),
        "config": config,
        "git": get_git_info(),
        "versions": get_versions(),
    }

    if extra:
        metadata["extra"] = extra

    return metadata


def write_metadata_sidecar(
    name: str,
    outputs: Dict[str, str],
    source: Dict[str, Any],
    config: Dict[str, Any],
    run_id: str,
    extra: Optional[Dict[str, Any]] = None,
    metadata_dir: Optional[Path] = None,
) -> Path:
    """
    Write a metadata sidecar file named `<name>_metadata.json`.

    Returns:
        Path to the written sidecar file
    """
    if metadata_dir is None:
        metadata_dir = METADATA_DIR

    metadata = create_metadata_sidecar(outputs, source, config, run_id, extra)
    sidecar_path = Path(metadata_dir) / f"{name}_metadata.json"

    atomic_write_json(metadata, sidecar_path)

    return sidecar_path


def read_metadata_sidecar(
    name: str,
    metadata_dir: Optional[Path] = None,
) -> Optional[Dict[str, Any]]:
    """
    Read the metadata sidecar written by `write_metadata_sidecar`.

    Returns:
        Metadata dictionary or None if not found
    """
    if metadata_dir is None:
        metadata_dir = METADATA_DIR

    sidecar_path = Path(metadata_dir) / f"{name}_metadata.json"

    if sidecar_path.exists():
        return read_json(sidecar_path)
    return None
