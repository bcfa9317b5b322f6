"""
I/O utilities with atomic writes and safe reads.

All outputs are written via temp file -> rename/replace, so a failed run never
leaves a truncated export, chart or snapshot behind.
"""

import json
import os
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml


# =============================================================================
# Atomic Write Utilities
# =============================================================================

@contextmanager
def atomic_write(
    target_path: Union[str, Path],
    mode: str = "w",
    suffix: Optional[str] = None,
):
    """
    Context manager for atomic file writes.

    Writes to a temporary file first, then atomically renames to target.
    If an exception occurs, the temp file is cleaned up and target unchanged.

    Args:
        target_path: Final destination path
        mode: File mode ('w' for text, 'wb' for binary)
        suffix: Optional suffix for temp file (e.g., '.png')

    Yields:
        File handle for writing

    Example:
        with atomic_write("leaderboard.csv") as f:
            f.write("data")
    """
    target_path = Path(target_path)
    target_path.parent.mkdir(parents=True, exist_ok=True)

    if suffix is None:
        suffix = target_path.suffix or ".tmp"

    # Temp file in the same directory so the rename stays on one filesystem
    fd, temp_path = tempfile.mkstemp(
        suffix=suffix,
        prefix=f".{target_path.stem}_",
        dir=target_path.parent,
    )
    temp_path = Path(temp_path)

    try:
        os.close(fd)

        if "b" in mode:
            handle = open(temp_path, mode)
        else:
            handle = open(temp_path, mode, encoding="utf-8", newline="")
        with handle as f:
            yield f

        temp_path.replace(target_path)

    except Exception:
        if temp_path.exists():
            temp_path.unlink()
        raise


def atomic_write_bytes(
    data: bytes,
    target_path: Union[str, Path],
) -> None:
    """
    Atomically write a byte blob (raw downloads, rendered images).

    Args:
        data: Bytes to write
        target_path: Destination path
    """
    with atomic_write(target_path, mode="wb") as f:
        f.write(data)


def atomic_write_group(blobs: Dict[Union[str, Path], bytes]) -> None:
    """
    Write several files so that either all of them are replaced or none are.

    Every blob is first written to a temp file beside its target. Targets are
    only replaced once all temp files exist; if staging fails, the temp files
    are removed and every target keeps its previous content.

    Args:
        blobs: Mapping of destination path -> bytes
    """
    staged = []

    try:
        for target_path, data in blobs.items():
            target_path = Path(target_path)
            target_path.parent.mkdir(parents=True, exist_ok=True)

            fd, temp_path = tempfile.mkstemp(
                suffix=target_path.suffix or ".tmp",
                prefix=f".{target_path.stem}_",
                dir=target_path.parent,
            )
            staged.append((Path(temp_path), target_path))
            with os.fdopen(fd, "wb") as f:
                f.write(data)

    except Exception:
        for temp_path, _ in staged:
            if temp_path.exists():
                temp_path.unlink()
        raise

    for temp_path, target_path in staged:
        temp_path.replace(target_path)


def atomic_write_json(
    data: Any,
    target_path: Union[str, Path],
    **kwargs,
) -> None:
    """
    Atomically write JSON data.

    Args:
        data: JSON-serializable data
        target_path: Destination path
        **kwargs: Additional arguments passed to json.dump
    """
    kwargs.setdefault("indent", 2)
    kwargs.setdefault("default", str)

    with atomic_write(target_path, mode="w", suffix=".json") as f:
        json.dump(data, f, **kwargs)


# =============================================================================
# Read Utilities
# =============================================================================

def read_yaml(path: Union[str, Path]) -> dict:
    """Read a YAML file."""
    with open(path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f)


def read_json(path: Union[str, Path]) -> Any:
    """Read a JSON file."""
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


# =============================================================================
# Cleanup Utilities
# =============================================================================

def cleanup_temp_files(directory: Union[str, Path], pattern: str = ".*") -> int:
    """
    Clean up orphaned temp files (from interrupted atomic writes).

    Args:
        directory: Directory to clean
        pattern: Glob pattern for temp files (default: hidden files starting with .)

    Returns:
        Number of files removed
    """
    directory = Path(directory)
    count = 0

    for f in directory.glob(pattern):
        if f.is_file() and f.name.startswith("."):
            f.unlink()
            count += 1

    return count
