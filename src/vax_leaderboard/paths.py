"""
Canonical path resolution for the vaccination leaderboard.

This module is the single source of truth for project paths. Scripts import
their directories from here instead of building relative '../' paths.

- Detect root via `.project-root` (primary) and fallback markers
- Expose canonical Paths: CONFIG_DIR, RAW_DIR, TABLES_DIR, FIGURES_DIR, etc.
"""

from pathlib import Path
from typing import Optional

# Markers to detect project root (in priority order)
ROOT_MARKERS = [".project-root", "pyproject.toml", ".git"]


def find_project_root(start_path: Optional[Path] = None) -> Path:
    """
    Find the project root by searching upward for marker files.

    Args:
        start_path: Starting directory for search. Defaults to this file's location.

    Returns:
        Path to project root directory.

    Raises:
        FileNotFoundError: If no root marker is found.
    """
    if start_path is None:
        start_path = Path(__file__).resolve().parent

    current = start_path

    while current != current.parent:
        for marker in ROOT_MARKERS:
            if (current / marker).exists():
                return current
        current = current.parent

    for marker in ROOT_MARKERS:
        if (current / marker).exists():
            return current

    raise FileNotFoundError(
        f"Could not find project root. Searched for markers {ROOT_MARKERS} "
        f"starting from {start_path}"
    )


def _resolve_project_root() -> Path:
    # Installed (non-editable) copies have no marker above them; use the cwd.
    try:
        return find_project_root()
    except FileNotFoundError:
        return Path.cwd().resolve()


# =============================================================================
# Canonical paths (resolved at import time)
# =============================================================================

PROJECT_ROOT = _resolve_project_root()

# Config
CONFIG_DIR = PROJECT_ROOT / "configs"
PARAMS_FILE = CONFIG_DIR / "params.yml"

# Data directories
DATA_DIR = PROJECT_ROOT / "data"
RAW_DIR = DATA_DIR / "raw"
PROCESSED_DIR = DATA_DIR / "processed"
METADATA_DIR = PROCESSED_DIR / "metadata"

# Logs
LOGS_DIR = PROJECT_ROOT / "logs"

# Reports
REPORTS_DIR = PROJECT_ROOT / "reports"
FIGURES_DIR = REPORTS_DIR / "figures"
TABLES_DIR = REPORTS_DIR / "tables"


if __name__ == "__main__":
    print(f"PROJECT_ROOT: {PROJECT_ROOT}")
    print(f"CONFIG_DIR:   {CONFIG_DIR}")
    print(f"RAW_DIR:      {RAW_DIR}")
    print(f"TABLES_DIR:   {TABLES_DIR}")
    print(f"FIGURES_DIR:  {FIGURES_DIR}")
    print(f"LOGS_DIR:     {LOGS_DIR}")
