"""
Leaderboard configuration.

Settings live in `configs/params.yml` and are loaded into a frozen
`LeaderboardConfig`. Validation happens at load time so a bad `top_n` or an
empty column mapping aborts the run before anything is fetched or written.
"""

from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union

from vax_leaderboard.io_utils import read_yaml
from vax_leaderboard.paths import PARAMS_FILE

DEFAULT_TOP_N = 10
DEFAULT_DECIMAL_PRECISION = 4

# Texas DSHS "By County" sheet: statewide total, unassigned bucket and the
# federal program rollups that are not counties.
DEFAULT_EXCLUSION_SET = (
    "Texas",
    "Other",
    "Federal Long-Term Care Vaccination Program",
    "Federal Pharmacy Retail Vaccination Program",
)


class ConfigError(ValueError):
    """Raised when configuration values are invalid."""
    pass


def _check_int(name: str, value: Any, minimum: int) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigError(f"{name} must be an integer, got {value!r}")
    if value < minimum:
        raise ConfigError(f"{name} must be >= {minimum}, got {value}")


def _check_number(name: str, value: Any, minimum: float, inclusive: bool = True) -> None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigError(f"{name} must be a number, got {value!r}")
    if value < minimum or (value == minimum and not inclusive):
        bound = ">=" if inclusive else ">"
        raise ConfigError(f"{name} must be {bound} {minimum}, got {value}")


def _check_text(name: str, value: Any) -> None:
    if not isinstance(value, str) or not value.strip():
        raise ConfigError(f"{name} must be a non-empty string, got {value!r}")


@dataclass(frozen=True)
class SourceConfig:
    """Where the spreadsheet comes from and how to read it."""
    url: str = (
        "https://www.dshs.texas.gov/sites/default/files/LIDS-Immunize-COVID19/"
        "COVID%20Dashboard/County%20Dashboard/COVID-19%20Vaccine%20Data%20by%20County.xlsx"
    )
    sheet_name: str = "By County"
    header_row: int = 0
    timeout: float = 60.0
    max_retries: int = 3
    retry_delay: float = 5.0

    def __post_init__(self):
        _check_text("source.url", self.url)
        _check_text("source.sheet_name", self.sheet_name)
        _check_int("source.header_row", self.header_row, 0)
        _check_number("source.timeout", self.timeout, 0, inclusive=False)
        _check_int("source.max_retries", self.max_retries, 0)
        _check_number("source.retry_delay", self.retry_delay, 0)


@dataclass(frozen=True)
class ColumnMapping:
    """Source column names (after snake_case cleaning) for the three consumed fields."""
    entity_name: str = "county_name"
    vaccinated_count: str = "people_vaccinated_with_at_least_one_dose"
    eligible_population: str = "population_12"

    def as_rename_map(self) -> Dict[str, str]:
        """Map source column -> canonical field name."""
        return {
            self.entity_name: "entity_name",
            self.vaccinated_count: "vaccinated_count",
            self.eligible_population: "eligible_population",
        }


@dataclass(frozen=True)
class OutputConfig:
    """Output naming and chart appearance."""
    stem: str = "leaderboard"
    chart_title: str = "Top Texas counties by share of eligible residents vaccinated"
    metric_label: str = "Eligible population with at least one dose"
    dpi: int = 150

    def __post_init__(self):
        _check_text("outputs.stem", self.stem)
        _check_int("outputs.dpi", self.dpi, 1)


@dataclass(frozen=True)
class LeaderboardConfig:
    """Complete, validated configuration for one leaderboard run."""
    top_n: int = DEFAULT_TOP_N
    decimal_precision: int = DEFAULT_DECIMAL_PRECISION
    exclusion_set: Tuple[str, ...] = DEFAULT_EXCLUSION_SET
    columns: ColumnMapping = field(default_factory=ColumnMapping)
    source: SourceConfig = field(default_factory=SourceConfig)
    outputs: OutputConfig = field(default_factory=OutputConfig)

    def __post_init__(self):
        validate_top_n(self.top_n)

        if isinstance(self.decimal_precision, bool) or not isinstance(self.decimal_precision, int):
            raise ConfigError(
                f"decimal_precision must be an integer, got {self.decimal_precision!r}"
            )
        if self.decimal_precision < 0:
            raise ConfigError(f"decimal_precision must be >= 0, got {self.decimal_precision}")

        if isinstance(self.exclusion_set, str):
            raise ConfigError("exclusion_set must be a list of names, not a single string")
        for name in self.exclusion_set:
            if not isinstance(name, str):
                raise ConfigError(f"exclusion_set entries must be strings, got {name!r}")

        mapped = [self.columns.entity_name, self.columns.vaccinated_count,
                  self.columns.eligible_population]
        if any(not isinstance(c, str) or not c for c in mapped):
            raise ConfigError(f"Column mapping entries must be non-empty strings: {mapped}")
        if len(set(mapped)) != len(mapped):
            raise ConfigError(f"Column mapping entries must be distinct: {mapped}")

    def to_dict(self) -> Dict[str, Any]:
        """Plain-dict form for logging and config digests."""
        data = asdict(self)
        data["exclusion_set"] = list(self.exclusion_set)
        return data


def validate_top_n(top_n: Any) -> int:
    """
    Check that `top_n` is an integer >= 1.

    Raises:
        ConfigError: If the value is not a positive integer
    """
    if isinstance(top_n, bool) or not isinstance(top_n, int):
        raise ConfigError(f"top_n must be an integer, got {top_n!r}")
    if top_n < 1:
        raise ConfigError(f"top_n must be >= 1, got {top_n}")
    return top_n


def _section(params: Dict[str, Any], key: str) -> Dict[str, Any]:
    value = params.get(key) or {}
    if not isinstance(value, dict):
        raise ConfigError(f"Config section '{key}' must be a mapping, got {type(value).__name__}")
    return value


def config_from_dict(params: Optional[Dict[str, Any]]) -> LeaderboardConfig:
    """
    Build a LeaderboardConfig from the parsed params.yml structure.

    Missing sections and keys fall back to the defaults above.
    """
    params = params or {}
    if not isinstance(params, dict):
        raise ConfigError(f"Config root must be a mapping, got {type(params).__name__}")

    leaderboard = _section(params, "leaderboard")
    kwargs: Dict[str, Any] = {}
    for key in ("top_n", "decimal_precision"):
        if key in leaderboard:
            kwargs[key] = leaderboard[key]
    if "exclusion_set" in leaderboard:
        exclusions = leaderboard["exclusion_set"]
        if exclusions is None:
            exclusions = []
        if isinstance(exclusions, str) or not isinstance(exclusions, (list, tuple)):
            raise ConfigError("leaderboard.exclusion_set must be a list of names")
        kwargs["exclusion_set"] = tuple(exclusions)

    try:
        kwargs["columns"] = ColumnMapping(**_section(params, "columns"))
        kwargs["source"] = SourceConfig(**_section(params, "source"))
        kwargs["outputs"] = OutputConfig(**_section(params, "outputs"))
    except TypeError as e:
        raise ConfigError(f"Unknown configuration key: {e}") from e

    return LeaderboardConfig(**kwargs)


def load_config(path: Optional[Union[str, Path]] = None) -> LeaderboardConfig:
    """
    Load and validate the leaderboard configuration.

    Args:
        path: YAML file to read. Defaults to configs/params.yml.

    Returns:
        Validated LeaderboardConfig
    """
    path = Path(path) if path is not None else PARAMS_FILE
    if not path.exists():
        raise ConfigError(f"Config file not found: {path}")
    return config_from_dict(read_yaml(path))
