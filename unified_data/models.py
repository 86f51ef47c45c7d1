"""
Canonical record vocabulary shared by every pipeline stage.

Records themselves travel as plain JSON-ready dicts (they are written to
disk as-is); this module owns the closed enumerations that tag them and
the exception hierarchy.
"""

from enum import Enum
from typing import Any, Dict


class Category(str, Enum):
    CONFLICT = "conflict"
    ECONOMIC = "economic"
    INFRASTRUCTURE = "infrastructure"
    HUMANITARIAN = "humanitarian"
    HEALTH = "health"
    EDUCATION = "education"
    WATER = "water"
    REFUGEES = "refugees"
    POPULATION = "population"
    OTHER = "other"


class Region(str, Enum):
    GAZA = "gaza"
    WEST_BANK = "west_bank"
    EAST_JERUSALEM = "east_jerusalem"
    UNKNOWN = "unknown"


class RegionType(str, Enum):
    URBAN = "urban"
    RURAL = "rural"
    CAMP = "camp"


class PeriodType(str, Enum):
    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    QUARTER = "quarter"
    YEAR = "year"


# Categories whose records are indicator time series (trend-analysed)
INDICATOR_CATEGORIES = (
    Category.ECONOMIC,
    Category.HEALTH,
    Category.EDUCATION,
    Category.WATER,
    Category.POPULATION,
    Category.REFUGEES,
    Category.HUMANITARIAN,
    Category.INFRASTRUCTURE,
    Category.OTHER,
)

DEFAULT_BASELINE_DATE = "2023-10-07"
DEFAULT_ACTIVE_PHASE_END = "2024-01-01"


class UnifiedDataError(Exception):
    """Base class for errors raised by the unified data pipeline."""
    pass


class ConfigError(UnifiedDataError):
    """Raised when pipeline configuration is invalid."""
    pass


class TransformError(UnifiedDataError):
    """Raised when a transformer cannot be built or applied."""
    pass


class PartitionError(UnifiedDataError):
    """Raised when partition files cannot be written."""
    pass


class PartitionLoadError(UnifiedDataError):
    """Raised when partition files cannot be read back."""
    pass


class PipelineError(UnifiedDataError):
    """Raised by a pipeline stage that cannot proceed."""
    pass


def parse_category(value: Any) -> Category:
    """
    Resolve a category string (or Category) to the enum.

    Raises:
        TransformError: If the value is not a known category
    """
    if isinstance(value, Category):
        return value
    try:
        return Category(str(value).strip().lower())
    except ValueError:
        raise TransformError(f"Unknown category: {value!r}")


def record_category(record: Dict[str, Any]) -> str:
    """Return the category tag of a record, preferring `category` over `type`."""
    return record.get("category") or record.get("type") or ""


def is_conflict(record: Dict[str, Any]) -> bool:
    return record.get("type") == Category.CONFLICT.value or record.get("category") == Category.CONFLICT.value
