"""
Temporal enrichment and calendar period keys.

Dates are compared as calendar dates (no time-of-day, no timezone), so a
record's classification depends only on its YYYY-MM-DD value.
"""

from datetime import date, datetime
from typing import Any, Dict, Optional

from ..models import DEFAULT_ACTIVE_PHASE_END, DEFAULT_BASELINE_DATE, PeriodType

# Month (1-12) -> season, Northern hemisphere
SEASONS = {
    3: "spring", 4: "spring", 5: "spring",
    6: "summer", 7: "summer", 8: "summer",
    9: "autumn", 10: "autumn", 11: "autumn",
    12: "winter", 1: "winter", 2: "winter",
}


def parse_date(value: Any) -> Optional[date]:
    """
    Parse a record date into a calendar date.

    Accepts date/datetime objects, 'YYYY-MM-DD' strings, ISO timestamps
    (including a trailing 'Z') and bare years.

    Returns:
        date or None if the value is empty or unparseable
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, int):
        return date(value, 1, 1) if 1 <= value <= 9999 else None

    text = str(value).strip()
    if not text:
        return None
    if text.isdigit() and len(text) == 4:
        return date(int(text), 1, 1)
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        return None


def day_key(value: Any) -> Optional[str]:
    d = parse_date(value)
    return d.isoformat() if d else None


def week_key(value: Any) -> Optional[str]:
    """ISO week key, e.g. '2024-W11'. Uses the ISO week-numbering year."""
    d = parse_date(value)
    if d is None:
        return None
    iso_year, iso_week, _ = d.isocalendar()
    return f"{iso_year}-W{iso_week:02d}"


def month_key(value: Any) -> Optional[str]:
    d = parse_date(value)
    return f"{d.year}-{d.month:02d}" if d else None


def quarter_key(value: Any) -> Optional[str]:
    d = parse_date(value)
    if d is None:
        return None
    return f"{d.year}-Q{(d.month - 1) // 3 + 1}"


def year_key(value: Any) -> Optional[str]:
    d = parse_date(value)
    return str(d.year) if d else None


PERIOD_KEY_FUNCTIONS = {
    PeriodType.DAY: day_key,
    PeriodType.WEEK: week_key,
    PeriodType.MONTH: month_key,
    PeriodType.QUARTER: quarter_key,
    PeriodType.YEAR: year_key,
}


def period_key(value: Any, period_type: str = "day") -> Optional[str]:
    """
    Derive the period bucket key for a date.

    Raises:
        ValueError: If period_type is not one of day/week/month/quarter/year
    """
    return PERIOD_KEY_FUNCTIONS[PeriodType(period_type)](value)


def calculate_period(value: Any) -> Dict[str, str]:
    """Return every period key for a date (empty dict if unparseable)."""
    d = parse_date(value)
    if d is None:
        return {}
    return {p.value: fn(d) for p, fn in PERIOD_KEY_FUNCTIONS.items()}


def days_since(value: Any, reference: Any) -> Optional[int]:
    d = parse_date(value)
    ref = parse_date(reference)
    if d is None or ref is None:
        return None
    return (d - ref).days


def classify_period(value: Any, baseline: Any) -> Optional[str]:
    d = parse_date(value)
    ref = parse_date(baseline)
    if d is None or ref is None:
        return None
    if d < ref:
        return "before_baseline"
    if d == ref:
        return "baseline"
    return "after_baseline"


def get_season(value: Any) -> Optional[str]:
    d = parse_date(value)
    return SEASONS[d.month] if d else None


class TemporalEnricher:
    """Adds baseline-relative temporal context to records."""

    def __init__(
        self,
        baseline_date: str = DEFAULT_BASELINE_DATE,
        active_phase_end: str = DEFAULT_ACTIVE_PHASE_END,
    ):
        self.baseline_date = baseline_date
        self.active_phase_end = active_phase_end
        self._baseline = parse_date(baseline_date)
        self._active_end = parse_date(active_phase_end)
        if self._baseline is None or self._active_end is None:
            raise ValueError(f"Invalid baseline/phase dates: {baseline_date!r}, {active_phase_end!r}")

    def enrich_temporal(self, record: Dict[str, Any]) -> Dict[str, Any]:
        """
        Compute temporal context for a record.

        Returns:
            {"temporal_context": {...}} or {} when the record has no usable date
        """
        d = parse_date(record.get("date"))
        if d is None:
            return {}

        return {
            "temporal_context": {
                "days_since_baseline": (d - self._baseline).days,
                "baseline_period": "before_baseline" if d < self._baseline else "after_baseline",
                "conflict_phase": self.determine_conflict_phase(d),
                "season": SEASONS[d.month],
            }
        }

    def determine_conflict_phase(self, value: Any) -> Optional[str]:
        d = parse_date(value)
        if d is None:
            return None
        if d < self._baseline:
            return "pre-escalation"
        if d < self._active_end:
            return "active-conflict"
        return "ongoing-conflict"
