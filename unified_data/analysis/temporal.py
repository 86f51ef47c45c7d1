"""
Temporal aggregation: period buckets, period-over-period deltas, rolling
windows and baseline splits.
"""

from datetime import timedelta
from typing import Any, Dict, List, Sequence

from ..enrichment.temporal import parse_date, period_key
from ..models import DEFAULT_BASELINE_DATE, is_conflict
from .spatial import numeric_field

COMPARISON_METRICS = ("incidents", "casualties", "fatalities", "injuries", "affected_locations")


def calculate_period_stats(records: Sequence[Dict[str, Any]]) -> Dict[str, Any]:
    fatalities = sum(numeric_field(r, "fatalities") for r in records)
    injuries = sum(numeric_field(r, "injuries") for r in records)
    locations = set()
    event_types = set()
    incidents = 0
    for record in records:
        if is_conflict(record):
            incidents += 1
            if record.get("event_type"):
                event_types.add(record["event_type"])
        location = record.get("location")
        if isinstance(location, dict) and location.get("name"):
            locations.add(location["name"])

    return {
        "total_records": len(records),
        "incidents": incidents,
        "casualties": fatalities + injuries,
        "fatalities": fatalities,
        "injuries": injuries,
        "affected_locations": len(locations),
        "unique_event_types": len(event_types),
    }


def percentage_change(old: float, new: float) -> float:
    """Percent change; from 0 any increase counts as +100."""
    if old == 0:
        return 100.0 if new > 0 else 0.0
    return (new - old) / old * 100


def aggregate_by_period(records: Sequence[Dict[str, Any]], period_type: str = "day") -> Dict[str, Dict[str, Any]]:
    """
    Bucket records by period key; date-less records are skipped.

    Returns:
        {key: {period, period_type, data, stats}} ordered by key

    Raises:
        ValueError: If period_type is unknown
    """
    buckets: Dict[str, List[Dict[str, Any]]] = {}
    for record in records:
        key = period_key(record.get("date"), period_type)
        if key is None:
            continue
        buckets.setdefault(key, []).append(record)

    return {
        key: {
            "period": key,
            "period_type": period_type,
            "data": buckets[key],
            "stats": calculate_period_stats(buckets[key]),
        }
        for key in sorted(buckets)
    }


def _changes(previous: Dict[str, Any], current: Dict[str, Any], metrics: Sequence[str]) -> Dict[str, Any]:
    return {
        m: {
            "absolute": current.get(m, 0) - previous.get(m, 0),
            "percentage": percentage_change(previous.get(m, 0), current.get(m, 0)),
        }
        for m in metrics
    }


def calculate_period_comparison(aggregated: Dict[str, Dict[str, Any]]) -> Dict[str, Dict[str, Any]]:
    """Deltas between each period and the one before it (by sorted key)."""
    keys = sorted(aggregated)
    comparisons = {}
    for previous_key, current_key in zip(keys, keys[1:]):
        previous = aggregated[previous_key]["stats"]
        current = aggregated[current_key]["stats"]
        comparisons[current_key] = {
            "period": current_key,
            "previous_period": previous_key,
            "changes": _changes(previous, current, COMPARISON_METRICS),
            "current_stats": current,
            "previous_stats": previous,
        }
    return comparisons


def get_rolling_aggregation(
    records: Sequence[Dict[str, Any]],
    window_days: int = 7,
    metric: str = "incidents",
) -> List[Dict[str, Any]]:
    """
    Trailing-window stats for every dated record.

    The window for a record dated D covers D-(window_days-1) through D.
    Quadratic in the number of records.
    """
    dated = sorted(
        ((parse_date(r.get("date")), r) for r in records if parse_date(r.get("date")) is not None),
        key=lambda pair: pair[0],
    )
    rolling = []
    for current, record in dated:
        start = current - timedelta(days=window_days - 1)
        window = [r for d, r in dated if start <= d <= current]
        stats = calculate_period_stats(window)
        rolling.append({
            "date": current.isoformat(),
            "window_days": window_days,
            "value": stats.get(metric, 0),
            "window_stats": stats,
        })
    return rolling


def aggregate_by_baseline(records: Sequence[Dict[str, Any]], baseline_date: str = DEFAULT_BASELINE_DATE) -> Dict[str, Any]:
    """Split at the baseline (the baseline day counts as after) and compare."""
    baseline = parse_date(baseline_date)
    if baseline is None:
        raise ValueError(f"Invalid baseline date: {baseline_date!r}")

    before, after = [], []
    for record in records:
        d = parse_date(record.get("date"))
        if d is None:
            continue
        (before if d < baseline else after).append(record)

    before_stats = calculate_period_stats(before)
    after_stats = calculate_period_stats(after)
    return {
        "before_baseline": {"data": before, "stats": before_stats},
        "after_baseline": {"data": after, "stats": after_stats},
        "comparison": {
            "baseline_date": baseline_date,
            "changes": _changes(before_stats, after_stats, ("incidents", "casualties", "fatalities", "injuries")),
        },
    }


def get_cumulative_time_series(records: Sequence[Dict[str, Any]], metric: str = "casualties") -> List[Dict[str, Any]]:
    cumulative = 0
    series = []
    for day, bucket in aggregate_by_period(records, "day").items():
        value = bucket["stats"].get(metric, 0)
        cumulative += value
        series.append({"date": day, "daily_value": value, "cumulative_value": cumulative})
    return series


def aggregate_by_multiple_periods(
    records: Sequence[Dict[str, Any]],
    period_types: Sequence[str] = ("day", "week", "month"),
) -> Dict[str, Dict[str, Dict[str, Any]]]:
    return {p: aggregate_by_period(records, p) for p in period_types}
