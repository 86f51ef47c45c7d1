"""
Per-indicator trend enrichment.

Records sharing an indicator key form a series sorted by date; each record
gets an `analysis` block computed over its whole series.
"""

import logging
from collections import defaultdict
from typing import Any, Dict, List, Optional, Sequence

import numpy as np

from .temporal import parse_date

logger = logging.getLogger(__name__)

# |slope| at or below this is "stable"
TREND_STABLE_BAND = 0.01


def _percent_change(new: float, old: float) -> float:
    if old == 0:
        return 0.0
    return (new - old) / old * 100


def calculate_linear_slope(values: Sequence[float]) -> float:
    """OLS slope over index positions 0..n-1."""
    n = len(values)
    if n < 2:
        return 0.0
    x = np.arange(n, dtype=float)
    y = np.asarray(values, dtype=float)
    x_dev = x - x.mean()
    return float(np.sum(x_dev * (y - y.mean())) / np.sum(x_dev ** 2))


def trend_direction(slope: float) -> str:
    if slope > TREND_STABLE_BAND:
        return "increasing"
    if slope < -TREND_STABLE_BAND:
        return "decreasing"
    return "stable"


def calculate_average_growth(values: Sequence[float]) -> float:
    """Mean of step-wise percent changes, skipping steps from a zero value."""
    changes = [
        (values[i] - values[i - 1]) / values[i - 1] * 100
        for i in range(1, len(values))
        if values[i - 1] != 0
    ]
    if not changes:
        return 0.0
    return float(np.mean(changes))


def calculate_volatility(values: Sequence[float]) -> float:
    """Population standard deviation."""
    if not values:
        return 0.0
    return float(np.std(np.asarray(values, dtype=float)))


def _sort_series(series: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    # Stable sort; records without a parseable date are excluded
    dated = [r for r in series if parse_date(r.get("date")) is not None and _numeric(r.get("value")) is not None]
    return sorted(dated, key=lambda r: parse_date(r.get("date")))


def _numeric(value: Any) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if value != value:
        return None
    return float(value)


def analyze_indicator_series(
    series: List[Dict[str, Any]],
    record: Dict[str, Any],
    baseline_date: str,
) -> Optional[Dict[str, Any]]:
    """
    Compute the analysis block for one record within its indicator series.

    Args:
        series: All records of the same indicator (any order)
        record: The record being analysed (must be one of series)
        baseline_date: ISO date used for the baseline comparison

    Returns:
        {trend, growth_rate, volatility, recent_change, baseline_comparison},
        or None when the series has fewer than 2 usable points
    """
    ordered = _sort_series(series)
    if len(ordered) < 2:
        return None

    values = [_numeric(r.get("value")) for r in ordered]
    slope = calculate_linear_slope(values)

    record_value = _numeric(record.get("value"))
    position = next((i for i, r in enumerate(ordered) if r is record), None)

    recent_change = 0.0
    if position is not None and position > 0 and record_value is not None:
        recent_change = _percent_change(record_value, values[position - 1])

    baseline = parse_date(baseline_date)
    baseline_value = None
    if baseline is not None:
        for r, v in zip(ordered, values):
            if parse_date(r.get("date")) <= baseline:
                baseline_value = v
            else:
                break

    baseline_comparison = 0.0
    if baseline_value is not None and record_value is not None:
        baseline_comparison = _percent_change(record_value, baseline_value)

    return {
        "trend": {
            "slope": slope,
            "direction": trend_direction(slope),
        },
        "growth_rate": calculate_average_growth(values),
        "volatility": calculate_volatility(values),
        "recent_change": recent_change,
        "baseline_comparison": baseline_comparison,
    }


def enrich_with_trends(
    records: List[Dict[str, Any]],
    baseline_date: str,
    key: str = "indicator_code",
) -> List[Dict[str, Any]]:
    """
    Attach an `analysis` block to every record, grouped by `key`.

    Returns new dicts; records whose series is too short get `analysis: None`.
    """
    groups: Dict[Any, List[Dict[str, Any]]] = defaultdict(list)
    for record in records:
        groups[record.get(key)].append(record)

    logger.debug(f"Trend analysis over {len(groups)} series ({len(records)} records)")

    enriched = []
    for record in records:
        analysis = analyze_indicator_series(groups[record.get(key)], record, baseline_date)
        enriched.append({**record, "analysis": analysis})
    return enriched
