"""
Time-series continuity and plausibility checks.

Works on canonical records (top-level `date` and `value`). Findings are
collected as messages and folded into a 0-100 score.
"""

from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional

import numpy as np

from ..enrichment.temporal import parse_date

ERROR_PENALTY = 20
WARNING_PENALTY = 5

# Expected spacing in days for each inferred frequency
EXPECTED_GAP_DAYS = {
    "daily": 1,
    "weekly": 7,
    "monthly": 30,
    "quarterly": 90,
    "yearly": 365,
    "unknown": 30,
}

WEAK_TREND_R2 = 0.1


def _numeric(value: Any) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value != value:
        return None
    return float(value)


def determine_frequency(dates: List[date]) -> str:
    if len(dates) < 3:
        return "unknown"
    intervals = [(b - a).days for a, b in zip(dates, dates[1:])]
    avg_days = sum(intervals) / len(intervals)
    if avg_days <= 2:
        return "daily"
    if avg_days <= 10:
        return "weekly"
    if avg_days <= 40:
        return "monthly"
    if avg_days <= 100:
        return "quarterly"
    return "yearly"


def calculate_validation_score(errors: List[str], warnings: List[str]) -> int:
    score = 100 - len(errors) * ERROR_PENALTY - len(warnings) * WARNING_PENALTY
    return max(0, min(100, score))


def _check_continuity(dates: List[date], frequency: str, max_gap_days: int):
    errors, warnings, gaps = [], [], []
    expected = EXPECTED_GAP_DAYS[frequency]
    for prev, curr in zip(dates, dates[1:]):
        gap_days = (curr - prev).days
        if gap_days <= expected * 2:
            continue
        gaps.append({
            "start_date": prev.isoformat(),
            "end_date": curr.isoformat(),
            "gap_days": gap_days,
            "expected_gap": expected,
        })
        if gap_days > max_gap_days:
            errors.append(f"Large gap detected: {gap_days} days between {prev} and {curr}")
        else:
            warnings.append(f"Gap detected: {gap_days} days between records")
    return errors, warnings, gaps


def _detect_outliers(points, min_data_points: int, threshold: float):
    warnings, outliers = [], []
    values = np.array([v for _, v in points], dtype=float)
    if len(values) < min_data_points:
        warnings.append("Insufficient numeric values for outlier detection")
        return warnings, outliers

    std = values.std()
    if std == 0:
        return warnings, outliers
    mean = values.mean()
    for index, (d, v) in enumerate(points):
        z = abs((v - mean) / std)
        if z > threshold:
            outliers.append({"index": index, "value": v, "z_score": float(z), "date": d.isoformat()})
            warnings.append(f"Potential outlier detected at {d}: value {v} (z-score: {z:.2f})")
    return warnings, outliers


def _validate_trend(points, min_data_points: int):
    warnings = []
    trend: Dict[str, Any] = {"direction": "unknown", "strength": 0.0}
    if len(points) < min_data_points:
        warnings.append("Insufficient numeric data for trend analysis")
        return warnings, trend

    y = np.array([v for _, v in points], dtype=float)
    x = np.arange(len(y), dtype=float)
    slope, intercept = np.polyfit(x, y, 1)
    ss_tot = float(np.sum((y - y.mean()) ** 2))
    ss_res = float(np.sum((y - (slope * x + intercept)) ** 2))
    r_squared = 1 - ss_res / ss_tot if ss_tot else 1.0

    trend = {
        "slope": float(slope),
        "strength": r_squared,
        "direction": "increasing" if slope > 0.01 else "decreasing" if slope < -0.01 else "stable",
    }
    if r_squared < WEAK_TREND_R2:
        warnings.append(f"Weak trend detected (R² = {r_squared:.3f})")
    return warnings, trend


def validate_time_series(
    records: Any,
    max_gap_days: int = 30,
    min_data_points: int = 3,
    outlier_threshold: float = 3,
    today: Optional[date] = None,
) -> Dict[str, Any]:
    """
    Check a series for missing dates, gaps, outliers and trend strength.

    Args:
        records: Canonical records (any order)
        max_gap_days: Gaps longer than this are errors, shorter ones warnings
        min_data_points: Minimum numeric points for outlier/trend checks
        outlier_threshold: z-score above which a value is flagged
        today: Reference date for the future-date check (UTC today when None)

    Returns:
        {is_valid, errors, warnings, score, metadata}
    """
    if not isinstance(records, list) or not records:
        return {"is_valid": False, "errors": ["No records found in dataset"], "warnings": [], "score": 0,
                "metadata": {"total_records": 0}}

    today = today or datetime.now(timezone.utc).date()
    errors: List[str] = []
    warnings: List[str] = []

    dated = []
    for index, record in enumerate(records):
        raw_date = record.get("date") if isinstance(record, dict) else None
        if not raw_date:
            errors.append(f"Record {index}: Missing date field")
            continue
        d = parse_date(raw_date)
        if d is None:
            errors.append(f"Record {index}: Invalid date format: {raw_date}")
            continue
        if d > today:
            warnings.append(f"Record {index}: Date is in the future: {d}")
        dated.append((d, record))

    dated.sort(key=lambda pair: pair[0])
    dates = [d for d, _ in dated]
    frequency = determine_frequency(dates)

    gap_errors, gap_warnings, gaps = _check_continuity(dates, frequency, max_gap_days)
    errors.extend(gap_errors)
    warnings.extend(gap_warnings)

    points = [(d, _numeric(r.get("value"))) for d, r in dated]
    points = [(d, v) for d, v in points if v is not None]

    outlier_warnings, outliers = _detect_outliers(points, min_data_points, outlier_threshold)
    warnings.extend(outlier_warnings)

    trend_warnings, trend = _validate_trend(points, min_data_points)
    warnings.extend(trend_warnings)

    return {
        "is_valid": not errors,
        "errors": errors,
        "warnings": warnings,
        "score": calculate_validation_score(errors, warnings),
        "metadata": {
            "total_records": len(records),
            "date_range": {
                "start": dates[0].isoformat(),
                "end": dates[-1].isoformat(),
                "span_days": (dates[-1] - dates[0]).days,
            } if dates else None,
            "frequency": frequency,
            "gaps": gaps,
            "outliers": outliers,
            "trend": trend,
        },
    }


def interpolate_missing_values(records: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """
    Fill null `value`s with the midpoint of the nearest known neighbours.

    Records are returned as new dicts in the given order; filled ones are
    tagged `interpolated: True`. Leading/trailing gaps stay null.
    """
    values = [_numeric(r.get("value")) for r in records]
    filled = []
    for i, record in enumerate(records):
        if values[i] is not None or record.get("value") is not None:
            filled.append(dict(record))
            continue
        before = next((values[j] for j in range(i - 1, -1, -1) if values[j] is not None), None)
        after = next((values[j] for j in range(i + 1, len(values)) if values[j] is not None), None)
        if before is None or after is None:
            filled.append(dict(record))
            continue
        filled.append({**record, "value": (before + after) / 2, "interpolated": True})
    return filled
