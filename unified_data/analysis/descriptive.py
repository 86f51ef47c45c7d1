"""
Descriptive statistics over flat numeric series.

Non-numeric, boolean and NaN entries are dropped before any computation.
Spread measures are population (not sample) statistics; quartiles and
percentiles interpolate linearly between closest ranks.
"""

from typing import Any, Dict, Iterable, List, Optional, Sequence

import numpy as np

PERCENTILES = (10, 25, 50, 75, 90, 95, 99)
DEFAULT_IQR_MULTIPLIER = 1.5


def clean_values(values: Optional[Iterable[Any]]) -> List[float]:
    if values is None:
        return []
    cleaned = []
    for v in values:
        if isinstance(v, bool) or not isinstance(v, (int, float, np.integer, np.floating)):
            continue
        if v != v:
            continue
        cleaned.append(float(v))
    return cleaned


def calculate_mean(values) -> float:
    vals = clean_values(values)
    return float(np.mean(vals)) if vals else 0.0


def calculate_median(values) -> float:
    vals = clean_values(values)
    return float(np.median(vals)) if vals else 0.0


def calculate_mode(values) -> Optional[float]:
    """Most frequent value; ties go to the value seen first."""
    vals = clean_values(values)
    counts: Dict[float, int] = {}
    mode = None
    best = 0
    for v in vals:
        counts[v] = counts.get(v, 0) + 1
        if counts[v] > best:
            best = counts[v]
            mode = v
    return mode


def calculate_variance(values) -> float:
    vals = clean_values(values)
    return float(np.var(vals)) if vals else 0.0


def calculate_std_dev(values) -> float:
    vals = clean_values(values)
    return float(np.std(vals)) if vals else 0.0


def calculate_percentile(values, percentile: float) -> float:
    """
    Linear-interpolated percentile.

    Raises:
        ValueError: If percentile is outside [0, 100]
    """
    if not 0 <= percentile <= 100:
        raise ValueError("Percentile must be between 0 and 100")
    vals = clean_values(values)
    if not vals:
        return 0.0
    return float(np.percentile(vals, percentile))


def calculate_quartiles(values) -> Dict[str, float]:
    vals = clean_values(values)
    if not vals:
        return {"q1": 0.0, "q2": 0.0, "q3": 0.0}
    q1, q2, q3 = np.percentile(vals, [25, 50, 75])
    return {"q1": float(q1), "q2": float(q2), "q3": float(q3)}


def calculate_iqr(values) -> float:
    q = calculate_quartiles(values)
    return q["q3"] - q["q1"]


def calculate_min_max(values) -> Dict[str, Optional[float]]:
    vals = clean_values(values)
    if not vals:
        return {"min": None, "max": None}
    return {"min": min(vals), "max": max(vals)}


def calculate_range(values) -> float:
    mm = calculate_min_max(values)
    if mm["min"] is None:
        return 0.0
    return mm["max"] - mm["min"]


def detect_outliers(values, multiplier: float = DEFAULT_IQR_MULTIPLIER) -> Dict[str, Any]:
    """
    IQR fence outliers.

    Returns:
        {outliers, indices, bounds{lower, upper}, iqr, quartiles};
        indices refer to positions in the cleaned series
    """
    vals = clean_values(values)
    if not vals:
        return {"outliers": [], "indices": [], "bounds": {"lower": 0.0, "upper": 0.0},
                "iqr": 0.0, "quartiles": calculate_quartiles(vals)}

    quartiles = calculate_quartiles(vals)
    iqr = quartiles["q3"] - quartiles["q1"]
    lower = quartiles["q1"] - multiplier * iqr
    upper = quartiles["q3"] + multiplier * iqr

    indices = [i for i, v in enumerate(vals) if v < lower or v > upper]
    return {
        "outliers": [vals[i] for i in indices],
        "indices": indices,
        "bounds": {"lower": lower, "upper": upper},
        "iqr": iqr,
        "quartiles": quartiles,
    }


def detect_outliers_zscore(values, threshold: float = 3) -> Dict[str, Any]:
    vals = clean_values(values)
    empty = {"outliers": [], "indices": [], "z_scores": []}
    if not vals:
        return empty

    arr = np.asarray(vals)
    mean = float(arr.mean())
    std = float(arr.std())
    if std == 0:
        return empty

    z_scores = ((arr - mean) / std).tolist()
    indices = [i for i, z in enumerate(z_scores) if abs(z) > threshold]
    return {
        "outliers": [vals[i] for i in indices],
        "indices": indices,
        "z_scores": z_scores,
        "mean": mean,
        "std_dev": std,
    }


def calculate_comprehensive_stats(values) -> Dict[str, Any]:
    vals = clean_values(values)
    if not vals:
        return {
            "count": 0,
            "mean": 0.0,
            "median": 0.0,
            "mode": None,
            "std_dev": 0.0,
            "variance": 0.0,
            "min": 0.0,
            "max": 0.0,
            "range": 0.0,
            "quartiles": {"q1": 0.0, "q2": 0.0, "q3": 0.0},
            "iqr": 0.0,
            "outliers": {"count": 0, "values": []},
            "percentiles": {f"p{p}": 0.0 for p in PERCENTILES},
        }

    arr = np.asarray(vals)
    quartiles = calculate_quartiles(vals)
    outliers = detect_outliers(vals)
    percentiles = np.percentile(arr, PERCENTILES)

    return {
        "count": len(vals),
        "mean": float(arr.mean()),
        "median": float(np.median(arr)),
        "mode": calculate_mode(vals),
        "std_dev": float(arr.std()),
        "variance": float(arr.var()),
        "min": float(arr.min()),
        "max": float(arr.max()),
        "range": float(arr.max() - arr.min()),
        "quartiles": quartiles,
        "iqr": quartiles["q3"] - quartiles["q1"],
        "outliers": {
            "count": len(outliers["outliers"]),
            "values": outliers["outliers"],
            "bounds": outliers["bounds"],
        },
        "percentiles": {f"p{p}": float(v) for p, v in zip(PERCENTILES, percentiles)},
    }


def calculate_multi_field_stats(records: Sequence[Dict[str, Any]], fields: Sequence[str]) -> Dict[str, Dict[str, Any]]:
    return {
        f: calculate_comprehensive_stats([r.get(f) for r in records if isinstance(r, dict)])
        for f in fields
    }


def calculate_correlation(x_values, y_values) -> float:
    """
    Pearson r over pairs where both sides are numeric.

    0 when lengths differ, no numeric pair remains or a side is constant.
    """
    if x_values is None or y_values is None:
        return 0.0
    if len(x_values) != len(y_values):
        return 0.0
    xs, ys = [], []
    for a, b in zip(x_values, y_values):
        a_clean, b_clean = clean_values([a]), clean_values([b])
        if a_clean and b_clean:
            xs.append(a_clean[0])
            ys.append(b_clean[0])
    if not xs:
        return 0.0
    x = np.asarray(xs, dtype=float)
    y = np.asarray(ys, dtype=float)
    x_dev = x - x.mean()
    y_dev = y - y.mean()
    denominator = np.sqrt(np.sum(x_dev ** 2) * np.sum(y_dev ** 2))
    if denominator == 0:
        return 0.0
    return float(np.sum(x_dev * y_dev) / denominator)
