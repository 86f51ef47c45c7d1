"""
Time-series analysis: trend, seasonality, smoothing, forecasting and
change-point detection.

Series are positional: index i is the i-th observation, so irregular gaps
between dates are not weighted.
"""

from typing import Any, Dict, List, Optional, Sequence

import numpy as np

from ..enrichment.trend import TREND_STABLE_BAND, calculate_linear_slope, trend_direction
from .descriptive import clean_values


DEFAULT_SEASONALITY_THRESHOLD = 0.3
DEFAULT_CHANGE_POINT_WINDOW = 7
DEFAULT_CHANGE_POINT_THRESHOLD = 2.0
MIN_CHANGE_POINT_WINDOW = 3


def series_values(series: Optional[Sequence[Any]]) -> List[float]:
    """
    Flatten a series of numbers or {value|incidents} mappings.

    Mapping items without either numeric field count as 0.
    """
    if not series:
        return []
    values = []
    for item in series:
        if isinstance(item, dict):
            picked = 0.0
            for key in ("value", "incidents"):
                candidate = clean_values([item.get(key)])
                if candidate:
                    picked = candidate[0]
                    break
            values.append(picked)
        else:
            values.extend(clean_values([item]))
    return values


def _strength(r_squared: float) -> str:
    if abs(r_squared) > 0.7:
        return "strong"
    if abs(r_squared) > 0.4:
        return "moderate"
    return "weak"


def calculate_linear_trend(values) -> Dict[str, Any]:
    """
    OLS fit over index positions.

    Returns:
        {slope, intercept, direction, r_squared, strength}
    """
    y = np.asarray(clean_values(values), dtype=float)
    if len(y) < 2:
        return {"slope": 0.0, "intercept": 0.0, "direction": "stable", "r_squared": 0.0, "strength": "weak"}

    x = np.arange(len(y), dtype=float)
    slope = calculate_linear_slope(y)
    intercept = float(y.mean() - slope * x.mean())

    ss_tot = float(np.sum((y - y.mean()) ** 2))
    ss_res = float(np.sum((y - (slope * x + intercept)) ** 2))
    r_squared = 0.0 if ss_tot == 0 else 1 - ss_res / ss_tot

    return {
        "slope": slope,
        "intercept": intercept,
        "direction": trend_direction(slope),
        "r_squared": r_squared,
        "strength": _strength(r_squared),
    }


def calculate_autocorrelation(values, lag: int = 1) -> float:
    vals = np.asarray(clean_values(values), dtype=float)
    n = len(vals)
    if lag < 0 or n < lag + 1:
        return 0.0
    dev = vals - vals.mean()
    denominator = float(np.sum(dev ** 2))
    if denominator == 0:
        return 0.0
    return float(np.sum(dev[: n - lag] * dev[lag:]) / denominator)


def calculate_acf(values, max_lag: int = 10) -> List[Dict[str, float]]:
    return [{"lag": lag, "correlation": calculate_autocorrelation(values, lag)} for lag in range(max_lag + 1)]


def detect_seasonality(series, period: int = 7, threshold: float = DEFAULT_SEASONALITY_THRESHOLD) -> Dict[str, Any]:
    """Seasonal if |autocorrelation at `period`| exceeds threshold; needs 2 full periods."""
    values = series_values(series)
    if len(values) < period * 2:
        return {"has_seasonality": False, "period": None, "strength": 0.0, "autocorrelation": 0.0}

    autocorr = calculate_autocorrelation(values, period)
    has_seasonality = abs(autocorr) > threshold
    return {
        "has_seasonality": has_seasonality,
        "period": period if has_seasonality else None,
        "strength": abs(autocorr),
        "autocorrelation": autocorr,
    }


def calculate_moving_average(values, window_size: int = 7) -> List[Dict[str, Any]]:
    """Trailing moving average; the first windows are shorter."""
    vals = clean_values(values)
    result = []
    for i, v in enumerate(vals):
        window = vals[max(0, i - window_size + 1): i + 1]
        result.append({
            "index": i,
            "value": v,
            "moving_average": float(np.mean(window)),
            "window_size": len(window),
        })
    return result


def calculate_ema(values, alpha: float = 0.3) -> List[Dict[str, Any]]:
    vals = clean_values(values)
    if not vals:
        return []
    ema = vals[0]
    result = [{"index": 0, "value": vals[0], "ema": ema}]
    for i, v in enumerate(vals[1:], start=1):
        ema = alpha * v + (1 - alpha) * ema
        result.append({"index": i, "value": v, "ema": ema})
    return result


def decompose_time_series(series, period: int = 7) -> Dict[str, List[float]]:
    """
    Additive decomposition: trailing moving-average trend, per-phase mean
    seasonal component, residual.
    """
    values = series_values(series)
    if len(values) < period * 2:
        return {"trend": [], "seasonal": [], "residual": [], "original": values}

    trend = [item["moving_average"] for item in calculate_moving_average(values, period)]
    detrended = [v - t for v, t in zip(values, trend)]

    phase_means = [
        float(np.mean(detrended[phase::period])) if detrended[phase::period] else 0.0
        for phase in range(period)
    ]
    seasonal = [phase_means[i % period] for i in range(len(values))]
    residual = [v - t - s for v, t, s in zip(values, trend, seasonal)]

    return {"trend": trend, "seasonal": seasonal, "residual": residual, "original": values}


def forecast_linear(values, periods: int = 7) -> List[Dict[str, Any]]:
    """Extend the OLS line; forecasts are floored at 0 and carry confidence = R²."""
    vals = clean_values(values)
    if len(vals) < 2:
        return []
    trend = calculate_linear_trend(vals)
    n = len(vals)
    return [
        {
            "period": i + 1,
            "forecast": max(0.0, trend["slope"] * (n + i) + trend["intercept"]),
            "confidence": trend["r_squared"],
        }
        for i in range(periods)
    ]


def forecast_exponential(values, periods: int = 7, alpha: float = 0.3) -> List[Dict[str, Any]]:
    ema = calculate_ema(values, alpha)
    if not ema:
        return []
    last = max(0.0, ema[-1]["ema"])
    return [{"period": i + 1, "forecast": last, "method": "exponential_smoothing"} for i in range(periods)]


def detect_change_points(
    values,
    threshold: float = DEFAULT_CHANGE_POINT_THRESHOLD,
    window: int = DEFAULT_CHANGE_POINT_WINDOW,
) -> List[Dict[str, Any]]:
    """
    Flag points far from their trailing window.

    Each point is compared with the mean/std of up to `window` preceding
    points (at least 3). A constant window flags any differing value with
    z_score None.
    """
    vals = clean_values(values)
    change_points = []
    for i in range(MIN_CHANGE_POINT_WINDOW, len(vals)):
        history = np.asarray(vals[max(0, i - window): i], dtype=float)
        if len(history) < MIN_CHANGE_POINT_WINDOW:
            continue
        mean = float(history.mean())
        std = float(history.std())
        value = vals[i]

        if std == 0:
            if value == mean:
                continue
            z_score = None
        else:
            z_score = (value - mean) / std
            if abs(z_score) <= threshold:
                continue

        change_points.append({
            "index": i,
            "value": value,
            "z_score": z_score,
            "window_mean": mean,
            "type": "spike" if value > mean else "drop",
        })
    return change_points


def calculate_growth_rate(values) -> float:
    """Percent change from the first to the last non-zero value."""
    vals = [v for v in clean_values(values) if v != 0]
    if len(vals) < 2:
        return 0.0
    return (vals[-1] - vals[0]) / vals[0] * 100


def calculate_cagr(start_value: float, end_value: float, periods: float) -> float:
    if start_value <= 0 or end_value <= 0 or periods <= 0:
        return 0.0
    return ((end_value / start_value) ** (1 / periods) - 1) * 100


def analyze_time_series(
    series,
    period: int = 7,
    forecast_periods: int = 7,
    max_lag: int = 10,
    seasonality_threshold: float = DEFAULT_SEASONALITY_THRESHOLD,
    change_point_threshold: float = DEFAULT_CHANGE_POINT_THRESHOLD,
    change_point_window: int = DEFAULT_CHANGE_POINT_WINDOW,
) -> Dict[str, Any]:
    values = series_values(series)
    trend = calculate_linear_trend(values)
    seasonality = detect_seasonality(values, period, seasonality_threshold)
    change_points = detect_change_points(values, change_point_threshold, change_point_window)

    return {
        "trend": trend,
        "seasonality": seasonality,
        "acf": calculate_acf(values, max_lag),
        "decomposition": decompose_time_series(values, period),
        "forecast": forecast_linear(values, forecast_periods),
        "change_points": change_points,
        "growth_rate": calculate_growth_rate(values),
        "summary": {
            "has_trend": abs(trend["slope"]) > TREND_STABLE_BAND,
            "trend_direction": trend["direction"],
            "trend_strength": trend["strength"],
            "has_seasonality": seasonality["has_seasonality"],
            "seasonal_period": seasonality["period"],
            "volatility": float(np.std(values)) if values else 0.0,
            "change_point_count": len(change_points),
        },
    }
