"""
Statistical aggregation service.

Combines the spatial, temporal, descriptive and time-series modules into a
single analysis document, plus summary and comparison helpers.
"""

import json
import logging
from dataclasses import dataclass, fields
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from ..config import PipelineConfig
from ..models import DEFAULT_BASELINE_DATE
from ..transformers.common import iso_timestamp, utc_now
from .descriptive import calculate_comprehensive_stats, calculate_correlation, calculate_multi_field_stats
from .spatial import aggregate_by_governorate, aggregate_by_region, get_top_regions, numeric_field
from .temporal import (
    aggregate_by_baseline,
    aggregate_by_period,
    calculate_period_comparison,
    get_cumulative_time_series,
    get_rolling_aggregation,
)
from .time_series import analyze_time_series

logger = logging.getLogger(__name__)

DESCRIPTIVE_FIELDS = ["fatalities", "injuries", "severity_index"]


@dataclass
class AnalysisOptions:
    include_regional: bool = True
    include_temporal: bool = True
    include_descriptive: bool = True
    include_time_series: bool = True
    baseline_date: str = DEFAULT_BASELINE_DATE
    forecast_periods: int = 7
    rolling_window_days: int = 7
    seasonality_threshold: float = 0.3
    change_point_threshold: float = 2.0
    change_point_window: int = 7

    @classmethod
    def from_config(cls, config: PipelineConfig, **overrides) -> "AnalysisOptions":
        values = {
            "baseline_date": config.baseline_date,
            "rolling_window_days": config.rolling_window_days,
            "seasonality_threshold": config.seasonality_threshold,
            "change_point_threshold": config.change_point_threshold,
            "change_point_window": config.change_point_window,
        }
        values.update(overrides)
        return cls(**values)

    @classmethod
    def from_dict(cls, raw: Optional[Dict[str, Any]]) -> "AnalysisOptions":
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in (raw or {}).items() if k in known})


def _time_series_section(records: Sequence[Dict[str, Any]], options: AnalysisOptions) -> Dict[str, Any]:
    daily = aggregate_by_period(records, "day")
    series = [bucket["stats"] for bucket in daily.values()]
    kwargs = {
        "forecast_periods": options.forecast_periods,
        "seasonality_threshold": options.seasonality_threshold,
        "change_point_threshold": options.change_point_threshold,
        "change_point_window": options.change_point_window,
    }
    return {
        "incidents": analyze_time_series([s["incidents"] for s in series], **kwargs),
        "casualties": analyze_time_series([s["casualties"] for s in series], **kwargs),
    }


def perform_comprehensive_analysis(
    records: Sequence[Dict[str, Any]],
    options: Optional[AnalysisOptions] = None,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """
    Run every enabled analysis section over a record set.

    Args:
        records: Canonical records
        options: Section switches and parameters (defaults when None)
        now: Timestamp recorded as analysis_date

    Returns:
        {metadata, regional?, temporal?, descriptive?, time_series?}
    """
    options = options or AnalysisOptions()
    records = list(records)
    analysis: Dict[str, Any] = {
        "metadata": {
            "total_records": len(records),
            "analysis_date": iso_timestamp(now or utc_now()),
            "baseline_date": options.baseline_date,
        },
    }

    if options.include_regional:
        by_region = aggregate_by_region(records)
        analysis["regional"] = {
            "by_region": by_region,
            "by_governorate": aggregate_by_governorate(records),
            "top_regions": get_top_regions(by_region, "incident_count", 10),
        }

    if options.include_temporal:
        daily = aggregate_by_period(records, "day")
        analysis["temporal"] = {
            "daily": daily,
            "weekly": aggregate_by_period(records, "week"),
            "monthly": aggregate_by_period(records, "month"),
            "daily_comparison": calculate_period_comparison(daily),
            "baseline_comparison": aggregate_by_baseline(records, options.baseline_date),
            "rolling": get_rolling_aggregation(records, options.rolling_window_days, "incidents"),
            "cumulative": get_cumulative_time_series(records, "casualties"),
        }

    if options.include_descriptive:
        analysis["descriptive"] = calculate_multi_field_stats(records, DESCRIPTIVE_FIELDS)

    if options.include_time_series:
        analysis["time_series"] = _time_series_section(records, options)

    logger.info(f"Analysed {len(records)} records")
    return analysis


def generate_summary_report(analysis: Dict[str, Any]) -> Dict[str, Any]:
    report: Dict[str, Any] = {
        "overview": {
            "total_records": analysis["metadata"]["total_records"],
            "analysis_date": analysis["metadata"]["analysis_date"],
        },
    }

    regional = analysis.get("regional")
    if regional:
        buckets = regional["by_region"].values()
        top = regional["top_regions"]
        report["regional_summary"] = {
            "most_affected_region": top[0]["region"] if top else None,
            "total_incidents": sum(b["stats"]["incident_count"] for b in buckets),
            "total_casualties": sum(b["stats"]["casualty_total"] for b in buckets),
        }

    temporal = analysis.get("temporal")
    if temporal:
        baseline = temporal["baseline_comparison"]
        report["temporal_summary"] = {
            "baseline_date": analysis["metadata"]["baseline_date"],
            "incidents_before": baseline["before_baseline"]["stats"]["incidents"],
            "incidents_after": baseline["after_baseline"]["stats"]["incidents"],
            "change_percentage": baseline["comparison"]["changes"]["incidents"]["percentage"],
        }

    time_series = analysis.get("time_series")
    if time_series:
        incidents = time_series["incidents"]
        report["trend_summary"] = {
            "direction": incidents["trend"]["direction"],
            "strength": incidents["trend"]["strength"],
            "has_seasonality": incidents["seasonality"]["has_seasonality"],
            "change_point_count": incidents["summary"]["change_point_count"],
        }

    return report


def compare_datasets(
    first: Sequence[Dict[str, Any]],
    second: Sequence[Dict[str, Any]],
    labels: Sequence[str] = ("Dataset 1", "Dataset 2"),
    field: str = "fatalities",
) -> Dict[str, Any]:
    """Compare the distribution of one numeric field across two record sets."""
    label1, label2 = labels
    stats1 = calculate_comprehensive_stats([numeric_field(r, field) for r in first])
    stats2 = calculate_comprehensive_stats([numeric_field(r, field) for r in second])
    return {
        label1: stats1,
        label2: stats2,
        "comparison": {
            "mean_difference": stats2["mean"] - stats1["mean"],
            "median_difference": stats2["median"] - stats1["median"],
            "std_dev_difference": stats2["std_dev"] - stats1["std_dev"],
        },
    }


def calculate_correlation_matrix(records: Sequence[Dict[str, Any]], field_names: List[str]) -> Dict[str, Dict[str, float]]:
    columns = {f: [numeric_field(r, f) for r in records] for f in field_names}
    return {
        f1: {f2: calculate_correlation(columns[f1], columns[f2]) for f2 in field_names}
        for f1 in field_names
    }


def export_analysis(analysis: Dict[str, Any], output_path: str) -> Path:
    path = Path(output_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(analysis, f, indent=2, default=str)
    logger.info(f"Analysis exported to {path}")
    return path
