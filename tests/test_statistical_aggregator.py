"""
Tests for the statistical aggregation service.
"""

import json
from datetime import date, datetime, timedelta, timezone

import pytest

from unified_data.analysis.aggregator import (
    AnalysisOptions,
    calculate_correlation_matrix,
    compare_datasets,
    export_analysis,
    generate_summary_report,
    perform_comprehensive_analysis,
)
from unified_data.config import PipelineConfig

NOW = datetime(2024, 6, 30, tzinfo=timezone.utc)


def event(day, region="gaza", fatalities=1, injuries=2, severity=3):
    return {
        "type": "conflict",
        "date": day,
        "location": {"name": f"{region}-site", "region": region, "admin_levels": {"level1": "Gaza"}},
        "event_type": "airstrike",
        "fatalities": fatalities,
        "injuries": injuries,
        "severity_index": severity,
    }


@pytest.fixture
def records():
    start = date(2023, 10, 1)
    items = [event((start + timedelta(days=i)).isoformat()) for i in range(14)]
    items.append(event("2023-10-10", region="west_bank", fatalities=5, injuries=0))
    return items


class TestAnalysisOptions:
    """Tests for AnalysisOptions construction."""

    def test_from_config(self):
        """Config values should seed the options; overrides win."""
        config = PipelineConfig(baseline_date="2024-01-01", rolling_window_days=14)

        options = AnalysisOptions.from_config(config, include_time_series=False)

        assert options.baseline_date == "2024-01-01"
        assert options.rolling_window_days == 14
        assert options.include_time_series is False

    def test_from_dict_ignores_unknown(self):
        """Unknown keys should be dropped."""
        options = AnalysisOptions.from_dict({"forecast_periods": 3, "colour": "red"})

        assert options.forecast_periods == 3


class TestPerformComprehensiveAnalysis:
    """Tests for perform_comprehensive_analysis()."""

    def test_all_sections(self, records):
        """Every section should be present by default."""
        analysis = perform_comprehensive_analysis(records, now=NOW)

        assert set(analysis) == {"metadata", "regional", "temporal", "descriptive", "time_series"}
        assert analysis["metadata"] == {
            "total_records": 15,
            "analysis_date": "2024-06-30T00:00:00Z",
            "baseline_date": "2023-10-07",
        }

    def test_regional(self, records):
        """Regional buckets should reflect location.region."""
        regional = perform_comprehensive_analysis(records, now=NOW)["regional"]

        assert regional["by_region"]["gaza"]["stats"]["incident_count"] == 14
        assert regional["by_region"]["west_bank"]["stats"]["fatalities"] == 5
        assert regional["top_regions"][0]["region"] == "gaza"

    def test_temporal(self, records):
        """Temporal sections should split at the baseline."""
        temporal = perform_comprehensive_analysis(records, now=NOW)["temporal"]

        assert len(temporal["daily"]) == 14
        before = temporal["baseline_comparison"]["before_baseline"]["stats"]["incidents"]
        after = temporal["baseline_comparison"]["after_baseline"]["stats"]["incidents"]
        assert (before, after) == (6, 9)
        assert len(temporal["rolling"]) == 15
        assert temporal["cumulative"][-1]["cumulative_value"] == 14 * 3 + 5

    def test_descriptive(self, records):
        """Descriptive stats should cover casualty and severity fields."""
        descriptive = perform_comprehensive_analysis(records, now=NOW)["descriptive"]

        assert set(descriptive) == {"fatalities", "injuries", "severity_index"}
        assert descriptive["fatalities"]["max"] == 5

    def test_sections_can_be_disabled(self, records):
        """Disabled sections should be omitted."""
        options = AnalysisOptions(include_regional=False, include_time_series=False)

        analysis = perform_comprehensive_analysis(records, options, now=NOW)

        assert "regional" not in analysis
        assert "time_series" not in analysis
        assert "temporal" in analysis

    def test_empty(self):
        """Empty input should still give a document."""
        analysis = perform_comprehensive_analysis([], now=NOW)

        assert analysis["metadata"]["total_records"] == 0
        assert analysis["descriptive"]["fatalities"]["count"] == 0


class TestSummaryAndComparison:
    """Tests for summary reports and dataset comparison."""

    def test_summary_report(self, records):
        """The summary should condense each section."""
        report = generate_summary_report(perform_comprehensive_analysis(records, now=NOW))

        assert report["overview"]["total_records"] == 15
        assert report["regional_summary"]["most_affected_region"] == "gaza"
        assert report["regional_summary"]["total_incidents"] == 15
        assert report["temporal_summary"]["incidents_before"] == 6
        assert report["temporal_summary"]["change_percentage"] == pytest.approx(50)
        assert report["trend_summary"]["direction"] in {"increasing", "decreasing", "stable"}

    def test_summary_without_optional_sections(self, records):
        """Missing sections should be left out of the summary."""
        options = AnalysisOptions(include_regional=False, include_temporal=False, include_time_series=False)

        report = generate_summary_report(perform_comprehensive_analysis(records, options, now=NOW))

        assert set(report) == {"overview"}

    def test_compare_datasets(self):
        """Differences should be second minus first."""
        first = [event("2024-01-01", fatalities=v) for v in (1, 2, 3)]
        second = [event("2024-01-01", fatalities=v) for v in (4, 5, 6)]

        result = compare_datasets(first, second, labels=("before", "after"))

        assert result["before"]["mean"] == 2
        assert result["comparison"]["mean_difference"] == pytest.approx(3)
        assert result["comparison"]["std_dev_difference"] == pytest.approx(0)

    def test_correlation_matrix(self):
        """The diagonal should be 1 for non-constant fields."""
        data = [event("2024-01-01", fatalities=f, injuries=2 * f) for f in (1, 2, 3)]

        matrix = calculate_correlation_matrix(data, ["fatalities", "injuries"])

        assert matrix["fatalities"]["fatalities"] == pytest.approx(1)
        assert matrix["fatalities"]["injuries"] == pytest.approx(1)


class TestExportAnalysis:
    """Tests for export_analysis()."""

    def test_writes_json(self, tmp_path, records):
        """The analysis should be written as JSON, creating parent dirs."""
        analysis = perform_comprehensive_analysis(records, now=NOW)

        path = export_analysis(analysis, str(tmp_path / "reports" / "analysis.json"))

        with open(path, "r", encoding="utf-8") as f:
            loaded = json.load(f)
        assert loaded["metadata"]["total_records"] == 15
