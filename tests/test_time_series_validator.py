"""
Tests for time-series continuity validation.
"""

from datetime import date, timedelta

import pytest

from unified_data.validation import validate_time_series
from unified_data.validation.time_series import (
    calculate_validation_score,
    determine_frequency,
    interpolate_missing_values,
)

TODAY = date(2024, 6, 30)


def daily_series(values, start=date(2024, 1, 1)):
    return [{"date": (start + timedelta(days=i)).isoformat(), "value": v} for i, v in enumerate(values)]


class TestDetermineFrequency:
    """Tests for determine_frequency()."""

    @pytest.mark.parametrize("step,frequency", [
        (1, "daily"),
        (7, "weekly"),
        (30, "monthly"),
        (91, "quarterly"),
        (365, "yearly"),
    ])
    def test_frequencies(self, step, frequency):
        """Average spacing should determine the frequency."""
        dates = [date(2020, 1, 1) + timedelta(days=step * i) for i in range(4)]
        assert determine_frequency(dates) == frequency

    def test_too_few_dates(self):
        """Fewer than three dates should be unknown."""
        assert determine_frequency([date(2024, 1, 1), date(2024, 1, 2)]) == "unknown"


class TestValidateTimeSeries:
    """Tests for validate_time_series()."""

    def test_clean_series(self):
        """A regular, linear daily series should be fully valid."""
        result = validate_time_series(daily_series(range(1, 11)), today=TODAY)

        assert result["is_valid"] is True
        assert result["score"] == 100
        assert result["metadata"]["frequency"] == "daily"
        assert result["metadata"]["date_range"] == {"start": "2024-01-01", "end": "2024-01-10", "span_days": 9}
        assert result["metadata"]["trend"]["direction"] == "increasing"
        assert result["metadata"]["trend"]["strength"] == pytest.approx(1.0)

    def test_large_gap_is_error(self):
        """Gaps beyond max_gap_days should be errors."""
        records = daily_series(range(9))
        records.append({"date": "2024-02-18", "value": 9})

        result = validate_time_series(records, today=TODAY)

        assert result["is_valid"] is False
        assert len(result["errors"]) == 1
        assert result["metadata"]["gaps"][0]["gap_days"] == 40

    def test_missing_and_invalid_dates(self):
        """Records without usable dates should be errors."""
        records = daily_series([1, 2, 3]) + [{"value": 4}, {"date": "soon", "value": 5}]

        result = validate_time_series(records, today=TODAY)

        assert "Record 3: Missing date field" in result["errors"]
        assert "Record 4: Invalid date format: soon" in result["errors"]
        assert result["score"] == 60

    def test_future_dates_warn(self):
        """Dates after today should be warned about."""
        records = daily_series([1, 2, 3], start=date(2024, 6, 29))

        result = validate_time_series(records, today=TODAY)

        assert any("future" in w for w in result["warnings"])

    def test_outlier(self):
        """A spike should be flagged as an outlier."""
        result = validate_time_series(daily_series([10] * 20 + [1000]), today=TODAY)

        outliers = result["metadata"]["outliers"]
        assert len(outliers) == 1
        assert outliers[0]["index"] == 20
        assert outliers[0]["date"] == "2024-01-21"

    def test_empty(self):
        """An empty dataset should score 0."""
        result = validate_time_series([], today=TODAY)

        assert result["is_valid"] is False
        assert result["score"] == 0

    def test_insufficient_points(self):
        """Too few numeric points should produce warnings, not errors."""
        result = validate_time_series(daily_series([1, 2]), today=TODAY)

        assert result["is_valid"] is True
        assert len(result["warnings"]) == 2


class TestHelpers:
    """Tests for scoring and interpolation helpers."""

    def test_score_clamped(self):
        """Scores should stay within 0..100."""
        assert calculate_validation_score(["e"] * 10, []) == 0
        assert calculate_validation_score(["e"], ["w"]) == 75

    def test_interpolation(self):
        """Interior gaps should be filled with the neighbour midpoint."""
        records = [{"value": None}, {"value": 1}, {"value": None}, {"value": 3}, {"value": None}]

        filled = interpolate_missing_values(records)

        assert filled[2] == {"value": 2.0, "interpolated": True}
        assert filled[0]["value"] is None
        assert filled[4]["value"] is None
        assert records[2] == {"value": None}
