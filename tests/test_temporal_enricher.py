"""
Tests for temporal enrichment and period keys.
"""

from datetime import date, datetime

import pytest

from unified_data.enrichment.temporal import (
    TemporalEnricher,
    calculate_period,
    classify_period,
    days_since,
    get_season,
    month_key,
    parse_date,
    period_key,
    quarter_key,
    week_key,
)


class TestParseDate:
    """Tests for parse_date()."""

    @pytest.mark.parametrize("value,expected", [
        ("2024-03-15", date(2024, 3, 15)),
        ("2024-03-15T22:10:00Z", date(2024, 3, 15)),
        (datetime(2024, 3, 15, 8, 0), date(2024, 3, 15)),
        (date(2024, 3, 15), date(2024, 3, 15)),
        (2021, date(2021, 1, 1)),
        ("2021", date(2021, 1, 1)),
    ])
    def test_accepted_forms(self, value, expected):
        """Dates, timestamps and bare years should parse."""
        assert parse_date(value) == expected

    @pytest.mark.parametrize("value", [None, "", "not a date", "2024-13-45", True])
    def test_rejected_forms(self, value):
        """Unparseable values should give None."""
        assert parse_date(value) is None


class TestPeriodKeys:
    """Tests for period key derivation."""

    def test_keys_are_consistent(self):
        """All keys for one date should agree with each other."""
        periods = calculate_period("2024-03-15")

        assert periods == {
            "day": "2024-03-15",
            "week": "2024-W11",
            "month": "2024-03",
            "quarter": "2024-Q1",
            "year": "2024",
        }

    def test_quarter_key_idempotent(self):
        """Repeated derivation should give the same quarter."""
        assert quarter_key("2024-03-15") == quarter_key("2024-03-15") == "2024-Q1"

    @pytest.mark.parametrize("value,expected", [
        ("2024-01-01", "2024-Q1"),
        ("2024-03-31", "2024-Q1"),
        ("2024-04-01", "2024-Q2"),
        ("2024-09-30", "2024-Q3"),
        ("2024-12-31", "2024-Q4"),
    ])
    def test_quarter_boundaries(self, value, expected):
        """Quarter boundaries should fall on calendar quarters."""
        assert quarter_key(value) == expected

    @pytest.mark.parametrize("value,expected", [
        ("2024-12-30", "2025-W01"),
        ("2021-01-01", "2020-W53"),
        ("2024-01-01", "2024-W01"),
    ])
    def test_iso_week_year(self, value, expected):
        """Week keys should use the ISO week-numbering year."""
        assert week_key(value) == expected

    def test_month_key(self):
        """Month keys should be zero padded."""
        assert month_key("2024-07-04") == "2024-07"

    def test_unknown_period_type_raises(self):
        """An unknown period type should raise ValueError."""
        with pytest.raises(ValueError):
            period_key("2024-03-15", "fortnight")

    def test_missing_date(self):
        """Missing dates should give no keys."""
        assert period_key(None, "month") is None
        assert calculate_period(None) == {}


class TestBaselineHelpers:
    """Tests for baseline-relative helpers."""

    def test_days_since(self):
        """Day offsets should be signed."""
        assert days_since("2023-10-17", "2023-10-07") == 10
        assert days_since("2023-10-01", "2023-10-07") == -6

    def test_classify_period(self):
        """The baseline day itself should be tagged 'baseline'."""
        assert classify_period("2023-10-06", "2023-10-07") == "before_baseline"
        assert classify_period("2023-10-07", "2023-10-07") == "baseline"
        assert classify_period("2023-10-08", "2023-10-07") == "after_baseline"

    @pytest.mark.parametrize("value,season", [
        ("2024-01-10", "winter"),
        ("2024-04-10", "spring"),
        ("2024-07-10", "summer"),
        ("2024-10-10", "autumn"),
    ])
    def test_season(self, value, season):
        """Seasons should follow the Northern-hemisphere convention."""
        assert get_season(value) == season


class TestTemporalEnricher:
    """Tests for TemporalEnricher.enrich_temporal()."""

    def test_baseline_day(self):
        """The baseline day should be day 0 of the active phase."""
        context = TemporalEnricher().enrich_temporal({"date": "2023-10-07"})["temporal_context"]

        assert context == {
            "days_since_baseline": 0,
            "baseline_period": "after_baseline",
            "conflict_phase": "active-conflict",
            "season": "autumn",
        }

    def test_phases(self):
        """Dates should map to the three phase buckets."""
        enricher = TemporalEnricher()

        assert enricher.determine_conflict_phase("2023-01-15") == "pre-escalation"
        assert enricher.determine_conflict_phase("2023-12-31") == "active-conflict"
        assert enricher.determine_conflict_phase("2024-01-01") == "ongoing-conflict"

    def test_before_baseline(self):
        """Pre-baseline dates should have negative offsets."""
        context = TemporalEnricher().enrich_temporal({"date": "2023-10-01"})["temporal_context"]

        assert context["days_since_baseline"] == -6
        assert context["baseline_period"] == "before_baseline"

    def test_custom_baseline(self):
        """A custom baseline should shift the offsets."""
        enricher = TemporalEnricher(baseline_date="2024-01-01", active_phase_end="2024-06-01")
        context = enricher.enrich_temporal({"date": "2024-01-11"})["temporal_context"]

        assert context["days_since_baseline"] == 10
        assert context["conflict_phase"] == "active-conflict"

    def test_missing_date_gives_empty(self):
        """Records without a date should get an empty enrichment."""
        assert TemporalEnricher().enrich_temporal({"id": "x"}) == {}
        assert TemporalEnricher().enrich_temporal({"date": "garbage"}) == {}

    def test_invalid_baseline_raises(self):
        """An unparseable baseline should be rejected at construction."""
        with pytest.raises(ValueError):
            TemporalEnricher(baseline_date="someday")
