"""
Tests for cross-dataset linking.
"""

import pytest

from unified_data.linking import LINK_RULES, DataLinker, LinkRule
from unified_data.linking.data_linker import is_within_days, is_within_radius, same_location
from unified_data.models import Category


def record(record_id, category, date, coordinates=None, name=None, governorate=None):
    return {
        "id": record_id,
        "type": category,
        "category": category,
        "date": date,
        "location": {"name": name, "coordinates": coordinates, "admin_levels": {"level1": governorate}},
    }


@pytest.fixture
def linker():
    return DataLinker()


class TestHelpers:
    """Tests for the matching helpers."""

    def test_within_radius(self):
        """Points a few hundred metres apart should be within 1 km."""
        assert is_within_radius([34.45, 31.50], [34.452, 31.502], 1000) is True
        assert is_within_radius([34.45, 31.50], [34.55, 31.50], 1000) is False
        assert is_within_radius(None, [34.45, 31.50], 1000) is False

    def test_within_days(self):
        """The window should be symmetric and inclusive."""
        assert is_within_days("2024-01-01", "2024-01-08", 7) is True
        assert is_within_days("2024-01-08", "2024-01-01", 7) is True
        assert is_within_days("2024-01-01", "2024-01-09", 7) is False
        assert is_within_days(None, "2024-01-01", 7) is False

    def test_same_location(self):
        """Locations should match by name or governorate."""
        a = record("a", "infrastructure", "2024-01-01", name="Rafah")
        b = record("b", "humanitarian", "2024-01-01", name="Rafah")
        c = record("c", "humanitarian", "2024-01-01", name="Tal as-Sultan", governorate="Rafah")
        d = record("d", "infrastructure", "2024-01-01", name="Shaboura", governorate="Rafah")

        assert same_location(a, b) is True
        assert same_location(a, c) is False
        assert same_location(d, c) is True

    def test_same_location_malformed_admin_levels(self):
        """Non-mapping admin levels should count as no governorate."""
        a = {"id": "a", "location": {"name": "Shaboura", "admin_levels": ["Rafah"]}}
        b = {"id": "b", "location": {"name": "Tal as-Sultan", "admin_levels": "Rafah"}}

        assert same_location(a, b) is False


class TestFindRelatedData:
    """Tests for DataLinker.find_related_data()."""

    def test_conflict_to_infrastructure(self, linker):
        """Nearby infrastructure damage within the window should be linked."""
        event = record("c1", "conflict", "2024-01-05", [34.45, 31.50])
        datasets = {
            "infrastructure": [
                record("i1", "infrastructure", "2024-01-07", [34.451, 31.501]),
                record("i2", "infrastructure", "2024-02-20", [34.451, 31.501]),
                record("i3", "infrastructure", "2024-01-06", [34.60, 31.40]),
            ],
        }

        assert linker.find_related_data(event, datasets) == {"infrastructure": ["i1"]}

    def test_infrastructure_to_humanitarian(self, linker):
        """Co-located humanitarian records should be linked."""
        damage = record("i1", "infrastructure", "2024-01-05", name="Rafah")
        datasets = {"humanitarian": [record("h1", "humanitarian", "2024-01-10", name="Rafah")]}

        assert linker.find_related_data(damage, datasets) == {"humanitarian": ["h1"]}

    def test_economic_same_year(self, linker):
        """Economic records should link to same-year health and education records."""
        gdp = record("e1", "economic", "2022-01-01")
        datasets = {
            "health": [record("h1", "health", "2022-06-01"), record("h2", "health", "2021-06-01")],
            "education": [record("ed1", "education", "2022-09-01")],
        }

        assert linker.find_related_data(gdp, datasets) == {"health": ["h1"], "education": ["ed1"]}

    def test_no_rule_for_category(self, linker):
        """Categories without rules should never link."""
        water = record("w1", "water", "2022-01-01")

        assert linker.find_related_data(water, {"health": [record("h1", "health", "2022-01-01")]}) == {}

    def test_custom_radius(self):
        """A wider radius should admit farther records."""
        wide = DataLinker(spatial_radius_m=50_000)
        event = record("c1", "conflict", "2024-01-05", [34.45, 31.50])
        datasets = {"infrastructure": [record("i3", "infrastructure", "2024-01-06", [34.60, 31.40])]}

        assert wide.find_related_data(event, datasets) == {"infrastructure": ["i3"]}

    def test_custom_rules(self):
        """Rules passed in should replace the defaults."""
        rule = LinkRule(Category.WATER, Category.HEALTH, lambda linker, s, t: True)
        custom = DataLinker(rules=[rule])

        related = custom.find_related_data(
            record("w1", "water", "2022-01-01"),
            {"health": [record("h1", "health", "2015-01-01")]},
        )

        assert related == {"health": ["h1"]}

    def test_default_rules(self):
        """The default rule table should cover four category pairs."""
        pairs = [(r.source.value, r.target.value) for r in LINK_RULES]

        assert pairs == [
            ("conflict", "infrastructure"),
            ("infrastructure", "humanitarian"),
            ("economic", "health"),
            ("economic", "education"),
        ]


class TestLinkRelatedData:
    """Tests for DataLinker.link_related_data()."""

    def test_links_without_mutating(self, linker):
        """Matched records should be copies carrying related_data."""
        events = [
            record("c1", "conflict", "2024-01-05", [34.45, 31.50]),
            record("c2", "conflict", "2024-03-05", [34.45, 31.50]),
        ]
        datasets = {"infrastructure": [record("i1", "infrastructure", "2024-01-07", [34.451, 31.501])]}

        linked = linker.link_related_data(events, datasets)

        assert linked[0]["related_data"] == {"infrastructure": ["i1"]}
        assert "related_data" not in linked[1]
        assert "related_data" not in events[0]
