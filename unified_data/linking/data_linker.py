"""
Cross-dataset linking.

Each link rule pairs a source category with a target category and a
matcher deciding whether a target record relates to the source record.
Matching target ids are attached as `related_data[target_category]`.
"""

import logging
from typing import Any, Callable, Dict, List, Mapping, NamedTuple, Optional, Sequence

from ..enrichment.geospatial import haversine_distance, parse_coordinates
from ..enrichment.temporal import parse_date
from ..models import Category, record_category

logger = logging.getLogger(__name__)

DEFAULT_SPATIAL_RADIUS_M = 1000
DEFAULT_TEMPORAL_WINDOW_DAYS = 7


def _location(record: Dict[str, Any]) -> Dict[str, Any]:
    location = record.get("location")
    return location if isinstance(location, dict) else {}


def is_within_radius(coords1: Any, coords2: Any, radius_m: float) -> bool:
    a = parse_coordinates(coords1)
    b = parse_coordinates(coords2)
    if a is None or b is None:
        return False
    return haversine_distance(a[1], a[0], b[1], b[0]) <= radius_m


def is_within_days(date1: Any, date2: Any, window_days: int) -> bool:
    d1 = parse_date(date1)
    d2 = parse_date(date2)
    if d1 is None or d2 is None:
        return False
    return abs((d1 - d2).days) <= window_days


def _governorate(location: Dict[str, Any]) -> Optional[str]:
    admin = location.get("admin_levels")
    return admin.get("level1") if isinstance(admin, dict) else None


def same_location(source: Dict[str, Any], target: Dict[str, Any]) -> bool:
    """Same location name, or same governorate (admin level 1)."""
    src, tgt = _location(source), _location(target)
    if src.get("name") and src.get("name") == tgt.get("name"):
        return True
    src_gov, tgt_gov = _governorate(src), _governorate(tgt)
    return bool(src_gov) and src_gov == tgt_gov


def same_year(source: Dict[str, Any], target: Dict[str, Any]) -> bool:
    d1 = parse_date(source.get("date"))
    d2 = parse_date(target.get("date"))
    return d1 is not None and d2 is not None and d1.year == d2.year


class LinkRule(NamedTuple):
    source: Category
    target: Category
    matcher: Callable[["DataLinker", Dict[str, Any], Dict[str, Any]], bool]


def _spatiotemporal(linker: "DataLinker", source: Dict[str, Any], target: Dict[str, Any]) -> bool:
    return (
        is_within_radius(_location(source).get("coordinates"), _location(target).get("coordinates"),
                         linker.spatial_radius_m)
        and is_within_days(source.get("date"), target.get("date"), linker.temporal_window_days)
    )


def _colocated(linker: "DataLinker", source: Dict[str, Any], target: Dict[str, Any]) -> bool:
    return same_location(source, target) and is_within_days(
        source.get("date"), target.get("date"), linker.temporal_window_days
    )


def _same_year(linker: "DataLinker", source: Dict[str, Any], target: Dict[str, Any]) -> bool:
    return same_year(source, target)


LINK_RULES: List[LinkRule] = [
    LinkRule(Category.CONFLICT, Category.INFRASTRUCTURE, _spatiotemporal),
    LinkRule(Category.INFRASTRUCTURE, Category.HUMANITARIAN, _colocated),
    LinkRule(Category.ECONOMIC, Category.HEALTH, _same_year),
    LinkRule(Category.ECONOMIC, Category.EDUCATION, _same_year),
]


class DataLinker:
    """Attaches related record ids from other categories' datasets."""

    def __init__(
        self,
        spatial_radius_m: float = DEFAULT_SPATIAL_RADIUS_M,
        temporal_window_days: int = DEFAULT_TEMPORAL_WINDOW_DAYS,
        rules: Optional[Sequence[LinkRule]] = None,
    ):
        self.spatial_radius_m = spatial_radius_m
        self.temporal_window_days = temporal_window_days
        self.rules = list(LINK_RULES if rules is None else rules)

    def find_related_data(
        self,
        record: Dict[str, Any],
        all_datasets: Mapping[str, Sequence[Dict[str, Any]]],
    ) -> Dict[str, List[str]]:
        """
        Returns:
            {target_category: [ids]} for targets with at least one match
        """
        category = record_category(record)
        related: Dict[str, List[str]] = {}
        for rule in self.rules:
            if rule.source.value != category:
                continue
            candidates = all_datasets.get(rule.target.value)
            if not candidates:
                continue
            ids = [t.get("id") for t in candidates if isinstance(t, dict) and rule.matcher(self, record, t)]
            if ids:
                related[rule.target.value] = ids
        return related

    def link_related_data(
        self,
        records: Sequence[Dict[str, Any]],
        all_datasets: Mapping[str, Sequence[Dict[str, Any]]],
    ) -> List[Dict[str, Any]]:
        """
        Link every record against the other datasets.

        Records with no matches are returned without a `related_data` key.
        Input records are not modified.
        """
        linked = []
        link_count = 0
        for record in records:
            related = self.find_related_data(record, all_datasets)
            if related:
                link_count += 1
                linked.append({**record, "related_data": related})
            else:
                linked.append(record)
        logger.info(f"Linked {link_count}/{len(linked)} records to related datasets")
        return linked
