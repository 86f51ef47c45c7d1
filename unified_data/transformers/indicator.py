"""
Indicator transformer for the time-series categories.

Economic, health, education, water, population, refugee, humanitarian,
infrastructure and other records are all `indicator value at a date`,
so one transform covers them; the category tag is carried through.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from ..enrichment.trend import enrich_with_trends
from ..models import Category
from .common import (
    build_sources,
    compute_quality,
    detect_unit,
    extract_coordinates,
    first_present,
    generate_id,
    infer_governorate,
    iso_timestamp,
    location_name,
    normalize_date,
    raw_records,
    record_timestamp,
    to_number,
    utc_now,
)

logger = logging.getLogger(__name__)

DEFAULT_LOCATION = "Palestine"


def _indicator_field(record: Dict[str, Any], metadata: Dict[str, Any], key: str, nested: str) -> Optional[str]:
    value = record.get(key)
    if value is None and isinstance(record.get("indicator"), dict):
        value = record["indicator"].get(nested)
    if value is None:
        value = metadata.get(key)
    return str(value) if value is not None else None


def transform_indicator_record(
    record: Dict[str, Any],
    metadata: Dict[str, Any],
    category: Category,
    now: datetime,
) -> Optional[Dict[str, Any]]:
    """
    Returns:
        Canonical record, or None when the raw record carries no numeric value
    """
    value = to_number(record.get("value"))
    if value is None:
        return None

    date = normalize_date(first_present(record, "date", "year"))
    indicator_code = _indicator_field(record, metadata, "indicator_code", "id")
    indicator_name = _indicator_field(record, metadata, "indicator_name", "value")
    name = location_name(first_present(record, "country", "location", "governorate")) or DEFAULT_LOCATION
    stamp = iso_timestamp(now)

    canonical = {
        "id": generate_id(category.value, {
            "indicator": indicator_code,
            "date": date,
            "location": name,
            "source": metadata.get("source"),
        }),
        "type": category.value,
        "category": category.value,
        "date": date,
        "timestamp": record_timestamp(record.get("timestamp"), date),
        "location": {
            "name": name,
            "coordinates": extract_coordinates(record),
            "admin_levels": {
                "level1": first_present(record, "governorate", "admin1") or infer_governorate(name),
                "level2": first_present(record, "admin2", "district"),
                "level3": first_present(record, "admin3", "locality"),
            },
        },
        "value": value,
        "unit": record.get("unit") or detect_unit(indicator_name),
        "indicator_code": indicator_code,
        "indicator_name": indicator_name,
        "sources": build_sources(metadata, stamp),
        "created_at": stamp,
        "updated_at": stamp,
        "version": 1,
    }

    if category == Category.INFRASTRUCTURE:
        canonical["structure_type"] = first_present(record, "structure_type", "building_type")
        canonical["damage_level"] = first_present(record, "damage_level", "damage")

    canonical["quality"] = compute_quality(canonical, category, now)
    return canonical


def transform_indicator(
    raw: Any,
    metadata: Optional[Dict[str, Any]] = None,
    category: Category = Category.ECONOMIC,
    now: Optional[datetime] = None,
) -> List[Dict[str, Any]]:
    """Transform raw indicator observations; records without a value are skipped."""
    metadata = metadata or {}
    now = now or utc_now()
    transformed = []
    skipped = 0
    for record in raw_records(raw):
        canonical = transform_indicator_record(record, metadata, category, now)
        if canonical is None:
            skipped += 1
            continue
        transformed.append(canonical)

    if skipped:
        logger.debug(f"Skipped {skipped} {category.value} records without a numeric value")
    return transformed


def enrich_indicator(records: List[Dict[str, Any]], baseline_date: str) -> List[Dict[str, Any]]:
    return enrich_with_trends(records, baseline_date, key="indicator_code")
