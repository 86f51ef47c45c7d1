"""
Conflict event transformer.

Maps incident records from the various conflict sources onto canonical
conflict records with casualty counts and a 0-10 severity index.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from ..models import Category
from .common import (
    build_sources,
    compute_quality,
    extract_coordinates,
    first_present,
    generate_id,
    infer_governorate,
    iso_timestamp,
    location_name,
    normalize_date,
    raw_records,
    record_timestamp,
    to_count,
    utc_now,
)

logger = logging.getLogger(__name__)

EVENT_TYPE_MAP = {
    "airstrike": "airstrike",
    "air strike": "airstrike",
    "aerial bombardment": "airstrike",
    "bombing": "airstrike",
    "artillery": "artillery",
    "shelling": "artillery",
    "mortar": "artillery",
    "shooting": "shooting",
    "gunfire": "shooting",
    "small arms": "shooting",
    "raid": "raid",
    "incursion": "raid",
    "military operation": "raid",
    "explosion": "explosion",
    "blast": "explosion",
    "ied": "explosion",
    "clash": "armed clash",
    "armed clash": "armed clash",
    "firefight": "armed clash",
    "protest": "protest",
    "demonstration": "protest",
}

SEVERITY_MULTIPLIERS = {
    "airstrike": 1.5,
    "artillery": 1.3,
    "explosion": 1.4,
    "armed clash": 1.2,
    "shooting": 1.0,
    "raid": 0.8,
    "protest": 0.5,
}

MAX_SEVERITY = 10


def normalize_event_type(event_type: Any) -> str:
    if event_type is None:
        return "unknown"
    text = str(event_type).strip()
    return EVENT_TYPE_MAP.get(text.lower(), text or "unknown")


def calculate_severity_index(fatalities: int, injuries: int, event_type: str) -> int:
    """Fatalities weigh 3x injuries; scaled by event type and capped at 10."""
    severity = (fatalities * 3 + injuries) * SEVERITY_MULTIPLIERS.get(event_type, 1.0)
    return min(MAX_SEVERITY, int(round(severity / 10)))


def _extract_location(record: Dict[str, Any]) -> Dict[str, Any]:
    name = location_name(first_present(record, "location", "admin1", "region", "governorate")) or "unknown"
    return {
        "name": name,
        "coordinates": extract_coordinates(record),
        "admin_levels": {
            "level1": first_present(record, "admin1", "governorate") or infer_governorate(name),
            "level2": first_present(record, "admin2", "district"),
            "level3": first_present(record, "admin3", "locality"),
        },
    }


def transform_conflict_record(
    record: Dict[str, Any],
    metadata: Dict[str, Any],
    now: datetime,
) -> Dict[str, Any]:
    date = normalize_date(first_present(record, "event_date", "date", "timestamp", "year"))
    event_type = normalize_event_type(
        first_present(record, "event_type", "eventType", "incident_type", "incidentType", "type")
    )
    fatalities = to_count(first_present(record, "fatalities", "killed", "deaths", "casualties", "dead"))
    injuries = to_count(first_present(record, "injuries", "injured", "wounded"))
    location = _extract_location(record)
    stamp = iso_timestamp(now)

    canonical = {
        "id": generate_id(Category.CONFLICT.value, {
            "date": date,
            "location": location["name"],
            "source": metadata.get("source"),
            "raw": record,
        }),
        "type": Category.CONFLICT.value,
        "category": Category.CONFLICT.value,
        "date": date,
        "timestamp": record_timestamp(record.get("timestamp"), date),
        "location": location,
        "value": fatalities + injuries,
        "unit": "casualties",
        "event_type": event_type,
        "fatalities": fatalities,
        "injuries": injuries,
        "actors": {
            "actor1": first_present(record, "actor1", "perpetrator", "attacker"),
            "actor2": first_present(record, "actor2", "target", "victim"),
        },
        "description": first_present(record, "notes", "description", "event_description", "details") or "",
        "severity_index": calculate_severity_index(fatalities, injuries, event_type),
        "sources": build_sources(metadata, stamp),
        "created_at": stamp,
        "updated_at": stamp,
        "version": 1,
    }
    canonical["quality"] = compute_quality(canonical, Category.CONFLICT, now)
    return canonical


def transform_conflict(
    raw: Any,
    metadata: Optional[Dict[str, Any]] = None,
    now: Optional[datetime] = None,
) -> List[Dict[str, Any]]:
    """
    Transform raw conflict events into canonical records.

    Args:
        raw: List of event dicts, or {"data": [...]}
        metadata: Source descriptor ({source, organization, source_url})
        now: Clock used for created_at/updated_at/fetched_at

    Returns:
        List of canonical conflict records (empty for unusable input)
    """
    metadata = metadata or {}
    now = now or utc_now()
    records = raw_records(raw)
    transformed = [transform_conflict_record(r, metadata, now) for r in records]
    logger.debug(f"Transformed {len(transformed)} conflict records")
    return transformed
