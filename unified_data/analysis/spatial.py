"""
Spatial aggregation of canonical records by region and governorate.
"""

from collections import OrderedDict
from typing import Any, Dict, List, Sequence

from ..enrichment.geospatial import DEFAULT_GOVERNORATES
from ..models import Region, is_conflict

UNKNOWN_BUCKET = "unknown"
GOVERNORATE_NAMES = [g.name for g in DEFAULT_GOVERNORATES]
REGION_BUCKETS = [Region.GAZA.value, Region.WEST_BANK.value, Region.EAST_JERUSALEM.value, Region.UNKNOWN.value]


def numeric_field(record: Dict[str, Any], field: str) -> float:
    """Numeric value of a record field, 0 when missing or non-numeric."""
    value = record.get(field)
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value != value:
        return 0
    return value


def _location(record: Dict[str, Any]) -> Dict[str, Any]:
    location = record.get("location")
    return location if isinstance(location, dict) else {}


def _day(record: Dict[str, Any]) -> str:
    return str(record.get("date") or "")[:10]


def generate_time_series(records: Sequence[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Per-day incident/fatality/injury counts sorted by date."""
    days: Dict[str, Dict[str, Any]] = {}
    for record in records:
        day = _day(record)
        if not day:
            continue
        entry = days.setdefault(day, {"date": day, "incidents": 0, "fatalities": 0, "injuries": 0, "records": 0})
        entry["records"] += 1
        if is_conflict(record):
            entry["incidents"] += 1
        entry["fatalities"] += numeric_field(record, "fatalities")
        entry["injuries"] += numeric_field(record, "injuries")
    return [days[d] for d in sorted(days)]


def calculate_region_stats(records: Sequence[Dict[str, Any]]) -> Dict[str, Any]:
    fatalities = sum(numeric_field(r, "fatalities") for r in records)
    injuries = sum(numeric_field(r, "injuries") for r in records)
    severities = [
        r["severity_index"] for r in records
        if isinstance(r.get("severity_index"), (int, float)) and not isinstance(r.get("severity_index"), bool)
    ]
    dates = sorted(_day(r) for r in records if _day(r))
    locations = {_location(r).get("name") for r in records if _location(r).get("name")}

    return {
        "total_records": len(records),
        "incident_count": sum(1 for r in records if is_conflict(r)),
        "fatalities": fatalities,
        "injuries": injuries,
        "casualty_total": fatalities + injuries,
        "severity_index": sum(severities) / len(severities) if severities else 0,
        "affected_locations": len(locations),
        "date_range": {"start": dates[0] if dates else None, "end": dates[-1] if dates else None},
        "time_series": generate_time_series(records),
    }


def _bucketize(records, buckets: Sequence[str], key_fn) -> Dict[str, Dict[str, Any]]:
    grouped: Dict[str, List[Dict[str, Any]]] = OrderedDict((b, []) for b in buckets)
    for record in records:
        key = key_fn(record) or UNKNOWN_BUCKET
        grouped[key if key in grouped else UNKNOWN_BUCKET].append(record)
    return {b: {"data": data, "stats": calculate_region_stats(data)} for b, data in grouped.items()}


def aggregate_by_region(records: Sequence[Dict[str, Any]]) -> Dict[str, Dict[str, Any]]:
    """
    Bucket records by location.region.

    Returns:
        {region: {"data": [...], "stats": {...}}} for every region,
        unrecognised regions land in "unknown"
    """
    return _bucketize(records, REGION_BUCKETS, lambda r: _location(r).get("region"))


def aggregate_by_governorate(records: Sequence[Dict[str, Any]]) -> Dict[str, Dict[str, Any]]:
    """Bucket records by location.admin_levels.level1 into the fixed governorate list."""
    def level1(record):
        admin = _location(record).get("admin_levels")
        return admin.get("level1") if isinstance(admin, dict) else None

    return _bucketize(records, GOVERNORATE_NAMES + [UNKNOWN_BUCKET], level1)


def aggregate_by_custom_boundary(records: Sequence[Dict[str, Any]], field: str) -> Dict[str, Dict[str, Any]]:
    """Bucket by an arbitrary location field; buckets are created on demand."""
    grouped: Dict[str, List[Dict[str, Any]]] = OrderedDict()
    for record in records:
        key = _location(record).get(field) or UNKNOWN_BUCKET
        grouped.setdefault(str(key), []).append(record)
    return {b: {"data": data, "stats": calculate_region_stats(data)} for b, data in grouped.items()}


def get_top_regions(aggregated: Dict[str, Dict[str, Any]], metric: str = "incident_count", limit: int = 10) -> List[Dict[str, Any]]:
    ranked = [
        {"region": region, "value": bucket["stats"].get(metric) or 0, "stats": bucket["stats"]}
        for region, bucket in aggregated.items()
    ]
    ranked.sort(key=lambda item: item["value"], reverse=True)
    return ranked[:limit]


def compare_regions(
    aggregated: Dict[str, Dict[str, Any]],
    metrics: Sequence[str] = ("incident_count", "casualty_total"),
) -> Dict[str, Dict[str, Any]]:
    return {
        region: {m: bucket["stats"].get(m) or 0 for m in metrics}
        for region, bucket in aggregated.items()
    }
