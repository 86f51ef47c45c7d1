"""
Helpers shared by every category transformer.
"""

import hashlib
import json
import math
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional

from ..enrichment.temporal import parse_date
from ..models import Category

# Fields whose presence drives record-level completeness, by category
QUALITY_FIELDS = {
    Category.CONFLICT: ["type", "location"],
    Category.ECONOMIC: ["value", "unit"],
    Category.INFRASTRUCTURE: ["structure_type"],
}
DEFAULT_QUALITY_FIELDS = ["type", "value"]

OFFICIAL_SOURCE_TOKENS = ("un", "who", "ocha")
OFFICIAL_SOURCE_PHRASES = ("world bank", "united nations")

RECENT_DATA_CUTOFF = date(2020, 1, 1)
DEFAULT_CONFIDENCE = 0.8

# Checked in order; first match wins
UNIT_RULES = [
    (("(% of", "(%)"), "percentage"),
    (("us$", "usd"), "currency_usd"),
    (("per 1,000",), "per_1000"),
    (("per 100,000",), "per_100000"),
    (("per 100 people",), "per_100"),
    (("kwh",), "kwh"),
    (("metric tons",), "metric_tons"),
    (("births per woman",), "births_per_woman"),
    (("years",), "years"),
]

# (name keywords, governorate); order matters ("north gaza" before "gaza")
GOVERNORATE_KEYWORDS = [
    (("north gaza", "northern gaza"), "North Gaza"),
    (("deir al-balah", "deir al balah"), "Deir al-Balah"),
    (("khan yunis", "khan younis"), "Khan Yunis"),
    (("rafah",), "Rafah"),
    (("gaza",), "Gaza"),
    (("jenin",), "Jenin"),
    (("tubas",), "Tubas"),
    (("tulkarm", "tulkarem"), "Tulkarm"),
    (("nablus",), "Nablus"),
    (("qalqilya", "qalqiliya"), "Qalqilya"),
    (("salfit",), "Salfit"),
    (("ramallah",), "Ramallah"),
    (("jericho",), "Jericho"),
    (("jerusalem", "al-quds"), "Jerusalem"),
    (("bethlehem",), "Bethlehem"),
    (("hebron", "al-khalil"), "Hebron"),
]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def iso_timestamp(moment: datetime) -> str:
    """UTC ISO-8601 with a trailing Z."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def first_present(record: Dict[str, Any], *keys: str) -> Any:
    """Value of the first key that is present and not None/empty."""
    for key in keys:
        value = record.get(key)
        if value is not None and value != "":
            return value
    return None


def raw_records(raw: Any) -> List[Dict[str, Any]]:
    """Accept a list or an object with a `data` list; drop empty entries."""
    if isinstance(raw, list):
        items = raw
    elif isinstance(raw, dict) and isinstance(raw.get("data"), list):
        items = raw["data"]
    else:
        return []
    return [item for item in items if isinstance(item, dict) and item]


def normalize_date(value: Any) -> Optional[str]:
    d = parse_date(value)
    return d.isoformat() if d else None


def to_number(value: Any) -> Optional[float]:
    """Coerce numbers and numeric strings; None for anything else."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        try:
            number = float(str(value).replace(",", "").strip())
        except ValueError:
            return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def to_count(value: Any) -> int:
    number = to_number(value)
    return int(number) if number is not None else 0


def extract_coordinates(record: Dict[str, Any]) -> Optional[List[float]]:
    """
    Find a coordinate pair under common field names.

    Returns:
        [lon, lat] or None
    """
    candidates = [
        (record.get("longitude"), record.get("latitude")),
        (record.get("lon"), record.get("lat")),
    ]
    coords = record.get("coordinates")
    if isinstance(coords, (list, tuple)) and len(coords) == 2:
        candidates.append((coords[0], coords[1]))

    for lon, lat in candidates:
        lon_n, lat_n = to_number(lon), to_number(lat)
        if lon_n is not None and lat_n is not None:
            return [lon_n, lat_n]
    return None


def location_name(value: Any) -> Optional[str]:
    if isinstance(value, dict):
        value = value.get("value") or value.get("name")
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def infer_governorate(name: Any) -> Optional[str]:
    text = location_name(name)
    if text is None:
        return None
    lowered = text.lower()
    for keywords, governorate in GOVERNORATE_KEYWORDS:
        if any(k in lowered for k in keywords):
            return governorate
    return None


def detect_unit(indicator_name: Any) -> str:
    if not indicator_name:
        return "number"
    name = str(indicator_name).lower()
    for needles, unit in UNIT_RULES:
        if any(n in name for n in needles):
            return unit
    return "number"


def generate_id(category: str, discriminators: Dict[str, Any]) -> str:
    """
    Stable record id: category prefix + SHA-256 over the discriminators.

    Same input always yields the same id.
    """
    payload = json.dumps(discriminators, sort_keys=True, default=str)
    digest = hashlib.sha256(payload.encode("utf-8")).hexdigest()[:16]
    return f"{category}-{digest}"


def build_sources(metadata: Dict[str, Any], fetched_at: str, default_name: str = "Unknown") -> List[Dict[str, Any]]:
    organization = metadata.get("organization")
    if isinstance(organization, dict):
        organization = organization.get("title") or organization.get("name")
    source = {
        "name": metadata.get("source") or organization or default_name,
        "organization": organization or default_name,
        "fetched_at": fetched_at,
    }
    if metadata.get("source_url"):
        source["url"] = metadata["source_url"]
    return [source]


def _present(value: Any) -> bool:
    return value is not None and value != ""


def calculate_completeness(record: Dict[str, Any], category: Category) -> float:
    fields = ["id", "date"] + QUALITY_FIELDS.get(category, DEFAULT_QUALITY_FIELDS)
    return sum(1 for f in fields if _present(record.get(f))) / len(fields)


def calculate_consistency(record: Dict[str, Any], now: datetime) -> float:
    score = 1.0

    if _present(record.get("date")):
        d = parse_date(record["date"])
        if d is None:
            score -= 0.4
        elif d > now.date():
            score -= 0.2

    location = record.get("location")
    coords = location.get("coordinates") if isinstance(location, dict) else None
    if coords:
        lon, lat = coords
        if not (-180 <= lon <= 180 and -90 <= lat <= 90):
            score -= 0.4

    value = record.get("value")
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        if value < 0:
            score -= 0.2
        if value > 1_000_000_000:
            score -= 0.1

    return max(0.0, score)


def _is_official(organization: str) -> bool:
    lowered = organization.lower()
    if any(p in lowered for p in OFFICIAL_SOURCE_PHRASES):
        return True
    tokens = lowered.replace("-", " ").replace("/", " ").split()
    return any(t in OFFICIAL_SOURCE_TOKENS for t in tokens)


def calculate_accuracy(record: Dict[str, Any]) -> float:
    score = 1.0

    sources = record.get("sources")
    if isinstance(sources, list):
        if any(_is_official(str(s.get("organization") or "")) for s in sources if isinstance(s, dict)):
            score += 0.1

    d = parse_date(record.get("date"))
    if d is not None and d < RECENT_DATA_CUTOFF:
        score -= 0.1

    return max(0.0, min(1.0, score))


def compute_quality(record: Dict[str, Any], category: Category, now: datetime) -> Dict[str, Any]:
    """
    Record-level quality block.

    score is the mean of completeness, consistency and accuracy.
    """
    completeness = calculate_completeness(record, category)
    consistency = calculate_consistency(record, now)
    accuracy = calculate_accuracy(record)
    return {
        "score": (completeness + consistency + accuracy) / 3,
        "completeness": completeness,
        "consistency": consistency,
        "accuracy": accuracy,
        "verified": False,
        "confidence": DEFAULT_CONFIDENCE,
    }


def record_timestamp(raw_timestamp: Any, normalized_date: Optional[str]) -> Optional[str]:
    if raw_timestamp:
        return str(raw_timestamp)
    if normalized_date is None:
        return None
    return f"{normalized_date}T00:00:00Z"


def validate_structure(records: Any) -> Dict[str, Any]:
    """Structural check shared by every transformer's validate()."""
    if not isinstance(records, list):
        return {"valid": False, "errors": ["Data must be an array"], "warnings": []}

    errors = []
    warnings = []
    for i, record in enumerate(records):
        if not isinstance(record, dict):
            errors.append(f"Record {i} is not an object")
            continue
        if not record.get("id"):
            errors.append(f"Record {i} has no id")
        if not record.get("date"):
            warnings.append(f"Record {i} has no date")

    return {"valid": not errors, "errors": errors, "warnings": warnings}
