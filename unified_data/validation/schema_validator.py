"""
Batch quality scoring against named schemas.

Each named schema is a small `required / optional / types` table. It is
compiled once to a Draft 7 JSON Schema; every record is checked with
jsonschema and the failures are reported per record instead of raised.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import jsonschema

from ..models import Category, INDICATOR_CATEGORIES

logger = logging.getLogger(__name__)

DEFAULT_QUALITY_THRESHOLD = 0.8

# Primitive type names -> JSON Schema types. "object" also admits arrays.
JSON_TYPES = {
    "string": "string",
    "number": "number",
    "integer": "integer",
    "boolean": "boolean",
    "object": ["object", "array"],
}

_INDICATOR_SCHEMA = {
    "required": ["id", "date", "value"],
    "optional": ["indicator_code", "indicator_name", "unit", "location", "sources", "quality"],
    "types": {"id": "string", "date": "string", "value": "number", "location": "object"},
}

SCHEMAS: Dict[str, Dict[str, Any]] = {
    # Canonical categories
    Category.CONFLICT.value: {
        "required": ["id", "date", "location", "event_type"],
        "optional": ["fatalities", "injuries", "severity_index", "value", "unit",
                     "actors", "description", "sources", "quality"],
        "types": {"id": "string", "date": "string", "location": "object",
                  "fatalities": "number", "injuries": "number", "value": "number"},
    },
    Category.INFRASTRUCTURE.value: {
        "required": _INDICATOR_SCHEMA["required"],
        "optional": _INDICATOR_SCHEMA["optional"] + ["structure_type", "damage_level"],
        "types": _INDICATOR_SCHEMA["types"],
    },
    # Raw-source schemas
    "healthcare": {
        "required": ["date", "facility_name", "facility_type"],
        "optional": ["location", "incident_type", "casualties", "latitude", "longitude"],
        "types": {"date": "string", "casualties": "object"},
    },
    "demolitions": {
        "required": ["date", "location", "homes_demolished"],
        "optional": ["people_affected", "reason", "structure_type"],
        "types": {"date": "string", "homes_demolished": "number"},
    },
    "casualties": {
        "required": ["date", "killed", "injured"],
        "optional": ["location", "incident_type", "description"],
        "types": {"date": "string", "killed": "number", "injured": "number"},
    },
    "prisoners": {
        "required": ["date"],
        "optional": ["detained", "location", "prison", "age", "gender", "status", "killed", "injured"],
        "types": {"date": "string"},
    },
    "ngo": {
        "required": ["name", "filing_year"],
        "optional": ["ein", "total_revenue", "total_assets", "total_expenses"],
        "types": {"filing_year": "number"},
    },
    "worldbank": {
        "required": ["year", "value", "indicator"],
        "optional": ["indicator_name", "country", "source"],
        "types": {"year": "number", "value": "number", "indicator": "string"},
    },
    "statistical": {
        "required": ["date", "value"],
        "optional": ["indicator", "region", "source", "unit", "category"],
        "types": {"date": "string", "value": "number"},
    },
    "generic": {
        "required": ["id"],
        "optional": ["date", "value"],
        "types": {},
    },
}
for _category in INDICATOR_CATEGORIES:
    SCHEMAS.setdefault(_category.value, _INDICATOR_SCHEMA)


def compile_schema(definition: Dict[str, Any]) -> Dict[str, Any]:
    """
    Build the Draft 7 JSON Schema for a required/optional/types table.

    Required fields must be present and not null/empty. Typed fields may be
    null; the type is only checked when a value is there.
    """
    properties: Dict[str, Any] = {}
    for name in definition.get("required", []):
        properties[name] = {"not": {"enum": [None, ""]}}
    for name, type_name in definition.get("types", {}).items():
        json_type = JSON_TYPES[type_name]
        json_type = (json_type if isinstance(json_type, list) else [json_type]) + ["null"]
        properties.setdefault(name, {})["type"] = json_type
    return {
        "$schema": "http://json-schema.org/draft-07/schema#",
        "type": "object",
        "required": list(definition.get("required", [])),
        "properties": properties,
    }


_VALIDATORS = {
    name: jsonschema.Draft7Validator(compile_schema(definition))
    for name, definition in SCHEMAS.items()
}


@dataclass
class ValidationReport:
    quality_score: float
    completeness: float
    consistency: float
    accuracy: Optional[float]
    meets_threshold: bool
    total_records: int
    valid_records: int
    schema: str
    errors: List[Dict[str, Any]] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "qualityScore": self.quality_score,
            "completeness": self.completeness,
            "consistency": self.consistency,
            "accuracy": self.accuracy,
            "meetsThreshold": self.meets_threshold,
            "totalRecords": self.total_records,
            "validRecords": self.valid_records,
            "schema": self.schema,
            "errors": self.errors,
            "warnings": self.warnings,
        }


def _error_entry(error: jsonschema.ValidationError, index: int) -> Dict[str, Any]:
    if error.validator == "required":
        # "'date' is a required property"
        name = error.message.split("'")[1]
        return {"field": name, "message": f"Missing required field: {name}", "recordIndex": index}

    name = error.path[0] if error.path else None
    if error.validator == "not":
        message = f"Missing required field: {name}"
    elif error.validator == "type" and name is None:
        message = "Record is not an object"
    elif error.validator == "type":
        expected = [t for t in error.validator_value if t != "null"]
        message = f"Invalid type for field {name}: expected {'/'.join(expected)}, got {type(error.instance).__name__}"
    else:
        message = error.message
    return {"field": name, "message": message, "recordIndex": index}


def _present(value: Any) -> bool:
    return value is not None and value != ""


def _field_completeness(records: List[Any], definition: Dict[str, Any]) -> float:
    fields = list(definition.get("required", [])) + list(definition.get("optional", []))
    dict_records = [r for r in records if isinstance(r, dict)]
    if not dict_records:
        return 0.0
    if not fields:
        return 1.0
    per_record = [sum(1 for f in fields if _present(r.get(f))) / len(fields) for r in dict_records]
    return sum(per_record) / len(per_record)


def _mean_accuracy(records: List[Any]) -> Optional[float]:
    values = []
    for r in records:
        quality = r.get("quality") if isinstance(r, dict) else None
        accuracy = quality.get("accuracy") if isinstance(quality, dict) else None
        if isinstance(accuracy, (int, float)) and not isinstance(accuracy, bool):
            values.append(float(accuracy))
    if not values:
        return None
    return sum(values) / len(values)


def validate_dataset(
    dataset: Any,
    schema_name: str = "generic",
    threshold: float = DEFAULT_QUALITY_THRESHOLD,
) -> ValidationReport:
    """
    Score a batch of records against a named schema.

    Never raises for bad data: a non-list dataset yields an all-zero report
    with one structural error, invalid records add error entries.

    Args:
        dataset: List of records
        schema_name: Key of SCHEMAS; unknown names fall back to "generic"
        threshold: meets_threshold is quality_score > threshold

    Returns:
        ValidationReport
    """
    if schema_name not in SCHEMAS:
        logger.warning(f"Unknown schema '{schema_name}', falling back to generic")
        schema_name = "generic"

    if not isinstance(dataset, list):
        return ValidationReport(
            quality_score=0.0,
            completeness=0.0,
            consistency=0.0,
            accuracy=None,
            meets_threshold=False,
            total_records=0,
            valid_records=0,
            schema=schema_name,
            errors=[{"field": None, "message": "Dataset is not an array", "recordIndex": None}],
        )

    validator = _VALIDATORS[schema_name]
    errors: List[Dict[str, Any]] = []
    valid_count = 0
    type_clean = 0

    for index, record in enumerate(dataset):
        record_errors = sorted(
            validator.iter_errors(record),
            key=lambda e: (str(list(e.path)), e.validator),
        )
        if not record_errors:
            valid_count += 1
        if isinstance(record, dict) and not any(e.validator == "type" for e in record_errors):
            type_clean += 1
        errors.extend(_error_entry(e, index) for e in record_errors)

    total = len(dataset)
    quality_score = valid_count / total if total else 0.0

    warnings = []
    if total == 0:
        warnings.append("Dataset is empty")

    return ValidationReport(
        quality_score=quality_score,
        completeness=_field_completeness(dataset, SCHEMAS[schema_name]),
        consistency=type_clean / total if total else 0.0,
        accuracy=_mean_accuracy(dataset),
        meets_threshold=quality_score > threshold,
        total_records=total,
        valid_records=valid_count,
        schema=schema_name,
        errors=errors,
        warnings=warnings,
    )


def validate_record(record: Any, schema_name: str = "generic") -> List[Dict[str, Any]]:
    """Error entries for a single record (recordIndex 0)."""
    validator = _VALIDATORS.get(schema_name, _VALIDATORS["generic"])
    return [_error_entry(e, 0) for e in validator.iter_errors(record)]
