"""
Validators.

Modules:
    schema_validator - Batch quality score against named schemas (jsonschema)
    time_series - Continuity, outlier and trend checks for a series
"""

from .schema_validator import SCHEMAS, ValidationReport, validate_dataset
from .time_series import validate_time_series

__all__ = ["SCHEMAS", "ValidationReport", "validate_dataset", "validate_time_series"]
