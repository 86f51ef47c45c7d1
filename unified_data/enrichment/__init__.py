"""
Record enrichers.

Modules:
    geospatial - Governorate lookup, region classification, proximity
    temporal - Baseline-relative context and calendar period keys
    trend - Per-indicator trend analysis block
"""

from . import geospatial
from . import temporal
from . import trend
