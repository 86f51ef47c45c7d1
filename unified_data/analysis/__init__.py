"""
Statistical analysis layer over canonical records.

Modules:
    descriptive - Mean/median/mode, spread, quartiles, outliers, correlation
    time_series - Trend, seasonality, smoothing, forecasts, change points
    spatial - Region and governorate aggregation
    temporal - Period buckets, comparisons, rolling windows, baseline split
    aggregator - Comprehensive analysis document and reports
"""

from . import descriptive
from . import time_series
from . import spatial
from . import temporal
from . import aggregator
