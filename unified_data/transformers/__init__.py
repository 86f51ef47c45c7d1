"""
Category transformers.

Modules:
    common - Shared field extraction, id and quality helpers
    conflict - Conflict event transform
    indicator - Indicator time-series transform and trend enrich
    registry - Transformer value object and category lookup
"""

from .registry import Transformer, get_transformer

__all__ = ["Transformer", "get_transformer"]
