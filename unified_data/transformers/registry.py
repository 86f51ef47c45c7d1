"""
Transformer lookup by category.

A Transformer is a plain value object bundling the functions the pipeline
calls; category-specific behaviour is selected from TRANSFORM_FUNCTIONS.
"""

from dataclasses import dataclass
from datetime import datetime
from functools import partial
from typing import Any, Callable, Dict, List, Optional, Union

from ..models import Category, DEFAULT_BASELINE_DATE, INDICATOR_CATEGORIES, parse_category
from .common import validate_structure
from .conflict import transform_conflict
from .indicator import enrich_indicator, transform_indicator

Records = List[Dict[str, Any]]


@dataclass(frozen=True)
class Transformer:
    category: Category
    transform: Callable[[Any, Dict[str, Any]], Records]
    # enrich(records, baseline_date=None); None falls back to the build-time baseline
    enrich: Optional[Callable[..., Records]] = None
    validate: Optional[Callable[[Any], Dict[str, Any]]] = None


def _conflict(baseline_date: str, now: Optional[datetime]) -> Transformer:
    # Conflict records carry no indicator series, so no trend enrichment
    return Transformer(
        category=Category.CONFLICT,
        transform=lambda raw, metadata=None: transform_conflict(raw, metadata, now=now),
        validate=validate_structure,
    )


def _indicator(category: Category, default_baseline: str, now: Optional[datetime]) -> Transformer:
    return Transformer(
        category=category,
        transform=lambda raw, metadata=None: transform_indicator(raw, metadata, category=category, now=now),
        enrich=lambda records, baseline_date=None: enrich_indicator(records, baseline_date or default_baseline),
        validate=validate_structure,
    )


TRANSFORM_FUNCTIONS: Dict[Category, Callable[..., Transformer]] = {
    Category.CONFLICT: _conflict,
}
for _category in INDICATOR_CATEGORIES:
    TRANSFORM_FUNCTIONS[_category] = partial(_indicator, _category)


def get_transformer(
    category: Union[str, Category],
    baseline_date: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Transformer:
    """
    Build the transformer for a category.

    Args:
        category: Category name or enum member
        baseline_date: Default baseline for trend enrichment, overridable per enrich call
        now: Fixed clock for record timestamps (UTC now per call when None)

    Raises:
        TransformError: If the category is unknown
    """
    resolved = parse_category(category)
    return TRANSFORM_FUNCTIONS[resolved](baseline_date or DEFAULT_BASELINE_DATE, now)
