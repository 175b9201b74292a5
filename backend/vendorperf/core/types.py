"""
Vendor Performance - Bounded Numeric Types

Percentages:  0-100 (on-time %, quality %, issue resolution, ESG ratios)
Star scores:  0-5   (manual ratings, ESG sub-scores, overall rating)

All schemas that carry one of these values MUST import the type from
here so range checks live in one place.
"""

from decimal import Decimal
from typing import Annotated, Any

from pydantic import BeforeValidator, PlainSerializer, WithJsonSchema


# =============================================================================
# RANGE HELPERS
# =============================================================================

def _bounded(v: Any, low: float, high: float, label: str) -> float:
    if isinstance(v, bool):
        raise ValueError(f"{label} must be numeric, got bool")
    
    if isinstance(v, (int, float, Decimal)):
        value = float(v)
    elif isinstance(v, str):
        try:
            value = float(Decimal(v))
        except Exception:
            raise ValueError(f"Invalid {label}: {v}")
    else:
        raise ValueError(f"Invalid {label} type: {type(v)}")
    
    if value != value:
        raise ValueError(f"{label} cannot be NaN")
    if value < low or value > high:
        raise ValueError(f"{label} must be between {low:g} and {high:g}, got {value:g}")
    return value


def _round2(v: float) -> float:
    return round(v, 2)


# =============================================================================
# PERCENTAGE (0-100)
# =============================================================================

def _validate_percentage(v: Any) -> float:
    return _bounded(v, 0, 100, "percentage")


Percentage = Annotated[
    float,
    BeforeValidator(_validate_percentage),
    PlainSerializer(_round2),
    WithJsonSchema({"type": "number", "minimum": 0, "maximum": 100}),
]


# =============================================================================
# STAR SCORE (0-5)
# =============================================================================

def _validate_star_score(v: Any) -> float:
    return _bounded(v, 0, 5, "score")


StarScore = Annotated[
    float,
    BeforeValidator(_validate_star_score),
    PlainSerializer(_round2),
    WithJsonSchema({"type": "number", "minimum": 0, "maximum": 5}),
]
