"""
Vendor Performance - Weighted Scorecard Calculator

Combines raw period metrics and the ESG score into one 0-100 composite
using a tenant-configurable weight set.

CONVERSIONS (all to 0-100):
- Quality %, on-time %:     as-is
- Cost index:               clamp(200 - index, 0, 100)  (lower TCO is better)
- Service:                  mean of responsiveness, communication (0-5 stars)
                            and issue resolution rate (%)
- Innovation, ESG overall:  0-5 stars * 20

RENORMALIZATION:
A family with no inputs is skipped and its weight leaves the
denominator, so missing data never dilutes the score.
"""

from typing import List, Optional, Tuple

from vendorperf.core.errors import ValidationError
from vendorperf.models.performance import (
    ScorecardConfigInput,
    ScorecardConfigRecord,
    ScorecardMetrics,
    ScorecardWeights,
)


WEIGHT_SUM_TOLERANCE = 0.01
STAR_TO_PERCENT = 20.0


DEFAULT_SCORECARD_CONFIG = ScorecardConfigRecord(
    config_name="Default Scorecard",
    quality_weight=30.0,
    delivery_weight=25.0,
    cost_weight=20.0,
    service_weight=15.0,
    innovation_weight=5.0,
    esg_weight=5.0,
    excellent_threshold=90,
    good_threshold=75,
    acceptable_threshold=60,
    review_frequency_months=3,
)


def _clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return max(low, min(high, value))


def cost_index_to_score(cost_index: float) -> float:
    """Index 100 (par) scores 100; every point above par costs a point."""
    return _clamp(200.0 - cost_index)


def service_score(metrics: ScorecardMetrics) -> Optional[float]:
    """Mean of the service signals that are present, or None."""
    parts: List[float] = []
    if metrics.responsiveness_score is not None:
        parts.append(metrics.responsiveness_score * STAR_TO_PERCENT)
    if metrics.communication_score is not None:
        parts.append(metrics.communication_score * STAR_TO_PERCENT)
    if metrics.issue_resolution_rate is not None:
        parts.append(metrics.issue_resolution_rate)
    
    if not parts:
        return None
    return sum(parts) / len(parts)


def score_components(
    metrics: ScorecardMetrics,
    esg_score: Optional[float],
    weights: ScorecardWeights,
) -> List[Tuple[str, float, float]]:
    """(family, score 0-100, weight) for each family that has data."""
    components: List[Tuple[str, float, float]] = []
    
    if metrics.quality_percentage is not None:
        components.append(("quality", _clamp(metrics.quality_percentage), weights.quality_weight))
    
    if metrics.on_time_percentage is not None:
        components.append(("delivery", _clamp(metrics.on_time_percentage), weights.delivery_weight))
    
    if metrics.cost_index is not None:
        components.append(("cost", cost_index_to_score(metrics.cost_index), weights.cost_weight))
    
    service = service_score(metrics)
    if service is not None:
        components.append(("service", _clamp(service), weights.service_weight))
    
    if metrics.innovation_score is not None:
        components.append((
            "innovation",
            _clamp(metrics.innovation_score * STAR_TO_PERCENT),
            weights.innovation_weight,
        ))
    
    if esg_score is not None:
        components.append(("esg", _clamp(esg_score * STAR_TO_PERCENT), weights.esg_weight))
    
    return components


def calculate_weighted_score(
    metrics: ScorecardMetrics,
    esg_score: Optional[float],
    config: ScorecardWeights,
) -> float:
    """
    Composite 0-100 score renormalized over the families with data.
    
    Returns 0.0 when no family has data (or every present family
    carries zero weight).
    """
    components = score_components(metrics, esg_score, config)
    
    total_weight = sum(weight for _, _, weight in components)
    if total_weight <= 0:
        return 0.0
    
    weighted_sum = sum(score * weight for _, score, weight in components)
    return round(weighted_sum / total_weight, 2)


def validate_scorecard_config(config: ScorecardConfigInput) -> None:
    """
    Reject an invalid configuration before it is stored.
    
    Raises:
        ValidationError: weights outside [0, 100] or not summing to 100,
            thresholds unordered or out of range, bad review cadence.
    """
    weights = {
        "quality_weight": config.quality_weight,
        "delivery_weight": config.delivery_weight,
        "cost_weight": config.cost_weight,
        "service_weight": config.service_weight,
        "innovation_weight": config.innovation_weight,
        "esg_weight": config.esg_weight,
    }
    
    for name, value in weights.items():
        if value < 0 or value > 100:
            raise ValidationError(f"{name} must be between 0 and 100, got {value}")
    
    total = sum(weights.values())
    if abs(total - 100.0) > WEIGHT_SUM_TOLERANCE:
        raise ValidationError(f"Scorecard weights must sum to 100, got {total:.2f}")
    
    thresholds = {
        "acceptable_threshold": config.acceptable_threshold,
        "good_threshold": config.good_threshold,
        "excellent_threshold": config.excellent_threshold,
    }
    for name, value in thresholds.items():
        if value < 0 or value > 100:
            raise ValidationError(f"{name} must be between 0 and 100, got {value}")
    
    if not (config.acceptable_threshold < config.good_threshold < config.excellent_threshold):
        raise ValidationError(
            "Thresholds must be ordered: acceptable < good < excellent "
            f"(got {config.acceptable_threshold} / {config.good_threshold} / {config.excellent_threshold})"
        )
    
    if config.review_frequency_months < 1 or config.review_frequency_months > 12:
        raise ValidationError(
            f"review_frequency_months must be between 1 and 12, got {config.review_frequency_months}"
        )
    
    if not config.config_name or not config.config_name.strip():
        raise ValidationError("config_name is required")
