"""
Vendor Performance - Weighted Scorecard Tests

Weighted score must be renormalized over the families that have data
and configuration must be rejected before it is stored.
"""

import pytest

from vendorperf.core.errors import ValidationError
from vendorperf.models.performance import ScorecardConfigInput, ScorecardMetrics
from vendorperf.services.scorecard_calculator import (
    DEFAULT_SCORECARD_CONFIG,
    calculate_weighted_score,
    cost_index_to_score,
    service_score,
    validate_scorecard_config,
)


class TestWeightedScore:
    """Composite 0-100 score."""
    
    def test_no_data_scores_zero(self):
        """A period with no inputs at all scores 0, not an error."""
        assert calculate_weighted_score(ScorecardMetrics(), None, DEFAULT_SCORECARD_CONFIG) == 0.0
    
    def test_single_family_is_its_own_score(self):
        """Only quality present: the score is the quality percentage."""
        metrics = ScorecardMetrics(quality_percentage=82.5)
        assert calculate_weighted_score(metrics, None, DEFAULT_SCORECARD_CONFIG) == 82.5
    
    def test_missing_families_do_not_dilute(self):
        """Quality 90 at weight 30 and delivery 60 at weight 25 -> 76.36."""
        metrics = ScorecardMetrics(quality_percentage=90, on_time_percentage=60)
        score = calculate_weighted_score(metrics, None, DEFAULT_SCORECARD_CONFIG)
        assert score == pytest.approx((90 * 30 + 60 * 25) / 55, abs=0.01)
    
    def test_all_families_present(self):
        """Every family converted to 0-100 and weighted by the default config."""
        metrics = ScorecardMetrics(
            quality_percentage=100,
            on_time_percentage=100,
            cost_index=100,
            responsiveness_score=5,
            communication_score=5,
            issue_resolution_rate=100,
            innovation_score=5,
        )
        assert calculate_weighted_score(metrics, 5.0, DEFAULT_SCORECARD_CONFIG) == 100.0
    
    def test_esg_score_is_star_scaled(self):
        """ESG overall 2.5 stars contributes 50 points."""
        assert calculate_weighted_score(ScorecardMetrics(), 2.5, DEFAULT_SCORECARD_CONFIG) == 50.0
    
    def test_zero_weight_family_is_ignored(self):
        """A family with data but weight 0 does not move the score."""
        config = DEFAULT_SCORECARD_CONFIG.model_copy(update={"innovation_weight": 0.0})
        metrics = ScorecardMetrics(quality_percentage=80, innovation_score=0)
        assert calculate_weighted_score(metrics, None, config) == 80.0
    
    def test_score_is_rounded_to_two_places(self):
        metrics = ScorecardMetrics(quality_percentage=66.67, on_time_percentage=50)
        score = calculate_weighted_score(metrics, None, DEFAULT_SCORECARD_CONFIG)
        assert score == round(score, 2)


class TestConversions:
    """Raw metric to 0-100 conversions."""
    
    def test_cost_index_par_scores_full(self):
        assert cost_index_to_score(100) == 100.0
    
    def test_cost_index_above_par_loses_points(self):
        assert cost_index_to_score(130) == 70.0
    
    def test_cost_index_is_clamped(self):
        """Extreme indexes stay inside 0-100."""
        assert cost_index_to_score(250) == 0.0
        assert cost_index_to_score(40) == 100.0
    
    def test_service_score_averages_present_signals(self):
        """Responsiveness 4 stars (80) and resolution 60% average to 70."""
        metrics = ScorecardMetrics(responsiveness_score=4, issue_resolution_rate=60)
        assert service_score(metrics) == pytest.approx(70.0)
    
    def test_service_score_absent(self):
        assert service_score(ScorecardMetrics(quality_percentage=90)) is None


class TestMetricRanges:
    """Bounded metric types reject out-of-range input."""
    
    def test_percentage_above_100_rejected(self):
        with pytest.raises(ValueError):
            ScorecardMetrics(quality_percentage=101)
    
    def test_star_score_above_5_rejected(self):
        with pytest.raises(ValueError):
            ScorecardMetrics(responsiveness_score=5.5)
    
    def test_nan_rejected(self):
        with pytest.raises(ValueError):
            ScorecardMetrics(on_time_percentage=float("nan"))


class TestConfigValidation:
    """Scorecard configuration checks."""
    
    def test_default_weights_are_valid(self):
        validate_scorecard_config(ScorecardConfigInput(config_name="Default"))
    
    def test_weights_must_sum_to_100(self):
        """30+25+20+15+5+10 = 105 is rejected."""
        config = ScorecardConfigInput(config_name="Heavy ESG", esg_weight=10)
        with pytest.raises(ValidationError, match="sum to 100"):
            validate_scorecard_config(config)
    
    def test_sum_tolerance(self):
        """Rounding noise within 0.01 is accepted."""
        config = ScorecardConfigInput(
            config_name="Thirds",
            quality_weight=33.33,
            delivery_weight=33.33,
            cost_weight=33.34,
            service_weight=0,
            innovation_weight=0,
            esg_weight=0,
        )
        validate_scorecard_config(config)
    
    def test_negative_weight_rejected(self):
        config = ScorecardConfigInput(
            config_name="Negative",
            quality_weight=-5,
            delivery_weight=60,
        )
        with pytest.raises(ValidationError, match="quality_weight"):
            validate_scorecard_config(config)
    
    def test_thresholds_must_be_ordered(self):
        config = ScorecardConfigInput(config_name="Bad", good_threshold=95)
        with pytest.raises(ValidationError, match="ordered"):
            validate_scorecard_config(config)
    
    def test_threshold_out_of_range(self):
        config = ScorecardConfigInput(config_name="Bad", excellent_threshold=120)
        with pytest.raises(ValidationError):
            validate_scorecard_config(config)
    
    def test_review_frequency_range(self):
        config = ScorecardConfigInput(config_name="Bad", review_frequency_months=13)
        with pytest.raises(ValidationError, match="review_frequency_months"):
            validate_scorecard_config(config)
    
    def test_blank_name_rejected(self):
        config = ScorecardConfigInput(config_name="   ")
        with pytest.raises(ValidationError, match="config_name"):
            validate_scorecard_config(config)
