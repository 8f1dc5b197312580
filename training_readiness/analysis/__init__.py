"""Analysis components for training load, readiness and plan adjustment."""

from .training_load import TrainingLoadCalculator
from .recovery_indicators import RecoveryIndicatorAnalyzer
from .readiness import ReadinessAssessor
from .recommendations import RecommendationRequest, WorkoutRecommender
from .plan_rebalancer import PlanRebalancer, RebalanceOptions
from .plan_adjustment import PlanAdjustmentOrchestrator, PlanAdjustmentRequest, PlanConstraints

__all__ = [
    "TrainingLoadCalculator",
    "RecoveryIndicatorAnalyzer",
    "ReadinessAssessor",
    "RecommendationRequest",
    "WorkoutRecommender",
    "PlanRebalancer",
    "RebalanceOptions",
    "PlanAdjustmentOrchestrator",
    "PlanAdjustmentRequest",
    "PlanConstraints",
]
