"""Data quality checks for activity and recovery histories.

Scores how much an analysis can be trusted given the size, completeness and
recency of the supplied data, and screens individual samples against
physiological bounds.
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, List, Optional, Sequence

import numpy as np

from ..models import ActivitySample, RecoveryMetricsSample

logger = logging.getLogger(__name__)


@dataclass
class ValidationResult:
    """Result of a single-sample validation check."""
    is_valid: bool
    reason: Optional[str] = None
    suggested_value: Optional[float] = None


@dataclass
class DataQualityReport:
    score: float
    category: str
    factors: List[str] = field(default_factory=list)


class DataValidator:
    """Physiological sanity checks for incoming samples."""

    PHYSIOLOGICAL_BOUNDS = {
        'training_load': {'min': 0, 'max': 1200},
        'duration_min': {'min': 0, 'max': 1440},
        'distance_km': {'min': 0, 'max': 1000},
        'avg_hr': {'min': 30, 'max': 230},
        'max_hr': {'min': 60, 'max': 230},
        'resting_hr': {'min': 30, 'max': 120},
        'hrv': {'min': 5, 'max': 200},
    }

    def validate_metric(self, metric_name: str, value: Optional[float]) -> ValidationResult:
        """Validate a single metric value against its physiological range.

        Args:
            metric_name: Name of the metric being validated
            value: Value to validate; None is always valid

        Returns:
            ValidationResult with a clipped suggestion when out of range
        """
        if value is None or metric_name not in self.PHYSIOLOGICAL_BOUNDS:
            return ValidationResult(True)
        if np.isnan(value) or np.isinf(value):
            return ValidationResult(False, "Invalid numeric value")

        bounds = self.PHYSIOLOGICAL_BOUNDS[metric_name]
        if value < bounds['min'] or value > bounds['max']:
            return ValidationResult(
                False,
                f"Value {value} outside physiological range [{bounds['min']}, {bounds['max']}]",
                suggested_value=float(np.clip(value, bounds['min'], bounds['max'])),
            )
        return ValidationResult(True)

    def screen_activities(self, activities: Sequence[ActivitySample]) -> List[str]:
        """Messages for every out-of-range activity field."""
        issues = []
        for activity in activities:
            for name in ('training_load', 'duration_min', 'distance_km', 'avg_hr', 'max_hr'):
                result = self.validate_metric(name, getattr(activity, name))
                if not result.is_valid:
                    message = f"{activity.date.isoformat()} {activity.sport} {name}: {result.reason}"
                    logger.warning(message)
                    issues.append(message)
        return issues

    def screen_recovery(self, samples: Sequence[RecoveryMetricsSample]) -> List[str]:
        issues = []
        for sample in samples:
            for name in ('resting_hr', 'hrv'):
                result = self.validate_metric(name, getattr(sample, name))
                if not result.is_valid:
                    message = f"{sample.date.isoformat()} {name}: {result.reason}"
                    logger.warning(message)
                    issues.append(message)
        return issues


def assess_data_quality(
    activities: Sequence[ActivitySample],
    samples: Sequence[RecoveryMetricsSample],
    today: date,
) -> DataQualityReport:
    """Score the trustworthiness of the input histories (0-100)."""
    score = 100
    factors = []

    if not activities:
        score -= 50
        factors.append("No activity data available")
    elif len(activities) < 5:
        score -= 30
        factors.append("Limited activity history")
    elif len(activities) < 15:
        score -= 15
        factors.append("Moderate activity history")
    else:
        factors.append("Good activity history")

    if not samples:
        score -= 30
        factors.append("No recovery data available")
    elif len(samples) < 7:
        score -= 20
        factors.append("Limited recovery data")
    elif len(samples) < 14:
        score -= 10
        factors.append("Moderate recovery data")
    else:
        factors.append("Good recovery data history")

    with_hr = [a for a in activities if a.avg_hr and a.max_hr]
    hr_coverage = len(with_hr) / max(1, len(activities))
    if hr_coverage < 0.3:
        score -= 15
        factors.append("Limited heart rate data")
    elif hr_coverage < 0.7:
        score -= 5
        factors.append("Moderate heart rate coverage")

    with_biometrics = [
        s for s in samples
        if s.body_battery is not None or s.sleep_score is not None or s.hrv is not None
    ]
    if len(with_biometrics) / max(1, len(samples)) < 0.3:
        score -= 10
        factors.append("Limited biometric recovery data")

    if activities:
        days_ago = (today - max(a.date for a in activities)).days
        if days_ago > 14:
            score -= 15
            factors.append("Activity data is getting stale")
        elif days_ago > 7:
            score -= 5
            factors.append("Activity data is more than a week old")

    if score >= 85:
        category = "excellent"
    elif score >= 70:
        category = "good"
    elif score >= 50:
        category = "fair"
    else:
        category = "poor"

    return DataQualityReport(score=max(0, score), category=category, factors=factors)


def summarize_coverage(samples: Sequence[RecoveryMetricsSample]) -> Dict[str, float]:
    """Fraction of samples carrying each optional recovery metric."""
    total = max(1, len(samples))
    return {
        name: sum(1 for s in samples if getattr(s, name) is not None) / total
        for name in ('hrv', 'resting_hr', 'body_battery', 'sleep_score', 'stress_level')
    }
