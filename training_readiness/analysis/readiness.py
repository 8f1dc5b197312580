"""Overall fatigue/readiness assessment.

Combines TSB, recovery indicators, the training load indicator and the
athlete profile into a readiness verdict. This is the multi-day view; the
same-session go/no-go scorer used for workout selection lives in
``recommendations.py``.
"""

import logging
import math
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Callable, List, Optional, Sequence

import numpy as np

from ..models import (
    ActivitySample,
    FatigueIndicator,
    IndicatorStatus,
    ReadinessRecommendation,
    ReadinessStatus,
    RecoveryMetricsSample,
    RiskLevel,
    UserTrainingProfile,
    clamp,
)
from .recovery_indicators import RecoveryIndicatorAnalyzer, latest_per_day
from .results import AnalysisResult, ResultBuilder
from .training_load import TrainingLoadCalculator

logger = logging.getLogger(__name__)

OVERTRAINING_TSB = -40
CRITICAL_FATIGUE_SCORE = 85
MIN_RECOVERY_SAMPLES = 7

INDICATOR_WEIGHTS = {
    IndicatorStatus.CRITICAL: 15,
    IndicatorStatus.CONCERNING: 10,
    IndicatorStatus.ELEVATED: 5,
    IndicatorStatus.NORMAL: 0,
}

# (minimum score, status, risk, recommendation), checked top-down
SCORE_TABLE = [
    (CRITICAL_FATIGUE_SCORE, ReadinessStatus.OVERTRAINED, RiskLevel.CRITICAL,
     ReadinessRecommendation.MEDICAL_ATTENTION),
    (70, ReadinessStatus.FATIGUED, RiskLevel.HIGH, ReadinessRecommendation.REST),
    (55, ReadinessStatus.FATIGUED, RiskLevel.MODERATE, ReadinessRecommendation.ACTIVE_RECOVERY),
    (40, ReadinessStatus.NORMAL, RiskLevel.LOW, ReadinessRecommendation.FULL_TRAINING),
]


@dataclass
class FatigueTrend:
    direction: str = "stable"
    duration_days: int = 0
    projected_recovery_days: int = 0
    confidence: float = 50.0


@dataclass
class ReadinessAssessment:
    overall_status: ReadinessStatus
    risk_level: RiskLevel
    recommendation: ReadinessRecommendation
    fatigue_score: float
    indicators: List[FatigueIndicator]
    trend: FatigueTrend
    next_reassessment: date
    tsb: float


@dataclass
class QuickCheckResult:
    can_train: bool
    recommendation: str  # full, easy or rest
    reasons: List[str] = field(default_factory=list)


@dataclass
class OvertrainingCheck:
    has_markers: bool
    markers: List[str]
    severity: str  # mild, moderate or severe
    sufficient_data: bool = True


def score_to_verdict(score: float):
    """Map a fatigue score to (status, risk, recommendation)."""
    for minimum, status, risk, recommendation in SCORE_TABLE:
        if score >= minimum:
            return status, risk, recommendation
    return ReadinessStatus.FRESH, RiskLevel.LOW, ReadinessRecommendation.FULL_TRAINING


class ReadinessAssessor:
    """Readiness verdicts, quick go/no-go checks and overtraining markers."""

    def __init__(
        self,
        load_calculator: Optional[TrainingLoadCalculator] = None,
        indicator_analyzer: Optional[RecoveryIndicatorAnalyzer] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.clock = clock or datetime.now
        self.load_calculator = load_calculator or TrainingLoadCalculator(clock=self.clock)
        self.indicator_analyzer = indicator_analyzer or RecoveryIndicatorAnalyzer()

    def _today(self, today: Optional[date]) -> date:
        return today or self.clock().date()

    def assess(
        self,
        user_id: str,
        activities: Sequence[ActivitySample],
        recovery_samples: Sequence[RecoveryMetricsSample],
        profile: UserTrainingProfile,
        today: Optional[date] = None,
    ) -> AnalysisResult:
        """Full fatigue assessment.

        Args:
            user_id: Athlete identifier, echoed in the result context
            activities: Activity history
            recovery_samples: Recovery metric history
            profile: Athlete profile (age drives an adjustment)
            today: Assessment day, defaults to the clock's date

        Returns:
            AnalysisResult wrapping a ReadinessAssessment
        """
        builder = ResultBuilder(
            "fatigue-assessment",
            user_id,
            self.clock,
            algorithms=["TSB-analysis", "recovery-analysis", "trend-analysis"],
        )
        try:
            if not user_id:
                return builder.fail("User ID is required")
            if profile is None:
                return builder.fail("User profile is required")

            today = self._today(today)
            warnings: List[str] = []

            tsb_result = self.load_calculator.calculate_tsb(activities, today)
            report = self.indicator_analyzer.analyze_indicators(recovery_samples)
            indicators = list(report.indicators)
            load_indicator = self.load_calculator.training_load_indicator(activities, today)
            if load_indicator is not None:
                indicators.append(load_indicator)

            raw_score = self.fatigue_score(tsb_result.value.tsb, indicators, profile)
            status, risk, recommendation = score_to_verdict(raw_score)
            trend = self.analyze_trend(recovery_samples, status, today)

            if tsb_result.data_quality == "poor":
                warnings.append("Limited training history - fatigue assessment may be less accurate")
            if len(recovery_samples) < MIN_RECOVERY_SAMPLES:
                warnings.append("Insufficient recovery data - consider tracking more metrics")
            critical = [i.metric for i in indicators if i.status is IndicatorStatus.CRITICAL]
            if critical:
                warnings.append(f"Critical indicators detected: {', '.join(critical)}")
            warnings.extend(report.warnings)

            builder.context.input_summary = {
                "activities_count": len(activities),
                "recovery_samples_count": len(recovery_samples),
                "tsb": tsb_result.value.tsb,
            }
            builder.context.parameters = {
                "overall_status": status.value,
                "risk_level": risk.value,
            }

            assessment = ReadinessAssessment(
                overall_status=status,
                risk_level=risk,
                recommendation=recommendation,
                fatigue_score=clamp(raw_score),
                indicators=indicators,
                trend=trend,
                next_reassessment=self.next_reassessment(status, trend, today),
                tsb=tsb_result.value.tsb,
            )
            logger.info(f"Readiness for {user_id}: {status.value} (score {raw_score:.0f})")
            return builder.ok(assessment, warnings)
        except Exception as e:
            logger.exception("Fatigue assessment failed")
            return builder.fail(f"Fatigue assessment failed: {e}")

    @staticmethod
    def fatigue_score(
        tsb: float, indicators: Sequence[FatigueIndicator], profile: UserTrainingProfile
    ) -> float:
        """Unclamped fatigue score, starting from a neutral 50."""
        score = 50.0
        if tsb < OVERTRAINING_TSB:
            score += 25
        elif tsb < -25:
            score += 15
        elif tsb < -10:
            score += 10
        elif tsb > 10:
            score -= 10

        score += sum(INDICATOR_WEIGHTS[i.status] for i in indicators)

        # Older athletes need more recovery
        if profile.age > 50:
            score += 5
        elif profile.age > 40:
            score += 3
        return score

    def analyze_trend(
        self,
        recovery_samples: Sequence[RecoveryMetricsSample],
        status: ReadinessStatus,
        today: date,
    ) -> FatigueTrend:
        """Subjective fatigue trend over the last 14 days of samples."""
        cutoff = today - timedelta(days=14)
        recent = [s for s in latest_per_day(recovery_samples) if cutoff <= s.date <= today]
        trend = FatigueTrend()
        if len(recent) < MIN_RECOVERY_SAMPLES:
            return trend

        values = [s.subjective_fatigue for s in recent]
        half = len(values) // 2
        change = float(np.mean(values[half:]) - np.mean(values[:half]))

        if change < -1:
            trend.direction = "improving"
            trend.duration_days = math.ceil(abs(change) * 3)
        elif change > 1.5:
            trend.direction = "rapidly-declining" if change > 2.5 else "declining"
            trend.duration_days = math.ceil(change * 2)

        trend.confidence = min(90.0, len(recent) * 6.0)

        improving = trend.direction == "improving"
        if status is ReadinessStatus.OVERTRAINED:
            trend.projected_recovery_days = 7 if improving else 14
        elif status is ReadinessStatus.FATIGUED:
            trend.projected_recovery_days = 3 if improving else 7
        return trend

    @staticmethod
    def next_reassessment(status: ReadinessStatus, trend: FatigueTrend, today: date) -> date:
        if status is ReadinessStatus.OVERTRAINED:
            days = 2
        elif status is ReadinessStatus.FATIGUED:
            days = 4 if trend.direction == "improving" else 3
        elif status is ReadinessStatus.FRESH:
            days = 10
        else:
            days = 7
        return today + timedelta(days=days)

    def quick_fatigue_check(
        self,
        activities: Sequence[ActivitySample],
        latest_sample: RecoveryMetricsSample,
        today: Optional[date] = None,
    ) -> QuickCheckResult:
        """Same-day go/no-go gate from TSB and the latest recovery sample."""
        result = QuickCheckResult(can_train=True, recommendation="full")

        if len(activities) >= 7:
            tsb = self.load_calculator.calculate_tsb(
                activities, self._today(today), include_trend=False
            ).value.tsb
            if tsb < -30:
                result.can_train = False
                result.recommendation = "rest"
                result.reasons.append(f"Critical training stress balance ({tsb:.1f})")
            elif tsb < -15:
                result.recommendation = "easy"
                result.reasons.append("High training load - easy training only")

        if latest_sample is None:
            return result

        body_battery = latest_sample.body_battery
        if body_battery is not None and body_battery < 20:
            result.can_train = False
            result.recommendation = "rest"
            result.reasons.append("Body battery critically low")
        elif body_battery is not None and body_battery < 40:
            if result.recommendation == "full":
                result.recommendation = "easy"
            result.reasons.append("Low body battery")

        if latest_sample.sleep_score is not None and latest_sample.sleep_score < 60:
            if result.recommendation == "full":
                result.recommendation = "easy"
            result.reasons.append("Poor sleep quality")

        if latest_sample.subjective_fatigue >= 8:
            result.can_train = False
            result.recommendation = "rest"
            result.reasons.append("Very high subjective fatigue")
        elif latest_sample.subjective_fatigue >= 7:
            if result.recommendation == "full":
                result.recommendation = "easy"
            result.reasons.append("High subjective fatigue")

        return result

    def check_overtraining_markers(
        self,
        activities: Sequence[ActivitySample],
        recovery_samples: Sequence[RecoveryMetricsSample],
        today: Optional[date] = None,
    ) -> OvertrainingCheck:
        """Look for overtraining syndrome markers."""
        if len(activities) < 14 or len(recovery_samples) < MIN_RECOVERY_SAMPLES:
            return OvertrainingCheck(
                has_markers=False,
                markers=["Insufficient data for overtraining analysis"],
                severity="mild",
                sufficient_data=False,
            )

        today = self._today(today)
        markers: List[str] = []

        recent = [a.training_load for a in activities if today - timedelta(days=6) <= a.date <= today]
        older = [
            a.training_load
            for a in activities
            if today - timedelta(days=21) <= a.date <= today - timedelta(days=14)
        ]
        if len(recent) >= 3 and len(older) >= 3 and np.mean(recent) < np.mean(older) * 0.8:
            markers.append("Significant performance decline detected")

        last_samples = latest_per_day(recovery_samples)[-7:]
        if np.mean([s.subjective_fatigue for s in last_samples]) >= 7:
            markers.append("Persistently high subjective fatigue")

        sleep = [s.sleep_score for s in last_samples if s.sleep_score is not None]
        if len(sleep) >= 5 and np.mean(sleep) < 65:
            markers.append("Persistent sleep quality issues")

        hrv = [s.hrv for s in last_samples if s.hrv is not None]
        if len(hrv) >= 5 and np.mean(hrv[-3:]) < np.mean(hrv[:-3]) * 0.85:
            markers.append("HRV significantly suppressed")

        if len(markers) >= 3:
            severity = "severe"
        elif len(markers) == 2:
            severity = "moderate"
        else:
            severity = "mild"

        if markers:
            logger.warning(f"Overtraining markers detected ({severity}): {', '.join(markers)}")

        return OvertrainingCheck(has_markers=bool(markers), markers=markers, severity=severity)
