"""Orchestration layer: aggregate insights over one data snapshot.

The analysis core is stateless. Caching lives here, in an explicit cache
object the caller owns and can share or clear.
"""

import logging
import random
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Callable, Dict, Optional, Sequence, Tuple

from .config import config
from .models import ActivitySample, RecoveryMetricsSample, UserTrainingProfile
from .analysis.readiness import ReadinessAssessor, ReadinessAssessment
from .analysis.recommendations import RecommendationRequest, WorkoutRecommender
from .analysis.training_load import TrainingLoadCalculator

logger = logging.getLogger(__name__)

READINESS_BY_STATUS = {
    "fresh": 85,
    "normal": 70,
    "fatigued": 40,
    "overtrained": 20,
}

TREND_BY_DIRECTION = {
    "improving": "improving",
    "declining": "declining",
    "rapidly-declining": "declining",
}


class InsightCache:
    """TTL cache keyed by (user_id, day, feature)."""

    def __init__(self, ttl_seconds: float = None, clock: Callable[[], float] = None):
        self.ttl_seconds = config.CACHE_TTL_SECONDS if ttl_seconds is None else ttl_seconds
        self.clock = clock or time.monotonic
        self._entries: Dict[Tuple[str, date, str], Tuple[float, Any]] = {}
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    def get(self, user_id: str, day: date, feature: str) -> Optional[Any]:
        key = (user_id, day, feature)
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self.misses += 1
                return None
            stored_at, value = entry
            if self.clock() - stored_at >= self.ttl_seconds:
                del self._entries[key]
                self.misses += 1
                return None
            self.hits += 1
            return value

    def set(self, user_id: str, day: date, feature: str, value: Any) -> None:
        with self._lock:
            self._entries[(user_id, day, feature)] = (self.clock(), value)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def stats(self) -> Dict[str, int]:
        with self._lock:
            return {"entries": len(self._entries), "hits": self.hits, "misses": self.misses}


@dataclass
class QuickStats:
    readiness_score: float = 50
    trend_direction: str = "stable"
    next_recommendation: str = "Continue with current training"
    risk_level: str = "low"


@dataclass
class DashboardInsights:
    quick_stats: QuickStats
    last_updated: datetime
    workout_recommendation: Any = None
    readiness: Any = None
    overtraining: Any = None
    warnings: list = field(default_factory=list)


@dataclass
class TrainingDecision:
    can_train: bool
    recommendation: str
    reasons: list
    confidence: float


class TrainingInsightsService:
    """Runs the independent per-feature analyses for a user snapshot."""

    def __init__(
        self,
        cache: Optional[InsightCache] = None,
        rng: Optional[random.Random] = None,
        clock: Optional[Callable[[], datetime]] = None,
        max_workers: int = None,
    ):
        self.clock = clock or datetime.now
        self.cache = cache
        self.max_workers = max_workers or config.MAX_WORKERS

        calculator = TrainingLoadCalculator(clock=self.clock)
        self.assessor = ReadinessAssessor(load_calculator=calculator, clock=self.clock)
        self.recommender = WorkoutRecommender(load_calculator=calculator, rng=rng, clock=self.clock)

    def dashboard_insights(
        self,
        user_id: str,
        activities: Sequence[ActivitySample],
        recovery_samples: Sequence[RecoveryMetricsSample],
        profile: Optional[UserTrainingProfile] = None,
        today: Optional[date] = None,
    ) -> DashboardInsights:
        """Recommendation, readiness and overtraining check for one snapshot.

        The three analyses share no state and run concurrently. The aggregate
        is cached per user and day when a cache is configured.
        """
        today = today or self.clock().date()
        if self.cache is not None:
            cached = self.cache.get(user_id, today, "dashboard")
            if cached is not None:
                logger.debug(f"Dashboard cache hit for {user_id} on {today}")
                return cached

        profile = profile or UserTrainingProfile.default()
        activities = list(activities)
        recovery_samples = list(recovery_samples)

        try:
            with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                recommendation_future = executor.submit(
                    self.recommender.recommend_tomorrow_workout,
                    RecommendationRequest(
                        user_id=user_id,
                        current_date=today,
                        profile=profile,
                        activities=activities,
                        recovery_samples=recovery_samples,
                    ),
                )
                readiness_future = executor.submit(
                    self.assessor.assess, user_id, activities, recovery_samples, profile, today
                )
                overtraining_future = executor.submit(
                    self.assessor.check_overtraining_markers, activities, recovery_samples, today
                )
                recommendation = recommendation_future.result()
                readiness = readiness_future.result()
                overtraining = overtraining_future.result()
        except Exception:
            logger.exception(f"Error getting dashboard insights for {user_id}")
            return DashboardInsights(
                quick_stats=QuickStats(next_recommendation="Unable to generate recommendation"),
                last_updated=self.clock(),
            )

        insights = DashboardInsights(
            quick_stats=self.quick_stats(recommendation, readiness),
            last_updated=self.clock(),
            workout_recommendation=recommendation.data if recommendation.success else None,
            readiness=readiness.data if readiness.success else None,
            overtraining=overtraining,
            warnings=[w for r in (recommendation, readiness) for w in r.warnings],
        )
        if self.cache is not None:
            self.cache.set(user_id, today, "dashboard", insights)
        return insights

    @staticmethod
    def quick_stats(recommendation, readiness) -> QuickStats:
        stats = QuickStats()
        if readiness.success and isinstance(readiness.data, ReadinessAssessment):
            assessment = readiness.data
            stats.readiness_score = READINESS_BY_STATUS[assessment.overall_status.value]
            stats.risk_level = assessment.risk_level.value
            stats.trend_direction = TREND_BY_DIRECTION.get(assessment.trend.direction, "stable")
        if recommendation.success and recommendation.data is not None:
            workout = recommendation.data.recommended_workout
            stats.next_recommendation = f"{workout.type}: {workout.description}"
        return stats

    def quick_training_decision(
        self,
        activities: Sequence[ActivitySample],
        recovery_samples: Sequence[RecoveryMetricsSample],
        today: Optional[date] = None,
    ) -> TrainingDecision:
        """Go/no-go decision for today with a confidence estimate."""
        try:
            today = today or self.clock().date()
            ordered = sorted(recovery_samples, key=lambda s: s.date)
            latest = ordered[-1] if ordered else RecoveryMetricsSample(date=today, subjective_fatigue=5)

            check = self.assessor.quick_fatigue_check(activities, latest, today)
            confidence = 70
            if len(activities) >= 7:
                confidence += 15
            if len(recovery_samples) >= 3:
                confidence += 15
            return TrainingDecision(
                can_train=check.can_train,
                recommendation=check.recommendation,
                reasons=check.reasons,
                confidence=min(95, confidence),
            )
        except Exception:
            logger.exception("Quick training decision failed")
            return TrainingDecision(
                can_train=True,
                recommendation="easy",
                reasons=["Error assessing fatigue - defaulting to easy training"],
                confidence=30,
            )
