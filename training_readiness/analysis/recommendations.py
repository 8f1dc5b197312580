"""Workout recommendation engine for tomorrow's session.

Recovery here is scored with a coarse same-session scorer over the last
three samples. It is deliberately separate from the multi-day readiness
score in ``readiness.py``.
"""

import logging
import random
import re
from dataclasses import dataclass, field, replace
from datetime import date, datetime, timedelta
from typing import Callable, Dict, List, Optional, Sequence

import numpy as np

from ..config import config
from ..library import REST_TEMPLATE, WorkoutTemplateLibrary, default_library
from ..models import (
    ActivitySample,
    RecoveryMetricsSample,
    RecoveryRecommendation,
    UserTrainingProfile,
    WeatherCondition,
    WorkoutTemplate,
)
from .recovery_indicators import latest_per_day
from .results import AnalysisResult, ResultBuilder
from .training_load import TrainingLoadCalculator, TsbCalculation

logger = logging.getLogger(__name__)

DAY_NAMES = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]

_HARD_WORDS = re.compile(r"hard|intense", re.IGNORECASE)
_STRUCTURED_WORDS = re.compile(r"(threshold\s+)?intervals|threshold", re.IGNORECASE)
_OUTDOOR_WORDS = re.compile(r"outdoor|outside", re.IGNORECASE)


@dataclass
class RecommendationRequest:
    """Everything the recommender needs for one decision."""
    user_id: str
    current_date: date
    profile: UserTrainingProfile
    activities: List[ActivitySample] = field(default_factory=list)
    recovery_samples: List[RecoveryMetricsSample] = field(default_factory=list)
    weather: Optional[WeatherCondition] = None


@dataclass
class RecoveryStatus:
    overall_status: str  # excellent, good, fair or poor
    score: float
    key_factors: List[str]
    recommendation: RecoveryRecommendation


@dataclass
class WorkoutModification:
    type: str  # duration, intensity, sport or location
    original_value: float
    modified_value: float
    reason: str


@dataclass
class WorkoutRecommendation:
    recommended_workout: WorkoutTemplate
    confidence: float
    reasoning: List[str]
    alternatives: List[WorkoutTemplate]
    modifications: List[WorkoutModification]
    recovery_status: str
    weather_consideration: Optional[str] = None
    recovery_adjustment: Optional[str] = None


def score_recovery(samples: Sequence[RecoveryMetricsSample]) -> RecoveryStatus:
    """Coarse recovery score from the last three recovery samples."""
    recent = latest_per_day(samples)[-3:]
    if not recent:
        return RecoveryStatus("fair", 70.0, ["No recovery data available"],
                              RecoveryRecommendation.MODERATE_TRAINING)

    latest = recent[-1]
    factors: List[str] = []
    score = 70.0

    if latest.body_battery is not None:
        if latest.body_battery < 20:
            score -= 30
            factors.append("Very low body battery")
        elif latest.body_battery < 40:
            score -= 15
            factors.append("Low body battery")
        elif latest.body_battery > 80:
            score += 10
            factors.append("High body battery")

    if latest.sleep_score is not None:
        if latest.sleep_score < 60:
            score -= 20
            factors.append("Poor sleep quality")
        elif latest.sleep_score < 75:
            score -= 10
            factors.append("Below average sleep")
        elif latest.sleep_score > 85:
            score += 10
            factors.append("Excellent sleep quality")

    earlier_hrv = [s.hrv for s in recent[:-1] if s.hrv is not None]
    if latest.hrv is not None and earlier_hrv:
        average = float(np.mean(earlier_hrv))
        if average > 0:
            change = (latest.hrv - average) / average
            if change < -0.15:
                score -= 20
                factors.append("HRV significantly below baseline")
            elif change < -0.05:
                score -= 10
                factors.append("HRV below baseline")
            elif change > 0.05:
                score += 5
                factors.append("HRV above baseline")

    subjective = float(np.mean([s.subjective_fatigue for s in recent]))
    if subjective >= 7:
        score -= 25
        factors.append("High subjective fatigue")
    elif subjective >= 5:
        score -= 10
        factors.append("Moderate subjective fatigue")
    elif subjective <= 3:
        score += 10
        factors.append("Low subjective fatigue")

    if score >= 85:
        status, recommendation = "excellent", RecoveryRecommendation.FULL_TRAINING
    elif score >= 70:
        status, recommendation = "good", RecoveryRecommendation.FULL_TRAINING
    elif score >= 50:
        status, recommendation = "fair", RecoveryRecommendation.MODERATE_TRAINING
    elif score >= 30:
        status, recommendation = "poor", RecoveryRecommendation.EASY_TRAINING
    else:
        status, recommendation = "poor", RecoveryRecommendation.REST

    return RecoveryStatus(status, score, factors, recommendation)


class WorkoutRecommender:
    """Picks tomorrow's workout from the template library."""

    def __init__(
        self,
        library: Optional[WorkoutTemplateLibrary] = None,
        load_calculator: Optional[TrainingLoadCalculator] = None,
        rng: Optional[random.Random] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """Initialize the recommender.

        Args:
            library: Workout template catalog
            load_calculator: TSB calculator
            rng: Random source for candidate selection; seed it for reproducible picks
            clock: Source of "now" for result timestamps
        """
        self.clock = clock or datetime.now
        self.library = library or default_library
        self.load_calculator = load_calculator or TrainingLoadCalculator(clock=self.clock)
        self.rng = rng or config.get_random()

    def recommend_tomorrow_workout(self, request: RecommendationRequest) -> AnalysisResult:
        """Recommend the workout for the day after ``request.current_date``.

        Args:
            request: Athlete profile, histories and optional weather

        Returns:
            AnalysisResult wrapping a WorkoutRecommendation
        """
        builder = ResultBuilder(
            "workout-recommendation",
            getattr(request, "user_id", ""),
            self.clock,
            algorithms=["TSB-analysis", "recovery-assessment", "workout-selection"],
        )
        try:
            error = self._validate(request)
            if error:
                return builder.fail(error)

            warnings: List[str] = []
            tsb_result = self.load_calculator.calculate_tsb(request.activities, request.current_date)
            if tsb_result.data_quality == "poor":
                warnings.append("Limited training history - recommendations based on available data")

            recovery = score_recovery(request.recovery_samples)
            recommendation = self._select_base_workout(request, tsb_result, recovery)
            self._apply_contextual_modifications(recommendation, request, recovery)
            recommendation.alternatives = self.generate_alternatives(
                recommendation.recommended_workout, request.profile
            )
            recommendation.confidence = self.calculate_confidence(request, tsb_result, recovery)

            builder.context.input_summary = {
                "current_date": request.current_date.isoformat(),
                "activities_count": len(request.activities),
                "recovery_samples_count": len(request.recovery_samples),
            }
            builder.context.parameters = {
                "tsb": tsb_result.value.tsb,
                "recovery_status": recovery.overall_status,
                "confidence": recommendation.confidence,
            }
            logger.info(
                f"Recommended {recommendation.recommended_workout.type} "
                f"({recommendation.recommended_workout.tag}) for {request.user_id}"
            )
            return builder.ok(recommendation, warnings)
        except Exception as e:
            logger.exception("Workout recommendation failed")
            return builder.fail(f"Recommendation failed: {e}")

    @staticmethod
    def _validate(request: RecommendationRequest) -> Optional[str]:
        if request is None or not request.user_id:
            return "User ID required"
        if not request.current_date:
            return "Current date required"
        if request.profile is None:
            return "User profile required"
        if not request.activities:
            return None

        oldest = min(a.date for a in request.activities)
        if (request.current_date - oldest).days > config.MAX_ACTIVITY_AGE_DAYS:
            return "Activity data too old for reliable recommendations"
        return None

    def _select_base_workout(
        self,
        request: RecommendationRequest,
        tsb_result: TsbCalculation,
        recovery: RecoveryStatus,
    ) -> WorkoutRecommendation:
        reasoning: List[str] = []
        modifications: List[WorkoutModification] = []
        candidates = self.library.all()

        if recovery.recommendation is RecoveryRecommendation.REST:
            candidates = self.library.get_recovery_workouts()
            reasoning.append("Recovery metrics indicate need for rest")
        elif recovery.recommendation is RecoveryRecommendation.EASY_TRAINING:
            candidates = self.library.get_easy_workouts()
            reasoning.append("Recovery metrics suggest easy training only")
        elif recovery.recommendation is RecoveryRecommendation.MODERATE_TRAINING:
            candidates = [t for t in candidates if t.fatigue_score <= 70]
            reasoning.append("Recovery allows moderate intensity training")

        tsb = tsb_result.value.tsb
        if tsb < -30:
            candidates = self.library.get_recovery_workouts()
            reasoning.append(f"TSB of {tsb:.1f} indicates high fatigue - recovery required")
        elif tsb < -10:
            candidates = [t for t in candidates if t.fatigue_score <= 70]
            reasoning.append(f"TSB of {tsb:.1f} suggests limiting high intensity")
        elif tsb > 5:
            reasoning.append(f"TSB of {tsb:.1f} indicates good form for quality training")

        sports = [s.lower() for s in request.profile.preferred_sports]
        if sports:
            preferred = [
                t for t in candidates
                if any(s in t.type.lower() or s in t.description.lower() for s in sports)
            ]
            if preferred:
                candidates = preferred
                reasoning.append(f"Filtered to preferred sports: {', '.join(request.profile.preferred_sports)}")

        if not candidates:
            reasoning.append("No suitable workouts found - defaulting to rest")
            selected = REST_TEMPLATE
        else:
            chosen = candidates[self.rng.randrange(len(candidates))]
            selected = self.library.adjust_workout_for_fitness_level(chosen, request.profile.fitness_level)
            if selected.duration_min != chosen.duration_min:
                modifications.append(WorkoutModification(
                    type="duration",
                    original_value=chosen.duration_min,
                    modified_value=selected.duration_min,
                    reason=f"Adjusted for {request.profile.fitness_level} fitness level",
                ))
            reasoning.append(f"Selected {selected.type} workout based on current training status")

        return WorkoutRecommendation(
            recommended_workout=selected,
            confidence=0.0,
            reasoning=reasoning,
            alternatives=[],
            modifications=modifications,
            recovery_status=recovery.overall_status,
        )

    def _apply_contextual_modifications(
        self,
        recommendation: WorkoutRecommendation,
        request: RecommendationRequest,
        recovery: RecoveryStatus,
    ) -> None:
        workout = recommendation.recommended_workout

        weather = request.weather
        if weather is not None and not weather.is_outdoor_friendly and workout.type in ("run", "bike"):
            recommendation.weather_consideration = (
                f"Weather conditions ({weather.conditions}) suggest indoor training"
            )
            if workout.duration_min > 45:
                duration = max(30.0, workout.duration_min * 0.8)
                recommendation.modifications.append(WorkoutModification(
                    "duration", workout.duration_min, duration, "Reduced duration for indoor training"
                ))
                workout = replace(workout, duration_min=duration)

            description = _OUTDOOR_WORDS.sub("indoor", workout.description)
            if "indoor" not in description:
                description = f"Indoor {description.lower()}"
            workout = replace(workout, description=description)

        tomorrow = request.current_date + timedelta(days=1)
        day_name = DAY_NAMES[tomorrow.weekday()]
        preference = next(
            (p for p in request.profile.preferred_workout_times if p.day_of_week == day_name), None
        )
        if preference is not None and abs(preference.duration - workout.duration_min) > 15:
            duration = min(preference.duration, workout.duration_min * 1.2)
            recommendation.modifications.append(WorkoutModification(
                "duration",
                workout.duration_min,
                duration,
                f"Adjusted to fit {day_name} time preference ({preference.duration:g} min)",
            ))
            workout = replace(workout, duration_min=duration)

        if recovery.overall_status == "poor" and workout.fatigue_score > 30:
            fatigue = max(10.0, workout.fatigue_score * 0.6)
            description = workout.description
            if _HARD_WORDS.search(description):
                description = _STRUCTURED_WORDS.sub(
                    "conversational pace", _HARD_WORDS.sub("easy", description)
                )
            recommendation.modifications.append(WorkoutModification(
                "intensity", workout.fatigue_score, fatigue, "Reduced intensity due to poor recovery status"
            ))
            recommendation.recovery_adjustment = "Intensity reduced to support recovery"
            workout = replace(workout, fatigue_score=fatigue, description=description)

        recommendation.recommended_workout = workout

    def generate_alternatives(
        self, primary: WorkoutTemplate, profile: UserTrainingProfile
    ) -> List[WorkoutTemplate]:
        """Up to three alternatives to the primary workout."""
        alternatives: List[WorkoutTemplate] = []
        templates = self.library.all()

        # Different sport, nearest intensity
        similar = [
            t for t in templates
            if t.type != primary.type and abs(t.fatigue_score - primary.fatigue_score) <= 10
        ]
        if similar:
            nearest = min(similar, key=lambda t: abs(t.fatigue_score - primary.fatigue_score))
            alternatives.append(self.library.adjust_workout_for_fitness_level(nearest, profile.fitness_level))

        # Same sport, different intensity
        same_sport = [t for t in templates if t.type == primary.type and t.tag != primary.tag]
        if same_sport:
            alternatives.append(self.library.adjust_workout_for_fitness_level(
                self.rng.choice(same_sport), profile.fitness_level
            ))

        recovery_options = self.library.get_recovery_workouts()
        if recovery_options and not any(a.recovery_impact == "restorative" for a in alternatives):
            alternatives.append(recovery_options[0])

        return alternatives[:config.MAX_ALTERNATIVES]

    @staticmethod
    def calculate_confidence(
        request: RecommendationRequest, tsb_result: TsbCalculation, recovery: RecoveryStatus
    ) -> float:
        confidence = 100.0

        if tsb_result.data_quality == "poor":
            confidence -= 30
        elif tsb_result.data_quality == "fair":
            confidence -= 15

        if not request.recovery_samples:
            confidence -= 20
        elif len(request.recovery_samples) < 3:
            confidence -= 10

        # TSB says ready but recovery says rest
        if tsb_result.value.tsb > 0 and recovery.recommendation is RecoveryRecommendation.REST:
            confidence -= 15

        if len(request.activities) < 5:
            confidence -= 20
        elif len(request.activities) < 10:
            confidence -= 10

        if (tsb_result.value.interpretation.optimal_training_window
                and recovery.recommendation is RecoveryRecommendation.FULL_TRAINING):
            confidence += 10

        return max(30.0, min(100.0, confidence))

    def workout_for_date(self, request: RecommendationRequest, target_date: date) -> AnalysisResult:
        """Recommendation computed as if ``target_date`` were the current date."""
        return self.recommend_tomorrow_workout(replace(request, current_date=target_date))

    def workout_plan(
        self, request: RecommendationRequest, start_date: date, days: int
    ) -> List[Dict[str, object]]:
        """Day-by-day recommendations.

        Each successful recommendation is fed back as a simulated activity
        (load = fatigue x 2) into a copy of the history before the next day.
        """
        activities = list(request.activities)
        plan = []
        for offset in range(days):
            day = start_date + timedelta(days=offset)
            result = self.workout_for_date(replace(request, activities=list(activities)), day)
            plan.append({"date": day, "recommendation": result})

            if result.success and result.data is not None:
                workout = result.data.recommended_workout
                activities.append(ActivitySample(
                    date=day,
                    sport=workout.type,
                    duration_min=workout.duration_min,
                    distance_km=0.0,
                    training_load=workout.fatigue_score * 2,
                    zone_minutes=(0.0, 0.0, 0.0, 0.0, 0.0),
                ))
        return plan
