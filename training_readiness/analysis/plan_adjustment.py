"""Plan adjustment for missed workouts, illness, schedule changes and plateaus.

This module provides:
1. Reason-keyed adjustment strategies over a multi-day plan
2. Conservative and aggressive alternative plans
3. Impact assessment and confidence scoring for the adjustment
"""

import logging
import random
from dataclasses import dataclass, field, replace
from datetime import date, datetime
from typing import Callable, Dict, List, Optional, Sequence, Set

import numpy as np

from ..config import config
from ..library import WorkoutTemplateLibrary, default_library
from ..models import (
    AdjustmentAction,
    AdjustmentReason,
    DataValidationError,
    PlannedWorkout,
    UserTrainingProfile,
    round_half_up,
    validate_plan,
)
from .plan_rebalancer import impact_summary, plan_recommendations
from .results import AnalysisResult, ImpactSummary, PlanModificationRecord, ResultBuilder

logger = logging.getLogger(__name__)

GRADUAL_RETURN_STEPS = (0.5, 0.7, 0.9)
MEANINGFUL_WORKOUT_FATIGUE = 10
HIGH_INTENSITY_FATIGUE = 70


@dataclass
class PlanConstraints:
    available_days: List[date] = field(default_factory=list)
    max_daily_duration: Optional[float] = None
    max_weekly_volume: Optional[float] = None  # hours
    avoid_high_intensity: bool = False
    maintain_sport_balance: bool = False
    event_date: Optional[date] = None


@dataclass
class PlanAdjustmentRequest:
    original_plan: List[PlannedWorkout]
    adjustment_reason: Optional[str]
    affected_dates: List[date]
    constraints: PlanConstraints = field(default_factory=PlanConstraints)
    preservation_priorities: List[Dict[str, str]] = field(default_factory=list)


@dataclass
class AdjustmentImpact:
    volume_change: float  # percent
    intensity_change: float  # percent
    rest_days_change: int
    sport_balance_change: Dict[str, int]
    periodization_impact: str  # maintained, slightly-altered or significantly-altered


@dataclass
class AlternativePlan:
    name: str
    description: str
    plan: List[PlannedWorkout]
    tradeoffs: List[str]
    score: float


@dataclass
class PlanAdjustmentResult:
    adjusted_plan: List[PlannedWorkout]
    modifications: List[PlanModificationRecord]
    impact_assessment: AdjustmentImpact
    impact_summary: ImpactSummary
    alternatives: List[AlternativePlan]
    warnings: List[str]
    recommendations: List[str]
    confidence: float


@dataclass
class QuickAdjustment:
    success: bool
    action: str
    reason: str
    adjusted_workout: Optional[PlannedWorkout] = None


@dataclass
class _Adjustment:
    """Working state shared by the strategies."""
    plan: List[PlannedWorkout]
    modifications: List[PlanModificationRecord] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    def index_of(self, day: date) -> Optional[int]:
        return next((i for i, w in enumerate(self.plan) if w.date == day), None)


class PlanAdjustmentOrchestrator:
    """Dispatches plan adjustments by reason."""

    def __init__(
        self,
        library: Optional[WorkoutTemplateLibrary] = None,
        rng: Optional[random.Random] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.library = library or default_library
        self.rng = rng or config.get_random()
        self.clock = clock or datetime.now

        self.strategies = {
            AdjustmentReason.MISSED_WORKOUT: self._handle_missed_workouts,
            AdjustmentReason.ILLNESS: self._handle_illness_injury,
            AdjustmentReason.INJURY: self._handle_illness_injury,
            AdjustmentReason.SCHEDULE_CHANGE: self._handle_schedule_change,
            AdjustmentReason.PERFORMANCE_PLATEAU: self._handle_performance_plateau,
            AdjustmentReason.OVERREACHING: self._handle_overreaching,
        }

    def adjust_plan(
        self,
        user_id: str,
        request: PlanAdjustmentRequest,
        profile: UserTrainingProfile,
    ) -> AnalysisResult:
        """Adjust a training plan.

        Args:
            user_id: Athlete identifier
            request: Plan, affected dates, reason and constraints
            profile: Athlete profile (fitness level scales replacement workouts)

        Returns:
            AnalysisResult wrapping a PlanAdjustmentResult
        """
        builder = ResultBuilder(
            "plan-adjustment",
            user_id,
            self.clock,
            algorithms=["impact-analysis", "plan-generation", "alternative-generation"],
        )
        try:
            error = self._validate(request)
            if error:
                return builder.fail(error)

            request = replace(request, original_plan=list(validate_plan(request.original_plan)))
            reason = AdjustmentReason.parse(request.adjustment_reason)
            affected = set(request.affected_dates)
            profile = profile or UserTrainingProfile.default()

            impact = self.analyze_impact(request)
            adjustment = _Adjustment(plan=list(request.original_plan))
            strategy = self.strategies.get(reason, self._handle_generic)
            strategy(adjustment, affected, request, reason, profile)

            confidence = self.calculate_confidence(request, reason)
            summary = impact_summary(request.original_plan, adjustment.plan, len(adjustment.modifications))

            builder.context.input_summary = {
                "plan_length": len(request.original_plan),
                "affected_dates": [d.isoformat() for d in sorted(affected)],
            }
            builder.context.parameters = {
                "adjustment_reason": reason.value,
                "affected_dates_count": len(affected),
                "confidence": confidence,
            }

            result = PlanAdjustmentResult(
                adjusted_plan=adjustment.plan,
                modifications=adjustment.modifications,
                impact_assessment=impact,
                impact_summary=summary,
                alternatives=self.generate_alternatives(request, affected),
                warnings=adjustment.warnings,
                recommendations=plan_recommendations(adjustment.modifications, summary),
                confidence=confidence,
            )
            logger.info(f"Adjusted plan for {user_id}: {reason.value}, {len(adjustment.modifications)} changes")
            return builder.ok(result, self._impact_warnings(request, impact))
        except Exception as e:
            logger.exception("Plan adjustment failed")
            return builder.fail(f"Plan adjustment failed: {e}")

    @staticmethod
    def _validate(request: PlanAdjustmentRequest) -> Optional[str]:
        if request is None or not request.original_plan:
            return "Original plan is required and cannot be empty"
        if not request.affected_dates:
            return "Affected dates must be specified"
        if not request.adjustment_reason:
            return "Adjustment reason is required"
        try:
            validate_plan(request.original_plan)
        except DataValidationError as e:
            return str(e)

        plan_dates = {w.date for w in request.original_plan}
        missing = [d for d in request.affected_dates if d not in plan_dates]
        if missing:
            return f"Affected dates not found in plan: {', '.join(d.isoformat() for d in missing)}"
        return None

    @staticmethod
    def analyze_impact(request: PlanAdjustmentRequest) -> AdjustmentImpact:
        """Volume, intensity and periodization impact of losing the affected days."""
        plan = request.original_plan
        affected = [w for w in plan if w.date in set(request.affected_dates)]

        total_volume = sum(w.duration_min for w in plan)
        affected_volume = sum(w.duration_min for w in affected)
        volume_change = -(affected_volume / total_volume) * 100 if total_volume > 0 else 0.0

        average_intensity = float(np.mean([w.expected_fatigue for w in plan]))
        affected_intensity = float(np.mean([w.expected_fatigue for w in affected])) if affected else 0.0
        intensity_change = (
            (affected_intensity - average_intensity) / average_intensity * 100 if average_intensity > 0 else 0.0
        )

        sport_balance: Dict[str, int] = {}
        for workout in affected:
            sport_balance[workout.workout_type] = sport_balance.get(workout.workout_type, 0) - 1

        if len(affected) > len(plan) * 0.3:
            periodization = "significantly-altered"
        elif any(w.expected_fatigue > HIGH_INTENSITY_FATIGUE for w in affected):
            periodization = "slightly-altered"
        else:
            periodization = "maintained"

        return AdjustmentImpact(
            volume_change=volume_change,
            # Losing workouts can only reduce intensity
            intensity_change=-abs(intensity_change),
            rest_days_change=-sum(1 for w in affected if w.expected_fatigue <= MEANINGFUL_WORKOUT_FATIGUE),
            sport_balance_change=sport_balance,
            periodization_impact=periodization,
        )

    def _record(
        self,
        adjustment: _Adjustment,
        original: PlannedWorkout,
        new: Optional[PlannedWorkout],
        action: AdjustmentAction,
        reason: str,
    ) -> None:
        adjustment.modifications.append(PlanModificationRecord(
            date=original.date,
            action=action.value,
            original=original,
            new=new,
            reason=reason,
            timestamp=self.clock(),
        ))

    def _replace(
        self,
        adjustment: _Adjustment,
        original: PlannedWorkout,
        new: PlannedWorkout,
        action: AdjustmentAction,
        reason: str,
    ) -> None:
        index = adjustment.index_of(original.date)
        if index is None:
            return
        adjustment.plan[index] = new
        self._record(adjustment, original, new, action, reason)

    @staticmethod
    def cancelled_entry(workout: PlannedWorkout) -> PlannedWorkout:
        """Zero-load placeholder that keeps the day in the plan."""
        return replace(
            workout,
            workout_type="rest",
            description=f"Cancelled: {workout.description}",
            expected_fatigue=0,
            duration_min=0,
            workout_id=None,
            tags=tuple(workout.tags) + ("cancelled",),
            completed=False,
        )

    def _cancel(self, adjustment: _Adjustment, workout: PlannedWorkout, reason: str) -> None:
        self._replace(adjustment, workout, self.cancelled_entry(workout), AdjustmentAction.CANCELLED, reason)

    def _reschedule(
        self,
        adjustment: _Adjustment,
        workouts: Sequence[PlannedWorkout],
        constraints: PlanConstraints,
        blocked: Set[date],
    ) -> List[PlannedWorkout]:
        """Move workouts to free available days. Returns the workouts that moved."""
        used = set(blocked)
        moved = []
        for workout in workouts:
            target = None
            for day in constraints.available_days:
                index = adjustment.index_of(day)
                if day in used or index is None:
                    continue
                if adjustment.plan[index].expected_fatigue <= MEANINGFUL_WORKOUT_FATIGUE:
                    target = index
                    break

            if target is None:
                adjustment.warnings.append(
                    f"Could not reschedule {workout.workout_type} workout from {workout.date.isoformat()}"
                )
                continue

            new_date = adjustment.plan[target].date
            used.add(new_date)
            new_workout = replace(workout, date=new_date, description=f"{workout.description} (rescheduled)")
            adjustment.plan[target] = new_workout
            self._record(
                adjustment, workout, new_workout, AdjustmentAction.MOVED,
                f"Rescheduled from {workout.date.isoformat()} to {new_date.isoformat()}",
            )
            moved.append(workout)
        return moved

    def _handle_missed_workouts(self, adjustment, affected, request, reason, profile):
        missed = [w for w in request.original_plan if w.date in affected]
        for workout in missed:
            self._cancel(adjustment, workout, "Workout was missed")

        high_intensity = [w for w in missed if w.expected_fatigue > HIGH_INTENSITY_FATIGUE]
        if high_intensity:
            self._reschedule(adjustment, high_intensity, request.constraints, blocked=affected)

        if len(missed) > 2:
            adjustment.warnings.append(
                "Multiple workouts missed - consider extending plan duration or reducing weekly volume"
            )
            self._compress_plan(adjustment)

    @staticmethod
    def _compress_plan(adjustment: _Adjustment) -> None:
        # Compression stays a manual step; flag it for review
        adjustment.warnings.append("Plan compression not fully implemented - manual review recommended")

    def _handle_illness_injury(self, adjustment, affected, request, reason, profile):
        for workout in request.original_plan:
            if workout.date not in affected:
                continue
            rest = replace(
                workout,
                workout_type="rest",
                description=f"Rest day due to {reason.value}",
                expected_fatigue=0,
                duration_min=0,
                completed=False,
            )
            self._replace(adjustment, workout, rest, AdjustmentAction.MODIFIED, f"Changed to rest due to {reason.value}")

        self._plan_gradual_return(adjustment, max(affected))
        adjustment.warnings.append(
            "Gradual return to training planned - listen to your body and progress conservatively"
        )

    def _plan_gradual_return(self, adjustment: _Adjustment, last_affected: date) -> None:
        returning = [w for w in adjustment.plan if w.date > last_affected and not w.is_rest]
        returning = sorted(returning, key=lambda w: w.date)[:len(GRADUAL_RETURN_STEPS)]

        for workout, multiplier in zip(returning, GRADUAL_RETURN_STEPS):
            percent = round_half_up(multiplier * 100)
            scaled = replace(
                workout,
                description=f"{workout.description} (gradual return - {percent}%)",
                expected_fatigue=max(10.0, workout.expected_fatigue * multiplier),
                duration_min=max(15.0, workout.duration_min * multiplier),
            )
            self._replace(
                adjustment, workout, scaled, AdjustmentAction.MODIFIED,
                f"Reduced intensity for gradual return ({percent}%)",
            )

        if returning:
            adjustment.warnings.append(
                "First 3 workouts after return have reduced intensity for gradual progression"
            )

    def _handle_schedule_change(self, adjustment, affected, request, reason, profile):
        to_move = [w for w in request.original_plan if w.date in affected]
        for workout in self._reschedule(adjustment, to_move, request.constraints, blocked=affected):
            index = adjustment.index_of(workout.date)
            adjustment.plan[index] = self.cancelled_entry(workout)

    def _handle_performance_plateau(self, adjustment, affected, request, reason, profile):
        for workout in request.original_plan:
            if workout.date not in affected:
                continue
            options = [
                t for t in self.library.all()
                if t.type != workout.workout_type and abs(t.fatigue_score - workout.expected_fatigue) <= 15
            ]
            if not options:
                continue
            template = self.library.adjust_workout_for_fitness_level(
                self.rng.choice(options), profile.fitness_level
            )
            varied = replace(
                workout,
                workout_type=template.type,
                description=f"{template.description} (varied for progression)",
                expected_fatigue=template.fatigue_score,
                duration_min=template.duration_min,
                workout_id=f"{template.type}-{template.tag}",
                completed=False,
            )
            self._replace(adjustment, workout, varied, AdjustmentAction.MODIFIED,
                          "Varied workout type to overcome plateau")

        adjustment.warnings.append("Training variety increased to stimulate adaptation and overcome plateau")

    def _handle_overreaching(self, adjustment, affected, request, reason, profile):
        recovery_templates = self.library.get_recovery_workouts()
        for workout in request.original_plan:
            if workout.date not in affected or workout.expected_fatigue <= 30:
                continue
            if recovery_templates:
                template = recovery_templates[0]
                recovery = replace(
                    workout,
                    workout_type=template.type,
                    description=f"{template.description} (overreaching recovery)",
                    expected_fatigue=template.fatigue_score,
                    duration_min=template.duration_min,
                    workout_id=f"{template.type}-{template.tag}",
                    completed=False,
                )
            else:
                recovery = replace(
                    workout, workout_type="rest", description="Recovery day (overreaching recovery)",
                    expected_fatigue=0, duration_min=0, completed=False,
                )
            self._replace(adjustment, workout, recovery, AdjustmentAction.MODIFIED,
                          "Reduced to recovery due to overreaching")

        adjustment.warnings.append(
            "Training load significantly reduced to address overreaching - prioritize recovery"
        )
        adjustment.warnings.append("Monitor recovery metrics closely and gradually return to normal training")

    def _handle_generic(self, adjustment, affected, request, reason, profile):
        for workout in request.original_plan:
            if workout.date in affected:
                self._cancel(adjustment, workout, "Generic adjustment request")
        adjustment.warnings.append("Workouts removed as requested - consider redistributing training load")

    @staticmethod
    def generate_alternatives(request: PlanAdjustmentRequest, affected: Set[date]) -> List[AlternativePlan]:
        remaining = [w for w in request.original_plan if w.date not in affected]
        lost_load = sum(w.expected_fatigue for w in request.original_plan if w.date in affected)
        extra = lost_load / len(remaining) if remaining else 0.0

        compensated = [
            replace(
                w,
                expected_fatigue=min(100.0, w.expected_fatigue + extra),
                description=f"{w.description} (compensated load)",
            )
            for w in remaining
        ]

        return [
            AlternativePlan(
                name="Conservative Adjustment",
                description="Minimal changes with focus on maintaining consistency",
                plan=list(remaining),
                tradeoffs=["Lower training stress", "May slow progress slightly"],
                score=75,
            ),
            AlternativePlan(
                name="Aggressive Compensation",
                description="Redistribute training load to maintain weekly volume",
                plan=compensated,
                tradeoffs=["Higher training stress on remaining days", "Risk of overreaching"],
                score=60,
            ),
        ]

    @staticmethod
    def calculate_confidence(request: PlanAdjustmentRequest, reason: AdjustmentReason) -> float:
        confidence = 80.0
        count = len(set(request.affected_dates))

        if count > 3:
            confidence -= 15
        if reason is AdjustmentReason.PERFORMANCE_PLATEAU:
            confidence -= 10
        max_daily = request.constraints.max_daily_duration if request.constraints else None
        if max_daily is not None and max_daily < 60:
            confidence -= 10

        if reason is AdjustmentReason.SCHEDULE_CHANGE:
            confidence += 5
        if count == 1:
            confidence += 5

        return max(30.0, min(95.0, confidence))

    @staticmethod
    def _impact_warnings(request: PlanAdjustmentRequest, impact: AdjustmentImpact) -> List[str]:
        warnings = []
        if abs(impact.volume_change) > 20:
            warnings.append(
                f"Significant volume change ({impact.volume_change:.1f}%) - monitor training response"
            )
        if impact.periodization_impact == "significantly-altered":
            warnings.append("Periodization structure significantly altered - consider plan revision")
        if len(request.affected_dates) > len(request.original_plan) * 0.4:
            warnings.append("Large portion of plan affected - consider regenerating entire plan")
        return warnings

    def quick_adjust_workout(
        self, workout: PlannedWorkout, reason: str, new_date: Optional[date] = None
    ) -> QuickAdjustment:
        """Single-entry adjustment for a missed, illness or schedule change."""
        if reason == "missed":
            return QuickAdjustment(True, AdjustmentAction.CANCELLED.value,
                                   "Workout was missed and marked as cancelled",
                                   self.cancelled_entry(workout))
        if reason == "illness":
            rest = replace(workout, workout_type="rest", description="Rest day due to illness",
                           expected_fatigue=0, duration_min=0)
            return QuickAdjustment(True, AdjustmentAction.MODIFIED.value,
                                   "Replaced with rest day due to illness", rest)
        if reason == "schedule":
            if new_date is None:
                return QuickAdjustment(False, AdjustmentAction.CANCELLED.value,
                                       "New date required for schedule change")
            moved = replace(workout, date=new_date, description=f"{workout.description} (rescheduled)")
            return QuickAdjustment(True, AdjustmentAction.MOVED.value,
                                   f"Rescheduled from {workout.date.isoformat()} to {new_date.isoformat()}",
                                   moved)
        return QuickAdjustment(False, AdjustmentAction.CANCELLED.value, "Unknown adjustment reason")
