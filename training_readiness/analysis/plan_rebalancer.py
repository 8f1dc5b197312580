"""Single-day plan modifications with load redistribution.

A modification that removes load (e.g. turning a session into a rest day)
spreads the lost fatigue over the days after the modified one. Days at or
before the modified index are never touched.
"""

import logging
import math
from dataclasses import dataclass, replace
from datetime import date, datetime
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from ..config import config
from ..library import WorkoutTemplateLibrary, default_library
from ..models import (
    DataValidationError,
    ModificationType,
    PlannedWorkout,
    WorkoutTemplate,
    clamp,
    round_half_up,
    validate_plan,
)
from .results import ImpactSummary, PlanModificationRecord, PlanModificationResult

logger = logging.getLogger(__name__)

SUBSTITUTION_TYPES = ("run", "bike", "strength", "mobility")


@dataclass
class RebalanceOptions:
    redistribute_load: bool = True
    maintain_weekly_volume: bool = True
    preserve_hard_days: bool = True
    max_daily_fatigue_increase: float = None
    max_fatigue: float = None

    def __post_init__(self):
        if self.max_daily_fatigue_increase is None:
            self.max_daily_fatigue_increase = config.MAX_DAILY_FATIGUE_INCREASE
        if self.max_fatigue is None:
            self.max_fatigue = config.MAX_REBALANCED_FATIGUE


def total_load(plan: Sequence[PlannedWorkout]) -> float:
    return sum(w.expected_fatigue for w in plan)


def total_volume(plan: Sequence[PlannedWorkout]) -> float:
    return sum(w.duration_min for w in plan)


def impact_summary(
    original: Sequence[PlannedWorkout], adjusted: Sequence[PlannedWorkout], modification_count: int
) -> ImpactSummary:
    return ImpactSummary(
        days_affected=modification_count,
        total_load_change=total_load(adjusted) - total_load(original),
        weekly_volume_change=total_volume(adjusted) - total_volume(original),
    )


def intensity_label(fatigue: float) -> str:
    if fatigue <= 40:
        return "Easy"
    if fatigue <= 65:
        return "Moderate"
    if fatigue <= 85:
        return "Hard"
    return "Extreme"


def _signed(value: float) -> str:
    return f"{'+' if value > 0 else ''}{value:g}"


def plan_warnings(summary: ImpactSummary) -> List[str]:
    warnings = []
    if abs(summary.total_load_change) > 50:
        warnings.append(f"Significant training load change: {_signed(summary.total_load_change)}")
    if abs(summary.weekly_volume_change) > 60:
        warnings.append(f"Weekly volume changed by {summary.weekly_volume_change:g} minutes")
    if summary.days_affected > 3:
        warnings.append(f"Multiple days affected ({summary.days_affected}) - may impact training progression")
    return warnings


def plan_recommendations(
    modifications: Sequence[PlanModificationRecord], summary: ImpactSummary
) -> List[str]:
    recommendations = []
    if summary.total_load_change < -30:
        recommendations.append("Consider adding an extra easy workout this week to maintain training volume")
    if any(m.action == ModificationType.CHANGE_TO_REST.value for m in modifications):
        recommendations.append("Ensure adequate nutrition and hydration on rest days for optimal recovery")
    if summary.days_affected > 2:
        recommendations.append("Monitor your response to the adjusted training load over the next few days")
    return recommendations


class PlanRebalancer:
    """Applies one-day edits to a plan and rebalances the remaining days."""

    def __init__(
        self,
        library: Optional[WorkoutTemplateLibrary] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.library = library or default_library
        self.clock = clock or datetime.now

    def modify_workout(
        self,
        plan: Sequence[PlannedWorkout],
        day: date,
        modification_type: Any,
        new_workout_data: Optional[Dict[str, Any]] = None,
        reason: Optional[str] = None,
        options: Optional[RebalanceOptions] = None,
    ) -> PlanModificationResult:
        """Modify the workout on ``day`` and rebalance the rest of the plan.

        Args:
            plan: Plan entries (left untouched); the adjusted plan is date-ordered
                and duplicate dates are rejected
            day: Date of the entry to modify
            modification_type: A ModificationType or its string value
            new_workout_data: ``workout_type``, ``duration_min`` or
                ``expected_fatigue`` depending on the modification
            reason: Free-text reason recorded in the audit trail
            options: Rebalancing options

        Returns:
            PlanModificationResult; ``success`` is False with the reason in
            ``warnings`` when the edit cannot be applied
        """
        try:
            return self._modify_workout(plan, day, modification_type, new_workout_data or {}, reason,
                                        options or RebalanceOptions())
        except Exception as e:
            logger.exception("Plan modification failed")
            return self._failure(f"Plan modification failed: {e}")

    def _modify_workout(
        self,
        plan: Sequence[PlannedWorkout],
        day: date,
        modification_type: Any,
        data: Dict[str, Any],
        reason: Optional[str],
        options: RebalanceOptions,
    ) -> PlanModificationResult:
        try:
            plan = list(validate_plan(plan))
        except DataValidationError as e:
            return self._failure(str(e))

        index = next((i for i, w in enumerate(plan) if w.date == day), None)
        if index is None:
            return self._failure("Workout not found for the specified date")

        try:
            modification_type = ModificationType(modification_type)
        except ValueError:
            return self._failure("Invalid modification type")

        original = plan[index]
        if modification_type is ModificationType.CHANGE_TO_REST:
            new_workout = self.create_rest_day(original)
        elif modification_type is ModificationType.CHANGE_WORKOUT_TYPE:
            if not data.get("workout_type"):
                return self._failure("New workout type must be specified")
            new_workout = self.change_workout_type(original, data["workout_type"])
        elif modification_type is ModificationType.ADJUST_DURATION:
            if data.get("duration_min") is None:
                return self._failure("New duration must be specified")
            new_workout = self.adjust_duration(original, float(data["duration_min"]))
        else:
            if data.get("expected_fatigue") is None:
                return self._failure("New intensity level must be specified")
            new_workout = self.adjust_intensity(original, float(data["expected_fatigue"]))

        adjusted = list(plan)
        adjusted[index] = new_workout
        modifications = [PlanModificationRecord(
            date=day,
            action=modification_type.value,
            original=original,
            new=new_workout,
            reason=reason,
            timestamp=self.clock(),
        )]

        load_delta = new_workout.expected_fatigue - original.expected_fatigue
        if options.redistribute_load and load_delta < -config.REDISTRIBUTION_THRESHOLD:
            adjusted, redistributed = self.redistribute_load(adjusted, index, abs(load_delta), options)
            modifications.extend(redistributed)

        summary = impact_summary(plan, adjusted, len(modifications))
        return PlanModificationResult(
            success=True,
            adjusted_plan=adjusted,
            modifications=modifications,
            impact_summary=summary,
            warnings=plan_warnings(summary),
            recommendations=plan_recommendations(modifications, summary),
        )

    @staticmethod
    def create_rest_day(workout: PlannedWorkout) -> PlannedWorkout:
        return replace(
            workout,
            workout_type="rest",
            description="Rest day - recovery and relaxation",
            expected_fatigue=0,
            duration_min=0,
            workout_id="rest-zone1",
        )

    def change_workout_type(self, workout: PlannedWorkout, new_type: str) -> PlannedWorkout:
        """Swap to the template of ``new_type`` nearest in fatigue."""
        candidates = self.library.get_workouts_by_type(new_type)
        if not candidates:
            return replace(
                workout,
                workout_type=new_type,
                description=f"{new_type} workout",
                expected_fatigue=min(workout.expected_fatigue, 60),
                workout_id=f"{new_type}-basic",
            )

        best = min(candidates, key=lambda t: abs(t.fatigue_score - workout.expected_fatigue))
        return replace(
            workout,
            workout_type=best.type,
            description=best.description,
            expected_fatigue=best.fatigue_score,
            duration_min=best.duration_min,
            workout_id=f"{best.type}-{best.tag}",
        )

    @staticmethod
    def adjust_duration(workout: PlannedWorkout, new_duration: float) -> PlannedWorkout:
        # Fatigue scales with the square root of the duration ratio
        ratio = new_duration / max(workout.duration_min, 1)
        fatigue = round_half_up(workout.expected_fatigue * math.sqrt(ratio))
        return replace(
            workout,
            duration_min=new_duration,
            expected_fatigue=clamp(fatigue),
            description=f"{workout.description} ({new_duration:g} min)",
        )

    @staticmethod
    def adjust_intensity(workout: PlannedWorkout, new_intensity: float) -> PlannedWorkout:
        return replace(
            workout,
            expected_fatigue=clamp(new_intensity),
            description=f"{intensity_label(new_intensity)} {workout.workout_type} (intensity adjusted)",
        )

    def redistribute_load(
        self,
        plan: List[PlannedWorkout],
        modified_index: int,
        lost_load: float,
        options: RebalanceOptions,
    ) -> Tuple[List[PlannedWorkout], List[PlanModificationRecord]]:
        """Spread lost fatigue evenly over the days after ``modified_index``."""
        adjusted = list(plan)
        records: List[PlanModificationRecord] = []
        remaining_days = len(adjusted) - modified_index - 1
        if remaining_days <= 0:
            logger.debug("No remaining days to redistribute load")
            return adjusted, records

        per_day = lost_load / remaining_days
        for i in range(modified_index + 1, len(adjusted)):
            workout = adjusted[i]
            if workout.is_rest:
                continue
            if options.preserve_hard_days and workout.expected_fatigue > config.HARD_DAY_FATIGUE:
                continue

            ceiling = min(workout.expected_fatigue + options.max_daily_fatigue_increase, options.max_fatigue)
            if ceiling <= workout.expected_fatigue:
                continue

            increase = min(per_day, ceiling - workout.expected_fatigue)
            # Extra load comes with extra minutes only when volume is kept
            extra_minutes = round_half_up(increase * 0.5) if options.maintain_weekly_volume else 0
            new_workout = replace(
                workout,
                expected_fatigue=workout.expected_fatigue + increase,
                duration_min=workout.duration_min + extra_minutes,
                description=f"{workout.description} (adjusted for load redistribution)",
            )
            adjusted[i] = new_workout
            records.append(PlanModificationRecord(
                date=workout.date,
                action=ModificationType.ADJUST_INTENSITY.value,
                original=workout,
                new=new_workout,
                reason="Load redistribution due to plan modification",
                timestamp=self.clock(),
            ))

        logger.debug(f"Redistributed {lost_load:.1f} fatigue over {len(records)} days")
        return adjusted, records

    @staticmethod
    def _failure(message: str) -> PlanModificationResult:
        logger.warning(message)
        return PlanModificationResult(success=False, warnings=[message])

    def workout_substitutions(self, workout: PlannedWorkout, limit: int = 5) -> List[WorkoutTemplate]:
        """Different-type templates within 20 fatigue points, nearest first."""
        candidates = [
            t for sport in SUBSTITUTION_TYPES for t in self.library.get_workouts_by_type(sport)
            if t.type != workout.workout_type and abs(t.fatigue_score - workout.expected_fatigue) <= 20
        ]
        candidates.sort(key=lambda t: abs(t.fatigue_score - workout.expected_fatigue))
        return candidates[:limit]
