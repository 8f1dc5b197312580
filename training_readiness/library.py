"""Workout template library used for recommendations and plan edits."""

import logging
from dataclasses import replace
from typing import List, Optional, Sequence

from .config import config
from .models import WorkoutTemplate, round_half_up

logger = logging.getLogger(__name__)


WORKOUT_LIBRARY: Sequence[WorkoutTemplate] = (
    # Running
    WorkoutTemplate("run", "zone1", "Easy recovery run, conversational pace", 25, 25, "low", "recovery"),
    WorkoutTemplate("run", "zone2", "Aerobic base run, comfortable effort", 35, 45, "low"),
    WorkoutTemplate("run", "zone3", "Tempo run, comfortably hard effort", 30, 65, "medium"),
    WorkoutTemplate("run", "threshold", "Lactate threshold intervals", 40, 75, "high", "build"),
    WorkoutTemplate("run", "strides", "Easy run with 4-6 x 20s strides", 35, 50, "medium"),
    WorkoutTemplate("run", "intervals", "VO2max intervals, 3-5 min efforts", 45, 85, "high", "build"),
    # Cycling
    WorkoutTemplate("bike", "zone1", "Recovery spin, very easy effort", 30, 20, "restorative", "recovery"),
    WorkoutTemplate("bike", "zone2", "Aerobic base ride, conversational", 45, 45, "low"),
    WorkoutTemplate("bike", "zone3", "Tempo ride, moderate effort", 40, 60, "medium"),
    WorkoutTemplate("bike", "threshold", "FTP intervals, sustained efforts", 50, 80, "high", "build"),
    WorkoutTemplate("bike", "intervals", "High-intensity intervals", 45, 85, "high", "build"),
    # Brick
    WorkoutTemplate("brick", "zone2", "Easy brick: 25 min bike + 10 min run", 40, 55, "medium"),
    WorkoutTemplate("brick", "zone3", "Race pace brick: 30 min bike + 15 min run", 50, 70, "high", "build"),
    WorkoutTemplate("brick", "threshold", "Hard brick: Threshold bike + tempo run", 60, 85, "high", "peak"),
    # Strength
    WorkoutTemplate("strength", "strength", "Core strength + bodyweight exercises", 30, 30, "low"),
    WorkoutTemplate("strength", "strength", "Full body strength training", 45, 40, "medium"),
    # Mobility
    WorkoutTemplate("mobility", "mobility", "Yoga flow for recovery", 20, 10, "restorative"),
    WorkoutTemplate("mobility", "mobility", "Dynamic stretching + foam rolling", 15, 5, "restorative"),
    # Rest
    WorkoutTemplate("rest", "zone1", "Complete rest or gentle walk", 0, 0, "restorative"),
    # Swimming
    WorkoutTemplate("swim", "zone2", "Aerobic swim, steady pace", 35, 40, "low"),
    WorkoutTemplate("swim", "threshold", "Swim intervals, race pace", 45, 70, "medium", "build"),
)

REST_TEMPLATE = WorkoutTemplate("rest", "zone1", "Complete rest day", 0, 0, "restorative")


class WorkoutTemplateLibrary:
    """Queryable catalog of workout templates."""

    def __init__(self, templates: Optional[Sequence[WorkoutTemplate]] = None):
        self.templates: List[WorkoutTemplate] = list(WORKOUT_LIBRARY if templates is None else templates)

    def all(self) -> List[WorkoutTemplate]:
        return list(self.templates)

    def get_recovery_workouts(self) -> List[WorkoutTemplate]:
        return [t for t in self.templates if t.recovery_impact == "restorative" or t.fatigue_score <= 20]

    def get_easy_workouts(self) -> List[WorkoutTemplate]:
        return [t for t in self.templates if t.fatigue_score <= 50 and t.recovery_impact != "high"]

    def get_hard_workouts(self) -> List[WorkoutTemplate]:
        return [t for t in self.templates if t.fatigue_score >= 70]

    def get_workouts_by_type(self, workout_type: str) -> List[WorkoutTemplate]:
        return [t for t in self.templates if t.type == workout_type]

    def get_workouts_by_phase(self, phase: str) -> List[WorkoutTemplate]:
        """Templates usable in a training phase (untagged templates fit any phase)."""
        return [t for t in self.templates if t.phase is None or t.phase == phase]

    def get_workout(self, workout_type: str, tag: str) -> Optional[WorkoutTemplate]:
        for template in self.templates:
            if template.type == workout_type and template.tag == tag:
                return template
        return None

    def adjust_workout_for_fitness_level(
        self, template: Optional[WorkoutTemplate], fitness_level: str
    ) -> WorkoutTemplate:
        """Scale a template's duration and fatigue for the athlete's fitness level.

        Args:
            template: Template to scale; ``None`` falls back to a rest day
            fitness_level: beginner, intermediate or advanced

        Returns:
            A new template with rounded duration and fatigue capped at 100
        """
        if template is None:
            logger.warning("No workout provided for fitness adjustment, using rest fallback")
            return replace(REST_TEMPLATE, description="Rest day - recovery")

        multipliers = config.get_fitness_multipliers(fitness_level)
        return replace(
            template,
            duration_min=round_half_up(template.duration_min * multipliers["duration"]),
            fatigue_score=min(100, round_half_up(template.fatigue_score * multipliers["fatigue"])),
        )


default_library = WorkoutTemplateLibrary()
