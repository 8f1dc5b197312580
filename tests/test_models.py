"""Tests for input records, validation helpers and the workout library."""

import pytest
from datetime import date, datetime

from training_readiness import __version__
from training_readiness.analysis.results import ResultBuilder
from training_readiness.library import WorkoutTemplateLibrary, default_library
from training_readiness.models import (
    ActivitySample,
    AdjustmentReason,
    DataValidationError,
    IndicatorStatus,
    PlannedWorkout,
    RecoveryMetricsSample,
    UserTrainingProfile,
    WeatherCondition,
    WorkoutTemplate,
    parse_date,
    round_half_up,
    validate_plan,
)


class TestRecords:
    """Test boundary validation of input records."""

    def test_activity_from_camel_case(self):
        activity = ActivitySample.from_dict({
            "date": "2024-04-01T06:30:00",
            "type": "run",
            "duration": 50,
            "distance": 10.2,
            "trainingLoad": 72,
            "maxHR": 181,
        })

        assert activity.date == date(2024, 4, 1)
        assert activity.sport == "run"
        assert activity.training_load == 72
        assert activity.max_hr == 181
        assert activity.zone_minutes is None

    def test_activity_rejects_negative_load(self):
        with pytest.raises(DataValidationError):
            ActivitySample.from_dict({"date": "2024-04-01", "sport": "run", "duration_min": 30,
                                      "training_load": -5})

    def test_activity_requires_sport(self):
        with pytest.raises(DataValidationError, match="sport"):
            ActivitySample.from_dict({"date": "2024-04-01", "duration_min": 30, "training_load": 5})

    def test_recovery_requires_subjective_fatigue(self):
        with pytest.raises(DataValidationError, match="subjective_fatigue"):
            RecoveryMetricsSample.from_dict({"date": "2024-04-01", "hrv": 50})

    def test_recovery_rejects_bad_sleep_score(self):
        with pytest.raises(DataValidationError):
            RecoveryMetricsSample.from_dict({"date": "2024-04-01", "subjective_fatigue": 3, "sleep_score": 140})

    def test_invalid_date(self):
        with pytest.raises(DataValidationError, match="Invalid date"):
            parse_date("yesterday")
        assert parse_date(datetime(2024, 4, 1, 23, 59)) == date(2024, 4, 1)

    def test_profile_defaults_and_normalization(self):
        profile = UserTrainingProfile.from_dict({"sex": "M", "preferred_workout_times": [
            {"dayOfWeek": "Sunday", "timeSlot": "morning", "duration": 120},
        ]})

        assert profile.sex == "male"
        assert profile.age == 35
        assert profile.fitness_level == "intermediate"
        assert profile.preferred_workout_times[0].day_of_week == "Sunday"
        assert UserTrainingProfile.normalize_sex("non-binary") == "other"

    def test_profile_rejects_unknown_fitness_level(self):
        with pytest.raises(DataValidationError):
            UserTrainingProfile.from_dict({"fitness_level": "elite"})

    def test_weather(self):
        weather = WeatherCondition.from_dict({"temperature": 31, "conditions": "sunny", "isOutdoorFriendly": False})

        assert weather.is_outdoor_friendly is False

    def test_plan_validation(self):
        later = PlannedWorkout(date(2024, 4, 2), "run", "Easy", 30, 40)
        earlier = PlannedWorkout(date(2024, 4, 1), "rest", "Rest", 0, 0)

        assert validate_plan([later, earlier]) == (earlier, later)
        assert earlier.is_rest
        with pytest.raises(DataValidationError, match="Duplicate plan date"):
            validate_plan([later, earlier, later])

    def test_planned_workout_round_trip_fields(self):
        workout = PlannedWorkout.from_dict({
            "date": "2024-04-03", "workoutType": "bike", "expectedFatigue": 55,
            "durationMin": 75, "tags": ["build"],
        })

        assert workout.to_dict()["date"] == "2024-04-03"
        assert workout.to_dict()["tags"] == ["build"]


class TestHelpers:

    @pytest.mark.parametrize("value,expected", [(2.5, 3), (3.5, 4), (2.49, 2), (0, 0)])
    def test_round_half_up(self, value, expected):
        assert round_half_up(value) == expected

    def test_indicator_status_ordering(self):
        assert IndicatorStatus.CRITICAL > IndicatorStatus.CONCERNING > IndicatorStatus.ELEVATED
        assert max([IndicatorStatus.NORMAL, IndicatorStatus.CRITICAL, IndicatorStatus.ELEVATED]) is \
            IndicatorStatus.CRITICAL

    def test_adjustment_reason_parse(self):
        assert AdjustmentReason.parse("illness") is AdjustmentReason.ILLNESS
        assert AdjustmentReason.parse("vacation") is AdjustmentReason.OTHER

    def test_result_context_carries_package_version(self):
        builder = ResultBuilder("plan-adjustment", "athlete-1", lambda: datetime(2024, 4, 1, 7, 0))

        assert builder.ok(None).context.version == __version__


class TestWorkoutTemplateLibrary:
    """Test the workout template catalog."""

    def setup_method(self):
        self.library = WorkoutTemplateLibrary()

    def test_recovery_workouts_are_light(self):
        recovery = self.library.get_recovery_workouts()

        assert recovery
        assert all(t.recovery_impact == "restorative" or t.fatigue_score <= 20 for t in recovery)

    def test_easy_workouts(self):
        assert all(t.fatigue_score <= 50 and t.recovery_impact != "high" for t in self.library.get_easy_workouts())

    def test_hard_workouts(self):
        assert all(t.fatigue_score >= 70 for t in self.library.get_hard_workouts())

    def test_by_type_and_phase(self):
        assert {t.type for t in self.library.get_workouts_by_type("swim")} == {"swim"}
        assert all(t.phase in (None, "build") for t in self.library.get_workouts_by_phase("build"))
        assert self.library.get_workout("bike", "threshold").fatigue_score == 80
        assert self.library.get_workout("bike", "sprint") is None

    def test_fitness_scaling(self):
        template = self.library.get_workout("bike", "threshold")
        beginner = self.library.adjust_workout_for_fitness_level(template, "beginner")
        advanced = self.library.adjust_workout_for_fitness_level(template, "advanced")

        assert beginner.duration_min == 35
        assert beginner.fatigue_score == 64
        assert advanced.duration_min == 65
        assert advanced.fatigue_score == 88

    def test_fatigue_capped_at_100(self):
        template = WorkoutTemplate("run", "race", "Race effort", 60, 98, "high")

        assert self.library.adjust_workout_for_fitness_level(template, "advanced").fatigue_score == 100

    def test_missing_template_falls_back_to_rest(self):
        fallback = default_library.adjust_workout_for_fitness_level(None, "advanced")

        assert fallback.type == "rest"
        assert fallback.fatigue_score == 0
        assert fallback.description == "Rest day - recovery"
