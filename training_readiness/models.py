"""Typed records consumed and produced by the readiness engine.

Records are validated once, when they cross into the engine through the
``from_dict`` constructors. Everything downstream trusts them.
"""

import math
from dataclasses import dataclass, asdict
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, Iterable, Optional, Tuple


class DataValidationError(ValueError):
    """Raised when an input record fails boundary validation."""


def parse_date(value: Any, field_name: str = "date") -> date:
    """Parse an ISO day (``YYYY-MM-DD``) or a datetime into a ``date``."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and value:
        try:
            return datetime.fromisoformat(value.strip()[:19]).date()
        except ValueError:
            pass
    raise DataValidationError(f"Invalid {field_name}: {value!r}")


def _get(data: Dict[str, Any], *keys: str, default: Any = None) -> Any:
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return default


def _number(data: Dict[str, Any], *keys: str, required: bool = False,
            low: Optional[float] = None, high: Optional[float] = None) -> Optional[float]:
    value = _get(data, *keys)
    if value is None or value == "":
        if required:
            raise DataValidationError(f"Missing required field: {keys[0]}")
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise DataValidationError(f"Field {keys[0]} must be numeric, got {value!r}")
    if number != number:  # NaN
        if required:
            raise DataValidationError(f"Missing required field: {keys[0]}")
        return None
    if (low is not None and number < low) or (high is not None and number > high):
        raise DataValidationError(f"Field {keys[0]}={number} outside range [{low}, {high}]")
    return number


class IndicatorStatus(Enum):
    """Fatigue indicator status, ordered by severity."""

    NORMAL = "normal"
    ELEVATED = "elevated"
    CONCERNING = "concerning"
    CRITICAL = "critical"

    @property
    def severity(self) -> int:
        return _SEVERITY[self]

    def __lt__(self, other):
        if not isinstance(other, IndicatorStatus):
            return NotImplemented
        return self.severity < other.severity

    def __le__(self, other):
        if not isinstance(other, IndicatorStatus):
            return NotImplemented
        return self.severity <= other.severity

    def __gt__(self, other):
        if not isinstance(other, IndicatorStatus):
            return NotImplemented
        return self.severity > other.severity

    def __ge__(self, other):
        if not isinstance(other, IndicatorStatus):
            return NotImplemented
        return self.severity >= other.severity


_SEVERITY = {
    IndicatorStatus.NORMAL: 0,
    IndicatorStatus.ELEVATED: 1,
    IndicatorStatus.CONCERNING: 2,
    IndicatorStatus.CRITICAL: 3,
}


class ReadinessStatus(Enum):
    FRESH = "fresh"
    NORMAL = "normal"
    FATIGUED = "fatigued"
    OVERTRAINED = "overtrained"


class RiskLevel(Enum):
    LOW = "low"
    MODERATE = "moderate"
    HIGH = "high"
    CRITICAL = "critical"


class ReadinessRecommendation(Enum):
    FULL_TRAINING = "full-training"
    ACTIVE_RECOVERY = "active-recovery"
    REST = "rest"
    MEDICAL_ATTENTION = "medical-attention"


class RecoveryRecommendation(Enum):
    """Same-session training allowance from the coarse recovery scorer."""

    FULL_TRAINING = "full-training"
    MODERATE_TRAINING = "moderate-training"
    EASY_TRAINING = "easy-training"
    REST = "rest"


class ModificationType(Enum):
    """Single-day plan edits."""

    CHANGE_TO_REST = "change-to-rest"
    CHANGE_WORKOUT_TYPE = "change-workout-type"
    ADJUST_DURATION = "adjust-duration"
    ADJUST_INTENSITY = "adjust-intensity"


class AdjustmentAction(Enum):
    MOVED = "moved"
    MODIFIED = "modified"
    CANCELLED = "cancelled"
    ADDED = "added"


class AdjustmentReason(Enum):
    """Reasons a plan adjustment is requested."""

    MISSED_WORKOUT = "missed-workout"
    ILLNESS = "illness"
    INJURY = "injury"
    SCHEDULE_CHANGE = "schedule-change"
    PERFORMANCE_PLATEAU = "performance-plateau"
    OVERREACHING = "overreaching"
    OTHER = "other"

    @classmethod
    def parse(cls, value: Any) -> "AdjustmentReason":
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            return cls.OTHER


@dataclass(frozen=True)
class ActivitySample:
    """A recorded workout, as produced by the ingestion collaborator."""

    date: date
    sport: str
    duration_min: float
    distance_km: float
    training_load: float
    avg_hr: Optional[float] = None
    max_hr: Optional[float] = None
    zone_minutes: Optional[Tuple[float, float, float, float, float]] = None
    avg_pace: Optional[float] = None
    avg_power: Optional[float] = None
    avg_speed: Optional[float] = None
    activity_id: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ActivitySample":
        zones = [
            _number(data, f"zone{i}_minutes", f"zone{i}Minutes", low=0)
            for i in range(1, 6)
        ]
        sport = _get(data, "sport", "type")
        if not sport:
            raise DataValidationError("Missing required field: sport")
        return cls(
            date=parse_date(_get(data, "date", "start_date")),
            sport=str(sport),
            duration_min=_number(data, "duration_min", "duration", required=True, low=0),
            distance_km=_number(data, "distance_km", "distance", low=0) or 0.0,
            training_load=_number(data, "training_load", "trainingLoad", required=True, low=0),
            avg_hr=_number(data, "avg_hr", "avgHR", low=0),
            max_hr=_number(data, "max_hr", "maxHR", low=0),
            zone_minutes=tuple(z or 0.0 for z in zones) if any(z is not None for z in zones) else None,
            avg_pace=_number(data, "avg_pace", "avgPace", low=0),
            avg_power=_number(data, "avg_power", "avgPower", low=0),
            avg_speed=_number(data, "avg_speed", "avgSpeed", low=0),
            activity_id=_get(data, "activity_id", "activityId"),
        )


@dataclass(frozen=True)
class RecoveryMetricsSample:
    """One day of recovery metrics. Subjective fatigue is always present."""

    date: date
    subjective_fatigue: float
    sleep_score: Optional[float] = None
    body_battery: Optional[float] = None
    hrv: Optional[float] = None
    resting_hr: Optional[float] = None
    stress_level: Optional[float] = None
    notes: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RecoveryMetricsSample":
        return cls(
            date=parse_date(_get(data, "date")),
            subjective_fatigue=_number(
                data, "subjective_fatigue", "subjectiveFatigue", required=True, low=1, high=10
            ),
            sleep_score=_number(data, "sleep_score", "sleepScore", low=0, high=100),
            body_battery=_number(data, "body_battery", "bodyBattery", low=0, high=100),
            hrv=_number(data, "hrv", low=0),
            resting_hr=_number(data, "resting_hr", "restingHR", low=0),
            stress_level=_number(data, "stress_level", "stressLevel", low=0, high=100),
            notes=_get(data, "notes"),
        )


@dataclass(frozen=True)
class TimePreference:
    day_of_week: str
    time_slot: str
    duration: float


@dataclass(frozen=True)
class WeatherCondition:
    temperature: float
    conditions: str
    is_outdoor_friendly: bool
    wind_speed: Optional[float] = None
    humidity: Optional[float] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WeatherCondition":
        return cls(
            temperature=_number(data, "temperature", required=True),
            conditions=str(_get(data, "conditions", default="cloudy")),
            is_outdoor_friendly=bool(_get(data, "is_outdoor_friendly", "isOutdoorFriendly", default=True)),
            wind_speed=_number(data, "wind_speed", "windSpeed", low=0),
            humidity=_number(data, "humidity", low=0, high=100),
        )


FITNESS_LEVELS = ("beginner", "intermediate", "advanced")

DEFAULT_AVAILABLE_DAYS = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday")

DEFAULT_WORKOUT_TIMES = (
    TimePreference("Monday", "evening", 60),
    TimePreference("Wednesday", "evening", 60),
    TimePreference("Friday", "evening", 60),
    TimePreference("Saturday", "morning", 90),
)


@dataclass(frozen=True)
class UserTrainingProfile:
    """Athlete profile supplied by the profile collaborator."""

    age: int
    sex: str
    resting_hr: float
    max_hr: float
    fitness_level: str
    preferred_sports: Tuple[str, ...] = ()
    training_goals: Tuple[str, ...] = ()
    available_days: Tuple[str, ...] = DEFAULT_AVAILABLE_DAYS
    preferred_workout_times: Tuple[TimePreference, ...] = ()

    @classmethod
    def default(cls) -> "UserTrainingProfile":
        return cls(
            age=35,
            sex="other",
            resting_hr=60,
            max_hr=185,
            fitness_level="intermediate",
            preferred_sports=("running",),
            training_goals=("fitness",),
            available_days=DEFAULT_AVAILABLE_DAYS,
            preferred_workout_times=DEFAULT_WORKOUT_TIMES,
        )

    @staticmethod
    def normalize_sex(sex: Optional[str]) -> str:
        if not sex:
            return "other"
        normalized = str(sex).lower()
        if normalized in ("male", "m"):
            return "male"
        if normalized in ("female", "f"):
            return "female"
        return "other"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UserTrainingProfile":
        defaults = cls.default()
        fitness_level = str(_get(data, "fitness_level", "fitnessLevel", default=defaults.fitness_level))
        if fitness_level not in FITNESS_LEVELS:
            raise DataValidationError(f"Unknown fitness level: {fitness_level!r}")
        times = _get(data, "preferred_workout_times", "preferredWorkoutTimes")
        if times is None:
            preferred_times = defaults.preferred_workout_times
        else:
            preferred_times = tuple(
                TimePreference(
                    day_of_week=str(_get(t, "day_of_week", "dayOfWeek")),
                    time_slot=str(_get(t, "time_slot", "timeSlot", default="morning")),
                    duration=_number(t, "duration", required=True, low=0),
                )
                for t in times
            )
        return cls(
            age=int(_number(data, "age", low=0, high=120) or defaults.age),
            sex=cls.normalize_sex(_get(data, "sex")),
            resting_hr=_number(data, "resting_hr", "restingHR", low=0) or defaults.resting_hr,
            max_hr=_number(data, "max_hr", "maxHR", low=0) or defaults.max_hr,
            fitness_level=fitness_level,
            preferred_sports=tuple(_get(data, "preferred_sports", "preferredSports", default=())),
            training_goals=tuple(_get(data, "training_goals", "trainingGoals", default=())),
            available_days=tuple(_get(data, "available_days", "availableDays", default=DEFAULT_AVAILABLE_DAYS)),
            preferred_workout_times=preferred_times,
        )


@dataclass(frozen=True)
class WorkoutTemplate:
    """A catalog workout tagged by type, fatigue score and recovery impact."""

    type: str
    tag: str
    description: str
    duration_min: float
    fatigue_score: float
    recovery_impact: str
    phase: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class PlannedWorkout:
    """A plan entry. The date is unique within a plan."""

    date: date
    workout_type: str
    description: str
    expected_fatigue: float
    duration_min: float
    workout_id: Optional[str] = None
    sport: Optional[str] = None
    tags: Tuple[str, ...] = ()
    zone_target: Optional[str] = None
    completed: bool = False

    @property
    def is_rest(self) -> bool:
        return self.workout_type == "rest"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PlannedWorkout":
        workout_type = _get(data, "workout_type", "workoutType")
        if not workout_type:
            raise DataValidationError("Missing required field: workout_type")
        return cls(
            date=parse_date(_get(data, "date")),
            workout_type=str(workout_type),
            description=str(_get(data, "description", default="")),
            expected_fatigue=_number(
                data, "expected_fatigue", "expectedFatigue", required=True, low=0, high=100
            ),
            duration_min=_number(data, "duration_min", "durationMin", required=True, low=0),
            workout_id=_get(data, "workout_id", "workoutId"),
            sport=_get(data, "sport"),
            tags=tuple(_get(data, "tags", default=())),
            zone_target=_get(data, "zone_target", "zoneTarget"),
            completed=bool(_get(data, "completed", default=False)),
        )

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["date"] = self.date.isoformat()
        data["tags"] = list(self.tags)
        return data


def validate_plan(entries: Iterable[PlannedWorkout]) -> Tuple[PlannedWorkout, ...]:
    """Return the plan ordered by date, rejecting duplicate dates."""
    ordered = sorted(entries, key=lambda w: w.date)
    seen = set()
    for workout in ordered:
        if workout.date in seen:
            raise DataValidationError(f"Duplicate plan date: {workout.date.isoformat()}")
        seen.add(workout.date)
    return tuple(ordered)


def round_half_up(value: float) -> int:
    """Round .5 away from zero for non-negative values (``round`` uses banker's rounding)."""
    return int(math.floor(value + 0.5))


def clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return max(low, min(high, value))


@dataclass(frozen=True)
class FatigueIndicator:
    """Deviation of one metric from its personal baseline."""

    metric: str
    current_value: float
    baseline_value: float
    percent_change: float
    status: IndicatorStatus
    description: str
