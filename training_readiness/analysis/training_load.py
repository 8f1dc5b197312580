"""Acute/chronic training load and Training Stress Balance (TSB).

ATL and CTL are exponentially time-weighted means of the daily training load
over 7 and 28 calendar days ending at the target date. Days without training
count as zero load. TSB = CTL - ATL.
"""

import logging
import math
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Callable, List, Optional, Sequence

import numpy as np
import pandas as pd

from ..config import config
from ..models import ActivitySample, FatigueIndicator, IndicatorStatus, clamp

logger = logging.getLogger(__name__)

# Slopes smaller than this are treated as flat
SLOPE_EPSILON = 1e-9


@dataclass
class TsbInterpretation:
    status: str
    description: str
    recommendation: str
    optimal_training_window: bool


@dataclass
class LoadTrend:
    acute_direction: str
    chronic_direction: str
    balance_direction: str
    weeks_to_optimal: Optional[int] = None
    tsb_history: List[float] = field(default_factory=list)


@dataclass
class TrainingStressBalance:
    acute_load: float
    chronic_load: float
    tsb: float
    fitness: float
    fatigue: float
    form: float
    interpretation: TsbInterpretation
    trend: Optional[LoadTrend] = None


@dataclass
class TsbCalculation:
    """TSB value plus the confidence and data quality behind it."""
    value: TrainingStressBalance
    confidence: float
    factors: List[str]
    data_quality: str
    timestamp: datetime


# (lower bound exclusive, status, description, recommendation, optimal window)
TSB_BANDS = [
    (25, "peak-form", "Excellent form - low fatigue, high fitness",
     "Great time for key workouts or competition", True),
    (5, "good-form", "Good form - ready for quality training",
     "Ideal for moderate to high intensity sessions", True),
    (-10, "neutral", "Balanced training stress",
     "Continue current training approach", False),
    (-30, "building", "Building fitness - some accumulated fatigue",
     "Focus on aerobic base, limit high intensity", False),
    (-50, "overreaching", "High training stress - approaching overtraining",
     "Prioritize recovery, reduce training load", False),
]

OVERTRAINED_BAND = ("overtrained", "Critical fatigue levels detected",
                    "Immediate rest and recovery required", False)


def interpret_tsb(tsb: float) -> TsbInterpretation:
    """Map a TSB value to its training-status band."""
    for lower, status, description, recommendation, optimal in TSB_BANDS:
        if tsb > lower:
            return TsbInterpretation(status, description, recommendation, optimal)
    return TsbInterpretation(*OVERTRAINED_BAND)


def linear_slope(values: Sequence[float]) -> float:
    """Least-squares slope of values against their index (0, 1, 2, ...)."""
    if len(values) < 2:
        return 0.0
    slope = float(np.polyfit(np.arange(len(values)), np.asarray(values, dtype=float), 1)[0])
    return 0.0 if abs(slope) < SLOPE_EPSILON else slope


def data_quality_for_count(count: int) -> str:
    if count >= 20:
        return "excellent"
    if count >= 12:
        return "good"
    if count >= 6:
        return "fair"
    return "poor"


class TrainingLoadCalculator:
    """Computes ATL, CTL, TSB and the TSB trend from an activity history."""

    def __init__(
        self,
        acute_days: int = None,
        chronic_days: int = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """Initialize the calculator.

        Args:
            acute_days: ATL window in days - typically 7
            chronic_days: CTL window in days - typically 28
            clock: Source of "now", used only for result timestamps
        """
        self.acute_days = acute_days or config.ACUTE_WINDOW_DAYS
        self.chronic_days = chronic_days or config.CHRONIC_WINDOW_DAYS
        self.clock = clock or datetime.now

    @staticmethod
    def window_activities(
        activities: Sequence[ActivitySample], target_date: date, window_days: int
    ) -> List[ActivitySample]:
        """Activities dated within [target - (window - 1), target], inclusive."""
        start = target_date - timedelta(days=window_days - 1)
        return [a for a in activities if start <= a.date <= target_date]

    def daily_load_series(
        self, activities: Sequence[ActivitySample], target_date: date, window_days: int
    ) -> pd.Series:
        """Zero-filled daily load series for the window ending at target_date."""
        start = target_date - timedelta(days=window_days - 1)
        index = pd.date_range(start, target_date, freq="D")
        in_window = self.window_activities(activities, target_date, window_days)
        if not in_window:
            return pd.Series(0.0, index=index)

        df = pd.DataFrame(
            {
                "date": pd.to_datetime([a.date for a in in_window]),
                "load": [float(a.training_load) for a in in_window],
            }
        )
        return df.groupby("date")["load"].sum().reindex(index, fill_value=0.0)

    def exponential_average(
        self, activities: Sequence[ActivitySample], target_date: date, window_days: int
    ) -> float:
        """Exponentially time-weighted mean of daily load.

        Weight is exp(-days_ago / tau) with tau = window / ln 2 and days_ago
        measured from target_date.
        """
        series = self.daily_load_series(activities, target_date, window_days)
        time_constant = window_days / math.log(2)
        days_ago = np.arange(window_days - 1, -1, -1, dtype=float)
        weights = np.exp(-days_ago / time_constant)
        return float(np.dot(series.to_numpy(dtype=float), weights) / weights.sum())

    def calculate_tsb(
        self,
        activities: Sequence[ActivitySample],
        target_date: date,
        include_trend: bool = True,
    ) -> TsbCalculation:
        """Calculate Training Stress Balance at target_date.

        Args:
            activities: Activity history (any order)
            target_date: Day the loads are evaluated for
            include_trend: Also compute the 4-week TSB trend

        Returns:
            TsbCalculation with the TSB breakdown, confidence and data quality
        """
        acute_load = self.exponential_average(activities, target_date, self.acute_days)
        chronic_load = self.exponential_average(activities, target_date, self.chronic_days)
        tsb = chronic_load - acute_load

        fitness = min(100.0, chronic_load / 5)
        fatigue = min(100.0, acute_load / 3)
        form = clamp(50 + tsb / 2)

        acute_count = len(self.window_activities(activities, target_date, self.acute_days))
        chronic_count = len(self.window_activities(activities, target_date, self.chronic_days))

        trend = self.analyze_trend(activities, target_date, tsb) if include_trend else None

        logger.debug(f"TSB at {target_date}: ATL={acute_load:.1f} CTL={chronic_load:.1f} TSB={tsb:.1f}")

        return TsbCalculation(
            value=TrainingStressBalance(
                acute_load=acute_load,
                chronic_load=chronic_load,
                tsb=tsb,
                fitness=fitness,
                fatigue=fatigue,
                form=form,
                interpretation=interpret_tsb(tsb),
                trend=trend,
            ),
            confidence=min(100.0, chronic_count / 20 * 100),
            factors=[
                f"{acute_count} activities in last {self.acute_days} days",
                f"{chronic_count} activities in last {self.chronic_days} days",
                f"ATL: {acute_load:.1f}, CTL: {chronic_load:.1f}",
            ],
            data_quality=data_quality_for_count(chronic_count),
            timestamp=self.clock(),
        )

    def analyze_trend(
        self,
        activities: Sequence[ActivitySample],
        target_date: date,
        current_tsb: Optional[float] = None,
    ) -> LoadTrend:
        """TSB trend over weekly anchors for the last four weeks."""
        history = []
        for weeks_back in range(config.TREND_WEEKS - 1, 0, -1):
            anchor = target_date - timedelta(days=7 * weeks_back)
            history.append(self.calculate_tsb(activities, anchor, include_trend=False).value.tsb)
        if current_tsb is None:
            current_tsb = self.calculate_tsb(activities, target_date, include_trend=False).value.tsb
        history.append(current_tsb)

        recent_slope = linear_slope(history[-3:])
        chronic_slope = linear_slope(history)

        if recent_slope > 0.1:
            acute_direction = "increasing"
        elif recent_slope < -0.1:
            acute_direction = "decreasing"
        else:
            acute_direction = "stable"

        if chronic_slope > 0.05:
            chronic_direction = "increasing"
        elif chronic_slope < -0.05:
            chronic_direction = "decreasing"
        else:
            chronic_direction = "stable"

        if recent_slope > 0:
            balance_direction = "improving"
        elif recent_slope < 0:
            balance_direction = "worsening"
        else:
            balance_direction = "stable"

        weeks_to_optimal = None
        if current_tsb < config.OPTIMAL_TSB_MIN:
            rate = abs(recent_slope) or 2.0  # TSB points per week
            weeks_to_optimal = math.ceil((abs(current_tsb) - abs(config.OPTIMAL_TSB_MIN)) / rate)
        elif current_tsb > config.OPTIMAL_TSB_MAX:
            rate = abs(recent_slope) or 3.0
            weeks_to_optimal = math.ceil((current_tsb - config.OPTIMAL_TSB_MAX) / rate)

        return LoadTrend(
            acute_direction=acute_direction,
            chronic_direction=chronic_direction,
            balance_direction=balance_direction,
            weeks_to_optimal=weeks_to_optimal,
            tsb_history=history,
        )

    def training_load_indicator(
        self, activities: Sequence[ActivitySample], as_of: date
    ) -> Optional[FatigueIndicator]:
        """Compare average daily load of the last week against the last 28 days.

        Returns None when fewer than 7 activities are available.
        """
        if len(activities) < 7:
            return None

        weekly_load = sum(a.training_load for a in self.window_activities(activities, as_of, 7)) / 7
        monthly_load = sum(a.training_load for a in self.window_activities(activities, as_of, 28)) / 28
        percent_change = (weekly_load - monthly_load) / monthly_load * 100 if monthly_load > 0 else 0.0

        if weekly_load > monthly_load * 1.5:
            status = IndicatorStatus.CRITICAL
            description = f"Training load extremely high ({percent_change:.1f}% above baseline) - overreaching risk"
        elif weekly_load > monthly_load * 1.3:
            status = IndicatorStatus.CONCERNING
            description = f"Training load significantly elevated ({percent_change:.1f}% above baseline)"
        elif weekly_load > monthly_load * 1.1:
            status = IndicatorStatus.ELEVATED
            description = f"Training load moderately high ({percent_change:.1f}% above baseline)"
        else:
            status = IndicatorStatus.NORMAL
            description = f"Training load within normal range ({weekly_load:.1f} TRIMP/day average)"

        return FatigueIndicator(
            metric="training_load",
            current_value=weekly_load,
            baseline_value=monthly_load,
            percent_change=percent_change,
            status=status,
            description=description,
        )
