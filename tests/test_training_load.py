"""Tests for ATL/CTL/TSB calculation and trend analysis."""

import pytest
from datetime import date, datetime, timedelta

from training_readiness.models import ActivitySample, IndicatorStatus
from training_readiness.analysis.training_load import (
    TrainingLoadCalculator,
    data_quality_for_count,
    interpret_tsb,
    linear_slope,
)

TARGET = date(2024, 3, 31)


def daily_activities(days, load, end=TARGET, sport="run"):
    """One activity per day for `days` days ending at `end`."""
    return [
        ActivitySample(
            date=end - timedelta(days=offset),
            sport=sport,
            duration_min=45,
            distance_km=8.0,
            training_load=load,
        )
        for offset in range(days)
    ]


class TestTrainingLoadCalculator:
    """Test TSB calculation."""

    def setup_method(self):
        """Set up test fixtures."""
        self.now = datetime(2024, 4, 1, 7, 30)
        self.calculator = TrainingLoadCalculator(clock=lambda: self.now)

    def test_one_week_of_training_after_a_break(self):
        """Seven days of load 50 with no earlier history leaves TSB negative."""
        result = self.calculator.calculate_tsb(daily_activities(7, 50), TARGET)
        value = result.value

        assert value.acute_load == pytest.approx(50, rel=0.05)
        assert value.chronic_load < value.acute_load
        assert value.tsb < 0
        assert value.interpretation.status != "peak-form"

    def test_tsb_is_chronic_minus_acute(self):
        """TSB equals CTL - ATL exactly."""
        activities = daily_activities(20, 80) + daily_activities(3, 150, end=TARGET - timedelta(days=25))
        value = self.calculator.calculate_tsb(activities, TARGET).value

        assert value.tsb == pytest.approx(value.chronic_load - value.acute_load, abs=1e-6)

    def test_constant_load_converges(self):
        """Constant daily load for 35 days brings ATL and CTL to that load."""
        value = self.calculator.calculate_tsb(daily_activities(35, 60), TARGET).value

        assert value.acute_load == pytest.approx(60, rel=0.05)
        assert value.chronic_load == pytest.approx(60, rel=0.05)
        assert abs(value.tsb) < 3

    def test_scores_stay_in_range(self):
        """Fitness, fatigue and form are bounded to 0-100 for extreme loads."""
        for activities in (daily_activities(10, 1000), [], daily_activities(28, 1)):
            value = self.calculator.calculate_tsb(activities, TARGET).value
            assert 0 <= value.fitness <= 100
            assert 0 <= value.fatigue <= 100
            assert 0 <= value.form <= 100

    def test_empty_history(self):
        """No activities yields zero loads and poor data quality."""
        result = self.calculator.calculate_tsb([], TARGET)

        assert result.value.acute_load == 0
        assert result.value.chronic_load == 0
        assert result.value.tsb == 0
        assert result.data_quality == "poor"
        assert result.confidence == 0

    def test_window_boundaries_are_inclusive(self):
        """An activity exactly 27 days back is in the chronic window, 28 days back is not."""
        inside = daily_activities(1, 100, end=TARGET - timedelta(days=27))
        outside = daily_activities(1, 100, end=TARGET - timedelta(days=28))

        assert self.calculator.calculate_tsb(inside, TARGET).value.chronic_load > 0
        assert self.calculator.calculate_tsb(outside, TARGET).value.chronic_load == 0

    def test_future_activities_are_ignored(self):
        """Activities after the target date do not contribute."""
        future = daily_activities(5, 200, end=TARGET + timedelta(days=5))
        value = self.calculator.calculate_tsb(future, TARGET).value

        assert value.acute_load == 0
        assert value.chronic_load == 0

    def test_multiple_activities_on_one_day_are_summed(self):
        """Two sessions on one day count as one day with the combined load."""
        single = daily_activities(1, 100)
        double = daily_activities(1, 60) + daily_activities(1, 40)

        assert self.calculator.calculate_tsb(double, TARGET).value.acute_load == pytest.approx(
            self.calculator.calculate_tsb(single, TARGET).value.acute_load
        )

    def test_calculation_is_repeatable(self):
        """Same inputs and target date give the same result."""
        activities = daily_activities(30, 70) + daily_activities(4, 150)
        first = self.calculator.calculate_tsb(activities, TARGET)
        second = self.calculator.calculate_tsb(activities, TARGET)

        assert first.value.tsb == second.value.tsb
        assert first.value.trend.tsb_history == second.value.trend.tsb_history
        assert first.timestamp == self.now

    def test_confidence_and_quality_from_chronic_count(self):
        """Confidence scales with activities in the chronic window."""
        result = self.calculator.calculate_tsb(daily_activities(10, 50), TARGET)

        assert result.confidence == pytest.approx(50)
        assert result.data_quality == "fair"
        assert result.factors[0] == "7 activities in last 7 days"
        assert result.factors[1] == "10 activities in last 28 days"

    def test_custom_windows(self):
        """Window lengths can be overridden."""
        calculator = TrainingLoadCalculator(acute_days=3, chronic_days=14, clock=lambda: self.now)
        value = calculator.calculate_tsb(daily_activities(3, 90), TARGET).value

        assert value.acute_load == pytest.approx(90)
        assert value.chronic_load < 90


class TestTsbTrend:
    """Test weekly TSB trend analysis."""

    def setup_method(self):
        """Set up test fixtures."""
        self.calculator = TrainingLoadCalculator(clock=lambda: datetime(2024, 4, 1))

    def test_steady_training_is_stable(self):
        """Constant long-running load gives a flat trend."""
        trend = self.calculator.analyze_trend(daily_activities(70, 50), TARGET)

        assert len(trend.tsb_history) == 4
        assert trend.acute_direction == "stable"
        assert trend.chronic_direction == "stable"
        assert trend.balance_direction == "stable"
        assert trend.weeks_to_optimal is None

    def test_load_spike_worsens_balance(self):
        """A recent jump in load drives TSB down and out of the optimal band."""
        activities = daily_activities(70, 40) + daily_activities(7, 120)
        trend = self.calculator.analyze_trend(activities, TARGET)

        assert trend.balance_direction == "worsening"
        assert trend.acute_direction == "decreasing"
        assert trend.tsb_history[-1] < -5
        assert trend.weeks_to_optimal is not None
        assert trend.weeks_to_optimal >= 1

    def test_history_anchors_are_weekly(self):
        """History entries match TSB recomputed at -21, -14, -7 and 0 days."""
        activities = daily_activities(50, 30) + daily_activities(10, 60)
        trend = self.calculator.analyze_trend(activities, TARGET)

        for weeks_back, value in zip((3, 2, 1, 0), trend.tsb_history):
            anchor = TARGET - timedelta(days=7 * weeks_back)
            expected = self.calculator.calculate_tsb(activities, anchor, include_trend=False).value.tsb
            assert value == pytest.approx(expected)


class TestTsbInterpretation:
    """Test the TSB interpretation bands."""

    @pytest.mark.parametrize("tsb,status,optimal", [
        (30, "peak-form", True),
        (25, "good-form", True),
        (10, "good-form", True),
        (5, "neutral", False),
        (0, "neutral", False),
        (-20, "building", False),
        (-40, "overreaching", False),
        (-50, "overtrained", False),
        (-80, "overtrained", False),
    ])
    def test_bands(self, tsb, status, optimal):
        interpretation = interpret_tsb(tsb)
        assert interpretation.status == status
        assert interpretation.optimal_training_window is optimal

    def test_data_quality_bands(self):
        assert data_quality_for_count(20) == "excellent"
        assert data_quality_for_count(12) == "good"
        assert data_quality_for_count(6) == "fair"
        assert data_quality_for_count(5) == "poor"

    def test_linear_slope(self):
        assert linear_slope([1, 2, 3]) == pytest.approx(1.0)
        assert linear_slope([4, 4, 4, 4]) == 0.0
        assert linear_slope([7]) == 0.0


class TestTrainingLoadIndicator:
    """Test the weekly-vs-monthly load indicator."""

    def setup_method(self):
        self.calculator = TrainingLoadCalculator()

    def test_requires_seven_activities(self):
        assert self.calculator.training_load_indicator(daily_activities(6, 50), TARGET) is None

    def test_steady_load_is_normal(self):
        indicator = self.calculator.training_load_indicator(daily_activities(28, 50), TARGET)

        assert indicator.metric == "training_load"
        assert indicator.status is IndicatorStatus.NORMAL
        assert indicator.percent_change == pytest.approx(0)

    def test_load_spike_is_critical(self):
        """A week far above the monthly average is flagged critical."""
        indicator = self.calculator.training_load_indicator(daily_activities(7, 100), TARGET)

        # weekly 100/day vs monthly 700/28 = 25/day
        assert indicator.current_value == pytest.approx(100)
        assert indicator.baseline_value == pytest.approx(25)
        assert indicator.status is IndicatorStatus.CRITICAL
        assert "overreaching risk" in indicator.description
