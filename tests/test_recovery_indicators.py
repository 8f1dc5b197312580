"""Tests for recovery indicator baselines and statuses."""

import pytest
from datetime import date, timedelta

from training_readiness.models import IndicatorStatus, RecoveryMetricsSample
from training_readiness.analysis.recovery_indicators import (
    RecoveryIndicatorAnalyzer,
    latest_per_day,
    trimmed_mean,
)

TODAY = date(2024, 3, 31)


def samples_with(values, **fixed):
    """Daily samples ending today; `values` maps field name -> list (oldest first)."""
    length = max(len(v) for v in values.values())
    samples = []
    for i in range(length):
        fields = {"subjective_fatigue": 4}
        fields.update(fixed)
        for name, series in values.items():
            fields[name] = series[i]
        samples.append(RecoveryMetricsSample(date=TODAY - timedelta(days=length - 1 - i), **fields))
    return samples


class TestTrimmedMean:
    """Test the trimmed-mean baseline."""

    def test_ten_values_drop_two_from_each_tail(self):
        """With 10 values the 2 highest and 2 lowest are ignored."""
        values = [-500, 0, 10, 10, 10, 10, 10, 10, 900, 1000]
        assert trimmed_mean(values, 0.2) == pytest.approx(10)

    def test_small_samples_are_untrimmed(self):
        assert trimmed_mean([2, 4], 0.2) == pytest.approx(3)

    def test_empty(self):
        assert trimmed_mean([]) == 0.0


class TestRecoveryIndicatorAnalyzer:
    """Test indicator computation against personal baselines."""

    def setup_method(self):
        """Set up test fixtures."""
        self.analyzer = RecoveryIndicatorAnalyzer()

    def test_no_samples(self):
        report = self.analyzer.analyze_indicators([])

        assert report.indicators == []
        assert report.warnings == ["No recovery samples available"]

    def test_subjective_indicator_always_present(self):
        """A single sample still yields the subjective indicator and warnings for the rest."""
        report = self.analyzer.analyze_indicators(samples_with({"subjective_fatigue": [8]}))
        indicators = report.by_metric()

        assert list(indicators) == ["subjective"]
        assert indicators["subjective"].status is IndicatorStatus.CRITICAL
        assert "insufficient HRV samples" in report.warnings
        assert "insufficient resting HR samples" in report.warnings
        assert "insufficient body battery samples" in report.warnings
        assert "insufficient sleep score samples" in report.warnings

    def test_hrv_drop_is_critical(self):
        """HRV 25% under baseline is critical."""
        report = self.analyzer.analyze_indicators(samples_with({"hrv": [60] * 9 + [45]}))
        hrv = report.by_metric()["hrv"]

        assert hrv.baseline_value == pytest.approx(60)
        assert hrv.percent_change == pytest.approx(-25)
        assert hrv.status is IndicatorStatus.CRITICAL
        assert "insufficient HRV samples" not in report.warnings

    def test_baseline_excludes_latest_sample(self):
        """The current value never feeds its own baseline."""
        report = self.analyzer.analyze_indicators(samples_with({"hrv": [50] * 9 + [100]}))
        hrv = report.by_metric()["hrv"]

        assert hrv.baseline_value == pytest.approx(50)
        assert hrv.current_value == 100
        assert hrv.status is IndicatorStatus.NORMAL

    def test_hrv_requires_seven_samples(self):
        report = self.analyzer.analyze_indicators(samples_with({"hrv": [60] * 5 + [40]}))

        assert "hrv" not in report.by_metric()
        assert "insufficient HRV samples" in report.warnings

    @pytest.mark.parametrize("latest,status", [
        (56, IndicatorStatus.CRITICAL),
        (53.5, IndicatorStatus.CONCERNING),
        (52, IndicatorStatus.ELEVATED),
        (51, IndicatorStatus.NORMAL),
    ])
    def test_resting_hr_statuses(self, latest, status):
        """Resting HR thresholds at +8%, +5% and +3% over a baseline of 50."""
        report = self.analyzer.analyze_indicators(samples_with({"resting_hr": [50] * 9 + [latest]}))
        assert report.by_metric()["resting_hr"].status is status

    def test_body_battery_absolute_floor(self):
        """Body battery under 20 is critical regardless of baseline."""
        report = self.analyzer.analyze_indicators(samples_with({"body_battery": [18] * 5 + [15]}))
        indicator = report.by_metric()["body_battery"]

        assert indicator.status is IndicatorStatus.CRITICAL
        assert indicator.description.startswith("Body battery critically low")

    def test_body_battery_relative_drop(self):
        """A large drop flags elevated even above the absolute floors."""
        report = self.analyzer.analyze_indicators(samples_with({"body_battery": [90] * 5 + [65]}))
        assert report.by_metric()["body_battery"].status is IndicatorStatus.ELEVATED

    def test_sleep_score_floors(self):
        report = self.analyzer.analyze_indicators(samples_with({"sleep_score": [85] * 5 + [65]}))
        assert report.by_metric()["sleep_score"].status is IndicatorStatus.CONCERNING

    def test_subjective_baseline_is_window_mean(self):
        report = self.analyzer.analyze_indicators(samples_with({"subjective_fatigue": [2, 4, 6]}))
        subjective = report.by_metric()["subjective"]

        assert subjective.baseline_value == pytest.approx(4)
        assert subjective.status is IndicatorStatus.ELEVATED

    def test_window_limits_history(self):
        """Only the most recent `window_days` samples are considered."""
        values = [100] * 20 + [50] * 9 + [40]
        report = self.analyzer.analyze_indicators(samples_with({"hrv": values}), window_days=10)

        assert report.by_metric()["hrv"].baseline_value == pytest.approx(50)

    def test_missing_values_are_skipped(self):
        """Samples without a metric do not count towards its minimum."""
        values = [60, None, 60, None, 60, None, 60, None, 60, 58]
        report = self.analyzer.analyze_indicators(samples_with({"hrv": values}))

        assert "hrv" not in report.by_metric()


class TestLatestPerDay:

    def test_duplicates_keep_last(self):
        first = RecoveryMetricsSample(date=TODAY, subjective_fatigue=3)
        second = RecoveryMetricsSample(date=TODAY, subjective_fatigue=6)
        older = RecoveryMetricsSample(date=TODAY - timedelta(days=1), subjective_fatigue=5)

        assert latest_per_day([first, older, second]) == [older, second]
