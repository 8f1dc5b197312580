"""Tests for readiness assessment, quick checks and overtraining markers."""

import pytest
from datetime import date, datetime, timedelta

from training_readiness.models import (
    ActivitySample,
    ReadinessRecommendation,
    ReadinessStatus,
    RecoveryMetricsSample,
    RiskLevel,
    UserTrainingProfile,
)
from training_readiness.analysis.readiness import (
    FatigueTrend,
    ReadinessAssessor,
    score_to_verdict,
)

TODAY = date(2024, 3, 31)


def daily_activities(days, load, end=TODAY):
    return [
        ActivitySample(date=end - timedelta(days=i), sport="run", duration_min=50,
                       distance_km=10.0, training_load=load)
        for i in range(days)
    ]


def daily_samples(fatigue_values, **fixed):
    """Recovery samples ending today, oldest first."""
    count = len(fatigue_values)
    return [
        RecoveryMetricsSample(date=TODAY - timedelta(days=count - 1 - i), subjective_fatigue=value, **fixed)
        for i, value in enumerate(fatigue_values)
    ]


class TestQuickFatigueCheck:
    """Test the same-day go/no-go gate."""

    def setup_method(self):
        """Set up test fixtures."""
        self.assessor = ReadinessAssessor(clock=lambda: datetime(2024, 3, 31, 8))

    def test_low_body_battery_and_high_fatigue_mean_rest(self):
        """Critically low body battery and very high fatigue force a rest day."""
        latest = RecoveryMetricsSample(date=TODAY, subjective_fatigue=9, body_battery=15, sleep_score=90)
        result = self.assessor.quick_fatigue_check([], latest, TODAY)

        assert result.can_train is False
        assert result.recommendation == "rest"
        assert any("body battery" in reason.lower() for reason in result.reasons)
        assert any("subjective fatigue" in reason.lower() for reason in result.reasons)

    def test_fresh_athlete_trains_fully(self):
        latest = RecoveryMetricsSample(date=TODAY, subjective_fatigue=3, body_battery=80, sleep_score=85)
        result = self.assessor.quick_fatigue_check(daily_activities(30, 50), latest, TODAY)

        assert result.can_train is True
        assert result.recommendation == "full"
        assert result.reasons == []

    def test_soft_triggers_mean_easy(self):
        """Low body battery and poor sleep allow training but only easy."""
        latest = RecoveryMetricsSample(date=TODAY, subjective_fatigue=4, body_battery=35, sleep_score=55)
        result = self.assessor.quick_fatigue_check([], latest, TODAY)

        assert result.can_train is True
        assert result.recommendation == "easy"
        assert result.reasons == ["Low body battery", "Poor sleep quality"]

    def test_very_negative_tsb_means_rest(self):
        """A sudden training block after a break drives TSB under -30."""
        latest = RecoveryMetricsSample(date=TODAY, subjective_fatigue=3, body_battery=80)
        result = self.assessor.quick_fatigue_check(daily_activities(7, 50), latest, TODAY)

        assert result.can_train is False
        assert result.recommendation == "rest"
        assert result.reasons[0].startswith("Critical training stress balance")

    @pytest.mark.parametrize("body_battery,fatigue,expected_reasons", [
        (15, 7, ["Body battery critically low", "High subjective fatigue"]),
        (15, 4, ["Body battery critically low"]),
    ])
    def test_soft_trigger_does_not_soften_rest(self, body_battery, fatigue, expected_reasons):
        latest = RecoveryMetricsSample(date=TODAY, subjective_fatigue=fatigue, body_battery=body_battery)
        result = self.assessor.quick_fatigue_check([], latest, TODAY)

        assert result.can_train is False
        assert result.recommendation == "rest"
        assert result.reasons == expected_reasons

    def test_low_body_battery_after_critical_tsb_stays_rest(self):
        latest = RecoveryMetricsSample(date=TODAY, subjective_fatigue=7, body_battery=35)
        result = self.assessor.quick_fatigue_check(daily_activities(7, 50), latest, TODAY)

        assert result.can_train is False
        assert result.recommendation == "rest"
        assert result.reasons[1:] == ["Low body battery", "High subjective fatigue"]

    def test_tsb_ignored_with_few_activities(self):
        latest = RecoveryMetricsSample(date=TODAY, subjective_fatigue=3)
        result = self.assessor.quick_fatigue_check(daily_activities(6, 200), latest, TODAY)

        assert result.recommendation == "full"


class TestFatigueScore:
    """Test the readiness score and verdict table."""

    @pytest.mark.parametrize("score,status,risk,recommendation", [
        (90, ReadinessStatus.OVERTRAINED, RiskLevel.CRITICAL, ReadinessRecommendation.MEDICAL_ATTENTION),
        (85, ReadinessStatus.OVERTRAINED, RiskLevel.CRITICAL, ReadinessRecommendation.MEDICAL_ATTENTION),
        (70, ReadinessStatus.FATIGUED, RiskLevel.HIGH, ReadinessRecommendation.REST),
        (55, ReadinessStatus.FATIGUED, RiskLevel.MODERATE, ReadinessRecommendation.ACTIVE_RECOVERY),
        (40, ReadinessStatus.NORMAL, RiskLevel.LOW, ReadinessRecommendation.FULL_TRAINING),
        (39, ReadinessStatus.FRESH, RiskLevel.LOW, ReadinessRecommendation.FULL_TRAINING),
    ])
    def test_verdict_table(self, score, status, risk, recommendation):
        assert score_to_verdict(score) == (status, risk, recommendation)

    def test_score_contributions(self):
        """TSB, indicators and age each add to the base of 50."""
        profile = UserTrainingProfile.default()
        older = UserTrainingProfile.from_dict({"age": 55})

        assert ReadinessAssessor.fatigue_score(0, [], profile) == 50
        assert ReadinessAssessor.fatigue_score(-45, [], profile) == 75
        assert ReadinessAssessor.fatigue_score(-30, [], profile) == 65
        assert ReadinessAssessor.fatigue_score(-15, [], profile) == 60
        assert ReadinessAssessor.fatigue_score(20, [], profile) == 40
        assert ReadinessAssessor.fatigue_score(-45, [], older) == 80


class TestAssess:
    """Test the full assessment entry point."""

    def setup_method(self):
        """Set up test fixtures."""
        self.now = datetime(2024, 3, 31, 8)
        self.assessor = ReadinessAssessor(clock=lambda: self.now)
        self.profile = UserTrainingProfile.default()

    def test_missing_user_id_fails(self):
        result = self.assessor.assess("", [], [], self.profile, TODAY)

        assert result.success is False
        assert result.error == "User ID is required"
        assert result.context.operation == "fatigue-assessment"

    def test_missing_profile_fails(self):
        result = self.assessor.assess("athlete-1", [], [], None, TODAY)

        assert result.success is False
        assert result.error == "User profile is required"

    def test_overloaded_athlete(self):
        """High load plus bad recovery yields a high-risk verdict with a clamped score."""
        activities = daily_activities(7, 150)
        samples = daily_samples([5] * 9 + [9], body_battery=15, sleep_score=50)
        result = self.assessor.assess("athlete-1", activities, samples, self.profile, TODAY)

        assert result.success
        assessment = result.data
        assert assessment.overall_status is ReadinessStatus.OVERTRAINED
        assert assessment.risk_level is RiskLevel.CRITICAL
        assert assessment.recommendation is ReadinessRecommendation.MEDICAL_ATTENTION
        assert 0 <= assessment.fatigue_score <= 100
        assert assessment.next_reassessment == TODAY + timedelta(days=2)
        assert any(w.startswith("Critical indicators detected") for w in result.warnings)
        assert result.context.timestamp == self.now
        assert result.context.user_id == "athlete-1"

    def test_sparse_data_warns(self):
        result = self.assessor.assess("athlete-1", daily_activities(3, 40), daily_samples([3, 3]),
                                      self.profile, TODAY)

        assert result.success
        assert "Limited training history - fatigue assessment may be less accurate" in result.warnings
        assert "Insufficient recovery data - consider tracking more metrics" in result.warnings
        assert "insufficient HRV samples" in result.warnings

    def test_result_serializes(self):
        result = self.assessor.assess("athlete-1", daily_activities(30, 50), daily_samples([4] * 10),
                                      self.profile, TODAY)
        payload = result.to_dict()

        assert payload["success"] is True
        assert payload["data"]["overall_status"] in ("fresh", "normal", "fatigued", "overtrained")
        assert payload["data"]["next_reassessment"].startswith("2024-")


class TestFatigueTrend:
    """Test the subjective fatigue trend."""

    def setup_method(self):
        self.assessor = ReadinessAssessor()

    def test_rising_fatigue_is_rapidly_declining(self):
        trend = self.assessor.analyze_trend(daily_samples([3] * 7 + [6] * 7), ReadinessStatus.FATIGUED, TODAY)

        assert trend.direction == "rapidly-declining"
        assert trend.duration_days == 6
        assert trend.confidence == pytest.approx(84)
        assert trend.projected_recovery_days == 7

    def test_falling_fatigue_is_improving(self):
        trend = self.assessor.analyze_trend(daily_samples([7] * 7 + [4] * 7), ReadinessStatus.OVERTRAINED, TODAY)

        assert trend.direction == "improving"
        assert trend.duration_days == 9
        assert trend.projected_recovery_days == 7

    def test_too_few_samples_is_stable(self):
        trend = self.assessor.analyze_trend(daily_samples([2, 8, 2, 8]), ReadinessStatus.NORMAL, TODAY)
        assert trend == FatigueTrend()

    def test_next_reassessment_intervals(self):
        improving = FatigueTrend(direction="improving")
        stable = FatigueTrend()

        assert ReadinessAssessor.next_reassessment(ReadinessStatus.FATIGUED, improving, TODAY) == TODAY + timedelta(days=4)
        assert ReadinessAssessor.next_reassessment(ReadinessStatus.FATIGUED, stable, TODAY) == TODAY + timedelta(days=3)
        assert ReadinessAssessor.next_reassessment(ReadinessStatus.NORMAL, stable, TODAY) == TODAY + timedelta(days=7)
        assert ReadinessAssessor.next_reassessment(ReadinessStatus.FRESH, stable, TODAY) == TODAY + timedelta(days=10)


class TestOvertrainingMarkers:
    """Test overtraining marker detection."""

    def setup_method(self):
        self.assessor = ReadinessAssessor()

    def test_insufficient_data(self):
        check = self.assessor.check_overtraining_markers(daily_activities(10, 50), daily_samples([3] * 10), TODAY)

        assert check.sufficient_data is False
        assert check.has_markers is False
        assert check.markers == ["Insufficient data for overtraining analysis"]

    def test_healthy_history_has_no_markers(self):
        check = self.assessor.check_overtraining_markers(
            daily_activities(28, 50), daily_samples([3] * 10, sleep_score=85, hrv=60), TODAY
        )

        assert check.sufficient_data is True
        assert check.has_markers is False
        assert check.markers == []

    def test_fatigue_and_poor_sleep(self):
        check = self.assessor.check_overtraining_markers(
            daily_activities(28, 50), daily_samples([8] * 10, sleep_score=55), TODAY
        )

        assert check.has_markers is True
        assert check.severity == "moderate"
        assert check.markers == ["Persistently high subjective fatigue", "Persistent sleep quality issues"]

    def test_declining_performance_and_hrv(self):
        """Reduced recent load, suppressed HRV and high fatigue together are severe."""
        activities = daily_activities(7, 30) + [
            a for a in daily_activities(28, 80) if a.date <= TODAY - timedelta(days=7)
        ]
        samples = [
            RecoveryMetricsSample(date=TODAY - timedelta(days=6 - i), subjective_fatigue=8, hrv=hrv)
            for i, hrv in enumerate([70, 70, 70, 70, 50, 50, 50])
        ]
        check = self.assessor.check_overtraining_markers(activities, samples, TODAY)

        assert "Significant performance decline detected" in check.markers
        assert "HRV significantly suppressed" in check.markers
        assert check.severity == "severe"
