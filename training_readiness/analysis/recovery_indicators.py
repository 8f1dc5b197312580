"""Per-metric fatigue indicators from recovery samples.

Each physiological metric is compared against a personal baseline (trimmed
mean of the earlier samples in the window). Metrics without enough samples
are omitted and reported as warnings instead.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence

import numpy as np

from ..config import config
from ..models import FatigueIndicator, IndicatorStatus, RecoveryMetricsSample

logger = logging.getLogger(__name__)


@dataclass
class IndicatorReport:
    indicators: List[FatigueIndicator] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    def by_metric(self) -> Dict[str, FatigueIndicator]:
        return {i.metric: i for i in self.indicators}


def trimmed_mean(values: Sequence[float], trim: float = None) -> float:
    """Mean after dropping floor(n * trim) values from each tail."""
    if not values:
        return 0.0
    trim = config.BASELINE_TRIM_FRACTION if trim is None else trim
    ordered = sorted(values)
    cut = int(math.floor(len(ordered) * trim))
    if cut > 0 and len(ordered) > 2 * cut:
        ordered = ordered[cut:-cut]
    return float(np.mean(ordered))


def latest_per_day(samples: Sequence[RecoveryMetricsSample]) -> List[RecoveryMetricsSample]:
    """Date-sorted samples with one entry per day (the last one supplied wins)."""
    by_day = {}
    for sample in samples:
        by_day[sample.date] = sample
    return [by_day[d] for d in sorted(by_day)]


def _hrv_status(change: float, current: float) -> IndicatorStatus:
    if change < -15:
        return IndicatorStatus.CRITICAL
    if change < -10:
        return IndicatorStatus.CONCERNING
    if change < -5:
        return IndicatorStatus.ELEVATED
    return IndicatorStatus.NORMAL


def _resting_hr_status(change: float, current: float) -> IndicatorStatus:
    if change > 8:
        return IndicatorStatus.CRITICAL
    if change > 5:
        return IndicatorStatus.CONCERNING
    if change > 3:
        return IndicatorStatus.ELEVATED
    return IndicatorStatus.NORMAL


def _body_battery_status(change: float, current: float) -> IndicatorStatus:
    if current < 20:
        return IndicatorStatus.CRITICAL
    if current < 30:
        return IndicatorStatus.CONCERNING
    if current < 50 or change < -20:
        return IndicatorStatus.ELEVATED
    return IndicatorStatus.NORMAL


def _sleep_status(change: float, current: float) -> IndicatorStatus:
    if current < 60:
        return IndicatorStatus.CRITICAL
    if current < 70:
        return IndicatorStatus.CONCERNING
    if current < 80 or change < -15:
        return IndicatorStatus.ELEVATED
    return IndicatorStatus.NORMAL


def _hrv_description(status: IndicatorStatus, change: float, current: float) -> str:
    return {
        IndicatorStatus.CRITICAL: f"HRV significantly below baseline ({change:.1f}%) - high stress/fatigue",
        IndicatorStatus.CONCERNING: f"HRV moderately below baseline ({change:.1f}%) - increased fatigue",
        IndicatorStatus.ELEVATED: f"HRV slightly below baseline ({change:.1f}%) - monitor closely",
    }.get(status, f"HRV within normal range ({change:.1f}% from baseline)")


def _resting_hr_description(status: IndicatorStatus, change: float, current: float) -> str:
    return {
        IndicatorStatus.CRITICAL: f"Resting HR significantly elevated ({change:.1f}%) - possible overtraining",
        IndicatorStatus.CONCERNING: f"Resting HR moderately elevated ({change:.1f}%) - increased fatigue",
        IndicatorStatus.ELEVATED: f"Resting HR slightly elevated ({change:.1f}%) - monitor closely",
    }.get(status, f"Resting HR within normal range ({change:.1f}% from baseline)")


def _body_battery_description(status: IndicatorStatus, change: float, current: float) -> str:
    return {
        IndicatorStatus.CRITICAL: f"Body battery critically low ({current:g}) - immediate rest required",
        IndicatorStatus.CONCERNING: f"Body battery low ({current:g}) - prioritize recovery",
        IndicatorStatus.ELEVATED: f"Body battery below optimal ({current:g}) - light training only",
    }.get(status, f"Body battery adequate ({current:g}) - normal training possible")


def _sleep_description(status: IndicatorStatus, change: float, current: float) -> str:
    return {
        IndicatorStatus.CRITICAL: f"Sleep quality poor ({current:g}) - recovery severely impacted",
        IndicatorStatus.CONCERNING: f"Sleep quality below average ({current:g}) - recovery compromised",
        IndicatorStatus.ELEVATED: f"Sleep quality suboptimal ({current:g}) - monitor sleep hygiene",
    }.get(status, f"Sleep quality good ({current:g}) - adequate recovery support")


def _subjective_description(status: IndicatorStatus, current: float) -> str:
    return {
        IndicatorStatus.CRITICAL: f"Very high subjective fatigue ({current:g}/10) - rest day recommended",
        IndicatorStatus.CONCERNING: f"High subjective fatigue ({current:g}/10) - easy training only",
        IndicatorStatus.ELEVATED: f"Moderate subjective fatigue ({current:g}/10) - reduce intensity",
    }.get(status, f"Low subjective fatigue ({current:g}/10) - normal training capacity")


@dataclass(frozen=True)
class _MetricRule:
    metric: str
    attribute: str
    label: str
    min_samples: Callable[[], int]
    status: Callable[[float, float], IndicatorStatus]
    describe: Callable[[IndicatorStatus, float, float], str]


PHYSIOLOGICAL_METRICS = (
    _MetricRule("hrv", "hrv", "HRV",
                lambda: config.MIN_HRV_SAMPLES, _hrv_status, _hrv_description),
    _MetricRule("resting_hr", "resting_hr", "resting HR",
                lambda: config.MIN_RESTING_HR_SAMPLES, _resting_hr_status, _resting_hr_description),
    _MetricRule("body_battery", "body_battery", "body battery",
                lambda: config.MIN_BODY_BATTERY_SAMPLES, _body_battery_status, _body_battery_description),
    _MetricRule("sleep_score", "sleep_score", "sleep score",
                lambda: config.MIN_SLEEP_SAMPLES, _sleep_status, _sleep_description),
)


class RecoveryIndicatorAnalyzer:
    """Compares the latest recovery sample against personal baselines."""

    def __init__(self, window_days: int = None, trim: float = None):
        self.window_days = window_days or config.RECOVERY_WINDOW_DAYS
        self.trim = config.BASELINE_TRIM_FRACTION if trim is None else trim

    def analyze_indicators(
        self, samples: Sequence[RecoveryMetricsSample], window_days: Optional[int] = None
    ) -> IndicatorReport:
        """Compute fatigue indicators for the most recent sample.

        Args:
            samples: Recovery samples (any order, one per day after de-duplication)
            window_days: Number of most recent samples to consider

        Returns:
            IndicatorReport with one indicator per computable metric and
            warnings for the metrics that had to be skipped
        """
        report = IndicatorReport()
        recent = latest_per_day(samples)[-(window_days or self.window_days):]
        if not recent:
            report.warnings.append("No recovery samples available")
            return report

        latest = recent[-1]
        earlier = recent[:-1]

        for rule in PHYSIOLOGICAL_METRICS:
            indicator = self._physiological_indicator(rule, latest, recent, earlier)
            if indicator is None:
                report.warnings.append(f"insufficient {rule.label} samples")
                logger.debug(f"Skipping {rule.metric}: not enough samples")
            else:
                report.indicators.append(indicator)

        report.indicators.append(self._subjective_indicator(latest, recent))
        return report

    def _physiological_indicator(
        self,
        rule: _MetricRule,
        latest: RecoveryMetricsSample,
        recent: Sequence[RecoveryMetricsSample],
        earlier: Sequence[RecoveryMetricsSample],
    ) -> Optional[FatigueIndicator]:
        current = getattr(latest, rule.attribute)
        available = [getattr(s, rule.attribute) for s in recent if getattr(s, rule.attribute) is not None]
        if current is None or len(available) < rule.min_samples():
            return None

        history = [getattr(s, rule.attribute) for s in earlier if getattr(s, rule.attribute) is not None]
        baseline = trimmed_mean(history, self.trim)
        if baseline <= 0:
            return None

        change = (current - baseline) / baseline * 100
        status = rule.status(change, current)
        return FatigueIndicator(
            metric=rule.metric,
            current_value=current,
            baseline_value=baseline,
            percent_change=change,
            status=status,
            description=rule.describe(status, change, current),
        )

    @staticmethod
    def _subjective_indicator(
        latest: RecoveryMetricsSample, recent: Sequence[RecoveryMetricsSample]
    ) -> FatigueIndicator:
        baseline = float(np.mean([s.subjective_fatigue for s in recent]))
        current = latest.subjective_fatigue
        change = (current - baseline) / baseline * 100 if baseline > 0 else 0.0

        if current >= 8:
            status = IndicatorStatus.CRITICAL
        elif current >= 7:
            status = IndicatorStatus.CONCERNING
        elif current >= 6:
            status = IndicatorStatus.ELEVATED
        else:
            status = IndicatorStatus.NORMAL

        return FatigueIndicator(
            metric="subjective",
            current_value=current,
            baseline_value=baseline,
            percent_change=change,
            status=status,
            description=_subjective_description(status, current),
        )
