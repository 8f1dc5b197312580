"""Command-line interface for the training readiness engine."""

import json
import logging
from datetime import date

import click
from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .config import config
from .adapters import load_activities, load_plan, load_profile, load_recovery
from .models import DataValidationError, parse_date
from .analysis import (
    PlanAdjustmentOrchestrator,
    PlanAdjustmentRequest,
    PlanConstraints,
    PlanRebalancer,
    ReadinessAssessor,
    RebalanceOptions,
    RecommendationRequest,
    TrainingLoadCalculator,
    WorkoutRecommender,
)
from .analysis.data_validation import DataValidator, assess_data_quality, summarize_coverage
from .analysis.results import to_serializable
from .service import TrainingInsightsService

console = Console()

STATUS_COLORS = {
    "fresh": "green",
    "normal": "blue",
    "fatigued": "yellow",
    "overtrained": "red",
}

RISK_COLORS = {
    "low": "green",
    "moderate": "yellow",
    "high": "red",
    "critical": "bold red",
}


def _as_of(value):
    return parse_date(value) if value else date.today()


def _print_json(payload):
    console.print_json(json.dumps(to_serializable(payload)))


def _fail(message):
    console.print(f"[red]❌ {message}[/red]")
    raise SystemExit(1)


def _read_inputs(activities_path, recovery_path=None, profile_path=None):
    try:
        activities = load_activities(activities_path) if activities_path else []
        samples = load_recovery(recovery_path) if recovery_path else []
        profile = load_profile(profile_path)
    except (OSError, DataValidationError) as e:
        _fail(f"Could not read input: {e}")
    return activities, samples, profile


def _print_plan(plan, title):
    table = Table(title=title, box=box.ROUNDED)
    table.add_column("Date", width=10)
    table.add_column("Type", style="blue")
    table.add_column("Description")
    table.add_column("Fatigue", style="magenta", justify="right")
    table.add_column("Min", style="cyan", justify="right")
    for workout in plan:
        table.add_row(
            workout.date.isoformat(),
            workout.workout_type,
            workout.description,
            f"{workout.expected_fatigue:.0f}",
            f"{workout.duration_min:.0f}",
        )
    console.print(table)


def _print_modifications(modifications):
    if not modifications:
        return
    table = Table(title="Modifications", box=box.SIMPLE)
    table.add_column("Date", width=10)
    table.add_column("Action", style="yellow")
    table.add_column("Reason")
    for record in modifications:
        table.add_row(record.date.isoformat(), record.action, record.reason or "")
    console.print(table)


def _print_messages(title, messages, style):
    if messages:
        console.print(f"\n[bold]{title}:[/bold]")
        for message in messages:
            console.print(f"  [{style}]• {message}[/{style}]")


@click.group()
@click.option("--log-level", default=None, help="Logging level (defaults to LOG_LEVEL)")
def cli(log_level):
    """Training readiness and plan adjustment tool."""
    logging.basicConfig(
        level=(log_level or config.LOG_LEVEL).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@cli.command()
@click.option("--activities", "activities_path", required=True, help="Activity history (JSON or CSV)")
@click.option("--date", "as_of", help="Evaluation date (YYYY-MM-DD), defaults to today")
@click.option("--json", "as_json", is_flag=True, help="Print raw JSON")
def tsb(activities_path, as_of, as_json):
    """Show acute/chronic load and training stress balance."""
    activities, _, _ = _read_inputs(activities_path)
    result = TrainingLoadCalculator().calculate_tsb(activities, _as_of(as_of))
    if as_json:
        _print_json(result)
        return

    value = result.value
    console.print(Panel.fit("📊 Training Stress Balance", style="bold blue"))
    table = Table(box=box.ROUNDED)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")
    table.add_row("Acute load (ATL)", f"{value.acute_load:.1f}")
    table.add_row("Chronic load (CTL)", f"{value.chronic_load:.1f}")
    table.add_row("TSB", f"{value.tsb:.1f}")
    table.add_row("Fitness", f"{value.fitness:.0f}")
    table.add_row("Fatigue", f"{value.fatigue:.0f}")
    table.add_row("Form", f"{value.form:.0f}")
    table.add_row("Confidence", f"{result.confidence:.0f}%")
    table.add_row("Data quality", result.data_quality)
    console.print(table)

    console.print(f"\n[bold]{value.interpretation.status.upper()}[/bold]: {value.interpretation.description}")
    console.print(f"[dim]{value.interpretation.recommendation}[/dim]")
    if value.trend:
        trend = value.trend
        console.print(
            f"\nTrend: acute {trend.acute_direction}, chronic {trend.chronic_direction}, "
            f"balance {trend.balance_direction}"
        )
        if trend.weeks_to_optimal is not None:
            console.print(f"Weeks to optimal range: {trend.weeks_to_optimal}")


@cli.command()
@click.option("--activities", "activities_path", required=True, help="Activity history (JSON or CSV)")
@click.option("--recovery", "recovery_path", required=True, help="Recovery samples (JSON or CSV)")
@click.option("--profile", "profile_path", help="Athlete profile (JSON)")
@click.option("--user-id", default="default", help="User ID for the analysis")
@click.option("--date", "as_of", help="Assessment date (YYYY-MM-DD), defaults to today")
@click.option("--json", "as_json", is_flag=True, help="Print raw JSON")
def readiness(activities_path, recovery_path, profile_path, user_id, as_of, as_json):
    """Full fatigue and readiness assessment."""
    activities, samples, profile = _read_inputs(activities_path, recovery_path, profile_path)
    result = ReadinessAssessor().assess(user_id, activities, samples, profile, _as_of(as_of))
    if as_json:
        _print_json(result)
        return
    if not result.success:
        _fail(result.error)

    assessment = result.data
    status = assessment.overall_status.value
    risk = assessment.risk_level.value
    color = STATUS_COLORS.get(status, "white")
    text = f"""
[bold {color}]{status.upper()}[/bold {color}]

[bold]Fatigue score:[/bold] {assessment.fatigue_score:.0f}
[bold]Risk level:[/bold] [{RISK_COLORS[risk]}]{risk}[/{RISK_COLORS[risk]}]
[bold]Recommendation:[/bold] {assessment.recommendation.value}
[bold]TSB:[/bold] {assessment.tsb:.1f}
[bold]Trend:[/bold] {assessment.trend.direction} ({assessment.trend.duration_days} days)
[bold]Next reassessment:[/bold] {assessment.next_reassessment.isoformat()}
"""
    console.print(Panel(text.strip(), title="🩺 Readiness", border_style=color))

    if assessment.indicators:
        table = Table(title="Indicators", box=box.ROUNDED)
        table.add_column("Metric", style="cyan")
        table.add_column("Current", justify="right")
        table.add_column("Baseline", justify="right")
        table.add_column("Change", justify="right")
        table.add_column("Status")
        for indicator in assessment.indicators:
            table.add_row(
                indicator.metric,
                f"{indicator.current_value:.1f}",
                f"{indicator.baseline_value:.1f}",
                f"{indicator.percent_change:+.1f}%",
                indicator.status.value,
            )
        console.print(table)
    _print_messages("Warnings", result.warnings, "yellow")


@cli.command("quick-check")
@click.option("--activities", "activities_path", required=True, help="Activity history (JSON or CSV)")
@click.option("--recovery", "recovery_path", help="Recovery samples (JSON or CSV)")
@click.option("--date", "as_of", help="Decision date (YYYY-MM-DD), defaults to today")
def quick_check(activities_path, recovery_path, as_of):
    """Can I train today?"""
    activities, samples, _ = _read_inputs(activities_path, recovery_path)
    decision = TrainingInsightsService().quick_training_decision(activities, samples, _as_of(as_of))

    color = {"full": "green", "easy": "yellow", "rest": "red"}.get(decision.recommendation, "white")
    verdict = "✅ Train" if decision.can_train else "🛑 Rest"
    console.print(Panel.fit(
        f"[bold {color}]{verdict}: {decision.recommendation}[/bold {color}]\n"
        f"Confidence: {decision.confidence:.0f}%",
        title="Quick check",
    ))
    _print_messages("Reasons", decision.reasons, "white")


@cli.command()
@click.option("--activities", "activities_path", required=True, help="Activity history (JSON or CSV)")
@click.option("--recovery", "recovery_path", required=True, help="Recovery samples (JSON or CSV)")
@click.option("--date", "as_of", help="Check date (YYYY-MM-DD), defaults to today")
def overtraining(activities_path, recovery_path, as_of):
    """Check for overtraining markers."""
    activities, samples, _ = _read_inputs(activities_path, recovery_path)
    check = ReadinessAssessor().check_overtraining_markers(activities, samples, _as_of(as_of))

    if not check.sufficient_data:
        console.print("[yellow]⚠️  Insufficient data for overtraining analysis[/yellow]")
        return
    if not check.has_markers:
        console.print("[green]✅ No overtraining markers found[/green]")
        return
    color = {"mild": "yellow", "moderate": "red", "severe": "bold red"}[check.severity]
    console.print(f"[{color}]⚠️  Overtraining markers ({check.severity})[/{color}]")
    _print_messages("Markers", check.markers, color)


@cli.command()
@click.option("--activities", "activities_path", required=True, help="Activity history (JSON or CSV)")
@click.option("--recovery", "recovery_path", help="Recovery samples (JSON or CSV)")
@click.option("--profile", "profile_path", help="Athlete profile (JSON)")
@click.option("--user-id", default="default", help="User ID for the recommendation")
@click.option("--date", "as_of", help="Current date (YYYY-MM-DD), defaults to today")
@click.option("--days", default=1, help="Number of days to plan ahead")
@click.option("--seed", type=int, default=None, help="Seed for workout selection")
def recommend(activities_path, recovery_path, profile_path, user_id, as_of, days, seed):
    """Recommend tomorrow's workout, or a short day-by-day plan."""
    activities, samples, profile = _read_inputs(activities_path, recovery_path, profile_path)
    recommender = WorkoutRecommender(rng=config.get_random(seed))
    request = RecommendationRequest(
        user_id=user_id,
        current_date=_as_of(as_of),
        profile=profile,
        activities=activities,
        recovery_samples=samples,
    )

    if days > 1:
        table = Table(title=f"{days}-Day Workout Plan", box=box.ROUNDED)
        table.add_column("Date", width=10)
        table.add_column("Workout", style="blue")
        table.add_column("Min", justify="right")
        table.add_column("Fatigue", style="magenta", justify="right")
        table.add_column("Confidence", justify="right")
        for entry in recommender.workout_plan(request, request.current_date, days):
            result = entry["recommendation"]
            if not result.success:
                table.add_row(entry["date"].isoformat(), f"[red]{result.error}[/red]", "", "", "")
                continue
            workout = result.data.recommended_workout
            table.add_row(
                entry["date"].isoformat(),
                f"{workout.type}: {workout.description}",
                f"{workout.duration_min:.0f}",
                f"{workout.fatigue_score:.0f}",
                f"{result.data.confidence:.0f}%",
            )
        console.print(table)
        return

    result = recommender.recommend_tomorrow_workout(request)
    if not result.success:
        _fail(result.error)

    recommendation = result.data
    workout = recommendation.recommended_workout
    text = f"""
[bold]{workout.type.upper()}[/bold]: {workout.description}

[bold]Duration:[/bold] {workout.duration_min:.0f} min
[bold]Fatigue:[/bold] {workout.fatigue_score:.0f}
[bold]Recovery status:[/bold] {recommendation.recovery_status}
[bold]Confidence:[/bold] {recommendation.confidence:.0f}%
"""
    console.print(Panel(text.strip(), title="🎯 Tomorrow's Workout", border_style="blue"))
    _print_messages("Reasoning", recommendation.reasoning, "white")
    if recommendation.weather_consideration:
        console.print(f"\n🌦  {recommendation.weather_consideration}")
    if recommendation.alternatives:
        _print_messages(
            "Alternatives",
            [f"{t.type}: {t.description} ({t.duration_min:.0f} min)" for t in recommendation.alternatives],
            "cyan",
        )


@cli.command()
@click.option("--plan", "plan_path", required=True, help="Training plan (JSON or CSV)")
@click.option("--date", "day", required=True, help="Date of the workout to modify (YYYY-MM-DD)")
@click.option("--type", "modification_type", required=True,
              type=click.Choice(["change-to-rest", "change-workout-type", "adjust-duration", "adjust-intensity"]),
              help="Kind of modification")
@click.option("--workout-type", help="New workout type for change-workout-type")
@click.option("--duration", type=float, help="New duration (minutes) for adjust-duration")
@click.option("--intensity", type=float, help="New expected fatigue for adjust-intensity")
@click.option("--reason", help="Reason recorded with the change")
@click.option("--no-redistribute", is_flag=True, help="Do not redistribute lost load")
def modify(plan_path, day, modification_type, workout_type, duration, intensity, reason, no_redistribute):
    """Modify one workout and rebalance the rest of the plan."""
    try:
        plan = load_plan(plan_path)
        target = parse_date(day)
    except (OSError, DataValidationError) as e:
        _fail(f"Could not read input: {e}")

    result = PlanRebalancer().modify_workout(
        plan,
        target,
        modification_type,
        {"workout_type": workout_type, "duration_min": duration, "expected_fatigue": intensity},
        reason=reason,
        options=RebalanceOptions(redistribute_load=not no_redistribute),
    )
    if not result.success:
        _fail("; ".join(result.warnings))

    _print_plan(result.adjusted_plan, "Adjusted Plan")
    _print_modifications(result.modifications)
    summary = result.impact_summary
    console.print(
        f"\nDays affected: {summary.days_affected}  "
        f"Load change: {summary.total_load_change:+.0f}  "
        f"Volume change: {summary.weekly_volume_change:+.0f} min"
    )
    _print_messages("Warnings", result.warnings, "yellow")
    _print_messages("Recommendations", result.recommendations, "green")


@cli.command()
@click.option("--plan", "plan_path", required=True, help="Training plan (JSON or CSV)")
@click.option("--reason", required=True,
              help="missed-workout, illness, injury, schedule-change, performance-plateau or overreaching")
@click.option("--dates", required=True, help="Comma-separated affected dates (YYYY-MM-DD)")
@click.option("--available", help="Comma-separated dates available for rescheduling")
@click.option("--profile", "profile_path", help="Athlete profile (JSON)")
@click.option("--user-id", default="default", help="User ID for the adjustment")
@click.option("--seed", type=int, default=None, help="Seed for replacement workout selection")
def adjust(plan_path, reason, dates, available, profile_path, user_id, seed):
    """Adjust a plan for missed workouts, illness, schedule changes and more."""
    try:
        plan = load_plan(plan_path)
        profile = load_profile(profile_path)
        affected = [parse_date(d) for d in dates.split(",") if d.strip()]
        available_days = [parse_date(d) for d in available.split(",") if d.strip()] if available else []
    except (OSError, DataValidationError) as e:
        _fail(f"Could not read input: {e}")

    request = PlanAdjustmentRequest(
        original_plan=plan,
        adjustment_reason=reason,
        affected_dates=affected,
        constraints=PlanConstraints(available_days=available_days),
    )
    result = PlanAdjustmentOrchestrator(rng=config.get_random(seed)).adjust_plan(user_id, request, profile)
    if not result.success:
        _fail(result.error)

    adjustment = result.data
    _print_plan(adjustment.adjusted_plan, "Adjusted Plan")
    _print_modifications(adjustment.modifications)
    impact = adjustment.impact_assessment
    console.print(
        f"\nVolume change: {impact.volume_change:+.1f}%  "
        f"Periodization: {impact.periodization_impact}  "
        f"Confidence: {adjustment.confidence:.0f}%"
    )
    _print_messages("Warnings", result.warnings + adjustment.warnings, "yellow")
    _print_messages("Recommendations", adjustment.recommendations, "green")
    if adjustment.alternatives:
        _print_messages(
            "Alternatives",
            [f"{alt.name} (score {alt.score:.0f}): {alt.description}" for alt in adjustment.alternatives],
            "cyan",
        )


@cli.command()
@click.option("--activities", "activities_path", required=True, help="Activity history (JSON or CSV)")
@click.option("--recovery", "recovery_path", required=True, help="Recovery samples (JSON or CSV)")
@click.option("--profile", "profile_path", help="Athlete profile (JSON)")
@click.option("--user-id", default="default", help="User ID for the dashboard")
@click.option("--date", "as_of", help="Dashboard date (YYYY-MM-DD), defaults to today")
def dashboard(activities_path, recovery_path, profile_path, user_id, as_of):
    """Quick stats from recommendation, readiness and overtraining checks."""
    activities, samples, profile = _read_inputs(activities_path, recovery_path, profile_path)
    insights = TrainingInsightsService().dashboard_insights(
        user_id, activities, samples, profile, _as_of(as_of)
    )
    stats = insights.quick_stats
    table = Table(title="Dashboard", box=box.ROUNDED)
    table.add_column("Stat", style="cyan")
    table.add_column("Value")
    table.add_row("Readiness score", f"{stats.readiness_score:.0f}")
    table.add_row("Trend", stats.trend_direction)
    table.add_row("Risk level", f"[{RISK_COLORS.get(stats.risk_level, 'white')}]{stats.risk_level}[/]")
    table.add_row("Next workout", stats.next_recommendation)
    table.add_row("Updated", insights.last_updated.strftime("%Y-%m-%d %H:%M"))
    console.print(table)
    if insights.overtraining is not None and insights.overtraining.has_markers:
        _print_messages(f"Overtraining markers ({insights.overtraining.severity})",
                        insights.overtraining.markers, "red")
    _print_messages("Warnings", insights.warnings, "yellow")


@cli.command()
@click.option("--activities", "activities_path", required=True, help="Activity history (JSON or CSV)")
@click.option("--recovery", "recovery_path", help="Recovery samples (JSON or CSV)")
@click.option("--date", "as_of", help="Reference date (YYYY-MM-DD), defaults to today")
def quality(activities_path, recovery_path, as_of):
    """Score input data quality and screen for implausible values."""
    activities, samples, _ = _read_inputs(activities_path, recovery_path)
    report = assess_data_quality(activities, samples, _as_of(as_of))

    color = {"excellent": "green", "good": "blue", "fair": "yellow", "poor": "red"}[report.category]
    console.print(Panel.fit(
        f"[bold {color}]{report.category.upper()}[/bold {color}] ({report.score:.0f}/100)",
        title="Data Quality",
    ))
    _print_messages("Factors", report.factors, "white")

    if samples:
        table = Table(title="Recovery metric coverage", box=box.SIMPLE)
        table.add_column("Metric", style="cyan")
        table.add_column("Coverage", justify="right")
        for metric, share in summarize_coverage(samples).items():
            table.add_row(metric, f"{share:.0%}")
        console.print(table)

    validator = DataValidator()
    issues = validator.screen_activities(activities) + validator.screen_recovery(samples)
    _print_messages("Out-of-range values", issues, "red")


def main():
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
