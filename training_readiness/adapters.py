"""
Load activity, recovery, plan and profile records from JSON or CSV files.
Rows are normalized through pandas and validated by the record constructors.
"""

import json
import logging
import os
from typing import Any, Dict, List

import pandas as pd

from .models import (
    ActivitySample,
    DataValidationError,
    PlannedWorkout,
    RecoveryMetricsSample,
    UserTrainingProfile,
    validate_plan,
)

logger = logging.getLogger(__name__)


def _rows(df: pd.DataFrame) -> List[Dict[str, Any]]:
    """DataFrame rows as dicts with NaN cells replaced by None."""
    df = df.rename(columns=lambda c: str(c).strip())
    clean = df.astype(object).where(pd.notna(df), None)
    return clean.to_dict(orient="records")


def _read_frame(path: str) -> pd.DataFrame:
    extension = os.path.splitext(path)[1].lower()
    if extension == ".csv":
        return pd.read_csv(path, encoding="utf-8")
    if extension == ".json":
        with open(path, encoding="utf-8") as f:
            payload = json.load(f)
        if isinstance(payload, dict):
            # Accept {"activities": [...]}-style wrappers
            lists = [v for v in payload.values() if isinstance(v, list)]
            if len(lists) != 1:
                raise DataValidationError(f"Expected a list of records in {path}")
            payload = lists[0]
        return pd.DataFrame(payload)
    raise DataValidationError(f"Unsupported file type: {path}")


def activities_from_frame(df: pd.DataFrame) -> List[ActivitySample]:
    activities = [ActivitySample.from_dict(row) for row in _rows(df)]
    activities.sort(key=lambda a: a.date)
    return activities


def recovery_from_frame(df: pd.DataFrame) -> List[RecoveryMetricsSample]:
    samples = [RecoveryMetricsSample.from_dict(row) for row in _rows(df)]
    samples.sort(key=lambda s: s.date)
    return samples


def plan_from_frame(df: pd.DataFrame) -> List[PlannedWorkout]:
    rows = _rows(df)
    for row in rows:
        # CSV exports carry tags as a ';'-separated cell
        if isinstance(row.get("tags"), str):
            row["tags"] = [t for t in row["tags"].split(";") if t]
    return list(validate_plan(PlannedWorkout.from_dict(row) for row in rows))


def load_activities(path: str) -> List[ActivitySample]:
    activities = activities_from_frame(_read_frame(path))
    logger.info(f"Loaded {len(activities)} activities from {path}")
    return activities


def load_recovery(path: str) -> List[RecoveryMetricsSample]:
    samples = recovery_from_frame(_read_frame(path))
    logger.info(f"Loaded {len(samples)} recovery samples from {path}")
    return samples


def load_plan(path: str) -> List[PlannedWorkout]:
    plan = plan_from_frame(_read_frame(path))
    logger.info(f"Loaded {len(plan)} plan entries from {path}")
    return plan


def load_profile(path: str = None) -> UserTrainingProfile:
    """Profile from a JSON object, or the default profile when no path is given."""
    if not path:
        return UserTrainingProfile.default()
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise DataValidationError(f"Expected a profile object in {path}")
    return UserTrainingProfile.from_dict(data)
