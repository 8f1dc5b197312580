"""Configuration management for the training readiness engine."""

import os
import random
from typing import Optional
from dotenv import load_dotenv

load_dotenv()


def _optional_int(name: str) -> Optional[int]:
    value = os.getenv(name, "").strip()
    return int(value) if value else None


class Config:
    """Engine configuration."""

    # Training load windows (days)
    ACUTE_WINDOW_DAYS: int = int(os.getenv("ACUTE_WINDOW_DAYS", "7"))
    CHRONIC_WINDOW_DAYS: int = int(os.getenv("CHRONIC_WINDOW_DAYS", "28"))
    TREND_WEEKS: int = int(os.getenv("TREND_WEEKS", "4"))

    # TSB optimal training range
    OPTIMAL_TSB_MIN: float = float(os.getenv("OPTIMAL_TSB_MIN", "-5"))
    OPTIMAL_TSB_MAX: float = float(os.getenv("OPTIMAL_TSB_MAX", "15"))

    # Recovery baselines
    RECOVERY_WINDOW_DAYS: int = int(os.getenv("RECOVERY_WINDOW_DAYS", "28"))
    BASELINE_TRIM_FRACTION: float = float(os.getenv("BASELINE_TRIM_FRACTION", "0.2"))
    MIN_HRV_SAMPLES: int = int(os.getenv("MIN_HRV_SAMPLES", "7"))
    MIN_RESTING_HR_SAMPLES: int = int(os.getenv("MIN_RESTING_HR_SAMPLES", "7"))
    MIN_BODY_BATTERY_SAMPLES: int = int(os.getenv("MIN_BODY_BATTERY_SAMPLES", "5"))
    MIN_SLEEP_SAMPLES: int = int(os.getenv("MIN_SLEEP_SAMPLES", "5"))

    # Recommendation input limits
    MAX_ACTIVITY_AGE_DAYS: int = int(os.getenv("MAX_ACTIVITY_AGE_DAYS", "60"))
    MAX_ALTERNATIVES: int = int(os.getenv("MAX_ALTERNATIVES", "3"))
    RECOMMENDATION_SEED: Optional[int] = _optional_int("RECOMMENDATION_SEED")

    # Plan rebalancing
    MAX_DAILY_FATIGUE_INCREASE: float = float(os.getenv("MAX_DAILY_FATIGUE_INCREASE", "15"))
    MAX_REBALANCED_FATIGUE: float = float(os.getenv("MAX_REBALANCED_FATIGUE", "85"))
    REDISTRIBUTION_THRESHOLD: float = float(os.getenv("REDISTRIBUTION_THRESHOLD", "5"))
    HARD_DAY_FATIGUE: float = float(os.getenv("HARD_DAY_FATIGUE", "70"))

    # Orchestration layer
    CACHE_TTL_SECONDS: int = int(os.getenv("CACHE_TTL_SECONDS", "3600"))
    MAX_WORKERS: int = int(os.getenv("MAX_WORKERS", "3"))

    # Application
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # Fitness level scaling for workout templates (duration, fatigue)
    FITNESS_LEVEL_MULTIPLIERS = {
        "beginner": {"duration": 0.7, "fatigue": 0.8},
        "intermediate": {"duration": 1.0, "fatigue": 1.0},
        "advanced": {"duration": 1.3, "fatigue": 1.1},
    }

    @classmethod
    def get_fitness_multipliers(cls, fitness_level: str) -> dict:
        """Get duration/fatigue multipliers for a fitness level."""
        return cls.FITNESS_LEVEL_MULTIPLIERS.get(
            fitness_level, cls.FITNESS_LEVEL_MULTIPLIERS["intermediate"]
        )

    @classmethod
    def get_random(cls, seed: Optional[int] = None) -> random.Random:
        """Return a random generator, seeded from config when no seed is given."""
        if seed is None:
            seed = cls.RECOMMENDATION_SEED
        return random.Random(seed)


config = Config()
