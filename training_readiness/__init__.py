"""Training readiness and adaptive planning engine."""

__version__ = "1.0.0"
