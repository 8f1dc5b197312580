"""Result envelopes returned by every public entry point."""

import dataclasses
import logging
import time
from datetime import date, datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from .. import __version__

logger = logging.getLogger(__name__)


def to_serializable(value: Any) -> Any:
    """Convert dataclasses, enums and dates into JSON-friendly structures."""
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {f.name: to_serializable(getattr(value, f.name)) for f in dataclasses.fields(value)}
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, dict):
        return {str(k): to_serializable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_serializable(v) for v in value]
    return value


@dataclasses.dataclass
class DecisionContext:
    """Observability record attached to a result."""
    user_id: str
    timestamp: datetime
    operation: str
    input_summary: Dict[str, Any] = dataclasses.field(default_factory=dict)
    algorithms: List[str] = dataclasses.field(default_factory=list)
    parameters: Dict[str, Any] = dataclasses.field(default_factory=dict)
    version: str = __version__


@dataclasses.dataclass
class AnalysisResult:
    """Envelope: ``{success, data, error, warnings, context, processing_time_ms}``."""
    success: bool
    context: DecisionContext
    data: Any = None
    error: Optional[str] = None
    warnings: List[str] = dataclasses.field(default_factory=list)
    processing_time_ms: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return to_serializable(self)


@dataclasses.dataclass
class PlanModificationRecord:
    """Audit entry for one plan edit."""
    date: date
    action: str
    original: Any
    new: Any
    reason: Optional[str]
    timestamp: datetime


@dataclasses.dataclass
class ImpactSummary:
    days_affected: int = 0
    total_load_change: float = 0.0
    weekly_volume_change: float = 0.0


@dataclasses.dataclass
class PlanModificationResult:
    """Outcome of a single-day plan modification."""
    success: bool
    adjusted_plan: List[Any] = dataclasses.field(default_factory=list)
    modifications: List[PlanModificationRecord] = dataclasses.field(default_factory=list)
    impact_summary: ImpactSummary = dataclasses.field(default_factory=ImpactSummary)
    warnings: List[str] = dataclasses.field(default_factory=list)
    recommendations: List[str] = dataclasses.field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return to_serializable(self)


class ResultBuilder:
    """Times an entry point and produces its envelope.

    Usage::

        builder = ResultBuilder("assess", user_id, clock)
        return builder.ok(data, warnings)
    """

    def __init__(
        self,
        operation: str,
        user_id: str,
        clock: Callable[[], datetime],
        algorithms: Optional[List[str]] = None,
        parameters: Optional[Dict[str, Any]] = None,
    ):
        self._started = time.perf_counter()
        self.context = DecisionContext(
            user_id=user_id or "",
            timestamp=clock(),
            operation=operation,
            algorithms=list(algorithms or []),
            parameters=dict(parameters or {}),
        )

    def _elapsed_ms(self) -> float:
        return round((time.perf_counter() - self._started) * 1000, 3)

    def ok(self, data: Any, warnings: Optional[List[str]] = None) -> AnalysisResult:
        return AnalysisResult(
            success=True,
            context=self.context,
            data=data,
            warnings=list(warnings or []),
            processing_time_ms=self._elapsed_ms(),
        )

    def fail(self, error: str, warnings: Optional[List[str]] = None) -> AnalysisResult:
        return AnalysisResult(
            success=False,
            context=self.context,
            error=error,
            warnings=list(warnings or []),
            processing_time_ms=self._elapsed_ms(),
        )
