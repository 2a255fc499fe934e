"""
Run records: per-phase status, invocation results and run metrics.
"""

from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from .context import WorkflowContext
from .workflow import WorkflowDefinition

PhaseStatus = Literal["pending", "running", "skipped", "succeeded", "failed"]
RunStatus = Literal["pending", "running", "succeeded", "failed"]

TERMINAL_STATUSES: frozenset[str] = frozenset({"skipped", "succeeded", "failed"})


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class InvocationResult(BaseModel):
    """Outcome of one agent invocation."""

    agent: str
    success: bool
    output: dict[str, Any] | None = None
    error: str | None = None
    duration: float = 0.0


class PhaseRecord(BaseModel):
    """
    Status and timing of one phase within a run.

    Attributes:
        name: Phase name
        status: Current state (pending, running, skipped, succeeded, failed)
        results: Per-invocation results, in invocation order
        skip_reason: Why the phase was skipped
        error: Failure description for failed phases
        condition_evaluations: How many times the phase predicate ran
    """

    name: str
    status: PhaseStatus = "pending"
    started_at: datetime | None = None
    finished_at: datetime | None = None
    duration: float | None = None
    results: list[InvocationResult] = Field(default_factory=list)
    skip_reason: str | None = None
    error: str | None = None
    condition_evaluations: int = 0

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES


class RunMetrics(BaseModel):
    """Aggregate quality metrics for a run."""

    succeeded: int = 0
    failed: int = 0
    skipped: int = 0
    duration: float = 0.0
    phase_durations: dict[str, float] = Field(default_factory=dict)


class WorkflowRun(BaseModel):
    """
    A single execution of a workflow definition.

    Created when orchestration starts and updated as phases complete. The
    run is terminal once ``status`` is "succeeded" or "failed".
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    run_id: str
    definition: WorkflowDefinition
    context: WorkflowContext
    phases: dict[str, PhaseRecord] = Field(default_factory=dict)
    status: RunStatus = "pending"
    metrics: RunMetrics = Field(default_factory=RunMetrics)
    started_at: datetime | None = None
    finished_at: datetime | None = None
    error: str | None = None

    @property
    def workflow(self) -> str:
        return self.definition.name

    def phase_statuses(self) -> dict[str, PhaseStatus]:
        return {name: record.status for name, record in self.phases.items()}

    def phases_in(self, status: PhaseStatus) -> list[str]:
        return [name for name, record in self.phases.items() if record.status == status]

    def to_record(self) -> dict[str, Any]:
        """JSON-serializable summary for run sinks."""
        return {
            "run_id": self.run_id,
            "workflow": self.workflow,
            "status": self.status,
            "error": self.error,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "metrics": self.metrics.model_dump(mode="json"),
            "phases": {
                name: record.model_dump(mode="json") for name, record in self.phases.items()
            },
            "context": self.context.as_dict(),
        }
