"""
Workflow data models.

Defines workflows, phases and agent invocations using Pydantic models for
validation and easy YAML loading. Unlike a flat list of stages, phases form
a dependency graph: each phase names the phases it depends on, and its
execution mode decides how it is scheduled once those are done.
"""

from collections.abc import Callable, Mapping
from typing import Any, Literal

from pydantic import BaseModel, Field, model_validator

from .context import lookup

ExecutionMode = Literal["parallel", "sequential", "conditional"]

ConditionOperator = Literal[
    "equals", "not_equals", "in", "not_in", "exists", "missing", "truthy", "falsy"
]

_MISSING = object()


class ContextCondition(BaseModel):
    """
    Declarative predicate over a context snapshot.

    Lets YAML workflows gate conditional phases without embedding code.

    Attributes:
        key: Dotted path into the context (e.g. "review.approved")
        operator: Comparison to apply to the value found at ``key``
        value: Operand for equals/not_equals/in/not_in
    """

    key: str = Field(description="Dotted path into the workflow context")
    operator: ConditionOperator = Field(default="equals", description="Comparison operator")
    value: Any = Field(default=None, description="Operand for the comparison")

    @model_validator(mode="after")
    def _check_membership_operand(self) -> "ContextCondition":
        if self.operator in ("in", "not_in") and not isinstance(
            self.value, (list, tuple, set, frozenset, str)
        ):
            raise ValueError(f"operator '{self.operator}' needs a list of values to compare against")
        return self

    def __call__(self, context: Mapping[str, Any]) -> bool:
        found = lookup(context, self.key, _MISSING)

        if self.operator == "exists":
            return found is not _MISSING
        if self.operator == "missing":
            return found is _MISSING
        if self.operator == "truthy":
            return found is not _MISSING and bool(found)
        if self.operator == "falsy":
            return found is _MISSING or not found
        if found is _MISSING:
            return self.operator in ("not_equals", "not_in")
        if self.operator == "equals":
            return found == self.value
        if self.operator == "not_equals":
            return found != self.value
        if self.operator == "in":
            return found in self.value
        return found not in self.value


Predicate = Callable[[Mapping[str, Any]], bool]


class AgentInvocation(BaseModel):
    """
    A single agent call made by a phase.

    Attributes:
        agent: Name of the agent to resolve through the registry
        inputs: Invocation-specific inputs passed to the agent
        outputs: Output keys to merge into the context (None merges all)
        output_key: Store the whole output mapping under this key instead
        timeout: Optional timeout override in seconds
    """

    agent: str = Field(description="Name of the agent to invoke")
    inputs: dict[str, Any] = Field(default_factory=dict, description="Inputs for the agent")
    outputs: list[str] | None = Field(
        default=None, description="Output keys to merge into the context (None = all)"
    )
    output_key: str | None = Field(
        default=None, description="Store the whole output under this context key"
    )
    timeout: float | None = Field(default=None, gt=0, description="Timeout override in seconds")


class WorkflowPhase(BaseModel):
    """
    A named node of the workflow graph.

    Attributes:
        name: Unique phase name within the workflow
        mode: "parallel", "sequential" or "conditional"
        agents: Ordered agent invocations
        depends_on: Names of phases that must finish first
        condition: Predicate gating a conditional phase
        description: Optional human-readable description
    """

    name: str = Field(description="Unique phase name")
    mode: ExecutionMode = Field(default="sequential", description="How the phase is scheduled")
    agents: list[AgentInvocation] = Field(
        default_factory=list, description="Agent invocations made by this phase"
    )
    depends_on: list[str] = Field(
        default_factory=list, description="Phases that must be terminal before this one"
    )
    condition: ContextCondition | Predicate | None = Field(
        default=None, description="Predicate over the context (conditional phases only)"
    )
    description: str | None = Field(default=None, description="Optional phase description")


class WorkflowDefinition(BaseModel):
    """
    Complete workflow definition.

    The order of ``phases`` is the declaration order used for tie-breaks
    and for merging results of concurrent phases.

    Attributes:
        name: Human-readable workflow name
        description: Optional workflow description
        phases: Phases in declaration order
        config: Optional workflow-wide settings
    """

    name: str = Field(description="Human-readable workflow name")
    description: str | None = Field(default=None, description="Optional workflow description")
    phases: list[WorkflowPhase] = Field(description="Phases in declaration order")
    config: dict[str, Any] = Field(
        default_factory=dict, description="Optional workflow-wide configuration"
    )

    def phase(self, name: str) -> WorkflowPhase:
        for phase in self.phases:
            if phase.name == name:
                return phase
        raise KeyError(name)

    @property
    def phase_names(self) -> list[str]:
        return [phase.name for phase in self.phases]
