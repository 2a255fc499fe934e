"""
Static validation of workflow definitions.

Checks structure only; whether an agent actually exists is decided at
execution time by the registry.
"""

import logging
from collections import Counter
from dataclasses import dataclass, field

from .agents import is_valid_agent_name
from .errors import DefinitionInvalidError
from .workflow import WorkflowDefinition

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Violation:
    """A single structural problem.

    Args:
        code: Stable identifier, e.g. "dependency_cycle"
        message: Human-readable description
        phase: Offending phase, if any
    """

    code: str
    message: str
    phase: str | None = None


@dataclass
class ValidationResult:
    """Violations found in a definition. Empty means valid."""

    violations: list[Violation] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.violations

    def codes(self) -> list[str]:
        return [v.code for v in self.violations]

    def raise_for_violations(self) -> None:
        if self.violations:
            raise DefinitionInvalidError(self.violations)

    def __bool__(self) -> bool:
        return self.is_valid


def _topological_order(definition: WorkflowDefinition) -> tuple[list[str], list[str]]:
    """Kahn's algorithm with declaration-order tie-break.

    Returns the ordered names and the names that could not be ordered.
    Unknown dependencies and self-dependencies are ignored here; they are
    reported separately.
    """
    names = list(dict.fromkeys(p.name for p in definition.phases))
    known = set(names)
    remaining: dict[str, set[str]] = {}
    for phase in definition.phases:
        remaining.setdefault(phase.name, set()).update(
            d for d in phase.depends_on if d in known and d != phase.name
        )

    order: list[str] = []
    while True:
        ready = [n for n in names if n in remaining and not remaining[n]]
        if not ready:
            break
        for name in ready:
            del remaining[name]
            order.append(name)
        for deps in remaining.values():
            deps.difference_update(ready)

    return order, [n for n in names if n in remaining]


def _cycle_members(definition: WorkflowDefinition, unordered: list[str]) -> list[str]:
    """Drop phases that are merely downstream of a cycle."""
    members = set(unordered)
    deps = {
        p.name: {d for d in p.depends_on if d in members and d != p.name}
        for p in definition.phases
        if p.name in members
    }
    while True:
        needed = set().union(*deps.values()) if deps else set()
        leaves = [name for name in deps if name not in needed]
        if not leaves:
            break
        for name in leaves:
            del deps[name]
    return [name for name in unordered if name in deps]


def execution_order(definition: WorkflowDefinition) -> list[str]:
    """
    Return a dependency-respecting phase order.

    Phases that become ready together keep their declaration order.

    Raises:
        DefinitionInvalidError: If the definition is not valid
    """
    validate(definition).raise_for_violations()
    order, _cyclic = _topological_order(definition)
    return order


def validate(definition: WorkflowDefinition) -> ValidationResult:
    """
    Check a workflow definition for structural problems.

    Reports duplicate phase names, dependencies on unknown phases or on the
    phase itself, dependency cycles, syntactically invalid agent names, and
    misplaced or missing conditions.
    """
    result = ValidationResult()
    add = result.violations.append

    if not definition.phases:
        add(Violation("empty_workflow", f"Workflow '{definition.name}' has no phases"))

    counts = Counter(p.name for p in definition.phases)
    for name, count in counts.items():
        if count > 1:
            add(Violation("duplicate_phase", f"Phase name '{name}' is used {count} times", name))

    known = set(counts)
    for phase in definition.phases:
        for dep in phase.depends_on:
            if dep == phase.name:
                add(Violation("self_dependency", f"Phase '{phase.name}' depends on itself", phase.name))
            elif dep not in known:
                add(
                    Violation(
                        "unknown_dependency",
                        f"Phase '{phase.name}' depends on unknown phase '{dep}'",
                        phase.name,
                    )
                )

        for invocation in phase.agents:
            if not is_valid_agent_name(invocation.agent):
                add(
                    Violation(
                        "invalid_agent_name",
                        f"Phase '{phase.name}' invokes invalid agent name '{invocation.agent}'",
                        phase.name,
                    )
                )

        if phase.mode == "conditional" and phase.condition is None:
            add(
                Violation(
                    "missing_condition",
                    f"Conditional phase '{phase.name}' has no condition",
                    phase.name,
                )
            )
        elif phase.mode != "conditional" and phase.condition is not None:
            add(
                Violation(
                    "unexpected_condition",
                    f"Phase '{phase.name}' has a condition but mode '{phase.mode}'",
                    phase.name,
                )
            )

    _order, unordered = _topological_order(definition)
    cyclic = list(dict.fromkeys(_cycle_members(definition, unordered)))
    if cyclic:
        add(
            Violation(
                "dependency_cycle",
                f"Dependency cycle among phases: {', '.join(cyclic)}",
                cyclic[0],
            )
        )

    if result.violations:
        logger.debug(f"Workflow '{definition.name}' has {len(result.violations)} violations")
    return result
