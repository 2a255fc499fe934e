"""Error types raised by the registry, validator and orchestrator."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .run import WorkflowRun
    from .validation import Violation


class CodeflowError(Exception):
    """Base class for all orchestration errors."""


class DefinitionInvalidError(CodeflowError):
    """A workflow definition failed structural validation.

    Raised before any phase executes.

    Args:
        violations: The violations reported by the validator
    """

    def __init__(self, violations: list[Violation]):
        self.violations = list(violations)
        summary = "; ".join(v.message for v in self.violations) or "no details"
        super().__init__(f"Invalid workflow definition: {summary}")


class RegistryError(CodeflowError):
    """Base class for agent registry failures."""


class AgentNotFoundError(RegistryError, LookupError):
    """No agent with the requested name exists in any scope."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Agent not found: {name}")


class DuplicateAgentError(RegistryError):
    """An agent with the same name and scope is already registered."""

    def __init__(self, name: str, scope: str):
        self.name = name
        self.scope = scope
        super().__init__(f"Agent already registered: {name} ({scope})")


class RegistryLockedError(RegistryError):
    """Registration was attempted while a run is using the registry."""


class AgentDefinitionError(RegistryError):
    """A project agent definition file could not be turned into an agent."""

    def __init__(self, path: Any, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"{path}: {reason}")


class InvocationError(CodeflowError):
    """An agent invocation failed.

    Recoverable errors fail only the owning phase. Non-recoverable errors
    abort the whole run.

    Args:
        message: Human-readable failure description
        agent: Name of the agent that was invoked, if known
        recoverable: Whether the run may continue past this failure
    """

    def __init__(self, message: str, agent: str | None = None, recoverable: bool = True):
        self.agent = agent
        self.recoverable = recoverable
        super().__init__(message)


class InvocationTimeoutError(InvocationError):
    """An invocation exceeded its configured timeout."""

    def __init__(self, agent: str, timeout: float):
        self.timeout = timeout
        super().__init__(f"Agent '{agent}' timed out after {timeout:g}s", agent=agent)


class FatalInvocationError(InvocationError):
    """An invocation failure that must abort the run."""

    def __init__(self, message: str, agent: str | None = None):
        super().__init__(message, agent=agent, recoverable=False)


class InvocationContractError(FatalInvocationError):
    """The invocation or its output violated the agent contract."""


class WorkflowAbortedError(CodeflowError):
    """A fatal error halted the run.

    The terminal run record is attached as ``run``; the triggering error is
    available as ``__cause__``.
    """

    def __init__(self, run: WorkflowRun, message: str):
        self.run = run
        super().__init__(message)
