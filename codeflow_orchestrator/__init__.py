"""
Codeflow Workflow Orchestrator

Executes multi-phase agent workflows: phases form a dependency graph, run in
parallel, sequential or conditional mode, and pass accumulated state to each
other through a shared workflow context.

Public API:
    - WorkflowOrchestrator: Runs workflow definitions
    - AgentRegistry: Resolves agent names (built-in and project scope)
    - Agent: Agent definition model
    - WorkflowDefinition, WorkflowPhase, AgentInvocation, ContextCondition: Workflow models
    - WorkflowContext: Shared run state
    - WorkflowRun, PhaseRecord, RunMetrics, InvocationResult: Run records
    - validate, execution_order: Static workflow checks
    - HandlerExecutor: Callable-backed agent executor
    - OrchestratorConfig, load_workflow, load_config: Configuration
    - JsonRunRecorder, InMemoryRunCollector: Run sinks
"""

from .agents import Agent
from .config import OrchestratorConfig, load_config, load_workflow
from .context import WorkflowContext
from .errors import (
    AgentDefinitionError,
    AgentNotFoundError,
    CodeflowError,
    DefinitionInvalidError,
    DuplicateAgentError,
    FatalInvocationError,
    InvocationContractError,
    InvocationError,
    InvocationTimeoutError,
    RegistryError,
    RegistryLockedError,
    WorkflowAbortedError,
)
from .executor import AgentExecutor, HandlerExecutor
from .loaders import LoadReport, ProjectAgentLoader
from .orchestrator import WorkflowOrchestrator
from .recorder import InMemoryRunCollector, JsonRunRecorder
from .registry import AgentRegistry
from .run import InvocationResult, PhaseRecord, RunMetrics, WorkflowRun
from .validation import ValidationResult, Violation, execution_order, validate
from .workflow import AgentInvocation, ContextCondition, WorkflowDefinition, WorkflowPhase

__all__ = [
    "WorkflowOrchestrator",
    "AgentRegistry",
    "Agent",
    "AgentExecutor",
    "HandlerExecutor",
    "ProjectAgentLoader",
    "LoadReport",
    "WorkflowDefinition",
    "WorkflowPhase",
    "AgentInvocation",
    "ContextCondition",
    "WorkflowContext",
    "WorkflowRun",
    "PhaseRecord",
    "RunMetrics",
    "InvocationResult",
    "ValidationResult",
    "Violation",
    "validate",
    "execution_order",
    "OrchestratorConfig",
    "load_workflow",
    "load_config",
    "JsonRunRecorder",
    "InMemoryRunCollector",
    "CodeflowError",
    "DefinitionInvalidError",
    "RegistryError",
    "AgentNotFoundError",
    "DuplicateAgentError",
    "RegistryLockedError",
    "AgentDefinitionError",
    "InvocationError",
    "InvocationTimeoutError",
    "FatalInvocationError",
    "InvocationContractError",
    "WorkflowAbortedError",
]
