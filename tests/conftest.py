"""Shared test fixtures and utilities."""

import asyncio
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Any

import pytest

from codeflow_orchestrator import Agent, AgentRegistry, WorkflowOrchestrator

TEST_AGENTS = ("alpha", "beta", "gamma", "delta")


class ScriptedExecutor:
    """Executor whose agents follow per-name scripts.

    Records every call, the start/end order of invocations and the peak
    number of concurrently running invocations.
    """

    def __init__(self):
        self.scripts: dict[str, dict[str, Any]] = {}
        self.calls: list[tuple[str, dict[str, Any], dict[str, Any]]] = []
        self.events: list[tuple[str, str]] = []
        self.active = 0
        self.max_active = 0

    def on(
        self,
        name: str,
        output: Mapping[str, Any] | None = None,
        error: BaseException | None = None,
        delay: float = 0.0,
        handler: Callable[[dict[str, Any], Mapping[str, Any]], Any] | None = None,
    ) -> "ScriptedExecutor":
        self.scripts[name] = {"output": output, "error": error, "delay": delay, "handler": handler}
        return self

    def started(self, name: str) -> int:
        return self.events.index(("start", name))

    def ended(self, name: str) -> int:
        return self.events.index(("end", name))

    async def invoke(self, agent: Agent, inputs: dict[str, Any], context: Mapping[str, Any]):
        script = self.scripts.get(agent.name, {})
        self.calls.append((agent.name, inputs, dict(context)))
        self.events.append(("start", agent.name))
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            if script.get("delay"):
                await asyncio.sleep(script["delay"])
            if script.get("error") is not None:
                raise script["error"]
            if script.get("handler") is not None:
                return script["handler"](inputs, context)
            return dict(script.get("output") or {})
        finally:
            self.active -= 1
            self.events.append(("end", agent.name))


@pytest.fixture
def registry() -> AgentRegistry:
    """Create a registry with the built-in agents and generic test agents.

    Returns:
        AgentRegistry with alpha/beta/gamma/delta registered as built-ins
    """
    registry = AgentRegistry()
    registry.load_built_in()
    for name in TEST_AGENTS:
        registry.register(Agent(name=name, description=f"Test agent {name}"))
    return registry


@pytest.fixture
def executor() -> ScriptedExecutor:
    """Create an executor that returns empty outputs unless scripted."""
    return ScriptedExecutor()


@pytest.fixture
def orchestrator(registry: AgentRegistry, executor: ScriptedExecutor) -> WorkflowOrchestrator:
    """Create an orchestrator wired to the test registry and executor."""
    return WorkflowOrchestrator(registry, executor)


@pytest.fixture
def project_dir(tmp_path: Path) -> Path:
    """Create a project with an empty agent definition directory.

    Args:
        tmp_path: pytest temporary directory fixture

    Returns:
        Path to the project root
    """
    project = tmp_path / "project"
    (project / ".codeflow" / "agents").mkdir(parents=True)
    (project / "src").mkdir()
    (project / "src" / "main.py").write_text("print('hello')\n")
    (project / ".env").write_text("API_KEY=secret\n")
    return project
