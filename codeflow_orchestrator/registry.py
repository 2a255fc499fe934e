"""
AgentRegistry - Resolves agent names to validated agent definitions.

The registry merges two scopes. Built-in agents are compiled into the
package; project agents are discovered in one well-known directory of a
project. A project agent shadows a built-in agent of the same name.

Lifecycle: construct, ``load_built_in()``, optionally ``load_project()``,
then hand the registry to one or more orchestrators. While any run holds the
registry through ``in_use()`` it is read-only.
"""

import logging
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING

from .agents import BUILT_IN, PROJECT, Agent
from .builtin_agents import BUILT_IN_AGENTS
from .errors import AgentNotFoundError, DuplicateAgentError, RegistryLockedError
from .loaders import DEFAULT_MAX_DEFINITION_BYTES, AgentLoader, LoadReport, ProjectAgentLoader

if TYPE_CHECKING:
    from .config import OrchestratorConfig

logger = logging.getLogger(__name__)

DEFAULT_AGENTS_SUBDIR = ".codeflow/agents"


class AgentRegistry:
    """
    Registry of agents keyed by (name, scope).

    Usage:
        registry = AgentRegistry()
        registry.load_built_in()
        report = registry.load_project(Path("my-project"))
        agent = registry.resolve("reviewer")
    """

    def __init__(
        self,
        agents_subdir: str = DEFAULT_AGENTS_SUBDIR,
        max_definition_bytes: int = DEFAULT_MAX_DEFINITION_BYTES,
    ):
        """
        Args:
            agents_subdir: Directory, relative to a project, that holds agent definitions
            max_definition_bytes: Largest definition file the default loader reads
        """
        subdir = Path(agents_subdir)
        if subdir.is_absolute() or ".." in subdir.parts:
            raise ValueError(f"agents_subdir must stay inside the project: {agents_subdir}")
        self.agents_subdir = agents_subdir
        self.max_definition_bytes = max_definition_bytes
        self._agents: dict[tuple[str, str], Agent] = {}
        self._active_runs = 0
        self._lock = threading.Lock()

    @classmethod
    def from_config(cls, config: "OrchestratorConfig") -> "AgentRegistry":
        """Create a registry using the agent directory settings of ``config``."""
        return cls(
            agents_subdir=config.agents_subdir,
            max_definition_bytes=config.max_definition_bytes,
        )

    def register(self, agent: Agent) -> None:
        """
        Add an agent under its (name, scope) key.

        Raises:
            DuplicateAgentError: If the key is taken; the existing agent is kept
            RegistryLockedError: If a run is currently using the registry
        """
        with self._lock:
            if self._active_runs:
                raise RegistryLockedError(
                    f"Cannot register '{agent.name}' while {self._active_runs} run(s) are active"
                )
            if agent.key in self._agents:
                raise DuplicateAgentError(agent.name, agent.scope)
            self._agents[agent.key] = agent
        logger.debug(f"Registered agent {agent.name} ({agent.scope})")

    def resolve(self, name: str) -> Agent:
        """
        Return the agent visible under ``name``, preferring project scope.

        Raises:
            AgentNotFoundError: If no scope defines the agent
        """
        agent = self._agents.get((name, PROJECT)) or self._agents.get((name, BUILT_IN))
        if agent is None:
            raise AgentNotFoundError(name)
        return agent

    def _register_all(self, agents: list[Agent], report: LoadReport) -> None:
        for agent in agents:
            try:
                self.register(agent)
            except DuplicateAgentError as e:
                logger.warning(f"{e}; keeping the first definition")
                report.warnings.append(str(e))
            else:
                report.loaded.append(agent.name)

    def load_built_in(self) -> int:
        """Register the compiled-in agents. Returns how many were added."""
        report = LoadReport()
        self._register_all(list(BUILT_IN_AGENTS), report)
        logger.info(f"Loaded {len(report.loaded)} built-in agents")
        return len(report.loaded)

    def load_project(self, project_path: str | Path, loader: AgentLoader | None = None) -> LoadReport:
        """
        Discover and register project-scoped agents.

        Only ``project_path / agents_subdir`` is read unless a custom loader
        is supplied. Malformed definitions and duplicates are reported in the
        returned ``LoadReport``; they never fail the load.
        """
        if loader is None:
            loader = ProjectAgentLoader(
                Path(project_path) / self.agents_subdir,
                max_bytes=self.max_definition_bytes,
                project_root=project_path,
            )

        agents, warnings = loader.load()
        report = LoadReport(warnings=list(warnings))
        self._register_all(agents, report)
        logger.info(
            f"Registered {len(report.loaded)} project agents "
            f"({len(report.warnings)} warnings)"
        )
        return report

    @contextmanager
    def in_use(self) -> Iterator["AgentRegistry"]:
        """Hold the registry read-only for the duration of a run."""
        with self._lock:
            self._active_runs += 1
        try:
            yield self
        finally:
            with self._lock:
                self._active_runs -= 1

    @property
    def active_runs(self) -> int:
        return self._active_runs

    def agents(self) -> list[Agent]:
        """All registered agents, built-in scope first."""
        return sorted(self._agents.values(), key=lambda a: (a.scope != BUILT_IN, a.name))

    def names(self) -> set[str]:
        return {name for name, _scope in self._agents}

    def __contains__(self, name: object) -> bool:
        return name in self.names()

    def __len__(self) -> int:
        return len(self._agents)

    def __repr__(self) -> str:
        return f"AgentRegistry(agents={len(self._agents)}, active_runs={self._active_runs})"
