"""
Agent invocation boundary.

The orchestrator does not know how an agent runs. It hands the resolved
agent, the invocation inputs and a context snapshot to an ``AgentExecutor``
and expects a mapping back, or an ``InvocationError``.
"""

import inspect
import logging
from collections.abc import Callable, Mapping
from typing import Any, Protocol

from .agents import Agent
from .errors import FatalInvocationError

logger = logging.getLogger(__name__)


class AgentExecutor(Protocol):
    """Runs a resolved agent."""

    async def invoke(
        self, agent: Agent, inputs: dict[str, Any], context: Mapping[str, Any]
    ) -> Mapping[str, Any]:
        """
        Run ``agent`` and return its output mapping.

        Raises:
            InvocationError: Recoverable failure local to this invocation
            FatalInvocationError: Failure that must abort the run
        """
        ...


Handler = Callable[[Agent, dict[str, Any], Mapping[str, Any]], Any]


class HandlerExecutor:
    """
    Executor that dispatches to a Python callable per agent name.

    Handlers may be plain functions or coroutine functions. They receive the
    agent, the inputs and the read-only context snapshot.

    Usage:
        executor = HandlerExecutor({"reviewer": review_changes})
        executor.add_handler("tester", run_tests)
    """

    def __init__(self, handlers: dict[str, Handler] | None = None, default: Handler | None = None):
        """
        Args:
            handlers: Mapping of agent name to handler
            default: Handler used for agents without a specific handler
        """
        self.handlers: dict[str, Handler] = dict(handlers or {})
        self.default = default

    def add_handler(self, name: str, handler: Handler) -> None:
        self.handlers[name] = handler

    async def invoke(
        self, agent: Agent, inputs: dict[str, Any], context: Mapping[str, Any]
    ) -> Mapping[str, Any]:
        handler = self.handlers.get(agent.name, self.default)
        if handler is None:
            raise FatalInvocationError(f"No handler for agent '{agent.name}'", agent=agent.name)

        logger.debug(f"Invoking handler for agent {agent.name}")
        result = handler(agent, inputs, context)
        if inspect.isawaitable(result):
            result = await result
        return result
