"""
Agent data models.

An agent is a named unit of executable capability. The registry owns agent
records; phases refer to them only by name.
"""

import re
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

AgentScope = Literal["built-in", "project"]

BUILT_IN: AgentScope = "built-in"
PROJECT: AgentScope = "project"

AGENT_NAME_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.:-]*$")


def is_valid_agent_name(name: str) -> bool:
    """Return True if ``name`` is syntactically usable as an agent name."""
    return bool(AGENT_NAME_PATTERN.match(name))


class Agent(BaseModel):
    """
    A registered agent definition.

    Agents are immutable once created; a project agent overrides a built-in
    agent with the same name at resolution time.

    Attributes:
        name: Unique name within its scope
        scope: "built-in" or "project"
        description: What the agent does
        inputs: Input keys every invocation must supply
        outputs: Output keys the agent promises to return
        timeout: Optional per-invocation timeout in seconds
        instructions: Optional free-form instructions (e.g. a Markdown body)
        source: File the definition was loaded from, for project agents
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(description="Unique agent name within its scope")
    scope: AgentScope = Field(default=BUILT_IN, description="Where the agent came from")
    description: str = Field(default="", description="Declared capability description")
    inputs: tuple[str, ...] = Field(
        default=(), description="Input keys every invocation must supply"
    )
    outputs: tuple[str, ...] = Field(
        default=(), description="Output keys the agent promises to return"
    )
    timeout: float | None = Field(
        default=None, gt=0, description="Optional per-invocation timeout in seconds"
    )
    instructions: str | None = Field(
        default=None, description="Optional instructions, e.g. a Markdown body"
    )
    source: str | None = Field(
        default=None, description="Definition file for project-scoped agents"
    )

    @field_validator("name")
    @classmethod
    def _check_name(cls, value: str) -> str:
        if not is_valid_agent_name(value):
            raise ValueError(f"invalid agent name: {value!r}")
        return value

    @property
    def key(self) -> tuple[str, str]:
        return (self.name, self.scope)
