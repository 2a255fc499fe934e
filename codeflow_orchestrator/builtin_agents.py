"""Agent definitions compiled into the package.

These are loaded by ``AgentRegistry.load_built_in()`` without touching the
filesystem or network.
"""

from .agents import BUILT_IN, Agent

BUILT_IN_AGENTS: tuple[Agent, ...] = (
    Agent(
        name="architect",
        scope=BUILT_IN,
        description="Designs system structure and records architecture decisions",
        inputs=("requirements",),
        outputs=("architecture",),
    ),
    Agent(
        name="planner",
        scope=BUILT_IN,
        description="Breaks a goal into an ordered implementation plan",
        inputs=("goal",),
        outputs=("plan",),
    ),
    Agent(
        name="implementer",
        scope=BUILT_IN,
        description="Implements a planned change set",
        inputs=("plan",),
        outputs=("changes",),
    ),
    Agent(
        name="reviewer",
        scope=BUILT_IN,
        description="Reviews changes for correctness and maintainability",
        outputs=("review",),
    ),
    Agent(
        name="tester",
        scope=BUILT_IN,
        description="Writes and runs tests for a change set",
        outputs=("test_report",),
    ),
    Agent(
        name="security-auditor",
        scope=BUILT_IN,
        description="Audits changes for security issues",
        outputs=("security_report",),
    ),
    Agent(
        name="documenter",
        scope=BUILT_IN,
        description="Updates documentation to match the delivered changes",
        outputs=("docs",),
    ),
)
