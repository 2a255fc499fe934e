"""
Feature Delivery Workflow Demo

Runs the feature-delivery workflow against simulated agents:

1. Planner produces a plan
2. Implementer turns it into changes
3. Reviewer and security auditor run in parallel with the tester
4. Documenter runs only if the review approved the changes

The reviewer comes from the demo project's .codeflow/agents directory and
overrides the built-in reviewer. Each run is recorded as JSON under
.demo-runs/.
"""

import asyncio
import logging
import sys
from pathlib import Path

from codeflow_orchestrator import (
    AgentRegistry,
    HandlerExecutor,
    JsonRunRecorder,
    WorkflowAbortedError,
    WorkflowOrchestrator,
    load_config,
    load_workflow,
    validate,
)


# ANSI colors
class Color:
    BOLD = "\033[1m"
    GREEN = "\033[92m"
    YELLOW = "\033[93m"
    RED = "\033[91m"
    CYAN = "\033[96m"
    ENDC = "\033[0m"


STATUS_COLORS = {"succeeded": Color.GREEN, "skipped": Color.YELLOW, "failed": Color.RED}

logging.basicConfig(level=logging.WARNING, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")

DEMO_DIR = Path(__file__).parent
CONFIG_FILE = DEMO_DIR / "codeflow.yaml"
WORKFLOW_FILE = DEMO_DIR / "workflows" / "feature-delivery.yaml"
PROJECT_DIR = DEMO_DIR / "project"


async def plan(agent, inputs, context):
    await asyncio.sleep(0.2)
    return {"plan": [f"design: {inputs['goal']}", "implement endpoint", "add tests"]}


async def implement(agent, inputs, context):
    await asyncio.sleep(0.3)
    return {"changes": [f"{step} (done)" for step in context["plan"]], "scratch": "ignored"}


async def review(agent, inputs, context):
    await asyncio.sleep(0.4)
    return {"review": {"approved": True, "by": agent.scope, "notes": len(context["changes"])}}


async def audit(agent, inputs, context):
    await asyncio.sleep(0.3)
    return {"security_report": "no findings"}


async def test(agent, inputs, context):
    await asyncio.sleep(0.5)
    return {"test_report": {"passed": 12, "failed": 0}}


async def document(agent, inputs, context):
    await asyncio.sleep(0.1)
    return {"docs": "README updated"}


async def main() -> int:
    print(f"\n{Color.BOLD}{'=' * 70}{Color.ENDC}")
    print(f"{Color.BOLD}  Feature Delivery Workflow Demo{Color.ENDC}")
    print(f"{Color.BOLD}{'=' * 70}{Color.ENDC}\n")

    config = load_config(CONFIG_FILE)
    registry = AgentRegistry.from_config(config)
    registry.load_built_in()
    report = registry.load_project(PROJECT_DIR)
    print(f"Project agents: {', '.join(report.loaded) or 'none'}")
    for warning in report.warnings:
        print(f"  {Color.YELLOW}warning: {warning}{Color.ENDC}")

    definition = load_workflow(WORKFLOW_FILE)
    result = validate(definition)
    if not result.is_valid:
        for violation in result.violations:
            print(f"{Color.RED}{violation.message}{Color.ENDC}")
        return 1

    executor = HandlerExecutor(
        {
            "planner": plan,
            "implementer": implement,
            "reviewer": review,
            "security-auditor": audit,
            "tester": test,
            "documenter": document,
        }
    )
    orchestrator = WorkflowOrchestrator(
        registry, executor, config=config, collector=JsonRunRecorder(Path.cwd() / ".demo-runs")
    )

    print(f"Running workflow: {Color.CYAN}{definition.name}{Color.ENDC}\n")
    try:
        run = await orchestrator.execute_workflow(definition, {"repository": "login-service"})
    except WorkflowAbortedError as e:
        print(f"{Color.RED}Run aborted: {e}{Color.ENDC}")
        return 1

    for name, record in run.phases.items():
        color = STATUS_COLORS.get(record.status, "")
        timing = f"{record.duration:.2f}s" if record.duration is not None else "-"
        print(f"  {color}{record.status:<10}{Color.ENDC} {name:<12} {timing}")

    print(f"\nRun {run.run_id}: {run.status} in {run.metrics.duration:.2f}s")
    print(f"Context keys: {', '.join(sorted(run.context.as_dict()))}\n")
    return 0 if run.status == "succeeded" else 1


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
