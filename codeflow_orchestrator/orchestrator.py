"""
WorkflowOrchestrator - Executes workflow graphs phase by phase.

The orchestrator validates a definition, then repeatedly takes the readiness
wavefront (pending phases whose dependencies are all terminal), skips phases
whose dependencies did not succeed or whose condition is false, and runs the
rest: parallel phases concurrently, everything else one at a time in
declaration order. Every invocation reads its own copy of the context taken
when its phase started; the orchestrator is the only writer.
"""

import asyncio
import contextlib
import copy
import logging
import time
import uuid
from collections.abc import Awaitable, Mapping
from typing import Any

from .config import OrchestratorConfig
from .context import WorkflowContext
from .errors import (
    DefinitionInvalidError,
    FatalInvocationError,
    InvocationContractError,
    InvocationError,
    InvocationTimeoutError,
    RegistryError,
    WorkflowAbortedError,
)
from .executor import AgentExecutor
from .recorder import RunCollector
from .registry import AgentRegistry
from .run import InvocationResult, PhaseRecord, WorkflowRun, utcnow
from .validation import ValidationResult, validate
from .workflow import AgentInvocation, WorkflowDefinition, WorkflowPhase

logger = logging.getLogger(__name__)

FATAL_ERRORS = (RegistryError, FatalInvocationError)


async def _gather_or_cancel(aws: list[Awaitable[Any]]) -> list[Any]:
    """Like ``asyncio.gather``, but cancels the siblings when one fails."""
    tasks = [asyncio.ensure_future(aw) for aw in aws]
    try:
        return await asyncio.gather(*tasks)
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise


def _descendants(definition: WorkflowDefinition) -> dict[str, set[str]]:
    """Map each phase to every phase that depends on it, directly or not."""
    dependents: dict[str, set[str]] = {p.name: set() for p in definition.phases}
    for phase in definition.phases:
        for dep in phase.depends_on:
            dependents[dep].add(phase.name)

    result: dict[str, set[str]] = {}
    for name in dependents:
        seen: set[str] = set()
        stack = list(dependents[name])
        while stack:
            current = stack.pop()
            if current not in seen:
                seen.add(current)
                stack.extend(dependents[current])
        result[name] = seen
    return result


class WorkflowOrchestrator:
    """
    Runs workflow definitions against an agent registry.

    Usage:
        registry = AgentRegistry()
        registry.load_built_in()
        orchestrator = WorkflowOrchestrator(registry, HandlerExecutor(handlers))

        workflow = load_workflow("workflow.yaml")
        run = await orchestrator.execute_workflow(workflow, {"goal": "..."})
    """

    def __init__(
        self,
        registry: AgentRegistry,
        executor: AgentExecutor,
        config: OrchestratorConfig | None = None,
        collector: RunCollector | None = None,
    ):
        """
        Initialize the orchestrator.

        Args:
            registry: Agent registry used to resolve invocations (read-only during runs)
            executor: Boundary that actually runs agents
            config: Orchestrator settings (defaults apply when omitted)
            collector: Optional callable receiving every terminal run
        """
        self.registry = registry
        self.executor = executor
        self.config = config or OrchestratorConfig()
        self.collector = collector

    def validate(self, definition: WorkflowDefinition) -> ValidationResult:
        return validate(definition)

    async def execute_workflow(
        self,
        definition: WorkflowDefinition,
        initial_context: Mapping[str, Any] | None = None,
        run_id: str | None = None,
    ) -> WorkflowRun:
        """
        Execute a complete workflow.

        Args:
            definition: Workflow to run
            initial_context: Caller-supplied starting values for the context
            run_id: Optional run identifier (a random one is generated otherwise)

        Returns:
            The terminal WorkflowRun

        Raises:
            DefinitionInvalidError: If validation fails; no phase runs
            WorkflowAbortedError: If a fatal or unexpected error halted the run
        """
        result = validate(definition)
        if not result.is_valid:
            logger.error(
                f"Workflow '{definition.name}' rejected: {len(result.violations)} violations"
            )
            raise DefinitionInvalidError(result.violations)

        run = WorkflowRun(
            run_id=run_id or uuid.uuid4().hex,
            definition=definition,
            context=WorkflowContext(initial_context),
            phases={p.name: PhaseRecord(name=p.name) for p in definition.phases},
        )
        run.status = "running"
        run.started_at = utcnow()
        start = time.monotonic()
        logger.info(
            f"Starting workflow '{definition.name}' (run {run.run_id}, {len(definition.phases)} phases)"
        )

        with self.registry.in_use():
            try:
                await self._run_wavefronts(run)
            except Exception as e:
                if not isinstance(e, FATAL_ERRORS):
                    logger.exception(f"Unexpected error in workflow '{definition.name}'")
                run.error = f"{type(e).__name__}: {e}"
                self._finish(run, start)
                logger.error(f"Workflow '{definition.name}' aborted (run {run.run_id}): {e}")
                self._emit(run)
                raise WorkflowAbortedError(run, f"Run {run.run_id} aborted: {e}") from e

        self._finish(run, start)
        logger.info(
            f"Workflow '{definition.name}' {run.status}: "
            f"{run.metrics.succeeded} succeeded, {run.metrics.failed} failed, "
            f"{run.metrics.skipped} skipped in {run.metrics.duration:.2f}s"
        )
        self._emit(run)
        return run

    async def _run_wavefronts(self, run: WorkflowRun) -> None:
        definition = run.definition
        descendants = _descendants(definition)
        condition_passed: set[str] = set()

        while True:
            pending = [p for p in definition.phases if run.phases[p.name].status == "pending"]
            if not pending:
                return

            ready = [
                p for p in pending if all(run.phases[d].is_terminal for d in p.depends_on)
            ]
            if not ready:
                raise RuntimeError(f"No phase of '{definition.name}' can become ready")

            runnable: list[WorkflowPhase] = []
            for phase in ready:
                record = run.phases[phase.name]
                unmet = [d for d in phase.depends_on if run.phases[d].status != "succeeded"]
                if unmet:
                    self._skip(record, f"dependencies did not succeed: {', '.join(unmet)}")
                    continue
                if phase.mode == "conditional" and phase.name not in condition_passed:
                    if not self._evaluate_condition(phase, record, run.context):
                        continue
                    condition_passed.add(phase.name)
                runnable.append(phase)

            if not runnable:
                continue

            parallel = [p for p in runnable if p.mode == "parallel"]
            serial = [p for p in runnable if p.mode != "parallel"]

            if parallel:
                await self._run_parallel_group(run, parallel)

            started = 0
            for phase in serial:
                if self._blocked_by_earlier(run, phase, descendants):
                    logger.debug(f"Phase '{phase.name}' waits for earlier-declared phases")
                    continue
                await self._run_serial(run, phase)
                started += 1

            if serial and not parallel and not started and len(runnable) == len(ready):
                # Nothing moved this wave: every candidate waits on an earlier
                # phase that cannot finish first.
                logger.debug(f"Releasing phase '{serial[0].name}' to keep the run moving")
                await self._run_serial(run, serial[0])

    def _blocked_by_earlier(
        self, run: WorkflowRun, phase: WorkflowPhase, descendants: dict[str, set[str]]
    ) -> bool:
        for earlier in run.definition.phases:
            if earlier.name == phase.name:
                return False
            if earlier.name in descendants[phase.name]:
                continue
            if not run.phases[earlier.name].is_terminal:
                return True
        return False

    def _evaluate_condition(
        self, phase: WorkflowPhase, record: PhaseRecord, context: WorkflowContext
    ) -> bool:
        """Evaluate a conditional phase's predicate once; skip or fail the phase on a miss."""
        record.condition_evaluations += 1
        try:
            passed = bool(phase.condition(context.snapshot()))
        except Exception as e:
            logger.warning(f"Condition of phase '{phase.name}' raised: {e}")
            record.error = f"condition raised {type(e).__name__}: {e}"
            record.status = "failed"
            record.finished_at = utcnow()
            return False

        if not passed:
            self._skip(record, "condition evaluated false")
        return passed

    def _skip(self, record: PhaseRecord, reason: str) -> None:
        record.status = "skipped"
        record.skip_reason = reason
        record.finished_at = utcnow()
        logger.info(f"Skipping phase '{record.name}': {reason}")

    async def _run_parallel_group(self, run: WorkflowRun, phases: list[WorkflowPhase]) -> None:
        """Run parallel phases concurrently, then merge their outputs in declaration order."""
        limit = self.config.max_parallel_phases
        limiter = asyncio.Semaphore(limit) if limit else None
        merges: dict[str, dict[str, Any]] = {}

        async def run_one(phase: WorkflowPhase) -> None:
            async with limiter or contextlib.nullcontext():
                merge = await self._execute_phase(run, phase)
            if merge is not None:
                merges[phase.name] = merge

        logger.info(f"Running {len(phases)} parallel phases: {', '.join(p.name for p in phases)}")
        try:
            await _gather_or_cancel([run_one(p) for p in phases])
        finally:
            for phase in phases:
                if phase.name in merges:
                    run.context.merge(merges[phase.name])

    async def _run_serial(self, run: WorkflowRun, phase: WorkflowPhase) -> None:
        merge = await self._execute_phase(run, phase)
        if merge is not None:
            run.context.merge(merge)

    async def _execute_phase(self, run: WorkflowRun, phase: WorkflowPhase) -> dict[str, Any] | None:
        """
        Run every invocation of a phase.

        Returns:
            The key/value pairs to merge if all invocations succeeded, else None
        """
        record = run.phases[phase.name]
        record.status = "running"
        record.started_at = utcnow()
        start = time.monotonic()
        logger.info(f"Starting phase '{phase.name}' ({phase.mode}, {len(phase.agents)} agents)")

        # The context does not change while a phase runs, so every invocation
        # gets its own copy of the dispatch-time values.
        try:
            if phase.mode == "parallel":
                outcomes = await _gather_or_cancel(
                    [self._invoke(inv, run.context.snapshot()) for inv in phase.agents]
                )
            else:
                outcomes = [await self._invoke(inv, run.context.snapshot()) for inv in phase.agents]
        except asyncio.CancelledError:
            record.error = "cancelled: run aborted"
            self._close(record, "failed", start)
            raise
        except Exception as e:
            record.error = f"{type(e).__name__}: {e}"
            self._close(record, "failed", start)
            raise

        record.results = [result for result, _produced in outcomes]
        failures = [r for r in record.results if not r.success]
        if failures:
            record.error = "; ".join(f"{r.agent}: {r.error}" for r in failures)
            self._close(record, "failed", start)
            logger.warning(f"Phase '{phase.name}' failed: {record.error}")
            return None

        merge: dict[str, Any] = {}
        for _result, produced in outcomes:
            merge.update(produced)
        self._close(record, "succeeded", start)
        logger.info(f"Phase '{phase.name}' succeeded in {record.duration:.2f}s")
        return merge

    def _close(self, record: PhaseRecord, status: str, start: float) -> None:
        record.status = status
        record.finished_at = utcnow()
        record.duration = time.monotonic() - start

    async def _invoke(
        self, invocation: AgentInvocation, snapshot: Mapping[str, Any]
    ) -> tuple[InvocationResult, dict[str, Any]]:
        """
        Resolve and run one invocation.

        Recoverable failures come back as unsuccessful results; registry
        misses and contract violations are raised.
        """
        agent = self.registry.resolve(invocation.agent)
        start = time.monotonic()

        def failed(error: str) -> tuple[InvocationResult, dict[str, Any]]:
            logger.warning(f"Agent '{agent.name}' failed: {error}")
            return (
                InvocationResult(
                    agent=agent.name,
                    success=False,
                    error=error,
                    duration=time.monotonic() - start,
                ),
                {},
            )

        missing = [key for key in agent.inputs if key not in invocation.inputs]
        if missing:
            return failed(f"missing required inputs: {', '.join(missing)}")

        async def call() -> Any:
            return await self.executor.invoke(agent, copy.deepcopy(invocation.inputs), snapshot)

        timeout = invocation.timeout or agent.timeout or self.config.invocation_timeout
        task = asyncio.ensure_future(call())
        try:
            done, _pending = await asyncio.wait({task}, timeout=timeout)
        finally:
            if not task.done():
                task.cancel()
                await asyncio.gather(task, return_exceptions=True)

        # Only the limit expiring counts as a timeout; a TimeoutError raised by
        # the agent is an ordinary failure below.
        if not done:
            return failed(str(InvocationTimeoutError(agent.name, timeout)))
        try:
            output = task.result()
        except FatalInvocationError:
            raise
        except InvocationError as e:
            return failed(str(e))
        except Exception as e:
            logger.debug(f"Agent '{agent.name}' raised", exc_info=True)
            return failed(f"{type(e).__name__}: {e}")

        if not isinstance(output, Mapping):
            raise InvocationContractError(
                f"Agent '{agent.name}' returned {type(output).__name__}, expected a mapping",
                agent=agent.name,
            )
        output = dict(output)

        undeclared = [key for key in agent.outputs if key not in output]
        if undeclared:
            raise InvocationContractError(
                f"Agent '{agent.name}' did not produce declared outputs: {', '.join(undeclared)}",
                agent=agent.name,
            )

        if invocation.output_key:
            produced = {invocation.output_key: output}
        elif invocation.outputs is None:
            produced = output
        else:
            absent = [key for key in invocation.outputs if key not in output]
            if absent:
                raise InvocationContractError(
                    f"Agent '{agent.name}' did not produce requested outputs: {', '.join(absent)}",
                    agent=agent.name,
                )
            produced = {key: output[key] for key in invocation.outputs}

        return (
            InvocationResult(
                agent=agent.name,
                success=True,
                output=output,
                duration=time.monotonic() - start,
            ),
            produced,
        )

    def _finish(self, run: WorkflowRun, start: float) -> None:
        metrics = run.metrics
        metrics.succeeded = len(run.phases_in("succeeded"))
        metrics.failed = len(run.phases_in("failed"))
        metrics.skipped = len(run.phases_in("skipped"))
        metrics.duration = time.monotonic() - start
        metrics.phase_durations = {
            name: record.duration
            for name, record in run.phases.items()
            if record.duration is not None
        }

        statuses = set(run.phase_statuses().values())
        if run.error is None and statuses <= {"succeeded", "skipped"} and "succeeded" in statuses:
            run.status = "succeeded"
        else:
            run.status = "failed"
        run.finished_at = utcnow()

    def _emit(self, run: WorkflowRun) -> None:
        if self.collector is None:
            return
        try:
            self.collector(run)
        except Exception:
            logger.error(f"Run collector failed for run {run.run_id}", exc_info=True)
