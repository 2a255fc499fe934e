"""Run result sinks.

A collector is any callable that accepts the terminal ``WorkflowRun``.
"""

import json
import logging
from collections.abc import Callable
from pathlib import Path

from .run import WorkflowRun

logger = logging.getLogger(__name__)

RunCollector = Callable[[WorkflowRun], None]


class InMemoryRunCollector:
    """Keeps every collected run in memory."""

    def __init__(self):
        self.runs: list[WorkflowRun] = []

    def __call__(self, run: WorkflowRun) -> None:
        self.runs.append(run)

    @property
    def last(self) -> WorkflowRun | None:
        return self.runs[-1] if self.runs else None


class JsonRunRecorder:
    """Persists each run as ``<run_id>.json`` in a directory."""

    def __init__(self, directory: str | Path):
        self.directory = Path(directory)

    def path_for(self, run_id: str) -> Path:
        return self.directory / f"{run_id}.json"

    def __call__(self, run: WorkflowRun) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        path = self.path_for(run.run_id)
        with path.open("w", encoding="utf-8") as f:
            json.dump(run.to_record(), f, indent=2, default=str)
        logger.info(f"Recorded run {run.run_id} to {path}")

    def load(self, run_id: str) -> dict:
        with self.path_for(run_id).open(encoding="utf-8") as f:
            return json.load(f)
