"""
Configuration loading for workflow definitions and the orchestrator.

Handles loading and parsing YAML files into Pydantic models and the
``OrchestratorConfig`` dataclass.
"""

from dataclasses import dataclass, fields
from pathlib import Path

import yaml

from .loaders import DEFAULT_MAX_DEFINITION_BYTES
from .registry import DEFAULT_AGENTS_SUBDIR
from .workflow import WorkflowDefinition


@dataclass
class OrchestratorConfig:
    """Orchestrator settings.

    Args:
        invocation_timeout: Default per-invocation timeout in seconds (None = no timeout)
        agents_subdir: Project-relative directory holding agent definitions
        max_definition_bytes: Largest agent definition file that will be read
        max_parallel_phases: Cap on concurrently running parallel phases (None = no cap)
    """

    invocation_timeout: float | None = None
    agents_subdir: str = DEFAULT_AGENTS_SUBDIR
    max_definition_bytes: int = DEFAULT_MAX_DEFINITION_BYTES
    max_parallel_phases: int | None = None

    def __post_init__(self):
        if self.invocation_timeout is not None and self.invocation_timeout <= 0:
            raise ValueError("invocation_timeout must be positive")
        if self.max_parallel_phases is not None and self.max_parallel_phases < 1:
            raise ValueError("max_parallel_phases must be at least 1")
        if self.max_definition_bytes < 1:
            raise ValueError("max_definition_bytes must be at least 1")


def _read_yaml(yaml_path: str | Path, kind: str) -> object:
    path = Path(yaml_path)

    if not path.exists():
        raise FileNotFoundError(f"{kind} file not found: {path}")

    with path.open("r", encoding="utf-8") as f:
        return yaml.safe_load(f)


def load_workflow(yaml_path: str | Path) -> WorkflowDefinition:
    """
    Load a workflow definition from a YAML file.

    Args:
        yaml_path: Path to the YAML workflow file

    Returns:
        Parsed WorkflowDefinition (structure checked, graph not yet validated)

    Raises:
        FileNotFoundError: If the YAML file doesn't exist
        yaml.YAMLError: If the YAML is malformed
        pydantic.ValidationError: If the workflow structure is invalid
    """
    workflow_data = _read_yaml(yaml_path, "Workflow")

    # Pydantic will validate the structure
    return WorkflowDefinition.model_validate(workflow_data)


def load_config(yaml_path: str | Path) -> OrchestratorConfig:
    """
    Load orchestrator settings from the ``orchestrator`` section of a YAML file.

    A missing section yields the defaults.

    Raises:
        FileNotFoundError: If the YAML file doesn't exist
        ValueError: If the section is not a mapping or has unknown keys
    """
    data = _read_yaml(yaml_path, "Config") or {}
    if not isinstance(data, dict):
        raise ValueError(f"Config file must contain a mapping: {yaml_path}")

    section = data.get("orchestrator") or {}
    if not isinstance(section, dict):
        raise ValueError("'orchestrator' section must be a mapping")

    allowed = {f.name for f in fields(OrchestratorConfig)}
    unknown = sorted(set(section) - allowed)
    if unknown:
        raise ValueError(f"Unknown orchestrator settings: {', '.join(unknown)}")

    return OrchestratorConfig(**section)
