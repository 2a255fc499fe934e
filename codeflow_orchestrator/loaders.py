"""
Project-scoped agent discovery.

Loaders turn definition files into ``Agent`` records. The default
``ProjectAgentLoader`` only ever lists and reads direct children of its
allowed root; it never walks the project tree, follows links out of the
root, or opens files it has decided to skip.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Protocol

import yaml
from pydantic import ValidationError

from .agents import PROJECT, Agent
from .errors import AgentDefinitionError

logger = logging.getLogger(__name__)

DEFINITION_SUFFIXES = (".yaml", ".yml", ".md")
DEFAULT_MAX_DEFINITION_BYTES = 256 * 1024


@dataclass
class LoadReport:
    """Outcome of a project agent load.

    Args:
        loaded: Names of agents registered by the load
        warnings: One message per skipped file or rejected agent
    """

    loaded: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


class AgentLoader(Protocol):
    """Anything that can produce agents for the registry."""

    def load(self) -> tuple[list[Agent], list[str]]:
        """Return the agents found and a warning per skipped definition."""
        ...


def split_front_matter(text: str) -> tuple[str, str]:
    """Split a Markdown document into its YAML front matter and body.

    Raises:
        ValueError: If the document does not open with a ``---`` block
    """
    lines = text.splitlines()
    if not lines or lines[0].strip() != "---":
        raise ValueError("missing front matter")
    for index in range(1, len(lines)):
        if lines[index].strip() == "---":
            header = "\n".join(lines[1:index])
            body = "\n".join(lines[index + 1 :]).strip()
            return header, body
    raise ValueError("unterminated front matter")


def parse_agent_definition(path: Path, text: str) -> Agent:
    """Build a project ``Agent`` from the text of a definition file.

    Raises:
        AgentDefinitionError: If the file is not a valid definition
    """
    body: str | None = None
    try:
        if path.suffix == ".md":
            header, body = split_front_matter(text)
            data = yaml.safe_load(header)
        else:
            data = yaml.safe_load(text)
    except (ValueError, yaml.YAMLError) as e:
        raise AgentDefinitionError(path, f"unparseable definition: {e}") from e

    if not isinstance(data, dict):
        raise AgentDefinitionError(path, "definition must be a mapping")

    fields: dict[str, Any] = dict(data)
    fields.setdefault("name", path.stem)
    if body and "instructions" not in fields:
        fields["instructions"] = body
    fields["scope"] = PROJECT
    fields["source"] = str(path)

    try:
        return Agent.model_validate(fields)
    except ValidationError as e:
        errors = ", ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'definition'}: {err['msg']}"
            for err in e.errors()
        )
        raise AgentDefinitionError(path, errors) from e


class ProjectAgentLoader:
    """
    Loads agent definitions from a single, explicitly allowed directory.

    Usage:
        loader = ProjectAgentLoader(project / ".codeflow" / "agents")
        agents, warnings = loader.load()
    """

    def __init__(
        self,
        allowed_root: str | Path,
        max_bytes: int = DEFAULT_MAX_DEFINITION_BYTES,
        project_root: str | Path | None = None,
    ):
        """
        Args:
            allowed_root: The only directory that is listed and read
            max_bytes: Largest definition file that will be read
            project_root: Directory containing ``allowed_root``; no path component
                between the two may be a symbolic link
        """
        self.allowed_root = Path(allowed_root)
        self.max_bytes = max_bytes
        self.project_root = Path(project_root) if project_root is not None else None

    def _linked_component(self) -> Path | None:
        """Return the first symlink or parent reference on the way to the allowed root."""
        base = self.project_root if self.project_root is not None else self.allowed_root.parent
        try:
            relative = self.allowed_root.relative_to(base)
        except ValueError:
            return self.allowed_root if self.allowed_root.is_symlink() else None

        current = base
        for part in relative.parts:
            current = current / part
            if part == ".." or current.is_symlink():
                return current
        return None

    def _within_root(self, path: Path, root: Path) -> bool:
        try:
            return path.resolve().is_relative_to(root)
        except OSError:
            return False

    def _candidates(self) -> list[Path]:
        if not self.allowed_root.is_dir():
            logger.debug(f"No agent directory at {self.allowed_root}")
            return []
        return sorted(
            entry for entry in self.allowed_root.iterdir() if entry.suffix in DEFINITION_SUFFIXES
        )

    def load(self) -> tuple[list[Agent], list[str]]:
        agents: list[Agent] = []
        warnings: list[str] = []

        linked = self._linked_component()
        if linked is not None:
            message = f"{linked}: agent directory path is linked elsewhere, nothing loaded"
            logger.warning(f"Agent definitions skipped: {message}")
            return agents, [message]

        root = self.allowed_root.resolve()

        for path in self._candidates():
            if path.is_symlink():
                warnings.append(f"{path}: symbolic link, skipped")
                continue
            if not self._within_root(path, root):
                warnings.append(f"{path}: outside the agent directory, skipped")
                continue
            if not path.is_file():
                warnings.append(f"{path}: not a regular file, skipped")
                continue
            size = path.stat().st_size
            if size > self.max_bytes:
                warnings.append(f"{path}: {size} bytes exceeds limit of {self.max_bytes}, skipped")
                continue

            try:
                text = path.read_text(encoding="utf-8")
                agents.append(parse_agent_definition(path, text))
            except UnicodeDecodeError as e:
                warnings.append(f"{path}: not valid UTF-8 ({e.reason}), skipped")
            except AgentDefinitionError as e:
                warnings.append(str(e))

        for message in warnings:
            logger.warning(f"Agent definition skipped: {message}")
        logger.info(f"Loaded {len(agents)} project agent definitions from {self.allowed_root}")
        return agents, warnings
