"""
WorkflowContext - Accumulated key/value state shared across phases.

The orchestrator is the only writer. Phases and predicates only ever see
read-only snapshots taken when they are dispatched.
"""

import copy
from collections.abc import Mapping
from types import MappingProxyType
from typing import Any

_MISSING = object()


def lookup(data: Mapping[str, Any], path: str, default: Any = _MISSING) -> Any:
    """
    Look up a dotted path (``"review.score"``) in nested mappings.

    Raises:
        KeyError: If the path does not exist and no default was given
    """
    current: Any = data
    for part in path.split("."):
        if isinstance(current, Mapping) and part in current:
            current = current[part]
        elif default is not _MISSING:
            return default
        else:
            raise KeyError(path)
    return current


class WorkflowContext:
    """
    Mutable mapping from string keys to structured values for one run.

    Attributes:
        data: The live values (owned by the orchestrator)
        merges: Number of merges applied since creation
    """

    def __init__(self, initial: Mapping[str, Any] | None = None):
        """
        Initialize the context from caller-supplied values.

        Args:
            initial: Starting values; deep-copied so the caller's object is never mutated
        """
        self.data: dict[str, Any] = copy.deepcopy(dict(initial or {}))
        self.merges = 0

    def snapshot(self) -> Mapping[str, Any]:
        """
        Return a read-only, deep-copied view of the current values.

        Later merges do not show through the snapshot.
        """
        return MappingProxyType(copy.deepcopy(self.data))

    def merge(self, values: Mapping[str, Any]) -> None:
        """
        Apply produced key/value pairs; later merges overwrite earlier keys.

        Args:
            values: Keys and values produced by a completed phase
        """
        self.data.update(copy.deepcopy(dict(values)))
        self.merges += 1

    def get(self, key: str, default: Any = None) -> Any:
        return self.data.get(key, default)

    def as_dict(self) -> dict[str, Any]:
        return copy.deepcopy(self.data)

    def __getitem__(self, key: str) -> Any:
        return self.data[key]

    def __contains__(self, key: object) -> bool:
        return key in self.data

    def __len__(self) -> int:
        return len(self.data)

    def __repr__(self) -> str:
        return f"WorkflowContext(keys={sorted(self.data)!r})"
