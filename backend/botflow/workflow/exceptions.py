"""
Workflow exceptions.

Mutations on unknown node or connection IDs are no-ops, not errors;
these cover the remaining caller mistakes.
"""

from __future__ import annotations

from typing import Optional


class WorkflowError(Exception):
    """Base class for workflow model errors."""


class InvalidConfigPatchError(WorkflowError, ValueError):
    """A config patch is not legal for the node's kind."""

    def __init__(self, node_id: str, kind: str, detail: str) -> None:
        self.node_id = node_id
        self.kind = kind
        super().__init__(f"Invalid config patch for {kind} node '{node_id}': {detail}")


class DuplicateNodeIdError(WorkflowError, ValueError):
    """A bulk replace received two nodes with the same ID."""

    def __init__(self, node_id: str) -> None:
        self.node_id = node_id
        super().__init__(f"Duplicate node id: {node_id}")


class TemplateNotFoundError(WorkflowError, KeyError):
    """No built-in template with the requested ID."""

    def __init__(self, template_id: str) -> None:
        self.template_id = template_id
        super().__init__(template_id)

    def __str__(self) -> str:
        return f"Unknown workflow template: {self.template_id}"


class VersionConflictError(WorkflowError):
    """A save was based on an outdated version of the workflow."""

    def __init__(self, workflow_id: str, expected: int, actual: Optional[int]) -> None:
        self.workflow_id = workflow_id
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Workflow {workflow_id} was modified concurrently "
            f"(expected version {expected}, found {actual})"
        )
