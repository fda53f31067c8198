"""
Workflow Validation — structural checks over a graph snapshot.

Two levels:

* ``validate`` — the advisory warnings shown while editing. Only
  counts triggers and responses; an empty graph has no warnings.
* ``validate_workflow_graph`` — the stricter check run before a
  workflow is stored: dangling adjacency, cycles and nodes the trigger
  can never reach.

Neither looks at config values beyond their shape, and neither blocks
anything on its own; callers decide what to do with the findings.
"""

from __future__ import annotations

from logging import getLogger
from typing import Dict, List, Optional, Set

from pydantic import Field

from botflow.workflow.workflow_model import NodeKind, WireModel, WorkflowGraph, WorkflowNode

logger = getLogger(__name__)

MSG_MISSING_TRIGGER = "Workflow needs at least one trigger node"
MSG_MULTIPLE_TRIGGERS = "Workflow can only have one trigger node"
MSG_MISSING_RESPONSE = "Workflow should have at least one response node"


# ============================================================================
# Advisory warnings
# ============================================================================


def validate(graph: WorkflowGraph) -> List[str]:
    """Return the editing-time warnings for ``graph``, in rule order."""
    warnings: List[str] = []
    if graph.is_empty():
        return warnings

    triggers = graph.trigger_nodes
    if len(triggers) == 0:
        warnings.append(MSG_MISSING_TRIGGER)
    if len(triggers) > 1:
        warnings.append(MSG_MULTIPLE_TRIGGERS)

    if not graph.response_nodes:
        warnings.append(MSG_MISSING_RESPONSE)

    return warnings


# ============================================================================
# Save-time validation
# ============================================================================


class ValidationIssue(WireModel):
    code: str
    message: str
    node_id: Optional[str] = None
    field: Optional[str] = None


class ValidationResult(WireModel):
    valid: bool
    errors: List[ValidationIssue] = Field(default_factory=list)

    @property
    def codes(self) -> List[str]:
        return [e.code for e in self.errors]


def validate_workflow_graph(graph: WorkflowGraph) -> ValidationResult:
    """Full structural validation, driven by each node's adjacency.

    Codes, in reporting order: ``MISSING_TRIGGER``,
    ``MULTIPLE_TRIGGERS``, ``INVALID_OUTPUT_PORT``,
    ``INVALID_TARGET_NODE``, ``INVALID_TARGET_PORT``,
    ``CYCLE_DETECTED`` (at most once), ``DISCONNECTED_NODE``,
    ``NO_RESPONSE``.
    """
    errors: List[ValidationIssue] = []
    node_map: Dict[str, WorkflowNode] = {n.id: n for n in graph.nodes}

    triggers = graph.trigger_nodes
    if not triggers:
        errors.append(ValidationIssue(
            code="MISSING_TRIGGER",
            message="Workflow must have at least one trigger node",
        ))
    if len(triggers) > 1:
        errors.append(ValidationIssue(
            code="MULTIPLE_TRIGGERS",
            message=MSG_MULTIPLE_TRIGGERS,
        ))

    # Adjacency references
    for node in graph.nodes:
        for port_id, entries in node.adjacency.items():
            if not node.has_output_port(port_id):
                errors.append(ValidationIssue(
                    code="INVALID_OUTPUT_PORT",
                    message=f"Output port '{port_id}' does not exist on node",
                    node_id=node.id,
                    field="adjacency",
                ))
            for i, entry in enumerate(entries):
                field = f"adjacency.{port_id}[{i}]"
                target = node_map.get(entry.target_node_id)
                if target is None:
                    errors.append(ValidationIssue(
                        code="INVALID_TARGET_NODE",
                        message=f"Edge references non-existent node '{entry.target_node_id}'",
                        node_id=node.id,
                        field=field,
                    ))
                elif not target.has_input_port(entry.target_port_id):
                    errors.append(ValidationIssue(
                        code="INVALID_TARGET_PORT",
                        message=(
                            f"Target port '{entry.target_port_id}' does not exist "
                            f"on target node"
                        ),
                        node_id=node.id,
                        field=field,
                    ))

    if _has_cycle(graph, node_map):
        errors.append(ValidationIssue(
            code="CYCLE_DETECTED",
            message="Workflow contains a cycle, which would cause infinite loops",
        ))

    reachable = _reachable_from([t.id for t in triggers], node_map)
    for node in graph.nodes:
        if node.kind != NodeKind.TRIGGER and node.id not in reachable:
            errors.append(ValidationIssue(
                code="DISCONNECTED_NODE",
                message="Node is not connected to the workflow execution path",
                node_id=node.id,
            ))

    if not graph.response_nodes and len(graph.nodes) > 1:
        errors.append(ValidationIssue(
            code="NO_RESPONSE",
            message="Workflow must have at least one response node to send output",
        ))

    if errors:
        logger.debug(f"Workflow graph invalid: {[e.code for e in errors]}")
    return ValidationResult(valid=not errors, errors=errors)


def _successors(node: WorkflowNode) -> List[str]:
    return [e.target_node_id for entries in node.adjacency.values() for e in entries]


def _has_cycle(graph: WorkflowGraph, node_map: Dict[str, WorkflowNode]) -> bool:
    """Iterative DFS over adjacency, tracking the current path."""
    done: Set[str] = set()
    for root in graph.node_ids:
        if root in done:
            continue
        on_path: Set[str] = {root}
        stack = [(root, iter(_successors(node_map[root])))]
        while stack:
            current, children = stack[-1]
            child = next(children, None)
            if child is None:
                stack.pop()
                on_path.discard(current)
                done.add(current)
                continue
            if child in on_path:
                return True
            if child in done or child not in node_map:
                continue
            on_path.add(child)
            stack.append((child, iter(_successors(node_map[child]))))
    return False


def _reachable_from(
    roots: List[str],
    node_map: Dict[str, WorkflowNode],
) -> Set[str]:
    seen: Set[str] = set()
    pending = list(roots)
    while pending:
        node_id = pending.pop()
        if node_id in seen or node_id not in node_map:
            continue
        seen.add(node_id)
        pending.extend(_successors(node_map[node_id]))
    return seen
