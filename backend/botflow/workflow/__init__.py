"""
Workflow Engine — graph model for the visual command builder.

Holds the node graph a user edits on the canvas, keeps its two edge
representations in step, and checks it for structural problems.

Architecture:
    workflow_model  — Immutable nodes, connections and graph snapshots
    node_types      — Default label, ports and config per node kind
    connections     — Connection manager (sole writer of node adjacency)
    graph_store     — WorkflowGraphStore, the editing session's command surface
    validation      — Advisory warnings + save-time structural checks
    templates       — Pre-built starter workflows
    viewport        — Canvas event adapter
    serialization   — Snapshot ↔ stored record codec
    workflow_store  — JSON-file persistence for saved workflows
"""

from botflow.workflow.exceptions import (
    WorkflowError,
    InvalidConfigPatchError,
    DuplicateNodeIdError,
    TemplateNotFoundError,
    VersionConflictError,
)
from botflow.workflow.workflow_model import (
    NodeKind,
    PortKind,
    Position,
    NodePort,
    NodePorts,
    PortTarget,
    WorkflowNode,
    Connection,
    WorkflowGraph,
    WorkflowDefinition,
)
from botflow.workflow.node_types import NodeTypeSpec, get_node_type, list_node_types
from botflow.workflow.graph_store import WorkflowGraphStore
from botflow.workflow.validation import (
    ValidationIssue,
    ValidationResult,
    validate,
    validate_workflow_graph,
)
from botflow.workflow.templates import (
    WorkflowTemplate,
    CommandMetadata,
    list_templates,
    get_template,
    load_template,
)
from botflow.workflow.viewport import NodeChange, ViewportAdapter
from botflow.workflow.serialization import graph_from_payload, graph_to_payload
from botflow.workflow.workflow_store import WorkflowStore, get_workflow_store

__all__ = [
    "WorkflowError",
    "InvalidConfigPatchError",
    "DuplicateNodeIdError",
    "TemplateNotFoundError",
    "VersionConflictError",
    "NodeKind",
    "PortKind",
    "Position",
    "NodePort",
    "NodePorts",
    "PortTarget",
    "WorkflowNode",
    "Connection",
    "WorkflowGraph",
    "WorkflowDefinition",
    "NodeTypeSpec",
    "get_node_type",
    "list_node_types",
    "WorkflowGraphStore",
    "ValidationIssue",
    "ValidationResult",
    "validate",
    "validate_workflow_graph",
    "WorkflowTemplate",
    "CommandMetadata",
    "list_templates",
    "get_template",
    "load_template",
    "NodeChange",
    "ViewportAdapter",
    "graph_from_payload",
    "graph_to_payload",
    "WorkflowStore",
    "get_workflow_store",
]
