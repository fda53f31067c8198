"""
Workflow Graph Store — the editing session's canonical graph.

``WorkflowGraphStore`` holds the current ``WorkflowGraph`` snapshot and
exposes the command surface the editor UI may call. Every mutation
builds a complete new snapshot and swaps it in with a single
assignment, so a node removal (with its connection cascade), a connect
or a template load is never observed half-applied.

Operations on node IDs that are not in the graph are silent no-ops:
the UI can race ahead of state (e.g. a delete and a drag of the same
node in one tick).

Usage::

    store = WorkflowGraphStore()
    trigger = store.create_node("trigger", {"x": 100, "y": 100})
    reply = store.create_node("response", {"x": 400, "y": 100})
    store.connect(trigger, reply)
    store.update_node_label_and_config(reply, {"message": "Hello!"})
    assert store.validate() == []
"""

from __future__ import annotations

from logging import getLogger
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Union

from pydantic import ValidationError

from botflow.config import WorkflowConfig, get_workflow_config
from botflow.workflow import connections as connection_manager
from botflow.workflow.exceptions import InvalidConfigPatchError
from botflow.workflow.node_types import get_node_type
from botflow.workflow.validation import ValidationResult, validate, validate_workflow_graph
from botflow.workflow.workflow_model import (
    CONFIG_MODELS,
    Connection,
    NodeConfig,
    NodeKind,
    Position,
    WorkflowGraph,
    WorkflowNode,
    generate_node_id,
    normalize_config_keys,
)

logger = getLogger(__name__)

PositionLike = Union[Position, Mapping[str, float], Sequence[float]]


def as_position(value: Optional[PositionLike]) -> Position:
    """Accept a Position, an ``{x, y}`` mapping or an ``(x, y)`` pair."""
    if value is None:
        return Position()
    if isinstance(value, Position):
        return value
    if isinstance(value, Mapping):
        return Position.model_validate(value)
    x, y = value
    return Position(x=x, y=y)


def merge_config(node: WorkflowNode, patch: Mapping[str, Any]) -> NodeConfig:
    """Shallow-merge ``patch`` over the node's config.

    Keys may use snake_case or camelCase. The result is validated
    against the node kind's config model.

    Raises:
        InvalidConfigPatchError: The patch names a field the kind does
            not have, gives a value of the wrong type, or tries to
            change the config's kind.
    """
    model = CONFIG_MODELS[node.kind]
    normalized = normalize_config_keys(node.kind, patch)
    kind = normalized.pop("kind", node.kind)
    if getattr(kind, "value", kind) != node.kind.value:
        raise InvalidConfigPatchError(node.id, node.kind.value, "config kind cannot change")

    merged = {**node.config.model_dump(exclude={"kind"}), **normalized}
    try:
        return model.model_validate(merged)
    except ValidationError as e:
        raise InvalidConfigPatchError(node.id, node.kind.value, str(e)) from e


class WorkflowGraphStore:
    """Sole owner of one editing session's graph.

    Mutators return the new snapshot, except ``create_node`` and
    ``connect`` which return the ID they allocated.
    """

    def __init__(
        self,
        graph: Optional[WorkflowGraph] = None,
        config: Optional[WorkflowConfig] = None,
    ) -> None:
        self._config = config or get_workflow_config()
        self._graph = WorkflowGraph()
        if graph is not None:
            self.replace_all(graph.nodes, graph.connections)

    # ── Read ──

    @property
    def graph(self) -> WorkflowGraph:
        """The current snapshot."""
        return self._graph

    @property
    def nodes(self) -> Sequence[WorkflowNode]:
        return self._graph.nodes

    @property
    def connections(self) -> Sequence[Connection]:
        return self._graph.connections

    @property
    def selected_node_id(self) -> Optional[str]:
        return self._graph.selected_node_id

    def validate(self) -> List[str]:
        """Advisory warnings for the current snapshot."""
        return validate(self._graph)

    def validate_strict(self) -> ValidationResult:
        """Save-time validation of the current snapshot."""
        return validate_workflow_graph(self._graph)

    # ── Nodes ──

    def create_node(
        self,
        kind: Union[NodeKind, str],
        position: Optional[PositionLike] = None,
    ) -> str:
        """Add a node with the registry defaults for ``kind`` and select it."""
        spec = get_node_type(kind)
        node = WorkflowNode(
            id=generate_node_id(self._graph.node_ids, self._config.node_id_length),
            kind=spec.kind,
            label=spec.default_label,
            position=as_position(position),
            ports=spec.default_ports,
            config=spec.default_config(),
        )
        self._commit(self._graph.model_copy(update={
            "nodes": self._graph.nodes + (node,),
            "selected_node_id": node.id,
        }))
        logger.debug(f"Node created: {node.kind.value} ({node.id})")
        return node.id

    def remove_node(self, node_id: str) -> WorkflowGraph:
        """Remove a node and every connection touching it."""
        if not self._graph.has_node(node_id):
            logger.debug(f"remove_node ignored: {node_id} not in graph")
            return self._graph

        graph = connection_manager.detach_node(self._graph, node_id)
        selected = graph.selected_node_id
        return self._commit(graph.model_copy(update={
            "nodes": tuple(n for n in graph.nodes if n.id != node_id),
            "selected_node_id": None if selected == node_id else selected,
        }))

    def update_node_label_and_config(
        self,
        node_id: str,
        config_patch: Optional[Mapping[str, Any]] = None,
        label: Optional[str] = None,
    ) -> WorkflowGraph:
        """Merge a config patch into a node and optionally relabel it."""
        node = self._graph.get_node(node_id)
        if node is None:
            logger.debug(f"update ignored: {node_id} not in graph")
            return self._graph

        update: Dict[str, Any] = {}
        if config_patch:
            update["config"] = merge_config(node, config_patch)
        if label is not None:
            update["label"] = label
        if not update:
            return self._graph
        return self._replace_node(node.model_copy(update=update))

    def set_position(self, node_id: str, position: PositionLike) -> WorkflowGraph:
        node = self._graph.get_node(node_id)
        if node is None:
            return self._graph
        return self._replace_node(node.model_copy(update={"position": as_position(position)}))

    def select(self, node_id: Optional[str]) -> WorkflowGraph:
        """Select a node; ``None`` or an unknown ID clears the selection."""
        if node_id is not None and not self._graph.has_node(node_id):
            node_id = None
        if node_id == self._graph.selected_node_id:
            return self._graph
        return self._commit(self._graph.model_copy(update={"selected_node_id": node_id}))

    # ── Connections ──

    def connect(
        self,
        source_node_id: str,
        target_node_id: str,
        source_port_id: Optional[str] = None,
        target_port_id: Optional[str] = None,
    ) -> Optional[str]:
        """Wire two nodes; returns the connection ID, or ``None`` if a node is missing."""
        graph, connection_id = connection_manager.connect(
            self._graph, source_node_id, target_node_id, source_port_id, target_port_id,
        )
        self._commit(graph)
        return connection_id

    def disconnect(self, connection_ids: Union[str, Iterable[str]]) -> WorkflowGraph:
        return self._commit(connection_manager.disconnect(self._graph, connection_ids))

    # ── Bulk ──

    def replace_all(
        self,
        nodes: Iterable[Union[WorkflowNode, Mapping[str, Any]]],
        connections: Iterable[Union[Connection, Mapping[str, Any]]] = (),
    ) -> WorkflowGraph:
        """Atomically replace the whole graph.

        Adjacency is rebuilt from ``connections``; connections whose
        endpoints are not among ``nodes`` are dropped and colliding
        connection IDs are re-allocated. The selection is cleared.

        Raises:
            DuplicateNodeIdError: Two nodes share an ID. The current
                graph is left untouched.
        """
        return self._commit(connection_manager.assemble_graph(nodes, connections))

    def clear(self) -> WorkflowGraph:
        """Empty the canvas."""
        return self.replace_all((), ())

    # ── Internals ──

    def _replace_node(self, node: WorkflowNode) -> WorkflowGraph:
        return self._commit(self._graph.model_copy(update={
            "nodes": tuple(node if n.id == node.id else n for n in self._graph.nodes),
        }))

    def _commit(self, graph: WorkflowGraph) -> WorkflowGraph:
        self._graph = graph
        return graph
