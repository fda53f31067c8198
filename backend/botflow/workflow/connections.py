"""
Connection Manager — the one place that writes node adjacency.

A graph stores every edge twice: once in the canonical
``WorkflowGraph.connections`` list and once in the source node's
``adjacency`` map (output port → ordered targets). The functions here
take a snapshot and return a new one with both representations
updated together, so no caller ever sees them disagree.

No port-compatibility or cycle checks are made: self-loops, parallel
edges and wires into unknown ports are all accepted here and reported
by ``validate_workflow_graph`` instead.
"""

from __future__ import annotations

from collections import defaultdict
from logging import getLogger
from typing import (
    Any,
    Collection,
    Dict,
    Iterable,
    List,
    Mapping,
    Optional,
    Sequence,
    Set,
    Tuple,
    Union,
)

from botflow.workflow.exceptions import DuplicateNodeIdError
from botflow.workflow.workflow_model import (
    Connection,
    PortTarget,
    WorkflowGraph,
    WorkflowNode,
)

logger = getLogger(__name__)

DEFAULT_SOURCE_PORT = "out"
DEFAULT_TARGET_PORT = "in"


# ============================================================================
# Helpers
# ============================================================================


def allocate_connection_id(
    source_node_id: str,
    target_node_id: str,
    taken: Collection[str] = (),
) -> str:
    """Derive a connection ID from its endpoints.

    Parallel edges between the same node pair get ``-2``, ``-3``, ...
    appended so IDs stay unique within the graph.
    """
    base = f"{source_node_id}-{target_node_id}"
    if base not in taken:
        return base
    n = 2
    while f"{base}-{n}" in taken:
        n += 1
    return f"{base}-{n}"


def resolve_source_port(node: WorkflowNode, port_id: Optional[str] = None) -> str:
    """Pick the output port for a connection when none was given."""
    if port_id:
        return port_id
    outputs = node.output_port_ids
    if len(outputs) == 1:
        return outputs[0]
    return DEFAULT_SOURCE_PORT


def _rewrite_adjacency(
    nodes: Sequence[WorkflowNode],
    changes: Dict[str, Dict[str, List[PortTarget]]],
) -> Tuple[WorkflowNode, ...]:
    """Apply per-node, per-port adjacency replacements.

    Empty ports are dropped from the map.
    """
    rewritten = []
    for node in nodes:
        ports = changes.get(node.id)
        if not ports:
            rewritten.append(node)
            continue
        adjacency = dict(node.adjacency)
        for port_id, entries in ports.items():
            if entries:
                adjacency[port_id] = tuple(entries)
            else:
                adjacency.pop(port_id, None)
        rewritten.append(node.model_copy(update={"adjacency": adjacency}))
    return tuple(rewritten)


def index_adjacency(
    nodes: Iterable[WorkflowNode],
    connections: Iterable[Connection],
) -> Tuple[WorkflowNode, ...]:
    """Rebuild every node's adjacency from a connection list.

    Whatever adjacency the nodes carried before is discarded.
    """
    grouped: Dict[str, Dict[str, List[PortTarget]]] = defaultdict(lambda: defaultdict(list))
    for conn in connections:
        grouped[conn.source_node_id][conn.source_port_id].append(conn.as_target())

    indexed = []
    for node in nodes:
        ports = grouped.get(node.id, {})
        adjacency = {port_id: tuple(entries) for port_id, entries in ports.items()}
        if adjacency != node.adjacency:
            node = node.model_copy(update={"adjacency": adjacency})
        indexed.append(node)
    return tuple(indexed)


# ============================================================================
# Operations
# ============================================================================


def connect(
    graph: WorkflowGraph,
    source_node_id: str,
    target_node_id: str,
    source_port_id: Optional[str] = None,
    target_port_id: Optional[str] = None,
) -> Tuple[WorkflowGraph, Optional[str]]:
    """Wire ``source.port → target.port``.

    Returns the new snapshot and the connection ID. When either node
    is missing the graph is returned unchanged with ``None``.
    """
    source = graph.get_node(source_node_id)
    if source is None or not graph.has_node(target_node_id):
        logger.debug(
            f"connect ignored: {source_node_id} -> {target_node_id} (node missing)"
        )
        return graph, None

    port = resolve_source_port(source, source_port_id)
    conn = Connection(
        id=allocate_connection_id(
            source_node_id, target_node_id, {c.id for c in graph.connections},
        ),
        source_node_id=source_node_id,
        source_port_id=port,
        target_node_id=target_node_id,
        target_port_id=target_port_id or DEFAULT_TARGET_PORT,
    )

    entries = list(source.targets(port))
    entries.append(conn.as_target())
    nodes = _rewrite_adjacency(graph.nodes, {source.id: {port: entries}})

    updated = graph.model_copy(update={
        "nodes": nodes,
        "connections": graph.connections + (conn,),
    })
    return updated, conn.id


def disconnect(
    graph: WorkflowGraph,
    connection_ids: Union[str, Iterable[str]],
) -> WorkflowGraph:
    """Remove one or more connections by ID.

    Each source port a removed connection left from is rebuilt from the
    surviving connections, so its entries keep connection order and a
    parallel twin keeps its own entry. Unknown IDs are ignored.
    """
    if isinstance(connection_ids, str):
        wanted = {connection_ids}
    else:
        wanted = set(connection_ids)

    removed = [c for c in graph.connections if c.id in wanted]
    if not removed:
        return graph

    kept = tuple(c for c in graph.connections if c.id not in wanted)
    changes: Dict[str, Dict[str, List[PortTarget]]] = defaultdict(dict)
    for conn in removed:
        changes[conn.source_node_id][conn.source_port_id] = []
    for conn in kept:
        ports = changes.get(conn.source_node_id)
        if ports is not None and conn.source_port_id in ports:
            ports[conn.source_port_id].append(conn.as_target())

    return graph.model_copy(update={
        "nodes": _rewrite_adjacency(graph.nodes, changes),
        "connections": kept,
    })


def detach_node(graph: WorkflowGraph, node_id: str) -> WorkflowGraph:
    """Disconnect every connection entering or leaving ``node_id``."""
    touching = [c.id for c in graph.connections if c.touches(node_id)]
    if not touching:
        return graph
    logger.debug(f"Detaching node {node_id}: {len(touching)} connection(s)")
    return disconnect(graph, touching)


# ============================================================================
# Bulk assembly
# ============================================================================


def connections_from_adjacency(nodes: Iterable[WorkflowNode]) -> List[Connection]:
    """Recreate a connection list from the adjacency nodes carry.

    Used for stored graphs that only kept each node's adjacency.
    """
    result: List[Connection] = []
    taken: Set[str] = set()
    for node in nodes:
        for port_id, entries in node.adjacency.items():
            for entry in entries:
                conn = Connection(
                    id=allocate_connection_id(node.id, entry.target_node_id, taken),
                    source_node_id=node.id,
                    source_port_id=port_id,
                    target_node_id=entry.target_node_id,
                    target_port_id=entry.target_port_id,
                )
                taken.add(conn.id)
                result.append(conn)
    return result


def assemble_graph(
    nodes: Iterable[Union[WorkflowNode, Mapping[str, Any]]],
    connections: Iterable[Union[Connection, Mapping[str, Any]]] = (),
) -> WorkflowGraph:
    """Build a consistent snapshot from loose nodes and connections.

    Adjacency is rebuilt from ``connections``. Connections whose
    endpoints are not among ``nodes`` are dropped and colliding
    connection IDs are re-allocated. The result has no selection.

    Raises:
        DuplicateNodeIdError: Two nodes share an ID.
    """
    new_nodes = tuple(
        n if isinstance(n, WorkflowNode) else WorkflowNode.model_validate(n)
        for n in nodes
    )
    node_ids: Set[str] = set()
    for node in new_nodes:
        if node.id in node_ids:
            raise DuplicateNodeIdError(node.id)
        node_ids.add(node.id)

    kept: List[Connection] = []
    taken: Set[str] = set()
    for raw in connections:
        conn = raw if isinstance(raw, Connection) else Connection.model_validate(raw)
        if conn.source_node_id not in node_ids or conn.target_node_id not in node_ids:
            logger.warning(
                f"Dropping connection {conn.id}: "
                f"{conn.source_node_id} -> {conn.target_node_id} references a missing node"
            )
            continue
        if conn.id in taken:
            conn = conn.model_copy(update={
                "id": allocate_connection_id(conn.source_node_id, conn.target_node_id, taken),
            })
        taken.add(conn.id)
        kept.append(conn)

    return WorkflowGraph(
        nodes=index_adjacency(new_nodes, kept),
        connections=tuple(kept),
    )
