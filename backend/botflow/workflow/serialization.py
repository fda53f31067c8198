"""
Graph serializer — converts editor snapshots to and from stored records.

Wire shapes (camelCase dicts, ready for JSON):

    node record:  id, nodeType, nodeData{label, ports, edges, config},
                  positionX, positionY
    connection:   id, sourceNodeId, sourcePortId, targetNodeId, targetPortId
    payload:      nodes, connections

Decoding is lenient about where fields live, so older records load
too: ``kind``/``nodeType``, ``position{x, y}``/``positionX``+``positionY``,
``config`` at top level or inside ``nodeData``, and the first
editor version's config key names (``type``, ``actionType``, ``embed``, ...).
Ports are never read from a record; they come from the node type
registry.

A payload always carries its connection list. Payloads without one
(written before connections were stored) have their connections
rebuilt from each node's embedded ``edges``.
"""

from __future__ import annotations

from logging import getLogger
from typing import Any, Dict, List, Mapping, Optional, Tuple

from botflow.workflow.connections import assemble_graph, connections_from_adjacency
from botflow.workflow.node_types import get_node_type
from botflow.workflow.workflow_model import (
    CONFIG_MODELS,
    Connection,
    NodeKind,
    PortTarget,
    Position,
    WorkflowGraph,
    WorkflowNode,
    generate_node_id,
    normalize_config_keys,
)

logger = getLogger(__name__)

# Config keys used by the first version of the editor.
_LEGACY_CONFIG_KEYS: Dict[NodeKind, Dict[str, str]] = {
    NodeKind.TRIGGER: {"type": "trigger_mode"},
    NodeKind.ACTION: {"actionType": "action_kind", "duration": "duration_minutes"},
    NodeKind.CONDITION: {"conditionType": "condition_kind"},
    NodeKind.RESPONSE: {"embed": "use_embed"},
}


# ── Encoding ──────────────────────────────────────────────────────────────────


def node_to_record(node: WorkflowNode) -> Dict[str, Any]:
    config = node.config.to_wire()
    config.pop("kind", None)
    return {
        "id": node.id,
        "nodeType": node.kind.value,
        "nodeData": {
            "label": node.label,
            "ports": node.ports.to_wire(),
            "edges": {
                port_id: [t.to_wire() for t in targets]
                for port_id, targets in node.adjacency.items()
            },
            "config": config,
        },
        "positionX": node.position.x,
        "positionY": node.position.y,
    }


def graph_to_payload(graph: WorkflowGraph) -> Dict[str, List[Dict[str, Any]]]:
    """Serialize a snapshot for storage (selection is not persisted)."""
    return {
        "nodes": [node_to_record(n) for n in graph.nodes],
        "connections": [c.to_wire() for c in graph.connections],
    }


# ── Decoding ──────────────────────────────────────────────────────────────────


def _record_kind(record: Mapping[str, Any]) -> NodeKind:
    raw = record.get("kind") or record.get("nodeType") or record.get("node_type")
    if raw is None:
        raise ValueError(f"Node record has no kind: {dict(record)!r}")
    return NodeKind(raw)


def _record_position(record: Mapping[str, Any]) -> Position:
    position = record.get("position")
    if isinstance(position, Mapping):
        return Position.model_validate(position)
    return Position(
        x=record.get("positionX", record.get("position_x", 0)) or 0,
        y=record.get("positionY", record.get("position_y", 0)) or 0,
    )


def _record_config(node_id: str, kind: NodeKind, raw: Mapping[str, Any]) -> Dict[str, Any]:
    """Stored config over the registry defaults, with legacy keys renamed."""
    legacy = _LEGACY_CONFIG_KEYS.get(kind, {})
    renamed = {legacy.get(key, key): value for key, value in raw.items()}
    stored = normalize_config_keys(kind, renamed)
    stored.pop("kind", None)

    known = CONFIG_MODELS[kind].model_fields
    unknown = [key for key in stored if key not in known]
    for key in unknown:
        stored.pop(key)
    if unknown:
        logger.warning(f"Ignoring unknown {kind.value} config keys on node {node_id}: {unknown}")

    defaults = get_node_type(kind).default_config().model_dump(exclude={"kind"})
    return {**defaults, **stored}


def _record_adjacency(raw: Any) -> Dict[str, Tuple[PortTarget, ...]]:
    if not isinstance(raw, Mapping):
        return {}
    return {
        port_id: tuple(PortTarget.model_validate(entry) for entry in entries or ())
        for port_id, entries in raw.items()
        if entries
    }


def node_from_record(record: Mapping[str, Any]) -> WorkflowNode:
    """Build an in-memory node from a stored record.

    Ports are synthesized from the node type registry. The stored
    ``edges`` are kept as the node's adjacency; ``graph_from_payload``
    reconciles them with the connection list.

    Raises:
        ValueError: The record has no valid kind.
        pydantic.ValidationError: The stored config has the wrong shape.
    """
    kind = _record_kind(record)
    spec = get_node_type(kind)
    node_data = record.get("nodeData") or record.get("node_data") or {}

    node_id = record.get("id")
    node_id = str(node_id) if node_id is not None else generate_node_id()
    raw_config = record.get("config")
    if raw_config is None:
        raw_config = node_data.get("config") or {}
    edges = record.get("adjacency")
    if edges is None:
        edges = node_data.get("edges")

    return WorkflowNode(
        id=node_id,
        kind=kind,
        label=record.get("label") or node_data.get("label") or spec.default_label,
        position=_record_position(record),
        ports=spec.default_ports,
        config=CONFIG_MODELS[kind].model_validate(_record_config(node_id, kind, raw_config)),
        adjacency=_record_adjacency(edges),
    )


def graph_from_records(
    records: List[Mapping[str, Any]],
    connections: Optional[List[Mapping[str, Any]]] = None,
) -> WorkflowGraph:
    """Decode stored node records (and optionally connections) into a graph."""
    nodes = [node_from_record(r) for r in records]
    if connections is None:
        restored: List[Connection] = connections_from_adjacency(nodes)
        if restored:
            logger.info(f"Rebuilt {len(restored)} connection(s) from stored node edges")
    else:
        restored = [Connection.model_validate(c) for c in connections]
    return assemble_graph(nodes, restored)


def graph_from_payload(payload: Mapping[str, Any]) -> WorkflowGraph:
    """Inverse of ``graph_to_payload``.

    A ``connections`` list, even an empty one, is authoritative; node
    ``edges`` are only read when the key is missing or null.
    """
    connections = payload.get("connections")
    return graph_from_records(
        list(payload.get("nodes") or ()),
        None if connections is None else list(connections),
    )
