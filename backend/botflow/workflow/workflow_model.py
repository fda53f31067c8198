"""
Workflow Data Models — nodes, ports, configs, connections and graphs.

These are the immutable snapshots the editor works on. A
``WorkflowGraph`` is never edited in place: ``WorkflowGraphStore``
replaces it with a new snapshot on every mutation, and only the
connection manager derives a node's ``adjacency``.

Field names are snake_case in Python and camelCase on the wire
(``commandName``, ``targetNodeId``); both spellings are accepted
when validating.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import (
    Annotated,
    Any,
    Collection,
    Dict,
    List,
    Literal,
    Mapping,
    Optional,
    Tuple,
    Type,
    Union,
)

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


# ============================================================================
# Enumerations
# ============================================================================


class NodeKind(str, Enum):
    """The five building blocks of a command workflow."""
    TRIGGER = "trigger"
    ACTION = "action"
    CONDITION = "condition"
    VARIABLE = "variable"
    RESPONSE = "response"


class PortKind(str, Enum):
    DEFAULT = "default"
    CONDITION = "condition"       # true/false branch of a condition node


class TriggerMode(str, Enum):
    SLASH = "slash"
    PREFIX = "prefix"


class ActionKind(str, Enum):
    SEND_MESSAGE = "send_message"
    ADD_ROLE = "add_role"
    REMOVE_ROLE = "remove_role"
    BAN = "ban"
    KICK = "kick"
    TIMEOUT = "timeout"


class ConditionKind(str, Enum):
    HAS_ROLE = "has_role"
    HAS_PERMISSION = "has_permission"
    VARIABLE_EQUALS = "variable_equals"
    CUSTOM = "custom"


class VariableOperation(str, Enum):
    SET = "set"
    GET = "get"
    INCREMENT = "increment"
    DECREMENT = "decrement"


# ============================================================================
# Base
# ============================================================================


class WireModel(BaseModel):
    """Frozen model serialized with camelCase aliases."""

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        alias_generator=to_camel,
    )

    def to_wire(self) -> Dict[str, Any]:
        """JSON-safe dict with camelCase keys."""
        return self.model_dump(mode="json", by_alias=True)


class _ConfigModel(WireModel):
    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        alias_generator=to_camel,
        extra="forbid",
    )


# ============================================================================
# Geometry & ports
# ============================================================================


class Position(WireModel):
    x: float = 0
    y: float = 0


class NodePort(WireModel):
    """A named attachment point on a node."""

    id: str
    kind: PortKind = PortKind.DEFAULT


class NodePorts(WireModel):
    inputs: Tuple[NodePort, ...] = ()
    outputs: Tuple[NodePort, ...] = ()


class PortTarget(WireModel):
    """One adjacency entry: where an output port leads."""

    target_node_id: str
    target_port_id: str = "in"


# ============================================================================
# Node configs (discriminated by ``kind``)
# ============================================================================


class TriggerConfig(_ConfigModel):
    kind: Literal["trigger"] = "trigger"
    trigger_mode: TriggerMode = TriggerMode.SLASH
    command_name: str
    description: Optional[str] = None


class ActionConfig(_ConfigModel):
    kind: Literal["action"] = "action"
    action_kind: ActionKind
    channel_id: Optional[str] = None
    role_id: Optional[str] = None
    message: Optional[str] = None
    duration_minutes: Optional[int] = None


class ConditionConfig(_ConfigModel):
    kind: Literal["condition"] = "condition"
    condition_kind: ConditionKind
    role_id: Optional[str] = None
    permission: Optional[str] = None
    variable_name: Optional[str] = None
    compare_value: Optional[str] = None
    custom_expression: Optional[str] = None


class VariableConfig(_ConfigModel):
    kind: Literal["variable"] = "variable"
    operation: VariableOperation
    variable_name: str
    value: Any = None


class ResponseConfig(_ConfigModel):
    kind: Literal["response"] = "response"
    message: str = ""
    use_embed: bool = False
    embed_color: Optional[str] = None
    embed_title: Optional[str] = None
    ephemeral: bool = False


NodeConfig = Annotated[
    Union[TriggerConfig, ActionConfig, ConditionConfig, VariableConfig, ResponseConfig],
    Field(discriminator="kind"),
]

CONFIG_MODELS: Dict[NodeKind, Type[_ConfigModel]] = {
    NodeKind.TRIGGER: TriggerConfig,
    NodeKind.ACTION: ActionConfig,
    NodeKind.CONDITION: ConditionConfig,
    NodeKind.VARIABLE: VariableConfig,
    NodeKind.RESPONSE: ResponseConfig,
}


# ============================================================================
# Node & connection
# ============================================================================


class WorkflowNode(WireModel):
    """A single block placed on the workflow canvas.

    ``kind`` and ``ports`` are fixed at creation. ``adjacency`` maps
    each output port ID to the targets wired from it, in connection
    order; it mirrors the graph's connection list and is written only
    by ``botflow.workflow.connections``.
    """

    id: str
    kind: NodeKind
    label: str = ""
    position: Position = Field(default_factory=Position)
    ports: NodePorts = Field(default_factory=NodePorts)
    config: NodeConfig
    adjacency: Dict[str, Tuple[PortTarget, ...]] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def _tag_config(cls, data: Any) -> Any:
        # Stored configs carry no ``kind`` tag; take it from the node.
        if isinstance(data, dict):
            config = data.get("config")
            if isinstance(config, dict) and "kind" not in config and "kind" in data:
                kind = data["kind"]
                if isinstance(kind, Enum):
                    kind = kind.value
                data = {**data, "config": {**config, "kind": kind}}
        return data

    @model_validator(mode="after")
    def _check_config_kind(self) -> "WorkflowNode":
        if self.config.kind != self.kind:
            raise ValueError(
                f"Node '{self.id}' is a {self.kind.value} node "
                f"but carries a {self.config.kind} config"
            )
        return self

    @property
    def input_port_ids(self) -> List[str]:
        return [p.id for p in self.ports.inputs]

    @property
    def output_port_ids(self) -> List[str]:
        return [p.id for p in self.ports.outputs]

    def has_input_port(self, port_id: str) -> bool:
        return port_id in self.input_port_ids

    def has_output_port(self, port_id: str) -> bool:
        return port_id in self.output_port_ids

    def targets(self, port_id: str) -> Tuple[PortTarget, ...]:
        """Adjacency entries for one output port."""
        return self.adjacency.get(port_id, ())


class Connection(WireModel):
    """A directed edge from an output port to an input port."""

    id: str
    source_node_id: str
    source_port_id: str = "out"
    target_node_id: str
    target_port_id: str = "in"

    def as_target(self) -> PortTarget:
        return PortTarget(
            target_node_id=self.target_node_id,
            target_port_id=self.target_port_id,
        )

    def touches(self, node_id: str) -> bool:
        return self.source_node_id == node_id or self.target_node_id == node_id


# ============================================================================
# Graph snapshot
# ============================================================================


class WorkflowGraph(WireModel):
    """An immutable snapshot of the whole editing session."""

    nodes: Tuple[WorkflowNode, ...] = ()
    connections: Tuple[Connection, ...] = ()
    selected_node_id: Optional[str] = None

    def get_node(self, node_id: str) -> Optional[WorkflowNode]:
        """Find a node by ID."""
        for n in self.nodes:
            if n.id == node_id:
                return n
        return None

    def has_node(self, node_id: Optional[str]) -> bool:
        return node_id is not None and self.get_node(node_id) is not None

    def get_connection(self, connection_id: str) -> Optional[Connection]:
        for c in self.connections:
            if c.id == connection_id:
                return c
        return None

    @property
    def node_ids(self) -> List[str]:
        return [n.id for n in self.nodes]

    @property
    def selected_node(self) -> Optional[WorkflowNode]:
        if self.selected_node_id is None:
            return None
        return self.get_node(self.selected_node_id)

    def connections_from(
        self, node_id: str, port_id: Optional[str] = None,
    ) -> List[Connection]:
        """Connections leaving a node, optionally from one output port."""
        return [
            c for c in self.connections
            if c.source_node_id == node_id
            and (port_id is None or c.source_port_id == port_id)
        ]

    def connections_to(self, node_id: str) -> List[Connection]:
        """Connections entering a node."""
        return [c for c in self.connections if c.target_node_id == node_id]

    def nodes_of_kind(self, kind: NodeKind) -> List[WorkflowNode]:
        return [n for n in self.nodes if n.kind == kind]

    @property
    def trigger_nodes(self) -> List[WorkflowNode]:
        return self.nodes_of_kind(NodeKind.TRIGGER)

    @property
    def response_nodes(self) -> List[WorkflowNode]:
        return self.nodes_of_kind(NodeKind.RESPONSE)

    def get_trigger_node(self) -> Optional[WorkflowNode]:
        """The first trigger node; a valid workflow has exactly one."""
        triggers = self.trigger_nodes
        return triggers[0] if triggers else None

    def is_empty(self) -> bool:
        return not self.nodes


def generate_node_id(taken: Collection[str] = (), length: int = 8) -> str:
    """Return a random node ID not already in ``taken``."""
    while True:
        candidate = uuid.uuid4().hex[:length]
        if candidate not in taken:
            return candidate


def normalize_config_keys(kind: NodeKind, data: Mapping[str, Any]) -> Dict[str, Any]:
    """Map camelCase config keys to field names; unknown keys pass through."""
    model = CONFIG_MODELS[NodeKind(kind)]
    by_alias = {to_camel(name): name for name in model.model_fields}
    return {by_alias.get(key, key): value for key, value in data.items()}


# ============================================================================
# Saved workflow
# ============================================================================


class WorkflowDefinition(BaseModel):
    """A saved command workflow: metadata plus the persisted graph payload.

    ``nodes`` and ``connections`` hold the wire records produced by
    ``botflow.workflow.serialization.graph_to_payload``. Files written
    before connections were stored have ``connections`` unset; their
    graph is rebuilt from each node's ``edges``.
    """

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    name: str = "New Workflow"
    command_name: str = ""
    command_type: TriggerMode = TriggerMode.SLASH
    description: Optional[str] = None
    enabled: bool = True
    version: int = 0
    nodes: List[Dict[str, Any]] = Field(default_factory=list)
    connections: Optional[List[Dict[str, Any]]] = None
    created_at: str = Field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )
    updated_at: str = Field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )

    def touch(self) -> None:
        """Update the ``updated_at`` timestamp."""
        self.updated_at = datetime.now(timezone.utc).isoformat()

    @classmethod
    def from_graph(cls, graph: WorkflowGraph, **metadata: Any) -> "WorkflowDefinition":
        """Build a definition from an editor snapshot.

        ``command_name``/``command_type`` default to the trigger node's
        config, falling back to a slug of ``name``.
        """
        from botflow.workflow.serialization import graph_to_payload

        payload = graph_to_payload(graph)
        trigger = graph.get_trigger_node()
        if trigger is not None:
            metadata.setdefault("command_name", trigger.config.command_name)
            metadata.setdefault("command_type", trigger.config.trigger_mode)
            if trigger.config.description:
                metadata.setdefault("description", trigger.config.description)
        if not metadata.get("command_name"):
            name = metadata.get("name", "New Workflow")
            metadata["command_name"] = "-".join(name.lower().split())
        return cls(
            nodes=payload["nodes"],
            connections=payload["connections"],
            **metadata,
        )

    def to_graph(self) -> WorkflowGraph:
        """Decode the stored payload back into an editor snapshot."""
        from botflow.workflow.serialization import graph_from_payload

        return graph_from_payload({
            "nodes": self.nodes,
            "connections": self.connections,
        })