"""
Node Type Registry — default shape of each workflow building block.

Every node kind declares its default label, its port layout and the
config payload a freshly created node starts with. The registry is
consulted only when a node is created (or synthesized from a stored
record); later config edits are not checked against it.

Port layout:
    trigger    — no inputs,  outputs [out]
    action     — inputs [in], outputs [out]
    condition  — inputs [in], outputs [true, false]
    variable   — inputs [in], outputs [out]
    response   — inputs [in], no outputs
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Union

from botflow.config import get_workflow_config
from botflow.workflow.workflow_model import (
    CONFIG_MODELS,
    NodeConfig,
    NodeKind,
    NodePort,
    NodePorts,
    PortKind,
)

_IN = NodePort(id="in")
_OUT = NodePort(id="out")


@dataclass(frozen=True)
class NodeTypeSpec:
    """Creation-time defaults for one node kind."""
    kind: NodeKind
    description: str
    default_ports: NodePorts
    config_defaults: Dict[str, Any] = field(default_factory=dict)

    @property
    def default_label(self) -> str:
        return self.kind.value.capitalize()

    def default_config(self) -> NodeConfig:
        """A fresh config instance for a new node of this kind."""
        values = dict(self.config_defaults)
        if self.kind == NodeKind.TRIGGER:
            values.setdefault("command_name", get_workflow_config().default_command_name)
        return CONFIG_MODELS[self.kind](**values)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize for the node palette."""
        return {
            "kind": self.kind.value,
            "label": self.default_label,
            "description": self.description,
            "ports": self.default_ports.to_wire(),
            "config": self.default_config().to_wire(),
        }


NODE_TYPES: Dict[NodeKind, NodeTypeSpec] = {
    NodeKind.TRIGGER: NodeTypeSpec(
        kind=NodeKind.TRIGGER,
        description="Starts the workflow when a slash or prefix command is used.",
        default_ports=NodePorts(outputs=(_OUT,)),
        config_defaults={"trigger_mode": "slash"},
    ),
    NodeKind.ACTION: NodeTypeSpec(
        kind=NodeKind.ACTION,
        description="Sends a message, changes roles or moderates the user.",
        default_ports=NodePorts(inputs=(_IN,), outputs=(_OUT,)),
        config_defaults={"action_kind": "send_message", "message": ""},
    ),
    NodeKind.CONDITION: NodeTypeSpec(
        kind=NodeKind.CONDITION,
        description="Branches on a role, permission or variable value.",
        default_ports=NodePorts(
            inputs=(_IN,),
            outputs=(
                NodePort(id="true", kind=PortKind.CONDITION),
                NodePort(id="false", kind=PortKind.CONDITION),
            ),
        ),
        config_defaults={"condition_kind": "has_role"},
    ),
    NodeKind.VARIABLE: NodeTypeSpec(
        kind=NodeKind.VARIABLE,
        description="Sets, reads, increments or decrements a stored variable.",
        default_ports=NodePorts(inputs=(_IN,), outputs=(_OUT,)),
        config_defaults={"operation": "set", "variable_name": "var1"},
    ),
    NodeKind.RESPONSE: NodeTypeSpec(
        kind=NodeKind.RESPONSE,
        description="Replies to the user, optionally as an embed.",
        default_ports=NodePorts(inputs=(_IN,)),
        config_defaults={"message": "", "use_embed": False, "ephemeral": False},
    ),
}


def get_node_type(kind: Union[NodeKind, str]) -> NodeTypeSpec:
    """Look up the defaults for a node kind.

    Raises:
        ValueError: If ``kind`` is not one of the five node kinds.
    """
    return NODE_TYPES[NodeKind(kind)]


def list_node_types() -> List[NodeTypeSpec]:
    """All node types, in palette order."""
    return [NODE_TYPES[k] for k in NodeKind]
