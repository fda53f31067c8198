"""
Pre-built Workflow Templates.

Provides factory functions that return ready-made starter graphs
for the command builder, and ``load_template`` which swaps one into
an editing session.

Loading a template replaces whatever is on the canvas. Asking the
user before overwriting a non-empty graph is the UI's job.
"""

from __future__ import annotations

from logging import getLogger
from typing import Any, Callable, Dict, List, Optional, Tuple

from botflow.workflow.exceptions import TemplateNotFoundError
from botflow.workflow.graph_store import WorkflowGraphStore
from botflow.workflow.node_types import get_node_type
from botflow.workflow.workflow_model import (
    CONFIG_MODELS,
    Connection,
    Position,
    TriggerMode,
    WireModel,
    WorkflowNode,
)

logger = getLogger(__name__)


class WorkflowTemplate(WireModel):
    """A predefined node + connection set used to seed a new graph."""

    id: str
    name: str
    description: str = ""
    nodes: Tuple[WorkflowNode, ...] = ()
    connections: Tuple[Connection, ...] = ()


class CommandMetadata(WireModel):
    """Workflow-level fields seeded from a template's trigger node."""

    workflow_name: str
    trigger_mode: TriggerMode
    command_name: str
    description: Optional[str] = None


def _node(kind: str, node_id: str, label: str, x: float, y: float, **config: Any) -> WorkflowNode:
    spec = get_node_type(kind)
    return WorkflowNode(
        id=node_id,
        kind=spec.kind,
        label=label,
        position=Position(x=x, y=y),
        ports=spec.default_ports,
        config=CONFIG_MODELS[spec.kind](**config),
    )


def _edge(src: str, tgt: str, port: str = "out", target_port: str = "in") -> Connection:
    return Connection(
        id=f"e{src}-{tgt}",
        source_node_id=src,
        source_port_id=port,
        target_node_id=tgt,
        target_port_id=target_port,
    )


# ============================================================================
# Simple Command
# ============================================================================


def create_simple_template() -> WorkflowTemplate:
    """A command that replies with a fixed message: trigger → response."""
    return WorkflowTemplate(
        id="simple",
        name="Simple Command",
        description="A basic command that responds with a message",
        nodes=(
            _node("trigger", "1", "Command Trigger", 100, 100,
                  trigger_mode="slash", command_name="hello", description="Say hello"),
            _node("response", "2", "Send Message", 400, 100,
                  message="Hello! 👋"),
        ),
        connections=(_edge("1", "2"),),
    )


# ============================================================================
# Role Check
# ============================================================================


def create_role_check_template() -> WorkflowTemplate:
    """Branch on whether the caller has a role.

    Topology::
        trigger → condition ─true→  admin response
                            └false→ member response
    """
    return WorkflowTemplate(
        id="role-check",
        name="Role Check",
        description="Different responses based on user role",
        nodes=(
            _node("trigger", "1", "Command Trigger", 100, 150,
                  trigger_mode="slash", command_name="check", description="Check your role"),
            _node("condition", "2", "Has Admin Role?", 400, 150,
                  condition_kind="has_role"),
            _node("response", "3", "Admin Response", 700, 80,
                  message="You have admin permissions! ⭐"),
            _node("response", "4", "Normal Response", 700, 220,
                  message="You are a regular member."),
        ),
        connections=(
            _edge("1", "2"),
            _edge("2", "3", port="true"),
            _edge("2", "4", port="false"),
        ),
    )


# ============================================================================
# Variable Counter
# ============================================================================


def create_counter_template() -> WorkflowTemplate:
    """Increment a stored counter and show it: trigger → variable → response."""
    return WorkflowTemplate(
        id="counter",
        name="Variable Counter",
        description="Command that increments and displays a counter",
        nodes=(
            _node("trigger", "1", "Command Trigger", 100, 100,
                  trigger_mode="slash", command_name="count", description="Increment counter"),
            _node("variable", "2", "Increment Count", 400, 100,
                  operation="increment", variable_name="count", value="1"),
            _node("response", "3", "Show Count", 700, 100,
                  message="Counter: {{count}} 🔢"),
        ),
        connections=(
            _edge("1", "2"),
            _edge("2", "3"),
        ),
    )


# ============================================================================
# Template Registry
# ============================================================================

ALL_TEMPLATES: List[Callable[[], WorkflowTemplate]] = [
    create_simple_template,
    create_role_check_template,
    create_counter_template,
]


def list_templates() -> List[WorkflowTemplate]:
    """All built-in templates, in palette order."""
    return [factory() for factory in ALL_TEMPLATES]


def get_template(template_id: str) -> WorkflowTemplate:
    """Look up a built-in template by ID.

    Raises:
        TemplateNotFoundError: No template has that ID.
    """
    templates: Dict[str, WorkflowTemplate] = {t.id: t for t in list_templates()}
    try:
        return templates[template_id]
    except KeyError:
        raise TemplateNotFoundError(template_id) from None


def load_template(
    store: WorkflowGraphStore,
    template: WorkflowTemplate,
) -> Optional[CommandMetadata]:
    """Replace the store's graph with ``template``.

    Returns the command metadata read from the new graph's trigger
    node, or ``None`` when the template has no trigger.
    """
    graph = store.replace_all(template.nodes, template.connections)
    logger.info(
        f"Template loaded: {template.name} "
        f"({len(graph.nodes)} nodes, {len(graph.connections)} connections)"
    )

    trigger = graph.get_trigger_node()
    if trigger is None:
        return None
    return CommandMetadata(
        workflow_name=template.name,
        trigger_mode=trigger.config.trigger_mode,
        command_name=trigger.config.command_name,
        description=trigger.config.description,
    )
