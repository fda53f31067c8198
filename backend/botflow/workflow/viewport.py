"""
Viewport Adapter — relays canvas events to the graph store.

The canvas reports clicks, key presses and batched node changes
(drags, deletions, selection). The adapter turns each into the
matching store command; it holds no state of its own.
"""

from __future__ import annotations

from enum import Enum
from logging import getLogger
from typing import Iterable, Optional

from botflow.workflow.graph_store import WorkflowGraphStore
from botflow.workflow.workflow_model import Position, WireModel, WorkflowGraph

logger = getLogger(__name__)


class NodeChangeType(str, Enum):
    POSITION = "position"
    REMOVE = "remove"
    SELECT = "select"


class NodeChange(WireModel):
    """One entry of a batched canvas change."""

    type: NodeChangeType
    id: str
    position: Optional[Position] = None
    selected: bool = True


class ViewportAdapter:
    """Translate canvas interactions into ``WorkflowGraphStore`` calls."""

    def __init__(self, store: WorkflowGraphStore) -> None:
        self.store = store

    def node_clicked(self, node_id: str) -> WorkflowGraph:
        return self.store.select(node_id)

    def pane_clicked(self) -> WorkflowGraph:
        return self.store.select(None)

    def delete_pressed(self) -> WorkflowGraph:
        """Remove the selected node, if any."""
        selected = self.store.selected_node_id
        if selected is None:
            return self.store.graph
        return self.store.remove_node(selected)

    def apply_node_changes(self, changes: Iterable[NodeChange]) -> WorkflowGraph:
        """Apply a batch of changes in order.

        A position change without a position (a drag that has not
        reported coordinates yet) is skipped. A deselect clears the
        selection only when it targets the selected node.
        """
        for change in changes:
            if not isinstance(change, NodeChange):
                change = NodeChange.model_validate(change)

            if change.type == NodeChangeType.POSITION:
                if change.position is not None:
                    self.store.set_position(change.id, change.position)
            elif change.type == NodeChangeType.REMOVE:
                self.store.remove_node(change.id)
            elif change.type == NodeChangeType.SELECT:
                if change.selected:
                    self.store.select(change.id)
                elif self.store.selected_node_id == change.id:
                    self.store.select(None)
        return self.store.graph
