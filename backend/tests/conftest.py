import pytest

from botflow.config import reset_workflow_config
from botflow.workflow import connections as connection_manager
from botflow.workflow.graph_store import WorkflowGraphStore
from botflow.workflow.workflow_store import reset_workflow_store

_ENV_VARS = ("BOTFLOW_WORKFLOW_DIR", "BOTFLOW_DEFAULT_COMMAND", "BOTFLOW_NODE_ID_LENGTH")


@pytest.fixture(autouse=True)
def clean_config(monkeypatch):
    """Every test starts from the built-in defaults."""
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    reset_workflow_config()
    reset_workflow_store()
    yield
    reset_workflow_config()
    reset_workflow_store()


@pytest.fixture
def store():
    return WorkflowGraphStore()


def assert_adjacency_consistent(graph):
    """Every node's adjacency equals the one derived from the connection list."""
    expected = connection_manager.index_adjacency(graph.nodes, graph.connections)
    for node, indexed in zip(graph.nodes, expected):
        assert node.adjacency == indexed.adjacency, node.id
    ids = [c.id for c in graph.connections]
    assert len(ids) == len(set(ids))
    node_ids = set(graph.node_ids)
    for conn in graph.connections:
        assert conn.source_node_id in node_ids
        assert conn.target_node_id in node_ids


@pytest.fixture
def check_adjacency():
    return assert_adjacency_consistent
