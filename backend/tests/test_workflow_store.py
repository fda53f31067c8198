import logging

import pytest

from botflow.workflow.exceptions import VersionConflictError
from botflow.workflow.graph_store import WorkflowGraphStore
from botflow.workflow.templates import get_template, load_template
from botflow.workflow.workflow_model import TriggerMode, WorkflowDefinition
from botflow.workflow.workflow_store import WorkflowStore, get_workflow_store


@pytest.fixture
def workflow_store(tmp_path):
    return WorkflowStore(tmp_path / "workflows")


@pytest.fixture
def definition():
    store = WorkflowGraphStore()
    metadata = load_template(store, get_template("simple"))
    return WorkflowDefinition.from_graph(store.graph, name=metadata.workflow_name)


class TestWorkflowDefinition:

    def test_from_graph_takes_command_from_trigger(self, definition):
        assert definition.name == "Simple Command"
        assert definition.command_name == "hello"
        assert definition.command_type == TriggerMode.SLASH
        assert definition.description == "Say hello"
        assert len(definition.nodes) == 2
        assert definition.connections[0]["id"] == "e1-2"

    def test_from_graph_without_trigger_slugs_name(self):
        store = WorkflowGraphStore()
        store.create_node("response")
        definition = WorkflowDefinition.from_graph(store.graph, name="Daily Greeting")
        assert definition.command_name == "daily-greeting"

    def test_to_graph(self, definition, check_adjacency):
        graph = definition.to_graph()
        assert graph.node_ids == ["1", "2"]
        assert graph.get_node("2").config.message == "Hello! 👋"
        check_adjacency(graph)

    def test_legacy_definition_without_connections(self, definition):
        legacy = definition.model_copy(update={"connections": None})
        graph = legacy.to_graph()
        assert [(c.source_node_id, c.target_node_id) for c in graph.connections] == [("1", "2")]

    def test_definition_with_no_connections_stays_unwired(self, definition):
        unwired = definition.model_copy(update={"connections": []})
        assert unwired.to_graph().connections == ()


class TestWorkflowStore:

    def test_creates_directory(self, tmp_path):
        target = tmp_path / "nested" / "dir"
        WorkflowStore(target)
        assert target.is_dir()

    def test_save_and_load(self, workflow_store, definition):
        workflow_store.save(definition)
        loaded = workflow_store.load(definition.id)
        assert loaded is not None
        assert loaded.version == 1
        assert loaded.to_graph() == definition.to_graph()
        assert workflow_store.exists(definition.id)

    def test_version_bumps(self, workflow_store, definition):
        workflow_store.save(definition)
        workflow_store.save(definition)
        assert definition.version == 2
        assert workflow_store.load(definition.id).version == 2

    def test_expected_version_matches(self, workflow_store, definition):
        workflow_store.save(definition)
        saved = workflow_store.save(definition, expected_version=1)
        assert saved.version == 2

    def test_expected_version_conflict(self, workflow_store, definition):
        workflow_store.save(definition)
        stale = workflow_store.load(definition.id)
        workflow_store.save(definition)
        with pytest.raises(VersionConflictError) as exc:
            workflow_store.save(stale, expected_version=stale.version)
        assert exc.value.expected == 1
        assert exc.value.actual == 2
        assert workflow_store.load(definition.id).version == 2

    def test_expected_version_for_missing_workflow(self, workflow_store, definition):
        with pytest.raises(VersionConflictError):
            workflow_store.save(definition, expected_version=1)
        assert not workflow_store.exists(definition.id)

    def test_load_missing(self, workflow_store):
        assert workflow_store.load("missing") is None

    def test_delete(self, workflow_store, definition):
        workflow_store.save(definition)
        assert workflow_store.delete(definition.id) is True
        assert workflow_store.delete(definition.id) is False
        assert workflow_store.load(definition.id) is None

    def test_list_all_skips_malformed(self, workflow_store, definition, caplog):
        workflow_store.save(definition)
        (workflow_store.storage_dir / "broken.json").write_text("{not json", encoding="utf-8")
        with caplog.at_level(logging.WARNING):
            workflows = workflow_store.list_all()
        assert [w.id for w in workflows] == [definition.id]
        assert "broken.json" in caplog.text

    def test_find_by_command(self, workflow_store, definition):
        workflow_store.save(definition)
        assert workflow_store.find_by_command("hello").id == definition.id
        assert workflow_store.find_by_command("bye") is None

    def test_id_sanitized(self, workflow_store):
        workflow = WorkflowDefinition(id="../escape")
        workflow_store.save(workflow)
        assert (workflow_store.storage_dir / "escape.json").exists()

    def test_load_graph(self, workflow_store, definition, check_adjacency):
        workflow_store.save(definition)
        graph = workflow_store.load_graph(definition.id)
        assert graph.node_ids == ["1", "2"]
        assert [c.id for c in graph.connections] == ["e1-2"]
        check_adjacency(graph)

    def test_load_graph_missing(self, workflow_store):
        assert workflow_store.load_graph("missing") is None

    def test_load_graph_undecodable(self, workflow_store, caplog):
        workflow = WorkflowDefinition(id="bad-graph", nodes=[{"id": "a", "nodeType": "webhook"}])
        workflow_store.save(workflow)
        with caplog.at_level(logging.ERROR):
            assert workflow_store.load_graph("bad-graph") is None
        assert "bad-graph" in caplog.text
        assert workflow_store.load("bad-graph") is not None

    def test_commands_keyed_by_name(self, workflow_store, definition):
        workflow_store.save(definition)
        workflow_store.save(WorkflowDefinition(id="other", command_name="bye"))
        commands = workflow_store.commands()
        assert sorted(commands) == ["bye", "hello"]
        assert commands["hello"].id == definition.id

    def test_command_clash_keeps_first_file(self, workflow_store, caplog):
        workflow_store.save(WorkflowDefinition(id="a-first", command_name="hello"))
        workflow_store.save(WorkflowDefinition(id="b-second", command_name="hello"))
        with caplog.at_level(logging.WARNING):
            assert workflow_store.find_by_command("hello").id == "a-first"
        assert "b-second" in caplog.text

    def test_save_leaves_no_staging_file(self, workflow_store, definition):
        workflow_store.save(definition)
        workflow_store.save(definition)
        assert [p.name for p in workflow_store.storage_dir.iterdir()] == [f"{definition.id}.json"]

    def test_unusable_id_rejected(self, workflow_store):
        with pytest.raises(ValueError):
            workflow_store.load("../..")

    def test_singleton_uses_configured_dir(self, tmp_path, monkeypatch):
        monkeypatch.setenv("BOTFLOW_WORKFLOW_DIR", str(tmp_path / "configured"))
        store = get_workflow_store()
        assert store is get_workflow_store()
        assert store.storage_dir == tmp_path / "configured"
