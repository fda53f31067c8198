import logging

from botflow.workflow.graph_store import WorkflowGraphStore
from botflow.workflow.serialization import (
    graph_from_payload,
    graph_to_payload,
    node_from_record,
    node_to_record,
)
from botflow.workflow.templates import get_template, load_template
from botflow.workflow.workflow_model import NodeKind, Position, PortTarget


class TestEncoding:

    def setup_method(self):
        self.store = WorkflowGraphStore()
        load_template(self.store, get_template("role-check"))

    def test_node_record_shape(self):
        record = node_to_record(self.store.graph.get_node("1"))
        assert record == {
            "id": "1",
            "nodeType": "trigger",
            "nodeData": {
                "label": "Command Trigger",
                "ports": {"inputs": [], "outputs": [{"id": "out", "kind": "default"}]},
                "edges": {"out": [{"targetNodeId": "2", "targetPortId": "in"}]},
                "config": {
                    "triggerMode": "slash",
                    "commandName": "check",
                    "description": "Check your role",
                },
            },
            "positionX": 100.0,
            "positionY": 150.0,
        }

    def test_payload_carries_connections(self):
        payload = graph_to_payload(self.store.graph)
        assert [c["id"] for c in payload["connections"]] == ["e1-2", "e2-3", "e2-4"]
        assert payload["connections"][1]["sourcePortId"] == "true"
        assert "selectedNodeId" not in payload


class TestDecoding:

    def test_round_trip(self, check_adjacency):
        store = WorkflowGraphStore()
        load_template(store, get_template("role-check"))
        store.update_node_label_and_config("3", {"useEmbed": True, "embedColor": "#ff0000"})
        original = store.graph

        restored = graph_from_payload(graph_to_payload(original))
        assert restored == original
        check_adjacency(restored)

    def test_rebuilds_connections_from_edges(self, check_adjacency):
        store = WorkflowGraphStore()
        load_template(store, get_template("counter"))
        payload = graph_to_payload(store.graph)
        del payload["connections"]

        restored = graph_from_payload(payload)
        assert [(c.id, c.source_node_id, c.target_node_id) for c in restored.connections] == [
            ("1-2", "1", "2"),
            ("2-3", "2", "3"),
        ]
        check_adjacency(restored)

    def test_legacy_record(self):
        node = node_from_record({
            "id": "n1",
            "kind": "response",
            "position": {"x": 10, "y": 20},
            "config": {"message": "hi", "embed": True},
        })
        assert node.kind == NodeKind.RESPONSE
        assert node.label == "Response"
        assert node.position == Position(x=10, y=20)
        assert node.config.use_embed is True
        assert node.config.ephemeral is False
        assert node.input_port_ids == ["in"]

    def test_legacy_config_keys(self):
        node = node_from_record({
            "id": "a",
            "nodeType": "action",
            "nodeData": {"config": {"actionType": "timeout", "duration": 5}},
        })
        assert node.config.action_kind.value == "timeout"
        assert node.config.duration_minutes == 5

    def test_unknown_config_keys_dropped(self, caplog):
        with caplog.at_level(logging.WARNING):
            node = node_from_record({
                "id": "t",
                "nodeType": "trigger",
                "nodeData": {"config": {"commandName": "x", "cooldown": 3}},
            })
        assert node.config.command_name == "x"
        assert "cooldown" in caplog.text

    def test_stored_ports_ignored(self):
        node = node_from_record({
            "id": "c",
            "nodeType": "condition",
            "nodeData": {"ports": {"outputs": [{"id": "maybe"}]}},
        })
        assert node.output_port_ids == ["true", "false"]

    def test_explicit_connections_override_edges(self):
        graph = graph_from_payload({
            "nodes": [
                {"id": "t", "nodeType": "trigger",
                 "nodeData": {"edges": {"out": [{"targetNodeId": "r"}]}}},
                {"id": "r", "nodeType": "response"},
                {"id": "x", "nodeType": "response"},
            ],
            "connections": [{"id": "t-x", "sourceNodeId": "t", "targetNodeId": "x"}],
        })
        assert graph.get_node("t").targets("out") == (PortTarget(target_node_id="x"),)

    def test_empty_connection_list_ignores_stale_edges(self, check_adjacency):
        graph = graph_from_payload({
            "nodes": [
                {"id": "t", "nodeType": "trigger",
                 "nodeData": {"edges": {"out": [{"targetNodeId": "r"}]}}},
                {"id": "r", "nodeType": "response"},
            ],
            "connections": [],
        })
        assert graph.connections == ()
        assert graph.get_node("t").adjacency == {}
        check_adjacency(graph)

    def test_null_connections_rebuilt_from_edges(self):
        graph = graph_from_payload({
            "nodes": [
                {"id": "t", "nodeType": "trigger",
                 "nodeData": {"edges": {"out": [{"targetNodeId": "r"}]}}},
                {"id": "r", "nodeType": "response"},
            ],
            "connections": None,
        })
        assert [c.id for c in graph.connections] == ["t-r"]
