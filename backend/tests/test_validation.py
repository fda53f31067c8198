from botflow.workflow.graph_store import WorkflowGraphStore
from botflow.workflow.validation import (
    MSG_MISSING_RESPONSE,
    MSG_MISSING_TRIGGER,
    MSG_MULTIPLE_TRIGGERS,
    validate,
    validate_workflow_graph,
)
from botflow.workflow.workflow_model import PortTarget, WorkflowGraph


class TestAdvisoryWarnings:

    def setup_method(self):
        self.store = WorkflowGraphStore()

    def test_empty_graph_has_no_warnings(self):
        assert self.store.validate() == []

    def test_trigger_and_response(self):
        t = self.store.create_node("trigger")
        r = self.store.create_node("response")
        self.store.connect(t, r)
        assert self.store.validate() == []

    def test_unconnected_trigger_and_response_still_clean(self):
        self.store.create_node("trigger")
        self.store.create_node("response")
        assert self.store.validate() == []

    def test_lone_trigger(self):
        self.store.create_node("trigger")
        assert self.store.validate() == [MSG_MISSING_RESPONSE]

    def test_two_triggers_no_response(self):
        self.store.create_node("trigger")
        self.store.create_node("trigger")
        assert self.store.validate() == [MSG_MULTIPLE_TRIGGERS, MSG_MISSING_RESPONSE]

    def test_no_trigger(self):
        self.store.create_node("response")
        assert self.store.validate() == [MSG_MISSING_TRIGGER]

    def test_messages(self):
        assert MSG_MISSING_TRIGGER == "Workflow needs at least one trigger node"
        assert MSG_MULTIPLE_TRIGGERS == "Workflow can only have one trigger node"
        assert MSG_MISSING_RESPONSE == "Workflow should have at least one response node"

    def test_validate_is_pure(self):
        self.store.create_node("trigger")
        graph = self.store.graph
        assert validate(graph) == validate(graph)
        assert self.store.graph is graph


class TestStrictValidation:

    def setup_method(self):
        self.store = WorkflowGraphStore()

    def test_valid_linear_workflow(self):
        t = self.store.create_node("trigger")
        v = self.store.create_node("variable")
        r = self.store.create_node("response")
        self.store.connect(t, v)
        self.store.connect(v, r)
        result = self.store.validate_strict()
        assert result.valid is True
        assert result.errors == []

    def test_empty_graph_missing_trigger(self):
        assert validate_workflow_graph(WorkflowGraph()).codes == ["MISSING_TRIGGER"]

    def test_lone_trigger_is_valid(self):
        self.store.create_node("trigger")
        assert self.store.validate_strict().valid is True

    def test_disconnected_node(self):
        t = self.store.create_node("trigger")
        r = self.store.create_node("response")
        stray = self.store.create_node("action")
        self.store.connect(t, r)
        result = self.store.validate_strict()
        assert result.codes == ["DISCONNECTED_NODE"]
        assert result.errors[0].node_id == stray

    def test_multiple_triggers(self):
        t1 = self.store.create_node("trigger")
        t2 = self.store.create_node("trigger")
        r = self.store.create_node("response")
        self.store.connect(t1, r)
        self.store.connect(t2, r)
        assert self.store.validate_strict().codes == ["MULTIPLE_TRIGGERS"]

    def test_cycle_reported_once(self):
        t = self.store.create_node("trigger")
        a = self.store.create_node("action")
        b = self.store.create_node("action")
        r = self.store.create_node("response")
        self.store.connect(t, a)
        self.store.connect(a, b)
        self.store.connect(b, a)
        self.store.connect(b, r)
        self.store.connect(a, a)
        assert self.store.validate_strict().codes == ["CYCLE_DETECTED"]

    def test_invalid_ports(self):
        t = self.store.create_node("trigger")
        c = self.store.create_node("condition")
        r = self.store.create_node("response")
        self.store.connect(t, c)
        self.store.connect(c, r)  # condition has no "out" port
        self.store.connect(c, r, "true", "body")
        codes = self.store.validate_strict().codes
        assert codes == ["INVALID_OUTPUT_PORT", "INVALID_TARGET_PORT"]

    def test_invalid_target_node(self):
        t = self.store.create_node("trigger")
        node = self.store.graph.get_node(t).model_copy(update={
            "adjacency": {"out": (PortTarget(target_node_id="ghost"),)},
        })
        result = validate_workflow_graph(WorkflowGraph(nodes=(node,)))
        assert result.codes == ["INVALID_TARGET_NODE"]
        assert result.errors[0].field == "adjacency.out[0]"

    def test_no_response(self):
        t = self.store.create_node("trigger")
        a = self.store.create_node("action")
        self.store.connect(t, a)
        assert self.store.validate_strict().codes == ["NO_RESPONSE"]

    def test_wire_shape(self):
        result = validate_workflow_graph(WorkflowGraph())
        assert result.to_wire() == {
            "valid": False,
            "errors": [{
                "code": "MISSING_TRIGGER",
                "message": "Workflow must have at least one trigger node",
                "nodeId": None,
                "field": None,
            }],
        }
