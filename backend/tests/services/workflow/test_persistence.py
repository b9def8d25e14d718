"""Tests for the workflow load/save boundary."""

import json

import pytest

from flowcanvas.models.enums import NodeType
from flowcanvas.schemas.graph import Position, WorkflowGraph
from flowcanvas.schemas.validation import GraphValidationCode
from flowcanvas.services.workflow.exceptions import DslDecodeError, GraphDecodeError
from flowcanvas.services.workflow.persistence import (
    APP_INFO_NODE_ID,
    build_persisted_workflow,
    create_app_info_node,
    create_default_graph,
    decode_dsl,
    decode_graph_data,
    extract_app_parameters,
    load_workflow_graph,
    validate_app,
)
from flowcanvas.services.workflow.validator import GraphValidator


@pytest.fixture
def validator(catalog) -> GraphValidator:
    return GraphValidator(catalog)


@pytest.fixture
def stored(linear_graph):
    return build_persisted_workflow(linear_graph, "Support Bot", workflow_id=4)


class TestDefaults:
    """Tests for the nodes created by the load path."""

    def test_default_graph(self) -> None:
        graph = create_default_graph()

        assert [(node.id, node.node_type) for node in graph.nodes] == [
            ("start", NodeType.START),
            ("end", NodeType.END),
        ]
        assert graph.nodes[0].position == Position(x=300, y=250)
        assert graph.nodes[1].position == Position(x=1000, y=250)
        assert graph.nodes[0].data.node_label == "Start"
        assert graph.edges == []

    def test_default_graphs_do_not_share_positions(self) -> None:
        first = create_default_graph()
        first.nodes[0].position.x = 0
        assert create_default_graph().nodes[0].position.x == 300

    def test_app_info_node_from_settings(self) -> None:
        node = create_app_info_node({"appName": "Bot", "modelId": 3})

        assert node.id == APP_INFO_NODE_ID
        assert node.node_type == NodeType.APP_INFO
        assert node.position == Position(x=10, y=50)
        assert node.config == {
            "appName": "Bot",
            "description": "",
            "icon": "",
            "prologue": "",
            "modelId": 3,
            "appParams": [],
            "interfaceParams": [],
            "sessionParams": [],
        }

    def test_app_info_reads_nested_parameters(self) -> None:
        node = create_app_info_node(
            {
                "appName": "Bot",
                "parameters": {
                    "sessionParams": [{"key": "turns", "label": "Turns", "type": "number"}],
                    "globalParams": [{"key": "locale"}],
                },
            }
        )
        assert node.config["sessionParams"][0]["key"] == "turns"
        assert node.config["globalParams"][0]["key"] == "locale"
        assert "parameters" not in node.config


class TestAppParameters:
    """Tests for extracting scope lists to store with the application."""

    def test_extract(self, linear_graph) -> None:
        assert extract_app_parameters(linear_graph) == {
            "appParams": [{"key": "tenant", "label": "Tenant", "type": "string", "required": False}],
            "interfaceParams": [{"key": "channel", "label": "Channel", "type": "string", "required": False}],
            "sessionParams": [{"key": "turns", "label": "Turns", "type": "number", "required": False}],
        }

    def test_extract_without_app_info(self, intent_graph) -> None:
        assert extract_app_parameters(intent_graph) is None


class TestDecoding:
    """Tests for the stored-field decoders."""

    def test_decode_graph_data_error(self) -> None:
        with pytest.raises(GraphDecodeError) as exc_info:
            decode_graph_data("{not json")
        assert exc_info.value.error_code == "GRAPH_DECODE_FAILED"
        assert exc_info.value.message.startswith("Invalid graph data")

    def test_decode_dsl_error(self) -> None:
        with pytest.raises(DslDecodeError):
            decode_dsl(json.dumps({"nodes": "nope"}))

    def test_decode_dsl(self, stored) -> None:
        dsl = decode_dsl(stored.dsl_data)
        assert dsl.name == "Support Bot"
        assert dsl.workflow_id == 4


class TestSave:
    """Tests for build_persisted_workflow."""

    def test_app_info_is_not_stored(self, linear_graph, edge_factory) -> None:
        linear_graph.edges.append(edge_factory("app-info", "start"))
        stored = build_persisted_workflow(linear_graph, "Support Bot")

        graph = json.loads(stored.graph_data)
        dsl = json.loads(stored.dsl_data)
        assert [node["id"] for node in graph["nodes"]] == ["start", "llm-1", "end"]
        assert len(graph["edges"]) == 2
        assert [node["id"] for node in dsl["nodes"]] == ["start", "llm-1", "end"]

    def test_graph_data_keeps_positions(self, stored) -> None:
        graph = decode_graph_data(stored.graph_data)
        assert graph.get_node("llm-1").position == Position(x=250, y=0)

    def test_saving_leaves_graph_untouched(self, linear_graph) -> None:
        before = linear_graph.to_snapshot()
        build_persisted_workflow(linear_graph, "Support Bot")
        assert linear_graph.to_snapshot() == before


class TestLoad:
    """Tests for load_workflow_graph source priority."""

    def test_graph_data_wins(self, stored, linear_graph) -> None:
        graph = load_workflow_graph(stored.graph_data, stored.dsl_data)
        expected = WorkflowGraph(nodes=linear_graph.flow_nodes, edges=linear_graph.edges)
        assert graph.to_snapshot() == expected.to_snapshot()

    def test_dsl_fallback(self, stored, caplog) -> None:
        with caplog.at_level("WARNING"):
            graph = load_workflow_graph("{broken", stored.dsl_data)

        assert [node.id for node in graph.nodes] == ["start", "llm-1", "end"]
        assert graph.nodes[1].position == Position(x=300, y=50)
        assert "Invalid graph data" in caplog.text

    def test_default_when_nothing_is_usable(self, caplog) -> None:
        with caplog.at_level("WARNING"):
            graph = load_workflow_graph("{broken", "also broken")
        assert [node.id for node in graph.nodes] == ["start", "end"]
        assert "Invalid DSL data" in caplog.text

    def test_dsl_with_null_intents_is_loaded(self) -> None:
        dsl_data = json.dumps(
            {
                "name": "Router",
                "entryPoint": "ic",
                "nodes": [
                    {"id": "ic", "type": "INTENT_CLASSIFIER", "config": {"intents": None}},
                    {"id": "end", "type": "END"},
                ],
                "edges": [{"from": "ic", "to": "end", "condition": "intent == 'billing'"}],
            }
        )

        graph = load_workflow_graph(None, dsl_data)

        assert [node.id for node in graph.nodes] == ["ic", "end"]
        assert graph.edges[0].condition is None

    def test_default_when_empty(self) -> None:
        graph = load_workflow_graph(None, "")
        assert [node.node_type for node in graph.nodes] == [NodeType.START, NodeType.END]

    def test_app_info_is_recreated(self, stored) -> None:
        graph = load_workflow_graph(
            stored.graph_data,
            stored.dsl_data,
            app_settings={"appName": "Support Bot", "modelId": 7},
        )
        assert graph.nodes[-1].id == APP_INFO_NODE_ID
        assert graph.app_info_node.config["appName"] == "Support Bot"

    def test_existing_app_info_is_kept(self, linear_graph) -> None:
        graph_data = linear_graph.model_dump_json(by_alias=True)
        graph = load_workflow_graph(graph_data, None, app_settings={"appName": "Other"})
        app_nodes = [node for node in graph.nodes if node.node_type == NodeType.APP_INFO]
        assert len(app_nodes) == 1
        assert app_nodes[0].config["appName"] == "Support Bot"


class TestValidateApp:
    """Tests for the staged publish check."""

    def test_publishable(self, validator, linear_graph) -> None:
        result = validate_app(linear_graph, validator)
        assert result.valid is True
        assert result.errors == []

    def test_structure_is_checked_first(self, validator, linear_graph, edge_factory) -> None:
        linear_graph.get_node("llm-1").config.pop("modelId")
        linear_graph.edges.append(edge_factory("llm-1", "ghost"))
        result = validate_app(linear_graph, validator)

        assert result.valid is False
        assert [issue.code for issue in result.issues] == [GraphValidationCode.DANGLING_EDGE_TARGET]
        assert not any("incomplete configuration" in error for error in result.errors)

    def test_incomplete_nodes_are_one_message(self, validator, linear_graph) -> None:
        linear_graph.get_node("llm-1").config.pop("modelId")
        result = validate_app(linear_graph, validator)

        assert result.valid is False
        assert len(result.errors) == 1
        assert result.errors[0].startswith("The following nodes have incomplete configuration:")
        assert "[Answer]" in result.errors[0]

    def test_app_settings_are_checked_last(self, validator, linear_graph) -> None:
        app_info = linear_graph.app_info_node
        app_info.config["appName"] = ""
        app_info.config.pop("modelId")

        result = validate_app(linear_graph, validator)
        assert result.errors == ["Missing required config: App Name", "Missing required config: Model"]
