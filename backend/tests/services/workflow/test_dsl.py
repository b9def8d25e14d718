"""Tests for the Graph <-> DSL converter."""

import json

import pytest

from flowcanvas.models.enums import GlobalScope, NodeType
from flowcanvas.schemas.dsl import DslEdgeConfig, DslNodeConfig, WorkflowDsl
from flowcanvas.schemas.graph import ParamBinding, Position, WorkflowGraph
from flowcanvas.services.workflow.dsl import DslConverter, parse_reference, render_binding


@pytest.fixture
def converter() -> DslConverter:
    return DslConverter(origin=50, column_spacing=250, row_spacing=150)


def _strip_positions(graph: WorkflowGraph) -> dict:
    """Comparable view of a graph without positions and presentation extras."""
    return {
        "nodes": [
            (
                node.id,
                node.node_type,
                node.data.node_label,
                node.config,
                [b.to_wire() for b in node.data.param_bindings],
            )
            for node in graph.nodes
        ],
        "edges": sorted((e.id, e.source, e.target, e.source_handle, e.condition) for e in graph.edges),
    }


class TestReferences:
    """Tests for binding <-> reference expression conversion."""

    @pytest.mark.parametrize(
        ("scope", "expected"),
        [
            (GlobalScope.APP, "${global.tenant}"),
            (GlobalScope.INTERFACE, "${interface.tenant}"),
            (GlobalScope.SESSION, "${session.tenant}"),
        ],
    )
    def test_render_global_binding(self, scope: GlobalScope, expected: str) -> None:
        binding = ParamBinding(param_key="p", source_type="global", source_key=scope.value, source_param="tenant")
        assert render_binding(binding) == expected

    def test_render_node_binding(self) -> None:
        binding = ParamBinding(param_key="p", source_type="node", source_key="llm-1", source_param="response")
        assert render_binding(binding) == "${llm-1.response}"

    def test_render_incomplete_binding(self) -> None:
        binding = ParamBinding(param_key="p", source_type="node", source_key="llm-1")
        assert render_binding(binding) is None

    def test_parse_global_reference(self) -> None:
        binding = parse_reference("p", "${global.tenant}")
        assert binding is not None
        assert binding.resolve_global() == (GlobalScope.APP, "tenant")

    def test_parse_splits_on_first_dot(self) -> None:
        binding = parse_reference("p", "${llm-1.result.text}")
        assert binding is not None
        assert binding.source_key == "llm-1"
        assert binding.source_param == "result.text"

    @pytest.mark.parametrize("value", ["plain text", 42, None, "${nodot}", "${.key}", "${node.}"])
    def test_literals_are_not_references(self, value) -> None:
        assert parse_reference("p", value) is None


class TestGraphToDsl:
    """Tests for the graph -> DSL direction."""

    def test_app_info_is_excluded(self, converter, linear_graph, edge_factory) -> None:
        linear_graph.edges.append(edge_factory("app-info", "start"))
        dsl = converter.graph_to_dsl(linear_graph, "Support Bot")

        assert [node.id for node in dsl.nodes] == ["start", "llm-1", "end"]
        assert all(edge.from_ != "app-info" for edge in dsl.edges)
        assert len(dsl.edges) == 2

    def test_entry_point_and_inputs(self, converter, linear_graph) -> None:
        dsl = converter.graph_to_dsl(linear_graph, "Support Bot", workflow_id=12)

        assert dsl.entry_point == "start"
        assert dsl.workflow_id == 12
        llm = dsl.get_node("llm-1")
        assert llm.type == "LLM_CHAT"
        assert llm.name == "Answer"
        assert llm.config == {"modelId": 3, "systemPrompt": "Be brief"}
        assert llm.inputs == {"prompt": "${start.userInput}", "context": "${global.tenant}"}

    def test_entry_point_without_start(self, converter, node_factory) -> None:
        graph = WorkflowGraph(nodes=[node_factory("llm", NodeType.LLM_CHAT)])
        assert converter.graph_to_dsl(graph, "x").entry_point == "llm"
        assert converter.graph_to_dsl(WorkflowGraph(), "x").entry_point == "start"

    def test_edge_condition_prefers_label(self, converter, intent_graph) -> None:
        intent_graph.edges[1].label = "Billing branch"
        dsl = converter.graph_to_dsl(intent_graph, "Router")
        assert dsl.edges[1].condition == "Billing branch"
        assert dsl.edges[2].condition == "intent == 'refund'"
        assert dsl.edges[0].condition is None

    def test_config_is_copied(self, converter, linear_graph) -> None:
        dsl = converter.graph_to_dsl(linear_graph, "x")
        dsl.get_node("llm-1").config["modelId"] = 99
        assert linear_graph.get_node("llm-1").config["modelId"] == 3

    def test_wire_format(self, converter, linear_graph) -> None:
        payload = json.loads(converter.graph_to_dsl(linear_graph, "Bot").to_json())
        assert payload["entryPoint"] == "start"
        assert payload["edges"][0] == {"from": "start", "to": "llm-1"}
        assert "workflowId" not in payload


class TestDslToGraph:
    """Tests for the DSL -> graph direction."""

    def test_grid_layout(self, converter) -> None:
        """Test that five nodes lay out on a 3-column grid."""
        dsl = WorkflowDsl(
            name="g",
            entry_point="n0",
            nodes=[DslNodeConfig(id=f"n{i}", type="LLM_CHAT") for i in range(5)],
        )
        graph = converter.dsl_to_graph(dsl)
        positions = [(node.position.x, node.position.y) for node in graph.nodes]
        assert positions == [(50, 50), (300, 50), (550, 50), (50, 200), (300, 200)]

    def test_calculate_node_position(self, converter) -> None:
        assert converter.calculate_node_position(0, 1) == Position(x=50, y=50)
        assert converter.calculate_node_position(3, 4) == Position(x=300, y=200)

    def test_unknown_type_falls_back_to_llm_chat(self, converter, caplog) -> None:
        dsl = WorkflowDsl(name="g", entry_point="x", nodes=[DslNodeConfig(id="x", type="WEBHOOK")])
        with caplog.at_level("WARNING"):
            graph = converter.dsl_to_graph(dsl)
        assert graph.nodes[0].node_type == NodeType.LLM_CHAT
        assert "WEBHOOK" in caplog.text

    def test_literal_inputs_are_dropped(self, converter) -> None:
        dsl = WorkflowDsl(
            name="g",
            entry_point="llm",
            nodes=[
                DslNodeConfig(
                    id="llm",
                    type="LLM_CHAT",
                    inputs={"prompt": "${session.question}", "temperature": 0.3, "note": "hi"},
                )
            ],
        )
        bindings = converter.dsl_to_graph(dsl).nodes[0].data.param_bindings
        assert [b.param_key for b in bindings] == ["prompt"]
        assert bindings[0].resolve_global() == (GlobalScope.SESSION, "question")

    def test_intent_handles_are_recovered(self, converter, intent_graph) -> None:
        graph = converter.dsl_to_graph(converter.graph_to_dsl(intent_graph, "Router"))
        handles = {(e.source, e.target): e.source_handle for e in graph.edges}
        assert handles[("ic-1", "llm-billing")] == "intent-0"
        assert handles[("ic-1", "llm-refund")] == "intent-1"
        assert handles[("ic-1", "end")] == "else"
        assert handles[("start", "ic-1")] is None

    def test_unknown_intent_becomes_unconditioned_edge(self, converter) -> None:
        dsl = WorkflowDsl(
            name="g",
            entry_point="ic",
            nodes=[
                DslNodeConfig(id="ic", type="INTENT_CLASSIFIER", config={"intents": ["billing"]}),
                DslNodeConfig(id="end", type="END"),
            ],
            edges=[DslEdgeConfig(from_="ic", to="end", condition="intent == 'cancel'")],
        )
        edge = converter.dsl_to_graph(dsl).edges[0]
        assert edge.source_handle is None
        assert edge.condition is None
        assert edge.id == "e-ic--end"

    def test_null_intent_list_restores_unconditioned_edge(self, converter) -> None:
        dsl = WorkflowDsl(
            name="g",
            entry_point="ic",
            nodes=[
                DslNodeConfig(id="ic", type="INTENT_CLASSIFIER", config={"intents": None}),
                DslNodeConfig(id="end", type="END"),
            ],
            edges=[DslEdgeConfig(from_="ic", to="end", condition="intent == 'billing'")],
        )
        graph = converter.dsl_to_graph(dsl)

        edge = graph.edges[0]
        assert edge.source_handle is None
        assert edge.condition is None
        assert graph.get_node("ic").config == {"intents": None}

    def test_duplicate_edges_are_dropped(self, converter) -> None:
        dsl = WorkflowDsl(
            name="g",
            entry_point="a",
            nodes=[DslNodeConfig(id="a", type="START"), DslNodeConfig(id="b", type="LLM_CHAT")],
            edges=[DslEdgeConfig(from_="a", to="b"), DslEdgeConfig(from_="a", to="b")],
        )
        assert len(converter.dsl_to_graph(dsl).edges) == 1


class TestRoundTrip:
    """Tests for dsl_to_graph(graph_to_dsl(g)) == g modulo positions."""

    def test_linear_round_trip(self, converter, linear_graph) -> None:
        flow_only = WorkflowGraph(nodes=linear_graph.flow_nodes, edges=linear_graph.edges)
        restored = converter.dsl_to_graph(converter.graph_to_dsl(flow_only, "Bot"))
        assert _strip_positions(restored) == _strip_positions(flow_only)

    def test_intent_round_trip(self, converter, intent_graph) -> None:
        restored = converter.dsl_to_graph(converter.graph_to_dsl(intent_graph, "Router"))
        assert _strip_positions(restored) == _strip_positions(intent_graph)

    def test_dsl_json_round_trip(self, converter, intent_graph) -> None:
        """Test that the serialized DSL parses back to the same document."""
        dsl = converter.graph_to_dsl(intent_graph, "Router")
        assert WorkflowDsl.model_validate_json(dsl.to_json()) == dsl
