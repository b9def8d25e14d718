"""pytest configuration and shared fixtures.

Provides the default node catalog, node/edge factories and small sample
graphs used across the workflow service tests.
"""

from collections.abc import Callable
from typing import Any

import pytest

from flowcanvas.models.enums import GlobalScope, NodeType, ParamSourceType
from flowcanvas.schemas.graph import (
    Edge,
    Node,
    NodeData,
    ParamBinding,
    ParamDefinition,
    Position,
    WorkflowGraph,
)
from flowcanvas.services.workflow.catalog import NodeCatalog
from flowcanvas.services.workflow.editor import WorkflowEditor
from flowcanvas.services.workflow.history import WorkflowHistory

NodeFactory = Callable[..., Node]
EdgeFactory = Callable[..., Edge]


def build_node(
    node_id: str,
    node_type: NodeType,
    label: str | None = None,
    config: dict[str, Any] | None = None,
    bindings: list[ParamBinding] | None = None,
    x: float = 0.0,
    y: float = 0.0,
    **data: Any,
) -> Node:
    """Create a node with sensible defaults for tests."""
    return Node(
        id=node_id,
        position=Position(x=x, y=y),
        data=NodeData(
            node_type=node_type,
            node_label=label if label is not None else node_id,
            config=config or {},
            param_bindings=bindings or [],
            **data,
        ),
    )


def build_edge(
    source: str,
    target: str,
    source_handle: str | None = None,
    condition: str | None = None,
) -> Edge:
    return Edge(source=source, target=target, source_handle=source_handle, condition=condition)


def node_binding(param_key: str, node_id: str, output: str) -> ParamBinding:
    return ParamBinding(
        param_key=param_key,
        source_type=ParamSourceType.NODE,
        source_key=node_id,
        source_param=output,
    )


def global_binding(param_key: str, scope: GlobalScope, key: str) -> ParamBinding:
    return ParamBinding(
        param_key=param_key,
        source_type=ParamSourceType.GLOBAL,
        source_key=scope.value,
        source_param=key,
    )


@pytest.fixture
def catalog() -> NodeCatalog:
    """Built-in node catalog without dynamic connection rules."""
    return NodeCatalog.default()


@pytest.fixture
def node_factory() -> NodeFactory:
    return build_node


@pytest.fixture
def edge_factory() -> EdgeFactory:
    return build_edge


@pytest.fixture
def app_info_node() -> Node:
    """APP_INFO node declaring one param in each global scope."""
    return build_node(
        "app-info",
        NodeType.APP_INFO,
        label="App Info",
        config={
            "appName": "Support Bot",
            "modelId": 7,
            "appParams": [{"key": "tenant", "label": "Tenant", "type": "string"}],
            "interfaceParams": [{"key": "channel", "label": "Channel", "type": "string"}],
            "sessionParams": [{"key": "turns", "label": "Turns", "type": "number"}],
        },
    )


@pytest.fixture
def linear_graph(app_info_node: Node) -> WorkflowGraph:
    """START -> LLM_CHAT -> END, fully configured, plus APP_INFO."""
    start = build_node("start", NodeType.START, label="Start")
    llm = build_node(
        "llm-1",
        NodeType.LLM_CHAT,
        label="Answer",
        config={"modelId": 3, "systemPrompt": "Be brief"},
        bindings=[
            node_binding("prompt", "start", "userInput"),
            global_binding("context", GlobalScope.APP, "tenant"),
        ],
        x=250,
    )
    end = build_node(
        "end",
        NodeType.END,
        label="End",
        bindings=[node_binding("finalOutput", "llm-1", "response")],
        x=500,
    )
    return WorkflowGraph(
        nodes=[app_info_node, start, llm, end],
        edges=[build_edge("start", "llm-1"), build_edge("llm-1", "end")],
    )


@pytest.fixture
def intent_graph() -> WorkflowGraph:
    """START -> INTENT_CLASSIFIER branching to two LLM nodes and END."""
    classifier = build_node(
        "ic-1",
        NodeType.INTENT_CLASSIFIER,
        label="Router",
        config={"modelId": 1, "intents": ["billing", "refund"]},
    )
    nodes = [
        build_node("start", NodeType.START, label="Start"),
        classifier,
        build_node("llm-billing", NodeType.LLM_CHAT, label="Billing", config={"modelId": 1}),
        build_node("llm-refund", NodeType.LLM_CHAT, label="Refund", config={"modelId": 1}),
        build_node("end", NodeType.END, label="End"),
    ]
    edges = [
        build_edge("start", "ic-1"),
        build_edge("ic-1", "llm-billing", "intent-0", "intent == 'billing'"),
        build_edge("ic-1", "llm-refund", "intent-1", "intent == 'refund'"),
        build_edge("ic-1", "end", "else", "intent == 'else'"),
        build_edge("llm-billing", "end"),
        build_edge("llm-refund", "end"),
    ]
    return WorkflowGraph(nodes=nodes, edges=edges)


@pytest.fixture
def editor(catalog: NodeCatalog) -> WorkflowEditor:
    return WorkflowEditor(catalog=catalog, name="Support Bot")


@pytest.fixture
def history(editor: WorkflowEditor) -> WorkflowHistory:
    """History over an editor holding a START node, initialized."""
    editor.create_node(NodeType.START, node_id="start")
    editor.mark_saved()
    tracker = WorkflowHistory(editor, max_history=50, debounce_seconds=0.05)
    tracker.init_history()
    return tracker


@pytest.fixture
def param_def() -> Callable[..., ParamDefinition]:
    def _make(key: str, param_type: str = "string", required: bool = False) -> ParamDefinition:
        return ParamDefinition(key=key, label=key.title(), type=param_type, required=required)

    return _make
