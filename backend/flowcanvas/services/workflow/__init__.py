"""Workflow editing services.

This package provides the editing-time core of the workflow designer.

Components:
- NodeCatalog: Node-type definitions and the connection rule table
- ConnectionRules: Which node types may connect, edge guard derivation
- ParamResolver: Upstream parameter discovery for input bindings
- GraphValidator: Structural and per-node workflow validation
- DslConverter: Graph <-> execution DSL conversion
- WorkflowEditor: Named mutation commands over the live graph
- WorkflowHistory: Snapshot-based undo/redo with semantic labels
- persistence: graphData/dslData load and save boundary

Example:
    >>> from flowcanvas.services.workflow import WorkflowEditor, WorkflowHistory
    >>> editor = WorkflowEditor(name="Support Bot")
    >>> editor.replace_graph(create_default_graph(editor.catalog), mark_dirty=False)
    >>> history = WorkflowHistory(editor)
    >>> history.init_history()
"""

from flowcanvas.services.workflow.catalog import DEFAULT_NODE_DEFINITIONS, NodeCatalog
from flowcanvas.services.workflow.compatibility import (
    can_convert,
    check_compatibility,
    get_compatibility_info,
    get_compatibility_message,
    is_fully_compatible,
)
from flowcanvas.services.workflow.connection import (
    ConnectionRules,
    generate_edge_condition,
    make_edge_id,
)
from flowcanvas.services.workflow.diff import describe_change
from flowcanvas.services.workflow.dsl import DslConverter
from flowcanvas.services.workflow.editor import GraphMutation, WorkflowEditor
from flowcanvas.services.workflow.exceptions import (
    DslDecodeError,
    GraphDecodeError,
    SnapshotDecodeError,
    WorkflowError,
)
from flowcanvas.services.workflow.graph import Graph
from flowcanvas.services.workflow.history import HistoryMode, WorkflowHistory
from flowcanvas.services.workflow.params import ParamResolver, find_upstream_nodes
from flowcanvas.services.workflow.persistence import (
    build_persisted_workflow,
    create_default_graph,
    load_workflow_graph,
    validate_app,
)
from flowcanvas.services.workflow.validator import GraphValidator, format_validation_errors

__all__ = [
    "DEFAULT_NODE_DEFINITIONS",
    "ConnectionRules",
    "DslConverter",
    "DslDecodeError",
    "Graph",
    "GraphDecodeError",
    "GraphMutation",
    "GraphValidator",
    "HistoryMode",
    "NodeCatalog",
    "ParamResolver",
    "SnapshotDecodeError",
    "WorkflowEditor",
    "WorkflowError",
    "WorkflowHistory",
    "build_persisted_workflow",
    "can_convert",
    "check_compatibility",
    "create_default_graph",
    "describe_change",
    "find_upstream_nodes",
    "format_validation_errors",
    "generate_edge_condition",
    "get_compatibility_info",
    "get_compatibility_message",
    "is_fully_compatible",
    "load_workflow_graph",
    "make_edge_id",
    "validate_app",
]
