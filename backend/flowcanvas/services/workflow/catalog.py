"""Node-type catalog.

The catalog is read-only configuration injected into the connection rules,
the parameter resolver, the validator and the editor. It is normally
loaded once from the node-definition registry; when the registry is not
available the built-in definitions below are used.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from pydantic import ValidationError

from flowcanvas.models.enums import NodeType, ParamDataType
from flowcanvas.schemas.catalog import NodeDefinition
from flowcanvas.schemas.graph import ParamDefinition

logger = logging.getLogger(__name__)


def _param(
    key: str,
    label: str,
    param_type: ParamDataType = ParamDataType.STRING,
    required: bool = False,
    description: str | None = None,
) -> ParamDefinition:
    return ParamDefinition(
        key=key,
        label=label,
        type=param_type.value,
        required=required,
        description=description,
    )


# =============================================================================
# Built-in Definitions
# =============================================================================

DEFAULT_NODE_DEFINITIONS: tuple[NodeDefinition, ...] = (
    NodeDefinition(
        node_type=NodeType.APP_INFO,
        node_label="App Info",
        node_icon="mdi:information-outline",
        node_color="#64748b",
        category="basic",
        description="Application settings and global parameters",
        is_system=True,
    ),
    NodeDefinition(
        node_type=NodeType.START,
        node_label="Start",
        node_icon="mdi:play-circle-outline",
        node_color="#22c55e",
        category="basic",
        description="Workflow entry point",
        is_system=True,
        output_params=[
            _param("userInput", "User Input", required=True),
            _param("sessionId", "Session ID", required=True),
            _param("userId", "User ID", required=True),
        ],
    ),
    NodeDefinition(
        node_type=NodeType.END,
        node_label="End",
        node_icon="mdi:stop-circle-outline",
        node_color="#ef4444",
        category="basic",
        description="Workflow exit point",
        is_system=True,
        allow_custom_input_params=True,
        input_params=[_param("finalOutput", "Final Output", required=True)],
    ),
    NodeDefinition(
        node_type=NodeType.LLM_CHAT,
        node_label="LLM Chat",
        node_icon="mdi:robot-outline",
        node_color="#6366f1",
        category="ai",
        description="Call a large language model",
        allow_custom_input_params=True,
        allow_custom_output_params=True,
        input_params=[
            _param("prompt", "Prompt", required=True),
            _param("context", "Context"),
            _param("systemPrompt", "System Prompt"),
        ],
        output_params=[
            _param("response", "Response", required=True),
            _param("tokens", "Tokens", ParamDataType.NUMBER, required=True),
        ],
    ),
    NodeDefinition(
        node_type=NodeType.INTENT_CLASSIFIER,
        node_label="Intent Classifier",
        node_icon="mdi:call-split",
        node_color="#f59e0b",
        category="ai",
        description="Route by the classified user intent",
        input_params=[_param("text", "Text", required=True)],
        output_params=[
            _param("intent", "Intent", required=True),
            _param("confidence", "Confidence", ParamDataType.NUMBER, required=True),
        ],
    ),
    NodeDefinition(
        node_type=NodeType.CONDITION,
        node_label="Condition",
        node_icon="mdi:source-branch",
        node_color="#8b5cf6",
        category="logic",
        description="Branch on a condition",
        input_params=[_param("value", "Value", required=True)],
        output_params=[
            _param("result", "Result", ParamDataType.BOOLEAN, required=True),
            _param("matchedBranch", "Matched Branch"),
        ],
    ),
    NodeDefinition(
        node_type=NodeType.FIXED_RESPONSE,
        node_label="Fixed Response",
        node_icon="mdi:message-text-outline",
        node_color="#0ea5e9",
        category="basic",
        description="Reply with fixed content",
        allow_custom_output_params=True,
        input_params=[_param("template", "Template")],
        output_params=[_param("response", "Response", required=True)],
    ),
    NodeDefinition(
        node_type=NodeType.DB_QUERY,
        node_label="DB Query",
        node_icon="mdi:database-search-outline",
        node_color="#14b8a6",
        category="data",
        description="Answer a question from a database",
        input_params=[_param("question", "Question", required=True)],
        output_params=[
            _param("rows", "Rows", ParamDataType.ARRAY),
            _param("sql", "SQL"),
            _param("rowCount", "Row Count", ParamDataType.NUMBER),
        ],
    ),
    NodeDefinition(
        node_type=NodeType.SQL_GENERATE,
        node_label="SQL Generate",
        node_icon="mdi:code-braces",
        node_color="#06b6d4",
        category="data",
        description="Generate SQL from a question",
        input_params=[_param("question", "Question", required=True)],
        output_params=[_param("sql", "SQL")],
    ),
    NodeDefinition(
        node_type=NodeType.SQL_EXECUTE,
        node_label="SQL Execute",
        node_icon="mdi:database-arrow-right-outline",
        node_color="#0891b2",
        category="data",
        description="Execute a SQL statement",
        input_params=[_param("sql", "SQL", required=True)],
        output_params=[
            _param("rows", "Rows", ParamDataType.ARRAY),
            _param("rowCount", "Row Count", ParamDataType.NUMBER),
        ],
    ),
    NodeDefinition(
        node_type=NodeType.KNOWLEDGE_RETRIEVAL,
        node_label="Knowledge Retrieval",
        node_icon="mdi:book-search-outline",
        node_color="#d946ef",
        category="data",
        description="Retrieve documents from knowledge bases",
        input_params=[_param("query", "Query", required=True)],
        output_params=[
            _param("documents", "Documents", ParamDataType.ARRAY),
            _param("context", "Context"),
        ],
    ),
)


# =============================================================================
# Catalog
# =============================================================================


class NodeCatalog:
    """Read-only registry of node definitions and the connection rule table.

    Example:
        >>> catalog = NodeCatalog.default()
        >>> catalog.get_output_params(NodeType.LLM_CHAT)[0].key
        'response'
    """

    def __init__(
        self,
        definitions: Iterable[NodeDefinition] = (),
        connection_rules: Mapping[str, Sequence[str]] | None = None,
    ) -> None:
        """Initialize the catalog.

        Args:
            definitions: Node definitions keyed by their node type. A later
                definition for the same type replaces an earlier one.
            connection_rules: Allowed target types per source type as
                loaded from the registry. Empty or None means the built-in
                table applies.
        """
        self._definitions: dict[NodeType, NodeDefinition] = {
            NodeType(definition.node_type): definition for definition in definitions
        }
        self._connection_rules: dict[str, list[str]] = {
            str(source): [str(target) for target in targets]
            for source, targets in (connection_rules or {}).items()
        }

    @classmethod
    def default(cls) -> NodeCatalog:
        """Catalog built from the built-in definitions and no dynamic rules."""
        return cls(DEFAULT_NODE_DEFINITIONS)

    @classmethod
    def from_registry(
        cls,
        definitions: Iterable[Mapping[str, Any]] | None,
        connection_rules: Mapping[str, Sequence[str]] | None = None,
    ) -> NodeCatalog:
        """Build a catalog from raw registry payloads.

        Entries that fail validation (unknown node type, malformed params)
        are skipped with a warning. Types the registry does not describe
        keep their built-in definition.

        Args:
            definitions: Raw node-definition dicts as returned by the registry.
            connection_rules: Raw rule table as returned by the registry.

        Returns:
            A new NodeCatalog.
        """
        merged: dict[NodeType, NodeDefinition] = {
            NodeType(definition.node_type): definition
            for definition in DEFAULT_NODE_DEFINITIONS
        }
        for raw in definitions or []:
            try:
                definition = NodeDefinition.model_validate(raw)
            except ValidationError as e:
                logger.warning(f"Skipping invalid node definition {raw.get('nodeType')!r}: {e}")
                continue
            merged[NodeType(definition.node_type)] = definition
        return cls(merged.values(), connection_rules)

    @property
    def connection_rules(self) -> dict[str, list[str]]:
        """Dynamic rule table; empty when none was loaded."""
        return self._connection_rules

    def get_definition(self, node_type: NodeType | str) -> NodeDefinition | None:
        try:
            return self._definitions.get(NodeType(node_type))
        except ValueError:
            return None

    def get_input_params(self, node_type: NodeType | str) -> list[ParamDefinition]:
        """Declared input params of a node type, empty for unknown types."""
        definition = self.get_definition(node_type)
        return list(definition.input_params) if definition else []

    def get_output_params(self, node_type: NodeType | str) -> list[ParamDefinition]:
        """Declared output params of a node type, empty for unknown types."""
        definition = self.get_definition(node_type)
        return list(definition.output_params) if definition else []

    def allows_custom_input_params(self, node_type: NodeType | str) -> bool:
        definition = self.get_definition(node_type)
        return bool(definition and definition.allow_custom_input_params)

    def allows_custom_output_params(self, node_type: NodeType | str) -> bool:
        definition = self.get_definition(node_type)
        return bool(definition and definition.allow_custom_output_params)

    def get_label(self, node_type: NodeType | str) -> str:
        """Palette label of a node type, the type name when undefined."""
        definition = self.get_definition(node_type)
        return definition.node_label if definition else str(node_type)

    def get_presentation(self, node_type: NodeType | str) -> dict[str, Any]:
        """Canvas presentation keys (icon, colour, description) for new nodes."""
        definition = self.get_definition(node_type)
        if definition is None:
            return {}
        presentation = {
            "nodeIcon": definition.node_icon,
            "nodeColor": definition.node_color,
            "description": definition.description,
        }
        return {key: value for key, value in presentation.items() if value is not None}

    def list_definitions(self) -> list[NodeDefinition]:
        return list(self._definitions.values())

    def __contains__(self, node_type: object) -> bool:
        return isinstance(node_type, str) and self.get_definition(node_type) is not None

    def __repr__(self) -> str:
        return (
            f"NodeCatalog(definitions={len(self._definitions)}, "
            f"rules={len(self._connection_rules)})"
        )


__all__ = ["DEFAULT_NODE_DEFINITIONS", "NodeCatalog"]
