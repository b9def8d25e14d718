"""Tests for NodeCatalog."""

from flowcanvas.models.enums import NodeType
from flowcanvas.services.workflow.catalog import DEFAULT_NODE_DEFINITIONS, NodeCatalog


class TestDefaultCatalog:
    """Tests for the built-in definitions."""

    def test_every_node_type_is_defined(self, catalog) -> None:
        assert {definition.node_type for definition in catalog.list_definitions()} == {
            node_type.value for node_type in NodeType
        }
        assert len(DEFAULT_NODE_DEFINITIONS) == len(NodeType)

    def test_start_outputs(self, catalog) -> None:
        keys = [param.key for param in catalog.get_output_params(NodeType.START)]
        assert keys == ["userInput", "sessionId", "userId"]
        assert catalog.get_input_params(NodeType.START) == []

    def test_llm_params(self, catalog) -> None:
        inputs = catalog.get_input_params("LLM_CHAT")
        outputs = catalog.get_output_params("LLM_CHAT")

        assert [param.key for param in inputs if param.required] == ["prompt"]
        assert [(param.key, param.type) for param in outputs] == [("response", "string"), ("tokens", "number")]

    def test_param_lists_are_copies(self, catalog) -> None:
        catalog.get_input_params(NodeType.END).clear()
        assert len(catalog.get_input_params(NodeType.END)) == 1

    def test_custom_param_flags(self, catalog) -> None:
        assert catalog.allows_custom_input_params(NodeType.END) is True
        assert catalog.allows_custom_output_params(NodeType.END) is False
        assert catalog.allows_custom_output_params(NodeType.FIXED_RESPONSE) is True
        assert catalog.allows_custom_input_params(NodeType.CONDITION) is False

    def test_labels_and_presentation(self, catalog) -> None:
        assert catalog.get_label(NodeType.KNOWLEDGE_RETRIEVAL) == "Knowledge Retrieval"
        assert catalog.get_presentation(NodeType.LLM_CHAT) == {
            "nodeIcon": "mdi:robot-outline",
            "nodeColor": "#6366f1",
            "description": "Call a large language model",
        }

    def test_unknown_type(self, catalog) -> None:
        assert catalog.get_definition("WEBHOOK") is None
        assert catalog.get_input_params("WEBHOOK") == []
        assert catalog.get_label("WEBHOOK") == "WEBHOOK"
        assert catalog.get_presentation("WEBHOOK") == {}
        assert "WEBHOOK" not in catalog
        assert "END" in catalog

    def test_no_dynamic_rules_by_default(self, catalog) -> None:
        assert catalog.connection_rules == {}


class TestFromRegistry:
    """Tests for building a catalog from registry payloads."""

    def test_registry_entry_overrides_builtin(self) -> None:
        catalog = NodeCatalog.from_registry(
            [
                {
                    "nodeType": "FIXED_RESPONSE",
                    "nodeLabel": "Canned Reply",
                    "outputParams": [{"key": "text", "label": "Text", "type": "string"}],
                }
            ]
        )
        assert catalog.get_label(NodeType.FIXED_RESPONSE) == "Canned Reply"
        assert [param.key for param in catalog.get_output_params(NodeType.FIXED_RESPONSE)] == ["text"]
        assert catalog.get_label(NodeType.LLM_CHAT) == "LLM Chat"

    def test_invalid_entries_are_skipped(self, caplog) -> None:
        with caplog.at_level("WARNING"):
            catalog = NodeCatalog.from_registry(
                [{"nodeType": "WEBHOOK", "nodeLabel": "Hook"}, {"nodeType": "END"}]
            )
        assert "WEBHOOK" in caplog.text
        assert catalog.get_label(NodeType.END) == "End"

    def test_connection_rules_are_normalized(self) -> None:
        catalog = NodeCatalog.from_registry(None, {NodeType.START: [NodeType.LLM_CHAT, "END"]})
        assert catalog.connection_rules == {"START": ["LLM_CHAT", "END"]}
