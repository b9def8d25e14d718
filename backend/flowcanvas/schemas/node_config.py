"""Per-node-type configuration schemas.

Each node type has its own config shape. Stored graphs keep ``config`` as a
plain dict (copied verbatim into the DSL); these models give typed access
to it and are selected by ``parse_node_config``. Unknown keys are allowed so
parsing never rejects a config written by a newer editor.
"""

from __future__ import annotations

from typing import Any

from pydantic import ConfigDict, Field, field_validator

from flowcanvas.models.enums import NodeType
from flowcanvas.schemas.base import BaseSchema
from flowcanvas.schemas.graph import ParamDefinition


class NodeConfigBase(BaseSchema):
    """Common base: tolerate unknown keys."""

    model_config = ConfigDict(extra="allow")


class StartConfig(NodeConfigBase):
    global_params: list[ParamDefinition] = Field(default_factory=list)


class LlmChatConfig(NodeConfigBase):
    model_id: str | int | None = None
    system_prompt: str | None = None
    user_prompt: str | None = None
    temperature: float | None = None
    max_tokens: int | None = None
    history_enabled: bool = False
    history_limit: int | None = None


class IntentClassifierConfig(NodeConfigBase):
    """Intent classifier: one output handle per intent plus ``else``."""

    model_id: str | int | None = None
    intents: list[str] = Field(default_factory=list)

    @field_validator("intents", mode="before")
    @classmethod
    def coerce_intents(cls, v: Any) -> list[str]:
        """Read a missing or malformed intent list leniently.

        Numbers become their string form; any other non-string entry
        becomes an empty slot so the remaining handles keep their index.
        """
        if not isinstance(v, list | tuple):
            return []
        intents: list[str] = []
        for item in v:
            if isinstance(item, str):
                intents.append(item)
            elif isinstance(item, int | float) and not isinstance(item, bool):
                intents.append(str(item))
            else:
                intents.append("")
        return intents

    def intent_at(self, index: int) -> str | None:
        """Intent name for handle ``intent-<index>``, None when out of range."""
        if 0 <= index < len(self.intents) and self.intents[index]:
            return self.intents[index]
        return None

    def index_of(self, intent: str) -> int | None:
        try:
            return self.intents.index(intent)
        except ValueError:
            return None


class ConditionBranch(NodeConfigBase):
    name: str = ""
    condition: dict[str, Any] = Field(default_factory=dict)
    handle_id: str | None = None
    target_node_id: str | None = None


class ConditionConfig(NodeConfigBase):
    branches: list[ConditionBranch] = Field(default_factory=list)
    has_default_branch: bool = False


class FixedResponseConfig(NodeConfigBase):
    content: str | None = None


class EndConfig(NodeConfigBase):
    is_custom_response: bool = False
    custom_response: str | None = None


class AppInfoConfig(NodeConfigBase):
    """APP_INFO settings and the global parameter scope declarations."""

    app_name: str | None = None
    description: str | None = None
    icon: str | None = None
    model_id: str | int | None = None
    prologue: str | None = None
    app_params: list[ParamDefinition] = Field(default_factory=list)
    interface_params: list[ParamDefinition] = Field(default_factory=list)
    session_params: list[ParamDefinition] = Field(default_factory=list)
    # Older editors declared a single global list.
    global_params: list[ParamDefinition] = Field(default_factory=list)


class DbQueryConfig(NodeConfigBase):
    data_source_id: str | int | None = None
    model_id: str | int | None = None
    max_rows: int = 100
    table_whitelist: str | None = None
    table_blacklist: str | None = None


class SqlGenerateConfig(NodeConfigBase):
    data_source_id: str | int | None = None
    model_id: str | int | None = None
    table_whitelist: str | None = None
    table_blacklist: str | None = None


class SqlExecuteConfig(NodeConfigBase):
    data_source_id: str | int | None = None
    max_rows: int = 100


class KnowledgeRetrievalConfig(NodeConfigBase):
    kb_ids: list[int] = Field(default_factory=list)
    dataset_ids: list[int] = Field(default_factory=list)
    top_k: int = 5
    threshold: float = 0.5
    mode: str = "VECTOR"
    enable_rerank: bool = False
    empty_response: str | None = None


NODE_CONFIG_SCHEMAS: dict[NodeType, type[NodeConfigBase]] = {
    NodeType.START: StartConfig,
    NodeType.END: EndConfig,
    NodeType.LLM_CHAT: LlmChatConfig,
    NodeType.INTENT_CLASSIFIER: IntentClassifierConfig,
    NodeType.CONDITION: ConditionConfig,
    NodeType.FIXED_RESPONSE: FixedResponseConfig,
    NodeType.DB_QUERY: DbQueryConfig,
    NodeType.SQL_GENERATE: SqlGenerateConfig,
    NodeType.SQL_EXECUTE: SqlExecuteConfig,
    NodeType.KNOWLEDGE_RETRIEVAL: KnowledgeRetrievalConfig,
    NodeType.APP_INFO: AppInfoConfig,
}


def parse_node_config(node_type: NodeType | str, config: dict[str, Any] | None) -> NodeConfigBase:
    """Validate ``config`` against the schema of ``node_type``.

    Raises:
        pydantic.ValidationError: If a known key has the wrong shape.
    """
    schema = NODE_CONFIG_SCHEMAS.get(NodeType(node_type), NodeConfigBase)
    return schema.model_validate(config or {})


__all__ = [
    "AppInfoConfig",
    "ConditionBranch",
    "ConditionConfig",
    "DbQueryConfig",
    "EndConfig",
    "FixedResponseConfig",
    "IntentClassifierConfig",
    "KnowledgeRetrievalConfig",
    "LlmChatConfig",
    "NODE_CONFIG_SCHEMAS",
    "NodeConfigBase",
    "SqlExecuteConfig",
    "SqlGenerateConfig",
    "StartConfig",
    "parse_node_config",
]
