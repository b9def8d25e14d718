"""Domain enum definitions for FlowCanvas.

This module defines the closed enumerations used across the workflow
editing core for type-safe representation of domain-specific values.
"""

from enum import Enum


class NodeType(str, Enum):
    """Workflow node classification types.

    APP_INFO is a singleton metadata pseudo-node: it carries application
    settings and global parameter declarations, and takes no part in the
    execution DSL or in topology checks.
    """

    START = "START"
    END = "END"
    LLM_CHAT = "LLM_CHAT"
    INTENT_CLASSIFIER = "INTENT_CLASSIFIER"
    CONDITION = "CONDITION"
    FIXED_RESPONSE = "FIXED_RESPONSE"
    DB_QUERY = "DB_QUERY"
    SQL_GENERATE = "SQL_GENERATE"
    SQL_EXECUTE = "SQL_EXECUTE"
    KNOWLEDGE_RETRIEVAL = "KNOWLEDGE_RETRIEVAL"
    APP_INFO = "APP_INFO"

    def __str__(self) -> str:
        """Return the string value for serialization."""
        return self.value


class NodeStatus(str, Enum):
    """Node run status shown on the canvas."""

    IDLE = "idle"
    RUNNING = "running"
    SUCCESS = "success"
    ERROR = "error"

    def __str__(self) -> str:
        return self.value


class ParamDataType(str, Enum):
    """Declared parameter data types."""

    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    OBJECT = "object"
    ARRAY = "array"
    DATETIME = "datetime"

    def __str__(self) -> str:
        return self.value


class ParamSourceType(str, Enum):
    """Where a parameter binding takes its value from.

    INTERFACE and SESSION are legacy spellings of a GLOBAL binding in that
    scope; they are still accepted when reading stored graphs.
    """

    GLOBAL = "global"
    NODE = "node"
    INTERFACE = "interface"
    SESSION = "session"

    def __str__(self) -> str:
        return self.value


class GlobalScope(str, Enum):
    """Global parameter scopes declared on the APP_INFO node."""

    APP = "app"
    INTERFACE = "interface"
    SESSION = "session"

    def __str__(self) -> str:
        return self.value

    @property
    def dsl_prefix(self) -> str:
        """Prefix used in ``${prefix.key}`` DSL reference expressions."""
        return "global" if self is GlobalScope.APP else self.value

    @property
    def config_key(self) -> str:
        """APP_INFO config key holding this scope's parameter list."""
        return f"{self.value}Params"


class CompatibilityLevel(str, Enum):
    """Result of a source -> target parameter type check."""

    COMPATIBLE = "compatible"
    CONDITIONAL = "conditional"
    INCOMPATIBLE = "incompatible"

    def __str__(self) -> str:
        return self.value


class MutationKind(str, Enum):
    """Named graph edits emitted by the workflow editor."""

    NODE_ADDED = "node_added"
    NODE_REMOVED = "node_removed"
    NODE_UPDATED = "node_updated"
    NODE_MOVED = "node_moved"
    EDGE_ADDED = "edge_added"
    EDGE_UPDATED = "edge_updated"
    EDGE_REMOVED = "edge_removed"
    GRAPH_REPLACED = "graph_replaced"

    def __str__(self) -> str:
        return self.value


__all__ = [
    "CompatibilityLevel",
    "GlobalScope",
    "MutationKind",
    "NodeStatus",
    "NodeType",
    "ParamDataType",
    "ParamSourceType",
]
