"""Domain enumerations shared by schemas and services."""

from flowcanvas.models.enums import (
    CompatibilityLevel,
    GlobalScope,
    MutationKind,
    NodeStatus,
    NodeType,
    ParamDataType,
    ParamSourceType,
)

__all__ = [
    "CompatibilityLevel",
    "GlobalScope",
    "MutationKind",
    "NodeStatus",
    "NodeType",
    "ParamDataType",
    "ParamSourceType",
]
