"""Semantic diff labelling for edit history entries.

When an edit is recorded under one of the generic labels, the previous and
new snapshots are compared and the first difference found, in a fixed
priority order, becomes the history label:

1. node count
2. per-node config keys
3. custom input, then custom output parameter lists
4. parameter bindings
5. a custom parameter key filled in for the first time
6. edge count
7. edge conditions

Snapshots are compared as parsed JSON so the diff tolerates graphs written
by older editors. Labelling is advisory and never raises.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from flowcanvas.schemas.graph import ParamBinding

logger = logging.getLogger(__name__)

UPDATE_CONFIG_LABEL = "Update config"
NODE_CHANGE_LABEL = "Node change"
GENERIC_LABELS: frozenset[str] = frozenset({UPDATE_CONFIG_LABEL, NODE_CHANGE_LABEL})

_MAX_VALUE_LENGTH = 20


def format_value(value: Any) -> str:
    """Short display form of a config value."""
    if value is None or value == "":
        return "empty"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, list):
        return f"{len(value)}-item array"
    if isinstance(value, dict):
        return "object value"
    text = str(value)
    return f"{text[:_MAX_VALUE_LENGTH]}..." if len(text) > _MAX_VALUE_LENGTH else text


def _data(node: dict[str, Any]) -> dict[str, Any]:
    return node.get("data") or {}


def _node_name(node: dict[str, Any]) -> str:
    data = _data(node)
    return data.get("nodeLabel") or data.get("label") or node.get("id", "")


def _same(left: Any, right: Any) -> bool:
    """Compare as serialized JSON, so ``1`` and ``true`` differ."""
    return json.dumps(left, sort_keys=True, default=str) == json.dumps(
        right, sort_keys=True, default=str
    )


def _find(items: list[dict[str, Any]], key: str, value: Any) -> dict[str, Any] | None:
    for item in items:
        if item.get(key) == value:
            return item
    return None


# =============================================================================
# Per-node Diffs
# =============================================================================


def _config_diff(new_node: dict[str, Any], old_node: dict[str, Any]) -> str | None:
    name = _node_name(new_node)
    new_config: dict[str, Any] = _data(new_node).get("config") or {}
    old_config: dict[str, Any] = _data(old_node).get("config") or {}

    for key, new_value in new_config.items():
        old_value = old_config.get(key)
        if _same(new_value, old_value):
            continue
        if isinstance(new_value, list) and isinstance(old_value, list):
            if len(new_value) != len(old_value):
                return (
                    f"[{name}] config [{key}] count changed "
                    f"from [{len(old_value)}] to [{len(new_value)}]"
                )
            return f"[{name}] config [{key}] array items modified"
        return (
            f"[{name}] config [{key}] changed "
            f"from [{format_value(old_value)}] to [{format_value(new_value)}]"
        )

    for key in old_config:
        if key not in new_config:
            return f"[{name}] removed config [{key}]"
    return None


def _param_diff(
    new_defs: list[dict[str, Any]],
    old_defs: list[dict[str, Any]],
    type_name: str,
    node_name: str,
) -> tuple[str | None, str | None]:
    """Diff a custom parameter list.

    Returns:
        ``(label, key_assigned_label)``. The second value reports a key
        filled in for the first time and is only used when nothing of
        higher priority changed.
    """
    if len(new_defs) > len(old_defs):
        return f"[{node_name}] added {type_name}", None
    if len(new_defs) < len(old_defs):
        return f"[{node_name}] removed {type_name}", None

    key_assigned: str | None = None
    for new_def, old_def in zip(new_defs, old_defs, strict=True):
        new_key = new_def.get("key") or ""
        old_key = old_def.get("key") or ""
        if new_key != old_key:
            if not old_key.strip():
                key_assigned = f"[{node_name}] set {type_name} key [{new_key}]"
            else:
                return f"[{node_name}] renamed {type_name} key [{old_key} -> {new_key}]", None
        elif not _same(new_def, old_def):
            display = new_def.get("label") or new_key or "unnamed"
            return f"[{node_name}] modified {type_name} [{display}] config", None
    return None, key_assigned


def _binding_label(
    binding: dict[str, Any] | None,
    new_state: dict[str, Any],
    old_state: dict[str, Any],
) -> str:
    if not binding:
        return "empty"
    parsed = ParamBinding.model_validate(binding)
    resolved = parsed.resolve_global()
    if resolved is not None:
        scope, key = resolved
        return f"[{scope.dsl_prefix}.{key}]"

    source = _find(new_state.get("nodes", []), "id", parsed.source_key) or _find(
        old_state.get("nodes", []), "id", parsed.source_key
    )
    label = _node_name(source) if source else parsed.source_key
    return f"[{label}.{parsed.source_param or ''}]"


def _param_display_name(node: dict[str, Any], param_key: str) -> str:
    custom = _find(_data(node).get("customInputParams") or [], "key", param_key)
    if custom and custom.get("label"):
        return custom["label"]
    return param_key


def _binding_diff(
    new_node: dict[str, Any],
    old_node: dict[str, Any],
    new_state: dict[str, Any],
    old_state: dict[str, Any],
) -> str | None:
    name = _node_name(new_node)
    new_bindings: list[dict[str, Any]] = _data(new_node).get("paramBindings") or []
    old_bindings: list[dict[str, Any]] = _data(old_node).get("paramBindings") or []

    for new_binding in new_bindings:
        param_key = new_binding.get("paramKey")
        old_binding = _find(old_bindings, "paramKey", param_key)
        if not _same(new_binding, old_binding):
            return (
                f"[{name}] input [{_param_display_name(new_node, param_key)}] changed "
                f"from {_binding_label(old_binding, new_state, old_state)} "
                f"to {_binding_label(new_binding, new_state, old_state)}"
            )

    for old_binding in old_bindings:
        param_key = old_binding.get("paramKey")
        if _find(new_bindings, "paramKey", param_key) is None:
            return f"[{name}] removed input [{_param_display_name(old_node, param_key)}]"
    return None


def _node_data_diff(
    new_node: dict[str, Any],
    old_node: dict[str, Any],
    new_state: dict[str, Any],
    old_state: dict[str, Any],
) -> str | None:
    name = _node_name(new_node)

    config_diff = _config_diff(new_node, old_node)
    if config_diff:
        return config_diff

    key_assigned: str | None = None
    for field, type_name in (
        ("customInputParams", "custom input param"),
        ("customOutputParams", "custom output param"),
    ):
        label, assigned = _param_diff(
            _data(new_node).get(field) or [],
            _data(old_node).get(field) or [],
            type_name,
            name,
        )
        if label:
            return label
        if assigned:
            key_assigned = assigned

    binding_diff = _binding_diff(new_node, old_node, new_state, old_state)
    if binding_diff:
        return binding_diff
    return key_assigned


# =============================================================================
# Entry Point
# =============================================================================


def _load(state: str | dict[str, Any]) -> dict[str, Any]:
    return json.loads(state) if isinstance(state, str) else state


def describe_change(old: str | dict[str, Any], new: str | dict[str, Any]) -> str | None:
    """Describe the most significant difference between two snapshots.

    Args:
        old: Previous snapshot (JSON string or parsed dict).
        new: New snapshot (JSON string or parsed dict).

    Returns:
        A one-line description, or None when no difference was recognized
        or the snapshots could not be compared.
    """
    try:
        old_state = _load(old)
        new_state = _load(new)
        old_nodes: list[dict[str, Any]] = old_state.get("nodes") or []
        new_nodes: list[dict[str, Any]] = new_state.get("nodes") or []

        if len(old_nodes) != len(new_nodes):
            return "Add node" if len(old_nodes) < len(new_nodes) else "Delete node"

        for new_node in new_nodes:
            old_node = _find(old_nodes, "id", new_node.get("id"))
            if old_node is not None:
                diff = _node_data_diff(new_node, old_node, new_state, old_state)
                if diff:
                    return diff

        old_edges: list[dict[str, Any]] = old_state.get("edges") or []
        new_edges: list[dict[str, Any]] = new_state.get("edges") or []
        if len(old_edges) != len(new_edges):
            return "Add connection" if len(old_edges) < len(new_edges) else "Delete connection"

        for new_edge in new_edges:
            old_edge = _find(old_edges, "id", new_edge.get("id"))
            if old_edge is not None and new_edge.get("condition") != old_edge.get("condition"):
                return "Connection condition changed"
    except Exception:
        logger.exception("Failed to describe workflow change")
    return None


__all__ = [
    "GENERIC_LABELS",
    "NODE_CHANGE_LABEL",
    "UPDATE_CONFIG_LABEL",
    "describe_change",
    "format_value",
]
