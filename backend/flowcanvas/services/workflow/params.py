"""Parameter dependency resolver.

Works out which values a node can bind its inputs to: the global
parameter scopes declared on the APP_INFO node and the outputs of every
node upstream of it. The result drives parameter pickers only; existing
bindings are never invalidated when the topology changes.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from pydantic import ValidationError

from flowcanvas.models.enums import (
    CompatibilityLevel,
    GlobalScope,
    NodeType,
    ParamSourceType,
)
from flowcanvas.schemas.graph import (
    Edge,
    Node,
    ParamBinding,
    ParamDefinition,
    ParamSource,
)
from flowcanvas.schemas.node_config import AppInfoConfig
from flowcanvas.services.workflow.catalog import NodeCatalog
from flowcanvas.services.workflow.compatibility import check_compatibility
from flowcanvas.services.workflow.graph import Graph

logger = logging.getLogger(__name__)

GLOBAL_SOURCE_NAMES: dict[GlobalScope, str] = {
    GlobalScope.APP: "App Params",
    GlobalScope.INTERFACE: "Interface Params",
    GlobalScope.SESSION: "Session Params",
}


# =============================================================================
# Topology Helpers
# =============================================================================


def find_upstream_nodes(node_id: str, nodes: Sequence[Node], edges: Sequence[Edge]) -> list[Node]:
    """Return every ancestor of ``node_id``, nearest first, each once.

    Edges pointing at unknown node ids are ignored. Cycles terminate.

    Args:
        node_id: The consuming node.
        nodes: Current nodes.
        edges: Current edges.

    Returns:
        Ancestor nodes deduplicated by id.
    """
    by_id = {node.id: node for node in nodes}
    graph = Graph()
    for edge in edges:
        if edge.source in by_id:
            graph.add_edge(edge.source, edge.target)
    return [by_id[ancestor] for ancestor in graph.ancestors(node_id) if ancestor in by_id]


def get_global_params(app_info: Node | None) -> dict[GlobalScope, list[ParamDefinition]]:
    """Read the declared global params per scope from the APP_INFO node.

    The legacy ``globalParams`` list is merged into the app scope. Params
    with an empty key are still being edited and are left out.
    """
    scopes: dict[GlobalScope, list[ParamDefinition]] = {scope: [] for scope in GlobalScope}
    if app_info is None:
        return scopes

    try:
        config = AppInfoConfig.model_validate(app_info.config)
    except ValidationError as e:
        logger.warning(f"Ignoring unreadable global params on {app_info.id}: {e}")
        return scopes

    scopes[GlobalScope.APP] = [*config.app_params, *config.global_params]
    scopes[GlobalScope.INTERFACE] = list(config.interface_params)
    scopes[GlobalScope.SESSION] = list(config.session_params)
    return {
        scope: [param for param in params if param.key]
        for scope, params in scopes.items()
    }


# =============================================================================
# Source Helpers
# =============================================================================


def filter_param_sources_by_type(
    sources: Sequence[ParamSource],
    target_type: str,
) -> list[ParamSource]:
    """Keep only params whose declared type equals ``target_type``.

    Sources left without params are dropped.
    """
    filtered: list[ParamSource] = []
    for source in sources:
        params = [param for param in source.params if param.type == str(target_type)]
        if params:
            filtered.append(source.model_copy(update={"params": params}))
    return filtered


def _find_source(binding: ParamBinding, sources: Sequence[ParamSource]) -> tuple[ParamSource, str] | None:
    """Locate the source a binding points at and the param key it uses."""
    resolved = binding.resolve_global()
    if resolved is None:
        key = binding.source_key
        param_key = binding.source_param or ""
        wanted_type = ParamSourceType.NODE.value
    else:
        scope, param_key = resolved
        key = scope.value
        wanted_type = ParamSourceType.GLOBAL.value

    for source in sources:
        if source.type == wanted_type and source.source_key == key:
            return source, param_key
    return None


def validate_param_binding(binding: ParamBinding, sources: Sequence[ParamSource]) -> bool:
    """Whether ``binding`` refers to a param offered by ``sources``.

    Advisory: no validator calls this, so stale bindings stay lazily
    detected.
    """
    found = _find_source(binding, sources)
    if found is None:
        return False
    source, param_key = found
    return bool(param_key) and any(param.key == param_key for param in source.params)


def get_param_binding_display_text(binding: ParamBinding, nodes: Sequence[Node]) -> str:
    """Render a binding as ``<scope>.<key>`` or ``<node label>.<output>``."""
    resolved = binding.resolve_global()
    if resolved is not None:
        scope, key = resolved
        return f"{scope.dsl_prefix}.{key}"

    for node in nodes:
        if node.id == binding.source_key:
            return f"{node.display_name}.{binding.source_param or ''}"
    return f"{binding.source_key}.{binding.source_param or ''}"


# =============================================================================
# Resolver
# =============================================================================


class ParamResolver:
    """Catalog-aware parameter resolver.

    Example:
        >>> resolver = ParamResolver(NodeCatalog.default())
        >>> sources = resolver.get_available_params_for_node("end", nodes, edges)
        >>> [source.source_key for source in sources]
        ['app', 'llm-1', 'start']
    """

    def __init__(self, catalog: NodeCatalog) -> None:
        self.catalog = catalog

    def get_node_output_params(self, node: Node) -> list[ParamDefinition]:
        """Catalog outputs plus custom outputs when the node type allows them."""
        params = self.catalog.get_output_params(node.node_type)
        if self.catalog.allows_custom_output_params(node.node_type):
            params.extend(param for param in node.data.custom_output_params if param.key)
        return params

    def get_node_input_params(self, node: Node) -> list[ParamDefinition]:
        """Catalog inputs plus custom inputs when the node type allows them."""
        params = self.catalog.get_input_params(node.node_type)
        if self.catalog.allows_custom_input_params(node.node_type):
            params.extend(param for param in node.data.custom_input_params if param.key)
        return params

    def get_global_sources(self, nodes: Sequence[Node]) -> list[ParamSource]:
        """One source per global scope that declares at least one param."""
        app_info = next(
            (node for node in nodes if node.node_type == NodeType.APP_INFO),
            None,
        )
        sources: list[ParamSource] = []
        for scope, params in get_global_params(app_info).items():
            if params:
                sources.append(
                    ParamSource(
                        type=ParamSourceType.GLOBAL,
                        source_key=scope.value,
                        source_name=GLOBAL_SOURCE_NAMES[scope],
                        params=params,
                    )
                )
        return sources

    def get_available_params_for_node(
        self,
        node_id: str,
        nodes: Sequence[Node],
        edges: Sequence[Edge],
    ) -> list[ParamSource]:
        """List the params ``node_id`` can bind its inputs to.

        Global scopes come first (app, interface, session), followed by one
        source per distinct upstream node, nearest first. Sources without
        params are omitted.

        Args:
            node_id: The consuming node.
            nodes: Current nodes.
            edges: Current edges.

        Returns:
            Bindable parameter sources.
        """
        sources = self.get_global_sources(nodes)
        for node in find_upstream_nodes(node_id, nodes, edges):
            params = self.get_node_output_params(node)
            if not params:
                continue
            sources.append(
                ParamSource(
                    type=ParamSourceType.NODE,
                    source_key=node.id,
                    source_name=node.data.node_label or self.catalog.get_label(node.node_type),
                    params=params,
                )
            )
        return sources

    def get_binding_compatibility(
        self,
        binding: ParamBinding,
        target_param: ParamDefinition,
        sources: Sequence[ParamSource],
    ) -> CompatibilityLevel:
        """Type compatibility between a binding's source param and its input.

        A binding whose source param cannot be found is reported as
        compatible, matching the fail-open type matrix.
        """
        found = _find_source(binding, sources)
        if found is None:
            return CompatibilityLevel.COMPATIBLE
        source, param_key = found
        for param in source.params:
            if param.key == param_key:
                return check_compatibility(param.type, target_param.type)
        return CompatibilityLevel.COMPATIBLE


__all__ = [
    "GLOBAL_SOURCE_NAMES",
    "ParamResolver",
    "filter_param_sources_by_type",
    "find_upstream_nodes",
    "get_global_params",
    "get_param_binding_display_text",
    "validate_param_binding",
]
