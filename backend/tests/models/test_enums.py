"""Tests for domain enums."""

import pytest

from flowcanvas.models.enums import (
    CompatibilityLevel,
    GlobalScope,
    MutationKind,
    NodeType,
    ParamSourceType,
)


class TestGlobalScope:
    """Tests for GlobalScope helpers."""

    @pytest.mark.parametrize(
        ("scope", "prefix", "config_key"),
        [
            (GlobalScope.APP, "global", "appParams"),
            (GlobalScope.INTERFACE, "interface", "interfaceParams"),
            (GlobalScope.SESSION, "session", "sessionParams"),
        ],
    )
    def test_prefix_and_config_key(self, scope: GlobalScope, prefix: str, config_key: str) -> None:
        assert scope.dsl_prefix == prefix
        assert scope.config_key == config_key


class TestStringValues:
    """Enums serialize as their plain values."""

    def test_str(self) -> None:
        assert str(NodeType.LLM_CHAT) == "LLM_CHAT"
        assert str(ParamSourceType.GLOBAL) == "global"
        assert str(CompatibilityLevel.CONDITIONAL) == "conditional"

    def test_lookup_by_value(self) -> None:
        assert NodeType("APP_INFO") is NodeType.APP_INFO
        assert MutationKind("graph_replaced") is MutationKind.GRAPH_REPLACED
        with pytest.raises(ValueError):
            NodeType("WEBHOOK")
