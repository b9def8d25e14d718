"""Node-type catalog entry schema."""

from __future__ import annotations

from pydantic import Field

from flowcanvas.models.enums import NodeType
from flowcanvas.schemas.base import BaseSchema
from flowcanvas.schemas.graph import ParamDefinition


class NodeDefinition(BaseSchema):
    """Registry entry describing one node type.

    Supplies the display metadata shown in the node palette and the
    declared input/output parameters used by the parameter resolver and
    the validator.
    """

    node_type: NodeType
    node_label: str
    node_icon: str | None = None
    node_color: str | None = None
    category: str | None = None
    description: str | None = None
    is_system: bool = False
    allow_custom_input_params: bool = False
    allow_custom_output_params: bool = False
    input_params: list[ParamDefinition] = Field(default_factory=list)
    output_params: list[ParamDefinition] = Field(default_factory=list)

    @property
    def required_input_params(self) -> list[ParamDefinition]:
        return [param for param in self.input_params if param.required]


__all__ = ["NodeDefinition"]
