"""Base Pydantic schema with the wire conventions shared by every model.

Graph, DSL and catalog payloads are exchanged with the canvas and the
execution engine as camelCase JSON (``nodeType``, ``paramBindings``,
``entryPoint`` ...). Python code uses snake_case attribute names; either
spelling is accepted on input.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class BaseSchema(BaseModel):
    """Base schema with common configuration for all schemas."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=True,
    )

    def to_wire(self) -> dict[str, Any]:
        """Dump to a JSON-compatible dict using wire (camelCase) names."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


__all__ = ["BaseSchema"]
