"""Edit history entry schema."""

from __future__ import annotations

from datetime import UTC, datetime

from pydantic import Field

from flowcanvas.schemas.base import BaseSchema


class HistoryItem(BaseSchema):
    """One recorded graph state.

    ``snapshot`` is the serialized WorkflowGraph (see
    ``WorkflowGraph.to_snapshot``); ``label`` is the human-readable change
    description shown in the history panel.
    """

    snapshot: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
    label: str


__all__ = ["HistoryItem"]
