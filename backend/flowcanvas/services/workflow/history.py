"""Undo/redo history of the workflow graph.

``WorkflowHistory`` observes a ``WorkflowEditor`` and records a bounded
stack of whole-graph snapshots with a cursor. Structural edits are
recorded as soon as their batch ends; config and binding edits are
debounced so a burst of keystrokes becomes one entry.

Applying a snapshot (undo, redo, jump) replaces the editor's graph. While
that happens the history is in ``APPLYING`` mode and ignores the editor's
notifications; the mode returns to ``IDLE`` on the editor's end-of-batch
event for the replacement.
"""

from __future__ import annotations

import logging
from enum import Enum

from pydantic import ValidationError

from flowcanvas.core.config import settings
from flowcanvas.models.enums import MutationKind
from flowcanvas.schemas.graph import WorkflowGraph
from flowcanvas.schemas.history import HistoryItem
from flowcanvas.services.workflow.diff import (
    GENERIC_LABELS,
    NODE_CHANGE_LABEL,
    UPDATE_CONFIG_LABEL,
    describe_change,
)
from flowcanvas.services.workflow.editor import GraphMutation, WorkflowEditor
from flowcanvas.services.workflow.exceptions import SnapshotDecodeError
from flowcanvas.utils.debounce import Debouncer

logger = logging.getLogger(__name__)

INITIAL_LABEL = "Initialize"
UNKNOWN_LABEL = "Unknown change"
APPLY_LABEL = "Restore history"

_NODE_COUNT_KINDS = frozenset({MutationKind.NODE_ADDED, MutationKind.NODE_REMOVED})


class HistoryMode(str, Enum):
    """Whether the history is recording user edits or applying a snapshot."""

    IDLE = "idle"
    APPLYING = "applying"

    def __str__(self) -> str:
        return self.value


class WorkflowHistory:
    """Bounded snapshot stack with a cursor over a WorkflowEditor.

    Example:
        >>> history = WorkflowHistory(editor)
        >>> history.init_history()
        >>> editor.create_node(NodeType.LLM_CHAT)
        >>> history.undo()
        True
    """

    def __init__(
        self,
        editor: WorkflowEditor,
        max_history: int | None = None,
        debounce_seconds: float | None = None,
    ) -> None:
        """Initialize the history and subscribe to ``editor``.

        Args:
            editor: The editor whose graph is recorded.
            max_history: Maximum number of entries kept.
            debounce_seconds: Quiet period before a coalesced edit is recorded.
        """
        self.editor = editor
        self.max_history = max(1, max_history or settings.HISTORY_MAX_ENTRIES)
        delay = settings.HISTORY_DEBOUNCE_SECONDS if debounce_seconds is None else debounce_seconds
        self._debouncer = Debouncer(delay, self.take_snapshot)
        self._stack: list[HistoryItem] = []
        self._index: int = -1
        self._mode: HistoryMode = HistoryMode.IDLE
        self._batch: list[GraphMutation] = []
        editor.subscribe(self)

    # =========================================================================
    # State
    # =========================================================================

    @property
    def stack(self) -> tuple[HistoryItem, ...]:
        return tuple(self._stack)

    @property
    def current_index(self) -> int:
        return self._index

    @property
    def mode(self) -> HistoryMode:
        return self._mode

    @property
    def can_undo(self) -> bool:
        return self._index > 0

    @property
    def can_redo(self) -> bool:
        return self._index < len(self._stack) - 1

    @property
    def current_item(self) -> HistoryItem | None:
        if 0 <= self._index < len(self._stack):
            return self._stack[self._index]
        return None

    @property
    def pending(self) -> bool:
        """Whether a debounced snapshot is waiting to be recorded."""
        return self._debouncer.pending

    # =========================================================================
    # Recording
    # =========================================================================

    def init_history(self, label: str = INITIAL_LABEL) -> None:
        """Reset the stack to a single entry holding the current graph."""
        self._debouncer.cancel()
        self._batch.clear()
        self._stack = [HistoryItem(snapshot=self.editor.snapshot(), label=label)]
        self._index = 0

    def take_snapshot(self, label: str = UNKNOWN_LABEL) -> bool:
        """Record the editor's current graph.

        Nothing is recorded while a snapshot is being applied or when the
        graph is identical to the entry at the cursor. A generic label is
        replaced by a description of what changed when one can be found.
        Recording from the middle of the stack discards the redo future;
        exceeding the bound evicts the oldest entry without moving the
        cursor.

        Args:
            label: History label for the entry.

        Returns:
            True if an entry was added.
        """
        if self._mode is HistoryMode.APPLYING:
            return False

        snapshot = self.editor.snapshot()
        current = self.current_item
        if current is not None and current.snapshot == snapshot:
            return False

        final_label = label
        if label in GENERIC_LABELS and current is not None:
            final_label = describe_change(current.snapshot, snapshot) or label

        if self._index < len(self._stack) - 1:
            del self._stack[self._index + 1 :]

        self._stack.append(HistoryItem(snapshot=snapshot, label=final_label))
        if len(self._stack) > self.max_history:
            self._stack.pop(0)
        else:
            self._index += 1

        logger.debug(f"Recorded history entry {self._index}: {final_label}")
        return True

    def schedule_snapshot(self, label: str = UPDATE_CONFIG_LABEL) -> None:
        """Record after the debounce delay; a later call replaces this one."""
        self._debouncer.call(label)

    def flush(self) -> bool:
        """Record a pending debounced snapshot immediately.

        Returns:
            True if a pending snapshot was run.
        """
        return self._debouncer.flush()

    # =========================================================================
    # Navigation
    # =========================================================================

    def undo(self) -> bool:
        """Step the cursor back one entry and apply it."""
        self.flush()
        if not self.can_undo:
            return False
        return self._apply(self._index - 1)

    def redo(self) -> bool:
        """Step the cursor forward one entry and apply it."""
        self.flush()
        if not self.can_redo:
            return False
        return self._apply(self._index + 1)

    def jump_to_history(self, index: int) -> bool:
        """Move the cursor to ``index`` and apply that entry."""
        self.flush()
        if index < 0 or index >= len(self._stack):
            return False
        return self._apply(index)

    def _apply(self, index: int) -> bool:
        """Replace the editor's graph with entry ``index``.

        A snapshot that cannot be decoded is logged and leaves both the
        graph and the cursor unchanged.
        """
        item = self._stack[index]
        try:
            graph = WorkflowGraph.from_snapshot(item.snapshot)
        except (ValidationError, ValueError) as e:
            error = SnapshotDecodeError(index, str(e))
            logger.error(error.message)
            return False

        self._index = index
        self._mode = HistoryMode.APPLYING
        try:
            self.editor.replace_graph(graph, label=APPLY_LABEL, mark_dirty=True)
        finally:
            if not self.editor.in_batch:
                self._mode = HistoryMode.IDLE
        return True

    # =========================================================================
    # Editor Notifications
    # =========================================================================

    def on_mutation(self, mutation: GraphMutation) -> None:
        if self._mode is HistoryMode.APPLYING or self._index < 0:
            return
        self._batch.append(mutation)

    def on_batch_end(self) -> None:
        if self._mode is HistoryMode.APPLYING:
            self._mode = HistoryMode.IDLE
            self._batch.clear()
            return
        if not self._batch:
            return

        mutations, self._batch = self._batch, []
        if len(mutations) == 1:
            label = mutations[0].label
        elif any(mutation.kind in _NODE_COUNT_KINDS for mutation in mutations):
            label = NODE_CHANGE_LABEL
        else:
            label = UPDATE_CONFIG_LABEL

        if all(mutation.coalesce for mutation in mutations):
            self.schedule_snapshot(label)
            return

        # The pending coalesced edit is already part of the current graph.
        self._debouncer.cancel()
        self.take_snapshot(label)

    def __repr__(self) -> str:
        return (
            f"WorkflowHistory(entries={len(self._stack)}, "
            f"index={self._index}, mode={self._mode})"
        )


__all__ = [
    "APPLY_LABEL",
    "INITIAL_LABEL",
    "UNKNOWN_LABEL",
    "HistoryMode",
    "WorkflowHistory",
]
