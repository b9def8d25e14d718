"""FlowCanvas.

Editing-time core of a visual AI-workflow designer: graph model, DSL
conversion, connection and topology validation, parameter resolution and
undo/redo history.
"""

__version__ = "0.1.0"

__all__ = [
    "__version__",
]
