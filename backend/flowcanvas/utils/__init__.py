"""Utility helpers."""

from flowcanvas.utils.debounce import Debouncer

__all__ = ["Debouncer"]
