"""Utility functions for the requirements generator."""

from .events import EventEmitter
from .formatters import format_duration, format_progress, format_timestamp
from .tree_builder import build_file_tree

__all__ = [
    'EventEmitter',
    'format_duration',
    'format_progress',
    'format_timestamp',
    'build_file_tree',
]
