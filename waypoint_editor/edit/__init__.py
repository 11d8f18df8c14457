"""
Interactive editing for waypoint graphs.

This package provides the edit-mode session:
- GraphEditorSession: State machine driven by pointer and key events
- EditActions: Batch operations over a selection
- edit handlers: Payload normalization for app.py integration

Usage:
    from waypoint_editor.edit import GraphEditorSession, EditActions
    from waypoint_editor.edit.handlers import setup_edit_handlers
"""

from waypoint_editor.edit.constants import (
    MIN_BATCH_SELECTION,
    PICK_RAY_LENGTH,
    PLACEMENT_FALLBACK_DISTANCE,
)
from waypoint_editor.edit.controller import (
    EditResult,
    EditState,
    GraphEditorSession,
    KeyEvent,
    PointerEvent,
)
from waypoint_editor.edit.actions import EditActions

__all__ = [
    'GraphEditorSession',
    'EditState',
    'EditResult',
    'PointerEvent',
    'KeyEvent',
    'EditActions',
    'MIN_BATCH_SELECTION',
    'PICK_RAY_LENGTH',
    'PLACEMENT_FALLBACK_DISTANCE',
]
