"""
Shared constants for the interactive waypoint editor.

Pointer buttons use DOM numbering, which is what NiceGUI reports.
"""

# Pointer buttons
BUTTON_PRIMARY = 0
BUTTON_MIDDLE = 1
BUTTON_SECONDARY = 2

# Pointer event types handled by the session
POINTER_DOWN = 'mousedown'
POINTER_MOVE = 'mousemove'
POINTER_SCROLL = 'wheel'

# Length of the picking ray
PICK_RAY_LENGTH = 1000.0

# Empty-space clicks with no scene hit are placed where the ray crosses this plane
GROUND_PLANE_HEIGHT = 0.0

# ...or this far along the ray when it never reaches the plane
PLACEMENT_FALLBACK_DISTANCE = 100.0

# Batch selection actions are disabled below this many nodes
MIN_BATCH_SELECTION = 2
