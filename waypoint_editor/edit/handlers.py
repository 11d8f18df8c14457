"""
Edit Handlers - Event handlers for the waypoint editor page in app.py

Raw host payloads (NiceGUI event arguments or plain dicts from JS) are
normalized into PointerEvent / KeyEvent and fed to the editor session.
Nothing here imports the UI toolkit; app.py passes in its notify and
refresh callables.
"""

from typing import Any, Callable, Dict, Optional, Tuple

from waypoint_editor.edit.constants import BUTTON_PRIMARY, POINTER_DOWN
from waypoint_editor.edit.controller import EditResult, GraphEditorSession, KeyEvent, PointerEvent
from waypoint_editor.geometry import DOWN, Ray, Vec3

MODIFIER_KEYS = ('shift', 'ctrl', 'meta', 'alt')


class TopDownView:
    """
    Orthographic camera looking straight down the Y axis.

    Image x grows with world +X; image y grows with world -Z, so "ahead"
    (+Z) is up on screen. Picking rays start at camera_height and point down.
    """

    def __init__(self, width: int = 1000, height: int = 700, pixels_per_unit: float = 2.0,
                 center: Tuple[float, float] = (0.0, 0.0), camera_height: float = 500.0):
        self.width = width
        self.height = height
        self.pixels_per_unit = pixels_per_unit
        self.center = center
        self.camera_height = camera_height

    def to_world(self, px: float, py: float) -> Tuple[float, float]:
        """Image pixel to world (x, z)."""
        cx, cz = self.center
        x = cx + (px - self.width / 2.0) / self.pixels_per_unit
        z = cz - (py - self.height / 2.0) / self.pixels_per_unit
        return x, z

    def to_image(self, position: Vec3) -> Tuple[float, float]:
        cx, cz = self.center
        px = self.width / 2.0 + (position[0] - cx) * self.pixels_per_unit
        py = self.height / 2.0 - (position[2] - cz) * self.pixels_per_unit
        return px, py

    def ray_at(self, px: float, py: float) -> Ray:
        x, z = self.to_world(px, py)
        return Ray((x, self.camera_height, z), DOWN)

    def pan(self, dx: float, dz: float):
        self.center = (self.center[0] + dx, self.center[1] + dz)

    def zoom(self, factor: float):
        self.pixels_per_unit = max(0.05, self.pixels_per_unit * factor)


def _read(raw: Any, key: str, default: Any = None) -> Any:
    if isinstance(raw, dict):
        return raw.get(key, default)
    return getattr(raw, key, default)


def normalize_pointer_payload(raw: Any) -> Optional[Dict[str, Any]]:
    """
    Normalize NiceGUI mouse arguments or a JS dict into one flat dictionary.

    Returns None when the payload carries no image coordinates.
    """
    if not isinstance(raw, dict) and isinstance(getattr(raw, 'args', None), dict):
        raw = raw.args

    x = _read(raw, 'image_x')
    y = _read(raw, 'image_y')
    if x is None or y is None:
        x = _read(raw, 'offsetX', _read(raw, 'x'))
        y = _read(raw, 'offsetY', _read(raw, 'y'))
    if x is None or y is None:
        return None

    payload = {
        'type': _read(raw, 'type') or POINTER_DOWN,
        'x': float(x),
        'y': float(y),
        'button': int(_read(raw, 'button', BUTTON_PRIMARY) or 0),
    }
    for key in MODIFIER_KEYS:
        value = _read(raw, key)
        if value is None:
            value = _read(raw, f'{key}Key', False)
        payload[key] = bool(value)
    return payload


def pointer_event_from_payload(raw: Any, view: TopDownView) -> Optional[PointerEvent]:
    payload = normalize_pointer_payload(raw)
    if payload is None:
        return None
    return PointerEvent(
        ray=view.ray_at(payload['x'], payload['y']),
        type=payload['type'],
        button=payload['button'],
        shift=payload['shift'],
        ctrl=payload['ctrl'],
        meta=payload['meta'],
        alt=payload['alt'],
    )


def normalize_key_payload(raw: Any) -> Optional[KeyEvent]:
    """
    Build a KeyEvent from NiceGUI keyboard arguments or a dict.

    NiceGUI nests the key name under `key.name`, the key state under
    `action.keydown` and the modifiers under `modifiers`.
    """
    key = _read(raw, 'key')
    if key is None:
        return None
    key = getattr(key, 'name', key)
    if not isinstance(key, str) or not key:
        return None

    action = _read(raw, 'action')
    keydown = _read(action, 'keydown', True) if action is not None else _read(raw, 'keydown', True)

    modifiers = _read(raw, 'modifiers')
    source = modifiers if modifiers is not None else raw
    flags = {name: bool(_read(source, name, False)) for name in MODIFIER_KEYS}
    return KeyEvent(key=key, keydown=bool(keydown), **flags)


def setup_edit_handlers(
    session: GraphEditorSession,
    view: TopDownView,
    refresh: Callable[[], None],
    notify: Callable[[str, str], None],
):
    """
    Set up the editor event handlers.

    Args:
        session: GraphEditorSession instance
        view: TopDownView that converts image pixels to picking rays
        refresh: Function to redraw the scene
        notify: Function showing (message, type) to the operator

    Returns:
        Dict with handler functions for binding to UI events
    """

    def report(result: EditResult) -> EditResult:
        if result.consumed and result.message:
            notify(result.message, 'positive' if result.applied else 'info')
        if result.applied:
            refresh()
        return result

    def handle_mouse(event):
        """Pointer events from the top-down image."""
        pointer = pointer_event_from_payload(event, view)
        if pointer is None:
            return None
        result = session.handle_pointer(pointer)
        if not result.consumed:
            if pointer.type != POINTER_DOWN and session.pending_source:
                refresh()
            return result
        return report(result)

    def handle_key(event):
        key_event = normalize_key_payload(event)
        if key_event is None:
            return None
        return report(session.handle_key(key_event))

    def run_command(command: Callable[[], EditResult]) -> Callable[[], EditResult]:
        """Wrap a session command for a button click."""
        def handler(*_args):
            return report(command())
        return handler

    return {
        'handle_mouse': handle_mouse,
        'handle_key': handle_key,
        'run_command': run_command,
    }
