"""
Editor Session - Single source of truth for interactive waypoint editing.

The session turns pointer and key events from the host into graph edits:

- click empty space:         place a waypoint (chained to the anchor in chain mode)
- click a waypoint:          make it the chain anchor and select it
- shift + click two nodes:   toggle the connection between them
- ctrl/cmd + click a node:   delete it
- Escape / Delete / Ctrl+Z:  cancel pending connect / delete selection / undo

Every handled event produces an EditResult; the host notifies the operator
with its message and re-renders from the EditState snapshot.
"""

import logging
from dataclasses import dataclass, replace
from typing import Callable, List, Optional, Sequence, Tuple

from waypoint_editor.config import EditorSettings
from waypoint_editor.edit.actions import EditActions
from waypoint_editor.edit.constants import (
    BUTTON_PRIMARY,
    GROUND_PLANE_HEIGHT,
    MIN_BATCH_SELECTION,
    PICK_RAY_LENGTH,
    PLACEMENT_FALLBACK_DISTANCE,
    POINTER_DOWN,
    POINTER_MOVE,
)
from waypoint_editor.errors import WaypointError
from waypoint_editor.geometry import Ray, Vec3, as_vec3
from waypoint_editor.graph import Team, WaypointGraph
from waypoint_editor.ground import GroundProjector
from waypoint_editor.proximity import LineOfSightFn
from waypoint_editor.topology import TopologyBuilder

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PointerEvent:
    """A pointer event already converted to a world-space ray."""
    ray: Ray
    type: str = POINTER_DOWN
    button: int = BUTTON_PRIMARY
    shift: bool = False
    ctrl: bool = False
    meta: bool = False
    alt: bool = False
    hit_point: Optional[Vec3] = None

    @property
    def is_navigation(self) -> bool:
        """Camera input (orbit/pan/zoom) that editing must leave to the host."""
        return self.button != BUTTON_PRIMARY or self.alt or self.type not in (POINTER_DOWN, POINTER_MOVE)

    @property
    def delete_modifier(self) -> bool:
        return self.ctrl or self.meta


@dataclass(frozen=True)
class KeyEvent:
    key: str
    keydown: bool = True
    shift: bool = False
    ctrl: bool = False
    meta: bool = False
    alt: bool = False

    @property
    def command(self) -> bool:
        return self.ctrl or self.meta


@dataclass(frozen=True)
class EditState:
    """Immutable snapshot of current edit state."""
    is_active: bool = False
    pending_source: Optional[str] = None
    chain_anchor: Optional[str] = None
    selection: Tuple[str, ...] = ()
    chain_mode: bool = True
    snap_to_ground: bool = True
    pointer_point: Optional[Vec3] = None


@dataclass(frozen=True)
class EditResult:
    """Outcome of one handled event or session command."""
    action: Optional[str] = None
    consumed: bool = True
    applied: bool = True
    node_id: Optional[str] = None
    message: str = ""


NOT_CONSUMED = EditResult(consumed=False, applied=False)
NO_CHANGE = EditResult(consumed=True, applied=False)


class GraphEditorSession:
    """Edit-mode state machine over one WaypointGraph."""

    def __init__(self, graph: WaypointGraph,
                 builder: Optional[TopologyBuilder] = None,
                 projector: Optional[GroundProjector] = None,
                 settings: Optional[EditorSettings] = None,
                 line_of_sight: Optional[LineOfSightFn] = None):
        self.graph = graph
        self.builder = builder or TopologyBuilder(graph, projector)
        self.actions = EditActions(graph, self.builder)
        self.line_of_sight = line_of_sight
        self.auto_connect_distance = graph.kind.auto_connect_distance
        self.center: Vec3 = (0.0, 0.0, 0.0)
        self._state = EditState(snap_to_ground=self.builder.snap_to_ground)
        self._on_state_change: Optional[Callable[[EditState], None]] = None
        graph.add_removal_listener(self._forget_node)
        if settings is not None:
            self.apply_settings(settings)

    def close(self):
        """Detach from the graph; the session must not be used afterwards."""
        self.graph.remove_removal_listener(self._forget_node)

    # --- State ---

    @property
    def state(self) -> EditState:
        return self._state

    @property
    def is_active(self) -> bool:
        return self._state.is_active

    @property
    def pending_source(self) -> Optional[str]:
        return self._state.pending_source

    @property
    def chain_anchor(self) -> Optional[str]:
        return self._state.chain_anchor

    @property
    def selection(self) -> Tuple[str, ...]:
        return self._state.selection

    def set_on_state_change(self, callback: Callable[[EditState], None]):
        self._on_state_change = callback

    def _notify_change(self):
        if self._on_state_change:
            self._on_state_change(self._state)

    def _update(self, **changes):
        self._state = replace(self._state, **changes)

    def apply_settings(self, settings: EditorSettings):
        """Push persisted operator preferences into the session and its builder."""
        self.builder.reach_radius = settings.waypoint_radius
        try:
            self.builder.owner_team = Team.parse(settings.waypoint_team)
        except ValueError as e:
            logger.warning(f"{e}; new waypoints will be neutral")
            self.builder.owner_team = Team.NONE
        self.builder.snap_to_ground = settings.snap_to_ground
        if settings.auto_connect_distance is not None:
            self.auto_connect_distance = settings.auto_connect_distance
        self._update(chain_mode=settings.chain_mode, snap_to_ground=settings.snap_to_ground)
        self._notify_change()

    def set_chain_mode(self, enabled: bool):
        self._update(chain_mode=bool(enabled))
        self._notify_change()

    def set_snap_to_ground(self, enabled: bool):
        self.builder.snap_to_ground = bool(enabled)
        self._update(snap_to_ground=bool(enabled))
        self._notify_change()

    def set_edit_mode(self, active: bool) -> EditState:
        self._update(is_active=bool(active), pending_source=None)
        self._notify_change()
        return self._state

    def toggle_edit_mode(self) -> bool:
        """Enter or leave edit mode. Any pending connection is dropped either way."""
        self.set_edit_mode(not self._state.is_active)
        logger.info(f"Edit mode {'enabled' if self._state.is_active else 'disabled'}")
        return self._state.is_active

    def start_new_path(self):
        """Forget the chain anchor so the next placement starts a new path."""
        self._update(chain_anchor=None)
        self._notify_change()

    def select(self, node_ids: Sequence[str]):
        selection = tuple(node_id for node_id in dict.fromkeys(node_ids) if node_id in self.graph)
        self._update(selection=selection)
        self._notify_change()

    def select_all(self):
        self.select(self.graph.node_ids())

    def clear_selection(self):
        self.select(())

    def _forget_node(self, node_id: str):
        """Drop every session reference to a node that left the graph."""
        state = self._state
        if node_id not in state.selection and node_id not in (state.pending_source, state.chain_anchor):
            return
        self._update(
            pending_source=None if state.pending_source == node_id else state.pending_source,
            chain_anchor=None if state.chain_anchor == node_id else state.chain_anchor,
            selection=tuple(n for n in state.selection if n != node_id),
        )

    # --- Pointer ---

    def pick(self, ray: Ray) -> Optional[str]:
        return self.graph.nearest_node_along_ray(ray.origin, ray.direction, PICK_RAY_LENGTH)

    def resolve_placement(self, event: PointerEvent) -> Vec3:
        """World point for a click on empty space, ground-projected when snapping is on."""
        point = event.hit_point
        if point is None:
            point = event.ray.intersect_horizontal_plane(GROUND_PLANE_HEIGHT)
        if point is None:
            point = event.ray.point_at(PLACEMENT_FALLBACK_DISTANCE)
        return self.builder.resolve(as_vec3(point))

    def set_pointer_point(self, point: Optional[Vec3]):
        self._update(pointer_point=None if point is None else as_vec3(point))
        if self._state.pending_source:
            self._notify_change()

    def handle_pointer(self, event: PointerEvent) -> EditResult:
        if not self._state.is_active:
            return NOT_CONSUMED

        if event.type == POINTER_MOVE:
            point = event.hit_point or event.ray.intersect_horizontal_plane(GROUND_PLANE_HEIGHT)
            self.set_pointer_point(point)
            return NOT_CONSUMED

        if event.is_navigation:
            return NOT_CONSUMED

        clicked = self.pick(event.ray)

        # Priority 1: delete modifier
        if event.delete_modifier:
            if clicked is None:
                return NOT_CONSUMED
            result = self._guarded("delete", lambda: self._delete_node(clicked))
        # Priority 2: shift connects
        elif event.shift:
            if clicked is None:
                return NOT_CONSUMED
            result = self._shift_click(clicked)
        # Priority 3: clicking a node anchors the chain there
        elif clicked is not None:
            self._update(chain_anchor=clicked, selection=(clicked,))
            name = self.graph.get(clicked).name
            result = EditResult(action="set_anchor", node_id=clicked, message=f"Selected {name}")
        # Priority 4: empty space
        else:
            result = self._guarded("place", lambda: self._place(event))

        self._notify_change()
        return result

    def _shift_click(self, clicked: str) -> EditResult:
        pending = self._state.pending_source
        if pending is None:
            self._update(pending_source=clicked)
            name = self.graph.get(clicked).name
            return EditResult(action="pending_connect", node_id=clicked,
                              message=f"Connecting from {name}, shift+click another waypoint")
        if pending == clicked:
            return NO_CHANGE

        def toggle():
            connected = self.graph.toggle_connect(pending, clicked)
            self._update(pending_source=None)
            names = f"{self.graph.get(pending).name} and {self.graph.get(clicked).name}"
            if connected:
                return EditResult(action="connect", node_id=clicked, message=f"Connected {names}")
            return EditResult(action="disconnect", node_id=clicked, message=f"Disconnected {names}")

        return self._guarded("connect", toggle)

    def _place(self, event: PointerEvent) -> EditResult:
        position = self.resolve_placement(event)
        anchor = self._state.chain_anchor if self._state.chain_mode else None
        node_id = self.builder.place_with_anchor(position, anchor)
        self._update(chain_anchor=node_id, selection=(node_id,))
        return EditResult(action="place", node_id=node_id, message=f"Created {self.graph.get(node_id).name}")

    def _delete_node(self, node_id: str) -> EditResult:
        name = self.graph.get(node_id).name
        self.graph.remove_node(node_id)
        return EditResult(action="delete", node_id=node_id, message=f"Deleted {name}")

    # --- Keys ---

    def handle_key(self, event: KeyEvent) -> EditResult:
        if not self._state.is_active or not event.keydown:
            return NOT_CONSUMED

        key = event.key.lower() if len(event.key) == 1 else event.key
        if key == 'Escape':
            if self._state.pending_source is None:
                return NOT_CONSUMED
            self._update(pending_source=None)
            result = EditResult(action="cancel_connect", message="Connection cancelled")
        elif key == 'Delete':
            if not self._state.selection:
                return NOT_CONSUMED
            return self.delete_selected()
        elif event.command and (key == 'y' or (key == 'z' and event.shift)):
            return self.redo()
        elif event.command and key == 'z':
            return self.undo()
        else:
            return NOT_CONSUMED

        self._notify_change()
        return result

    # --- Commands ---

    def _guarded(self, action: str, operation: Callable[[], EditResult]) -> EditResult:
        """Run an edit; operator mistakes become an informational result instead of an exception."""
        try:
            return operation()
        except WaypointError as e:
            logger.info(f"{action} rejected: {e}")
            return EditResult(action=action, applied=False, message=str(e))

    def _command(self, action: str, operation: Callable[[], EditResult]) -> EditResult:
        result = self._guarded(action, operation)
        self._notify_change()
        return result

    def can_run_batch(self) -> bool:
        return len(self._state.selection) >= MIN_BATCH_SELECTION

    def _batch(self, action: str, operation: Callable[[List[str]], str]) -> EditResult:
        if not self.can_run_batch():
            return EditResult(action=action, applied=False,
                              message=f"Select at least {MIN_BATCH_SELECTION} waypoints")
        selection = list(self._state.selection)
        return self._command(action, lambda: EditResult(action=action, message=operation(selection)))

    def connect_selected(self) -> EditResult:
        def run(ids):
            added = self.actions.connect_all(ids)
            return f"Connected {len(ids)} waypoints ({added} new connections)"
        return self._batch("connect_all", run)

    def chain_selected(self) -> EditResult:
        def run(ids):
            self.actions.chain_selected(ids)
            return f"Chained {len(ids)} waypoints"
        return self._batch("chain_selected", run)

    def disconnect_selected(self) -> EditResult:
        def run(ids):
            removed = self.actions.disconnect_selected(ids)
            return f"Removed {removed} connections"
        return self._batch("disconnect_selected", run)

    def auto_connect_selected(self) -> EditResult:
        def run(ids):
            added = self.actions.auto_connect_selected(ids, self.auto_connect_distance, self.line_of_sight)
            return f"Auto-connected {len(ids)} waypoints ({added} new connections)"
        return self._batch("auto_connect_selected", run)

    def auto_connect_all(self) -> EditResult:
        def run():
            added = self.actions.auto_connect_all(self.auto_connect_distance, self.line_of_sight)
            return EditResult(action="auto_connect_all", message=f"Auto-connected all waypoints ({added} new connections)")
        return self._command("auto_connect_all", run)

    def delete_selected(self) -> EditResult:
        if not self._state.selection:
            return EditResult(action="delete_selected", applied=False, message="Nothing selected")

        def run():
            count = self.actions.delete_nodes(self._state.selection)
            return EditResult(action="delete_selected", message=f"Deleted {count} waypoints")
        return self._command("delete_selected", run)

    def delete_all(self) -> EditResult:
        def run():
            count = self.actions.delete_all()
            return EditResult(action="delete_all", applied=count > 0, message=f"Deleted {count} waypoints")
        return self._command("delete_all", run)

    def create_ring(self, count: Optional[int] = None, radius: Optional[float] = None,
                    preset: int = 0) -> EditResult:
        """Ring around the session center; missing values come from the kind's ring presets."""
        presets = self.graph.kind.ring_presets
        if (count is None or radius is None) and presets:
            chosen = presets[min(preset, len(presets) - 1)]
            count = chosen.count if count is None else count
            radius = chosen.radius if radius is None else radius

        def run():
            created = self.actions.create_ring(count, radius, self.center)
            return EditResult(action="create_ring", message=f"Created ring of {len(created)} waypoints")
        return self._command("create_ring", run)

    def create_grid(self, width: Optional[int] = None, height: Optional[int] = None,
                    spacing: Optional[float] = None, preset: int = 0) -> EditResult:
        presets = self.graph.kind.grid_presets
        if (width is None or height is None or spacing is None) and presets:
            chosen = presets[min(preset, len(presets) - 1)]
            width = chosen.width if width is None else width
            height = chosen.height if height is None else height
            spacing = chosen.spacing if spacing is None else spacing

        def run():
            self.actions.create_grid(width, height, spacing, self.center)
            return EditResult(action="create_grid", message=f"Created {width}x{height} waypoint grid")
        return self._command("create_grid", run)

    def extend_selected(self, direction: str) -> EditResult:
        """Extend from the most recently selected waypoint; the new one becomes anchor and selection."""
        source = self._state.selection[-1] if self._state.selection else self._state.chain_anchor
        if source is None:
            return EditResult(action="extend", applied=False, message="Select a waypoint to extend from")

        def run():
            node_id = self.builder.extend_from(source, direction)
            self._update(chain_anchor=node_id, selection=(node_id,))
            return EditResult(action="extend", node_id=node_id,
                              message=f"Created {self.graph.get(node_id).name} {direction}")
        return self._command("extend", run)

    def undo(self) -> EditResult:
        unit = self.graph.history.undo()
        self._notify_change()
        if unit is None:
            return EditResult(action="undo", applied=False, message="Nothing to undo")
        return EditResult(action="undo", message=f"Undo {unit.label}")

    def redo(self) -> EditResult:
        unit = self.graph.history.redo()
        self._notify_change()
        if unit is None:
            return EditResult(action="redo", applied=False, message="Nothing to redo")
        return EditResult(action="redo", message=f"Redo {unit.label}")
