"""
Main NiceGUI application for the vehicle waypoint editor.

Renders one waypoint graph top-down as an SVG overlay on ui.interactive_image
and routes pointer/keyboard input through the GraphEditorSession.

Controls:
- E toggles edit mode
- click empty space to place, click a waypoint to continue the chain from it
- shift+click two waypoints to toggle their connection, ctrl/cmd+click to delete
- Escape cancels a pending connection, Delete removes the selection, Ctrl+Z / Ctrl+Y undo/redo
"""

import logging
import os
import sys

from dotenv import load_dotenv
from nicegui import ui

load_dotenv()

logging.basicConfig(
    level=os.environ.get("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("waypoint_editor.app")

from waypoint_editor.config import EditorSettings, load_settings, save_settings
from waypoint_editor.edit import GraphEditorSession
from waypoint_editor.edit.handlers import TopDownView, setup_edit_handlers
from waypoint_editor.errors import WaypointError
from waypoint_editor.graph import Team, WaypointGraph
from waypoint_editor.graph_viz import GraphVisualizer, frame_bounds, render_svg
from waypoint_editor.ground import PlaneGroundProjector
from waypoint_editor.paths import ensure_scenes_dir, get_scene_path
from waypoint_editor.scene_store import load_graph, save_graph
from waypoint_editor.vehicle_kinds import get_vehicle_kind, get_vehicle_kind_manager

VIEW_WIDTH = 1100
VIEW_HEIGHT = 720

# Global Styles
ui.add_head_html('''
    <style>
        body { background: #0f172a; }
        .waypoint-view { background: #1e293b; border: 1px solid #334155; border-radius: 6px; }
    </style>
''', shared=True)


def build_session(settings: EditorSettings):
    """Load the saved graph for the configured vehicle kind (or start empty) and wrap it in a session."""
    kind = get_vehicle_kind(settings.vehicle_kind)
    scene_path = get_scene_path(kind.container)
    graph = None
    if scene_path.exists():
        try:
            graph = load_graph(scene_path, kind)
        except WaypointError as e:
            logger.warning(f"Starting with an empty graph: {e}")
    if graph is None:
        graph = WaypointGraph(kind=kind)

    session = GraphEditorSession(graph, projector=PlaneGroundProjector(0.0), settings=settings)
    return session, scene_path


@ui.page('/')
def index():
    settings = load_settings()
    session, scene_path = build_session(settings)

    state = {
        'settings': settings,
        'session': session,
        'scene_path': scene_path,
        'view': TopDownView(VIEW_WIDTH, VIEW_HEIGHT),
        'visualizer': GraphVisualizer(session.graph.kind),
    }

    def current_session() -> GraphEditorSession:
        return state['session']

    def refresh():
        sess = current_session()
        theme = sess.graph.kind.theme
        frame = state['visualizer'].build_frame(sess.graph, sess.state)
        image.content = render_svg(frame, state['view'], theme.edit_mode, theme.spawn)

        stats = frame['stats']
        chain = f" | Chain from {frame['chain_from']}" if frame['chain_from'] else ''
        mode = 'EDIT' if frame['edit_mode'] else 'view'
        status_label.text = (f"{sess.graph.container} [{mode}] | {stats['nodes']} waypoints, "
                             f"{stats['edges']} connections, {stats['components']} groups{chain}")

        batch_enabled = sess.can_run_batch()
        for button in batch_buttons:
            button.set_enabled(batch_enabled)
        undo_button.set_enabled(sess.graph.history.can_undo)
        redo_button.set_enabled(sess.graph.history.can_redo)

    def notify(message: str, kind: str = 'info'):
        ui.notify(message, type=kind, position='bottom', timeout=1200)

    def persist_settings():
        try:
            save_settings(state['settings'])
        except OSError as e:
            logger.warning(f"Could not save editor settings: {e}")

    handlers = {}

    def bind_handlers():
        handlers.update(setup_edit_handlers(current_session(), state['view'], refresh, notify))

    bind_handlers()

    def on_mouse(e):
        handlers['handle_mouse'](e)

    def on_key(e):
        handlers['handle_key'](e)

    def command(name):
        """Button callback running a session command by name on the current session."""
        def run():
            handlers['run_command'](getattr(current_session(), name))()
        return run

    def with_center(run):
        """Generators place around the middle of the visible area."""
        def handler():
            cx, cz = state['view'].center
            current_session().center = (cx, 0.0, cz)
            handlers['run_command'](run)()
        return handler

    def switch_kind(e):
        state['settings'].vehicle_kind = e.value
        state['settings'].waypoint_radius = None
        persist_settings()
        current_session().close()
        state['session'], state['scene_path'] = build_session(state['settings'])
        state['visualizer'] = GraphVisualizer(current_session().graph.kind)
        bind_handlers()
        radius_input.value = current_session().graph.kind.default_reach_radius
        rebuild_presets()
        refresh()

    def set_radius(e):
        if e.value is None:
            return
        current_session().builder.reach_radius = float(e.value)
        state['settings'].waypoint_radius = float(e.value)
        persist_settings()

    def set_team(e):
        current_session().builder.owner_team = Team.parse(e.value)
        state['settings'].waypoint_team = e.value
        persist_settings()

    def set_chain_mode(e):
        current_session().set_chain_mode(e.value)
        state['settings'].chain_mode = e.value
        persist_settings()
        refresh()

    def set_snap(e):
        current_session().set_snap_to_ground(e.value)
        state['settings'].snap_to_ground = e.value
        persist_settings()

    def toggle_edit():
        active = current_session().toggle_edit_mode()
        edit_switch.value = active
        refresh()

    def save_scene():
        ensure_scenes_dir()
        try:
            path = save_graph(current_session().graph, state['scene_path'])
        except OSError as e:
            notify(f'Save failed: {e}', 'negative')
            return
        notify(f'Saved {path.name}', 'positive')

    def reload_scene():
        current_session().close()
        state['session'], state['scene_path'] = build_session(state['settings'])
        bind_handlers()
        notify(f"Loaded {current_session().graph.container}", 'info')
        refresh()

    def extend(direction):
        def run():
            handlers['run_command'](lambda: current_session().extend_selected(direction))()
        return run

    def pan(dx, dz):
        def run():
            step = 100.0 / state['view'].pixels_per_unit
            state['view'].pan(dx * step, dz * step)
            refresh()
        return run

    def zoom(factor):
        def run():
            state['view'].zoom(factor)
            refresh()
        return run

    def fit_view():
        sess = current_session()
        bounds = frame_bounds(state['visualizer'].build_frame(sess.graph, sess.state))
        if bounds is None:
            return
        view = state['view']
        view.center = ((bounds['min_x'] + bounds['max_x']) / 2, (bounds['min_z'] + bounds['max_z']) / 2)
        view.pixels_per_unit = 0.9 * min(view.width, view.height) / bounds['span']
        refresh()

    kind_names = get_vehicle_kind_manager().list_kinds() or ['tank']
    kind = current_session().graph.kind

    # --- Layout ---

    with ui.row().classes('w-full items-center gap-2 p-2'):
        ui.label('Waypoint Editor').classes('text-lg font-bold text-white')
        ui.select(kind_names, value=kind.name, on_change=switch_kind).props('dense outlined dark')
        edit_switch = ui.switch('Edit (E)', value=current_session().is_active,
                                on_change=lambda e: (current_session().set_edit_mode(e.value), refresh()))
        ui.switch('Chain', value=current_session().state.chain_mode, on_change=set_chain_mode)
        ui.switch('Snap to ground', value=current_session().state.snap_to_ground, on_change=set_snap)
        radius_input = ui.number('Radius', value=current_session().builder.reach_radius or kind.default_reach_radius,
                                 min=kind.radius_range[0], max=kind.radius_range[1], step=0.5,
                                 on_change=set_radius).props('dense outlined dark style="width: 90px"')
        ui.select({t.value: t.name.title() for t in Team}, value=current_session().builder.owner_team.value,
                  on_change=set_team).props('dense outlined dark')
        ui.button('New Path', on_click=command('start_new_path')).props('flat dense')
        undo_button = ui.button(icon='undo', on_click=command('undo')).props('flat dense').tooltip('Undo (Ctrl+Z)')
        redo_button = ui.button(icon='redo', on_click=command('redo')).props('flat dense').tooltip('Redo (Ctrl+Y)')
        ui.button(icon='save', on_click=save_scene).props('flat dense').tooltip('Save')
        ui.button(icon='folder_open', on_click=reload_scene).props('flat dense').tooltip('Reload saved scene')

    with ui.row().classes('w-full gap-2 px-2'):
        image = ui.interactive_image(
            size=(VIEW_WIDTH, VIEW_HEIGHT),
            on_mouse=on_mouse,
            events=['mousedown', 'mousemove'],
            cross=False,
        ).classes('waypoint-view')

        with ui.column().classes('gap-1'):
            ui.label('Selection').classes('text-sm text-gray-400')
            ui.button('Select All', on_click=lambda: (current_session().select_all(), refresh())).props('dense')
            batch_buttons = [
                ui.button('Connect All', on_click=command('connect_selected')).props('dense'),
                ui.button('Chain', on_click=command('chain_selected')).props('dense'),
                ui.button('Disconnect', on_click=command('disconnect_selected')).props('dense'),
                ui.button('Auto Connect', on_click=command('auto_connect_selected')).props('dense'),
            ]
            ui.button('Delete Selected', on_click=command('delete_selected')).props('dense color=negative')

            ui.label('Extend').classes('text-sm text-gray-400 mt-2')
            with ui.row().classes('gap-1'):
                for direction in ('ahead', 'behind', 'left', 'right'):
                    ui.button(direction.title(), on_click=extend(direction)).props('dense flat')

            ui.label('Generate').classes('text-sm text-gray-400 mt-2')
            preset_column = ui.column().classes('gap-1')

            ui.label('Graph').classes('text-sm text-gray-400 mt-2')
            ui.button('Auto Connect All', on_click=command('auto_connect_all')).props('dense')
            ui.button('Delete All', on_click=command('delete_all')).props('dense color=negative')

            ui.label('View').classes('text-sm text-gray-400 mt-2')
            with ui.row().classes('gap-1'):
                ui.button(icon='arrow_upward', on_click=pan(0, 1)).props('dense flat')
                ui.button(icon='arrow_downward', on_click=pan(0, -1)).props('dense flat')
                ui.button(icon='arrow_back', on_click=pan(-1, 0)).props('dense flat')
                ui.button(icon='arrow_forward', on_click=pan(1, 0)).props('dense flat')
            with ui.row().classes('gap-1'):
                ui.button(icon='zoom_in', on_click=zoom(1.25)).props('dense flat')
                ui.button(icon='zoom_out', on_click=zoom(0.8)).props('dense flat')
                ui.button('Fit', on_click=fit_view).props('dense flat')

    status_label = ui.label('').classes('px-2 text-sm text-gray-300')

    def rebuild_presets():
        preset_column.clear()
        sess_kind = current_session().graph.kind
        with preset_column:
            for i, ring in enumerate(sess_kind.ring_presets):
                ui.button(f'Ring {ring.count} (r{ring.radius:g})',
                          on_click=with_center(lambda i=i: current_session().create_ring(preset=i))).props('dense')
            for i, grid in enumerate(sess_kind.grid_presets):
                ui.button(f'Grid {grid.width}x{grid.height}',
                          on_click=with_center(lambda i=i: current_session().create_grid(preset=i))).props('dense')

    rebuild_presets()

    # Global keyboard handler
    ui.keyboard(on_key=lambda e: toggle_edit() if _is_edit_toggle(e) else on_key(e))

    refresh()


def _is_edit_toggle(e) -> bool:
    """Plain E keydown; handled here so the switch widget stays in sync."""
    key = getattr(e.key, 'name', e.key)
    return (e.action.keydown and not e.action.repeat and key in ('e', 'E')
            and not (e.modifiers.ctrl or e.modifiers.meta or e.modifiers.alt))


if __name__ in {"__main__", "__mp_main__"}:
    ui.run(
        title='Waypoint Editor',
        port=8081,
        reload=not getattr(sys, 'frozen', False),
        dark=True,
    )
