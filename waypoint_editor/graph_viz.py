"""
Graph visualizer that produces a per-frame draw description of a waypoint graph.

This implementation uses NetworkX to walk the undirected edge set once, but
the output is a plain dict of discs, edges and overlay lines in world space
that any renderer can consume. `render_svg` turns a frame into the SVG
overlay shown by the NiceGUI top-down page.

Colours come from the vehicle kind's theme:
- nodes take their team colour; the pending connect source is highlighted
  and selected nodes are drawn in the selection colour
- every edge is drawn once with an arrow at its midpoint
"""

import html
import math
from typing import Any, Dict, List, Optional

import networkx as nx

from waypoint_editor.edit.controller import EditState
from waypoint_editor.geometry import Vec3, add, midpoint, normalized, scale, sub
from waypoint_editor.graph import Team, WaypointGraph, WaypointNode
from waypoint_editor.vehicle_kinds import VehicleKind

# Overlay heights above the node position, in world units
DISC_HEIGHT = 0.5
EDGE_HEIGHT = 1.5
PENDING_LINE_HEIGHT = 2.0
LABEL_HEIGHT = 6.0

DISC_FILL_OPACITY = 0.3
SPAWN_RING_PADDING = 2.0
ARROW_LENGTH = 3.0
ARROW_HALF_WIDTH = 2.0


class GraphVisualizer:
    """
    Build the frame dict for one graph:

      {
        "container": "TankWaypoints",
        "nodes": [{"id", "name", "position", "radius", "color", ...}],
        "edges": [{"source", "target", "start", "end", "arrow", ...}],
        "pending_line": {"start", "end", "color"} or None,
        "stats": {...},
        "edit_mode": bool,
        "chain_from": name of the chain anchor or None,
      }
    """

    def __init__(self, kind: VehicleKind):
        self.kind = kind
        self.G = nx.Graph()

    def team_color(self, team: Team) -> str:
        theme = self.kind.theme
        if team == Team.PHANTOM:
            return theme.phantom
        if team == Team.HAVOC:
            return theme.havoc
        return theme.neutral

    def color_for_node(self, node: WaypointNode, state: Optional[EditState] = None) -> str:
        if state is not None:
            if node.id == state.pending_source:
                return self.kind.theme.pending
            if node.id in state.selection:
                return self.kind.theme.selected
        return self.team_color(node.owner_team)

    @staticmethod
    def arrow_lines(start: Vec3, end: Vec3) -> List[List[Vec3]]:
        """Two short strokes at the segment midpoint pointing from start to end."""
        mid = midpoint(start, end)
        direction = normalized(sub(end, start))
        if direction == (0.0, 0.0, 0.0):
            return []
        # Perpendicular in the ground plane
        side = normalized((direction[2], 0.0, -direction[0]))
        back = sub(mid, scale(direction, ARROW_LENGTH))
        return [
            [mid, add(back, scale(side, ARROW_HALF_WIDTH))],
            [mid, add(back, scale(side, -ARROW_HALF_WIDTH))],
        ]

    def build_frame(self, graph: WaypointGraph, state: Optional[EditState] = None) -> Dict[str, Any]:
        self.G = graph.to_networkx()
        theme = self.kind.theme

        nodes = []
        for node in graph.nodes():
            nodes.append({
                "id": node.id,
                "name": node.name,
                "position": add(node.position, (0.0, DISC_HEIGHT, 0.0)),
                "radius": node.reach_radius,
                "color": self.color_for_node(node, state),
                "fill_opacity": DISC_FILL_OPACITY,
                "label_position": add(node.position, (0.0, LABEL_HEIGHT, 0.0)),
                "is_spawn_point": node.is_spawn_point,
                "spawn_ring_radius": node.reach_radius + SPAWN_RING_PADDING if node.is_spawn_point else None,
                "is_selected": state is not None and node.id in state.selection,
                "is_pending": state is not None and node.id == state.pending_source,
                "is_anchor": state is not None and node.id == state.chain_anchor,
            })

        edges = []
        lift = (0.0, EDGE_HEIGHT, 0.0)
        for u, v in self.G.edges():
            # Draw from the older node so arrows point the way the path was laid
            if self.G.nodes[u]["sequence"] > self.G.nodes[v]["sequence"]:
                u, v = v, u
            start = add(graph.get(u).position, lift)
            end = add(graph.get(v).position, lift)
            edges.append({
                "source": u,
                "target": v,
                "start": start,
                "end": end,
                "color": theme.connection,
                "opacity": theme.connection_opacity,
                "arrow": self.arrow_lines(start, end),
            })

        pending_line = None
        if state is not None and state.pending_source in graph and state.pointer_point is not None:
            source = graph.get(state.pending_source)
            pending_line = {
                "start": add(source.position, (0.0, PENDING_LINE_HEIGHT, 0.0)),
                "end": add(state.pointer_point, (0.0, PENDING_LINE_HEIGHT, 0.0)),
                "color": theme.pending,
                "dotted": True,
            }

        chain_from = None
        if state is not None and state.chain_anchor in graph:
            chain_from = graph.get(state.chain_anchor).name

        return {
            "container": graph.container,
            "nodes": nodes,
            "edges": edges,
            "pending_line": pending_line,
            "stats": graph.stats(),
            "edit_mode": bool(state and state.is_active),
            "chain_from": chain_from,
        }


def render_svg(frame: Dict[str, Any], view, edit_color: str = "#00ff00", spawn_color: str = "#00ff00") -> str:
    """
    SVG overlay for a frame as seen through a top-down view.

    `view` needs `to_image(position)`, `pixels_per_unit`, `width` and `height`.
    """
    scale_px = view.pixels_per_unit
    parts = []

    def pt(position):
        x, y = view.to_image(position)
        return f"{x:.1f}", f"{y:.1f}"

    for edge in frame["edges"]:
        (x1, y1), (x2, y2) = pt(edge["start"]), pt(edge["end"])
        parts.append(f'<line x1="{x1}" y1="{y1}" x2="{x2}" y2="{y2}" stroke="{edge["color"]}" '
                     f'stroke-opacity="{edge["opacity"]}" stroke-width="2" />')
        for a, b in edge["arrow"]:
            (ax, ay), (bx, by) = pt(a), pt(b)
            parts.append(f'<line x1="{ax}" y1="{ay}" x2="{bx}" y2="{by}" stroke="{edge["color"]}" '
                         f'stroke-width="2" />')

    pending = frame["pending_line"]
    if pending:
        (x1, y1), (x2, y2) = pt(pending["start"]), pt(pending["end"])
        parts.append(f'<line x1="{x1}" y1="{y1}" x2="{x2}" y2="{y2}" stroke="{pending["color"]}" '
                     f'stroke-width="2" stroke-dasharray="6 4" />')

    for node in frame["nodes"]:
        cx, cy = pt(node["position"])
        r = max(3.0, node["radius"] * scale_px)
        stroke_width = 3 if node["is_selected"] or node["is_pending"] else 1.5
        parts.append(f'<circle cx="{cx}" cy="{cy}" r="{r:.1f}" fill="{node["color"]}" '
                     f'fill-opacity="{node["fill_opacity"]}" stroke="{node["color"]}" '
                     f'stroke-width="{stroke_width}" />')
        if node["is_anchor"]:
            parts.append(f'<circle cx="{cx}" cy="{cy}" r="{r + 4:.1f}" fill="none" '
                         f'stroke="{edit_color}" stroke-dasharray="3 3" />')
        if node["spawn_ring_radius"]:
            spawn_r = max(r + 2, node["spawn_ring_radius"] * scale_px)
            parts.append(f'<circle cx="{cx}" cy="{cy}" r="{spawn_r:.1f}" fill="none" '
                         f'stroke="{spawn_color}" stroke-width="2" />')
        lx, ly = pt(node["label_position"])
        ly = f"{float(ly) - r - 4:.1f}"
        parts.append(f'<text x="{lx}" y="{ly}" fill="#ffffff" font-size="11" '
                     f'text-anchor="middle">{html.escape(node["name"])}</text>')

    if frame["edit_mode"]:
        parts.append(f'<rect x="1" y="1" width="{view.width - 2}" height="{view.height - 2}" '
                     f'fill="none" stroke="{edit_color}" stroke-width="2" />')

    return "\n".join(parts)


def frame_bounds(frame: Dict[str, Any]) -> Optional[Dict[str, float]]:
    """World-space X/Z extents of all discs, or None for an empty frame."""
    if not frame["nodes"]:
        return None
    xs_min, xs_max, zs_min, zs_max = [], [], [], []
    for node in frame["nodes"]:
        x, _, z = node["position"]
        xs_min.append(x - node["radius"])
        xs_max.append(x + node["radius"])
        zs_min.append(z - node["radius"])
        zs_max.append(z + node["radius"])
    return {
        "min_x": min(xs_min), "max_x": max(xs_max),
        "min_z": min(zs_min), "max_z": max(zs_max),
        "span": max(max(xs_max) - min(xs_min), max(zs_max) - min(zs_min), 1e-6),
        "diagonal": math.hypot(max(xs_max) - min(xs_min), max(zs_max) - min(zs_min)),
    }
