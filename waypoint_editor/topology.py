"""
Topology generators: whole node sets with a prescribed edge pattern.

- create_ring:        count nodes on a circle, node i linked to node i+1 (mod count)
- create_grid:        width x height lattice, 4-neighbour links, no diagonals
- place_with_anchor:  one node linked only to the previous one (chain mode)
- extend_from:        one node offset ahead/behind/left/right of an existing node

Each generator is a single undo unit. Candidate positions are dropped onto
the ground when snapping is on and the projector finds a surface; otherwise
the raw position is kept.
"""

import logging
import math
from typing import Dict, List, Optional

from waypoint_editor.errors import InvalidOperation
from waypoint_editor.geometry import FORWARD, RIGHT, Vec3, add, as_vec3, scale
from waypoint_editor.graph import Team, WaypointGraph
from waypoint_editor.ground import GroundProjector, project_or_keep

logger = logging.getLogger(__name__)

# World-axis offsets for the quick "extend" actions (+Z ahead, +X right)
EXTEND_DIRECTIONS: Dict[str, Vec3] = {
    'ahead': FORWARD,
    'behind': scale(FORWARD, -1.0),
    'left': scale(RIGHT, -1.0),
    'right': RIGHT,
}


class TopologyBuilder:
    """Creates batches of connected waypoints in one graph."""

    def __init__(self, graph: WaypointGraph,
                 projector: Optional[GroundProjector] = None,
                 reach_radius: Optional[float] = None,
                 owner_team: Team = Team.NONE,
                 snap_to_ground: bool = True):
        self.graph = graph
        self.projector = projector
        self.reach_radius = reach_radius
        self.owner_team = owner_team
        self.snap_to_ground = snap_to_ground

    def resolve(self, point: Vec3) -> Vec3:
        """Ground-projected point when snapping is on, else the point itself."""
        if not self.snap_to_ground:
            return as_vec3(point)
        return project_or_keep(self.projector, point)

    def _create(self, position: Vec3, reach_radius: Optional[float] = None,
                owner_team: Optional[Team] = None) -> str:
        return self.graph.add_node(
            position,
            reach_radius=self.reach_radius if reach_radius is None else reach_radius,
            owner_team=self.owner_team if owner_team is None else owner_team,
        )

    def create_ring(self, count: int, radius: float, center: Vec3 = (0.0, 0.0, 0.0)) -> List[str]:
        """
        Place count nodes evenly on a circle around center and link them into a cycle.

        count 1 yields a lone node and count 2 a single edge; neither is rejected.
        """
        if count < 0:
            raise InvalidOperation(f"Ring needs a non-negative count, got {count}", operation="create_ring")
        if radius < 0:
            raise InvalidOperation(f"Ring radius must be >= 0, got {radius}", operation="create_ring")

        cx, cy, cz = as_vec3(center)
        created: List[str] = []
        with self.graph.history.transaction("Create Ring"):
            for i in range(count):
                angle = math.radians(360.0 / count * i)
                pos = (cx + math.sin(angle) * radius, cy, cz + math.cos(angle) * radius)
                created.append(self._create(self.resolve(pos)))

            for i, node_id in enumerate(created):
                next_id = created[(i + 1) % count]
                if next_id != node_id:
                    self.graph.connect(node_id, next_id)

        logger.info(f"Created ring of {count} waypoints")
        return created

    def create_grid(self, width: int, height: int, spacing: float,
                    center: Vec3 = (0.0, 0.0, 0.0)) -> List[List[str]]:
        """
        Place a width x height lattice centred on center, indexed grid[x][z].

        Each node links to its left/right/up/down neighbours only, giving
        (width-1)*height + (height-1)*width edges.
        """
        if width < 0 or height < 0:
            raise InvalidOperation(f"Grid size must be non-negative, got {width}x{height}",
                                   operation="create_grid")
        if spacing < 0:
            raise InvalidOperation(f"Grid spacing must be >= 0, got {spacing}", operation="create_grid")

        cx, cy, cz = as_vec3(center)
        start = (cx - (width - 1) * spacing / 2.0, cy, cz - (height - 1) * spacing / 2.0)

        grid: List[List[str]] = []
        with self.graph.history.transaction("Create Grid"):
            for x in range(width):
                column = []
                for z in range(height):
                    pos = add(start, (x * spacing, 0.0, z * spacing))
                    column.append(self._create(self.resolve(pos)))
                grid.append(column)

            for x in range(width):
                for z in range(height):
                    if x < width - 1:
                        self.graph.connect(grid[x][z], grid[x + 1][z])
                    if z < height - 1:
                        self.graph.connect(grid[x][z], grid[x][z + 1])

        logger.info(f"Created {width}x{height} waypoint grid")
        return grid

    def place_with_anchor(self, position: Vec3, anchor: Optional[str] = None) -> str:
        """
        Place one node at position (used as given) and link it to anchor only.

        This is the chain-mode primitive: repeated calls with the previous
        node as anchor build a simple path.
        """
        if anchor is not None:
            self.graph.get(anchor)

        with self.graph.history.transaction(f"Create {self.graph.kind.display_name} Waypoint"):
            node_id = self._create(position)
            if anchor is not None:
                self.graph.connect(node_id, anchor)
        return node_id

    def extend_from(self, source_id: str, direction: str) -> str:
        """
        Add a node offset from source (ahead/behind/left/right by the kind's
        extend offset), inheriting its radius and team, linked to it.
        """
        if direction not in EXTEND_DIRECTIONS:
            raise InvalidOperation(f"Unknown direction '{direction}' (use: {', '.join(EXTEND_DIRECTIONS)})",
                                   operation="extend_from", node_id=source_id)
        source = self.graph.get(source_id)
        offset = scale(EXTEND_DIRECTIONS[direction], self.graph.kind.extend_offset)
        pos = self.resolve(add(source.position, offset))

        with self.graph.history.transaction(f"Create {self.graph.kind.display_name} Waypoint"):
            node_id = self._create(pos, reach_radius=source.reach_radius, owner_team=source.owner_team)
            self.graph.connect(source_id, node_id)
        return node_id
