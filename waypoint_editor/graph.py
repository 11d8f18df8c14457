"""
Waypoint graph for vehicle AI navigation.

Nodes are positioned waypoints with a reach radius and team ownership;
edges are undirected and stored on both endpoints. The graph owns every
node; a node's `connections` only holds ids of other nodes.

Invariants kept by every operation:
- no node lists itself in its connections
- b in a.connections  <=>  a in b.connections
- every id in any connections set is a node of this graph

Every mutation is recorded in the graph's UndoHistory. Each public call is
one undo unit unless it runs inside an enclosing history.transaction().
"""

import logging
import uuid
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Callable, Dict, Iterator, List, Optional, Set, Tuple

import networkx as nx

from waypoint_editor.errors import InvalidOperation, UnknownNode
from waypoint_editor.geometry import Vec3, as_vec3, add, distance, normalized, point_to_segment_distance, scale
from waypoint_editor.history import (
    ADD_NODE,
    CONNECT,
    DISCONNECT,
    REMOVE_NODE,
    UPDATE_NODE,
    Mutation,
    UndoHistory,
)
from waypoint_editor.vehicle_kinds import VehicleKind, get_vehicle_kind

logger = logging.getLogger(__name__)

# Length of the picking ray when the host does not give one
DEFAULT_PICK_DISTANCE = 1000.0

UPDATABLE_FIELDS = frozenset([
    'name', 'position', 'reach_radius', 'owner_team', 'is_spawn_point', 'speed_limit',
])


class Team(str, Enum):
    """Faction that may use a waypoint. NONE is neutral."""
    NONE = "none"
    PHANTOM = "phantom"
    HAVOC = "havoc"

    @classmethod
    def parse(cls, value: Any) -> "Team":
        if isinstance(value, cls):
            return value
        if value is None:
            return cls.NONE
        text = str(value).strip().lower()
        for team in cls:
            if text in (team.value, team.name.lower()):
                return team
        raise ValueError(f"Unknown team: {value!r}")


@dataclass
class WaypointNode:
    id: str
    name: str
    sequence: int
    position: Vec3
    reach_radius: float
    owner_team: Team = Team.NONE
    is_spawn_point: bool = False
    speed_limit: float = 0.0
    connections: Set[str] = field(default_factory=set)

    def snapshot(self) -> Dict[str, Any]:
        """Field values without adjacency, used by the undo ledger."""
        return {
            'id': self.id,
            'name': self.name,
            'sequence': self.sequence,
            'position': self.position,
            'reach_radius': self.reach_radius,
            'owner_team': self.owner_team,
            'is_spawn_point': self.is_spawn_point,
            'speed_limit': self.speed_limit,
        }

    @classmethod
    def from_snapshot(cls, data: Dict[str, Any]) -> "WaypointNode":
        return cls(
            id=data['id'],
            name=data['name'],
            sequence=data['sequence'],
            position=as_vec3(data['position']),
            reach_radius=float(data['reach_radius']),
            owner_team=Team.parse(data.get('owner_team')),
            is_spawn_point=bool(data.get('is_spawn_point', False)),
            speed_limit=float(data.get('speed_limit', 0.0)),
        )


class WaypointGraph:
    """
    All waypoints of one vehicle kind plus the structural edit operations.

    `container` names the explicit group that generated nodes belong to
    (e.g. "TankWaypoints"); it replaces any scene-wide lookup by name.
    """

    def __init__(self, kind: Optional[VehicleKind] = None,
                 history: Optional[UndoHistory] = None,
                 container: Optional[str] = None):
        self.kind = kind or get_vehicle_kind("tank")
        self.container = container or self.kind.container
        self.history = history or UndoHistory()
        self.history.bind(self)
        self._nodes: Dict[str, WaypointNode] = {}
        self._next_sequence = 1
        self._removal_listeners: List[Callable[[str], None]] = []

    # --- Queries ---

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._nodes

    def __iter__(self) -> Iterator[WaypointNode]:
        return iter(self.nodes())

    def get(self, node_id: str) -> WaypointNode:
        node = self._nodes.get(node_id)
        if node is None:
            raise UnknownNode(f"No waypoint with id {node_id!r}", operation="get", node_id=node_id)
        return node

    def nodes(self) -> List[WaypointNode]:
        """Point-in-time snapshot of all nodes in creation order."""
        return sorted(self._nodes.values(), key=lambda n: n.sequence)

    def node_ids(self) -> List[str]:
        return [n.id for n in self.nodes()]

    def is_connected(self, a: str, b: str) -> bool:
        node = self._nodes.get(a)
        return node is not None and b in node.connections

    def degree(self, node_id: str) -> int:
        return len(self.get(node_id).connections)

    def edges(self) -> List[Tuple[str, str]]:
        """Each undirected edge once, ordered by the endpoints' creation order."""
        result = []
        for node in self.nodes():
            for other_id in self._sorted_ids(node.connections):
                if self._nodes[other_id].sequence > node.sequence:
                    result.append((node.id, other_id))
        return result

    def edge_count(self) -> int:
        return sum(len(n.connections) for n in self._nodes.values()) // 2

    def _sorted_ids(self, ids) -> List[str]:
        return sorted(ids, key=lambda i: self._nodes[i].sequence)

    def to_networkx(self) -> nx.Graph:
        """Undirected networkx view of the graph with node attributes."""
        G = nx.Graph()
        for node in self.nodes():
            G.add_node(
                node.id,
                name=node.name,
                sequence=node.sequence,
                position=node.position,
                reach_radius=node.reach_radius,
                owner_team=node.owner_team.value,
                is_spawn_point=node.is_spawn_point,
            )
        G.add_edges_from(self.edges())
        return G

    def stats(self) -> Dict[str, int]:
        """Counts for status displays. All zero for an empty graph."""
        if not self._nodes:
            return {'nodes': 0, 'edges': 0, 'spawn_points': 0, 'components': 0, 'isolated': 0}
        G = self.to_networkx()
        return {
            'nodes': G.number_of_nodes(),
            'edges': G.number_of_edges(),
            'spawn_points': sum(1 for n in self._nodes.values() if n.is_spawn_point),
            'components': nx.number_connected_components(G),
            'isolated': nx.number_of_isolates(G),
        }

    def validate(self) -> List[str]:
        """Return invariant violations as messages. Empty list means healthy."""
        errors = []
        for node in self._nodes.values():
            if node.id in node.connections:
                errors.append(f"{node.name}: connected to itself")
            for other_id in node.connections:
                other = self._nodes.get(other_id)
                if other is None:
                    errors.append(f"{node.name}: dangling connection to {other_id}")
                elif node.id not in other.connections:
                    errors.append(f"{node.name} -> {other.name}: missing reverse connection")
            if node.reach_radius < 0:
                errors.append(f"{node.name}: negative reach radius")
        return errors

    # --- Navigation consumer accessors ---

    def get_connections(self, node_id: str) -> frozenset:
        return frozenset(self.get(node_id).connections)

    def is_within_reach(self, node_id: str, point: Vec3) -> bool:
        node = self.get(node_id)
        return distance(node.position, as_vec3(point)) <= node.reach_radius

    def owner_team(self, node_id: str) -> Team:
        return self.get(node_id).owner_team

    def find_nearest(self, position: Vec3, team: Optional[Team] = None) -> Optional[str]:
        """
        Nearest waypoint to a position. With a team given, waypoints owned
        by a different (non-neutral) team are skipped.
        """
        position = as_vec3(position)
        nearest = None
        nearest_dist = float('inf')
        for node in self.nodes():
            if team not in (None, Team.NONE) and node.owner_team not in (Team.NONE, team):
                continue
            dist = distance(position, node.position)
            if dist < nearest_dist:
                nearest_dist = dist
                nearest = node.id
        return nearest

    def nearest_node_along_ray(self, origin: Vec3, direction: Vec3,
                               max_distance: float = DEFAULT_PICK_DISTANCE) -> Optional[str]:
        """
        Pick the node closest to a ray.

        A node is a candidate when its distance to the ray (up to
        max_distance from the origin) is below its own reach radius; the
        closest candidate wins, ties going to the first in creation order.
        """
        origin = as_vec3(origin)
        end = add(origin, scale(normalized(as_vec3(direction)), max_distance))
        closest = None
        closest_dist = float('inf')
        for node in self.nodes():
            dist, _ = point_to_segment_distance(node.position, origin, end)
            if dist < node.reach_radius and dist < closest_dist:
                closest_dist = dist
                closest = node.id
        return closest

    # --- Listeners ---

    def add_removal_listener(self, callback: Callable[[str], None]) -> None:
        """Callback receives the id of every node that leaves the graph (delete, clear, undo)."""
        self._removal_listeners.append(callback)

    def remove_removal_listener(self, callback: Callable[[str], None]) -> None:
        if callback in self._removal_listeners:
            self._removal_listeners.remove(callback)

    # --- Mutations ---

    def add_node(self, position: Vec3, reach_radius: Optional[float] = None,
                 owner_team: Team = Team.NONE, is_spawn_point: bool = False,
                 name: Optional[str] = None, speed_limit: float = 0.0) -> str:
        """Create and register a node. Returns its id."""
        radius = self.kind.default_reach_radius if reach_radius is None else float(reach_radius)
        if radius < 0:
            raise InvalidOperation(f"Reach radius must be >= 0, got {radius}", operation="add_node")

        sequence = self._next_sequence
        node = WaypointNode(
            id=uuid.uuid4().hex,
            name=name or f"{self.kind.node_prefix}_{sequence}",
            sequence=sequence,
            position=as_vec3(position),
            reach_radius=radius,
            owner_team=Team.parse(owner_team),
            is_spawn_point=bool(is_spawn_point),
            speed_limit=float(speed_limit),
        )
        with self.history.transaction(f"Create {self.kind.display_name} Waypoint"):
            self._insert(node)
            self.history.record(Mutation(ADD_NODE, node.id, node.snapshot()))
        return node.id

    def connect(self, a: str, b: str) -> bool:
        """Add the edge a-b. Returns True if it was added, False if it already existed."""
        if a == b:
            raise InvalidOperation("Cannot connect a waypoint to itself", operation="connect", node_id=a)
        self.get(a)
        self.get(b)
        if self.is_connected(a, b):
            return False
        with self.history.transaction("Connect Waypoints"):
            self._link(a, b)
            self.history.record(Mutation(CONNECT, a, b))
        return True

    def disconnect(self, a: str, b: str) -> bool:
        """Remove the edge a-b if present. Returns True if an edge was removed."""
        if not self.is_connected(a, b):
            return False
        with self.history.transaction("Disconnect Waypoints"):
            self._unlink(a, b)
            self.history.record(Mutation(DISCONNECT, a, b))
        return True

    def toggle_connect(self, a: str, b: str) -> bool:
        """Disconnect if connected, otherwise connect. Returns whether a-b is connected afterwards."""
        if self.is_connected(a, b):
            self.disconnect(a, b)
            return False
        self.connect(a, b)
        return True

    def remove_node(self, node_id: str) -> None:
        """
        Delete a node after removing every reference to it.

        The cascade runs over a snapshot of the node list, so callers may be
        iterating their own snapshot of nodes() while deleting.
        """
        node = self.get(node_id)
        with self.history.transaction(f"Delete {node.name}"):
            for other in self.nodes():
                if other.id != node_id and node_id in other.connections:
                    self._unlink(other.id, node_id)
                    self.history.record(Mutation(DISCONNECT, other.id, node_id))
            # Stray one-sided entries on the node itself would have no reverse to repair
            node.connections.clear()
            self.history.record(Mutation(REMOVE_NODE, node_id, node.snapshot()))
            self._release(node_id)

    def clear(self) -> int:
        """Delete every node as one undo unit. Returns the number removed."""
        snapshot = self.node_ids()
        with self.history.transaction(f"Delete All {self.kind.display_name} Waypoints"):
            for node_id in snapshot:
                self.remove_node(node_id)
        if snapshot:
            logger.info(f"Deleted all {len(snapshot)} waypoints from {self.container}")
        return len(snapshot)

    def update_node(self, node_id: str, **fields) -> None:
        """Simple field writes (position, reach_radius, owner_team, ...). Adjacency is not a field."""
        node = self.get(node_id)
        unknown = set(fields) - UPDATABLE_FIELDS
        if unknown:
            raise InvalidOperation(f"Cannot update fields: {', '.join(sorted(unknown))}",
                                   operation="update_node", node_id=node_id)

        after = {}
        for key, value in fields.items():
            if key == 'position':
                value = as_vec3(value)
            elif key == 'owner_team':
                value = Team.parse(value)
            elif key in ('reach_radius', 'speed_limit'):
                value = float(value)
                if value < 0:
                    raise InvalidOperation(f"{key} must be >= 0, got {value}",
                                           operation="update_node", node_id=node_id)
            elif key == 'is_spawn_point':
                value = bool(value)
            after[key] = value

        before = {key: getattr(node, key) for key in after}
        if before == after:
            return
        with self.history.transaction(f"Edit {node.name}"):
            self._set_fields(node_id, after)
            self.history.record(Mutation(UPDATE_NODE, node_id, {'before': before, 'after': after}))

    # --- Undo replay ---

    def apply_mutation(self, mutation: Mutation, reverse: bool = False) -> None:
        """Replay a recorded mutation forwards or backwards without recording it again."""
        action = mutation.action
        if action == ADD_NODE:
            if reverse:
                self._release(mutation.node_id)
            else:
                self._insert(WaypointNode.from_snapshot(mutation.payload))
        elif action == REMOVE_NODE:
            if reverse:
                self._insert(WaypointNode.from_snapshot(mutation.payload))
            else:
                self._release(mutation.node_id)
        elif action == CONNECT:
            if reverse:
                self._unlink(mutation.node_id, mutation.payload)
            else:
                self._link(mutation.node_id, mutation.payload)
        elif action == DISCONNECT:
            if reverse:
                self._link(mutation.node_id, mutation.payload)
            else:
                self._unlink(mutation.node_id, mutation.payload)
        elif action == UPDATE_NODE:
            values = mutation.payload['before' if reverse else 'after']
            self._set_fields(mutation.node_id, values)
        else:
            raise ValueError(f"Unknown mutation action: {action}")

    # --- Unrecorded primitives ---

    def _insert(self, node: WaypointNode) -> None:
        self._nodes[node.id] = replace(node, connections=set())
        self._next_sequence = max(self._next_sequence, node.sequence + 1)

    def _release(self, node_id: str) -> None:
        node = self._nodes.pop(node_id, None)
        if node is None:
            return
        for other_id in list(node.connections):
            other = self._nodes.get(other_id)
            if other is not None:
                other.connections.discard(node_id)
        for callback in list(self._removal_listeners):
            callback(node_id)

    def _link(self, a: str, b: str) -> None:
        self._nodes[a].connections.add(b)
        self._nodes[b].connections.add(a)

    def _unlink(self, a: str, b: str) -> None:
        node_a = self._nodes.get(a)
        node_b = self._nodes.get(b)
        if node_a is not None:
            node_a.connections.discard(b)
        if node_b is not None:
            node_b.connections.discard(a)

    def _set_fields(self, node_id: str, values: Dict[str, Any]) -> None:
        node = self._nodes[node_id]
        for key, value in values.items():
            setattr(node, key, value)
