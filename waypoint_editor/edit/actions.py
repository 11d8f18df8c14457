"""
Edit Actions - batch operations over a selection of waypoints.

Each method is one undo unit, however many edges it touches. Selection
actions need at least two distinct nodes and raise InvalidOperation
otherwise; the editor session checks first and reports the action as
disabled instead of calling in.
"""

import logging
from typing import Iterable, List, Optional

from waypoint_editor.edit.constants import MIN_BATCH_SELECTION
from waypoint_editor.errors import InvalidOperation
from waypoint_editor.graph import WaypointGraph
from waypoint_editor.proximity import LineOfSightFn, auto_connect_all, auto_connect_nearby
from waypoint_editor.topology import TopologyBuilder

logger = logging.getLogger(__name__)


class EditActions:
    """Executes selection-level graph mutations."""

    def __init__(self, graph: WaypointGraph, builder: Optional[TopologyBuilder] = None):
        self.graph = graph
        self.builder = builder or TopologyBuilder(graph)

    def order_by_creation(self, node_ids: Iterable[str]) -> List[str]:
        """Distinct existing ids sorted by creation sequence."""
        unique = {node_id: self.graph.get(node_id) for node_id in node_ids}
        return [n.id for n in sorted(unique.values(), key=lambda n: n.sequence)]

    def _require_batch(self, node_ids: Iterable[str], operation: str) -> List[str]:
        ordered = self.order_by_creation(node_ids)
        if len(ordered) < MIN_BATCH_SELECTION:
            raise InvalidOperation(
                f"Select at least {MIN_BATCH_SELECTION} waypoints ({len(ordered)} selected)",
                operation=operation,
            )
        return ordered

    def connect_all(self, node_ids: Iterable[str]) -> int:
        """Connect every pair in the selection (complete graph). Returns edges added."""
        ordered = self._require_batch(node_ids, "connect_all")
        added = 0
        with self.graph.history.transaction("Connect Selected"):
            for i, a in enumerate(ordered):
                for b in ordered[i + 1:]:
                    if self.graph.connect(a, b):
                        added += 1

        logger.info(f"Connected {len(ordered)} waypoints to each other")
        return added

    def chain_selected(self, node_ids: Iterable[str]) -> int:
        """
        Connect the selection as a path, node i to node i+1.

        Host selections carry no reliable order, so the path follows
        creation order.
        """
        ordered = self._require_batch(node_ids, "chain_selected")
        added = 0
        with self.graph.history.transaction("Chain Selected"):
            for a, b in zip(ordered, ordered[1:]):
                if self.graph.connect(a, b):
                    added += 1

        logger.info(f"Chained {len(ordered)} waypoints")
        return added

    def disconnect_selected(self, node_ids: Iterable[str]) -> int:
        """Remove every edge between two selected nodes; edges leaving the selection stay."""
        ordered = self._require_batch(node_ids, "disconnect_selected")
        selected = set(ordered)
        removed = 0
        with self.graph.history.transaction("Disconnect Selected"):
            for node_id in ordered:
                for other_id in sorted(self.graph.get_connections(node_id) & selected):
                    if self.graph.disconnect(node_id, other_id):
                        removed += 1

        logger.info(f"Disconnected {len(ordered)} waypoints from each other")
        return removed

    def auto_connect_selected(self, node_ids: Iterable[str], threshold: Optional[float] = None,
                              line_of_sight: Optional[LineOfSightFn] = None) -> int:
        """Proximity auto-connect applied to each selected node."""
        ordered = self._require_batch(node_ids, "auto_connect_selected")
        if threshold is None:
            threshold = self.graph.kind.auto_connect_distance
        added = 0
        with self.graph.history.transaction("Auto Connect Selected"):
            for node_id in ordered:
                added += auto_connect_nearby(node_id, self.graph, threshold, line_of_sight)

        logger.info(f"Auto-connected {len(ordered)} selected waypoints ({added} new connections)")
        return added

    def auto_connect_all(self, threshold: Optional[float] = None,
                         line_of_sight: Optional[LineOfSightFn] = None) -> int:
        return auto_connect_all(self.graph, threshold, line_of_sight)

    def delete_nodes(self, node_ids: Iterable[str]) -> int:
        """Cascade-delete the given nodes together. Unknown ids are skipped."""
        targets = [node_id for node_id in dict.fromkeys(node_ids) if node_id in self.graph]
        with self.graph.history.transaction(f"Delete {len(targets)} Waypoints"):
            for node_id in targets:
                self.graph.remove_node(node_id)
        return len(targets)

    def delete_all(self) -> int:
        return self.graph.clear()

    def create_ring(self, count: int, radius: float, center=(0.0, 0.0, 0.0)) -> List[str]:
        return self.builder.create_ring(count, radius, center)

    def create_grid(self, width: int, height: int, spacing: float, center=(0.0, 0.0, 0.0)) -> List[List[str]]:
        return self.builder.create_grid(width, height, spacing, center)
