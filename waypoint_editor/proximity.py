"""
Proximity auto-connection.

Adds edges between waypoints closer than a distance threshold. Existing
edges are never removed, and because connect() is idempotent and symmetric
the result of auto_connect_all does not depend on node order.
"""

import logging
from typing import Callable, Optional

from waypoint_editor.geometry import Vec3, distance
from waypoint_editor.graph import WaypointGraph

logger = logging.getLogger(__name__)

# Optional obstruction test between two waypoint positions (True = clear)
LineOfSightFn = Callable[[Vec3, Vec3], bool]


def auto_connect_nearby(node_id: str, graph: WaypointGraph, threshold: float,
                        line_of_sight: Optional[LineOfSightFn] = None) -> int:
    """
    Connect node_id to every other node strictly closer than threshold.

    Returns the number of edges added.
    """
    node = graph.get(node_id)
    added = 0
    with graph.history.transaction(f"Auto Connect {node.name}"):
        for other in graph.nodes():
            if other.id == node_id:
                continue
            if distance(node.position, other.position) >= threshold:
                continue
            if line_of_sight is not None and not line_of_sight(node.position, other.position):
                continue
            if graph.connect(node_id, other.id):
                added += 1

    logger.debug(f"{node.name} auto-connected to {added} new waypoints")
    return added


def auto_connect_all(graph: WaypointGraph, threshold: Optional[float] = None,
                     line_of_sight: Optional[LineOfSightFn] = None) -> int:
    """
    Apply auto_connect_nearby to every node as one undo unit.

    threshold defaults to the vehicle kind's auto-connect distance.
    """
    if threshold is None:
        threshold = graph.kind.auto_connect_distance

    added = 0
    with graph.history.transaction("Auto Connect All"):
        for node in graph.nodes():
            added += auto_connect_nearby(node.id, graph, threshold, line_of_sight)

    logger.info(f"Auto-connected {len(graph)} waypoints ({added} new connections)")
    return added
