"""
JSON persistence for waypoint graphs.

One file per container:

  {
    "container": "TankWaypoints",
    "vehicle_kind": "tank",
    "nodes": [
      {"id": "...", "name": "TankWaypoint_1", "sequence": 1,
       "position": [x, y, z], "reach_radius": 4.0, "owner_team": "none",
       "is_spawn_point": false, "speed_limit": 0.0, "connections": ["..."]}
    ]
  }

Loading keeps node ids and sequence numbers. Damaged adjacency is repaired
with a warning: references to missing nodes and self references are dropped,
one-sided connections are made mutual.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from waypoint_editor.errors import WaypointError
from waypoint_editor.graph import WaypointGraph, WaypointNode
from waypoint_editor.history import ADD_NODE, CONNECT, Mutation
from waypoint_editor.vehicle_kinds import VehicleKind, get_vehicle_kind

logger = logging.getLogger(__name__)

FORMAT_VERSION = 1


def graph_to_dict(graph: WaypointGraph) -> Dict[str, Any]:
    nodes = []
    for node in graph.nodes():
        nodes.append({
            "id": node.id,
            "name": node.name,
            "sequence": node.sequence,
            "position": list(node.position),
            "reach_radius": node.reach_radius,
            "owner_team": node.owner_team.value,
            "is_spawn_point": node.is_spawn_point,
            "speed_limit": node.speed_limit,
            "connections": [other.id for other in graph.nodes() if other.id in node.connections],
        })
    return {
        "version": FORMAT_VERSION,
        "container": graph.container,
        "vehicle_kind": graph.kind.name,
        "nodes": nodes,
    }


def save_graph(graph: WaypointGraph, path: Union[str, Path]) -> Path:
    """Write the graph to path, creating parent directories."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(graph_to_dict(graph), f, indent=2, ensure_ascii=False)
    logger.info(f"Saved {len(graph)} waypoints to {path}")
    return path


def graph_from_dict(data: Dict[str, Any], kind: Optional[VehicleKind] = None) -> WaypointGraph:
    """
    Rebuild a graph from its saved form.

    The result has an empty undo history; loading is not an undoable edit.
    """
    if kind is None:
        kind = get_vehicle_kind(data.get("vehicle_kind") or "tank")
    graph = WaypointGraph(kind=kind, container=data.get("container"))

    records = data.get("nodes") or []
    adjacency: Dict[str, List[str]] = {}
    for record in records:
        try:
            node = WaypointNode.from_snapshot(record)
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Skipping malformed waypoint record {record.get('id') if isinstance(record, dict) else record!r}: {e}")
            continue
        if node.id in graph:
            logger.warning(f"Skipping duplicate waypoint id {node.id}")
            continue
        graph.apply_mutation(Mutation(ADD_NODE, node.id, node.snapshot()))
        adjacency[node.id] = list(record.get("connections") or [])

    for node_id, connections in adjacency.items():
        name = graph.get(node_id).name
        for other_id in connections:
            if other_id == node_id:
                logger.warning(f"Dropping self connection on {name}")
                continue
            if other_id not in graph:
                logger.warning(f"Dropping dangling connection {name} -> {other_id}")
                continue
            if node_id not in adjacency.get(other_id, ()):
                logger.warning(f"Repairing one-sided connection {name} -> {graph.get(other_id).name}")
            if not graph.is_connected(node_id, other_id):
                graph.apply_mutation(Mutation(CONNECT, node_id, other_id))

    graph.history.clear()
    return graph


def load_graph(path: Union[str, Path], kind: Optional[VehicleKind] = None) -> WaypointGraph:
    """Load a saved graph. Raises WaypointError if the file is missing or not a scene."""
    path = Path(path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise WaypointError(f"Cannot read scene file {path}: {e}", operation="load_graph") from e

    if not isinstance(data, dict) or not isinstance(data.get("nodes", []), list):
        raise WaypointError(f"{path} is not a waypoint scene", operation="load_graph")

    graph = graph_from_dict(data, kind)
    logger.info(f"Loaded {len(graph)} waypoints from {path}")
    return graph
