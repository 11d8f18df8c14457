import json

import pytest

from waypoint_editor.errors import WaypointError
from waypoint_editor.graph import Team, WaypointGraph
from waypoint_editor.scene_store import load_graph, save_graph
from waypoint_editor.topology import TopologyBuilder
from waypoint_editor.vehicle_kinds import get_vehicle_kind


@pytest.fixture
def graph():
    g = WaypointGraph(kind=get_vehicle_kind("humvee"))
    TopologyBuilder(g).create_ring(5, 30)
    first = g.node_ids()[0]
    g.update_node(first, owner_team=Team.PHANTOM, is_spawn_point=True, speed_limit=12)
    return g


def edge_set(graph):
    return {frozenset(e) for e in graph.edges()}


def test_save_load_preserves_identity(tmp_path, graph):
    path = save_graph(graph, tmp_path / "scenes" / "HumveeWaypoints.json")
    loaded = load_graph(path)

    assert loaded.kind.name == "humvee"
    assert loaded.container == "HumveeWaypoints"
    assert loaded.node_ids() == graph.node_ids()
    assert edge_set(loaded) == edge_set(graph)
    first = loaded.get(graph.node_ids()[0])
    assert first.owner_team == Team.PHANTOM
    assert first.is_spawn_point is True
    assert first.speed_limit == 12.0
    assert loaded.validate() == []


def test_loaded_graph_has_no_history(tmp_path, graph):
    loaded = load_graph(save_graph(graph, tmp_path / "g.json"))
    assert not loaded.history.can_undo


def test_new_nodes_continue_sequence(tmp_path, graph):
    loaded = load_graph(save_graph(graph, tmp_path / "g.json"))
    node_id = loaded.add_node((0, 0, 0))
    assert loaded.get(node_id).sequence == 6
    assert loaded.get(node_id).name == "HumveeWaypoint_6"


def test_repairs_damaged_adjacency(tmp_path, caplog):
    data = {
        "container": "TankWaypoints",
        "vehicle_kind": "tank",
        "nodes": [
            {"id": "a", "name": "A", "sequence": 1, "position": [0, 0, 0], "reach_radius": 4,
             "connections": ["b", "a", "ghost"]},
            {"id": "b", "name": "B", "sequence": 2, "position": [10, 0, 0], "reach_radius": 4,
             "connections": []},
            {"id": "c", "name": "C", "sequence": 3, "position": [20, 0, 0], "reach_radius": 4,
             "connections": ["b"]},
        ],
    }
    path = tmp_path / "damaged.json"
    path.write_text(json.dumps(data), encoding="utf-8")

    loaded = load_graph(path)

    assert loaded.validate() == []
    assert loaded.is_connected("b", "a")
    assert loaded.is_connected("b", "c")
    assert loaded.edge_count() == 2
    assert "dangling" in caplog.text
    assert "one-sided" in caplog.text


def test_malformed_record_skipped(tmp_path):
    data = {"vehicle_kind": "tank", "nodes": [
        {"id": "a", "name": "A", "sequence": 1, "position": [0, 0, 0], "reach_radius": 4},
        {"id": "broken", "position": "nowhere"},
    ]}
    path = tmp_path / "partial.json"
    path.write_text(json.dumps(data), encoding="utf-8")
    assert load_graph(path).node_ids() == ["a"]


def test_missing_file_raises(tmp_path):
    with pytest.raises(WaypointError):
        load_graph(tmp_path / "absent.json")


def test_not_a_scene_raises(tmp_path):
    path = tmp_path / "list.json"
    path.write_text("[1, 2, 3]", encoding="utf-8")
    with pytest.raises(WaypointError):
        load_graph(path)
