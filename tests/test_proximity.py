import pytest

from waypoint_editor.graph import WaypointGraph
from waypoint_editor.proximity import auto_connect_all, auto_connect_nearby
from waypoint_editor.vehicle_kinds import get_vehicle_kind


@pytest.fixture
def graph():
    return WaypointGraph(kind=get_vehicle_kind("tank"))


def test_connects_only_below_threshold(graph):
    x = graph.add_node((0, 0, 0))
    near = graph.add_node((30, 0, 0))
    far = graph.add_node((70, 0, 0))

    added = auto_connect_nearby(x, graph, threshold=50)

    assert added == 1
    assert graph.is_connected(x, near)
    assert not graph.is_connected(x, far)


def test_threshold_is_strict(graph):
    x = graph.add_node((0, 0, 0))
    edge = graph.add_node((50, 0, 0))
    assert auto_connect_nearby(x, graph, threshold=50) == 0
    assert not graph.is_connected(x, edge)


def test_existing_edges_are_kept(graph):
    x = graph.add_node((0, 0, 0))
    far = graph.add_node((500, 0, 0))
    graph.connect(x, far)

    auto_connect_nearby(x, graph, threshold=50)

    assert graph.is_connected(x, far)


def test_line_of_sight_blocks(graph):
    x = graph.add_node((0, 0, 0))
    blocked = graph.add_node((10, 0, 0))
    clear = graph.add_node((-10, 0, 0))

    def sight(a, b):
        return b[0] < 0

    assert auto_connect_nearby(x, graph, 50, line_of_sight=sight) == 1
    assert graph.is_connected(x, clear)
    assert not graph.is_connected(x, blocked)


def test_auto_connect_all_is_one_undo_unit(graph):
    ids = [graph.add_node((20 * i, 0, 0)) for i in range(4)]
    graph.history.clear()

    added = auto_connect_all(graph, threshold=25)

    assert added == 3
    assert graph.edges() == list(zip(ids, ids[1:]))
    assert graph.history.labels() == ["Auto Connect All"]
    graph.history.undo()
    assert graph.edge_count() == 0


def test_auto_connect_all_uses_kind_distance(graph):
    a = graph.add_node((0, 0, 0))
    b = graph.add_node((99, 0, 0))
    c = graph.add_node((300, 0, 0))
    auto_connect_all(graph)
    assert graph.is_connected(a, b)
    assert graph.degree(c) == 0


def test_auto_connect_all_empty_graph(graph):
    assert auto_connect_all(graph) == 0
    assert graph.history.labels() == []
