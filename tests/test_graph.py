import itertools

import networkx as nx
import pytest

from waypoint_editor.errors import InvalidOperation, UnknownNode, WaypointError
from waypoint_editor.graph import Team, WaypointGraph
from waypoint_editor.vehicle_kinds import get_vehicle_kind


@pytest.fixture
def graph():
    return WaypointGraph(kind=get_vehicle_kind("tank"))


def assert_healthy(graph):
    assert graph.validate() == []
    for a, b in itertools.product(graph.node_ids(), repeat=2):
        assert graph.is_connected(a, b) == graph.is_connected(b, a)


class TestNodes:
    def test_add_node_uses_kind_defaults(self, graph):
        node_id = graph.add_node((1, 2, 3))
        node = graph.get(node_id)
        assert node.name == "TankWaypoint_1"
        assert node.position == (1.0, 2.0, 3.0)
        assert node.reach_radius == 4.0
        assert node.owner_team == Team.NONE
        assert node.connections == set()

    def test_sequence_and_names_increase(self, graph):
        ids = [graph.add_node((i, 0, 0)) for i in range(3)]
        assert [graph.get(i).sequence for i in ids] == [1, 2, 3]
        assert graph.get(ids[2]).name == "TankWaypoint_3"
        assert graph.node_ids() == ids

    def test_container_comes_from_kind(self, graph):
        assert graph.container == "TankWaypoints"
        assert WaypointGraph(kind=get_vehicle_kind("humvee")).container == "HumveeWaypoints"

    def test_negative_radius_rejected(self, graph):
        with pytest.raises(InvalidOperation):
            graph.add_node((0, 0, 0), reach_radius=-1)
        assert len(graph) == 0

    def test_get_unknown_raises(self, graph):
        with pytest.raises(UnknownNode) as exc:
            graph.get("missing")
        assert isinstance(exc.value, KeyError)
        assert isinstance(exc.value, WaypointError)
        assert "missing" in str(exc.value)

    def test_update_node_fields(self, graph):
        node_id = graph.add_node((0, 0, 0))
        graph.update_node(node_id, owner_team="havoc", is_spawn_point=True, reach_radius=10)
        node = graph.get(node_id)
        assert node.owner_team == Team.HAVOC
        assert node.is_spawn_point is True
        assert node.reach_radius == 10.0

    def test_update_node_rejects_connections(self, graph):
        node_id = graph.add_node((0, 0, 0))
        with pytest.raises(InvalidOperation):
            graph.update_node(node_id, connections={"x"})


class TestConnections:
    def test_connect_is_symmetric(self, graph):
        a = graph.add_node((0, 0, 0))
        b = graph.add_node((10, 0, 0))
        assert graph.connect(a, b) is True
        assert graph.is_connected(a, b) and graph.is_connected(b, a)
        assert_healthy(graph)

    def test_connect_twice_is_noop(self, graph):
        a = graph.add_node((0, 0, 0))
        b = graph.add_node((10, 0, 0))
        graph.connect(a, b)
        assert graph.connect(b, a) is False
        assert graph.edge_count() == 1

    def test_self_connect_refused(self, graph):
        a = graph.add_node((0, 0, 0))
        with pytest.raises(InvalidOperation):
            graph.connect(a, a)
        assert graph.get(a).connections == set()

    def test_connect_unknown_node(self, graph):
        a = graph.add_node((0, 0, 0))
        with pytest.raises(UnknownNode):
            graph.connect(a, "ghost")
        assert graph.get(a).connections == set()

    def test_disconnect_missing_edge_returns_false(self, graph):
        a = graph.add_node((0, 0, 0))
        b = graph.add_node((10, 0, 0))
        assert graph.disconnect(a, b) is False

    @pytest.mark.parametrize("toggles", [1, 2, 3, 4])
    def test_toggle_parity(self, graph, toggles):
        a = graph.add_node((0, 0, 0))
        b = graph.add_node((10, 0, 0))
        for _ in range(toggles):
            graph.toggle_connect(a, b)
        assert graph.is_connected(a, b) == (toggles % 2 == 1)
        assert_healthy(graph)


class TestRemoval:
    def test_cascade_removes_every_reference(self, graph):
        hub = graph.add_node((0, 0, 0))
        spokes = [graph.add_node((10 * i, 0, 0)) for i in range(1, 5)]
        for s in spokes:
            graph.connect(hub, s)
        graph.connect(spokes[0], spokes[1])

        graph.remove_node(hub)

        assert hub not in graph
        for s in spokes:
            assert hub not in graph.get_connections(s)
        assert graph.is_connected(spokes[0], spokes[1])
        assert_healthy(graph)

    def test_remove_while_iterating_snapshot(self, graph):
        ids = [graph.add_node((i, 0, 0)) for i in range(5)]
        for a, b in zip(ids, ids[1:]):
            graph.connect(a, b)
        for node in graph.nodes():
            if node.sequence % 2:
                graph.remove_node(node.id)
        assert len(graph) == 2
        assert graph.edge_count() == 0
        assert_healthy(graph)

    def test_clear_returns_count(self, graph):
        for i in range(3):
            graph.add_node((i, 0, 0))
        assert graph.clear() == 3
        assert len(graph) == 0
        assert graph.clear() == 0

    def test_removal_listener_called(self, graph):
        removed = []
        graph.add_removal_listener(removed.append)
        a = graph.add_node((0, 0, 0))
        graph.remove_node(a)
        assert removed == [a]

        graph.remove_removal_listener(removed.append)
        b = graph.add_node((0, 0, 0))
        graph.remove_node(b)
        assert removed == [a]


class TestQueries:
    def test_empty_graph_queries(self, graph):
        assert graph.stats() == {'nodes': 0, 'edges': 0, 'spawn_points': 0, 'components': 0, 'isolated': 0}
        assert graph.edges() == []
        assert graph.find_nearest((0, 0, 0)) is None
        assert graph.nearest_node_along_ray((0, 10, 0), (0, -1, 0)) is None

    def test_stats(self, graph):
        a = graph.add_node((0, 0, 0), is_spawn_point=True)
        b = graph.add_node((10, 0, 0))
        graph.add_node((50, 0, 0))
        graph.connect(a, b)
        assert graph.stats() == {'nodes': 3, 'edges': 1, 'spawn_points': 1, 'components': 2, 'isolated': 1}

    def test_edges_listed_once(self, graph):
        a = graph.add_node((0, 0, 0))
        b = graph.add_node((10, 0, 0))
        c = graph.add_node((20, 0, 0))
        graph.connect(b, a)
        graph.connect(c, b)
        assert graph.edges() == [(a, b), (b, c)]

    def test_to_networkx(self, graph):
        a = graph.add_node((0, 0, 0), owner_team=Team.PHANTOM)
        b = graph.add_node((10, 0, 0))
        graph.connect(a, b)
        G = graph.to_networkx()
        assert nx.is_connected(G)
        assert G.nodes[a]["owner_team"] == "phantom"

    def test_find_nearest_respects_team(self, graph):
        near_havoc = graph.add_node((1, 0, 0), owner_team=Team.HAVOC)
        neutral = graph.add_node((5, 0, 0))
        assert graph.find_nearest((0, 0, 0)) == near_havoc
        assert graph.find_nearest((0, 0, 0), Team.PHANTOM) == neutral
        assert graph.find_nearest((0, 0, 0), Team.HAVOC) == near_havoc

    def test_is_within_reach(self, graph):
        a = graph.add_node((0, 0, 0), reach_radius=5)
        assert graph.is_within_reach(a, (3, 0, 4))
        assert not graph.is_within_reach(a, (3, 0, 4.1))

    def test_ray_picks_closest_candidate(self, graph):
        far = graph.add_node((3, 0, 0), reach_radius=4)
        near = graph.add_node((1, 0, 0), reach_radius=4)
        assert graph.nearest_node_along_ray((0, 50, 0), (0, -1, 0)) == near
        assert far != near

    def test_ray_outside_reach_misses(self, graph):
        graph.add_node((10, 0, 0), reach_radius=4)
        assert graph.nearest_node_along_ray((0, 50, 0), (0, -1, 0)) is None

    def test_ray_tie_goes_to_first_created(self, graph):
        first = graph.add_node((2, 0, 0), reach_radius=4)
        graph.add_node((-2, 0, 0), reach_radius=4)
        assert graph.nearest_node_along_ray((0, 50, 0), (0, -1, 0)) == first

    def test_ray_length_limits_pick(self, graph):
        graph.add_node((0, 0, 0), reach_radius=4)
        assert graph.nearest_node_along_ray((0, 50, 0), (0, -1, 0), max_distance=20) is None
