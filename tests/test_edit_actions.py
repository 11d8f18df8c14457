"""
Tests for EditActions batch operations.

Each action must land as a single undo unit and leave edges to nodes
outside the selection untouched.
"""

import pytest

from waypoint_editor.edit import EditActions
from waypoint_editor.errors import InvalidOperation, UnknownNode
from waypoint_editor.graph import WaypointGraph
from waypoint_editor.vehicle_kinds import get_vehicle_kind


@pytest.fixture
def graph():
    return WaypointGraph(kind=get_vehicle_kind("humvee"))


@pytest.fixture
def edit_actions(graph):
    return EditActions(graph)


@pytest.fixture
def four_nodes(graph):
    ids = [graph.add_node((40 * i, 0, 0)) for i in range(4)]
    graph.history.clear()
    return ids


class TestEditActions:
    def test_connect_all_builds_complete_graph(self, graph, edit_actions, four_nodes):
        added = edit_actions.connect_all(four_nodes)
        assert added == 6
        assert graph.edge_count() == 6
        assert graph.history.labels() == ["Connect Selected"]

    def test_connect_all_counts_only_new_edges(self, graph, edit_actions, four_nodes):
        graph.connect(four_nodes[0], four_nodes[1])
        assert edit_actions.connect_all(four_nodes) == 5

    @pytest.mark.parametrize("action", ["connect_all", "chain_selected", "disconnect_selected", "auto_connect_selected"])
    def test_needs_two_nodes(self, graph, edit_actions, four_nodes, action):
        with pytest.raises(InvalidOperation) as exc:
            getattr(edit_actions, action)([four_nodes[0]])
        assert exc.value.operation == action
        assert graph.history.labels() == []

    def test_duplicates_do_not_count_towards_minimum(self, edit_actions, four_nodes):
        with pytest.raises(InvalidOperation):
            edit_actions.connect_all([four_nodes[0], four_nodes[0]])

    def test_unknown_id_rejected(self, edit_actions, four_nodes):
        with pytest.raises(UnknownNode):
            edit_actions.connect_all([four_nodes[0], "ghost"])

    def test_chain_uses_creation_order(self, graph, edit_actions, four_nodes):
        shuffled = [four_nodes[2], four_nodes[0], four_nodes[3], four_nodes[1]]
        assert edit_actions.order_by_creation(shuffled) == four_nodes
        edit_actions.chain_selected(shuffled)
        assert graph.edges() == list(zip(four_nodes, four_nodes[1:]))

    def test_disconnect_keeps_outside_edges(self, graph, edit_actions, four_nodes):
        outside = graph.add_node((0, 0, 300))
        edit_actions.connect_all(four_nodes)
        graph.connect(four_nodes[0], outside)

        removed = edit_actions.disconnect_selected(four_nodes)

        assert removed == 6
        assert graph.edges() == [(four_nodes[0], outside)]

    def test_auto_connect_selected_uses_kind_distance(self, graph, edit_actions, four_nodes):
        # humvee auto-connect distance is 150: 40, 80 and 120 apart all qualify
        edit_actions.auto_connect_selected(four_nodes[:2])
        assert graph.degree(four_nodes[0]) == 3
        assert graph.history.labels() == ["Auto Connect Selected"]

    def test_delete_nodes_single_unit(self, graph, edit_actions, four_nodes):
        edit_actions.chain_selected(four_nodes)
        assert edit_actions.delete_nodes(four_nodes[1:3] + ["ghost"]) == 2
        assert graph.node_ids() == [four_nodes[0], four_nodes[3]]
        assert graph.edge_count() == 0

        graph.history.undo()
        assert graph.edge_count() == 3

    def test_delete_all(self, graph, edit_actions, four_nodes):
        assert edit_actions.delete_all() == 4
        assert len(graph) == 0
        assert graph.history.labels() == ["Delete All Humvee Waypoints"]
