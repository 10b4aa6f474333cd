"""
Unit tests for dag/graph.py

Tests node/edge storage, cycle rejection with rollback, the topological
order cache and structural validation.
"""

import pytest

from statchain.dag.graph import Edge, GraphStore, Node
from statchain.errors import (
    CycleError,
    DuplicateNodeError,
    GraphConsistencyError,
    NodeNotFoundError,
)
from tests.aggregates import Last, Mean


def build_store(*node_ids):
    store = GraphStore()
    for node_id in node_ids:
        store.add_node(node_id, Mean())
    return store


class TestNode:
    """Tests for the Node dataclass."""

    def test_new_node_has_no_output(self):
        node = Node(node_id="a", aggregate=Mean())
        assert node.has_output is False
        assert node.is_source is True
        assert node.is_sink is True

    def test_apply_refreshes_caches(self):
        node = Node(node_id="a", aggregate=Mean())

        node.apply(4.0)
        node.apply(2.0)

        assert node.value == 3.0
        assert node.last_input == 2.0
        assert node.update_count == 2
        assert node.has_output is True

    def test_refresh_reads_aggregate(self):
        aggregate = Last()
        node = Node(node_id="a", aggregate=aggregate)
        aggregate.update(7)

        assert node.refresh() == 7
        assert node.update_count == 0


class TestEdge:
    """Tests for the Edge record."""

    def test_defaults(self):
        edge = Edge(source="a", target="b")
        assert edge.key == ("a", "b")
        assert edge.has_filter is False
        assert edge.has_transform is False

    def test_immutable(self):
        edge = Edge(source="a", target="b")
        with pytest.raises(AttributeError):
            edge.filter = abs


class TestAddNode:
    """Tests for node insertion."""

    def test_add_node(self):
        store = GraphStore()
        node = store.add_node("a", Mean())

        assert store.has_node("a")
        assert store.get_node("a") is node
        assert node.parents == [] and node.children == []

    def test_duplicate_rejected(self):
        store = build_store("a")
        original = store.get_node("a")

        with pytest.raises(DuplicateNodeError) as exc_info:
            store.add_node("a", Mean())

        assert isinstance(exc_info.value, ValueError)
        assert store.get_node("a") is original
        assert len(store) == 1

    def test_non_aggregate_rejected(self):
        store = GraphStore()
        with pytest.raises(TypeError):
            store.add_node("a", object())
        assert len(store) == 0

    def test_missing_read_rejected(self):
        class UpdateOnly:
            def update(self, value):
                pass

        with pytest.raises(TypeError):
            GraphStore().add_node("a", UpdateOnly())

    def test_add_node_invalidates_order(self):
        store = build_store("a")
        store.topological_order()
        assert store.order_valid is True

        store.add_node("b", Mean())

        assert store.order_valid is False

    def test_node_ids_keep_insertion_order(self):
        store = build_store("z", "a", "m")
        assert store.node_ids() == ["z", "a", "m"]


class TestGetNode:
    """Tests for node lookup."""

    def test_missing_node(self):
        with pytest.raises(NodeNotFoundError) as exc_info:
            GraphStore().get_node("nope")
        assert isinstance(exc_info.value, KeyError)
        assert exc_info.value.node_id == "nope"

    def test_unhashable_id(self):
        store = build_store("a")
        with pytest.raises(NodeNotFoundError):
            store.get_node(["a"])
        assert store.has_node(["a"]) is False


class TestConnect:
    """Tests for edge insertion."""

    def test_connect_is_symmetric(self):
        store = build_store("a", "b")

        edge = store.connect("a", "b")

        assert store.get_node("a").children == ["b"]
        assert store.get_node("b").parents == ["a"]
        assert store.get_edge("a", "b") == edge

    def test_connect_stores_policy(self):
        store = build_store("a", "b")
        keep = lambda x: x > 0
        double = lambda x: x * 2

        store.connect("a", "b", filter=keep, transform=double)

        edge = store.get_edge("a", "b")
        assert edge.filter is keep
        assert edge.transform is double

    def test_connect_missing_node(self):
        store = build_store("a")
        with pytest.raises(NodeNotFoundError):
            store.connect("a", "ghost")
        assert store.get_node("a").children == []

    def test_connect_invalidates_order(self):
        store = build_store("a", "b")
        store.topological_order()

        store.connect("a", "b")

        assert store.order_valid is False
        assert store.topological_order() == ["a", "b"]

    def test_reconnect_replaces_policy(self):
        store = build_store("a", "b")
        store.connect("a", "b")
        keep = lambda x: True

        store.connect("a", "b", filter=keep)

        assert store.get_node("a").children == ["b"]
        assert store.get_node("b").parents == ["a"]
        assert store.get_edge("a", "b").filter is keep
        assert len(store.edges()) == 1

    def test_get_edge_missing(self):
        store = build_store("a", "b")
        assert store.get_edge("a", "b") is None


class TestCycleRejection:
    """Tests for acyclicity enforcement."""

    def test_back_edge_rejected(self):
        store = build_store("a", "b")
        store.connect("a", "b")
        store.topological_order()

        with pytest.raises(CycleError) as exc_info:
            store.connect("b", "a")

        error = exc_info.value
        assert error.source == "b"
        assert error.target == "a"
        assert error.cycle[0] == error.cycle[-1]
        assert "'b' -> 'a'" in str(error)

        # Adjacency and cache validity untouched
        assert store.get_node("a").parents == []
        assert store.get_node("b").children == []
        assert store.get_edge("b", "a") is None
        assert store.order_valid is True

    def test_self_loop_rejected(self):
        store = build_store("a")

        with pytest.raises(CycleError) as exc_info:
            store.connect("a", "a")

        assert exc_info.value.cycle == ["a", "a"]
        assert store.get_node("a").children == []

    def test_long_cycle_rejected(self):
        store = build_store("a", "b", "c")
        store.connect("a", "b")
        store.connect("b", "c")

        with pytest.raises(CycleError):
            store.connect("c", "a")

        assert store.validate() is True


class TestConnectAll:
    """Tests for atomic fan-in connect."""

    def test_fan_in_in_list_order(self):
        store = build_store("x", "y", "z")

        edges = store.connect_all(["y", "x"], "z")

        assert store.get_node("z").parents == ["y", "x"]
        assert [e.source for e in edges] == ["y", "x"]

    def test_rollback_on_cycle(self):
        store = build_store("a", "b", "t")
        store.connect("t", "b")

        with pytest.raises(CycleError):
            store.connect_all(["a", "b"], "t")

        assert store.get_node("a").children == []
        assert store.get_node("t").parents == []
        assert store.get_edge("a", "t") is None
        assert store.validate() is True

    def test_rollback_restores_replaced_policy(self):
        store = build_store("a", "b", "t")
        original = lambda x: True
        store.connect("a", "t", filter=original)
        store.connect("t", "b")

        with pytest.raises(CycleError):
            store.connect_all(["a", "b"], "t", filter=lambda x: False)

        assert store.get_edge("a", "t").filter is original
        assert store.get_node("a").children == ["t"]

    def test_missing_source_adds_nothing(self):
        store = build_store("a", "t")

        with pytest.raises(NodeNotFoundError):
            store.connect_all(["a", "ghost"], "t")

        assert store.get_node("t").parents == []
        assert store.edges() == []


class TestValidate:
    """Tests for structural validation."""

    def test_valid_graph(self):
        store = build_store("a", "b", "c")
        store.connect_all(["a", "b"], "c")
        store.topological_order()
        assert store.validate() is True

    def test_asymmetric_adjacency(self):
        store = build_store("a", "b")
        store.get_node("a").children.append("b")

        with pytest.raises(GraphConsistencyError):
            store.validate()

    def test_corrupted_cycle(self):
        store = build_store("a", "b")
        store.connect("a", "b")
        store.get_node("b").children.append("a")
        store.get_node("a").parents.append("b")

        with pytest.raises(CycleError):
            store.validate()
