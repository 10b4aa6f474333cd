"""
Unit tests for dag/export.py
"""

import networkx as nx

from statchain.core.enums import EvaluationStrategy, FanInPolicy
from statchain.dag import GraphSnapshot, StatDAG
from tests.aggregates import Mean


class TestSnapshot:

    def test_structure(self, fan_in_dag):
        fan_in_dag.fit_many({"P1": 1.0, "P2": 2.0})

        snapshot = fan_in_dag.snapshot()

        assert isinstance(snapshot, GraphSnapshot)
        assert snapshot.strategy is EvaluationStrategy.EAGER
        assert snapshot.fan_in_policy is FanInPolicy.PERMISSIVE
        assert snapshot.topological_order == ["P1", "P2", "C"]
        assert [(e.source, e.target) for e in snapshot.edges] == [("P1", "C"), ("P2", "C")]

        node = snapshot.get_node("C")
        assert node.aggregate_type == "Collect"
        assert node.parents == ["P1", "P2"]
        assert node.value == [[1.0, 2.0]]
        assert node.update_count == 1

    def test_missing_node_lookup(self, chain_dag):
        assert chain_dag.snapshot().get_node("ghost") is None

    def test_edge_policy_flags(self):
        dag = StatDAG()
        dag.add_node("a", Mean())
        dag.add_node("b", Mean())
        dag.connect("a", "b", transform=abs)

        edge = dag.snapshot().edges[0]

        assert edge.has_filter is False
        assert edge.has_transform is True

    def test_lazy_snapshot_does_not_recompute(self, lazy_chain_dag):
        lazy_chain_dag.fit("A", 2.0)

        snapshot = lazy_chain_dag.snapshot()

        assert snapshot.pending_updates == 1
        assert snapshot.dirty_nodes == ["A", "B", "C"]
        assert snapshot.get_node("B").value is None
        assert lazy_chain_dag.pending_updates == 1

    def test_model_dump(self, chain_dag):
        chain_dag.fit("A", 1.0)

        data = chain_dag.snapshot().model_dump()

        assert data["strategy"] == EvaluationStrategy.EAGER
        assert data["nodes"][1]["value"] == 1.0


class TestNetworkxExport:

    def test_graph_shape(self, fan_in_dag):
        graph = fan_in_dag.to_networkx()

        assert isinstance(graph, nx.DiGraph)
        assert list(graph.nodes) == ["P1", "P2", "C"]
        assert set(graph.edges) == {("P1", "C"), ("P2", "C")}
        assert nx.is_directed_acyclic_graph(graph)

    def test_attributes(self):
        dag = StatDAG()
        dag.add_node("a", Mean())
        dag.add_node("b", Mean())
        dag.connect("a", "b", filter=bool)
        dag.fit("a", 3.0)

        graph = dag.to_networkx()

        assert graph.nodes["b"]["value"] == 3.0
        assert graph.nodes["a"]["dirty"] is False
        assert graph.edges["a", "b"]["filter"] is bool
        assert graph.edges["a", "b"]["transform"] is None

    def test_order_agrees_with_networkx(self):
        dag = StatDAG()
        for node_id in "abcdef":
            dag.add_node(node_id, Mean())
        dag.connect("a", "c")
        dag.connect(["b", "c"], "d")
        dag.connect("d", "e")
        dag.connect("a", "f")

        graph = dag.to_networkx()
        position = {node_id: i for i, node_id in enumerate(dag.topological_order())}

        for source, target in graph.edges:
            assert position[source] < position[target]
        assert nx.is_directed_acyclic_graph(graph)
