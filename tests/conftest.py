"""
statchain Test Configuration and Fixtures
"""

import os

import pytest

from statchain.bootstrap.config import reset_config
from statchain.dag import StatDAG
from tests.aggregates import Collect, Mean


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch, tmp_path):
    """Keep every test independent of the environment and any ./statchain.json."""
    for key in [k for k in os.environ if k.startswith("STATCHAIN_")]:
        monkeypatch.delenv(key, raising=False)
    monkeypatch.chdir(tmp_path)
    reset_config()
    yield
    reset_config()


@pytest.fixture
def chain_dag():
    """A -> B, both running means."""
    dag = StatDAG()
    dag.add_node("A", Mean())
    dag.add_node("B", Mean())
    dag.connect("A", "B")
    return dag


@pytest.fixture
def lazy_chain_dag():
    """A -> B -> C running means under lazy evaluation."""
    dag = StatDAG(strategy="lazy")
    for node_id in ("A", "B", "C"):
        dag.add_node(node_id, Mean())
    dag.connect("A", "B")
    dag.connect("B", "C")
    return dag


@pytest.fixture
def fan_in_dag():
    """P1, P2 -> C, with C collecting the ordered parent values."""
    dag = StatDAG()
    dag.add_node("P1", Mean())
    dag.add_node("P2", Mean())
    dag.add_node("C", Collect())
    dag.connect(["P1", "P2"], "C")
    return dag
