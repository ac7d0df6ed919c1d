from __future__ import annotations

import pytest

from site_linkgraph.graph import LinkGraph
from site_linkgraph.models import Link

ROOT = "https://site.test/"
A = "https://site.test/a"
B = "https://site.test/b"
C = "https://site.test/c"


def _graph(*edges: tuple[str, str]) -> LinkGraph:
    graph = LinkGraph()
    graph.add_page(ROOT, depth=0)
    for source, target in edges:
        graph.add_page(source)
        graph.add_page(target)
        graph.add_edge(source, target)
    return graph


def test_add_page_is_idempotent_and_keeps_first_seen_order():
    graph = LinkGraph()
    first = graph.add_page(ROOT, depth=0)
    graph.add_page(A, depth=1)
    again = graph.add_page(ROOT, depth=5)
    assert again is first
    assert again.depth == 0
    assert [p.url for p in graph.nodes()] == [ROOT, A]
    assert [p.order for p in graph.nodes()] == [0, 1]
    assert len(graph) == 2
    assert A in graph
    assert C not in graph


def test_add_page_rejects_negative_depth():
    with pytest.raises(ValueError):
        LinkGraph().add_page(ROOT, depth=-1)


def test_add_edge_has_set_semantics():
    graph = _graph((ROOT, A))
    assert graph.add_edge(ROOT, A) is False
    assert graph.edges() == [Link(ROOT, A)]
    assert graph.out_degree(ROOT) == 1
    assert graph.in_degree(A) == 1


def test_add_edge_refuses_dangling_endpoints():
    graph = _graph()
    with pytest.raises(KeyError):
        graph.add_edge(ROOT, A)
    with pytest.raises(KeyError):
        graph.add_edge(A, ROOT)
    assert graph.edges() == []


def test_degrees_successors_predecessors():
    graph = _graph((ROOT, A), (ROOT, B), (A, B), (B, C))
    assert graph.out_degree(ROOT) == 2
    assert graph.in_degree(B) == 2
    assert graph.in_degree(ROOT) == 0
    assert graph.successors(ROOT) == [A, B]
    assert graph.predecessors(B) == [ROOT, A]
    assert graph.has_edge(A, B)
    assert not graph.has_edge(B, A)
    assert graph.edge_count() == 4


def test_reachable_from():
    graph = _graph((ROOT, A), (A, B))
    graph.add_page(C)
    graph.add_edge(C, ROOT)
    assert graph.reachable_from(ROOT) == {ROOT, A, B}
    assert graph.reachable_from(C) == {C, ROOT, A, B}
    with pytest.raises(KeyError):
        graph.reachable_from("https://site.test/missing")


def test_no_edge_endpoint_outside_node_set():
    graph = _graph((ROOT, A), (A, B), (B, ROOT), (B, C))
    urls = {p.url for p in graph.nodes()}
    for link in graph.edges():
        assert link.source in urls
        assert link.target in urls
