import pytest

from georoute.astar import NoPathError
from georoute.graph import AccessFlags, Edge, Graph, Node
from georoute.highway import HighwayKind
from georoute.yen import combine_root_and_spur, edge_between, k_fastest_paths, path_signature

ALL = AccessFlags.CAR | AccessFlags.MOTORCYCLE | AccessFlags.BUS | AccessFlags.FOOT


def add_edge(g, frm, to, dist, speed, kind=HighwayKind.RESIDENTIAL, flags=ALL):
    g.add_edge(
        frm,
        Edge(to=to, distance_km=dist, speed_kmh=speed, time_hours=dist / speed, kind=kind, flags=flags),
    )


def three_paths():
    g = Graph()
    g.add_node(Node(1, 0, 0))
    g.add_node(Node(2, 0, 0.01))
    g.add_node(Node(3, 0.01, 0))
    g.add_node(Node(4, 0, 0.02))
    g.add_node(Node(5, -0.01, 0))
    add_edge(g, 1, 2, 1, 60)
    add_edge(g, 2, 4, 1, 60)
    add_edge(g, 1, 3, 2, 60, HighwayKind.SECONDARY)
    add_edge(g, 3, 4, 2, 60, HighwayKind.SECONDARY)
    add_edge(g, 1, 5, 3, 60, HighwayKind.TERTIARY)
    add_edge(g, 5, 4, 3, 60, HighwayKind.TERTIARY)
    return g


def ids(path):
    return [n.id for n in path.nodes]


def test_three_alternatives_sorted_and_unique():
    paths = k_fastest_paths(three_paths(), 1, 4, k=3)
    assert len(paths) == 3
    times = [p.time_hours for p in paths]
    assert times == sorted(times)
    assert len({path_signature(p.nodes) for p in paths}) == 3
    assert ids(paths[0]) == [1, 2, 4]


def test_k_one_returns_only_primary():
    paths = k_fastest_paths(three_paths(), 1, 4, k=1)
    assert [ids(p) for p in paths] == [[1, 2, 4]]


def test_non_positive_k_is_treated_as_one():
    assert len(k_fastest_paths(three_paths(), 1, 4, k=0)) == 1


def test_fewer_paths_than_requested():
    paths = k_fastest_paths(three_paths(), 1, 4, k=10)
    assert len(paths) == 3


def test_spur_cap_still_finds_alternatives():
    paths = k_fastest_paths(three_paths(), 1, 4, k=3, max_spur_nodes=1)
    assert len(paths) == 3


def test_two_node_path_has_no_alternatives():
    g = Graph()
    g.add_node(Node(1, 0, 0))
    g.add_node(Node(2, 0, 0.01))
    add_edge(g, 1, 2, 1, 60)
    add_edge(g, 1, 2, 2, 60)
    paths = k_fastest_paths(g, 1, 2, k=3)
    assert len(paths) == 1


def test_no_path_propagates():
    with pytest.raises(NoPathError):
        k_fastest_paths(three_paths(), 4, 1, k=3)


def test_edge_filter_applies_to_alternatives():
    g = three_paths()
    only_res = lambda e: e.kind == HighwayKind.RESIDENTIAL
    paths = k_fastest_paths(g, 1, 4, k=3, edge_ok=only_res)
    assert [ids(p) for p in paths] == [[1, 2, 4]]


def test_path_signature_format():
    nodes = [Node(1, 0, 0), Node(22, 0, 0), Node(3, 0, 0)]
    assert path_signature(nodes) == "1,22,3"
    assert path_signature([]) == ""


def test_edge_between_picks_shortest_parallel_edge():
    g = Graph()
    g.add_node(Node(1, 0, 0))
    g.add_node(Node(2, 0, 0.01))
    add_edge(g, 1, 2, 5, 60)
    add_edge(g, 1, 2, 2, 60)
    edge = edge_between(g, 1, 2, None)
    assert edge.distance_km == 2
    assert edge_between(g, 2, 1, None) is None
    assert edge_between(g, 1, 2, lambda e: e.distance_km > 3).distance_km == 5


def test_combine_root_and_spur_sums_edges():
    g = three_paths()
    n = g.nodes
    path = combine_root_and_spur(g, [n[1]], [n[1], n[3], n[4]], None, None)
    assert ids(path) == [1, 3, 4]
    assert path.distance_km == pytest.approx(4)
    assert path.time_hours == pytest.approx(4 / 60)
    assert len(path.edges) == 2


def test_combine_root_and_spur_rejects_missing_hop():
    g = three_paths()
    n = g.nodes
    assert combine_root_and_spur(g, [n[1], n[4]], [n[4], n[2]], None, None) is None
    assert combine_root_and_spur(g, [], [n[1]], None, None) is None
    assert combine_root_and_spur(g, [n[1]], [], None, None) is None


def test_alternatives_are_loopless():
    paths = k_fastest_paths(three_paths(), 1, 4, k=3)
    for p in paths:
        assert len(set(ids(p))) == len(p.nodes)
        assert ids(p)[0] == 1 and ids(p)[-1] == 4