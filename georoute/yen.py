"""K fastest loopless paths with Yen's algorithm."""

from __future__ import annotations

import functools
from typing import Optional, Sequence

from georoute.astar import (
    CancelToken,
    NoPathError,
    PathResult,
    SearchCancelled,
    SpeedFn,
    edge_travel_time_hours,
)
from georoute.bidir import bidirectional_a_star
from georoute.graph import Edge, EdgeFilter, EdgeKey, Graph, Node


def path_signature(nodes: Sequence[Node]) -> str:
    """Comma-separated node ids identifying a path."""
    return ",".join(str(n.id) for n in nodes)


def _same_prefix(nodes: Sequence[Node], prefix: Sequence[Node]) -> bool:
    if len(nodes) < len(prefix):
        return False
    return all(a.id == b.id for a, b in zip(nodes, prefix))


def edge_between(
    graph: Graph, from_id: int, to_id: int, edge_ok: Optional[EdgeFilter]
) -> Optional[Edge]:
    """The shortest allowed edge from ``from_id`` to ``to_id``, or None."""
    best: Optional[Edge] = None
    for edge in graph.edges.get(from_id, ()):
        if edge.to != to_id:
            continue
        if edge_ok is not None and not edge_ok(edge):
            continue
        if best is None or edge.distance_km < best.distance_km:
            best = edge
    return best


def combine_root_and_spur(
    graph: Graph,
    root_nodes: Sequence[Node],
    spur_nodes: Sequence[Node],
    edge_ok: Optional[EdgeFilter],
    speed_fn: Optional[SpeedFn],
) -> Optional[PathResult]:
    """Join a root path and a spur path that starts at the root's last node.

    Returns None when either part is empty or a hop has no allowed edge.
    """
    if not root_nodes or not spur_nodes:
        return None
    nodes = list(root_nodes) + list(spur_nodes[1:])
    edges: list[Edge] = []
    distance = 0.0
    hours = 0.0
    for a, b in zip(nodes, nodes[1:]):
        edge = edge_between(graph, a.id, b.id, edge_ok)
        if edge is None:
            return None
        edges.append(edge)
        distance += edge.distance_km
        hours += edge_travel_time_hours(edge, speed_fn)
    return PathResult(nodes=nodes, edges=edges, distance_km=distance, time_hours=hours)


def _compare(a: PathResult, b: PathResult) -> int:
    if abs(a.time_hours - b.time_hours) > 1e-9:
        return -1 if a.time_hours < b.time_hours else 1
    if a.distance_km < b.distance_km:
        return -1
    if a.distance_km > b.distance_km:
        return 1
    return 0


def k_fastest_paths(
    graph: Graph,
    start_id: int,
    goal_id: int,
    k: int = 1,
    max_spur_nodes: int = 0,
    edge_ok: Optional[EdgeFilter] = None,
    speed_fn: Optional[SpeedFn] = None,
    heuristic_speed_kmh: float = 0.0,
    cancel: Optional[CancelToken] = None,
) -> list[PathResult]:
    """Up to ``k`` distinct paths, the fastest first.

    ``max_spur_nodes`` caps the spur positions explored per alternative
    (0 means no cap). Errors of the first search propagate.
    """
    if k <= 0:
        k = 1

    first = bidirectional_a_star(
        graph, start_id, goal_id, edge_ok, speed_fn, heuristic_speed_kmh, None, None, cancel
    )
    accepted = [first]
    if k == 1 or len(first.nodes) < 3:
        return accepted

    candidates: list[PathResult] = []
    seen = {path_signature(first.nodes)}

    while len(accepted) < k:
        base = accepted[-1]
        spur_end = len(base.nodes) - 1
        if max_spur_nodes > 0:
            spur_end = min(spur_end, max_spur_nodes)

        for spur_idx in range(spur_end):
            spur_id = base.nodes[spur_idx].id
            root = base.nodes[: spur_idx + 1]

            blocked_edges = {
                EdgeKey(path.nodes[spur_idx].id, path.nodes[spur_idx + 1].id)
                for path in accepted
                if len(path.nodes) > spur_idx + 1 and _same_prefix(path.nodes, root)
            }
            blocked_nodes = {n.id for n in root[:-1]}

            try:
                spur = bidirectional_a_star(
                    graph,
                    spur_id,
                    goal_id,
                    edge_ok,
                    speed_fn,
                    heuristic_speed_kmh,
                    blocked_edges,
                    blocked_nodes,
                    cancel,
                )
            except (NoPathError, SearchCancelled, ValueError):
                continue

            total = combine_root_and_spur(graph, root, spur.nodes, edge_ok, speed_fn)
            if total is None:
                continue
            sig = path_signature(total.nodes)
            if sig in seen:
                continue
            seen.add(sig)
            candidates.append(total)

        if not candidates:
            break
        candidates.sort(key=functools.cmp_to_key(_compare))
        accepted.append(candidates.pop(0))

    return accepted