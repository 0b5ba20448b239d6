"""Bidirectional fastest-path search meeting in the middle."""

from __future__ import annotations

import heapq
import itertools
import math
from typing import Container, Optional

from georoute.astar import (
    CancelToken,
    NoPathError,
    PathResult,
    SearchCancelled,
    SpeedFn,
    a_star,
    edge_travel_time_hours,
    flat_dist_km,
)
from georoute.graph import Edge, EdgeFilter, EdgeKey, Graph, Node

_CANCEL_CHECK_EVERY = 4096


def _raise_if_cancelled(cancel: Optional[CancelToken]) -> None:
    if cancel is not None and cancel.is_set():
        raise SearchCancelled("search cancelled")


def _stitch(
    graph: Graph,
    prev_f: dict[int, tuple[int, Edge]],
    next_b: dict[int, tuple[int, Edge]],
    start_id: int,
    goal_id: int,
    meeting: int,
    distance: float,
    hours: float,
) -> PathResult:
    fwd_ids = [meeting]
    fwd_edges: list[Edge] = []
    cur = meeting
    while cur != start_id and cur in prev_f:
        prev, edge = prev_f[cur]
        fwd_edges.append(edge)
        fwd_ids.append(prev)
        cur = prev
    fwd_ids.reverse()
    fwd_edges.reverse()

    bwd_ids: list[int] = []
    bwd_edges: list[Edge] = []
    cur = meeting
    while cur != goal_id and cur in next_b:
        nxt, edge = next_b[cur]
        bwd_edges.append(edge)
        bwd_ids.append(nxt)
        cur = nxt

    return PathResult(
        nodes=[graph.nodes[i] for i in fwd_ids + bwd_ids],
        edges=fwd_edges + bwd_edges,
        distance_km=distance,
        time_hours=hours,
    )


def bidirectional_a_star(
    graph: Graph,
    start_id: int,
    goal_id: int,
    edge_ok: Optional[EdgeFilter] = None,
    speed_fn: Optional[SpeedFn] = None,
    heuristic_speed_kmh: float = 0.0,
    blocked_edges: Optional[Container[EdgeKey]] = None,
    blocked_nodes: Optional[Container[int]] = None,
    cancel: Optional[CancelToken] = None,
) -> PathResult:
    """Search forward from the start and backward from the goal at once.

    Falls back to the single-direction search when the graph has no reverse
    adjacency. Raises NoPathError, SearchCancelled, or ValueError when an
    endpoint is not in the graph.
    """
    _raise_if_cancelled(cancel)
    if graph.rev_adj is None:
        return a_star(
            graph,
            start_id,
            goal_id,
            edge_ok,
            speed_fn,
            heuristic_speed_kmh,
            blocked_edges,
            blocked_nodes,
            cancel,
        )
    rev_adj = graph.rev_adj

    start = graph.nodes.get(start_id)
    if start is None:
        raise ValueError("start node not in graph")
    goal = graph.nodes.get(goal_id)
    if goal is None:
        raise ValueError("goal node not in graph")
    if start_id == goal_id:
        return PathResult(nodes=[start])

    use_heuristic = heuristic_speed_kmh > 0
    goal_cos = math.cos(math.radians(goal.lat)) if use_heuristic else 0.0
    start_cos = math.cos(math.radians(start.lat)) if use_heuristic else 0.0

    def to_goal(node: Node) -> float:
        if not use_heuristic:
            return 0.0
        return flat_dist_km(node.lat, node.lng, goal.lat, goal.lng, goal_cos) / heuristic_speed_kmh

    def to_start(node: Node) -> float:
        if not use_heuristic:
            return 0.0
        return flat_dist_km(node.lat, node.lng, start.lat, start.lng, start_cos) / heuristic_speed_kmh

    tie = itertools.count()

    g_f: dict[int, float] = {start_id: 0.0}
    d_f: dict[int, float] = {start_id: 0.0}
    prev_f: dict[int, tuple[int, Edge]] = {}
    closed_f: set[int] = set()
    queue_f: list[tuple[float, int, float, int]] = [(to_goal(start), next(tie), 0.0, start_id)]

    g_b: dict[int, float] = {goal_id: 0.0}
    d_b: dict[int, float] = {goal_id: 0.0}
    next_b: dict[int, tuple[int, Edge]] = {}
    closed_b: set[int] = set()
    queue_b: list[tuple[float, int, float, int]] = [(to_start(goal), next(tie), 0.0, goal_id)]

    mu = math.inf
    mu_dist = 0.0
    meeting: Optional[int] = None

    def try_meet(node_id: int, fwd: float, bwd: float, fwd_dist: float, bwd_dist: float) -> None:
        nonlocal mu, mu_dist, meeting
        total = fwd + bwd
        if total < mu:
            mu = total
            mu_dist = fwd_dist + bwd_dist
            meeting = node_id

    for iteration in itertools.count(1):
        if not queue_f and not queue_b:
            break
        if iteration % _CANCEL_CHECK_EVERY == 0:
            _raise_if_cancelled(cancel)

        top_f = queue_f[0][2] if queue_f else math.inf
        top_b = queue_b[0][2] if queue_b else math.inf
        if top_f + top_b >= mu:
            break

        if queue_f and (not queue_b or top_f <= top_b):
            _, _, g_cost, cur = heapq.heappop(queue_f)
            if cur in closed_f or g_cost > g_f.get(cur, math.inf):
                continue
            closed_f.add(cur)

            if cur in g_b:
                try_meet(cur, g_cost, g_b[cur], d_f[cur], d_b[cur])

            for edge in graph.edges.get(cur, ()):
                to = edge.to
                if to in closed_f:
                    continue
                if blocked_nodes is not None and to in blocked_nodes:
                    continue
                if blocked_edges is not None and EdgeKey(cur, to) in blocked_edges:
                    continue
                if edge_ok is not None and not edge_ok(edge):
                    continue
                neighbor = graph.nodes.get(to)
                if neighbor is None:
                    continue

                tentative = g_f[cur] + edge_travel_time_hours(edge, speed_fn)
                previous = g_f.get(to)
                if previous is not None and tentative >= previous:
                    continue
                g_f[to] = tentative
                d_f[to] = d_f[cur] + edge.distance_km
                prev_f[to] = (cur, edge)
                heapq.heappush(queue_f, (tentative + to_goal(neighbor), next(tie), tentative, to))

                if to in g_b:
                    try_meet(to, tentative, g_b[to], d_f[to], d_b[to])
        else:
            _, _, g_cost, cur = heapq.heappop(queue_b)
            if cur in closed_b or g_cost > g_b.get(cur, math.inf):
                continue
            closed_b.add(cur)

            if cur in g_f:
                try_meet(cur, g_f[cur], g_cost, d_f[cur], d_b[cur])

            for from_id in rev_adj.get(cur, ()):
                if from_id in closed_b:
                    continue
                if blocked_nodes is not None and from_id in blocked_nodes:
                    continue
                if blocked_edges is not None and EdgeKey(from_id, cur) in blocked_edges:
                    continue

                best_edge: Optional[Edge] = None
                best_time = math.inf
                for edge in graph.edges.get(from_id, ()):
                    if edge.to != cur:
                        continue
                    if edge_ok is not None and not edge_ok(edge):
                        continue
                    t = edge_travel_time_hours(edge, speed_fn)
                    if best_edge is None or t < best_time:
                        best_edge = edge
                        best_time = t
                if best_edge is None:
                    continue

                from_node = graph.nodes.get(from_id)
                if from_node is None:
                    continue

                tentative = g_b[cur] + best_time
                previous = g_b.get(from_id)
                if previous is not None and tentative >= previous:
                    continue
                g_b[from_id] = tentative
                d_b[from_id] = d_b[cur] + best_edge.distance_km
                next_b[from_id] = (cur, best_edge)
                heapq.heappush(
                    queue_b, (tentative + to_start(from_node), next(tie), tentative, from_id)
                )

                if from_id in g_f:
                    try_meet(from_id, g_f[from_id], tentative, d_f[from_id], d_b[from_id])

    if meeting is None or math.isinf(mu):
        raise NoPathError()
    return _stitch(graph, prev_f, next_b, start_id, goal_id, meeting, mu_dist, mu)