"""Single-direction fastest-path search (Dijkstra, optionally A*)."""

from __future__ import annotations

import heapq
import itertools
import math
from dataclasses import dataclass, field
from typing import Callable, Container, Optional, Protocol

from georoute.graph import Edge, EdgeFilter, EdgeKey, Graph, Node

SpeedFn = Callable[[Edge], float]

_CANCEL_CHECK_EVERY = 4096
_KM_PER_DEG = 111.195
_DEFAULT_SPEED_KMH = 40.0


class CancelToken(Protocol):
    def is_set(self) -> bool: ...


class NoPathError(LookupError):
    """No route exists between the given nodes."""

    def __init__(self, message: str = "no path found between the given nodes") -> None:
        super().__init__(message)


class SearchCancelled(Exception):
    """The search was cancelled before it finished."""


@dataclass
class PathResult:
    """A found path: its nodes, the edges between them and its totals."""

    nodes: list[Node] = field(default_factory=list)
    edges: list[Edge] = field(default_factory=list)
    distance_km: float = 0.0
    time_hours: float = 0.0


def _check_cancel(cancel: Optional[CancelToken]) -> None:
    if cancel is not None and cancel.is_set():
        raise SearchCancelled("search cancelled")


def flat_dist_km(lat1: float, lng1: float, lat2: float, lng2: float, cos_lat2: float) -> float:
    """Flat-earth distance approximation in km, given cos of the target latitude."""
    dlat = (lat2 - lat1) * _KM_PER_DEG
    dlng = (lng2 - lng1) * _KM_PER_DEG * cos_lat2
    return math.sqrt(dlat * dlat + dlng * dlng)


def edge_travel_time_hours(edge: Edge, speed_fn: Optional[SpeedFn]) -> float:
    """Travel time of ``edge`` in hours under an optional speed override."""
    if speed_fn is None:
        th = float(edge.time_hours)
        if th > 0 and math.isfinite(th):
            return th
    speed = float(speed_fn(edge) if speed_fn is not None else edge.speed_kmh)
    if not (math.isfinite(speed) and speed > 0):
        speed = _DEFAULT_SPEED_KMH
    return edge.distance_km / speed


def _build_path(
    graph: Graph,
    came_from: dict[int, tuple[int, Edge]],
    goal_id: int,
    distance: float,
    hours: float,
) -> PathResult:
    ids = [goal_id]
    edges: list[Edge] = []
    cur = goal_id
    while cur in came_from:
        prev, edge = came_from[cur]
        edges.append(edge)
        ids.append(prev)
        cur = prev
    ids.reverse()
    edges.reverse()
    return PathResult(
        nodes=[graph.nodes[i] for i in ids],
        edges=edges,
        distance_km=distance,
        time_hours=hours,
    )


def a_star(
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
    """Find the fastest path from ``start_id`` to ``goal_id``.

    A zero ``heuristic_speed_kmh`` runs exact Dijkstra; a positive one adds a
    straight-line time heuristic. Raises NoPathError, SearchCancelled, or
    ValueError when an endpoint is not in the graph.
    """
    _check_cancel(cancel)

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

    def heuristic(node: Node) -> float:
        if not use_heuristic:
            return 0.0
        return flat_dist_km(node.lat, node.lng, goal.lat, goal.lng, goal_cos) / heuristic_speed_kmh

    time_score: dict[int, float] = {start_id: 0.0}
    dist_score: dict[int, float] = {start_id: 0.0}
    came_from: dict[int, tuple[int, Edge]] = {}
    closed: set[int] = set()
    tie = itertools.count()
    queue: list[tuple[float, int, float, int]] = [(heuristic(start), next(tie), 0.0, start_id)]

    for iteration in itertools.count(1):
        if not queue:
            break
        if iteration % _CANCEL_CHECK_EVERY == 0:
            _check_cancel(cancel)

        _, _, g_cost, node_id = heapq.heappop(queue)
        if node_id in closed or g_cost > time_score.get(node_id, math.inf):
            continue
        if node_id == goal_id:
            return _build_path(graph, came_from, goal_id, dist_score[goal_id], time_score[goal_id])
        closed.add(node_id)

        for edge in graph.edges.get(node_id, ()):
            to = edge.to
            if to in closed:
                continue
            if blocked_nodes is not None and to in blocked_nodes:
                continue
            if blocked_edges is not None and EdgeKey(node_id, to) in blocked_edges:
                continue
            if edge_ok is not None and not edge_ok(edge):
                continue
            neighbor = graph.nodes.get(to)
            if neighbor is None:
                continue

            tentative = time_score[node_id] + edge_travel_time_hours(edge, speed_fn)
            previous = time_score.get(to)
            if previous is None or tentative < previous:
                time_score[to] = tentative
                dist_score[to] = dist_score[node_id] + edge.distance_km
                came_from[to] = (node_id, edge)
                heapq.heappush(
                    queue, (tentative + heuristic(neighbor), next(tie), tentative, to)
                )

    raise NoPathError()