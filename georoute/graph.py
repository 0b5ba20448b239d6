"""In-memory road network: nodes, directed edges and a snapping grid."""

from __future__ import annotations

import math
import threading
from dataclasses import dataclass
from enum import IntFlag
from typing import Callable, Iterable, NamedTuple, Optional

from georoute.geometry import Point, haversine
from georoute.highway import HighwayKind

GRID_CELL_SIZE_DEG = 0.02  # roughly 2.2 km of latitude per cell


class AccessFlags(IntFlag):
    """Bitmask of the transport modes that may traverse an edge."""

    NONE = 0
    CAR = 1 << 0
    MOTORCYCLE = 1 << 1
    BUS = 1 << 2
    FOOT = 1 << 3
    TRAIN = 1 << 4
    TRANSIT = 1 << 5  # public transport overlay (bus + metro + transfer)

    def has(self, flag: AccessFlags) -> bool:
        """True when any bit of ``flag`` is set."""
        return bool(self & flag)


@dataclass
class Node:
    """A road intersection; ``flags`` is the union of incident edge flags."""

    id: int
    lat: float
    lng: float
    flags: AccessFlags = AccessFlags.NONE


@dataclass
class Edge:
    """A directed road segment ending at node ``to``."""

    to: int = 0
    distance_km: float = 0.0
    speed_kmh: float = 0.0
    time_hours: float = 0.0
    kind: HighwayKind = HighwayKind.UNKNOWN
    flags: AccessFlags = AccessFlags.NONE
    name_idx: int = 0


class EdgeKey(NamedTuple):
    """Identifies a directed edge by its endpoints."""

    from_id: int
    to_id: int


EdgeFilter = Callable[[Edge], bool]


def _cell_for(lat: float, lng: float) -> tuple[int, int]:
    return math.floor(lat / GRID_CELL_SIZE_DEG), math.floor(lng / GRID_CELL_SIZE_DEG)


class Graph:
    """Adjacency-list road graph with interned street names.

    ``rev_adj`` maps a node id to the ids of nodes having an edge into it; it
    is ``None`` when the graph was built without reverse adjacency.
    """

    def __init__(self, reverse_adjacency: bool = True) -> None:
        self.nodes: dict[int, Node] = {}
        self.edges: dict[int, list[Edge]] = {}
        self.rev_adj: Optional[dict[int, list[int]]] = {} if reverse_adjacency else None
        self._grid: dict[tuple[int, int], list[Node]] = {}
        self._name_pool: list[str] = [""]
        self._name_index: dict[str, int] = {}
        self._edge_polylines: dict[EdgeKey, tuple[Point, ...]] = {}
        self._poly_lock = threading.Lock()

    # ---- names ---------------------------------------------------------------

    def intern_name(self, name: str) -> int:
        """Pool index for ``name``, adding it when new; "" is always 0."""
        if not name:
            return 0
        idx = self._name_index.get(name)
        if idx is None:
            idx = len(self._name_pool)
            self._name_pool.append(name)
            self._name_index[name] = idx
        return idx

    def name_for(self, idx: int) -> str:
        """Street name for a pool index; unknown indices give ""."""
        if 0 <= idx < len(self._name_pool):
            return self._name_pool[idx]
        return ""

    def set_edge_name(self, from_id: int, edge_idx: int, name: str) -> None:
        """Name the ``edge_idx``-th outgoing edge of ``from_id``, if it exists."""
        edges = self.edges.get(from_id)
        if edges is not None and 0 <= edge_idx < len(edges):
            edges[edge_idx].name_idx = self.intern_name(name)

    # ---- construction --------------------------------------------------------

    def add_node(self, node: Node) -> None:
        self.nodes[node.id] = node
        self._grid.setdefault(_cell_for(node.lat, node.lng), []).append(node)

    def add_edge(self, from_id: int, edge: Edge) -> None:
        """Append ``edge`` to ``from_id`` and update flags and reverse links."""
        self.edges.setdefault(from_id, []).append(edge)
        for endpoint in (from_id, edge.to):
            node = self.nodes.get(endpoint)
            if node is not None:
                node.flags |= edge.flags
        if self.rev_adj is not None:
            self.rev_adj.setdefault(edge.to, []).append(from_id)

    def node_count(self) -> int:
        return len(self.nodes)

    # ---- snapping ------------------------------------------------------------

    def nearest_node(self, lat: float, lng: float) -> Optional[Node]:
        """The closest node by great-circle distance (exhaustive scan)."""
        return min(
            self.nodes.values(),
            key=lambda n: haversine(lat, lng, n.lat, n.lng),
            default=None,
        )

    def nearest_node_within(self, lat: float, lng: float, max_km: float) -> Optional[Node]:
        """The closest node within ``max_km``, or None."""
        return self._nearest_within(lat, lng, max_km, None)

    def nearest_routable_node_within(
        self, lat: float, lng: float, max_km: float, edge_ok: Optional[EdgeFilter]
    ) -> Optional[Node]:
        """The closest node within ``max_km`` usable by the given profile."""
        return self._nearest_within(lat, lng, max_km, edge_ok)

    def _nearest_within(
        self, lat: float, lng: float, max_km: float, edge_ok: Optional[EdgeFilter]
    ) -> Optional[Node]:
        if max_km <= 0:
            return None
        if not self._grid:
            node = self.nearest_node(lat, lng)
            if (
                node is not None
                and self.node_routable(node.id, edge_ok)
                and haversine(lat, lng, node.lat, node.lng) <= max_km
            ):
                return node
            return None

        c_lat, c_lng = _cell_for(lat, lng)
        radius = max(1, math.ceil(max_km / (111.0 * GRID_CELL_SIZE_DEG)) + 1)
        nearest: Optional[Node] = None
        best = math.inf
        for d_lat in range(-radius, radius + 1):
            for d_lng in range(-radius, radius + 1):
                for node in self._grid.get((c_lat + d_lat, c_lng + d_lng), ()):
                    if not self.node_routable(node.id, edge_ok):
                        continue
                    d = haversine(lat, lng, node.lat, node.lng)
                    if d < best:
                        best = d
                        nearest = node
        if nearest is None or best > max_km:
            return None
        return nearest

    def node_routable(self, node_id: int, edge_ok: Optional[EdgeFilter]) -> bool:
        """True when the node can serve as a route endpoint for ``edge_ok``."""
        if edge_ok is None:
            return True
        node = self.nodes.get(node_id)
        if node is None or not node.flags:
            return False
        outgoing = self.edges.get(node_id, [])
        if not outgoing:
            # Destination-only node: judge it by the flags of incoming edges.
            return edge_ok(Edge(flags=node.flags))
        return any(edge_ok(e) for e in outgoing)

    # ---- edge geometry overrides --------------------------------------------

    def set_edge_polyline(self, from_id: int, to_id: int, points: Iterable[Point]) -> None:
        """Store the real-world geometry for a directed edge."""
        with self._poly_lock:
            self._edge_polylines[EdgeKey(from_id, to_id)] = tuple(points)

    def edge_polyline(self, from_id: int, to_id: int) -> Optional[tuple[Point, ...]]:
        """Stored geometry for a directed edge, or None."""
        with self._poly_lock:
            return self._edge_polylines.get(EdgeKey(from_id, to_id))

    def edge_polyline_count(self) -> int:
        with self._poly_lock:
            return len(self._edge_polylines)