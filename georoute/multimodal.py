"""Multi-modal journeys: walk–train–walk and city public transport."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Optional, Sequence

from georoute.astar import CancelToken, NoPathError, PathResult, SearchCancelled, a_star
from georoute.engine import Engine, Route, append_point
from georoute.geometry import Point, encode_polyline, round_to
from georoute.graph import Edge, Graph, Node
from georoute.highway import HighwayKind
from georoute.instructions import Instruction
from georoute.profiles import ModeProfile, TransportMode, profile_for
from georoute.yen import k_fastest_paths

# Stations can be far from arbitrary origins, so the rail snap is generous.
RAIL_SNAP_KM = 50.0
# Farthest an endpoint may be from the nearest bus stop or metro station.
TRANSIT_SNAP_KM = 5.0
# Average wait and boarding time added to each motorised transit leg.
TRANSIT_BOARDING_PENALTY_MIN = 3.0
# Snap radius when laying a transit edge onto the road or rail graph.
TRANSIT_SNAP_KM_FOR_GEOM = 0.5

_MAX_POLYLINE_WORKERS = 4
_METRO_KINDS = frozenset({HighwayKind.SUBWAY, HighwayKind.LIGHT_RAIL, HighwayKind.TRAM})

_SEARCH_ERRORS = (NoPathError, SearchCancelled, ValueError)


@dataclass
class MultiModalLeg:
    """One segment of a multi-modal journey."""

    mode: TransportMode
    route: Route


def _cancelled(cancel: Optional[CancelToken]) -> bool:
    return cancel is not None and cancel.is_set()


def _walk_leg(
    engine: Engine,
    start_lat: float,
    start_lng: float,
    end_lat: float,
    end_lng: float,
    cancel: Optional[CancelToken],
) -> Route:
    if engine.graph is not None:
        routes = engine.graph_routes(
            start_lat, start_lng, end_lat, end_lng, TransportMode.WALKING, 1, cancel
        )
        if routes:
            return routes[0]
    return engine.haversine_route(start_lat, start_lng, end_lat, end_lng, TransportMode.WALKING)


def _rail_leg(engine: Engine, origin: Node, dest: Node, cancel: Optional[CancelToken]) -> Route:
    rail = engine.rail_graph
    profile = profile_for(TransportMode.TRAIN)
    if rail is not None and profile is not None:
        try:
            paths = k_fastest_paths(
                rail,
                origin.id,
                dest.id,
                1,
                engine.yen_spur_cap,
                profile.edge_allowed,
                profile.edge_speed,
                profile.heuristic_speed_kmh,
                cancel,
            )
        except _SEARCH_ERRORS:
            paths = []
        if paths:
            return engine.path_to_route(
                paths[0],
                origin.lat,
                origin.lng,
                dest.lat,
                dest.lng,
                TransportMode.TRAIN,
                rail.name_for,
            )
    # Disconnected rail components: straight-line estimate at train speed.
    return engine.haversine_route(origin.lat, origin.lng, dest.lat, dest.lng, TransportMode.TRAIN)


def compute_train_route(
    engine: Engine,
    start_lat: float,
    start_lng: float,
    end_lat: float,
    end_lng: float,
    cancel: Optional[CancelToken] = None,
) -> list[MultiModalLeg]:
    """A walk → train → walk journey; empty when no rail journey is possible."""
    rail = engine.rail_graph
    if rail is None:
        return []
    profile = profile_for(TransportMode.TRAIN)
    origin = rail.nearest_routable_node_within(start_lat, start_lng, RAIL_SNAP_KM, profile.edge_allowed)
    dest = rail.nearest_routable_node_within(end_lat, end_lng, RAIL_SNAP_KM, profile.edge_allowed)
    if origin is None or dest is None or origin.id == dest.id:
        return []

    train = _rail_leg(engine, origin, dest, cancel)
    walk_in = _walk_leg(engine, start_lat, start_lng, origin.lat, origin.lng, cancel)
    walk_out = _walk_leg(engine, dest.lat, dest.lng, end_lat, end_lng, cancel)
    return [
        MultiModalLeg(TransportMode.WALKING, walk_in),
        MultiModalLeg(TransportMode.TRAIN, train),
        MultiModalLeg(TransportMode.WALKING, walk_out),
    ]


def compute_transit_route(
    engine: Engine,
    start_lat: float,
    start_lng: float,
    end_lat: float,
    end_lng: float,
    cancel: Optional[CancelToken] = None,
) -> list[MultiModalLeg]:
    """A walk → bus/metro chain → walk journey, one leg per line or transfer.

    Empty when no transit graph is loaded or no path is found.
    """
    transit = engine.transit_graph
    if transit is None:
        return []
    profile = profile_for(TransportMode.PUBLIC_TRANSPORT)
    origin = transit.nearest_routable_node_within(
        start_lat, start_lng, TRANSIT_SNAP_KM, profile.edge_allowed
    )
    dest = transit.nearest_routable_node_within(end_lat, end_lng, TRANSIT_SNAP_KM, profile.edge_allowed)
    if origin is None or dest is None or origin.id == dest.id:
        return []

    try:
        path = a_star(
            transit, origin.id, dest.id, profile.edge_allowed, profile.edge_speed, 0.0, None, None, cancel
        )
    except _SEARCH_ERRORS:
        return []
    if not path.edges:
        return []

    legs: list[MultiModalLeg] = []
    walk_in = _walk_leg(engine, start_lat, start_lng, origin.lat, origin.lng, cancel)
    if walk_in.distance > 0:
        legs.append(MultiModalLeg(TransportMode.WALKING, walk_in))

    warm_transit_polylines(engine, path, cancel)
    legs.extend(split_transit_legs(engine, path))

    walk_out = _walk_leg(engine, dest.lat, dest.lng, end_lat, end_lng, cancel)
    if walk_out.distance > 0:
        legs.append(MultiModalLeg(TransportMode.WALKING, walk_out))
    return legs


def warm_transit_polylines(
    engine: Engine, path: Optional[PathResult], cancel: Optional[CancelToken] = None
) -> None:
    """Cache real geometry for every non-transfer edge of ``path``.

    Transfers keep their straight line; work runs on a small thread pool.
    """
    transit = engine.transit_graph
    if path is None or transit is None:
        return
    pending = [
        (edge, a, b)
        for edge, a, b in zip(path.edges, path.nodes, path.nodes[1:])
        if edge.kind != HighwayKind.TRANSFER and transit.edge_polyline(a.id, b.id) is None
    ]
    if not pending:
        return

    def work(job: tuple[Edge, Node, Node]) -> None:
        if _cancelled(cancel):
            return
        edge, a, b = job
        ensure_edge_polyline(engine, a.id, b.id, edge.kind, a.lat, a.lng, b.lat, b.lng, cancel)

    with ThreadPoolExecutor(max_workers=min(len(pending), _MAX_POLYLINE_WORKERS)) as pool:
        list(pool.map(work, pending))


def edge_mode(kind: HighwayKind) -> TransportMode:
    """The leg mode a transit edge class is shown as."""
    if kind in _METRO_KINDS:
        return TransportMode.TRAIN
    if kind == HighwayKind.BUS_ROUTE:
        return TransportMode.BUS
    if kind == HighwayKind.TRANSFER:
        return TransportMode.WALKING
    return TransportMode.PUBLIC_TRANSPORT


def split_transit_legs(engine: Engine, path: Optional[PathResult]) -> list[MultiModalLeg]:
    """Group consecutive edges of the same line and mode into legs."""
    if path is None or not path.edges or not path.nodes or engine.transit_graph is None:
        return []
    legs: list[MultiModalLeg] = []
    edges = path.edges
    seg_start = 0
    for i in range(1, len(edges) + 1):
        if i < len(edges) and (
            edges[i].name_idx == edges[seg_start].name_idx
            and edge_mode(edges[i].kind) == edge_mode(edges[seg_start].kind)
        ):
            continue
        leg = _segment_leg(engine.transit_graph, path.nodes[seg_start : i + 1], edges[seg_start:i])
        if leg is not None:
            legs.append(leg)
        seg_start = i
    return legs


def _segment_leg(
    transit: Graph, nodes: Sequence[Node], edges: Sequence[Edge]
) -> Optional[MultiModalLeg]:
    if len(nodes) < 2 or not edges:
        return None

    points: list[Point] = []
    append_point(points, Point(lat=nodes[0].lat, lng=nodes[0].lng))
    for edge, a, b in zip(edges, nodes, nodes[1:]):
        poly = transit.edge_polyline(a.id, b.id)
        if poly is not None and len(poly) >= 2:
            # The first point repeats the previous tail.
            for p in poly[1:]:
                append_point(points, p)
        else:
            append_point(points, Point(lat=b.lat, lng=b.lng))

    total_km = sum(e.distance_km for e in edges)
    total_hours = sum(float(e.time_hours) for e in edges)
    mode = edge_mode(edges[0].kind)
    duration = total_hours * 60
    if mode != TransportMode.WALKING:
        duration += TRANSIT_BOARDING_PENALTY_MIN

    line_name = transit.name_for(edges[0].name_idx)
    instructions = [
        Instruction(
            index=i,
            type=transit_instruction_type(edge.kind, i == 0),
            text=transit_instruction_text(edge.kind, line_name, i == 0),
            distance_km=round_to(edge.distance_km, 3),
            duration_min=round_to(float(edge.time_hours) * 60, 2),
            location=Point(lat=a.lat, lng=a.lng),
            street_name=line_name,
        )
        for i, (edge, a) in enumerate(zip(edges, nodes))
    ]
    route = Route(
        distance=round_to(total_km, 3),
        duration=round_to(duration, 2),
        points=points,
        polyline=encode_polyline(points),
        instructions=instructions,
    )
    return MultiModalLeg(mode, route)


def transit_instruction_type(kind: HighwayKind, first: bool) -> str:
    """Instruction type for a transit edge."""
    if kind == HighwayKind.TRANSFER:
        return "walk_transfer"
    if kind == HighwayKind.BUS_ROUTE:
        return "board_bus" if first else "continue_bus"
    if kind in _METRO_KINDS:
        return "board_metro" if first else "continue_metro"
    return "continue"


def transit_instruction_text(kind: HighwayKind, line_name: str, first: bool) -> str:
    """Instruction text for a transit edge."""
    if kind == HighwayKind.TRANSFER:
        return "Walk to next stop"
    if kind == HighwayKind.BUS_ROUTE or kind in _METRO_KINDS:
        return ("Board " if first else "Stay on ") + line_name
    return line_name


def ensure_edge_polyline(
    engine: Engine,
    from_id: int,
    to_id: int,
    kind: HighwayKind,
    from_lat: float,
    from_lng: float,
    to_lat: float,
    to_lng: float,
    cancel: Optional[CancelToken] = None,
) -> None:
    """Compute and cache the geometry of one transit edge if not cached yet."""
    transit = engine.transit_graph
    if transit is None or kind == HighwayKind.TRANSFER:
        return
    if transit.edge_polyline(from_id, to_id) is not None:
        return
    poly = compute_underlying_polyline(
        kind, from_lat, from_lng, to_lat, to_lng, engine.graph, engine.rail_graph, cancel
    )
    if len(poly) >= 2:
        transit.set_edge_polyline(from_id, to_id, poly)


def _graph_and_profile(
    kind: HighwayKind, road: Optional[Graph], rail: Optional[Graph]
) -> tuple[Optional[Graph], Optional[ModeProfile]]:
    if kind == HighwayKind.BUS_ROUTE:
        return road, profile_for(TransportMode.BUS)
    if kind in _METRO_KINDS:
        return rail, profile_for(TransportMode.TRAIN)
    return None, None


def compute_underlying_polyline(
    kind: HighwayKind,
    from_lat: float,
    from_lng: float,
    to_lat: float,
    to_lng: float,
    road: Optional[Graph],
    rail: Optional[Graph],
    cancel: Optional[CancelToken] = None,
) -> list[Point]:
    """Geometry of a transit edge along the road or rail graph; empty if none."""
    graph, profile = _graph_and_profile(kind, road, rail)
    if graph is None or profile is None:
        return []

    start = graph.nearest_routable_node_within(
        from_lat, from_lng, TRANSIT_SNAP_KM_FOR_GEOM, profile.edge_allowed
    )
    end = graph.nearest_routable_node_within(to_lat, to_lng, TRANSIT_SNAP_KM_FOR_GEOM, profile.edge_allowed)
    if start is None or end is None or start.id == end.id:
        return []

    try:
        path = a_star(
            graph,
            start.id,
            end.id,
            profile.edge_allowed,
            profile.edge_speed,
            profile.heuristic_speed_kmh,
            None,
            None,
            cancel,
        )
    except _SEARCH_ERRORS:
        return []
    if not path.nodes:
        return []

    poly = [Point(lat=from_lat, lng=from_lng)]
    for node in path.nodes:
        append_point(poly, Point(lat=node.lat, lng=node.lng))
    append_point(poly, Point(lat=to_lat, lng=to_lng))
    return poly if len(poly) >= 2 else []