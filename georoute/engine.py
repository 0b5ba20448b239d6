"""Route calculation over the road graph with straight-line fallbacks."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Callable, Optional

from georoute.astar import CancelToken, NoPathError, PathResult, SearchCancelled
from georoute.geometry import EARTH_RADIUS_KM, Point, encode_polyline, haversine, round_to
from georoute.graph import Graph
from georoute.instructions import Instruction, build_instructions
from georoute.profiles import TransportMode, profile_for
from georoute.yen import k_fastest_paths

_log = logging.getLogger(__name__)

SNAP_THRESHOLD_KM = 0.3
# Above this straight-line distance alternatives are near-identical, so only
# the primary route is computed.
LONG_ROUTE_ALTS_THRESHOLD_KM = 50.0

_CRUISE_SPEED_KMH = 800.0
_TAKEOFF_LANDING_MIN = 30.0
_FLIGHT_ARC_POINTS = 50
_DEFAULT_SPEED_KMH = 40.0


@dataclass
class Route:
    """A calculated route: distance in km, duration in minutes."""

    distance: float = 0.0
    duration: float = 0.0
    points: list[Point] = field(default_factory=list)
    polyline: str = ""
    instructions: list[Instruction] = field(default_factory=list)


def _cancelled(cancel: Optional[CancelToken]) -> bool:
    return cancel is not None and cancel.is_set()


def append_point(points: list[Point], point: Point) -> None:
    """Append ``point`` unless it repeats the last point of ``points``."""
    if points:
        last = points[-1]
        if abs(last.lat - point.lat) < 1e-7 and abs(last.lng - point.lng) < 1e-7:
            return
    points.append(point)


def flight_arc(start: Point, end: Point, n: int) -> list[Point]:
    """``n + 2`` points on a quadratic Bézier arc curving toward the nearest pole."""
    mid_lat = (start.lat + end.lat) / 2
    mid_lng = (start.lng + end.lng) / 2

    lat1r = math.radians(start.lat)
    lat2r = math.radians(end.lat)
    d_lng = math.radians(end.lng - start.lng)
    y = math.sin(d_lng) * math.cos(lat2r)
    x = math.cos(lat1r) * math.sin(lat2r) - math.sin(lat1r) * math.cos(lat2r) * math.cos(d_lng)
    bearing = math.atan2(y, x)

    lift_km = haversine(start.lat, start.lng, end.lat, end.lng) * 0.25
    d = lift_km / EARTH_RADIUS_KM
    mid_lat_r = math.radians(mid_lat)
    mid_lng_r = math.radians(mid_lng)

    def dest_lat_r(perp: float) -> float:
        return math.asin(
            math.sin(mid_lat_r) * math.cos(d)
            + math.cos(mid_lat_r) * math.sin(d) * math.cos(perp)
        )

    perp1 = bearing - math.pi / 2
    perp2 = bearing + math.pi / 2
    perp = perp2 if abs(dest_lat_r(perp2)) > abs(dest_lat_r(perp1)) else perp1

    ctrl_lat_r = dest_lat_r(perp)
    ctrl_lng_r = mid_lng_r + math.atan2(
        math.sin(perp) * math.sin(d) * math.cos(mid_lat_r),
        math.cos(d) - math.sin(mid_lat_r) * math.sin(ctrl_lat_r),
    )
    ctrl = Point(lat=math.degrees(ctrl_lat_r), lng=math.degrees(ctrl_lng_r))

    def bezier(t: float) -> Point:
        s = 1 - t
        return Point(
            lat=s * s * start.lat + 2 * s * t * ctrl.lat + t * t * end.lat,
            lng=s * s * start.lng + 2 * s * t * ctrl.lng + t * t * end.lng,
        )

    return [start, *(bezier(i / (n + 1)) for i in range(1, n + 1)), end]


class Engine:
    """Graph router with straight-line fallback and optional rail/transit graphs."""

    def __init__(
        self,
        avg_speed_kmh: float = 0.0,
        graph: Optional[Graph] = None,
        yen_spur_cap: int = 0,
        rail_graph: Optional[Graph] = None,
        transit_graph: Optional[Graph] = None,
    ) -> None:
        self.avg_speed_kmh = avg_speed_kmh
        self.graph = graph
        self.yen_spur_cap = yen_spur_cap
        self.rail_graph = rail_graph
        self.transit_graph = transit_graph

    def has_graph(self) -> bool:
        return self.graph is not None

    def has_rail_graph(self) -> bool:
        return self.rail_graph is not None

    def has_transit_graph(self) -> bool:
        return self.transit_graph is not None

    def calculate(
        self,
        start_lat: float,
        start_lng: float,
        end_lat: float,
        end_lng: float,
        mode: str = TransportMode.CAR,
    ) -> Route:
        """The primary route for ``mode``."""
        routes = self.calculate_alternatives(start_lat, start_lng, end_lat, end_lng, mode, 1)
        if not routes:
            return self.haversine_route(start_lat, start_lng, end_lat, end_lng, TransportMode.CAR)
        return routes[0]

    def calculate_alternatives(
        self,
        start_lat: float,
        start_lng: float,
        end_lat: float,
        end_lng: float,
        mode: str = TransportMode.CAR,
        k: int = 1,
        cancel: Optional[CancelToken] = None,
    ) -> list[Route]:
        """Up to ``k`` routes sorted by duration.

        Falls back to one straight-line route when the graph cannot serve the
        request; returns an empty list once ``cancel`` is set.
        """
        if not mode:
            mode = TransportMode.CAR
        if k <= 0:
            k = 1
        if mode == TransportMode.AIRPLANE:
            return [self.airplane_route(start_lat, start_lng, end_lat, end_lng)]

        if self.graph is not None:
            routes = self.graph_routes(start_lat, start_lng, end_lat, end_lng, mode, k, cancel)
            if routes:
                return routes
            if _cancelled(cancel):
                return []
        return [self.haversine_route(start_lat, start_lng, end_lat, end_lng, mode)]

    def graph_routes(
        self,
        start_lat: float,
        start_lng: float,
        end_lat: float,
        end_lng: float,
        mode: str,
        k: int = 1,
        cancel: Optional[CancelToken] = None,
    ) -> list[Route]:
        """Routes found on the road graph; empty when none can be found."""
        if _cancelled(cancel) or self.graph is None:
            return []
        profile = profile_for(mode)
        if profile is None:
            return []

        graph = self.graph
        start = graph.nearest_routable_node_within(
            start_lat, start_lng, SNAP_THRESHOLD_KM, profile.edge_allowed
        )
        end = graph.nearest_routable_node_within(
            end_lat, end_lng, SNAP_THRESHOLD_KM, profile.edge_allowed
        )
        if start is None or end is None:
            return []

        effective_k = k
        if k > 1 and haversine(start_lat, start_lng, end_lat, end_lng) > LONG_ROUTE_ALTS_THRESHOLD_KM:
            effective_k = 1

        try:
            paths = k_fastest_paths(
                graph,
                start.id,
                end.id,
                effective_k,
                self.yen_spur_cap,
                profile.edge_allowed,
                profile.edge_speed,
                profile.heuristic_speed_kmh,
                cancel,
            )
        except (NoPathError, SearchCancelled):
            return []
        except ValueError as exc:
            if not _cancelled(cancel):
                _log.warning("[routing] search error (%s): %s", mode, exc)
            return []

        return [
            self.path_to_route(path, start_lat, start_lng, end_lat, end_lng, mode)
            for path in paths
        ]

    def path_to_route(
        self,
        path: PathResult,
        start_lat: float,
        start_lng: float,
        end_lat: float,
        end_lng: float,
        mode: str,
        name_for: Optional[Callable[[int], str]] = None,
    ) -> Route:
        """Turn a graph path into a Route, adding the snap legs at both ends."""
        if name_for is None and self.graph is not None:
            name_for = self.graph.name_for

        points: list[Point] = []
        append_point(points, Point(lat=start_lat, lng=start_lng))
        for node in path.nodes:
            append_point(points, Point(lat=node.lat, lng=node.lng))
        append_point(points, Point(lat=end_lat, lng=end_lng))

        speed = self.fallback_speed(mode)
        distance = path.distance_km
        snap = 0.0
        if path.nodes:
            first, last = path.nodes[0], path.nodes[-1]
            snap = haversine(start_lat, start_lng, first.lat, first.lng) + haversine(
                end_lat, end_lng, last.lat, last.lng
            )
            distance += snap

        duration = path.time_hours * 60
        if snap > 0:
            duration += snap / speed * 60
        if duration == 0 and distance > 0:
            duration = distance / speed * 60

        return Route(
            distance=round_to(distance, 3),
            duration=round_to(duration, 2),
            points=points,
            polyline=encode_polyline(points),
            instructions=build_instructions(
                path,
                mode,
                Point(lat=start_lat, lng=start_lng),
                Point(lat=end_lat, lng=end_lng),
                speed,
                name_for,
            ),
        )

    def haversine_route(
        self, start_lat: float, start_lng: float, end_lat: float, end_lng: float, mode: str
    ) -> Route:
        """A straight-line route at the mode's fallback speed."""
        distance = haversine(start_lat, start_lng, end_lat, end_lng)
        duration = distance / self.fallback_speed(mode) * 60
        points = [Point(lat=start_lat, lng=start_lng), Point(lat=end_lat, lng=end_lng)]
        return Route(
            distance=round_to(distance, 3),
            duration=round_to(duration, 2),
            points=points,
            polyline=encode_polyline(points),
        )

    def airplane_route(
        self, start_lat: float, start_lng: float, end_lat: float, end_lng: float
    ) -> Route:
        """A curved flight path at cruising speed plus takeoff and landing time."""
        distance = haversine(start_lat, start_lng, end_lat, end_lng)
        duration = distance / _CRUISE_SPEED_KMH * 60 + _TAKEOFF_LANDING_MIN
        points = flight_arc(
            Point(lat=start_lat, lng=start_lng),
            Point(lat=end_lat, lng=end_lng),
            _FLIGHT_ARC_POINTS,
        )
        return Route(
            distance=round_to(distance, 3),
            duration=round_to(duration, 2),
            points=points,
            polyline=encode_polyline(points),
        )

    def fallback_speed(self, mode: str) -> float:
        """Speed in km/h used where an edge or path gives none."""
        profile = profile_for(mode)
        if profile is not None and profile.fallback_speed > 0:
            return float(profile.fallback_speed)
        if self.avg_speed_kmh > 0:
            return float(self.avg_speed_kmh)
        return _DEFAULT_SPEED_KMH