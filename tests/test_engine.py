import threading

import pytest

from georoute.astar import PathResult
from georoute.engine import Engine, Route, append_point, flight_arc
from georoute.geometry import Point
from georoute.graph import AccessFlags, Edge, Graph, Node
from georoute.highway import parse_highway_kind
from georoute.profiles import TransportMode


def add_node(g, node_id, lat, lng):
    g.add_node(Node(id=node_id, lat=lat, lng=lng))


def add_edge(g, from_id, to, dist, speed, highway, car, motorcycle, bus, foot):
    flags = AccessFlags.NONE
    if car:
        flags |= AccessFlags.CAR
    if motorcycle:
        flags |= AccessFlags.MOTORCYCLE
    if bus:
        flags |= AccessFlags.BUS
    if foot:
        flags |= AccessFlags.FOOT
    g.add_edge(
        from_id,
        Edge(
            to=to,
            distance_km=dist,
            speed_kmh=speed,
            time_hours=dist / speed,
            kind=parse_highway_kind(highway),
            flags=flags,
        ),
    )


def three_path_graph(speed2=60, speed3=60):
    g = Graph()
    add_node(g, 1, 0, 0)
    add_node(g, 2, 0, 0.01)
    add_node(g, 3, 0.01, 0)
    add_node(g, 4, 0, 0.02)
    add_node(g, 5, -0.01, 0)
    add_edge(g, 1, 2, 1, 60, "residential", True, True, True, True)
    add_edge(g, 2, 4, 1, 60, "residential", True, True, True, True)
    add_edge(g, 1, 3, 2, speed2, "secondary", True, True, True, True)
    add_edge(g, 3, 4, 2, speed2, "secondary", True, True, True, True)
    add_edge(g, 1, 5, 3, speed3, "tertiary", True, True, True, True)
    add_edge(g, 5, 4, 3, speed3, "tertiary", True, True, True, True)
    return g


def test_car_route_optimizes_fastest_time_not_shortest_distance():
    g = Graph()
    add_node(g, 1, 0, 0)
    add_node(g, 2, 0, 0.01)
    add_node(g, 3, 0.01, 0)
    add_node(g, 4, 0, 0.02)
    add_edge(g, 1, 2, 1, 10, "residential", True, True, True, True)
    add_edge(g, 2, 4, 1, 10, "residential", True, True, True, True)
    add_edge(g, 1, 3, 2, 100, "primary", True, True, True, False)
    add_edge(g, 3, 4, 2, 100, "primary", True, True, True, False)

    route = Engine(avg_speed_kmh=40, graph=g).calculate(0, 0, 0, 0.02, TransportMode.CAR)
    assert route.distance == 4
    assert route.duration < 3


def test_cancelled_search_does_not_return_ground_fallback():
    g = Graph()
    add_node(g, 1, 0, 0)
    add_node(g, 2, 0, 0.01)
    add_edge(g, 1, 2, 1, 60, "residential", True, True, True, True)
    cancel = threading.Event()
    cancel.set()

    routes = Engine(avg_speed_kmh=40, graph=g).calculate_alternatives(
        0, 0, 0, 0.01, TransportMode.CAR, 1, cancel
    )
    assert routes == []


def test_long_distance_car_route_does_not_filter_minor_roads():
    g = Graph()
    add_node(g, 1, 0, 0)
    add_node(g, 2, 0, 0.25)
    add_node(g, 3, 0.25, 0)
    add_node(g, 4, 0, 0.50)
    add_edge(g, 1, 2, 30, 100, "residential", True, True, True, True)
    add_edge(g, 2, 4, 30, 100, "residential", True, True, True, True)
    add_edge(g, 1, 3, 40, 30, "primary", True, True, True, False)
    add_edge(g, 3, 4, 40, 30, "primary", True, True, True, False)

    route = Engine(avg_speed_kmh=40, graph=g).calculate(0, 0, 0, 0.50, TransportMode.CAR)
    assert route.distance == 60
    assert len(route.points) == 3
    assert route.points[1].lng == 0.25


def test_car_route_includes_turn_by_turn_instructions():
    g = Graph()
    add_node(g, 1, 0, 0)
    add_node(g, 2, 0, 0.01)
    add_node(g, 3, 0.01, 0.01)
    add_edge(g, 1, 2, 1, 60, "residential", True, True, True, True)
    g.set_edge_name(1, 0, "First St")
    add_edge(g, 2, 3, 1, 60, "primary", True, True, True, True)
    g.set_edge_name(2, 0, "Second St")

    route = Engine(avg_speed_kmh=40, graph=g).calculate(0, 0, 0.01, 0.01, TransportMode.CAR)
    assert len(route.instructions) >= 3
    assert route.instructions[0].type == "depart"
    assert route.instructions[1].type == "turn"
    assert route.instructions[1].modifier == "left"
    assert route.instructions[-1].type == "arrive"


def test_instructions_hide_unnamed_link_road_classes():
    g = Graph()
    add_node(g, 1, 0, 0)
    add_node(g, 2, 0, 0.01)
    add_node(g, 3, 0.0001, 0.011)
    add_node(g, 4, 0.0002, 0.012)
    add_node(g, 5, 0.001, 0.02)
    add_edge(g, 1, 2, 1, 60, "primary", True, True, True, False)
    g.set_edge_name(1, 0, "Main Road")
    add_edge(g, 2, 3, 0.015, 40, "primary_link", True, True, True, False)
    add_edge(g, 3, 4, 0.011, 40, "primary_link", True, True, True, False)
    add_edge(g, 4, 5, 1, 60, "primary", True, True, True, False)
    g.set_edge_name(4, 0, "Main Road")

    route = Engine(avg_speed_kmh=40, graph=g).calculate(0, 0, 0.001, 0.02, TransportMode.CAR)
    assert route.instructions
    for inst in route.instructions:
        assert "primary_link" not in inst.text
        assert inst.street_name != "primary_link"


def test_instructions_collapse_straight_continues_until_next_street():
    g = Graph()
    add_node(g, 1, 0, 0)
    add_node(g, 2, 0, 0.01)
    add_node(g, 3, 0, 0.02)
    add_node(g, 4, 0, 0.03)
    add_node(g, 5, 0.01, 0.03)
    add_edge(g, 1, 2, 1, 60, "residential", True, True, True, True)
    g.set_edge_name(1, 0, "A Street")
    add_edge(g, 2, 3, 1, 60, "residential", True, True, True, True)
    g.set_edge_name(2, 0, "B Street")
    add_edge(g, 3, 4, 1, 60, "residential", True, True, True, True)
    g.set_edge_name(3, 0, "C Street")
    add_edge(g, 4, 5, 1, 60, "primary", True, True, True, True)
    g.set_edge_name(4, 0, "D Street")

    route = Engine(avg_speed_kmh=40, graph=g).calculate(0, 0, 0.01, 0.03, TransportMode.CAR)
    continues = [i for i in route.instructions if i.type == "continue"]
    assert len(continues) == 1
    text = continues[0].text
    assert "پس از" in text
    assert "به چپ بپیچید" in text
    assert "D Street" in text


def test_walking_can_use_pedestrian_edges_that_cars_cannot():
    g = Graph()
    add_node(g, 1, 0, 0)
    add_node(g, 2, 0, 0.02)
    add_node(g, 3, 0, 0.01)
    add_node(g, 4, 0.01, 0.01)
    add_edge(g, 1, 3, 1, 5, "footway", False, False, False, True)
    add_edge(g, 3, 2, 1, 5, "footway", False, False, False, True)
    add_edge(g, 1, 4, 5, 60, "primary", True, True, True, False)
    add_edge(g, 4, 2, 5, 60, "primary", True, True, True, False)

    e = Engine(avg_speed_kmh=40, graph=g)
    assert e.calculate(0, 0, 0, 0.02, TransportMode.WALKING).distance == 2
    assert e.calculate(0, 0, 0, 0.02, TransportMode.CAR).distance == 10


def test_walking_prefers_pedestrian_path_over_shorter_shared_road():
    g = Graph()
    add_node(g, 1, 0, 0)
    add_node(g, 2, 0, 0.01)
    add_node(g, 3, 0.006, 0.005)
    add_edge(g, 1, 2, 1.0, 30, "residential", True, True, True, True)
    add_edge(g, 1, 3, 0.8, 5, "footway", False, False, False, True)
    add_edge(g, 3, 2, 0.8, 5, "footway", False, False, False, True)

    e = Engine(avg_speed_kmh=40, graph=g)
    walking = e.calculate(0, 0, 0, 0.01, TransportMode.WALKING)
    car = e.calculate(0, 0, 0, 0.01, TransportMode.CAR)
    assert walking.distance == 1.6
    assert len(walking.points) == 3
    assert walking.points[1].lat == 0.006
    assert car.distance == 1.0


def test_car_snap_ignores_nearest_pedestrian_only_node():
    g = Graph()
    add_node(g, 1, 0, 0)
    add_node(g, 2, 0, 0.001)
    add_node(g, 3, 0, 0.002)
    add_node(g, 4, 0, 0.003)
    add_edge(g, 1, 2, 1, 5, "footway", False, False, False, True)
    add_edge(g, 3, 4, 1, 30, "residential", True, True, True, True)

    route = Engine(avg_speed_kmh=40, graph=g).calculate(0, 0.0001, 0, 0.003, TransportMode.CAR)
    assert len(route.points) >= 3
    assert route.points[0].lng == 0.0001
    assert route.points[1].lng == 0.002


def test_calculate_alternatives_returns_sorted_unique_routes():
    e = Engine(avg_speed_kmh=40, graph=three_path_graph())
    routes = e.calculate_alternatives(0, 0, 0, 0.02, TransportMode.CAR, 3)
    assert len(routes) == 3
    for prev, cur in zip(routes, routes[1:]):
        assert cur.duration >= prev.duration
        assert cur.polyline != prev.polyline


def test_calculate_alternatives_returns_three_distinct_routes():
    e = Engine(40, three_path_graph(speed2=80, speed3=70), 0)
    routes = e.calculate_alternatives(0, 0, 0, 0.02, TransportMode.CAR, 3)
    assert len(routes) == 3
    assert len({r.polyline for r in routes}) == 3


def test_non_positive_k_gives_single_route():
    e = Engine(40, three_path_graph(), 0)
    routes = e.calculate_alternatives(0, 0, 0, 0.02, TransportMode.CAR, 0)
    assert len(routes) == 1
    assert routes[0].distance == 2


def test_long_routes_limit_alternatives_to_one():
    g = Graph()
    add_node(g, 1, 0, 0)
    add_node(g, 2, 0, 0.5)
    add_node(g, 3, 0.5, 0.5)
    add_node(g, 4, 0, 1.0)
    add_edge(g, 1, 2, 56, 100, "primary", True, True, True, True)
    add_edge(g, 2, 4, 56, 100, "primary", True, True, True, True)
    add_edge(g, 1, 3, 80, 100, "primary", True, True, True, True)
    add_edge(g, 3, 4, 80, 100, "primary", True, True, True, True)

    routes = Engine(40, g, 0).calculate_alternatives(0, 0, 0, 1.0, TransportMode.CAR, 3)
    assert len(routes) == 1
    assert routes[0].distance == 112


def test_calculate_car_uses_graph():
    g = Graph()
    add_node(g, 1, 0.0, 0.0)
    add_node(g, 2, 0.0, 0.009)
    add_node(g, 3, 0.0, 0.018)
    add_edge(g, 1, 2, 1.0, 60, "residential", True, True, True, True)
    add_edge(g, 2, 3, 1.0, 60, "residential", True, True, True, True)

    route = Engine(40, g, 0).calculate(0.0, 0.0, 0.0, 0.018, TransportMode.CAR)
    assert len(route.points) == 3
    assert route.distance == 2
    assert route.duration == 2


def test_calculate_airplane_always_flight_arc():
    g = Graph()
    add_node(g, 1, 35.0, 51.0)
    add_node(g, 2, 36.0, 52.0)
    add_edge(g, 1, 2, 150, 800, "primary", True, True, True, False)

    route = Engine(40, g, 0).calculate(35.0, 51.0, 36.0, 52.0, TransportMode.AIRPLANE)
    assert len(route.points) == 52
    assert route.points[0].lat == 35.0
    assert route.points[-1].lat == 36.0
    assert route.duration >= 30


def test_calculate_walking_blocks_motorway():
    g = Graph()
    add_node(g, 1, 0.0, 0.0)
    add_node(g, 2, 0.0, 0.009)
    add_edge(g, 1, 2, 1, 120, "motorway", True, True, True, True)

    route = Engine(40, g, 0).calculate(0.0, 0.0, 0.0, 0.009, TransportMode.WALKING)
    assert route.distance > 0
    assert len(route.points) == 2


def test_calculate_falls_back_to_haversine_when_no_graph():
    e = Engine(avg_speed_kmh=60)
    route = e.calculate(35.6892, 51.3890, 32.6539, 51.6660, TransportMode.CAR)
    assert 300 < route.distance < 400
    assert len(route.points) == 2
    assert not e.has_graph()


def test_unknown_mode_falls_back_to_straight_line():
    e = Engine(40, three_path_graph(), 0)
    routes = e.calculate_alternatives(0, 0, 0, 0.02, "hovercraft", 1)
    assert len(routes) == 1
    assert len(routes[0].points) == 2


def test_haversine_route_uses_average_speed_for_car():
    route = Engine(avg_speed_kmh=60).haversine_route(0, 0, 0, 1, TransportMode.CAR)
    # At 60 km/h minutes equal kilometres.
    assert route.duration == pytest.approx(route.distance, abs=0.01)
    assert route.instructions == []


def test_fallback_speed_rules():
    assert Engine(avg_speed_kmh=55).fallback_speed(TransportMode.CAR) == 55
    assert Engine(avg_speed_kmh=55).fallback_speed(TransportMode.WALKING) == 5
    assert Engine(avg_speed_kmh=55).fallback_speed(TransportMode.AIRPLANE) == 55
    assert Engine().fallback_speed(TransportMode.CAR) == 40


def test_graph_flags():
    e = Engine(40, Graph(), 0)
    assert e.has_graph()
    assert not e.has_rail_graph()
    assert not e.has_transit_graph()
    e.rail_graph = Graph()
    assert e.has_rail_graph()


def test_path_to_route_adds_snap_distance():
    g = Graph()
    add_node(g, 1, 0, 0)
    path = PathResult(nodes=[g.nodes[1]])
    route = Engine(40, g, 0).path_to_route(path, 0, 0.001, 0, 0, TransportMode.CAR)
    assert route.distance == pytest.approx(0.111, abs=0.001)
    assert route.duration > 0
    assert isinstance(route, Route)
    assert route.instructions[-1].type == "arrive"


def test_flight_arc_shape():
    start = Point(35.0, 51.0)
    end = Point(36.0, 52.0)
    pts = flight_arc(start, end, 10)
    assert len(pts) == 12
    assert pts[0] == start
    assert pts[-1] == end
    # Northern hemisphere arcs bow north of the straight chord.
    t = 5 / 11
    assert pts[5].lat > start.lat + t * (end.lat - start.lat)


def test_append_point_skips_duplicates():
    points = []
    append_point(points, Point(1.0, 2.0))
    append_point(points, Point(1.0, 2.00000001))
    append_point(points, Point(1.5, 2.0))
    assert points == [Point(1.0, 2.0), Point(1.5, 2.0)]