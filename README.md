# georoute

In-memory routing for roads, railways and city public transport.

- A graph of nodes and directed edges (`georoute.graph`). A grid index snaps
  coordinates to the nearest routable node.
- Exact Dijkstra search with an optional A* heuristic (`georoute.astar`), and
  bidirectional search (`georoute.bidir`).
- Yen's k-fastest-paths for alternative routes (`georoute.yen`).
- Per-mode access rules and speeds for car, motorcycle, bus, walking, train and
  public transport (`georoute.profiles`).
- Turn-by-turn instructions with Persian text (`georoute.instructions`).
- Google Encoded Polyline encoding and decoding, great-circle distance, and
  rounding (`georoute.geometry`).
- A straight-line fallback when no graph route exists, and curved flight arcs
  for airplane mode (`georoute.engine`).
- Multi-modal journeys (`georoute.multimodal`): walk, then train, then walk; or
  chains of bus and metro across a transit overlay.

## Installation

```
pip install .
```

The package has no runtime dependencies. To run the tests:

```
pip install ".[test]"
pytest
```

## Building a graph and routing

```python
from georoute.graph import Graph, Node, Edge, AccessFlags
from georoute.highway import parse_highway_kind
from georoute.engine import Engine
from georoute.profiles import TransportMode

g = Graph()
g.add_node(Node(1, 0.0, 0.0))
g.add_node(Node(2, 0.0, 0.01))
g.add_node(Node(3, 0.01, 0.01))

flags = AccessFlags.CAR | AccessFlags.MOTORCYCLE | AccessFlags.BUS | AccessFlags.FOOT
g.add_edge(1, Edge(to=2, distance_km=1.0, speed_kmh=60, time_hours=1 / 60,
                   kind=parse_highway_kind("residential"), flags=flags))
g.set_edge_name(1, 0, "First St")
g.add_edge(2, Edge(to=3, distance_km=1.0, speed_kmh=60, time_hours=1 / 60,
                   kind=parse_highway_kind("primary"), flags=flags))
g.set_edge_name(2, 0, "Second St")

engine = Engine(40, g)
route = engine.calculate(0.0, 0.0, 0.01, 0.01, TransportMode.CAR)
print(route.distance, route.duration, route.polyline)
for step in route.instructions:
    print(step.type, step.modifier, step.text)
```

`Engine.calculate_alternatives(..., k=3)` returns up to `k` distinct routes,
sorted by duration. When the straight-line distance is over 50 km, only the
primary route is computed. When the endpoints cannot be snapped within 0.3 km,
or when no path exists, the engine returns a single straight-line route at the
mode's fallback speed.

Calls that search accept an optional `cancel` argument. This is any object with
an `is_set()` method, such as `threading.Event`. Once it is set,
`calculate_alternatives` returns an empty list instead of a fallback route.

Mode strings from clients go through `georoute.profiles.normalize_mode`. It
accepts aliases such as `walk`, `foot`, `transit` and `pt`. An empty string
becomes `car`. Any other unknown mode raises `UnsupportedModeError`.

## Searching directly

```python
from georoute.yen import k_fastest_paths
from georoute.profiles import TransportMode, profile_for

p = profile_for(TransportMode.CAR)
paths = k_fastest_paths(g, 1, 3, k=2, edge_ok=p.edge_allowed,
                        speed_fn=p.edge_speed, heuristic_speed_kmh=p.heuristic_speed_kmh)
```

Each `PathResult` holds `nodes`, `edges`, `distance_km` and `time_hours`. The
searches raise `NoPathError` when the nodes are not connected, and
`SearchCancelled` when the cancel token is set. They raise `ValueError` when an
endpoint is not in the graph.

## Polylines

```python
from georoute.geometry import Point, encode_polyline, decode_polyline

encoded = encode_polyline([Point(35.6892, 51.389), Point(35.7, 51.4)])
points = decode_polyline(encoded)  # raises ValueError for malformed input
```

## Multi-modal journeys

Give the engine a rail graph or a transit overlay graph:
`Engine(40, road, rail_graph=rail, transit_graph=transit)`. With these,
`georoute.multimodal.compute_train_route(engine, ...)` and
`compute_transit_route(engine, ...)` return lists of `MultiModalLeg`, each with
its own mode and route. If no journey is possible, they return an empty list.
The geometry of transit edges is computed along the road or rail graph when
first needed, then cached on the transit graph.

## What it does not do

This is a library only. It has no command-line program and no HTTP server.
It does not load graphs from OpenStreetMap files or from any database, so
graphs must be built in code. It does not call external routing services.