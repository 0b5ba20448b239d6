"""Turn-by-turn maneuvers with Persian text for a found path."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from georoute.astar import PathResult, edge_travel_time_hours
from georoute.geometry import Point, round_to
from georoute.graph import Edge
from georoute.profiles import profile_for

NameFn = Callable[[int], str]

_ARRIVED = "به مقصد رسیدید"
_ARRIVING = "به مقصد می\u200cرسید"
_START = "حرکت را شروع کنید"
_STRAIGHT = "مستقیم ادامه دهید"
_UTURN = "دور بزنید"
_CONTINUE = "ادامه دهید"

_TURN_TEXT: dict[str, str] = {
    "slight_left": "کمی به چپ بپیچید",
    "left": "به چپ بپیچید",
    "sharp_left": "تند به چپ بپیچید",
    "slight_right": "کمی به راست بپیچید",
    "right": "به راست بپیچید",
    "sharp_right": "تند به راست بپیچید",
}


@dataclass
class Instruction:
    """One maneuver of a route."""

    index: int = 0
    type: str = ""
    modifier: str = ""
    text: str = ""
    distance_km: float = 0.0
    duration_min: float = 0.0
    location: Point = field(default_factory=Point)
    street_name: str = ""

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "index": self.index,
            "type": self.type,
            "modifier": self.modifier,
            "text": self.text,
            "distance_km": self.distance_km,
            "duration_min": self.duration_min,
            "location": {"lat": self.location.lat, "lng": self.location.lng},
        }
        if self.street_name:
            out["street_name"] = self.street_name
        return out


@dataclass(frozen=True)
class _Maneuver:
    node_index: int = 0
    typ: str = ""
    modifier: str = ""
    street: str = ""


def bearing_degrees(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Initial bearing from the first point to the second, in [0, 360)."""
    lat1r = math.radians(lat1)
    lat2r = math.radians(lat2)
    d_lng = math.radians(lng2 - lng1)
    y = math.sin(d_lng) * math.cos(lat2r)
    x = math.cos(lat1r) * math.sin(lat2r) - math.sin(lat1r) * math.cos(lat2r) * math.cos(d_lng)
    b = math.degrees(math.atan2(y, x))
    if b < 0:
        b += 360
    return b


def turn_angle(from_bearing: float, to_bearing: float) -> float:
    """Signed turn in degrees; negative is left, positive is right."""
    return math.fmod(to_bearing - from_bearing + 540, 360) - 180


def maneuver_type(delta: float) -> tuple[str, str]:
    """Maneuver type and modifier for a signed turn angle."""
    magnitude = abs(delta)
    if magnitude >= 155:
        return "uturn", "uturn"
    side = "left" if delta < 0 else "right"
    if magnitude < 25:
        return "continue", "straight"
    if magnitude < 55:
        return "turn", "slight_" + side
    if magnitude < 125:
        return "turn", side
    return "turn", "sharp_" + side


def persian_turn(modifier: str) -> str:
    """Persian phrase for a turn modifier; unknown ones mean straight on."""
    return _TURN_TEXT.get(modifier, _STRAIGHT)


def format_instruction_distance(distance_km: float) -> str:
    """Human distance in metres below 1 km, else in kilometres."""
    if distance_km < 1:
        meters = max(1, int(round_to(distance_km * 1000, 0)))
        return f"{meters} متر"
    if distance_km < 10:
        return f"{round_to(distance_km, 1):.1f} کیلومتر"
    return f"{round_to(distance_km, 0):.0f} کیلومتر"


def same_street(a: str, b: str) -> bool:
    """True when both names are non-empty and equal ignoring case."""
    a = a.lower().strip()
    b = b.lower().strip()
    return a != "" and a == b


def _street_name(path: Optional[PathResult], edge_idx: int, name_fn: Optional[NameFn]) -> str:
    if path is None or name_fn is None or not 0 <= edge_idx < len(path.edges):
        return ""
    return name_fn(path.edges[edge_idx].name_idx).strip()


def _is_unnamed_link(edge: Edge) -> bool:
    return edge.name_idx == 0 and edge.kind.is_link()


def _unnamed_link_chain(path: PathResult, start_edge: int) -> tuple[int, float, float]:
    """End edge index, turn angle and length of a run of unnamed link edges."""
    edges, nodes = path.edges, path.nodes
    if not 0 <= start_edge < len(edges) or start_edge + 1 >= len(nodes):
        return start_edge, 0.0, 0.0
    if not _is_unnamed_link(edges[start_edge]):
        return start_edge, 0.0, 0.0

    end_edge = start_edge
    distance = 0.0
    while end_edge < len(edges) and _is_unnamed_link(edges[end_edge]):
        distance += edges[end_edge].distance_km
        end_edge += 1
    end_edge = min(end_edge, len(nodes) - 1)
    if end_edge <= start_edge:
        return start_edge, 0.0, distance

    prev = nodes[start_edge - 1]
    enter = nodes[start_edge]
    exit_node = nodes[end_edge]
    entry_bearing = bearing_degrees(prev.lat, prev.lng, enter.lat, enter.lng)
    if end_edge + 1 >= len(nodes):
        exit_bearing = bearing_degrees(enter.lat, enter.lng, exit_node.lat, exit_node.lng)
    else:
        after = nodes[end_edge + 1]
        exit_bearing = bearing_degrees(exit_node.lat, exit_node.lng, after.lat, after.lng)
    return end_edge, turn_angle(entry_bearing, exit_bearing), distance


def _maneuver_at(
    path: PathResult, i: int, name_fn: Optional[NameFn]
) -> tuple[Optional[_Maneuver], int]:
    """The maneuver at node ``i`` (if any) and the next node index to inspect."""
    prev, cur, nxt = path.nodes[i - 1], path.nodes[i], path.nodes[i + 1]
    delta = turn_angle(
        bearing_degrees(prev.lat, prev.lng, cur.lat, cur.lng),
        bearing_degrees(cur.lat, cur.lng, nxt.lat, nxt.lng),
    )

    link_end, link_delta, link_distance = _unnamed_link_chain(path, i)
    if link_end > i:
        found: Optional[_Maneuver] = None
        if abs(link_delta) >= 150:
            found = _Maneuver(i, "uturn", "uturn", _street_name(path, link_end, name_fn))
        elif link_distance >= 0.08 and abs(link_delta) >= 55:
            typ, modifier = maneuver_type(link_delta)
            found = _Maneuver(i, typ, modifier, _street_name(path, link_end, name_fn))
        return found, link_end

    prev_street = _street_name(path, i - 1, name_fn)
    next_street = _street_name(path, i, name_fn)
    same = same_street(prev_street, next_street)
    if abs(delta) < 25 and same:
        return None, i + 1
    typ, modifier = maneuver_type(delta)
    if typ == "continue" and same:
        return None, i + 1
    return _Maneuver(i, typ, modifier, next_street), i + 1


def _collapse_continues(maneuvers: list[_Maneuver]) -> list[_Maneuver]:
    out: list[_Maneuver] = []
    for m in maneuvers:
        if m.typ == "continue" and out and out[-1].typ == "continue":
            continue
        out.append(m)
    return out


def _instruction_leg(
    path: PathResult, from_node: int, to_node: int, mode: str, fallback_speed_kmh: float
) -> tuple[float, float]:
    """Distance in km and duration in minutes between two path nodes."""
    if to_node <= from_node or not path.edges:
        return 0.0, 0.0
    to_node = min(to_node, len(path.edges))
    profile = profile_for(mode)
    speed_fn = profile.edge_speed if profile is not None else None
    leg = path.edges[from_node:to_node]
    distance = sum(e.distance_km for e in leg)
    hours = sum(edge_travel_time_hours(e, speed_fn) for e in leg)
    if hours == 0 and distance > 0:
        if fallback_speed_kmh <= 0:
            fallback_speed_kmh = 40
        hours = distance / fallback_speed_kmh
    return distance, hours * 60


def _next_action_text(nxt: Optional[_Maneuver]) -> str:
    if nxt is None:
        return ""
    target = f" به {nxt.street}" if nxt.street else ""
    if nxt.typ == "turn":
        return persian_turn(nxt.modifier) + target
    if nxt.typ == "uturn":
        return _UTURN + target
    if nxt.typ == "arrive":
        return _ARRIVING
    return ""


def _lead_text(prefix: str, distance_km: float, nxt: Optional[_Maneuver]) -> str:
    action = _next_action_text(nxt)
    if not action:
        return prefix
    return f"{prefix}؛ پس از {format_instruction_distance(distance_km)} {action}"


def _instruction_text(m: _Maneuver, distance_km: float, nxt: Optional[_Maneuver]) -> str:
    target = f" به {m.street}" if m.street else ""
    if m.typ == "depart":
        return _lead_text(_START, distance_km, nxt)
    if m.typ == "continue":
        return _lead_text(_STRAIGHT, distance_km, nxt)
    if m.typ == "uturn":
        return _UTURN + target
    if m.typ == "turn":
        return persian_turn(m.modifier) + target
    if m.typ == "arrive":
        return _ARRIVED
    return _CONTINUE + target


def build_instructions(
    path: Optional[PathResult],
    mode: str,
    start: Point,
    end: Point,
    fallback_speed_kmh: float,
    name_fn: Optional[NameFn],
) -> list[Instruction]:
    """Turn-by-turn instructions for ``path`` from ``start`` to ``end``.

    ``name_fn`` resolves an edge's name index to a street name; None leaves
    street names empty.
    """
    if path is None or not path.nodes:
        return [Instruction(index=0, type="arrive", modifier="straight", text=_ARRIVED, location=end)]

    maneuvers = [_Maneuver(0, "depart", "straight", _street_name(path, 0, name_fn))]
    i = 1
    while i < len(path.nodes) - 1:
        found, i = _maneuver_at(path, i, name_fn)
        if found is not None:
            maneuvers.append(found)
    maneuvers.append(_Maneuver(len(path.nodes) - 1, "arrive", "straight"))
    maneuvers = _collapse_continues(maneuvers)

    out: list[Instruction] = []
    for idx, m in enumerate(maneuvers):
        nxt = maneuvers[idx + 1] if idx + 1 < len(maneuvers) else None
        node = path.nodes[m.node_index]
        location = Point(lat=node.lat, lng=node.lng)
        if idx == 0:
            location = start
        if m.typ == "arrive":
            location = end
        to_node = nxt.node_index if nxt is not None else m.node_index
        distance, duration = _instruction_leg(path, m.node_index, to_node, mode, fallback_speed_kmh)
        out.append(
            Instruction(
                index=idx,
                type=m.typ,
                modifier=m.modifier,
                text=_instruction_text(m, distance, nxt),
                distance_km=round_to(distance, 3),
                duration_min=round_to(duration, 2),
                location=location,
                street_name=m.street,
            )
        )
    return out