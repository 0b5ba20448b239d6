"""Transport modes and their edge-access and speed profiles."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from georoute.astar import SpeedFn
from georoute.graph import AccessFlags, Edge, EdgeFilter
from georoute.highway import HighwayKind


class TransportMode(str, Enum):
    """How a route is travelled; decides usable roads and speeds."""

    CAR = "car"
    MOTORCYCLE = "motorcycle"
    BUS = "bus"
    WALKING = "walking"
    AIRPLANE = "airplane"
    TRAIN = "train"
    PUBLIC_TRANSPORT = "public_transport"

    def __str__(self) -> str:
        return self.value


class UnsupportedModeError(ValueError):
    """The requested routing mode is not supported."""


@dataclass(frozen=True)
class ModeProfile:
    """Edge access rule, speed rule and fallback speeds for one mode."""

    edge_allowed: EdgeFilter
    edge_speed: Optional[SpeedFn]
    fallback_speed: float
    heuristic_speed_kmh: float


_ALIASES: dict[str, TransportMode] = {
    "walk": TransportMode.WALKING,
    "pedestrian": TransportMode.WALKING,
    "foot": TransportMode.WALKING,
    "transit": TransportMode.PUBLIC_TRANSPORT,
    "publictransport": TransportMode.PUBLIC_TRANSPORT,
    "public-transport": TransportMode.PUBLIC_TRANSPORT,
    "pt": TransportMode.PUBLIC_TRANSPORT,
}

_SUPPORTED_TEXT = "car, motorcycle, bus, walking, train, public_transport"


def normalize_mode(raw: str) -> TransportMode:
    """Validate a client mode string, applying aliases and the car default."""
    key = raw.lower().strip()
    if not key:
        return TransportMode.CAR
    try:
        return TransportMode(key)
    except ValueError:
        pass
    alias = _ALIASES.get(key)
    if alias is None:
        raise UnsupportedModeError(
            f"unsupported routing mode {raw!r}; supported modes: {_SUPPORTED_TEXT}"
        )
    return alias


def min_speed(a: float, b: float) -> float:
    """The smaller of two speeds, ignoring non-positive ones."""
    if a <= 0:
        return b
    if b <= 0:
        return a
    return min(a, b)


_MOTORCYCLE_SPEEDS: dict[HighwayKind, float] = {
    HighwayKind.MOTORWAY: 120,
    HighwayKind.MOTORWAY_LINK: 90,
    HighwayKind.TRUNK: 100,
    HighwayKind.TRUNK_LINK: 80,
    HighwayKind.PRIMARY: 90,
    HighwayKind.PRIMARY_LINK: 75,
    HighwayKind.SECONDARY: 70,
    HighwayKind.SECONDARY_LINK: 60,
    HighwayKind.TERTIARY: 60,
    HighwayKind.TERTIARY_LINK: 50,
    HighwayKind.UNCLASSIFIED: 50,
    HighwayKind.RESIDENTIAL: 40,
    HighwayKind.LIVING_STREET: 25,
    HighwayKind.SERVICE: 25,
    HighwayKind.TRACK: 25,
}

_BUS_CAPS: dict[HighwayKind, float] = {
    HighwayKind.MOTORWAY: 90,
    HighwayKind.MOTORWAY_LINK: 70,
    HighwayKind.TRUNK: 80,
    HighwayKind.TRUNK_LINK: 70,
    HighwayKind.PRIMARY: 70,
    HighwayKind.PRIMARY_LINK: 60,
    HighwayKind.SECONDARY: 55,
    HighwayKind.SECONDARY_LINK: 50,
    HighwayKind.TERTIARY: 45,
    HighwayKind.TERTIARY_LINK: 40,
    HighwayKind.UNCLASSIFIED: 35,
    HighwayKind.RESIDENTIAL: 25,
    HighwayKind.LIVING_STREET: 15,
    HighwayKind.SERVICE: 15,
    HighwayKind.TRACK: 15,
}

_TRAIN_SPEEDS: dict[HighwayKind, float] = {
    HighwayKind.SUBWAY: 60,
    HighwayKind.LIGHT_RAIL: 50,
    HighwayKind.NARROW_GAUGE: 40,
    HighwayKind.TRAM: 30,
}

_WALKING_SPEEDS: dict[HighwayKind, float] = {
    **dict.fromkeys(
        (
            HighwayKind.FOOTWAY,
            HighwayKind.PEDESTRIAN,
            HighwayKind.PATH,
            HighwayKind.CORRIDOR,
            HighwayKind.CROSSING,
            HighwayKind.SIDEWALK,
            HighwayKind.PLATFORM,
        ),
        5.0,
    ),
    HighwayKind.STEPS: 3.0,
    HighwayKind.LIVING_STREET: 4.0,
    HighwayKind.RESIDENTIAL: 2.2,
    HighwayKind.SERVICE: 2.2,
    HighwayKind.TRACK: 2.0,
    HighwayKind.UNCLASSIFIED: 1.8,
    HighwayKind.TERTIARY: 1.5,
    HighwayKind.TERTIARY_LINK: 1.5,
    **dict.fromkeys(
        (
            HighwayKind.SECONDARY,
            HighwayKind.SECONDARY_LINK,
            HighwayKind.PRIMARY,
            HighwayKind.PRIMARY_LINK,
        ),
        1.2,
    ),
}


def motorcycle_speed(edge: Edge) -> float:
    """Motorcycle speed in km/h for an edge."""
    speed = _MOTORCYCLE_SPEEDS.get(edge.kind)
    if speed is None:
        return float(edge.speed_kmh) * 1.1
    return float(speed)


def bus_speed(edge: Edge) -> float:
    """Bus speed in km/h: a per-class cap on the edge's own speed."""
    cap = _BUS_CAPS.get(edge.kind)
    if cap is None:
        return float(edge.speed_kmh) * 0.8
    return min_speed(cap, float(edge.speed_kmh))


def train_speed(edge: Edge) -> float:
    """Train speed in km/h; mainline rail keeps the edge's own speed."""
    return float(_TRAIN_SPEEDS.get(edge.kind, edge.speed_kmh))


def transit_speed(edge: Edge) -> float:
    """Transit overlay speed: the speed stamped on the edge."""
    return float(edge.speed_kmh)


def walking_allowed(edge: Edge) -> bool:
    """Foot access on a class that does not forbid pedestrians."""
    return edge.flags.has(AccessFlags.FOOT) and not edge.kind.blocks_walking()


def walking_speed(edge: Edge) -> float:
    """Effective walking speed; lower on busy roads to prefer footpaths."""
    return _WALKING_SPEEDS.get(edge.kind, 2.0)


_PROFILES: dict[TransportMode, ModeProfile] = {
    TransportMode.CAR: ModeProfile(
        edge_allowed=lambda e: e.flags.has(AccessFlags.CAR),
        edge_speed=None,
        fallback_speed=0,
        heuristic_speed_kmh=130,
    ),
    TransportMode.MOTORCYCLE: ModeProfile(
        edge_allowed=lambda e: e.flags.has(AccessFlags.MOTORCYCLE),
        edge_speed=motorcycle_speed,
        fallback_speed=60,
        heuristic_speed_kmh=150,
    ),
    TransportMode.BUS: ModeProfile(
        edge_allowed=lambda e: e.flags.has(AccessFlags.BUS | AccessFlags.CAR),
        edge_speed=bus_speed,
        fallback_speed=65,
        heuristic_speed_kmh=100,
    ),
    TransportMode.WALKING: ModeProfile(
        edge_allowed=walking_allowed,
        edge_speed=walking_speed,
        fallback_speed=5,
        heuristic_speed_kmh=6,
    ),
    TransportMode.TRAIN: ModeProfile(
        edge_allowed=lambda e: e.flags.has(AccessFlags.TRAIN),
        edge_speed=train_speed,
        fallback_speed=80,
        heuristic_speed_kmh=200,
    ),
    TransportMode.PUBLIC_TRANSPORT: ModeProfile(
        edge_allowed=lambda e: e.flags.has(AccessFlags.TRANSIT),
        edge_speed=transit_speed,
        fallback_speed=20,
        heuristic_speed_kmh=40,
    ),
}


def profile_for(mode: str) -> Optional[ModeProfile]:
    """The routing profile of a mode, or None when the mode has none."""
    return _PROFILES.get(mode)