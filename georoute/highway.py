"""Compact classification of OSM highway and railway tags."""

from __future__ import annotations

from enum import IntEnum

_TAGS: tuple[str, ...] = (
    "",
    "motorway",
    "motorway_link",
    "trunk",
    "trunk_link",
    "primary",
    "primary_link",
    "secondary",
    "secondary_link",
    "tertiary",
    "tertiary_link",
    "unclassified",
    "residential",
    "living_street",
    "service",
    "track",
    "footway",
    "pedestrian",
    "path",
    "steps",
    "corridor",
    "crossing",
    "sidewalk",
    "platform",
    "rail",
    "subway",
    "light_rail",
    "narrow_gauge",
    "tram",
    "bus_route",
    "transfer",
)


class HighwayKind(IntEnum):
    """An OSM highway/railway class, or a synthetic transit edge class."""

    UNKNOWN = 0
    MOTORWAY = 1
    MOTORWAY_LINK = 2
    TRUNK = 3
    TRUNK_LINK = 4
    PRIMARY = 5
    PRIMARY_LINK = 6
    SECONDARY = 7
    SECONDARY_LINK = 8
    TERTIARY = 9
    TERTIARY_LINK = 10
    UNCLASSIFIED = 11
    RESIDENTIAL = 12
    LIVING_STREET = 13
    SERVICE = 14
    TRACK = 15
    FOOTWAY = 16
    PEDESTRIAN = 17
    PATH = 18
    STEPS = 19
    CORRIDOR = 20
    CROSSING = 21
    SIDEWALK = 22
    PLATFORM = 23
    RAIL = 24
    SUBWAY = 25
    LIGHT_RAIL = 26
    NARROW_GAUGE = 27
    TRAM = 28
    BUS_ROUTE = 29
    TRANSFER = 30

    @property
    def tag(self) -> str:
        """The canonical OSM tag string ("" for UNKNOWN)."""
        return _TAGS[self.value]

    def __str__(self) -> str:
        return self.tag

    def is_link(self) -> bool:
        """True for ramp/slip-road classes (``_link`` suffix)."""
        return self in _LINKS

    def is_pedestrian(self) -> bool:
        """True for classes intended primarily for foot traffic."""
        return self in _PEDESTRIAN

    def blocks_walking(self) -> bool:
        """True for carriageways where pedestrians are prohibited."""
        return self in _NO_WALKING

    def allows_pedestrians_against_flow(self) -> bool:
        """True where pedestrians may walk against a vehicle one-way."""
        return not self.is_pedestrian()


_LINKS = frozenset(
    {
        HighwayKind.MOTORWAY_LINK,
        HighwayKind.TRUNK_LINK,
        HighwayKind.PRIMARY_LINK,
        HighwayKind.SECONDARY_LINK,
        HighwayKind.TERTIARY_LINK,
    }
)

_PEDESTRIAN = frozenset(
    {
        HighwayKind.FOOTWAY,
        HighwayKind.PEDESTRIAN,
        HighwayKind.PATH,
        HighwayKind.STEPS,
        HighwayKind.CORRIDOR,
        HighwayKind.CROSSING,
        HighwayKind.SIDEWALK,
        HighwayKind.PLATFORM,
    }
)

_NO_WALKING = frozenset(
    {
        HighwayKind.MOTORWAY,
        HighwayKind.MOTORWAY_LINK,
        HighwayKind.TRUNK,
        HighwayKind.TRUNK_LINK,
    }
)

_BY_TAG: dict[str, HighwayKind] = {kind.tag: kind for kind in HighwayKind if kind.tag}


def parse_highway_kind(s: str) -> HighwayKind:
    """Map an OSM tag string to a HighwayKind; unknown strings give UNKNOWN."""
    return _BY_TAG.get(s, HighwayKind.UNKNOWN)