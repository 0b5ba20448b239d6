"""Graph routing, alternatives, turn-by-turn instructions, polylines and multi-modal journeys."""

__version__ = "0.1.0"