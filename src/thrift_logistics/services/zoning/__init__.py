"""Zone graph exports."""

from .graph import ZoneGraph, ZoneListing, list_zones

__all__ = ["ZoneGraph", "ZoneListing", "list_zones"]
