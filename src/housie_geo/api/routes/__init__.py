"""Route group exports."""

from . import clusters, directions, health, proximity, zones

__all__ = ["clusters", "directions", "health", "proximity", "zones"]
