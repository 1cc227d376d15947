"""Location privacy services."""

from .engine import fuzz, nearest_zone, provider_fuzzy_location, resolve_zone

__all__ = ["fuzz", "nearest_zone", "provider_fuzzy_location", "resolve_zone"]
