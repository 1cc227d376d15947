"""Domain models for zones, drop points, imprints and clusters."""

from dataclasses import dataclass, field
from datetime import datetime, time
from typing import Literal, Optional

ActionType = Literal["job", "visit", "event", "rebook", "stamp_unlock"]
ACTION_TYPES: tuple[str, ...] = ("job", "visit", "event", "rebook", "stamp_unlock")

DemandLevel = Literal["low", "medium", "high"]
Confidence = Literal["high", "medium", "low"]

UNKNOWN_ZONE = "UNKNOWN"


@dataclass(frozen=True, slots=True)
class Coordinate:
    """A latitude/longitude pair in decimal degrees."""

    latitude: float
    longitude: float


@dataclass(slots=True)
class PositionFix:
    """A device position together with when it was received."""

    coordinate: Coordinate
    timestamp: float
    accuracy_m: Optional[float] = None


@dataclass(slots=True)
class Zone:
    """A named circular service zone."""

    id: str
    name: str
    code: str
    zone_type: str
    center: Coordinate
    radius_m: float
    demand_level: DemandLevel
    pricing_multiplier: float


@dataclass(slots=True)
class ZoneResolution:
    zone_code: str
    distance_m: Optional[float] = None
    degraded: bool = False


@dataclass(slots=True)
class FuzzyLocation:
    coordinate: Coordinate
    radius_m: float
    generated_at: datetime


@dataclass(slots=True)
class DropPoint:
    """An administered point of interest that can be visited."""

    id: str
    name: str
    type: str
    coordinate: Optional[Coordinate] = None
    bonus_stamp_id: Optional[str] = None


@dataclass(slots=True)
class NearbyDropPoint:
    drop_point: DropPoint
    distance_m: float


@dataclass(slots=True)
class Imprint:
    """Append-only record of a location-linked user action.

    ``imprints_created`` and ``stamp_awarded`` report what the backend did
    with a fresh write (drop points matched, stamp unlocked); they are left
    at their defaults on records read back from history.
    """

    id: Optional[str]
    user_id: str
    coordinate: Coordinate
    timestamp: datetime
    action_type: str
    note: Optional[str] = None
    service_type: Optional[str] = None
    drop_point_id: Optional[str] = None
    imprints_created: int = 0
    stamp_awarded: Optional[str] = None


@dataclass(slots=True)
class Cluster:
    id: str
    organizer_id: Optional[str]
    title: Optional[str] = None


@dataclass(slots=True)
class ClusterParticipant:
    user_id: str
    display_name: str
    unit_id: Optional[str]
    preferred_time_blocks: list[str] = field(default_factory=list)


@dataclass(slots=True)
class TimeBlock:
    id: str
    name: str
    start_time: time
    end_time: time
    preference_count: int = 0


@dataclass(slots=True)
class RouteSlot:
    unit_id: str
    start: str
    end: str


@dataclass(slots=True)
class OptimizationResult:
    """Outcome of one cluster optimizer run."""

    preferred_block_id: str
    confidence: Confidence
    route: list[RouteSlot]
    summary: str
    preference_ratio: float
    overflows_block: bool = False
    success: bool = True

    def to_record(self) -> dict:
        """Shape stored in ``clusters.housie_optimization``."""
        return {
            "success": self.success,
            "summary": self.summary,
            "route": [{"unit": slot.unit_id, "start": slot.start, "end": slot.end} for slot in self.route],
            "preferred_block_id": self.preferred_block_id,
            "confidence": self.confidence,
            "preference_ratio": self.preference_ratio,
            "overflows_block": self.overflows_block,
        }
