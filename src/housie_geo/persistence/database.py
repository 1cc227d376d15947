"""Supabase persistence for zones, drop points, imprints and clusters."""

from __future__ import annotations

import logging
from datetime import datetime, time, timezone
from typing import Any, Optional

from ..db.supabase import get_supabase_client
from ..errors import StoreError, StoreNotConfigured
from ..models.domain import (
    Cluster,
    ClusterParticipant,
    Coordinate,
    DropPoint,
    Imprint,
    OptimizationResult,
    TimeBlock,
    Zone,
)
from ..services.geospatial import coerce_coordinate, format_point

logger = logging.getLogger(__name__)

DEMAND_RANK = {"high": 3, "medium": 2, "low": 1}


def _parse_timestamp(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, str) and value:
        # fromisoformat only accepts a trailing "Z" from Python 3.11 on
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    return datetime.now(timezone.utc)


def _parse_wall_clock(value: Any) -> time:
    if isinstance(value, time):
        return value
    text = str(value).strip()
    # Postgres "time with time zone" values carry an offset we do not use
    for separator in ("+", "Z"):
        if separator in text:
            text = text.split(separator, 1)[0]
    return time.fromisoformat(text)


def row_to_zone(row: dict[str, Any]) -> Zone | None:
    """Convert a ``service_zones`` row, returning None for rows breaking zone invariants."""
    try:
        center = coerce_coordinate(row.get("center_coordinates"))
        radius = float(row["zone_radius"])
        multiplier = float(row.get("pricing_multiplier", 1.0))
    except (KeyError, TypeError, ValueError) as e:
        logger.warning(f"Skipping invalid zone row {row.get('zone_code')}: {e}")
        return None
    if center is None or radius <= 0 or multiplier <= 0:
        logger.warning(
            f"Skipping zone {row.get('zone_code')}: center={center}, radius={radius}, multiplier={multiplier}"
        )
        return None
    return Zone(
        id=str(row.get("id", "")),
        name=str(row.get("zone_name") or row.get("zone_code") or ""),
        code=str(row.get("zone_code") or ""),
        zone_type=str(row.get("zone_type") or "residential"),
        center=center,
        radius_m=radius,
        demand_level=str(row.get("demand_level") or "low"),
        pricing_multiplier=multiplier,
    )


def row_to_drop_point(row: dict[str, Any]) -> DropPoint:
    return DropPoint(
        id=str(row.get("drop_point_id") or row.get("id")),
        name=str(row.get("name") or ""),
        type=str(row.get("type") or "neighborhood"),
        coordinate=coerce_coordinate(row.get("coordinates")),
        bonus_stamp_id=row.get("bonus_stamp_id"),
    )


def row_to_imprint(row: dict[str, Any]) -> Imprint:
    coordinate = coerce_coordinate(row.get("coordinates"))
    if coordinate is None:
        raise StoreError(f"Imprint {row.get('id')} has no coordinates")
    return Imprint(
        id=str(row["id"]),
        user_id=str(row["user_id"]),
        coordinate=coordinate,
        timestamp=_parse_timestamp(row.get("timestamp") or row.get("created_at")),
        action_type=str(row["action_type"]),
        note=row.get("optional_note"),
        service_type=row.get("service_type"),
        drop_point_id=row.get("drop_point_id"),
    )


def row_to_participant(row: dict[str, Any]) -> ClusterParticipant:
    preferences = row.get("preferred_time_blocks") or []
    return ClusterParticipant(
        user_id=str(row.get("user_id")),
        display_name=str(row.get("display_name") or ""),
        unit_id=row.get("unit_id") or None,
        preferred_time_blocks=[str(name) for name in preferences],
    )


def row_to_time_block(row: dict[str, Any]) -> TimeBlock:
    return TimeBlock(
        id=str(row["id"]),
        name=str(row["block_name"]),
        start_time=_parse_wall_clock(row["start_time"]),
        end_time=_parse_wall_clock(row["end_time"]),
    )


class SupabaseStore:
    """Table and RPC access used by the privacy, proximity and cluster services.

    Every failure from the client is re-raised as :class:`StoreError`; callers
    decide whether a failure is fatal.
    """

    def __init__(self, client: Any) -> None:
        self.client = client

    def _execute(self, description: str, query: Any) -> list[dict[str, Any]]:
        try:
            response = query.execute()
        except Exception as e:
            raise StoreError(f"Failed to {description}: {e}") from e
        data = response.data
        if data is None:
            return []
        if isinstance(data, dict):
            return [data]
        return list(data)

    # Zones

    def list_zones(self) -> list[Zone]:
        rows = self._execute(
            "load service zones",
            self.client.table("service_zones").select("*").eq("is_active", True),
        )
        zones = [zone for zone in (row_to_zone(row) for row in rows) if zone is not None]
        zones.sort(key=lambda zone: DEMAND_RANK.get(zone.demand_level, 0), reverse=True)
        return zones

    # Drop points and imprints

    def nearby_drop_points(
        self, coordinate: Coordinate, max_distance_m: float
    ) -> list[tuple[DropPoint, Optional[float]]]:
        """Return drop point candidates with the distance reported by the database, if any."""
        rows = self._execute(
            "find nearby drop points",
            self.client.rpc(
                "find_nearby_drop_points",
                {"p_coordinates": format_point(coordinate), "p_max_distance_m": max_distance_m},
            ),
        )
        candidates: list[tuple[DropPoint, Optional[float]]] = []
        for row in rows:
            reported = row.get("distance_m")
            candidates.append((row_to_drop_point(row), float(reported) if reported is not None else None))
        return candidates

    def log_imprint(
        self,
        user_id: str,
        coordinate: Coordinate,
        action_type: str,
        service_type: str | None = None,
        note: str | None = None,
    ) -> Imprint:
        """Write an imprint through the ``log_imprint`` RPC.

        The database function matches the point against drop points and may
        award a stamp; its JSON answer is folded into the returned record.
        """
        rows = self._execute(
            "log imprint",
            self.client.rpc(
                "log_imprint",
                {
                    "p_user_id": user_id,
                    "p_coordinates": format_point(coordinate),
                    "p_action_type": action_type,
                    "p_service_type": service_type,
                    "p_note": note,
                },
            ),
        )
        if not rows:
            raise StoreError("log_imprint returned no result")
        result = rows[0]
        if result.get("success") is False:
            raise StoreError(f"log_imprint rejected the imprint: {result.get('error') or result.get('message')}")

        imprint_id = result.get("imprint_id") or result.get("id")
        return Imprint(
            id=str(imprint_id) if imprint_id is not None else None,
            user_id=user_id,
            coordinate=coordinate,
            timestamp=_parse_timestamp(result.get("timestamp")),
            action_type=action_type,
            note=note,
            service_type=service_type,
            drop_point_id=result.get("drop_point_id"),
            imprints_created=int(result.get("imprints_created") or 0),
            stamp_awarded=result.get("stamp_awarded"),
        )

    def list_imprints(self, user_id: str, limit: int = 50) -> list[Imprint]:
        rows = self._execute(
            "load imprints",
            self.client.table("user_imprints")
            .select("*")
            .eq("user_id", user_id)
            .order("created_at", desc=True)
            .limit(limit),
        )
        return [row_to_imprint(row) for row in rows]

    # Clusters

    def get_cluster(self, cluster_id: str) -> Cluster | None:
        rows = self._execute(
            "load cluster",
            self.client.table("clusters").select("id, organizer_id, title").eq("id", cluster_id).limit(1),
        )
        if not rows:
            return None
        row = rows[0]
        return Cluster(id=str(row["id"]), organizer_id=row.get("organizer_id"), title=row.get("title"))

    def is_organizer(self, cluster_id: str, user_id: str) -> bool:
        cluster = self.get_cluster(cluster_id)
        return cluster is not None and cluster.organizer_id == user_id

    def has_bid(self, cluster_id: str, user_id: str) -> bool:
        rows = self._execute(
            "check cluster bid",
            self.client.table("cluster_bids")
            .select("id")
            .eq("cluster_id", cluster_id)
            .eq("provider_id", user_id)
            .limit(1),
        )
        return bool(rows)

    def list_participants(self, cluster_id: str) -> list[ClusterParticipant]:
        rows = self._execute(
            "load cluster participants",
            self.client.table("cluster_participants")
            .select("*")
            .eq("cluster_id", cluster_id)
            .not_.is_("unit_id", "null"),
        )
        participants = [row_to_participant(row) for row in rows]
        return [participant for participant in participants if participant.unit_id]

    def list_time_blocks(self, cluster_id: str) -> list[TimeBlock]:
        rows = self._execute(
            "load cluster time blocks",
            self.client.table("cluster_time_blocks").select("*").eq("cluster_id", cluster_id),
        )
        blocks = [row_to_time_block(row) for row in rows]
        blocks.sort(key=lambda block: (block.start_time, block.id))
        return blocks

    def save_optimization_result(self, cluster_id: str, result: OptimizationResult) -> None:
        self._execute(
            "store cluster optimization",
            self.client.table("clusters").update({"housie_optimization": result.to_record()}).eq("id", cluster_id),
        )

    # Auth

    def resolve_user_id(self, access_token: str) -> str | None:
        """Resolve a bearer token to a user id. Returns None for invalid tokens."""
        try:
            response = self.client.auth.get_user(access_token)
        except Exception as e:
            logger.warning(f"Rejected access token: {e}")
            return None
        user = getattr(response, "user", None)
        return str(user.id) if user is not None else None


def get_store() -> SupabaseStore:
    """Build a store around the shared Supabase client."""
    client = get_supabase_client()
    if client is None:
        raise StoreNotConfigured(
            "Supabase not configured. Set HOUSIE_SUPABASE_URL and HOUSIE_SUPABASE_KEY environment variables."
        )
    return SupabaseStore(client)
