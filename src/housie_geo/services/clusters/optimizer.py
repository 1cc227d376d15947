"""Time block selection and visiting schedule for cluster bookings.

A cluster is one site with many units (apartments, offices) booked together.
The optimizer picks the time block most participants asked for and lays the
units out back to back in unit id order. It is a greedy one-pass scheduler:
there is no geometry involved and no attempt to fit the schedule inside the
chosen block.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, time, timedelta
from typing import Protocol, Sequence

from ...config import Settings, settings as default_settings
from ...errors import ClusterAuthorizationError, ClusterDataError, ClusterNotFoundError, StoreError
from ...models.domain import (
    Cluster,
    ClusterParticipant,
    Confidence,
    OptimizationResult,
    RouteSlot,
    TimeBlock,
)

logger = logging.getLogger(__name__)

# Arbitrary anchor day for wall-clock arithmetic; only HH:MM is reported.
_ANCHOR_DAY = date(2000, 1, 1)


class ClusterStore(Protocol):
    def get_cluster(self, cluster_id: str) -> Cluster | None: ...

    def is_organizer(self, cluster_id: str, user_id: str) -> bool: ...

    def has_bid(self, cluster_id: str, user_id: str) -> bool: ...

    def list_participants(self, cluster_id: str) -> list[ClusterParticipant]: ...

    def list_time_blocks(self, cluster_id: str) -> list[TimeBlock]: ...

    def save_optimization_result(self, cluster_id: str, result: OptimizationResult) -> None: ...


def tally_preferences(blocks: Sequence[TimeBlock], participants: Sequence[ClusterParticipant]) -> list[TimeBlock]:
    """Copy of ``blocks`` with ``preference_count`` set from participant preferences."""
    tallied: list[TimeBlock] = []
    for block in blocks:
        count = sum(1 for participant in participants if block.name in participant.preferred_time_blocks)
        tallied.append(
            TimeBlock(
                id=block.id,
                name=block.name,
                start_time=block.start_time,
                end_time=block.end_time,
                preference_count=count,
            )
        )
    return tallied


def select_preferred_block(blocks: Sequence[TimeBlock]) -> TimeBlock:
    """Block with the highest count; on a tie the first one in load order wins."""
    if not blocks:
        raise ClusterDataError("Cluster has no candidate time blocks")
    preferred = blocks[0]
    for block in blocks[1:]:
        if block.preference_count > preferred.preference_count:
            preferred = block
    return preferred


def order_participants(participants: Sequence[ClusterParticipant]) -> list[ClusterParticipant]:
    """Visiting order: plain string ordering of unit ids ("10" sorts before "9")."""
    return sorted(participants, key=lambda participant: participant.unit_id or "")


def layout_route(
    participants: Sequence[ClusterParticipant],
    start: time,
    *,
    slot_minutes: int,
    buffer_minutes: int,
) -> tuple[list[RouteSlot], datetime]:
    """Back-to-back slots from ``start``; returns the slots and when the last one ends."""
    current = datetime.combine(_ANCHOR_DAY, start)
    finish = current
    slots: list[RouteSlot] = []
    for participant in participants:
        slot_end = current + timedelta(minutes=slot_minutes)
        slots.append(
            RouteSlot(
                unit_id=str(participant.unit_id),
                start=current.strftime("%H:%M"),
                end=slot_end.strftime("%H:%M"),
            )
        )
        finish = slot_end
        current = slot_end + timedelta(minutes=buffer_minutes)
    return slots, finish


def confidence_for(ratio: float, *, high: float, medium: float) -> Confidence:
    if ratio >= high:
        return "high"
    if ratio >= medium:
        return "medium"
    return "low"


def _format_clock(value: time) -> str:
    return value.strftime("%H:%M")


def optimize_cluster(
    cluster_id: str,
    caller_id: str,
    *,
    store: ClusterStore,
    config: Settings | None = None,
) -> OptimizationResult:
    """Choose a shared time block and visiting order for a cluster and store the result.

    Raises:
        ClusterNotFoundError: the cluster does not exist.
        ClusterAuthorizationError: the caller is neither organizer nor bidder.
        ClusterDataError: no participant has a unit id, or no time blocks exist.
        StoreError: a read failed. A failed final write is logged, not raised.
    """
    config = config or default_settings

    cluster = store.get_cluster(cluster_id)
    if cluster is None:
        raise ClusterNotFoundError(f"Cluster '{cluster_id}' not found")

    if not (store.is_organizer(cluster_id, caller_id) or store.has_bid(cluster_id, caller_id)):
        raise ClusterAuthorizationError("Unauthorized: must be cluster organizer or provider with bid")

    participants = [participant for participant in store.list_participants(cluster_id) if participant.unit_id]
    if not participants:
        raise ClusterDataError("No confirmed participants with unit IDs found")

    blocks = tally_preferences(store.list_time_blocks(cluster_id), participants)
    preferred = select_preferred_block(blocks)

    ordered = order_participants(participants)
    route, finish = layout_route(
        ordered,
        preferred.start_time,
        slot_minutes=config.cluster_slot_minutes,
        buffer_minutes=config.cluster_buffer_minutes,
    )

    block_end = datetime.combine(_ANCHOR_DAY, preferred.end_time)
    if preferred.end_time <= preferred.start_time:
        # block wraps past midnight
        block_end += timedelta(days=1)
    overflows = finish > block_end
    if overflows:
        logger.warning(
            f"Cluster {cluster_id}: schedule ends at {finish:%H:%M}, after block "
            f"'{preferred.name}' closes at {_format_clock(preferred.end_time)}"
        )

    ratio = preferred.preference_count / len(participants)
    confidence = confidence_for(
        ratio, high=config.confidence_high_ratio, medium=config.confidence_medium_ratio
    )

    summary = (
        f"Suggested {_format_clock(preferred.start_time)}-{_format_clock(preferred.end_time)} "
        f"based on participant preferences"
    )
    if overflows:
        summary += f" (schedule runs until {finish:%H:%M})"

    result = OptimizationResult(
        preferred_block_id=preferred.id,
        confidence=confidence,
        route=route,
        summary=summary,
        preference_ratio=ratio,
        overflows_block=overflows,
    )

    try:
        store.save_optimization_result(cluster_id, result)
    except StoreError as e:
        logger.error(f"Failed to store optimization for cluster {cluster_id}: {e}")

    logger.info(
        f"Optimized cluster {cluster_id}: block={preferred.id} units={len(route)} confidence={confidence}"
    )
    return result
