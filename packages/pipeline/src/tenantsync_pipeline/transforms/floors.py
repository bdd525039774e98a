"""
transforms/floors.py — Multi-floor explosion of feed records.

A tenant spanning several floors arrives as one record with a comma list in
its floor field ("2,3", "Fl. BM1,G"). Each distinct canonical floor becomes
its own catalog entity, keyed by the original unique id plus the floor code.

Usage:
    from tenantsync_pipeline.transforms.floors import split_floors_resolved

    for derived, floor in split_floors_resolved(record, resolver):
        await reconciler.reconcile(derived, floor=floor, resolve_floor=False)
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from tenantsync_shared.models import CanonicalFloor, UpstreamRecord

if TYPE_CHECKING:
    from tenantsync_pipeline.transforms.entities import EntityResolver

log = structlog.get_logger(__name__)


def split_floor_label(label: str | None) -> list[str]:
    """Split a floor field on commas, trimming tokens and dropping empties."""
    return [token.strip() for token in (label or "").split(",") if token.strip()]


def _with_floor(record: UpstreamRecord, floor: CanonicalFloor, *, unique_id: str | None = None) -> UpstreamRecord:
    update = {"floor": floor.name, "floor_revised": floor.name}
    if unique_id is not None:
        update["unique_id"] = unique_id
    return record.model_copy(update=update)


def split_floors_resolved(
    record: UpstreamRecord, resolver: EntityResolver
) -> list[tuple[UpstreamRecord, CanonicalFloor | None]]:
    """
    split_floors() paired with each derived record's canonical floor.

    Each floor token is resolved exactly once; callers pass the floor on
    instead of resolving the rewritten record again.
    """
    distinct: dict[int, CanonicalFloor] = {}
    for token in split_floor_label(record.effective_floor):
        floor = resolver.resolve_floor(token)
        if floor is not None:
            distinct.setdefault(floor.id, floor)

    floors = list(distinct.values())
    if not floors:
        return [(record, None)]
    if len(floors) == 1:
        return [(_with_floor(record, floors[0]), floors[0])]

    log.info(
        "record_split_by_floor",
        unique_id=record.unique_id,
        floors=[f.name for f in floors],
    )
    return [
        (_with_floor(record, floor, unique_id=f"{record.unique_id}-{floor.name}"), floor)
        for floor in floors
    ]


def split_floors(record: UpstreamRecord, resolver: EntityResolver) -> list[UpstreamRecord]:
    """
    Expand a record into one record per distinct resolved floor.

    - no resolvable floor    → [record] unchanged
    - one distinct floor     → [record] with floor set to the canonical name
    - several distinct floors → one copy per floor, unique_id rewritten to
      "{unique_id}-{floor name}" so each copy is its own catalog entity

    Floors are deduplicated by canonical id in first-seen order, so "1,1F"
    yields a single record.
    """
    return [derived for derived, _ in split_floors_resolved(record, resolver)]
