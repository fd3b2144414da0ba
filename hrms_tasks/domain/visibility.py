"""Hierarchy matching for "team" views.

An actor sits at up to four levels: group, company, location and
sub-location. A level left unset means the actor applies to every value at
that level, so it matches any reference value.
"""
from __future__ import annotations

from .entities import ActorEntity
from .enums import ActorStatus

HIERARCHY_LEVELS = ("group_id", "company_id", "location_id", "sub_location_id")


def level_matches(candidate_value: str | None, reference_value: str | None) -> bool:
    return candidate_value is None or candidate_value == reference_value


def is_peer(candidate: ActorEntity, reference: ActorEntity) -> bool:
    if candidate.status != ActorStatus.ACTIVE:
        return False
    return all(
        level_matches(getattr(candidate, level), getattr(reference, level))
        for level in HIERARCHY_LEVELS
    )


def peer_ids_in(actors: list[ActorEntity], reference: ActorEntity | None) -> set[str]:
    if reference is None:
        return set()
    return {actor.id for actor in actors if is_peer(actor, reference)}
