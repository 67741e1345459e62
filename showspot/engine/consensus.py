"""
showspot.engine.consensus — Member Consensus & Activation Predicate
====================================================================

Pure resolution over a show's invited members.  No database I/O.

A member is a tagged union::

    Member = ArtistMember(id, decision) | BandMember(id, consensus)

A band never decides as a unit: its effective decision is the conjunction
of its sub-member consensus entries, and for payout purposes a band
always expands into its individual artists.
"""

from __future__ import annotations

import uuid
from collections import Counter
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from showspot.database.models import MemberType

if TYPE_CHECKING:
    from showspot.database.models import ShowMember

__all__ = [
    "ArtistMember",
    "BandMember",
    "Member",
    "SubConsensus",
    "count_individual_artists",
    "effective_decision",
    "individual_payee_slots",
    "is_consensus_complete",
    "is_performer",
    "member_from_row",
    "pending_members",
]


# ---------------------------------------------------------------------------
# Member union
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class SubConsensus:
    """One band member's answer inside a band's consensus list."""

    sub_member_id: uuid.UUID
    decision: bool = False


@dataclass(frozen=True, slots=True)
class ArtistMember:
    member_id: uuid.UUID
    decision: bool = False
    position: str | None = None


@dataclass(frozen=True, slots=True)
class BandMember:
    member_id: uuid.UUID
    consensus: tuple[SubConsensus, ...] = field(default_factory=tuple)
    position: str | None = None


Member = ArtistMember | BandMember


def member_from_row(row: ShowMember) -> Member:
    """Convert a :class:`ShowMember` ORM row into the pure union."""
    if row.member_type == MemberType.BAND.value:
        return BandMember(
            member_id=row.member_id,
            consensus=tuple(
                SubConsensus(sub_member_id=c.sub_member_id, decision=c.decision)
                for c in row.consensus
            ),
            position=row.position,
        )
    return ArtistMember(
        member_id=row.member_id, decision=row.decision, position=row.position
    )


# ---------------------------------------------------------------------------
# Resolution
# ---------------------------------------------------------------------------
def effective_decision(member: Member) -> bool:
    """An artist's own decision, or the AND over a band's consensus list.

    A band with an empty consensus list has nobody who accepted, so it
    does not count as consenting.
    """
    match member:
        case ArtistMember(decision=decision):
            return decision
        case BandMember(consensus=consensus):
            return bool(consensus) and all(c.decision for c in consensus)
    raise TypeError(f"Unknown member kind: {type(member).__name__}")


def count_individual_artists(members: Iterable[Member]) -> int:
    """Direct artists plus every band's sub-member count.

    The band's own membership record never counts itself.
    """
    total = 0
    for member in members:
        match member:
            case ArtistMember():
                total += 1
            case BandMember(consensus=consensus):
                total += len(consensus)
    return total


def individual_payee_slots(members: Iterable[Member]) -> Counter[uuid.UUID]:
    """Map each individual artist to the number of slots they fill.

    An artist booked both solo and inside a band fills two slots and is
    paid for both; the slot total always equals
    :func:`count_individual_artists`.
    """
    slots: Counter[uuid.UUID] = Counter()
    for member in members:
        match member:
            case ArtistMember(member_id=member_id):
                slots[member_id] += 1
            case BandMember(consensus=consensus):
                for entry in consensus:
                    slots[entry.sub_member_id] += 1
    return slots


def is_performer(members: Iterable[Member], artist_ids: Iterable[uuid.UUID]) -> bool:
    """True if any of *artist_ids* is on the show, directly or via a band.

    Unknown identities simply resolve to ``False``.
    """
    wanted = set(artist_ids)
    if not wanted:
        return False
    for member in members:
        match member:
            case ArtistMember(member_id=member_id):
                if member_id in wanted:
                    return True
            case BandMember(consensus=consensus):
                if any(c.sub_member_id in wanted for c in consensus):
                    return True
    return False


def is_consensus_complete(venue_decision: bool, members: Sequence[Member]) -> bool:
    """The activation predicate: venue accepted and every member consents."""
    return venue_decision and all(effective_decision(m) for m in members)


def pending_members(members: Iterable[Member]) -> list[dict]:
    """Members whose effective decision is still ``False``.

    For bands, the individual artists who have not accepted are listed
    under ``waiting_on``.
    """
    pending: list[dict] = []
    for member in members:
        if effective_decision(member):
            continue
        match member:
            case ArtistMember(member_id=member_id):
                pending.append({
                    "member_id": member_id,
                    "member_type": MemberType.ARTIST.value,
                    "waiting_on": [member_id],
                })
            case BandMember(member_id=member_id, consensus=consensus):
                pending.append({
                    "member_id": member_id,
                    "member_type": MemberType.BAND.value,
                    "waiting_on": [c.sub_member_id for c in consensus if not c.decision],
                })
    return pending
