"""
showspot.services.show_service — Show Aggregate & Member Consensus
===================================================================

Creation, the read model, and every member-decision write.

Decision writes follow one pattern:
  1. ``SELECT … FOR UPDATE`` on the show row
  2. Refuse if the show is no longer pending (decisions freeze at activation)
  3. Write the artist's direct entry and/or every band consensus entry
  4. Re-evaluate activation in the same transaction
  5. Commit, then fan out notifications

Membership *reads* (``is_user_performer``, ``get_user_guarantee``) are
resolution functions: unknown shows or identities report ``False`` /
an empty result and never raise.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import date, time
from typing import TYPE_CHECKING

from sqlalchemy import select
from sqlalchemy.orm import Session

from showspot.database.models import (
    Artist,
    BandMembership,
    MemberType,
    Show,
    ShowGuarantee,
    ShowMember,
    ShowMemberConsensus,
    ShowStatus,
    Venue,
)
from showspot.engine.consensus import (
    count_individual_artists,
    effective_decision,
    individual_payee_slots,
    is_consensus_complete,
    is_performer,
    member_from_row,
    pending_members,
)
from showspot.engine.guarantee import artist_guarantee, venue_guarantee
from showspot.errors import (
    InvalidDecisionError,
    MemberNotFoundError,
    PartialFailure,
    ShowNotFoundError,
    ShowNotPendingError,
    ValidationError,
    VenueNotFoundError,
)
from showspot.services import activation_service, vote_service

if TYPE_CHECKING:
    from sqlalchemy import Engine

    from showspot.services.notification_service import Notifier

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class MemberInvite:
    """One performer invited by the promoter."""

    member_id: uuid.UUID
    member_type: str
    position: str | None = None


@dataclass
class DecisionResult:
    show_id: uuid.UUID
    status: str
    activated: bool
    entries_updated: int
    notification: PartialFailure | None = None

    def to_dict(self) -> dict:
        return {
            "show_id": str(self.show_id),
            "status": self.status,
            "activated": self.activated,
            "entries_updated": self.entries_updated,
            "notification": self.notification.to_dict() if self.notification else None,
        }


# ---------------------------------------------------------------------------
# Shared helpers
# ---------------------------------------------------------------------------
def lock_show(session: Session, show_id: uuid.UUID) -> Show:
    """Load the show with a row lock, or raise :class:`ShowNotFoundError`."""
    show = session.scalar(select(Show).where(Show.id == show_id).with_for_update())
    if show is None:
        raise ShowNotFoundError(show_id)
    return show


def artist_ids_for_user(session: Session, user_id: uuid.UUID | None) -> list[uuid.UUID]:
    """Solo artist identities owned by *user_id* (usually zero or one)."""
    if user_id is None:
        return []
    return list(session.scalars(select(Artist.id).where(Artist.user_id == user_id)).all())


def band_ids_for_artists(session: Session, artist_ids: list[uuid.UUID]) -> list[uuid.UUID]:
    if not artist_ids:
        return []
    return list(session.scalars(
        select(BandMembership.band_id)
        .where(BandMembership.artist_id.in_(artist_ids))
        .distinct()
    ).all())


def _members(show: Show):
    return [member_from_row(row) for row in show.members]


# ---------------------------------------------------------------------------
# Creation (promoter flow)
# ---------------------------------------------------------------------------
def create_show(
    engine: Engine,
    *,
    venue_id: uuid.UUID,
    promoter_id: uuid.UUID,
    preferred_date: date,
    preferred_time: time,
    members: list[MemberInvite],
    description: str | None = None,
) -> Show:
    """Create a pending show and snapshot each invited band's members.

    Every decision starts ``False``; the band's consensus list is frozen at
    creation time so later band roster changes don't alter the vote.

    Raises
    ------
    VenueNotFoundError
        If the venue doesn't exist.
    ValidationError
        If no members are invited, a member is listed twice, an artist or
        band is unknown, or a band has no members.
    """
    if not members:
        raise ValidationError("A show needs at least one invited performer")
    keys = [(m.member_id, m.member_type) for m in members]
    if len(set(keys)) != len(keys):
        raise ValidationError("A performer is listed more than once")

    with Session(engine, expire_on_commit=False) as session:
        if session.get(Venue, venue_id) is None:
            raise VenueNotFoundError(venue_id)

        show = Show(
            venue_id=venue_id,
            promoter_id=promoter_id,
            status=ShowStatus.PENDING.value,
            venue_decision=False,
            preferred_date=preferred_date,
            preferred_time=preferred_time,
            description=description,
        )
        for slot, invite in enumerate(members):
            row = ShowMember(
                member_id=invite.member_id,
                member_type=invite.member_type,
                position=invite.position,
                slot=slot,
                decision=False,
            )
            if invite.member_type == MemberType.ARTIST.value:
                if session.get(Artist, invite.member_id) is None:
                    raise ValidationError(f"Unknown artist {invite.member_id}")
            elif invite.member_type == MemberType.BAND.value:
                roster = session.scalars(
                    select(BandMembership.artist_id)
                    .where(BandMembership.band_id == invite.member_id)
                    .order_by(BandMembership.artist_id)
                ).all()
                if not roster:
                    raise ValidationError(f"Band {invite.member_id} has no members")
                row.consensus = [
                    ShowMemberConsensus(sub_member_id=artist_id, decision=False)
                    for artist_id in roster
                ]
            else:
                raise ValidationError(f"Unknown member type {invite.member_type!r}")
            show.members.append(row)

        session.add(show)
        session.commit()
        # Load relationships before handing the detached object back.
        session.refresh(show)
        for row in show.members:
            _ = row.consensus
        logger.info(
            "Show %s created at venue %s with %d members",
            show.id, venue_id, len(members),
        )
        return show


# ---------------------------------------------------------------------------
# Read model
# ---------------------------------------------------------------------------
def _member_dict(row: ShowMember) -> dict:
    member = member_from_row(row)
    data = {
        "member_id": str(row.member_id),
        "member_type": row.member_type,
        "position": row.position,
        "decision": effective_decision(member),
    }
    if row.member_type == MemberType.BAND.value:
        data["consensus"] = [
            {"sub_member_id": str(c.sub_member_id), "decision": c.decision}
            for c in row.consensus
        ]
    return data


def show_view(session: Session, show: Show) -> dict:
    members = _members(show)
    venue = session.get(Venue, show.venue_id)
    return {
        "id": str(show.id),
        "status": show.status,
        "promoter_id": str(show.promoter_id),
        "venue": {
            "id": str(show.venue_id),
            "name": venue.name if venue else None,
            "capacity": venue.capacity if venue else None,
        },
        "venue_decision": show.venue_decision,
        "preferred_date": show.preferred_date.isoformat(),
        "preferred_time": show.preferred_time.isoformat(),
        "show_date": show.show_date.isoformat() if show.show_date else None,
        "show_time": show.show_time.isoformat() if show.show_time else None,
        "ticket_price": str(show.ticket_price) if show.ticket_price is not None else None,
        "venue_percentage": show.venue_percentage,
        "description": show.description,
        "created_at": show.created_at.isoformat() if show.created_at else None,
        "activated_at": show.activated_at.isoformat() if show.activated_at else None,
        "members": [_member_dict(row) for row in show.members],
        "individual_artists": count_individual_artists(members),
        "consensus_complete": is_consensus_complete(show.venue_decision, members),
        "pending_members": [
            {
                "member_id": str(p["member_id"]),
                "member_type": p["member_type"],
                "waiting_on": [str(a) for a in p["waiting_on"]],
            }
            for p in pending_members(members)
        ],
    }


def get_show(engine: Engine, show_id: uuid.UUID) -> dict:
    """Show read model with consensus state and vote count.

    Raises
    ------
    ShowNotFoundError
        If the show doesn't exist.
    """
    with Session(engine) as session:
        show = session.get(Show, show_id)
        if show is None:
            raise ShowNotFoundError(show_id)
        view = show_view(session, show)
    view["vote_count"] = vote_service.get_show_vote_count(engine, show_id)
    return view


def get_venue_owner(engine: Engine, show_id: uuid.UUID) -> uuid.UUID | None:
    """Owner of the show's venue, or ``None`` for an unknown show."""
    with Session(engine) as session:
        return session.scalar(
            select(Venue.owner_user_id)
            .join(Show, Show.venue_id == Venue.id)
            .where(Show.id == show_id)
        )


# ---------------------------------------------------------------------------
# Member decisions
# ---------------------------------------------------------------------------
def record_member_decision(
    engine: Engine,
    show_id: uuid.UUID,
    artist_id: uuid.UUID,
    decision: bool,
    notifier: Notifier | None = None,
) -> DecisionResult:
    """Record *artist_id*'s accept/decline everywhere they appear on the show.

    A direct artist entry gets ``decision`` set; every band containing the
    artist gets the artist's consensus entry set.  A band's own decision
    is never written.  Declining is retractable while the show is pending.

    Raises
    ------
    InvalidDecisionError
        If *decision* isn't a bool.
    ShowNotFoundError
        If the show doesn't exist.
    ShowNotPendingError
        If the show is already active (or cancelled).
    MemberNotFoundError
        If the artist appears nowhere on the show.
    """
    if not isinstance(decision, bool):
        raise InvalidDecisionError(f"decision must be true or false, got {decision!r}")

    with Session(engine, expire_on_commit=False) as session:
        show = lock_show(session, show_id)
        if show.status != ShowStatus.PENDING.value:
            raise ShowNotPendingError(show_id, show.status)

        updated = 0
        for row in show.members:
            if row.member_type == MemberType.ARTIST.value and row.member_id == artist_id:
                row.decision = decision
                updated += 1
            elif row.member_type == MemberType.BAND.value:
                for entry in row.consensus:
                    if entry.sub_member_id == artist_id:
                        entry.decision = decision
                        updated += 1
        if not updated:
            raise MemberNotFoundError(show_id, artist_id)

        session.flush()
        outcome = activation_service.evaluate_activation(session, show)
        session.commit()

    logger.info(
        "Artist %s %s show %s (%d entries)",
        artist_id, "accepted" if decision else "declined", show_id, updated,
    )
    return DecisionResult(
        show_id=show_id,
        status=outcome.status,
        activated=outcome.activated,
        entries_updated=updated,
        notification=activation_service.announce_activation(notifier, outcome),
    )


# ---------------------------------------------------------------------------
# Resolution reads
# ---------------------------------------------------------------------------
def is_user_performer(engine: Engine, show_id: uuid.UUID, user_id: uuid.UUID | None) -> bool:
    """Whether the user's artist performs on the show, directly or via a band."""
    with Session(engine) as session:
        show = session.get(Show, show_id)
        if show is None:
            return False
        return is_performer(_members(show), artist_ids_for_user(session, user_id))


def get_user_guarantee(
    engine: Engine, show_id: uuid.UUID, user_id: uuid.UUID | None
) -> list[dict]:
    """The caller's payout tiers on the show, one entry per role held.

    A venue owner gets a ``venue`` entry; every artist identity of the
    caller that is a payee gets its own ``artist`` entry, with the stored
    post-negotiation guarantee taking precedence over a fresh split.
    ``guarantee`` is ``None`` while undetermined.  An empty list means the
    user has no stake in the show.
    """
    with Session(engine) as session:
        show = session.get(Show, show_id)
        if show is None or user_id is None:
            return []
        venue = session.get(Venue, show.venue_id)
        capacity = venue.capacity if venue else None
        roles: list[dict] = []

        if venue is not None and venue.owner_user_id == user_id:
            tiers = venue_guarantee(capacity, show.ticket_price, show.venue_percentage)
            roles.append({
                "role": "venue",
                "determined": tiers is not None,
                "guarantee": tiers.to_dict() if tiers else None,
            })

        members = _members(show)
        slots = individual_payee_slots(members)
        individual_count = count_individual_artists(members)
        for artist_id in artist_ids_for_user(session, user_id):
            if artist_id not in slots:
                continue
            stored = session.get(ShowGuarantee, (show.id, artist_id))
            tiers = artist_guarantee(
                capacity,
                show.ticket_price,
                show.venue_percentage,
                individual_count,
                stored_amount=stored.payout_amount if stored else None,
                slots=slots[artist_id],
            )
            roles.append({
                "role": "artist",
                "artist_id": str(artist_id),
                "stored": stored is not None and stored.payout_amount is not None,
                "determined": tiers is not None,
                "guarantee": tiers.to_dict() if tiers else None,
            })
        return roles
