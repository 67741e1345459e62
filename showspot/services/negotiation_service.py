"""
showspot.services.negotiation_service — Venue Acceptance Workflow
==================================================================

Persists the three-stage venue negotiation:

  1. ``get_negotiation_overview`` — show, consensus state, capacity and the
     offered price / percentage sets
  2. ``preview_terms`` — validates the picks and returns the review screen
     (venue tiers, per-artist tiers, individual artist count)
  3. ``commit_venue_acceptance`` — one combined write: venue decision,
     economics, confirmed date/time and the full per-artist guarantee
     array, then activation in the same transaction

The commit is not restartable.  Members added later are only guaranteed
after an explicit ``recompute_guarantees``.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import delete
from sqlalchemy.orm import Session

from showspot.constants import format_currency
from showspot.database.models import Show, ShowGuarantee, ShowStatus, Venue
from showspot.engine.consensus import (
    count_individual_artists,
    individual_payee_slots,
    member_from_row,
)
from showspot.engine.guarantee import (
    PartyType,
    build_tiers,
    try_split_revenue,
    venue_guarantee,
)
from showspot.engine.negotiation import NegotiationStage, VenueNegotiation
from showspot.errors import (
    ConflictError,
    NegotiationAlreadySubmittedError,
    PartialFailure,
    ShowNotFoundError,
    ShowNotPendingError,
)
from showspot.services import activation_service, notification_service
from showspot.services.show_service import lock_show, show_view

if TYPE_CHECKING:
    from sqlalchemy import Engine

    from showspot.config import ShowSpotConfig
    from showspot.services.notification_service import Notifier

logger = logging.getLogger(__name__)


@dataclass
class CommitResult:
    show_id: uuid.UUID
    status: str
    activated: bool
    ticket_price: Decimal
    venue_percentage: int
    guarantees: dict[uuid.UUID, Decimal | None]
    notifications: list[PartialFailure] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "show_id": str(self.show_id),
            "status": self.status,
            "activated": self.activated,
            "ticket_price": str(self.ticket_price),
            "venue_percentage": self.venue_percentage,
            "guarantees": [
                {
                    "payee_artist_id": str(payee),
                    "payout_amount": str(amount) if amount is not None else None,
                }
                for payee, amount in self.guarantees.items()
            ],
            "notifications": [n.to_dict() for n in self.notifications],
        }


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
def _negotiation(cfg: ShowSpotConfig, show: Show) -> VenueNegotiation:
    return VenueNegotiation.for_show(
        show.venue_decision,
        cfg.offered_ticket_prices,
        cfg.offered_venue_percentages,
        show_id=show.id,
    )


def _review(
    capacity: int | None, price: Decimal, pct: int, members: list
) -> dict:
    """The stage-3 review screen for a set of terms."""
    individual = count_individual_artists(members)
    split = try_split_revenue(capacity, price, pct, individual)
    venue_tiers = venue_guarantee(capacity, price, pct)
    artist_tiers = build_tiers(split.per_artist, PartyType.ARTIST) if split else None
    return {
        "ticket_price": str(price),
        "venue_percentage": pct,
        "capacity": capacity,
        "individual_artists": individual,
        "determined": split is not None,
        "split": split.to_dict() if split else None,
        "venue_guarantee": venue_tiers.to_dict() if venue_tiers else None,
        "artist_guarantee": artist_tiers.to_dict() if artist_tiers else None,
    }


def _write_guarantees(
    session: Session, show: Show, capacity: int | None
) -> dict[uuid.UUID, Decimal | None]:
    """Replace the show's guarantee array from the current member set.

    An undetermined split stores NULL amounts rather than aborting.
    """
    members = [member_from_row(row) for row in show.members]
    slots = individual_payee_slots(members)
    split = try_split_revenue(
        capacity, show.ticket_price, show.venue_percentage, count_individual_artists(members)
    )

    session.execute(delete(ShowGuarantee).where(ShowGuarantee.show_id == show.id))
    payouts: dict[uuid.UUID, Decimal | None] = {}
    for payee, count in slots.items():
        amount = split.per_artist * count if split else None
        payouts[payee] = amount
        session.add(ShowGuarantee(show_id=show.id, payee_artist_id=payee, payout_amount=amount))
    session.flush()
    session.expire(show, ["guarantees"])

    if split is None:
        logger.warning("Guarantees for show %s stored as undetermined", show.id)
    return payouts


# ---------------------------------------------------------------------------
# Stage 1
# ---------------------------------------------------------------------------
def get_negotiation_overview(engine: Engine, cfg: ShowSpotConfig, show_id: uuid.UUID) -> dict:
    """Raises :class:`ShowNotFoundError` for an unknown show."""
    with Session(engine) as session:
        show = session.get(Show, show_id)
        if show is None:
            raise ShowNotFoundError(show_id)
        negotiation = _negotiation(cfg, show)
        venue = session.get(Venue, show.venue_id)
        return {
            "stage": negotiation.stage.name.lower(),
            "show": show_view(session, show),
            "capacity": venue.capacity if venue else None,
            "offered_ticket_prices": [str(p) for p in cfg.offered_ticket_prices],
            "offered_venue_percentages": list(cfg.offered_venue_percentages),
        }


# ---------------------------------------------------------------------------
# Stage 2
# ---------------------------------------------------------------------------
def preview_terms(
    engine: Engine,
    cfg: ShowSpotConfig,
    show_id: uuid.UUID,
    ticket_price,
    venue_percentage,
) -> dict:
    """Validate the venue's picks and compute the review screen.

    Raises
    ------
    ShowNotFoundError
        If the show doesn't exist.
    NegotiationAlreadySubmittedError
        If the venue already committed.
    InvalidTermsError
        If either value is not one of the offered values.
    """
    with Session(engine) as session:
        show = session.get(Show, show_id)
        if show is None:
            raise ShowNotFoundError(show_id)
        negotiation = _negotiation(cfg, show)
        if negotiation.submitted:
            raise NegotiationAlreadySubmittedError(show_id)
        negotiation.review()
        price, pct = negotiation.set_terms(ticket_price, venue_percentage)

        venue = session.get(Venue, show.venue_id)
        members = [member_from_row(row) for row in show.members]
        review = _review(venue.capacity if venue else None, price, pct, members)
    review["stage"] = NegotiationStage.CONFIRM.name.lower()
    return review


# ---------------------------------------------------------------------------
# Stage 3
# ---------------------------------------------------------------------------
def commit_venue_acceptance(
    engine: Engine,
    cfg: ShowSpotConfig,
    show_id: uuid.UUID,
    ticket_price,
    venue_percentage,
    notifier: Notifier | None = None,
) -> CommitResult:
    """Accept the show on the venue's behalf with the chosen terms.

    Raises
    ------
    ShowNotFoundError
        If the show doesn't exist.
    NegotiationAlreadySubmittedError
        On a second commit.
    ShowNotPendingError
        If the show was cancelled.
    InvalidTermsError
        If either value is not one of the offered values.
    """
    with Session(engine, expire_on_commit=False) as session:
        show = lock_show(session, show_id)
        negotiation = _negotiation(cfg, show)
        if negotiation.submitted:
            raise NegotiationAlreadySubmittedError(show_id)
        if show.status != ShowStatus.PENDING.value:
            raise ShowNotPendingError(show_id, show.status)

        negotiation.review()
        negotiation.set_terms(ticket_price, venue_percentage)
        price, pct = negotiation.submit()

        show.venue_decision = True
        show.ticket_price = price
        show.venue_percentage = pct
        show.show_date = show.preferred_date
        show.show_time = show.preferred_time

        venue = session.get(Venue, show.venue_id)
        payouts = _write_guarantees(session, show, venue.capacity if venue else None)

        base_payload = activation_service.show_notice_payload(show, venue)
        user_for_artist = notification_service.artist_user_ids(session, payouts)
        guarantee_for_user = {
            str(user_for_artist[artist]): amount
            for artist, amount in payouts.items()
            if artist in user_for_artist
        }
        promoter_id = show.promoter_id

        outcome = activation_service.evaluate_activation(session, show)
        session.commit()

    logger.info(
        "Venue accepted show %s at %s / %d%% (%d payees)",
        show_id, price, pct, len(payouts),
    )

    def _payload(recipient_id: str) -> dict:
        if recipient_id not in guarantee_for_user:
            return base_payload  # promoters are not paid
        return {
            **base_payload,
            "guarantee": format_currency(guarantee_for_user[recipient_id]),
        }

    notifications = [
        notification_service.fan_out(
            notifier,
            [*guarantee_for_user.keys(), promoter_id],
            notification_service.VENUE_ACCEPTED,
            _payload,
        )
    ]
    activation_notice = activation_service.announce_activation(notifier, outcome)
    if activation_notice is not None:
        notifications.append(activation_notice)

    return CommitResult(
        show_id=show_id,
        status=outcome.status,
        activated=outcome.activated,
        ticket_price=price,
        venue_percentage=pct,
        guarantees=payouts,
        notifications=notifications,
    )


# ---------------------------------------------------------------------------
# Re-run
# ---------------------------------------------------------------------------
def recompute_guarantees(engine: Engine, show_id: uuid.UUID) -> dict[uuid.UUID, Decimal | None]:
    """Re-split from the stored economics and the current member set.

    Raises
    ------
    ShowNotFoundError
        If the show doesn't exist.
    ConflictError
        If the venue hasn't committed terms yet.
    """
    with Session(engine) as session:
        show = lock_show(session, show_id)
        if not show.venue_decision:
            raise ConflictError(f"Venue has not accepted show {show_id} yet")
        venue = session.get(Venue, show.venue_id)
        payouts = _write_guarantees(session, show, venue.capacity if venue else None)
        session.commit()
    logger.info("Guarantees recomputed for show %s (%d payees)", show_id, len(payouts))
    return payouts
