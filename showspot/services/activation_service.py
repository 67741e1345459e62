"""
showspot.services.activation_service — Activation Trigger
==========================================================

State machine::

    pending --(venue accepted AND every member consents)--> active

Evaluated server-side inside the same transaction as every
consensus-affecting write (member decision, venue commit).  The
transition itself is a compare-and-swap::

    UPDATE shows SET status = 'active' WHERE id = :id AND status = 'pending'

so re-evaluating an active show is a no-op and there is no path back to
pending.  The ``show_activated`` fan-out runs after commit.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from showspot.constants import format_currency
from showspot.database.models import Show, ShowStatus, Venue
from showspot.engine.consensus import (
    individual_payee_slots,
    is_consensus_complete,
    member_from_row,
)
from showspot.errors import PartialFailure, ShowNotFoundError
from showspot.services import notification_service

if TYPE_CHECKING:
    from sqlalchemy import Engine

    from showspot.services.notification_service import Notifier

logger = logging.getLogger(__name__)


@dataclass
class ActivationOutcome:
    """Result of one evaluation, plus what to announce once committed."""

    show_id: uuid.UUID
    status: str
    activated: bool = False
    recipients: list[uuid.UUID] = field(default_factory=list)
    payload: dict = field(default_factory=dict)


def show_notice_payload(show: Show, venue: Venue | None) -> dict:
    """The shared part of every show notice sent to the collaborator."""
    when_date = show.show_date or show.preferred_date
    when_time = show.show_time or show.preferred_time
    return {
        "show_id": str(show.id),
        "venue_name": venue.name if venue else None,
        "date": when_date.isoformat() if when_date else None,
        "time": when_time.isoformat() if when_time else None,
        "ticket_price": format_currency(show.ticket_price),
        "venue_percentage": show.venue_percentage,
    }


def evaluate_activation(session: Session, show: Show) -> ActivationOutcome:
    """Run the activation predicate and, if it holds, flip the status.

    The caller must hold the show row lock and owns the transaction.
    """
    members = [member_from_row(row) for row in show.members]
    if show.status != ShowStatus.PENDING.value or not is_consensus_complete(
        show.venue_decision, members
    ):
        return ActivationOutcome(show.id, show.status)

    result = session.execute(
        update(Show)
        .where(Show.id == show.id, Show.status == ShowStatus.PENDING.value)
        .values(status=ShowStatus.ACTIVE.value, activated_at=datetime.now(UTC))
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        # Another transaction won the swap.
        session.refresh(show, ["status", "activated_at"])
        return ActivationOutcome(show.id, show.status)

    session.refresh(show, ["status", "activated_at"])
    logger.info("Show %s activated (%d members)", show.id, len(members))

    venue = session.get(Venue, show.venue_id)
    performers = notification_service.artist_user_ids(
        session, individual_payee_slots(members)
    )
    recipients = list(performers.values())
    if venue is not None:
        recipients.append(venue.owner_user_id)
    return ActivationOutcome(
        show.id,
        show.status,
        activated=True,
        recipients=recipients,
        payload=show_notice_payload(show, venue),
    )


def announce_activation(
    notifier: Notifier | None, outcome: ActivationOutcome
) -> PartialFailure | None:
    """Fan out ``show_activated`` if the outcome was a transition."""
    if not outcome.activated:
        return None
    return notification_service.fan_out(
        notifier, outcome.recipients, notification_service.SHOW_ACTIVATED, outcome.payload
    )


def activate_if_ready(
    engine: Engine, show_id: uuid.UUID, notifier: Notifier | None = None
) -> ActivationOutcome:
    """Stand-alone re-evaluation, e.g. after a read-model repair.

    Raises
    ------
    ShowNotFoundError
        If the show doesn't exist.
    """
    with Session(engine, expire_on_commit=False) as session:
        show = session.scalar(
            select(Show).where(Show.id == show_id).with_for_update()
        )
        if show is None:
            raise ShowNotFoundError(show_id)
        outcome = evaluate_activation(session, show)
        session.commit()
    announce_activation(notifier, outcome)
    return outcome
