"""
showspot.services.ticket_service — Ticket Sales Ledger
=======================================================

Read side: sales progress against capacity, exposed only for active
shows with a known capacity.

Write side: the ingestion point the payment/ticketing collaborator calls
once it holds a confirmation token.  The token is proof of payment and is
not verified here.  Purchases on one show are serialized by the show row
lock so the capacity check and the insert can't interleave.

Door side: scanning a ticket flips it valid → used exactly once, with a
compare-and-swap so two scanners racing on one code admit one guest.
"""

from __future__ import annotations

import logging
import uuid
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from showspot.database.models import (
    SEATED_TICKET_STATUSES,
    Show,
    ShowStatus,
    Ticket,
    TicketStatus,
    Venue,
)
from showspot.engine.tickets import TicketSalesInfo, generate_qr_code, is_ticket_code
from showspot.errors import (
    ShowNotActiveError,
    SoldOutError,
    TicketNotFoundError,
    TicketNotValidError,
    ValidationError,
)
from showspot.services.show_service import lock_show

if TYPE_CHECKING:
    from sqlalchemy import Engine

logger = logging.getLogger(__name__)


def _tickets_sold(session: Session, show_id: uuid.UUID) -> int:
    return session.scalar(
        select(func.count())
        .select_from(Ticket)
        .where(Ticket.show_id == show_id, Ticket.status.in_(SEATED_TICKET_STATUSES))
    ) or 0


def get_ticket_sales_info(engine: Engine, show_id: uuid.UUID) -> TicketSalesInfo | None:
    """Sales progress, or ``None`` unless the show is active with a known capacity."""
    with Session(engine) as session:
        show = session.get(Show, show_id)
        if show is None or show.status != ShowStatus.ACTIVE.value:
            return None
        venue = session.get(Venue, show.venue_id)
        if venue is None or venue.capacity is None:
            return None
        return TicketSalesInfo(
            tickets_sold=_tickets_sold(session, show_id), capacity=venue.capacity
        )


def record_ticket_purchase(
    engine: Engine,
    show_id: uuid.UUID,
    purchaser_id: uuid.UUID,
    payment_token: str,
) -> Ticket:
    """Record one confirmed purchase at the show's negotiated price.

    Raises
    ------
    ValidationError
        If the payment token is empty or the show has no price/capacity.
    ShowNotFoundError
        If the show doesn't exist.
    ShowNotActiveError
        If the show isn't active.
    SoldOutError
        If every seat is taken.
    """
    if not payment_token or not payment_token.strip():
        raise ValidationError("A payment confirmation token is required")

    with Session(engine, expire_on_commit=False) as session:
        show = lock_show(session, show_id)
        if show.status != ShowStatus.ACTIVE.value:
            raise ShowNotActiveError(show_id, show.status)
        venue = session.get(Venue, show.venue_id)
        if show.ticket_price is None or venue is None or venue.capacity is None:
            raise ValidationError(f"Show {show_id} has no ticket price or capacity")

        sold = _tickets_sold(session, show_id)
        if sold >= venue.capacity:
            raise SoldOutError(show_id, venue.capacity)

        ticket = Ticket(
            show_id=show_id,
            purchaser_id=purchaser_id,
            price_paid=show.ticket_price,
            payment_token=payment_token.strip(),
            qr_code=generate_qr_code(),
            status=TicketStatus.VALID.value,
        )
        session.add(ticket)
        session.commit()
        session.refresh(ticket)

    logger.info(
        "Ticket %s sold for show %s (%d/%d)",
        ticket.qr_code, show_id, sold + 1, venue.capacity,
    )
    return ticket


def list_user_tickets(engine: Engine, user_id: uuid.UUID) -> list[Ticket]:
    """All of *user_id*'s tickets, newest first."""
    with Session(engine, expire_on_commit=False) as session:
        return list(session.scalars(
            select(Ticket)
            .where(Ticket.purchaser_id == user_id)
            .order_by(Ticket.created_at.desc(), Ticket.qr_code)
        ).all())


def scan_ticket(
    engine: Engine,
    show_id: uuid.UUID,
    qr_code: str,
    scanned_by: uuid.UUID,
) -> Ticket:
    """Admit the holder of *qr_code* at the door of *show_id*.

    Raises
    ------
    ValidationError
        If *qr_code* is not a ShowSpot ticket code.
    TicketNotFoundError
        If no ticket with that code was sold for this show.
    TicketNotValidError
        If the ticket was already scanned or has been refunded.
    """
    code = (qr_code or "").strip().upper()
    if not is_ticket_code(code):
        raise ValidationError(f"Malformed ticket code {qr_code!r}")

    with Session(engine, expire_on_commit=False) as session:
        result = session.execute(
            update(Ticket)
            .where(
                Ticket.show_id == show_id,
                Ticket.qr_code == code,
                Ticket.status == TicketStatus.VALID.value,
            )
            .values(
                status=TicketStatus.USED.value,
                scanned_at=datetime.now(UTC),
                scanned_by=scanned_by,
            )
            .execution_options(synchronize_session=False)
        )
        ticket = session.scalar(
            select(Ticket).where(Ticket.show_id == show_id, Ticket.qr_code == code)
        )
        if ticket is None:
            raise TicketNotFoundError(code)
        if result.rowcount != 1:
            raise TicketNotValidError(code, ticket.status)
        session.commit()

    logger.info("Ticket %s scanned for show %s by %s", code, show_id, scanned_by)
    return ticket
