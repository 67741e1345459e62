"""
showspot.api.routes.tickets — Ticket sales endpoints
=====================================================

``POST /shows/{id}/tickets`` is called once the payment collaborator has
returned a confirmation token; the token is recorded, not verified.
``POST /shows/{id}/tickets/scan`` is the venue owner's door check.
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from showspot.api.deps import get_current_user, get_engine
from showspot.api.routes.shows import require_venue_owner
from showspot.database.models import Ticket
from showspot.services import ticket_service

router = APIRouter(tags=["tickets"])


class PurchaseIn(BaseModel):
    payment_token: str = Field(min_length=1, max_length=255)


class ScanIn(BaseModel):
    qr_code: str = Field(min_length=1, max_length=40)


def _ticket_dict(t: Ticket) -> dict:
    return {
        "id": str(t.id),
        "show_id": str(t.show_id),
        "price_paid": str(t.price_paid),
        "qr_code": t.qr_code,
        "status": t.status,
        "created_at": t.created_at.isoformat() if t.created_at else None,
        "scanned_at": t.scanned_at.isoformat() if t.scanned_at else None,
        "scanned_by": str(t.scanned_by) if t.scanned_by else None,
    }


@router.get("/shows/{show_id}/tickets")
def get_sales(show_id: uuid.UUID, engine=Depends(get_engine)):
    """Sales progress.  ``available`` is false for pending shows."""
    info = ticket_service.get_ticket_sales_info(engine, show_id)
    if info is None:
        return {"available": False}
    return {"available": True, **info.to_dict()}


@router.post("/shows/{show_id}/tickets", status_code=201)
def purchase(
    show_id: uuid.UUID,
    body: PurchaseIn,
    user_id: uuid.UUID = Depends(get_current_user),
    engine=Depends(get_engine),
):
    ticket = ticket_service.record_ticket_purchase(
        engine, show_id, user_id, body.payment_token
    )
    return _ticket_dict(ticket)


@router.post("/shows/{show_id}/tickets/scan")
def scan(
    show_id: uuid.UUID,
    body: ScanIn,
    user_id: uuid.UUID = Depends(get_current_user),
    engine=Depends(get_engine),
):
    require_venue_owner(engine, show_id, user_id)
    ticket = ticket_service.scan_ticket(engine, show_id, body.qr_code, user_id)
    return _ticket_dict(ticket)


@router.get("/me/tickets")
def my_tickets(
    user_id: uuid.UUID = Depends(get_current_user),
    engine=Depends(get_engine),
):
    return {"tickets": [_ticket_dict(t) for t in ticket_service.list_user_tickets(engine, user_id)]}
