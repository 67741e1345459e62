"""
showspot.api.routes.shows — Show, decision & venue negotiation endpoints
=========================================================================
"""

from __future__ import annotations

import uuid
from datetime import date, time
from decimal import Decimal

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field, field_validator
from sqlalchemy import select
from sqlalchemy.orm import Session

from showspot.api.deps import (
    get_config,
    get_current_user,
    get_engine,
    get_notifier,
    get_optional_user,
    get_session,
)
from showspot.config import ShowSpotConfig
from showspot.constants import parse_currency
from showspot.database.models import Artist, MemberType
from showspot.errors import ShowNotFoundError
from showspot.services import activation_service, negotiation_service, show_service
from showspot.services.show_service import MemberInvite

router = APIRouter(prefix="/shows", tags=["shows"])


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------
class MemberIn(BaseModel):
    member_id: uuid.UUID
    member_type: MemberType
    position: str | None = Field(default=None, max_length=30)


class ShowCreate(BaseModel):
    venue_id: uuid.UUID
    preferred_date: date
    preferred_time: time
    members: list[MemberIn] = Field(min_length=1)
    description: str | None = None


class DecisionIn(BaseModel):
    artist_id: uuid.UUID
    decision: bool


class TermsIn(BaseModel):
    ticket_price: Decimal
    venue_percentage: int

    @field_validator("ticket_price", mode="before")
    @classmethod
    def _parse_price(cls, value):
        """Accept ``"$20.00"`` as well as plain numbers."""
        if isinstance(value, str):
            parsed = parse_currency(value)
            if parsed is None:
                raise ValueError(f"not a price: {value!r}")
            return parsed
        return value


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
def require_own_artist(session: Session, user_id: uuid.UUID, artist_id: uuid.UUID) -> None:
    """403 unless *artist_id* belongs to the caller."""
    owner = session.scalar(select(Artist.user_id).where(Artist.id == artist_id))
    if owner != user_id:
        raise HTTPException(403, "Not your artist profile")


def require_venue_owner(engine, show_id: uuid.UUID, user_id: uuid.UUID) -> None:
    """404 for an unknown show, 403 unless the caller owns its venue."""
    owner = show_service.get_venue_owner(engine, show_id)
    if owner is None:
        raise ShowNotFoundError(show_id)
    if owner != user_id:
        raise HTTPException(403, "Only the venue owner can manage this show")


# ---------------------------------------------------------------------------
# Shows
# ---------------------------------------------------------------------------
@router.post("", status_code=201)
def create_show(
    body: ShowCreate,
    user_id: uuid.UUID = Depends(get_current_user),
    engine=Depends(get_engine),
):
    show = show_service.create_show(
        engine,
        venue_id=body.venue_id,
        promoter_id=user_id,
        preferred_date=body.preferred_date,
        preferred_time=body.preferred_time,
        members=[
            MemberInvite(m.member_id, m.member_type.value, m.position)
            for m in body.members
        ],
        description=body.description,
    )
    return {"id": str(show.id), "status": show.status}


@router.get("/{show_id}")
def get_show(show_id: uuid.UUID, engine=Depends(get_engine)):
    return show_service.get_show(engine, show_id)


@router.post("/{show_id}/decisions")
def record_decision(
    show_id: uuid.UUID,
    body: DecisionIn,
    user_id: uuid.UUID = Depends(get_current_user),
    session: Session = Depends(get_session),
    engine=Depends(get_engine),
    notifier=Depends(get_notifier),
):
    require_own_artist(session, user_id, body.artist_id)
    result = show_service.record_member_decision(
        engine, show_id, body.artist_id, body.decision, notifier=notifier
    )
    return result.to_dict()


@router.get("/{show_id}/guarantee")
def get_guarantee(
    show_id: uuid.UUID,
    user_id: uuid.UUID | None = Depends(get_optional_user),
    engine=Depends(get_engine),
):
    """Every payout role the caller holds.  ``guarantee`` is null until determined."""
    return {"roles": show_service.get_user_guarantee(engine, show_id, user_id)}


# ---------------------------------------------------------------------------
# Venue negotiation
# ---------------------------------------------------------------------------
@router.get("/{show_id}/negotiation")
def negotiation_overview(
    show_id: uuid.UUID,
    user_id: uuid.UUID = Depends(get_current_user),
    engine=Depends(get_engine),
    cfg: ShowSpotConfig = Depends(get_config),
):
    require_venue_owner(engine, show_id, user_id)
    return negotiation_service.get_negotiation_overview(engine, cfg, show_id)


@router.post("/{show_id}/negotiation/preview")
def negotiation_preview(
    show_id: uuid.UUID,
    body: TermsIn,
    user_id: uuid.UUID = Depends(get_current_user),
    engine=Depends(get_engine),
    cfg: ShowSpotConfig = Depends(get_config),
):
    require_venue_owner(engine, show_id, user_id)
    return negotiation_service.preview_terms(
        engine, cfg, show_id, body.ticket_price, body.venue_percentage
    )


@router.post("/{show_id}/negotiation/commit")
def negotiation_commit(
    show_id: uuid.UUID,
    body: TermsIn,
    user_id: uuid.UUID = Depends(get_current_user),
    engine=Depends(get_engine),
    cfg: ShowSpotConfig = Depends(get_config),
    notifier=Depends(get_notifier),
):
    require_venue_owner(engine, show_id, user_id)
    result = negotiation_service.commit_venue_acceptance(
        engine, cfg, show_id, body.ticket_price, body.venue_percentage, notifier=notifier
    )
    return result.to_dict()


@router.post("/{show_id}/negotiation/recompute")
def negotiation_recompute(
    show_id: uuid.UUID,
    user_id: uuid.UUID = Depends(get_current_user),
    engine=Depends(get_engine),
):
    """Re-run the guarantee split for the current member set."""
    require_venue_owner(engine, show_id, user_id)
    payouts = negotiation_service.recompute_guarantees(engine, show_id)
    return {
        "guarantees": [
            {
                "payee_artist_id": str(payee),
                "payout_amount": str(amount) if amount is not None else None,
            }
            for payee, amount in payouts.items()
        ]
    }


@router.post("/{show_id}/activation")
def reevaluate_activation(
    show_id: uuid.UUID,
    user_id: uuid.UUID = Depends(get_current_user),
    engine=Depends(get_engine),
    notifier=Depends(get_notifier),
):
    """Re-run the activation check, e.g. after the read models were repaired."""
    require_venue_owner(engine, show_id, user_id)
    outcome = activation_service.activate_if_ready(engine, show_id, notifier=notifier)
    return {"status": outcome.status, "activated": outcome.activated}
