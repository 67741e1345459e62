"""
showspot.api.routes.backlines — Backline application endpoints
===============================================================
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, HTTPException, Response
from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.orm import Session

from showspot.api.deps import (
    get_current_user,
    get_engine,
    get_notifier,
    get_optional_user,
    get_session,
)
from showspot.api.routes.shows import require_own_artist
from showspot.database.models import Artist, BandMembership, MemberType
from showspot.services import backline_service

router = APIRouter(prefix="/shows", tags=["backlines"])


class ApplyIn(BaseModel):
    applicant_id: uuid.UUID
    applicant_type: MemberType


class ConsensusIn(BaseModel):
    band_member_id: uuid.UUID
    decision: bool


def _caller_artist(session: Session, user_id: uuid.UUID) -> uuid.UUID:
    artist_id = session.scalar(select(Artist.id).where(Artist.user_id == user_id))
    if artist_id is None:
        raise HTTPException(403, "An artist profile is required")
    return artist_id


def _require_own_applicant(
    session: Session, user_id: uuid.UUID, applicant_id: uuid.UUID, applicant_type: str
) -> uuid.UUID:
    """403 unless the caller is the artist or a member of the band.

    Returns the caller's artist id (the requesting member).
    """
    artist_id = _caller_artist(session, user_id)
    if applicant_type == MemberType.ARTIST.value:
        if applicant_id != artist_id:
            raise HTTPException(403, "Not your artist profile")
    else:
        member = session.get(BandMembership, (applicant_id, artist_id))
        if member is None:
            raise HTTPException(403, "Not a member of this band")
    return artist_id


@router.get("/{show_id}/backlines")
def list_backlines(
    show_id: uuid.UUID,
    user_id: uuid.UUID | None = Depends(get_optional_user),
    engine=Depends(get_engine),
):
    return {"applications": backline_service.list_applications(engine, show_id, user_id)}


@router.get("/{show_id}/backlines/eligibility")
def backline_eligibility(
    show_id: uuid.UUID,
    user_id: uuid.UUID = Depends(get_current_user),
    engine=Depends(get_engine),
):
    return backline_service.get_eligibility(engine, show_id, user_id).to_dict()


@router.post("/{show_id}/backlines", status_code=201)
def apply_backline(
    show_id: uuid.UUID,
    body: ApplyIn,
    user_id: uuid.UUID = Depends(get_current_user),
    session: Session = Depends(get_session),
    engine=Depends(get_engine),
):
    requested_by = _require_own_applicant(
        session, user_id, body.applicant_id, body.applicant_type.value
    )
    app = backline_service.apply(
        engine, show_id, body.applicant_id, body.applicant_type.value, requested_by
    )
    return {"id": app.id, "status": app.status}


@router.post("/{show_id}/backlines/{applicant_id}/votes")
def vote_backline(
    show_id: uuid.UUID,
    applicant_id: uuid.UUID,
    applicant_type: MemberType | None = None,
    user_id: uuid.UUID = Depends(get_current_user),
    engine=Depends(get_engine),
):
    added = backline_service.vote(
        engine,
        show_id,
        applicant_id,
        user_id,
        applicant_type.value if applicant_type else None,
    )
    return {"added": added}


@router.post("/{show_id}/backlines/{applicant_id}/consensus")
def backline_consensus(
    show_id: uuid.UUID,
    applicant_id: uuid.UUID,
    body: ConsensusIn,
    user_id: uuid.UUID = Depends(get_current_user),
    session: Session = Depends(get_session),
    engine=Depends(get_engine),
    notifier=Depends(get_notifier),
):
    require_own_artist(session, user_id, body.band_member_id)
    app = backline_service.update_consensus(
        engine, show_id, applicant_id, body.band_member_id, body.decision, notifier=notifier
    )
    return {"id": app.id, "status": app.status}


@router.delete("/{show_id}/backlines/{applicant_id}", status_code=204)
def withdraw_backline(
    show_id: uuid.UUID,
    applicant_id: uuid.UUID,
    applicant_type: MemberType = MemberType.ARTIST,
    user_id: uuid.UUID = Depends(get_current_user),
    session: Session = Depends(get_session),
    engine=Depends(get_engine),
):
    _require_own_applicant(session, user_id, applicant_id, applicant_type.value)
    backline_service.withdraw(engine, show_id, applicant_id, applicant_type.value)
    return Response(status_code=204)
