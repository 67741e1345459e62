"""
showspot.api.routes.votes — Promotion vote endpoints
=====================================================
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from showspot.api.deps import get_current_user, get_engine, get_optional_user, get_session
from showspot.database.models import Show, ShowStatus
from showspot.errors import ShowNotFoundError, VoteNotAllowedError
from showspot.services import vote_service

router = APIRouter(prefix="/shows", tags=["votes"])


@router.get("/{show_id}/votes")
def get_votes(
    show_id: uuid.UUID,
    user_id: uuid.UUID | None = Depends(get_optional_user),
    engine=Depends(get_engine),
):
    return vote_service.get_show_vote_info(engine, show_id, user_id).to_dict()


@router.post("/{show_id}/votes")
def add_vote(
    show_id: uuid.UUID,
    user_id: uuid.UUID = Depends(get_current_user),
    session: Session = Depends(get_session),
    engine=Depends(get_engine),
):
    """Promote a pending show.  Repeating the call is a harmless no-op."""
    show = session.get(Show, show_id)
    if show is None:
        raise ShowNotFoundError(show_id)
    if show.status != ShowStatus.PENDING.value:
        raise VoteNotAllowedError(f"Show {show_id} is {show.status}; voting is closed")

    added = vote_service.add_show_vote(engine, show_id, user_id)
    info = vote_service.get_show_vote_info(engine, show_id, user_id)
    return {"added": added, **info.to_dict()}
