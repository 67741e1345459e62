"""
showspot.services.vote_service — Promotion Vote Primitives
===========================================================

The four atomic vote operations other components depend on.  Reads
degrade to ``False`` / ``0`` for unknown shows; only the add path checks
that the show exists.

Voting is meaningful while a show is pending, but the ledger itself
enforces no cutoff; the API gates the action by status.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import TYPE_CHECKING

from sqlalchemy.orm import Session

from showspot.database.models import Show
from showspot.errors import ShowNotFoundError
from showspot.services.vote_ledger import show_votes

if TYPE_CHECKING:
    from sqlalchemy import Engine

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class VoteInfo:
    vote_count: int
    user_has_voted: bool

    def to_dict(self) -> dict:
        return {"vote_count": self.vote_count, "user_has_voted": self.user_has_voted}


def user_has_voted_for_show(engine: Engine, show_id: uuid.UUID, user_id: uuid.UUID) -> bool:
    with Session(engine) as session:
        return show_votes.has_voted(session, show_id, user_id)


def get_show_vote_count(engine: Engine, show_id: uuid.UUID) -> int:
    """Number of promotion votes on the show (0 if none or unknown)."""
    with Session(engine) as session:
        return show_votes.count(session, show_id)


def add_show_vote(engine: Engine, show_id: uuid.UUID, user_id: uuid.UUID) -> bool:
    """Record *user_id*'s vote.  ``True`` iff newly recorded.

    Raises
    ------
    ShowNotFoundError
        If the show doesn't exist.
    """
    with Session(engine) as session:
        if session.get(Show, show_id) is None:
            raise ShowNotFoundError(show_id)
        added = show_votes.add(session, show_id, user_id)
        session.commit()
    if added:
        logger.info("Vote recorded on show %s by %s", show_id, user_id)
    return added


def get_show_vote_info(
    engine: Engine, show_id: uuid.UUID, user_id: uuid.UUID | None = None
) -> VoteInfo:
    """Count and the caller's vote state.  ``user_has_voted`` is False without a user."""
    with Session(engine) as session:
        return VoteInfo(
            vote_count=show_votes.count(session, show_id),
            user_has_voted=show_votes.has_voted(session, show_id, user_id),
        )
