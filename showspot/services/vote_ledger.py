"""
showspot.services.vote_ledger — At-Most-Once Vote Ledger
=========================================================

One ledger abstraction shared by promotion votes (``show_votes``) and
backline votes (``backline_votes``), parameterized by the vote table and
its target column.

The add operation is a single INSERT against the ``(target, user)``
primary key inside a SAVEPOINT.  The database decides who wins a race;
the loser's IntegrityError collapses into ``False``.  There is no
read-then-write anywhere in the add path.
"""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import func, insert, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from showspot.database.models import BacklineVote, ShowVote

logger = logging.getLogger(__name__)


class VoteLedger:
    """Deduplicated voter set over one vote table."""

    def __init__(self, model: type, target_column: str) -> None:
        self.model = model
        self.target_column = target_column
        self._target = getattr(model, target_column)

    def __repr__(self) -> str:
        return f"<VoteLedger {self.model.__tablename__}.{self.target_column}>"

    def has_voted(self, session: Session, target_id: Any, user_id: Any) -> bool:
        if user_id is None:
            return False
        found = session.scalar(
            select(self.model.user_id).where(
                self._target == target_id, self.model.user_id == user_id
            )
        )
        return found is not None

    def count(self, session: Session, target_id: Any) -> int:
        return session.scalar(
            select(func.count()).select_from(self.model).where(self._target == target_id)
        ) or 0

    def add(self, session: Session, target_id: Any, user_id: Any) -> bool:
        """Insert the vote.  ``True`` if newly recorded, ``False`` if already there.

        The caller owns the transaction and must commit.
        """
        try:
            with session.begin_nested():   # SAVEPOINT
                session.execute(
                    insert(self.model).values(
                        {self.target_column: target_id, "user_id": user_id}
                    )
                )
        except IntegrityError:
            # Duplicate key: only the SAVEPOINT rolled back, outer txn alive.
            logger.debug("Duplicate vote on %r by %s ignored", target_id, user_id)
            return False
        return True


show_votes = VoteLedger(ShowVote, "show_id")
backline_votes = VoteLedger(BacklineVote, "application_id")
