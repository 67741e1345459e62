"""
showspot.services.backline_service — Backline Applications & Votes
===================================================================

Opening-act applications against an existing show:

* ``apply`` — one application per identity+type per show, enforced by a
  unique constraint (``AlreadyAppliedError`` on a duplicate).  A solo
  application is active at once; a band application waits for every
  band member to accept, the requesting member having already accepted.
* ``vote`` — at-most-once per voter through the shared vote ledger.
* ``update_consensus`` — a band member's answer on a band application.
* ``withdraw`` — only while nobody has voted for the application.

Eligibility is recomputed from the application list on every read.
"""

from __future__ import annotations

import logging
import uuid
from typing import TYPE_CHECKING

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from showspot.database.models import (
    Artist,
    BacklineApplication,
    BacklineConsensus,
    BacklineStatus,
    BacklineVote,
    Band,
    BandMembership,
    MemberType,
    Show,
)
from showspot.engine.backline import BacklineEligibility, compute_eligibility
from showspot.engine.consensus import is_performer, member_from_row
from showspot.errors import (
    AlreadyAppliedError,
    BacklineNotFoundError,
    ConflictError,
    InvalidDecisionError,
    MemberNotFoundError,
    ShowNotFoundError,
    ValidationError,
)
from showspot.services import notification_service
from showspot.services.show_service import artist_ids_for_user, band_ids_for_artists
from showspot.services.vote_ledger import backline_votes

if TYPE_CHECKING:
    from sqlalchemy import Engine

    from showspot.services.notification_service import Notifier

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
def _find_application(
    session: Session,
    show_id: uuid.UUID,
    applicant_id: uuid.UUID,
    applicant_type: str | None = None,
    *,
    for_update: bool = False,
) -> BacklineApplication:
    stmt = select(BacklineApplication).where(
        BacklineApplication.show_id == show_id,
        BacklineApplication.applicant_id == applicant_id,
    )
    if applicant_type is not None:
        stmt = stmt.where(BacklineApplication.applicant_type == applicant_type)
    if for_update:
        stmt = stmt.with_for_update()
    app = session.scalars(stmt.order_by(BacklineApplication.id)).first()
    if app is None:
        raise BacklineNotFoundError(show_id, applicant_id)
    return app


def _check_type(applicant_type: str) -> None:
    if applicant_type not in (MemberType.ARTIST.value, MemberType.BAND.value):
        raise ValidationError(f"Unknown applicant type {applicant_type!r}")


def _band_roster(session: Session, band_id: uuid.UUID) -> list[uuid.UUID]:
    return list(session.scalars(
        select(BandMembership.artist_id)
        .where(BandMembership.band_id == band_id)
        .order_by(BandMembership.artist_id)
    ).all())


def _applicant_name(session: Session, app: BacklineApplication) -> str | None:
    model = Band if app.applicant_type == MemberType.BAND.value else Artist
    row = session.get(model, app.applicant_id)
    return row.name if row else None


def application_dict(
    session: Session, app: BacklineApplication, user_id: uuid.UUID | None = None
) -> dict:
    return {
        "id": app.id,
        "show_id": str(app.show_id),
        "applicant_id": str(app.applicant_id),
        "applicant_type": app.applicant_type,
        "applicant_name": _applicant_name(session, app),
        "status": app.status,
        "requested_by": str(app.requested_by) if app.requested_by else None,
        "vote_count": backline_votes.count(session, app.id),
        "user_has_voted": backline_votes.has_voted(session, app.id, user_id),
        "consensus": [
            {"band_member_id": str(c.band_member_id), "decision": c.decision}
            for c in app.consensus
        ],
        "created_at": app.created_at.isoformat() if app.created_at else None,
    }


# ---------------------------------------------------------------------------
# Apply
# ---------------------------------------------------------------------------
def apply(
    engine: Engine,
    show_id: uuid.UUID,
    applicant_id: uuid.UUID,
    applicant_type: str,
    requested_by: uuid.UUID | None = None,
) -> BacklineApplication:
    """File a backline application.

    Raises
    ------
    ShowNotFoundError
        If the show doesn't exist.
    ValidationError
        For an unknown type or applicant, an empty band, or a requester
        outside the band.
    ConflictError
        If the applicant already performs on the show.
    AlreadyAppliedError
        If this identity+type already applied to the show.
    """
    _check_type(applicant_type)
    with Session(engine, expire_on_commit=False) as session:
        show = session.get(Show, show_id)
        if show is None:
            raise ShowNotFoundError(show_id)

        is_band = applicant_type == MemberType.BAND.value
        members = [member_from_row(row) for row in show.members]
        if is_band:
            if session.get(Band, applicant_id) is None:
                raise ValidationError(f"Unknown band {applicant_id}")
            roster = _band_roster(session, applicant_id)
            if not roster:
                raise ValidationError(f"Band {applicant_id} has no members")
            if requested_by is not None and requested_by not in roster:
                raise ValidationError(f"Artist {requested_by} is not in band {applicant_id}")
            # A band is on the bill if it, or anyone in it, already performs.
            already_on_bill = (
                any(m.member_id == applicant_id for m in members)
                or is_performer(members, roster)
            )
        else:
            if session.get(Artist, applicant_id) is None:
                raise ValidationError(f"Unknown artist {applicant_id}")
            roster = []
            already_on_bill = is_performer(members, [applicant_id])
        if already_on_bill:
            raise ConflictError(f"{applicant_type} {applicant_id} already performs on show {show_id}")

        # A band with just the requester needs nobody else's consent.
        pending = is_band and any(artist != requested_by for artist in roster)
        app = BacklineApplication(
            show_id=show_id,
            applicant_id=applicant_id,
            applicant_type=applicant_type,
            status=(
                BacklineStatus.PENDING_CONSENSUS.value if pending else BacklineStatus.ACTIVE.value
            ),
            requested_by=requested_by,
        )
        try:
            with session.begin_nested():   # SAVEPOINT
                session.add(app)
                session.flush()
        except IntegrityError:
            raise AlreadyAppliedError(show_id, applicant_id, applicant_type) from None

        for artist_id in roster:
            app.consensus.append(
                BacklineConsensus(band_member_id=artist_id, decision=artist_id == requested_by)
            )
        session.commit()
        session.refresh(app)
        _ = app.consensus

    logger.info(
        "Backline %s %s applied to show %s (%s)",
        applicant_type, applicant_id, show_id, app.status,
    )
    return app


# ---------------------------------------------------------------------------
# Votes
# ---------------------------------------------------------------------------
def vote(
    engine: Engine,
    show_id: uuid.UUID,
    applicant_id: uuid.UUID,
    voter_id: uuid.UUID,
    applicant_type: str | None = None,
) -> bool:
    """``True`` if the vote was newly recorded, ``False`` if already cast.

    Raises
    ------
    BacklineNotFoundError
        If there is no such application on the show.
    """
    with Session(engine) as session:
        app_id = _find_application(session, show_id, applicant_id, applicant_type).id
        added = backline_votes.add(session, app_id, voter_id)
        session.commit()
    if added:
        logger.info("Backline vote on application %s by %s", app_id, voter_id)
    return added


# ---------------------------------------------------------------------------
# Band consensus
# ---------------------------------------------------------------------------
def update_consensus(
    engine: Engine,
    show_id: uuid.UUID,
    applicant_id: uuid.UUID,
    band_member_id: uuid.UUID,
    decision: bool,
    notifier: Notifier | None = None,
) -> BacklineApplication:
    """Record a band member's answer; activate once everyone accepted.

    Raises
    ------
    InvalidDecisionError
        If *decision* isn't a bool.
    BacklineNotFoundError
        If the band has no application on the show.
    MemberNotFoundError
        If the artist isn't in the application's consensus list.
    ConflictError
        If the application is already active.
    """
    if not isinstance(decision, bool):
        raise InvalidDecisionError(f"decision must be true or false, got {decision!r}")

    with Session(engine, expire_on_commit=False) as session:
        app = _find_application(
            session, show_id, applicant_id, MemberType.BAND.value, for_update=True
        )
        if app.status == BacklineStatus.ACTIVE.value:
            raise ConflictError(f"Backline application {app.id} is already active")

        entry = next((c for c in app.consensus if c.band_member_id == band_member_id), None)
        if entry is None:
            raise MemberNotFoundError(show_id, band_member_id)
        entry.decision = decision
        session.flush()

        activated = False
        if all(c.decision for c in app.consensus):
            result = session.execute(
                update(BacklineApplication)
                .where(
                    BacklineApplication.id == app.id,
                    BacklineApplication.status == BacklineStatus.PENDING_CONSENSUS.value,
                )
                .values(status=BacklineStatus.ACTIVE.value)
                .execution_options(synchronize_session=False)
            )
            activated = result.rowcount == 1
        recipients = notification_service.artist_user_ids(
            session, [c.band_member_id for c in app.consensus]
        )
        session.commit()
        session.refresh(app)
        _ = app.consensus

    if activated:
        logger.info("Backline application %s is now active", app.id)
        notification_service.fan_out(
            notifier,
            recipients.values(),
            notification_service.BACKLINE_ACTIVATED,
            {"show_id": str(show_id), "applicant_id": str(applicant_id)},
        )
    return app


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------
def list_applications(
    engine: Engine, show_id: uuid.UUID, user_id: uuid.UUID | None = None
) -> list[dict]:
    """Applications on the show, most-voted first (ties: oldest first)."""
    with Session(engine) as session:
        vote_counts = (
            select(BacklineVote.application_id, func.count().label("votes"))
            .group_by(BacklineVote.application_id)
            .subquery()
        )
        apps = session.scalars(
            select(BacklineApplication)
            .outerjoin(vote_counts, vote_counts.c.application_id == BacklineApplication.id)
            .where(BacklineApplication.show_id == show_id)
            .order_by(
                func.coalesce(vote_counts.c.votes, 0).desc(),
                BacklineApplication.created_at,
                BacklineApplication.id,
            )
        ).all()
        return [application_dict(session, app, user_id) for app in apps]


def get_eligibility(
    engine: Engine, show_id: uuid.UUID, user_id: uuid.UUID | None
) -> BacklineEligibility:
    """Whether *user_id* may be offered the apply action.  Never raises."""
    with Session(engine) as session:
        show = session.get(Show, show_id)
        if show is None:
            return BacklineEligibility(False, reason="show_not_found")
        artist_ids = artist_ids_for_user(session, user_id)
        applications = session.execute(
            select(BacklineApplication.applicant_id, BacklineApplication.applicant_type)
            .where(BacklineApplication.show_id == show_id)
        ).all()
        return compute_eligibility(
            is_performer=is_performer(
                [member_from_row(row) for row in show.members], artist_ids
            ),
            artist_id=artist_ids[0] if artist_ids else None,
            band_ids=band_ids_for_artists(session, artist_ids),
            applications=[(row.applicant_id, row.applicant_type) for row in applications],
        )


# ---------------------------------------------------------------------------
# Withdraw
# ---------------------------------------------------------------------------
def withdraw(
    engine: Engine,
    show_id: uuid.UUID,
    applicant_id: uuid.UUID,
    applicant_type: str | None = None,
) -> None:
    """Delete an application that nobody has voted for yet.

    Raises
    ------
    BacklineNotFoundError
        If there is no such application on the show.
    ConflictError
        If the application already has votes.
    """
    with Session(engine) as session:
        app = _find_application(
            session, show_id, applicant_id, applicant_type, for_update=True
        )
        votes = backline_votes.count(session, app.id)
        if votes:
            raise ConflictError(
                f"Backline application {app.id} has {votes} votes and can't be withdrawn"
            )
        session.delete(app)
        session.commit()
    logger.info("Backline %s withdrew from show %s", applicant_id, show_id)
