"""
showspot.database.models — SQLAlchemy 2.0 Data Models
======================================================

The booking core owns the show aggregate and its vote/application sets.
Artist, band and venue tables are read models mirrored from the profile
service; this package never writes them outside of tests and dev seeding.

Tables:
- venues                — Venue read model (capacity feeds the guarantees)
- artists               — Solo artist identities, owned by a user account
- bands                 — Band read model
- band_memberships      — Artist ↔ band membership
- shows                 — The show aggregate (status, economics, dates)
- show_members          — Invited performers (artist or band)
- show_member_consensus — Per-band-member accept/decline entries
- show_guarantees       — Persisted per-artist payout at sell-out
- show_votes            — Promotion votes, one per (show, user)
- backline_applications — Opening-act applications
- backline_consensus    — Band members' decisions on a band application
- backline_votes        — Backline votes, one per (application, voter)
- tickets               — Confirmed ticket purchases
"""

from __future__ import annotations

import enum
import uuid
from datetime import date, datetime, time
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    Time,
    UniqueConstraint,
    Uuid,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


# ---------------------------------------------------------------------------
# Base
# ---------------------------------------------------------------------------
class Base(DeclarativeBase):
    """Shared base for all ShowSpot ORM models."""


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class ShowStatus(enum.StrEnum):
    """Lifecycle of a show.  Only PENDING → ACTIVE is driven by this core."""
    PENDING = "pending"
    ACTIVE = "active"
    CANCELLED = "cancelled"


class MemberType(enum.StrEnum):
    """Kind of performer identity on a show or backline application."""
    ARTIST = "artist"
    BAND = "band"


class BacklineStatus(enum.StrEnum):
    PENDING_CONSENSUS = "pending_consensus"
    ACTIVE = "active"


class TicketStatus(enum.StrEnum):
    VALID = "valid"
    USED = "used"
    REFUNDED = "refunded"


# Statuses that occupy a seat.
SEATED_TICKET_STATUSES: tuple[str, ...] = (TicketStatus.VALID.value, TicketStatus.USED.value)


# ---------------------------------------------------------------------------
# Read models — venue, artist, band
# ---------------------------------------------------------------------------
class Venue(Base):
    __tablename__ = "venues"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    owner_user_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    # Nullable: an unknown capacity leaves guarantees undetermined.
    capacity: Mapped[int | None] = mapped_column(Integer, nullable=True)
    address: Mapped[str | None] = mapped_column(String(500), default=None)

    __table_args__ = (
        Index("ix_venues_owner", "owner_user_id"),
    )

    def __repr__(self) -> str:
        return f"<Venue id={self.id} name={self.name!r} cap={self.capacity}>"


class Artist(Base):
    __tablename__ = "artists"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)

    __table_args__ = (
        Index("ix_artists_user", "user_id"),
    )

    def __repr__(self) -> str:
        return f"<Artist id={self.id} name={self.name!r}>"


class Band(Base):
    __tablename__ = "bands"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(200), nullable=False)

    memberships: Mapped[list[BandMembership]] = relationship(
        back_populates="band", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<Band id={self.id} name={self.name!r}>"


class BandMembership(Base):
    __tablename__ = "band_memberships"

    band_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("bands.id", ondelete="CASCADE"), primary_key=True
    )
    artist_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("artists.id", ondelete="CASCADE"), primary_key=True
    )

    band: Mapped[Band] = relationship(back_populates="memberships")

    __table_args__ = (
        Index("ix_band_memberships_artist", "artist_id"),
    )

    def __repr__(self) -> str:
        return f"<BandMembership band={self.band_id} artist={self.artist_id}>"


# ---------------------------------------------------------------------------
# Show — the aggregate root
# ---------------------------------------------------------------------------
class Show(Base):
    __tablename__ = "shows"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    venue_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("venues.id", ondelete="CASCADE"), nullable=False
    )
    promoter_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=ShowStatus.PENDING.value
    )
    venue_decision: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    preferred_date: Mapped[date] = mapped_column(Date, nullable=False)
    preferred_time: Mapped[time] = mapped_column(Time, nullable=False)
    # Confirmed values, copied from the preferred ones on venue acceptance
    show_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    show_time: Mapped[time | None] = mapped_column(Time, nullable=True)

    # Economics, set by the venue negotiation
    ticket_price: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)
    venue_percentage: Mapped[int | None] = mapped_column(Integer, nullable=True)

    description: Mapped[str | None] = mapped_column(Text, default=None)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )
    activated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    # Relationships
    venue: Mapped[Venue] = relationship()
    members: Mapped[list[ShowMember]] = relationship(
        back_populates="show", cascade="all, delete-orphan",
        order_by="ShowMember.slot",
    )
    guarantees: Mapped[list[ShowGuarantee]] = relationship(
        back_populates="show", cascade="all, delete-orphan"
    )

    __table_args__ = (
        Index("ix_shows_status", "status"),
        Index("ix_shows_venue", "venue_id"),
        Index("ix_shows_promoter", "promoter_id"),
        Index("ix_shows_preferred_date", "preferred_date"),
        CheckConstraint(
            "venue_percentage IS NULL OR venue_percentage BETWEEN 0 AND 100",
            name="ck_shows_venue_percentage",
        ),
    )

    def __repr__(self) -> str:
        return f"<Show id={self.id} status={self.status!r} venue={self.venue_id}>"


# ---------------------------------------------------------------------------
# ShowMember — invited performer (artist or band)
# ---------------------------------------------------------------------------
class ShowMember(Base):
    """One invited performer on a show.

    For ``member_type == "artist"`` the ``decision`` column is the artist's
    own answer.  For bands it is unused: the band's answer is the
    conjunction of its :class:`ShowMemberConsensus` rows.
    """
    __tablename__ = "show_members"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    show_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("shows.id", ondelete="CASCADE"), nullable=False
    )
    member_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    member_type: Mapped[str] = mapped_column(String(10), nullable=False)
    position: Mapped[str | None] = mapped_column(String(30), nullable=True)  # headliner, opener, "2", …
    slot: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    decision: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    show: Mapped[Show] = relationship(back_populates="members")
    consensus: Mapped[list[ShowMemberConsensus]] = relationship(
        back_populates="show_member", cascade="all, delete-orphan",
        order_by="ShowMemberConsensus.id",
    )

    __table_args__ = (
        UniqueConstraint(
            "show_id", "member_id", "member_type", name="uq_show_members_show_member"
        ),
        Index("ix_show_members_member", "member_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<ShowMember show={self.show_id} {self.member_type}={self.member_id} "
            f"decision={self.decision}>"
        )


class ShowMemberConsensus(Base):
    __tablename__ = "show_member_consensus"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    show_member_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("show_members.id", ondelete="CASCADE"), nullable=False
    )
    sub_member_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)  # artist id
    decision: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    show_member: Mapped[ShowMember] = relationship(back_populates="consensus")

    __table_args__ = (
        UniqueConstraint(
            "show_member_id", "sub_member_id", name="uq_member_consensus_sub_member"
        ),
        Index("ix_member_consensus_sub_member", "sub_member_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<ShowMemberConsensus member={self.show_member_id} "
            f"artist={self.sub_member_id} decision={self.decision}>"
        )


# ---------------------------------------------------------------------------
# ShowGuarantee — persisted per-artist payout at sell-out
# ---------------------------------------------------------------------------
class ShowGuarantee(Base):
    """Authoritative per-artist guarantee once the venue has negotiated.

    ``payout_amount`` is NULL while the guarantee is undetermined (the venue
    capacity was unknown at commit time).
    """
    __tablename__ = "show_guarantees"

    show_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("shows.id", ondelete="CASCADE"), primary_key=True
    )
    payee_artist_id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True)
    payout_amount: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)

    show: Mapped[Show] = relationship(back_populates="guarantees")

    def __repr__(self) -> str:
        return (
            f"<ShowGuarantee show={self.show_id} payee={self.payee_artist_id} "
            f"amount={self.payout_amount}>"
        )


# ---------------------------------------------------------------------------
# ShowVote — promotion votes on pending shows
# ---------------------------------------------------------------------------
class ShowVote(Base):
    __tablename__ = "show_votes"

    # Composite PK enforces at-most-once per (show, user)
    show_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("shows.id", ondelete="CASCADE"), primary_key=True
    )
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    def __repr__(self) -> str:
        return f"<ShowVote show={self.show_id} user={self.user_id}>"


# ---------------------------------------------------------------------------
# Backline — opening-act applications, their band consensus and votes
# ---------------------------------------------------------------------------
class BacklineApplication(Base):
    __tablename__ = "backline_applications"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    show_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("shows.id", ondelete="CASCADE"), nullable=False
    )
    applicant_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    applicant_type: Mapped[str] = mapped_column(String(10), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=BacklineStatus.PENDING_CONSENSUS.value
    )
    requested_by: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    consensus: Mapped[list[BacklineConsensus]] = relationship(
        back_populates="application", cascade="all, delete-orphan",
        order_by="BacklineConsensus.id",
    )

    __table_args__ = (
        # One application per identity+type per show
        UniqueConstraint(
            "show_id", "applicant_id", "applicant_type",
            name="uq_backline_show_applicant",
        ),
        Index("ix_backline_show", "show_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<BacklineApplication id={self.id} show={self.show_id} "
            f"{self.applicant_type}={self.applicant_id} status={self.status!r}>"
        )


class BacklineConsensus(Base):
    __tablename__ = "backline_consensus"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    application_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("backline_applications.id", ondelete="CASCADE"),
        nullable=False,
    )
    band_member_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    decision: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    application: Mapped[BacklineApplication] = relationship(back_populates="consensus")

    __table_args__ = (
        UniqueConstraint(
            "application_id", "band_member_id", name="uq_backline_consensus_member"
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<BacklineConsensus app={self.application_id} "
            f"member={self.band_member_id} decision={self.decision}>"
        )


class BacklineVote(Base):
    __tablename__ = "backline_votes"

    application_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("backline_applications.id", ondelete="CASCADE"),
        primary_key=True,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    def __repr__(self) -> str:
        return f"<BacklineVote app={self.application_id} user={self.user_id}>"


# ---------------------------------------------------------------------------
# Ticket — confirmed purchase recorded by the payment/ticketing collaborator
# ---------------------------------------------------------------------------
class Ticket(Base):
    __tablename__ = "tickets"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    show_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("shows.id", ondelete="CASCADE"), nullable=False
    )
    purchaser_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    price_paid: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    payment_token: Mapped[str] = mapped_column(String(255), nullable=False)
    qr_code: Mapped[str] = mapped_column(String(40), nullable=False, unique=True)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=TicketStatus.VALID.value
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    scanned_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    scanned_by: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)

    __table_args__ = (
        Index("ix_tickets_show_status", "show_id", "status"),
        Index("ix_tickets_purchaser", "purchaser_id"),
    )

    def __repr__(self) -> str:
        return f"<Ticket id={self.id} show={self.show_id} qr={self.qr_code!r}>"
