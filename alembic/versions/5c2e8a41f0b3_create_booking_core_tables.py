"""Create booking core tables

Revision ID: 5c2e8a41f0b3
Revises:
Create Date: 2026-10-18 10:12:31.540211

"""
from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = '5c2e8a41f0b3'
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Read models, the show aggregate, votes, backline and tickets."""

    # --- read models ---
    op.create_table(
        "venues",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("owner_user_id", sa.Uuid, nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("capacity", sa.Integer, nullable=True),
        sa.Column("address", sa.String(500), nullable=True),
    )
    op.create_index("ix_venues_owner", "venues", ["owner_user_id"])

    op.create_table(
        "artists",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("user_id", sa.Uuid, nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
    )
    op.create_index("ix_artists_user", "artists", ["user_id"])

    op.create_table(
        "bands",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("name", sa.String(200), nullable=False),
    )
    op.create_table(
        "band_memberships",
        sa.Column(
            "band_id", sa.Uuid,
            sa.ForeignKey("bands.id", ondelete="CASCADE"), primary_key=True,
        ),
        sa.Column(
            "artist_id", sa.Uuid,
            sa.ForeignKey("artists.id", ondelete="CASCADE"), primary_key=True,
        ),
    )
    op.create_index("ix_band_memberships_artist", "band_memberships", ["artist_id"])

    # --- show aggregate ---
    op.create_table(
        "shows",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column(
            "venue_id", sa.Uuid,
            sa.ForeignKey("venues.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("promoter_id", sa.Uuid, nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("venue_decision", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("preferred_date", sa.Date, nullable=False),
        sa.Column("preferred_time", sa.Time, nullable=False),
        sa.Column("show_date", sa.Date, nullable=True),
        sa.Column("show_time", sa.Time, nullable=True),
        sa.Column("ticket_price", sa.Numeric(10, 2), nullable=True),
        sa.Column("venue_percentage", sa.Integer, nullable=True),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("activated_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint(
            "venue_percentage IS NULL OR venue_percentage BETWEEN 0 AND 100",
            name="ck_shows_venue_percentage",
        ),
    )
    op.create_index("ix_shows_status", "shows", ["status"])
    op.create_index("ix_shows_venue", "shows", ["venue_id"])
    op.create_index("ix_shows_promoter", "shows", ["promoter_id"])
    op.create_index("ix_shows_preferred_date", "shows", ["preferred_date"])

    op.create_table(
        "show_members",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "show_id", sa.Uuid,
            sa.ForeignKey("shows.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("member_id", sa.Uuid, nullable=False),
        sa.Column("member_type", sa.String(10), nullable=False),
        sa.Column("position", sa.String(30), nullable=True),
        sa.Column("slot", sa.Integer, nullable=False, server_default="0"),
        sa.Column("decision", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.UniqueConstraint(
            "show_id", "member_id", "member_type", name="uq_show_members_show_member"
        ),
    )
    op.create_index("ix_show_members_member", "show_members", ["member_id"])

    op.create_table(
        "show_member_consensus",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "show_member_id", sa.Integer,
            sa.ForeignKey("show_members.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("sub_member_id", sa.Uuid, nullable=False),
        sa.Column("decision", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.UniqueConstraint(
            "show_member_id", "sub_member_id", name="uq_member_consensus_sub_member"
        ),
    )
    op.create_index(
        "ix_member_consensus_sub_member", "show_member_consensus", ["sub_member_id"]
    )

    op.create_table(
        "show_guarantees",
        sa.Column(
            "show_id", sa.Uuid,
            sa.ForeignKey("shows.id", ondelete="CASCADE"), primary_key=True,
        ),
        sa.Column("payee_artist_id", sa.Uuid, primary_key=True),
        sa.Column("payout_amount", sa.Numeric(10, 2), nullable=True),
    )

    op.create_table(
        "show_votes",
        sa.Column(
            "show_id", sa.Uuid,
            sa.ForeignKey("shows.id", ondelete="CASCADE"), primary_key=True,
        ),
        sa.Column("user_id", sa.Uuid, primary_key=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    # --- backline ---
    op.create_table(
        "backline_applications",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "show_id", sa.Uuid,
            sa.ForeignKey("shows.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("applicant_id", sa.Uuid, nullable=False),
        sa.Column("applicant_type", sa.String(10), nullable=False),
        sa.Column(
            "status", sa.String(20), nullable=False, server_default="pending_consensus"
        ),
        sa.Column("requested_by", sa.Uuid, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint(
            "show_id", "applicant_id", "applicant_type", name="uq_backline_show_applicant"
        ),
    )
    op.create_index("ix_backline_show", "backline_applications", ["show_id"])

    op.create_table(
        "backline_consensus",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "application_id", sa.Integer,
            sa.ForeignKey("backline_applications.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("band_member_id", sa.Uuid, nullable=False),
        sa.Column("decision", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.UniqueConstraint(
            "application_id", "band_member_id", name="uq_backline_consensus_member"
        ),
    )

    op.create_table(
        "backline_votes",
        sa.Column(
            "application_id", sa.Integer,
            sa.ForeignKey("backline_applications.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column("user_id", sa.Uuid, primary_key=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    # --- tickets ---
    op.create_table(
        "tickets",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column(
            "show_id", sa.Uuid,
            sa.ForeignKey("shows.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("purchaser_id", sa.Uuid, nullable=False),
        sa.Column("price_paid", sa.Numeric(10, 2), nullable=False),
        sa.Column("payment_token", sa.String(255), nullable=False),
        sa.Column("qr_code", sa.String(40), nullable=False, unique=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="valid"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_tickets_show_status", "tickets", ["show_id", "status"])
    op.create_index("ix_tickets_purchaser", "tickets", ["purchaser_id"])


def downgrade() -> None:
    """Drop every booking core table (children first)."""
    for table in (
        "tickets",
        "backline_votes",
        "backline_consensus",
        "backline_applications",
        "show_votes",
        "show_guarantees",
        "show_member_consensus",
        "show_members",
        "shows",
        "band_memberships",
        "bands",
        "artists",
        "venues",
    ):
        op.drop_table(table)
