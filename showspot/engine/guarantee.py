"""
showspot.engine.guarantee — Guarantee Calculator
=================================================

Pure calculation, no database I/O.  Turns venue capacity, ticket price and
the venue's revenue-share percentage into per-party payout tiers::

    max_revenue = capacity * ticket_price
    venue_share = max_revenue * venue_percentage / 100    (cents, half-up)
    artist_pool = max_revenue - venue_share
    per_artist  = artist_pool / individual_artists        (cents, down; 0 if none)

Each party's tiers are its sell-out amount times {1, .75, .5, .25},
truncated to the cent so the parts of a pool never exceed the pool.

A guarantee with any input missing is *undetermined*: the public helpers
return ``None`` and :func:`split_revenue` raises
:class:`~showspot.errors.GuaranteeUndeterminedError`.  It is never $0.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from decimal import Decimal

from showspot.constants import TIER_FRACTIONS, round_cents_down, round_cents_half_up
from showspot.errors import GuaranteeUndeterminedError, InvalidTermsError

__all__ = [
    "GuaranteeTier",
    "PartyType",
    "RevenueSplit",
    "artist_guarantee",
    "build_tiers",
    "split_revenue",
    "try_split_revenue",
    "venue_guarantee",
]

_ZERO = Decimal("0.00")
_HUNDRED = Decimal(100)


class PartyType(enum.StrEnum):
    ARTIST = "artist"
    VENUE = "venue"


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class GuaranteeTier:
    """Payout for one party at each sales level.  Derived, never stored."""

    party_type: PartyType
    sold_out: Decimal
    seventy_five_pct: Decimal
    fifty_pct: Decimal
    twenty_five_pct: Decimal

    def to_dict(self) -> dict:
        return {
            "type": self.party_type.value,
            "sold_out": str(self.sold_out),
            "seventy_five_pct": str(self.seventy_five_pct),
            "fifty_pct": str(self.fifty_pct),
            "twenty_five_pct": str(self.twenty_five_pct),
        }


@dataclass(frozen=True, slots=True)
class RevenueSplit:
    """How sell-out revenue divides between the venue and the artists."""

    max_revenue: Decimal
    venue_share: Decimal
    artist_pool: Decimal
    per_artist: Decimal
    individual_artists: int

    def to_dict(self) -> dict:
        return {
            "max_revenue": str(self.max_revenue),
            "venue_share": str(self.venue_share),
            "artist_pool": str(self.artist_pool),
            "per_artist": str(self.per_artist),
            "individual_artists": self.individual_artists,
        }


# ---------------------------------------------------------------------------
# Split
# ---------------------------------------------------------------------------
def split_revenue(
    capacity: int | None,
    ticket_price: Decimal | None,
    venue_percentage: int | None,
    individual_artists: int,
) -> RevenueSplit:
    """Strict split.  Raises when the guarantee cannot be determined.

    Raises
    ------
    GuaranteeUndeterminedError
        If capacity, ticket price or venue percentage is missing.
    InvalidTermsError
        If a known input is out of range (capacity ≤ 0, price ≤ 0,
        percentage outside 0..100, negative artist count).
    """
    missing = [
        name
        for name, value in (
            ("capacity", capacity),
            ("ticket_price", ticket_price),
            ("venue_percentage", venue_percentage),
        )
        if value is None
    ]
    if missing:
        raise GuaranteeUndeterminedError(missing)

    price = Decimal(ticket_price)
    if capacity <= 0:
        raise InvalidTermsError(f"capacity must be positive, got {capacity}")
    if price <= 0:
        raise InvalidTermsError(f"ticket_price must be positive, got {price}")
    if not 0 <= venue_percentage <= 100:
        raise InvalidTermsError(
            f"venue_percentage must be within 0..100, got {venue_percentage}"
        )
    if individual_artists < 0:
        raise InvalidTermsError("individual artist count cannot be negative")

    max_revenue = round_cents_half_up(price * capacity)
    venue_share = round_cents_half_up(max_revenue * venue_percentage / _HUNDRED)
    artist_pool = max_revenue - venue_share
    per_artist = (
        round_cents_down(artist_pool / individual_artists)
        if individual_artists
        else _ZERO
    )
    return RevenueSplit(
        max_revenue=max_revenue,
        venue_share=venue_share,
        artist_pool=artist_pool,
        per_artist=per_artist,
        individual_artists=individual_artists,
    )


def try_split_revenue(
    capacity: int | None,
    ticket_price: Decimal | None,
    venue_percentage: int | None,
    individual_artists: int,
) -> RevenueSplit | None:
    """Like :func:`split_revenue` but ``None`` when undetermined."""
    try:
        return split_revenue(capacity, ticket_price, venue_percentage, individual_artists)
    except GuaranteeUndeterminedError:
        return None


def build_tiers(amount: Decimal, party_type: PartyType) -> GuaranteeTier:
    """Expand a sell-out *amount* into the four payout tiers."""
    amount = Decimal(amount)
    return GuaranteeTier(
        party_type=party_type,
        sold_out=round_cents_down(amount * TIER_FRACTIONS["sold_out"]),
        seventy_five_pct=round_cents_down(amount * TIER_FRACTIONS["seventy_five_pct"]),
        fifty_pct=round_cents_down(amount * TIER_FRACTIONS["fifty_pct"]),
        twenty_five_pct=round_cents_down(amount * TIER_FRACTIONS["twenty_five_pct"]),
    )


# ---------------------------------------------------------------------------
# Per-party helpers
# ---------------------------------------------------------------------------
def venue_guarantee(
    capacity: int | None,
    ticket_price: Decimal | None,
    venue_percentage: int | None,
) -> GuaranteeTier | None:
    split = try_split_revenue(capacity, ticket_price, venue_percentage, 0)
    if split is None:
        return None
    return build_tiers(split.venue_share, PartyType.VENUE)


def artist_guarantee(
    capacity: int | None,
    ticket_price: Decimal | None,
    venue_percentage: int | None,
    individual_artists: int,
    *,
    stored_amount: Decimal | None = None,
    slots: int = 1,
) -> GuaranteeTier | None:
    """Tiers for one individual artist.

    A *stored_amount* (the persisted post-negotiation guarantee for this
    payee) is authoritative and is used as-is.  Otherwise the amount is
    recomputed from the pool split, times the number of *slots* the
    artist fills on the bill.
    """
    if stored_amount is not None:
        return build_tiers(stored_amount, PartyType.ARTIST)
    split = try_split_revenue(capacity, ticket_price, venue_percentage, individual_artists)
    if split is None:
        return None
    return build_tiers(split.per_artist * slots, PartyType.ARTIST)
