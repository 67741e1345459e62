"""
tests/test_guarantee.py — Guarantee Calculator
===============================================
Pure revenue split and tier expansion: the sell-out scenario, undetermined
inputs, rounding, and the monotonicity / conservation properties.
"""

from __future__ import annotations

import itertools
import uuid
from decimal import Decimal

import pytest

from showspot.constants import format_currency, parse_currency
from showspot.engine.consensus import (
    ArtistMember,
    BandMember,
    SubConsensus,
    count_individual_artists,
)
from showspot.engine.guarantee import (
    PartyType,
    artist_guarantee,
    build_tiers,
    split_revenue,
    try_split_revenue,
    venue_guarantee,
)
from showspot.errors import GuaranteeUndeterminedError, InvalidTermsError, ValidationError


def _band(size: int) -> BandMember:
    return BandMember(
        uuid.uuid4(),
        tuple(SubConsensus(uuid.uuid4()) for _ in range(size)),
    )


class TestSellOutScenario:
    """200 capacity, $20 tickets, venue keeps 15%."""

    def test_venue_tiers(self):
        tiers = venue_guarantee(200, Decimal("20"), 15)
        assert tiers.party_type is PartyType.VENUE
        assert (tiers.sold_out, tiers.seventy_five_pct, tiers.fifty_pct, tiers.twenty_five_pct) == (
            Decimal("600"), Decimal("450"), Decimal("300"), Decimal("150"),
        )

    def test_artist_pool_and_per_artist(self):
        members = [ArtistMember(uuid.uuid4()), ArtistMember(uuid.uuid4()), _band(3)]
        individual = count_individual_artists(members)
        assert individual == 5

        split = split_revenue(200, Decimal("20"), 15, individual)
        assert split.max_revenue == Decimal("4000")
        assert split.artist_pool == Decimal("3400")
        assert split.per_artist == Decimal("680")

        tiers = artist_guarantee(200, Decimal("20"), 15, individual)
        assert tiers.party_type is PartyType.ARTIST
        assert (tiers.sold_out, tiers.seventy_five_pct, tiers.fifty_pct, tiers.twenty_five_pct) == (
            Decimal("680"), Decimal("510"), Decimal("340"), Decimal("170"),
        )


class TestUndetermined:
    @pytest.mark.parametrize(
        "capacity,price,pct,missing",
        [
            (None, Decimal("20"), 15, ["capacity"]),
            (200, None, 15, ["ticket_price"]),
            (200, Decimal("20"), None, ["venue_percentage"]),
            (None, None, None, ["capacity", "ticket_price", "venue_percentage"]),
        ],
    )
    def test_strict_split_raises(self, capacity, price, pct, missing):
        with pytest.raises(GuaranteeUndeterminedError) as exc:
            split_revenue(capacity, price, pct, 3)
        assert exc.value.missing == missing
        assert isinstance(exc.value, ValidationError)

    def test_helpers_return_none_not_zero(self):
        assert try_split_revenue(None, Decimal("20"), 15, 3) is None
        assert venue_guarantee(200, None, 15) is None
        assert artist_guarantee(200, Decimal("20"), None, 3) is None

    def test_zero_percentage_is_determined(self):
        """0% is a real value: the venue keeps nothing."""
        tiers = venue_guarantee(100, Decimal("10"), 0)
        assert tiers is not None
        assert tiers.sold_out == Decimal("0")


class TestInvalidTerms:
    @pytest.mark.parametrize(
        "capacity,price,pct",
        [(0, Decimal("20"), 15), (200, Decimal("0"), 15), (200, Decimal("20"), 101),
         (200, Decimal("20"), -1)],
    )
    def test_out_of_range(self, capacity, price, pct):
        with pytest.raises(InvalidTermsError):
            split_revenue(capacity, price, pct, 2)


class TestRounding:
    def test_no_artists_means_zero_per_artist(self):
        split = split_revenue(200, Decimal("20"), 15, 0)
        assert split.per_artist == Decimal("0")
        assert split.artist_pool == Decimal("3400")

    def test_per_artist_rounds_down(self):
        # pool = 100 * 10 * 0.9 = 900 → 900 / 7 = 128.571…
        split = split_revenue(100, Decimal("10"), 10, 7)
        assert split.per_artist == Decimal("128.57")
        assert split.per_artist * 7 <= split.artist_pool

    def test_venue_share_rounds_half_up(self):
        # 3 * 12.50 = 37.50; 15% = 5.625 → 5.63
        split = split_revenue(3, Decimal("12.50"), 15, 1)
        assert split.venue_share == Decimal("5.63")
        assert split.venue_share + split.artist_pool == split.max_revenue

    def test_tiers_truncate_to_cents(self):
        tiers = build_tiers(Decimal("128.57"), PartyType.ARTIST)
        assert tiers.seventy_five_pct == Decimal("96.42")
        assert tiers.fifty_pct == Decimal("64.28")
        assert tiers.twenty_five_pct == Decimal("32.14")


class TestProperties:
    CAPACITIES = (1, 7, 200, 999)
    PRICES = (Decimal("10"), Decimal("12.50"), Decimal("33.33"))
    PCTS = (0, 15, 33, 100)
    ARTISTS = (0, 1, 3, 5, 7)

    def test_tiers_are_monotonic_and_non_negative(self):
        for cap, price, pct, n in itertools.product(
            self.CAPACITIES, self.PRICES, self.PCTS, self.ARTISTS
        ):
            for tiers in (
                venue_guarantee(cap, price, pct),
                artist_guarantee(cap, price, pct, n),
            ):
                assert (
                    tiers.sold_out
                    >= tiers.seventy_five_pct
                    >= tiers.fifty_pct
                    >= tiers.twenty_five_pct
                    >= 0
                ), (cap, price, pct, n)

    def test_pool_conservation(self):
        for cap, price, pct, n in itertools.product(
            self.CAPACITIES, self.PRICES, self.PCTS, self.ARTISTS
        ):
            split = split_revenue(cap, price, pct, n)
            assert split.venue_share + split.artist_pool == cap * price
            assert split.per_artist * n <= split.artist_pool
            if n and split.artist_pool % n == 0:
                assert split.per_artist * n == split.artist_pool


class TestStoredPrecedence:
    def test_stored_amount_wins_over_recompute(self):
        tiers = artist_guarantee(
            200, Decimal("20"), 15, 5, stored_amount=Decimal("500.00")
        )
        assert tiers.sold_out == Decimal("500.00")
        assert tiers.twenty_five_pct == Decimal("125.00")

    def test_stored_amount_used_even_when_inputs_missing(self):
        tiers = artist_guarantee(None, None, None, 5, stored_amount=Decimal("80"))
        assert tiers is not None
        assert tiers.sold_out == Decimal("80")

    def test_double_slot_artist_paid_twice(self):
        tiers = artist_guarantee(200, Decimal("20"), 15, 5, slots=2)
        assert tiers.sold_out == Decimal("1360")


class TestCurrencyBoundary:
    def test_format(self):
        assert format_currency(Decimal("1234.5")) == "$1,234.50"
        assert format_currency(None) is None

    @pytest.mark.parametrize(
        "text,expected",
        [("$123.45", Decimal("123.45")), ("1,200", Decimal("1200.00")), ("$ 7.1", Decimal("7.10"))],
    )
    def test_parse(self, text, expected):
        assert parse_currency(text) == expected

    @pytest.mark.parametrize("text", ["", None, "TBD", "$", "12.3.4"])
    def test_parse_garbage_is_undetermined(self, text):
        assert parse_currency(text) is None
