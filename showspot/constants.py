"""
showspot.constants — Shared Constants & Helpers
================================================

Single source of truth for guarantee tiers, the default offered venue
terms and the money boundary helpers.  Import from here instead of
duplicating in engine, services, and API.
"""

from __future__ import annotations

import re
from decimal import ROUND_DOWN, ROUND_HALF_UP, Decimal, InvalidOperation

# ---------------------------------------------------------------------------
# Guarantee tiers — fraction of sell-out revenue per sales level
# ---------------------------------------------------------------------------
TIER_FRACTIONS: dict[str, Decimal] = {
    "sold_out": Decimal("1"),
    "seventy_five_pct": Decimal("0.75"),
    "fifty_pct": Decimal("0.50"),
    "twenty_five_pct": Decimal("0.25"),
}

CENT = Decimal("0.01")


# ---------------------------------------------------------------------------
# Venue negotiation defaults (overridable in config.yaml)
# ---------------------------------------------------------------------------
DEFAULT_OFFERED_TICKET_PRICES: tuple[Decimal, ...] = tuple(
    Decimal(v) for v in ("10", "15", "20", "25", "30")
)
DEFAULT_OFFERED_VENUE_PERCENTAGES: tuple[int, ...] = (10, 15, 20, 25, 30)
DEFAULT_MAX_VENUE_PERCENTAGE = 100


# ---------------------------------------------------------------------------
# Tickets
# ---------------------------------------------------------------------------
QR_CODE_PREFIX = "SS"


# ---------------------------------------------------------------------------
# Money helpers — currency is Decimal everywhere except at the boundary
# ---------------------------------------------------------------------------
def round_cents_half_up(amount: Decimal) -> Decimal:
    """Quantize *amount* to cents, rounding half away from zero."""
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def round_cents_down(amount: Decimal) -> Decimal:
    """Quantize *amount* to cents, truncating toward zero.

    Used wherever a pool is divided so the parts never exceed the whole.
    """
    return amount.quantize(CENT, rounding=ROUND_DOWN)


def format_currency(amount: Decimal | None) -> str | None:
    """Render *amount* as ``"$1,234.56"``.  ``None`` stays ``None``."""
    if amount is None:
        return None
    return f"${round_cents_half_up(Decimal(amount)):,.2f}"


_CURRENCY_REGEX = re.compile(r"^\s*\$?\s*(-?[0-9][0-9,]*(?:\.[0-9]+)?)\s*$")


def parse_currency(text: str | None) -> Decimal | None:
    """Parse ``"$1,234.56"`` / ``"1234.56"`` into a Decimal.

    Returns ``None`` for empty input or anything that isn't a number,
    so the API boundary can turn it into a 422.
    """
    if not text:
        return None
    match = _CURRENCY_REGEX.match(text)
    if match is None:
        return None
    try:
        return round_cents_half_up(Decimal(match.group(1).replace(",", "")))
    except InvalidOperation:
        return None
