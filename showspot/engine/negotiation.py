"""
showspot.engine.negotiation — Venue Acceptance Stage Machine
=============================================================

The venue accepts a show in three ordered stages::

    REVIEW_SHOW → SET_TERMS → CONFIRM → SUBMITTED

Terms may be revised (CONFIRM → SET_TERMS) until submission.  Once
SUBMITTED the negotiation is closed; re-running it is an explicit
guarantee recompute, not a second submission.

Pure state: the service layer persists the result.
"""

from __future__ import annotations

import enum
import uuid
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation

from showspot.errors import InvalidTermsError, NegotiationAlreadySubmittedError

__all__ = ["NegotiationStage", "VenueNegotiation", "validate_terms"]


class NegotiationStage(enum.IntEnum):
    REVIEW_SHOW = 1
    SET_TERMS = 2
    CONFIRM = 3
    SUBMITTED = 4


def validate_terms(
    ticket_price,
    venue_percentage,
    offered_prices: tuple[Decimal, ...],
    offered_percentages: tuple[int, ...],
) -> tuple[Decimal, int]:
    """Normalise and check the venue's picks against the offered sets.

    Returns ``(price, percentage)`` as ``(Decimal, int)``.

    Raises
    ------
    InvalidTermsError
        If either value is malformed or not one of the offered values.
    """
    try:
        price = Decimal(str(ticket_price))
    except (InvalidOperation, TypeError, ValueError):
        raise InvalidTermsError(f"ticket_price is not a number: {ticket_price!r}")
    try:
        pct_value = Decimal(str(venue_percentage))
    except (InvalidOperation, TypeError, ValueError):
        raise InvalidTermsError(f"venue_percentage is not a number: {venue_percentage!r}")
    if not pct_value.is_finite() or pct_value != pct_value.to_integral_value():
        raise InvalidTermsError(f"venue_percentage must be whole: {venue_percentage!r}")
    pct = int(pct_value)

    if price not in offered_prices:
        raise InvalidTermsError(
            f"ticket_price {price} is not offered "
            f"(choose from {', '.join(str(p) for p in offered_prices)})"
        )
    if pct not in offered_percentages:
        raise InvalidTermsError(
            f"venue_percentage {pct} is not offered "
            f"(choose from {', '.join(str(p) for p in offered_percentages)})"
        )
    return price, pct


@dataclass
class VenueNegotiation:
    """One venue's walk through the acceptance stages for one show."""

    offered_prices: tuple[Decimal, ...]
    offered_percentages: tuple[int, ...]
    stage: NegotiationStage = NegotiationStage.REVIEW_SHOW
    ticket_price: Decimal | None = None
    venue_percentage: int | None = None
    show_id: uuid.UUID | None = None
    history: list[NegotiationStage] = field(default_factory=list)

    @classmethod
    def for_show(
        cls,
        venue_decision: bool,
        offered_prices: tuple[Decimal, ...],
        offered_percentages: tuple[int, ...],
        show_id: uuid.UUID | None = None,
    ) -> VenueNegotiation:
        """Start a negotiation, or reopen a closed one as SUBMITTED."""
        stage = NegotiationStage.SUBMITTED if venue_decision else NegotiationStage.REVIEW_SHOW
        return cls(offered_prices, offered_percentages, stage=stage, show_id=show_id)

    @property
    def submitted(self) -> bool:
        return self.stage is NegotiationStage.SUBMITTED

    def _move(self, expected: tuple[NegotiationStage, ...], target: NegotiationStage) -> None:
        if self.submitted:
            raise NegotiationAlreadySubmittedError(self.show_id)
        if self.stage not in expected:
            raise InvalidTermsError(
                f"cannot move to {target.name} from {self.stage.name}"
            )
        self.history.append(self.stage)
        self.stage = target

    def review(self) -> None:
        """Stage 1 done: the venue has seen the show and its consensus."""
        self._move((NegotiationStage.REVIEW_SHOW,), NegotiationStage.SET_TERMS)

    def set_terms(self, ticket_price, venue_percentage) -> tuple[Decimal, int]:
        """Stage 2: pick price and percentage from the offered sets."""
        if self.submitted:
            raise NegotiationAlreadySubmittedError(self.show_id)
        if self.stage is NegotiationStage.CONFIRM:
            # Revising terms from the review screen.
            self.stage = NegotiationStage.SET_TERMS
        price, pct = validate_terms(
            ticket_price, venue_percentage, self.offered_prices, self.offered_percentages
        )
        self._move((NegotiationStage.SET_TERMS,), NegotiationStage.CONFIRM)
        self.ticket_price, self.venue_percentage = price, pct
        return price, pct

    def submit(self) -> tuple[Decimal, int]:
        """Stage 3: commit the confirmed terms.  Not restartable."""
        self._move((NegotiationStage.CONFIRM,), NegotiationStage.SUBMITTED)
        return self.ticket_price, self.venue_percentage
