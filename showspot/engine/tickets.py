"""
showspot.engine.tickets — Ticket Sales Derivations
===================================================

Pure helpers over a show's sold-ticket count and venue capacity.
"""

from __future__ import annotations

import re
import secrets
from dataclasses import dataclass

from showspot.constants import QR_CODE_PREFIX

__all__ = ["TicketSalesInfo", "generate_qr_code", "is_ticket_code", "sales_percentage"]

_QR_CODE_RE = re.compile(rf"{QR_CODE_PREFIX}-[0-9A-F]{{8}}-[0-9A-F]{{8}}")


@dataclass(frozen=True, slots=True)
class TicketSalesInfo:
    tickets_sold: int
    capacity: int

    @property
    def is_sold_out(self) -> bool:
        return self.tickets_sold >= self.capacity

    @property
    def tickets_remaining(self) -> int:
        return max(self.capacity - self.tickets_sold, 0)

    def to_dict(self) -> dict:
        return {
            "tickets_sold": self.tickets_sold,
            "capacity": self.capacity,
            "is_sold_out": self.is_sold_out,
            "tickets_remaining": self.tickets_remaining,
            "sales_percentage": sales_percentage(self),
        }


def sales_percentage(info: TicketSalesInfo) -> int:
    """``round(100 * sold / capacity)`` clamped to 0..100.

    Rounds half up, so 1 of 200 sold reads as 1%, not 0%.
    """
    if info.capacity <= 0:
        return 100 if info.tickets_sold > 0 else 0
    pct = (200 * info.tickets_sold + info.capacity) // (2 * info.capacity)
    return max(0, min(100, pct))


def generate_qr_code() -> str:
    """A fresh ``SS-XXXXXXXX-XXXXXXXX`` ticket code (uppercase hex)."""
    return f"{QR_CODE_PREFIX}-{secrets.token_hex(4).upper()}-{secrets.token_hex(4).upper()}"


def is_ticket_code(text: str) -> bool:
    """True if *text* has the shape :func:`generate_qr_code` produces."""
    return _QR_CODE_RE.fullmatch(text) is not None
