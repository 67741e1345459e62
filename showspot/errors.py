"""
showspot.errors — Domain Error Taxonomy
========================================

Three families, each mapped to one HTTP status by the API layer:

* :class:`ValidationError` (422) — a request the domain cannot evaluate
  (undetermined guarantee, terms outside the offered set, empty token).
* :class:`ConflictError` (409) — a request that collides with current
  state (duplicate application, second venue commit, frozen show).
* :class:`NotFoundError` (404) — an unknown show, member or application
  on a *write* path.  Resolution reads never raise; they report
  ``False`` / ``None``.

Vote and apply primitives deliberately collapse races into a binary
accepted / already-done result instead of raising.

:class:`PartialFailure` is not an exception: it records notification
recipients that could not be reached after a state change was committed.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field


class ErrorCode(enum.StrEnum):
    """Stable machine-readable codes returned in ``{"error": code}``."""
    VALIDATION = "validation_error"
    CONFLICT = "conflict"
    NOT_FOUND = "not_found"
    SHOW_NOT_FOUND = "show_not_found"
    MEMBER_NOT_FOUND = "member_not_found"
    VENUE_NOT_FOUND = "venue_not_found"
    BACKLINE_NOT_FOUND = "backline_not_found"
    GUARANTEE_UNDETERMINED = "guarantee_undetermined"
    INVALID_TERMS = "invalid_terms"
    INVALID_DECISION = "invalid_decision"
    ALREADY_APPLIED = "already_applied"
    NEGOTIATION_SUBMITTED = "negotiation_already_submitted"
    SHOW_NOT_PENDING = "show_not_pending"
    SHOW_NOT_ACTIVE = "show_not_active"
    SOLD_OUT = "sold_out"
    VOTE_NOT_ALLOWED = "vote_not_allowed"
    TICKET_NOT_FOUND = "ticket_not_found"
    TICKET_NOT_VALID = "ticket_not_valid"


class DomainError(Exception):
    """Base class for every error raised by ShowSpot services."""

    status_code: int = 400
    default_code: ErrorCode = ErrorCode.VALIDATION

    def __init__(self, message: str, code: ErrorCode | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code

    def to_dict(self) -> dict[str, str]:
        return {"error": self.code.value, "message": self.message}


# ---------------------------------------------------------------------------
# Families
# ---------------------------------------------------------------------------
class ValidationError(DomainError):
    status_code = 422
    default_code = ErrorCode.VALIDATION


class ConflictError(DomainError):
    status_code = 409
    default_code = ErrorCode.CONFLICT


class NotFoundError(DomainError):
    status_code = 404
    default_code = ErrorCode.NOT_FOUND


# ---------------------------------------------------------------------------
# Not found
# ---------------------------------------------------------------------------
class ShowNotFoundError(NotFoundError):
    default_code = ErrorCode.SHOW_NOT_FOUND

    def __init__(self, show_id) -> None:
        super().__init__(f"Show {show_id} not found")
        self.show_id = show_id


class MemberNotFoundError(NotFoundError):
    default_code = ErrorCode.MEMBER_NOT_FOUND

    def __init__(self, show_id, artist_id) -> None:
        super().__init__(f"Artist {artist_id} is not a member of show {show_id}")
        self.show_id = show_id
        self.artist_id = artist_id


class VenueNotFoundError(NotFoundError):
    default_code = ErrorCode.VENUE_NOT_FOUND

    def __init__(self, venue_id) -> None:
        super().__init__(f"Venue {venue_id} not found")
        self.venue_id = venue_id


class BacklineNotFoundError(NotFoundError):
    default_code = ErrorCode.BACKLINE_NOT_FOUND

    def __init__(self, show_id, applicant_id) -> None:
        super().__init__(
            f"No backline application from {applicant_id} on show {show_id}"
        )
        self.show_id = show_id
        self.applicant_id = applicant_id


class TicketNotFoundError(NotFoundError):
    default_code = ErrorCode.TICKET_NOT_FOUND

    def __init__(self, qr_code: str) -> None:
        super().__init__(f"No ticket with code {qr_code}")
        self.qr_code = qr_code


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------
class GuaranteeUndeterminedError(ValidationError):
    """Capacity, ticket price or venue percentage is not yet known."""
    default_code = ErrorCode.GUARANTEE_UNDETERMINED

    def __init__(self, missing: list[str]) -> None:
        super().__init__(
            "Guarantee not yet determined (missing: " + ", ".join(missing) + ")"
        )
        self.missing = missing


class InvalidTermsError(ValidationError):
    default_code = ErrorCode.INVALID_TERMS


class InvalidDecisionError(ValidationError):
    default_code = ErrorCode.INVALID_DECISION


# ---------------------------------------------------------------------------
# Conflict
# ---------------------------------------------------------------------------
class AlreadyAppliedError(ConflictError):
    default_code = ErrorCode.ALREADY_APPLIED

    def __init__(self, show_id, applicant_id, applicant_type: str) -> None:
        super().__init__(
            f"{applicant_type} {applicant_id} has already applied to show {show_id}"
        )
        self.show_id = show_id
        self.applicant_id = applicant_id
        self.applicant_type = applicant_type


class NegotiationAlreadySubmittedError(ConflictError):
    default_code = ErrorCode.NEGOTIATION_SUBMITTED

    def __init__(self, show_id) -> None:
        super().__init__(f"Venue terms for show {show_id} were already submitted")
        self.show_id = show_id


class ShowNotPendingError(ConflictError):
    default_code = ErrorCode.SHOW_NOT_PENDING

    def __init__(self, show_id, status: str) -> None:
        super().__init__(f"Show {show_id} is {status}, not pending")
        self.show_id = show_id
        self.status = status


class ShowNotActiveError(ConflictError):
    default_code = ErrorCode.SHOW_NOT_ACTIVE

    def __init__(self, show_id, status: str) -> None:
        super().__init__(f"Show {show_id} is {status}, not active")
        self.show_id = show_id
        self.status = status


class SoldOutError(ConflictError):
    default_code = ErrorCode.SOLD_OUT

    def __init__(self, show_id, capacity: int) -> None:
        super().__init__(f"Show {show_id} is sold out ({capacity} tickets)")
        self.show_id = show_id
        self.capacity = capacity


class VoteNotAllowedError(ConflictError):
    default_code = ErrorCode.VOTE_NOT_ALLOWED


class TicketNotValidError(ConflictError):
    """The ticket was already scanned, or refunded."""
    default_code = ErrorCode.TICKET_NOT_VALID

    def __init__(self, qr_code: str, status: str) -> None:
        super().__init__(f"Ticket {qr_code} is {status}, not valid")
        self.qr_code = qr_code
        self.status = status


# ---------------------------------------------------------------------------
# PartialFailure — a result, not an exception
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class PartialFailure:
    """Recipients whose notification failed after a committed change.

    The committed state is authoritative; a non-empty ``failed_recipients``
    never means the write was rolled back.
    """

    notification_type: str
    failed_recipients: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed_recipients

    def to_dict(self) -> dict:
        return {
            "notification_type": self.notification_type,
            "failed_recipients": list(self.failed_recipients),
        }
