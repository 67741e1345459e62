"""
showspot.engine.backline — Backline Eligibility
================================================

Decides whether a user may be offered the "apply as backline" action on a
show.  Recomputed from the current application list on every read; the
client never caches it.

Rules:
  1. A performer already on the show (directly or through a band) can't
     apply as backline.
  2. The user needs at least one unused identity: their solo artist not
     yet applied *as solo*, or a band they belong to not yet applied.
     Band and solo applications never block each other.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterable
from dataclasses import dataclass, field

from showspot.database.models import MemberType

__all__ = ["BacklineEligibility", "compute_eligibility"]


@dataclass(frozen=True, slots=True)
class BacklineEligibility:
    eligible: bool
    reason: str | None = None
    available_artist_id: uuid.UUID | None = None
    available_band_ids: list[uuid.UUID] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "eligible": self.eligible,
            "reason": self.reason,
            "available_artist_id": (
                str(self.available_artist_id) if self.available_artist_id else None
            ),
            "available_band_ids": [str(b) for b in self.available_band_ids],
        }


def compute_eligibility(
    *,
    is_performer: bool,
    artist_id: uuid.UUID | None,
    band_ids: Iterable[uuid.UUID],
    applications: Iterable[tuple[uuid.UUID, str]],
) -> BacklineEligibility:
    """Evaluate the backline rules for one user on one show.

    Parameters
    ----------
    is_performer : Whether the user already performs on the show.
    artist_id : The user's solo artist identity, if they have one.
    band_ids : Bands the user's artist belongs to.
    applications : ``(applicant_id, applicant_type)`` of every existing
        application on the show, pending or active.
    """
    if is_performer:
        return BacklineEligibility(False, reason="already_performing")

    taken = set(applications)
    solo_free = (
        artist_id is not None
        and (artist_id, MemberType.ARTIST.value) not in taken
    )
    free_bands = [
        band_id for band_id in band_ids
        if (band_id, MemberType.BAND.value) not in taken
    ]

    if not solo_free and not free_bands:
        reason = "no_artist_profile" if artist_id is None else "all_identities_applied"
        return BacklineEligibility(False, reason=reason)

    return BacklineEligibility(
        True,
        available_artist_id=artist_id if solo_free else None,
        available_band_ids=free_bands,
    )
