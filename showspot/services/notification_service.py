"""
showspot.services.notification_service — Fire-and-Forget Fan-Out
==================================================================

Owns recipient resolution and delivery to the notification collaborator.
Delivery transport (push, email) lives outside this core: a configured
webhook receives one JSON POST per recipient, otherwise notices are only
logged.

Fan-out always runs *after* the state change has committed.  A failed
recipient is logged and reported in a :class:`~showspot.errors.PartialFailure`;
it is never retried and never rolls anything back.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable, Iterable
from typing import TYPE_CHECKING, Protocol

import httpx
from sqlalchemy import select

from showspot.database.models import Artist
from showspot.errors import PartialFailure

if TYPE_CHECKING:
    from sqlalchemy.orm import Session

    from showspot.config import ShowSpotConfig

logger = logging.getLogger(__name__)

# Notification types
VENUE_ACCEPTED = "venue_accepted"
SHOW_ACTIVATED = "show_activated"
BACKLINE_ACTIVATED = "backline_activated"


class Notifier(Protocol):
    """Anything that can deliver one notice to one recipient."""

    def send(self, recipient_id: str, notification_type: str, payload: dict) -> None:
        ...


# ---------------------------------------------------------------------------
# Implementations
# ---------------------------------------------------------------------------
class LoggingNotifier:
    """Log-only sink used when no webhook is configured."""

    def send(self, recipient_id: str, notification_type: str, payload: dict) -> None:
        logger.info(
            "Notification %s → %s (show %s)",
            notification_type, recipient_id, payload.get("show_id"),
        )


class WebhookNotifier:
    """POST each notice to the collaborator's webhook.  No retries."""

    def __init__(self, url: str, timeout: float = 5.0) -> None:
        self.url = url
        self._client = httpx.Client(
            timeout=timeout, transport=httpx.HTTPTransport(retries=0)
        )

    def send(self, recipient_id: str, notification_type: str, payload: dict) -> None:
        resp = self._client.post(
            self.url,
            json={
                "recipient_id": recipient_id,
                "type": notification_type,
                "payload": payload,
            },
        )
        resp.raise_for_status()

    def close(self) -> None:
        self._client.close()


def build_notifier(cfg: ShowSpotConfig) -> Notifier:
    """Pick the webhook notifier when configured, else the logging sink."""
    if cfg.notification_webhook_url:
        logger.info("Notifications → webhook %s", cfg.notification_webhook_url)
        return WebhookNotifier(
            cfg.notification_webhook_url, timeout=cfg.notification_timeout_seconds
        )
    logger.info("No notification webhook configured — notices are log-only")
    return LoggingNotifier()


# ---------------------------------------------------------------------------
# Recipient resolution
# ---------------------------------------------------------------------------
def artist_user_ids(
    session: Session, artist_ids: Iterable[uuid.UUID]
) -> dict[uuid.UUID, uuid.UUID]:
    """Map artist ids to the user accounts that own them.

    Artists missing from the read model are skipped.
    """
    ids = set(artist_ids)
    if not ids:
        return {}
    rows = session.execute(
        select(Artist.id, Artist.user_id).where(Artist.id.in_(ids))
    ).all()
    return {row.id: row.user_id for row in rows}


# ---------------------------------------------------------------------------
# Fan-out
# ---------------------------------------------------------------------------
def fan_out(
    notifier: Notifier | None,
    recipients: Iterable,
    notification_type: str,
    payload: dict | Callable[[str], dict],
) -> PartialFailure:
    """Send one notice per recipient, collecting the failures.

    *payload* is either shared by every recipient or a callable returning
    the payload for a given recipient id.
    """
    failed: list[str] = []
    if notifier is None:
        return PartialFailure(notification_type, failed)

    seen: set[str] = set()
    for recipient in recipients:
        recipient_id = str(recipient)
        if recipient_id in seen:
            continue
        seen.add(recipient_id)
        body = payload(recipient_id) if callable(payload) else payload
        try:
            notifier.send(recipient_id, notification_type, body)
        except Exception:
            logger.exception(
                "Failed to deliver %s notification to %s", notification_type, recipient_id
            )
            failed.append(recipient_id)

    if failed:
        logger.warning(
            "%s fan-out: %d of %d recipients failed",
            notification_type, len(failed), len(seen),
        )
    return PartialFailure(notification_type, failed)
