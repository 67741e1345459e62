"""
showspot.config — YAML Configuration Loader
============================================

Reads ``config.yaml`` for the soft settings of the booking core (API
port, the offered venue terms, notification webhook).  Secrets and
infrastructure (``DATABASE_URL``, ``JWT_SECRET``) stay in the environment.

Usage::

    from showspot.config import load_config

    cfg = load_config()               # reads ./config.yaml by default
    print(cfg.offered_ticket_prices)  # (Decimal('10'), Decimal('15'), …)
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from pathlib import Path

import yaml

from showspot.constants import (
    DEFAULT_MAX_VENUE_PERCENTAGE,
    DEFAULT_OFFERED_TICKET_PRICES,
    DEFAULT_OFFERED_VENUE_PERCENTAGES,
)


# ---------------------------------------------------------------------------
# Typed settings object
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class ShowSpotConfig:
    """Immutable configuration loaded from ``config.yaml``."""

    # Identity
    app_name: str = "ShowSpot"

    # API
    api_port: int = 8000

    # Venue negotiation — bounded sets the venue picks from
    offered_ticket_prices: tuple[Decimal, ...] = DEFAULT_OFFERED_TICKET_PRICES
    offered_venue_percentages: tuple[int, ...] = DEFAULT_OFFERED_VENUE_PERCENTAGES
    max_venue_percentage: int = DEFAULT_MAX_VENUE_PERCENTAGE

    # Notifications (log-only when no webhook is configured)
    notification_webhook_url: str | None = None
    notification_timeout_seconds: float = 5.0


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
def load_config(path: str | Path = "config.yaml") -> ShowSpotConfig:
    """Read *path* and return a :class:`ShowSpotConfig` instance.

    Parameters
    ----------
    path:
        Filesystem path to the YAML configuration file.
        Defaults to ``config.yaml`` in the current working directory.

    Raises
    ------
    FileNotFoundError
        If the YAML file doesn't exist.
    ValueError
        If an offered venue percentage lies outside ``0..max_venue_percentage``
        or an offered ticket price is not positive.
    """
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(
            f"Configuration file not found: {config_path.resolve()}\n"
            "Hint: copy config.yaml.example → config.yaml and edit it."
        )

    with open(config_path, encoding="utf-8") as fh:
        raw: dict = yaml.safe_load(fh) or {}

    negotiation: dict = raw.get("negotiation") or {}
    notifications: dict = raw.get("notifications") or {}

    max_pct = int(negotiation.get("max_venue_percentage", DEFAULT_MAX_VENUE_PERCENTAGE))
    prices = tuple(
        Decimal(str(p))
        for p in negotiation.get("offered_ticket_prices", DEFAULT_OFFERED_TICKET_PRICES)
    )
    percentages = tuple(
        int(p)
        for p in negotiation.get(
            "offered_venue_percentages", DEFAULT_OFFERED_VENUE_PERCENTAGES
        )
    )

    if not 0 <= max_pct <= 100:
        raise ValueError(f"max_venue_percentage must be within 0..100, got {max_pct}")
    bad_pcts = [p for p in percentages if not 0 <= p <= max_pct]
    if bad_pcts:
        raise ValueError(
            f"offered_venue_percentages outside 0..{max_pct}: {bad_pcts}"
        )
    bad_prices = [p for p in prices if p <= 0]
    if bad_prices:
        raise ValueError(f"offered_ticket_prices must be positive: {bad_prices}")

    return ShowSpotConfig(
        app_name=raw.get("app_name", "ShowSpot"),
        api_port=int(raw.get("api_port", 8000)),
        offered_ticket_prices=prices,
        offered_venue_percentages=percentages,
        max_venue_percentage=max_pct,
        notification_webhook_url=notifications.get("webhook_url") or None,
        notification_timeout_seconds=float(notifications.get("timeout_seconds", 5.0)),
    )
