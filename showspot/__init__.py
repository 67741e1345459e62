"""
ShowSpot — Show Booking, Consensus & Revenue-Settlement Core
=============================================================
Takes a proposed live show through multi-party consensus (performers and
venue), computes payout guarantees from ticket economics, activates the
show once consent is unanimous, tracks ticket sales against capacity, and
runs the backline (opening-act) application and promotion-vote flows.

Package layout::

    showspot/
    ├── __main__.py        # python -m showspot → uvicorn
    ├── config.py          # YAML → typed Python config
    ├── constants.py       # Tier fractions, offered terms, money helpers
    ├── errors.py          # Domain error taxonomy
    ├── database/
    │   ├── engine.py      # SQLAlchemy engine + session helpers
    │   └── models.py      # All ORM models
    ├── engine/
    │   ├── consensus.py   # Member union, band resolution, activation predicate
    │   ├── guarantee.py   # Revenue split + guarantee tiers
    │   ├── negotiation.py # Venue acceptance stage machine
    │   ├── tickets.py     # Sold-out / percentage-sold derivations
    │   └── backline.py    # Backline eligibility rules
    ├── services/
    │   ├── vote_ledger.py          # At-most-once vote insert (shared)
    │   ├── vote_service.py         # Promotion vote primitives
    │   ├── show_service.py         # Show creation, member decisions
    │   ├── activation_service.py   # pending → active transition
    │   ├── negotiation_service.py  # Venue acceptance workflow
    │   ├── ticket_service.py       # Ticket sales ledger
    │   ├── backline_service.py     # Backline applications + votes
    │   └── notification_service.py # Fire-and-forget fan-out
    └── api/
        ├── main.py        # FastAPI app
        ├── deps.py        # Engine, config, JWT caller identity
        └── routes/        # Show, vote, ticket and backline endpoints
"""

__version__ = "0.1.0"
