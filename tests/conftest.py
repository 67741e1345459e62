"""
tests/conftest.py — Shared Test Fixtures
=========================================
"""

from __future__ import annotations

import os

# ---------------------------------------------------------------------------
# Ensure a valid JWT_SECRET is always set for test runs.
# This must happen before any import of showspot.api.deps which validates
# the secret at module-load time.
# ---------------------------------------------------------------------------
_TEST_JWT_SECRET = "test-secret-for-pytest-only-" + "x" * 40  # > 32 chars
os.environ.setdefault("JWT_SECRET", _TEST_JWT_SECRET)

import uuid  # noqa: E402
from datetime import date, time  # noqa: E402
from unittest.mock import MagicMock  # noqa: E402

import pytest  # noqa: E402
from sqlalchemy import Engine, create_engine  # noqa: E402
from sqlalchemy.orm import Session  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from showspot.config import ShowSpotConfig  # noqa: E402
from showspot.database.models import (  # noqa: E402
    Artist,
    Band,
    BandMembership,
    Base,
    Venue,
)
from showspot.services import show_service  # noqa: E402
from showspot.services.show_service import MemberInvite  # noqa: E402


@pytest.fixture
def db_engine() -> Engine:
    """Create an in-memory SQLite engine with all ShowSpot tables.

    Uses StaticPool so every session (and the TestClient's worker thread)
    shares the same in-memory database.
    """
    engine = create_engine(
        "sqlite://",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    return engine


@pytest.fixture
def file_engine(tmp_path) -> Engine:
    """A file-backed SQLite engine for tests that race real connections.

    Each thread gets its own connection; SQLite's file lock plus the busy
    timeout serialize the writers the way row locks do on PostgreSQL.
    """
    engine = create_engine(
        f"sqlite:///{tmp_path / 'showspot.db'}",
        echo=False,
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db_session(db_engine: Engine):
    """Provide a transactional session that rolls back after each test."""
    with Session(db_engine) as session:
        yield session
        session.rollback()


@pytest.fixture
def cfg() -> ShowSpotConfig:
    """Default soft settings: offered prices and percentages {10..30}."""
    return ShowSpotConfig()


@pytest.fixture
def notifier():
    """A notification collaborator that records every send."""
    return MagicMock(name="notifier")


# ---------------------------------------------------------------------------
# Seed helpers — usable from any test module via ``from conftest import …``
# ---------------------------------------------------------------------------
def seed_venue(engine: Engine, capacity: int | None = 200, owner_user_id=None) -> Venue:
    with Session(engine, expire_on_commit=False) as session:
        venue = Venue(
            owner_user_id=owner_user_id or uuid.uuid4(),
            name="The Echo",
            capacity=capacity,
        )
        session.add(venue)
        session.commit()
        return venue


def seed_artist(engine: Engine, name: str = "Solo", user_id=None) -> Artist:
    with Session(engine, expire_on_commit=False) as session:
        artist = Artist(user_id=user_id or uuid.uuid4(), name=name)
        session.add(artist)
        session.commit()
        return artist


def seed_band(engine: Engine, artists: list[Artist], name: str = "The Band") -> Band:
    with Session(engine, expire_on_commit=False) as session:
        band = Band(name=name)
        session.add(band)
        session.flush()
        for artist in artists:
            session.add(BandMembership(band_id=band.id, artist_id=artist.id))
        session.commit()
        return band


def seed_show(
    engine: Engine,
    venue: Venue,
    artists: list[Artist] = (),
    bands: list[Band] = (),
    promoter_id=None,
):
    """Create a pending show through the real creation path."""
    members = [MemberInvite(a.id, "artist", "headliner" if i == 0 else None)
               for i, a in enumerate(artists)]
    members += [MemberInvite(b.id, "band") for b in bands]
    return show_service.create_show(
        engine,
        venue_id=venue.id,
        promoter_id=promoter_id or uuid.uuid4(),
        preferred_date=date(2026, 11, 20),
        preferred_time=time(20, 30),
        members=members,
        description="Friday night bill",
    )


@pytest.fixture
def lineup(db_engine):
    """Scenario lineup: 200-cap venue, two solo artists and a 3-piece band."""
    venue = seed_venue(db_engine, capacity=200)
    solo_a = seed_artist(db_engine, "Ana")
    solo_b = seed_artist(db_engine, "Ben")
    trio = [seed_artist(db_engine, n) for n in ("Cy", "Di", "Ed")]
    band = seed_band(db_engine, trio, "Trio")
    show = seed_show(db_engine, venue, [solo_a, solo_b], [band])
    return {
        "venue": venue,
        "solo": [solo_a, solo_b],
        "band": band,
        "band_members": trio,
        "show": show,
    }


# ---------------------------------------------------------------------------
# API
# ---------------------------------------------------------------------------
def make_user_token(sub: uuid.UUID | str | None = None) -> str:
    """Create a user JWT.  Usable as a factory from any test module."""
    import jwt

    from showspot.api.deps import JWT_ALGORITHM, JWT_SECRET

    return jwt.encode(
        {"sub": str(sub or uuid.uuid4())},
        JWT_SECRET,
        algorithm=JWT_ALGORITHM,
    )


@pytest.fixture
def client(db_engine, cfg, notifier):
    """FastAPI TestClient wired to the in-memory engine and mock notifier."""
    from fastapi.testclient import TestClient

    from showspot.api.deps import get_config, get_engine, get_notifier
    from showspot.api.main import app

    app.dependency_overrides[get_engine] = lambda: db_engine
    app.dependency_overrides[get_config] = lambda: cfg
    app.dependency_overrides[get_notifier] = lambda: notifier
    try:
        yield TestClient(app, raise_server_exceptions=False)
    finally:
        app.dependency_overrides.clear()
