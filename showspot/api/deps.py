"""
showspot.api.deps — FastAPI dependency injection
==================================================

The caller's identity comes from a bearer JWT issued by the hosted auth
backend (``sub`` = user UUID).  This API only verifies tokens; it never
issues them.
"""

from __future__ import annotations

import os
import uuid
from functools import lru_cache
from typing import Annotated

import jwt
from fastapi import Depends, Header, HTTPException, status
from jwt.exceptions import InvalidTokenError
from sqlalchemy import Engine
from sqlalchemy.orm import Session

from showspot.config import ShowSpotConfig, load_config
from showspot.database.engine import create_db_engine
from showspot.services.notification_service import Notifier, build_notifier

_WEAK_SECRETS = frozenset({
    "showspot-dev-secret-change-me",
    "change-me",
    "secret",
    "dev",
    "",
})

_MIN_SECRET_LENGTH = 32

JWT_ALGORITHM = "HS256"


def _load_jwt_secret() -> str:
    """Load and validate JWT_SECRET from the environment.

    Raises RuntimeError at import time if the secret is missing, blank,
    too short (< 32 chars), or a known weak default.
    """
    secret = os.getenv("JWT_SECRET", "")
    if not secret:
        raise RuntimeError(
            "JWT_SECRET environment variable is not set. "
            "Use the signing secret of the auth backend that issues ShowSpot tokens."
        )
    if secret in _WEAK_SECRETS:
        raise RuntimeError(
            f"JWT_SECRET is set to a known weak default ('{secret}'). "
            "Please set a strong, unique secret."
        )
    if len(secret) < _MIN_SECRET_LENGTH:
        raise RuntimeError(
            f"JWT_SECRET is too short ({len(secret)} chars). "
            f"Minimum length is {_MIN_SECRET_LENGTH} characters."
        )
    return secret


JWT_SECRET: str = _load_jwt_secret()


@lru_cache(maxsize=1)
def get_engine() -> Engine:
    return create_db_engine()


@lru_cache(maxsize=1)
def get_config() -> ShowSpotConfig:
    path = os.getenv("SHOWSPOT_CONFIG", "config.yaml")
    if not os.path.exists(path):
        # No file: run on the built-in defaults.
        return ShowSpotConfig()
    return load_config(path)


@lru_cache(maxsize=1)
def get_notifier() -> Notifier:
    return build_notifier(get_config())


def get_session(engine: Annotated[Engine, Depends(get_engine)]):
    with Session(engine) as session:
        yield session


def _decode_user(authorization: str | None) -> uuid.UUID:
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Missing token")
    token = authorization.split(" ", 1)[1]
    try:
        payload = jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
        return uuid.UUID(str(payload["sub"]))
    except (InvalidTokenError, KeyError, ValueError):
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Invalid token")


def get_current_user(
    authorization: Annotated[str | None, Header()] = None,
) -> uuid.UUID:
    """Validate the bearer JWT and return the caller's user id. 401 if invalid."""
    return _decode_user(authorization)


def get_optional_user(
    authorization: Annotated[str | None, Header()] = None,
) -> uuid.UUID | None:
    """Like :func:`get_current_user` but anonymous callers get ``None``."""
    if not authorization:
        return None
    return _decode_user(authorization)
