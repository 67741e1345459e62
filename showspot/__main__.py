"""
showspot.__main__ — Entry point for ``python -m showspot``
===========================================================

Wiring:
1. Load .env (secrets, DATABASE_URL, JWT_SECRET).
2. Load config.yaml (soft settings).
3. Create the SQLAlchemy engine and ensure tables exist.
4. Start the API under uvicorn (blocking).

Run with::

    python -m showspot
"""

from __future__ import annotations

import logging
import os
import sys

import uvicorn
from dotenv import load_dotenv

from showspot.config import ShowSpotConfig, load_config
from showspot.database.engine import create_db_engine, init_db

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s │ %(levelname)-8s │ %(name)s │ %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("showspot")


def main() -> None:
    """Bootstrap and run the ShowSpot API."""

    # 1. Environment variables (secrets).
    load_dotenv()

    if not os.getenv("JWT_SECRET"):
        logger.critical(
            "JWT_SECRET is not set.  "
            "Copy .env.example → .env and paste the auth backend's signing secret."
        )
        sys.exit(1)

    # 2. Soft configuration.
    config_path = os.getenv("SHOWSPOT_CONFIG", "config.yaml")
    try:
        cfg = load_config(config_path)
    except FileNotFoundError:
        logger.warning("%s not found — using built-in defaults", config_path)
        cfg = ShowSpotConfig()
    logger.info("Config loaded — %s on port %d", cfg.app_name, cfg.api_port)

    # 3. Database.
    engine = create_db_engine()
    init_db(engine)
    engine.dispose()

    # 4. API (blocks until Ctrl+C or SIGTERM).
    logger.info("Starting %s API…", cfg.app_name)
    uvicorn.run("showspot.api.main:app", host="0.0.0.0", port=cfg.api_port, log_config=None)


if __name__ == "__main__":
    main()
