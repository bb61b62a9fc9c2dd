"""
core/settings.py
----------------
Central configuration hub, read from environment variables.

- Database URL used by the store, the API and the maintenance CLI.
- Default sweep batch size.
- Logging level and format, applied once by ``configure_logging``.
"""

from __future__ import annotations

import logging
import os

# ---------------------------------------------------------------------------
# Database configuration
# ---------------------------------------------------------------------------

DEFAULT_DB_PATH = os.path.join(os.path.dirname(os.path.dirname(__file__)), "database", "virtual_search.db")
DB_URL: str = os.getenv("VIRTUAL_DB_URL", f"sqlite:///{DEFAULT_DB_PATH}")

# Rows loaded per batch by the consistency sweeper
SWEEP_BATCH_SIZE: int = int(os.getenv("VIRTUAL_SWEEP_BATCH_SIZE", "100"))

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

LOG_LEVEL: str = os.getenv("VIRTUAL_LOG_LEVEL", "INFO").upper()
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"

BACKEND_VERSION: str = os.getenv("BACKEND_VERSION", "1.0")


def configure_logging(level: str | None = None) -> None:
    """Apply the project log format; safe to call more than once."""
    logging.basicConfig(level=(level or LOG_LEVEL), format=LOG_FORMAT)
    logging.getLogger("virtual_attributes").setLevel(level or LOG_LEVEL)
