"""
core/health.py
--------------
System health diagnostics for the Virtual Search backend.

Purpose
-------
- Used by the FastAPI `/health` endpoint.
- Validates database connectivity.
- Reports search cache staleness per model (dry-run sweep).
- Reports uptime, version, CPU/memory usage.
- Returns JSON-safe dict ready for serialization.
"""

from __future__ import annotations

import logging
import platform
import time
from typing import Any, Dict, Iterable

import psutil
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from core.settings import BACKEND_VERSION

logger = logging.getLogger(__name__)

# Cache the process start time for uptime calculation
START_TIME = time.time()


def system_health(store: Any, models: Iterable[type] = (), check_cache: bool = True) -> Dict[str, Any]:
    """
    Return structured backend health diagnostics.

    Parameters
    ----------
    store : SQLAlchemyRecordStore
        Store whose database is probed.
    models : iterable of model classes
        Models whose search cache is verified (read-only, no writes).
    check_cache : bool
        Skip the per-model verify sweep when False (it reads every row).

    Returns
    -------
    dict
        JSON-safe health report.
    """
    status = "ok"
    message = "Backend operational."
    database_connected = False
    stale: Dict[str, int] = {}

    # --- Database connectivity test ---
    try:
        with store.engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        database_connected = True
    except SQLAlchemyError as e:
        status = "degraded"
        message = f"Database check failed: {e.__class__.__name__}"
        logger.warning("[Health] %s", message)

    # --- Search cache staleness ---
    if database_connected and check_cache:
        for model in models:
            report = store.sweeper.verify(model)
            stale[model.__name__] = report.stale
        if any(stale.values()):
            status = "degraded"
            message = "Search cache out of sync; run a resync."

    # --- System metrics ---
    try:
        cpu_load = psutil.cpu_percent(interval=0.1)
        memory_usage = round(psutil.virtual_memory().used / (1024 * 1024), 2)
    except (psutil.Error, OSError):
        cpu_load = None
        memory_usage = None

    return {
        "status": status,
        "message": message,
        "version": BACKEND_VERSION,
        "database": store.dialect_name(),
        "database_connected": database_connected,
        "stale_cache": stale,
        "cpu_load": cpu_load,
        "memory_usage": memory_usage,
        "uptime_sec": round(time.time() - START_TIME, 2),
        "system": platform.system(),
        "release": platform.release(),
    }
