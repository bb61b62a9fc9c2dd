"""
Virtual Search Backend API
==========================

FastAPI service exposing records with searchable virtual attributes,
search cache maintenance, and health endpoints.

Design Intent
-------------
• Records
    - CRUD per model (`/records/{model}`); virtual attributes come back
      computed and alongside their persisted search cache.
    - Search and sort by virtual attributes exactly like plain columns.
    - Bulk updates are refused (409) unless the model opted in; opted-in
      models get their cache swept for the updated scope.

• Maintenance
    - `/maintenance/{model}/resync` re-derives the cache row by row.
    - `/maintenance/{model}/verify` reports stale rows without writing.

• Health
    - Database connectivity, stale cache counts, process metrics.
"""

from __future__ import annotations

import logging
import os
import sys

from fastapi import Depends, FastAPI

# --------------------------------------------------------------------------- #
# Path setup: ensure project root on sys.path
# --------------------------------------------------------------------------- #

# Allows imports like `core.*`, `database.*`, `virtual_attributes.*` when running via uvicorn
ROOT_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT_DIR not in sys.path:
    sys.path.append(ROOT_DIR)

from core.health import system_health
from core.metadata import get_metadata
from core.settings import BACKEND_VERSION, configure_logging
from backend.dependencies import get_store
from backend.routes.maintenance import router as maintenance_router
from backend.routes.records import router as records_router
from database.models import MODELS
from database.store import SQLAlchemyRecordStore

configure_logging()
logger = logging.getLogger(__name__)

# --------------------------------------------------------------------------- #
# FastAPI App
# --------------------------------------------------------------------------- #

app = FastAPI(
    title="Virtual Search Backend API",
    version=BACKEND_VERSION,
    description=(
        "Records with computed attributes that are searchable in SQL.\n"
        "- Shadow-column and packed-field search caches.\n"
        "- Cache kept in sync on every single-record write.\n"
        "- Explicit resync / verify maintenance endpoints."
    ),
)

app.include_router(records_router)
app.include_router(maintenance_router)
logger.info("[Backend] registered /records and /maintenance routers")


# --------------------------------------------------------------------------- #
# Core Routes
# --------------------------------------------------------------------------- #

@app.get("/")
async def root():
    """
    Basic liveness probe.
    """
    return {
        "status": "ok",
        "message": "Virtual Search Backend is live.",
        "version": app.version,
        "models": sorted(MODELS),
    }


@app.get("/health")
async def health(check_cache: bool = True, store: SQLAlchemyRecordStore = Depends(get_store)):
    """
    System health endpoint.

    Delegates to core.health.system_health which:
    - Checks database connectivity
    - Counts stale search cache rows per model (set check_cache=false to skip)
    - Returns a stable, machine-readable payload
    """
    return system_health(store, MODELS.values(), check_cache=check_cache)


@app.get("/metadata")
async def metadata():
    return get_metadata()


@app.get("/models")
async def list_models():
    """Virtual attribute configuration of every exposed model."""
    return {
        name: {
            "virtual_attributes": list(model.virtual_attribute_names()),
            "config": model.virtual_registry().config.as_dict(),
        }
        for name, model in sorted(MODELS.items())
    }


# --------------------------------------------------------------------------- #
# End of File
# --------------------------------------------------------------------------- #
