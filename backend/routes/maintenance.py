"""
Maintenance Endpoints
---------------------
Search cache resync and verification.

``resync`` issues one UPDATE per row. Call it after changing a getter or
adding a virtual attribute, during a maintenance window.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from backend.dependencies import get_store
from backend.routes.records import _model, to_http_error
from database.store import SQLAlchemyRecordStore

router = APIRouter(prefix="/maintenance", tags=["maintenance"])


@router.post("/{model_name}/resync")
async def resync_cache(
    model_name: str,
    batch_size: Optional[int] = Query(None, ge=1, le=10_000, description="Rows per batch"),
    store: SQLAlchemyRecordStore = Depends(get_store),
):
    model = _model(model_name)
    try:
        report = store.sweeper.resync(model, batch_size=batch_size)
    except HTTPException:
        raise
    except Exception as e:  # noqa: BLE001
        raise to_http_error(e)
    return {"status": "ok", "report": report.as_dict()}


@router.get("/{model_name}/verify")
async def verify_cache(model_name: str, store: SQLAlchemyRecordStore = Depends(get_store)):
    model = _model(model_name)
    report = store.sweeper.verify(model)
    return {"status": "ok" if not report.stale else "stale", "report": report.as_dict()}
