"""
Records Endpoints
-----------------
CRUD and search over models with virtual attributes.

Virtual attributes are filterable and sortable exactly like columns; the
search cache does the work underneath (shadow columns or the packed field).
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy import inspect as sa_inspect

from backend.dependencies import get_store
from database.models import MODELS
from database import queries
from database.store import SQLAlchemyRecordStore
from virtual_attributes import (
    BulkMutationRejected,
    ReadOnlyWriteRejected,
    SearchCriteria,
    UnknownVirtualAttribute,
    UnsupportedQueryEngine,
)

router = APIRouter(prefix="/records", tags=["records"])


# --------------------------------------------------------------------------- #
# Pydantic Models
# --------------------------------------------------------------------------- #

class RecordWrite(BaseModel):
    """Plain column values; virtual attributes cannot be written."""
    attributes: Dict[str, Any] = Field(default_factory=dict)


class SearchRequest(BaseModel):
    filters: Dict[str, Any] = Field(default_factory=dict)
    partial: bool = False
    operator: str = Field("AND", pattern="^(AND|OR|and|or)$")
    sort: Optional[str] = None
    descending: bool = False


class BulkUpdateRequest(BaseModel):
    filters: Dict[str, Any] = Field(default_factory=dict)
    values: Dict[str, Any] = Field(..., min_length=1)


class RecordOut(BaseModel):
    model: str
    id: Any
    attributes: Dict[str, Any]
    virtual: Dict[str, Any]
    cache: Dict[str, Any]


# --------------------------------------------------------------------------- #
# Helpers
# --------------------------------------------------------------------------- #

def _model(name: str) -> type:
    model = MODELS.get(name.lower())
    if model is None:
        raise HTTPException(status_code=404, detail=f"Unknown model '{name}'.")
    return model


def to_http_error(exc: Exception) -> HTTPException:
    """Map engine errors to stable HTTP codes."""
    if isinstance(exc, (UnknownVirtualAttribute, AttributeError, ValueError)):
        return HTTPException(status_code=400, detail=str(exc))
    if isinstance(exc, (ReadOnlyWriteRejected, BulkMutationRejected)):
        return HTTPException(status_code=409, detail=str(exc))
    if isinstance(exc, UnsupportedQueryEngine):
        return HTTPException(status_code=501, detail=str(exc))
    return HTTPException(status_code=500, detail=str(exc))


def serialize(record: Any) -> Dict[str, Any]:
    model = type(record)
    registry = model.virtual_registry()
    cache_keys = set(registry.persisted_keys())
    attributes = {
        attr.key: getattr(record, attr.key)
        for attr in sa_inspect(model).column_attrs
        if attr.key not in cache_keys
    }
    return {
        "model": model.__name__,
        "id": sa_inspect(record).identity[0],
        "attributes": attributes,
        "virtual": {name: record.get(name) for name in registry.names},
        "cache": registry.persisted_snapshot(record),
    }


def _unknown_columns(model: type, names) -> List[str]:
    registry = model.virtual_registry()
    columns = {attr.key for attr in sa_inspect(model).column_attrs}
    return [n for n in names if n not in columns and not registry.has(n)]


def _cache_attributes(model: type, names) -> List[str]:
    """Virtual names and the cache columns behind them; derived, never written directly."""
    registry = model.virtual_registry()
    persisted = set(registry.persisted_keys())
    return [n for n in names if registry.resolve(n) is not None or n in persisted]


def _criteria(model: type, filters: Dict[str, Any], store: SQLAlchemyRecordStore) -> SearchCriteria:
    unknown = _unknown_columns(model, filters)
    if unknown:
        raise HTTPException(status_code=400, detail=f"Unknown attribute(s): {', '.join(unknown)}")
    criteria = SearchCriteria(model, dialect=store.dialect_name())
    for name, value in filters.items():
        if model.virtual_registry().has(name):
            criteria.compare_virtual(name, value)
        else:
            criteria.compare(getattr(model, name), value)
    return criteria


# --------------------------------------------------------------------------- #
# Routes
# --------------------------------------------------------------------------- #

@router.post("/{model_name}", response_model=RecordOut, status_code=201)
async def create_record(model_name: str, request: RecordWrite, store: SQLAlchemyRecordStore = Depends(get_store)):
    model = _model(model_name)
    unknown = _unknown_columns(model, request.attributes)
    if unknown:
        raise HTTPException(status_code=400, detail=f"Unknown attribute(s): {', '.join(unknown)}")
    try:
        record = model()
        for key, value in request.attributes.items():
            record.set(key, value)
        return serialize(store.create(record))
    except HTTPException:
        raise
    except Exception as e:  # noqa: BLE001
        raise to_http_error(e)


@router.get("/{model_name}/{record_id}", response_model=RecordOut)
async def get_record(model_name: str, record_id: int, store: SQLAlchemyRecordStore = Depends(get_store)):
    record = store.get(_model(model_name), record_id)
    if record is None:
        raise HTTPException(status_code=404, detail="Record not found.")
    return serialize(record)


@router.patch("/{model_name}/{record_id}", response_model=RecordOut)
async def update_record(
    model_name: str,
    record_id: int,
    request: RecordWrite,
    store: SQLAlchemyRecordStore = Depends(get_store),
):
    model = _model(model_name)
    unknown = _unknown_columns(model, request.attributes)
    if unknown:
        raise HTTPException(status_code=400, detail=f"Unknown attribute(s): {', '.join(unknown)}")
    try:
        record = store.update_by_pk(model, record_id, request.attributes)
    except Exception as e:  # noqa: BLE001
        raise to_http_error(e)
    if record is None:
        raise HTTPException(status_code=404, detail="Record not found.")
    return serialize(record)


@router.post("/{model_name}/search", response_model=List[RecordOut])
async def search_records(model_name: str, request: SearchRequest, store: SQLAlchemyRecordStore = Depends(get_store)):
    """
    Filter and sort by columns and virtual attributes.

    Example body:
        {"filters": {"ageBracket": "adult"}, "sort": "fullName"}
    """
    model = _model(model_name)
    unknown = _unknown_columns(model, list(request.filters) + ([request.sort] if request.sort else []))
    if unknown:
        raise HTTPException(status_code=400, detail=f"Unknown attribute(s): {', '.join(unknown)}")
    try:
        rows = queries.search_records(
            request.filters,
            partial=request.partial,
            operator=request.operator.upper(),
            sort=request.sort,
            descending=request.descending,
            model=model,
            store=store,
        )
    except Exception as e:  # noqa: BLE001
        raise to_http_error(e)
    return [serialize(r) for r in rows]


@router.post("/{model_name}/bulk-update")
async def bulk_update_records(
    model_name: str,
    request: BulkUpdateRequest,
    store: SQLAlchemyRecordStore = Depends(get_store),
):
    """Bulk UPDATE by filters. Rejected (409) unless the model opted in."""
    model = _model(model_name)
    unknown = _unknown_columns(model, request.values)
    if unknown:
        raise HTTPException(status_code=400, detail=f"Unknown attribute(s): {', '.join(unknown)}")
    cached = _cache_attributes(model, request.values)
    if cached:
        raise HTTPException(status_code=400, detail=f"Not bulk-updatable: {', '.join(cached)}")
    criteria = _criteria(model, request.filters, store)
    try:
        affected = store.update_all(model, criteria, request.values)
    except Exception as e:  # noqa: BLE001
        raise to_http_error(e)
    return {"status": "ok", "affected": affected}
