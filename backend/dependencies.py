"""
backend/dependencies.py
-----------------------
FastAPI dependencies. Tests swap the store with ``app.dependency_overrides``.
"""

from __future__ import annotations

from database.queries import default_store
from database.store import SQLAlchemyRecordStore


def get_store() -> SQLAlchemyRecordStore:
    return default_store()
