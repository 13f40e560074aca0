"""
Storage backends and the FastAPI dependency that hands one out.
"""
from __future__ import annotations

import logging
import os
from typing import Optional

from app.config import Settings, settings
from app.storage.base import (  # noqa: F401
    Storage,
    StorageError,
    aggregate_by_category,
    recover,
    time_window_cutoff,
)
from app.storage.memory import MemStorage
from app.storage.sql import SqlStorage

logger = logging.getLogger(__name__)

_storage: Optional[Storage] = None


def build_storage(config: Settings = settings) -> Storage:
    """Create the backend selected by ``STORAGE_BACKEND``."""
    backend = config.STORAGE_BACKEND.strip().lower()
    if backend == "sql":
        from app.database import make_engine

        if config.DATABASE_URL.startswith("sqlite:///./"):
            os.makedirs(config.DATA_DIR, exist_ok=True)
        storage = SqlStorage(make_engine(config.DATABASE_URL))
        storage.create_tables()
        logger.info("Using SQL storage (%s)", config.DATABASE_URL)
        return storage
    if backend != "memory":
        logger.warning("Unknown STORAGE_BACKEND=%r; defaulting to 'memory'", backend)
    logger.info("Using in-memory storage")
    return MemStorage()


def get_storage() -> Storage:
    """Storage dependency; the backend is created on first use and shared."""
    global _storage
    if _storage is None:
        _storage = build_storage()
    return _storage
