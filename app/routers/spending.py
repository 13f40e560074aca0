"""
Spending analysis endpoints.

GET /api/spending/analysis     — totals per category for a time window
GET /api/spending/categories   — raw categorized line items
"""
from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query

from app.config import settings
from app.errors import ApiError
from app.schemas import SpendingAnalysisResponse, SpendingCategoriesResponse
from app.storage import Storage, StorageError, get_storage, recover

logger = logging.getLogger(__name__)
router = APIRouter()


# ── GET /api/spending/analysis ───────────────────────────────────────────
@router.get("/spending/analysis", response_model=SpendingAnalysisResponse)
def spending_analysis(
    time_period: str = Query("last_month", alias="timePeriod",
                             description="last_week | last_month | last_year; anything else is all time"),
    category: Optional[str] = Query(None),
    user_id: Optional[int] = Query(None, alias="userId"),
    storage: Storage = Depends(get_storage),
):
    user_id = user_id or settings.DEFAULT_USER_ID
    try:
        data = storage.get_spending_by_category(user_id, category, time_period)
    except StorageError as e:
        raise ApiError.from_exception("Failed to fetch spending analysis", e) from e
    logger.info("Spending analysis: user=%s  period=%s  category=%s  groups=%d",
                user_id, time_period, category, len(data))
    return SpendingAnalysisResponse(data=data, time_period=time_period, category=category)


# ── GET /api/spending/categories ─────────────────────────────────────────
@router.get("/spending/categories", response_model=SpendingCategoriesResponse)
def spending_categories(
    user_id: Optional[int] = Query(None, alias="userId"),
    storage: Storage = Depends(get_storage),
):
    user_id = user_id or settings.DEFAULT_USER_ID
    categories = recover(lambda: storage.get_spending_categories(user_id), [])
    return SpendingCategoriesResponse(categories=categories)
