"""
Insight endpoints.

GET   /api/insights            — active insights for a user
POST  /api/insights/generate   — ask the model for a new insight
PATCH /api/insights/{id}       — update (e.g. deactivate) an insight
"""
from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Body, Depends, Query

from app.config import settings
from app.errors import ApiError
from app.schemas import (
    GenerateInsightRequest,
    InsightCreate,
    InsightResponse,
    InsightsResponse,
    InsightUpdate,
)
from app.services import ReceiptAIService, get_ai_service
from app.storage import Storage, StorageError, get_storage, recover

logger = logging.getLogger(__name__)
router = APIRouter()

NOT_ENOUGH_DATA = "Not enough spending data to generate insights"


# ── GET /api/insights ────────────────────────────────────────────────────
@router.get("/insights", response_model=InsightsResponse)
def list_insights(
    user_id: Optional[int] = Query(None, alias="userId"),
    storage: Storage = Depends(get_storage),
):
    user_id = user_id or settings.DEFAULT_USER_ID
    insights = recover(lambda: storage.get_active_insights(user_id), [])
    return InsightsResponse(insights=insights)


# ── POST /api/insights/generate ──────────────────────────────────────────
@router.post("/insights/generate", response_model=InsightResponse, response_model_exclude_none=True)
def generate_insight(
    req: Optional[GenerateInsightRequest] = Body(None),
    storage: Storage = Depends(get_storage),
    ai: ReceiptAIService = Depends(get_ai_service),
):
    user_id = (req.user_id if req else None) or settings.DEFAULT_USER_ID
    try:
        spending = storage.get_spending_by_category(user_id, time_period="last_month")
        if not spending:
            logger.info("No recent spending for user %s; skipping insight", user_id)
            return InsightResponse(message=NOT_ENOUGH_DATA)

        generated = ai.generate_spending_insight(spending)
        insight = storage.create_insight(
            InsightCreate(
                user_id=user_id,
                insight_text=generated.insight_text,
                insight_type=generated.insight_type,
            )
        )
    except StorageError as e:
        raise ApiError.from_exception("Failed to generate insights", e) from e
    logger.info("Created insight %d (%s) for user %s", insight.id, insight.insight_type, user_id)
    return InsightResponse(insight=insight)


# ── PATCH /api/insights/{insight_id} ─────────────────────────────────────
@router.patch("/insights/{insight_id}", response_model=InsightResponse, response_model_exclude_none=True)
def update_insight(
    insight_id: int,
    updates: InsightUpdate,
    storage: Storage = Depends(get_storage),
):
    try:
        insight = storage.update_insight(insight_id, updates)
    except StorageError as e:
        raise ApiError.from_exception("Failed to update insight", e) from e
    if insight is None:
        raise ApiError(404, "Insight not found")
    logger.info("Updated insight %d (active=%s)", insight.id, insight.is_active)
    return InsightResponse(insight=insight)
