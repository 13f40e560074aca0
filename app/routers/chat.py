"""
Assistant chat endpoints.

POST /api/chat                  — question about the user's overall spending
POST /api/receipts/{id}/chat    — question about one receipt
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from app.config import settings
from app.errors import ApiError
from app.schemas import ChatRequest, ChatResponse, ReceiptChatResponse, ReceiptInfo
from app.services import ContextService, ReceiptAIService, get_ai_service, get_context_service

logger = logging.getLogger(__name__)
router = APIRouter()


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


# ── POST /api/chat ───────────────────────────────────────────────────────
@router.post("/chat", response_model=ChatResponse)
def chat(
    req: ChatRequest,
    contexts: ContextService = Depends(get_context_service),
    ai: ReceiptAIService = Depends(get_ai_service),
):
    user_id = req.user_id or settings.DEFAULT_USER_ID
    logger.info("Chat: user=%s  len=%d", user_id, len(req.message))
    context = contexts.get_user_context(user_id)
    response = ai.answer_query(req.message, context)
    return ChatResponse(response=response, timestamp=_timestamp())


# ── POST /api/receipts/{receipt_id}/chat ─────────────────────────────────
@router.post("/receipts/{receipt_id}/chat", response_model=ReceiptChatResponse)
def receipt_chat(
    receipt_id: int,
    req: ChatRequest,
    contexts: ContextService = Depends(get_context_service),
    ai: ReceiptAIService = Depends(get_ai_service),
):
    user_id = req.user_id or settings.DEFAULT_USER_ID
    context = contexts.get_receipt_context(receipt_id, user_id)
    if "error" in context:
        status = 404 if context["error"] == "Receipt not found" else 500
        raise ApiError(status, context["error"])

    receipt = context["receipt"]
    message = (
        f"I'm looking at my receipt from {receipt['storeName']} "
        f"on {receipt['transactionDate']}. {req.message}"
    )
    logger.info("Receipt chat: receipt=%s  user=%s", receipt_id, user_id)
    response = ai.answer_query(message, context)
    return ReceiptChatResponse(
        response=response,
        receipt_info=ReceiptInfo(
            id=receipt["id"],
            store_name=receipt["storeName"],
            date=receipt["transactionDate"],
            total=receipt["totalAmount"],
        ),
        timestamp=_timestamp(),
    )
