"""
HTTP request / response envelopes.
"""
from __future__ import annotations

from typing import Optional

from pydantic import Field

from app.schemas.base import (
    ApiModel,
    CategoryTotal,
    ExtractedReceiptData,
    Insight,
    Receipt,
    SpendingCategory,
)


class ChatRequest(ApiModel):
    message: str = Field(..., min_length=1)
    user_id: Optional[int] = None


class GenerateInsightRequest(ApiModel):
    user_id: Optional[int] = None


class ProcessReceiptResponse(ApiModel):
    success: bool = True
    receipt: Receipt
    extracted_data: ExtractedReceiptData


class WalletPassResponse(ApiModel):
    pass_id: str
    add_to_wallet_url: str


class WalletPassEnvelope(ApiModel):
    success: bool = True
    wallet_pass: WalletPassResponse


class ReceiptListResponse(ApiModel):
    success: bool = True
    receipts: list[Receipt] = Field(default_factory=list)


class SpendingAnalysisResponse(ApiModel):
    success: bool = True
    data: list[CategoryTotal] = Field(default_factory=list)
    time_period: Optional[str] = None
    category: Optional[str] = None


class SpendingCategoriesResponse(ApiModel):
    success: bool = True
    categories: list[SpendingCategory] = Field(default_factory=list)


class ChatResponse(ApiModel):
    success: bool = True
    response: str
    timestamp: str


class ReceiptInfo(ApiModel):
    id: int
    store_name: Optional[str] = None
    date: Optional[str] = None
    total: Optional[str] = None


class ReceiptChatResponse(ChatResponse):
    receipt_info: ReceiptInfo


class InsightsResponse(ApiModel):
    success: bool = True
    insights: list[Insight] = Field(default_factory=list)


class InsightResponse(ApiModel):
    success: bool = True
    insight: Optional[Insight] = None
    message: Optional[str] = None
