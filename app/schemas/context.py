"""
Context snapshots handed to the assistant model as JSON.
"""
from __future__ import annotations

from typing import Optional

from pydantic import Field

from app.schemas.base import ApiModel, CategoryTotal, LineItem


class TopCategory(ApiModel):
    category: str
    count: int = 0
    total_amount: float = 0.0


class ContextSummary(ApiModel):
    total_receipts: int = 0
    total_spent_30_days: str = Field("0.00", alias="totalSpent30Days")
    average_transaction_amount: str = "0.00"
    frequent_stores: list[str] = Field(default_factory=list)
    top_categories: list[TopCategory] = Field(default_factory=list)


class RecentReceipt(ApiModel):
    id: int
    store_name: Optional[str] = None
    total_amount: Optional[str] = None
    transaction_date: Optional[str] = None
    item_count: int = 0
    line_items: list[LineItem] = Field(default_factory=list)


class SpendingPatterns(ApiModel):
    weekly: list[CategoryTotal] = Field(default_factory=list)
    monthly: list[CategoryTotal] = Field(default_factory=list)
    yearly: list[CategoryTotal] = Field(default_factory=list)


class RecentPurchase(ApiModel):
    item: str
    store: str
    date: Optional[str] = None
    price: str = "0"


class InsightPreview(ApiModel):
    type: str
    text: str


class InsightSummary(ApiModel):
    total: int = 0
    active: int = 0
    recent: list[InsightPreview] = Field(default_factory=list)


class Preferences(ApiModel):
    currency: str
    timezone: str


class UserContext(ApiModel):
    user_id: int
    summary: ContextSummary
    recent_receipts: list[RecentReceipt] = Field(default_factory=list)
    spending_patterns: SpendingPatterns = Field(default_factory=SpendingPatterns)
    recent_purchases: list[RecentPurchase] = Field(default_factory=list)
    insights: InsightSummary = Field(default_factory=InsightSummary)
    preferences: Preferences


class DegradedUserContext(ApiModel):
    """Returned instead of a full snapshot when storage is unavailable."""
    user_id: int
    error: str
    summary: ContextSummary = Field(default_factory=ContextSummary)


class ReceiptSnapshot(ApiModel):
    id: int
    store_name: Optional[str] = None
    transaction_date: Optional[str] = None
    total_amount: Optional[str] = None
    tax_amount: Optional[str] = None
    subtotal: Optional[str] = None
    line_items: list[LineItem] = Field(default_factory=list)
    status: str


class CategorizedItem(ApiModel):
    item: str
    category: str
    amount: str
    confidence: Optional[str] = None


class RelatedReceipt(ApiModel):
    id: int
    date: Optional[str] = None
    amount: Optional[str] = None
    item_count: int = 0


class PurchaseHistory(ApiModel):
    times_visited_store: int = 1
    total_spent_at_store: str = "0.00"


class ReceiptContext(ApiModel):
    receipt: ReceiptSnapshot
    categories: list[CategorizedItem] = Field(default_factory=list)
    related_receipts: list[RelatedReceipt] = Field(default_factory=list)
    purchase_history: PurchaseHistory = Field(default_factory=PurchaseHistory)
