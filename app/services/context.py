"""
Financial context assembled for the assistant.

``get_user_context`` summarizes a user's recent receipts, category spending
and insights; ``get_receipt_context`` focuses on a single receipt and the
user's history at the same store. Both return plain JSON-ready dicts and
never raise on storage failure.
"""
from __future__ import annotations

import logging
from collections import Counter
from datetime import datetime, timedelta
from typing import Any, Iterable, Optional

from app.config import settings
from app.schemas import Receipt, SpendingCategory
from app.schemas.context import (
    CategorizedItem,
    ContextSummary,
    DegradedUserContext,
    InsightPreview,
    InsightSummary,
    Preferences,
    PurchaseHistory,
    ReceiptContext,
    ReceiptSnapshot,
    RecentPurchase,
    RecentReceipt,
    RelatedReceipt,
    SpendingPatterns,
    TopCategory,
    UserContext,
)
from app.storage import Storage, StorageError
from app.utils import format_amount, parse_amount, parse_date

logger = logging.getLogger(__name__)

RECENT_DAYS = 30
TOP_N = 5
RECENT_PURCHASES_LIMIT = 10
PREVIEW_ITEMS = 3
RECENT_INSIGHTS = 3
RELATED_RECEIPTS_LIMIT = 5

RECEIPT_NOT_FOUND = "Receipt not found"


# ---------------------------------------------------------------------------
# Ranking helpers
# ---------------------------------------------------------------------------

def get_frequent_stores(receipts: Iterable[Receipt], limit: int = TOP_N) -> list[str]:
    """Store names by visit count, most frequent first; ties keep first-seen order."""
    counts = Counter(r.store_name for r in receipts if r.store_name)
    return [store for store, _ in counts.most_common(limit)]


def get_top_categories(
    categories: Iterable[SpendingCategory], limit: int = TOP_N
) -> list[TopCategory]:
    """Categories by total amount spent, largest first."""
    stats: dict[str, TopCategory] = {}
    for record in categories:
        entry = stats.setdefault(record.category, TopCategory(category=record.category))
        entry.count += 1
        entry.total_amount += parse_amount(record.amount)
    ranked = sorted(stats.values(), key=lambda s: s.total_amount, reverse=True)[:limit]
    for entry in ranked:
        entry.total_amount = round(entry.total_amount, 2)
    return ranked


def _purchase_date(receipt: Receipt) -> str:
    if receipt.transaction_date:
        return receipt.transaction_date
    return receipt.created_at.isoformat()


def get_recent_purchases(
    receipts: Iterable[Receipt], limit: int = RECENT_PURCHASES_LIMIT
) -> list[RecentPurchase]:
    """Line items across receipts, newest purchase date first."""
    purchases = [
        RecentPurchase(
            item=item.description,
            store=receipt.store_name or "Unknown Store",
            date=_purchase_date(receipt),
            price=item.price or "0",
        )
        for receipt in receipts
        for item in receipt.line_items
    ]
    # unparseable dates sort last
    purchases.sort(key=lambda p: parse_date(p.date) or datetime.min, reverse=True)
    return purchases[:limit]


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------

class ContextService:

    def __init__(self, storage: Storage):
        self.storage = storage

    def get_user_context(self, user_id: int) -> dict[str, Any]:
        """Snapshot of a user's spending for prompting; degraded on storage failure."""
        try:
            context = self._build_user_context(user_id)
        except StorageError as e:
            logger.error("Error getting user context for user %s: %s", user_id, e)
            context = DegradedUserContext(user_id=user_id, error="Unable to load user context")
        return context.model_dump(by_alias=True, mode="json")

    def _build_user_context(self, user_id: int) -> UserContext:
        now = self.storage.clock()
        receipts = self.storage.get_user_receipts(user_id)
        cutoff = now - timedelta(days=RECENT_DAYS)
        recent = [r for r in receipts if r.created_at >= cutoff]

        categories = self.storage.get_spending_categories(user_id)
        patterns = SpendingPatterns(
            weekly=self.storage.get_spending_by_category(user_id, time_period="last_week"),
            monthly=self.storage.get_spending_by_category(user_id, time_period="last_month"),
            yearly=self.storage.get_spending_by_category(user_id, time_period="last_year"),
        )
        insights = self.storage.get_user_insights(user_id)
        active = self.storage.get_active_insights(user_id)

        total_spent = sum(parse_amount(r.total_amount) for r in recent)
        average = total_spent / len(recent) if recent else 0.0

        logger.info(
            "User %s context: %d receipts (%d recent), %d categories, %d active insights",
            user_id, len(receipts), len(recent), len(categories), len(active),
        )
        return UserContext(
            user_id=user_id,
            summary=ContextSummary(
                total_receipts=len(receipts),
                total_spent_30_days=format_amount(total_spent),
                average_transaction_amount=format_amount(average),
                frequent_stores=get_frequent_stores(recent),
                top_categories=get_top_categories(categories),
            ),
            recent_receipts=[
                RecentReceipt(
                    id=r.id,
                    store_name=r.store_name,
                    total_amount=r.total_amount,
                    transaction_date=r.transaction_date,
                    item_count=len(r.line_items),
                    line_items=r.line_items[:PREVIEW_ITEMS],
                )
                for r in recent
            ],
            spending_patterns=patterns,
            recent_purchases=get_recent_purchases(recent),
            insights=InsightSummary(
                total=len(insights),
                active=len(active),
                recent=[
                    InsightPreview(type=i.insight_type, text=i.insight_text)
                    for i in active[:RECENT_INSIGHTS]
                ],
            ),
            preferences=Preferences(currency=settings.CURRENCY, timezone=settings.TIMEZONE),
        )

    def get_receipt_context(
        self, receipt_id: int, user_id: Optional[int] = None
    ) -> dict[str, Any]:
        """Context for chatting about one receipt, or ``{"error": ...}``."""
        try:
            receipt = self.storage.get_receipt(receipt_id)
            if receipt is None:
                return {"error": RECEIPT_NOT_FOUND}

            categories = [
                c for c in self.storage.get_spending_categories(user_id)
                if c.receipt_id == receipt_id
            ]
            user_receipts = self.storage.get_user_receipts(user_id) if user_id else []
        except StorageError as e:
            logger.error("Error getting receipt context for receipt %s: %s", receipt_id, e)
            return {"error": "Unable to load receipt context"}

        same_store = [
            r for r in user_receipts
            if r.store_name == receipt.store_name and r.id != receipt_id
        ]
        spent_at_store = parse_amount(receipt.total_amount) + sum(
            parse_amount(r.total_amount) for r in same_store
        )

        context = ReceiptContext(
            receipt=ReceiptSnapshot(
                id=receipt.id,
                store_name=receipt.store_name,
                transaction_date=receipt.transaction_date,
                total_amount=receipt.total_amount,
                tax_amount=receipt.tax_amount,
                subtotal=receipt.subtotal,
                line_items=receipt.line_items,
                status=receipt.status,
            ),
            categories=[
                CategorizedItem(
                    item=c.item_description,
                    category=c.category,
                    amount=c.amount,
                    confidence=c.confidence,
                )
                for c in categories
            ],
            related_receipts=[
                RelatedReceipt(
                    id=r.id,
                    date=r.transaction_date,
                    amount=r.total_amount,
                    item_count=len(r.line_items),
                )
                for r in same_store[:RELATED_RECEIPTS_LIMIT]
            ],
            purchase_history=PurchaseHistory(
                times_visited_store=len(same_store) + 1,
                total_spent_at_store=format_amount(spent_at_store),
            ),
        )
        return context.model_dump(by_alias=True, mode="json")
