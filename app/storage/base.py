"""
Storage contract shared by the in-memory and SQL backends.

Backends report three distinct outcomes: ``None`` for a record that does not
exist, an empty list for "no data", and :class:`StorageError` when the
backend itself failed. Services decide where a failure may be collapsed into
a default (see :func:`recover`).
"""
from __future__ import annotations

import abc
import logging
from datetime import datetime, timedelta
from typing import Callable, Iterable, Optional, TypeVar

from app.schemas import (
    CategoryTotal,
    Insight,
    InsightCreate,
    InsightUpdate,
    Receipt,
    ReceiptCreate,
    ReceiptUpdate,
    SpendingCategory,
    SpendingCategoryCreate,
    User,
    UserCreate,
)
from app.utils import parse_amount

logger = logging.getLogger(__name__)

T = TypeVar("T")

EPOCH = datetime(1970, 1, 1)

# period name -> window length
TIME_WINDOWS: dict[str, timedelta] = {
    "last_week": timedelta(days=7),
    "last_month": timedelta(days=30),
    "last_year": timedelta(days=365),
}


class StorageError(Exception):
    """A storage backend failed to complete an operation."""

    def __init__(self, operation: str, cause: Optional[BaseException] = None):
        self.operation = operation
        self.cause = cause
        message = f"{operation} failed"
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message)


def recover(call: Callable[[], T], default: T) -> T:
    """Run a storage call, returning ``default`` if the backend failed."""
    try:
        return call()
    except StorageError as e:
        logger.warning("Falling back to default after storage failure: %s", e)
        return default


def time_window_cutoff(time_period: Optional[str], now: datetime) -> datetime:
    """Earliest ``created_at`` included for a period; unknown/absent means all time."""
    window = TIME_WINDOWS.get(time_period or "")
    if window is None:
        return EPOCH
    return now - window


def aggregate_by_category(records: Iterable[SpendingCategory]) -> list[CategoryTotal]:
    """Fold category records into one total per distinct category."""
    totals: dict[str, CategoryTotal] = {}
    for record in records:
        entry = totals.setdefault(record.category, CategoryTotal(category=record.category))
        entry.total += parse_amount(record.amount)
        entry.count += 1
    return list(totals.values())


def matches_search(receipt: Receipt, term: str) -> bool:
    needle = term.lower()
    if receipt.store_name and needle in receipt.store_name.lower():
        return True
    return any(needle in (item.description or "").lower() for item in receipt.line_items)


class Storage(abc.ABC):
    """CRUD plus grouping queries over users, receipts, categories and insights."""

    def __init__(self, clock: Callable[[], datetime]):
        self.clock = clock

    # ── users ────────────────────────────────────────────────────────────
    @abc.abstractmethod
    def get_user(self, user_id: int) -> Optional[User]: ...

    @abc.abstractmethod
    def get_user_by_username(self, username: str) -> Optional[User]: ...

    @abc.abstractmethod
    def create_user(self, data: UserCreate) -> User: ...

    # ── receipts ─────────────────────────────────────────────────────────
    @abc.abstractmethod
    def create_receipt(self, data: ReceiptCreate) -> Receipt: ...

    @abc.abstractmethod
    def get_receipt(self, receipt_id: int) -> Optional[Receipt]: ...

    @abc.abstractmethod
    def update_receipt(self, receipt_id: int, updates: ReceiptUpdate) -> Optional[Receipt]: ...

    @abc.abstractmethod
    def get_user_receipts(self, user_id: int) -> list[Receipt]: ...

    @abc.abstractmethod
    def get_all_receipts(self) -> list[Receipt]: ...

    def get_receipts_by_date_range(
        self, user_id: int, start: datetime, end: datetime
    ) -> list[Receipt]:
        """Receipts created within ``[start, end]``, newest first."""
        receipts = [r for r in self.get_user_receipts(user_id) if start <= r.created_at <= end]
        return sorted(receipts, key=lambda r: r.created_at, reverse=True)

    def search_receipts(self, user_id: int, term: str) -> list[Receipt]:
        """Case-insensitive match on store name or any line-item description."""
        return [r for r in self.get_user_receipts(user_id) if matches_search(r, term)]

    # ── spending categories ──────────────────────────────────────────────
    @abc.abstractmethod
    def create_spending_category(self, data: SpendingCategoryCreate) -> SpendingCategory: ...

    @abc.abstractmethod
    def get_spending_categories(self, user_id: Optional[int] = None) -> list[SpendingCategory]: ...

    def get_spending_by_category(
        self,
        user_id: int,
        category: Optional[str] = None,
        time_period: Optional[str] = None,
    ) -> list[CategoryTotal]:
        cutoff = time_window_cutoff(time_period, self.clock())
        records = [
            c for c in self.get_spending_categories(user_id)
            if c.created_at is not None and c.created_at >= cutoff
        ]
        if category:
            records = [c for c in records if c.category == category]
        return aggregate_by_category(records)

    # ── insights ─────────────────────────────────────────────────────────
    @abc.abstractmethod
    def create_insight(self, data: InsightCreate) -> Insight: ...

    @abc.abstractmethod
    def get_user_insights(self, user_id: int) -> list[Insight]: ...

    @abc.abstractmethod
    def update_insight(self, insight_id: int, updates: InsightUpdate) -> Optional[Insight]: ...

    @abc.abstractmethod
    def get_active_insights(self, user_id: int) -> list[Insight]: ...
