"""
In-process storage backend.

Each record type lives in its own arena: a dict keyed by an auto-incrementing
integer handle starting at 1. Records are handed out as copies so callers
cannot mutate stored state behind the backend's back.
"""
from __future__ import annotations

import itertools
import logging
from datetime import datetime
from typing import Callable, Generic, Iterator, Optional, TypeVar

from pydantic import BaseModel

from app.schemas import (
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
from app.storage.base import Storage
from app.utils import utcnow

logger = logging.getLogger(__name__)

R = TypeVar("R", bound=BaseModel)


class Arena(Generic[R]):
    """Insertion-ordered records keyed by integer handle."""

    def __init__(self) -> None:
        self._records: dict[int, R] = {}
        self._ids = itertools.count(1)

    def next_id(self) -> int:
        return next(self._ids)

    def put(self, record_id: int, record: R) -> R:
        self._records[record_id] = record
        return record.model_copy(deep=True)

    def get(self, record_id: int) -> Optional[R]:
        record = self._records.get(record_id)
        return record.model_copy(deep=True) if record is not None else None

    def __iter__(self) -> Iterator[R]:
        for record in list(self._records.values()):
            yield record.model_copy(deep=True)

    def __len__(self) -> int:
        return len(self._records)


class MemStorage(Storage):

    def __init__(self, clock: Callable[[], datetime] = utcnow):
        super().__init__(clock)
        self.users: Arena[User] = Arena()
        self.receipts: Arena[Receipt] = Arena()
        self.spending_categories: Arena[SpendingCategory] = Arena()
        self.insights: Arena[Insight] = Arena()

    # ── users ────────────────────────────────────────────────────────────
    def get_user(self, user_id: int) -> Optional[User]:
        return self.users.get(user_id)

    def get_user_by_username(self, username: str) -> Optional[User]:
        return next((u for u in self.users if u.username == username), None)

    def create_user(self, data: UserCreate) -> User:
        user_id = self.users.next_id()
        return self.users.put(user_id, User(id=user_id, **data.model_dump()))

    # ── receipts ─────────────────────────────────────────────────────────
    def create_receipt(self, data: ReceiptCreate) -> Receipt:
        receipt_id = self.receipts.next_id()
        receipt = Receipt(id=receipt_id, created_at=self.clock(), **data.model_dump())
        logger.debug("Stored receipt %d (%s)", receipt_id, receipt.store_name)
        return self.receipts.put(receipt_id, receipt)

    def get_receipt(self, receipt_id: int) -> Optional[Receipt]:
        return self.receipts.get(receipt_id)

    def update_receipt(self, receipt_id: int, updates: ReceiptUpdate) -> Optional[Receipt]:
        existing = self.receipts.get(receipt_id)
        if existing is None:
            return None
        changes = updates.model_dump(exclude_unset=True)
        updated = Receipt.model_validate({**existing.model_dump(), **changes})
        return self.receipts.put(receipt_id, updated)

    def get_user_receipts(self, user_id: int) -> list[Receipt]:
        return [r for r in self.receipts if r.user_id == user_id]

    def get_all_receipts(self) -> list[Receipt]:
        return list(self.receipts)

    # ── spending categories ──────────────────────────────────────────────
    def create_spending_category(self, data: SpendingCategoryCreate) -> SpendingCategory:
        category_id = self.spending_categories.next_id()
        record = SpendingCategory(id=category_id, created_at=self.clock(), **data.model_dump())
        return self.spending_categories.put(category_id, record)

    def get_spending_categories(self, user_id: Optional[int] = None) -> list[SpendingCategory]:
        if user_id is None:
            return list(self.spending_categories)
        return [c for c in self.spending_categories if c.user_id == user_id]

    # ── insights ─────────────────────────────────────────────────────────
    def create_insight(self, data: InsightCreate) -> Insight:
        insight_id = self.insights.next_id()
        now = self.clock()
        insight = Insight(id=insight_id, created_at=now, updated_at=now, **data.model_dump())
        return self.insights.put(insight_id, insight)

    def get_user_insights(self, user_id: int) -> list[Insight]:
        return [i for i in self.insights if i.user_id == user_id]

    def update_insight(self, insight_id: int, updates: InsightUpdate) -> Optional[Insight]:
        existing = self.insights.get(insight_id)
        if existing is None:
            return None
        changes = updates.model_dump(exclude_unset=True)
        updated = Insight.model_validate(
            {**existing.model_dump(), **changes, "updated_at": self.clock()}
        )
        return self.insights.put(insight_id, updated)

    def get_active_insights(self, user_id: int) -> list[Insight]:
        return [i for i in self.insights if i.user_id == user_id and i.is_active]
