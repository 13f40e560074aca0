"""
SQLAlchemy storage backend.

Every operation runs in its own session. Database errors are logged here and
re-raised as :class:`StorageError`.
"""
from __future__ import annotations

import functools
import logging
from datetime import datetime
from typing import Callable, Optional, TypeVar

from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from app.database import Base, make_session_factory, session_scope
from app.models import InsightModel, ReceiptModel, SpendingCategoryModel, UserModel
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
from app.storage.base import (
    Storage,
    StorageError,
    aggregate_by_category,
    matches_search,
    time_window_cutoff,
)
from app.utils import utcnow

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable)


def _guarded(method: F) -> F:
    """Log database failures and surface them as StorageError."""

    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        try:
            return method(self, *args, **kwargs)
        except SQLAlchemyError as e:
            logger.error("Storage operation %s failed: %s", method.__name__, e)
            raise StorageError(method.__name__, e) from e

    return wrapper  # type: ignore[return-value]


def _columns(row) -> dict:
    return {c.name: getattr(row, c.name) for c in row.__table__.columns}


def _receipt(row: ReceiptModel) -> Receipt:
    return Receipt.model_validate(_columns(row))


def _category(row: SpendingCategoryModel) -> SpendingCategory:
    return SpendingCategory.model_validate(_columns(row))


def _insight(row: InsightModel) -> Insight:
    return Insight.model_validate(_columns(row))


class SqlStorage(Storage):

    def __init__(self, engine: Engine, clock: Callable[[], datetime] = utcnow):
        super().__init__(clock)
        self.engine = engine
        self._sessions = make_session_factory(engine)

    def create_tables(self) -> None:
        Base.metadata.create_all(bind=self.engine)

    # ── users ────────────────────────────────────────────────────────────
    @_guarded
    def get_user(self, user_id: int) -> Optional[User]:
        with session_scope(self._sessions) as db:
            row = db.get(UserModel, user_id)
            return User.model_validate(_columns(row)) if row else None

    @_guarded
    def get_user_by_username(self, username: str) -> Optional[User]:
        with session_scope(self._sessions) as db:
            row = db.query(UserModel).filter(UserModel.username == username).first()
            return User.model_validate(_columns(row)) if row else None

    @_guarded
    def create_user(self, data: UserCreate) -> User:
        with session_scope(self._sessions) as db:
            row = UserModel(username=data.username, password=data.password)
            db.add(row)
            db.flush()
            return User.model_validate(_columns(row))

    # ── receipts ─────────────────────────────────────────────────────────
    @_guarded
    def create_receipt(self, data: ReceiptCreate) -> Receipt:
        values = data.model_dump()
        with session_scope(self._sessions) as db:
            row = ReceiptModel(**values, created_at=self.clock())
            db.add(row)
            db.flush()
            logger.debug("Stored receipt %d (%s)", row.id, row.store_name)
            return _receipt(row)

    @_guarded
    def get_receipt(self, receipt_id: int) -> Optional[Receipt]:
        with session_scope(self._sessions) as db:
            row = db.get(ReceiptModel, receipt_id)
            return _receipt(row) if row else None

    @_guarded
    def update_receipt(self, receipt_id: int, updates: ReceiptUpdate) -> Optional[Receipt]:
        with session_scope(self._sessions) as db:
            row = db.get(ReceiptModel, receipt_id)
            if row is None:
                return None
            for key, value in updates.model_dump(exclude_unset=True).items():
                if key == "line_items" and value is None:
                    value = []
                setattr(row, key, value)
            db.flush()
            return _receipt(row)

    @_guarded
    def get_user_receipts(self, user_id: int) -> list[Receipt]:
        with session_scope(self._sessions) as db:
            rows = (
                db.query(ReceiptModel)
                .filter(ReceiptModel.user_id == user_id)
                .order_by(ReceiptModel.id)
                .all()
            )
            return [_receipt(r) for r in rows]

    @_guarded
    def get_all_receipts(self) -> list[Receipt]:
        with session_scope(self._sessions) as db:
            return [_receipt(r) for r in db.query(ReceiptModel).order_by(ReceiptModel.id).all()]

    @_guarded
    def get_receipts_by_date_range(
        self, user_id: int, start: datetime, end: datetime
    ) -> list[Receipt]:
        with session_scope(self._sessions) as db:
            rows = (
                db.query(ReceiptModel)
                .filter(
                    ReceiptModel.user_id == user_id,
                    ReceiptModel.created_at >= start,
                    ReceiptModel.created_at <= end,
                )
                .order_by(ReceiptModel.created_at.desc())
                .all()
            )
            return [_receipt(r) for r in rows]

    @_guarded
    def search_receipts(self, user_id: int, term: str) -> list[Receipt]:
        # line items are JSON, so match in Python after narrowing by user
        return [r for r in self.get_user_receipts(user_id) if matches_search(r, term)]

    # ── spending categories ──────────────────────────────────────────────
    @_guarded
    def create_spending_category(self, data: SpendingCategoryCreate) -> SpendingCategory:
        with session_scope(self._sessions) as db:
            row = SpendingCategoryModel(**data.model_dump(), created_at=self.clock())
            db.add(row)
            db.flush()
            return _category(row)

    @_guarded
    def get_spending_categories(self, user_id: Optional[int] = None) -> list[SpendingCategory]:
        with session_scope(self._sessions) as db:
            query = db.query(SpendingCategoryModel)
            if user_id is not None:
                query = query.filter(SpendingCategoryModel.user_id == user_id)
            return [_category(r) for r in query.order_by(SpendingCategoryModel.id).all()]

    @_guarded
    def get_spending_by_category(
        self,
        user_id: int,
        category: Optional[str] = None,
        time_period: Optional[str] = None,
    ) -> list[CategoryTotal]:
        cutoff = time_window_cutoff(time_period, self.clock())
        with session_scope(self._sessions) as db:
            query = db.query(SpendingCategoryModel).filter(
                SpendingCategoryModel.user_id == user_id,
                SpendingCategoryModel.created_at >= cutoff,
            )
            if category:
                query = query.filter(SpendingCategoryModel.category == category)
            rows = query.order_by(SpendingCategoryModel.id).all()
            return aggregate_by_category(_category(r) for r in rows)

    # ── insights ─────────────────────────────────────────────────────────
    @_guarded
    def create_insight(self, data: InsightCreate) -> Insight:
        now = self.clock()
        with session_scope(self._sessions) as db:
            row = InsightModel(**data.model_dump(), created_at=now, updated_at=now)
            db.add(row)
            db.flush()
            return _insight(row)

    @_guarded
    def get_user_insights(self, user_id: int) -> list[Insight]:
        with session_scope(self._sessions) as db:
            rows = (
                db.query(InsightModel)
                .filter(InsightModel.user_id == user_id)
                .order_by(InsightModel.id)
                .all()
            )
            return [_insight(r) for r in rows]

    @_guarded
    def update_insight(self, insight_id: int, updates: InsightUpdate) -> Optional[Insight]:
        with session_scope(self._sessions) as db:
            row = db.get(InsightModel, insight_id)
            if row is None:
                return None
            for key, value in updates.model_dump(exclude_unset=True).items():
                setattr(row, key, value)
            row.updated_at = self.clock()
            db.flush()
            return _insight(row)

    @_guarded
    def get_active_insights(self, user_id: int) -> list[Insight]:
        with session_scope(self._sessions) as db:
            rows = (
                db.query(InsightModel)
                .filter(InsightModel.user_id == user_id, InsightModel.is_active.is_(True))
                .order_by(InsightModel.id)
                .all()
            )
            return [_insight(r) for r in rows]
