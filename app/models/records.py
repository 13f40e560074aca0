"""
SQLAlchemy models for the SQL storage backend.
"""
from sqlalchemy import Column, String, JSON, DateTime, Integer, Boolean, ForeignKey

from app.database import Base
from app.utils import utcnow


class UserModel(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String, nullable=False, unique=True)
    password = Column(String, nullable=False)


class ReceiptModel(Base):
    __tablename__ = "receipts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), index=True)
    store_name = Column(String)
    transaction_date = Column(String)  # YYYY-MM-DD
    total_amount = Column(String)
    tax_amount = Column(String)
    subtotal = Column(String)
    line_items = Column(JSON, nullable=False, default=list)
    wallet_pass_id = Column(String)
    wallet_pass_url = Column(String)
    status = Column(String, nullable=False, default="processing")  # processing, completed, failed
    created_at = Column(DateTime, default=utcnow, nullable=False, index=True)


class SpendingCategoryModel(Base):
    __tablename__ = "spending_categories"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), index=True)
    receipt_id = Column(Integer, ForeignKey("receipts.id"), index=True)
    item_description = Column(String, nullable=False)
    category = Column(String, nullable=False)  # Groceries, Electronics, ...
    amount = Column(String, nullable=False)
    confidence = Column(String)  # model confidence score
    created_at = Column(DateTime, default=utcnow, nullable=False, index=True)


class InsightModel(Base):
    __tablename__ = "insights"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), index=True)
    insight_text = Column(String, nullable=False)
    insight_type = Column(String, nullable=False)  # trend, savings, alert, general
    wallet_pass_id = Column(String)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)
