"""
Canonical records for the receipt assistant.

Storage implementations, services and routers all exchange these Pydantic v2
models. On the wire they serialize with camelCase aliases (``storeName``,
``lineItems``, ...) which is what the mobile and web clients read.
"""
from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional, get_args

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from app.utils import today_iso, utcnow

ReceiptStatus = Literal["processing", "completed", "failed"]
InsightType = Literal["trend", "savings", "alert", "general"]

INSIGHT_TYPES = get_args(InsightType)


class ApiModel(BaseModel):
    """Base for records exposed over HTTP with camelCase keys."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# ---------------------------------------------------------------------------
# Primitives
# ---------------------------------------------------------------------------

class LineItem(ApiModel):
    """One purchased item on a receipt."""
    description: str
    quantity: float = 1
    price: str = Field("0", description="Line total as a numeric string")

    @field_validator("price", mode="before")
    @classmethod
    def _price_as_str(cls, v):
        return "0" if v is None else str(v)


class CategoryTotal(BaseModel):
    """Aggregated spending for one category."""
    category: str
    total: float = 0.0
    count: int = 0


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------

class UserCreate(ApiModel):
    username: str
    password: str


class User(UserCreate):
    id: int


# ---------------------------------------------------------------------------
# Receipts
# ---------------------------------------------------------------------------

class ReceiptCreate(ApiModel):
    user_id: Optional[int] = None
    store_name: Optional[str] = None
    transaction_date: Optional[str] = None
    total_amount: Optional[str] = None
    tax_amount: Optional[str] = None
    subtotal: Optional[str] = None
    line_items: list[LineItem] = Field(default_factory=list)
    wallet_pass_id: Optional[str] = None
    wallet_pass_url: Optional[str] = None
    status: ReceiptStatus = "processing"

    @field_validator("line_items", mode="before")
    @classmethod
    def _none_is_empty(cls, v):
        return [] if v is None else v


class ReceiptUpdate(ApiModel):
    """Partial receipt update; only fields that were set are applied."""
    user_id: Optional[int] = None
    store_name: Optional[str] = None
    transaction_date: Optional[str] = None
    total_amount: Optional[str] = None
    tax_amount: Optional[str] = None
    subtotal: Optional[str] = None
    line_items: Optional[list[LineItem]] = None
    wallet_pass_id: Optional[str] = None
    wallet_pass_url: Optional[str] = None
    status: Optional[ReceiptStatus] = None

    @field_validator("line_items", "status")
    @classmethod
    def _not_null(cls, v):
        if v is None:
            raise ValueError("may be omitted but not null")
        return v


class Receipt(ReceiptCreate):
    id: int
    created_at: datetime = Field(default_factory=utcnow)


# ---------------------------------------------------------------------------
# Spending categories
# ---------------------------------------------------------------------------

class SpendingCategoryCreate(ApiModel):
    user_id: Optional[int] = None
    receipt_id: Optional[int] = None
    item_description: str
    category: str
    amount: str
    confidence: Optional[str] = None


class SpendingCategory(SpendingCategoryCreate):
    id: int
    created_at: datetime = Field(default_factory=utcnow)


# ---------------------------------------------------------------------------
# Insights
# ---------------------------------------------------------------------------

class InsightCreate(ApiModel):
    user_id: Optional[int] = None
    insight_text: str
    insight_type: InsightType
    wallet_pass_id: Optional[str] = None
    is_active: bool = True


class InsightUpdate(ApiModel):
    insight_text: Optional[str] = None
    insight_type: Optional[InsightType] = None
    wallet_pass_id: Optional[str] = None
    is_active: Optional[bool] = None

    @field_validator("insight_text", "insight_type", "is_active")
    @classmethod
    def _not_null(cls, v):
        if v is None:
            raise ValueError("may be omitted but not null")
        return v


class Insight(InsightCreate):
    id: int
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


# ---------------------------------------------------------------------------
# AI payloads
# ---------------------------------------------------------------------------

class ExtractedLineItem(BaseModel):
    description: str
    quantity: float = 1
    price: float = 0

    @field_validator("description", mode="before")
    @classmethod
    def _unnamed_item(cls, v):
        if v is None or not str(v).strip():
            return "Unknown item"
        return v

    @field_validator("quantity", "price", mode="before")
    @classmethod
    def _null_is_default(cls, v, info):
        if v is None:
            return 1 if info.field_name == "quantity" else 0
        return v


class ExtractedReceiptData(BaseModel):
    """Structured fields the model reads off a receipt image."""
    store_name: Optional[str] = None
    transaction_date: Optional[str] = Field(None, validate_default=True)
    total_amount: Optional[float] = None
    tax_amount: Optional[float] = None
    subtotal: Optional[float] = None
    line_items: list[ExtractedLineItem] = Field(default_factory=list)

    @field_validator("transaction_date", mode="after")
    @classmethod
    def _default_today(cls, v):
        return v or today_iso()

    @field_validator("line_items", mode="before")
    @classmethod
    def _none_is_empty(cls, v):
        return [] if v is None else v


class Categorization(BaseModel):
    category: str
    confidence: str


class GeneratedInsight(BaseModel):
    insight_text: str
    insight_type: InsightType
