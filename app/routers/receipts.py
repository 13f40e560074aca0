"""
Receipt endpoints.

POST /api/receipts/process            — image → extracted data → stored receipt
GET  /api/receipts                    — list a user's receipts (optional search)
GET  /api/receipts/{id}               — get one receipt
POST /api/receipts/{id}/wallet-pass   — build a wallet pass for a receipt
"""
from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile

from app.config import settings
from app.errors import ApiError
from app.schemas import (
    ExtractedReceiptData,
    LineItem,
    ProcessReceiptResponse,
    Receipt,
    ReceiptCreate,
    ReceiptListResponse,
    ReceiptUpdate,
    SpendingCategoryCreate,
    WalletPassEnvelope,
)
from app.services import (
    ExtractionError,
    ReceiptAIService,
    WalletPassData,
    WalletPassService,
    get_ai_service,
    get_wallet_service,
)
from app.storage import Storage, StorageError, get_storage, recover
from app.utils import amount_str, today_iso

logger = logging.getLogger(__name__)
router = APIRouter()


def receipt_from_extraction(data: ExtractedReceiptData, user_id: Optional[int]) -> ReceiptCreate:
    subtotal = data.subtotal
    if subtotal is None and data.total_amount is not None and data.tax_amount is not None:
        subtotal = round(data.total_amount - data.tax_amount, 2)
    return ReceiptCreate(
        user_id=user_id,
        store_name=data.store_name,
        transaction_date=data.transaction_date,
        total_amount=amount_str(data.total_amount),
        tax_amount=amount_str(data.tax_amount),
        subtotal=amount_str(subtotal),
        line_items=[
            LineItem(description=item.description, quantity=item.quantity, price=amount_str(item.price))
            for item in data.line_items
        ],
        status="completed",
    )


def _categorize_items(
    receipt: Receipt,
    data: ExtractedReceiptData,
    storage: Storage,
    ai: ReceiptAIService,
) -> int:
    stored = 0
    for item in data.line_items:
        categorization = ai.categorize_item(item.description)
        try:
            storage.create_spending_category(
                SpendingCategoryCreate(
                    user_id=receipt.user_id,
                    receipt_id=receipt.id,
                    item_description=item.description,
                    category=categorization.category,
                    amount=amount_str(item.price),
                    confidence=categorization.confidence,
                )
            )
            stored += 1
        except StorageError as e:
            logger.warning("Failed to store category for item %r: %s", item.description, e)
    return stored


# ── POST /api/receipts/process ───────────────────────────────────────────
@router.post("/receipts/process", response_model=ProcessReceiptResponse)
def process_receipt(
    image: Optional[UploadFile] = File(None),
    user_id: Optional[int] = Form(None, alias="userId"),
    storage: Storage = Depends(get_storage),
    ai: ReceiptAIService = Depends(get_ai_service),
):
    if image is None:
        raise ApiError(400, "No image file provided")
    content = image.file.read()
    if not content:
        raise ApiError(400, "Uploaded image is empty")
    mime_type = image.content_type or "application/octet-stream"
    user_id = user_id or settings.DEFAULT_USER_ID

    logger.info("Process receipt: file=%s  type=%s  bytes=%d", image.filename, mime_type, len(content))
    try:
        extracted = ai.extract_receipt_data(content, mime_type)
        receipt = storage.create_receipt(receipt_from_extraction(extracted, user_id))
    except (ExtractionError, StorageError) as e:
        raise ApiError.from_exception("Failed to process receipt", e) from e

    stored = _categorize_items(receipt, extracted, storage, ai)
    logger.info("Stored receipt %d with %d categorized items", receipt.id, stored)
    return ProcessReceiptResponse(receipt=receipt, extracted_data=extracted)


# ── GET /api/receipts ────────────────────────────────────────────────────
@router.get("/receipts", response_model=ReceiptListResponse)
def list_receipts(
    user_id: Optional[int] = Query(None, alias="userId"),
    q: Optional[str] = Query(None, description="Match store name or item description"),
    storage: Storage = Depends(get_storage),
):
    user_id = user_id or settings.DEFAULT_USER_ID
    if q and q.strip():
        receipts = recover(lambda: storage.search_receipts(user_id, q.strip()), [])
    else:
        receipts = recover(lambda: storage.get_user_receipts(user_id), [])
    receipts = sorted(receipts, key=lambda r: r.created_at, reverse=True)
    logger.info("Found %d receipts for user %s", len(receipts), user_id)
    return ReceiptListResponse(receipts=receipts)


# ── GET /api/receipts/{receipt_id} ───────────────────────────────────────
@router.get("/receipts/{receipt_id}", response_model=Receipt)
def get_receipt(receipt_id: int, storage: Storage = Depends(get_storage)):
    logger.info("Fetching receipt: %s", receipt_id)
    try:
        receipt = storage.get_receipt(receipt_id)
    except StorageError as e:
        raise ApiError.from_exception("Failed to fetch receipt", e) from e
    if receipt is None:
        logger.warning("Receipt not found: %s", receipt_id)
        raise ApiError(404, "Receipt not found")
    return receipt


# ── POST /api/receipts/{receipt_id}/wallet-pass ──────────────────────────
@router.post("/receipts/{receipt_id}/wallet-pass", response_model=WalletPassEnvelope)
def create_wallet_pass(
    receipt_id: int,
    storage: Storage = Depends(get_storage),
    wallet: WalletPassService = Depends(get_wallet_service),
):
    try:
        receipt = storage.get_receipt(receipt_id)
    except StorageError as e:
        raise ApiError.from_exception("Failed to generate wallet pass", e) from e
    if receipt is None:
        raise ApiError(404, "Receipt not found")
    if not receipt.store_name or not receipt.total_amount:
        raise ApiError(400, "Receipt data incomplete for wallet pass generation")

    wallet_pass = wallet.create_receipt_pass(
        WalletPassData(
            receipt_id=receipt.id,
            store_name=receipt.store_name,
            transaction_date=receipt.transaction_date or today_iso(),
            total_amount=receipt.total_amount,
            tax_amount=receipt.tax_amount,
            subtotal=receipt.subtotal,
            line_items=receipt.line_items,
            deep_link_url=wallet.deep_link(receipt.id),
        )
    )
    try:
        storage.update_receipt(
            receipt_id,
            ReceiptUpdate(
                wallet_pass_id=wallet_pass.pass_id,
                wallet_pass_url=wallet_pass.add_to_wallet_url,
            ),
        )
    except StorageError as e:
        raise ApiError.from_exception("Failed to generate wallet pass", e) from e
    logger.info("Attached wallet pass %s to receipt %d", wallet_pass.pass_id, receipt_id)
    return WalletPassEnvelope(wallet_pass=wallet_pass)
