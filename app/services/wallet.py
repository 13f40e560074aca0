"""
Wallet pass builder.

Builds the generic-pass payload for a receipt and returns a mock pass id and
save URL. No pass class is registered and nothing is signed or issued.
"""
from __future__ import annotations

import logging
import secrets
import string
import time
from typing import Optional

from pydantic import BaseModel, Field

from app.config import Settings, settings
from app.schemas import LineItem, WalletPassResponse

logger = logging.getLogger(__name__)

SAVE_URL = "https://pay.google.com/gp/v/save/{pass_id}"
MAX_PASS_ITEMS = 5

_ID_ALPHABET = string.ascii_lowercase + string.digits


class WalletPassData(BaseModel):
    receipt_id: int
    store_name: str
    transaction_date: str
    total_amount: str
    tax_amount: Optional[str] = None
    subtotal: Optional[str] = None
    line_items: list[LineItem] = Field(default_factory=list)
    deep_link_url: str


def format_line_items(line_items: list[LineItem], limit: int = MAX_PASS_ITEMS) -> list[str]:
    """One line per item, capped at ``limit`` with an overflow notice."""
    lines = [
        f"{item.description} ({item.quantity:g}x) - {item.price}"
        for item in line_items[:limit]
    ]
    if len(line_items) > limit:
        lines.append(f"... and {len(line_items) - limit} more items")
    return lines


def new_pass_id() -> str:
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(9))
    return f"receipt_{int(time.time() * 1000)}_{suffix}"


class WalletPassService:

    def __init__(self, config: Settings = settings):
        self.config = config

    def deep_link(self, receipt_id: int) -> str:
        return f"{self.config.APP_URL.rstrip('/')}/receipt/{receipt_id}/chat"

    def build_pass_object(self, data: WalletPassData, pass_id: str) -> dict:
        issuer = self.config.WALLET_ISSUER_ID
        text_modules = [
            {"id": "date", "header": "Date", "body": data.transaction_date},
            {"id": "total", "header": "Total", "body": data.total_amount},
        ]
        if data.tax_amount:
            text_modules.append({"id": "tax", "header": "Tax", "body": data.tax_amount})
        if data.subtotal:
            text_modules.append({"id": "subtotal", "header": "Subtotal", "body": data.subtotal})
        items = format_line_items(data.line_items)
        if items:
            text_modules.append({"id": "items", "header": "Items", "body": "\n".join(items)})

        return {
            "id": f"{issuer}.{pass_id}",
            "classId": f"{issuer}.receipt_class",
            "state": "ACTIVE",
            "cardTitle": {"defaultValue": {"language": "en-US", "value": "Receipt"}},
            "header": {"defaultValue": {"language": "en-US", "value": data.store_name}},
            "subheader": {"defaultValue": {"language": "en-US", "value": data.transaction_date}},
            "textModulesData": text_modules,
            "barcode": {
                "type": "QR_CODE",
                "value": data.deep_link_url,
                "alternateText": f"Receipt #{data.receipt_id}",
            },
            "linksModuleData": {
                "uris": [{"uri": data.deep_link_url, "description": "Ask about this receipt"}]
            },
        }

    def create_receipt_pass(self, data: WalletPassData) -> WalletPassResponse:
        pass_id = new_pass_id()
        pass_object = self.build_pass_object(data, pass_id)
        logger.info(
            "Built wallet pass %s for receipt %d (%d text modules)",
            pass_id, data.receipt_id, len(pass_object["textModulesData"]),
        )
        return WalletPassResponse(
            pass_id=pass_id,
            add_to_wallet_url=SAVE_URL.format(pass_id=pass_id),
        )
