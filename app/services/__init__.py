"""
Service layer and the FastAPI dependencies that hand services out.
"""
from fastapi import Depends

from app.services.ai import ExtractionError, ReceiptAIService  # noqa: F401
from app.services.context import ContextService
from app.services.wallet import WalletPassData, WalletPassService  # noqa: F401
from app.storage import Storage, get_storage

_ai_service = None
_wallet_service = None


def get_ai_service() -> ReceiptAIService:
    global _ai_service
    if _ai_service is None:
        _ai_service = ReceiptAIService()
    return _ai_service


def get_wallet_service() -> WalletPassService:
    global _wallet_service
    if _wallet_service is None:
        _wallet_service = WalletPassService()
    return _wallet_service


def get_context_service(storage: Storage = Depends(get_storage)) -> ContextService:
    return ContextService(storage)
