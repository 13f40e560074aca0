"""
Application settings.
"""
from pydantic_settings import BaseSettings
from typing import List


class Settings(BaseSettings):
    # Storage backend: "memory" or "sql"
    STORAGE_BACKEND: str = "memory"
    DATABASE_URL: str = "sqlite:///./data/receipts.db"

    # Environment
    ENVIRONMENT: str = "development"
    DEBUG: bool = False

    # CORS
    CORS_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:5173"]

    # File storage
    DATA_DIR: str = "./data"

    # LLM (OpenAI-compatible endpoint; Gemini by default)
    LLM_API_KEY: str = ""
    LLM_BASE_URL: str = "https://generativelanguage.googleapis.com/v1beta/openai/"
    LLM_MODEL: str = "gemini-2.5-pro"
    LLM_FAST_MODEL: str = "gemini-2.5-flash"
    LLM_TIMEOUT: float = 60.0

    # Wallet pass
    APP_URL: str = "https://raseed.app"
    WALLET_ISSUER_ID: str = "3388000000022"

    # No auth yet: every request acts as this user unless told otherwise
    DEFAULT_USER_ID: int = 1

    # User preferences surfaced to the assistant
    CURRENCY: str = "USD"
    TIMEZONE: str = "America/New_York"

    class Config:
        env_file = ".env"
        case_sensitive = True


settings = Settings()
