"""
Raseed backend — FastAPI application entry-point.
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.config import settings
from app.errors import register_error_handlers
from app.schemas import UserCreate
from app.storage import Storage, StorageError, get_storage

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s  %(name)-30s  %(levelname)-5s  %(message)s",
)
logger = logging.getLogger(__name__)


def ensure_default_user(storage: Storage) -> None:
    """No auth yet, so every request acts as the default user; make sure it exists."""
    if storage.get_user(settings.DEFAULT_USER_ID) is None:
        user = storage.create_user(UserCreate(username="demo", password="demo"))
        logger.info("Created default user %d", user.id)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: pick the storage backend and seed the placeholder user
    provider = app.dependency_overrides.get(get_storage, get_storage)
    try:
        ensure_default_user(provider())
    except StorageError as e:
        logger.warning("Failed to initialize default user on startup: %s", e)

    yield
    logger.info("Shutting down")


app = FastAPI(
    title="Raseed",
    description="Receipt photo → structured data → categorized spending → assistant",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_error_handlers(app)


@app.get("/")
async def root():
    return {"service": "Raseed", "version": "0.1.0", "status": "running"}


@app.get("/health")
async def health_check():
    return {"status": "healthy"}


# ── Register API routers ─────────────────────────────────────────────────
from app.routers.receipts import router as receipts_router  # noqa: E402
from app.routers.spending import router as spending_router  # noqa: E402
from app.routers.chat import router as chat_router  # noqa: E402
from app.routers.insights import router as insights_router  # noqa: E402

app.include_router(receipts_router, prefix="/api", tags=["Receipts"])
app.include_router(spending_router, prefix="/api", tags=["Spending"])
app.include_router(chat_router, prefix="/api", tags=["Assistant"])
app.include_router(insights_router, prefix="/api", tags=["Insights"])
