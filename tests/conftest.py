"""
Shared pytest fixtures — storages, a controllable clock, a scripted AI service
and a FastAPI TestClient wired to them.
"""
from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from app.main import app
from app.schemas import Categorization, ExtractedReceiptData, GeneratedInsight
from app.services import ExtractionError, get_ai_service, get_wallet_service, WalletPassService
from app.storage import MemStorage, SqlStorage, get_storage


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime = datetime(2025, 6, 1, 12, 0, 0)):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class FakeAIService:
    """Stands in for ReceiptAIService with canned answers."""

    def __init__(self):
        self.extracted = ExtractedReceiptData(
            store_name="Fresh Mart",
            transaction_date="2025-05-30",
            total_amount=23.5,
            tax_amount=1.5,
            line_items=[
                {"description": "Milk", "quantity": 1, "price": 3.5},
                {"description": "Headphones", "quantity": 1, "price": 18.5},
            ],
        )
        self.extraction_error = None
        self.categories = {"Milk": "Groceries", "Headphones": "Electronics"}
        self.answer = "You spent the most on groceries."
        self.queries = []
        self.insight_requests = []

    def extract_receipt_data(self, image, mime_type):
        if self.extraction_error:
            raise ExtractionError(self.extraction_error)
        return self.extracted

    def categorize_item(self, description):
        category = self.categories.get(description, "General Merchandise")
        return Categorization(category=category, confidence="0.9")

    def generate_spending_insight(self, spending):
        self.insight_requests.append(spending)
        return GeneratedInsight(insight_text="Groceries are your top category.", insight_type="trend")

    def answer_query(self, message, context=None):
        self.queries.append((message, context))
        return self.answer


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def mem_storage(clock):
    return MemStorage(clock=clock)


@pytest.fixture()
def sql_storage(clock):
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    storage = SqlStorage(engine, clock=clock)
    storage.create_tables()
    yield storage
    engine.dispose()


@pytest.fixture(params=["mem", "sql"])
def storage(request, clock):
    """Runs a test once per storage backend."""
    return request.getfixturevalue(f"{request.param}_storage")


@pytest.fixture()
def fake_ai():
    return FakeAIService()


@pytest.fixture()
def client(mem_storage, fake_ai):
    app.dependency_overrides[get_storage] = lambda: mem_storage
    app.dependency_overrides[get_ai_service] = lambda: fake_ai
    app.dependency_overrides[get_wallet_service] = lambda: WalletPassService()
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
