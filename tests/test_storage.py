"""
Storage contract tests — every test runs against the in-memory and SQL backends.
"""
from datetime import timedelta

import pytest
from pydantic import ValidationError
from sqlalchemy.exc import OperationalError

from app.schemas import (
    CategoryTotal,
    InsightCreate,
    InsightUpdate,
    LineItem,
    ReceiptCreate,
    ReceiptUpdate,
    SpendingCategoryCreate,
    UserCreate,
)
from app.storage import StorageError, aggregate_by_category, recover, time_window_cutoff
from app.storage.base import EPOCH


def _category(storage, category, amount, user_id=1, receipt_id=None, item="item"):
    return storage.create_spending_category(
        SpendingCategoryCreate(
            user_id=user_id,
            receipt_id=receipt_id,
            item_description=item,
            category=category,
            amount=amount,
        )
    )


def _as_set(totals):
    return {(t.category, round(t.total, 2), t.count) for t in totals}


# =====================================================================
# Pure helpers
# =====================================================================
class TestTimeWindow:
    @pytest.mark.parametrize(
        "period, days",
        [("last_week", 7), ("last_month", 30), ("last_year", 365)],
    )
    def test_known_periods(self, clock, period, days):
        assert time_window_cutoff(period, clock()) == clock() - timedelta(days=days)

    @pytest.mark.parametrize("period", [None, "", "all_time", "yesterday"])
    def test_unknown_period_is_all_time(self, clock, period):
        assert time_window_cutoff(period, clock()) == EPOCH


class TestAggregate:
    def test_non_numeric_amount_counts_as_zero(self, mem_storage):
        records = [
            _category(mem_storage, "Dining", "abc"),
            _category(mem_storage, "Dining", "4.25"),
        ]
        assert aggregate_by_category(records) == [CategoryTotal(category="Dining", total=4.25, count=2)]

    def test_order_independent(self, mem_storage):
        records = [
            _category(mem_storage, "Groceries", "10"),
            _category(mem_storage, "Dining", "20"),
            _category(mem_storage, "Groceries", "5"),
        ]
        assert _as_set(aggregate_by_category(records)) == _as_set(aggregate_by_category(records[::-1]))


# =====================================================================
# Users
# =====================================================================
class TestUsers:
    def test_create_and_lookup(self, storage):
        user = storage.create_user(UserCreate(username="ana", password="pw"))
        assert user.id == 1
        assert storage.get_user(1).username == "ana"
        assert storage.get_user_by_username("ana").id == 1
        assert storage.get_user(99) is None
        assert storage.get_user_by_username("nobody") is None


# =====================================================================
# Receipts
# =====================================================================
class TestReceipts:
    def test_ids_auto_increment(self, storage):
        first = storage.create_receipt(ReceiptCreate(store_name="A"))
        second = storage.create_receipt(ReceiptCreate(store_name="B"))
        assert (first.id, second.id) == (1, 2)

    def test_defaults(self, storage, clock):
        receipt = storage.create_receipt(ReceiptCreate(store_name="A"))
        assert receipt.status == "processing"
        assert receipt.created_at == clock()
        assert receipt.wallet_pass_id is None

    def test_null_line_items_stored_as_empty(self, storage):
        receipt = storage.create_receipt(ReceiptCreate(store_name="A", line_items=None))
        assert receipt.line_items == []
        assert storage.get_receipt(receipt.id).line_items == []

    def test_line_items_round_trip(self, storage):
        items = [LineItem(description="Milk", quantity=2, price="3.50")]
        receipt = storage.create_receipt(ReceiptCreate(store_name="A", line_items=items))
        stored = storage.get_receipt(receipt.id)
        assert stored.line_items[0].description == "Milk"
        assert stored.line_items[0].quantity == 2
        assert stored.line_items[0].price == "3.50"

    def test_get_missing(self, storage):
        assert storage.get_receipt(42) is None

    def test_update_only_touches_given_fields(self, storage):
        receipt = storage.create_receipt(ReceiptCreate(store_name="A", total_amount="9.99"))
        updated = storage.update_receipt(
            receipt.id, ReceiptUpdate(wallet_pass_id="p1", wallet_pass_url="https://x/p1")
        )
        assert updated.wallet_pass_id == "p1"
        assert updated.store_name == "A"
        assert updated.total_amount == "9.99"
        assert storage.get_receipt(receipt.id).wallet_pass_url == "https://x/p1"

    def test_unknown_status_rejected(self):
        with pytest.raises(ValidationError):
            ReceiptCreate(store_name="A", status="archived")
        with pytest.raises(ValidationError):
            ReceiptUpdate(status=None)

    def test_update_missing(self, storage):
        assert storage.update_receipt(7, ReceiptUpdate(status="failed")) is None

    def test_user_receipts_and_all(self, storage):
        storage.create_receipt(ReceiptCreate(user_id=1, store_name="A"))
        storage.create_receipt(ReceiptCreate(user_id=2, store_name="B"))
        storage.create_receipt(ReceiptCreate(user_id=1, store_name="C"))
        assert [r.store_name for r in storage.get_user_receipts(1)] == ["A", "C"]
        assert len(storage.get_all_receipts()) == 3

    def test_date_range(self, storage, clock):
        storage.create_receipt(ReceiptCreate(user_id=1, store_name="old"))
        clock.advance(days=10)
        storage.create_receipt(ReceiptCreate(user_id=1, store_name="mid"))
        clock.advance(days=10)
        storage.create_receipt(ReceiptCreate(user_id=1, store_name="new"))

        found = storage.get_receipts_by_date_range(
            1, clock() - timedelta(days=15), clock()
        )
        assert [r.store_name for r in found] == ["new", "mid"]

    def test_search(self, storage):
        storage.create_receipt(ReceiptCreate(user_id=1, store_name="Fresh Mart"))
        storage.create_receipt(
            ReceiptCreate(
                user_id=1,
                store_name="Corner Shop",
                line_items=[LineItem(description="Fresh Bread", price="2")],
            )
        )
        storage.create_receipt(ReceiptCreate(user_id=1, store_name="Gadgets"))
        names = {r.store_name for r in storage.search_receipts(1, "fresh")}
        assert names == {"Fresh Mart", "Corner Shop"}
        assert storage.search_receipts(2, "fresh") == []


# =====================================================================
# Spending categories
# =====================================================================
class TestSpendingCategories:
    def test_filter_by_user(self, storage):
        _category(storage, "Groceries", "1", user_id=1)
        _category(storage, "Groceries", "1", user_id=2)
        assert len(storage.get_spending_categories(1)) == 1
        assert len(storage.get_spending_categories()) == 2

    def test_grouping_example(self, storage):
        _category(storage, "Groceries", "10")
        _category(storage, "Groceries", "5")
        _category(storage, "Dining", "20")
        result = storage.get_spending_by_category(1)
        assert _as_set(result) == {("Groceries", 15.0, 2), ("Dining", 20.0, 1)}

    def test_other_users_excluded(self, storage):
        _category(storage, "Groceries", "10", user_id=1)
        _category(storage, "Groceries", "99", user_id=2)
        assert _as_set(storage.get_spending_by_category(1)) == {("Groceries", 10.0, 1)}

    def test_category_filter(self, storage):
        _category(storage, "Groceries", "10")
        _category(storage, "Dining", "20")
        result = storage.get_spending_by_category(1, category="Dining")
        assert {t.category for t in result} == {"Dining"}

    def test_unknown_category_filter_is_empty(self, storage):
        _category(storage, "Groceries", "10")
        assert storage.get_spending_by_category(1, category="Travel") == []

    @pytest.mark.parametrize(
        "period, expected",
        [
            ("last_week", {("Groceries", 1.0, 1)}),
            ("last_month", {("Groceries", 1.0, 1), ("Dining", 2.0, 1)}),
            ("last_year", {("Groceries", 1.0, 1), ("Dining", 2.0, 1), ("Travel", 4.0, 1)}),
            (None, {("Groceries", 1.0, 1), ("Dining", 2.0, 1), ("Travel", 4.0, 1), ("Old", 8.0, 1)}),
            ("forever", {("Groceries", 1.0, 1), ("Dining", 2.0, 1), ("Travel", 4.0, 1), ("Old", 8.0, 1)}),
        ],
    )
    def test_time_windows(self, storage, clock, period, expected):
        start = clock()
        clock.now = start - timedelta(days=400)
        _category(storage, "Old", "8")
        clock.now = start - timedelta(days=200)
        _category(storage, "Travel", "4")
        clock.now = start - timedelta(days=20)
        _category(storage, "Dining", "2")
        clock.now = start - timedelta(days=2)
        _category(storage, "Groceries", "1")
        clock.now = start

        assert _as_set(storage.get_spending_by_category(1, time_period=period)) == expected

    def test_cutoff_is_inclusive(self, storage, clock):
        _category(storage, "Groceries", "3")
        clock.advance(days=7)
        assert _as_set(storage.get_spending_by_category(1, time_period="last_week")) == {
            ("Groceries", 3.0, 1)
        }


# =====================================================================
# Insights
# =====================================================================
class TestInsights:
    def test_no_active_insights_is_empty_list(self, storage):
        assert storage.get_active_insights(1) == []

    def test_create_and_deactivate(self, storage, clock):
        insight = storage.create_insight(
            InsightCreate(user_id=1, insight_text="Dining is up", insight_type="trend")
        )
        assert insight.is_active is True
        clock.advance(hours=1)

        updated = storage.update_insight(insight.id, InsightUpdate(is_active=False))
        assert updated.is_active is False
        assert updated.insight_text == "Dining is up"
        assert updated.updated_at == clock()
        assert updated.created_at < updated.updated_at
        assert storage.get_active_insights(1) == []
        assert len(storage.get_user_insights(1)) == 1

    def test_update_missing(self, storage):
        assert storage.update_insight(5, InsightUpdate(is_active=False)) is None

    def test_active_filtered_by_user(self, storage):
        storage.create_insight(InsightCreate(user_id=1, insight_text="a", insight_type="trend"))
        storage.create_insight(InsightCreate(user_id=2, insight_text="b", insight_type="alert"))
        assert [i.insight_text for i in storage.get_active_insights(2)] == ["b"]


# =====================================================================
# Failures
# =====================================================================
class TestSqlFailures:
    def test_database_error_becomes_storage_error(self, sql_storage):
        with sql_storage.engine.begin() as conn:
            conn.exec_driver_sql("DROP TABLE spending_categories")
        with pytest.raises(StorageError) as excinfo:
            sql_storage.get_spending_categories(1)
        assert excinfo.value.operation == "get_spending_categories"
        assert isinstance(excinfo.value.cause, OperationalError)

    def test_recover_returns_default(self, sql_storage):
        with sql_storage.engine.begin() as conn:
            conn.exec_driver_sql("DROP TABLE insights")
        assert recover(lambda: sql_storage.get_active_insights(1), []) == []
