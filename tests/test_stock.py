"""Tests for stock service."""

from datetime import date, datetime, timedelta, UTC
from decimal import Decimal
from itertools import permutations

import pytest

from chaibook.domain.entities import StockAlertType, StockTransactionType
from chaibook.domain.errors import NotFoundError, StorageError, ValidationError
from chaibook.domain.stock import StockService

PURCHASE = StockTransactionType.PURCHASE
USE = StockTransactionType.USE


@pytest.fixture
def tea_id(stock_service):
    return stock_service.add_stock(
        product_name="Assam CTC",
        category="Tea",
        unit="kg",
        opening_stock=Decimal("10"),
        purchase_price=Decimal("420"),
        selling_price=Decimal("600"),
        low_stock_threshold=Decimal("2"),
    )


def test_add_stock_starts_at_opening(stock_service, tea_id):
    item = stock_service.get_stock(tea_id)

    assert item.product_name == "Assam CTC"
    assert item.purchased_qty == Decimal("0")
    assert item.used_sold_qty == Decimal("0")
    assert item.closing_stock == Decimal("10")


def test_add_stock_rejects_negative_price(stock_service):
    with pytest.raises(ValidationError, match="Purchase price cannot be negative"):
        stock_service.add_stock("Milk", "Dairy", "litre", Decimal("5"), Decimal("-1"), Decimal("0"))


@pytest.mark.parametrize(
    "order",
    list(permutations([(PURCHASE, "5"), (USE, "3"), (PURCHASE, "2")])),
)
def test_closing_stock_independent_of_order(stock_service, tea_id, order):
    for transaction_type, quantity in order:
        stock_service.update_stock(tea_id, transaction_type, Decimal(quantity))

    item = stock_service.get_stock(tea_id)
    assert item.purchased_qty == Decimal("7")
    assert item.used_sold_qty == Decimal("3")
    assert item.closing_stock == Decimal("14")


def test_update_stock_appends_transaction(stock_service, tea_id, clock):
    stock_service.update_stock(tea_id, PURCHASE, Decimal("5"), notes="weekly order")
    clock.advance(hours=1)
    stock_service.update_stock(tea_id, USE, Decimal("1.5"))

    transactions = stock_service.list_transactions(tea_id)

    assert [t.transaction_type for t in transactions] == [USE, PURCHASE]
    assert transactions[0].quantity == Decimal("1.5")
    assert transactions[1].notes == "weekly order"


def test_list_transactions_limit(stock_service, tea_id, clock):
    for _ in range(12):
        stock_service.update_stock(tea_id, USE, Decimal("0.1"))
        clock.advance(minutes=1)

    assert len(stock_service.list_transactions(tea_id)) == 10
    assert len(stock_service.list_transactions(tea_id, limit=3)) == 3


def test_update_stock_rejects_non_positive_quantity(stock_service, tea_id):
    with pytest.raises(ValidationError):
        stock_service.update_stock(tea_id, USE, Decimal("0"))


def test_update_missing_stock(stock_service):
    with pytest.raises(NotFoundError, match="Stock item 99 not found"):
        stock_service.update_stock(99, PURCHASE, Decimal("1"))


def test_use_may_drive_stock_negative(stock_service, tea_id):
    item = stock_service.update_stock(tea_id, USE, Decimal("12"))
    assert item.closing_stock == Decimal("-2")


def test_failed_log_append_rolls_back_quantities(stock_service, tea_id, any_db, monkeypatch):
    def fail(**kwargs):
        raise StorageError("disk full")

    monkeypatch.setattr(any_db, "create_stock_transaction", fail)

    with pytest.raises(StorageError):
        stock_service.update_stock(tea_id, PURCHASE, Decimal("5"))

    item = any_db.get_stock(tea_id)
    assert item.purchased_qty == Decimal("0")
    assert item.closing_stock == Decimal("10")
    assert any_db.list_stock_transactions(stock_id=tea_id) == []


def test_edit_stock_rederives_closing(stock_service, tea_id):
    stock_service.update_stock(tea_id, USE, Decimal("4"))

    item = stock_service.edit_stock(tea_id, opening_stock=Decimal("20"), vendor="Tea Board")

    assert item.closing_stock == Decimal("16")
    assert item.vendor == "Tea Board"


def test_edit_stock_rejects_running_quantities(stock_service, tea_id):
    with pytest.raises(ValidationError, match="closing_stock"):
        stock_service.edit_stock(tea_id, closing_stock=Decimal("100"))


def test_delete_stock_removes_transactions(stock_service, tea_id, any_db):
    stock_service.update_stock(tea_id, PURCHASE, Decimal("5"))
    stock_service.update_stock(tea_id, USE, Decimal("1"))

    removed = stock_service.delete_stock(tea_id)

    assert removed == 2
    assert stock_service.get_stock(tea_id) is None
    assert any_db.list_stock_transactions(stock_id=tea_id) == []


def test_delete_missing_stock(stock_service):
    with pytest.raises(NotFoundError):
        stock_service.delete_stock(5)


def test_list_stock_ordered_by_category_then_name(stock_service):
    for name, category in (("Samosa", "Snacks"), ("Milk", "Dairy"), ("Biscuit", "Snacks")):
        stock_service.add_stock(name, category, "pcs", Decimal("50"), Decimal("5"), Decimal("10"))

    assert [i.product_name for i in stock_service.list_stock()] == ["Milk", "Biscuit", "Samosa"]


def test_low_stock_alert_at_threshold(stock_service, tea_id):
    today = date(2024, 6, 1)
    assert stock_service.get_alerts(today) == []

    stock_service.update_stock(tea_id, USE, Decimal("8"))
    alerts = stock_service.get_alerts(today)

    assert len(alerts) == 1
    assert alerts[0].alert_type == StockAlertType.LOW_STOCK
    assert alerts[0].stock_id == tea_id


@pytest.mark.parametrize(
    "days_ahead,expected",
    [(-3, True), (0, True), (6, True), (7, False), (30, False)],
)
def test_expiry_alert_window(stock_service, days_ahead, expected):
    today = date(2024, 6, 1)
    stock_service.add_stock(
        "Milk",
        "Dairy",
        "litre",
        Decimal("40"),
        Decimal("56"),
        Decimal("0"),
        expiry_date=today + timedelta(days=days_ahead),
    )

    kinds = [a.alert_type for a in stock_service.get_alerts(today)]

    assert (StockAlertType.EXPIRING_SOON in kinds) is expected


def test_alerts_default_to_local_day(stock_service, clock, local_zone):
    local_zone("IST-5:30")
    clock.set(datetime(2024, 6, 1, 20, 30, tzinfo=UTC))  # 2 June in IST
    stock_service.add_stock(
        "Milk", "Dairy", "litre", Decimal("40"), Decimal("56"), Decimal("0"),
        expiry_date=date(2024, 6, 8),
    )

    kinds = [a.alert_type for a in stock_service.get_alerts()]

    assert StockAlertType.EXPIRING_SOON in kinds


def test_expiry_window_configurable(any_db, clock):
    service = StockService(any_db, clock=clock, expiry_warning_days=14)
    today = date(2024, 6, 1)
    service.add_stock("Paneer", "Dairy", "kg", Decimal("50"), Decimal("300"), Decimal("0"), expiry_date=today + timedelta(days=10))

    assert [a.alert_type for a in service.get_alerts(today)] == [StockAlertType.EXPIRING_SOON]


def test_run_expiry_check_reports_expiring_items_only(stock_service, tea_id):
    today = date(2024, 6, 1)
    stock_service.update_stock(tea_id, USE, Decimal("9"))
    stock_service.add_stock(
        "Milk", "Dairy", "litre", Decimal("40"), Decimal("56"), Decimal("0"), expiry_date=today
    )

    alerts = stock_service.run_expiry_check(today)

    assert len(alerts) == 1
    assert alerts[0].product_name == "Milk"
    assert "expires on 2024-06-01" in alerts[0].message


def test_alerts_refresh_after_movement(stock_service, tea_id):
    today = date(2024, 6, 1)
    stock_service.update_stock(tea_id, USE, Decimal("9"))
    assert len(stock_service.get_alerts(today)) == 1

    stock_service.update_stock(tea_id, PURCHASE, Decimal("10"))
    assert stock_service.get_alerts(today) == []


def test_valuation(stock_service, tea_id):
    stock_service.add_stock("Milk", "Dairy", "litre", Decimal("10"), Decimal("50"), Decimal("60"))

    valuation = stock_service.get_valuation()

    assert valuation["total_purchase_value"] == Decimal("4700")
    assert valuation["total_selling_value"] == Decimal("6600")
    assert valuation["potential_profit"] == Decimal("1900")
    assert valuation["profit_margin"] == Decimal("40.43")
    assert valuation["by_category"]["Tea"]["purchase_value"] == Decimal("4200")
    assert valuation["by_category"]["Dairy"]["items"] == 1


def test_valuation_empty(stock_service):
    valuation = stock_service.get_valuation()
    assert valuation["total_purchase_value"] == Decimal("0")
    assert valuation["profit_margin"] == Decimal("0.00")
