"""Tests for the ledger arithmetic."""

from datetime import date, datetime, UTC
from decimal import Decimal
from itertools import permutations

import pytest

from chaibook.domain.calculations import (
    apply_stock_movement,
    closing_stock,
    derive_cash_flow,
    month_end,
    month_start,
    sum_expenses_by_method,
    week_end,
    week_start,
)
from chaibook.domain.entities import (
    Expense,
    ExpenseTotals,
    PaymentMethod,
    StockTransactionType,
)


def _expense(amount: str, method: PaymentMethod) -> Expense:
    return Expense(
        id=1,
        date=date(2024, 6, 1),
        expense_type="Milk",
        amount=Decimal(amount),
        payment_method=method,
        vendor_name=None,
        notes=None,
        is_salary_payment=False,
        employee_id=None,
        salary_payment_id=None,
        created_at=datetime(2024, 6, 1, tzinfo=UTC),
    )


def test_sum_expenses_by_method_partitions_amounts():
    totals = sum_expenses_by_method(
        [
            _expense("100", PaymentMethod.CASH),
            _expense("25.50", PaymentMethod.ONLINE),
            _expense("10", PaymentMethod.CASH),
        ]
    )
    assert totals.cash == Decimal("110")
    assert totals.online == Decimal("25.50")
    assert totals.total == totals.cash + totals.online


def test_sum_expenses_by_method_empty():
    totals = sum_expenses_by_method([])
    assert totals.total == Decimal("0")


@pytest.mark.parametrize("cash_expenses", ["0", "15", "40"])
def test_derive_cash_flow_reference_day(cash_expenses):
    """Opening 100, sales 50 cash + 30 online, closing 120, expenses 40."""
    cash = Decimal(cash_expenses)
    totals = ExpenseTotals(cash=cash, online=Decimal("40") - cash)

    figures = derive_cash_flow(
        Decimal("100"), Decimal("50"), Decimal("30"), Decimal("120"), totals
    )

    assert figures.daily_sales == Decimal("90")
    assert figures.daily_profit == Decimal("50")
    assert figures.expected_closing_cash == Decimal("150") - cash


def test_closing_stock():
    assert closing_stock(Decimal("10"), Decimal("7"), Decimal("3")) == Decimal("14")


def test_stock_movements_commute():
    """Opening 10, purchase 5, use 3, purchase 2 ends at 14 in any order."""
    movements = [
        (StockTransactionType.PURCHASE, Decimal("5")),
        (StockTransactionType.USE, Decimal("3")),
        (StockTransactionType.PURCHASE, Decimal("2")),
    ]
    for order in permutations(movements):
        purchased, used = Decimal("0"), Decimal("0")
        for transaction_type, quantity in order:
            purchased, used = apply_stock_movement(purchased, used, transaction_type, quantity)
        assert closing_stock(Decimal("10"), purchased, used) == Decimal("14")


def test_week_bounds_start_on_monday():
    saturday = date(2024, 6, 1)
    assert week_start(saturday) == date(2024, 5, 27)
    assert week_end(saturday) == date(2024, 6, 2)
    assert week_start(date(2024, 5, 27)) == date(2024, 5, 27)


def test_month_bounds():
    assert month_start(date(2024, 2, 17)) == date(2024, 2, 1)
    assert month_end(date(2024, 2, 17)) == date(2024, 2, 29)
    assert month_end(date(2024, 12, 31)) == date(2024, 12, 31)
