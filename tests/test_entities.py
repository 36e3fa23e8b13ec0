"""Tests for domain entities."""

import dataclasses
from datetime import date, datetime, UTC
from decimal import Decimal

import pytest

from chaibook.domain.entities import CashFlowEntry, Employee, ExpenseTotals, PaymentMethod


def _entry(closing: str, expected: str) -> CashFlowEntry:
    now = datetime.now(UTC)
    return CashFlowEntry(
        id=1,
        date=date(2024, 6, 1),
        opening_cash=Decimal("500"),
        cash_sales=Decimal("200"),
        online_sales=Decimal("0"),
        cash_expenses=Decimal("100"),
        online_expenses=Decimal("0"),
        total_expenses=Decimal("100"),
        closing_cash=Decimal(closing),
        daily_sales=Decimal("200"),
        daily_profit=Decimal("100"),
        expected_closing_cash=Decimal(expected),
        notes=None,
        created_at=now,
        updated_at=now,
    )


class TestCashFlowEntry:
    """Tests for CashFlowEntry entity."""

    def test_cash_matches(self):
        entry = _entry("600", "600")
        assert entry.cash_difference == Decimal("0")
        assert entry.cash_mismatch is False

    def test_cash_short(self):
        entry = _entry("580", "600")
        assert entry.cash_difference == Decimal("-20")
        assert entry.cash_mismatch is True

    def test_immutability(self):
        """Entities are frozen."""
        entry = _entry("600", "600")
        with pytest.raises(dataclasses.FrozenInstanceError):
            entry.closing_cash = Decimal("0")


def test_expense_totals_sum():
    totals = ExpenseTotals(cash=Decimal("120.50"), online=Decimal("79.50"))
    assert totals.total == Decimal("200.00")


def test_employee_fields():
    employee = Employee(
        id=1,
        name="Ravi",
        role="Helper",
        monthly_salary=Decimal("9000"),
        advance_given=Decimal("0"),
        is_active=True,
        created_at=datetime.now(UTC),
    )
    assert employee.is_active


def test_payment_method_is_string_enum():
    assert PaymentMethod("Cash") is PaymentMethod.CASH
    assert PaymentMethod.ONLINE == "Online"
