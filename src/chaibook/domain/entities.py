"""Domain model entities for chaibook.

These are pure data classes representing shop bookkeeping records,
independent of how either storage backend lays them out.
"""

from dataclasses import dataclass
from datetime import datetime, date
from decimal import Decimal
from enum import Enum
from typing import Optional


class PaymentMethod(str, Enum):
    """How money left or entered the till."""

    CASH = "Cash"
    ONLINE = "Online"


class PaymentType(str, Enum):
    """Kind of salary payment."""

    SALARY = "Salary"
    ADVANCE = "Advance"


class StockTransactionType(str, Enum):
    """Direction of a stock movement."""

    PURCHASE = "purchase"
    USE = "use"


class StockAlertType(str, Enum):
    """Read-time stock alert categories."""

    LOW_STOCK = "LOW_STOCK"
    EXPIRING_SOON = "EXPIRING_SOON"


class UsagePeriod(str, Enum):
    """Time windows for usage analytics."""

    TODAY = "today"
    WEEK = "week"
    MONTH = "month"
    OVERALL = "overall"


@dataclass(frozen=True)
class CashFlowEntry:
    """One day's till reconciliation."""

    id: int
    date: date
    opening_cash: Decimal
    cash_sales: Decimal
    online_sales: Decimal
    cash_expenses: Decimal
    online_expenses: Decimal
    total_expenses: Decimal
    closing_cash: Decimal
    daily_sales: Decimal
    daily_profit: Decimal
    expected_closing_cash: Decimal
    notes: Optional[str]
    created_at: datetime
    updated_at: datetime

    @property
    def cash_difference(self) -> Decimal:
        """Counted cash minus the cash the formulas expect."""
        return self.closing_cash - self.expected_closing_cash

    @property
    def cash_mismatch(self) -> bool:
        return self.closing_cash != self.expected_closing_cash


@dataclass(frozen=True)
class Expense:
    """Expense domain entity."""

    id: int
    date: date
    expense_type: str
    amount: Decimal
    payment_method: PaymentMethod
    vendor_name: Optional[str]
    notes: Optional[str]
    is_salary_payment: bool
    employee_id: Optional[int]
    salary_payment_id: Optional[int]
    created_at: datetime


@dataclass(frozen=True)
class Employee:
    """Employee domain entity."""

    id: int
    name: str
    role: str
    monthly_salary: Decimal
    advance_given: Decimal
    is_active: bool
    created_at: datetime


@dataclass(frozen=True)
class SalaryPayment:
    """Salary or advance paid to an employee."""

    id: int
    employee_id: int
    amount: Decimal
    payment_type: PaymentType
    payment_method: PaymentMethod
    month: str
    year: int
    notes: Optional[str]
    created_at: datetime


@dataclass(frozen=True)
class StockItem:
    """Inventory item with running quantities."""

    id: int
    product_name: str
    category: str
    vendor: Optional[str]
    supplier_id: Optional[int]
    unit: str
    opening_stock: Decimal
    purchased_qty: Decimal
    used_sold_qty: Decimal
    closing_stock: Decimal
    purchase_price: Decimal
    selling_price: Decimal
    low_stock_threshold: Decimal
    expiry_date: Optional[date]
    created_at: datetime


@dataclass(frozen=True)
class Supplier:
    """Someone the shop buys stock from."""

    id: int
    name: str
    contact_person: Optional[str]
    phone: Optional[str]
    email: Optional[str]
    address: Optional[str]
    notes: Optional[str]
    is_active: bool
    created_at: datetime
    updated_at: datetime


@dataclass(frozen=True)
class StockTransaction:
    """Append-only stock movement."""

    id: int
    stock_id: int
    transaction_type: StockTransactionType
    quantity: Decimal
    notes: Optional[str]
    created_at: datetime


@dataclass(frozen=True)
class StockAlert:
    """Alert derived from a stock item at read time."""

    stock_id: int
    product_name: str
    alert_type: StockAlertType
    message: str


@dataclass(frozen=True)
class ExpenseTotals:
    """Expense sums for a slice of expenses, split by payment method."""

    cash: Decimal
    online: Decimal

    @property
    def total(self) -> Decimal:
        return self.cash + self.online


@dataclass(frozen=True)
class CashFlowFigures:
    """Derived fields of a daily entry."""

    daily_sales: Decimal
    daily_profit: Decimal
    expected_closing_cash: Decimal


@dataclass(frozen=True)
class ProductUsage:
    """Usage of one product within a period."""

    stock_id: int
    product_name: str
    category: str
    unit: str
    total_used: Decimal
    total_purchased: Decimal
    transaction_count: int
    cost: Decimal


@dataclass(frozen=True)
class ProductUsageSummary:
    """Usage of one product across standard windows."""

    stock_id: int
    product_name: str
    category: str
    unit: str
    today_used: Decimal
    week_used: Decimal
    month_used: Decimal
    overall_used: Decimal
    average_daily: Decimal
    total_cost: Decimal
