"""Abstract storage capability interface."""

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Callable, Optional

# Import entities directly to avoid circular import through domain/__init__.py
from chaibook.domain.entities import (
    CashFlowEntry,
    Employee,
    Expense,
    PaymentMethod,
    PaymentType,
    SalaryPayment,
    StockItem,
    StockTransaction,
    StockTransactionType,
    Supplier,
)

# Collection names used for change subscriptions
CASH_FLOW = "daily_cash_flow"
EXPENSES = "expenses"
EMPLOYEES = "employees"
SALARY_PAYMENTS = "salary_payments"
STOCK = "stock"
STOCK_TRANSACTIONS = "stock_transactions"
SUPPLIERS = "suppliers"

COLLECTIONS = (
    CASH_FLOW,
    EXPENSES,
    EMPLOYEES,
    SALARY_PAYMENTS,
    STOCK,
    STOCK_TRANSACTIONS,
    SUPPLIERS,
)

# Fields accepted by the partial-update methods
CASH_FLOW_FIELDS = frozenset(
    {
        "opening_cash",
        "cash_sales",
        "online_sales",
        "cash_expenses",
        "online_expenses",
        "total_expenses",
        "closing_cash",
        "daily_sales",
        "daily_profit",
        "expected_closing_cash",
        "notes",
    }
)
EXPENSE_FIELDS = frozenset(
    {"date", "expense_type", "amount", "payment_method", "vendor_name", "notes"}
)
EMPLOYEE_FIELDS = frozenset(
    {"name", "role", "monthly_salary", "advance_given", "is_active"}
)
STOCK_FIELDS = frozenset(
    {
        "product_name",
        "category",
        "vendor",
        "supplier_id",
        "unit",
        "opening_stock",
        "purchased_qty",
        "used_sold_qty",
        "closing_stock",
        "purchase_price",
        "selling_price",
        "low_stock_threshold",
        "expiry_date",
    }
)
SUPPLIER_FIELDS = frozenset(
    {"name", "contact_person", "phone", "email", "address", "notes", "is_active"}
)

ChangeCallback = Callable[[str, str, int], None]


def check_fields(fields: dict[str, Any], allowed: frozenset[str]) -> None:
    """Reject partial updates naming unknown fields."""
    unknown = set(fields) - allowed
    if unknown:
        raise ValueError(f"Unknown fields: {', '.join(sorted(unknown))}")


class Database(ABC):
    """Storage capability interface for chaibook.

    Implementations provide typed insert, partial update, delete, point and
    range queries per record family, an all-or-nothing ``transaction()`` and a
    change feed through ``subscribe()``.
    """

    def __init__(self) -> None:
        self._subscribers: dict[str, list[ChangeCallback]] = {}
        self._pending_events: Optional[list[tuple[str, str, int]]] = None

    # Change feed
    def subscribe(self, collection: str, callback: ChangeCallback) -> Callable[[], None]:
        """Call callback(collection, action, record_id) after each committed change.

        Returns a function that removes the subscription.
        """
        if collection not in COLLECTIONS:
            raise ValueError(f"Unknown collection '{collection}'")
        self._subscribers.setdefault(collection, []).append(callback)

        def unsubscribe() -> None:
            callbacks = self._subscribers.get(collection, [])
            if callback in callbacks:
                callbacks.remove(callback)

        return unsubscribe

    def _publish(self, collection: str, action: str, record_id: int) -> None:
        """Deliver a change now, or hold it until the open transaction commits."""
        if self._pending_events is not None:
            self._pending_events.append((collection, action, record_id))
            return
        for callback in list(self._subscribers.get(collection, [])):
            callback(collection, action, record_id)

    def _hold_events(self) -> None:
        self._pending_events = []

    def _release_events(self) -> None:
        events, self._pending_events = self._pending_events or [], None
        for collection, action, record_id in events:
            self._publish(collection, action, record_id)

    def _drop_events(self) -> None:
        self._pending_events = None

    @abstractmethod
    def connect(self) -> None:
        """Connect to the database."""
        pass

    @abstractmethod
    def disconnect(self) -> None:
        """Disconnect from the database."""
        pass

    @abstractmethod
    def initialize_schema(self) -> None:
        """Initialize database schema (create tables or collections)."""
        pass

    @property
    @abstractmethod
    def supports_transactions(self) -> bool:
        """Whether transaction() gives an all-or-nothing guarantee."""
        pass

    @abstractmethod
    def transaction(self) -> AbstractContextManager[None]:
        """Group writes so they all apply or none do.

        Nested calls join the outermost transaction.
        """
        pass

    # Daily cash flow operations
    @abstractmethod
    def get_cash_flow(self, entry_date: date) -> Optional[CashFlowEntry]:
        """Get the daily entry for a date."""
        pass

    @abstractmethod
    def get_previous_cash_flow(self, entry_date: date) -> Optional[CashFlowEntry]:
        """Get the latest daily entry strictly before a date."""
        pass

    @abstractmethod
    def list_cash_flows(
        self, start_date: Optional[date] = None, end_date: Optional[date] = None
    ) -> list[CashFlowEntry]:
        """List daily entries in a date range, newest first."""
        pass

    @abstractmethod
    def create_cash_flow(
        self, entry_date: date, created_at: Optional[datetime] = None, **fields: Any
    ) -> int:
        """Create a daily entry. Missing money fields default to zero. Returns entry ID."""
        pass

    @abstractmethod
    def update_cash_flow(
        self, entry_id: int, updated_at: Optional[datetime] = None, **fields: Any
    ) -> None:
        """Partially update a daily entry."""
        pass

    @abstractmethod
    def delete_cash_flow(self, entry_date: date) -> bool:
        """Delete the daily entry for a date. Returns False if there was none."""
        pass

    # Expense operations
    @abstractmethod
    def create_expense(
        self,
        date: date,
        expense_type: str,
        amount: Decimal,
        payment_method: PaymentMethod,
        vendor_name: Optional[str] = None,
        notes: Optional[str] = None,
        is_salary_payment: bool = False,
        employee_id: Optional[int] = None,
        salary_payment_id: Optional[int] = None,
        created_at: Optional[datetime] = None,
    ) -> int:
        """Create an expense. Returns expense ID."""
        pass

    @abstractmethod
    def get_expense(self, expense_id: int) -> Optional[Expense]:
        """Get expense by ID."""
        pass

    @abstractmethod
    def list_expenses(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> list[Expense]:
        """List expenses in a date range, newest first (date, then created_at)."""
        pass

    @abstractmethod
    def update_expense(self, expense_id: int, **fields: Any) -> None:
        """Partially update an expense."""
        pass

    @abstractmethod
    def delete_expense(self, expense_id: int) -> None:
        """Delete an expense."""
        pass

    # Employee operations
    @abstractmethod
    def create_employee(
        self,
        name: str,
        role: str,
        monthly_salary: Decimal,
        created_at: Optional[datetime] = None,
    ) -> int:
        """Create an active employee with no advance. Returns employee ID."""
        pass

    @abstractmethod
    def get_employee(self, employee_id: int) -> Optional[Employee]:
        """Get employee by ID."""
        pass

    @abstractmethod
    def list_employees(self, include_inactive: bool = True) -> list[Employee]:
        """List employees ordered by name."""
        pass

    @abstractmethod
    def update_employee(self, employee_id: int, **fields: Any) -> None:
        """Partially update an employee."""
        pass

    # Salary payment operations
    @abstractmethod
    def create_salary_payment(
        self,
        employee_id: int,
        amount: Decimal,
        payment_type: PaymentType,
        payment_method: PaymentMethod,
        month: str,
        year: int,
        notes: Optional[str] = None,
        created_at: Optional[datetime] = None,
    ) -> int:
        """Create a salary payment. Returns payment ID."""
        pass

    @abstractmethod
    def get_salary_payment(self, payment_id: int) -> Optional[SalaryPayment]:
        """Get salary payment by ID."""
        pass

    @abstractmethod
    def list_salary_payments(
        self,
        employee_id: Optional[int] = None,
        amount: Optional[Decimal] = None,
        month: Optional[str] = None,
        year: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> list[SalaryPayment]:
        """List salary payments matching all given filters, newest first."""
        pass

    @abstractmethod
    def delete_salary_payment(self, payment_id: int) -> None:
        """Delete a salary payment."""
        pass

    # Supplier operations
    @abstractmethod
    def create_supplier(
        self,
        name: str,
        contact_person: Optional[str] = None,
        phone: Optional[str] = None,
        email: Optional[str] = None,
        address: Optional[str] = None,
        notes: Optional[str] = None,
        created_at: Optional[datetime] = None,
    ) -> int:
        """Create an active supplier. Returns supplier ID."""
        pass

    @abstractmethod
    def get_supplier(self, supplier_id: int) -> Optional[Supplier]:
        """Get supplier by ID."""
        pass

    @abstractmethod
    def list_suppliers(self, include_inactive: bool = True) -> list[Supplier]:
        """List suppliers ordered by name."""
        pass

    @abstractmethod
    def update_supplier(
        self, supplier_id: int, updated_at: Optional[datetime] = None, **fields: Any
    ) -> None:
        """Partially update a supplier."""
        pass

    # Stock operations
    @abstractmethod
    def create_stock(
        self,
        product_name: str,
        category: str,
        unit: str,
        opening_stock: Decimal,
        purchase_price: Decimal,
        selling_price: Decimal,
        low_stock_threshold: Decimal,
        vendor: Optional[str] = None,
        expiry_date: Optional[date] = None,
        supplier_id: Optional[int] = None,
        created_at: Optional[datetime] = None,
    ) -> int:
        """Create a stock item with zero movements. Returns stock ID."""
        pass

    @abstractmethod
    def get_stock(self, stock_id: int, for_update: bool = False) -> Optional[StockItem]:
        """Get stock item by ID.

        Args:
            stock_id: Stock item ID
            for_update: Lock the row for the rest of the open transaction
                where the store supports it
        """
        pass

    @abstractmethod
    def list_stock(self, supplier_id: Optional[int] = None) -> list[StockItem]:
        """List stock items ordered by category, then product name.

        Args:
            supplier_id: Only items linked to this supplier
        """
        pass

    @abstractmethod
    def update_stock_fields(self, stock_id: int, **fields: Any) -> None:
        """Partially update a stock item."""
        pass

    @abstractmethod
    def delete_stock(self, stock_id: int) -> None:
        """Delete a stock item."""
        pass

    # Stock transaction operations
    @abstractmethod
    def create_stock_transaction(
        self,
        stock_id: int,
        transaction_type: StockTransactionType,
        quantity: Decimal,
        notes: Optional[str] = None,
        created_at: Optional[datetime] = None,
    ) -> int:
        """Append a stock transaction. Returns transaction ID."""
        pass

    @abstractmethod
    def list_stock_transactions(
        self,
        stock_id: Optional[int] = None,
        transaction_type: Optional[StockTransactionType] = None,
        since: Optional[datetime] = None,
        until: Optional[datetime] = None,
        limit: Optional[int] = None,
    ) -> list[StockTransaction]:
        """List stock transactions matching all given filters, newest first."""
        pass

    @abstractmethod
    def delete_stock_transactions(self, stock_id: int) -> int:
        """Delete every transaction of a stock item. Returns the number removed."""
        pass
