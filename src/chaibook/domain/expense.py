"""Expense domain service."""

from collections import defaultdict
from datetime import date, datetime, UTC
from decimal import Decimal
from typing import Any, Callable, Optional

from chaibook.config.logging import get_logger
from chaibook.database.base import Database
from chaibook.domain import cache as tags
from chaibook.domain.cache import QueryCache, cached, invalidate
from chaibook.domain.calculations import (
    local_date,
    month_end,
    month_start,
    sum_expenses_by_method,
    week_end,
    week_start,
)
from chaibook.domain.cash_flow import CashFlowService
from chaibook.domain.employee import EmployeeService
from chaibook.domain.entities import Expense, PaymentMethod
from chaibook.domain.errors import (
    NotFoundError,
    ValidationError,
    expense_not_found,
    must_be_positive,
)

logger = get_logger(__name__)


class ExpenseService:
    """Service for managing expenses and keeping daily totals in step."""

    def __init__(
        self,
        db: Database,
        cash_flow: Optional[CashFlowService] = None,
        employees: Optional[EmployeeService] = None,
        cache: Optional[QueryCache] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """Initialize expense service.

        Args:
            db: Database instance
            cash_flow: Cash flow service used to refresh daily aggregates
            employees: Employee service that reverses salary payments
            cache: Optional shared query cache to invalidate on writes
            clock: Returns the current UTC time; defaults to the system clock
        """
        self.db = db
        self.cache = cache
        self.clock = clock or (lambda: datetime.now(UTC))
        self.cash_flow = cash_flow or CashFlowService(db, cache=cache, clock=self.clock)
        self.employees = employees or EmployeeService(
            db, cash_flow=self.cash_flow, cache=cache, clock=self.clock
        )

    def add_expense(
        self,
        date: date,
        expense_type: str,
        amount: Decimal,
        payment_method: PaymentMethod,
        vendor_name: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> int:
        """Record an expense and refresh that day's totals.

        Args:
            date: Day the money was spent
            expense_type: Free-form type (e.g. "Milk", "Rent")
            amount: Amount spent
            payment_method: Cash or Online
            vendor_name: Optional vendor
            notes: Optional notes

        Returns:
            Expense ID

        Raises:
            ValidationError: If the amount is not positive or the type is blank
        """
        if amount <= 0:
            raise ValidationError(must_be_positive("Amount"))
        if not expense_type or not expense_type.strip():
            raise ValidationError("Expense type cannot be empty")

        expense_id = self.db.create_expense(
            date=date,
            expense_type=expense_type.strip(),
            amount=amount,
            payment_method=PaymentMethod(payment_method),
            vendor_name=vendor_name or None,
            notes=notes or None,
            created_at=self.clock(),
        )
        logger.info(
            "expense_added",
            expense_id=expense_id,
            date=date.isoformat(),
            amount=str(amount),
            payment_method=PaymentMethod(payment_method).value,
        )
        self.cash_flow.recompute_expenses(date)
        invalidate(self.cache, tags.EXPENSE_TAGS)
        return expense_id

    def get_expense(self, expense_id: int) -> Optional[Expense]:
        """Get expense by ID."""
        return self.db.get_expense(expense_id)

    def require_expense(self, expense_id: int) -> Expense:
        """Get expense by ID or raise NotFoundError."""
        expense = self.db.get_expense(expense_id)
        if expense is None:
            raise NotFoundError(expense_not_found(expense_id))
        return expense

    def update_expense(
        self,
        expense_id: int,
        date: Optional[date] = None,
        expense_type: Optional[str] = None,
        amount: Optional[Decimal] = None,
        payment_method: Optional[PaymentMethod] = None,
        vendor_name: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> None:
        """Update expense fields and refresh every affected day.

        Raises:
            NotFoundError: If the expense does not exist
            ValidationError: If the amount is not positive, or a money field of a
                salary expense is edited
        """
        expense = self.require_expense(expense_id)

        fields: dict[str, Any] = {}
        if date is not None:
            fields["date"] = date
        if expense_type is not None:
            if not expense_type.strip():
                raise ValidationError("Expense type cannot be empty")
            fields["expense_type"] = expense_type.strip()
        if amount is not None:
            if amount <= 0:
                raise ValidationError(must_be_positive("Amount"))
            fields["amount"] = amount
        if payment_method is not None:
            fields["payment_method"] = PaymentMethod(payment_method)
        if vendor_name is not None:
            fields["vendor_name"] = vendor_name or None
        if notes is not None:
            fields["notes"] = notes or None

        if not fields:
            return

        if expense.is_salary_payment and {"date", "amount", "payment_method"} & set(fields):
            raise ValidationError(
                f"Expense {expense_id} is a salary payment; delete it and pay again instead"
            )

        self.db.update_expense(expense_id, **fields)
        self.cash_flow.recompute_expenses(expense.date)
        new_date = fields.get("date")
        if new_date is not None and new_date != expense.date:
            self.cash_flow.recompute_expenses(new_date)

        logger.info("expense_updated", expense_id=expense_id, fields=sorted(fields))
        invalidate(self.cache, tags.EXPENSE_TAGS)

    def delete_expense(self, expense_id: int) -> None:
        """Delete an expense and refresh its day's totals.

        A salary expense first removes its salary payment and reverses any
        advance it added. If that payment cannot be found the expense is
        deleted anyway.

        Raises:
            NotFoundError: If the expense does not exist
        """
        expense = self.require_expense(expense_id)

        if expense.is_salary_payment and expense.employee_id is not None:
            self.employees.reverse_salary_expense(expense)

        self.db.delete_expense(expense_id)
        logger.info("expense_deleted", expense_id=expense_id, date=expense.date.isoformat())
        self.cash_flow.recompute_expenses(expense.date)
        invalidate(self.cache, tags.SALARY_TAGS if expense.is_salary_payment else tags.EXPENSE_TAGS)

    def list_expenses(
        self, start_date: Optional[date] = None, end_date: Optional[date] = None
    ) -> list[Expense]:
        """List expenses, newest first."""
        return cached(
            self.cache,
            (tags.EXPENSES, start_date, end_date),
            lambda: self.db.list_expenses(start_date=start_date, end_date=end_date),
        )

    def get_expense_stats(self, today: Optional[date] = None) -> dict[str, Any]:
        """Expense totals for today, this week, this month and overall.

        Each window is a dict with total, cash and online sums. ``by_type`` is
        a list of (expense_type, total) pairs, largest first.
        """
        today = today or local_date(self.clock())
        return cached(
            self.cache,
            (tags.EXPENSE_STATS, today),
            lambda: self._build_expense_stats(today),
        )

    def _build_expense_stats(self, today: date) -> dict[str, Any]:
        expenses = self.db.list_expenses()
        first_of_week = week_start(today)
        first_of_month = month_start(today)

        def window(items: list[Expense]) -> dict[str, Decimal]:
            totals = sum_expenses_by_method(items)
            return {"total": totals.total, "cash": totals.cash, "online": totals.online}

        by_type: dict[str, Decimal] = defaultdict(Decimal)
        for expense in expenses:
            by_type[expense.expense_type] += expense.amount

        return {
            "today": window([e for e in expenses if e.date == today]),
            "weekly": window([e for e in expenses if first_of_week <= e.date <= week_end(today)]),
            "monthly": window([e for e in expenses if first_of_month <= e.date <= month_end(today)]),
            "overall": window(expenses),
            "by_type": sorted(by_type.items(), key=lambda item: (-item[1], item[0])),
        }
