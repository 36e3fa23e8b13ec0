"""Employee and salary payment domain service."""

from datetime import datetime, UTC
from decimal import Decimal
from typing import Callable, Optional

from chaibook.config.logging import get_logger
from chaibook.database.base import Database
from chaibook.domain import cache as tags
from chaibook.domain.cache import QueryCache, cached, invalidate
from chaibook.domain.calculations import ZERO, local_date
from chaibook.domain.cash_flow import CashFlowService
from chaibook.domain.entities import (
    Employee,
    Expense,
    PaymentMethod,
    PaymentType,
    SalaryPayment,
)
from chaibook.domain.errors import (
    ConflictError,
    NotFoundError,
    ValidationError,
    employee_not_found,
    must_be_positive,
)

logger = get_logger(__name__)

SALARY_EXPENSE_TYPE = "Salary"
SALARY_MATCH_CANDIDATES = 5
DEFAULT_MATCH_WINDOW_MS = 5000


class EmployeeService:
    """Service for employees, salary payments and their shadow expenses."""

    def __init__(
        self,
        db: Database,
        cash_flow: Optional[CashFlowService] = None,
        cache: Optional[QueryCache] = None,
        clock: Optional[Callable[[], datetime]] = None,
        match_window_ms: int = DEFAULT_MATCH_WINDOW_MS,
    ):
        """Initialize employee service.

        Args:
            db: Database instance
            cash_flow: Cash flow service used to refresh daily aggregates
            cache: Optional shared query cache to invalidate on writes
            clock: Returns the current UTC time; defaults to the system clock
            match_window_ms: Max created_at gap when pairing an unlinked
                salary expense with its payment
        """
        self.db = db
        self.cache = cache
        self.clock = clock or (lambda: datetime.now(UTC))
        self.cash_flow = cash_flow or CashFlowService(db, cache=cache, clock=self.clock)
        self.match_window_ms = match_window_ms

    def add_employee(self, name: str, role: str, monthly_salary: Decimal) -> int:
        """Add an active employee.

        Returns:
            Employee ID

        Raises:
            ValidationError: If name is blank or salary is negative
        """
        if not name or not name.strip():
            raise ValidationError("Employee name cannot be empty")
        if monthly_salary < 0:
            raise ValidationError("Monthly salary cannot be negative")
        employee_id = self.db.create_employee(
            name=name.strip(),
            role=role,
            monthly_salary=monthly_salary,
            created_at=self.clock(),
        )
        logger.info("employee_added", employee_id=employee_id, name=name)
        invalidate(self.cache, (tags.EMPLOYEES,))
        return employee_id

    def get_employee(self, employee_id: int) -> Optional[Employee]:
        """Get employee by ID."""
        return self.db.get_employee(employee_id)

    def require_employee(self, employee_id: int) -> Employee:
        """Get employee by ID or raise NotFoundError."""
        employee = self.db.get_employee(employee_id)
        if employee is None:
            raise NotFoundError(employee_not_found(employee_id))
        return employee

    def list_employees(self, include_inactive: bool = True) -> list[Employee]:
        """List employees ordered by name."""
        return cached(
            self.cache,
            (tags.EMPLOYEES, include_inactive),
            lambda: self.db.list_employees(include_inactive=include_inactive),
        )

    def update_employee(
        self,
        employee_id: int,
        name: Optional[str] = None,
        role: Optional[str] = None,
        monthly_salary: Optional[Decimal] = None,
    ) -> None:
        """Update employee details. Fields left as None are unchanged."""
        self.require_employee(employee_id)
        fields = {}
        if name is not None:
            if not name.strip():
                raise ValidationError("Employee name cannot be empty")
            fields["name"] = name.strip()
        if role is not None:
            fields["role"] = role
        if monthly_salary is not None:
            if monthly_salary < 0:
                raise ValidationError("Monthly salary cannot be negative")
            fields["monthly_salary"] = monthly_salary
        if not fields:
            return
        self.db.update_employee(employee_id, **fields)
        invalidate(self.cache, (tags.EMPLOYEES,))

    def deactivate_employee(self, employee_id: int) -> None:
        """Soft-delete an employee. Payment history is kept."""
        if not self.require_employee(employee_id).is_active:
            raise ConflictError(f"Employee {employee_id} is already inactive")
        self.db.update_employee(employee_id, is_active=False)
        logger.info("employee_deactivated", employee_id=employee_id)
        invalidate(self.cache, (tags.EMPLOYEES,))

    def reactivate_employee(self, employee_id: int) -> None:
        """Undo a soft delete."""
        if self.require_employee(employee_id).is_active:
            raise ConflictError(f"Employee {employee_id} is already active")
        self.db.update_employee(employee_id, is_active=True)
        logger.info("employee_reactivated", employee_id=employee_id)
        invalidate(self.cache, (tags.EMPLOYEES,))

    def list_salary_payments(
        self,
        employee_id: Optional[int] = None,
        month: Optional[str] = None,
        year: Optional[int] = None,
    ) -> list[SalaryPayment]:
        """List salary payments, newest first."""
        return cached(
            self.cache,
            (tags.SALARY_PAYMENTS, employee_id, month, year),
            lambda: self.db.list_salary_payments(
                employee_id=employee_id, month=month, year=year
            ),
        )

    def pay_salary(
        self,
        employee_id: int,
        amount: Decimal,
        payment_type: PaymentType,
        payment_method: PaymentMethod,
        month: str,
        year: int,
        notes: Optional[str] = None,
    ) -> tuple[int, int]:
        """Record a salary or advance payment and its shadow expense.

        The payment, the expense, today's cash flow refresh and the advance
        balance are separate writes. A failure part way leaves earlier steps
        in place.

        Args:
            employee_id: Employee being paid
            amount: Amount paid
            payment_type: Salary or Advance
            payment_method: Cash or Online
            month: Month the payment relates to (e.g. "June")
            year: Year the payment relates to
            notes: Optional notes kept on the payment

        Returns:
            Tuple of (salary payment ID, expense ID)

        Raises:
            NotFoundError: If the employee does not exist
            ValidationError: If the amount is not positive or the employee is inactive
        """
        employee = self.require_employee(employee_id)
        if not employee.is_active:
            raise ValidationError(f"Employee {employee_id} is inactive")
        if amount <= 0:
            raise ValidationError(must_be_positive("Amount"))

        payment_type = PaymentType(payment_type)
        payment_method = PaymentMethod(payment_method)
        now = self.clock()
        today = local_date(now)

        payment_id = self.db.create_salary_payment(
            employee_id=employee_id,
            amount=amount,
            payment_type=payment_type,
            payment_method=payment_method,
            month=month,
            year=year,
            notes=notes,
            created_at=now,
        )
        expense_id = self.db.create_expense(
            date=today,
            expense_type=SALARY_EXPENSE_TYPE,
            amount=amount,
            payment_method=payment_method,
            notes=f"{payment_type.value} - {month} {year}",
            is_salary_payment=True,
            employee_id=employee_id,
            salary_payment_id=payment_id,
            created_at=now,
        )
        self.cash_flow.recompute_expenses(today)

        if payment_type == PaymentType.ADVANCE:
            current = self.require_employee(employee_id)
            self.db.update_employee(
                employee_id, advance_given=current.advance_given + amount
            )

        logger.info(
            "salary_paid",
            employee_id=employee_id,
            payment_id=payment_id,
            expense_id=expense_id,
            payment_type=payment_type.value,
            amount=str(amount),
        )
        invalidate(self.cache, tags.SALARY_TAGS)
        return payment_id, expense_id

    def find_payment_for_expense(self, expense: Expense) -> Optional[SalaryPayment]:
        """Find the salary payment a shadow expense stands for.

        Uses the expense's salary_payment_id when present. Expenses recorded
        without that link are paired with the most recent payments of the same
        employee and amount whose created_at lies within the match window.
        Payments already linked to another expense are never chosen.
        """
        if expense.salary_payment_id is not None:
            payment = self.db.get_salary_payment(expense.salary_payment_id)
            if payment is not None:
                return payment

        if expense.employee_id is None:
            return None

        candidates = self.db.list_salary_payments(
            employee_id=expense.employee_id,
            amount=expense.amount,
            limit=SALARY_MATCH_CANDIDATES,
        )
        if not candidates:
            return None

        linked = {
            e.salary_payment_id
            for e in self.db.list_expenses()
            if e.salary_payment_id is not None and e.id != expense.id
        }
        for payment in candidates:
            if payment.id in linked:
                continue
            gap_ms = abs((expense.created_at - payment.created_at).total_seconds()) * 1000
            if gap_ms < self.match_window_ms:
                return payment
        return None

    def reverse_salary_expense(self, expense: Expense) -> Optional[SalaryPayment]:
        """Delete the payment behind a shadow expense and undo its advance.

        Does not delete the expense itself. When no payment matches, nothing
        is changed and None is returned; the payment (if any) stays orphaned.

        Returns:
            The deleted salary payment, or None if none matched
        """
        payment = self.find_payment_for_expense(expense)
        if payment is None:
            logger.warning(
                "salary_cascade_unmatched",
                expense_id=expense.id,
                employee_id=expense.employee_id,
                amount=str(expense.amount),
            )
            return None

        self.db.delete_salary_payment(payment.id)

        if payment.payment_type == PaymentType.ADVANCE:
            employee = self.db.get_employee(payment.employee_id)
            if employee is not None:
                new_advance = max(ZERO, employee.advance_given - payment.amount)
                self.db.update_employee(payment.employee_id, advance_given=new_advance)

        logger.info(
            "salary_payment_reversed",
            payment_id=payment.id,
            expense_id=expense.id,
            payment_type=payment.payment_type.value,
        )
        invalidate(self.cache, (tags.EMPLOYEES, tags.SALARY_PAYMENTS))
        return payment
