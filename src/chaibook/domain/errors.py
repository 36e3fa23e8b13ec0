"""Shared domain error messages and error types."""


class DomainError(ValueError):
    """Base class for domain-level errors.

    Subclasses provide semantic categories while preserving ValueError
    compatibility for existing error handling.
    """


class ValidationError(DomainError):
    """Invalid input or failed validation in domain logic."""


class NotFoundError(DomainError):
    """Requested domain entity does not exist."""


class ConflictError(DomainError):
    """Domain conflict, such as uniqueness violations."""


class StorageError(DomainError):
    """The backing store rejected or failed a read or write."""


def expense_not_found(expense_id: int) -> str:
    """Return message for missing expense."""
    return f"Expense {expense_id} not found"


def employee_not_found(employee_id: int) -> str:
    """Return message for missing employee."""
    return f"Employee {employee_id} not found"


def stock_not_found(stock_id: int) -> str:
    """Return message for missing stock item."""
    return f"Stock item {stock_id} not found"


def supplier_not_found(supplier_id: int) -> str:
    return f"Supplier {supplier_id} not found"


def cash_flow_not_found(entry_date) -> str:
    """Return message for a date without a daily entry."""
    return f"No daily entry for {entry_date}"


def must_be_positive(field: str) -> str:
    """Return message for a non-positive amount or quantity."""
    return f"{field} must be greater than zero"
