"""Mapper functions to convert stored records into domain entities.

ORM rows come from the SQLAlchemy backend; plain dict documents come from the
document backend. Both paths end in the same frozen entities.
"""

from datetime import datetime, UTC
from decimal import Decimal
from typing import Any, Optional

from chaibook.domain import entities as domain
from chaibook.database.models import (
    DailyCashFlow as ORMDailyCashFlow,
    Employee as ORMEmployee,
    Expense as ORMExpense,
    SalaryPayment as ORMSalaryPayment,
    Stock as ORMStock,
    StockTransaction as ORMStockTransaction,
    Supplier as ORMSupplier,
)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive datetimes (SQLite drops tzinfo on the way back)."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=UTC)


def _dec(value: Any) -> Decimal:
    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def cash_flow_to_domain(row: ORMDailyCashFlow) -> domain.CashFlowEntry:
    """Convert SQLAlchemy DailyCashFlow model to domain CashFlowEntry entity."""
    return domain.CashFlowEntry(
        id=row.id,
        date=row.date,
        opening_cash=_dec(row.opening_cash),
        cash_sales=_dec(row.cash_sales),
        online_sales=_dec(row.online_sales),
        cash_expenses=_dec(row.cash_expenses),
        online_expenses=_dec(row.online_expenses),
        total_expenses=_dec(row.total_expenses),
        closing_cash=_dec(row.closing_cash),
        daily_sales=_dec(row.daily_sales),
        daily_profit=_dec(row.daily_profit),
        expected_closing_cash=_dec(row.expected_closing_cash),
        notes=row.notes,
        created_at=as_utc(row.created_at),
        updated_at=as_utc(row.updated_at),
    )


def expense_to_domain(row: ORMExpense) -> domain.Expense:
    """Convert SQLAlchemy Expense model to domain Expense entity."""
    return domain.Expense(
        id=row.id,
        date=row.date,
        expense_type=row.expense_type,
        amount=_dec(row.amount),
        payment_method=domain.PaymentMethod(row.payment_method),
        vendor_name=row.vendor_name,
        notes=row.notes,
        is_salary_payment=bool(row.is_salary_payment),
        employee_id=row.employee_id,
        salary_payment_id=row.salary_payment_id,
        created_at=as_utc(row.created_at),
    )


def employee_to_domain(row: ORMEmployee) -> domain.Employee:
    """Convert SQLAlchemy Employee model to domain Employee entity."""
    return domain.Employee(
        id=row.id,
        name=row.name,
        role=row.role,
        monthly_salary=_dec(row.monthly_salary),
        advance_given=_dec(row.advance_given),
        is_active=bool(row.is_active),
        created_at=as_utc(row.created_at),
    )


def salary_payment_to_domain(row: ORMSalaryPayment) -> domain.SalaryPayment:
    """Convert SQLAlchemy SalaryPayment model to domain SalaryPayment entity."""
    return domain.SalaryPayment(
        id=row.id,
        employee_id=row.employee_id,
        amount=_dec(row.amount),
        payment_type=domain.PaymentType(row.payment_type),
        payment_method=domain.PaymentMethod(row.payment_method),
        month=row.month,
        year=row.year,
        notes=row.notes,
        created_at=as_utc(row.created_at),
    )


def stock_to_domain(row: ORMStock) -> domain.StockItem:
    """Convert SQLAlchemy Stock model to domain StockItem entity."""
    return domain.StockItem(
        id=row.id,
        product_name=row.product_name,
        category=row.category,
        vendor=row.vendor,
        supplier_id=row.supplier_id,
        unit=row.unit,
        opening_stock=_dec(row.opening_stock),
        purchased_qty=_dec(row.purchased_qty),
        used_sold_qty=_dec(row.used_sold_qty),
        closing_stock=_dec(row.closing_stock),
        purchase_price=_dec(row.purchase_price),
        selling_price=_dec(row.selling_price),
        low_stock_threshold=_dec(row.low_stock_threshold),
        expiry_date=row.expiry_date,
        created_at=as_utc(row.created_at),
    )


def supplier_to_domain(row: ORMSupplier) -> domain.Supplier:
    """Convert SQLAlchemy Supplier model to domain Supplier entity."""
    return domain.Supplier(
        id=row.id,
        name=row.name,
        contact_person=row.contact_person,
        phone=row.phone,
        email=row.email,
        address=row.address,
        notes=row.notes,
        is_active=bool(row.is_active),
        created_at=as_utc(row.created_at),
        updated_at=as_utc(row.updated_at),
    )


def stock_transaction_to_domain(row: ORMStockTransaction) -> domain.StockTransaction:
    """Convert SQLAlchemy StockTransaction model to domain StockTransaction entity."""
    return domain.StockTransaction(
        id=row.id,
        stock_id=row.stock_id,
        transaction_type=domain.StockTransactionType(row.transaction_type),
        quantity=_dec(row.quantity),
        notes=row.notes,
        created_at=as_utc(row.created_at),
    )


# Document mappers
def cash_flow_from_document(doc: dict[str, Any]) -> domain.CashFlowEntry:
    return domain.CashFlowEntry(**doc)


def expense_from_document(doc: dict[str, Any]) -> domain.Expense:
    return domain.Expense(
        **{**doc, "payment_method": domain.PaymentMethod(doc["payment_method"])}
    )


def employee_from_document(doc: dict[str, Any]) -> domain.Employee:
    return domain.Employee(**doc)


def salary_payment_from_document(doc: dict[str, Any]) -> domain.SalaryPayment:
    return domain.SalaryPayment(
        **{
            **doc,
            "payment_type": domain.PaymentType(doc["payment_type"]),
            "payment_method": domain.PaymentMethod(doc["payment_method"]),
        }
    )


def stock_from_document(doc: dict[str, Any]) -> domain.StockItem:
    # Items stored before suppliers existed carry no link
    return domain.StockItem(**{"supplier_id": None, **doc})


def supplier_from_document(doc: dict[str, Any]) -> domain.Supplier:
    return domain.Supplier(**doc)


def stock_transaction_from_document(doc: dict[str, Any]) -> domain.StockTransaction:
    return domain.StockTransaction(
        **{
            **doc,
            "transaction_type": domain.StockTransactionType(doc["transaction_type"]),
        }
    )
