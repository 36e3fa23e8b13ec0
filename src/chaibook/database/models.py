"""SQLAlchemy models for chaibook database."""

from datetime import datetime, UTC
from sqlalchemy import (
    Column,
    Integer,
    String,
    ForeignKey,
    DateTime,
    Date,
    Numeric,
    Boolean,
    create_engine,
)
from sqlalchemy.orm import declarative_base, relationship, sessionmaker, Session

Base = declarative_base()

MONEY = Numeric(12, 2)
QUANTITY = Numeric(12, 3)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class DailyCashFlow(Base):
    """Daily till reconciliation, one row per date."""

    __tablename__ = "daily_cash_flow"

    id = Column(Integer, primary_key=True)
    date = Column(Date, unique=True, nullable=False)
    opening_cash = Column(MONEY, default=0, nullable=False)
    cash_sales = Column(MONEY, default=0, nullable=False)
    online_sales = Column(MONEY, default=0, nullable=False)
    cash_expenses = Column(MONEY, default=0, nullable=False)
    online_expenses = Column(MONEY, default=0, nullable=False)
    total_expenses = Column(MONEY, default=0, nullable=False)
    closing_cash = Column(MONEY, default=0, nullable=False)
    daily_sales = Column(MONEY, default=0, nullable=False)
    daily_profit = Column(MONEY, default=0, nullable=False)
    expected_closing_cash = Column(MONEY, default=0, nullable=False)
    notes = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)


class Employee(Base):
    """Employee model."""

    __tablename__ = "employees"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    role = Column(String, nullable=False)
    monthly_salary = Column(MONEY, nullable=False)
    advance_given = Column(MONEY, default=0, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    # Relationships
    salary_payments = relationship("SalaryPayment", back_populates="employee")


class SalaryPayment(Base):
    """Salary or advance payment model."""

    __tablename__ = "salary_payments"

    id = Column(Integer, primary_key=True)
    employee_id = Column(Integer, ForeignKey("employees.id"), nullable=False)
    amount = Column(MONEY, nullable=False)
    payment_type = Column(String, nullable=False)
    payment_method = Column(String, nullable=False)
    month = Column(String, nullable=False)
    year = Column(Integer, nullable=False)
    notes = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    # Relationships
    employee = relationship("Employee", back_populates="salary_payments")


class Expense(Base):
    """Expense model.

    Expenses reference their date by value, not by foreign key, so deleting a
    daily entry leaves the day's expenses in place.
    """

    __tablename__ = "expenses"

    id = Column(Integer, primary_key=True)
    date = Column(Date, nullable=False, index=True)
    expense_type = Column(String, nullable=False)
    amount = Column(MONEY, nullable=False)
    payment_method = Column(String, nullable=False)
    vendor_name = Column(String, nullable=True)
    notes = Column(String, nullable=True)
    is_salary_payment = Column(Boolean, default=False, nullable=False)
    employee_id = Column(Integer, ForeignKey("employees.id"), nullable=True)
    salary_payment_id = Column(
        Integer, ForeignKey("salary_payments.id", ondelete="SET NULL"), nullable=True
    )
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)


class Supplier(Base):
    """Supplier model. Suppliers are deactivated, never deleted."""

    __tablename__ = "suppliers"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    contact_person = Column(String, nullable=True)
    phone = Column(String, nullable=True)
    email = Column(String, nullable=True)
    address = Column(String, nullable=True)
    notes = Column(String, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    # Relationships
    stock_items = relationship("Stock", back_populates="supplier")


class Stock(Base):
    """Stock item model."""

    __tablename__ = "stock"

    id = Column(Integer, primary_key=True)
    product_name = Column(String, nullable=False)
    category = Column(String, nullable=False)
    vendor = Column(String, nullable=True)
    supplier_id = Column(Integer, ForeignKey("suppliers.id"), nullable=True)
    unit = Column(String, nullable=False)
    opening_stock = Column(QUANTITY, default=0, nullable=False)
    purchased_qty = Column(QUANTITY, default=0, nullable=False)
    used_sold_qty = Column(QUANTITY, default=0, nullable=False)
    closing_stock = Column(QUANTITY, default=0, nullable=False)
    purchase_price = Column(MONEY, nullable=False)
    selling_price = Column(MONEY, nullable=False)
    low_stock_threshold = Column(QUANTITY, default=10, nullable=False)
    expiry_date = Column(Date, nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    # Relationships
    transactions = relationship("StockTransaction", back_populates="stock")
    supplier = relationship("Supplier", back_populates="stock_items")


class StockTransaction(Base):
    """Append-only stock movement model."""

    __tablename__ = "stock_transactions"

    id = Column(Integer, primary_key=True)
    stock_id = Column(Integer, ForeignKey("stock.id"), nullable=False, index=True)
    transaction_type = Column(String, nullable=False)
    quantity = Column(QUANTITY, nullable=False)
    notes = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    # Relationships
    stock = relationship("Stock", back_populates="transactions")


def create_session_factory(database_url: str) -> sessionmaker[Session]:
    """Create a SQLAlchemy session factory."""
    engine = create_engine(database_url, echo=False)
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine)
