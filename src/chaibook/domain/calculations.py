"""Pure arithmetic behind the ledger's derived fields."""

from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Iterable

from dateutil.relativedelta import relativedelta

from chaibook.domain.entities import (
    CashFlowFigures,
    Expense,
    ExpenseTotals,
    PaymentMethod,
    StockTransactionType,
)

ZERO = Decimal("0")


def sum_expenses_by_method(expenses: Iterable[Expense]) -> ExpenseTotals:
    """Sum expense amounts, partitioned by payment method."""
    cash = ZERO
    online = ZERO
    for expense in expenses:
        if expense.payment_method == PaymentMethod.CASH:
            cash += expense.amount
        elif expense.payment_method == PaymentMethod.ONLINE:
            online += expense.amount
    return ExpenseTotals(cash=cash, online=online)


def derive_cash_flow(
    opening_cash: Decimal,
    cash_sales: Decimal,
    online_sales: Decimal,
    closing_cash: Decimal,
    totals: ExpenseTotals,
) -> CashFlowFigures:
    """Compute the derived fields of a daily entry.

    Sales are inferred from the till: whatever cash is left at close, plus
    online takings, plus what was spent during the day, minus what was in the
    drawer at open.
    """
    daily_sales = closing_cash + online_sales + totals.total - opening_cash
    return CashFlowFigures(
        daily_sales=daily_sales,
        daily_profit=daily_sales - totals.total,
        expected_closing_cash=opening_cash + cash_sales - totals.cash,
    )


def closing_stock(
    opening_stock: Decimal, purchased_qty: Decimal, used_sold_qty: Decimal
) -> Decimal:
    """Running inventory balance."""
    return opening_stock + purchased_qty - used_sold_qty


def apply_stock_movement(
    purchased_qty: Decimal,
    used_sold_qty: Decimal,
    transaction_type: StockTransactionType,
    quantity: Decimal,
) -> tuple[Decimal, Decimal]:
    """Return (purchased_qty, used_sold_qty) after one movement."""
    if transaction_type == StockTransactionType.PURCHASE:
        return purchased_qty + quantity, used_sold_qty
    return purchased_qty, used_sold_qty + quantity


def local_date(moment: datetime) -> date:
    """Calendar day of an aware moment in the machine's local time zone.

    This is the day date.today() reports, so clock-derived days agree with
    dates typed on the command line.
    """
    return moment.astimezone().date()


def week_start(day: date) -> date:
    """Monday of the week containing day."""
    return day - timedelta(days=day.weekday())


def month_start(day: date) -> date:
    return day.replace(day=1)


def week_end(day: date) -> date:
    """Sunday of the week containing day."""
    return week_start(day) + timedelta(days=6)


def month_end(day: date) -> date:
    return month_start(day) + relativedelta(months=1) - timedelta(days=1)
