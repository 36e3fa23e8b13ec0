"""Daily cash flow domain service."""

from datetime import date, datetime, UTC
from decimal import Decimal
from typing import Callable, Optional

from chaibook.config.logging import get_logger
from chaibook.database.base import Database
from chaibook.domain import cache as tags
from chaibook.domain.cache import QueryCache, cached, invalidate
from chaibook.domain.calculations import (
    ZERO,
    derive_cash_flow,
    sum_expenses_by_method,
)
from chaibook.domain.entities import CashFlowEntry, ExpenseTotals
from chaibook.domain.errors import NotFoundError, ValidationError, cash_flow_not_found

logger = get_logger(__name__)


class CashFlowService:
    """Service for daily entries and their expense aggregates."""

    def __init__(
        self,
        db: Database,
        cache: Optional[QueryCache] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """Initialize cash flow service.

        Args:
            db: Database instance
            cache: Optional shared query cache to invalidate on writes
            clock: Returns the current UTC time; defaults to the system clock
        """
        self.db = db
        self.cache = cache
        self.clock = clock or (lambda: datetime.now(UTC))

    def expense_totals(self, entry_date: date) -> ExpenseTotals:
        """Sum the expenses recorded on a date, split by payment method."""
        expenses = self.db.list_expenses(start_date=entry_date, end_date=entry_date)
        return sum_expenses_by_method(expenses)

    def recompute_expenses(self, entry_date: date) -> CashFlowEntry:
        """Re-derive a date's expense aggregates from its expense rows.

        Inserts a zero-initialized entry if the date has none yet. Safe to
        repeat: the result depends only on the rows currently stored.

        Args:
            entry_date: Date whose entry should be refreshed

        Returns:
            The refreshed daily entry
        """
        totals = self.expense_totals(entry_date)
        entry = self.db.get_cash_flow(entry_date)

        if entry is None:
            opening_cash = cash_sales = online_sales = closing_cash = ZERO
        else:
            opening_cash = entry.opening_cash
            cash_sales = entry.cash_sales
            online_sales = entry.online_sales
            closing_cash = entry.closing_cash

        figures = derive_cash_flow(
            opening_cash, cash_sales, online_sales, closing_cash, totals
        )
        fields = {
            "cash_expenses": totals.cash,
            "online_expenses": totals.online,
            "total_expenses": totals.total,
            "daily_sales": figures.daily_sales,
            "daily_profit": figures.daily_profit,
            "expected_closing_cash": figures.expected_closing_cash,
        }

        now = self.clock()
        if entry is None:
            self.db.create_cash_flow(entry_date, created_at=now, **fields)
        else:
            self.db.update_cash_flow(entry.id, updated_at=now, **fields)

        logger.info(
            "cash_flow_recomputed",
            date=entry_date.isoformat(),
            cash_expenses=str(totals.cash),
            online_expenses=str(totals.online),
            created=entry is None,
        )
        invalidate(self.cache, tags.CASH_FLOW_TAGS)
        return self.db.get_cash_flow(entry_date)

    def suggest_opening_cash(self, entry_date: date) -> Decimal:
        """Opening cash carried forward from the latest earlier entry's closing cash."""
        previous = self.db.get_previous_cash_flow(entry_date)
        return previous.closing_cash if previous is not None else ZERO

    def save_daily_entry(
        self,
        entry_date: date,
        cash_sales: Decimal,
        online_sales: Decimal,
        closing_cash: Decimal,
        opening_cash: Optional[Decimal] = None,
        notes: Optional[str] = None,
    ) -> CashFlowEntry:
        """Save the user-entered figures for a day and derive the rest.

        Args:
            entry_date: Day being reconciled
            cash_sales: Cash takings
            online_sales: Online takings
            closing_cash: Cash physically counted at close
            opening_cash: Cash at open; carried from the previous entry if None
            notes: Optional notes

        Returns:
            The saved daily entry

        Raises:
            ValidationError: If any amount is negative
        """
        if opening_cash is None:
            opening_cash = self.suggest_opening_cash(entry_date)

        for name, value in (
            ("Opening cash", opening_cash),
            ("Cash sales", cash_sales),
            ("Online sales", online_sales),
            ("Closing cash", closing_cash),
        ):
            if value < 0:
                raise ValidationError(f"{name} cannot be negative")

        totals = self.expense_totals(entry_date)
        figures = derive_cash_flow(
            opening_cash, cash_sales, online_sales, closing_cash, totals
        )
        payload = {
            "opening_cash": opening_cash,
            "cash_sales": cash_sales,
            "online_sales": online_sales,
            "closing_cash": closing_cash,
            "cash_expenses": totals.cash,
            "online_expenses": totals.online,
            "total_expenses": totals.total,
            "daily_sales": figures.daily_sales,
            "daily_profit": figures.daily_profit,
            "expected_closing_cash": figures.expected_closing_cash,
            "notes": notes,
        }

        now = self.clock()
        existing = self.db.get_cash_flow(entry_date)
        if existing is not None:
            self.db.update_cash_flow(existing.id, updated_at=now, **payload)
        else:
            self.db.create_cash_flow(entry_date, created_at=now, **payload)

        entry = self.db.get_cash_flow(entry_date)
        logger.info(
            "daily_entry_saved",
            date=entry_date.isoformat(),
            daily_sales=str(entry.daily_sales),
            cash_mismatch=entry.cash_mismatch,
        )
        invalidate(self.cache, tags.CASH_FLOW_TAGS)
        return entry

    def delete_daily_entry(self, entry_date: date) -> None:
        """Delete a day's entry. The day's expenses are left untouched.

        Raises:
            NotFoundError: If the date has no entry
        """
        if not self.db.delete_cash_flow(entry_date):
            raise NotFoundError(cash_flow_not_found(entry_date))
        logger.info("daily_entry_deleted", date=entry_date.isoformat())
        invalidate(self.cache, tags.CASH_FLOW_TAGS)

    def get_entry(self, entry_date: date) -> Optional[CashFlowEntry]:
        """Get the entry for a date, or None."""
        return cached(
            self.cache,
            (tags.DAILY_CASH_FLOW, entry_date),
            lambda: self.db.get_cash_flow(entry_date),
        )

    def require_entry(self, entry_date: date) -> CashFlowEntry:
        """Get the entry for a date or raise NotFoundError."""
        entry = self.get_entry(entry_date)
        if entry is None:
            raise NotFoundError(cash_flow_not_found(entry_date))
        return entry

    def list_entries(
        self, start_date: Optional[date] = None, end_date: Optional[date] = None
    ) -> list[CashFlowEntry]:
        """List entries in a date range, newest first."""
        return cached(
            self.cache,
            (tags.DAILY_CASH_FLOW, "range", start_date, end_date),
            lambda: self.db.list_cash_flows(start_date=start_date, end_date=end_date),
        )
