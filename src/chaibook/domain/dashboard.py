"""Dashboard statistics domain service."""

from datetime import date, datetime, UTC
from decimal import Decimal
from typing import Any, Callable, Iterable, Optional

from chaibook.database.base import Database
from chaibook.domain import cache as tags
from chaibook.domain.cache import QueryCache, cached
from chaibook.domain.calculations import ZERO, local_date, month_start, week_start
from chaibook.domain.entities import CashFlowEntry


def summarize_entries(entries: Iterable[CashFlowEntry]) -> dict[str, Decimal]:
    """Sum sales, expenses, profit and the sales split over entries."""
    totals = {
        "sales": ZERO,
        "expenses": ZERO,
        "profit": ZERO,
        "cash_sales": ZERO,
        "online_sales": ZERO,
    }
    for entry in entries:
        totals["sales"] += entry.daily_sales
        totals["expenses"] += entry.total_expenses
        totals["profit"] += entry.daily_profit
        totals["cash_sales"] += entry.cash_sales
        totals["online_sales"] += entry.online_sales
    return totals


class DashboardService:
    """Service for the at-a-glance figures of the shop."""

    def __init__(
        self,
        db: Database,
        cache: Optional[QueryCache] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """Initialize dashboard service.

        Args:
            db: Database instance
            cache: Optional shared query cache
            clock: Returns the current UTC time; defaults to the system clock
        """
        self.db = db
        self.cache = cache
        self.clock = clock or (lambda: datetime.now(UTC))

    def get_stats(self, today: Optional[date] = None) -> dict[str, Any]:
        """Today's figures plus weekly, monthly and overall sums.

        Args:
            today: Reference day; defaults to the clock's local date

        Returns:
            Dict with ``today`` (the day's entry figures, or None if the day has
            no entry) and ``weekly``, ``monthly`` and ``overall`` sums as
            produced by summarize_entries. Weeks start on Monday.
        """
        today = today or local_date(self.clock())
        return cached(
            self.cache,
            (tags.DASHBOARD_STATS, today),
            lambda: self._build_stats(today),
        )

    def _build_stats(self, today: date) -> dict[str, Any]:
        entries = self.db.list_cash_flows(end_date=today)
        first_of_week = week_start(today)
        first_of_month = month_start(today)

        today_entry = next((e for e in entries if e.date == today), None)
        today_figures = None
        if today_entry is not None:
            today_figures = {
                "sales": today_entry.daily_sales,
                "expenses": today_entry.total_expenses,
                "profit": today_entry.daily_profit,
                "cash_sales": today_entry.cash_sales,
                "online_sales": today_entry.online_sales,
                "closing_cash": today_entry.closing_cash,
                "expected_closing_cash": today_entry.expected_closing_cash,
                "cash_difference": today_entry.cash_difference,
                "cash_mismatch": today_entry.cash_mismatch,
            }

        return {
            "today": today_figures,
            "weekly": summarize_entries(e for e in entries if e.date >= first_of_week),
            "monthly": summarize_entries(e for e in entries if e.date >= first_of_month),
            "overall": summarize_entries(entries),
        }
