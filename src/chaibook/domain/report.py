"""Report export domain service."""

import csv
from datetime import date
from typing import Optional, TextIO

from chaibook.config.logging import get_logger
from chaibook.database.base import Database

logger = get_logger(__name__)

CASH_FLOW_COLUMNS = (
    "date",
    "opening_cash",
    "cash_sales",
    "online_sales",
    "cash_expenses",
    "online_expenses",
    "total_expenses",
    "closing_cash",
    "expected_closing_cash",
    "cash_difference",
    "daily_sales",
    "daily_profit",
    "notes",
)


class ReportService:
    """Service for exporting daily entries."""

    def __init__(self, db: Database):
        """Initialize report service.

        Args:
            db: Database instance
        """
        self.db = db

    def export_cash_flow_csv(
        self,
        start_date: Optional[date],
        end_date: Optional[date],
        stream: TextIO,
    ) -> int:
        """Write daily entries in a date range as CSV, oldest first.

        Args:
            start_date: Optional first day (inclusive)
            end_date: Optional last day (inclusive)
            stream: Text stream to write to

        Returns:
            Number of data rows written
        """
        entries = self.db.list_cash_flows(start_date=start_date, end_date=end_date)
        entries.sort(key=lambda e: e.date)

        writer = csv.writer(stream)
        writer.writerow(CASH_FLOW_COLUMNS)
        for entry in entries:
            writer.writerow(
                [
                    entry.date.isoformat(),
                    entry.opening_cash,
                    entry.cash_sales,
                    entry.online_sales,
                    entry.cash_expenses,
                    entry.online_expenses,
                    entry.total_expenses,
                    entry.closing_cash,
                    entry.expected_closing_cash,
                    entry.cash_difference,
                    entry.daily_sales,
                    entry.daily_profit,
                    entry.notes or "",
                ]
            )

        logger.info(
            "cash_flow_exported",
            start_date=start_date.isoformat() if start_date else None,
            end_date=end_date.isoformat() if end_date else None,
            rows=len(entries),
        )
        return len(entries)
