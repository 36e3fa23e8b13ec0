"""Utility functions for chaibook."""

from chaibook.utils.date_parser import parse_date, get_date_range
from chaibook.utils.amount_parser import parse_amount, format_amount

__all__ = ["parse_date", "get_date_range", "parse_amount", "format_amount"]
