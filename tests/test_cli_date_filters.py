"""Tests for CLI date and amount option helpers."""

from datetime import date
from decimal import Decimal

import click
import pytest

from chaibook.cli.date_filters import (
    parse_cli_amount,
    parse_cli_date,
    resolve_cli_date_range,
)
from chaibook.utils.date_parser import get_date_range


def _ctx() -> click.Context:
    return click.Context(click.Command("test"))


def test_resolve_cli_date_range_rejects_multiple_periods(capsys):
    with pytest.raises(click.exceptions.Exit) as excinfo:
        resolve_cli_date_range(
            _ctx(),
            start_date=None,
            end_date=None,
            period_flags={"this-week": True, "last-month": True},
        )

    assert excinfo.value.exit_code == 1
    assert "Only one period option" in capsys.readouterr().err


def test_resolve_cli_date_range_rejects_period_with_start_end(capsys):
    with pytest.raises(click.exceptions.Exit) as excinfo:
        resolve_cli_date_range(
            _ctx(),
            start_date="2024-06-01",
            end_date=None,
            period_flags={"this-month": True},
        )

    assert excinfo.value.exit_code == 1
    assert "cannot be combined" in capsys.readouterr().err


def test_resolve_cli_date_range_returns_period_range():
    start, end = resolve_cli_date_range(
        _ctx(),
        start_date=None,
        end_date=None,
        period_flags={"last-week": True},
    )

    assert (start, end) == get_date_range("last-week")


def test_resolve_cli_date_range_parses_explicit_dates():
    start, end = resolve_cli_date_range(
        _ctx(),
        start_date="2024-06-01",
        end_date="2024-06-07",
        period_flags={},
    )

    assert start == date(2024, 6, 1)
    assert end == date(2024, 6, 7)


def test_resolve_cli_date_range_applies_default_range():
    default_range = (date(2024, 6, 1), date(2024, 6, 30))

    assert resolve_cli_date_range(
        _ctx(), start_date=None, end_date=None, period_flags={}, default_range=default_range
    ) == default_range


def test_resolve_cli_date_range_open_ended():
    start, end = resolve_cli_date_range(
        _ctx(), start_date=None, end_date=None, period_flags={"this-week": False}
    )

    assert start is None
    assert end is None


def test_parse_cli_date_reports_label(capsys):
    with pytest.raises(click.exceptions.Exit):
        parse_cli_date(_ctx(), "not a date", label="start date")

    assert "Invalid start date" in capsys.readouterr().err


def test_parse_cli_amount():
    assert parse_cli_amount(_ctx(), "Rs 1,200") == Decimal("1200")

    with pytest.raises(click.exceptions.Exit):
        parse_cli_amount(_ctx(), "twelve", label="cash sales")
