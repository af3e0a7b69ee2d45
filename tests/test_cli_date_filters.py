"""Tests for CLI date filter helper."""

from datetime import date

import click
import pytest

from khata.cli.date_filters import resolve_cli_date_range
from khata.utils.date_parser import get_date_range


def _ctx() -> click.Context:
    return click.Context(click.Command("test"))


def test_resolve_cli_date_range_rejects_period_with_start_end(capsys):
    with pytest.raises(click.exceptions.Exit) as excinfo:
        resolve_cli_date_range(
            _ctx(),
            start_date="2024-01-01",
            end_date=None,
            period="this-month",
        )

    assert excinfo.value.exit_code == 1
    err = capsys.readouterr().err
    assert "cannot be combined" in err


def test_resolve_cli_date_range_returns_period_range():
    expected_start, expected_end = get_date_range("this-month")
    start, end = resolve_cli_date_range(
        _ctx(),
        start_date=None,
        end_date=None,
        period="this-month",
    )

    assert start == expected_start
    assert end == expected_end


def test_resolve_cli_date_range_parses_explicit_dates():
    start, end = resolve_cli_date_range(
        _ctx(),
        start_date="2024-01-01",
        end_date="2024-01-31",
    )

    assert start == date(2024, 1, 1)
    assert end == date(2024, 1, 31)


def test_resolve_cli_date_range_rejects_invalid_date(capsys):
    with pytest.raises(click.exceptions.Exit) as excinfo:
        resolve_cli_date_range(_ctx(), start_date="not-a-date", end_date=None)

    assert excinfo.value.exit_code == 1
    assert "Invalid start date" in capsys.readouterr().err


def test_resolve_cli_date_range_uses_default_range():
    default = (date(2024, 3, 1), date(2024, 3, 31))

    assert resolve_cli_date_range(
        _ctx(), start_date=None, end_date=None, default_range=default
    ) == default


def test_resolve_cli_date_range_open_ended():
    assert resolve_cli_date_range(_ctx(), start_date=None, end_date=None) == (None, None)
