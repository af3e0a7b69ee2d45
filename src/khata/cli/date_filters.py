"""CLI helpers for date parsing and date range resolution."""

from datetime import date

import click

from khata.utils.date_parser import get_date_range, parse_date

PERIOD_OPTIONS = ("this-month", "this-year", "this-week", "last-month", "last-year", "last-week")


def parse_cli_date(ctx: click.Context, value: str | None, label: str = "date") -> date | None:
    """Parse an optional date option, or exit with a CLI error."""
    if value is None:
        return None
    try:
        return parse_date(value)
    except ValueError as e:
        click.echo(f"Error: Invalid {label}: {e}", err=True)
        ctx.exit(1)


def resolve_cli_date_range(
    ctx,
    *,
    start_date: str | None,
    end_date: str | None,
    period: str | None = None,
    default_range: tuple[date, date] | None = None,
) -> tuple[date | None, date | None]:
    """Resolve CLI date range from a period option or explicit dates."""
    if period is not None and (start_date or end_date):
        click.echo(
            "Error: --period cannot be combined with --start-date or --end-date.",
            err=True,
        )
        ctx.exit(1)

    if period is not None:
        return get_date_range(period)

    start = parse_cli_date(ctx, start_date, "start date")
    end = parse_cli_date(ctx, end_date, "end date")

    if start is None and end is None and default_range is not None:
        start, end = default_range

    return start, end


def period_option(func):
    """Add a --period option accepting the named date ranges."""
    return click.option(
        "--period",
        type=click.Choice(PERIOD_OPTIONS, case_sensitive=False),
        help="Named period instead of explicit dates",
    )(func)
