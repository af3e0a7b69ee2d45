"""Report commands."""

import click

from khata.cli.date_filters import parse_cli_date, period_option, resolve_cli_date_range
from khata.cli.error_handling import handle_domain_error
from khata.domain.errors import DomainError
from khata.domain.report import ReportService


@click.group()
def report_group():
    """Summaries, profit and loss, and valuation."""
    pass


def _print_balances(title: str, balances, empty: str) -> None:
    outstanding = [b for b in balances if b.balance != 0]
    if not outstanding:
        click.echo(empty)
        return
    click.echo(f"\n{title}")
    click.echo("-" * 50)
    for b in outstanding:
        click.echo(f"{b.name:30s} {b.balance:>16,.2f}")
    click.echo("-" * 50)
    click.echo(f"{'Total':30s} {sum(b.balance for b in outstanding):>16,.2f}")


@report_group.command("receivables")
@click.option("--as-of", help="Balance date (default: today)")
@click.pass_context
def receivables(ctx, as_of: str | None):
    """What each customer owes."""
    try:
        balances = ReportService(ctx.obj["db"]).receivable_summary(parse_cli_date(ctx, as_of))
    except DomainError as e:
        handle_domain_error(ctx, e)
    _print_balances("Receivables", balances, "No customer owes anything.")


@report_group.command("payables")
@click.option("--as-of", help="Balance date (default: today)")
@click.pass_context
def payables(ctx, as_of: str | None):
    """What the business owes each supplier and lender."""
    try:
        balances = ReportService(ctx.obj["db"]).payable_summary(parse_cli_date(ctx, as_of))
    except DomainError as e:
        handle_domain_error(ctx, e)
    _print_balances("Payables", balances, "Nothing is owed.")


@report_group.command("pnl")
@click.option("--start-date", help="Start date (YYYY-MM-DD or relative like 'last month')")
@click.option("--end-date", help="End date (YYYY-MM-DD or relative like 'today')")
@period_option
@click.pass_context
def profit_and_loss(ctx, start_date, end_date, period):
    """Income and expenses by category.

    Examples:
        khata report pnl --period this-month
        khata report pnl --start-date 2024-04-01 --end-date 2025-03-31
    """
    start, end = resolve_cli_date_range(ctx, start_date=start_date, end_date=end_date, period=period)
    try:
        pnl = ReportService(ctx.obj["db"]).profit_and_loss(start, end)
    except DomainError as e:
        handle_domain_error(ctx, e)

    click.echo(f"\nProfit and Loss ({start or 'beginning'} to {end or 'today'})")
    click.echo("=" * 64)
    click.echo("Income")
    for name, amount in pnl.income:
        click.echo(f"  {name:44s} {amount:>16,.2f}")
    click.echo(f"  {'Total income':44s} {pnl.total_income:>16,.2f}")
    click.echo("Expenses")
    for name, amount in pnl.expenses:
        click.echo(f"  {name:44s} {amount:>16,.2f}")
    click.echo(f"  {'Total expenses':44s} {pnl.total_expenses:>16,.2f}")
    click.echo("-" * 64)
    click.echo(f"  {'Net profit':44s} {pnl.net_profit:>16,.2f}")


@report_group.command("valuation")
@click.option("--as-of", help="Valuation date (default: today)")
@click.pass_context
def valuation(ctx, as_of: str | None):
    """Cash, bank, receivables, payables, stock and net worth."""
    try:
        snapshot = ReportService(ctx.obj["db"]).valuation(parse_cli_date(ctx, as_of))
    except DomainError as e:
        handle_domain_error(ctx, e)

    rows = [
        ("Cash", snapshot.cash),
        ("Bank", snapshot.bank),
        ("Receivables", snapshot.receivables),
        ("Stock at cost", snapshot.stock_value),
        ("Payables", -snapshot.payables),
    ]
    click.echo(f"\nValuation as of {snapshot.as_of}")
    click.echo("-" * 46)
    for label, amount in rows:
        click.echo(f"{label:28s} {amount:>16,.2f}")
    click.echo("-" * 46)
    click.echo(f"{'Net worth':28s} {snapshot.net_worth:>16,.2f}")
    click.echo(f"\n{'Loans given outstanding':28s} {snapshot.loans_given_outstanding:>16,.2f}")
    click.echo(f"{'Loans taken outstanding':28s} {snapshot.loans_taken_outstanding:>16,.2f}")


def register_commands(cli):
    """Register report commands with main CLI."""
    cli.add_command(report_group, name="report")
