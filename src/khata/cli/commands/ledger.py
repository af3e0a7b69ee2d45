"""Ledger commands: cash book, bank book and party statements."""

from datetime import date

import click

from khata.cli.date_filters import parse_cli_date, period_option, resolve_cli_date_range
from khata.cli.error_handling import handle_domain_error
from khata.cli.party_resolution import resolve_customer_or_exit, resolve_entity_or_exit
from khata.domain.entities import LedgerSnapshot
from khata.domain.errors import DomainError
from khata.domain.ledger import LedgerService
from khata.domain.party import PartyService
from khata.utils.amount_parser import parse_amount


@click.group()
def ledger_group():
    """Show cash, bank and party ledgers."""
    pass


def _format_money(value) -> str:
    return f"{value:,.2f}" if value else ""


def _print_snapshot(title: str, snapshot: LedgerSnapshot) -> None:
    click.echo(f"\n{title}")
    click.echo("=" * 110)
    click.echo(
        f"{'Date':<12s}{'ID':>5s}  {'Category':45s}{'Debit':>14s}{'Credit':>14s}{'Balance':>16s}"
    )
    click.echo("-" * 110)
    click.echo(f"{'':<12s}{'':>5s}  {'Opening balance':45s}{'':>14s}{'':>14s}{snapshot.opening_balance:>16,.2f}")
    for entry in snapshot.entries:
        click.echo(
            f"{str(entry.date):<12s}{entry.transaction_id:>5d}  {entry.category[:44]:45s}"
            f"{_format_money(entry.debit):>14s}{_format_money(entry.credit):>14s}"
            f"{entry.running_balance:>16,.2f}"
        )
    click.echo("-" * 110)
    click.echo(
        f"{'':<12s}{'':>5s}  {'Totals':45s}{snapshot.total_debits:>14,.2f}"
        f"{snapshot.total_credits:>14,.2f}{snapshot.closing_balance:>16,.2f}"
    )
    click.echo(f"\nClosing balance: {snapshot.closing_balance:,.2f}")


def _money_window(ctx, on_date, start_date, end_date, period):
    if on_date and (start_date or end_date or period):
        click.echo("Error: --date cannot be combined with a date range.", err=True)
        ctx.exit(1)
    if on_date:
        day = parse_cli_date(ctx, on_date)
        return day, day
    today = date.today()
    return resolve_cli_date_range(
        ctx,
        start_date=start_date,
        end_date=end_date,
        period=period,
        default_range=(today, today),
    )


def _show_money_book(ctx, view_label, on_date, start_date, end_date, period, opening):
    start, end = _money_window(ctx, on_date, start_date, end_date, period)
    service = LedgerService(ctx.obj["db"])
    try:
        opening_balance = parse_amount(opening)
        if view_label == "Cash Book":
            snapshot = service.cash_book(start, end, opening_balance)
        else:
            snapshot = service.bank_book(start, end, opening_balance)
    except (DomainError, ValueError) as e:
        handle_domain_error(ctx, e)

    window = str(start) if start == end else f"{start or 'beginning'} to {end or 'today'}"
    _print_snapshot(f"{view_label} for {window}", snapshot)


@ledger_group.command("cash")
@click.option("--date", "on_date", help="Single day (default: today)")
@click.option("--start-date", help="Start date (YYYY-MM-DD or relative like 'last month')")
@click.option("--end-date", help="End date (YYYY-MM-DD or relative like 'today')")
@period_option
@click.option("--opening", default="0", help="Cash in hand before the first transaction")
@click.pass_context
def cash_book(ctx, on_date, start_date, end_date, period, opening):
    """Show the cash book for a day or a date range.

    Examples:
        khata ledger cash --date 2024-01-10 --opening 1000
        khata ledger cash --period this-month
    """
    _show_money_book(ctx, "Cash Book", on_date, start_date, end_date, period, opening)


@ledger_group.command("bank")
@click.option("--date", "on_date", help="Single day (default: today)")
@click.option("--start-date", help="Start date (YYYY-MM-DD or relative like 'last month')")
@click.option("--end-date", help="End date (YYYY-MM-DD or relative like 'today')")
@period_option
@click.option("--opening", default="0", help="Bank balance before the first transaction")
@click.pass_context
def bank_book(ctx, on_date, start_date, end_date, period, opening):
    """Show the bank book for a day or a date range."""
    _show_money_book(ctx, "Bank Book", on_date, start_date, end_date, period, opening)


@ledger_group.command("customer")
@click.argument("customer")
@click.option("--start-date", help="Start date (YYYY-MM-DD or relative like 'last month')")
@click.option("--end-date", help="End date (YYYY-MM-DD or relative like 'today')")
@period_option
@click.pass_context
def customer_ledger(ctx, customer: str, start_date, end_date, period):
    """Show what a customer owes, transaction by transaction.

    CUSTOMER is a customer name or ID.
    """
    db = ctx.obj["db"]
    customer_id = resolve_customer_or_exit(ctx, PartyService(db), customer)
    start, end = resolve_cli_date_range(ctx, start_date=start_date, end_date=end_date, period=period)
    try:
        snapshot = LedgerService(db).customer_ledger(customer_id, start, end)
        name = PartyService(db).get_customer(customer_id).name
    except DomainError as e:
        handle_domain_error(ctx, e)
    _print_snapshot(f"Ledger for customer '{name}'", snapshot)


@ledger_group.command("entity")
@click.argument("entity")
@click.option("--start-date", help="Start date (YYYY-MM-DD or relative like 'last month')")
@click.option("--end-date", help="End date (YYYY-MM-DD or relative like 'today')")
@period_option
@click.pass_context
def entity_ledger(ctx, entity: str, start_date, end_date, period):
    """Show what the business owes a supplier or lender.

    ENTITY is an entity name or ID.
    """
    db = ctx.obj["db"]
    entity_id = resolve_entity_or_exit(ctx, PartyService(db), entity)
    start, end = resolve_cli_date_range(ctx, start_date=start_date, end_date=end_date, period=period)
    try:
        snapshot = LedgerService(db).entity_ledger(entity_id, start, end)
        name = PartyService(db).get_entity(entity_id).name
    except DomainError as e:
        handle_domain_error(ctx, e)
    _print_snapshot(f"Ledger for '{name}'", snapshot)


@ledger_group.command("agreement")
@click.argument("agreement_id", type=int)
@click.option("--start-date", help="Start date")
@click.option("--end-date", help="End date")
@click.pass_context
def agreement_ledger(ctx, agreement_id: int, start_date, end_date):
    """Show every transaction linked to an agreement."""
    start, end = resolve_cli_date_range(ctx, start_date=start_date, end_date=end_date)
    try:
        snapshot = LedgerService(ctx.obj["db"]).agreement_ledger(agreement_id, start, end)
    except DomainError as e:
        handle_domain_error(ctx, e)
    _print_snapshot(f"Ledger for agreement #{agreement_id}", snapshot)


def register_commands(cli):
    """Register ledger commands with main CLI."""
    cli.add_command(ledger_group, name="ledger")
