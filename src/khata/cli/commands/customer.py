"""Customer management commands."""

import click

from khata.cli.error_handling import handle_domain_error
from khata.domain.errors import DomainError
from khata.domain.ledger import LedgerService
from khata.domain.party import PartyService
from khata.utils.amount_parser import parse_amount


@click.group()
def customer_group():
    """Manage customers."""
    pass


@customer_group.command("create")
@click.argument("name", metavar="CUSTOMER_NAME")
@click.option("--opening-balance", default="0", help="Amount owed before the first transaction")
@click.option("--phone", help="Phone number")
@click.option("--email", help="Email address")
@click.option("--state", help="State (used for GST rate selection)")
@click.option("--gstin", help="GST identification number")
@click.pass_context
def create_customer(ctx, name: str, opening_balance: str, phone, email, state, gstin):
    """Create a new customer.

    Examples:
        khata customer create "Ravi Traders" --state Karnataka
        khata customer create "Meena" --opening-balance 1500
    """
    service = PartyService(ctx.obj["db"])
    try:
        customer = service.create_customer(
            name=name,
            opening_balance=parse_amount(opening_balance),
            phone=phone,
            email=email,
            state=state,
            gstin=gstin,
        )
        click.echo(f"Created customer '{customer.name}' (ID: {customer.id})")
    except (DomainError, ValueError) as e:
        handle_domain_error(ctx, e)


@customer_group.command("list")
@click.option("--balances", is_flag=True, help="Show what each customer owes")
@click.pass_context
def list_customers(ctx, balances: bool):
    """List all customers."""
    db = ctx.obj["db"]
    customers = PartyService(db).list_customers()
    if not customers:
        click.echo("No customers found.")
        return

    ledgers = LedgerService(db)
    click.echo("\nCustomers:")
    click.echo("-" * 60)
    for c in customers:
        line = f"ID: {c.id:3d} | {c.name:25s} | State: {c.state or '-'}"
        if balances:
            try:
                line += f" | Balance: {ledgers.customer_balance(c.id):,.2f}"
            except DomainError as e:
                handle_domain_error(ctx, e)
        click.echo(line)


def register_commands(cli):
    """Register customer commands with main CLI."""
    cli.add_command(customer_group, name="customer")
