"""Chit fund commands."""

import click

from khata.cli.date_filters import parse_cli_date
from khata.cli.error_handling import handle_domain_error
from khata.cli.party_resolution import resolve_customer_or_exit
from khata.domain.chit import ChitFundService
from khata.domain.errors import DomainError
from khata.domain.party import PartyService
from khata.utils.amount_parser import parse_amount


@click.group()
def chit_group():
    """Run chit fund groups."""
    pass


@chit_group.command("create")
@click.argument("name")
@click.option("--value", "chit_value", required=True, help="Chit value")
@click.option("--contribution", required=True, help="Monthly contribution per member")
@click.option("--members", "member_count", type=int, required=True, help="Number of members")
@click.option("--months", "duration_months", type=int, required=True, help="Duration in months")
@click.option("--commission", default="0", help="Foreman commission percent of chit value")
@click.option("--start", "start_date", default="today", help="Start date (default: today)")
@click.pass_context
def create_group(ctx, name, chit_value, contribution, member_count, duration_months, commission, start_date):
    """Create a chit group.

    Example:
        khata chit create "Diwali 2024" --value 100000 --contribution 5000 --members 20 --months 20 --commission 5
    """
    try:
        group = ChitFundService(ctx.obj["db"]).create_group(
            name=name,
            chit_value=parse_amount(chit_value),
            monthly_contribution=parse_amount(contribution),
            member_count=member_count,
            duration_months=duration_months,
            start_date=parse_cli_date(ctx, start_date, "start date"),
            commission_percent=parse_amount(commission),
        )
        click.echo(f"Created chit group '{group.name}' (ID: {group.id})")
    except (DomainError, ValueError) as e:
        handle_domain_error(ctx, e)


@chit_group.command("add-member")
@click.argument("group_id", type=int)
@click.argument("customer")
@click.pass_context
def add_member(ctx, group_id: int, customer: str):
    """Enrol a customer in a chit group."""
    db = ctx.obj["db"]
    customer_id = resolve_customer_or_exit(ctx, PartyService(db), customer)
    try:
        ChitFundService(db).add_member(group_id, customer_id)
        click.echo(f"Added customer {customer_id} to chit group {group_id}")
    except DomainError as e:
        handle_domain_error(ctx, e)


@chit_group.command("auction")
@click.argument("group_id", type=int)
@click.argument("month", type=int)
@click.argument("winner")
@click.option("--bid", "discount", required=True, help="Winning bid discount")
@click.option("--date", "auction_date", default="today", help="Auction date (default: today)")
@click.pass_context
def auction(ctx, group_id: int, month: int, winner: str, discount: str, auction_date: str):
    """Settle an auction month.

    WINNER is the prized customer's name or ID.
    """
    db = ctx.obj["db"]
    customer_id = resolve_customer_or_exit(ctx, PartyService(db), winner)
    try:
        posted = ChitFundService(db).settle_auction(
            group_id=group_id,
            auction_month=month,
            auction_date=parse_cli_date(ctx, auction_date, "auction date"),
            winning_bid_discount=parse_amount(discount),
            prized_customer_id=customer_id,
        )
    except (DomainError, ValueError) as e:
        handle_domain_error(ctx, e)

    payout, installments = posted[0], posted[1:]
    click.echo(f"Payout of {payout.amount:,.2f} to customer {customer_id}")
    if installments:
        click.echo(
            f"Installments of {abs(installments[0].amount):,.2f} from {len(installments)} member(s)"
        )


@chit_group.command("list")
@click.pass_context
def list_groups(ctx):
    """List chit groups."""
    groups = ChitFundService(ctx.obj["db"]).list_groups()
    if not groups:
        click.echo("No chit groups found.")
        return

    click.echo("\nChit groups:")
    click.echo("-" * 90)
    for g in groups:
        click.echo(
            f"ID: {g.id:3d} | {g.name:20s} | Value {g.chit_value:>12,.2f} | "
            f"{g.member_count} members x {g.monthly_contribution:,.2f} | {g.duration_months} months"
        )


@chit_group.command("members")
@click.argument("group_id", type=int)
@click.pass_context
def list_members(ctx, group_id: int):
    """List members of a chit group."""
    try:
        members = ChitFundService(ctx.obj["db"]).list_members(group_id)
    except DomainError as e:
        handle_domain_error(ctx, e)

    if not members:
        click.echo("No members yet.")
        return
    for m in members:
        prized = f"prized in month {m.prized_month}" if m.is_prized else "not prized"
        click.echo(f"Customer {m.customer_id:3d} | {prized}")


def register_commands(cli):
    """Register chit fund commands with main CLI."""
    cli.add_command(chit_group, name="chit")
