"""Loan agreement commands."""

import click

from khata.cli.date_filters import parse_cli_date
from khata.cli.error_handling import handle_domain_error
from khata.cli.party_resolution import resolve_customer_or_exit, resolve_entity_or_exit
from khata.domain.agreement import AgreementService
from khata.domain.entities import AgreementType
from khata.domain.errors import DomainError
from khata.domain.party import PartyService
from khata.domain.taxonomy import PaymentMode
from khata.utils.amount_parser import parse_amount

_MODES = [PaymentMode.CASH.value, PaymentMode.BANK.value]


@click.group()
def agreement_group():
    """Manage loans given and taken."""
    pass


@agreement_group.command("create")
@click.argument("party")
@click.argument("principal")
@click.option(
    "--type",
    "agreement_type",
    type=click.Choice([t.value for t in AgreementType]),
    default=AgreementType.LOAN_TAKEN_BY_BIZ.value,
    show_default=True,
    help="Agreement type",
)
@click.option("--rate", default="0", help="Interest rate in percent per month")
@click.option("--start", "start_date", default="today", help="Start date (default: today)")
@click.option("--details", help="Free-text details, e.g. 'EMI: 5000 for 12 months'")
@click.option(
    "--disburse",
    type=click.Choice(_MODES, case_sensitive=False),
    help="Also record the principal moving through Cash or Bank",
)
@click.pass_context
def create_agreement(ctx, party, principal, agreement_type, rate, start_date, details, disburse):
    """Create a loan agreement.

    PARTY is a customer for loans given by the business, and an external
    entity otherwise.

    Examples:
        khata agreement create "HDFC" 12000 --rate 2 --start 2024-01-01 --disburse bank
        khata agreement create "Ravi" 5000 --type loan_given_by_biz --disburse cash
    """
    db = ctx.obj["db"]
    party_service = PartyService(db)
    if agreement_type == AgreementType.LOAN_GIVEN_BY_BIZ.value:
        party_id = resolve_customer_or_exit(ctx, party_service, party)
    else:
        party_id = resolve_entity_or_exit(ctx, party_service, party)

    try:
        agreement = AgreementService(db).create_agreement(
            party_id=party_id,
            agreement_type=agreement_type,
            principal=parse_amount(principal),
            start_date=parse_cli_date(ctx, start_date, "start date"),
            interest_rate=parse_amount(rate),
            details=details,
            disbursement_mode=PaymentMode(disburse.capitalize()) if disburse else None,
        )
        click.echo(f"Created agreement {agreement.id} for {agreement.principal:,.2f}")
    except (DomainError, ValueError) as e:
        handle_domain_error(ctx, e)


@agreement_group.command("onboard")
@click.argument("entity")
@click.argument("current_balance")
@click.option("--rate", default="0", help="Interest rate in percent per month")
@click.option("--start", "start_date", default="today", help="Date bookkeeping of the loan starts")
@click.option("--original-amount", help="Amount originally borrowed")
@click.option("--details", help="Free-text details, e.g. 'EMI: 5000 for 12 months'")
@click.pass_context
def onboard_loan(ctx, entity, current_balance, rate, start_date, original_amount, details):
    """Record a loan that was already running, at its current balance."""
    db = ctx.obj["db"]
    entity_id = resolve_entity_or_exit(ctx, PartyService(db), entity)
    try:
        agreement = AgreementService(db).onboard_existing_loan(
            entity_id=entity_id,
            current_balance=parse_amount(current_balance),
            start_date=parse_cli_date(ctx, start_date, "start date"),
            interest_rate=parse_amount(rate),
            original_amount=parse_amount(original_amount) if original_amount else None,
            details=details,
        )
        click.echo(f"Onboarded loan as agreement {agreement.id} ({agreement.principal:,.2f})")
    except (DomainError, ValueError) as e:
        handle_domain_error(ctx, e)


@agreement_group.command("repay")
@click.argument("agreement_id", type=int)
@click.argument("amount")
@click.option("--date", "on_date", default="today", help="Payment date (default: today)")
@click.option("--mode", type=click.Choice(_MODES, case_sensitive=False), default="Cash")
@click.option("--interest", is_flag=True, help="Payment is interest rather than principal")
@click.option("--description", help="Description")
@click.pass_context
def repay(ctx, agreement_id, amount, on_date, mode, interest, description):
    """Record a principal or interest payment on a loan."""
    try:
        txn = AgreementService(ctx.obj["db"]).record_repayment(
            agreement_id=agreement_id,
            on_date=parse_cli_date(ctx, on_date),
            amount=parse_amount(amount),
            mode=PaymentMode(mode.capitalize()),
            interest=interest,
            description=description,
        )
        click.echo(f"Recorded transaction {txn.id}: {txn.category} {abs(txn.amount):,.2f}")
    except (DomainError, ValueError) as e:
        handle_domain_error(ctx, e)


@agreement_group.command("list")
@click.pass_context
def list_agreements(ctx):
    """List all agreements."""
    agreements = AgreementService(ctx.obj["db"]).list_agreements()
    if not agreements:
        click.echo("No agreements found.")
        return

    click.echo("\nAgreements:")
    click.echo("-" * 90)
    for a in agreements:
        click.echo(
            f"ID: {a.id:3d} | {a.agreement_type.value:18s} | Party {a.party_id:3d} | "
            f"{a.principal:>12,.2f} @ {a.interest_rate_percent_per_month}%/month | from {a.start_date}"
        )


@agreement_group.command("accrual")
@click.argument("agreement_id", type=int)
@click.option("--as-of", default="today", help="Accrue interest up to this date (default: today)")
@click.pass_context
def accrual(ctx, agreement_id: int, as_of: str):
    """Show outstanding principal and month-by-month interest."""
    try:
        result = AgreementService(ctx.obj["db"]).accrual(
            agreement_id, parse_cli_date(ctx, as_of, "as-of date")
        )
    except DomainError as e:
        handle_domain_error(ctx, e)

    click.echo(f"\nAgreement #{agreement_id}")
    click.echo("-" * 40)
    click.echo(f"Principal paid:        {result.principal_paid:>14,.2f}")
    click.echo(f"Outstanding principal: {result.outstanding_principal:>14,.2f}")
    click.echo(f"Interest paid:         {result.interest_paid:>14,.2f}")
    click.echo(f"Interest payable:      {result.interest_payable:>14,.2f}")
    if result.monthly_breakdown:
        click.echo("\nMonth     Interest due  Status")
        for month in result.monthly_breakdown:
            click.echo(f"{month.month:8s}  {month.interest_due:>12,.2f}  {month.status.value}")


def register_commands(cli):
    """Register agreement commands with main CLI."""
    cli.add_command(agreement_group, name="agreement")
