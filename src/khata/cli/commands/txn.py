"""Transaction commands."""

import click

from khata.cli.date_filters import parse_cli_date, period_option, resolve_cli_date_range
from khata.cli.error_handling import handle_domain_error
from khata.cli.line_items import parse_line_items
from khata.cli.party_resolution import resolve_customer_or_exit, resolve_entity_or_exit
from khata.domain.entities import TransactionDraft
from khata.domain.errors import DomainError
from khata.domain.party import PartyService
from khata.domain.taxonomy import DEFAULT_TAXONOMY, PaymentMode, parse_category_name
from khata.domain.transaction import TransactionService
from khata.utils.amount_parser import parse_amount


@click.group()
def txn_group():
    """Record, correct and remove transactions."""
    pass


def _format_transaction(txn) -> str:
    party = ""
    if txn.party_user_id is not None:
        party = f" | Customer {txn.party_user_id}"
    elif txn.party_lender_id is not None:
        party = f" | Entity {txn.party_lender_id}"
    return (
        f"ID: {txn.id:4d} | {txn.date} | {txn.category:45s} | "
        f"{txn.amount:>12,.2f}{party}"
    )


@txn_group.command("add")
@click.argument("category")
@click.argument("amount")
@click.option("--date", "txn_date", default="today", help="Transaction date (default: today)")
@click.option("--customer", help="Customer name or ID")
@click.option("--entity", help="Supplier, lender or other entity name or ID")
@click.option("--agreement", "agreement_id", type=int, help="Agreement ID")
@click.option("--invoice", "invoice_id", type=int, help="Related invoice ID")
@click.option(
    "--item",
    "items",
    multiple=True,
    help="Product line as PRODUCT_ID:QTY:PRICE (repeatable, negative QTY for a return)",
)
@click.option("--description", help="Description")
@click.pass_context
def add_transaction(
    ctx,
    category: str,
    amount: str,
    txn_date: str,
    customer: str | None,
    entity: str | None,
    agreement_id: int | None,
    invoice_id: int | None,
    items: tuple[str, ...],
    description: str | None,
):
    """Record a transaction.

    CATEGORY is a category name such as "Sale to Customer (Cash)". Run
    'khata categories' to list them.

    Examples:
        khata txn add "Sale to Customer (Cash)" 200 --customer "Ravi" --item 1:2:100
        khata txn add "Payment Received from Customer (Bank)" 500 --customer 1 --invoice 3
        khata txn add "Rent Paid (Cash)" -8000 --date 2024-01-05
    """
    db = ctx.obj["db"]
    party_service = PartyService(db)

    customer_id = resolve_customer_or_exit(ctx, party_service, customer) if customer else None
    entity_id = resolve_entity_or_exit(ctx, party_service, entity) if entity else None

    try:
        draft = TransactionDraft(
            date=parse_cli_date(ctx, txn_date),
            category=category,
            amount=parse_amount(amount),
            description=description,
            party_user_id=customer_id,
            party_lender_id=entity_id,
            agreement_id=agreement_id,
            related_invoice_id=invoice_id,
            line_items=parse_line_items(items),
        )
        txn = TransactionService(db).create_transaction(draft)
        click.echo(f"Recorded transaction {txn.id}: {txn.category} {txn.amount:,.2f}")
    except (DomainError, ValueError) as e:
        handle_domain_error(ctx, e)


@txn_group.command("update")
@click.argument("transaction_id", type=int)
@click.option("--date", "txn_date", help="New date")
@click.option("--category", help="New category name")
@click.option(
    "--mode",
    type=click.Choice([m.value for m in PaymentMode]),
    help="Move the category to another payment mode",
)
@click.option("--amount", help="New amount")
@click.option("--description", help="New description")
@click.pass_context
def update_transaction(
    ctx,
    transaction_id: int,
    txn_date: str | None,
    category: str | None,
    mode: str | None,
    amount: str | None,
    description: str | None,
):
    """Update a transaction without product line items.

    Only the fields given are changed. Transactions with product lines must
    be deleted and recorded again.

    Examples:
        khata txn update 12 --amount 450
        khata txn update 12 --mode Bank
    """
    db = ctx.obj["db"]
    service = TransactionService(db)

    existing = service.get_transaction(transaction_id)
    if existing is None:
        click.echo(f"Error: Transaction {transaction_id} not found", err=True)
        ctx.exit(1)

    try:
        new_category = category if category is not None else existing.category
        if mode is not None:
            key = parse_category_name(new_category).with_mode(PaymentMode(mode))
            new_category = DEFAULT_TAXONOMY.resolve_key(key).name

        draft = TransactionDraft(
            date=parse_cli_date(ctx, txn_date) if txn_date else existing.date,
            category=new_category,
            amount=parse_amount(amount) if amount is not None else existing.amount,
            description=description if description is not None else existing.description,
            party_user_id=existing.party_user_id,
            party_lender_id=existing.party_lender_id,
            agreement_id=existing.agreement_id,
            related_invoice_id=existing.related_invoice_id,
        )
        service.update_transaction(transaction_id, draft)
        click.echo(f"Updated transaction {transaction_id}")
    except (DomainError, ValueError) as e:
        handle_domain_error(ctx, e)


@txn_group.command("delete")
@click.argument("transaction_id", type=int)
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def delete_transaction(ctx, transaction_id: int, yes: bool):
    """Delete a transaction and reverse its stock and invoice effects."""
    service = TransactionService(ctx.obj["db"])

    txn = service.get_transaction(transaction_id)
    if txn is None:
        click.echo(f"Error: Transaction {transaction_id} not found", err=True)
        ctx.exit(1)

    if not yes and not click.confirm(
        f"Delete transaction {transaction_id} ({txn.category} {txn.amount:,.2f})?"
    ):
        click.echo("Deletion cancelled.")
        return

    try:
        service.delete_transaction(transaction_id)
        click.echo(f"Deleted transaction {transaction_id}")
    except (DomainError, ValueError) as e:
        handle_domain_error(ctx, e)


@txn_group.command("list")
@click.option("--start-date", help="Start date (YYYY-MM-DD or relative like 'last month')")
@click.option("--end-date", help="End date (YYYY-MM-DD or relative like 'today')")
@period_option
@click.option("--customer", help="Customer name or ID")
@click.option("--entity", help="Entity name or ID")
@click.option("--agreement", "agreement_id", type=int, help="Agreement ID")
@click.option("--category", help="Category name")
@click.pass_context
def list_transactions(
    ctx,
    start_date: str | None,
    end_date: str | None,
    period: str | None,
    customer: str | None,
    entity: str | None,
    agreement_id: int | None,
    category: str | None,
):
    """List transactions with optional filters."""
    db = ctx.obj["db"]
    party_service = PartyService(db)

    start, end = resolve_cli_date_range(
        ctx, start_date=start_date, end_date=end_date, period=period
    )
    customer_id = resolve_customer_or_exit(ctx, party_service, customer) if customer else None
    entity_id = resolve_entity_or_exit(ctx, party_service, entity) if entity else None

    try:
        transactions = TransactionService(db).list_transactions(
            start_date=start,
            end_date=end,
            customer_id=customer_id,
            entity_id=entity_id,
            agreement_id=agreement_id,
            category=category,
        )
    except DomainError as e:
        handle_domain_error(ctx, e)

    if not transactions:
        click.echo("No transactions found.")
        return

    click.echo(f"\nFound {len(transactions)} transaction(s):")
    click.echo("-" * 100)
    for txn in transactions:
        click.echo(_format_transaction(txn))
        for item in txn.line_items:
            click.echo(f"        Product {item.product_id}: {item.quantity} @ {item.unit_price:,.2f}")


def register_commands(cli):
    """Register transaction commands with main CLI."""
    cli.add_command(txn_group, name="txn")
