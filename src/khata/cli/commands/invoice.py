"""Invoice and credit note commands."""

import click

from khata.cli.date_filters import parse_cli_date
from khata.cli.error_handling import handle_domain_error
from khata.cli.line_items import parse_invoice_items
from khata.cli.party_resolution import resolve_customer_or_exit
from khata.domain.entities import InvoiceType
from khata.domain.errors import DomainError
from khata.domain.invoice import InvoiceService
from khata.domain.party import PartyService
from khata.domain.taxonomy import PaymentMode
from khata.utils.amount_parser import parse_amount

_MODES = [PaymentMode.CASH.value, PaymentMode.BANK.value]


@click.group()
def invoice_group():
    """Create invoices and credit notes, and take payments."""
    pass


def _service(ctx) -> InvoiceService:
    return InvoiceService(ctx.obj["db"], business_state=ctx.obj["settings"].business_state)


@invoice_group.command("create")
@click.argument("customer")
@click.option("--number", "invoice_number", help="Invoice number (generated for credit notes)")
@click.option("--date", "invoice_date", default="today", help="Invoice date (default: today)")
@click.option(
    "--item",
    "items",
    multiple=True,
    required=True,
    help="Line as PRODUCT_ID:QTY:PRICE[:DISCOUNT], '-' for no product (repeatable)",
)
@click.option("--gst-rate", default="0", help="Total GST percent, split by state")
@click.option("--discount", default="0", help="Discount on the whole invoice")
@click.option("--pay", default="0", help="Amount paid (or refunded) now")
@click.option("--mode", type=click.Choice(_MODES, case_sensitive=False), help="Mode of the payment")
@click.option("--return", "is_return", is_flag=True, help="Create a credit note for returned goods")
@click.pass_context
def create_invoice(
    ctx, customer, invoice_number, invoice_date, items, gst_rate, discount, pay, mode, is_return
):
    """Create a tax invoice or a credit note.

    Examples:
        khata invoice create "Ravi" --number INV-001 --item 1:2:500 --gst-rate 5
        khata invoice create "Ravi" --number INV-002 --item 1:1:500 --pay 500 --mode bank
        khata invoice create "Ravi" --return --item 1:1:500 --pay 500 --mode cash
    """
    db = ctx.obj["db"]
    customer_id = resolve_customer_or_exit(ctx, PartyService(db), customer)
    try:
        invoice = _service(ctx).create_invoice(
            customer_id=customer_id,
            invoice_date=parse_cli_date(ctx, invoice_date, "invoice date"),
            line_items=parse_invoice_items(items),
            invoice_number=invoice_number,
            invoice_type=InvoiceType.SALES_RETURN if is_return else InvoiceType.TAX_INVOICE,
            gst_rate=parse_amount(gst_rate),
            lump_discount=parse_amount(discount),
            payment_amount=parse_amount(pay),
            payment_mode=PaymentMode(mode.capitalize()) if mode else None,
        )
    except (DomainError, ValueError) as e:
        handle_domain_error(ctx, e)

    kind = "credit note" if is_return else "invoice"
    click.echo(
        f"Created {kind} {invoice.invoice_number} (ID: {invoice.id}) for "
        f"{invoice.grand_total:,.2f} [{invoice.status.value}]"
    )


@invoice_group.command("pay")
@click.argument("invoice_id", type=int)
@click.argument("amount")
@click.option("--date", "on_date", default="today", help="Payment date (default: today)")
@click.option("--mode", type=click.Choice(_MODES, case_sensitive=False), default="Cash")
@click.pass_context
def pay_invoice(ctx, invoice_id: int, amount: str, on_date: str, mode: str):
    """Record a payment against an invoice."""
    service = _service(ctx)
    try:
        txn = service.record_payment(
            invoice_id,
            parse_amount(amount),
            parse_cli_date(ctx, on_date),
            PaymentMode(mode.capitalize()),
        )
        invoice = service.get_invoice(invoice_id)
    except (DomainError, ValueError) as e:
        handle_domain_error(ctx, e)
    click.echo(
        f"Recorded transaction {txn.id}. Invoice {invoice.invoice_number}: "
        f"paid {invoice.paid_amount:,.2f} of {invoice.grand_total:,.2f} [{invoice.status.value}]"
    )


@invoice_group.command("update")
@click.argument("invoice_id", type=int)
@click.option(
    "--item",
    "items",
    multiple=True,
    required=True,
    help="Line as PRODUCT_ID:QTY:PRICE[:DISCOUNT], '-' for no product (repeatable)",
)
@click.option("--date", "invoice_date", help="New invoice date")
@click.option("--gst-rate", default="0", help="Total GST percent, split by state")
@click.option("--discount", default="0", help="Discount on the whole invoice")
@click.pass_context
def update_invoice(ctx, invoice_id: int, items, invoice_date, gst_rate, discount):
    """Replace the lines of an invoice and re-post its transactions.

    Earlier payments stay recorded against the invoice.
    """
    try:
        invoice = _service(ctx).update_invoice(
            invoice_id,
            line_items=parse_invoice_items(items),
            invoice_date=parse_cli_date(ctx, invoice_date, "invoice date") if invoice_date else None,
            gst_rate=parse_amount(gst_rate),
            lump_discount=parse_amount(discount),
        )
    except (DomainError, ValueError) as e:
        handle_domain_error(ctx, e)
    click.echo(
        f"Updated {invoice.invoice_number}: {invoice.grand_total:,.2f}, "
        f"paid {invoice.paid_amount:,.2f} [{invoice.status.value}]"
    )


@invoice_group.command("delete")
@click.argument("invoice_id", type=int)
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def delete_invoice(ctx, invoice_id: int, yes: bool):
    """Delete an invoice and every transaction linked to it."""
    service = _service(ctx)
    try:
        invoice = service.get_invoice(invoice_id)
    except DomainError as e:
        handle_domain_error(ctx, e)

    if not yes and not click.confirm(
        f"Delete {invoice.invoice_number} ({invoice.grand_total:,.2f}) and its transactions?"
    ):
        click.echo("Deletion cancelled.")
        return

    try:
        service.delete_invoice(invoice_id)
    except (DomainError, ValueError) as e:
        handle_domain_error(ctx, e)
    click.echo(f"Deleted {invoice.invoice_number}")


@invoice_group.command("list")
@click.option("--customer", help="Customer name or ID")
@click.pass_context
def list_invoices(ctx, customer: str | None):
    """List invoices and credit notes, newest first."""
    db = ctx.obj["db"]
    customer_id = resolve_customer_or_exit(ctx, PartyService(db), customer) if customer else None
    invoices = _service(ctx).list_invoices(customer_id=customer_id)
    if not invoices:
        click.echo("No invoices found.")
        return

    click.echo("\nInvoices:")
    click.echo("-" * 90)
    for inv in invoices:
        click.echo(
            f"ID: {inv.id:3d} | {inv.invoice_number:16s} | {inv.invoice_date} | "
            f"Customer {inv.customer_id:3d} | {inv.grand_total:>12,.2f} | {inv.status.value}"
        )


@invoice_group.command("show")
@click.argument("invoice_id", type=int)
@click.pass_context
def show_invoice(ctx, invoice_id: int):
    """Show an invoice with its lines and totals."""
    try:
        inv = _service(ctx).get_invoice(invoice_id)
    except DomainError as e:
        handle_domain_error(ctx, e)

    title = "CREDIT NOTE" if inv.invoice_type == InvoiceType.SALES_RETURN else "TAX INVOICE"
    click.echo(f"\n{title} {inv.invoice_number}  ({inv.invoice_date})")
    click.echo(f"Customer: {inv.customer_id}")
    click.echo("-" * 70)
    for item in inv.line_items:
        product = str(item.product_id) if item.product_id is not None else "-"
        click.echo(
            f"{product:>6s}  {item.description[:24]:24s} {item.quantity:>5d} x {item.unit_price:>10,.2f}"
            f"  {item.taxable_value:>12,.2f}"
        )
    click.echo("-" * 70)
    click.echo(f"{'Subtotal':>50s}  {inv.subtotal:>12,.2f}")
    if inv.igst_amount:
        click.echo(f"{f'IGST @ {inv.igst_rate}%':>50s}  {inv.igst_amount:>12,.2f}")
    else:
        click.echo(f"{f'CGST @ {inv.cgst_rate}%':>50s}  {inv.cgst_amount:>12,.2f}")
        click.echo(f"{f'SGST @ {inv.sgst_rate}%':>50s}  {inv.sgst_amount:>12,.2f}")
    if inv.lump_discount:
        click.echo(f"{'Discount':>50s}  {-inv.lump_discount:>12,.2f}")
    if inv.returns_value:
        click.echo(f"{'Returns':>50s}  {-abs(inv.returns_value):>12,.2f}")
    click.echo(f"{'Grand total':>50s}  {inv.grand_total:>12,.2f}")
    click.echo(f"{inv.amount_in_words}")
    click.echo(f"Paid {inv.paid_amount:,.2f} [{inv.status.value}]")


def register_commands(cli):
    """Register invoice commands with main CLI."""
    cli.add_command(invoice_group, name="invoice")
