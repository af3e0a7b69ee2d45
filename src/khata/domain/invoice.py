"""Invoice totals, GST rate selection and the invoice workflow."""

import logging
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional

from khata.database.base import Database
from khata.domain.effects import ZERO
from khata.domain.entities import (
    Invoice,
    InvoiceLineItem,
    InvoiceStatus,
    InvoiceTotals,
    InvoiceType,
    LineItem,
    Transaction,
    TransactionDraft,
)
from khata.domain.errors import (
    ConflictError,
    NotFoundError,
    ValidationError,
    customer_not_found,
    invoice_not_found,
)
from khata.domain.taxonomy import DEFAULT_TAXONOMY, CategoryKey, CategoryTaxonomy, PaymentMode
from khata.domain.transaction import INVOICE_PAYMENT_GROUPS, TransactionService
from khata.utils.amount_words import amount_in_words

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")

SALE_CATEGORY = CategoryKey("Sale to Customer", PaymentMode.ON_CREDIT)
CREDIT_NOTE_CATEGORY = CategoryKey("Product Return from Customer", PaymentMode.CREDIT_NOTE)
PAYMENT_BASE = "Payment Received from Customer"
REFUND_BASE = "Product Return from Customer"

_REFUND_MODES = {PaymentMode.CASH: PaymentMode.REFUND_VIA_CASH, PaymentMode.BANK: PaymentMode.REFUND_VIA_BANK}


def _cents(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def compute_totals(
    line_items: Iterable[InvoiceLineItem],
    cgst_rate: Decimal = ZERO,
    sgst_rate: Decimal = ZERO,
    igst_rate: Decimal = ZERO,
    lump_discount: Decimal = ZERO,
) -> InvoiceTotals:
    """Compute invoice totals.

    Lines with negative quantity are embedded returns: they are summed into
    ``returns_value`` and are not taxed. IGST and CGST/SGST are mutually
    exclusive; a positive IGST rate zeroes the other two.

    Args:
        line_items: Invoice lines
        cgst_rate: CGST percent
        sgst_rate: SGST percent
        igst_rate: IGST percent
        lump_discount: Discount taken off the whole invoice

    Returns:
        InvoiceTotals with every amount rounded to cents
    """
    subtotal = ZERO
    returns_value = ZERO
    for item in line_items:
        if item.quantity >= 0:
            subtotal += item.taxable_value
        else:
            returns_value += item.taxable_value

    igst_rate = Decimal(igst_rate)
    if igst_rate > 0:
        igst = _cents(subtotal * igst_rate / 100)
        cgst = sgst = ZERO
    else:
        igst = ZERO
        cgst = _cents(subtotal * Decimal(cgst_rate) / 100)
        sgst = _cents(subtotal * Decimal(sgst_rate) / 100)

    subtotal = _cents(subtotal)
    returns_value = _cents(returns_value)
    grand_total = subtotal + cgst + sgst + igst - Decimal(lump_discount) - abs(returns_value)
    grand_total = _cents(grand_total)

    return InvoiceTotals(
        subtotal=subtotal,
        cgst=_cents(cgst),
        sgst=_cents(sgst),
        igst=_cents(igst),
        returns_value=returns_value,
        grand_total=grand_total,
        amount_in_words=amount_in_words(grand_total),
    )


def _same_state(first: Optional[str], second: Optional[str]) -> bool:
    if not first or not second:
        return True
    return first.strip().casefold() == second.strip().casefold()


def select_tax_rates(
    business_state: Optional[str], customer_state: Optional[str], gst_rate: Decimal
) -> tuple[Decimal, Decimal, Decimal]:
    """Split a GST rate into (cgst, sgst, igst) rates.

    Same state splits the rate evenly into CGST and SGST; different states
    charge the full rate as IGST. An unknown state on either side is treated
    as intra-state.
    """
    gst_rate = Decimal(gst_rate)
    if _same_state(business_state, customer_state):
        half = gst_rate / 2
        return half, half, ZERO
    return ZERO, ZERO, gst_rate


class InvoiceService:
    """Service for tax invoices and credit notes."""

    def __init__(
        self,
        db: Database,
        business_state: Optional[str] = None,
        taxonomy: CategoryTaxonomy = DEFAULT_TAXONOMY,
    ):
        """Initialize invoice service.

        Args:
            db: Database instance
            business_state: Registered state of the business
            taxonomy: Category taxonomy for emitted transactions
        """
        self.db = db
        self.business_state = business_state
        self.taxonomy = taxonomy
        self.transactions = TransactionService(db, taxonomy)

    def next_credit_note_number(self, on_date: date) -> str:
        """Next credit note number for the month, e.g. ``CN-202401-0003``."""
        prefix = f"CN-{on_date.year:04d}{on_date.month:02d}-"
        last = 0
        for invoice in self.db.list_invoices():
            if invoice.invoice_number.startswith(prefix):
                suffix = invoice.invoice_number[len(prefix):]
                if suffix.isdigit():
                    last = max(last, int(suffix))
        return f"{prefix}{last + 1:04d}"

    def create_invoice(
        self,
        customer_id: int,
        invoice_date: date,
        line_items: Iterable[InvoiceLineItem],
        invoice_number: Optional[str] = None,
        invoice_type: InvoiceType = InvoiceType.TAX_INVOICE,
        gst_rate: Decimal = ZERO,
        lump_discount: Decimal = ZERO,
        payment_amount: Decimal = ZERO,
        payment_mode: Optional[PaymentMode] = None,
    ) -> Invoice:
        """Save an invoice and post its transactions.

        A tax invoice posts a credit sale carrying the product lines. A sales
        return posts a credit note stored negative. A payment taken now posts
        a payment linked to the invoice (or a refund for a sales return).
        Everything commits together.

        Raises:
            ValidationError: If required fields are missing or invalid
            NotFoundError: If the customer does not exist
            ConflictError: If the invoice number is already used
        """
        invoice_type = InvoiceType(invoice_type)
        is_return = invoice_type == InvoiceType.SALES_RETURN

        customer = self.db.get_customer(customer_id)
        if customer is None:
            raise NotFoundError(customer_not_found(customer_id))

        items = self._prepare_items(line_items, is_return)

        if is_return and invoice_number is None:
            invoice_number = self.next_credit_note_number(invoice_date)
        if not invoice_number:
            raise ValidationError("Invoice number is required")
        if self.db.get_invoice_by_number(invoice_number) is not None:
            raise ConflictError(f"An invoice or credit note with number '{invoice_number}' already exists")

        payment_amount = Decimal(payment_amount)
        if payment_amount < 0:
            raise ValidationError("Payment amount cannot be negative")
        if payment_amount > 0 and payment_mode is None:
            raise ValidationError("A payment mode is required when a payment is taken")

        cgst_rate, sgst_rate, igst_rate = select_tax_rates(
            self.business_state, customer.state, gst_rate
        )
        totals = compute_totals(items, cgst_rate, sgst_rate, igst_rate, lump_discount)

        with self.db.unit_of_work():
            invoice_id = self.db.create_invoice(
                invoice_number=invoice_number,
                customer_id=customer_id,
                invoice_date=invoice_date,
                invoice_type=invoice_type.value,
                line_items=items,
                cgst_rate=cgst_rate,
                sgst_rate=sgst_rate,
                igst_rate=igst_rate,
                lump_discount=Decimal(lump_discount),
                subtotal=totals.subtotal,
                cgst_amount=totals.cgst,
                sgst_amount=totals.sgst,
                igst_amount=totals.igst,
                returns_value=totals.returns_value,
                grand_total=totals.grand_total,
                amount_in_words=totals.amount_in_words,
                status=InvoiceStatus.UNPAID.value,
            )
            self._post_document(invoice_id, invoice_number, customer_id, invoice_date, items, totals, is_return)
            if payment_amount > 0:
                self._post_payment(
                    invoice_id, invoice_number, customer_id, invoice_date,
                    payment_amount, PaymentMode(payment_mode), is_return,
                )

        logger.info(
            "Created %s %s for customer %s: %s",
            invoice_type.value,
            invoice_number,
            customer_id,
            totals.grand_total,
        )
        return self.db.get_invoice(invoice_id)

    def update_invoice(
        self,
        invoice_id: int,
        line_items: Iterable[InvoiceLineItem],
        invoice_date: Optional[date] = None,
        gst_rate: Decimal = ZERO,
        lump_discount: Decimal = ZERO,
    ) -> Invoice:
        """Rewrite an invoice's lines and totals and re-post its transactions.

        Every linked transaction is deleted, which reverses its stock and
        paid-amount effects. The document posting is then made again from the
        new totals, and earlier payments or refunds are recorded again with
        their original dates and amounts. Number, customer and type are kept.

        Raises:
            NotFoundError: If the invoice does not exist
            ValidationError: If the new line items are invalid
        """
        invoice = self.get_invoice(invoice_id)
        is_return = invoice.invoice_type == InvoiceType.SALES_RETURN
        invoice_date = invoice_date or invoice.invoice_date
        items = self._prepare_items(line_items, is_return)

        customer = self.db.get_customer(invoice.customer_id)
        cgst_rate, sgst_rate, igst_rate = select_tax_rates(
            self.business_state, customer.state if customer else None, gst_rate
        )
        totals = compute_totals(items, cgst_rate, sgst_rate, igst_rate, lump_discount)

        with self.db.unit_of_work():
            linked = self.db.list_transactions(related_invoice_id=invoice_id)
            payments = [
                t for t in linked
                if self.taxonomy.require(t.category).group in INVOICE_PAYMENT_GROUPS
            ]
            for txn in linked:
                self.transactions.delete_transaction(txn.id)

            self.db.update_invoice(
                invoice_id,
                invoice_date=invoice_date,
                line_items=items,
                cgst_rate=cgst_rate,
                sgst_rate=sgst_rate,
                igst_rate=igst_rate,
                lump_discount=Decimal(lump_discount),
                subtotal=totals.subtotal,
                cgst_amount=totals.cgst,
                sgst_amount=totals.sgst,
                igst_amount=totals.igst,
                returns_value=totals.returns_value,
                grand_total=totals.grand_total,
                amount_in_words=totals.amount_in_words,
            )
            self._post_document(
                invoice_id, invoice.invoice_number, invoice.customer_id, invoice_date,
                items, totals, is_return,
            )
            for payment in payments:
                self.transactions.create_transaction(
                    TransactionDraft(
                        date=payment.date,
                        category=payment.category,
                        amount=payment.amount,
                        description=payment.description,
                        party_user_id=payment.party_user_id,
                        related_invoice_id=invoice_id,
                    )
                )

            updated = self.db.get_invoice(invoice_id)
            status = InvoiceStatus.for_amounts(updated.paid_amount, updated.grand_total)
            self.db.set_invoice_status(invoice_id, status.value)

        logger.info(
            "Updated %s %s: %s", invoice.invoice_type.value, invoice.invoice_number, totals.grand_total
        )
        return self.db.get_invoice(invoice_id)

    def delete_invoice(self, invoice_id: int) -> None:
        """Delete an invoice together with every transaction linked to it.

        Deleting the linked transactions reverses their stock movements, so
        products return to the stock they had before the invoice.

        Raises:
            NotFoundError: If the invoice does not exist
        """
        invoice = self.get_invoice(invoice_id)
        with self.db.unit_of_work():
            for txn in self.db.list_transactions(related_invoice_id=invoice_id):
                self.transactions.delete_transaction(txn.id)
            self.db.delete_invoice(invoice_id)

        logger.info("Deleted %s %s", invoice.invoice_type.value, invoice.invoice_number)

    def _prepare_items(
        self, line_items: Iterable[InvoiceLineItem], is_return: bool
    ) -> list[InvoiceLineItem]:
        """Validate lines; returned quantities are stored negative."""
        items = []
        for item in line_items:
            if not isinstance(item.quantity, int) or item.quantity == 0:
                raise ValidationError("Line item quantity must be a non-zero whole number")
            if item.unit_price < 0:
                raise ValidationError("Unit price cannot be negative")
            if is_return and item.quantity > 0:
                item = InvoiceLineItem(
                    quantity=-item.quantity,
                    unit_price=item.unit_price,
                    discount_amount=item.discount_amount,
                    product_id=item.product_id,
                    description=item.description,
                )
            items.append(item)
        if not items:
            raise ValidationError("An invoice needs at least one line item")
        return items

    def _post_document(
        self,
        invoice_id: int,
        invoice_number: str,
        customer_id: int,
        invoice_date: date,
        items: list[InvoiceLineItem],
        totals: InvoiceTotals,
        is_return: bool,
    ) -> None:
        if totals.grand_total == 0:
            return

        if is_return:
            # Credit note lines are stored as returned quantities
            category = CREDIT_NOTE_CATEGORY
            amount = -abs(totals.grand_total)
            description = f"Credit Note for {invoice_number}"
            stock_lines = [
                LineItem(item.product_id, abs(item.quantity), item.unit_price)
                for item in items
                if item.product_id is not None
            ]
        else:
            category = SALE_CATEGORY
            amount = totals.grand_total
            description = f"Invoice {invoice_number}"
            stock_lines = [
                LineItem(item.product_id, item.quantity, item.unit_price)
                for item in items
                if item.product_id is not None
            ]

        self.transactions.record(
            on_date=invoice_date,
            category=self.taxonomy.resolve_key(category).name,
            amount=amount,
            description=description,
            customer_id=customer_id,
            related_invoice_id=invoice_id,
            line_items=stock_lines,
        )

    def _post_payment(
        self,
        invoice_id: int,
        invoice_number: str,
        customer_id: int,
        on_date: date,
        amount: Decimal,
        mode: PaymentMode,
        is_return: bool,
    ) -> Transaction:
        if mode not in _REFUND_MODES:
            raise ValidationError(f"Payments are taken in Cash or Bank, not '{mode.value}'")
        if is_return:
            key = CategoryKey(REFUND_BASE, _REFUND_MODES[mode])
            description = f"Refund for {invoice_number}"
        else:
            key = CategoryKey(PAYMENT_BASE, mode)
            description = f"Payment for Invoice {invoice_number}"
        return self.transactions.record(
            on_date=on_date,
            category=self.taxonomy.resolve_key(key).name,
            amount=amount,
            description=description,
            customer_id=customer_id,
            related_invoice_id=invoice_id,
        )

    def record_payment(
        self,
        invoice_id: int,
        amount: Decimal,
        on_date: date,
        mode: PaymentMode = PaymentMode.CASH,
    ) -> Transaction:
        """Record a later payment against an invoice.

        Raises:
            NotFoundError: If the invoice does not exist
            ValidationError: If the amount is not positive
        """
        invoice = self.get_invoice(invoice_id)
        amount = Decimal(amount)
        if amount <= 0:
            raise ValidationError("Payment amount must be positive")
        return self._post_payment(
            invoice.id,
            invoice.invoice_number,
            invoice.customer_id,
            on_date,
            amount,
            PaymentMode(mode),
            invoice.invoice_type == InvoiceType.SALES_RETURN,
        )

    def get_invoice(self, invoice_id: int) -> Invoice:
        """Get invoice by ID.

        Raises:
            NotFoundError: If the invoice does not exist
        """
        invoice = self.db.get_invoice(invoice_id)
        if invoice is None:
            raise NotFoundError(invoice_not_found(invoice_id))
        return invoice

    def list_invoices(self, customer_id: Optional[int] = None) -> list[Invoice]:
        """List invoices, newest first."""
        return self.db.list_invoices(customer_id=customer_id)
