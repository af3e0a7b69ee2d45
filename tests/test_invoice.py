"""Tests for invoices, credit notes and GST."""

from datetime import date
from decimal import Decimal

import pytest

from khata.domain.entities import InvoiceLineItem, InvoiceStatus, InvoiceType
from khata.domain.errors import ConflictError, NotFoundError, ValidationError
from khata.domain.invoice import compute_totals, select_tax_rates
from khata.domain.taxonomy import PaymentMode

DAY = date(2024, 1, 15)


def _line(quantity, price, discount="0", product_id=None):
    return InvoiceLineItem(
        quantity=quantity,
        unit_price=Decimal(price),
        discount_amount=Decimal(discount),
        product_id=product_id,
    )


class TestComputeTotals:
    """Tests for invoice arithmetic."""

    def test_intra_state_invoice(self):
        """2 x 500 at 2.5% CGST and 2.5% SGST."""
        totals = compute_totals([_line(2, "500")], Decimal("2.5"), Decimal("2.5"), Decimal("0"))

        assert totals.subtotal == Decimal("1000.00")
        assert totals.cgst == Decimal("25.00")
        assert totals.sgst == Decimal("25.00")
        assert totals.igst == Decimal("0.00")
        assert totals.grand_total == Decimal("1050.00")
        assert totals.amount_in_words == "One Thousand Fifty Rupees Only"

    def test_igst_excludes_cgst_and_sgst(self):
        totals = compute_totals([_line(1, "1000")], Decimal("9"), Decimal("9"), Decimal("18"))

        assert totals.igst == Decimal("180.00")
        assert totals.cgst == Decimal("0.00")
        assert totals.sgst == Decimal("0.00")
        assert totals.grand_total == Decimal("1180.00")

    def test_line_discount_reduces_taxable_value(self):
        totals = compute_totals([_line(2, "500", discount="100")])
        assert totals.subtotal == Decimal("900.00")

    def test_embedded_returns_are_not_taxed(self):
        totals = compute_totals(
            [_line(2, "500"), _line(-1, "200")], Decimal("2.5"), Decimal("2.5")
        )

        assert totals.subtotal == Decimal("1000.00")
        assert totals.returns_value == Decimal("-200.00")
        assert totals.grand_total == Decimal("850.00")

    def test_lump_discount(self):
        totals = compute_totals([_line(1, "1000")], lump_discount=Decimal("50"))
        assert totals.grand_total == Decimal("950.00")

    def test_tax_rounds_to_cents(self):
        totals = compute_totals([_line(1, "333.33")], Decimal("9"), Decimal("9"))
        assert totals.cgst == Decimal("30.00")
        assert totals.grand_total == Decimal("393.33")


class TestSelectTaxRates:
    """Tests for splitting a GST rate by state."""

    def test_same_state_splits_rate(self):
        assert select_tax_rates("Karnataka", "Karnataka", Decimal("18")) == (
            Decimal("9"), Decimal("9"), Decimal("0"),
        )

    def test_state_match_ignores_case_and_spaces(self):
        cgst, sgst, igst = select_tax_rates("Karnataka", " karnataka ", Decimal("5"))
        assert igst == 0
        assert cgst == sgst == Decimal("2.5")

    def test_different_state_is_igst(self):
        assert select_tax_rates("Karnataka", "Delhi", Decimal("18")) == (
            Decimal("0"), Decimal("0"), Decimal("18"),
        )

    @pytest.mark.parametrize("business, customer", [(None, "Delhi"), ("Karnataka", None), ("", "")])
    def test_unknown_state_is_intra_state(self, business, customer):
        cgst, sgst, igst = select_tax_rates(business, customer, Decimal("12"))
        assert (cgst, sgst, igst) == (Decimal("6"), Decimal("6"), Decimal("0"))


class TestInvoiceService:
    """Tests for the invoice workflow."""

    def test_create_invoice_posts_credit_sale(
        self, temp_db, invoice_service, ledger_service, stocked_product, sample_customer
    ):
        invoice = invoice_service.create_invoice(
            customer_id=sample_customer.id,
            invoice_date=DAY,
            invoice_number="INV-001",
            line_items=[_line(2, "500", product_id=stocked_product.id)],
            gst_rate=Decimal("5"),
        )

        assert invoice.grand_total == Decimal("1050.00")
        assert invoice.cgst_rate == Decimal("2.5")
        assert invoice.status == InvoiceStatus.UNPAID
        assert temp_db.get_product(stocked_product.id).current_stock == 8
        assert ledger_service.customer_balance(sample_customer.id) == Decimal("1050.00")

        sale = temp_db.list_transactions(related_invoice_id=invoice.id)
        assert [t.category for t in sale] == ["Sale to Customer (On Credit)"]
        assert sale[0].amount == Decimal("1050.00")

    def test_inter_state_customer_pays_igst(self, invoice_service, party_service):
        customer = party_service.create_customer(name="Delhi Stores", state="Delhi")

        invoice = invoice_service.create_invoice(
            customer_id=customer.id,
            invoice_date=DAY,
            invoice_number="INV-002",
            line_items=[_line(1, "1000")],
            gst_rate=Decimal("18"),
        )

        assert invoice.igst_amount == Decimal("180.00")
        assert invoice.cgst_amount == Decimal("0.00")

    def test_payment_taken_with_invoice(
        self, invoice_service, ledger_service, sample_customer
    ):
        invoice = invoice_service.create_invoice(
            customer_id=sample_customer.id,
            invoice_date=DAY,
            invoice_number="INV-003",
            line_items=[_line(2, "500")],
            gst_rate=Decimal("5"),
            payment_amount=Decimal("1050"),
            payment_mode=PaymentMode.BANK,
        )

        assert invoice.paid_amount == Decimal("1050.00")
        assert invoice.status == InvoiceStatus.PAID
        assert ledger_service.bank_balance() == Decimal("1050.00")
        assert ledger_service.customer_balance(sample_customer.id) == Decimal("0.00")

    def test_later_payments_update_status(self, invoice_service, sample_customer):
        invoice = invoice_service.create_invoice(
            customer_id=sample_customer.id,
            invoice_date=DAY,
            invoice_number="INV-004",
            line_items=[_line(1, "1000")],
        )

        invoice_service.record_payment(invoice.id, Decimal("400"), DAY)
        assert invoice_service.get_invoice(invoice.id).status == InvoiceStatus.PARTIALLY_PAID

        invoice_service.record_payment(invoice.id, Decimal("600"), DAY, PaymentMode.BANK)
        paid = invoice_service.get_invoice(invoice.id)
        assert paid.status == InvoiceStatus.PAID
        assert paid.paid_amount == Decimal("1000.00")

    def test_sales_return_creates_credit_note(
        self, temp_db, invoice_service, ledger_service, stocked_product, sample_customer
    ):
        note = invoice_service.create_invoice(
            customer_id=sample_customer.id,
            invoice_date=DAY,
            invoice_type=InvoiceType.SALES_RETURN,
            line_items=[_line(1, "500", product_id=stocked_product.id)],
            payment_amount=Decimal("500"),
            payment_mode=PaymentMode.CASH,
        )

        assert note.invoice_number == "CN-202401-0001"
        assert note.grand_total == Decimal("-500.00")
        assert note.amount_in_words.startswith("MINUS Five Hundred")
        assert note.paid_amount == Decimal("500.00")
        assert note.status == InvoiceStatus.PAID
        assert temp_db.get_product(stocked_product.id).current_stock == 11
        assert ledger_service.cash_balance() == Decimal("-500")
        assert ledger_service.customer_balance(sample_customer.id) == Decimal("0.00")

        posted = {t.category: t.amount for t in temp_db.list_transactions(related_invoice_id=note.id)}
        assert posted == {
            "Product Return from Customer (Credit Note)": Decimal("-500.00"),
            "Product Return from Customer (Refund via Cash)": Decimal("500.00"),
        }

    def test_credit_note_numbers_increase_within_month(self, invoice_service, sample_customer):
        numbers = [
            invoice_service.create_invoice(
                customer_id=sample_customer.id,
                invoice_date=DAY,
                invoice_type=InvoiceType.SALES_RETURN,
                line_items=[_line(1, "100")],
            ).invoice_number
            for _ in range(2)
        ]
        assert numbers == ["CN-202401-0001", "CN-202401-0002"]
        assert invoice_service.next_credit_note_number(date(2024, 2, 1)) == "CN-202402-0001"

    def test_duplicate_number(self, invoice_service, sample_customer):
        invoice_service.create_invoice(
            customer_id=sample_customer.id,
            invoice_date=DAY,
            invoice_number="INV-005",
            line_items=[_line(1, "100")],
        )
        with pytest.raises(ConflictError):
            invoice_service.create_invoice(
                customer_id=sample_customer.id,
                invoice_date=DAY,
                invoice_number="INV-005",
                line_items=[_line(1, "100")],
            )

    def test_tax_invoice_needs_number(self, invoice_service, sample_customer):
        with pytest.raises(ValidationError, match="required"):
            invoice_service.create_invoice(
                customer_id=sample_customer.id, invoice_date=DAY, line_items=[_line(1, "100")]
            )

    def test_payment_needs_mode(self, invoice_service, sample_customer):
        with pytest.raises(ValidationError, match="payment mode"):
            invoice_service.create_invoice(
                customer_id=sample_customer.id,
                invoice_date=DAY,
                invoice_number="INV-006",
                line_items=[_line(1, "100")],
                payment_amount=Decimal("100"),
            )

    def test_failed_payment_rolls_back_invoice(
        self, temp_db, invoice_service, stocked_product, sample_customer
    ):
        """An invalid payment mode discovered mid-write leaves nothing behind."""
        with pytest.raises(ValidationError):
            invoice_service.create_invoice(
                customer_id=sample_customer.id,
                invoice_date=DAY,
                invoice_number="INV-007",
                line_items=[_line(2, "500", product_id=stocked_product.id)],
                payment_amount=Decimal("100"),
                payment_mode=PaymentMode.ON_CREDIT,
            )

        assert temp_db.get_invoice_by_number("INV-007") is None
        assert temp_db.get_product(stocked_product.id).current_stock == 10
        assert temp_db.list_transactions(customer_id=sample_customer.id) == []

    def test_missing_customer(self, invoice_service):
        with pytest.raises(NotFoundError):
            invoice_service.create_invoice(
                customer_id=999, invoice_date=DAY, invoice_number="X", line_items=[_line(1, "1")]
            )

    def test_missing_invoice(self, invoice_service):
        with pytest.raises(NotFoundError):
            invoice_service.get_invoice(999)

    def test_list_invoices_by_customer(self, invoice_service, party_service, sample_customer):
        other = party_service.create_customer(name="Someone Else")
        for number, customer in (("A-1", sample_customer), ("A-2", other)):
            invoice_service.create_invoice(
                customer_id=customer.id,
                invoice_date=DAY,
                invoice_number=number,
                line_items=[_line(1, "10")],
            )

        invoices = invoice_service.list_invoices(customer_id=other.id)

        assert [i.invoice_number for i in invoices] == ["A-2"]

    def test_partial_refund_settles_part_of_credit_note(self, invoice_service, sample_customer):
        note = invoice_service.create_invoice(
            customer_id=sample_customer.id,
            invoice_date=DAY,
            invoice_type=InvoiceType.SALES_RETURN,
            line_items=[_line(2, "500")],
        )
        assert note.status == InvoiceStatus.UNPAID

        invoice_service.record_payment(note.id, Decimal("400"), DAY, PaymentMode.BANK)
        partly = invoice_service.get_invoice(note.id)
        assert partly.paid_amount == Decimal("400.00")
        assert partly.status == InvoiceStatus.PARTIALLY_PAID

        invoice_service.record_payment(note.id, Decimal("600"), DAY)
        assert invoice_service.get_invoice(note.id).status == InvoiceStatus.PAID


class TestInvoiceEditing:
    """Tests for deleting and rewriting invoices."""

    def test_delete_invoice_restores_stock_and_balances(
        self, temp_db, invoice_service, ledger_service, stocked_product, sample_customer
    ):
        invoice = invoice_service.create_invoice(
            customer_id=sample_customer.id,
            invoice_date=DAY,
            invoice_number="INV-100",
            line_items=[_line(3, "500", product_id=stocked_product.id)],
            payment_amount=Decimal("500"),
            payment_mode=PaymentMode.CASH,
        )
        invoice_service.record_payment(invoice.id, Decimal("200"), DAY, PaymentMode.BANK)
        assert temp_db.get_product(stocked_product.id).current_stock == 7

        invoice_service.delete_invoice(invoice.id)

        assert temp_db.get_invoice(invoice.id) is None
        assert temp_db.list_transactions(related_invoice_id=invoice.id) == []
        assert temp_db.get_product(stocked_product.id).current_stock == 10
        assert ledger_service.cash_balance() == Decimal("0")
        assert ledger_service.bank_balance() == Decimal("0")
        assert ledger_service.customer_balance(sample_customer.id) == Decimal("0")

    def test_delete_credit_note_takes_returned_stock_back_out(
        self, temp_db, invoice_service, stocked_product, sample_customer
    ):
        note = invoice_service.create_invoice(
            customer_id=sample_customer.id,
            invoice_date=DAY,
            invoice_type=InvoiceType.SALES_RETURN,
            line_items=[_line(2, "500", product_id=stocked_product.id)],
            payment_amount=Decimal("1000"),
            payment_mode=PaymentMode.CASH,
        )
        assert temp_db.get_product(stocked_product.id).current_stock == 12

        invoice_service.delete_invoice(note.id)

        assert temp_db.get_product(stocked_product.id).current_stock == 10
        assert temp_db.get_invoice_by_number(note.invoice_number) is None

    def test_delete_missing_invoice(self, invoice_service):
        with pytest.raises(NotFoundError):
            invoice_service.delete_invoice(999)

    def test_update_invoice_reposts_sale_and_keeps_payments(
        self, temp_db, invoice_service, ledger_service, stocked_product, sample_customer
    ):
        invoice = invoice_service.create_invoice(
            customer_id=sample_customer.id,
            invoice_date=DAY,
            invoice_number="INV-101",
            line_items=[_line(2, "500", product_id=stocked_product.id)],
        )
        invoice_service.record_payment(invoice.id, Decimal("1000"), DAY)
        assert invoice_service.get_invoice(invoice.id).status == InvoiceStatus.PAID

        updated = invoice_service.update_invoice(
            invoice.id, line_items=[_line(3, "500", product_id=stocked_product.id)]
        )

        assert updated.id == invoice.id
        assert updated.invoice_number == "INV-101"
        assert updated.grand_total == Decimal("1500.00")
        assert updated.paid_amount == Decimal("1000.00")
        assert updated.status == InvoiceStatus.PARTIALLY_PAID
        assert [item.quantity for item in updated.line_items] == [3]
        assert temp_db.get_product(stocked_product.id).current_stock == 7
        assert ledger_service.cash_balance() == Decimal("1000")
        assert ledger_service.customer_balance(sample_customer.id) == Decimal("500.00")

        posted = sorted(
            (t.category, t.amount) for t in temp_db.list_transactions(related_invoice_id=invoice.id)
        )
        assert posted == [
            ("Payment Received from Customer (Cash)", Decimal("1000.00")),
            ("Sale to Customer (On Credit)", Decimal("1500.00")),
        ]

    def test_update_back_to_original_lines_round_trips(
        self, temp_db, invoice_service, stocked_product, sample_customer
    ):
        lines = [_line(2, "500", product_id=stocked_product.id)]
        invoice = invoice_service.create_invoice(
            customer_id=sample_customer.id,
            invoice_date=DAY,
            invoice_number="INV-102",
            line_items=lines,
            payment_amount=Decimal("300"),
            payment_mode=PaymentMode.BANK,
        )

        invoice_service.update_invoice(invoice.id, line_items=[_line(5, "500", product_id=stocked_product.id)])
        restored = invoice_service.update_invoice(invoice.id, line_items=lines)

        assert restored.grand_total == invoice.grand_total
        assert restored.paid_amount == invoice.paid_amount
        assert restored.status == invoice.status
        assert temp_db.get_product(stocked_product.id).current_stock == 8

    def test_update_with_invalid_lines_changes_nothing(
        self, temp_db, invoice_service, stocked_product, sample_customer
    ):
        invoice = invoice_service.create_invoice(
            customer_id=sample_customer.id,
            invoice_date=DAY,
            invoice_number="INV-103",
            line_items=[_line(2, "500", product_id=stocked_product.id)],
        )

        with pytest.raises(ValidationError):
            invoice_service.update_invoice(invoice.id, line_items=[_line(1, "500", product_id=999)])

        assert temp_db.get_invoice(invoice.id).grand_total == Decimal("1000.00")
        assert temp_db.get_product(stocked_product.id).current_stock == 8
        assert len(temp_db.list_transactions(related_invoice_id=invoice.id)) == 1
