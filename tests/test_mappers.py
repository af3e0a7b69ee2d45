"""Tests for database mappers."""

from datetime import datetime, date, UTC
from decimal import Decimal

from khata.database.models import (
    Customer as ORMCustomer,
    ExternalEntity as ORMExternalEntity,
    Agreement as ORMAgreement,
    Invoice as ORMInvoice,
    InvoiceLineItem as ORMInvoiceLineItem,
    Transaction as ORMTransaction,
    TransactionLineItem as ORMTransactionLineItem,
)
from khata.database.mappers import (
    agreement_to_domain,
    customer_to_domain,
    external_entity_to_domain,
    invoice_to_domain,
    transaction_to_domain,
)
from khata.domain.entities import (
    AgreementType,
    Customer,
    EntityType,
    InvoiceStatus,
    InvoiceType,
    LineItem,
    Transaction,
)


class TestCustomerMapper:
    """Tests for Customer mapper."""

    def test_customer_to_domain(self):
        """Test converting ORM Customer to domain Customer."""
        orm_customer = ORMCustomer(
            id=1,
            name="Ravi",
            opening_balance=Decimal("250.00"),
            state="Karnataka",
            created_at=datetime.now(UTC),
        )
        customer = customer_to_domain(orm_customer)

        assert isinstance(customer, Customer)
        assert customer.id == 1
        assert customer.opening_balance == Decimal("250.00")
        assert customer.state == "Karnataka"
        assert customer.created_at == orm_customer.created_at

    def test_missing_opening_balance_is_zero(self):
        """Unflushed rows have no column defaults yet."""
        customer = customer_to_domain(ORMCustomer(id=2, name="New", created_at=datetime.now(UTC)))
        assert customer.opening_balance == Decimal("0")


def test_external_entity_type_becomes_enum():
    orm_entity = ORMExternalEntity(
        id=3,
        name="City Bank",
        entity_type="Lender",
        opening_payable_balance=Decimal("0"),
        created_at=datetime.now(UTC),
    )
    assert external_entity_to_domain(orm_entity).entity_type == EntityType.LENDER


class TestTransactionMapper:
    """Tests for Transaction mapper."""

    def test_transaction_with_line_items(self):
        orm_txn = ORMTransaction(
            id=10,
            date=date(2024, 1, 15),
            category="Sale to Customer (Cash)",
            amount=Decimal("1000.00"),
            customer_id=1,
            line_items=[
                ORMTransactionLineItem(product_id=4, quantity=2, unit_price=Decimal("500.00"))
            ],
        )

        txn = transaction_to_domain(orm_txn)

        assert isinstance(txn, Transaction)
        assert txn.party_user_id == 1
        assert txn.party_lender_id is None
        assert txn.line_items == (LineItem(product_id=4, quantity=2, unit_price=Decimal("500.00")),)


def test_agreement_rate_maps_to_monthly_percent():
    orm_agreement = ORMAgreement(
        id=1,
        party_id=3,
        agreement_type="loan_taken_by_biz",
        principal=Decimal("12000.00"),
        interest_rate=Decimal("2.0000"),
        start_date=date(2024, 1, 1),
    )

    agreement = agreement_to_domain(orm_agreement)

    assert agreement.agreement_type == AgreementType.LOAN_TAKEN_BY_BIZ
    assert agreement.interest_rate_percent_per_month == Decimal("2")


def test_invoice_to_domain():
    orm_invoice = ORMInvoice(
        id=7,
        invoice_number="INV-001",
        customer_id=1,
        invoice_date=date(2024, 1, 15),
        invoice_type="TAX_INVOICE",
        cgst_rate=Decimal("2.5"),
        sgst_rate=Decimal("2.5"),
        igst_rate=Decimal("0"),
        lump_discount=Decimal("0"),
        subtotal=Decimal("1000.00"),
        cgst_amount=Decimal("25.00"),
        sgst_amount=Decimal("25.00"),
        igst_amount=Decimal("0"),
        returns_value=Decimal("0"),
        grand_total=Decimal("1050.00"),
        amount_in_words=None,
        paid_amount=Decimal("400.00"),
        status="Partially Paid",
        line_items=[
            ORMInvoiceLineItem(
                quantity=2,
                unit_price=Decimal("500.00"),
                discount_amount=Decimal("0"),
                taxable_value=Decimal("1000.00"),
                description="Widget",
            )
        ],
    )

    invoice = invoice_to_domain(orm_invoice)

    assert invoice.invoice_type == InvoiceType.TAX_INVOICE
    assert invoice.status == InvoiceStatus.PARTIALLY_PAID
    assert invoice.amount_in_words == ""
    assert invoice.line_items[0].product_id is None
    assert invoice.line_items[0].description == "Widget"
