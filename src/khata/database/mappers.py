"""Mapper functions to convert between domain models and SQLAlchemy models.

This layer isolates the conversion logic, so the domain entities stay stable
when the database schema changes.
"""

from decimal import Decimal

from khata.domain import entities as domain
from khata.database.models import (
    Agreement as ORMAgreement,
    ChitGroup as ORMChitGroup,
    ChitMember as ORMChitMember,
    Customer as ORMCustomer,
    ExternalEntity as ORMExternalEntity,
    Invoice as ORMInvoice,
    Product as ORMProduct,
    Transaction as ORMTransaction,
)


def _money(value) -> Decimal:
    return Decimal("0") if value is None else Decimal(value)


def customer_to_domain(orm_customer: ORMCustomer) -> domain.Customer:
    """Convert SQLAlchemy Customer model to domain Customer entity."""
    return domain.Customer(
        id=orm_customer.id,
        name=orm_customer.name,
        opening_balance=_money(orm_customer.opening_balance),
        created_at=orm_customer.created_at,
        phone=orm_customer.phone,
        email=orm_customer.email,
        state=orm_customer.state,
        gstin=orm_customer.gstin,
    )


def external_entity_to_domain(orm_entity: ORMExternalEntity) -> domain.ExternalEntity:
    """Convert SQLAlchemy ExternalEntity model to domain ExternalEntity entity."""
    return domain.ExternalEntity(
        id=orm_entity.id,
        name=orm_entity.name,
        entity_type=domain.EntityType(orm_entity.entity_type),
        opening_payable_balance=_money(orm_entity.opening_payable_balance),
        created_at=orm_entity.created_at,
        contact_person=orm_entity.contact_person,
        phone=orm_entity.phone,
    )


def product_to_domain(orm_product: ORMProduct) -> domain.Product:
    """Convert SQLAlchemy Product model to domain Product entity."""
    return domain.Product(
        id=orm_product.id,
        name=orm_product.name,
        current_stock=orm_product.current_stock,
        cost_price=_money(orm_product.cost_price),
        sale_price=_money(orm_product.sale_price),
        low_stock_threshold=orm_product.low_stock_threshold,
        sku=orm_product.sku,
    )


def transaction_to_domain(orm_transaction: ORMTransaction) -> domain.Transaction:
    """Convert SQLAlchemy Transaction model (with line items) to domain Transaction entity."""
    return domain.Transaction(
        id=orm_transaction.id,
        date=orm_transaction.date,
        category=orm_transaction.category,
        amount=_money(orm_transaction.amount),
        description=orm_transaction.description,
        party_user_id=orm_transaction.customer_id,
        party_lender_id=orm_transaction.entity_id,
        agreement_id=orm_transaction.agreement_id,
        related_invoice_id=orm_transaction.related_invoice_id,
        line_items=tuple(
            domain.LineItem(
                product_id=item.product_id,
                quantity=item.quantity,
                unit_price=_money(item.unit_price),
            )
            for item in orm_transaction.line_items
        ),
        created_at=orm_transaction.created_at,
    )


def agreement_to_domain(orm_agreement: ORMAgreement) -> domain.Agreement:
    """Convert SQLAlchemy Agreement model to domain Agreement entity."""
    return domain.Agreement(
        id=orm_agreement.id,
        party_id=orm_agreement.party_id,
        agreement_type=domain.AgreementType(orm_agreement.agreement_type),
        principal=_money(orm_agreement.principal),
        interest_rate_percent_per_month=_money(orm_agreement.interest_rate),
        start_date=orm_agreement.start_date,
        details=orm_agreement.details,
        created_at=orm_agreement.created_at,
    )


def invoice_to_domain(orm_invoice: ORMInvoice) -> domain.Invoice:
    """Convert SQLAlchemy Invoice model (with line items) to domain Invoice entity."""
    return domain.Invoice(
        id=orm_invoice.id,
        invoice_number=orm_invoice.invoice_number,
        customer_id=orm_invoice.customer_id,
        invoice_date=orm_invoice.invoice_date,
        invoice_type=domain.InvoiceType(orm_invoice.invoice_type),
        line_items=tuple(
            domain.InvoiceLineItem(
                quantity=item.quantity,
                unit_price=_money(item.unit_price),
                discount_amount=_money(item.discount_amount),
                product_id=item.product_id,
                description=item.description,
            )
            for item in orm_invoice.line_items
        ),
        cgst_rate=_money(orm_invoice.cgst_rate),
        sgst_rate=_money(orm_invoice.sgst_rate),
        igst_rate=_money(orm_invoice.igst_rate),
        lump_discount=_money(orm_invoice.lump_discount),
        subtotal=_money(orm_invoice.subtotal),
        cgst_amount=_money(orm_invoice.cgst_amount),
        sgst_amount=_money(orm_invoice.sgst_amount),
        igst_amount=_money(orm_invoice.igst_amount),
        returns_value=_money(orm_invoice.returns_value),
        grand_total=_money(orm_invoice.grand_total),
        amount_in_words=orm_invoice.amount_in_words or "",
        paid_amount=_money(orm_invoice.paid_amount),
        status=domain.InvoiceStatus(orm_invoice.status),
    )


def chit_group_to_domain(orm_group: ORMChitGroup) -> domain.ChitGroup:
    """Convert SQLAlchemy ChitGroup model to domain ChitGroup entity."""
    return domain.ChitGroup(
        id=orm_group.id,
        name=orm_group.name,
        chit_value=_money(orm_group.chit_value),
        monthly_contribution=_money(orm_group.monthly_contribution),
        member_count=orm_group.member_count,
        duration_months=orm_group.duration_months,
        commission_percent=_money(orm_group.commission_percent),
        start_date=orm_group.start_date,
    )


def chit_member_to_domain(orm_member: ORMChitMember) -> domain.ChitMember:
    """Convert SQLAlchemy ChitMember model to domain ChitMember entity."""
    return domain.ChitMember(
        id=orm_member.id,
        group_id=orm_member.group_id,
        customer_id=orm_member.customer_id,
        is_prized=orm_member.is_prized,
        prized_month=orm_member.prized_month,
    )
