"""SQLAlchemy models for khata database."""

from datetime import datetime, UTC
from sqlalchemy import (
    Column,
    Integer,
    String,
    ForeignKey,
    DateTime,
    Date,
    Numeric,
    Boolean,
    UniqueConstraint,
    create_engine,
)
from sqlalchemy.orm import declarative_base, relationship, sessionmaker, Session

Base = declarative_base()

MONEY = Numeric(14, 2)
RATE = Numeric(7, 4)


def _now() -> datetime:
    return datetime.now(UTC)


class Customer(Base):
    """Customer party model."""

    __tablename__ = "customers"

    id = Column(Integer, primary_key=True)
    name = Column(String, unique=True, nullable=False)
    opening_balance = Column(MONEY, default=0, nullable=False)
    phone = Column(String, nullable=True)
    email = Column(String, nullable=True)
    state = Column(String, nullable=True)
    gstin = Column(String, nullable=True)
    created_at = Column(DateTime, default=_now, nullable=False)

    transactions = relationship("Transaction", back_populates="customer")


class ExternalEntity(Base):
    """Supplier, lender or other external party model."""

    __tablename__ = "external_entities"

    id = Column(Integer, primary_key=True)
    name = Column(String, unique=True, nullable=False)
    entity_type = Column(String, nullable=False, default="General")
    opening_payable_balance = Column(MONEY, default=0, nullable=False)
    contact_person = Column(String, nullable=True)
    phone = Column(String, nullable=True)
    created_at = Column(DateTime, default=_now, nullable=False)

    transactions = relationship("Transaction", back_populates="entity")


class Product(Base):
    """Product model."""

    __tablename__ = "products"

    id = Column(Integer, primary_key=True)
    name = Column(String, unique=True, nullable=False)
    sku = Column(String, unique=True, nullable=True)
    current_stock = Column(Integer, default=0, nullable=False)
    cost_price = Column(MONEY, default=0, nullable=False)
    sale_price = Column(MONEY, default=0, nullable=False)
    low_stock_threshold = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime, default=_now, nullable=False)
    updated_at = Column(DateTime, default=_now, onupdate=_now, nullable=False)


class Agreement(Base):
    """Financing agreement model.

    ``party_id`` points at a customer for loans given by the business and at an
    external entity otherwise.
    """

    __tablename__ = "agreements"

    id = Column(Integer, primary_key=True)
    party_id = Column(Integer, nullable=False)
    agreement_type = Column(String, nullable=False)
    principal = Column(MONEY, nullable=False)
    interest_rate = Column(RATE, default=0, nullable=False)
    start_date = Column(Date, nullable=False)
    details = Column(String, nullable=True)
    created_at = Column(DateTime, default=_now, nullable=False)


class Invoice(Base):
    """Tax invoice model."""

    __tablename__ = "invoices"

    id = Column(Integer, primary_key=True)
    invoice_number = Column(String, unique=True, nullable=False)
    customer_id = Column(Integer, ForeignKey("customers.id"), nullable=False)
    invoice_date = Column(Date, nullable=False)
    invoice_type = Column(String, nullable=False, default="TAX_INVOICE")
    cgst_rate = Column(RATE, default=0, nullable=False)
    sgst_rate = Column(RATE, default=0, nullable=False)
    igst_rate = Column(RATE, default=0, nullable=False)
    lump_discount = Column(MONEY, default=0, nullable=False)
    subtotal = Column(MONEY, default=0, nullable=False)
    cgst_amount = Column(MONEY, default=0, nullable=False)
    sgst_amount = Column(MONEY, default=0, nullable=False)
    igst_amount = Column(MONEY, default=0, nullable=False)
    returns_value = Column(MONEY, default=0, nullable=False)
    grand_total = Column(MONEY, default=0, nullable=False)
    amount_in_words = Column(String, nullable=True)
    paid_amount = Column(MONEY, default=0, nullable=False)
    status = Column(String, nullable=False, default="Unpaid")
    created_at = Column(DateTime, default=_now, nullable=False)

    line_items = relationship(
        "InvoiceLineItem",
        back_populates="invoice",
        cascade="all, delete-orphan",
        order_by="InvoiceLineItem.id",
    )


class InvoiceLineItem(Base):
    """Invoice line item model."""

    __tablename__ = "invoice_line_items"

    id = Column(Integer, primary_key=True)
    invoice_id = Column(Integer, ForeignKey("invoices.id"), nullable=False)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=True)
    description = Column(String, nullable=False, default="")
    quantity = Column(Integer, nullable=False)
    unit_price = Column(MONEY, nullable=False)
    discount_amount = Column(MONEY, default=0, nullable=False)
    taxable_value = Column(MONEY, nullable=False)

    invoice = relationship("Invoice", back_populates="line_items")


class Transaction(Base):
    """Transaction log model."""

    __tablename__ = "transactions"

    id = Column(Integer, primary_key=True)
    date = Column(Date, nullable=False)
    category = Column(String, nullable=False)
    amount = Column(MONEY, nullable=False)
    description = Column(String, nullable=True)
    customer_id = Column(Integer, ForeignKey("customers.id"), nullable=True)
    entity_id = Column(Integer, ForeignKey("external_entities.id"), nullable=True)
    agreement_id = Column(Integer, ForeignKey("agreements.id"), nullable=True)
    related_invoice_id = Column(Integer, ForeignKey("invoices.id"), nullable=True)
    created_at = Column(DateTime, default=_now, nullable=False)

    customer = relationship("Customer", back_populates="transactions")
    entity = relationship("ExternalEntity", back_populates="transactions")
    line_items = relationship(
        "TransactionLineItem",
        back_populates="transaction",
        cascade="all, delete-orphan",
        order_by="TransactionLineItem.id",
    )


class TransactionLineItem(Base):
    """Product line of a transaction."""

    __tablename__ = "transaction_line_items"

    id = Column(Integer, primary_key=True)
    transaction_id = Column(Integer, ForeignKey("transactions.id"), nullable=False)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(MONEY, nullable=False)

    transaction = relationship("Transaction", back_populates="line_items")


class ChitGroup(Base):
    """Chit fund group model."""

    __tablename__ = "chit_groups"

    id = Column(Integer, primary_key=True)
    name = Column(String, unique=True, nullable=False)
    chit_value = Column(MONEY, nullable=False)
    monthly_contribution = Column(MONEY, nullable=False)
    member_count = Column(Integer, nullable=False)
    duration_months = Column(Integer, nullable=False)
    commission_percent = Column(RATE, default=0, nullable=False)
    start_date = Column(Date, nullable=False)

    members = relationship("ChitMember", back_populates="group", cascade="all, delete-orphan")


class ChitMember(Base):
    """Chit group membership model."""

    __tablename__ = "chit_members"

    id = Column(Integer, primary_key=True)
    group_id = Column(Integer, ForeignKey("chit_groups.id"), nullable=False)
    customer_id = Column(Integer, ForeignKey("customers.id"), nullable=False)
    is_prized = Column(Boolean, default=False, nullable=False)
    prized_month = Column(Integer, nullable=True)

    __table_args__ = (UniqueConstraint("group_id", "customer_id", name="uq_chit_member"),)

    group = relationship("ChitGroup", back_populates="members")


class ChitAuction(Base):
    """Settled chit auction round."""

    __tablename__ = "chit_auctions"

    id = Column(Integer, primary_key=True)
    group_id = Column(Integer, ForeignKey("chit_groups.id"), nullable=False)
    auction_month = Column(Integer, nullable=False)
    auction_date = Column(Date, nullable=False)
    winning_bid_discount = Column(MONEY, nullable=False)
    foreman_commission = Column(MONEY, nullable=False)
    dividend_amount = Column(MONEY, nullable=False)
    net_contribution = Column(MONEY, nullable=False)
    payout_amount = Column(MONEY, nullable=False)
    prized_customer_id = Column(Integer, ForeignKey("customers.id"), nullable=False)

    __table_args__ = (UniqueConstraint("group_id", "auction_month", name="uq_chit_auction_month"),)


def create_session_factory(database_url: str) -> sessionmaker[Session]:
    """Create a SQLAlchemy session factory."""
    engine = create_engine(database_url, echo=False)
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine)
