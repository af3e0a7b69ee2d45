"""Abstract database interface."""

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from datetime import date
from decimal import Decimal
from typing import Iterable, Optional

# Import entities directly to avoid circular import through domain/__init__.py
from khata.domain.entities import (
    Agreement,
    ChitGroup,
    ChitMember,
    Customer,
    ExternalEntity,
    Invoice,
    InvoiceLineItem,
    LineItem,
    Product,
    Transaction,
)


class Database(ABC):
    """Abstract database interface for khata.

    Writes commit immediately unless they run inside ``unit_of_work()``, in
    which case the whole block commits or rolls back together.
    """

    @abstractmethod
    def connect(self) -> None:
        """Connect to the database."""
        pass

    @abstractmethod
    def disconnect(self) -> None:
        """Disconnect from the database."""
        pass

    @abstractmethod
    def initialize_schema(self) -> None:
        """Initialize database schema (create tables)."""
        pass

    @abstractmethod
    def unit_of_work(self) -> AbstractContextManager[None]:
        """Return a context manager that makes every write inside it atomic."""
        pass

    # Customer operations
    @abstractmethod
    def create_customer(
        self,
        name: str,
        opening_balance: Decimal = Decimal("0"),
        phone: Optional[str] = None,
        email: Optional[str] = None,
        state: Optional[str] = None,
        gstin: Optional[str] = None,
    ) -> int:
        """Create a customer. Returns customer ID."""
        pass

    @abstractmethod
    def get_customer(self, customer_id: int) -> Optional[Customer]:
        """Get customer by ID."""
        pass

    @abstractmethod
    def get_customer_by_name(self, name: str) -> Optional[Customer]:
        """Get customer by name."""
        pass

    @abstractmethod
    def list_customers(self) -> list[Customer]:
        """List all customers."""
        pass

    # External entity operations
    @abstractmethod
    def create_external_entity(
        self,
        name: str,
        entity_type: str,
        opening_payable_balance: Decimal = Decimal("0"),
        contact_person: Optional[str] = None,
        phone: Optional[str] = None,
    ) -> int:
        """Create an external entity. Returns entity ID."""
        pass

    @abstractmethod
    def get_external_entity(self, entity_id: int) -> Optional[ExternalEntity]:
        """Get external entity by ID."""
        pass

    @abstractmethod
    def get_external_entity_by_name(self, name: str) -> Optional[ExternalEntity]:
        """Get external entity by name."""
        pass

    @abstractmethod
    def list_external_entities(self, entity_type: Optional[str] = None) -> list[ExternalEntity]:
        """List external entities, optionally filtered by type."""
        pass

    # Product operations
    @abstractmethod
    def create_product(
        self,
        name: str,
        cost_price: Decimal,
        sale_price: Decimal,
        current_stock: int = 0,
        low_stock_threshold: int = 0,
        sku: Optional[str] = None,
    ) -> int:
        """Create a product. Returns product ID."""
        pass

    @abstractmethod
    def get_product(self, product_id: int) -> Optional[Product]:
        """Get product by ID."""
        pass

    @abstractmethod
    def list_products(self) -> list[Product]:
        """List all products."""
        pass

    @abstractmethod
    def adjust_product_stock(self, product_id: int, delta: int) -> Optional[int]:
        """Add ``delta`` to a product's stock. Returns the new stock, or None if missing."""
        pass

    # Transaction operations
    @abstractmethod
    def create_transaction(
        self,
        date: date,
        category: str,
        amount: Decimal,
        description: Optional[str] = None,
        customer_id: Optional[int] = None,
        entity_id: Optional[int] = None,
        agreement_id: Optional[int] = None,
        related_invoice_id: Optional[int] = None,
        line_items: Iterable[LineItem] = (),
    ) -> int:
        """Create a transaction with its line items. Returns transaction ID."""
        pass

    @abstractmethod
    def get_transaction(self, transaction_id: int) -> Optional[Transaction]:
        """Get transaction by ID, including line items."""
        pass

    @abstractmethod
    def update_transaction(
        self,
        transaction_id: int,
        date: date,
        category: str,
        amount: Decimal,
        description: Optional[str],
        customer_id: Optional[int],
        entity_id: Optional[int],
        agreement_id: Optional[int],
        related_invoice_id: Optional[int],
    ) -> None:
        """Rewrite every header field of a transaction."""
        pass

    @abstractmethod
    def delete_transaction(self, transaction_id: int) -> None:
        """Delete a transaction and its line items."""
        pass

    @abstractmethod
    def list_transactions(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        customer_id: Optional[int] = None,
        entity_id: Optional[int] = None,
        agreement_id: Optional[int] = None,
        related_invoice_id: Optional[int] = None,
        categories: Optional[Iterable[str]] = None,
    ) -> list[Transaction]:
        """List transactions with optional filters, ordered by date then ID.

        Args:
            start_date: Optional inclusive start date
            end_date: Optional inclusive end date
            customer_id: Optional customer filter
            entity_id: Optional external entity filter
            agreement_id: Optional agreement filter
            related_invoice_id: Optional invoice filter
            categories: Optional set of category names to include
        """
        pass

    @abstractmethod
    def transaction_exists(self, category: str, on_date: date) -> bool:
        """Check whether a transaction with the category exists on a date."""
        pass

    # Agreement operations
    @abstractmethod
    def create_agreement(
        self,
        party_id: int,
        agreement_type: str,
        principal: Decimal,
        interest_rate: Decimal,
        start_date: date,
        details: Optional[str] = None,
    ) -> int:
        """Create an agreement. Returns agreement ID."""
        pass

    @abstractmethod
    def get_agreement(self, agreement_id: int) -> Optional[Agreement]:
        """Get agreement by ID."""
        pass

    @abstractmethod
    def list_agreements(self, party_id: Optional[int] = None) -> list[Agreement]:
        """List agreements, optionally filtered by party."""
        pass

    # Invoice operations
    @abstractmethod
    def create_invoice(
        self,
        invoice_number: str,
        customer_id: int,
        invoice_date: date,
        invoice_type: str,
        line_items: Iterable[InvoiceLineItem],
        cgst_rate: Decimal,
        sgst_rate: Decimal,
        igst_rate: Decimal,
        lump_discount: Decimal,
        subtotal: Decimal,
        cgst_amount: Decimal,
        sgst_amount: Decimal,
        igst_amount: Decimal,
        returns_value: Decimal,
        grand_total: Decimal,
        amount_in_words: str,
        status: str,
    ) -> int:
        """Create an invoice with its line items. Returns invoice ID."""
        pass

    @abstractmethod
    def get_invoice(self, invoice_id: int) -> Optional[Invoice]:
        """Get invoice by ID, including line items."""
        pass

    @abstractmethod
    def get_invoice_by_number(self, invoice_number: str) -> Optional[Invoice]:
        """Get invoice by invoice number."""
        pass

    @abstractmethod
    def list_invoices(self, customer_id: Optional[int] = None) -> list[Invoice]:
        """List invoices, optionally filtered by customer."""
        pass

    @abstractmethod
    def adjust_invoice_paid_amount(self, invoice_id: int, delta: Decimal) -> Optional[Decimal]:
        """Add ``delta`` to an invoice's paid amount. Returns the new value, or None if missing."""
        pass

    @abstractmethod
    def set_invoice_status(self, invoice_id: int, status: str) -> None:
        """Set an invoice's payment status."""
        pass

    @abstractmethod
    def update_invoice(
        self,
        invoice_id: int,
        invoice_date: date,
        line_items: Iterable[InvoiceLineItem],
        cgst_rate: Decimal,
        sgst_rate: Decimal,
        igst_rate: Decimal,
        lump_discount: Decimal,
        subtotal: Decimal,
        cgst_amount: Decimal,
        sgst_amount: Decimal,
        igst_amount: Decimal,
        returns_value: Decimal,
        grand_total: Decimal,
        amount_in_words: str,
    ) -> None:
        """Replace an invoice's date, rates, totals and line items."""
        pass

    @abstractmethod
    def delete_invoice(self, invoice_id: int) -> None:
        """Delete an invoice and its line items."""
        pass

    # Chit fund operations
    @abstractmethod
    def create_chit_group(
        self,
        name: str,
        chit_value: Decimal,
        monthly_contribution: Decimal,
        member_count: int,
        duration_months: int,
        commission_percent: Decimal,
        start_date: date,
    ) -> int:
        """Create a chit group. Returns group ID."""
        pass

    @abstractmethod
    def get_chit_group(self, group_id: int) -> Optional[ChitGroup]:
        """Get chit group by ID."""
        pass

    @abstractmethod
    def list_chit_groups(self) -> list[ChitGroup]:
        """List all chit groups."""
        pass

    @abstractmethod
    def add_chit_member(self, group_id: int, customer_id: int) -> int:
        """Add a customer to a chit group. Returns membership ID."""
        pass

    @abstractmethod
    def list_chit_members(self, group_id: int) -> list[ChitMember]:
        """List members of a chit group."""
        pass

    @abstractmethod
    def mark_chit_member_prized(self, group_id: int, customer_id: int, auction_month: int) -> None:
        """Flag a member as prized in an auction month."""
        pass

    @abstractmethod
    def chit_auction_exists(self, group_id: int, auction_month: int) -> bool:
        """Check whether an auction is already recorded for a month."""
        pass

    @abstractmethod
    def record_chit_auction(
        self,
        group_id: int,
        auction_month: int,
        auction_date: date,
        winning_bid_discount: Decimal,
        foreman_commission: Decimal,
        dividend_amount: Decimal,
        net_contribution: Decimal,
        payout_amount: Decimal,
        prized_customer_id: int,
    ) -> int:
        """Record a settled auction round. Returns auction ID."""
        pass
