"""Transaction domain service.

Creating or deleting a transaction also moves product stock and invoice paid
amounts. Both directions are driven by the same stock delta table and run in
one unit of work, so a delete is the exact inverse of the create.
"""

import logging
import warnings
from dataclasses import replace
from datetime import date
from decimal import Decimal
from typing import Iterable, Optional

from khata.database.base import Database
from khata.domain.effects import transaction_amount
from khata.domain.entities import (
    InvoiceStatus,
    LineItem,
    RelevantTo,
    Transaction,
    TransactionDraft,
)
from khata.domain.errors import (
    ConflictError,
    MalformedTransaction,
    NotFoundError,
    ReversalMismatch,
    StockInconsistency,
    ValidationError,
    agreement_not_found,
    customer_not_found,
    duplicate_opening_balance,
    entity_not_found,
    invoice_not_found,
    product_not_found,
    transaction_not_found,
)
from khata.domain.taxonomy import (
    CUSTOMER_PAYMENT,
    CUSTOMER_REFUND,
    DEFAULT_TAXONOMY,
    STOCK_ADJUSTMENT,
    Category,
    CategoryTaxonomy,
    stock_delta,
)
from khata.utils.date_parser import coerce_transaction_date

logger = logging.getLogger(__name__)

# Groups whose amount, when linked to an invoice, counts towards its paid amount.
# Refunds settle credit notes the way payments settle invoices.
INVOICE_PAYMENT_GROUPS = frozenset({CUSTOMER_PAYMENT, CUSTOMER_REFUND})


class TransactionService:
    """Service for recording, correcting and removing transactions."""

    def __init__(self, db: Database, taxonomy: CategoryTaxonomy = DEFAULT_TAXONOMY):
        """Initialize transaction service.

        Args:
            db: Database instance
            taxonomy: Category taxonomy transactions are validated against
        """
        self.db = db
        self.taxonomy = taxonomy

    def create_transaction(self, draft: TransactionDraft) -> Transaction:
        """Record a transaction with its stock and invoice side effects.

        Args:
            draft: Transaction fields

        Returns:
            The stored transaction

        Raises:
            UnknownCategory: If the category is not in the taxonomy
            ValidationError: If the date, amount, party or line items are invalid
            NotFoundError: If a referenced party, agreement or invoice is missing
            ConflictError: If a cash or bank opening balance already exists for the date
        """
        category, draft = self._validate(draft)

        with self.db.unit_of_work():
            if category.is_opening_balance and category.relevant_to == RelevantTo.NONE:
                if self.db.transaction_exists(category.name, draft.date):
                    raise ConflictError(duplicate_opening_balance(category.name, draft.date))
            transaction_id = self.db.create_transaction(
                date=draft.date,
                category=category.name,
                amount=draft.amount,
                description=draft.description,
                customer_id=draft.party_user_id,
                entity_id=draft.party_lender_id,
                agreement_id=draft.agreement_id,
                related_invoice_id=draft.related_invoice_id,
                line_items=draft.line_items,
            )
            self._apply_stock(category, draft.line_items, reverse=False)
            self._apply_invoice_payment(category, draft.related_invoice_id, draft.amount, reverse=False)

        logger.info(
            "Created transaction %s: %s %s on %s",
            transaction_id,
            category.name,
            draft.amount,
            draft.date,
        )
        return self.db.get_transaction(transaction_id)

    def record(
        self,
        on_date: date,
        category: str,
        amount: Decimal,
        description: Optional[str] = None,
        customer_id: Optional[int] = None,
        entity_id: Optional[int] = None,
        agreement_id: Optional[int] = None,
        related_invoice_id: Optional[int] = None,
        line_items: Iterable[LineItem] = (),
    ) -> Transaction:
        """Build a draft from keyword fields and create it."""
        return self.create_transaction(
            TransactionDraft(
                date=on_date,
                category=category,
                amount=amount,
                description=description,
                party_user_id=customer_id,
                party_lender_id=entity_id,
                agreement_id=agreement_id,
                related_invoice_id=related_invoice_id,
                line_items=tuple(line_items),
            )
        )

    def update_transaction(self, transaction_id: int, draft: TransactionDraft) -> Transaction:
        """Rewrite the fields of a transaction without product line items.

        Product transactions cannot be edited; they must be deleted and
        recreated so stock is reversed and reapplied through the same table.

        Raises:
            NotFoundError: If the transaction does not exist
            ValidationError: If either version carries line items, or the draft is invalid
        """
        existing = self.db.get_transaction(transaction_id)
        if existing is None:
            raise NotFoundError(transaction_not_found(transaction_id))

        if existing.line_items or draft.line_items:
            logger.warning("Rejected update of product transaction %s", transaction_id)
            raise ValidationError(
                "Transactions with product line items cannot be edited. "
                "Delete the transaction and record it again."
            )

        old_category = self.taxonomy.require(existing.category)
        category, draft = self._validate(draft)

        with self.db.unit_of_work():
            if (
                category.is_opening_balance
                and category.relevant_to == RelevantTo.NONE
                and (category.name, draft.date) != (existing.category, existing.date)
                and self.db.transaction_exists(category.name, draft.date)
            ):
                raise ConflictError(duplicate_opening_balance(category.name, draft.date))
            self._apply_invoice_payment(
                old_category, existing.related_invoice_id, existing.amount, reverse=True
            )
            self._apply_invoice_payment(category, draft.related_invoice_id, draft.amount, reverse=False)
            self.db.update_transaction(
                transaction_id,
                date=draft.date,
                category=category.name,
                amount=draft.amount,
                description=draft.description,
                customer_id=draft.party_user_id,
                entity_id=draft.party_lender_id,
                agreement_id=draft.agreement_id,
                related_invoice_id=draft.related_invoice_id,
            )

        logger.info("Updated transaction %s", transaction_id)
        return self.db.get_transaction(transaction_id)

    def delete_transaction(self, transaction_id: int) -> None:
        """Delete a transaction, reversing every side effect of its creation.

        Raises:
            NotFoundError: If the transaction does not exist
            ReversalMismatch: If a product or invoice needed for the reversal is gone
        """
        existing = self.db.get_transaction(transaction_id)
        if existing is None:
            raise NotFoundError(transaction_not_found(transaction_id))

        category = self.taxonomy.require(existing.category)
        if category.group == STOCK_ADJUSTMENT and not existing.line_items and existing.amount == 0:
            raise ReversalMismatch(
                f"Transaction {transaction_id} is a stock adjustment without line items"
            )

        with self.db.unit_of_work():
            self._apply_stock(category, existing.line_items, reverse=True)
            self._apply_invoice_payment(
                category, existing.related_invoice_id, existing.amount, reverse=True
            )
            self.db.delete_transaction(transaction_id)

        logger.info("Deleted transaction %s (%s)", transaction_id, existing.category)

    def get_transaction(self, transaction_id: int) -> Optional[Transaction]:
        """Get transaction by ID."""
        return self.db.get_transaction(transaction_id)

    def list_transactions(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        customer_id: Optional[int] = None,
        entity_id: Optional[int] = None,
        agreement_id: Optional[int] = None,
        category: Optional[str] = None,
    ) -> list[Transaction]:
        """List transactions with optional filters."""
        categories = None
        if category is not None:
            categories = [self.taxonomy.require(category).name]
        return self.db.list_transactions(
            start_date=start_date,
            end_date=end_date,
            customer_id=customer_id,
            entity_id=entity_id,
            agreement_id=agreement_id,
            categories=categories,
        )

    def _validate(self, draft: TransactionDraft) -> tuple[Category, TransactionDraft]:
        """Check a draft and return its category with normalised date and amount."""
        category = self.taxonomy.require(draft.category)

        try:
            txn_date = coerce_transaction_date(draft.date)
            amount = transaction_amount(draft)
        except MalformedTransaction as e:
            raise ValidationError(str(e)) from e

        line_items = tuple(draft.line_items)
        if amount == 0 and not (category.group == STOCK_ADJUSTMENT and line_items):
            raise ValidationError("Amount must not be zero")
        if category.amount_sign and amount * category.amount_sign < 0:
            direction = "positive" if category.amount_sign > 0 else "negative"
            raise ValidationError(f"Amount for '{category.name}' must be {direction}")

        self._validate_party(category, draft)
        self._validate_line_items(category, line_items)

        if draft.agreement_id is not None and self.db.get_agreement(draft.agreement_id) is None:
            raise NotFoundError(agreement_not_found(draft.agreement_id))
        if (
            draft.related_invoice_id is not None
            and self.db.get_invoice(draft.related_invoice_id) is None
        ):
            raise NotFoundError(invoice_not_found(draft.related_invoice_id))

        return category, replace(draft, date=txn_date, amount=amount, line_items=line_items)

    def _validate_party(self, category: Category, draft: TransactionDraft) -> None:
        customer_id = draft.party_user_id
        entity_id = draft.party_lender_id

        if customer_id is not None and entity_id is not None:
            raise ValidationError("A transaction cannot reference both a customer and an external entity")

        if category.relevant_to == RelevantTo.CUSTOMER:
            if customer_id is None:
                raise ValidationError(f"Category '{category.name}' requires a customer")
            if entity_id is not None:
                raise ValidationError(f"Category '{category.name}' cannot reference an external entity")
            if self.db.get_customer(customer_id) is None:
                raise NotFoundError(customer_not_found(customer_id))
        elif category.relevant_to == RelevantTo.LENDER:
            if entity_id is None:
                raise ValidationError(f"Category '{category.name}' requires an external entity")
            if customer_id is not None:
                raise ValidationError(f"Category '{category.name}' cannot reference a customer")
            if self.db.get_external_entity(entity_id) is None:
                raise NotFoundError(entity_not_found(entity_id))
        elif customer_id is not None or entity_id is not None:
            raise ValidationError(f"Category '{category.name}' does not take a party")

    def _validate_line_items(self, category: Category, line_items: tuple[LineItem, ...]) -> None:
        if not line_items:
            return
        if not category.is_product_related:
            raise ValidationError(f"Category '{category.name}' does not carry product line items")
        for item in line_items:
            if not isinstance(item.quantity, int) or isinstance(item.quantity, bool):
                raise ValidationError(f"Quantity must be a whole number, got {item.quantity!r}")
            if item.quantity == 0:
                raise ValidationError("Line item quantity must not be zero")
            if self.db.get_product(item.product_id) is None:
                raise ValidationError(product_not_found(item.product_id))

    def _apply_stock(
        self, category: Category, line_items: Iterable[LineItem], reverse: bool
    ) -> None:
        """Apply (or invert) the stock delta of every line item."""
        if category.stock_movement is None:
            return
        for item in line_items:
            product = self.db.get_product(item.product_id)
            if product is None:
                if reverse:
                    raise ReversalMismatch(
                        f"Cannot reverse stock: {product_not_found(item.product_id)}"
                    )
                raise ValidationError(product_not_found(item.product_id))

            delta = stock_delta(category.stock_movement, item.quantity, reverse=reverse)
            new_stock = self.db.adjust_product_stock(item.product_id, delta)
            logger.info(
                "Stock of product %s changed by %+d to %s", item.product_id, delta, new_stock
            )

            if new_stock < 0:
                message = f"Stock of '{product.name}' is negative ({new_stock})"
                logger.warning(message)
                warnings.warn(message, StockInconsistency, stacklevel=3)
            elif 0 < product.low_stock_threshold and new_stock <= product.low_stock_threshold:
                logger.warning(
                    "Stock of '%s' is low: %s (threshold %s)",
                    product.name,
                    new_stock,
                    product.low_stock_threshold,
                )

    def _apply_invoice_payment(
        self,
        category: Category,
        invoice_id: Optional[int],
        amount: Decimal,
        reverse: bool,
    ) -> None:
        """Move a linked invoice's paid amount by the payment magnitude."""
        if invoice_id is None or category.group not in INVOICE_PAYMENT_GROUPS:
            return

        delta = abs(Decimal(amount))
        if reverse:
            delta = -delta

        paid_amount = self.db.adjust_invoice_paid_amount(invoice_id, delta)
        if paid_amount is None:
            if reverse:
                raise ReversalMismatch(f"Cannot reverse payment: {invoice_not_found(invoice_id)}")
            raise NotFoundError(invoice_not_found(invoice_id))

        invoice = self.db.get_invoice(invoice_id)
        status = InvoiceStatus.for_amounts(paid_amount, invoice.grand_total)
        self.db.set_invoice_status(invoice_id, status.value)
        logger.info(
            "Invoice %s paid amount changed by %s to %s (%s)",
            invoice_id,
            delta,
            paid_amount,
            status.value,
        )
