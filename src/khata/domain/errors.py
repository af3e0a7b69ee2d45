"""Shared domain error messages and error types."""


class DomainError(ValueError):
    """Base class for domain-level errors.

    Subclasses provide semantic categories while preserving ValueError
    compatibility for existing error handling.
    """


class ValidationError(DomainError):
    """Invalid input or failed validation in domain logic."""


class NotFoundError(DomainError):
    """Requested domain entity does not exist."""


class ConflictError(DomainError):
    """Domain conflict, such as a duplicate opening balance."""


class UnknownCategory(DomainError):
    """Transaction category is not part of the category taxonomy."""


class MalformedTransaction(DomainError):
    """A stored transaction cannot be interpreted (bad date, bad amount)."""


class ReversalMismatch(DomainError):
    """A deletion cannot invert every side effect applied at creation."""


class StockInconsistency(UserWarning):
    """Stock went negative after applying a delta.

    Issued as a warning rather than raised: backdated corrections
    legitimately produce transient negative stock.
    """


def unknown_category(name: str) -> str:
    """Return message for a category missing from the taxonomy."""
    return f"Unknown category '{name}'"


def customer_not_found(customer_id: int) -> str:
    """Return message for missing customer."""
    return f"Customer {customer_id} not found"


def entity_not_found(entity_id: int) -> str:
    """Return message for missing external entity."""
    return f"External entity {entity_id} not found"


def product_not_found(product_id: int) -> str:
    """Return message for missing product."""
    return f"Product {product_id} not found"


def transaction_not_found(transaction_id: int) -> str:
    """Return message for missing transaction."""
    return f"Transaction {transaction_id} not found"


def agreement_not_found(agreement_id: int) -> str:
    """Return message for missing agreement."""
    return f"Agreement {agreement_id} not found"


def invoice_not_found(invoice_id: int) -> str:
    """Return message for missing invoice."""
    return f"Invoice {invoice_id} not found"


def chit_group_not_found(group_id: int) -> str:
    """Return message for missing chit group."""
    return f"Chit group {group_id} not found"


def duplicate_opening_balance(category: str, on_date) -> str:
    """Return message when an opening balance already exists for a date."""
    return (
        f"An opening balance for '{category}' already exists for {on_date}. "
        "It can only be set once per day."
    )
