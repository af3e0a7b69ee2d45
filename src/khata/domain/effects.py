"""Financial effect resolution.

The one place that turns a stored transaction amount into the signed amount a
ledger view must add. Stored amounts are signed from the point of view of the
party ledger the category is relevant to:

- Customer categories: positive raises what the customer owes. Categories in
  the ``customer_payment`` group are the exception; they are stored as a
  positive magnitude, read as a credit on the receivable ledger, and read
  with their stored sign on the cash and bank ledgers.
- Lender categories: positive raises what the business owes.
- Categories relevant to no party: the stored amount is the money effect.

Bank transfer categories feed the cash and bank views with opposite signs.
"""

from decimal import Decimal, InvalidOperation
from typing import Any

from khata.domain.entities import LedgerEffect, NatureHint, RelevantTo, ViewKind
from khata.domain.errors import MalformedTransaction
from khata.domain.taxonomy import (
    CUSTOMER_PAYMENT,
    DEFAULT_TAXONOMY,
    Category,
    CategoryTaxonomy,
)

ZERO = Decimal("0")

# Groups stored as a positive magnitude but credited on the party ledger.
PARTY_CREDIT_GROUPS = frozenset({CUSTOMER_PAYMENT})

_CASH_SHARE = {
    LedgerEffect.CASH: 1,
    LedgerEffect.BOTH_CASH_OUT_BANK_IN: -1,
    LedgerEffect.BOTH_CASH_IN_BANK_OUT: 1,
}

_BANK_SHARE = {
    LedgerEffect.BANK: 1,
    LedgerEffect.BOTH_CASH_OUT_BANK_IN: 1,
    LedgerEffect.BOTH_CASH_IN_BANK_OUT: -1,
}

_TRANSFER_EFFECTS = frozenset(
    {LedgerEffect.BOTH_CASH_OUT_BANK_IN, LedgerEffect.BOTH_CASH_IN_BANK_OUT}
)


def transaction_amount(transaction: Any) -> Decimal:
    """Return a transaction's amount as a Decimal.

    Raises:
        MalformedTransaction: If the stored amount is not numeric
    """
    amount = transaction.amount
    if isinstance(amount, Decimal):
        return amount
    if isinstance(amount, bool) or amount is None:
        raise MalformedTransaction(f"Transaction has invalid amount {amount!r}")
    try:
        return Decimal(str(amount))
    except (InvalidOperation, ValueError) as e:
        raise MalformedTransaction(f"Transaction has invalid amount {amount!r}") from e


def _money_share(category: Category, view: ViewKind) -> int:
    shares = _CASH_SHARE if view == ViewKind.CASH else _BANK_SHARE
    return shares.get(category.ledger_effect, 0)


def category_effect(category: Category, amount: Decimal, view: ViewKind) -> Decimal:
    """Signed contribution of ``amount`` under ``category`` to a view."""
    view = ViewKind(view)

    if view == ViewKind.PARTY_LEDGER:
        if category.relevant_to == RelevantTo.NONE:
            return ZERO
        if category.group in PARTY_CREDIT_GROUPS:
            return -amount
        return amount

    if view in (ViewKind.CASH, ViewKind.BANK):
        share = _money_share(category, view)
        if share == 0:
            return ZERO
        if category.ledger_effect in _TRANSFER_EFFECTS:
            return share * amount
        if category.relevant_to == RelevantTo.NONE or category.group in PARTY_CREDIT_GROUPS:
            return amount
        return category.cash_direction * abs(amount)

    # Profit and loss bucket
    if category.is_opening_balance:
        return ZERO
    if category.nature_hint == NatureHint.INCOME:
        return abs(amount)
    if category.nature_hint == NatureHint.EXPENSE:
        return -abs(amount)
    return ZERO


def category_applies(category: Category, view: ViewKind) -> bool:
    """Whether a category contributes to a view at all."""
    view = ViewKind(view)
    if view == ViewKind.PARTY_LEDGER:
        return category.relevant_to != RelevantTo.NONE
    if view in (ViewKind.CASH, ViewKind.BANK):
        return _money_share(category, view) != 0
    return not category.is_opening_balance and category.nature_hint in (
        NatureHint.INCOME,
        NatureHint.EXPENSE,
    )


class EffectResolver:
    """Resolves transaction effects against an injected taxonomy."""

    def __init__(self, taxonomy: CategoryTaxonomy = DEFAULT_TAXONOMY):
        self.taxonomy = taxonomy

    def category_for(self, transaction: Any) -> Category:
        """Look up a transaction's category, failing on unknown names."""
        return self.taxonomy.require(transaction.category)

    def applies(self, transaction: Any, view: ViewKind) -> bool:
        """Whether the transaction contributes to ``view``."""
        return category_applies(self.category_for(transaction), view)

    def resolve(self, transaction: Any, view: ViewKind) -> Decimal:
        """Signed amount ``view`` must add for ``transaction``.

        Args:
            transaction: Any object with ``category`` and ``amount``
            view: Target ledger view

        Returns:
            Signed Decimal contribution (zero when the view is not affected)

        Raises:
            UnknownCategory: If the category is not in the taxonomy
            MalformedTransaction: If the amount is not numeric
        """
        category = self.category_for(transaction)
        return category_effect(category, transaction_amount(transaction), view)


_default_resolver = EffectResolver()


def resolve_effect(transaction: Any, view: ViewKind) -> Decimal:
    """Resolve an effect with the default taxonomy."""
    return _default_resolver.resolve(transaction, view)
