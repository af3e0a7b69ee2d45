"""Ledger reconstruction.

Every ledger in the application (daily cash and bank books, per-customer and
per-entity statements, per-agreement history) is produced by ``reconstruct``:
a base balance plus a fold over the transaction log under one view. Balances
are never stored; each read recomputes them from the log.
"""

from datetime import date
from decimal import Decimal
from typing import Iterable, Optional

from khata.database.base import Database
from khata.domain.effects import ZERO, EffectResolver
from khata.domain.entities import LedgerEntry, LedgerSnapshot, Transaction, ViewKind
from khata.domain.errors import NotFoundError, customer_not_found, entity_not_found
from khata.domain.taxonomy import DEFAULT_TAXONOMY, CategoryTaxonomy
from khata.utils.date_parser import coerce_transaction_date

_default_resolver = EffectResolver()


def _sort_key(resolver: EffectResolver, transaction: Transaction, txn_date: date):
    # Opening balance entries lead their day; ties break on id, never fetch order
    category = resolver.category_for(transaction)
    return (txn_date, 0 if category.is_opening_balance else 1, transaction.id)


def reconstruct(
    opening_balance: Decimal,
    transactions: Iterable[Transaction],
    window_start: Optional[date],
    window_end: Optional[date],
    view: ViewKind,
    resolver: Optional[EffectResolver] = None,
) -> LedgerSnapshot:
    """Fold a transaction set into a running-balance ledger for one window.

    Transactions dated before ``window_start`` roll into the opening balance;
    those after ``window_end`` are ignored. Within the window, entries are
    ordered by date, opening-balance categories first, then by id.

    Every transaction is validated before anything is folded, so a single bad
    record fails the whole request instead of yielding a partial ledger.

    Args:
        opening_balance: Base balance of the party or ledger
        transactions: Transactions in any order
        window_start: Inclusive start date, or None for full history
        window_end: Inclusive end date, or None for no upper bound
        view: Ledger view to resolve effects for
        resolver: Effect resolver (defaults to the standard taxonomy)

    Returns:
        LedgerSnapshot for the window

    Raises:
        MalformedTransaction: If a transaction date or amount is unusable
        UnknownCategory: If a transaction category is not in the taxonomy
    """
    resolver = resolver or _default_resolver
    view = ViewKind(view)

    resolved = []
    for txn in transactions:
        txn_date = coerce_transaction_date(txn.date)
        effect = resolver.resolve(txn, view)
        applies = resolver.applies(txn, view)
        resolved.append((txn, txn_date, effect, applies))

    opening = Decimal(opening_balance)
    in_window = []
    for txn, txn_date, effect, applies in resolved:
        if window_start is not None and txn_date < window_start:
            opening += effect
        elif window_end is not None and txn_date > window_end:
            continue
        elif applies:
            in_window.append((txn, txn_date, effect))

    in_window.sort(key=lambda item: _sort_key(resolver, item[0], item[1]))

    running = opening
    total_debits = ZERO
    total_credits = ZERO
    entries = []
    for txn, txn_date, effect in in_window:
        running += effect
        debit = effect if effect > 0 else ZERO
        credit = -effect if effect < 0 else ZERO
        total_debits += debit
        total_credits += credit
        entries.append(
            LedgerEntry(
                transaction_id=txn.id,
                date=txn_date,
                category=txn.category,
                description=txn.description,
                effect=effect,
                debit=debit,
                credit=credit,
                running_balance=running,
            )
        )

    return LedgerSnapshot(
        opening_balance=opening,
        entries=tuple(entries),
        closing_balance=running,
        total_debits=total_debits,
        total_credits=total_credits,
    )


class LedgerService:
    """Builds ledgers and balances from the transaction log."""

    def __init__(self, db: Database, taxonomy: CategoryTaxonomy = DEFAULT_TAXONOMY):
        """Initialize ledger service.

        Args:
            db: Database instance
            taxonomy: Category taxonomy used to resolve effects
        """
        self.db = db
        self.taxonomy = taxonomy
        self.resolver = EffectResolver(taxonomy)

    def _money_book(
        self,
        view: ViewKind,
        start_date: Optional[date],
        end_date: Optional[date],
        opening_balance: Decimal,
    ) -> LedgerSnapshot:
        transactions = self.db.list_transactions(end_date=end_date)
        return reconstruct(
            opening_balance, transactions, start_date, end_date, view, self.resolver
        )

    def cash_book(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        opening_balance: Decimal = ZERO,
    ) -> LedgerSnapshot:
        """Cash ledger for a window (a single day when start equals end)."""
        return self._money_book(ViewKind.CASH, start_date, end_date, opening_balance)

    def bank_book(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        opening_balance: Decimal = ZERO,
    ) -> LedgerSnapshot:
        """Bank ledger for a window (a single day when start equals end)."""
        return self._money_book(ViewKind.BANK, start_date, end_date, opening_balance)

    def customer_ledger(
        self,
        customer_id: int,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> LedgerSnapshot:
        """Receivable statement for a customer.

        Raises:
            NotFoundError: If the customer does not exist
        """
        customer = self.db.get_customer(customer_id)
        if customer is None:
            raise NotFoundError(customer_not_found(customer_id))
        transactions = self.db.list_transactions(customer_id=customer_id, end_date=end_date)
        return reconstruct(
            customer.opening_balance,
            transactions,
            start_date,
            end_date,
            ViewKind.PARTY_LEDGER,
            self.resolver,
        )

    def entity_ledger(
        self,
        entity_id: int,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> LedgerSnapshot:
        """Payable statement for a supplier, lender or other external entity.

        Raises:
            NotFoundError: If the entity does not exist
        """
        entity = self.db.get_external_entity(entity_id)
        if entity is None:
            raise NotFoundError(entity_not_found(entity_id))
        transactions = self.db.list_transactions(entity_id=entity_id, end_date=end_date)
        return reconstruct(
            entity.opening_payable_balance,
            transactions,
            start_date,
            end_date,
            ViewKind.PARTY_LEDGER,
            self.resolver,
        )

    def agreement_ledger(
        self,
        agreement_id: int,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> LedgerSnapshot:
        """Party-ledger history of every transaction linked to an agreement."""
        transactions = self.db.list_transactions(agreement_id=agreement_id, end_date=end_date)
        return reconstruct(
            ZERO, transactions, start_date, end_date, ViewKind.PARTY_LEDGER, self.resolver
        )

    def customer_balance(self, customer_id: int, as_of: Optional[date] = None) -> Decimal:
        """What a customer owes as of a date."""
        return self.customer_ledger(customer_id, end_date=as_of).closing_balance

    def entity_balance(self, entity_id: int, as_of: Optional[date] = None) -> Decimal:
        """What the business owes an external entity as of a date."""
        return self.entity_ledger(entity_id, end_date=as_of).closing_balance

    def cash_balance(self, as_of: Optional[date] = None) -> Decimal:
        """Cash in hand as of a date."""
        return self.cash_book(end_date=as_of).closing_balance

    def bank_balance(self, as_of: Optional[date] = None) -> Decimal:
        """Bank balance as of a date."""
        return self.bank_book(end_date=as_of).closing_balance
