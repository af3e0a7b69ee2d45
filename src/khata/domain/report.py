"""Report domain service: summaries, profit and loss, valuation."""

from collections import defaultdict
from datetime import date
from decimal import Decimal
from typing import Optional

from khata.database.base import Database
from khata.domain.agreement import AgreementService
from khata.domain.effects import ZERO, EffectResolver
from khata.domain.entities import (
    AgreementType,
    PartyBalance,
    ProfitAndLoss,
    ValuationSnapshot,
    ViewKind,
)
from khata.domain.ledger import LedgerService
from khata.domain.product import ProductService
from khata.domain.taxonomy import DEFAULT_TAXONOMY, CategoryTaxonomy
from khata.utils.date_parser import coerce_transaction_date


class ReportService:
    """Service for building reports from the transaction log."""

    def __init__(self, db: Database, taxonomy: CategoryTaxonomy = DEFAULT_TAXONOMY):
        """Initialize report service.

        Args:
            db: Database instance
            taxonomy: Category taxonomy used to resolve effects
        """
        self.db = db
        self.taxonomy = taxonomy
        self.resolver = EffectResolver(taxonomy)
        self.ledgers = LedgerService(db, taxonomy)
        self.agreements = AgreementService(db, taxonomy)
        self.products = ProductService(db)

    def receivable_summary(self, as_of: Optional[date] = None) -> list[PartyBalance]:
        """What every customer owes as of a date."""
        return [
            PartyBalance(c.id, c.name, self.ledgers.customer_balance(c.id, as_of))
            for c in self.db.list_customers()
        ]

    def payable_summary(self, as_of: Optional[date] = None) -> list[PartyBalance]:
        """What the business owes every external entity as of a date."""
        return [
            PartyBalance(e.id, e.name, self.ledgers.entity_balance(e.id, as_of))
            for e in self.db.list_external_entities()
        ]

    def profit_and_loss(
        self, start_date: Optional[date] = None, end_date: Optional[date] = None
    ) -> ProfitAndLoss:
        """Income and expenses per category for a window.

        Raises:
            MalformedTransaction: If a transaction in the window is unusable
            UnknownCategory: If a transaction category is not in the taxonomy
        """
        transactions = self.db.list_transactions(start_date=start_date, end_date=end_date)

        income: dict[str, Decimal] = defaultdict(lambda: ZERO)
        expenses: dict[str, Decimal] = defaultdict(lambda: ZERO)
        for txn in transactions:
            coerce_transaction_date(txn.date)
            effect = self.resolver.resolve(txn, ViewKind.PNL_BUCKET)
            if effect > 0:
                income[txn.category] += effect
            elif effect < 0:
                expenses[txn.category] += -effect

        return ProfitAndLoss(
            start_date=start_date,
            end_date=end_date,
            income=tuple(sorted(income.items())),
            expenses=tuple(sorted(expenses.items())),
            total_income=sum(income.values(), ZERO),
            total_expenses=sum(expenses.values(), ZERO),
        )

    def valuation(self, as_of: Optional[date] = None) -> ValuationSnapshot:
        """Cash, bank, receivables, payables, stock and loans as of a date.

        Stock is valued at cost from current quantities.
        """
        as_of = as_of or date.today()

        loans_given = ZERO
        loans_taken = ZERO
        for agreement in self.db.list_agreements():
            if agreement.start_date > as_of:
                continue
            outstanding = self.agreements.accrual(agreement.id, as_of).outstanding_principal
            if agreement.agreement_type == AgreementType.LOAN_GIVEN_BY_BIZ:
                loans_given += outstanding
            elif agreement.agreement_type == AgreementType.LOAN_TAKEN_BY_BIZ:
                loans_taken += outstanding

        return ValuationSnapshot(
            as_of=as_of,
            cash=self.ledgers.cash_balance(as_of),
            bank=self.ledgers.bank_balance(as_of),
            receivables=sum((b.balance for b in self.receivable_summary(as_of)), ZERO),
            payables=sum((b.balance for b in self.payable_summary(as_of)), ZERO),
            stock_value=self.products.stock_value(),
            loans_given_outstanding=loans_given,
            loans_taken_outstanding=loans_taken,
        )
