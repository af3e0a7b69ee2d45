"""Financing agreements and the interest accrual engine."""

import logging
import re
from dataclasses import dataclass
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional

from dateutil.relativedelta import relativedelta

from khata.database.base import Database
from khata.domain.effects import ZERO, transaction_amount
from khata.domain.entities import (
    AccrualResult,
    AccrualStatus,
    Agreement,
    AgreementType,
    MonthlyAccrual,
    Transaction,
)
from khata.domain.errors import (
    NotFoundError,
    ValidationError,
    agreement_not_found,
    customer_not_found,
    entity_not_found,
)
from khata.domain.taxonomy import (
    BIZ_LOAN_INTEREST,
    BIZ_LOAN_REPAY,
    CUSTOMER_LOAN_INTEREST,
    CUSTOMER_LOAN_REPAY,
    DEFAULT_TAXONOMY,
    CategoryKey,
    CategoryTaxonomy,
    PaymentMode,
)
from khata.domain.transaction import TransactionService
from khata.utils.date_parser import coerce_transaction_date, month_end, month_key

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")

# Monthly rate assumed when back-solving principal from EMI terms. Unvalidated;
# the figures it produces need review before being relied on.
ASSUMED_EMI_MONTHLY_RATE = Decimal("0.015")

# Stored principal within this distance of EMI x duration is read as total repayment
EMI_TOTAL_TOLERANCE = Decimal("1")

_EMI_PATTERN = re.compile(r"EMI:?\s*₹?([\d,.]+)", re.IGNORECASE)
_DURATION_PATTERN = re.compile(r"(\d+)\s+months?", re.IGNORECASE)

# (principal group, interest group) per agreement type
PAYMENT_GROUPS = {
    AgreementType.LOAN_TAKEN_BY_BIZ: (BIZ_LOAN_REPAY, BIZ_LOAN_INTEREST),
    AgreementType.LOAN_GIVEN_BY_BIZ: (CUSTOMER_LOAN_REPAY, CUSTOMER_LOAN_INTEREST),
}

DISBURSEMENT_BASES = {
    AgreementType.LOAN_TAKEN_BY_BIZ: "Loan Received by Business",
    AgreementType.LOAN_GIVEN_BY_BIZ: "Loan Given to Customer",
}

REPAYMENT_BASES = {
    AgreementType.LOAN_TAKEN_BY_BIZ: (
        "Loan Principal Repaid by Business",
        "Loan Interest Paid by Business",
    ),
    AgreementType.LOAN_GIVEN_BY_BIZ: (
        "Loan Repayment Received from Customer",
        "Interest on Customer Loan Received",
    ),
}

_LOAN_IN_MODES = {PaymentMode.CASH: PaymentMode.TO_CASH, PaymentMode.BANK: PaymentMode.TO_BANK}


@dataclass(frozen=True)
class AgreementTerms:
    """EMI terms parsed out of an agreement's free-text details."""

    emi_amount: Optional[Decimal] = None
    duration_months: Optional[int] = None

    @property
    def is_complete(self) -> bool:
        return bool(self.emi_amount) and bool(self.duration_months)


def parse_agreement_terms(details: Optional[str]) -> AgreementTerms:
    """Extract an EMI amount and a duration in months from free text.

    Recognises forms such as ``EMI: ₹12,500`` or ``EMI 12500`` and
    ``24 months``. Missing or unparsable parts come back as None.
    """
    if not details:
        return AgreementTerms()

    emi_amount = None
    emi_match = _EMI_PATTERN.search(details)
    if emi_match:
        raw = emi_match.group(1).replace(",", "").rstrip(".")
        try:
            emi_amount = Decimal(raw)
        except ArithmeticError:
            emi_amount = None

    duration_months = None
    duration_match = _DURATION_PATTERN.search(details)
    if duration_match:
        duration_months = int(duration_match.group(1))

    return AgreementTerms(emi_amount=emi_amount, duration_months=duration_months)


def back_solve_principal(emi: Decimal, months: int, monthly_rate: Decimal) -> Decimal:
    """Principal that ``months`` payments of ``emi`` amortise at ``monthly_rate``."""
    return emi * (1 - (1 + monthly_rate) ** -months) / monthly_rate


def _cents(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def _magnitude(transactions: Iterable[Transaction]) -> Decimal:
    return sum((abs(transaction_amount(t)) for t in transactions), ZERO)


def _month_starts(start: date, as_of: date, limit: Optional[int] = None):
    """Yield start, start + 1 month, ... up to and including ``as_of``."""
    count = 0
    while limit is None or count < limit:
        current = start + relativedelta(months=count)
        if current > as_of:
            return
        yield current
        count += 1


def accrue(
    agreement: Agreement,
    principal_payments: Iterable[Transaction],
    interest_payments: Iterable[Transaction],
    as_of: date,
) -> AccrualResult:
    """Compute month-by-month interest due and balances for an agreement.

    With a positive monthly rate, interest for each month is charged on the
    running principal, which drops by the principal repaid within that month.
    With no rate but EMI terms in ``details``, a fixed interest per month is
    derived from EMI x duration less principal, back-solving principal at an
    assumed rate when the stored principal is really the total repayment.

    Args:
        agreement: The agreement
        principal_payments: Principal repayment transactions
        interest_payments: Interest payment transactions
        as_of: Evaluation date

    Returns:
        AccrualResult with outstanding principal, interest payable and the
        monthly breakdown
    """
    principal_payments = list(principal_payments)
    interest_payments = list(interest_payments)

    principal_paid = _magnitude(principal_payments)
    interest_paid = _magnitude(interest_payments)
    principal = Decimal(agreement.principal)
    rate = Decimal(agreement.interest_rate_percent_per_month)

    monthly: list[tuple[date, Decimal]] = []

    if rate > 0:
        monthly_rate = rate / 100
        running_principal = principal
        for month_start in _month_starts(agreement.start_date, as_of):
            key = month_key(month_start)
            monthly.append((month_start, _cents(running_principal * monthly_rate)))
            for payment in principal_payments:
                if month_key(coerce_transaction_date(payment.date)) == key:
                    running_principal -= abs(transaction_amount(payment))
    else:
        terms = parse_agreement_terms(agreement.details)
        if terms.is_complete:
            months = terms.duration_months
            total_repayment = terms.emi_amount * months
            if abs(principal - total_repayment) < EMI_TOTAL_TOLERANCE:
                principal = back_solve_principal(
                    terms.emi_amount, months, ASSUMED_EMI_MONTHLY_RATE
                )
                logger.info(
                    "Agreement %s principal back-solved from EMI terms at an assumed %s per month",
                    agreement.id,
                    ASSUMED_EMI_MONTHLY_RATE,
                )
            total_interest = total_repayment - principal
            if total_interest > 0:
                per_month = _cents(total_interest / months)
                for month_start in _month_starts(agreement.start_date, as_of, limit=months):
                    monthly.append((month_start, per_month))

    paid_months = {month_key(coerce_transaction_date(p.date)) for p in interest_payments}
    breakdown = []
    for month_start, interest_due in monthly:
        key = month_key(month_start)
        if key in paid_months:
            status = AccrualStatus.PAID
        elif month_end(month_start) < as_of:
            status = AccrualStatus.SKIPPED
        else:
            status = AccrualStatus.PENDING
        breakdown.append(MonthlyAccrual(month=key, interest_due=interest_due, status=status))

    accrued = sum((interest_due for _, interest_due in monthly), ZERO)

    return AccrualResult(
        outstanding_principal=_cents(principal - principal_paid),
        interest_payable=_cents(accrued - interest_paid),
        principal_paid=_cents(principal_paid),
        interest_paid=_cents(interest_paid),
        monthly_breakdown=tuple(breakdown),
    )


class AgreementService:
    """Service for financing agreements."""

    def __init__(self, db: Database, taxonomy: CategoryTaxonomy = DEFAULT_TAXONOMY):
        """Initialize agreement service.

        Args:
            db: Database instance
            taxonomy: Category taxonomy used to find repayment categories
        """
        self.db = db
        self.taxonomy = taxonomy
        self.transactions = TransactionService(db, taxonomy)

    def _check_party(self, agreement_type: AgreementType, party_id: int) -> None:
        if agreement_type == AgreementType.LOAN_GIVEN_BY_BIZ:
            if self.db.get_customer(party_id) is None:
                raise NotFoundError(customer_not_found(party_id))
        elif self.db.get_external_entity(party_id) is None:
            raise NotFoundError(entity_not_found(party_id))

    def _party_kwargs(self, agreement_type: AgreementType, party_id: int) -> dict:
        if agreement_type == AgreementType.LOAN_GIVEN_BY_BIZ:
            return {"customer_id": party_id}
        return {"entity_id": party_id}

    def create_agreement(
        self,
        party_id: int,
        agreement_type: AgreementType | str,
        principal: Decimal,
        start_date: date,
        interest_rate: Decimal = ZERO,
        details: Optional[str] = None,
        disbursement_mode: Optional[PaymentMode] = None,
    ) -> Agreement:
        """Create an agreement, optionally recording the disbursement.

        Args:
            party_id: Customer ID for loans given, external entity ID otherwise
            agreement_type: Agreement type
            principal: Principal amount
            start_date: Start date
            interest_rate: Interest rate in percent per month (0 for EMI based)
            details: Free-text details, may embed EMI terms
            disbursement_mode: Cash or Bank to also record the loan disbursement

        Raises:
            ValidationError: If amounts are invalid or the mode does not apply
            NotFoundError: If the party does not exist
        """
        try:
            agreement_type = AgreementType(agreement_type)
        except ValueError as e:
            raise ValidationError(f"Unknown agreement type '{agreement_type}'") from e

        principal = Decimal(principal)
        interest_rate = Decimal(interest_rate)
        if principal <= 0:
            raise ValidationError("Principal must be positive")
        if interest_rate < 0:
            raise ValidationError("Interest rate cannot be negative")
        if disbursement_mode is not None and agreement_type not in DISBURSEMENT_BASES:
            raise ValidationError(f"Agreements of type '{agreement_type.value}' have no disbursement")

        self._check_party(agreement_type, party_id)

        with self.db.unit_of_work():
            agreement_id = self.db.create_agreement(
                party_id=party_id,
                agreement_type=agreement_type.value,
                principal=principal,
                interest_rate=interest_rate,
                start_date=start_date,
                details=details,
            )
            if disbursement_mode is not None:
                mode = PaymentMode(disbursement_mode)
                if agreement_type == AgreementType.LOAN_TAKEN_BY_BIZ:
                    mode = _LOAN_IN_MODES.get(mode, mode)
                key = CategoryKey(DISBURSEMENT_BASES[agreement_type], mode)
                self.transactions.record(
                    on_date=start_date,
                    category=self.taxonomy.resolve_key(key).name,
                    amount=principal,
                    description=f"Disbursement for agreement #{agreement_id}",
                    agreement_id=agreement_id,
                    **self._party_kwargs(agreement_type, party_id),
                )

        logger.info("Created %s agreement %s for %s", agreement_type.value, agreement_id, principal)
        return self.db.get_agreement(agreement_id)

    def onboard_existing_loan(
        self,
        entity_id: int,
        current_balance: Decimal,
        start_date: date,
        interest_rate: Decimal = ZERO,
        original_amount: Optional[Decimal] = None,
        details: Optional[str] = None,
    ) -> Agreement:
        """Record a loan already running before bookkeeping started.

        The agreement principal is the current balance, and the balance is
        booked as received into the bank on the start date.
        """
        current_balance = Decimal(current_balance)
        if current_balance <= 0:
            raise ValidationError("Current balance must be positive")
        if self.db.get_external_entity(entity_id) is None:
            raise NotFoundError(entity_not_found(entity_id))

        with self.db.unit_of_work():
            agreement_id = self.db.create_agreement(
                party_id=entity_id,
                agreement_type=AgreementType.LOAN_TAKEN_BY_BIZ.value,
                principal=current_balance,
                interest_rate=Decimal(interest_rate),
                start_date=start_date,
                details=details,
            )
            original = original_amount if original_amount is not None else "N/A"
            self.transactions.record(
                on_date=start_date,
                category=CategoryKey("Loan Received by Business", PaymentMode.TO_BANK).name,
                amount=current_balance,
                description=(
                    f"Onboarding existing loan balance for agreement #{agreement_id}. "
                    f"Original Amount: {original}"
                ),
                entity_id=entity_id,
                agreement_id=agreement_id,
            )

        logger.info("Onboarded existing loan %s with balance %s", agreement_id, current_balance)
        return self.db.get_agreement(agreement_id)

    def record_repayment(
        self,
        agreement_id: int,
        on_date: date,
        amount: Decimal,
        mode: PaymentMode = PaymentMode.CASH,
        interest: bool = False,
        description: Optional[str] = None,
    ) -> Transaction:
        """Record a principal or interest payment against a loan.

        Payments reduce the party ledger, so they are stored negative.
        """
        agreement = self.get_agreement(agreement_id)
        if agreement.agreement_type not in REPAYMENT_BASES:
            raise ValidationError(f"Agreement {agreement_id} is not a loan")

        principal_base, interest_base = REPAYMENT_BASES[agreement.agreement_type]
        key = CategoryKey(interest_base if interest else principal_base, PaymentMode(mode))
        return self.transactions.record(
            on_date=on_date,
            category=self.taxonomy.resolve_key(key).name,
            amount=-abs(Decimal(amount)),
            description=description,
            agreement_id=agreement_id,
            **self._party_kwargs(agreement.agreement_type, agreement.party_id),
        )

    def get_agreement(self, agreement_id: int) -> Agreement:
        """Get agreement by ID.

        Raises:
            NotFoundError: If the agreement does not exist
        """
        agreement = self.db.get_agreement(agreement_id)
        if agreement is None:
            raise NotFoundError(agreement_not_found(agreement_id))
        return agreement

    def list_agreements(self, party_id: Optional[int] = None) -> list[Agreement]:
        """List agreements, optionally for one party."""
        return self.db.list_agreements(party_id=party_id)

    def accrual(self, agreement_id: int, as_of: Optional[date] = None) -> AccrualResult:
        """Interest accrual of an agreement from the live transaction log."""
        agreement = self.get_agreement(agreement_id)
        as_of = as_of or date.today()

        principal_payments: list[Transaction] = []
        interest_payments: list[Transaction] = []
        groups = PAYMENT_GROUPS.get(agreement.agreement_type)
        if groups is not None:
            principal_group, interest_group = groups
            for txn in self.db.list_transactions(agreement_id=agreement_id, end_date=as_of):
                group = self.taxonomy.require(txn.category).group
                if group == principal_group:
                    principal_payments.append(txn)
                elif group == interest_group:
                    interest_payments.append(txn)

        return accrue(agreement, principal_payments, interest_payments, as_of)
