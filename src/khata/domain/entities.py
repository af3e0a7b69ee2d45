"""Domain model entities for khata.

These are pure data classes representing business concepts, independent of
database schema. Derived figures (balances, outstanding principal, interest
payable) are never stored on these entities; they are computed from the
transaction log on every read.
"""

from dataclasses import dataclass, field
from datetime import datetime, date
from decimal import Decimal
from enum import Enum
from typing import Optional


class ViewKind(str, Enum):
    """A ledger view a transaction can contribute to."""

    PARTY_LEDGER = "partyLedger"
    CASH = "cash"
    BANK = "bank"
    PNL_BUCKET = "pnlBucket"


class LedgerEffect(str, Enum):
    """Which money ledger(s) a category moves."""

    CASH = "cash"
    BANK = "bank"
    NONE = "none"
    BOTH_CASH_OUT_BANK_IN = "both_cash_out_bank_in"
    BOTH_CASH_IN_BANK_OUT = "both_cash_in_bank_out"


class RelevantTo(str, Enum):
    """Which kind of party ledger a category is signed against."""

    CUSTOMER = "customer"
    LENDER = "lender"
    NONE = "none"


class NatureHint(str, Enum):
    """Accounting nature of a category."""

    INCOME = "income"
    EXPENSE = "expense"
    RECEIVABLE_INCREASE = "receivable_increase"
    RECEIVABLE_DECREASE = "receivable_decrease"
    PAYABLE_INCREASE = "payable_increase"
    PAYABLE_DECREASE = "payable_decrease"
    NEUTRAL = "neutral"


class EntityType(str, Enum):
    """Kinds of external entity."""

    SUPPLIER = "Supplier"
    LENDER = "Lender"
    FINANCIAL = "Financial"
    GENERAL = "General"


class AgreementType(str, Enum):
    """Financing agreement types."""

    LOAN_TAKEN_BY_BIZ = "loan_taken_by_biz"
    LOAN_GIVEN_BY_BIZ = "loan_given_by_biz"
    OTHER = "other"


class AccrualStatus(str, Enum):
    """Payment status of one accrual month."""

    PENDING = "Pending"
    PAID = "Paid"
    SKIPPED = "Skipped"


class InvoiceType(str, Enum):
    """Invoice document types."""

    TAX_INVOICE = "TAX_INVOICE"
    SALES_RETURN = "SALES_RETURN"


class InvoiceStatus(str, Enum):
    """Payment status of an invoice, derived from paid vs total."""

    UNPAID = "Unpaid"
    PARTIALLY_PAID = "Partially Paid"
    PAID = "Paid"

    @classmethod
    def for_amounts(cls, paid_amount: Decimal, grand_total: Decimal) -> "InvoiceStatus":
        """Derive the status from the paid amount and the grand total.

        Credit notes carry a negative total and are settled by refunds, so the
        paid amount is compared against the magnitude of the total.
        """
        if paid_amount <= 0:
            return cls.UNPAID
        if paid_amount >= abs(grand_total):
            return cls.PAID
        return cls.PARTIALLY_PAID


@dataclass(frozen=True)
class Customer:
    """Customer party entity."""

    id: int
    name: str
    opening_balance: Decimal
    created_at: datetime
    phone: Optional[str] = None
    email: Optional[str] = None
    state: Optional[str] = None
    gstin: Optional[str] = None


@dataclass(frozen=True)
class ExternalEntity:
    """Supplier, lender or other external party."""

    id: int
    name: str
    entity_type: EntityType
    opening_payable_balance: Decimal
    created_at: datetime
    contact_person: Optional[str] = None
    phone: Optional[str] = None


@dataclass(frozen=True)
class Product:
    """Product entity. ``current_stock`` is mutated only by the transaction engine."""

    id: int
    name: str
    current_stock: int
    cost_price: Decimal
    sale_price: Decimal
    low_stock_threshold: int = 0
    sku: Optional[str] = None


@dataclass(frozen=True)
class LineItem:
    """A product line on a transaction. Negative quantity means a return."""

    product_id: int
    quantity: int
    unit_price: Decimal


@dataclass(frozen=True)
class Transaction:
    """A recorded entry in the transaction log."""

    id: int
    date: date
    category: str
    amount: Decimal
    description: Optional[str] = None
    party_user_id: Optional[int] = None
    party_lender_id: Optional[int] = None
    agreement_id: Optional[int] = None
    related_invoice_id: Optional[int] = None
    line_items: tuple[LineItem, ...] = ()
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class TransactionDraft:
    """Unsaved transaction fields, as supplied by a caller."""

    date: date
    category: str
    amount: Decimal
    description: Optional[str] = None
    party_user_id: Optional[int] = None
    party_lender_id: Optional[int] = None
    agreement_id: Optional[int] = None
    related_invoice_id: Optional[int] = None
    line_items: tuple[LineItem, ...] = ()


@dataclass(frozen=True)
class Agreement:
    """Financing agreement. Holds no running totals."""

    id: int
    party_id: int
    agreement_type: AgreementType
    principal: Decimal
    interest_rate_percent_per_month: Decimal
    start_date: date
    details: Optional[str] = None
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class InvoiceLineItem:
    """Invoice line as entered; taxable value is derived."""

    quantity: int
    unit_price: Decimal
    discount_amount: Decimal = Decimal("0")
    product_id: Optional[int] = None
    description: str = ""

    @property
    def taxable_value(self) -> Decimal:
        return self.quantity * self.unit_price - self.discount_amount


@dataclass(frozen=True)
class Invoice:
    """Tax invoice entity."""

    id: int
    invoice_number: str
    customer_id: int
    invoice_date: date
    invoice_type: InvoiceType
    line_items: tuple[InvoiceLineItem, ...]
    cgst_rate: Decimal
    sgst_rate: Decimal
    igst_rate: Decimal
    lump_discount: Decimal
    subtotal: Decimal
    cgst_amount: Decimal
    sgst_amount: Decimal
    igst_amount: Decimal
    returns_value: Decimal
    grand_total: Decimal
    amount_in_words: str
    paid_amount: Decimal
    status: InvoiceStatus


@dataclass(frozen=True)
class InvoiceTotals:
    """Computed invoice totals."""

    subtotal: Decimal
    cgst: Decimal
    sgst: Decimal
    igst: Decimal
    returns_value: Decimal
    grand_total: Decimal
    amount_in_words: str


@dataclass(frozen=True)
class ChitGroup:
    """A chit fund group."""

    id: int
    name: str
    chit_value: Decimal
    monthly_contribution: Decimal
    member_count: int
    duration_months: int
    commission_percent: Decimal
    start_date: date


@dataclass(frozen=True)
class ChitMember:
    """Membership of a customer in a chit group."""

    id: int
    group_id: int
    customer_id: int
    is_prized: bool = False
    prized_month: Optional[int] = None


@dataclass(frozen=True)
class AuctionSettlement:
    """Arithmetic outcome of one chit auction round."""

    foreman_commission: Decimal
    dividend_per_member: Decimal
    net_contribution: Decimal
    payout: Decimal


@dataclass(frozen=True)
class LedgerEntry:
    """One row of a reconstructed ledger."""

    transaction_id: int
    date: date
    category: str
    description: Optional[str]
    effect: Decimal
    debit: Decimal
    credit: Decimal
    running_balance: Decimal


@dataclass(frozen=True)
class LedgerSnapshot:
    """Opening balance, ordered entries and totals for one ledger window."""

    opening_balance: Decimal
    entries: tuple[LedgerEntry, ...]
    closing_balance: Decimal
    total_debits: Decimal
    total_credits: Decimal


@dataclass(frozen=True)
class MonthlyAccrual:
    """Interest due for one month of an agreement."""

    month: str
    interest_due: Decimal
    status: AccrualStatus


@dataclass(frozen=True)
class AccrualResult:
    """Outcome of the interest accrual calculation for an agreement."""

    outstanding_principal: Decimal
    interest_payable: Decimal
    principal_paid: Decimal
    interest_paid: Decimal
    monthly_breakdown: tuple[MonthlyAccrual, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class PartyBalance:
    """Balance of one party in a receivable or payable summary."""

    party_id: int
    name: str
    balance: Decimal


@dataclass(frozen=True)
class ProfitAndLoss:
    """Income and expense per category for a window."""

    start_date: Optional[date]
    end_date: Optional[date]
    income: tuple[tuple[str, Decimal], ...]
    expenses: tuple[tuple[str, Decimal], ...]
    total_income: Decimal
    total_expenses: Decimal

    @property
    def net_profit(self) -> Decimal:
        return self.total_income - self.total_expenses


@dataclass(frozen=True)
class ValuationSnapshot:
    """Position of the business as of a date."""

    as_of: date
    cash: Decimal
    bank: Decimal
    receivables: Decimal
    payables: Decimal
    stock_value: Decimal
    loans_given_outstanding: Decimal
    loans_taken_outstanding: Decimal

    @property
    def net_worth(self) -> Decimal:
        return self.cash + self.bank + self.receivables + self.stock_value - self.payables
