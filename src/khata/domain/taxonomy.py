"""Category taxonomy.

Every transaction category is a structured ``CategoryKey`` (a base category
plus an optional payment mode) with fixed ledger-effect metadata. The table is
built once and exposed as an immutable mapping keyed by display name; services
receive a ``CategoryTaxonomy`` instance instead of reaching for module state.

Category names are a stored format: renaming or removing one breaks every
transaction that references it, so entries are only ever appended.
"""

import re
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Iterable, Iterator, Optional

from khata.domain.entities import LedgerEffect, NatureHint, RelevantTo
from khata.domain.errors import UnknownCategory, unknown_category


class PaymentMode(str, Enum):
    """Payment mode suffix of a category name."""

    CASH = "Cash"
    BANK = "Bank"
    TO_CASH = "to Cash"
    TO_BANK = "to Bank"
    ON_CREDIT = "On Credit"
    CREDIT_NOTE = "Credit Note"
    DEBIT_NOTE = "Debit Note"
    REFUND_VIA_CASH = "Refund via Cash"
    REFUND_VIA_BANK = "Refund via Bank"


MODE_LEDGER_EFFECT = {
    PaymentMode.CASH: LedgerEffect.CASH,
    PaymentMode.TO_CASH: LedgerEffect.CASH,
    PaymentMode.REFUND_VIA_CASH: LedgerEffect.CASH,
    PaymentMode.BANK: LedgerEffect.BANK,
    PaymentMode.TO_BANK: LedgerEffect.BANK,
    PaymentMode.REFUND_VIA_BANK: LedgerEffect.BANK,
    PaymentMode.ON_CREDIT: LedgerEffect.NONE,
    PaymentMode.CREDIT_NOTE: LedgerEffect.NONE,
    PaymentMode.DEBIT_NOTE: LedgerEffect.NONE,
}


class StockMovement(str, Enum):
    """Kinds of stock movement a product-bearing category performs."""

    SALE = "sale"
    PURCHASE = "purchase"
    RETURN_FROM_CUSTOMER = "return_from_customer"
    RETURN_TO_SUPPLIER = "return_to_supplier"
    STOCK_INCREASE = "stock_increase"
    STOCK_DECREASE = "stock_decrease"


# Sign applied to a line item's signed quantity. Deletion negates the result.
STOCK_DELTA_SIGN = MappingProxyType({
    StockMovement.SALE: -1,
    StockMovement.PURCHASE: 1,
    StockMovement.RETURN_FROM_CUSTOMER: 1,
    StockMovement.RETURN_TO_SUPPLIER: -1,
    StockMovement.STOCK_INCREASE: 1,
    StockMovement.STOCK_DECREASE: -1,
})


def stock_delta(movement: StockMovement, quantity: int, reverse: bool = False) -> int:
    """Return the change in stock for one line item.

    Args:
        movement: Stock movement of the transaction category
        quantity: Signed line quantity (negative for an embedded return)
        reverse: If True, return the inverse delta used when deleting

    Returns:
        Signed integer stock delta
    """
    delta = STOCK_DELTA_SIGN[movement] * quantity
    return -delta if reverse else delta


# Category groups
CUSTOMER_SALE = "customer_sale"
CUSTOMER_PAYMENT = "customer_payment"
CUSTOMER_RETURN = "customer_return"
CUSTOMER_REFUND = "customer_refund"
CUSTOMER_LOAN_OUT = "customer_loan_out"
CUSTOMER_LOAN_REPAY = "customer_loan_repay"
CUSTOMER_LOAN_INTEREST = "customer_loan_interest"
CHIT = "chit"
SUPPLIER_PURCHASE = "supplier_purchase"
SUPPLIER_PAYMENT = "supplier_payment"
SUPPLIER_RETURN = "supplier_return"
SUPPLIER_REFUND = "supplier_refund"
BIZ_LOAN_IN = "biz_loan_in"
BIZ_LOAN_REPAY = "biz_loan_repay"
BIZ_LOAN_INTEREST = "biz_loan_interest"
BIZ_OPS = "biz_ops"
CAPITAL = "capital"
FIXED_ASSET = "fixed_asset"
TAX = "tax"
TRANSFER = "transfer"
STOCK_ADJUSTMENT = "stock_adjustment"
OPENING_BALANCE = "opening_balance"

OPENING_BALANCE_BASE = "Opening Balance"

# Required sign of the stored amount per group. Sales and purchases may net
# negative through embedded returns, so they are left open.
GROUP_AMOUNT_SIGN = MappingProxyType({
    CUSTOMER_PAYMENT: 1,
    CUSTOMER_RETURN: -1,
    CUSTOMER_REFUND: 1,
    CUSTOMER_LOAN_OUT: 1,
    CUSTOMER_LOAN_REPAY: -1,
    CUSTOMER_LOAN_INTEREST: -1,
    SUPPLIER_PAYMENT: -1,
    SUPPLIER_RETURN: -1,
    SUPPLIER_REFUND: 1,
    BIZ_LOAN_IN: 1,
    BIZ_LOAN_REPAY: -1,
    BIZ_LOAN_INTEREST: -1,
    FIXED_ASSET: -1,
    TAX: -1,
    TRANSFER: 1,
})


@dataclass(frozen=True)
class CategoryKey:
    """Structured category identity: base category plus payment mode."""

    base: str
    mode: Optional[PaymentMode] = None

    @property
    def name(self) -> str:
        """Display name, which is also the stored key."""
        if self.mode is None:
            return self.base
        if self.base == OPENING_BALANCE_BASE:
            return f"{self.base} - {self.mode.value}"
        return f"{self.base} ({self.mode.value})"

    def with_mode(self, mode: Optional[PaymentMode]) -> "CategoryKey":
        """Return the same base category under another payment mode."""
        return CategoryKey(base=self.base, mode=mode)

    def __str__(self) -> str:
        return self.name


_NAME_PATTERNS = (
    re.compile(rf"^(?P<base>{OPENING_BALANCE_BASE}) - (?P<mode>[^-]+)$"),
    re.compile(r"^(?P<base>.+?) \((?P<mode>[^()]+)\)$"),
)

_MODES_BY_VALUE = {mode.value: mode for mode in PaymentMode}


def parse_category_name(name: str) -> CategoryKey:
    """Split a category display name into base category and payment mode.

    A parenthesised suffix that is not a payment mode (for example
    ``Stock Adjustment (Increase)``) is part of the base name.
    """
    name = name.strip()
    for pattern in _NAME_PATTERNS:
        match = pattern.match(name)
        if match is None:
            continue
        mode = _MODES_BY_VALUE.get(match.group("mode").strip())
        if mode is not None:
            return CategoryKey(base=match.group("base"), mode=mode)
    return CategoryKey(base=name)


@dataclass(frozen=True)
class Category:
    """Ledger-effect metadata for one category.

    ``cash_direction`` is +1 when the category brings money in and -1 when it
    sends money out; it is only consulted for party-relevant categories, whose
    stored sign follows the party ledger rather than the money ledger.
    ``amount_sign`` is the required sign of the stored amount, or 0 when
    either sign is allowed.
    """

    key: CategoryKey
    group: str
    ledger_effect: LedgerEffect
    relevant_to: RelevantTo
    nature_hint: NatureHint
    cash_direction: int = 0
    stock_movement: Optional[StockMovement] = None
    amount_sign: int = 0

    @property
    def name(self) -> str:
        return self.key.name

    @property
    def is_product_sale(self) -> bool:
        return self.stock_movement == StockMovement.SALE

    @property
    def is_product_related(self) -> bool:
        return self.stock_movement is not None

    @property
    def is_opening_balance(self) -> bool:
        return self.group == OPENING_BALANCE


def _define(
    base: str,
    modes: Iterable[Optional[PaymentMode]],
    group: str,
    relevant_to: RelevantTo,
    nature_hint: NatureHint,
    cash_direction: int = 0,
    stock_movement: Optional[StockMovement] = None,
    ledger_effect: Optional[LedgerEffect] = None,
    amount_sign: Optional[int] = None,
) -> list[Category]:
    if amount_sign is None:
        amount_sign = GROUP_AMOUNT_SIGN.get(group, 0)
    categories = []
    for mode in modes:
        effect = ledger_effect
        if effect is None:
            effect = MODE_LEDGER_EFFECT[mode] if mode is not None else LedgerEffect.NONE
        categories.append(
            Category(
                key=CategoryKey(base=base, mode=mode),
                group=group,
                ledger_effect=effect,
                relevant_to=relevant_to,
                nature_hint=nature_hint,
                cash_direction=cash_direction,
                stock_movement=stock_movement,
                amount_sign=amount_sign,
            )
        )
    return categories


_M = PaymentMode
_CASH_BANK = (_M.CASH, _M.BANK)
_CUSTOMER = RelevantTo.CUSTOMER
_LENDER = RelevantTo.LENDER
_NONE = RelevantTo.NONE


def _default_categories() -> list[Category]:
    n = NatureHint
    s = StockMovement
    return [
        # Customer side
        *_define("Sale to Customer", (_M.CASH, _M.BANK, _M.ON_CREDIT), CUSTOMER_SALE,
                 _CUSTOMER, n.INCOME, 1, s.SALE),
        *_define("Payment Received from Customer", _CASH_BANK, CUSTOMER_PAYMENT,
                 _CUSTOMER, n.RECEIVABLE_DECREASE, 1),
        *_define("Product Return from Customer", (_M.CREDIT_NOTE,), CUSTOMER_RETURN,
                 _CUSTOMER, n.EXPENSE, 0, s.RETURN_FROM_CUSTOMER),
        *_define("Product Return from Customer", (_M.REFUND_VIA_CASH, _M.REFUND_VIA_BANK),
                 CUSTOMER_REFUND, _CUSTOMER, n.RECEIVABLE_INCREASE, -1, s.RETURN_FROM_CUSTOMER),
        *_define("Loan Given to Customer", _CASH_BANK, CUSTOMER_LOAN_OUT,
                 _CUSTOMER, n.RECEIVABLE_INCREASE, -1),
        *_define("Loan Repayment Received from Customer", _CASH_BANK, CUSTOMER_LOAN_REPAY,
                 _CUSTOMER, n.RECEIVABLE_DECREASE, 1),
        *_define("Interest on Customer Loan Received", _CASH_BANK, CUSTOMER_LOAN_INTEREST,
                 _CUSTOMER, n.INCOME, 1),
        *_define("Chit Installment Received from Customer", (None,), CHIT,
                 _CUSTOMER, n.RECEIVABLE_DECREASE, amount_sign=-1),
        *_define("Chit Payout to Customer", (None,), CHIT,
                 _CUSTOMER, n.RECEIVABLE_INCREASE, amount_sign=1),
        *_define("Opening Balance Adjustment", (None,), OPENING_BALANCE,
                 _CUSTOMER, n.NEUTRAL),
        # Supplier and lender side
        *_define("Purchase from Supplier", (_M.CASH, _M.BANK, _M.ON_CREDIT), SUPPLIER_PURCHASE,
                 _LENDER, n.EXPENSE, -1, s.PURCHASE),
        *_define("Initial Stock Purchase", (_M.ON_CREDIT,), SUPPLIER_PURCHASE,
                 _LENDER, n.EXPENSE, 0, s.PURCHASE),
        *_define("Payment Made to Supplier", _CASH_BANK, SUPPLIER_PAYMENT,
                 _LENDER, n.PAYABLE_DECREASE, -1),
        *_define("Product Return to Supplier", (_M.DEBIT_NOTE,), SUPPLIER_RETURN,
                 _LENDER, n.INCOME, 0, s.RETURN_TO_SUPPLIER),
        *_define("Product Return to Supplier", (_M.REFUND_VIA_CASH, _M.REFUND_VIA_BANK),
                 SUPPLIER_REFUND, _LENDER, n.PAYABLE_INCREASE, 1, s.RETURN_TO_SUPPLIER),
        *_define("Loan Received by Business", (_M.TO_CASH, _M.TO_BANK), BIZ_LOAN_IN,
                 _LENDER, n.PAYABLE_INCREASE, 1),
        *_define("Loan Principal Repaid by Business", _CASH_BANK, BIZ_LOAN_REPAY,
                 _LENDER, n.PAYABLE_DECREASE, -1),
        *_define("Loan Interest Paid by Business", _CASH_BANK, BIZ_LOAN_INTEREST,
                 _LENDER, n.EXPENSE, -1),
        *_define("Opening Payable Adjustment", (None,), OPENING_BALANCE,
                 _LENDER, n.NEUTRAL),
        # Business operations
        *_define("Business Expense", _CASH_BANK, BIZ_OPS, _NONE, n.EXPENSE, amount_sign=-1),
        *_define("Rent Paid", _CASH_BANK, BIZ_OPS, _NONE, n.EXPENSE, amount_sign=-1),
        *_define("Salary Paid", _CASH_BANK, BIZ_OPS, _NONE, n.EXPENSE, amount_sign=-1),
        *_define("Utility Bill Paid", _CASH_BANK, BIZ_OPS, _NONE, n.EXPENSE, amount_sign=-1),
        *_define("Bank Charges", (_M.BANK,), BIZ_OPS, _NONE, n.EXPENSE, amount_sign=-1),
        *_define("Other Income", _CASH_BANK, BIZ_OPS, _NONE, n.INCOME, amount_sign=1),
        *_define("Bank Interest Received", (_M.BANK,), BIZ_OPS, _NONE, n.INCOME, amount_sign=1),
        *_define("GST Paid", _CASH_BANK, TAX, _NONE, n.NEUTRAL),
        *_define("Fixed Asset Purchase", _CASH_BANK, FIXED_ASSET, _NONE, n.NEUTRAL),
        *_define("Owner Capital Introduced", _CASH_BANK, CAPITAL, _NONE, n.NEUTRAL, amount_sign=1),
        *_define("Owner Drawings", _CASH_BANK, CAPITAL, _NONE, n.NEUTRAL, amount_sign=-1),
        *_define("Cash Deposited to Bank", (None,), TRANSFER, _NONE, n.NEUTRAL,
                 ledger_effect=LedgerEffect.BOTH_CASH_OUT_BANK_IN),
        *_define("Cash Withdrawn from Bank", (None,), TRANSFER, _NONE, n.NEUTRAL,
                 ledger_effect=LedgerEffect.BOTH_CASH_IN_BANK_OUT),
        *_define(OPENING_BALANCE_BASE, _CASH_BANK, OPENING_BALANCE, _NONE, n.NEUTRAL),
        # Stock only
        *_define("Stock Adjustment (Increase)", (None,), STOCK_ADJUSTMENT, _NONE, n.NEUTRAL,
                 0, s.STOCK_INCREASE),
        *_define("Stock Adjustment (Decrease)", (None,), STOCK_ADJUSTMENT, _NONE, n.NEUTRAL,
                 0, s.STOCK_DECREASE),
    ]


class CategoryTaxonomy:
    """Immutable lookup of categories keyed by display name."""

    def __init__(self, categories: Iterable[Category]):
        index: dict[str, Category] = {}
        for category in categories:
            if category.name in index:
                raise ValueError(f"Duplicate category '{category.name}'")
            index[category.name] = category
        self._categories = MappingProxyType(index)

    def __contains__(self, name: object) -> bool:
        return name in self._categories

    def __iter__(self) -> Iterator[Category]:
        return iter(self._categories.values())

    def __len__(self) -> int:
        return len(self._categories)

    def get(self, name: str) -> Optional[Category]:
        """Get a category by name, or None."""
        return self._categories.get(name)

    def require(self, name: str) -> Category:
        """Get a category by name.

        Raises:
            UnknownCategory: If the name is not in the taxonomy
        """
        category = self._categories.get(name)
        if category is None:
            raise UnknownCategory(unknown_category(name))
        return category

    def resolve_key(self, key: CategoryKey) -> Category:
        """Get the category for a structured key."""
        return self.require(key.name)

    def names_in_groups(self, *groups: str) -> tuple[str, ...]:
        """Return the names of every category belonging to the given groups."""
        return tuple(c.name for c in self._categories.values() if c.group in groups)

    def modes_for(self, base: str) -> tuple[Optional[PaymentMode], ...]:
        """Return the payment modes a base category is defined for."""
        return tuple(c.key.mode for c in self._categories.values() if c.key.base == base)


DEFAULT_TAXONOMY = CategoryTaxonomy(_default_categories())
