"""Chit fund groups and auction settlement."""

import logging
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from khata.database.base import Database
from khata.domain.entities import AuctionSettlement, ChitGroup, ChitMember, Transaction
from khata.domain.errors import (
    ConflictError,
    NotFoundError,
    ValidationError,
    chit_group_not_found,
    customer_not_found,
)
from khata.domain.taxonomy import DEFAULT_TAXONOMY, CategoryTaxonomy
from khata.domain.transaction import TransactionService

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")

PAYOUT_CATEGORY = "Chit Payout to Customer"
INSTALLMENT_CATEGORY = "Chit Installment Received from Customer"


def _cents(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def compute_settlement(group: ChitGroup, winning_bid_discount: Decimal) -> AuctionSettlement:
    """Arithmetic of one auction round.

    The foreman's commission comes out of the winning discount; what remains
    is shared as a dividend by every member, lowering this month's
    contribution. The prized member takes the chit value less the discount.
    """
    winning_bid_discount = Decimal(winning_bid_discount)
    commission = group.chit_value * group.commission_percent / 100
    dividend = (winning_bid_discount - commission) / group.member_count
    return AuctionSettlement(
        foreman_commission=_cents(commission),
        dividend_per_member=_cents(dividend),
        net_contribution=_cents(group.monthly_contribution - dividend),
        payout=_cents(group.chit_value - winning_bid_discount),
    )


class ChitFundService:
    """Service for chit fund groups, members and auctions."""

    def __init__(self, db: Database, taxonomy: CategoryTaxonomy = DEFAULT_TAXONOMY):
        self.db = db
        self.transactions = TransactionService(db, taxonomy)

    def create_group(
        self,
        name: str,
        chit_value: Decimal,
        monthly_contribution: Decimal,
        member_count: int,
        duration_months: int,
        start_date: date,
        commission_percent: Decimal = Decimal("0"),
    ) -> ChitGroup:
        """Create a chit group.

        Raises:
            ValidationError: If any figure is not positive
        """
        if not name or not name.strip():
            raise ValidationError("Chit group name cannot be empty")
        if Decimal(chit_value) <= 0 or Decimal(monthly_contribution) <= 0:
            raise ValidationError("Chit value and monthly contribution must be positive")
        if member_count <= 0 or duration_months <= 0:
            raise ValidationError("Member count and duration must be positive")
        if not 0 <= Decimal(commission_percent) <= 100:
            raise ValidationError("Commission percent must be between 0 and 100")

        group_id = self.db.create_chit_group(
            name=name.strip(),
            chit_value=Decimal(chit_value),
            monthly_contribution=Decimal(monthly_contribution),
            member_count=member_count,
            duration_months=duration_months,
            commission_percent=Decimal(commission_percent),
            start_date=start_date,
        )
        logger.info("Created chit group %s (%s)", group_id, name)
        return self.db.get_chit_group(group_id)

    def get_group(self, group_id: int) -> ChitGroup:
        """Get a chit group.

        Raises:
            NotFoundError: If the group does not exist
        """
        group = self.db.get_chit_group(group_id)
        if group is None:
            raise NotFoundError(chit_group_not_found(group_id))
        return group

    def list_groups(self) -> list[ChitGroup]:
        """List chit groups."""
        return self.db.list_chit_groups()

    def add_member(self, group_id: int, customer_id: int) -> ChitMember:
        """Enrol a customer in a group.

        Raises:
            NotFoundError: If the group or customer does not exist
            ConflictError: If the customer is already a member or the group is full
        """
        group = self.get_group(group_id)
        if self.db.get_customer(customer_id) is None:
            raise NotFoundError(customer_not_found(customer_id))

        members = self.db.list_chit_members(group_id)
        if any(m.customer_id == customer_id for m in members):
            raise ConflictError(f"Customer {customer_id} is already a member of '{group.name}'")
        if len(members) >= group.member_count:
            raise ConflictError(f"Chit group '{group.name}' already has {group.member_count} members")

        self.db.add_chit_member(group_id, customer_id)
        return next(m for m in self.db.list_chit_members(group_id) if m.customer_id == customer_id)

    def list_members(self, group_id: int) -> list[ChitMember]:
        """List members of a group."""
        self.get_group(group_id)
        return self.db.list_chit_members(group_id)

    def settle_auction(
        self,
        group_id: int,
        auction_month: int,
        auction_date: date,
        winning_bid_discount: Decimal,
        prized_customer_id: int,
    ) -> list[Transaction]:
        """Settle one auction round.

        Posts the payout to the prized member and the reduced installment for
        every other member, records the auction and flags the winner, all in
        one unit of work.

        Returns:
            The posted transactions, payout first

        Raises:
            NotFoundError: If the group does not exist
            ValidationError: If the month, bid or winner is invalid
            ConflictError: If the month was already auctioned or the winner already prized
        """
        group = self.get_group(group_id)
        winning_bid_discount = Decimal(winning_bid_discount)

        if not 1 <= auction_month <= group.duration_months:
            raise ValidationError(
                f"Auction month must be between 1 and {group.duration_months}"
            )
        if not 0 <= winning_bid_discount < group.chit_value:
            raise ValidationError("Winning bid discount must be less than the chit value")
        if self.db.chit_auction_exists(group_id, auction_month):
            raise ConflictError(f"Month {auction_month} of '{group.name}' is already auctioned")

        members = self.db.list_chit_members(group_id)
        winner: Optional[ChitMember] = next(
            (m for m in members if m.customer_id == prized_customer_id), None
        )
        if winner is None:
            raise ValidationError(
                f"Customer {prized_customer_id} is not a member of '{group.name}'"
            )
        if winner.is_prized:
            raise ConflictError(
                f"Customer {prized_customer_id} was already prized in month {winner.prized_month}"
            )

        settlement = compute_settlement(group, winning_bid_discount)

        posted = []
        with self.db.unit_of_work():
            self.db.record_chit_auction(
                group_id=group_id,
                auction_month=auction_month,
                auction_date=auction_date,
                winning_bid_discount=winning_bid_discount,
                foreman_commission=settlement.foreman_commission,
                dividend_amount=settlement.dividend_per_member,
                net_contribution=settlement.net_contribution,
                payout_amount=settlement.payout,
                prized_customer_id=prized_customer_id,
            )
            self.db.mark_chit_member_prized(group_id, prized_customer_id, auction_month)

            posted.append(
                self.transactions.record(
                    on_date=auction_date,
                    category=PAYOUT_CATEGORY,
                    amount=settlement.payout,
                    description=f"Payout for {group.name} - Month {auction_month}",
                    customer_id=prized_customer_id,
                )
            )
            for member in members:
                if member.customer_id == prized_customer_id:
                    continue
                posted.append(
                    self.transactions.record(
                        on_date=auction_date,
                        category=INSTALLMENT_CATEGORY,
                        amount=-settlement.net_contribution,
                        description=f"Installment for {group.name} - Month {auction_month}",
                        customer_id=member.customer_id,
                    )
                )

        logger.info(
            "Settled month %s of chit group %s: payout %s to customer %s",
            auction_month,
            group_id,
            settlement.payout,
            prized_customer_id,
        )
        return posted
