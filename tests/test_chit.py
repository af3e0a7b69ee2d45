"""Tests for chit fund groups and auctions."""

from datetime import date
from decimal import Decimal

import pytest

from khata.domain.chit import INSTALLMENT_CATEGORY, PAYOUT_CATEGORY, compute_settlement
from khata.domain.entities import ChitGroup
from khata.domain.errors import ConflictError, NotFoundError, ValidationError

START = date(2024, 1, 1)


@pytest.fixture
def members(party_service):
    """Three customers to enrol."""
    return [party_service.create_customer(name=f"Member {i}") for i in range(1, 4)]


@pytest.fixture
def group(chit_service, members):
    """A three-member group with every member enrolled."""
    group = chit_service.create_group(
        name="Pongal Chit",
        chit_value=Decimal("30000"),
        monthly_contribution=Decimal("10000"),
        member_count=3,
        duration_months=3,
        start_date=START,
        commission_percent=Decimal("5"),
    )
    for member in members:
        chit_service.add_member(group.id, member.id)
    return group


def test_compute_settlement():
    """Commission comes out of the discount; the rest is shared as dividend."""
    group = ChitGroup(
        id=1,
        name="Big",
        chit_value=Decimal("100000"),
        monthly_contribution=Decimal("5000"),
        member_count=20,
        duration_months=20,
        commission_percent=Decimal("5"),
        start_date=START,
    )

    settlement = compute_settlement(group, Decimal("20000"))

    assert settlement.foreman_commission == Decimal("5000.00")
    assert settlement.dividend_per_member == Decimal("750.00")
    assert settlement.net_contribution == Decimal("4250.00")
    assert settlement.payout == Decimal("80000.00")


class TestChitFundService:
    """Tests for chit groups in the database."""

    def test_create_group(self, chit_service):
        group = chit_service.create_group(
            name="Small",
            chit_value=Decimal("10000"),
            monthly_contribution=Decimal("1000"),
            member_count=10,
            duration_months=10,
            start_date=START,
        )
        assert chit_service.get_group(group.id) == group
        assert [g.name for g in chit_service.list_groups()] == ["Small"]

    @pytest.mark.parametrize(
        "field, value",
        [("chit_value", Decimal("0")), ("member_count", 0), ("commission_percent", Decimal("101"))],
    )
    def test_invalid_group(self, chit_service, field, value):
        kwargs = dict(
            name="Bad",
            chit_value=Decimal("10000"),
            monthly_contribution=Decimal("1000"),
            member_count=10,
            duration_months=10,
            start_date=START,
        )
        kwargs[field] = value
        with pytest.raises(ValidationError):
            chit_service.create_group(**kwargs)

    def test_duplicate_member(self, chit_service, group, members):
        with pytest.raises(ConflictError, match="already a member"):
            chit_service.add_member(group.id, members[0].id)

    def test_full_group(self, chit_service, party_service, group):
        extra = party_service.create_customer(name="Latecomer")
        with pytest.raises(ConflictError, match="already has"):
            chit_service.add_member(group.id, extra.id)

    def test_missing_group(self, chit_service):
        with pytest.raises(NotFoundError):
            chit_service.get_group(42)

    def test_settle_auction(self, chit_service, ledger_service, group, members):
        winner = members[1]

        posted = chit_service.settle_auction(
            group_id=group.id,
            auction_month=1,
            auction_date=date(2024, 1, 10),
            winning_bid_discount=Decimal("3000"),
            prized_customer_id=winner.id,
        )

        # commission 1500, dividend (3000 - 1500) / 3 = 500
        assert posted[0].category == PAYOUT_CATEGORY
        assert posted[0].amount == Decimal("27000.00")
        assert posted[0].party_user_id == winner.id
        assert [t.category for t in posted[1:]] == [INSTALLMENT_CATEGORY] * 2
        assert {t.amount for t in posted[1:]} == {Decimal("-9500.00")}
        assert {t.party_user_id for t in posted[1:]} == {members[0].id, members[2].id}

        assert ledger_service.customer_balance(winner.id) == Decimal("27000.00")
        assert ledger_service.customer_balance(members[0].id) == Decimal("-9500.00")
        assert ledger_service.cash_balance() == Decimal("0")

        prized = {m.customer_id: m for m in chit_service.list_members(group.id)}
        assert prized[winner.id].is_prized
        assert prized[winner.id].prized_month == 1
        assert not prized[members[0].id].is_prized

    def test_month_auctioned_once(self, chit_service, group, members):
        chit_service.settle_auction(group.id, 1, START, Decimal("3000"), members[0].id)
        with pytest.raises(ConflictError, match="already auctioned"):
            chit_service.settle_auction(group.id, 1, START, Decimal("3000"), members[1].id)

    def test_member_prized_once(self, chit_service, group, members):
        chit_service.settle_auction(group.id, 1, START, Decimal("3000"), members[0].id)
        with pytest.raises(ConflictError, match="already prized"):
            chit_service.settle_auction(group.id, 2, START, Decimal("3000"), members[0].id)

    def test_winner_must_be_member(self, chit_service, party_service, group):
        outsider = party_service.create_customer(name="Outsider")
        with pytest.raises(ValidationError, match="not a member"):
            chit_service.settle_auction(group.id, 1, START, Decimal("3000"), outsider.id)

    @pytest.mark.parametrize("month, bid", [(0, "3000"), (4, "3000"), (1, "30000")])
    def test_invalid_auction(self, chit_service, group, members, month, bid):
        with pytest.raises(ValidationError):
            chit_service.settle_auction(group.id, month, START, Decimal(bid), members[0].id)
