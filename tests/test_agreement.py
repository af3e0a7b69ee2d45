"""Tests for agreements and interest accrual."""

from datetime import date
from decimal import Decimal

import pytest

from khata.domain.agreement import accrue, back_solve_principal, parse_agreement_terms
from khata.domain.entities import AccrualStatus, Agreement, AgreementType, Transaction
from khata.domain.errors import NotFoundError, UnknownCategory, ValidationError
from khata.domain.taxonomy import PaymentMode

START = date(2024, 1, 1)


def _agreement(principal="12000", rate="2", details=None):
    return Agreement(
        id=1,
        party_id=1,
        agreement_type=AgreementType.LOAN_TAKEN_BY_BIZ,
        principal=Decimal(principal),
        interest_rate_percent_per_month=Decimal(rate),
        start_date=START,
        details=details,
    )


def _payment(txn_id, on_date, amount, category="Loan Principal Repaid by Business (Bank)"):
    return Transaction(id=txn_id, date=on_date, category=category, amount=Decimal(amount))


class TestAgreementTerms:
    """Tests for EMI terms in free-text details."""

    def test_parses_emi_and_duration(self):
        terms = parse_agreement_terms("EMI: ₹5,000 for 12 months")
        assert terms.emi_amount == Decimal("5000")
        assert terms.duration_months == 12
        assert terms.is_complete

    def test_partial_terms(self):
        terms = parse_agreement_terms("EMI 2500")
        assert terms.emi_amount == Decimal("2500")
        assert terms.duration_months is None
        assert not terms.is_complete

    def test_no_details(self):
        assert not parse_agreement_terms(None).is_complete

    def test_back_solve_principal(self):
        principal = back_solve_principal(Decimal("5000"), 12, Decimal("0.015"))
        assert Decimal("54500") < principal < Decimal("54600")


class TestAccrue:
    """Tests for the pure accrual calculation."""

    def test_monthly_rate_without_payments(self):
        """12000 at 2% a month from 1 Jan, as of 1 Apr: four months of 240."""
        result = accrue(_agreement(), [], [], date(2024, 4, 1))

        assert [m.month for m in result.monthly_breakdown] == [
            "2024-01", "2024-02", "2024-03", "2024-04",
        ]
        assert all(m.interest_due == Decimal("240.00") for m in result.monthly_breakdown)
        assert result.interest_payable == Decimal("960.00")
        assert result.outstanding_principal == Decimal("12000.00")

    def test_statuses(self):
        """Past unpaid months are skipped; the current month is pending."""
        interest = [
            _payment(1, date(2024, 2, 15), "-240", "Loan Interest Paid by Business (Cash)")
        ]

        result = accrue(_agreement(), [], interest, date(2024, 4, 1))

        statuses = [m.status for m in result.monthly_breakdown]
        assert statuses == [
            AccrualStatus.SKIPPED,
            AccrualStatus.PAID,
            AccrualStatus.SKIPPED,
            AccrualStatus.PENDING,
        ]
        assert result.interest_paid == Decimal("240.00")
        assert result.interest_payable == Decimal("720.00")

    def test_principal_repayment_lowers_later_interest(self):
        principal = [_payment(1, date(2024, 2, 10), "-2000")]

        result = accrue(_agreement(), principal, [], date(2024, 4, 1))

        dues = [m.interest_due for m in result.monthly_breakdown]
        assert dues == [Decimal("240.00"), Decimal("240.00"), Decimal("200.00"), Decimal("200.00")]
        assert result.principal_paid == Decimal("2000.00")
        assert result.outstanding_principal == Decimal("10000.00")

    def test_as_of_before_start(self):
        result = accrue(_agreement(), [], [], date(2023, 12, 31))
        assert result.monthly_breakdown == ()
        assert result.interest_payable == Decimal("0.00")

    def test_emi_terms_without_rate(self):
        """EMI x months less principal is spread evenly over the term."""
        agreement = _agreement(principal="50000", rate="0", details="EMI: 5000, 12 months")

        result = accrue(agreement, [], [], date(2024, 3, 1))

        assert len(result.monthly_breakdown) == 3
        assert all(m.interest_due == Decimal("833.33") for m in result.monthly_breakdown)
        assert result.interest_payable == Decimal("2499.99")

    def test_emi_breakdown_stops_at_duration(self):
        agreement = _agreement(principal="50000", rate="0", details="EMI: 5000, 12 months")
        result = accrue(agreement, [], [], date(2026, 1, 1))
        assert len(result.monthly_breakdown) == 12

    def test_emi_total_as_principal_is_back_solved(self):
        agreement = _agreement(principal="60000", rate="0", details="EMI: 5000, 12 months")

        result = accrue(agreement, [], [], date(2024, 1, 1))

        assert Decimal("54500") < result.outstanding_principal < Decimal("54600")
        assert result.monthly_breakdown[0].interest_due > Decimal("0")

    def test_no_rate_and_no_terms_accrues_nothing(self):
        result = accrue(_agreement(rate="0"), [], [], date(2024, 6, 1))
        assert result.monthly_breakdown == ()
        assert result.interest_payable == Decimal("0.00")


class TestAgreementService:
    """Tests for agreements stored in the database."""

    def test_loan_taken_with_bank_disbursement(
        self, agreement_service, ledger_service, sample_lender
    ):
        agreement = agreement_service.create_agreement(
            party_id=sample_lender.id,
            agreement_type=AgreementType.LOAN_TAKEN_BY_BIZ,
            principal=Decimal("12000"),
            start_date=START,
            interest_rate=Decimal("2"),
            disbursement_mode=PaymentMode.BANK,
        )

        assert agreement.principal == Decimal("12000")
        assert ledger_service.bank_balance() == Decimal("12000")
        assert ledger_service.entity_balance(sample_lender.id) == Decimal("12000")
        history = ledger_service.agreement_ledger(agreement.id)
        assert [e.category for e in history.entries] == ["Loan Received by Business (to Bank)"]

    def test_repayment_is_stored_negative(self, agreement_service, ledger_service, sample_lender):
        agreement = agreement_service.create_agreement(
            party_id=sample_lender.id,
            agreement_type="loan_taken_by_biz",
            principal=Decimal("12000"),
            start_date=START,
            interest_rate=Decimal("2"),
            disbursement_mode=PaymentMode.CASH,
        )

        txn = agreement_service.record_repayment(
            agreement.id, date(2024, 2, 10), Decimal("2000"), mode=PaymentMode.CASH
        )

        assert txn.category == "Loan Principal Repaid by Business (Cash)"
        assert txn.amount == Decimal("-2000")
        assert ledger_service.cash_balance() == Decimal("10000")
        assert ledger_service.entity_balance(sample_lender.id) == Decimal("10000")

    def test_accrual_reads_live_log(self, agreement_service, sample_lender):
        agreement = agreement_service.create_agreement(
            party_id=sample_lender.id,
            agreement_type=AgreementType.LOAN_TAKEN_BY_BIZ,
            principal=Decimal("12000"),
            start_date=START,
            interest_rate=Decimal("2"),
        )
        agreement_service.record_repayment(
            agreement.id, date(2024, 2, 20), Decimal("240"), interest=True
        )

        result = agreement_service.accrual(agreement.id, as_of=date(2024, 4, 1))

        assert result.interest_paid == Decimal("240.00")
        assert result.interest_payable == Decimal("720.00")
        assert result.monthly_breakdown[1].status == AccrualStatus.PAID

    def test_accrual_fails_on_unknown_category(self, temp_db, agreement_service, sample_lender):
        agreement = agreement_service.create_agreement(
            party_id=sample_lender.id,
            agreement_type=AgreementType.LOAN_TAKEN_BY_BIZ,
            principal=Decimal("12000"),
            start_date=START,
            interest_rate=Decimal("2"),
        )
        temp_db.create_transaction(
            date=date(2024, 2, 20),
            category="Loan Waiver (Cash)",
            amount=Decimal("-500"),
            entity_id=sample_lender.id,
            agreement_id=agreement.id,
        )

        with pytest.raises(UnknownCategory):
            agreement_service.accrual(agreement.id, as_of=date(2024, 4, 1))

    def test_loan_given_to_customer(self, agreement_service, ledger_service, sample_customer):
        agreement = agreement_service.create_agreement(
            party_id=sample_customer.id,
            agreement_type=AgreementType.LOAN_GIVEN_BY_BIZ,
            principal=Decimal("5000"),
            start_date=START,
            disbursement_mode=PaymentMode.CASH,
        )
        agreement_service.record_repayment(agreement.id, date(2024, 3, 1), Decimal("1000"))

        assert ledger_service.customer_balance(sample_customer.id) == Decimal("4000")
        assert ledger_service.cash_balance() == Decimal("-4000")
        result = agreement_service.accrual(agreement.id, as_of=date(2024, 3, 31))
        assert result.outstanding_principal == Decimal("4000.00")

    def test_onboard_existing_loan(self, agreement_service, ledger_service, sample_lender):
        agreement = agreement_service.onboard_existing_loan(
            entity_id=sample_lender.id,
            current_balance=Decimal("80000"),
            start_date=START,
            original_amount=Decimal("100000"),
        )

        assert agreement.agreement_type == AgreementType.LOAN_TAKEN_BY_BIZ
        assert agreement.principal == Decimal("80000")
        assert ledger_service.bank_balance() == Decimal("80000")
        history = ledger_service.agreement_ledger(agreement.id)
        assert "Original Amount: 100000" in history.entries[0].description

    def test_wrong_party_kind(self, agreement_service, sample_customer):
        """Loans taken are owed to external entities, not customers."""
        with pytest.raises(NotFoundError):
            agreement_service.create_agreement(
                party_id=sample_customer.id,
                agreement_type=AgreementType.LOAN_TAKEN_BY_BIZ,
                principal=Decimal("1000"),
                start_date=START,
            )

    def test_invalid_principal(self, agreement_service, sample_lender):
        with pytest.raises(ValidationError):
            agreement_service.create_agreement(
                party_id=sample_lender.id,
                agreement_type=AgreementType.LOAN_TAKEN_BY_BIZ,
                principal=Decimal("0"),
                start_date=START,
            )

    def test_unknown_type(self, agreement_service, sample_lender):
        with pytest.raises(ValidationError, match="Unknown agreement type"):
            agreement_service.create_agreement(
                party_id=sample_lender.id,
                agreement_type="mortgage",
                principal=Decimal("1000"),
                start_date=START,
            )

    def test_other_agreement_has_no_disbursement_or_repayment(
        self, agreement_service, sample_lender
    ):
        with pytest.raises(ValidationError):
            agreement_service.create_agreement(
                party_id=sample_lender.id,
                agreement_type=AgreementType.OTHER,
                principal=Decimal("1000"),
                start_date=START,
                disbursement_mode=PaymentMode.CASH,
            )
        agreement = agreement_service.create_agreement(
            party_id=sample_lender.id,
            agreement_type=AgreementType.OTHER,
            principal=Decimal("1000"),
            start_date=START,
        )
        with pytest.raises(ValidationError, match="not a loan"):
            agreement_service.record_repayment(agreement.id, START, Decimal("10"))

    def test_missing_agreement(self, agreement_service):
        with pytest.raises(NotFoundError):
            agreement_service.get_agreement(999)
