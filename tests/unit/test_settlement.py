"""Unit tests for loan settlement"""

import pytest
from dataclasses import replace
from decimal import Decimal
from finance_tracker.domain.settlement import settle_loan, split_payment
from finance_tracker.domain.models import EntryKind, OriginKind
from finance_tracker.domain.exceptions import ValidationError


def test_split_payment_principal_and_interest():
    assert split_payment(Decimal("1000"), Decimal("1100")) == (Decimal("1000"), Decimal("100"))


def test_split_payment_exact_principal_has_no_interest():
    assert split_payment(Decimal("1000"), "1000") == (Decimal("1000"), Decimal("0"))


def test_split_payment_rejects_partial():
    with pytest.raises(ValidationError, match="less than principal"):
        split_payment(Decimal("1000"), Decimal("999.99"))


@pytest.mark.parametrize("paid", [0, -5, None, "abc", float("nan"), True])
def test_split_payment_rejects_invalid_amounts(paid):
    with pytest.raises(ValidationError):
        split_payment(Decimal("1000"), paid)


def test_settle_lent_loan_with_interest(lent_loan):
    """Lent 1000, repaid 1100: principal and interest both come in as income"""
    result = settle_loan(lent_loan, Decimal("1100"))

    assert not result.already_settled
    assert result.loan.settled
    assert len(result.entries) == 2

    principal, interest = result.entries
    assert principal.kind == EntryKind.INCOME
    assert principal.amount == Decimal("1000.00")
    assert principal.category == "loan principal"
    assert principal.payment_method == "loan"
    assert principal.note == "Loan principal received from Ravi"
    assert principal.origin.kind == OriginKind.LOAN_PRINCIPAL
    assert principal.is_principal

    assert interest.kind == EntryKind.INCOME
    assert interest.amount == Decimal("100")
    assert interest.category == "loan interest"
    assert interest.note == "Loan interest received from Ravi"
    assert interest.origin.kind == OriginKind.LOAN_INTEREST
    assert not interest.is_principal
    assert interest.loan_id == lent_loan.id


def test_settle_borrowed_loan_exact_principal(borrowed_loan):
    """Borrowed 500, repaid exactly 500: one principal expense, no interest entry"""
    result = settle_loan(borrowed_loan, Decimal("500"))

    assert len(result.entries) == 1
    entry = result.entries[0]
    assert entry.kind == EntryKind.EXPENSE
    assert entry.amount == Decimal("500.00")
    assert entry.category == "Borrowed principal"
    assert entry.note == "Borrowed principal repaid to Meera"
    assert entry.is_principal


def test_settle_borrowed_loan_interest_labels(borrowed_loan):
    result = settle_loan(borrowed_loan, "525.50")

    interest = result.entries[1]
    assert interest.kind == EntryKind.EXPENSE
    assert interest.amount == Decimal("25.50")
    assert interest.category == "Borrowed interest"
    assert interest.note == "Borrowed interest paid to Meera"


def test_settle_does_not_mutate_input(lent_loan):
    settle_loan(lent_loan, Decimal("1000"))
    assert not lent_loan.settled


def test_settle_already_settled_is_noop(lent_loan):
    settled = replace(lent_loan, settled=True)

    result = settle_loan(settled, Decimal("1100"))

    assert result.already_settled
    assert result.entries == []
    assert result.loan is settled


def test_settle_rejection_leaves_loan_unsettled(lent_loan):
    with pytest.raises(ValidationError):
        settle_loan(lent_loan, Decimal("10"))
    assert not lent_loan.settled


def test_split_payment_rejects_sub_cent_amount():
    with pytest.raises(ValidationError, match="2 decimal places"):
        split_payment(Decimal("1000.00"), "1000.005")


def test_settle_interest_is_exact_difference(lent_loan):
    result = settle_loan(lent_loan, "1000.01")

    principal, interest = result.entries
    assert principal.amount == lent_loan.principal
    assert interest.amount == Decimal("0.01")
