"""Loan settlement - principal/interest split into signed ledger entries"""

from dataclasses import dataclass, replace
from decimal import Decimal
from typing import Any, Dict, List

from finance_tracker.domain.exceptions import ValidationError
from finance_tracker.domain.loan_entries import parse_role
from finance_tracker.domain.models import (
    EntryKind,
    EntryOrigin,
    LedgerEntry,
    Loan,
    LoanRole,
    SettlementResult,
)
from finance_tracker.domain.money import parse_money

SETTLEMENT_METHOD = "loan"


@dataclass(frozen=True)
class _SettlementLabels:
    kind: EntryKind
    principal_category: str
    principal_note: str
    interest_category: str
    interest_note: str


_LABELS: Dict[LoanRole, _SettlementLabels] = {
    LoanRole.BORROWED: _SettlementLabels(
        kind=EntryKind.EXPENSE,
        principal_category="Borrowed principal",
        principal_note="Borrowed principal repaid to {name}",
        interest_category="Borrowed interest",
        interest_note="Borrowed interest paid to {name}",
    ),
    LoanRole.LENT: _SettlementLabels(
        kind=EntryKind.INCOME,
        principal_category="loan principal",
        principal_note="Loan principal received from {name}",
        interest_category="loan interest",
        interest_note="Loan interest received from {name}",
    ),
}


def split_payment(principal: Decimal, paid_amount: Any) -> tuple[Decimal, Decimal]:
    """
    Split a settlement payment into (principal, interest) portions.

    Partial settlement is not supported: the payment must cover at least the
    full principal, and everything above it is interest.

    Raises:
        ValidationError: paid amount is non-numeric, finer than cents,
            non-positive or below principal
    """
    paid = parse_money(paid_amount, "paid_amount")
    if paid <= 0:
        raise ValidationError("Paid amount must be greater than zero")
    if paid < principal:
        raise ValidationError(f"Paid amount {paid} is less than principal {principal}")
    return principal, paid - principal


def settlement_entries(loan: Loan, paid_amount: Any) -> List[LedgerEntry]:
    """Build the principal entry and, when interest was paid, the interest entry"""
    principal, interest = split_payment(loan.principal, paid_amount)
    labels = _LABELS[parse_role(loan.role)]
    name = loan.counterparty_name

    entries = [
        LedgerEntry(
            owner_id=loan.owner_id,
            kind=labels.kind,
            amount=principal,
            category=labels.principal_category,
            payment_method=SETTLEMENT_METHOD,
            note=labels.principal_note.format(name=name),
            origin=EntryOrigin.loan_principal(loan.id),
        )
    ]

    if interest > 0:
        entries.append(
            LedgerEntry(
                owner_id=loan.owner_id,
                kind=labels.kind,
                amount=interest,
                category=labels.interest_category,
                payment_method=SETTLEMENT_METHOD,
                note=labels.interest_note.format(name=name),
                origin=EntryOrigin.loan_interest(loan.id),
            )
        )

    return entries


def settle_loan(loan: Loan, paid_amount: Any) -> SettlementResult:
    """
    Main entry point: settle a loan in full.

    An already-settled loan is a benign no-op: the result carries no entries
    and already_settled=True. The input loan is never mutated; the returned
    loan is a settled copy, which the caller persists together with the
    entries.

    Raises:
        ValidationError: paid amount invalid or below principal
    """
    if loan.settled:
        return SettlementResult(loan=loan, entries=[], already_settled=True)

    entries = settlement_entries(loan, paid_amount)
    return SettlementResult(loan=replace(loan, settled=True), entries=entries)
