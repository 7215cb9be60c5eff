"""Opening ledger entry generation for newly created loans"""

from typing import Any

from finance_tracker.domain.exceptions import ValidationError
from finance_tracker.domain.models import EntryKind, EntryOrigin, LedgerEntry, Loan, LoanRole
from finance_tracker.domain.money import parse_money

# Labels written on the opening entry, keyed by loan role
LENT_OPENING_CATEGORY = "loan principal"
LENT_OPENING_METHOD = "loan"
BORROWED_OPENING_CATEGORY = "Borrowed principal"
BORROWED_OPENING_METHOD = "Borrow"


def parse_role(value: Any) -> LoanRole:
    """Map raw input to a LoanRole, rejecting anything but lent/borrowed"""
    if isinstance(value, LoanRole):
        return value
    try:
        return LoanRole(str(value).strip().lower())
    except ValueError:
        raise ValidationError(f"Loan role must be 'lent' or 'borrowed', got {value!r}")


def validate_loan_terms(loan: Loan) -> None:
    """
    Check the fields every persisted loan must satisfy.

    Raises:
        ValidationError: on blank counterparty, non-positive principal,
            negative interest figures, sub-cent money values or a due date
            before the start date
    """
    parse_role(loan.role)
    if not loan.counterparty_name or not loan.counterparty_name.strip():
        raise ValidationError("Counterparty name is required")
    if parse_money(loan.principal, "principal") <= 0:
        raise ValidationError("Principal must be greater than zero")
    parse_money(loan.interest_amount, "interest_amount")
    parse_money(loan.total_amount, "total_amount")
    if loan.interest_rate < 0 or loan.interest_amount < 0:
        raise ValidationError("Interest terms cannot be negative")
    if loan.due_date < loan.start_date:
        raise ValidationError("Due date cannot be before start date")


def opening_entry_kind(role: LoanRole) -> EntryKind:
    """Lending is a cash outflow, borrowing a cash inflow"""
    return EntryKind.EXPENSE if parse_role(role) == LoanRole.LENT else EntryKind.INCOME


def opening_note(role: LoanRole, counterparty_name: str) -> str:
    if parse_role(role) == LoanRole.LENT:
        return f"Loan given to {counterparty_name}"
    return f"Loan borrowed from {counterparty_name}"


def opening_entry(loan: Loan) -> LedgerEntry:
    """
    Build the principal-movement entry recorded when a loan is created.

    Signed, it is -principal for a lent loan and +principal for a borrowed
    one. It sits on the loan/borrow rails, which per-method balances skip,
    and as a principal movement it never counts toward monthly P&L.
    """
    validate_loan_terms(loan)
    role = parse_role(loan.role)

    if role == LoanRole.LENT:
        category, method = LENT_OPENING_CATEGORY, LENT_OPENING_METHOD
    else:
        category, method = BORROWED_OPENING_CATEGORY, BORROWED_OPENING_METHOD

    return LedgerEntry(
        owner_id=loan.owner_id,
        kind=opening_entry_kind(role),
        amount=loan.principal,
        category=category,
        payment_method=method,
        note=opening_note(role, loan.counterparty_name),
        origin=EntryOrigin.loan_principal(loan.id),
    )


def is_opening_entry(entry: LedgerEntry, loan: Loan) -> bool:
    """Tell the creation entry apart from a later principal repayment"""
    return (
        entry.loan_id == loan.id
        and entry.is_principal
        and entry.kind == opening_entry_kind(loan.role)
    )
