"""Aggregation engine - period summaries, per-method balances and loan exposure"""

import re
from collections import defaultdict
from datetime import date
from decimal import Decimal
from typing import Dict, Iterable, List, Optional

from finance_tracker.domain.models import (
    EntryKind,
    LedgerEntry,
    Loan,
    LoanExposure,
    LoanRole,
    PeriodTotals,
    Summary,
)
from finance_tracker.domain.money import round_money

ZERO = Decimal("0")

# Rails that only carry loan float, never spendable cash
LOAN_RAILS = frozenset({"loan", "borrow"})

PAYMENT_METHOD_SYNONYMS = {
    "online": "upi",
    "upi": "upi",
}

_INVISIBLE_CHARS = re.compile("[\u200b-\u200d\ufeff]")
_WHITESPACE = re.compile(r"\s+")


def normalize_payment_method(value: Optional[str]) -> str:
    """
    Canonical key for a payment method.

    Strips zero-width characters, collapses whitespace, lower-cases and maps
    synonyms (online/upi) to a single key. Empty input yields "".
    """
    cleaned = _INVISIBLE_CHARS.sub("", value or "")
    cleaned = _WHITESPACE.sub(" ", cleaned).strip().lower()
    return PAYMENT_METHOD_SYNONYMS.get(cleaned, cleaned)


def signed_amount(entry: LedgerEntry) -> Decimal:
    """Income adds to a balance; expense and investment subtract"""
    if entry.kind == EntryKind.INCOME:
        return entry.amount
    return -entry.amount


def in_month(entry: LedgerEntry, year: int, month: int) -> bool:
    return entry.occurred_at.year == year and entry.occurred_at.month == month


def period_totals(entries: Iterable[LedgerEntry], year: int, month: int) -> PeriodTotals:
    """
    Sum income, expense and investment for one calendar month.

    Principal movements are balance-sheet transfers, not P&L, so they are
    skipped; loan interest and ordinary entries count.
    """
    totals = {kind: ZERO for kind in EntryKind}
    for entry in entries:
        if entry.is_principal or not in_month(entry, year, month):
            continue
        totals[entry.kind] += entry.amount

    return PeriodTotals(
        year=year,
        month=month,
        income=totals[EntryKind.INCOME],
        expense=totals[EntryKind.EXPENSE],
        investment=totals[EntryKind.INVESTMENT],
    )


def balances_by_method(entries: Iterable[LedgerEntry]) -> Dict[str, Decimal]:
    """
    All-time signed balance per normalized payment method.

    Entries on the loan/borrow rails or without a payment method are left
    out entirely. Keys are returned sorted so output order does not depend
    on input order.
    """
    balances: Dict[str, Decimal] = defaultdict(lambda: ZERO)
    for entry in entries:
        method = normalize_payment_method(entry.payment_method)
        if not method or method in LOAN_RAILS:
            continue
        balances[method] += signed_amount(entry)

    return {method: balances[method] for method in sorted(balances)}


def loan_exposure(loans: Iterable[Loan]) -> LoanExposure:
    """Outstanding principal on unsettled loans, split by role"""
    total_lent = ZERO
    total_borrowed = ZERO
    for loan in loans:
        if loan.settled:
            continue
        if loan.role == LoanRole.LENT:
            total_lent += loan.principal
        elif loan.role == LoanRole.BORROWED:
            total_borrowed += loan.principal

    return LoanExposure(total_lent=total_lent, total_borrowed=total_borrowed)


def summarize(
    entries: Iterable[LedgerEntry],
    anchor: date,
    exposure: Optional[LoanExposure] = None,
) -> Summary:
    """
    Main entry point: dashboard summary for the anchor's calendar month.

    Pure function of the entry snapshot, the anchor date and the supplied
    loan exposure (computed separately from loan records).
    """
    snapshot = list(entries)
    totals = period_totals(snapshot, anchor.year, anchor.month)
    balances = balances_by_method(snapshot)

    return Summary(
        year=anchor.year,
        month=anchor.month,
        monthly_income=totals.income,
        monthly_expense=totals.expense,
        monthly_investment=totals.investment,
        balances_by_method=balances,
        total_balance=sum(balances.values(), ZERO),
        loan_exposure=exposure or LoanExposure(total_lent=ZERO, total_borrowed=ZERO),
    )


def monthly_breakdown(entries: Iterable[LedgerEntry], year: int) -> List[PeriodTotals]:
    """Twelve PeriodTotals rows, January through December"""
    snapshot = list(entries)
    return [period_totals(snapshot, year, month) for month in range(1, 13)]


def expense_by_category(entries: Iterable[LedgerEntry], year: int, month: int) -> Dict[str, Decimal]:
    """Expense totals per category for a month, largest first"""
    totals: Dict[str, Decimal] = defaultdict(lambda: ZERO)
    for entry in entries:
        if entry.kind != EntryKind.EXPENSE or entry.is_principal or not in_month(entry, year, month):
            continue
        category = (entry.category or "").strip() or "Uncategorized"
        totals[category] += entry.amount

    return dict(sorted(totals.items(), key=lambda item: (-item[1], item[0])))


def convert_summary(summary: Summary, rate: Decimal) -> Summary:
    """
    Display-only currency conversion of every figure in a summary.

    Returns a new Summary; the stored entries are never touched.
    """

    def convert(value: Decimal) -> Decimal:
        return round_money(value * rate)

    return Summary(
        year=summary.year,
        month=summary.month,
        monthly_income=convert(summary.monthly_income),
        monthly_expense=convert(summary.monthly_expense),
        monthly_investment=convert(summary.monthly_investment),
        balances_by_method={k: convert(v) for k, v in summary.balances_by_method.items()},
        total_balance=convert(summary.total_balance),
        loan_exposure=LoanExposure(
            total_lent=convert(summary.loan_exposure.total_lent),
            total_borrowed=convert(summary.loan_exposure.total_borrowed),
        ),
    )
