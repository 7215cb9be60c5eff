"""Interest quotes and due-date reminder stages for loans"""

from datetime import date
from decimal import Decimal
from typing import Any

from finance_tracker.domain.exceptions import ValidationError
from finance_tracker.domain.models import InterestQuote, InterestType, Loan, ReminderStage
from finance_tracker.domain.money import parse_amount, round_money
from finance_tracker.utils.date_utils import days_until, months_between, years_between

TERM_UNITS = ("month", "year")


def quote_interest(
    principal: Any,
    rate: Any,
    interest_type: InterestType,
    start_date: date,
    due_date: date,
    unit: str = "month",
) -> InterestQuote:
    """
    Quote interest for a loan term.

    The term is counted in whole months (a started month counts) or whole
    years, never less than one period. Rate is a percentage per period.

    - simple:  P * r * t / 100
    - monthly: P * (1 + r/100)^t - P   (compounded each period)

    Example:
        1000 at 2% simple over Jan 1 -> Apr 1 (3 months) -> 60.00 interest
    """
    principal = parse_amount(principal, "principal")
    rate = parse_amount(rate, "interest_rate")
    if principal <= 0:
        raise ValidationError("Principal must be greater than zero")
    if rate < 0:
        raise ValidationError("Interest rate cannot be negative")
    if due_date < start_date:
        raise ValidationError("Due date cannot be before start date")
    if unit not in TERM_UNITS:
        raise ValidationError(f"Term unit must be one of {TERM_UNITS}, got {unit!r}")

    periods = years_between(start_date, due_date) if unit == "year" else months_between(start_date, due_date)

    if InterestType(interest_type) == InterestType.SIMPLE:
        interest = principal * rate * periods / Decimal(100)
    else:
        interest = principal * (1 + rate / Decimal(100)) ** periods - principal

    interest = round_money(interest)
    return InterestQuote(
        interest_amount=interest,
        total_amount=round_money(principal + interest),
        periods=periods,
    )


def reminder_stage_for(due_date: date, today: date) -> ReminderStage:
    """Notification stage for a loan given its due date"""
    remaining = days_until(due_date, today)
    if remaining <= 0:
        return ReminderStage.DUE_DATE
    if remaining <= 3:
        return ReminderStage.THREE_DAYS
    if remaining <= 7:
        return ReminderStage.SEVEN_DAYS
    return ReminderStage.NONE


def needs_reminder(loan: Loan, today: date) -> bool:
    """True when an unsettled loan reached a stage not yet acknowledged"""
    if loan.settled:
        return False
    stage = reminder_stage_for(loan.due_date, today)
    return stage != ReminderStage.NONE and stage != loan.last_reminder_stage
