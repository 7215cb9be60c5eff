"""Unit tests for interest quotes and reminder stages"""

import pytest
from dataclasses import replace
from datetime import date
from decimal import Decimal
from finance_tracker.domain.interest import needs_reminder, quote_interest, reminder_stage_for
from finance_tracker.domain.models import InterestType, ReminderStage
from finance_tracker.domain.exceptions import ValidationError
from finance_tracker.utils.date_utils import months_between, years_between


def test_simple_interest_quote():
    """1000 at 2% per month over three months"""
    quote = quote_interest(Decimal("1000"), Decimal("2"), InterestType.SIMPLE, date(2024, 1, 1), date(2024, 4, 1))

    assert quote.periods == 3
    assert quote.interest_amount == Decimal("60.00")
    assert quote.total_amount == Decimal("1060.00")


def test_compound_interest_quote():
    quote = quote_interest("1000", "10", InterestType.MONTHLY, date(2024, 1, 1), date(2024, 3, 1))

    assert quote.periods == 2
    assert quote.interest_amount == Decimal("210.00")
    assert quote.total_amount == Decimal("1210.00")


def test_yearly_term_unit():
    quote = quote_interest(1000, 12, InterestType.SIMPLE, date(2022, 5, 1), date(2024, 5, 1), unit="year")

    assert quote.periods == 2
    assert quote.interest_amount == Decimal("240.00")


def test_zero_rate_quotes_no_interest():
    quote = quote_interest(500, 0, InterestType.SIMPLE, date(2024, 1, 1), date(2024, 2, 1))
    assert quote.interest_amount == Decimal("0.00")
    assert quote.total_amount == Decimal("500.00")


def test_quote_rounds_half_up():
    quote = quote_interest("333.33", "1.5", InterestType.SIMPLE, date(2024, 1, 1), date(2024, 2, 1))
    # 333.33 * 1.5 / 100 = 4.99995
    assert quote.interest_amount == Decimal("5.00")


@pytest.mark.parametrize(
    "principal,rate,start,due,unit",
    [
        (0, 2, date(2024, 1, 1), date(2024, 2, 1), "month"),
        (100, -1, date(2024, 1, 1), date(2024, 2, 1), "month"),
        (100, 2, date(2024, 2, 1), date(2024, 1, 1), "month"),
        (100, 2, date(2024, 1, 1), date(2024, 2, 1), "week"),
        ("lots", 2, date(2024, 1, 1), date(2024, 2, 1), "month"),
    ],
)
def test_quote_rejects_bad_terms(principal, rate, start, due, unit):
    with pytest.raises(ValidationError):
        quote_interest(principal, rate, InterestType.SIMPLE, start, due, unit=unit)


def test_months_between_counts_started_month():
    assert months_between(date(2024, 1, 15), date(2024, 2, 20)) == 2
    assert months_between(date(2024, 1, 15), date(2024, 2, 15)) == 1
    assert months_between(date(2024, 1, 15), date(2024, 1, 15)) == 1


def test_years_between_minimum_one():
    assert years_between(date(2024, 1, 1), date(2024, 6, 1)) == 1
    assert years_between(date(2020, 6, 2), date(2024, 6, 1)) == 3


@pytest.mark.parametrize(
    "today,expected",
    [
        (date(2024, 4, 1), ReminderStage.NONE),
        (date(2024, 4, 3), ReminderStage.SEVEN_DAYS),
        (date(2024, 4, 6), ReminderStage.SEVEN_DAYS),
        (date(2024, 4, 7), ReminderStage.THREE_DAYS),
        (date(2024, 4, 10), ReminderStage.DUE_DATE),
        (date(2024, 4, 12), ReminderStage.DUE_DATE),
    ],
)
def test_reminder_stage_for(today, expected):
    assert reminder_stage_for(date(2024, 4, 10), today) == expected


def test_needs_reminder_skips_acknowledged_stage(lent_loan):
    loan = replace(lent_loan, due_date=date(2024, 4, 10))
    today = date(2024, 4, 8)

    assert needs_reminder(loan, today)
    assert not needs_reminder(replace(loan, last_reminder_stage=ReminderStage.THREE_DAYS), today)
    assert not needs_reminder(replace(loan, settled=True), today)
