"""Pydantic schemas for API request/response validation"""

from datetime import date, datetime
from decimal import Decimal
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from finance_tracker.domain.models import (
    EntryKind,
    InterestType,
    LedgerEntry,
    Loan,
    LoanRole,
    OriginKind,
    PeriodTotals,
    ReminderStage,
    Summary,
)


class LoanCreateRequest(BaseModel):
    """Request body for POST /v1/loans"""

    counterparty_name: str = Field(..., min_length=1, description="Person the money was lent to or borrowed from")
    counterparty_contact: str = ""
    role: LoanRole
    principal: Decimal = Field(..., gt=0, max_digits=14, decimal_places=2)
    interest_rate: Decimal = Field(Decimal("0"), ge=0, description="Percent per term unit")
    interest_type: InterestType = InterestType.SIMPLE
    interest_amount: Optional[Decimal] = Field(
        None, ge=0, max_digits=14, decimal_places=2, description="Quoted from the terms when omitted"
    )
    total_amount: Optional[Decimal] = Field(None, ge=0, max_digits=14, decimal_places=2)
    term_unit: Literal["month", "year"] = "month"
    start_date: date
    due_date: date
    note: str = ""


class LoanUpdateRequest(BaseModel):
    """Request body for PUT /v1/loans/{loan_id}; omitted fields are left unchanged"""

    counterparty_name: Optional[str] = Field(None, min_length=1)
    counterparty_contact: Optional[str] = None
    role: Optional[LoanRole] = None
    principal: Optional[Decimal] = Field(None, gt=0, max_digits=14, decimal_places=2)
    interest_rate: Optional[Decimal] = Field(None, ge=0)
    interest_type: Optional[InterestType] = None
    interest_amount: Optional[Decimal] = Field(None, ge=0, max_digits=14, decimal_places=2)
    total_amount: Optional[Decimal] = Field(None, ge=0, max_digits=14, decimal_places=2)
    start_date: Optional[date] = None
    due_date: Optional[date] = None
    note: Optional[str] = None
    last_reminder_stage: Optional[ReminderStage] = None


class SettleRequest(BaseModel):
    """Request body for POST /v1/loans/{loan_id}/settle"""

    paid_amount: Decimal = Field(..., max_digits=14, decimal_places=2, description="Principal plus any interest paid")


class QuoteRequest(BaseModel):
    """Request body for POST /v1/loans/quote"""

    principal: Decimal = Field(..., gt=0, max_digits=14, decimal_places=2)
    interest_rate: Decimal = Field(..., ge=0)
    interest_type: InterestType = InterestType.SIMPLE
    start_date: date
    due_date: date
    term_unit: Literal["month", "year"] = "month"


class QuoteResponse(BaseModel):
    interest_amount: Decimal
    total_amount: Decimal
    periods: int


class EntryResponse(BaseModel):
    """Single ledger entry"""

    id: str
    kind: EntryKind
    amount: Decimal
    category: str
    payment_method: str
    note: str
    occurred_at: datetime
    origin: OriginKind
    loan_id: Optional[str] = None
    is_principal: bool

    @classmethod
    def from_domain(cls, entry: LedgerEntry) -> "EntryResponse":
        return cls(
            id=str(entry.id),
            kind=entry.kind,
            amount=entry.amount,
            category=entry.category,
            payment_method=entry.payment_method,
            note=entry.note,
            occurred_at=entry.occurred_at,
            origin=entry.origin.kind,
            loan_id=str(entry.loan_id) if entry.loan_id else None,
            is_principal=entry.is_principal,
        )


class LoanResponse(BaseModel):
    """Single loan"""

    id: str
    counterparty_name: str
    counterparty_contact: str
    role: LoanRole
    principal: Decimal
    interest_rate: Decimal
    interest_type: InterestType
    interest_amount: Decimal
    total_amount: Decimal
    start_date: date
    due_date: date
    settled: bool
    last_reminder_stage: ReminderStage
    note: str

    @classmethod
    def from_domain(cls, loan: Loan) -> "LoanResponse":
        return cls(
            id=str(loan.id),
            counterparty_name=loan.counterparty_name,
            counterparty_contact=loan.counterparty_contact,
            role=loan.role,
            principal=loan.principal,
            interest_rate=loan.interest_rate,
            interest_type=loan.interest_type,
            interest_amount=loan.interest_amount,
            total_amount=loan.total_amount,
            start_date=loan.start_date,
            due_date=loan.due_date,
            settled=loan.settled,
            last_reminder_stage=loan.last_reminder_stage,
            note=loan.note,
        )


class LoanCreatedResponse(BaseModel):
    """Response for POST /v1/loans"""

    loan: LoanResponse
    entry: EntryResponse


class SettlementResponse(BaseModel):
    """Response for POST /v1/loans/{loan_id}/settle"""

    loan: LoanResponse
    entries: List[EntryResponse]
    already_settled: bool


class LoanSummaryResponse(BaseModel):
    """Outstanding principal on unsettled loans"""

    total_lent: Decimal
    total_borrowed: Decimal


class ReminderItem(BaseModel):
    loan_id: str
    counterparty_name: str
    role: LoanRole
    due_date: date
    total_amount: Decimal
    stage: ReminderStage


class MessageResponse(BaseModel):
    message: str


class EntryCreateRequest(BaseModel):
    """Request body for POST /v1/transactions"""

    kind: EntryKind
    amount: Decimal = Field(..., gt=0, max_digits=14, decimal_places=2)
    category: str = Field(..., min_length=1)
    payment_method: str = Field(..., min_length=1, description="cash, bank, upi or a custom rail")
    note: str = ""
    occurred_at: Optional[datetime] = Field(None, description="Defaults to now")


class EntryUpdateRequest(BaseModel):
    """Request body for PUT /v1/transactions/{entry_id}"""

    kind: Optional[EntryKind] = None
    amount: Optional[Decimal] = Field(None, gt=0, max_digits=14, decimal_places=2)
    category: Optional[str] = Field(None, min_length=1)
    payment_method: Optional[str] = Field(None, min_length=1)
    note: Optional[str] = None
    occurred_at: Optional[datetime] = None


class SummaryResponse(BaseModel):
    """Response for GET /v1/summary"""

    year: int
    month: int
    currency: str
    monthly_income: Decimal
    monthly_expense: Decimal
    monthly_investment: Decimal
    balances_by_method: Dict[str, Decimal]
    total_balance: Decimal
    loan_exposure: LoanSummaryResponse

    @classmethod
    def from_domain(cls, summary: Summary, currency: str) -> "SummaryResponse":
        return cls(
            year=summary.year,
            month=summary.month,
            currency=currency,
            monthly_income=summary.monthly_income,
            monthly_expense=summary.monthly_expense,
            monthly_investment=summary.monthly_investment,
            balances_by_method=summary.balances_by_method,
            total_balance=summary.total_balance,
            loan_exposure=LoanSummaryResponse(
                total_lent=summary.loan_exposure.total_lent,
                total_borrowed=summary.loan_exposure.total_borrowed,
            ),
        )


class PeriodTotalsSchema(BaseModel):
    month: int
    income: Decimal
    expense: Decimal
    investment: Decimal

    @classmethod
    def from_domain(cls, totals: PeriodTotals) -> "PeriodTotalsSchema":
        return cls(month=totals.month, income=totals.income, expense=totals.expense, investment=totals.investment)


class MonthlyBreakdownResponse(BaseModel):
    """Response for GET /v1/analytics/monthly"""

    year: int
    months: List[PeriodTotalsSchema]


class CategoryBreakdownResponse(BaseModel):
    """Response for GET /v1/analytics/categories"""

    year: int
    month: int
    categories: Dict[str, Decimal]
