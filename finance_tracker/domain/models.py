"""Domain models - pure Python dataclasses representing ledger and loan records"""

import enum
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Dict, List, Optional

from finance_tracker.utils.date_utils import utcnow


class EntryKind(str, enum.Enum):
    """Determines the sign an entry carries during aggregation"""

    INCOME = "income"
    EXPENSE = "expense"
    INVESTMENT = "investment"


class LoanRole(str, enum.Enum):
    LENT = "lent"  # owner gave money out (receivable)
    BORROWED = "borrowed"  # owner received money (payable)


class InterestType(str, enum.Enum):
    SIMPLE = "simple"
    MONTHLY = "monthly"  # compounded per period


class ReminderStage(str, enum.Enum):
    NONE = "none"
    SEVEN_DAYS = "7days"
    THREE_DAYS = "3days"
    DUE_DATE = "duedate"


class OriginKind(str, enum.Enum):
    MANUAL = "manual"
    LOAN_PRINCIPAL = "loan_principal"
    LOAN_INTEREST = "loan_interest"


@dataclass(frozen=True)
class EntryOrigin:
    """
    Tagged origin of a ledger entry.

    Manual entries never reference a loan; loan principal and loan interest
    entries always do. Display strings such as payment method "loan" are
    derived from this at the boundary, not used to classify entries.
    """

    kind: OriginKind
    loan_id: Optional[uuid.UUID] = None

    def __post_init__(self) -> None:
        if self.kind == OriginKind.MANUAL and self.loan_id is not None:
            raise ValueError("Manual entries cannot reference a loan")
        if self.kind != OriginKind.MANUAL and self.loan_id is None:
            raise ValueError(f"{self.kind.value} entries require a loan reference")

    @classmethod
    def manual(cls) -> "EntryOrigin":
        return cls(OriginKind.MANUAL)

    @classmethod
    def loan_principal(cls, loan_id: uuid.UUID) -> "EntryOrigin":
        return cls(OriginKind.LOAN_PRINCIPAL, loan_id)

    @classmethod
    def loan_interest(cls, loan_id: uuid.UUID) -> "EntryOrigin":
        return cls(OriginKind.LOAN_INTEREST, loan_id)

    @property
    def is_principal(self) -> bool:
        return self.kind == OriginKind.LOAN_PRINCIPAL


@dataclass
class LedgerEntry:
    """Transaction record - the atomic unit of financial history"""

    owner_id: str
    kind: EntryKind
    amount: Decimal  # magnitude only, sign comes from kind
    category: str
    payment_method: str
    note: str = ""
    occurred_at: datetime = field(default_factory=utcnow)
    origin: EntryOrigin = field(default_factory=EntryOrigin.manual)
    id: uuid.UUID = field(default_factory=uuid.uuid4)

    @property
    def loan_id(self) -> Optional[uuid.UUID]:
        return self.origin.loan_id

    @property
    def is_principal(self) -> bool:
        return self.origin.is_principal


@dataclass
class Loan:
    """Peer-to-peer loan, lent or borrowed, with its agreed interest terms"""

    owner_id: str
    counterparty_name: str
    role: LoanRole
    principal: Decimal
    start_date: date
    due_date: date
    counterparty_contact: str = ""
    interest_rate: Decimal = Decimal("0")
    interest_type: InterestType = InterestType.SIMPLE
    interest_amount: Decimal = Decimal("0")
    total_amount: Decimal = Decimal("0")
    note: str = ""
    settled: bool = False
    last_reminder_stage: ReminderStage = ReminderStage.NONE
    id: uuid.UUID = field(default_factory=uuid.uuid4)


@dataclass
class SettlementResult:
    """Outcome of settling a loan"""

    loan: Loan
    entries: List[LedgerEntry]
    already_settled: bool = False


@dataclass(frozen=True)
class LoanExposure:
    """Outstanding principal on unsettled loans"""

    total_lent: Decimal
    total_borrowed: Decimal


@dataclass
class PeriodTotals:
    """Income/expense/investment for one calendar month"""

    year: int
    month: int
    income: Decimal
    expense: Decimal
    investment: Decimal


@dataclass
class Summary:
    """Dashboard figures for one anchor month"""

    year: int
    month: int
    monthly_income: Decimal
    monthly_expense: Decimal
    monthly_investment: Decimal
    balances_by_method: Dict[str, Decimal]
    total_balance: Decimal
    loan_exposure: LoanExposure


@dataclass
class InterestQuote:
    """Interest terms derived from principal, rate and loan term"""

    interest_amount: Decimal
    total_amount: Decimal
    periods: int
