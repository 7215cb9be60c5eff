"""Data access layer for loans and ledger entries

Every query is scoped by owner_id; a record owned by someone else is
indistinguishable from a missing one.
"""

import logging
import uuid
from decimal import Decimal
from typing import Iterable, List, Optional
from sqlalchemy.orm import Session

from finance_tracker.domain.aggregation import normalize_payment_method
from finance_tracker.domain.models import EntryKind, EntryOrigin, LedgerEntry, Loan
from finance_tracker.infrastructure.database.models import LedgerEntryRecord, LoanRecord
from finance_tracker.utils.date_utils import month_range

logger = logging.getLogger(__name__)

_ZERO = Decimal("0")


def _readable_decimal(value, field: str, record_id: uuid.UUID) -> Optional[Decimal]:
    """None when the codec handed back something other than a Decimal"""
    if value is None or isinstance(value, Decimal):
        return value
    logger.warning("Unreadable stored amount", extra={"field": field, "record_id": str(record_id)})
    return None


def _loan_to_domain(record: LoanRecord) -> Loan:
    return Loan(
        id=record.id,
        owner_id=record.owner_id,
        counterparty_name=record.counterparty_name,
        counterparty_contact=record.counterparty_contact or "",
        role=record.role,
        principal=record.principal,
        interest_rate=_readable_decimal(record.interest_rate, "interest_rate", record.id) or _ZERO,
        interest_type=record.interest_type,
        interest_amount=_readable_decimal(record.interest_amount, "interest_amount", record.id) or _ZERO,
        total_amount=_readable_decimal(record.total_amount, "total_amount", record.id) or _ZERO,
        start_date=record.start_date,
        due_date=record.due_date,
        settled=record.settled,
        last_reminder_stage=record.last_reminder_stage,
        note=record.note or "",
    )


def _entry_to_domain(record: LedgerEntryRecord) -> Optional[LedgerEntry]:
    """None for an entry whose amount cannot be read back"""
    amount = _readable_decimal(record.amount, "amount", record.id)
    if amount is None:
        return None
    return LedgerEntry(
        id=record.id,
        owner_id=record.owner_id,
        kind=record.kind,
        amount=amount,
        category=record.category,
        payment_method=record.payment_method,
        note=record.note or "",
        occurred_at=record.occurred_at,
        origin=EntryOrigin(kind=record.origin, loan_id=record.loan_id),
    )


_LOAN_FIELDS = (
    "counterparty_name",
    "counterparty_contact",
    "role",
    "principal",
    "interest_rate",
    "interest_type",
    "interest_amount",
    "total_amount",
    "start_date",
    "due_date",
    "last_reminder_stage",
    "note",
)


class LoanRepository:
    """Repository for loans"""

    def __init__(self, db: Session):
        self.db = db

    def _record(self, owner_id: str, loan_id: uuid.UUID) -> Optional[LoanRecord]:
        return (
            self.db.query(LoanRecord)
            .filter(LoanRecord.id == loan_id, LoanRecord.owner_id == owner_id)
            .first()
        )

    def add(self, loan: Loan) -> LoanRecord:
        """Stage a new loan; flushes so dependent entries can reference it"""
        db_loan = LoanRecord(id=loan.id, owner_id=loan.owner_id, settled=loan.settled)
        for name in _LOAN_FIELDS:
            setattr(db_loan, name, getattr(loan, name))
        self.db.add(db_loan)
        self.db.flush()
        return db_loan

    def get(self, owner_id: str, loan_id: uuid.UUID) -> Optional[Loan]:
        record = self._record(owner_id, loan_id)
        return _loan_to_domain(record) if record else None

    def list_for_owner(self, owner_id: str, unsettled_only: bool = False) -> List[Loan]:
        """Loans ordered by due date, soonest first"""
        query = self.db.query(LoanRecord).filter(LoanRecord.owner_id == owner_id)
        if unsettled_only:
            query = query.filter(LoanRecord.settled.is_(False))
        return [_loan_to_domain(r) for r in query.order_by(LoanRecord.due_date.asc()).all()]

    def update(self, loan: Loan) -> bool:
        """Write editable fields back; the settled flag only moves via mark_settled"""
        record = self._record(loan.owner_id, loan.id)
        if record is None:
            return False
        for name in _LOAN_FIELDS:
            setattr(record, name, getattr(loan, name))
        self.db.flush()
        return True

    def mark_settled(self, owner_id: str, loan_id: uuid.UUID) -> bool:
        """
        Conditionally flip settled to true.

        Returns False when no unsettled row matched, i.e. another request
        already settled the loan; callers must not emit entries then.
        """
        updated = (
            self.db.query(LoanRecord)
            .filter(
                LoanRecord.id == loan_id,
                LoanRecord.owner_id == owner_id,
                LoanRecord.settled.is_(False),
            )
            .update({LoanRecord.settled: True}, synchronize_session="fetch")
        )
        return updated == 1

    def delete(self, owner_id: str, loan_id: uuid.UUID) -> bool:
        deleted = (
            self.db.query(LoanRecord)
            .filter(LoanRecord.id == loan_id, LoanRecord.owner_id == owner_id)
            .delete(synchronize_session="fetch")
        )
        return deleted == 1


class LedgerEntryRepository:
    """Repository for ledger entries"""

    def __init__(self, db: Session):
        self.db = db

    def _record(self, owner_id: str, entry_id: uuid.UUID) -> Optional[LedgerEntryRecord]:
        return (
            self.db.query(LedgerEntryRecord)
            .filter(LedgerEntryRecord.id == entry_id, LedgerEntryRecord.owner_id == owner_id)
            .first()
        )

    def add_all(self, entries: Iterable[LedgerEntry]) -> List[LedgerEntryRecord]:
        records = []
        for entry in entries:
            record = LedgerEntryRecord(
                id=entry.id,
                owner_id=entry.owner_id,
                kind=entry.kind,
                amount=entry.amount,
                category=entry.category,
                payment_method=entry.payment_method,
                note=entry.note,
                origin=entry.origin.kind,
                loan_id=entry.loan_id,
                occurred_at=entry.occurred_at,
            )
            self.db.add(record)
            records.append(record)
        self.db.flush()
        return records

    def get(self, owner_id: str, entry_id: uuid.UUID) -> Optional[LedgerEntry]:
        record = self._record(owner_id, entry_id)
        return _entry_to_domain(record) if record else None

    def origin_of(self, owner_id: str, entry_id: uuid.UUID) -> Optional[EntryOrigin]:
        """Origin of an entry, read from plaintext columns only"""
        row = (
            self.db.query(LedgerEntryRecord.origin, LedgerEntryRecord.loan_id)
            .filter(LedgerEntryRecord.id == entry_id, LedgerEntryRecord.owner_id == owner_id)
            .first()
        )
        return EntryOrigin(kind=row.origin, loan_id=row.loan_id) if row else None

    def list_for_owner(
        self,
        owner_id: str,
        kind: Optional[EntryKind] = None,
        payment_method: Optional[str] = None,
        category: Optional[str] = None,
        year: Optional[int] = None,
        month: Optional[int] = None,
        loan_id: Optional[uuid.UUID] = None,
    ) -> List[LedgerEntry]:
        """
        Entries newest first, optionally filtered.

        Category is stored encrypted and payment method is matched after
        normalization, so those two filters are applied in Python. Entries
        whose amount cannot be decrypted are logged and left out.
        """
        query = self.db.query(LedgerEntryRecord).filter(LedgerEntryRecord.owner_id == owner_id)
        if kind is not None:
            query = query.filter(LedgerEntryRecord.kind == kind)
        if loan_id is not None:
            query = query.filter(LedgerEntryRecord.loan_id == loan_id)
        if year is not None:
            if month is not None:
                start, end = month_range(year, month)
            else:
                start, _ = month_range(year, 1)
                _, end = month_range(year, 12)
            query = query.filter(LedgerEntryRecord.occurred_at >= start, LedgerEntryRecord.occurred_at < end)

        records = query.order_by(LedgerEntryRecord.occurred_at.desc(), LedgerEntryRecord.created_at.desc()).all()
        entries = [e for e in map(_entry_to_domain, records) if e is not None]

        if payment_method is not None:
            wanted = normalize_payment_method(payment_method)
            entries = [e for e in entries if normalize_payment_method(e.payment_method) == wanted]
        if category is not None:
            wanted_category = category.strip().lower()
            entries = [e for e in entries if (e.category or "").strip().lower() == wanted_category]
        return entries

    def update(self, entry: LedgerEntry) -> bool:
        record = self._record(entry.owner_id, entry.id)
        if record is None:
            return False
        record.kind = entry.kind
        record.amount = entry.amount
        record.category = entry.category
        record.payment_method = entry.payment_method
        record.note = entry.note
        record.occurred_at = entry.occurred_at
        self.db.flush()
        return True

    def delete(self, owner_id: str, entry_id: uuid.UUID) -> bool:
        deleted = (
            self.db.query(LedgerEntryRecord)
            .filter(LedgerEntryRecord.id == entry_id, LedgerEntryRecord.owner_id == owner_id)
            .delete(synchronize_session="fetch")
        )
        return deleted == 1

    def delete_for_loan(self, owner_id: str, loan_id: uuid.UUID) -> int:
        """Remove every entry referencing a loan; returns the count"""
        return (
            self.db.query(LedgerEntryRecord)
            .filter(LedgerEntryRecord.owner_id == owner_id, LedgerEntryRecord.loan_id == loan_id)
            .delete(synchronize_session="fetch")
        )
