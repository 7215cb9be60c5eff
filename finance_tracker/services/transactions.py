"""Manual ledger entry management and transaction-side cascade deletes"""

import uuid
from dataclasses import replace
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from finance_tracker.domain.exceptions import NotFoundError, PersistenceError, ValidationError
from finance_tracker.domain.models import EntryKind, EntryOrigin, LedgerEntry
from finance_tracker.domain.money import parse_money
from finance_tracker.infrastructure.database.repositories import LedgerEntryRepository, LoanRepository
from finance_tracker.infrastructure.observability.logging import log_cascade_delete
from finance_tracker.infrastructure.observability.metrics import cascade_delete_counter, record_entries
from finance_tracker.services.events import LOANS_CHANGED, TRANSACTIONS_CHANGED, EventBus

EDITABLE_FIELDS = frozenset({"kind", "amount", "category", "payment_method", "note", "occurred_at"})


def validate_manual_entry(entry: LedgerEntry) -> None:
    """
    Raises:
        ValidationError: non-positive amount, blank category or payment
            method, or an entry claiming a loan origin
    """
    if entry.origin != EntryOrigin.manual():
        raise ValidationError("Loan entries are created through their loan")
    try:
        EntryKind(entry.kind)
    except ValueError:
        raise ValidationError(f"Kind must be income, expense or investment, got {entry.kind!r}")
    if parse_money(entry.amount) <= 0:
        raise ValidationError("Amount must be greater than zero")
    if not (entry.category or "").strip():
        raise ValidationError("Category is required")
    if not (entry.payment_method or "").strip():
        raise ValidationError("Payment method is required")


class TransactionService:
    """CRUD over the owner's ledger entries"""

    def __init__(self, db: Session, bus: EventBus, request_id: str = "unknown"):
        self.db = db
        self.bus = bus
        self.request_id = request_id
        self.loans = LoanRepository(db)
        self.entries = LedgerEntryRepository(db)

    def get(self, owner_id: str, entry_id: uuid.UUID) -> LedgerEntry:
        entry = self.entries.get(owner_id, entry_id)
        if entry is None:
            raise NotFoundError("Transaction not found")
        return entry

    def list_for_owner(self, owner_id: str, **filters: Any) -> List[LedgerEntry]:
        return self.entries.list_for_owner(owner_id, **filters)

    def create(self, entry: LedgerEntry) -> LedgerEntry:
        validate_manual_entry(entry)
        try:
            self.entries.add_all([entry])
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise PersistenceError("Transaction could not be created") from e

        record_entries([entry])
        self.bus.publish(TRANSACTIONS_CHANGED, entry.owner_id)
        return entry

    def update(self, owner_id: str, entry_id: uuid.UUID, changes: Dict[str, Any]) -> LedgerEntry:
        """
        Edit a manual entry.

        Raises:
            NotFoundError: entry missing or owned by someone else
            ValidationError: entry was generated by a loan, or the edit is invalid
        """
        entry = self.get(owner_id, entry_id)
        if entry.loan_id is not None:
            raise ValidationError("Loan entries are read-only; edit or delete the loan instead")

        unknown = set(changes) - EDITABLE_FIELDS
        if unknown:
            raise ValidationError(f"Fields cannot be edited: {', '.join(sorted(unknown))}")

        updated = replace(entry, **changes)
        validate_manual_entry(updated)

        try:
            self.entries.update(updated)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise PersistenceError("Transaction could not be updated") from e

        self.bus.publish(TRANSACTIONS_CHANGED, owner_id)
        return updated

    def delete(self, owner_id: str, entry_id: uuid.UUID) -> Optional[uuid.UUID]:
        """
        Delete an entry; an entry that references a loan takes the loan and
        all of that loan's other entries with it.

        Returns:
            The id of the loan deleted alongside, or None for a manual entry
        """
        # entries with an unreadable amount must stay deletable
        origin = self.entries.origin_of(owner_id, entry_id)
        if origin is None:
            raise NotFoundError("Transaction not found")
        loan_id = origin.loan_id

        try:
            if loan_id is None:
                self.entries.delete(owner_id, entry_id)
                removed = 1
            else:
                removed = self.entries.delete_for_loan(owner_id, loan_id)
                self.loans.delete(owner_id, loan_id)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise PersistenceError("Transaction could not be deleted") from e

        self.bus.publish(TRANSACTIONS_CHANGED, owner_id)
        if loan_id is not None:
            cascade_delete_counter.labels(trigger="transaction").inc()
            log_cascade_delete(self.request_id, owner_id, str(loan_id), "transaction", removed)
            self.bus.publish(LOANS_CHANGED, owner_id)
        return loan_id
