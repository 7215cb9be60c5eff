"""Loan lifecycle: creation, edits, settlement and cascade deletion

Each public method is one unit of work: it either commits every write it
made or rolls the session back and raises.
"""

import time
import uuid
from dataclasses import replace
from datetime import date
from typing import Any, Dict, List, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from finance_tracker.domain.exceptions import NotFoundError, PersistenceError, ValidationError
from finance_tracker.domain.interest import needs_reminder, reminder_stage_for
from finance_tracker.domain.loan_entries import is_opening_entry, opening_entry, parse_role, validate_loan_terms
from finance_tracker.domain.models import LedgerEntry, Loan, ReminderStage, SettlementResult
from finance_tracker.domain.settlement import settle_loan
from finance_tracker.infrastructure.database.repositories import LedgerEntryRepository, LoanRepository
from finance_tracker.infrastructure.observability.logging import log_cascade_delete, log_loan_created, log_settlement
from finance_tracker.infrastructure.observability.metrics import (
    cascade_delete_counter,
    loans_created_counter,
    record_entries,
    settlement_counter,
)
from finance_tracker.services.events import LOANS_CHANGED, TRANSACTIONS_CHANGED, EventBus

# Fields that define the money owed; frozen once a loan is settled
FINANCIAL_FIELDS = frozenset(
    {"role", "principal", "interest_rate", "interest_type", "interest_amount", "total_amount", "start_date"}
)
EDITABLE_FIELDS = FINANCIAL_FIELDS | {
    "counterparty_name",
    "counterparty_contact",
    "due_date",
    "note",
    "last_reminder_stage",
}


class LoanService:
    """Orchestrates loan domain rules against the loan and ledger repositories"""

    def __init__(self, db: Session, bus: EventBus, request_id: str = "unknown"):
        self.db = db
        self.bus = bus
        self.request_id = request_id
        self.loans = LoanRepository(db)
        self.entries = LedgerEntryRepository(db)

    def _commit(self, failure: str) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise PersistenceError(failure) from e

    def _notify(self, *events: str, owner_id: str) -> None:
        for event in events:
            self.bus.publish(event, owner_id)

    def get(self, owner_id: str, loan_id: uuid.UUID) -> Loan:
        """
        Raises:
            NotFoundError: loan missing or owned by someone else
        """
        loan = self.loans.get(owner_id, loan_id)
        if loan is None:
            raise NotFoundError("Loan not found")
        return loan

    def list_for_owner(self, owner_id: str) -> List[Loan]:
        return self.loans.list_for_owner(owner_id)

    def create(self, loan: Loan) -> Tuple[Loan, LedgerEntry]:
        """
        Persist a loan together with its opening ledger entry.

        Both rows are written in one transaction; if the entry cannot be
        stored the loan is rolled back with it.
        """
        loan = replace(loan, role=parse_role(loan.role), settled=False)
        entry = opening_entry(loan)

        try:
            self.loans.add(loan)
            self.entries.add_all([entry])
        except SQLAlchemyError as e:
            self.db.rollback()
            raise PersistenceError("Loan could not be created") from e
        self._commit("Loan could not be created")

        loans_created_counter.labels(role=loan.role.value).inc()
        record_entries([entry])
        log_loan_created(self.request_id, loan.owner_id, str(loan.id), loan.role.value)
        self._notify(LOANS_CHANGED, TRANSACTIONS_CHANGED, owner_id=loan.owner_id)
        return loan, entry

    def update(self, owner_id: str, loan_id: uuid.UUID, changes: Dict[str, Any]) -> Loan:
        """
        Apply field edits to a loan.

        While unsettled, the opening entry is rewritten to match the edited
        principal, role and counterparty. Once settled only metadata may
        change; settlement is never reopened.

        Raises:
            NotFoundError: loan missing or owned by someone else
            ValidationError: unknown field, financial edit on a settled loan,
                or resulting terms invalid
        """
        loan = self.get(owner_id, loan_id)

        unknown = set(changes) - EDITABLE_FIELDS
        if unknown:
            raise ValidationError(f"Fields cannot be edited: {', '.join(sorted(unknown))}")

        if "role" in changes:
            changes = {**changes, "role": parse_role(changes["role"])}

        if loan.settled:
            frozen = sorted(f for f in FINANCIAL_FIELDS & set(changes) if changes[f] != getattr(loan, f))
            if frozen:
                raise ValidationError(f"Settled loans only accept metadata edits, got: {', '.join(frozen)}")

        updated = replace(loan, **changes)
        validate_loan_terms(updated)

        try:
            self.loans.update(updated)
            if not updated.settled:
                self._sync_opening_entry(loan, updated)
        except SQLAlchemyError as e:
            self.db.rollback()
            raise PersistenceError("Loan could not be updated") from e
        self._commit("Loan could not be updated")

        self._notify(LOANS_CHANGED, TRANSACTIONS_CHANGED, owner_id=owner_id)
        return updated

    def _sync_opening_entry(self, before: Loan, after: Loan) -> None:
        current = [
            e for e in self.entries.list_for_owner(after.owner_id, loan_id=after.id) if is_opening_entry(e, before)
        ]
        regenerated = opening_entry(after)
        if not current:
            # restore the invariant that every loan has its opening entry
            self.entries.add_all([regenerated])
            return
        existing = current[0]
        self.entries.update(replace(regenerated, id=existing.id, occurred_at=existing.occurred_at))

    def settle(self, owner_id: str, loan_id: uuid.UUID, paid_amount: Any) -> SettlementResult:
        """
        Settle a loan in full with a single payment.

        The settled flag is claimed with a conditional update so that two
        concurrent requests cannot both emit entries; the entries are
        written in the same transaction, so a failure leaves the loan
        unsettled. Settling an already-settled loan is a no-op.

        Raises:
            NotFoundError: loan missing or owned by someone else
            ValidationError: paid amount invalid or below principal
            PersistenceError: store failure, nothing was changed
        """
        start_time = time.time()
        loan = self.get(owner_id, loan_id)

        try:
            result = settle_loan(loan, paid_amount)
        except ValidationError:
            settlement_counter.labels(outcome="rejected").inc()
            log_settlement(self.request_id, owner_id, str(loan_id), "rejected", 0)
            raise

        if result.already_settled:
            return self._noop(result)

        try:
            claimed = self.loans.mark_settled(owner_id, loan_id)
            if not claimed:
                self.db.rollback()
                return self._noop(SettlementResult(loan=self.get(owner_id, loan_id), entries=[], already_settled=True))
            self.entries.add_all(result.entries)
        except SQLAlchemyError as e:
            self.db.rollback()
            raise PersistenceError("Settlement failed, loan left unsettled") from e
        self._commit("Settlement failed, loan left unsettled")

        duration_ms = (time.time() - start_time) * 1000
        settlement_counter.labels(outcome="settled").inc()
        record_entries(result.entries)
        log_settlement(self.request_id, owner_id, str(loan_id), "settled", len(result.entries), duration_ms)
        self._notify(LOANS_CHANGED, TRANSACTIONS_CHANGED, owner_id=owner_id)
        return result

    def _noop(self, result: SettlementResult) -> SettlementResult:
        settlement_counter.labels(outcome="noop").inc()
        log_settlement(self.request_id, result.loan.owner_id, str(result.loan.id), "noop", 0)
        return result

    def delete(self, owner_id: str, loan_id: uuid.UUID) -> int:
        """
        Delete a loan and every ledger entry referencing it.

        Returns:
            Number of ledger entries removed with the loan
        """
        self.get(owner_id, loan_id)
        try:
            removed = self.entries.delete_for_loan(owner_id, loan_id)
            self.loans.delete(owner_id, loan_id)
        except SQLAlchemyError as e:
            self.db.rollback()
            raise PersistenceError("Loan could not be deleted") from e
        self._commit("Loan could not be deleted")

        cascade_delete_counter.labels(trigger="loan").inc()
        log_cascade_delete(self.request_id, owner_id, str(loan_id), "loan", removed)
        self._notify(LOANS_CHANGED, TRANSACTIONS_CHANGED, owner_id=owner_id)
        return removed

    def due_reminders(self, owner_id: str, today: date) -> List[Tuple[Loan, ReminderStage]]:
        """Unsettled loans that reached a reminder stage not yet acknowledged"""
        return [
            (loan, reminder_stage_for(loan.due_date, today))
            for loan in self.loans.list_for_owner(owner_id, unsettled_only=True)
            if needs_reminder(loan, today)
        ]
