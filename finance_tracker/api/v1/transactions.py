"""/v1/transactions - ledger entry endpoints"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from finance_tracker.api.dependencies import get_event_bus, get_owner_id, get_request_id, parse_record_id
from finance_tracker.api.v1.schemas import EntryCreateRequest, EntryResponse, EntryUpdateRequest, MessageResponse
from finance_tracker.domain.exceptions import NotFoundError, PersistenceError, ValidationError
from finance_tracker.domain.models import EntryKind, LedgerEntry
from finance_tracker.infrastructure.database.session import get_db
from finance_tracker.services.events import EventBus
from finance_tracker.services.transactions import TransactionService
from finance_tracker.utils.date_utils import utcnow

router = APIRouter()

TRANSACTION_NOT_FOUND = "Transaction not found"


@router.post("/transactions", response_model=EntryResponse, status_code=201)
def create_transaction(
    body: EntryCreateRequest,
    owner_id: str = Depends(get_owner_id),
    request_id: str = Depends(get_request_id),
    db: Session = Depends(get_db),
    bus: EventBus = Depends(get_event_bus),
):
    """Record a manual income, expense or investment"""
    entry = LedgerEntry(
        owner_id=owner_id,
        kind=body.kind,
        amount=body.amount,
        category=body.category.strip(),
        payment_method=body.payment_method.strip(),
        note=body.note,
        occurred_at=body.occurred_at or utcnow(),
    )
    try:
        entry = TransactionService(db, bus, request_id).create(entry)
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except PersistenceError as e:
        logging.error(f"Transaction creation failed: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=503, detail="Storage unavailable")
    except Exception as e:
        db.rollback()
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")
    return EntryResponse.from_domain(entry)


@router.get("/transactions", response_model=List[EntryResponse])
def list_transactions(
    kind: Optional[EntryKind] = Query(None),
    payment_method: Optional[str] = Query(None, description="Matched after normalization, e.g. 'Online' == 'upi'"),
    category: Optional[str] = Query(None),
    year: Optional[int] = Query(None, ge=1970, le=9999),
    month: Optional[int] = Query(None, ge=1, le=12),
    loan_id: Optional[str] = Query(None),
    owner_id: str = Depends(get_owner_id),
    db: Session = Depends(get_db),
    bus: EventBus = Depends(get_event_bus),
):
    """The owner's ledger entries, newest first"""
    if month is not None and year is None:
        raise HTTPException(status_code=422, detail="month filter requires year")

    entries = TransactionService(db, bus).list_for_owner(
        owner_id,
        kind=kind,
        payment_method=payment_method,
        category=category,
        year=year,
        month=month,
        loan_id=parse_record_id(loan_id, "Loan not found") if loan_id else None,
    )
    return [EntryResponse.from_domain(e) for e in entries]


@router.get("/transactions/{entry_id}", response_model=EntryResponse)
def get_transaction(
    entry_id: str, owner_id: str = Depends(get_owner_id), db: Session = Depends(get_db), bus: EventBus = Depends(get_event_bus)
):
    try:
        entry = TransactionService(db, bus).get(owner_id, parse_record_id(entry_id, TRANSACTION_NOT_FOUND))
    except NotFoundError:
        raise HTTPException(status_code=404, detail=TRANSACTION_NOT_FOUND)
    return EntryResponse.from_domain(entry)


@router.put("/transactions/{entry_id}", response_model=EntryResponse)
def update_transaction(
    entry_id: str,
    body: EntryUpdateRequest,
    owner_id: str = Depends(get_owner_id),
    request_id: str = Depends(get_request_id),
    db: Session = Depends(get_db),
    bus: EventBus = Depends(get_event_bus),
):
    """Edit a manual entry; entries generated by a loan are read-only"""
    changes = body.model_dump(exclude_unset=True, exclude_none=True)
    try:
        entry = TransactionService(db, bus, request_id).update(
            owner_id, parse_record_id(entry_id, TRANSACTION_NOT_FOUND), changes
        )
    except NotFoundError:
        raise HTTPException(status_code=404, detail=TRANSACTION_NOT_FOUND)
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except PersistenceError as e:
        logging.error(f"Transaction update failed: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=503, detail="Storage unavailable")
    return EntryResponse.from_domain(entry)


@router.delete("/transactions/{entry_id}", response_model=MessageResponse)
def delete_transaction(
    entry_id: str,
    owner_id: str = Depends(get_owner_id),
    request_id: str = Depends(get_request_id),
    db: Session = Depends(get_db),
    bus: EventBus = Depends(get_event_bus),
):
    """Delete an entry; a loan-generated entry takes its loan along"""
    try:
        loan_id = TransactionService(db, bus, request_id).delete(
            owner_id, parse_record_id(entry_id, TRANSACTION_NOT_FOUND)
        )
    except NotFoundError:
        raise HTTPException(status_code=404, detail=TRANSACTION_NOT_FOUND)
    except PersistenceError as e:
        logging.error(f"Transaction deletion failed: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=503, detail="Storage unavailable")

    if loan_id is not None:
        return MessageResponse(message="Transaction & related loan deleted")
    return MessageResponse(message="Transaction deleted")
