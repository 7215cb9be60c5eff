"""/v1/loans - loan lifecycle endpoints"""

import logging
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from finance_tracker.api.dependencies import get_event_bus, get_owner_id, get_request_id, parse_record_id
from finance_tracker.api.v1.schemas import (
    EntryResponse,
    LoanCreatedResponse,
    LoanCreateRequest,
    LoanResponse,
    LoanSummaryResponse,
    LoanUpdateRequest,
    MessageResponse,
    QuoteRequest,
    QuoteResponse,
    ReminderItem,
    SettlementResponse,
    SettleRequest,
)
from finance_tracker.domain.aggregation import loan_exposure
from finance_tracker.domain.exceptions import NotFoundError, PersistenceError, ValidationError
from finance_tracker.domain.interest import quote_interest
from finance_tracker.domain.models import Loan
from finance_tracker.infrastructure.database.session import get_db
from finance_tracker.services.events import EventBus
from finance_tracker.services.loans import LoanService

router = APIRouter()

LOAN_NOT_FOUND = "Loan not found"


def _loan_from_request(body: LoanCreateRequest, owner_id: str) -> Loan:
    """Build the domain loan, quoting interest when the client did not send it"""
    interest_amount = body.interest_amount
    total_amount = body.total_amount
    if interest_amount is None:
        quote = quote_interest(
            body.principal,
            body.interest_rate,
            body.interest_type,
            body.start_date,
            body.due_date,
            unit=body.term_unit,
        )
        interest_amount = quote.interest_amount
        total_amount = total_amount if total_amount is not None else quote.total_amount
    elif total_amount is None:
        total_amount = body.principal + interest_amount

    return Loan(
        owner_id=owner_id,
        counterparty_name=body.counterparty_name.strip(),
        counterparty_contact=body.counterparty_contact,
        role=body.role,
        principal=body.principal,
        interest_rate=body.interest_rate,
        interest_type=body.interest_type,
        interest_amount=interest_amount,
        total_amount=total_amount,
        start_date=body.start_date,
        due_date=body.due_date,
        note=body.note,
    )


@router.post("/loans", response_model=LoanCreatedResponse, status_code=201)
def create_loan(
    body: LoanCreateRequest,
    owner_id: str = Depends(get_owner_id),
    request_id: str = Depends(get_request_id),
    db: Session = Depends(get_db),
    bus: EventBus = Depends(get_event_bus),
):
    """
    Record a new loan.

    The opening ledger entry (an outflow for money lent, an inflow for money
    borrowed) is written in the same transaction as the loan.
    """
    try:
        loan = _loan_from_request(body, owner_id)
        loan, entry = LoanService(db, bus, request_id).create(loan)
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except PersistenceError as e:
        logging.error(f"Loan creation failed: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=503, detail="Storage unavailable")
    except Exception as e:
        db.rollback()
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")

    return LoanCreatedResponse(loan=LoanResponse.from_domain(loan), entry=EntryResponse.from_domain(entry))


@router.get("/loans", response_model=List[LoanResponse])
def list_loans(owner_id: str = Depends(get_owner_id), db: Session = Depends(get_db), bus: EventBus = Depends(get_event_bus)):
    """All of the owner's loans, soonest due first"""
    return [LoanResponse.from_domain(loan) for loan in LoanService(db, bus).list_for_owner(owner_id)]


@router.get("/loans/summary", response_model=LoanSummaryResponse)
def get_loan_summary(owner_id: str = Depends(get_owner_id), db: Session = Depends(get_db), bus: EventBus = Depends(get_event_bus)):
    """Outstanding principal lent and borrowed across unsettled loans"""
    exposure = loan_exposure(LoanService(db, bus).list_for_owner(owner_id))
    return LoanSummaryResponse(total_lent=exposure.total_lent, total_borrowed=exposure.total_borrowed)


@router.get("/loans/reminders", response_model=List[ReminderItem])
def get_due_reminders(
    today: Optional[date] = Query(None, description="Defaults to the current date"),
    owner_id: str = Depends(get_owner_id),
    db: Session = Depends(get_db),
    bus: EventBus = Depends(get_event_bus),
):
    """Unsettled loans that reached a reminder stage not yet acknowledged"""
    reminders = LoanService(db, bus).due_reminders(owner_id, today or date.today())
    return [
        ReminderItem(
            loan_id=str(loan.id),
            counterparty_name=loan.counterparty_name,
            role=loan.role,
            due_date=loan.due_date,
            total_amount=loan.total_amount,
            stage=stage,
        )
        for loan, stage in reminders
    ]


@router.post("/loans/quote", response_model=QuoteResponse)
def quote_loan_interest(body: QuoteRequest):
    """Interest and total repayable for the given terms"""
    try:
        quote = quote_interest(
            body.principal,
            body.interest_rate,
            body.interest_type,
            body.start_date,
            body.due_date,
            unit=body.term_unit,
        )
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return QuoteResponse(interest_amount=quote.interest_amount, total_amount=quote.total_amount, periods=quote.periods)


@router.get("/loans/{loan_id}", response_model=LoanResponse)
def get_loan(loan_id: str, owner_id: str = Depends(get_owner_id), db: Session = Depends(get_db), bus: EventBus = Depends(get_event_bus)):
    try:
        loan = LoanService(db, bus).get(owner_id, parse_record_id(loan_id, LOAN_NOT_FOUND))
    except NotFoundError:
        raise HTTPException(status_code=404, detail=LOAN_NOT_FOUND)
    return LoanResponse.from_domain(loan)


@router.put("/loans/{loan_id}", response_model=LoanResponse)
def update_loan(
    loan_id: str,
    body: LoanUpdateRequest,
    owner_id: str = Depends(get_owner_id),
    request_id: str = Depends(get_request_id),
    db: Session = Depends(get_db),
    bus: EventBus = Depends(get_event_bus),
):
    """
    Edit a loan.

    Settled loans accept metadata edits only (counterparty, contact, due
    date, note, reminder stage).
    """
    changes = body.model_dump(exclude_unset=True, exclude_none=True)
    try:
        loan = LoanService(db, bus, request_id).update(owner_id, parse_record_id(loan_id, LOAN_NOT_FOUND), changes)
    except NotFoundError:
        raise HTTPException(status_code=404, detail=LOAN_NOT_FOUND)
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except PersistenceError as e:
        logging.error(f"Loan update failed: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=503, detail="Storage unavailable")
    return LoanResponse.from_domain(loan)


@router.post("/loans/{loan_id}/settle", response_model=SettlementResponse)
def settle_loan(
    loan_id: str,
    body: SettleRequest,
    owner_id: str = Depends(get_owner_id),
    request_id: str = Depends(get_request_id),
    db: Session = Depends(get_db),
    bus: EventBus = Depends(get_event_bus),
):
    """
    Settle a loan in full.

    Flow:
    1. Reject payments below the principal (422, nothing written)
    2. Claim the loan with a conditional settled-flag update
    3. Write the principal entry, plus an interest entry for any excess
    4. Commit both together

    A loan that is already settled returns 200 with no entries and
    already_settled=true.
    """
    record_id = parse_record_id(loan_id, LOAN_NOT_FOUND)
    try:
        result = LoanService(db, bus, request_id).settle(owner_id, record_id, body.paid_amount)
    except NotFoundError:
        raise HTTPException(status_code=404, detail=LOAN_NOT_FOUND)
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except PersistenceError as e:
        logging.error(f"Settlement failed: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=503, detail="Storage unavailable")
    except Exception as e:
        db.rollback()
        logging.error(f"Unexpected settlement error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")

    return SettlementResponse(
        loan=LoanResponse.from_domain(result.loan),
        entries=[EntryResponse.from_domain(e) for e in result.entries],
        already_settled=result.already_settled,
    )


@router.delete("/loans/{loan_id}", response_model=MessageResponse)
def delete_loan(
    loan_id: str,
    owner_id: str = Depends(get_owner_id),
    request_id: str = Depends(get_request_id),
    db: Session = Depends(get_db),
    bus: EventBus = Depends(get_event_bus),
):
    """Delete a loan together with every ledger entry it produced"""
    try:
        LoanService(db, bus, request_id).delete(owner_id, parse_record_id(loan_id, LOAN_NOT_FOUND))
    except NotFoundError:
        raise HTTPException(status_code=404, detail=LOAN_NOT_FOUND)
    except PersistenceError as e:
        logging.error(f"Loan deletion failed: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=503, detail="Storage unavailable")
    return MessageResponse(message="Loan & related transactions deleted")
