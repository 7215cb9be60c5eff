"""GET /v1/summary and /v1/analytics - dashboard reads"""

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from finance_tracker.api.dependencies import get_owner_id, get_rates_client, get_request_id, get_summary_cache
from finance_tracker.api.v1.schemas import (
    CategoryBreakdownResponse,
    MonthlyBreakdownResponse,
    PeriodTotalsSchema,
    SummaryResponse,
)
from finance_tracker.config import settings
from finance_tracker.domain.aggregation import convert_summary
from finance_tracker.domain.exceptions import RatesAPIError
from finance_tracker.infrastructure.clients.rates import RatesClient
from finance_tracker.infrastructure.database.session import get_db
from finance_tracker.infrastructure.observability.metrics import rates_fetch_failures_counter
from finance_tracker.services.summary import SummaryCache, SummaryService

router = APIRouter()


@router.get("/summary", response_model=SummaryResponse)
async def get_summary(
    anchor: Optional[date] = Query(None, description="Any day in the month to summarize; defaults to today"),
    display_currency: Optional[str] = Query(None, min_length=3, max_length=3),
    owner_id: str = Depends(get_owner_id),
    request_id: str = Depends(get_request_id),
    db: Session = Depends(get_db),
    cache: SummaryCache = Depends(get_summary_cache),
    rates_client: RatesClient = Depends(get_rates_client),
):
    """
    Dashboard summary for the anchor month.

    Flow:
    1. Monthly income, expense and investment totals (loan principal excluded)
    2. Balance per payment method across all history
    3. Outstanding loan exposure
    4. Optional conversion into display_currency; stored amounts stay in the base currency
    """
    summary = SummaryService(db, cache).summary(owner_id, anchor or date.today())

    currency = (display_currency or settings.base_currency).upper()
    if currency != settings.base_currency.upper():
        try:
            rate = await rates_client.get_rate(settings.base_currency, currency)
        except RatesAPIError as e:
            rates_fetch_failures_counter.inc()
            logging.error(f"Rates fetch failed: {e}", extra={"request_id": request_id})
            raise HTTPException(status_code=503, detail="Currency rates unavailable")
        summary = convert_summary(summary, rate)

    return SummaryResponse.from_domain(summary, currency)


@router.get("/analytics/monthly", response_model=MonthlyBreakdownResponse)
def get_monthly_breakdown(
    year: int = Query(..., ge=1970, le=9999),
    owner_id: str = Depends(get_owner_id),
    db: Session = Depends(get_db),
    cache: SummaryCache = Depends(get_summary_cache),
):
    """Income, expense and investment for each month of the year"""
    months = SummaryService(db, cache).monthly(owner_id, year)
    return MonthlyBreakdownResponse(year=year, months=[PeriodTotalsSchema.from_domain(m) for m in months])


@router.get("/analytics/categories", response_model=CategoryBreakdownResponse)
def get_category_breakdown(
    year: int = Query(..., ge=1970, le=9999),
    month: int = Query(..., ge=1, le=12),
    owner_id: str = Depends(get_owner_id),
    db: Session = Depends(get_db),
    cache: SummaryCache = Depends(get_summary_cache),
):
    """Expense totals per category for one month, largest first"""
    categories = SummaryService(db, cache).categories(owner_id, year, month)
    return CategoryBreakdownResponse(year=year, month=month, categories=categories)
