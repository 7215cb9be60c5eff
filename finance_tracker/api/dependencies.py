"""Dependency injection for FastAPI endpoints"""

import uuid
from fastapi import Header, HTTPException, Request
from finance_tracker.infrastructure.clients.rates import RatesClient
from finance_tracker.services.events import EventBus
from finance_tracker.services.summary import SummaryCache


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_owner_id(x_user_id: str | None = Header(default=None)) -> str:
    """Authenticated owner id, set by the auth layer in front of this service"""
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(status_code=401, detail="Missing X-User-ID header")
    return x_user_id.strip()


def get_event_bus(request: Request) -> EventBus:
    return request.app.state.event_bus


def get_summary_cache(request: Request) -> SummaryCache:
    return request.app.state.summary_cache


def get_rates_client() -> RatesClient:
    """Provide currency rates client instance"""
    return RatesClient()


def parse_record_id(raw_id: str, not_found_detail: str) -> uuid.UUID:
    """Malformed ids answer like missing ones so existence is never leaked"""
    try:
        return uuid.UUID(raw_id)
    except ValueError:
        raise HTTPException(status_code=404, detail=not_found_detail)
