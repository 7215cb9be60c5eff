"""FastAPI application factory"""

from fastapi import FastAPI
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from finance_tracker.api.middleware import RequestIDMiddleware, MetricsMiddleware
from finance_tracker.api.v1 import loans, summary, transactions
from finance_tracker.infrastructure.observability.logging import setup_logging
from finance_tracker.services.events import EventBus
from finance_tracker.services.summary import SummaryCache
from finance_tracker.config import settings

setup_logging(settings.log_level)


def create_app() -> FastAPI:
    """Create and configure FastAPI application"""
    app = FastAPI(
        title="Finance Tracker",
        description="Income, expense, investment and loan tracking",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # One bus per app; the summary cache drops an owner's entries on every change event
    app.state.event_bus = EventBus()
    app.state.summary_cache = SummaryCache(settings.summary_cache_size, settings.summary_cache_ttl_seconds)
    app.state.summary_cache.attach(app.state.event_bus)

    # last added = first executed
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)

    @app.get("/health")
    def health_check():
        return {"status": "ok", "service": settings.service_name}

    @app.get("/metrics")
    def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    app.include_router(loans.router, prefix="/v1", tags=["loans"])
    app.include_router(transactions.router, prefix="/v1", tags=["transactions"])
    app.include_router(summary.router, prefix="/v1", tags=["summary"])

    return app


app = create_app()
