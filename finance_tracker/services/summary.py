"""Dashboard and analytics reads over a user's ledger snapshot"""

import threading
import time
from collections import OrderedDict
from datetime import date
from typing import Callable, Dict, Hashable, List, Tuple

from sqlalchemy.orm import Session

from finance_tracker.domain.aggregation import expense_by_category, loan_exposure, monthly_breakdown, summarize
from finance_tracker.domain.models import LoanExposure, PeriodTotals, Summary
from finance_tracker.infrastructure.database.repositories import LedgerEntryRepository, LoanRepository
from finance_tracker.infrastructure.observability.metrics import summary_cache_counter
from finance_tracker.services.events import LOANS_CHANGED, TRANSACTIONS_CHANGED, EventBus


class SummaryCache:
    """
    Read-through LRU cache of computed summaries, keyed per owner.

    Entries for an owner are dropped whenever that owner's loans or
    transactions change. A value computed while an invalidation for its
    owner landed is returned to its caller but never stored.

    Invalidation only reaches this process. Every entry also expires after
    ttl_seconds, which bounds how stale a worker that missed another
    worker's writes can be.
    """

    def __init__(
        self,
        max_size: int = 1024,
        ttl_seconds: float = 30.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.max_size = max_size
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._items: "OrderedDict[tuple, Tuple[float, object]]" = OrderedDict()
        self._generations: Dict[str, int] = {}
        self._lock = threading.Lock()

    def get_or_compute(self, owner_id: str, key: Hashable, compute: Callable[[], object]):
        cache_key = (owner_id, key)
        with self._lock:
            cached = self._items.get(cache_key)
            if cached is not None:
                expires_at, value = cached
                if expires_at > self._clock():
                    self._items.move_to_end(cache_key)
                    summary_cache_counter.labels(result="hit").inc()
                    return value
                del self._items[cache_key]
            generation = self._generations.get(owner_id, 0)

        summary_cache_counter.labels(result="miss").inc()
        value = compute()

        with self._lock:
            if self._generations.get(owner_id, 0) != generation:
                return value
            self._items[cache_key] = (self._clock() + self.ttl_seconds, value)
            self._items.move_to_end(cache_key)
            while len(self._items) > self.max_size:
                self._items.popitem(last=False)
        return value

    def invalidate(self, owner_id: str) -> None:
        with self._lock:
            self._generations[owner_id] = self._generations.get(owner_id, 0) + 1
            for cache_key in [k for k in self._items if k[0] == owner_id]:
                del self._items[cache_key]

    def attach(self, bus: EventBus) -> None:
        """Subscribe invalidation to change events"""
        bus.subscribe(TRANSACTIONS_CHANGED, self.invalidate)
        bus.subscribe(LOANS_CHANGED, self.invalidate)


class SummaryService:
    """Builds summaries from a fresh snapshot of the owner's records"""

    def __init__(self, db: Session, cache: SummaryCache):
        self.cache = cache
        self.loans = LoanRepository(db)
        self.entries = LedgerEntryRepository(db)

    def loan_exposure(self, owner_id: str) -> LoanExposure:
        return loan_exposure(self.loans.list_for_owner(owner_id, unsettled_only=True))

    def summary(self, owner_id: str, anchor: date) -> Summary:
        def compute() -> Summary:
            return summarize(
                self.entries.list_for_owner(owner_id),
                anchor,
                self.loan_exposure(owner_id),
            )

        return self.cache.get_or_compute(owner_id, ("summary", anchor.year, anchor.month), compute)

    def monthly(self, owner_id: str, year: int) -> List[PeriodTotals]:
        return self.cache.get_or_compute(
            owner_id,
            ("monthly", year),
            lambda: monthly_breakdown(self.entries.list_for_owner(owner_id, year=year), year),
        )

    def categories(self, owner_id: str, year: int, month: int) -> Dict:
        return self.cache.get_or_compute(
            owner_id,
            ("categories", year, month),
            lambda: expense_by_category(self.entries.list_for_owner(owner_id, year=year, month=month), year, month),
        )
