"""In-process change notifications between services and read caches"""

import logging
import threading
from collections import defaultdict
from typing import Callable, DefaultDict, List

logger = logging.getLogger(__name__)

TRANSACTIONS_CHANGED = "transactions_changed"
LOANS_CHANGED = "loans_changed"

Handler = Callable[[str], None]


class EventBus:
    """
    Synchronous observer registry.

    Services publish after a successful commit, passing the owner whose data
    changed; subscribers such as the summary cache react immediately.
    """

    def __init__(self):
        self._handlers: DefaultDict[str, List[Handler]] = defaultdict(list)
        self._lock = threading.Lock()

    def subscribe(self, event: str, handler: Handler) -> None:
        with self._lock:
            self._handlers[event].append(handler)

    def publish(self, event: str, owner_id: str) -> None:
        with self._lock:
            handlers = list(self._handlers[event])
        for handler in handlers:
            handler(owner_id)
        logger.debug("Event published", extra={"event": event, "owner_id": owner_id, "handlers": len(handlers)})
