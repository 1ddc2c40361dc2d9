import threading
import time
from typing import Callable, Optional, Tuple

from .errors import InboxError
from .logging_setup import logger
from .metrics import ProbeMetrics
from .status import Status, StatusField

CACHE_KEY = "status"
IMAP_ERROR = "imap"


class StatusCache:
    """Single-entry, single-flight cache in front of the inbox reconciler.

    One lock guards the entry and the reconciliation itself: while a
    reconciliation runs, every other caller waits and then reads the value it
    produced. Entries have no TTL by default; they only leave through
    ``clear()`` (driven by the periodic flush loop). A failed reconciliation
    caches nothing, so the next lookup tries again.
    """

    def __init__(
        self,
        reconcile: Callable[[], Status],
        metrics: ProbeMetrics,
        ttl: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._reconcile = reconcile
        self._metrics = metrics
        self._ttl = ttl
        self._clock = clock
        self._lock = threading.Lock()
        # (key, status, expires_at); expires_at None means no expiry
        self._entry: Optional[Tuple[str, Status, Optional[float]]] = None

    def _live(self) -> Optional[Status]:
        if self._entry is None:
            return None
        _, status, expires_at = self._entry
        if expires_at is not None and self._clock() >= expires_at:
            self._entry = None
            return None
        return status

    def get_or_reconcile(self, field: StatusField) -> float:
        with self._lock:
            status = self._live()
            if status is not None:
                return status.value(field)
            try:
                status = self._reconcile()
            except InboxError as e:
                logger.error(f"error fetching alive status: {type(e).__name__}: {e}")
                self._metrics.errors.labels(error=IMAP_ERROR).inc()
                return 0.0
            except Exception as e:
                logger.exception(f"unexpected error fetching alive status: {e}")
                self._metrics.errors.labels(error=IMAP_ERROR).inc()
                return 0.0
            expires_at = None if self._ttl is None else self._clock() + self._ttl
            self._entry = (CACHE_KEY, status, expires_at)
            return status.value(field)

    def peek(self) -> Optional[Status]:
        with self._lock:
            return self._live()

    def clear(self) -> None:
        with self._lock:
            self._entry = None
