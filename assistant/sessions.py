"""In-memory store of price checks, keyed by refinement session id."""

import threading
from collections import OrderedDict
from typing import List, Optional

from .price_check import PriceCheck

__all__ = ["SessionStore"]

DEFAULT_MAX_SESSIONS = 500


class SessionStore:
    """Thread-safe map of session id -> PriceCheck.

    Oldest entries are dropped once ``max_sessions`` is exceeded.
    """

    def __init__(self, max_sessions: int = DEFAULT_MAX_SESSIONS):
        self.max_sessions = max_sessions
        self._checks: "OrderedDict[str, PriceCheck]" = OrderedDict()
        self._lock = threading.Lock()

    def add(self, check: PriceCheck) -> None:
        if check.session is None:
            raise ValueError("Only price checks with a refinement session can be stored")
        with self._lock:
            self._checks[check.session.session_id] = check
            self._checks.move_to_end(check.session.session_id)
            while len(self._checks) > self.max_sessions:
                self._checks.popitem(last=False)

    def get(self, session_id: str) -> Optional[PriceCheck]:
        with self._lock:
            return self._checks.get(session_id)

    def remove(self, session_id: str) -> bool:
        with self._lock:
            return self._checks.pop(session_id, None) is not None

    def ids(self) -> List[str]:
        with self._lock:
            return list(self._checks)

    def __len__(self) -> int:
        with self._lock:
            return len(self._checks)
