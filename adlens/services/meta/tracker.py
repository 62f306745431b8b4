"""
Request generation tracking for aggregator invocations.

Each scope (aggregator kind + credential + account) hands out increasing
tickets. Only the holder of the newest ticket may publish its result to the
cache; an older invocation that finishes late still returns to its caller.
"""
import enum
import logging
import threading
from dataclasses import dataclass
from typing import Dict

logger = logging.getLogger(__name__)


class FetchState(str, enum.Enum):
    """Lifecycle of one aggregator invocation"""
    IDLE = "idle"
    FETCHING = "fetching"
    SUCCESS = "success"
    FAILED = "failed"


@dataclass
class _ScopeStatus:
    generation: int = 0
    state: FetchState = FetchState.IDLE


class RequestTracker:
    def __init__(self):
        self._scopes: Dict[str, _ScopeStatus] = {}
        self._lock = threading.Lock()

    def begin(self, scope: str) -> int:
        """Start an invocation; returns its ticket and supersedes older ones."""
        with self._lock:
            status = self._scopes.setdefault(scope, _ScopeStatus())
            status.generation += 1
            status.state = FetchState.FETCHING
            return status.generation

    def is_current(self, scope: str, ticket: int) -> bool:
        with self._lock:
            status = self._scopes.get(scope)
            return status is not None and status.generation == ticket

    def finish(self, scope: str, ticket: int, state: FetchState) -> bool:
        """
        Record the outcome of an invocation.

        Returns True when the ticket is still the newest one for the scope.
        A superseded ticket leaves the scope state untouched.
        """
        with self._lock:
            status = self._scopes.get(scope)
            if status is None or status.generation != ticket:
                return False
            status.state = state
            return True

    def state(self, scope: str) -> FetchState:
        with self._lock:
            status = self._scopes.get(scope)
            return status.state if status else FetchState.IDLE
