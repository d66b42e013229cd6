# src/branchguard/context.py: Cancellable evaluation context.
# A Context is passed through every evaluation call and forwarded to the
# membership lookups a rule kind may need. Cancelling it aborts the in-flight
# call with EvaluationCancelledError instead of a partial decision.

import threading

from .util.errors import EvaluationCancelledError


class Context:
    def __init__(self):
        self._cancelled = threading.Event()
        self._reason = ""

    def cancel(self, reason: str = "context cancelled") -> None:
        self._reason = reason
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def raise_if_cancelled(self) -> None:
        """Raise EvaluationCancelledError if the context has been cancelled."""
        if self._cancelled.is_set():
            raise EvaluationCancelledError(self._reason)


def background() -> Context:
    """Return a fresh context that is never cancelled unless asked to."""
    return Context()
