"""
Typed failures raised by the timer engine.

The request layer maps them to HTTP statuses; nothing inside the engine retries.
"""


class TimerError(Exception):
    """Base class for timer engine failures."""


class NotFound(TimerError):
    """Task, session or active timer does not exist for this user."""


class InvalidState(TimerError):
    """An interval or registry invariant would be violated."""


class StoreFailure(TimerError):
    """The store was unavailable or the transaction aborted; nothing was applied."""
