"""
Interval ledger: the ordered start/stop spans that make up a time session.

A ledger is an immutable tuple of Interval values. Only the trailing interval
may be open, and once an interval is closed it never changes again. Every
operation returns a new ledger instead of mutating its input.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any, Iterable, Optional

from errors import InvalidState


@dataclass(frozen=True)
class Interval:
    start: datetime
    stop: Optional[datetime] = None

    @property
    def is_open(self) -> bool:
        return self.stop is None

    @property
    def duration_seconds(self) -> int:
        """Whole seconds between start and stop, floored. Open intervals count 0."""
        if self.stop is None:
            return 0
        return max(0, math.floor((self.stop - self.start).total_seconds()))


Ledger = tuple[Interval, ...]


def has_open_interval(ledger: Ledger) -> bool:
    return bool(ledger) and ledger[-1].is_open


def append_open_interval(ledger: Ledger, start: datetime) -> Ledger:
    """Add a new interval with only its start set."""
    if has_open_interval(ledger):
        raise InvalidState("Cannot open a new interval while the last one is still open")
    return ledger + (Interval(start=start),)


def close_trailing_interval(ledger: Ledger, stop: datetime) -> Ledger:
    """Set the stop timestamp on the last interval."""
    if not ledger:
        raise InvalidState("Cannot close an interval on an empty ledger")
    if not ledger[-1].is_open:
        raise InvalidState("The last interval is already closed")
    return ledger[:-1] + (replace(ledger[-1], stop=stop),)


def total_closed_duration(ledger: Ledger) -> int:
    """Sum of floored durations over closed intervals."""
    return sum(interval.duration_seconds for interval in ledger)


def elapsed_seconds(ledger: Ledger, now: datetime) -> int:
    """Closed duration plus the open interval measured up to now."""
    total = total_closed_duration(ledger)
    if has_open_interval(ledger):
        total += Interval(start=ledger[-1].start, stop=now).duration_seconds
    return total


# --- Storage adapter: JSON list of {"start": iso, "stop": iso} ---

def dump_ledger(ledger: Ledger) -> list[dict[str, str]]:
    rows = []
    for interval in ledger:
        row = {"start": interval.start.isoformat()}
        if interval.stop is not None:
            row["stop"] = interval.stop.isoformat()
        rows.append(row)
    return rows


def load_ledger(rows: Optional[Iterable[dict[str, Any]]]) -> Ledger:
    ledger: list[Interval] = []
    for row in rows or ():
        stop = row.get("stop")
        ledger.append(
            Interval(
                start=datetime.fromisoformat(row["start"]),
                stop=datetime.fromisoformat(stop) if stop else None,
            )
        )
    return tuple(ledger)
