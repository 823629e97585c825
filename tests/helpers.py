# tests/helpers.py

from __future__ import annotations

from datetime import datetime, timedelta

from sqlmodel import Session, select

from ledger import has_open_interval, load_ledger
from models import ActiveTimer, TimeSession

# A Monday, so weekly stats have a known week start (Sunday 2026-03-01).
T0 = datetime(2026, 3, 2, 9, 0, 0)


def at(seconds: float) -> datetime:
    return T0 + timedelta(seconds=seconds)


class FakeClock:
    """Deterministic clock: returns the same instant until moved."""

    def __init__(self, now: datetime = T0) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> datetime:
        self.now += timedelta(seconds=seconds)
        return self.now

    def at(self, seconds: float) -> datetime:
        """Jump to T0 + seconds."""
        self.now = at(seconds)
        return self.now


def snapshot(db: Session) -> tuple[list[dict], list[dict]]:
    """Everything the timer engine owns, for before/after comparisons."""
    db.expire_all()
    sessions = db.exec(select(TimeSession).order_by(TimeSession.id)).all()
    entries = db.exec(select(ActiveTimer).order_by(ActiveTimer.user_id)).all()
    return [s.model_dump() for s in sessions], [e.model_dump() for e in entries]


def assert_single_active_timer(db: Session, user_id: str) -> None:
    """Registry entry exists iff exactly one of the user's sessions is open."""
    db.expire_all()
    sessions = db.exec(select(TimeSession).where(TimeSession.user_id == user_id)).all()
    open_sessions = [s for s in sessions if has_open_interval(load_ledger(s.intervals))]
    entry = db.get(ActiveTimer, user_id)
    if entry is None:
        assert open_sessions == []
    else:
        assert len(open_sessions) == 1
        assert open_sessions[0].id == entry.session_id
        assert open_sessions[0].is_running
    for s in sessions:
        ledger = load_ledger(s.intervals)
        assert all(not i.is_open for i in ledger[:-1])
        if s.end_time is not None:
            assert not has_open_interval(ledger)
