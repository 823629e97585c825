"""
Active timer registry: at most one ActiveTimer row per user.

This is a thin keyed store. Keeping it consistent with the sessions' open
intervals is the job of the timer state machine, which calls it inside its
own transaction; nothing here commits.
"""
from typing import Optional

from sqlmodel import Session, select

from models import ActiveTimer


class ActiveTimerRegistry:
    def __init__(self, db: Session):
        self.db = db

    def get(self, user_id: str, *, for_update: bool = False) -> Optional[ActiveTimer]:
        statement = select(ActiveTimer).where(ActiveTimer.user_id == user_id)
        if for_update:
            statement = statement.with_for_update()
        return self.db.exec(statement).one_or_none()

    def set(self, user_id: str, entry: ActiveTimer) -> ActiveTimer:
        """Upsert the user's entry, replacing whatever was there."""
        entry.user_id = user_id
        existing = self.get(user_id)
        if existing is None:
            self.db.add(entry)
            self.db.flush()
            return entry
        for field in ("task_id", "session_id", "task_title", "description", "category", "start_time"):
            setattr(existing, field, getattr(entry, field))
        self.db.add(existing)
        self.db.flush()
        return existing

    def clear(self, user_id: str) -> None:
        existing = self.get(user_id)
        if existing is not None:
            self.db.delete(existing)
            self.db.flush()
