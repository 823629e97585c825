"""
Timer state machine: start / pause / resume / stop for a user's work sessions.

Per (user, task) a session moves Running -> Paused -> Running ... -> Stopped.
Stopped is terminal; starting the same task again opens a fresh session.
The ActiveTimer registry row exists exactly while one of the user's sessions
has an open trailing interval, and every operation below keeps the two in step
inside a single transaction.
"""
from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from errors import InvalidState, NotFound, StoreFailure, TimerError
from ledger import (
    Ledger,
    append_open_interval,
    close_trailing_interval,
    dump_ledger,
    elapsed_seconds,
    load_ledger,
    total_closed_duration,
)
from models import ActiveTimer, Task, TimerState, TimeSession, utc_now
from registry import ActiveTimerRegistry
from task_store import find_task

logger = logging.getLogger(__name__)


@dataclass
class StartResult:
    active_timer: ActiveTimer
    session: TimeSession
    # Session that was force-closed because another timer was running.
    auto_stopped: Optional[TimeSession] = None


def session_state(session: Optional[TimeSession]) -> TimerState:
    if session is None:
        return TimerState.IDLE
    return TimerState(session.state)


class TimerService:
    def __init__(self, db: Session, clock: Callable[[], datetime] = utc_now):
        self.db = db
        self.clock = clock
        self.registry = ActiveTimerRegistry(db)

    # --- unit of work ---

    @contextmanager
    def _unit_of_work(self, operation: str, user_id: str):
        """Commit everything done in the block, or roll all of it back."""
        try:
            yield
            self.db.commit()
        except InvalidState as exc:
            self.db.rollback()
            logger.error("%s for user %s rejected: %s", operation, user_id, exc)
            raise
        except TimerError:
            self.db.rollback()
            raise
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.exception("%s for user %s failed; rolled back", operation, user_id)
            raise StoreFailure(f"Could not {operation} timer, please retry") from exc

    def _refresh(self, *rows) -> None:
        for row in rows:
            if row is not None:
                self.db.refresh(row)

    # --- queries ---

    def _running_session(self, entry: ActiveTimer) -> TimeSession:
        statement = select(TimeSession).where(
            TimeSession.id == entry.session_id,
            TimeSession.user_id == entry.user_id,
            TimeSession.state == TimerState.RUNNING,
        )
        session = self.db.exec(statement).one_or_none()
        if session is None:
            raise InvalidState(
                f"Active timer points at session {entry.session_id} but it is not running"
            )
        return session

    def _latest_paused(self, user_id: str, task_id: str) -> Optional[TimeSession]:
        statement = (
            select(TimeSession)
            .where(
                TimeSession.user_id == user_id,
                TimeSession.task_id == task_id,
                TimeSession.state == TimerState.PAUSED,
            )
            .order_by(TimeSession.start_time.desc())
            .limit(1)
        )
        return self.db.exec(statement).first()

    def _owned_session(self, user_id: str, session_id: str) -> TimeSession:
        statement = select(TimeSession).where(
            TimeSession.id == session_id, TimeSession.user_id == user_id
        )
        session = self.db.exec(statement).one_or_none()
        if session is None:
            raise NotFound("Time entry not found")
        return session

    def task_state(self, user_id: str, task_id: str) -> TimerState:
        """RUNNING or PAUSED when the task has an open session, otherwise IDLE."""
        statement = (
            select(TimeSession)
            .where(
                TimeSession.user_id == user_id,
                TimeSession.task_id == task_id,
                TimeSession.state != TimerState.STOPPED,
            )
            .order_by(TimeSession.start_time.desc())
            .limit(1)
        )
        return session_state(self.db.exec(statement).first())

    # --- transitions ---

    def _write(self, session: TimeSession, ledger: Ledger, state: TimerState, now: datetime) -> None:
        session.intervals = dump_ledger(ledger)
        session.total_duration_seconds = total_closed_duration(ledger)
        session.state = state
        session.is_running = state is TimerState.RUNNING
        if state is TimerState.STOPPED:
            session.end_time = now
        session.updated_at = now
        self.db.add(session)

    def _close_running(self, entry: ActiveTimer, now: datetime, final: bool) -> TimeSession:
        session = self._running_session(entry)
        ledger = close_trailing_interval(load_ledger(session.intervals), now)
        self._write(session, ledger, TimerState.STOPPED if final else TimerState.PAUSED, now)
        self.registry.clear(entry.user_id)
        return session

    def _task(self, user_id: str, task_id: str) -> Task:
        task = find_task(self.db, task_id, user_id)
        if task is None:
            raise NotFound("Task not found")
        return task

    def start(
        self,
        user_id: str,
        task_id: str,
        task_title: Optional[str] = None,
        category: Optional[str] = None,
        description: Optional[str] = None,
    ) -> StartResult:
        """
        Start (or resume) the timer for task_id.

        A timer already running for this user, on any task, is stopped first.
        A paused session of the same task is resumed; otherwise a new session
        is opened. The task must exist for the user; unset display fields default
        to its title, its category and "Working on <title>".
        """
        now = self.clock()
        with self._unit_of_work("start", user_id):
            task = self._task(user_id, task_id)
            task_title = (task_title or "").strip() or task.title
            category = (category or "").strip() or task.category
            description = (description or "").strip() or f"Working on {task_title}"

            auto_stopped = None
            current = self.registry.get(user_id, for_update=True)
            if current is not None:
                auto_stopped = self._close_running(current, now, final=True)
                logger.info(
                    "auto-stop: user=%s task=%s session=%s",
                    user_id, auto_stopped.task_id, auto_stopped.id,
                )

            session = self._latest_paused(user_id, task_id)
            if session is not None:
                ledger = append_open_interval(load_ledger(session.intervals), now)
                session.task_title = task_title
                session.category = category
                session.description = description
                self._write(session, ledger, TimerState.RUNNING, now)
                logger.info("resume: user=%s task=%s session=%s", user_id, task_id, session.id)
            else:
                ledger = append_open_interval((), now)
                session = TimeSession(
                    user_id=user_id,
                    task_id=task_id,
                    task_title=task_title,
                    category=category,
                    description=description,
                    start_time=now,
                    created_at=now,
                )
                self._write(session, ledger, TimerState.RUNNING, now)
                logger.info("start: user=%s task=%s session=%s", user_id, task_id, session.id)
            self.db.flush()

            entry = self.registry.set(
                user_id,
                ActiveTimer(
                    task_id=task_id,
                    session_id=session.id,
                    task_title=task_title,
                    description=description,
                    category=category,
                    start_time=now,
                ),
            )
        self._refresh(entry, session, auto_stopped)
        return StartResult(active_timer=entry, session=session, auto_stopped=auto_stopped)

    def _halt(self, operation: str, user_id: str, final: bool) -> TimeSession:
        now = self.clock()
        with self._unit_of_work(operation, user_id):
            entry = self.registry.get(user_id, for_update=True)
            if entry is None:
                raise NotFound("No active timer found")
            session = self._close_running(entry, now, final=final)
            logger.info(
                "%s: user=%s task=%s session=%s total=%ss",
                operation, user_id, session.task_id, session.id, session.total_duration_seconds,
            )
        self._refresh(session)
        return session

    def pause(self, user_id: str) -> TimeSession:
        """Close the running interval; the session stays resumable."""
        return self._halt("pause", user_id, final=False)

    def stop(self, user_id: str) -> TimeSession:
        """Close the running interval and end the session for good."""
        return self._halt("stop", user_id, final=True)

    def get_active(self, user_id: str) -> Optional[dict]:
        """The running timer with live elapsed seconds, or None when idle."""
        with self._unit_of_work("read", user_id):
            entry = self.registry.get(user_id)
            if entry is None:
                return None
            task = find_task(self.db, entry.task_id, user_id)
            session = self.db.get(TimeSession, entry.session_id)
            elapsed = 0
            if session is not None:
                elapsed = elapsed_seconds(load_ledger(session.intervals), self.clock())
            active = {
                **entry.model_dump(),
                "task_title": task.title if task else entry.task_title,
                "category": task.category if task else entry.category,
                "elapsed_seconds": elapsed,
            }
        return active

    # --- manual entries ---

    def log_entry(
        self,
        user_id: str,
        task_id: str,
        task_title: Optional[str],
        start_time: datetime,
        end_time: datetime,
        category: Optional[str] = None,
        description: Optional[str] = None,
    ) -> TimeSession:
        """Record finished work after the fact as a stopped one-interval session."""
        now = self.clock()
        with self._unit_of_work("log", user_id):
            if end_time <= start_time:
                raise InvalidState("End time must be after start time")
            task = self._task(user_id, task_id)
            task_title = (task_title or "").strip() or task.title
            ledger = close_trailing_interval(append_open_interval((), start_time), end_time)
            session = TimeSession(
                user_id=user_id,
                task_id=task.id,
                task_title=task_title,
                category=(category or "").strip() or task.category,
                description=(description or "").strip() or f"Working on {task_title}",
                start_time=start_time,
                created_at=now,
            )
            self._write(session, ledger, TimerState.STOPPED, end_time)
            session.updated_at = now
        self._refresh(session)
        return session

    def update_entry(self, user_id: str, session_id: str, description: str) -> TimeSession:
        with self._unit_of_work("update", user_id):
            session = self._owned_session(user_id, session_id)
            session.description = description
            session.updated_at = self.clock()
            self.db.add(session)
        self._refresh(session)
        return session

    def delete_entry(self, user_id: str, session_id: str) -> dict:
        """Delete a paused or stopped entry and return what it held."""
        with self._unit_of_work("delete", user_id):
            session = self._owned_session(user_id, session_id)
            if session_state(session) is TimerState.RUNNING:
                raise InvalidState("Stop the running timer before deleting its entry")
            deleted = session.model_dump()
            self.db.delete(session)
        return deleted
