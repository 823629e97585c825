from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from sqlalchemy import JSON, Column, DateTime
from sqlmodel import Field, SQLModel

from config import DEFAULT_CATEGORY


def utc_now() -> datetime:
    """Naive UTC now; SQLite keeps no tzinfo so we never store it."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def naive_timestamp(**column_kwargs) -> Column:
    """Plain DateTime column; values are naive UTC and bind without tzinfo."""
    return Column(DateTime(timezone=False), **column_kwargs)


def new_id() -> str:
    return str(uuid.uuid4())


class TimerState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"
    STOPPED = "stopped"


class Task(SQLModel, table=True):
    __tablename__ = "tasks"

    id: str = Field(default_factory=new_id, primary_key=True, index=True)
    user_id: str = Field(index=True)
    title: str
    category: str = DEFAULT_CATEGORY
    description: str = ""
    created_at: datetime = Field(default_factory=utc_now, sa_column=naive_timestamp(nullable=False))


class TimeSession(SQLModel, table=True):
    __tablename__ = "time_sessions"

    id: str = Field(default_factory=new_id, primary_key=True, index=True)
    user_id: str = Field(index=True)
    task_id: str = Field(index=True)
    task_title: str
    category: str = DEFAULT_CATEGORY
    description: str = ""
    # Stored form of the interval ledger; see ledger.dump_ledger / load_ledger.
    intervals: list = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    total_duration_seconds: int = 0
    state: TimerState = Field(default=TimerState.RUNNING, index=True)
    is_running: bool = True
    start_time: datetime = Field(sa_column=naive_timestamp(nullable=False, index=True))
    end_time: Optional[datetime] = Field(default=None, sa_column=naive_timestamp(nullable=True))
    created_at: datetime = Field(default_factory=utc_now, sa_column=naive_timestamp(nullable=False))
    updated_at: datetime = Field(default_factory=utc_now, sa_column=naive_timestamp(nullable=False))


class ActiveTimer(SQLModel, table=True):
    __tablename__ = "active_timers"

    # One row per user at most; the primary key enforces it.
    user_id: str = Field(primary_key=True)
    task_id: str
    session_id: str
    task_title: str
    description: str = ""
    category: str = DEFAULT_CATEGORY
    start_time: datetime = Field(sa_column=naive_timestamp(nullable=False))
