"""
Read-side reporting over a user's time sessions.

Aggregates only ever read total_duration_seconds and the session timestamps;
nothing here writes to the store. Unless noted otherwise only closed sessions
(end_time set) are counted.
"""
import csv
import io
from collections import defaultdict
from datetime import date, datetime, time, timedelta
from typing import Iterable, Optional

from sqlmodel import Session, col, select

from models import TimeSession

CSV_HEADER = [
    "Date",
    "Task",
    "Category",
    "Start Time",
    "End Time",
    "Duration (minutes)",
    "Description",
]


def _minutes(session: TimeSession) -> int:
    return (session.total_duration_seconds or 0) // 60


def _summary(sessions: list[TimeSession]) -> dict:
    count = len(sessions)
    total_seconds = sum(s.total_duration_seconds or 0 for s in sessions)
    total_minutes = sum(_minutes(s) for s in sessions)
    return {
        "session_count": count,
        "total_seconds": total_seconds,
        "total_minutes": total_minutes,
        "avg_minutes": round(total_minutes / count, 2) if count else 0,
    }


def day_bounds(day: date) -> tuple[datetime, datetime]:
    """First and last representable instant of a calendar day."""
    return datetime.combine(day, time.min), datetime.combine(day, time.max)


def closed_sessions(
    db: Session,
    user_id: str,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
) -> list[TimeSession]:
    """Closed sessions whose start_time falls in [start, end], oldest first."""
    statement = select(TimeSession).where(
        TimeSession.user_id == user_id, col(TimeSession.end_time).is_not(None)
    )
    if start is not None:
        statement = statement.where(TimeSession.start_time >= start)
    if end is not None:
        statement = statement.where(TimeSession.start_time <= end)
    return list(db.exec(statement.order_by(TimeSession.start_time)).all())


def find_entry(db: Session, user_id: str, entry_id: str) -> Optional[TimeSession]:
    statement = select(TimeSession).where(
        TimeSession.id == entry_id, TimeSession.user_id == user_id
    )
    return db.exec(statement).one_or_none()


def list_entries(
    db: Session,
    user_id: str,
    task_id: Optional[str] = None,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    category: Optional[str] = None,
    is_running: Optional[bool] = None,
    limit: Optional[int] = None,
    offset: Optional[int] = None,
) -> list[TimeSession]:
    """All of a user's sessions, running ones included, newest first."""
    statement = select(TimeSession).where(TimeSession.user_id == user_id)
    if task_id:
        statement = statement.where(TimeSession.task_id == task_id)
    if start is not None and end is not None:
        statement = statement.where(TimeSession.start_time >= start, TimeSession.start_time <= end)
    if is_running is not None:
        statement = statement.where(TimeSession.is_running == is_running)
    if category:
        statement = statement.where(TimeSession.category == category)
    statement = statement.order_by(col(TimeSession.start_time).desc())
    if offset:
        statement = statement.offset(offset)
    if limit:
        statement = statement.limit(limit)
    return list(db.exec(statement).all())


def today_stats(db: Session, user_id: str, now: datetime) -> dict:
    start, end = day_bounds(now.date())
    sessions = closed_sessions(db, user_id, start, end)
    stats = _summary(sessions)
    stats["first_session"] = min((s.start_time for s in sessions), default=None)
    stats["last_session"] = max((s.end_time for s in sessions), default=None)
    return stats


def _by_day(sessions: Iterable[TimeSession]) -> list[dict]:
    days: dict[date, list[TimeSession]] = defaultdict(list)
    for s in sessions:
        days[s.start_time.date()].append(s)
    return [{"date": day, **_summary(days[day])} for day in sorted(days)]


def weekly_stats(db: Session, user_id: str, now: datetime) -> list[dict]:
    """Per-day totals since Sunday 00:00 of the current week."""
    days_since_sunday = (now.weekday() + 1) % 7
    week_start = datetime.combine(now.date() - timedelta(days=days_since_sunday), time.min)
    return _by_day(closed_sessions(db, user_id, start=week_start))


def monthly_stats(
    db: Session,
    user_id: str,
    now: datetime,
    month: Optional[int] = None,
    year: Optional[int] = None,
) -> list[dict]:
    """Totals per (day, category, task title) for one month, newest day first."""
    month = now.month if month is None else month
    year = now.year if year is None else year
    first = datetime(year, month, 1)
    following = datetime(year + 1, 1, 1) if month == 12 else datetime(year, month + 1, 1)
    sessions = [s for s in closed_sessions(db, user_id, start=first) if s.start_time < following]

    groups: dict[tuple, list[TimeSession]] = defaultdict(list)
    for s in sessions:
        groups[(s.start_time.date(), s.category, s.task_title)].append(s)

    rows = []
    for (day, category, task_title), members in groups.items():
        summary = _summary(members)
        rows.append(
            {
                "date": day,
                "category": category,
                "task_title": task_title,
                "session_count": summary["session_count"],
                "total_minutes": summary["total_minutes"],
            }
        )
    rows.sort(key=lambda r: (r["date"], r["total_minutes"]), reverse=True)
    return rows


def time_by_category(
    db: Session,
    user_id: str,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
) -> list[dict]:
    groups: dict[str, list[TimeSession]] = defaultdict(list)
    for s in closed_sessions(db, user_id, start, end):
        groups[s.category].append(s)
    rows = [{"category": category, **_summary(members)} for category, members in groups.items()]
    rows.sort(key=lambda r: r["total_minutes"], reverse=True)
    return rows


def time_by_task(
    db: Session,
    user_id: str,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
) -> list[dict]:
    groups: dict[str, list[TimeSession]] = defaultdict(list)
    for s in closed_sessions(db, user_id, start, end):
        groups[s.task_id].append(s)

    rows = []
    for task_id, members in groups.items():
        latest = members[-1]
        rows.append(
            {
                "task_id": task_id,
                "task_title": latest.task_title,
                "category": latest.category,
                **_summary(members),
                "first_session": members[0].start_time,
                "last_session": max(s.end_time for s in members),
            }
        )
    rows.sort(key=lambda r: r["total_minutes"], reverse=True)
    return rows


def daily_timesheet(db: Session, user_id: str, day: date) -> dict:
    start, end = day_bounds(day)
    entries = closed_sessions(db, user_id, start, end)
    total_minutes = sum(_minutes(s) for s in entries)
    return {
        "date": day,
        "entries": entries,
        "summary": {
            "session_count": len(entries),
            "total_minutes": total_minutes,
            "total_hours": total_minutes // 60,
            "remaining_minutes": total_minutes % 60,
        },
    }


def recent_entries(db: Session, user_id: str, limit: int = 10) -> list[TimeSession]:
    statement = (
        select(TimeSession)
        .where(TimeSession.user_id == user_id, col(TimeSession.end_time).is_not(None))
        .order_by(col(TimeSession.end_time).desc())
        .limit(limit)
    )
    return list(db.exec(statement).all())


def timesheet_report(db: Session, user_id: str, start_day: date, end_day: date) -> dict:
    start, _ = day_bounds(start_day)
    _, end = day_bounds(end_day)
    entries = list_entries(db, user_id, start=start, end=end)
    closed = [s for s in entries if s.end_time is not None]

    # Open sessions are listed in entries but have no closed time to count yet.
    total_minutes = sum(_minutes(s) for s in closed)
    total_sessions = len(closed)
    return {
        "period": {
            "start_date": start_day,
            "end_date": end_day,
            "total_days": (end_day - start_day).days + 1,
        },
        "summary": {
            "total_minutes": total_minutes,
            "total_hours": total_minutes // 60,
            "remaining_minutes": total_minutes % 60,
            "total_sessions": total_sessions,
            "average_session_minutes": round(total_minutes / total_sessions) if total_sessions else 0,
        },
        "breakdowns": {
            "by_category": time_by_category(db, user_id, start, end),
            "by_task": time_by_task(db, user_id, start, end),
            "by_day": _by_day(closed),
        },
        "entries": entries,
    }


def timesheet_csv(entries: Iterable[TimeSession]) -> str:
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    for s in entries:
        writer.writerow(
            [
                s.start_time.strftime("%a %b %d %Y"),
                s.task_title,
                s.category,
                s.start_time.strftime("%H:%M:%S"),
                s.end_time.strftime("%H:%M:%S") if s.end_time else "Running",
                _minutes(s),
                s.description or "",
            ]
        )
    return buf.getvalue()
