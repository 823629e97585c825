"""
Timesheet: manual time entries plus read-only stats, breakdowns and reports
over closed sessions (today / week / month, per category and task, per day,
and a CSV export).
"""
from datetime import MAXYEAR, MINYEAR, date, datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import Response
from pydantic import BaseModel, model_validator
from sqlmodel import Session

import reports
from db import get_session
from deps import get_clock, get_timer_service, http_error, require_user_id
from errors import TimerError
from timer import TimerService

router = APIRouter(prefix="/api/timesheet", tags=["timesheet"])


class CreateEntryRequest(BaseModel):
    task_id: str
    start_time: datetime
    end_time: datetime
    description: Optional[str] = None
    category: Optional[str] = None

    @model_validator(mode="after")
    def _check_range(self):
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self


class UpdateEntryRequest(BaseModel):
    description: str


def _naive_utc(value: datetime) -> datetime:
    """Stored timestamps are naive UTC; convert aware input, keep naive as is."""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def _date_range(start_date: Optional[date], end_date: Optional[date]):
    """Inclusive datetime bounds for a pair of optional dates."""
    if start_date is None or end_date is None:
        return None, None
    if start_date > end_date:
        raise HTTPException(status_code=422, detail="start_date must be before end_date")
    return reports.day_bounds(start_date)[0], reports.day_bounds(end_date)[1]


# --- entries ---


@router.get("")
def list_entries(
    task_id: Optional[str] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    category: Optional[str] = None,
    is_running: Optional[bool] = None,
    limit: Optional[int] = None,
    offset: Optional[int] = None,
    db: Session = Depends(get_session),
    user_id: str = Depends(require_user_id),
):
    start, end = _date_range(start_date, end_date)
    entries = reports.list_entries(
        db, user_id,
        task_id=task_id, start=start, end=end, category=category,
        is_running=is_running, limit=limit, offset=offset,
    )
    return {"data": entries, "count": len(entries)}


@router.get("/recent")
def recent_entries(
    limit: int = 10,
    db: Session = Depends(get_session),
    user_id: str = Depends(require_user_id),
):
    return reports.recent_entries(db, user_id, limit=limit)


@router.post("", status_code=201)
def create_entry(
    req: CreateEntryRequest,
    timer: TimerService = Depends(get_timer_service),
    user_id: str = Depends(require_user_id),
):
    """Log finished work after the fact."""
    try:
        return timer.log_entry(
            user_id,
            req.task_id,
            None,
            _naive_utc(req.start_time),
            _naive_utc(req.end_time),
            category=req.category,
            description=req.description,
        )
    except TimerError as e:
        raise http_error(e)


# --- stats ---


@router.get("/stats/today")
def today_stats(
    db: Session = Depends(get_session),
    clock=Depends(get_clock),
    user_id: str = Depends(require_user_id),
):
    return reports.today_stats(db, user_id, clock())


@router.get("/stats/weekly")
def weekly_stats(
    db: Session = Depends(get_session),
    clock=Depends(get_clock),
    user_id: str = Depends(require_user_id),
):
    return reports.weekly_stats(db, user_id, clock())


@router.get("/stats/monthly")
def monthly_stats(
    month: Optional[int] = None,
    year: Optional[int] = None,
    db: Session = Depends(get_session),
    clock=Depends(get_clock),
    user_id: str = Depends(require_user_id),
):
    if month is not None and not 1 <= month <= 12:
        raise HTTPException(status_code=422, detail="month must be between 1 and 12")
    if year is not None and not MINYEAR <= year < MAXYEAR:
        raise HTTPException(status_code=422, detail=f"year must be between {MINYEAR} and {MAXYEAR - 1}")
    return reports.monthly_stats(db, user_id, clock(), month=month, year=year)


# --- breakdowns ---


@router.get("/breakdown/category")
def breakdown_by_category(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    db: Session = Depends(get_session),
    user_id: str = Depends(require_user_id),
):
    start, end = _date_range(start_date, end_date)
    return reports.time_by_category(db, user_id, start, end)


@router.get("/breakdown/task")
def breakdown_by_task(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    db: Session = Depends(get_session),
    user_id: str = Depends(require_user_id),
):
    start, end = _date_range(start_date, end_date)
    return reports.time_by_task(db, user_id, start, end)


@router.get("/daily/{day}")
def daily_timesheet(
    day: date,
    db: Session = Depends(get_session),
    user_id: str = Depends(require_user_id),
):
    return reports.daily_timesheet(db, user_id, day)


@router.get("/reports/timesheet")
def timesheet_report(
    start_date: date,
    end_date: date,
    format: str = "json",
    db: Session = Depends(get_session),
    user_id: str = Depends(require_user_id),
):
    """Full report for a period; format=csv downloads the entries as CSV."""
    _date_range(start_date, end_date)
    report = reports.timesheet_report(db, user_id, start_date, end_date)
    if format == "csv":
        return Response(
            content=reports.timesheet_csv(report["entries"]),
            media_type="text/csv",
            headers={
                "Content-Disposition": f'attachment; filename="timesheet_{start_date}_{end_date}.csv"'
            },
        )
    return report


# --- single entry (declared last so the fixed paths above win) ---


@router.get("/{entry_id}")
def get_entry(
    entry_id: str,
    db: Session = Depends(get_session),
    user_id: str = Depends(require_user_id),
):
    entry = reports.find_entry(db, user_id, entry_id)
    if not entry:
        raise HTTPException(status_code=404, detail="Time entry not found")
    return entry


@router.patch("/{entry_id}")
def update_entry(
    entry_id: str,
    req: UpdateEntryRequest,
    timer: TimerService = Depends(get_timer_service),
    user_id: str = Depends(require_user_id),
):
    """Only the description of an entry can be edited."""
    try:
        return timer.update_entry(user_id, entry_id, req.description)
    except TimerError as e:
        raise http_error(e)


@router.delete("/{entry_id}")
def delete_entry(
    entry_id: str,
    timer: TimerService = Depends(get_timer_service),
    user_id: str = Depends(require_user_id),
):
    """Delete a paused or stopped entry. A running one must be stopped first."""
    try:
        return timer.delete_entry(user_id, entry_id)
    except TimerError as e:
        raise http_error(e)
