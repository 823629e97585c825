# tests/test_reports.py

from __future__ import annotations

import csv
import io
from datetime import date

import pytest

import reports

from helpers import at

DAY = 24 * 3600


@pytest.fixture()
def history(timer, clock, make_task):
    """
    Closed sessions on Mon 2026-03-02 (today), Sun 03-01 and Fri 02-20,
    plus one timer still running today.
    """
    write = make_task("Write", category="Work")
    review = make_task("Review", category="Admin")
    log = timer.log_entry
    sessions = {
        "a": log("u1", write.id, write.title, at(0), at(1800), category="Work"),
        "b": log("u1", review.id, review.title, at(3600), at(4500), category="Admin"),
        "c": log("u1", write.id, write.title, at(-23 * 3600), at(-23 * 3600 + 1200), category="Work"),
        "d": log("u1", write.id, write.title, at(-10 * DAY), at(-10 * DAY + 3600), category="Work"),
    }
    # someone else's work never shows up
    theirs = make_task("Write", user_id="u2", category="Work")
    log("u2", theirs.id, theirs.title, at(0), at(600), category="Work")

    clock.at(7200)
    sessions["e"] = timer.start("u1", review.id, review.title, category="Admin").session
    clock.at(8000)
    return {"tasks": {"write": write, "review": review}, "sessions": sessions}


def test_today_stats(db, history):
    stats = reports.today_stats(db, "u1", at(8000))
    assert stats["session_count"] == 2
    assert stats["total_minutes"] == 45
    assert stats["total_seconds"] == 2700
    assert stats["avg_minutes"] == 22.5
    assert stats["first_session"] == at(0)
    assert stats["last_session"] == at(4500)


def test_today_stats_empty(db):
    stats = reports.today_stats(db, "u1", at(0))
    assert stats["session_count"] == 0
    assert stats["total_minutes"] == 0
    assert stats["avg_minutes"] == 0
    assert stats["first_session"] is None


def test_weekly_stats_start_on_sunday(db, history):
    rows = reports.weekly_stats(db, "u1", at(8000))
    assert [(r["date"], r["session_count"], r["total_minutes"]) for r in rows] == [
        (date(2026, 3, 1), 1, 20),
        (date(2026, 3, 2), 2, 45),
    ]


def test_monthly_stats_group_by_day_category_task(db, history):
    rows = reports.monthly_stats(db, "u1", at(8000))
    assert [(r["date"], r["category"], r["task_title"], r["total_minutes"]) for r in rows] == [
        (date(2026, 3, 2), "Work", "Write", 30),
        (date(2026, 3, 2), "Admin", "Review", 15),
        (date(2026, 3, 1), "Work", "Write", 20),
    ]

    february = reports.monthly_stats(db, "u1", at(8000), month=2)
    assert [(r["date"], r["total_minutes"]) for r in february] == [(date(2026, 2, 20), 60)]


def test_time_by_category_orders_by_total(db, history):
    rows = reports.time_by_category(db, "u1")
    assert [(r["category"], r["session_count"], r["total_minutes"]) for r in rows] == [
        ("Work", 3, 110),
        ("Admin", 1, 15),
    ]


def test_time_by_task_in_range(db, history):
    start, _ = reports.day_bounds(date(2026, 3, 1))
    _, end = reports.day_bounds(date(2026, 3, 2))
    rows = reports.time_by_task(db, "u1", start, end)

    write, review = rows
    assert write["task_id"] == history["tasks"]["write"].id
    assert write["total_minutes"] == 50
    assert write["session_count"] == 2
    assert write["first_session"] == at(-23 * 3600)
    assert write["last_session"] == at(1800)
    assert review["total_minutes"] == 15


def test_daily_timesheet_summary(db, history):
    sheet = reports.daily_timesheet(db, "u1", date(2026, 3, 2))
    assert [s.id for s in sheet["entries"]] == [history["sessions"]["a"].id, history["sessions"]["b"].id]
    assert sheet["summary"] == {
        "session_count": 2,
        "total_minutes": 45,
        "total_hours": 0,
        "remaining_minutes": 45,
    }


def test_recent_entries_newest_first(db, history):
    recent = reports.recent_entries(db, "u1", limit=2)
    assert [s.id for s in recent] == [history["sessions"]["b"].id, history["sessions"]["a"].id]


def test_list_entries_filters(db, history):
    running = reports.list_entries(db, "u1", is_running=True)
    assert [s.id for s in running] == [history["sessions"]["e"].id]

    admin = reports.list_entries(db, "u1", category="Admin")
    assert {s.id for s in admin} == {history["sessions"]["b"].id, history["sessions"]["e"].id}

    write_id = history["tasks"]["write"].id
    page = reports.list_entries(db, "u1", task_id=write_id, limit=1, offset=1)
    assert [s.id for s in page] == [history["sessions"]["c"].id]


def test_timesheet_report(db, history):
    report = reports.timesheet_report(db, "u1", date(2026, 3, 1), date(2026, 3, 2))

    assert report["period"]["total_days"] == 2
    # a, b and c; the running e is listed but not counted
    assert report["summary"]["total_sessions"] == 3
    assert report["summary"]["total_minutes"] == 65
    assert report["summary"]["total_hours"] == 1
    assert report["summary"]["remaining_minutes"] == 5
    assert report["summary"]["average_session_minutes"] == 22
    assert [r["date"] for r in report["breakdowns"]["by_day"]] == [date(2026, 3, 1), date(2026, 3, 2)]
    assert report["breakdowns"]["by_category"][0]["category"] == "Work"


def test_timesheet_report_summary_agrees_with_breakdowns(timer, db, clock, make_task):
    task = make_task()
    clock.at(0)
    timer.start("u1", task.id)
    clock.at(600)
    timer.pause("u1")

    report = reports.timesheet_report(db, "u1", date(2026, 3, 2), date(2026, 3, 2))
    assert [s.state for s in report["entries"]] == ["paused"]
    assert report["summary"]["total_sessions"] == 0
    assert report["summary"]["total_minutes"] == 0
    assert report["summary"]["average_session_minutes"] == 0
    assert report["breakdowns"]["by_category"] == []

    clock.at(900)
    timer.start("u1", task.id)
    clock.at(1200)
    timer.stop("u1")

    report = reports.timesheet_report(db, "u1", date(2026, 3, 2), date(2026, 3, 2))
    by_category = report["breakdowns"]["by_category"]
    assert report["summary"]["total_minutes"] == 15
    assert report["summary"]["total_minutes"] == sum(r["total_minutes"] for r in by_category)
    assert report["summary"]["total_sessions"] == sum(r["session_count"] for r in by_category)


def test_timesheet_csv(db, history):
    report = reports.timesheet_report(db, "u1", date(2026, 3, 2), date(2026, 3, 2))
    rows = list(csv.reader(io.StringIO(reports.timesheet_csv(report["entries"]))))

    assert rows[0] == reports.CSV_HEADER
    by_task = {row[1]: row for row in rows[1:] if row[4] != "Running"}
    assert by_task["Write"] == [
        "Mon Mar 02 2026", "Write", "Work", "09:00:00", "09:30:00", "30", "Working on Write",
    ]
    running = [row for row in rows[1:] if row[4] == "Running"]
    assert len(running) == 1
    assert running[0][1] == "Review"
