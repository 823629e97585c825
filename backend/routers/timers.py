"""
Timer endpoints: start (or resume), pause, stop and read the active timer.
A user has at most one running timer; starting another stops the current one.
"""
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from deps import get_timer_service, http_error, require_user_id
from errors import TimerError
from timer import TimerService

router = APIRouter(prefix="/api/timer", tags=["timer"])


class StartTimerRequest(BaseModel):
    task_id: str
    description: Optional[str] = None
    category: Optional[str] = None


@router.post("/start")
def start_timer(
    req: StartTimerRequest,
    timer: TimerService = Depends(get_timer_service),
    user_id: str = Depends(require_user_id),
):
    """
    Start the timer for a task, resuming its paused session if there is one.
    Any timer already running for the user is stopped and returned as auto_stopped.
    """
    try:
        result = timer.start(
            user_id, req.task_id, category=req.category, description=req.description
        )
    except TimerError as e:
        raise http_error(e)
    return {
        "active_timer": result.active_timer,
        "time_session": result.session,
        "auto_stopped": result.auto_stopped,
    }


@router.post("/pause")
def pause_timer(
    timer: TimerService = Depends(get_timer_service),
    user_id: str = Depends(require_user_id),
):
    """Pause the running timer. Starting the same task later resumes it."""
    try:
        return timer.pause(user_id)
    except TimerError as e:
        raise http_error(e)


@router.post("/stop")
def stop_timer(
    timer: TimerService = Depends(get_timer_service),
    user_id: str = Depends(require_user_id),
):
    """Stop the running timer and close its session."""
    try:
        return timer.stop(user_id)
    except TimerError as e:
        raise http_error(e)


@router.get("/active")
def get_active_timer(
    timer: TimerService = Depends(get_timer_service),
    user_id: str = Depends(require_user_id),
):
    """The running timer, or null when nothing is running."""
    try:
        return timer.get_active(user_id)
    except TimerError as e:
        raise http_error(e)
