"""
Minimal task endpoints so timers have something to point at.
"""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlmodel import Session

from db import get_session
from deps import get_timer_service, require_user_id
from task_store import create_task, find_task, list_tasks
from timer import TimerService

router = APIRouter(prefix="/api", tags=["tasks"])


class CreateTaskRequest(BaseModel):
    title: str = Field(min_length=1)
    category: Optional[str] = None
    description: str = ""


@router.post("/tasks", status_code=201)
def add_task(
    req: CreateTaskRequest,
    db: Session = Depends(get_session),
    user_id: str = Depends(require_user_id),
):
    if not req.title.strip():
        raise HTTPException(status_code=422, detail="Task title is required")
    return create_task(db, user_id, req.title, category=req.category, description=req.description)


@router.get("/tasks")
def get_tasks(
    category: Optional[str] = None,
    db: Session = Depends(get_session),
    user_id: str = Depends(require_user_id),
):
    """List this user's tasks, newest first."""
    return list_tasks(db, user_id, category=category)


@router.get("/tasks/{task_id}")
def get_task(
    task_id: str,
    db: Session = Depends(get_session),
    timer: TimerService = Depends(get_timer_service),
    user_id: str = Depends(require_user_id),
):
    """One task, with the state of its timer (idle, running or paused)."""
    task = find_task(db, task_id, user_id)
    if not task:
        raise HTTPException(status_code=404, detail="Task not found")
    return {**task.model_dump(), "timer_state": timer.task_state(user_id, task_id)}
