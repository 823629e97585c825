"""
Task lookups used by the timer endpoints. Tasks are owned by a user; a task id
that belongs to someone else is treated as missing.
"""
from typing import Optional

from sqlmodel import Session, select

from config import DEFAULT_CATEGORY
from models import Task


def find_task(db: Session, task_id: str, user_id: str) -> Optional[Task]:
    statement = select(Task).where(Task.id == task_id, Task.user_id == user_id)
    return db.exec(statement).one_or_none()


def list_tasks(db: Session, user_id: str, category: Optional[str] = None) -> list[Task]:
    statement = select(Task).where(Task.user_id == user_id)
    if category:
        statement = statement.where(Task.category == category)
    return list(db.exec(statement.order_by(Task.created_at.desc())).all())


def create_task(
    db: Session,
    user_id: str,
    title: str,
    category: Optional[str] = None,
    description: str = "",
) -> Task:
    task = Task(
        user_id=user_id,
        title=title.strip(),
        category=(category or "").strip() or DEFAULT_CATEGORY,
        description=description,
    )
    db.add(task)
    db.commit()
    db.refresh(task)
    return task
