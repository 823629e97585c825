"""
Shared request-layer dependencies: caller identity, the timer service and the
mapping from timer failures to HTTP errors.
"""
from datetime import datetime
from typing import Callable

from fastapi import Depends, Header, HTTPException
from sqlmodel import Session

from db import get_session
from errors import InvalidState, NotFound, StoreFailure, TimerError
from models import utc_now
from timer import TimerService

_STATUS_BY_ERROR = {
    NotFound: 404,
    InvalidState: 409,
    StoreFailure: 503,
}


def require_user_id(user_id: str | None = Header(default=None, alias="X-User-Id")) -> str:
    if not user_id:
        raise HTTPException(status_code=400, detail="Missing X-User-Id header")
    return user_id


def get_clock() -> Callable[[], datetime]:
    return utc_now


def get_timer_service(
    db: Session = Depends(get_session),
    clock: Callable[[], datetime] = Depends(get_clock),
) -> TimerService:
    return TimerService(db, clock=clock)


def http_error(exc: TimerError) -> HTTPException:
    status = next(
        (code for kind, code in _STATUS_BY_ERROR.items() if isinstance(exc, kind)),
        500,
    )
    return HTTPException(status_code=status, detail=str(exc))
