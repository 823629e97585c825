"""
Task Time – Backend API
Start with: uvicorn main:app --reload
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from config import CORS_ORIGINS, LOG_FILE, LOG_LEVEL
from db import engine, init_db
from logging_setup import setup_logging
from routers import tasks, timers, timesheet

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging(LOG_LEVEL, LOG_FILE)
    init_db(engine)
    logger.info("Task Time API ready (database %s)", engine.url.render_as_string(hide_password=True))
    yield
    engine.dispose()


app = FastAPI(
    title="Task Time API",
    description="Task time tracking: one running timer per user, pause/resume, timesheets",
    version="0.1.0",
    lifespan=lifespan,
)

# Allow the frontend to call this API
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(tasks.router)
app.include_router(timers.router)
app.include_router(timesheet.router)


@app.get("/health")
def health():
    """Check that the API is running. Frontend can call this first."""
    return {"status": "ok", "message": "Task Time API is running"}


@app.get("/")
def root():
    """Root welcome."""
    return {"app": "Task Time", "docs": "/docs"}
