"""Liveness and readiness probes."""

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from sqlalchemy import inspect

from promptlib.core.database import check_connection

router = APIRouter(tags=["health"])

REQUIRED_TABLES = ("prompts", "user_profiles", "user_subscriptions", "user_favorites", "copy_logs")


@router.get("/healthz")
def healthz():
    """Lightweight liveness check (no deps)."""
    return {"status": "ok"}


@router.get("/readyz")
def readyz(request: Request):
    """Readiness check: DB connectivity + required tables."""
    engine = request.app.state.engine
    if not check_connection(engine):
        return JSONResponse(status_code=503, content={"status": "unavailable", "db": False})
    present = set(inspect(engine).get_table_names())
    missing = [t for t in REQUIRED_TABLES if t not in present]
    if missing:
        return JSONResponse(status_code=503, content={"status": "unavailable", "db": True, "missing_tables": missing})
    return {"status": "ok", "db": True}
