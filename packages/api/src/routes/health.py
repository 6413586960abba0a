# This project was developed with assistance from AI tools.
"""Liveness and database health."""

from db import get_db_service
from fastapi import APIRouter
from fastapi.responses import JSONResponse

router = APIRouter()


@router.get("/")
async def health() -> JSONResponse:
    """Report API and database status; 503 when the database is unreachable."""
    db_status = await get_db_service().health_check()
    healthy = db_status.get("status") == "healthy"
    return JSONResponse(
        status_code=200 if healthy else 503,
        content={"status": "ok" if healthy else "degraded", "database": db_status},
    )
