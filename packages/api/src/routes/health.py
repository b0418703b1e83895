# This project was developed with assistance from AI tools.
"""Liveness and database connectivity check."""

from db import DatabaseService, get_db_service
from fastapi import APIRouter, Depends, Response, status

from .. import __version__
from ..schemas.health import HealthItem

router = APIRouter()


@router.get("/", response_model=list[HealthItem])
async def health(
    response: Response,
    db: DatabaseService = Depends(get_db_service),
) -> list[HealthItem]:
    """Report API and database status. Returns 503 when the database is down."""
    db_ok = await db.health_check()
    if not db_ok:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    return [
        HealthItem(name="API", status="healthy", message="API is running", version=__version__),
        HealthItem(
            name="Database",
            status="healthy" if db_ok else "unhealthy",
            message="PostgreSQL connection OK" if db_ok else "PostgreSQL connection failed",
        ),
    ]
