"""
RecordHub Backend - Health Check Route
=======================================

What:  GET /api/health, used by the frontend and by load balancers.
How:   Reads the connector's readiness flag. It does not query MongoDB, so it
       answers (200) even while the database is down and reports that in
       the body instead.

    {"status": "ok",    "message": "Server is running",          "dbStatus": "connected",    "dbName": "records"}
    {"status": "error", "message": "Database connection error",  "dbStatus": "disconnected", "dbName": "not connected"}
"""

from fastapi import APIRouter, Depends

from recordhub.database import Database, get_database
from recordhub.schemas.record import HealthResponse

router = APIRouter(prefix="/api", tags=["Health"])


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
)
async def health_check(database: Database = Depends(get_database)) -> HealthResponse:
    if database.is_ready():
        return HealthResponse(
            status="ok",
            message="Server is running",
            db_status="connected",
            db_name=database.database_name or "not connected",
        )
    return HealthResponse(
        status="error",
        message="Database connection error",
        db_status="disconnected",
        db_name="not connected",
    )
