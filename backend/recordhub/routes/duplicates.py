"""
RecordHub Backend - Duplicate Lookup Route
===========================================

What:  GET /api/duplicates?field=email[&dataset=...][&limit=...]
How:   Delegates to RecordService.find_duplicates, which groups records with
       exactly equal `data.<field>` values.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from recordhub.database import Database, get_database
from recordhub.schemas.record import DuplicateReport
from recordhub.services.record_service import record_service

router = APIRouter(tags=["Duplicates"])


@router.get("", response_model=DuplicateReport, summary="Group records sharing a field value")
async def find_duplicates(
    field: str = Query(..., min_length=1, max_length=100, description="Key inside record data"),
    dataset: Optional[str] = Query(default=None),
    limit: int = Query(default=100, ge=1, le=1000, description="Maximum groups returned"),
    database: Database = Depends(get_database),
) -> DuplicateReport:
    return await record_service.find_duplicates(
        db=database.db, field=field, dataset=dataset, limit=limit
    )
