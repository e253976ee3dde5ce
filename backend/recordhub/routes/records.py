"""
RecordHub Backend - Record Route Handlers
==========================================

What:  CRUD and CSV export for /api/records.
How:   Thin handlers: pull the database handle, call RecordService, shape the
       response. Validation and not-found cases are raised as domain errors
       and rendered by the handlers in main.py.

    GET    /api/records            list (dataset, limit, skip), X-Total-Count header
    POST   /api/records            create → 201
    GET    /api/records/export     CSV download (Content-Disposition: attachment)
    GET    /api/records/{id}       detail
    PUT    /api/records/{id}       partial update
    DELETE /api/records/{id}       delete
"""

from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response

from recordhub.database import Database, get_database
from recordhub.schemas.record import (
    MessageResponse,
    RecordCreate,
    RecordListResponse,
    RecordResponse,
    RecordUpdate,
)
from recordhub.services.file_service import sanitize_filename
from recordhub.services.record_service import record_service

router = APIRouter(tags=["Records"])


@router.get("", response_model=RecordListResponse, summary="List records")
async def list_records(
    response: Response,
    dataset: Optional[str] = Query(default=None, description="Only records from this dataset"),
    limit: int = Query(default=50, ge=1, le=500),
    skip: int = Query(default=0, ge=0),
    database: Database = Depends(get_database),
) -> RecordListResponse:
    result = await record_service.list_records(
        db=database.db, limit=limit, skip=skip, dataset=dataset
    )
    response.headers["X-Total-Count"] = str(result.total_count)
    return result


@router.post("", status_code=201, response_model=RecordResponse, summary="Create a record")
async def create_record(
    payload: RecordCreate,
    database: Database = Depends(get_database),
) -> RecordResponse:
    return await record_service.create_record(db=database.db, payload=payload)


# Declared before /{record_id} so "export" is not taken for an ID
@router.get("/export", summary="Export records as CSV")
async def export_records(
    dataset: Optional[str] = Query(default=None),
    database: Database = Depends(get_database),
) -> Response:
    content = await record_service.export_csv(db=database.db, dataset=dataset)
    stamp = datetime.now(timezone.utc).strftime("%Y%m%d-%H%M%S")
    filename = sanitize_filename(
        f"records-{dataset}-{stamp}.csv" if dataset else f"records-{stamp}.csv"
    )
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/{record_id}", response_model=RecordResponse, summary="Get a record")
async def get_record(
    record_id: str,
    database: Database = Depends(get_database),
) -> RecordResponse:
    return await record_service.get_record(db=database.db, record_id=record_id)


@router.put("/{record_id}", response_model=RecordResponse, summary="Update a record")
async def update_record(
    record_id: str,
    payload: RecordUpdate,
    database: Database = Depends(get_database),
) -> RecordResponse:
    return await record_service.update_record(db=database.db, record_id=record_id, payload=payload)


@router.delete("/{record_id}", response_model=MessageResponse, summary="Delete a record")
async def delete_record(
    record_id: str,
    database: Database = Depends(get_database),
) -> MessageResponse:
    await record_service.delete_record(db=database.db, record_id=record_id)
    return MessageResponse(message="Record deleted")
