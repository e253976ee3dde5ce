"""
RecordHub Backend - Pydantic Request/Response Schemas
======================================================

What:  The JSON contract between the frontend and this service.
How:   FastAPI validates request bodies against the *Create/*Update models
       before a handler runs, and serializes responses through the others.

MongoDB documents use `_id: ObjectId`; the API exposes `id` as a 24-char hex
string instead.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


# ══════════════════════════════════════════════════════════════════════════
# Records
# ══════════════════════════════════════════════════════════════════════════


class RecordCreate(BaseModel):
    """Body of POST /api/records."""

    model_config = ConfigDict(extra="forbid")

    dataset: Optional[str] = Field(
        default=None, max_length=200, description="Dataset/import batch the record belongs to"
    )
    data: Dict[str, Any] = Field(description="Record fields as uploaded")


class RecordUpdate(BaseModel):
    """Body of PUT /api/records/{id}. Omitted fields are left unchanged."""

    model_config = ConfigDict(extra="forbid")

    dataset: Optional[str] = Field(default=None, max_length=200)
    data: Optional[Dict[str, Any]] = Field(default=None)


class RecordResponse(BaseModel):
    id: str = Field(description="Record identifier (ObjectId hex)")
    dataset: Optional[str] = None
    data: Dict[str, Any]
    created_at: datetime
    updated_at: datetime


class RecordListResponse(BaseModel):
    """
    Page of records, newest first.

    `total_count` is also sent as the X-Total-Count header.
    """

    records: List[RecordResponse]
    total_count: int
    limit: int
    skip: int
    has_more: bool


# ══════════════════════════════════════════════════════════════════════════
# Duplicates
# ══════════════════════════════════════════════════════════════════════════


class DuplicateGroup(BaseModel):
    value: Any = Field(description="The shared field value")
    count: int = Field(description="Number of records sharing it (always > 1)")
    record_ids: List[str]


class DuplicateReport(BaseModel):
    field: str
    dataset: Optional[str] = None
    groups: List[DuplicateGroup]
    total_groups: int


# ══════════════════════════════════════════════════════════════════════════
# Files
# ══════════════════════════════════════════════════════════════════════════


class StoredFile(BaseModel):
    filename: str = Field(description="Name on disk, unique")
    original_name: str = Field(description="Name as uploaded (sanitized)")
    size: int = Field(description="Size in bytes")
    url: str = Field(description="Static URL under /uploads")
    uploaded_at: datetime


class FileUploadResponse(BaseModel):
    success: bool = True
    message: str = "File uploaded successfully"
    file: StoredFile


class FileListResponse(BaseModel):
    files: List[StoredFile]
    total_count: int


# ══════════════════════════════════════════════════════════════════════════
# Misc
# ══════════════════════════════════════════════════════════════════════════


class MessageResponse(BaseModel):
    success: bool = True
    message: str


class SessionResponse(BaseModel):
    authenticated: bool = Field(description="Whether a credential was presented")
    source: Optional[str] = Field(
        default=None, description="Where it came from: 'cookie' or 'header'"
    )


class HealthResponse(BaseModel):
    """
    Body of GET /api/health. Field names match what the frontend reads.

    status is "ok" iff the database connection is ready.
    """

    model_config = ConfigDict(populate_by_name=True)

    status: str = Field(description="ok or error")
    message: str
    db_status: str = Field(alias="dbStatus", description="connected or disconnected")
    db_name: str = Field(alias="dbName", description="Active database name or 'not connected'")
